"""Domain errors raised by the ordering core.

Routers translate these into HTTP responses; services never catch them
except where they retry (status writes) or roll back a local view.
"""
from typing import List, Optional


class OrderingError(Exception):
    """Base class for all ordering errors."""


class ValidationError(OrderingError):
    """Input rejected before touching storage."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class EmptyCartError(ValidationError):
    """Submission attempted with no cart lines."""

    def __init__(self):
        super().__init__("Cart is empty")


class InvalidQuantityError(ValidationError):
    """A line carries a non-positive quantity."""


class OrderLimitError(ValidationError):
    """Order exceeds the configured item limits."""


class NotFoundError(OrderingError):
    """Referenced record does not exist."""


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class TableNotFoundError(NotFoundError):
    def __init__(self, table_id: int):
        super().__init__(f"Table {table_id} not found")
        self.table_id = table_id


class RestaurantNotFoundError(NotFoundError):
    def __init__(self, restaurant_id: int):
        super().__init__(f"Restaurant {restaurant_id} not found")
        self.restaurant_id = restaurant_id


class MenuItemNotFoundError(NotFoundError):
    def __init__(self, item_id: str):
        super().__init__(f"Menu item '{item_id}' not found")
        self.item_id = item_id


class InvalidTransitionError(OrderingError):
    """Status change is not a forward step of the order flow."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move order from '{current}' to '{target}'")
        self.current = current
        self.target = target


class OrderConflictError(OrderingError):
    """Order changed since the caller last read it."""

    def __init__(self, order_id: int, expected_version: int, actual_version: int):
        super().__init__(
            f"Order {order_id} is at version {actual_version}, expected {expected_version}"
        )
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class StorageError(OrderingError):
    """Transient failure talking to the database. Safe to retry."""
