"""Order submission: turns a table's cart into a pending order."""
import logging
import time
from decimal import Decimal
from typing import List, Optional

from tableside.core.config import settings
from tableside.core.errors import EmptyCartError, InvalidQuantityError, OrderLimitError, StorageError
from tableside.db.models import utcnow
from tableside.services.cart.aggregator import Cart
from tableside.services.menu.repository import MenuRepository
from tableside.services.ordering.models import OrderItemRecord, OrderRecord
from tableside.services.ordering.totals import compute_totals, subtotal_of
from tableside.services.persistence.orders import (
    ORDER_NUMBER_PREFIX,
    OrderNumberTakenError,
    OrderRepository,
)
from tableside.services.persistence.restaurants import RestaurantRepository, TableRepository

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 3


def _or_default(value, default):
    return default if value is None else value


class OrderSubmissionService:
    """Validates a cart, prices it with the restaurant's tax rate and persists it."""

    def __init__(
        self,
        orders: OrderRepository,
        restaurants: RestaurantRepository,
        tables: TableRepository,
        menu_repository: Optional[MenuRepository] = None,
        max_items_per_order: Optional[int] = None,
        max_quantity_per_item: Optional[int] = None,
        min_order_amount: Optional[Decimal] = None,
        max_order_amount: Optional[Decimal] = None,
        default_estimated_time_minutes: Optional[int] = None,
    ):
        self.orders = orders
        self.restaurants = restaurants
        self.tables = tables
        self.menu_repository = menu_repository
        self.max_items_per_order = _or_default(max_items_per_order, settings.max_items_per_order)
        self.max_quantity_per_item = _or_default(
            max_quantity_per_item, settings.max_quantity_per_item
        )
        self.min_order_amount = Decimal(
            str(_or_default(min_order_amount, settings.min_order_amount))
        )
        self.max_order_amount = Decimal(
            str(_or_default(max_order_amount, settings.max_order_amount))
        )
        self.default_estimated_time_minutes = _or_default(
            default_estimated_time_minutes, settings.default_estimated_time_minutes
        )

    def validate_cart(self, cart: Cart) -> None:
        """Raise a ValidationError subclass if the cart cannot be submitted."""
        lines = cart.lines
        if not lines:
            raise EmptyCartError()

        bad_quantities = [line.name for line in lines if line.quantity <= 0]
        if bad_quantities:
            raise InvalidQuantityError(
                "Quantities must be greater than 0",
                [f"{name} quantity must be greater than 0" for name in bad_quantities],
            )

        errors: List[str] = []
        if cart.get_total_items() > self.max_items_per_order:
            errors.append(f"Order cannot exceed {self.max_items_per_order} total items")
        for line in lines:
            if line.quantity > self.max_quantity_per_item:
                errors.append(
                    f"{line.name} quantity cannot exceed {self.max_quantity_per_item}"
                )
        subtotal = cart.get_total_price()
        if subtotal < self.min_order_amount:
            errors.append(f"Order minimum is {self.min_order_amount:.2f}")
        if subtotal > self.max_order_amount:
            errors.append(f"Order maximum is {self.max_order_amount:.2f}")
        if errors:
            raise OrderLimitError("Order exceeds limits", errors)

    async def submit(
        self,
        cart: Cart,
        special_instructions: Optional[str],
        table_id: int,
        customer_name: Optional[str] = None,
    ) -> OrderRecord:
        """
        Persist the cart as a pending order.

        The cart is cleared only after the order is committed; any error
        leaves it intact so the diner can retry.
        """
        self.validate_cart(cart)

        table = await self.tables.get_table(table_id)
        config = await self.restaurants.get_config(table.restaurant_id)

        lines = cart.lines
        totals = compute_totals(subtotal_of(lines), config.tax_rate_percent)
        items = [
            OrderItemRecord(
                menu_item_id=line.item_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in lines
        ]
        estimated = await self._estimate_minutes(table.restaurant_id, [line.item_id for line in lines])
        notes = (special_instructions or "").strip() or None

        order = await self._create_with_number(
            restaurant_id=table.restaurant_id,
            table_id=table.id,
            items=items,
            totals=totals,
            notes=notes,
            customer_name=(customer_name or "").strip() or None,
            estimated_time_minutes=estimated,
        )
        cart.clear()
        logger.info(
            f"[SUBMIT] Table {table.number} submitted {order.order_number}: "
            f"subtotal {totals.subtotal}, tax {totals.tax} ({totals.tax_rate_percent}%), "
            f"total {totals.total} {config.currency_symbol}"
        )
        return order

    async def _create_with_number(self, restaurant_id: int, **fields) -> OrderRecord:
        """Create the order, renumbering on collisions before falling back to a timestamp."""
        order_number = await self.orders.next_order_number(restaurant_id)
        for attempt in range(1, MAX_ORDER_NUMBER_ATTEMPTS + 1):
            try:
                return await self.orders.create_order(
                    restaurant_id=restaurant_id, order_number=order_number, **fields
                )
            except OrderNumberTakenError:
                logger.warning(
                    f"[SUBMIT] Order number {order_number} taken "
                    f"(attempt {attempt}/{MAX_ORDER_NUMBER_ATTEMPTS})"
                )
                if attempt < MAX_ORDER_NUMBER_ATTEMPTS - 1:
                    order_number = await self.orders.next_order_number(restaurant_id)
                else:
                    order_number = self._fallback_order_number()
        raise StorageError(f"Could not allocate a unique order number for restaurant {restaurant_id}")

    @staticmethod
    def _fallback_order_number() -> str:
        return f"{ORDER_NUMBER_PREFIX}-{utcnow().year}-{int(time.time() * 1000)}"

    async def _estimate_minutes(self, restaurant_id: int, item_ids: List[str]) -> int:
        if self.menu_repository is None:
            return self.default_estimated_time_minutes
        minutes = await self.menu_repository.preparation_minutes(restaurant_id, item_ids)
        return max(minutes.values(), default=self.default_estimated_time_minutes)
