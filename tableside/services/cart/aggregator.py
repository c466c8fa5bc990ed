"""Cart aggregation for a single table session."""
import logging
import math
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from tableside.services.cart.models import CartLine
from tableside.services.cart.store import KeyValueStore
from tableside.services.menu.base import MenuItem

logger = logging.getLogger(__name__)


def cart_key(table_id: int) -> str:
    """Store key holding the cart of one table."""
    return f"cart:table:{table_id}"


def coerce_quantity(value: Any, default: int) -> int:
    """
    Turn loosely typed quantity input into an int.

    Fractions are floored; anything unparseable falls back to default.
    """
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return int(math.floor(number))


class Cart:
    """
    Lines a diner intends to order for one table.

    Every mutation is written through to the key-value store so a reload
    sees the same cart until it is submitted.
    """

    def __init__(self, table_id: int, store: KeyValueStore, lines: Optional[List[CartLine]] = None):
        self.table_id = table_id
        self.store = store
        self._lines: List[CartLine] = list(lines or [])

    @classmethod
    def load(cls, table_id: int, store: KeyValueStore) -> "Cart":
        """Restore the table's cart from the store."""
        raw = store.get(cart_key(table_id)) or []
        lines = []
        for entry in raw:
            try:
                lines.append(CartLine(**entry))
            except (TypeError, PydanticValidationError) as e:
                logger.warning(
                    f"[CART] Dropping unreadable line for table {table_id}: {e}"
                )
        return cls(table_id, store, lines)

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def get_line(self, item_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.item_id == item_id:
                return line
        return None

    def add_item(self, item: MenuItem, quantity: Any = 1) -> CartLine:
        """Insert a line or increment an existing one."""
        quantity = max(1, coerce_quantity(quantity, default=1))
        existing = self.get_line(item.id)
        if existing:
            existing.quantity += quantity
            line = existing
        else:
            line = CartLine(
                item_id=item.id,
                name=item.name,
                unit_price=item.price,
                quantity=quantity,
                image_url=item.image_url,
                description=item.description,
            )
            self._lines.append(line)
        self._save()
        return line

    def update_quantity(self, item_id: str, new_quantity: Any) -> Optional[CartLine]:
        """Replace a line's quantity; zero or less removes the line."""
        existing = self.get_line(item_id)
        if existing is None:
            return None
        quantity = coerce_quantity(new_quantity, default=existing.quantity)
        if quantity <= 0:
            self.remove_item(item_id)
            return None
        existing.quantity = quantity
        self._save()
        return existing

    def remove_item(self, item_id: str) -> None:
        self._lines = [line for line in self._lines if line.item_id != item_id]
        self._save()

    def clear(self) -> None:
        self._lines = []
        self.store.delete(cart_key(self.table_id))

    def get_total_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    def get_total_price(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    def _save(self) -> None:
        self.store.set(
            cart_key(self.table_id),
            [line.model_dump(mode="json") for line in self._lines],
        )
