"""Cart models."""
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class CartLine(BaseModel):
    """One menu item with its quantity in a table's cart."""

    item_id: str
    name: str
    unit_price: Decimal
    quantity: int = Field(default=1, ge=1)
    image_url: Optional[str] = None
    description: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity
