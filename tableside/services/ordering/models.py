"""Order models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderStatus(str, Enum):
    """Lifecycle status of an order."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class Priority(str, Enum):
    """Display-only urgency marker."""

    HIGH = "high"
    NORMAL = "normal"

    def __str__(self) -> str:
        return self.value


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    UNAVAILABLE = "unavailable"

    def __str__(self) -> str:
        return self.value


class OrderItemRecord(BaseModel):
    """Immutable line of a submitted order."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    quantity: int = Field(ge=1)
    unit_price: Decimal
    modifiers: List[str] = []
    menu_item_id: Optional[str] = None

    @field_validator("modifiers", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []


class OrderTotals(BaseModel):
    """Amounts captured at submission time."""

    subtotal: Decimal
    tax_rate_percent: Decimal
    tax: Decimal
    total: Decimal


class OrderRecord(BaseModel):
    """Detached view of an order row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    restaurant_id: int
    table_id: int
    customer_name: Optional[str] = None
    items: List[OrderItemRecord] = []
    status: OrderStatus
    priority: Priority = Priority.NORMAL
    notes: Optional[str] = None
    estimated_time_minutes: int
    subtotal_amount: Decimal
    tax_rate_percent: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    version: int
    created_at: datetime
    updated_at: datetime


class StatusChangeResult(BaseModel):
    """Outcome of one record inside a bulk status update."""

    order_id: int
    success: bool
    status: Optional[OrderStatus] = None
    error: Optional[str] = None
