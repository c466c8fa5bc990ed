"""Order change events carried by the live feed.

Added events are a signal only: consumers needing customer name or line
items fetch the full order by id.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from tableside.services.ordering.models import OrderRecord, OrderStatus, Priority


class OrderAdded(BaseModel):
    kind: Literal["added"] = "added"
    order_id: int
    restaurant_id: int
    status: OrderStatus
    order_number: Optional[str] = None
    created_at: Optional[datetime] = None


class OrderUpdated(BaseModel):
    kind: Literal["updated"] = "updated"
    order_id: int
    restaurant_id: int
    status: OrderStatus
    previous_status: Optional[OrderStatus] = None
    version: Optional[int] = None
    priority: Optional[Priority] = None


class OrderDeleted(BaseModel):
    kind: Literal["deleted"] = "deleted"
    order_id: int
    restaurant_id: int


FeedEvent = Annotated[
    Union[OrderAdded, OrderUpdated, OrderDeleted],
    Field(discriminator="kind"),
]

feed_event_adapter: TypeAdapter = TypeAdapter(FeedEvent)


def parse_feed_event(payload: dict) -> Union[OrderAdded, OrderUpdated, OrderDeleted]:
    """Validate a raw payload into its event variant."""
    return feed_event_adapter.validate_python(payload)


def order_added(order: OrderRecord) -> OrderAdded:
    return OrderAdded(
        order_id=order.id,
        restaurant_id=order.restaurant_id,
        status=order.status,
        order_number=order.order_number,
        created_at=order.created_at,
    )


def order_updated(order: OrderRecord, previous_status: Optional[OrderStatus] = None) -> OrderUpdated:
    return OrderUpdated(
        order_id=order.id,
        restaurant_id=order.restaurant_id,
        status=order.status,
        previous_status=previous_status,
        version=order.version,
        priority=order.priority,
    )


def order_deleted(order_id: int, restaurant_id: int) -> OrderDeleted:
    return OrderDeleted(order_id=order_id, restaurant_id=restaurant_id)
