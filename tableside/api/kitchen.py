"""Kitchen board API: lanes, alert mute flag and the live order socket."""
import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, WebSocket
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.errors import http_error
from tableside.core.config import settings
from tableside.core.dependencies import get_cart_store, get_order_feed, get_order_repository
from tableside.db.database import get_db
from tableside.db.models import utcnow
from tableside.services.cart.store import KeyValueStore
from tableside.services.feed.broker import FeedStream, OrderFeed
from tableside.services.kitchen.board import build_lanes
from tableside.services.notifications.alerts import AlertSink, LoggingAlertSink, NewOrderAlerter
from tableside.services.ordering.models import OrderRecord, OrderStatus
from tableside.services.persistence.orders import OrderRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class CardResponse(BaseModel):
    order: OrderRecord
    minutes_since_order: int
    action: Optional[str] = None


class LaneResponse(BaseModel):
    status: OrderStatus
    title: str
    count: int
    cards: List[CardResponse] = []


class KitchenResponse(BaseModel):
    restaurant_id: int
    lanes: List[LaneResponse]
    alerts_muted: bool


class MuteRequest(BaseModel):
    muted: bool


class SocketAlertSink(LoggingAlertSink):
    """Logs each alert and keeps it until the socket has sent it."""

    def __init__(self):
        self.pending: List[dict] = []

    def new_orders(self, count: int, orders: list) -> None:
        super().new_orders(count, orders)
        self.pending.append(
            {
                "count": count,
                "order_ids": [order.id for order in orders],
                "order_numbers": [order.order_number for order in orders],
            }
        )


def alerter_for(
    restaurant_id: int, store: KeyValueStore, sink: Optional[AlertSink] = None
) -> NewOrderAlerter:
    return NewOrderAlerter(
        sink or LoggingAlertSink(), store, mute_key=f"{settings.alert_mute_key}:{restaurant_id}"
    )


@router.get("/api/restaurants/{restaurant_id}/kitchen", response_model=KitchenResponse)
async def get_kitchen_board(
    restaurant_id: int,
    orders: OrderRepository = Depends(get_order_repository),
    store: KeyValueStore = Depends(get_cart_store),
):
    """Active orders split into New / Preparing / Ready lanes."""
    try:
        active = await orders.list_orders(restaurant_id, active_only=True)
    except Exception as e:
        raise http_error("KITCHEN", e) from e
    lanes = build_lanes(active, utcnow())
    logger.debug(
        f"[KITCHEN] Restaurant {restaurant_id} lanes: "
        + ", ".join(f"{lane.title}={lane.count}" for lane in lanes.values())
    )
    return KitchenResponse(
        restaurant_id=restaurant_id,
        lanes=[
            LaneResponse(
                status=lane.status,
                title=lane.title,
                count=lane.count,
                cards=[
                    CardResponse(
                        order=card.order,
                        minutes_since_order=card.minutes_since_order,
                        action=card.action,
                    )
                    for card in lane.cards
                ],
            )
            for lane in lanes.values()
        ],
        alerts_muted=alerter_for(restaurant_id, store).muted,
    )


@router.put("/api/restaurants/{restaurant_id}/kitchen/alerts")
async def set_alerts_muted(
    restaurant_id: int,
    body: MuteRequest,
    store: KeyValueStore = Depends(get_cart_store),
):
    alerter = alerter_for(restaurant_id, store)
    alerter.set_muted(body.muted)
    return {"restaurant_id": restaurant_id, "muted": alerter.muted}


async def _active_orders(db: AsyncSession, restaurant_id: int) -> List[OrderRecord]:
    try:
        return await OrderRepository(db).list_orders(restaurant_id, active_only=True)
    finally:
        # Release the connection so the socket never pins a transaction
        await db.close()


async def _send_snapshot(
    websocket: WebSocket, db: AsyncSession, restaurant_id: int
) -> List[OrderRecord]:
    active = await _active_orders(db, restaurant_id)
    await websocket.send_json(
        {
            "type": "snapshot",
            "restaurant_id": restaurant_id,
            "orders": [order.model_dump(mode="json") for order in active],
        }
    )
    return active


async def _send_alerts(
    websocket: WebSocket,
    alerter: NewOrderAlerter,
    sink: SocketAlertSink,
    restaurant_id: int,
    orders: List[OrderRecord],
) -> None:
    if not alerter.observe(orders):
        return
    while sink.pending:
        alert = sink.pending.pop(0)
        await websocket.send_json({"type": "alert", "restaurant_id": restaurant_id, **alert})


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _next_event(stream: FeedStream, disconnected: asyncio.Task):
    """Next feed event, or None once the client has gone away."""
    getter = asyncio.ensure_future(stream.get())
    done, _ = await asyncio.wait({getter, disconnected}, return_when=asyncio.FIRST_COMPLETED)
    if getter in done:
        return getter.result()
    getter.cancel()
    return None


@router.websocket("/ws/restaurants/{restaurant_id}/orders")
async def order_feed_socket(
    websocket: WebSocket,
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
    feed: OrderFeed = Depends(get_order_feed),
    store: KeyValueStore = Depends(get_cart_store),
):
    """
    Live order feed for one restaurant.

    Sends a full snapshot of active orders first and then one message per
    change. Reconnecting clients get a fresh snapshot, and so does a client
    whose queue overflowed. An ``alert`` message follows whenever the number
    of pending orders rises, unless the restaurant has muted alerts.
    """
    sink = SocketAlertSink()
    alerter = alerter_for(restaurant_id, store, sink)
    await websocket.accept()
    logger.info(f"[FEED] Socket connected for restaurant {restaurant_id}")
    async with feed.stream(restaurant_id, maxsize=settings.feed_queue_size) as stream:
        disconnected = asyncio.ensure_future(_wait_for_disconnect(websocket))
        try:
            active = await _send_snapshot(websocket, db, restaurant_id)
            await _send_alerts(websocket, alerter, sink, restaurant_id, active)
            while True:
                event = await _next_event(stream, disconnected)
                if event is None:
                    break
                if stream.needs_resync:
                    stream.reset()
                    active = await _send_snapshot(websocket, db, restaurant_id)
                else:
                    await websocket.send_json(
                        {"type": "event", "event": event.model_dump(mode="json")}
                    )
                    active = await _active_orders(db, restaurant_id)
                await _send_alerts(websocket, alerter, sink, restaurant_id, active)
        finally:
            if not disconnected.done():
                disconnected.cancel()
    logger.info(f"[FEED] Socket closed for restaurant {restaurant_id}")
