"""Kitchen status board.

The board keeps the last confirmed copy of each order plus an overlay of
status commands that have been applied locally but not yet confirmed by
storage. Lanes are always rendered from confirmed state with the overlay
on top; a rejected command simply disappears from the overlay.
"""
import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from tableside.core.config import settings
from tableside.core.errors import (
    InvalidTransitionError,
    OrderNotFoundError,
    OrderingError,
    StorageError,
)
from tableside.db.models import utcnow
from tableside.services.feed.broker import OrderFeed, Subscription
from tableside.services.feed.events import OrderAdded, OrderDeleted, OrderUpdated
from tableside.services.kitchen.retry import RetryPolicy
from tableside.services.ordering.models import OrderRecord, OrderStatus, Priority
from tableside.services.ordering.state_machine import (
    ACTIVE_LANES,
    LANE_TITLES,
    action_label,
    next_status,
    validate_transition,
)

logger = logging.getLogger(__name__)

FetchOrder = Callable[[int], Awaitable[Optional[OrderRecord]]]
WriteStatus = Callable[[int, OrderStatus, Optional[int]], Awaitable[OrderRecord]]


class CommandOutcome(str, Enum):
    APPLIED_LOCALLY = "applied_locally"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


@dataclass
class StatusCommand:
    order_id: int
    from_status: OrderStatus
    to_status: OrderStatus
    expected_version: int
    outcome: CommandOutcome = CommandOutcome.APPLIED_LOCALLY
    error: Optional[str] = None


@dataclass
class OrderCard:
    order: OrderRecord
    minutes_since_order: int
    in_flight: bool = False

    @property
    def action(self) -> Optional[str]:
        return action_label(self.order.status)


@dataclass
class Lane:
    status: OrderStatus
    title: str
    cards: List[OrderCard] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.cards)


def minutes_since(created_at: datetime, now: datetime) -> int:
    """Whole minutes elapsed since an order was created, never negative."""
    seconds = (now - created_at).total_seconds()
    return max(0, math.floor(seconds / 60))


def _lane_sort_key(order: OrderRecord):
    return (0 if order.priority == Priority.HIGH else 1, order.created_at, order.id)


def build_lanes(
    orders: Iterable[OrderRecord],
    now: datetime,
    in_flight: Optional[Set[int]] = None,
) -> Dict[OrderStatus, Lane]:
    """Partition orders into the active lanes; other statuses drop out."""
    in_flight = in_flight or set()
    lanes = {status: Lane(status=status, title=LANE_TITLES[status]) for status in ACTIVE_LANES}
    for order in sorted(orders, key=_lane_sort_key):
        lane = lanes.get(order.status)
        if lane is None:
            continue
        lane.cards.append(
            OrderCard(
                order=order,
                minutes_since_order=minutes_since(order.created_at, now),
                in_flight=order.id in in_flight,
            )
        )
    return lanes


class KitchenBoard:
    """Live view of one restaurant's active orders with forward-only actions."""

    def __init__(
        self,
        restaurant_id: int,
        fetch_order: FetchOrder,
        write_status: WriteStatus,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.restaurant_id = restaurant_id
        self._fetch_order = fetch_order
        self._write_status = write_status
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._clock = clock
        self.now = clock()
        self._confirmed: Dict[int, OrderRecord] = {}
        self._overlay: Dict[int, StatusCommand] = {}
        self._commands: asyncio.Queue = asyncio.Queue()
        self.last_error: Optional[str] = None

    # State

    def load(self, orders: Iterable[OrderRecord]) -> None:
        """Replace local state with a full fetch."""
        self._confirmed = {
            order.id: order for order in orders if order.restaurant_id == self.restaurant_id
        }
        logger.info(
            f"[KITCHEN] Board for restaurant {self.restaurant_id} loaded {len(self._confirmed)} orders"
        )

    resync = load

    @property
    def orders(self) -> List[OrderRecord]:
        """Orders as displayed: confirmed state with in-flight commands applied."""
        displayed = []
        for order_id, order in self._confirmed.items():
            command = self._overlay.get(order_id)
            if command is not None:
                order = order.model_copy(update={"status": command.to_status})
            displayed.append(order)
        return displayed

    def get(self, order_id: int) -> Optional[OrderRecord]:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def lanes(self) -> Dict[OrderStatus, Lane]:
        return build_lanes(self.orders, self.now, in_flight=set(self._overlay))

    def counts(self) -> Dict[OrderStatus, int]:
        return {status: lane.count for status, lane in self.lanes().items()}

    def tick(self, now: Optional[datetime] = None) -> None:
        self.now = now or self._clock()

    async def run_clock(self, interval_seconds: Optional[float] = None) -> None:
        """Refresh elapsed times on a fixed interval until cancelled."""
        interval_seconds = interval_seconds or settings.kitchen_clock_interval_seconds
        while True:
            await asyncio.sleep(interval_seconds)
            self.tick()

    # Commands

    def request_advance(
        self, order_id: int, target: Optional[OrderStatus] = None
    ) -> StatusCommand:
        """Apply a forward status change locally and queue its write."""
        confirmed = self._confirmed.get(order_id)
        if confirmed is None:
            raise OrderNotFoundError(order_id)
        if order_id in self._overlay:
            raise OrderingError(f"Order {order_id} already has a status change in flight")

        if target is None:
            target = next_status(confirmed.status)
            if target is None:
                raise InvalidTransitionError(str(confirmed.status), str(confirmed.status))
        target = validate_transition(confirmed.status, target)

        command = StatusCommand(
            order_id=order_id,
            from_status=confirmed.status,
            to_status=target,
            expected_version=confirmed.version,
        )
        self._overlay[order_id] = command
        self._commands.put_nowait(command)
        return command

    async def process_commands(self) -> List[StatusCommand]:
        """Write every queued command and reconcile local state."""
        processed = []
        while not self._commands.empty():
            command = self._commands.get_nowait()
            await self._execute(command)
            processed.append(command)
        return processed

    async def advance(
        self, order_id: int, target: Optional[OrderStatus] = None
    ) -> StatusCommand:
        command = self.request_advance(order_id, target)
        await self.process_commands()
        return command

    async def _execute(self, command: StatusCommand) -> None:
        try:
            updated = await self.retry_policy.run(
                lambda: self._write_status(
                    command.order_id, command.to_status, command.expected_version
                ),
                description=f"status write for order {command.order_id}",
            )
        except OrderingError as e:
            self._reject(command, e)
            logger.warning(
                f"[KITCHEN] Order {command.order_id} "
                f"{command.from_status.value} -> {command.to_status.value} rejected: {e}"
            )
            if not isinstance(e, StorageError):
                # Storage answered, so its copy is the one to show
                try:
                    await self._refresh(command.order_id)
                except StorageError as refresh_error:
                    logger.warning(
                        f"[KITCHEN] Could not refresh order {command.order_id}: {refresh_error}"
                    )
            return
        except Exception as e:
            # Unknown outcome: keep the last confirmed copy
            self._reject(command, e)
            logger.exception(
                f"[KITCHEN] Order {command.order_id} "
                f"{command.from_status.value} -> {command.to_status.value} failed"
            )
            return
        finally:
            self._overlay.pop(command.order_id, None)

        command.outcome = CommandOutcome.CONFIRMED
        self._apply_record(updated)

    def _reject(self, command: StatusCommand, error: Exception) -> None:
        command.outcome = CommandOutcome.REJECTED
        command.error = str(error) or type(error).__name__
        self.last_error = command.error

    # Feed

    def attach(self, feed: OrderFeed) -> Subscription:
        """Subscribe to the restaurant's order feed. Caller owns the handle."""
        return feed.subscribe(
            self.restaurant_id,
            on_added=self.on_added,
            on_updated=self.on_updated,
            on_deleted=self.on_deleted,
        )

    async def on_added(self, event: OrderAdded) -> None:
        if event.restaurant_id != self.restaurant_id:
            return
        await self._refresh(event.order_id)

    async def on_updated(self, event: OrderUpdated) -> None:
        if event.restaurant_id != self.restaurant_id:
            return
        local = self._confirmed.get(event.order_id)
        if local is None or event.version is None:
            await self._refresh(event.order_id)
            return
        if event.version <= local.version:
            return
        changes = {"status": event.status, "version": event.version}
        if event.priority is not None:
            changes["priority"] = event.priority
        self._confirmed[event.order_id] = local.model_copy(update=changes)

    async def on_deleted(self, event: OrderDeleted) -> None:
        self._confirmed.pop(event.order_id, None)
        self._overlay.pop(event.order_id, None)

    async def _refresh(self, order_id: int) -> None:
        record = await self._fetch_order(order_id)
        if record is None:
            self._confirmed.pop(order_id, None)
            return
        self._apply_record(record)

    def _apply_record(self, record: OrderRecord) -> None:
        if record.restaurant_id != self.restaurant_id:
            return
        existing = self._confirmed.get(record.id)
        if existing is not None and existing.version > record.version:
            return
        self._confirmed[record.id] = record
