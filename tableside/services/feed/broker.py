"""In-process live order feed keyed by restaurant."""
from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, DefaultDict, List, Optional

from tableside.services.feed.events import OrderAdded, OrderDeleted, OrderUpdated

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class Subscription:
    """
    One subscriber's registration for a restaurant's order events.

    Synchronous handlers run inside ``publish``. When any handler is a
    coroutine function, events are queued and awaited one at a time by a
    worker task, so a given subscriber sees events in publish order.
    Once ``unsubscribe`` returns no handler is invoked again.
    """

    def __init__(
        self,
        feed: "OrderFeed",
        restaurant_id: int,
        on_added: Optional[Handler] = None,
        on_updated: Optional[Handler] = None,
        on_deleted: Optional[Handler] = None,
    ):
        self._feed = feed
        self.restaurant_id = restaurant_id
        self._handlers = {
            "added": on_added,
            "updated": on_updated,
            "deleted": on_deleted,
        }
        self._active = True
        self._is_async = any(
            inspect.iscoroutinefunction(handler)
            for handler in self._handlers.values()
            if handler is not None
        )
        self._queue: Optional[asyncio.Queue] = asyncio.Queue() if self._is_async else None
        self._worker: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, event) -> None:
        if not self._active:
            return
        handler = self._handlers.get(event.kind)
        if handler is None:
            return
        if self._is_async:
            self._queue.put_nowait((handler, event))
            self._ensure_worker()
            return
        try:
            handler(event)
        except Exception:
            logger.exception(
                f"[FEED] Handler failed for {event.kind} event on order {event.order_id}"
            )

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._active:
            handler, event = await self._queue.get()
            try:
                if not self._active:
                    return
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    f"[FEED] Handler failed for {event.kind} event on order {event.order_id}"
                )
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued event has been handled."""
        if self._queue is not None and self._active:
            await self._queue.join()

    def unsubscribe(self) -> None:
        """Stop delivery and release the registration. Idempotent."""
        if not self._active:
            return
        self._active = False
        self._feed._remove(self)
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self._worker = None
        if self._queue is not None:
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class FeedStream:
    """Bounded queue of events for a long-lived consumer such as a websocket."""

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.needs_resync = False

    def push(self, event) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            # Dropped events are recovered by a full resync
            self.needs_resync = True
            logger.warning(
                f"[FEED] Stream queue full, dropping {event.kind} event for order {event.order_id}"
            )

    def reset(self) -> None:
        """Discard queued events after the consumer has resynchronised."""
        while not self._queue.empty():
            self._queue.get_nowait()
        self.needs_resync = False

    async def get(self):
        return await self._queue.get()

    def __aiter__(self) -> AsyncIterator:
        return self

    async def __anext__(self):
        return await self.get()


class OrderFeed:
    """Fan-out of order events to subscribers of the same restaurant."""

    def __init__(self) -> None:
        self._subscriptions: DefaultDict[int, List[Subscription]] = defaultdict(list)

    def subscribe(
        self,
        restaurant_id: int,
        on_added: Optional[Handler] = None,
        on_updated: Optional[Handler] = None,
        on_deleted: Optional[Handler] = None,
    ) -> Subscription:
        subscription = Subscription(
            self,
            restaurant_id,
            on_added=on_added,
            on_updated=on_updated,
            on_deleted=on_deleted,
        )
        self._subscriptions[restaurant_id].append(subscription)
        logger.debug(
            f"[FEED] Subscribed to restaurant {restaurant_id} "
            f"({len(self._subscriptions[restaurant_id])} live)"
        )
        return subscription

    def publish(self, event: OrderAdded | OrderUpdated | OrderDeleted) -> int:
        """Deliver an event to the restaurant's subscribers. Returns how many received it."""
        subscriptions = list(self._subscriptions.get(event.restaurant_id, []))
        if not subscriptions:
            logger.debug(
                f"[FEED] No subscribers for restaurant {event.restaurant_id} ({event.kind})"
            )
            return 0
        for subscription in subscriptions:
            subscription.deliver(event)
        return len(subscriptions)

    def subscriber_count(self, restaurant_id: int) -> int:
        return len(self._subscriptions.get(restaurant_id, []))

    @asynccontextmanager
    async def stream(self, restaurant_id: int, maxsize: int = 0) -> AsyncIterator[FeedStream]:
        """Subscribe for the lifetime of the ``async with`` block."""
        feed_stream = FeedStream(maxsize=maxsize)
        subscription = self.subscribe(
            restaurant_id,
            on_added=feed_stream.push,
            on_updated=feed_stream.push,
            on_deleted=feed_stream.push,
        )
        try:
            yield feed_stream
        finally:
            subscription.unsubscribe()

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.restaurant_id)
        if not subscriptions:
            return
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.restaurant_id]


order_feed = OrderFeed()
