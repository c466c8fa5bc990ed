"""New-order alerts for the kitchen (sound / toast)."""
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from tableside.core.config import settings
from tableside.services.cart.store import KeyValueStore
from tableside.services.ordering.models import OrderRecord, OrderStatus

logger = logging.getLogger(__name__)


class AlertSink(ABC):
    """Something that can get the kitchen's attention."""

    @abstractmethod
    def new_orders(self, count: int, orders: list) -> None:
        """Announce ``count`` newly pending orders."""
        pass


class LoggingAlertSink(AlertSink):
    """Sink that only logs. Used when no audio device is attached."""

    def new_orders(self, count: int, orders: list) -> None:
        numbers = ", ".join(order.order_number for order in orders) or "-"
        logger.info(f"[ALERT] {count} new order(s): {numbers}")


class NewOrderAlerter:
    """
    Fires the sink when the number of pending orders grows.

    The first observation that contains pending orders also fires, so a
    board opened with orders already waiting still alerts once.
    """

    def __init__(
        self,
        sink: AlertSink,
        store: KeyValueStore,
        mute_key: Optional[str] = None,
    ):
        self.sink = sink
        self.store = store
        self.mute_key = mute_key or settings.alert_mute_key
        self._last_pending: Optional[int] = None

    @property
    def muted(self) -> bool:
        return bool(self.store.get(self.mute_key))

    def set_muted(self, muted: bool) -> None:
        self.store.set(self.mute_key, bool(muted))
        logger.info(f"[ALERT] Alerts {'muted' if muted else 'unmuted'}")

    def toggle_mute(self) -> bool:
        self.set_muted(not self.muted)
        return self.muted

    def observe(self, orders: Iterable[OrderRecord]) -> bool:
        """Record a snapshot of orders. Returns True if an alert fired."""
        pending = [order for order in orders if order.status == OrderStatus.PENDING]
        previous = self._last_pending
        self._last_pending = len(pending)

        if previous is None:
            risen = len(pending)
        else:
            risen = len(pending) - previous
        if risen <= 0:
            return False
        if self.muted:
            logger.debug(f"[ALERT] {risen} new order(s) while muted")
            return False

        newest = sorted(pending, key=lambda order: order.created_at)[-risen:]
        try:
            self.sink.new_orders(risen, newest)
        except Exception:
            logger.exception("[ALERT] Alert sink failed")
            return False
        return True
