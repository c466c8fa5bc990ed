"""Order status state machine.

Orders only move forward through ORDER_FLOW. Nothing here transitions an
order into ``cancelled``; records carrying it are terminal.
"""
from typing import Dict, Optional, Tuple, Union

from tableside.core.errors import InvalidTransitionError
from tableside.services.ordering.models import OrderStatus

ORDER_FLOW: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.COMPLETED,
)

ACTIVE_LANES: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)

LANE_TITLES: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "New",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready",
}

ACTION_LABELS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Start Preparing",
    OrderStatus.PREPARING: "Mark Ready",
    OrderStatus.READY: "Mark Served",
    OrderStatus.SERVED: "Complete",
}

StatusLike = Union[OrderStatus, str]


def _coerce(status: StatusLike) -> OrderStatus:
    return status if isinstance(status, OrderStatus) else OrderStatus(status)


def position(status: StatusLike) -> Optional[int]:
    """Index of a status in the flow, None for statuses outside it."""
    status = _coerce(status)
    try:
        return ORDER_FLOW.index(status)
    except ValueError:
        return None


def next_status(status: StatusLike) -> Optional[OrderStatus]:
    """Single forward step, or None at the end of the flow."""
    index = position(status)
    if index is None or index + 1 >= len(ORDER_FLOW):
        return None
    return ORDER_FLOW[index + 1]


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    """True when target lies strictly later in the flow than current."""
    current_index = position(current)
    target_index = position(target)
    if current_index is None or target_index is None:
        return False
    return target_index > current_index


def validate_transition(current: StatusLike, target: StatusLike) -> OrderStatus:
    """Return target as an OrderStatus or raise InvalidTransitionError."""
    if not can_transition(current, target):
        raise InvalidTransitionError(str(current), str(target))
    return _coerce(target)


def is_active(status: StatusLike) -> bool:
    """Whether an order in this status belongs on the kitchen board."""
    return _coerce(status) in ACTIVE_LANES


def action_label(status: StatusLike) -> Optional[str]:
    return ACTION_LABELS.get(_coerce(status))
