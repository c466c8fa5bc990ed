"""Unit tests for the order status state machine."""
import pytest

from tableside.core.errors import InvalidTransitionError
from tableside.services.ordering.models import OrderStatus
from tableside.services.ordering.state_machine import (
    ORDER_FLOW,
    action_label,
    can_transition,
    is_active,
    next_status,
    validate_transition,
)


class TestTransitions:
    """Test forward-only transitions."""

    def test_next_status_walks_the_flow(self):
        assert next_status(OrderStatus.PENDING) == OrderStatus.PREPARING
        assert next_status(OrderStatus.PREPARING) == OrderStatus.READY
        assert next_status(OrderStatus.READY) == OrderStatus.SERVED
        assert next_status(OrderStatus.SERVED) == OrderStatus.COMPLETED
        assert next_status(OrderStatus.COMPLETED) is None

    def test_cancelled_is_terminal(self):
        assert next_status(OrderStatus.CANCELLED) is None
        for status in ORDER_FLOW:
            assert not can_transition(OrderStatus.CANCELLED, status)
            assert not can_transition(status, OrderStatus.CANCELLED)

    @pytest.mark.parametrize("current_index", range(len(ORDER_FLOW)))
    @pytest.mark.parametrize("target_index", range(len(ORDER_FLOW)))
    def test_only_forward_moves_allowed(self, current_index, target_index):
        """Every pair of statuses: allowed exactly when the target is later."""
        current = ORDER_FLOW[current_index]
        target = ORDER_FLOW[target_index]

        assert can_transition(current, target) == (target_index > current_index)

    def test_same_status_is_rejected(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition(OrderStatus.READY, OrderStatus.READY)

    def test_backward_move_is_rejected(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(OrderStatus.READY, OrderStatus.PENDING)

        assert exc_info.value.current == "ready"
        assert exc_info.value.target == "pending"

    def test_accepts_plain_strings(self):
        assert validate_transition("pending", "preparing") == OrderStatus.PREPARING


class TestLanes:
    def test_active_statuses(self):
        assert is_active(OrderStatus.PENDING)
        assert is_active(OrderStatus.PREPARING)
        assert is_active(OrderStatus.READY)
        assert not is_active(OrderStatus.SERVED)
        assert not is_active(OrderStatus.COMPLETED)
        assert not is_active(OrderStatus.CANCELLED)

    def test_action_labels(self):
        assert action_label(OrderStatus.PENDING) == "Start Preparing"
        assert action_label(OrderStatus.PREPARING) == "Mark Ready"
        assert action_label(OrderStatus.READY) == "Mark Served"
        assert action_label(OrderStatus.SERVED) == "Complete"
        assert action_label(OrderStatus.COMPLETED) is None
