"""Tests for the product order state machine"""
import pytest

from devello.db import db
from devello.errors import InvalidTransitionError
from devello.models import OrderStatusEvent
from devello.services import order_state_machine as sm


class TestCanTransition:
    @pytest.mark.parametrize(
        "current,target",
        [
            (sm.PENDING_QUOTE, sm.AWAITING_PAYMENT),
            (sm.PENDING, sm.PROCESSING),
            (sm.AWAITING_PAYMENT, sm.PAID),
            (sm.PAID, sm.SHIPPED),
            (sm.PROCESSING, sm.DELIVERED),
            (sm.SHIPPED, sm.COMPLETED),
            (sm.FAILED_PAYMENT, sm.AWAITING_PAYMENT),
        ],
    )
    def test_allowed(self, current, target):
        assert sm.can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (sm.DELIVERED, sm.PROCESSING),
            (sm.CANCELLED, sm.PENDING),
            (sm.COMPLETED, sm.SHIPPED),
            (sm.SHIPPED, sm.CANCELLED),
            (sm.PENDING, sm.PAID),
        ],
    )
    def test_rejected(self, current, target):
        assert not sm.can_transition(current, target)

    def test_same_status_is_allowed(self):
        assert sm.can_transition(sm.DELIVERED, sm.DELIVERED)

    def test_missing_values(self):
        assert not sm.can_transition(None, sm.PENDING)
        assert not sm.can_transition(sm.PENDING, "")


class TestTransitionOrder:
    def test_records_event_and_updates_status(self, make_order):
        order = make_order(status=sm.PENDING)
        sm.transition_order(order, sm.PROCESSING, reason="payment_confirmed", actor_type="webhook")
        db.session.commit()

        assert order.status == sm.PROCESSING
        event = OrderStatusEvent.query.one()
        assert (event.from_status, event.to_status) == (sm.PENDING, sm.PROCESSING)
        assert event.reason == "payment_confirmed"
        assert event.actor_type == "webhook"

    def test_default_reason(self, make_order):
        order = make_order(status=sm.PENDING)
        sm.transition_order(order, sm.CANCELLED)
        db.session.commit()
        assert OrderStatusEvent.query.one().reason == "state-machine"

    def test_shipped_and_delivered_timestamps(self, make_order):
        order = make_order(status=sm.PROCESSING)
        sm.transition_order(order, sm.SHIPPED)
        shipped_at = order.shipped_at
        sm.transition_order(order, sm.DELIVERED)
        db.session.commit()

        assert shipped_at is not None
        assert order.shipped_at == shipped_at
        assert order.delivered_at is not None
        assert [e.to_status for e in order.status_events] == [sm.SHIPPED, sm.DELIVERED]

    def test_same_status_is_recorded_as_unchanged(self, make_order):
        order = make_order(status=sm.SHIPPED)
        sm.transition_order(order, sm.SHIPPED, reason="ignored")
        db.session.commit()

        event = OrderStatusEvent.query.one()
        assert event.reason == "status-unchanged"
        assert order.status == sm.SHIPPED

    def test_invalid_transition_raises_and_leaves_order_untouched(self, make_order):
        order = make_order(status=sm.DELIVERED)
        with pytest.raises(InvalidTransitionError) as exc_info:
            sm.transition_order(order, sm.PROCESSING)

        assert exc_info.value.status_code == 409
        assert "delivered -> processing" in exc_info.value.message
        assert order.status == sm.DELIVERED
        assert OrderStatusEvent.query.count() == 0
