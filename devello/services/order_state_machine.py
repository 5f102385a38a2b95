"""
Service: product order state machine
Every status change goes through here so the audit trail stays complete.
"""
from datetime import datetime

from ..db import db
from ..errors import InvalidTransitionError
from ..models import OrderStatusEvent

PENDING_QUOTE = "pending_quote"
PENDING = "pending"
AWAITING_PAYMENT = "awaiting_payment"
PAID = "paid"
PROCESSING = "processing"
SHIPPED = "shipped"
DELIVERED = "delivered"
COMPLETED = "completed"
CANCELLED = "cancelled"
FAILED_PAYMENT = "failed_payment"

ALLOWED_TRANSITIONS = {
    PENDING_QUOTE: {PENDING, AWAITING_PAYMENT, CANCELLED},
    PENDING: {AWAITING_PAYMENT, PROCESSING, CANCELLED},
    AWAITING_PAYMENT: {PAID, FAILED_PAYMENT, CANCELLED},
    PAID: {PROCESSING, SHIPPED, CANCELLED},
    PROCESSING: {SHIPPED, DELIVERED, COMPLETED, CANCELLED},
    SHIPPED: {DELIVERED, COMPLETED},
    DELIVERED: set(),
    CANCELLED: set(),
    COMPLETED: set(),
    FAILED_PAYMENT: {AWAITING_PAYMENT, CANCELLED},
}

# Statuses an admin may set by hand
ADMIN_SETTABLE = {PROCESSING, SHIPPED, DELIVERED, COMPLETED, CANCELLED}


def can_transition(current, target):
    if not current or not target:
        return False
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())


def transition_order(order, target, reason=None, actor_type="system", actor_id=None):
    """
    Moves ``order`` to ``target`` and records an OrderStatusEvent.

    A no-op transition still records an event (reason ``status-unchanged``).
    Changes are added to the session; the caller commits.

    Raises:
        InvalidTransitionError: the move is not allowed
    """
    current = order.status
    if order.id is None:
        db.session.flush()

    if current == target:
        db.session.add(OrderStatusEvent(
            product_order_id=order.id,
            from_status=current,
            to_status=target,
            reason="status-unchanged",
            actor_type=actor_type,
            actor_id=actor_id,
        ))
        return order

    if not can_transition(current, target):
        raise InvalidTransitionError(f"Invalid status transition: {current} -> {target}")

    now = datetime.utcnow()
    order.status = target
    if target == SHIPPED and order.shipped_at is None:
        order.shipped_at = now
    if target == DELIVERED and order.delivered_at is None:
        order.delivered_at = now

    db.session.add(OrderStatusEvent(
        product_order_id=order.id,
        from_status=current,
        to_status=target,
        reason=reason or "state-machine",
        actor_type=actor_type,
        actor_id=actor_id,
    ))
    return order
