"""
Service: Stripe webhook routing
Dispatches verified events to handlers with two idempotency guards: an
in-process set of event ids and an optional per-type database check.
"""
import threading
from datetime import datetime

from flask import current_app
from ..db import db
from ..models import WebhookEvent
from . import orders
from .stripe_service import retrieve_payment_intent

_processed_events = set()
_processed_lock = threading.Lock()


class Handler:
    """Event handler plus an optional "already handled?" database check"""

    def __init__(self, handle, idempotency_check=None):
        self.handle = handle
        self.idempotency_check = idempotency_check


def _seen(event_id):
    with _processed_lock:
        return event_id in _processed_events


def _mark_seen(event_id):
    with _processed_lock:
        _processed_events.add(event_id)


def reset_processed_events():
    with _processed_lock:
        _processed_events.clear()


def dispatch_event(event, handlers):
    """
    Runs the handler registered for ``event["type"]``.

    Returns:
        bool: True when a handler ran
    """
    event_id = event.get("id")
    event_type = event.get("type")
    if not event_id or not event_type:
        current_app.logger.warning("⚠️ [STRIPE_WEBHOOK] Event without id/type")
        return False

    entry = handlers.get(event_type)
    if entry is None:
        current_app.logger.info(f"ℹ️ [STRIPE_WEBHOOK] Unhandled event type: {event_type}")
        return False

    if _seen(event_id):
        current_app.logger.info(f"[STRIPE_WEBHOOK] Skipping already processed event (memory): {event_id}")
        return False

    obj = (event.get("data") or {}).get("object") or {}
    if entry.idempotency_check is not None and entry.idempotency_check(obj):
        current_app.logger.info(f"[STRIPE_WEBHOOK] Skipping already processed event (db): {event_id} {event_type}")
        _mark_seen(event_id)
        return False

    entry.handle(obj)
    _mark_seen(event_id)
    return True


def _handle_payment_succeeded(intent):
    order, created = orders.create_stock_order_from_intent(intent, actor_type="webhook")
    if created:
        orders.notify_order_placed(order)


def _handle_payment_failed(intent):
    count = orders.mark_payment_failed(intent)
    current_app.logger.info(f"[STRIPE_WEBHOOK] Payment failed for {intent.get('id')} ({count} orders)")


def _handle_checkout_completed(session):
    intent_id = session.get("payment_intent")
    if session.get("payment_status") != "paid" or not intent_id:
        current_app.logger.info(f"[STRIPE_WEBHOOK] Checkout session {session.get('id')} not paid; skipping")
        return

    intent = orders.merge_session_metadata(retrieve_payment_intent(intent_id), session)
    order, created = orders.create_stock_order_from_intent(intent, session_id=session.get("id"), actor_type="webhook")
    if created:
        orders.notify_order_placed(order)


def _handle_charge_refunded(charge):
    count = orders.mark_charge_refunded(charge)
    current_app.logger.info(f"[STRIPE_WEBHOOK] Refund recorded for {charge.get('payment_intent')} ({count} orders)")


HANDLERS = {
    "payment_intent.succeeded": Handler(
        _handle_payment_succeeded,
        lambda intent: orders.is_payment_intent_handled(intent.get("id")),
    ),
    "payment_intent.payment_failed": Handler(_handle_payment_failed),
    "checkout.session.completed": Handler(
        _handle_checkout_completed,
        lambda session: orders.is_checkout_session_handled(session.get("id"), session.get("payment_intent")),
    ),
    "charge.refunded": Handler(_handle_charge_refunded),
}


def record_event(event):
    """
    Stores the event id before processing.

    Returns:
        tuple: (WebhookEvent, duplicate) where duplicate means an earlier
        delivery was already processed
    """
    record = WebhookEvent.query.filter_by(stripe_event_id=event["id"]).first()
    if record is not None:
        if record.status == "processed":
            return record, True
        record.status = "processing"
        record.error = None
    else:
        record = WebhookEvent(stripe_event_id=event["id"], event_type=event.get("type", "unknown"))
        db.session.add(record)
    db.session.commit()
    return record, False


def mark_event(record, status, error=None):
    record.status = status
    record.error = error
    record.processed_at = datetime.utcnow()
    db.session.commit()
