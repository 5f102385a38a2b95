"""
API: Webhooks
Stripe events; the signature is checked against the raw request body
"""
from flask import Blueprint, current_app, jsonify, request

from ..db import db
from ..errors import ValidationError
from ..services.stripe_service import verify_webhook
from ..services.webhook_router import HANDLERS, dispatch_event, mark_event, record_event

bp = Blueprint("webhooks", __name__)


@bp.route("/stripe", methods=["POST"])
def stripe_webhook():
    payload = request.get_data()
    try:
        event = verify_webhook(payload, request.headers.get("Stripe-Signature"))
    except ValidationError as e:
        return jsonify({"error": e.message}), 400

    if not event.get("id") or not event.get("type"):
        return jsonify({"error": "Invalid webhook payload"}), 400

    record, duplicate = record_event(event)
    if duplicate:
        current_app.logger.info(f"[STRIPE_WEBHOOK] Duplicate delivery of {event['id']}")
        return jsonify({"received": True, "duplicate": True})

    try:
        handled = dispatch_event(event, HANDLERS)
    except Exception as e:
        current_app.logger.exception(f"❌ [STRIPE_WEBHOOK] Handling {event['type']} {event['id']} failed")
        db.session.rollback()
        mark_event(record, "failed", error=str(e))
        return jsonify({"error": "Webhook handler failed"}), 500

    mark_event(record, "processed")
    return jsonify({"received": True, "handled": handled})
