"""
API: Newsletter
"""
from datetime import datetime

from flask import Blueprint, current_app, jsonify

from ..db import db
from ..models import NewsletterSubscriber
from ._helpers import json_body

bp = Blueprint("newsletter", __name__)


@bp.route("/subscribe", methods=["POST"])
def subscribe():
    data = json_body()
    email = data.get("email")

    if not isinstance(email, str) or "@" not in email:
        return jsonify({"error": "Valid email is required"}), 400

    email = email.strip().lower()
    subscriber = NewsletterSubscriber.query.filter_by(email=email).first()

    if subscriber is not None and subscriber.status == "active":
        return jsonify({"success": True, "message": "Email already subscribed to newsletter"})

    if subscriber is not None:
        subscriber.status = "active"
        subscriber.subscribed_at = datetime.utcnow()
    else:
        subscriber = NewsletterSubscriber(email=email, status="active")
        db.session.add(subscriber)

    db.session.commit()
    current_app.logger.info(f"📰 [NEWSLETTER] Subscribed {email}")
    return jsonify({"success": True, "message": "Successfully subscribed to newsletter"}), 201
