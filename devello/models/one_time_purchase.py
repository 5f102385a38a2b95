"""
Model: One-time purchase
Upload credits bought outside a plan, one row per Stripe payment intent
"""
from datetime import datetime
from ..db import db


class OneTimePurchase(db.Model):
    __tablename__ = "one_time_purchases"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    stripe_payment_intent_id = db.Column(db.String(64), nullable=False, unique=True)
    stripe_session_id = db.Column(db.String(128), nullable=True)

    # Amount in cents
    amount = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="usd")

    status = db.Column(db.String(16), nullable=False, default="completed")
    # single_upload / upload_pack
    purchase_type = db.Column(db.String(32), nullable=False, default="single_upload")
    uploads_granted = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "stripe_session_id": self.stripe_session_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "purchase_type": self.purchase_type,
            "uploads_granted": self.uploads_granted,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
