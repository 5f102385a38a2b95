"""
Model: Payment
Stripe payment recorded against a product order
"""
from datetime import datetime
from ..db import db


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    product_order_id = db.Column(db.Integer, db.ForeignKey("product_orders.id"), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    stripe_payment_intent_id = db.Column(db.String(64), nullable=True, index=True)
    stripe_charge_id = db.Column(db.String(64), nullable=True)

    # Amount in cents
    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="usd")

    # succeeded / refunded / failed
    status = db.Column(db.String(32), nullable=False, default="succeeded")
    payment_method = db.Column(db.String(32), nullable=True, default="card")

    paid_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "product_order_id": self.product_order_id,
            "user_id": self.user_id,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "stripe_charge_id": self.stripe_charge_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "payment_method": self.payment_method,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
