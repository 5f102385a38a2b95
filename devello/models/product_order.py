"""
Model: Product order
Stock purchases and custom (quoted) orders, for users and guests
"""
from datetime import datetime
from ..db import db


class ProductOrder(db.Model):
    __tablename__ = "product_orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(40), nullable=False, unique=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    guest_email = db.Column(db.String(255), nullable=True)

    # stock_product / custom_order
    order_type = db.Column(db.String(32), nullable=False, default="stock_product")
    quantity = db.Column(db.Integer, nullable=False, default=1)

    # Amount in cents
    amount = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="usd")

    status = db.Column(db.String(32), nullable=False, default="pending")
    payment_status = db.Column(db.String(32), nullable=False, default="pending")

    stripe_payment_intent_id = db.Column(db.String(64), nullable=True, index=True)
    stripe_session_id = db.Column(db.String(128), nullable=True)

    shipping_address = db.Column(db.JSON, nullable=True)
    order_items = db.Column(db.JSON, nullable=True)

    # Custom sizes (inches)
    height = db.Column(db.String(32), nullable=True)
    width = db.Column(db.String(32), nullable=True)

    tracking_number = db.Column(db.String(120), nullable=True)
    carrier = db.Column(db.String(60), nullable=True)

    test_order = db.Column(db.Boolean, nullable=False, default=False)
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)

    purchased_at = db.Column(db.DateTime, nullable=True)
    shipped_at = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", backref="product_orders")
    product = db.relationship("Product")
    status_events = db.relationship(
        "OrderStatusEvent",
        backref="order",
        order_by="OrderStatusEvent.id",
        cascade="all, delete-orphan",
    )
    payments = db.relationship("Payment", backref="order", order_by="Payment.id")

    def to_dict(self, include_events=False):
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "guest_email": self.guest_email,
            "order_type": self.order_type,
            "quantity": self.quantity,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "payment_status": self.payment_status,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "stripe_session_id": self.stripe_session_id,
            "shipping_address": self.shipping_address,
            "order_items": self.order_items or [],
            "height": self.height,
            "width": self.width,
            "tracking_number": self.tracking_number,
            "carrier": self.carrier,
            "test_order": self.test_order,
            "metadata": self.meta or {},
            "purchased_at": self.purchased_at.isoformat() if self.purchased_at else None,
            "shipped_at": self.shipped_at.isoformat() if self.shipped_at else None,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_events:
            data["status_events"] = [e.to_dict() for e in self.status_events]
        return data
