"""
Model: Refund request
Customer-initiated refund, approved or rejected by an admin
"""
from datetime import datetime
from ..db import db


class RefundRequest(db.Model):
    __tablename__ = "refund_requests"

    id = db.Column(db.Integer, primary_key=True)
    product_order_id = db.Column(db.Integer, db.ForeignKey("product_orders.id"), nullable=False, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False)
    initiated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    reason = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # pending / processed / rejected
    status = db.Column(db.String(16), nullable=False, default="pending")

    # Amounts in cents
    requested_amount = db.Column(db.Integer, nullable=False)
    resolved_amount = db.Column(db.Integer, nullable=True)

    stripe_refund_id = db.Column(db.String(64), nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = db.relationship("ProductOrder", backref=db.backref("refund_requests", order_by="RefundRequest.id"))
    payment = db.relationship("Payment")

    def to_dict(self):
        return {
            "id": self.id,
            "product_order_id": self.product_order_id,
            "order_number": self.order.order_number if self.order else None,
            "payment_id": self.payment_id,
            "initiated_by": self.initiated_by,
            "reason": self.reason,
            "description": self.description,
            "status": self.status,
            "requested_amount": self.requested_amount,
            "resolved_amount": self.resolved_amount,
            "currency": self.payment.currency if self.payment else "usd",
            "stripe_refund_id": self.stripe_refund_id,
            "admin_notes": self.admin_notes,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
