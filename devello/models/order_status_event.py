"""
Model: Order status event
Audit trail of every status change requested on a product order
"""
from datetime import datetime
from ..db import db


class OrderStatusEvent(db.Model):
    __tablename__ = "order_status_events"

    id = db.Column(db.Integer, primary_key=True)
    product_order_id = db.Column(db.Integer, db.ForeignKey("product_orders.id"), nullable=False)
    from_status = db.Column(db.String(32), nullable=True)
    to_status = db.Column(db.String(32), nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    # system / admin / user / webhook
    actor_type = db.Column(db.String(16), nullable=False, default="system")
    actor_id = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "product_order_id": self.product_order_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "reason": self.reason,
            "actor_type": self.actor_type,
            "actor_id": self.actor_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
