"""
Model: Custom product request
Quote requests for glass/mirror orders and "request pricing" forms
"""
from datetime import datetime
from ..db import db


class CustomProductRequest(db.Model):
    __tablename__ = "custom_product_requests"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    # glass_mirror_order / pricing
    request_type = db.Column(db.String(32), nullable=False)
    project_type = db.Column(db.String(60), nullable=True)
    description = db.Column(db.Text, nullable=True)

    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(40), nullable=True)

    height = db.Column(db.String(32), nullable=True)
    width = db.Column(db.String(32), nullable=True)
    quantity = db.Column(db.Integer, nullable=True)
    variant_name = db.Column(db.String(120), nullable=True)
    details = db.Column(db.JSON, nullable=False, default=dict)

    # received / pending / quoted / closed
    status = db.Column(db.String(16), nullable=False, default="received")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = db.relationship("Product")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "request_type": self.request_type,
            "project_type": self.project_type,
            "description": self.description,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "height": self.height,
            "width": self.width,
            "quantity": self.quantity,
            "variant_name": self.variant_name,
            "details": self.details or {},
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
