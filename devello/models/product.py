"""
Model: Product
Catalog item; prices are stored in cents and variants live in metadata
"""
from datetime import datetime
from ..db import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    # Base price in cents
    price = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="usd")

    # one_time / custom
    product_type = db.Column(db.String(32), nullable=False, default="one_time")
    # windows, doors, millwork, glass, mirrors, lighting, bathroom
    category = db.Column(db.String(32), nullable=True)
    # active / inactive / draft
    status = db.Column(db.String(16), nullable=False, default="active")

    image_url = db.Column(db.Text, nullable=True)
    # variants, shipping_profile, features...  ("metadata" is reserved on declarative models)
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)

    stripe_product_id = db.Column(db.String(64), nullable=True)
    stripe_price_id = db.Column(db.String(64), nullable=True)

    is_test = db.Column(db.Boolean, nullable=False, default=False)
    visible_in_catalog = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "product_type": self.product_type,
            "category": self.category,
            "status": self.status,
            "image_url": self.image_url,
            "metadata": self.meta or {},
            "stripe_product_id": self.stripe_product_id,
            "stripe_price_id": self.stripe_price_id,
            "is_test": self.is_test,
            "visible_in_catalog": self.visible_in_catalog,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
