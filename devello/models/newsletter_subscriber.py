"""
Model: Newsletter subscriber
"""
from datetime import datetime
from ..db import db


class NewsletterSubscriber(db.Model):
    __tablename__ = "newsletter_subscribers"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    # active / unsubscribed
    status = db.Column(db.String(16), nullable=False, default="active")
    subscribed_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "status": self.status,
            "subscribed_at": self.subscribed_at.isoformat() if self.subscribed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
