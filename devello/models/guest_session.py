"""
Model: Guest session
Upload quota of an anonymous visitor, keyed by the client session id
"""
from datetime import datetime
from ..db import db


class GuestSession(db.Model):
    __tablename__ = "guest_sessions"

    id = db.Column(db.String(128), primary_key=True)
    device_fingerprint = db.Column(db.String(64), nullable=True, index=True)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(200), nullable=True)

    upload_count = db.Column(db.Integer, nullable=False, default=0)
    upload_limit = db.Column(db.Integer, nullable=False, default=5)

    is_mobile = db.Column(db.Boolean, nullable=False, default=False)
    browser_name = db.Column(db.String(32), nullable=True)
    os_name = db.Column(db.String(32), nullable=True)

    expires_at = db.Column(db.DateTime, nullable=False)
    last_activity = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_expired(self, now=None):
        return (now or datetime.utcnow()) > self.expires_at

    def to_dict(self):
        return {
            "id": self.id,
            "device_fingerprint": self.device_fingerprint,
            "upload_count": self.upload_count,
            "upload_limit": self.upload_limit,
            "is_mobile": self.is_mobile,
            "browser_name": self.browser_name,
            "os_name": self.os_name,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
