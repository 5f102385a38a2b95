"""
Model: User profile
Contact details plus the monthly upload allowance
"""
from datetime import datetime
from ..db import db


class UserProfile(db.Model):
    __tablename__ = "user_profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    phone = db.Column(db.String(40), nullable=True)
    company = db.Column(db.String(200), nullable=True)

    # free / basic / pro
    plan_type = db.Column(db.String(16), nullable=False, default="free")
    upload_count = db.Column(db.Integer, nullable=False, default=0)
    upload_limit = db.Column(db.Integer, nullable=False, default=5)
    one_time_uploads = db.Column(db.Integer, nullable=False, default=0)
    last_monthly_reset = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "company": self.company,
            "plan_type": self.plan_type,
            "upload_count": self.upload_count,
            "upload_limit": self.upload_limit,
            "one_time_uploads": self.one_time_uploads,
            "last_monthly_reset": self.last_monthly_reset.isoformat() if self.last_monthly_reset else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
