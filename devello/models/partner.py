"""
Model: Partner
Contractor / vendor application attached to a user
"""
from datetime import datetime
from ..db import db


class Partner(db.Model):
    __tablename__ = "partners"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    company_name = db.Column(db.String(200), nullable=False)
    # construction / software_development / consulting / manufacturing
    service_type = db.Column(db.String(32), nullable=False)
    # pending / approved / rejected
    status = db.Column(db.String(16), nullable=False, default="pending")
    experience_years = db.Column(db.Integer, nullable=True)
    phone = db.Column(db.String(40), nullable=True)
    application_data = db.Column(db.JSON, nullable=False, default=dict)
    approved_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("partner", uselist=False))

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "email": self.user.email if self.user else None,
            "company_name": self.company_name,
            "service_type": self.service_type,
            "status": self.status,
            "experience_years": self.experience_years,
            "phone": self.phone,
            "application_data": self.application_data or {},
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
