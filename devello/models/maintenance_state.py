"""
Model: Maintenance state
Single row of markers shared by the cron scripts and the app processes
"""
from datetime import datetime
from ..db import db


class MaintenanceState(db.Model):
    __tablename__ = "maintenance_state"

    id = db.Column(db.Integer, primary_key=True)

    # ISO week of the last guest quota reset, e.g. "2025-W23"
    last_guest_reset_week = db.Column(db.String(8), nullable=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def get(cls):
        """Returns the state row, creating it on first use"""
        state = cls.query.order_by(cls.id).with_for_update().first()
        if state is None:
            state = cls()
            db.session.add(state)
            db.session.flush()
        return state

    def to_dict(self):
        return {
            "id": self.id,
            "last_guest_reset_week": self.last_guest_reset_week,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
