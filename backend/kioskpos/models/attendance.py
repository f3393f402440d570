from __future__ import annotations

from ..extensions import db
from .auth import new_id
from kioskpos.time_utils import to_utc_z


CLOCK_IN = "in"
CLOCK_OUT = "out"
CLOCK_TYPES = (CLOCK_IN, CLOCK_OUT)


class ClockLog(db.Model):
    """
    One attendance event.

    APPEND-ONLY: there is no shift entity pairing an "in" with an "out". The
    day's pair is selected at read time (earliest in, latest out).
    """
    __tablename__ = "clock_logs"
    __table_args__ = (
        db.CheckConstraint("type IN ('in', 'out')", name="ck_clock_logs_type"),
        db.Index("ix_clock_logs_kiosk_timestamp", "kiosk_id", "timestamp"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    kiosk_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(3), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    # Public URL of the photo in the clockin-photos bucket, when one was taken
    image_url = db.Column(db.String(512), nullable=True)

    kiosk = db.relationship("Profile", backref=db.backref("clock_logs", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kiosk_id": self.kiosk_id,
            "type": self.type,
            "timestamp": to_utc_z(self.timestamp),
            "image_url": self.image_url,
        }
