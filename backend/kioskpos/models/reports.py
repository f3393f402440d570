from __future__ import annotations

from ..extensions import db
from .auth import new_id
from kioskpos.time_utils import to_utc_z


class DailyReport(db.Model):
    """
    Archived daily summary row per kiosk.

    Written only by the `flask reports snapshot` command. Live report views
    always recompute from orders and clock logs.
    """
    __tablename__ = "reports"
    __table_args__ = (
        db.UniqueConstraint("kiosk_id", "date", name="uq_reports_kiosk_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    date = db.Column(db.Date, nullable=False, index=True)
    kiosk_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    order_count = db.Column(db.Integer, nullable=False, default=0)
    clock_in = db.Column(db.DateTime(timezone=True), nullable=True)
    clock_out = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "kiosk_id": self.kiosk_id,
            "revenue_cents": self.revenue_cents,
            "order_count": self.order_count,
            "clock_in": to_utc_z(self.clock_in),
            "clock_out": to_utc_z(self.clock_out),
            "created_at": to_utc_z(self.created_at),
        }
