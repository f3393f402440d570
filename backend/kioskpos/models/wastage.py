from __future__ import annotations

from ..extensions import db
from .auth import new_id
from kioskpos.time_utils import to_utc_z


# Order reference used for wastage recorded directly against inventory
DIRECT_WASTAGE_ORDER_ID = "00000000-0000-0000-0000-000000000000"

WASTAGE_REASONS = ("Broken", "Bad Quality", "Something Else")


class WastageRecord(db.Model):
    """
    Recorded stock loss not attributable to a sale.

    order_id is informational only (no foreign key): it is either the order
    the loss was noticed against or DIRECT_WASTAGE_ORDER_ID.
    """
    __tablename__ = "wastage"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    kiosk_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = db.Column(db.String(36), nullable=False, index=True)
    item_name = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    kiosk = db.relationship("Profile", backref=db.backref("wastage", lazy=True, cascade="all, delete-orphan"))

    @property
    def is_direct(self) -> bool:
        return self.order_id == DIRECT_WASTAGE_ORDER_ID

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kiosk_id": self.kiosk_id,
            "order_id": None if self.is_direct else self.order_id,
            "direct": self.is_direct,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }
