from __future__ import annotations

from ..extensions import db
from .auth import new_id
from kioskpos.time_utils import to_utc_z


PAYMENT_TYPES = ("Cash", "UPI")

PO_PREPARING = "Preparing"
PO_OUT_FOR_DELIVERY = "Out for Delivery"
PO_DELIVERED = "Delivered"
PO_REJECTED = "Rejected"
PO_STATUSES = (PO_PREPARING, PO_OUT_FOR_DELIVERY, PO_DELIVERED, PO_REJECTED)


class Order(db.Model):
    """
    A completed sale at a kiosk.

    IMMUTABLE: line items are frozen by value at submission
    ({id, name, quantity, price_cents}); later catalog renames or price edits
    never reach back into order history.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_kiosk_date", "kiosk_id", "date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    kiosk_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    items = db.Column(db.JSON, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    payment_type = db.Column(db.String(8), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)

    kiosk = db.relationship("Profile", backref=db.backref("orders", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kiosk_id": self.kiosk_id,
            "items": [dict(item) for item in (self.items or [])],
            "total_cents": self.total_cents,
            "payment_type": self.payment_type,
            "timestamp": to_utc_z(self.timestamp),
            "date": self.date.isoformat() if self.date else None,
        }


class PurchaseOrder(db.Model):
    """
    Replenishment request for a kiosk.

    STATUS: Preparing -> Out for Delivery -> Delivered, or Preparing -> Rejected.
    The manager assigns any of the four values directly; edges are not enforced.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_kiosk_status", "kiosk_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    kiosk_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    # [{name, quantity}]
    items = db.Column(db.JSON, nullable=False)
    status = db.Column(db.String(24), nullable=False, default=PO_PREPARING)

    # True when raised by a sale dropping stock below the threshold
    auto_generated = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    kiosk = db.relationship("Profile", backref=db.backref("purchase_orders", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kiosk_id": self.kiosk_id,
            "kiosk_name": self.kiosk.kiosk_name if self.kiosk else None,
            "items": [dict(item) for item in (self.items or [])],
            "status": self.status,
            "auto_generated": self.auto_generated,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
