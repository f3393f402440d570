from __future__ import annotations

from ..extensions import db
from .auth import new_id
from kioskpos.time_utils import to_utc_z


STATUS_IN_STOCK = "In Stock"
STATUS_LOW_STOCK = "Low Stock"
STATUS_OUT_OF_STOCK = "Out of Stock"


def stock_status(stock: int, low_threshold: int = 10) -> str:
    """0 -> Out of Stock, below the threshold -> Low Stock, else In Stock."""
    if stock <= 0:
        return STATUS_OUT_OF_STOCK
    if stock < low_threshold:
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


class FactoryItem(db.Model):
    """
    Factory-wide catalog entry, owned by the manager.

    The name is the matching key against kiosk rows (case-insensitive) for
    allocation and image propagation.
    """
    __tablename__ = "factory_inventory"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False, unique=True)
    price_cents = db.Column(db.Integer, nullable=False)

    # Nominal under the "unlimited" policy, a real counter under "finite"
    stock = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=STATUS_IN_STOCK)
    image_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<FactoryItem id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "status": self.status,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class KioskItem(db.Model):
    """
    A kiosk's own stock ledger row for one item.

    Mutated by allocation, sales, wastage and direct manager edits. Stock is
    never negative; status is always derived from stock.
    """
    __tablename__ = "kiosk_inventory"
    __table_args__ = (
        db.UniqueConstraint("kiosk_id", "item_name", name="uq_kiosk_inventory_kiosk_item"),
        db.CheckConstraint("stock >= 0", name="ck_kiosk_inventory_stock_nonnegative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    kiosk_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    item_name = db.Column(db.String(120), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    price_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_OUT_OF_STOCK)
    image_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    kiosk = db.relationship("Profile", backref=db.backref("inventory", lazy=True, cascade="all, delete-orphan"))

    def set_stock(self, stock: int, low_threshold: int = 10) -> None:
        self.stock = max(0, stock)
        self.status = stock_status(self.stock, low_threshold)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kiosk_id": self.kiosk_id,
            "item_name": self.item_name,
            "stock": self.stock,
            "price_cents": self.price_cents,
            "status": self.status,
            "image_url": self.image_url,
            "placeholder": False,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
