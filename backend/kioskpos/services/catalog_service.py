# Overview: Service-layer operations for the factory and kiosk catalogs; encapsulates business logic and database work.

"""
Catalog & Allocation Service

WHY: The factory catalog is the manager's master item list; each kiosk keeps
its own stock ledger per item. Allocation ("send to kiosk") is the only way
stock enters a kiosk catalog apart from direct manager edits and purchase
order edits.

MATCHING: kiosk rows are matched to factory entries by item name,
case-insensitively. The same rule drives allocation, image propagation and
the predefined-menu overlay.

FACTORY STOCK POLICY (config FACTORY_STOCK_POLICY):
- unlimited: factory stock is a nominal FACTORY_NOMINAL_STOCK value that is
  never decremented, and factory status is always "In Stock"
- finite: factory stock is a real counter; sending more than is on hand is
  refused and a successful send decrements it
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..menu import PREDEFINED_MENU
from ..models import FactoryItem, KioskItem, Profile, stock_status, STATUS_IN_STOCK, STATUS_OUT_OF_STOCK
from ..validation import ConflictError
from . import storage_service
from .concurrency import run_with_retry
from .realtime_service import record_change, INSERT, UPDATE, DELETE
from kioskpos.time_utils import utcnow


POLICY_UNLIMITED = "unlimited"
POLICY_FINITE = "finite"


class CatalogError(Exception):
    """Raised for catalog and allocation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def low_stock_threshold() -> int:
    return current_app.config["LOW_STOCK_THRESHOLD"]


def factory_stock_is_finite() -> bool:
    policy = current_app.config["FACTORY_STOCK_POLICY"]
    if policy not in (POLICY_UNLIMITED, POLICY_FINITE):
        raise CatalogError(f"Unknown FACTORY_STOCK_POLICY: {policy}")
    return policy == POLICY_FINITE


def derive_status(stock: int) -> str:
    return stock_status(stock, low_stock_threshold())


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def find_factory_item_by_name(name: str) -> FactoryItem | None:
    return (
        db.session.query(FactoryItem)
        .filter(func.lower(FactoryItem.name) == name.strip().lower())
        .first()
    )


def find_kiosk_item(kiosk_id: str, item_name: str) -> KioskItem | None:
    return (
        db.session.query(KioskItem)
        .filter(
            KioskItem.kiosk_id == kiosk_id,
            func.lower(KioskItem.item_name) == item_name.strip().lower(),
        )
        .first()
    )


def get_factory_item(item_id: str) -> FactoryItem:
    item = db.session.query(FactoryItem).filter_by(id=item_id).first()
    if not item:
        raise CatalogError("Factory item not found")
    return item


def list_factory_items() -> list[FactoryItem]:
    return db.session.query(FactoryItem).order_by(FactoryItem.name.asc()).all()


# ---------------------------------------------------------------------------
# Factory catalog
# ---------------------------------------------------------------------------

def _apply_factory_stock(item: FactoryItem, stock: int | None) -> None:
    if factory_stock_is_finite():
        item.stock = stock if stock is not None else (item.stock or 0)
        item.status = derive_status(item.stock)
    else:
        item.stock = current_app.config["FACTORY_NOMINAL_STOCK"]
        item.status = STATUS_IN_STOCK


def _ensure_unique_name(name: str, exclude_id: str | None = None) -> None:
    existing = find_factory_item_by_name(name)
    if existing and existing.id != exclude_id:
        raise ConflictError(f"A factory item named {existing.name!r} already exists")


def create_factory_item(*, name: str, price_cents: int, stock: int | None = None, image_url: str | None = None) -> FactoryItem:
    name = name.strip()
    _ensure_unique_name(name)

    item = FactoryItem(name=name, price_cents=price_cents, image_url=image_url)
    _apply_factory_stock(item, stock)
    db.session.add(item)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"A factory item named {name!r} already exists")

    record_change(db.session, "factory_inventory", INSERT, row_id=item.id)
    if image_url:
        propagate_image(item.name, image_url)

    db.session.commit()
    return item


def update_factory_item(item_id: str, patch: dict) -> FactoryItem:
    """
    Edit a factory entry. An image change (including clearing it) or a rename
    pushes the entry's image to every kiosk row with the (new) name.
    """
    item = get_factory_item(item_id)

    if "name" in patch:
        patch["name"] = patch["name"].strip()
        _ensure_unique_name(patch["name"], exclude_id=item.id)
        item.name = patch["name"]
    if "price_cents" in patch:
        item.price_cents = patch["price_cents"]
    if "image_url" in patch:
        item.image_url = patch["image_url"]
    _apply_factory_stock(item, patch.get("stock"))

    db.session.flush()
    record_change(db.session, "factory_inventory", UPDATE, row_id=item.id)

    # Clearing the image clears it on kiosk rows too; a plain rename only pushes a real image
    if "image_url" in patch or ("name" in patch and item.image_url):
        propagate_image(item.name, item.image_url)

    db.session.commit()
    return item


def delete_factory_item(item_id: str) -> None:
    item = get_factory_item(item_id)
    db.session.delete(item)
    record_change(db.session, "factory_inventory", DELETE, row_id=item_id)
    db.session.commit()


def set_factory_image(item_id: str, data: bytes, content_type: str | None) -> FactoryItem:
    """Upload an image into the item-images bucket and propagate it."""
    item = get_factory_item(item_id)
    stamp = utcnow().strftime("%Y%m%dT%H%M%S%f")
    path = f"{item.id}-{stamp}{storage_service.extension_for(content_type)}"
    item.image_url = storage_service.save(storage_service.BUCKET_ITEM_IMAGES, path, data, content_type)

    db.session.flush()
    record_change(db.session, "factory_inventory", UPDATE, row_id=item.id)
    propagate_image(item.name, item.image_url)

    db.session.commit()
    return item


def propagate_image(item_name: str, image_url: str | None) -> int:
    """
    Copy an image reference onto every kiosk row named item_name
    (case-insensitive). Runs inside the caller's transaction; returns the
    number of rows touched.
    """
    rows = (
        db.session.query(KioskItem)
        .filter(func.lower(KioskItem.item_name) == item_name.strip().lower())
        .all()
    )
    for row in rows:
        row.image_url = image_url
        record_change(db.session, "kiosk_inventory", UPDATE, row_id=row.id, kiosk_id=row.kiosk_id)
    return len(rows)


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

def allocate_to_kiosk(
    *,
    kiosk_id: str,
    item_name: str,
    quantity: int,
    price_cents: int,
    image_url: str | None = None,
) -> KioskItem:
    """
    Add quantity to a kiosk's row for item_name, creating the row when absent.

    Does not commit. The increment is a single UPDATE so a concurrent sale on
    the same row cannot be overwritten.
    """
    row = find_kiosk_item(kiosk_id, item_name)
    if row is None:
        row = KioskItem(
            kiosk_id=kiosk_id,
            item_name=item_name.strip(),
            price_cents=price_cents,
            image_url=image_url,
        )
        row.set_stock(quantity, low_stock_threshold())
        db.session.add(row)
        db.session.flush()
        record_change(db.session, "kiosk_inventory", INSERT, row_id=row.id, kiosk_id=kiosk_id)
        return row

    apply_stock_delta(row, quantity)
    if image_url and not row.image_url:
        row.image_url = image_url
    return row


def send_to_kiosk(*, factory_item_id: str, kiosk_id: str, quantity: int) -> KioskItem:
    """Push quantity of a factory entry into a kiosk's catalog, in one transaction."""
    def _op():
        item = get_factory_item(factory_item_id)
        kiosk = db.session.query(Profile).filter_by(id=kiosk_id).first()
        if kiosk is None or kiosk.is_manager:
            raise CatalogError("Kiosk not found")

        if factory_stock_is_finite():
            updated = (
                db.session.query(FactoryItem)
                .filter(FactoryItem.id == item.id, FactoryItem.stock >= quantity)
                .update({FactoryItem.stock: FactoryItem.stock - quantity}, synchronize_session=False)
            )
            if not updated:
                db.session.refresh(item)
                raise CatalogError(
                    "Insufficient factory stock",
                    details={"item": item.name, "requested_quantity": quantity, "available": item.stock},
                )
            db.session.refresh(item)
            item.status = derive_status(item.stock)
            record_change(db.session, "factory_inventory", UPDATE, row_id=item.id)

        row = allocate_to_kiosk(
            kiosk_id=kiosk.id,
            item_name=item.name,
            quantity=quantity,
            price_cents=item.price_cents,
            image_url=item.image_url,
        )
        db.session.commit()
        current_app.logger.info("Sent %d x %s to kiosk %s", quantity, item.name, kiosk.id)
        return row

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Kiosk catalog
# ---------------------------------------------------------------------------

def apply_stock_delta(row: KioskItem, delta: int, *, clamp: bool = False, require_available: bool = False) -> bool:
    """
    Change a kiosk row's stock with one guarded UPDATE and re-derive status.

    - require_available: only apply when stock + delta >= 0; returns False
      (nothing changed) otherwise
    - clamp: floor the result at 0 instead

    Does not commit.
    """
    query = db.session.query(KioskItem).filter(KioskItem.id == row.id)
    if require_available:
        query = query.filter(KioskItem.stock + delta >= 0)

    if clamp:
        new_value = case((KioskItem.stock + delta > 0, KioskItem.stock + delta), else_=0)
    else:
        new_value = KioskItem.stock + delta

    updated = query.update({KioskItem.stock: new_value}, synchronize_session=False)
    db.session.refresh(row)
    if not updated:
        return False

    row.status = derive_status(row.stock)
    db.session.flush()
    record_change(db.session, "kiosk_inventory", UPDATE, row_id=row.id, kiosk_id=row.kiosk_id)
    return True


def list_kiosk_catalog(kiosk_id: str, include_placeholders: bool = True) -> list[dict]:
    """
    A kiosk's catalog, name-ordered, with the predefined menu overlaid: every
    menu item without a real row shows as an out-of-stock placeholder.
    """
    rows = (
        db.session.query(KioskItem)
        .filter_by(kiosk_id=kiosk_id)
        .order_by(KioskItem.item_name.asc())
        .all()
    )
    result = [row.to_dict() for row in rows]

    if include_placeholders:
        present = {row.item_name.lower() for row in rows}
        for name, price_cents in PREDEFINED_MENU:
            if name.lower() in present:
                continue
            result.append({
                "id": None,
                "kiosk_id": kiosk_id,
                "item_name": name,
                "stock": 0,
                "price_cents": price_cents,
                "status": STATUS_OUT_OF_STOCK,
                "image_url": None,
                "placeholder": True,
                "created_at": None,
                "updated_at": None,
            })
        result.sort(key=lambda entry: entry["item_name"].lower())

    return result


def update_kiosk_item(row: KioskItem, patch: dict) -> KioskItem:
    """Direct manager edit of stock and/or price."""
    if "price_cents" in patch:
        row.price_cents = patch["price_cents"]
    if "stock" in patch:
        row.set_stock(patch["stock"], low_stock_threshold())

    db.session.flush()
    record_change(db.session, "kiosk_inventory", UPDATE, row_id=row.id, kiosk_id=row.kiosk_id)
    db.session.commit()
    return row


def delete_kiosk_item(row: KioskItem) -> None:
    record_change(db.session, "kiosk_inventory", DELETE, row_id=row.id, kiosk_id=row.kiosk_id)
    db.session.delete(row)
    db.session.commit()


# ---------------------------------------------------------------------------
# Cross-kiosk stock views
# ---------------------------------------------------------------------------

def stock_totals() -> list[dict]:
    """Total kiosk stock per item name, with the per-kiosk split."""
    rows = (
        db.session.query(KioskItem, Profile.kiosk_name)
        .join(Profile, Profile.id == KioskItem.kiosk_id)
        .order_by(KioskItem.item_name.asc(), Profile.kiosk_name.asc())
        .all()
    )

    totals: dict[str, dict] = {}
    for row, kiosk_name in rows:
        entry = totals.setdefault(row.item_name.lower(), {
            "item_name": row.item_name,
            "total_stock": 0,
            "kiosks": [],
        })
        entry["total_stock"] += row.stock
        entry["kiosks"].append({
            "kiosk_id": row.kiosk_id,
            "kiosk_name": kiosk_name,
            "stock": row.stock,
        })

    return sorted(totals.values(), key=lambda entry: entry["item_name"].lower())


def factory_breakdown(item_id: str) -> dict:
    """Per-kiosk stock for one factory entry."""
    item = get_factory_item(item_id)
    rows = (
        db.session.query(KioskItem, Profile.kiosk_name)
        .join(Profile, Profile.id == KioskItem.kiosk_id)
        .filter(func.lower(KioskItem.item_name) == item.name.lower())
        .order_by(Profile.kiosk_name.asc())
        .all()
    )
    kiosks = [
        {"kiosk_id": row.kiosk_id, "kiosk_name": kiosk_name, "stock": row.stock}
        for row, kiosk_name in rows
    ]
    return {
        "item": item.to_dict(),
        "total_stock": sum(k["stock"] for k in kiosks),
        "kiosks": kiosks,
    }
