# Overview: Service-layer operations for replenishment purchase orders; encapsulates business logic and database work.

"""
Replenishment (Purchase Order) Service

STATUS: Preparing (initial) -> Out for Delivery -> Delivered, or
Preparing -> Rejected. The manager picks any of the four values; this is a
plain enum assignment and no transition is refused.

EDITING: only Preparing orders can be edited. Saving a new item list also allocates every item quantity into the
kiosk catalog, additively. Saving the same order twice allocates twice.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import PurchaseOrder, KioskItem, PO_PREPARING, PO_STATUSES
from ..validation import ValidationError, ConflictError, parse_positive_int, require_choice, require_text
from .catalog_service import allocate_to_kiosk, find_factory_item_by_name, find_kiosk_item
from .realtime_service import record_change, INSERT, UPDATE
from kioskpos.time_utils import utcnow


def validate_items(items) -> list[dict]:
    """Normalize [{name, quantity}], merging repeated names (case-insensitive)."""
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    merged: dict[str, dict] = {}
    for entry in items:
        if not isinstance(entry, dict):
            raise ValidationError("Each item must be an object")
        name = require_text(entry.get("name"), "name", max_length=120)
        quantity = parse_positive_int(entry.get("quantity"), "quantity")
        key = name.lower()
        if key in merged:
            merged[key]["quantity"] += quantity
        else:
            merged[key] = {"name": name, "quantity": quantity}
    return list(merged.values())


def request_replenishment(*, kiosk_id: str, lines: list[dict]) -> PurchaseOrder:
    """
    Fold low-stock lines into the kiosk's open auto-generated order, or start
    a new one. A line for an item already on the order replaces its quantity
    with the current shortfall. Does not commit.
    """
    po = (
        db.session.query(PurchaseOrder)
        .filter_by(kiosk_id=kiosk_id, status=PO_PREPARING, auto_generated=True)
        .order_by(PurchaseOrder.created_at.desc())
        .first()
    )

    if po is None:
        po = PurchaseOrder(
            kiosk_id=kiosk_id,
            items=[dict(line) for line in lines],
            status=PO_PREPARING,
            auto_generated=True,
            created_at=utcnow(),
        )
        db.session.add(po)
        db.session.flush()
        record_change(db.session, "purchase_orders", INSERT, row_id=po.id, kiosk_id=kiosk_id)
        current_app.logger.info("Replenishment order %s raised for kiosk %s", po.id, kiosk_id)
        return po

    items = [dict(item) for item in (po.items or [])]
    positions = {item["name"].lower(): i for i, item in enumerate(items)}
    for line in lines:
        index = positions.get(line["name"].lower())
        if index is None:
            positions[line["name"].lower()] = len(items)
            items.append(dict(line))
        else:
            items[index]["quantity"] = line["quantity"]

    # Reassign so the JSON column is marked dirty
    po.items = items
    db.session.flush()
    record_change(db.session, "purchase_orders", UPDATE, row_id=po.id, kiosk_id=kiosk_id)
    return po


def create_purchase_order(*, kiosk_id: str, items) -> PurchaseOrder:
    po = PurchaseOrder(
        kiosk_id=kiosk_id,
        items=validate_items(items),
        status=PO_PREPARING,
        auto_generated=False,
        created_at=utcnow(),
    )
    db.session.add(po)
    db.session.flush()
    record_change(db.session, "purchase_orders", INSERT, row_id=po.id, kiosk_id=kiosk_id)
    db.session.commit()
    return po


def list_purchase_orders(query, *, status: str | None = None) -> list[PurchaseOrder]:
    """query: a PurchaseOrder query already scoped to the caller."""
    if status:
        query = query.filter(PurchaseOrder.status == require_choice(status, "status", PO_STATUSES))
    return query.order_by(PurchaseOrder.created_at.desc()).all()


def set_status(po: PurchaseOrder, status: str) -> PurchaseOrder:
    po.status = require_choice(status, "status", PO_STATUSES)
    db.session.flush()
    record_change(db.session, "purchase_orders", UPDATE, row_id=po.id, kiosk_id=po.kiosk_id)
    db.session.commit()
    return po


def _allocation_price(kiosk_id: str, name: str) -> tuple[int, str | None]:
    factory = find_factory_item_by_name(name)
    if factory is not None:
        return factory.price_cents, factory.image_url
    existing: KioskItem | None = find_kiosk_item(kiosk_id, name)
    if existing is not None:
        return existing.price_cents, existing.image_url
    return 0, None


def edit_items(po: PurchaseOrder, items) -> PurchaseOrder:
    """
    Replace the order's item list, then push each quantity into the kiosk
    catalog. New kiosk rows take the factory price for that name (0 when the
    factory has no such entry).
    """
    if po.status != PO_PREPARING:
        raise ConflictError(f"Only {PO_PREPARING} orders can be edited (status is {po.status})")
    items = validate_items(items)
    po.items = items
    db.session.flush()
    record_change(db.session, "purchase_orders", UPDATE, row_id=po.id, kiosk_id=po.kiosk_id)

    for item in items:
        price_cents, image_url = _allocation_price(po.kiosk_id, item["name"])
        allocate_to_kiosk(
            kiosk_id=po.kiosk_id,
            item_name=item["name"],
            quantity=item["quantity"],
            price_cents=price_cents,
            image_url=image_url,
        )

    db.session.commit()
    current_app.logger.info("Purchase order %s edited; %d item(s) allocated to kiosk %s", po.id, len(items), po.kiosk_id)
    return po
