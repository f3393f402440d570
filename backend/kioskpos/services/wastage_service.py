# Overview: Service-layer operations for wastage; encapsulates business logic and database work.

"""
Wastage Service

Two entry points:
- against a past order: the order link is informational only (the order's
  total and lines are untouched). Current stock is not re-checked; the
  decrement is floored at 0.
- against current inventory: the quantity must not exceed current stock,
  and the record carries DIRECT_WASTAGE_ORDER_ID instead of an order.

Both insert the record and decrement the kiosk row in one transaction.
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import WastageRecord, KioskItem, Order, DIRECT_WASTAGE_ORDER_ID, WASTAGE_REASONS
from ..validation import parse_positive_int, require_choice, require_text
from .catalog_service import apply_stock_delta, find_kiosk_item
from .realtime_service import record_change, INSERT
from kioskpos.time_utils import utcnow, day_bounds


class WastageError(Exception):
    """Raised for wastage operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _insert_record(*, kiosk_id: str, order_id: str, item_name: str, quantity: int, reason: str) -> WastageRecord:
    record = WastageRecord(
        kiosk_id=kiosk_id,
        order_id=order_id,
        item_name=item_name,
        quantity=quantity,
        reason=reason,
        created_at=utcnow(),
    )
    db.session.add(record)
    db.session.flush()
    record_change(db.session, "wastage", INSERT, row_id=record.id, kiosk_id=kiosk_id)
    return record


def record_order_wastage(*, order: Order, item_name, quantity, reason) -> tuple[WastageRecord, KioskItem]:
    item_name = require_text(item_name, "item_name", max_length=120)
    quantity = parse_positive_int(quantity, "quantity")
    reason = require_choice(reason, "reason", WASTAGE_REASONS)

    order_names = {line.get("name", "").lower() for line in (order.items or [])}
    if item_name.lower() not in order_names:
        raise WastageError("Item is not part of this order", details={"item_name": item_name})

    row = find_kiosk_item(order.kiosk_id, item_name)
    if row is None:
        raise WastageError("Item not found in kiosk inventory", details={"item_name": item_name})

    record = _insert_record(
        kiosk_id=order.kiosk_id,
        order_id=order.id,
        item_name=row.item_name,
        quantity=quantity,
        reason=reason,
    )
    apply_stock_delta(row, -quantity, clamp=True)

    db.session.commit()
    return record, row


def record_direct_wastage(*, row: KioskItem, quantity, reason) -> tuple[WastageRecord, KioskItem]:
    quantity = parse_positive_int(quantity, "quantity")
    reason = require_choice(reason, "reason", WASTAGE_REASONS)

    if quantity > row.stock:
        raise WastageError(
            f"Insufficient stock: only {row.stock} units available",
            details={"available": row.stock, "requested_quantity": quantity},
        )

    record = _insert_record(
        kiosk_id=row.kiosk_id,
        order_id=DIRECT_WASTAGE_ORDER_ID,
        item_name=row.item_name,
        quantity=quantity,
        reason=reason,
    )
    if not apply_stock_delta(row, -quantity, require_available=True):
        available = row.stock
        db.session.rollback()
        raise WastageError(
            f"Insufficient stock: only {available} units available",
            details={"available": available, "requested_quantity": quantity},
        )

    db.session.commit()
    return record, row


def list_wastage(query, *, day: date | None = None) -> list[WastageRecord]:
    """query: a WastageRecord query already scoped to the caller. Newest first."""
    if day is not None:
        start, end = day_bounds(day)
        query = query.filter(WastageRecord.created_at >= start, WastageRecord.created_at < end)
    return query.order_by(WastageRecord.created_at.desc()).all()
