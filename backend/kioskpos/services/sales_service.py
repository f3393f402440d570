# Overview: Service-layer operations for kiosk sales; encapsulates business logic and database work.

"""
Sales Service

WHY: A sale is the one workflow that touches three tables at once: it records
the order, decrements each sold item's kiosk stock, and raises a replenishment
request for anything that fell below the low-stock threshold. All three happen
in a single transaction; a failure anywhere leaves no trace.

INVARIANTS:
- Order line items are frozen by value ({id, name, quantity, price_cents})
- total_cents == sum(quantity * price_cents) over the line items
- Stock is decremented with a guarded UPDATE (stock >= quantity), so two
  concurrent sales can never both spend the same units
- A line whose new stock is below LOW_STOCK_THRESHOLD requests
  REPLENISH_TARGET - new_stock units
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, KioskItem, PurchaseOrder, PAYMENT_TYPES
from ..validation import ValidationError, parse_positive_int, require_choice
from . import purchase_order_service
from .catalog_service import apply_stock_delta
from .concurrency import lock_for_update, run_with_retry
from .realtime_service import record_change, INSERT, DELETE
from kioskpos.time_utils import utcnow


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _merge_cart(cart) -> dict[str, int]:
    """Validate cart lines and merge repeated items. Keeps first-seen order."""
    if not isinstance(cart, list) or not cart:
        raise ValidationError("Add items to order first")

    merged: dict[str, int] = {}
    for line in cart:
        if not isinstance(line, dict):
            raise ValidationError("Each cart line must be an object")
        item_id = line.get("item_id") or line.get("id")
        if not item_id or not isinstance(item_id, str):
            raise ValidationError("item_id is required for each cart line")
        quantity = parse_positive_int(line.get("quantity"), "quantity")
        merged[item_id] = merged.get(item_id, 0) + quantity
    return merged


def _insufficient(rows_by_id: dict[str, KioskItem], lines: dict[str, int]) -> list[dict]:
    short = []
    for item_id, quantity in lines.items():
        row = rows_by_id[item_id]
        if quantity > row.stock:
            short.append({
                "item_id": item_id,
                "name": row.item_name,
                "requested_quantity": quantity,
                "available": row.stock,
            })
    return short


def submit_order(*, kiosk_id: str, cart, payment_type: str) -> tuple[Order, PurchaseOrder | None]:
    """
    Record a sale for a kiosk.

    Returns (order, purchase_order) where purchase_order is the replenishment
    request created or extended by this sale, or None.

    Raises:
        ValidationError: malformed cart or payment type
        SaleError: unknown items, or quantities above current stock
    """
    payment_type = require_choice(payment_type, "payment_type", PAYMENT_TYPES)
    lines = _merge_cart(cart)

    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    target = current_app.config["REPLENISH_TARGET"]

    def _op():
        rows = lock_for_update(
            db.session.query(KioskItem)
            .filter(KioskItem.id.in_(list(lines)), KioskItem.kiosk_id == kiosk_id)
        ).all()
        rows_by_id = {row.id: row for row in rows}

        missing = [item_id for item_id in lines if item_id not in rows_by_id]
        if missing:
            raise SaleError("Item not found", details={"item_ids": missing})

        short = _insufficient(rows_by_id, lines)
        if short:
            raise SaleError("Cannot add more than available stock", details={"items": short})

        now = utcnow()
        frozen = []
        for item_id, quantity in lines.items():
            row = rows_by_id[item_id]
            frozen.append({
                "id": row.id,
                "name": row.item_name,
                "quantity": quantity,
                "price_cents": row.price_cents,
            })

        order = Order(
            kiosk_id=kiosk_id,
            items=frozen,
            total_cents=sum(line["quantity"] * line["price_cents"] for line in frozen),
            payment_type=payment_type,
            timestamp=now,
            date=now.date(),
        )
        db.session.add(order)
        db.session.flush()
        record_change(db.session, "orders", INSERT, row_id=order.id, kiosk_id=kiosk_id)

        replenish = []
        for item_id, quantity in lines.items():
            row = rows_by_id[item_id]
            if not apply_stock_delta(row, -quantity, require_available=True):
                # Stock moved underneath us since the pre-check
                short = [{
                    "item_id": row.id,
                    "name": row.item_name,
                    "requested_quantity": quantity,
                    "available": row.stock,
                }]
                db.session.rollback()
                raise SaleError("Cannot add more than available stock", details={"items": short})
            if row.stock < threshold:
                replenish.append({"name": row.item_name, "quantity": target - row.stock})

        purchase_order = None
        if replenish:
            purchase_order = purchase_order_service.request_replenishment(kiosk_id=kiosk_id, lines=replenish)

        db.session.commit()
        current_app.logger.info(
            "Order %s at kiosk %s: %d line(s), total %d cents, %s",
            order.id, kiosk_id, len(frozen), order.total_cents, payment_type,
        )
        return order, purchase_order

    return run_with_retry(_op)


def list_orders(query, *, day=None, limit: int = 50) -> list[Order]:
    """query: an Order query already scoped to the caller (see access_service)."""
    if day is not None:
        query = query.filter(Order.date == day)
    return query.order_by(Order.timestamp.desc()).limit(limit).all()


def delete_order(order: Order) -> None:
    """Remove an order. Stock is not restored; deletion is an administrative cleanup."""
    record_change(db.session, "orders", DELETE, row_id=order.id, kiosk_id=order.kiosk_id)
    db.session.delete(order)
    db.session.commit()
