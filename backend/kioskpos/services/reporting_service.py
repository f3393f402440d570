# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Order, ClockLog, DailyReport, Profile, PAYMENT_TYPES, ROLE_KIOSK
from . import attendance_service, catalog_service
from .realtime_service import record_change, DELETE
from kioskpos.time_utils import today, parse_iso_date, parse_iso_datetime, day_bounds, utcnow


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def resolve_day(value: str | None) -> date:
    """Report date from a "YYYY-MM-DD" argument; defaults to today (UTC)."""
    try:
        day = parse_iso_date(value)
    except ValueError:
        raise ReportError("date must be YYYY-MM-DD")
    return day or today()


def _kiosks(kiosk_ids: list[str] | None = None) -> list[Profile]:
    query = db.session.query(Profile).filter(Profile.role == ROLE_KIOSK)
    if kiosk_ids is not None:
        query = query.filter(Profile.id.in_(kiosk_ids))
    return query.order_by(Profile.kiosk_name.asc()).all()


def _revenue_by_kiosk(day: date, kiosk_ids: list[str]) -> dict[str, tuple[int, int]]:
    if not kiosk_ids:
        return {}
    rows = (
        db.session.query(
            Order.kiosk_id,
            func.coalesce(func.sum(Order.total_cents), 0).label("revenue_cents"),
            func.count(Order.id).label("order_count"),
        )
        .filter(Order.date == day, Order.kiosk_id.in_(kiosk_ids))
        .group_by(Order.kiosk_id)
        .all()
    )
    return {row.kiosk_id: (int(row.revenue_cents or 0), int(row.order_count or 0)) for row in rows}


def _summaries(day: date, kiosks: list[Profile]) -> list[dict]:
    kiosk_ids = [kiosk.id for kiosk in kiosks]
    revenue = _revenue_by_kiosk(day, kiosk_ids)
    pairs = attendance_service.clock_pairs(kiosk_ids, day)

    result = []
    for kiosk in kiosks:
        revenue_cents, order_count = revenue.get(kiosk.id, (0, 0))
        result.append({
            "kiosk_id": kiosk.id,
            "kiosk_name": kiosk.kiosk_name,
            "revenue_cents": revenue_cents,
            "order_count": order_count,
            **pairs[kiosk.id],
        })
    return result


def daily_report(day: date) -> dict:
    """Revenue, order count and clock pair for every kiosk on one day."""
    kiosks = _summaries(day, _kiosks())
    return {
        "date": day.isoformat(),
        "total_revenue_cents": sum(k["revenue_cents"] for k in kiosks),
        "total_order_count": sum(k["order_count"] for k in kiosks),
        "kiosks": kiosks,
    }


def kiosk_summary(kiosk: Profile, day: date) -> dict:
    summary = _summaries(day, [kiosk])[0]
    summary["date"] = day.isoformat()
    return summary


def kiosk_breakdown(kiosk: Profile, day: date) -> dict:
    """
    One kiosk's sales for a day, flattened to line items (newest order first),
    with per-item and per-payment-type totals.
    """
    orders = (
        db.session.query(Order)
        .filter(Order.kiosk_id == kiosk.id, Order.date == day)
        .order_by(Order.timestamp.desc())
        .all()
    )

    lines = []
    items: dict[str, dict] = {}
    payments = {payment_type: 0 for payment_type in PAYMENT_TYPES}

    for order in orders:
        payments[order.payment_type] = payments.get(order.payment_type, 0) + order.total_cents
        for line in order.items or []:
            subtotal = line["quantity"] * line["price_cents"]
            lines.append({
                "order_id": order.id,
                "name": line["name"],
                "quantity": line["quantity"],
                "price_cents": line["price_cents"],
                "subtotal_cents": subtotal,
                "payment_type": order.payment_type,
                "timestamp": order.to_dict()["timestamp"],
            })
            entry = items.setdefault(line["name"], {"name": line["name"], "quantity": 0, "revenue_cents": 0})
            entry["quantity"] += line["quantity"]
            entry["revenue_cents"] += subtotal

    return {
        "date": day.isoformat(),
        "kiosk_id": kiosk.id,
        "kiosk_name": kiosk.kiosk_name,
        "lines": lines,
        "items": sorted(items.values(), key=lambda entry: entry["name"].lower()),
        "payments": payments,
        "total_revenue_cents": sum(order.total_cents for order in orders),
        "order_count": len(orders),
    }


def stock_totals() -> list[dict]:
    return catalog_service.stock_totals()


def reset_day(day: date) -> dict:
    """
    Delete one day's orders, clock logs and archived report rows.

    Stock, purchase orders and wastage records are left alone.
    """
    start, end = day_bounds(day)

    order_ids = [
        (row.id, row.kiosk_id)
        for row in db.session.query(Order.id, Order.kiosk_id).filter(Order.date == day)
    ]
    log_ids = [
        (row.id, row.kiosk_id)
        for row in db.session.query(ClockLog.id, ClockLog.kiosk_id).filter(
            ClockLog.timestamp >= start, ClockLog.timestamp < end
        )
    ]

    deleted_orders = db.session.query(Order).filter(Order.date == day).delete(synchronize_session=False)
    deleted_logs = (
        db.session.query(ClockLog)
        .filter(ClockLog.timestamp >= start, ClockLog.timestamp < end)
        .delete(synchronize_session=False)
    )
    deleted_reports = db.session.query(DailyReport).filter(DailyReport.date == day).delete(synchronize_session=False)

    for row_id, kiosk_id in order_ids:
        record_change(db.session, "orders", DELETE, row_id=row_id, kiosk_id=kiosk_id)
    for row_id, kiosk_id in log_ids:
        record_change(db.session, "clock_logs", DELETE, row_id=row_id, kiosk_id=kiosk_id)

    db.session.commit()
    db.session.expire_all()

    current_app.logger.info(
        "Reset %s: removed %d order(s), %d clock log(s), %d report row(s)",
        day.isoformat(), deleted_orders, deleted_logs, deleted_reports,
    )
    return {
        "date": day.isoformat(),
        "orders": deleted_orders,
        "clock_logs": deleted_logs,
        "reports": deleted_reports,
    }


def snapshot_day(day: date) -> list[DailyReport]:
    """Archive the day's per-kiosk summary into the reports table (upsert)."""
    summaries = _summaries(day, _kiosks())
    existing = {
        row.kiosk_id: row
        for row in db.session.query(DailyReport).filter(DailyReport.date == day).all()
    }

    rows = []
    for summary in summaries:
        row = existing.get(summary["kiosk_id"])
        if row is None:
            row = DailyReport(date=day, kiosk_id=summary["kiosk_id"], created_at=utcnow())
            db.session.add(row)
        row.revenue_cents = summary["revenue_cents"]
        row.order_count = summary["order_count"]
        row.clock_in = parse_iso_datetime(summary["clock_in"])
        row.clock_out = parse_iso_datetime(summary["clock_out"])
        rows.append(row)

    db.session.commit()
    return rows
