# Overview: Service-layer operations for kiosk attendance; encapsulates business logic and database work.

"""
Attendance Service

WHY: Kiosks clock in and out, optionally with a photo as proof of presence.

DESIGN:
- Clock logs are append-only events; there is no shift entity
- Several clock-ins on one day are allowed and kept
- The day's attendance is selected at read time: the EARLIEST "in" and the
  LATEST "out" of the calendar day (UTC). Every report uses this one rule.
- Photos are JPEGs stored in the clockin-photos bucket under
  "<kiosk_id>/<type>-<timestamp>.jpg"
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from ..extensions import db
from ..models import ClockLog, CLOCK_IN, CLOCK_OUT, CLOCK_TYPES
from ..validation import require_choice
from . import storage_service
from .realtime_service import record_change, INSERT
from kioskpos.time_utils import utcnow, day_bounds, to_utc_z


class AttendanceError(Exception):
    """Raised for invalid attendance operations."""
    pass


def clock(*, kiosk_id: str, clock_type: str, photo: bytes | None = None) -> ClockLog:
    """Append a clock event, uploading the photo first when one is given."""
    clock_type = require_choice(clock_type, "type", CLOCK_TYPES)
    now = utcnow()

    image_url = None
    if photo:
        if not storage_service.looks_like_jpeg(photo):
            raise AttendanceError("Photo must be a JPEG image")
        path = f"{kiosk_id}/{clock_type}-{now:%Y%m%dT%H%M%S%f}.jpg"
        try:
            image_url = storage_service.save(storage_service.BUCKET_CLOCK_PHOTOS, path, photo, "image/jpeg")
        except storage_service.StorageError as e:
            raise AttendanceError(str(e))

    log = ClockLog(kiosk_id=kiosk_id, type=clock_type, timestamp=now, image_url=image_url)
    db.session.add(log)
    db.session.flush()
    record_change(db.session, "clock_logs", INSERT, row_id=log.id, kiosk_id=kiosk_id)
    db.session.commit()
    return log


def list_logs(query, *, day: date | None = None) -> list[ClockLog]:
    """query: a ClockLog query already scoped to the caller. Oldest first."""
    if day is not None:
        start, end = day_bounds(day)
        query = query.filter(ClockLog.timestamp >= start, ClockLog.timestamp < end)
    return query.order_by(ClockLog.timestamp.asc()).all()


def select_pair(logs: Iterable[ClockLog]) -> dict:
    """Earliest "in" and latest "out" among logs, as ISO strings (or None)."""
    clock_in = None
    clock_out = None
    for log in logs:
        if log.type == CLOCK_IN and (clock_in is None or log.timestamp < clock_in.timestamp):
            clock_in = log
        elif log.type == CLOCK_OUT and (clock_out is None or log.timestamp > clock_out.timestamp):
            clock_out = log
    return {
        "clock_in": to_utc_z(clock_in.timestamp) if clock_in else None,
        "clock_in_image_url": clock_in.image_url if clock_in else None,
        "clock_out": to_utc_z(clock_out.timestamp) if clock_out else None,
        "clock_out_image_url": clock_out.image_url if clock_out else None,
    }


def clock_pairs(kiosk_ids: list[str], day: date) -> dict[str, dict]:
    """The day's clock pair for each kiosk, in one query."""
    start, end = day_bounds(day)
    logs_by_kiosk: dict[str, list[ClockLog]] = {kiosk_id: [] for kiosk_id in kiosk_ids}
    if kiosk_ids:
        logs = (
            db.session.query(ClockLog)
            .filter(
                ClockLog.kiosk_id.in_(kiosk_ids),
                ClockLog.timestamp >= start,
                ClockLog.timestamp < end,
            )
            .all()
        )
        for log in logs:
            logs_by_kiosk[log.kiosk_id].append(log)
    return {kiosk_id: select_pair(logs) for kiosk_id, logs in logs_by_kiosk.items()}


def clock_pair(kiosk_id: str, day: date) -> dict:
    return clock_pairs([kiosk_id], day)[kiosk_id]
