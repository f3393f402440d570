# Overview: Flask API routes for kiosk attendance; parses input and returns JSON responses.

"""
Attendance Routes

SECURITY:
- Only kiosk accounts clock in/out, and only for themselves
- Logs are scoped: kiosks see their own, the manager sees all
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..extensions import db
from ..models import ClockLog, ROLE_KIOSK
from ..services import attendance_service
from ..services.access_service import AccessError, kiosk_scope, resolve_kiosk
from ..services.attendance_service import AttendanceError
from ..validation import ValidationError
from kioskpos.time_utils import parse_iso_date, today


attendance_bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")


@attendance_bp.post("/clock")
@require_auth
@require_role(ROLE_KIOSK)
def clock_route():
    """
    JSON {type: "in"|"out"}, or multipart with a `type` field and an optional
    JPEG `photo` file.
    """
    if request.files or request.form:
        clock_type = request.form.get("type")
        upload = request.files.get("photo")
        photo = upload.read() if upload else None
    else:
        data = request.get_json(silent=True) or {}
        clock_type = data.get("type")
        photo = None

    try:
        log = attendance_service.clock(kiosk_id=g.current_user.id, clock_type=clock_type, photo=photo)
        return jsonify({"log": log.to_dict()}), 201
    except (AttendanceError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record clock event")
        return jsonify({"error": "Internal server error"}), 500


@attendance_bp.get("/logs")
@require_auth
def list_logs_route():
    """?kiosk_id=&date=YYYY-MM-DD, oldest first"""
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    query = kiosk_scope(db.session.query(ClockLog), ClockLog, request.args.get("kiosk_id"))
    logs = attendance_service.list_logs(query, day=day)
    return jsonify({"logs": [log.to_dict() for log in logs]}), 200


@attendance_bp.get("/day")
@require_auth
def day_pair_route():
    """The day's attendance: earliest clock-in and latest clock-out."""
    try:
        day = parse_iso_date(request.args.get("date")) or today()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        kiosk = resolve_kiosk(request.args.get("kiosk_id"))
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    pair = attendance_service.clock_pair(kiosk.id, day)
    return jsonify({"kiosk_id": kiosk.id, "date": day.isoformat(), **pair}), 200
