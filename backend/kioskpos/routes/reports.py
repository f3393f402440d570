# Overview: Flask API routes for reporting; parses input and returns JSON responses.

"""
Reporting Routes

Every view is recomputed from orders, clock logs and kiosk stock on each
request; ?date=YYYY-MM-DD selects a past day (default today, UTC).
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..models import ROLE_MANAGER
from ..services import reporting_service
from ..services.access_service import AccessError, resolve_kiosk
from ..services.reporting_service import ReportError
from ..validation import ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daily")
@require_auth
@require_role(ROLE_MANAGER)
def daily_report_route():
    try:
        day = reporting_service.resolve_day(request.args.get("date"))
        return jsonify(reporting_service.daily_report(day)), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/kiosk-summary")
@require_auth
def kiosk_summary_route():
    try:
        day = reporting_service.resolve_day(request.args.get("date"))
        kiosk = resolve_kiosk(request.args.get("kiosk_id"))
        return jsonify(reporting_service.kiosk_summary(kiosk, day)), 200
    except AccessError as exc:
        return jsonify({"error": str(exc)}), 404
    except (ReportError, ValidationError) as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/kiosk-breakdown")
@require_auth
def kiosk_breakdown_route():
    try:
        day = reporting_service.resolve_day(request.args.get("date"))
        kiosk = resolve_kiosk(request.args.get("kiosk_id"))
        return jsonify(reporting_service.kiosk_breakdown(kiosk, day)), 200
    except AccessError as exc:
        return jsonify({"error": str(exc)}), 404
    except (ReportError, ValidationError) as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/stock-totals")
@require_auth
@require_role(ROLE_MANAGER)
def stock_totals_route():
    return jsonify({"items": reporting_service.stock_totals()}), 200


@reports_bp.post("/reset-day")
@require_auth
@require_role(ROLE_MANAGER)
def reset_day_route():
    """
    Body: {date?: "YYYY-MM-DD", confirm: true}

    Deletes the day's orders, clock logs and archived report rows.
    """
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "confirm must be true"}), 400

    try:
        day = reporting_service.resolve_day(data.get("date"))
        return jsonify({"deleted": reporting_service.reset_day(day)}), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to reset day")
        return jsonify({"error": "Internal server error"}), 500
