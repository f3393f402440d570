# Overview: Flask API routes for wastage operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..extensions import db
from ..models import KioskItem, Order, WastageRecord
from ..services import wastage_service
from ..services.access_service import AccessError, get_scoped, kiosk_scope
from ..services.wastage_service import WastageError
from ..validation import ValidationError
from kioskpos.time_utils import parse_iso_date


wastage_bp = Blueprint("wastage", __name__, url_prefix="/api/wastage")


def _created(record, row):
    return jsonify({"wastage": record.to_dict(), "kiosk_item": row.to_dict()}), 201


@wastage_bp.post("/order/<order_id>")
@require_auth
def order_wastage_route(order_id: str):
    """Body: {item_name, quantity, reason}. Stock is floored at 0."""
    data = request.get_json(silent=True) or {}
    try:
        order = get_scoped(Order, order_id)
        record, row = wastage_service.record_order_wastage(
            order=order,
            item_name=data.get("item_name"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
        )
        return _created(record, row)
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except WastageError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record order wastage")
        return jsonify({"error": "Internal server error"}), 500


@wastage_bp.post("/inventory/<row_id>")
@require_auth
def inventory_wastage_route(row_id: str):
    """Body: {quantity, reason}. Quantity may not exceed current stock."""
    data = request.get_json(silent=True) or {}
    try:
        row = get_scoped(KioskItem, row_id)
        record, row = wastage_service.record_direct_wastage(
            row=row,
            quantity=data.get("quantity"),
            reason=data.get("reason"),
        )
        return _created(record, row)
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except WastageError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record inventory wastage")
        return jsonify({"error": "Internal server error"}), 500


@wastage_bp.get("")
@require_auth
def list_wastage_route():
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    query = kiosk_scope(db.session.query(WastageRecord), WastageRecord, request.args.get("kiosk_id"))
    records = wastage_service.list_wastage(query, day=day)
    return jsonify({"wastage": [record.to_dict() for record in records]}), 200
