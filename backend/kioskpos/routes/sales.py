# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..extensions import db
from ..models import Order, ROLE_MANAGER
from ..services import sales_service
from ..services.access_service import AccessError, get_scoped, kiosk_scope, resolve_kiosk
from ..services.sales_service import SaleError
from ..validation import ValidationError
from kioskpos.time_utils import parse_iso_date


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

MAX_LIMIT = 500


@sales_bp.post("")
@require_auth
def submit_order_route():
    """
    Record a sale.

    Body: {kiosk_id?, payment_type: "Cash"|"UPI", items: [{item_id, quantity}]}
    Returns the order and, when stock fell below the threshold, the
    replenishment purchase order it raised or extended.
    """
    data = request.get_json(silent=True) or {}

    try:
        kiosk = resolve_kiosk(data.get("kiosk_id"))
        order, purchase_order = sales_service.submit_order(
            kiosk_id=kiosk.id,
            cart=data.get("items"),
            payment_type=data.get("payment_type"),
        )
        return jsonify({
            "order": order.to_dict(),
            "purchase_order": purchase_order.to_dict() if purchase_order else None,
        }), 201
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to submit order")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def list_orders_route():
    """?kiosk_id=&date=YYYY-MM-DD&limit=50, newest first"""
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    limit = min(max(request.args.get("limit", 50, type=int), 1), MAX_LIMIT)
    query = kiosk_scope(db.session.query(Order), Order, request.args.get("kiosk_id"))
    orders = sales_service.list_orders(query, day=day, limit=limit)
    return jsonify({"orders": [order.to_dict() for order in orders]}), 200


@sales_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        order = get_scoped(Order, order_id)
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"order": order.to_dict()}), 200


@sales_bp.delete("/<order_id>")
@require_auth
@require_role(ROLE_MANAGER)
def delete_order_route(order_id: str):
    try:
        order = get_scoped(Order, order_id)
        sales_service.delete_order(order)
        return jsonify({"message": "Deleted"}), 200
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
