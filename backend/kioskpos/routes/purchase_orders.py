# Overview: Flask API routes for replenishment purchase orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..extensions import db
from ..models import PurchaseOrder, ROLE_MANAGER
from ..services import purchase_order_service
from ..services.access_service import AccessError, get_scoped, kiosk_scope, resolve_kiosk
from ..validation import ValidationError, ConflictError


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders_route():
    """?kiosk_id=&status=, newest first"""
    query = kiosk_scope(db.session.query(PurchaseOrder), PurchaseOrder, request.args.get("kiosk_id"))
    try:
        orders = purchase_order_service.list_purchase_orders(query, status=request.args.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"purchase_orders": [po.to_dict() for po in orders]}), 200


@purchase_orders_bp.get("/<po_id>")
@require_auth
def get_purchase_order_route(po_id: str):
    try:
        po = get_scoped(PurchaseOrder, po_id)
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"purchase_order": po.to_dict()}), 200


@purchase_orders_bp.post("")
@require_auth
def create_purchase_order_route():
    """Body: {kiosk_id?, items: [{name, quantity}]}"""
    data = request.get_json(silent=True) or {}
    try:
        kiosk = resolve_kiosk(data.get("kiosk_id"))
        po = purchase_order_service.create_purchase_order(kiosk_id=kiosk.id, items=data.get("items"))
        return jsonify({"purchase_order": po.to_dict()}), 201
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.patch("/<po_id>/status")
@require_auth
@require_role(ROLE_MANAGER)
def set_status_route(po_id: str):
    """Body: {status}"""
    data = request.get_json(silent=True) or {}
    try:
        po = get_scoped(PurchaseOrder, po_id)
        po = purchase_order_service.set_status(po, data.get("status"))
        return jsonify({"purchase_order": po.to_dict()}), 200
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set purchase order status")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.put("/<po_id>/items")
@require_auth
@require_role(ROLE_MANAGER)
def edit_items_route(po_id: str):
    """
    Body: {items: [{name, quantity}]}

    Saving allocates every quantity into the kiosk catalog (additive).
    """
    data = request.get_json(silent=True) or {}
    try:
        po = get_scoped(PurchaseOrder, po_id)
        po = purchase_order_service.edit_items(po, data.get("items"))
        return jsonify({"purchase_order": po.to_dict()}), 200
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to edit purchase order items")
        return jsonify({"error": "Internal server error"}), 500
