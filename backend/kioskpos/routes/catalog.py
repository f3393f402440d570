# Overview: Flask API routes for factory and kiosk catalogs; parses input and returns JSON responses.

"""
Catalog Routes

SECURITY:
- Factory catalog writes, allocation and kiosk row edits are manager-only
- Kiosk catalog reads are scoped: a kiosk sees its own catalog only
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..models import FactoryItem, KioskItem, ROLE_MANAGER
from ..services import catalog_service, storage_service
from ..services.access_service import AccessError, get_scoped, resolve_kiosk
from ..services.catalog_service import CatalogError
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    parse_positive_int,
    validate_payload,
)


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")

FACTORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price_cents", "stock", "image_url"},
    required_on_create={"name", "price_cents"},
)

KIOSK_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"stock", "price_cents"},
)


# =============================================================================
# FACTORY CATALOG
# =============================================================================

@catalog_bp.get("/factory")
@require_auth
def list_factory_route():
    items = catalog_service.list_factory_items()
    return jsonify({"items": [item.to_dict() for item in items]}), 200


@catalog_bp.post("/factory")
@require_auth
@require_role(ROLE_MANAGER)
def create_factory_route():
    try:
        patch = validate_payload(
            model=FactoryItem,
            payload=request.get_json(silent=True),
            policy=FACTORY_POLICY,
            partial=False,
        )
        item = catalog_service.create_factory_item(
            name=patch["name"],
            price_cents=patch["price_cents"],
            stock=patch.get("stock"),
            image_url=patch.get("image_url"),
        )
        return jsonify({"item": item.to_dict()}), 201
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except (ValidationError, CatalogError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create factory item")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/factory/<item_id>")
@require_auth
@require_role(ROLE_MANAGER)
def update_factory_route(item_id: str):
    try:
        patch = validate_payload(
            model=FactoryItem,
            payload=request.get_json(silent=True),
            policy=FACTORY_POLICY,
            partial=True,
        )
        item = catalog_service.update_factory_item(item_id, patch)
        return jsonify({"item": item.to_dict()}), 200
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except CatalogError as e:
        if str(e) == "Factory item not found":
            return jsonify({"error": str(e)}), 404
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update factory item")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/factory/<item_id>")
@require_auth
@require_role(ROLE_MANAGER)
def delete_factory_route(item_id: str):
    try:
        catalog_service.delete_factory_item(item_id)
        return jsonify({"message": "Deleted"}), 200
    except CatalogError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete factory item")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/factory/<item_id>/image")
@require_auth
@require_role(ROLE_MANAGER)
def upload_factory_image_route(item_id: str):
    """Multipart upload; the image is stored and pushed to matching kiosk rows."""
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400

    upload = request.files["file"]
    try:
        item = catalog_service.set_factory_image(item_id, upload.read(), upload.mimetype)
        return jsonify({"item": item.to_dict()}), 200
    except CatalogError as e:
        return jsonify({"error": str(e)}), 404
    except storage_service.StorageError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to upload factory image")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/factory/<item_id>/send")
@require_auth
@require_role(ROLE_MANAGER)
def send_to_kiosk_route(item_id: str):
    """Body: {kiosk_id, quantity}"""
    data = request.get_json(silent=True) or {}
    try:
        kiosk = resolve_kiosk(data.get("kiosk_id"))
        quantity = parse_positive_int(data.get("quantity"), "quantity")
        row = catalog_service.send_to_kiosk(factory_item_id=item_id, kiosk_id=kiosk.id, quantity=quantity)
        return jsonify({"kiosk_item": row.to_dict()}), 200
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except CatalogError as e:
        if str(e) == "Factory item not found":
            return jsonify({"error": str(e)}), 404
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to send item to kiosk")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/factory/stock-totals")
@require_auth
@require_role(ROLE_MANAGER)
def factory_stock_totals_route():
    return jsonify({"items": catalog_service.stock_totals()}), 200


@catalog_bp.get("/factory/<item_id>/breakdown")
@require_auth
@require_role(ROLE_MANAGER)
def factory_breakdown_route(item_id: str):
    try:
        return jsonify(catalog_service.factory_breakdown(item_id)), 200
    except CatalogError as e:
        return jsonify({"error": str(e)}), 404


# =============================================================================
# KIOSK CATALOG
# =============================================================================

@catalog_bp.get("/kiosk")
@require_auth
def list_kiosk_catalog_route():
    """?kiosk_id= (manager) ; ?placeholders=false hides the predefined menu overlay"""
    include_placeholders = request.args.get("placeholders", "true").lower() != "false"
    try:
        kiosk = resolve_kiosk(request.args.get("kiosk_id"))
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    items = catalog_service.list_kiosk_catalog(kiosk.id, include_placeholders=include_placeholders)
    return jsonify({"kiosk_id": kiosk.id, "items": items}), 200


@catalog_bp.patch("/kiosk/<row_id>")
@require_auth
@require_role(ROLE_MANAGER)
def update_kiosk_item_route(row_id: str):
    try:
        row = get_scoped(KioskItem, row_id)
        patch = validate_payload(
            model=KioskItem,
            payload=request.get_json(silent=True),
            policy=KIOSK_ITEM_POLICY,
            partial=True,
        )
        row = catalog_service.update_kiosk_item(row, patch)
        return jsonify({"item": row.to_dict()}), 200
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update kiosk item")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/kiosk/<row_id>")
@require_auth
@require_role(ROLE_MANAGER)
def delete_kiosk_item_route(row_id: str):
    try:
        row = get_scoped(KioskItem, row_id)
        catalog_service.delete_kiosk_item(row)
        return jsonify({"message": "Deleted"}), 200
    except AccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete kiosk item")
        return jsonify({"error": "Internal server error"}), 500
