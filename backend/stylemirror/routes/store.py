# Overview: Flask API routes for store managers; every route is scoped to the token's store.

"""
Store manager routes.

The store id always comes from the manager's bearer token (g.store_id),
never from the request, so a manager cannot reach another store's data.
Items of other stores answer 404 like missing ones.
"""

from flask import Blueprint, jsonify, request, current_app, g

from . import first_present
from ..errors import ServiceError
from ..models import UserRole
from ..decorators import require_auth, require_role, require_store
from ..services import (
    analytics_service,
    audit_service,
    catalog_service,
    qr_service,
    storage_service,
)
from ..time_utils import to_utc_z


store_bp = Blueprint("store", __name__, url_prefix="/api")


@store_bp.get("/store/stats")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def store_stats():
    return jsonify(analytics_service.store_stats(g.store_id)), 200


@store_bp.get("/store/items")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def list_items():
    try:
        items = catalog_service.list_items(g.store_id, request.args.get("category"))
        return jsonify([item.to_dict() for item in items]), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@store_bp.post("/store/items")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def create_item():
    """Multipart form: name, category, barcode, isAvailable, image (file)."""
    form = request.form
    image_ref = None
    try:
        image_ref = storage_service.save_upload(request.files.get("image"), storage_service.CLOTHING_DIR)
        item = catalog_service.create_item(
            g.store_id,
            name=form.get("name"),
            category=form.get("category"),
            barcode=form.get("barcode"),
            image_ref=image_ref,
            is_available=catalog_service.parse_bool(
                first_present(form, "isAvailable", "is_available"), default=True
            ),
        )
        audit_service.log_usage(
            g.store_id,
            audit_service.CLOTHING_UPLOAD,
            {"itemId": item.id, "name": item.name},
        )
        return jsonify(item.to_dict()), 201
    except ServiceError as exc:
        if image_ref:
            storage_service.delete_ref(image_ref)
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to create clothing item")
        return jsonify({"error": "Internal server error"}), 500


@store_bp.patch("/store/items/<int:item_id>")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def update_item(item_id: int):
    form = request.form if request.form or request.files else (request.get_json(silent=True) or {})
    fields = {
        "name": form.get("name"),
        "category": form.get("category"),
        "is_available": first_present(form, "isAvailable", "is_available"),
    }
    if "barcode" in form:
        fields["barcode"] = form.get("barcode")

    image_ref = None
    try:
        # Check ownership before writing anything to disk
        catalog_service.get_item_for_store(g.store_id, item_id)
        if request.files.get("image"):
            image_ref = storage_service.save_upload(request.files["image"], storage_service.CLOTHING_DIR)
        item = catalog_service.update_item(g.store_id, item_id, fields, image_ref=image_ref)
        return jsonify(item.to_dict()), 200
    except ServiceError as exc:
        if image_ref:
            storage_service.delete_ref(image_ref)
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to update clothing item")
        return jsonify({"error": "Internal server error"}), 500


@store_bp.delete("/store/items/<int:item_id>")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def delete_item(item_id: int):
    try:
        catalog_service.delete_item(g.store_id, item_id)
        return jsonify({"message": "Item deleted"}), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@store_bp.patch("/store/items/<int:item_id>/toggle-availability")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def toggle_item_availability(item_id: int):
    try:
        item = catalog_service.toggle_availability(g.store_id, item_id)
        return jsonify(item.to_dict()), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@store_bp.post("/sessions")
@store_bp.post("/store/qr/generate")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def issue_qr_session():
    """
    Issue a one hour QR grant for the manager's store.

    Returns the plaintext token, the redemption URL and the QR code as a PNG
    data URL. The token is not retrievable afterwards.
    """
    try:
        grant = qr_service.issue(g.store_id, issued_by_user_id=g.principal.id)
        base_url = current_app.config.get("PUBLIC_BASE_URL") or request.host_url
        qr_url = qr_service.build_redeem_url(base_url, grant.token)
        return jsonify({
            "token": grant.token,
            "expires_at": to_utc_z(grant.expires_at),
            "qr_url": qr_url,
            "qr_code": qr_service.render_qr_data_url(qr_url),
        }), 201
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to generate QR session")
        return jsonify({"error": "Internal server error"}), 500


@store_bp.get("/store/usage-logs")
@require_auth
@require_role(UserRole.MANAGER)
@require_store
def usage_logs():
    limit = min(request.args.get("limit", default=200, type=int) or 200, 1000)
    logs = audit_service.list_usage_logs(g.store_id, limit=limit)
    return jsonify([log.to_dict() for log in logs]), 200
