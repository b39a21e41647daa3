# Overview: Flask API routes for anonymous customers (QR redemption and try-on flow).

"""
Customer routes.

No bearer token here. QR redemption hands out a customer session id, and
every later call is authorized only by presenting that id while it is live.
Expired sessions answer 401 with "expired": true so the client can ask for a
new scan.
"""

from flask import Blueprint, jsonify, request, current_app

from . import first_present
from ..errors import ServiceError, ValidationError
from ..services import catalog_service, customer_session_service, tryon_service


customer_bp = Blueprint("customer", __name__, url_prefix="/api")


@customer_bp.get("/sessions/<token>")
@customer_bp.get("/qr/<token>/validate")
def validate_qr_session(token: str):
    """Exchange a QR token for a new customer session."""
    try:
        view = customer_session_service.validate(token)
        return jsonify(view.to_dict()), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to validate QR session")
        return jsonify({"error": "Internal server error"}), 500


@customer_bp.get("/customer/clothes")
def list_clothes():
    store_id = first_present(request.args, "storeId", "store_id")
    if store_id is None:
        return jsonify({"error": "Store ID required"}), 400
    try:
        store_id = int(store_id)
    except ValueError:
        return jsonify({"error": "Store ID must be an integer"}), 400

    try:
        items = catalog_service.list_available_items(store_id, request.args.get("category"))
        return jsonify([item.to_dict() for item in items]), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@customer_bp.post("/customer/scan-barcode")
def scan_barcode():
    data = request.get_json(silent=True) or {}
    store_id = first_present(data, "storeId", "store_id")
    barcode = data.get("barcode")
    if store_id is None or not barcode:
        return jsonify({"error": "Store ID and barcode required"}), 400

    try:
        item = catalog_service.find_by_barcode(int(store_id), barcode)
        return jsonify(item.to_dict()), 200
    except (TypeError, ValueError):
        return jsonify({"error": "Store ID must be an integer"}), 400
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code


def _upload_photo(session_id):
    try:
        if not session_id:
            raise ValidationError("Session ID required")
        session = customer_session_service.upload_photo(session_id, request.files.get("photo"))
        return jsonify({"photo_url": session.photo_ref, "expires_at": session.to_dict()["expires_at"]}), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to upload customer photo")
        return jsonify({"error": "Internal server error"}), 500


@customer_bp.post("/customer-sessions/<session_id>/photo")
def upload_session_photo(session_id: str):
    return _upload_photo(session_id)


@customer_bp.post("/customer/upload-photo")
def upload_photo():
    """Form variant: the session id travels as the `sessionId` field."""
    return _upload_photo(first_present(request.form, "sessionId", "session_id"))


@customer_bp.post("/tryon")
def try_on():
    data = request.get_json(silent=True) or {}
    session_id = first_present(data, "sessionId", "session_id")
    item_id = first_present(data, "clothingItemId", "clothing_item_id", "itemId", "item_id")

    if not session_id or item_id is None:
        return jsonify({"error": "Session ID and clothing item ID required"}), 400

    try:
        result = tryon_service.request_try_on(session_id, item_id)
        return jsonify(result.to_dict()), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to generate try-on image")
        return jsonify({"error": "Internal server error"}), 500


@customer_bp.get("/customer-sessions/<session_id>/history")
def try_on_history(session_id: str):
    try:
        history = customer_session_service.list_history(session_id)
        return jsonify([entry.to_dict() for entry in history]), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
