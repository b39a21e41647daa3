# Overview: Flask API routes for company owners: stores, manager accounts and global analytics.

from flask import Blueprint, jsonify, request, current_app, g

from . import first_present
from ..errors import ServiceError
from ..models import UserRole
from ..decorators import require_auth, require_role
from ..services import store_service, analytics_service, audit_service


stores_bp = Blueprint("stores", __name__, url_prefix="/api")


def _store_with_stats(store) -> dict:
    data = store.to_dict()
    manager = store_service.get_store_manager(store.id)
    data["manager_email"] = manager.email if manager else None
    data["stats"] = analytics_service.store_stats(store.id)
    return data


@stores_bp.get("/stores")
@require_auth
@require_role(UserRole.OWNER)
def list_stores():
    stores = store_service.list_stores()
    return jsonify([_store_with_stats(store) for store in stores]), 200


@stores_bp.post("/stores")
@require_auth
@require_role(UserRole.OWNER)
def create_store():
    """
    Create a store together with its manager account.

    The temporary password is only ever returned here.
    """
    data = request.get_json(silent=True) or {}
    try:
        store, manager, temp_password = store_service.create_store_with_manager(
            name=first_present(data, "storeName", "store_name", "name"),
            description=first_present(data, "storeDescription", "store_description", "description"),
            manager_email=first_present(data, "email", "managerEmail", "manager_email"),
            created_by=g.principal.email,
        )
        return jsonify({
            "store": store.to_dict(),
            "manager": manager.to_dict(),
            "temp_password": temp_password,
            "message": "Store and manager account created successfully",
        }), 201
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.patch("/stores/<int:store_id>/toggle-status")
@require_auth
@require_role(UserRole.OWNER)
def toggle_store_status(store_id: int):
    try:
        store = store_service.toggle_status(store_id)
        return jsonify(store.to_dict()), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@stores_bp.post("/stores/<int:store_id>/reset-password")
@require_auth
@require_role(UserRole.OWNER)
def reset_manager_password(store_id: int):
    try:
        manager, temp_password = store_service.reset_manager_password(store_id)
        return jsonify({
            "email": manager.email,
            "temp_password": temp_password,
            "message": "Password reset successfully",
        }), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to reset manager password")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/stores/<int:store_id>/usage-logs")
@require_auth
@require_role(UserRole.OWNER)
def store_usage_logs(store_id: int):
    try:
        store = store_service.get_store(store_id)
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    logs = audit_service.list_usage_logs(store.id)
    return jsonify([log.to_dict() for log in logs]), 200


@stores_bp.get("/analytics/global")
@require_auth
@require_role(UserRole.OWNER)
def global_analytics():
    return jsonify(analytics_service.global_stats()), 200
