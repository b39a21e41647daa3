# Overview: Flask API routes for staff authentication; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from . import first_present
from ..errors import ServiceError
from ..services import auth_service, token_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a staff member and issue a 24 hour bearer token.

    The user payload carries must_reset_password so the client can force the
    password change screen.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not email or not password:
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        token = token_service.create_access_token(user)
        return jsonify({"token": token, "user": user.to_dict()}), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/reset-password")
@require_auth
def reset_password_route():
    data = request.get_json(silent=True) or {}
    current_password = first_present(data, "currentPassword", "current_password")
    new_password = first_present(data, "newPassword", "new_password")

    if not current_password or not new_password:
        return jsonify({"error": "currentPassword and newPassword required"}), 400

    try:
        auth_service.reset_password(g.current_user.id, current_password, new_password)
        return jsonify({"message": "Password updated successfully"}), 200
    except ServiceError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500
