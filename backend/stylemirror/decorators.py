# Overview: Request authorization decorators for staff API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import ServiceError, Unauthorized
from .models import UserRole
from .services import auth_service, token_service


def _is_authenticated() -> bool:
    return hasattr(g, 'principal')


def require_auth(f):
    """
    Require a valid staff bearer token.

    Sets the following Flask g attributes:
    - g.principal: the decoded token Principal
    - g.current_user: the User row (must still exist and be active)
    - g.store_id: the principal's store (None for owners)

    Returns 401 if the header is missing, the token is invalid or expired,
    or the account is gone or deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            token = token_service.extract_bearer(request.headers.get("Authorization"))
            principal = token_service.authorize(token)
        except ServiceError as exc:
            return jsonify(exc.to_dict()), exc.status_code

        user = auth_service.get_user(principal.id)
        if not user or not user.is_active:
            exc = Unauthorized("Invalid token")
            return jsonify(exc.to_dict()), exc.status_code

        g.principal = principal
        g.current_user = user
        g.store_id = principal.store_id

        return f(*args, **kwargs)

    return decorated_function


def require_role(role: UserRole):
    """Require the authenticated principal to hold `role`. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401
            try:
                token_service.require_role(g.principal, role)
            except ServiceError as exc:
                return jsonify(exc.to_dict()), exc.status_code
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_store(f):
    """Require the principal to be bound to a store (managers)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if g.store_id is None:
            return jsonify({"error": "No store associated with this account"}), 400
        return f(*args, **kwargs)

    return decorated_function
