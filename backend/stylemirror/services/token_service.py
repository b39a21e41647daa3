# Overview: Service-layer operations for staff bearer tokens (Authorization Gate).

"""
Authorization Gate

Staff requests carry `Authorization: Bearer <jwt>`. Tokens are HS256 signed
with JWT_SECRET_KEY, carry {id, email, role, storeId} and live 24 hours.

Customers never hold a bearer token: their access is the possession of a
live customer session id (see customer_session_service.py).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from flask import current_app
from jose import jwt, JWTError

from ..errors import Unauthorized, Forbidden
from ..models import User, UserRole

ACCESS_TOKEN_LIFETIME = timedelta(hours=24)


@dataclass(frozen=True)
class Principal:
    """Authenticated staff identity decoded from a bearer token."""
    id: int
    email: str
    role: UserRole
    store_id: int | None

    @property
    def is_owner(self) -> bool:
        return self.role is UserRole.OWNER

    @property
    def is_manager(self) -> bool:
        return self.role is UserRole.MANAGER


def _secret() -> str:
    return current_app.config["JWT_SECRET_KEY"]


def _algorithm() -> str:
    return current_app.config.get("JWT_ALGORITHM", "HS256")


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else ACCESS_TOKEN_LIFETIME)
    claims = {
        "sub": str(user.id),
        "id": user.id,
        "email": user.email,
        "role": user.role.value,
        "storeId": user.store_id,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(claims, _secret(), algorithm=_algorithm())


def decode_token(token: str) -> Principal:
    """
    Verify signature and expiry and build the Principal.

    Raises Unauthorized for any invalid, tampered or expired token.
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=[_algorithm()])
    except JWTError as exc:
        raise Unauthorized("Invalid token") from exc

    try:
        role = UserRole.parse(payload["role"])
        store_id = payload.get("storeId")
        return Principal(
            id=int(payload["id"]),
            email=payload["email"],
            role=role,
            store_id=int(store_id) if store_id is not None else None,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise Unauthorized("Invalid token") from exc


def extract_bearer(header_value: str | None) -> str:
    if not header_value or not header_value.startswith("Bearer "):
        raise Unauthorized("Authentication required")
    token = header_value.split(" ", 1)[1].strip()
    if not token:
        raise Unauthorized("Authentication required")
    return token


def authorize(bearer_token: str | None, required_role: UserRole | None = None) -> Principal:
    """
    Resolve a bearer token to a Principal and enforce the required role.

    Raises:
        Unauthorized: missing, malformed, tampered or expired token
        Forbidden: token is valid but for a different role
    """
    if not bearer_token:
        raise Unauthorized("Authentication required")

    principal = decode_token(bearer_token)
    require_role(principal, required_role)
    return principal


def require_role(principal: Principal, required_role: UserRole | None) -> None:
    if required_role is not None and principal.role is not required_role:
        raise Forbidden("Access denied")
