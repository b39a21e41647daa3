# Overview: Service-layer operations for QR access grants (issuance and rendering).

"""
QR Session Issuer

A manager issues a grant for their own store. The grant's token is the only
thing printed into the QR code; whoever scans it can open customer sessions
until the grant expires.

SECURITY FEATURES:
- 32 bytes from secrets (256 bits of entropy), hex encoded
- Only the SHA-256 of the token is stored
- Fixed one hour lifetime, not configurable
"""

from __future__ import annotations

import base64
import hashlib
import io
import secrets
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlencode

import qrcode

from ..extensions import db
from ..errors import NotFound
from ..models import QrSession, Store
from ..time_utils import utcnow
from . import audit_service

QR_SESSION_TTL = timedelta(hours=1)


@dataclass(frozen=True)
class QrGrant:
    """A freshly issued grant; `token` is plaintext and never stored."""
    qr_session: QrSession
    token: str

    @property
    def expires_at(self):
        return self.qr_session.expires_at


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue(store_id: int, *, issued_by_user_id: int | None = None) -> QrGrant:
    """
    Mint a grant for store_id, valid for QR_SESSION_TTL from now.

    The caller must pass the authenticated manager's own store id.
    """
    if db.session.get(Store, store_id) is None:
        raise NotFound("Store not found")

    token = generate_token()
    now = utcnow()
    qr_session = QrSession(
        store_id=store_id,
        token_hash=hash_token(token),
        issued_by_user_id=issued_by_user_id,
        created_at=now,
        expires_at=now + QR_SESSION_TTL,
    )
    try:
        db.session.add(qr_session)
        db.session.flush()
        audit_service.log_usage(
            store_id,
            audit_service.QR_GENERATED,
            {"qrSessionId": qr_session.id},
            commit=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return QrGrant(qr_session=qr_session, token=token)


def find_by_token(token: str) -> QrSession | None:
    if not token:
        return None
    return db.session.query(QrSession).filter_by(token_hash=hash_token(token)).first()


def build_redeem_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/?{urlencode({'session': token})}"


def render_qr_data_url(url: str) -> str:
    """Render `url` as a PNG QR code and return it as a data URL."""
    qr = qrcode.QRCode(border=2, box_size=8)
    qr.add_data(url)
    qr.make(fit=True)
    image = qr.make_image()

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
