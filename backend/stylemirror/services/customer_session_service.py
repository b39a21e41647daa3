# Overview: Service-layer operations for QR redemption and anonymous customer sessions.

"""
Session Validator and Customer Session Manager

Redeeming a QR token creates a customer session that inherits the grant's
expiry verbatim; redeeming again creates another session. Customers hold no
bearer token: every customer action presents the session id and is checked
against expires_at on access. Nothing expires sessions in the background.

State machine (expiry is computed, never stored):
    Created (no photo) -> PhotoAttached -> TryOnRequested* -> Expired
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..errors import NotFound, SessionExpired
from ..models import CustomerSession, TryOnHistory
from ..time_utils import utcnow, is_past, to_utc_z
from . import audit_service, qr_service, storage_service


@dataclass(frozen=True)
class CustomerSessionView:
    session_id: str
    store_id: int
    store_name: str
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "store_id": self.store_id,
            "store_name": self.store_name,
            "expires_at": to_utc_z(self.expires_at),
        }


def validate(token: str) -> CustomerSessionView:
    """
    Exchange a QR token for a new customer session.

    Raises:
        NotFound: unknown token, or the owning store is inactive
        SessionExpired: the grant is past expires_at
    """
    qr_session = qr_service.find_by_token(token)
    if not qr_session:
        raise NotFound("Invalid or expired session")

    now = utcnow()
    if qr_session.is_expired(now):
        raise SessionExpired("This QR code has expired. Please scan a new one.")

    store = qr_session.store
    if not store or not store.is_active:
        raise NotFound("Store not available")

    customer_session = CustomerSession(
        qr_session_id=qr_session.id,
        store_id=qr_session.store_id,
        created_at=now,
        expires_at=qr_session.expires_at,
    )
    try:
        db.session.add(customer_session)
        db.session.flush()
        audit_service.log_usage(
            store.id,
            audit_service.SESSION_CREATED,
            {"customerSessionId": customer_session.id},
            commit=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return CustomerSessionView(
        session_id=customer_session.id,
        store_id=store.id,
        store_name=store.name,
        expires_at=customer_session.expires_at,
    )


def is_live(session: CustomerSession | None, now: datetime | None = None) -> bool:
    return session is not None and not is_past(session.expires_at, now)


def get_live_session(session_id) -> CustomerSession:
    """
    Load a customer session and enforce expiry.

    Raises NotFound for unknown ids and SessionExpired once expires_at passed.
    """
    if not session_id or not isinstance(session_id, str):
        raise NotFound("Session not found")

    session = db.session.get(CustomerSession, session_id)
    if session is None:
        raise NotFound("Session not found")
    if not is_live(session):
        raise SessionExpired()
    return session


def attach_photo(session_id, photo_ref: str) -> CustomerSession:
    """Set the session's photo, replacing any earlier one."""
    session = get_live_session(session_id)
    session.photo_ref = photo_ref
    db.session.commit()
    return session


def upload_photo(session_id, file: FileStorage | None) -> CustomerSession:
    """
    Store an uploaded photo and attach it to a live session.

    The session is checked before the file touches disk. A replaced photo
    is removed.
    """
    session = get_live_session(session_id)
    previous_ref = session.photo_ref

    photo_ref = storage_service.save_upload(file, storage_service.CUSTOMER_DIR)
    session = attach_photo(session.id, photo_ref)

    if previous_ref and previous_ref != photo_ref:
        storage_service.delete_ref(previous_ref)

    audit_service.log_usage(
        session.store_id,
        audit_service.PHOTO_UPLOADED,
        {"customerSessionId": session.id},
    )
    return session


def list_history(session_id) -> list[TryOnHistory]:
    session = get_live_session(session_id)
    return (
        db.session.query(TryOnHistory)
        .filter(TryOnHistory.customer_session_id == session.id)
        .order_by(TryOnHistory.created_at.desc(), TryOnHistory.id.desc())
        .all()
    )
