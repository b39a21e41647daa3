from __future__ import annotations

import secrets

from ..extensions import db
from ..time_utils import to_utc_z, is_past


def new_customer_session_id() -> str:
    # The id is the customer's only credential, so it must be unguessable.
    return secrets.token_urlsafe(32)


class QrSession(db.Model):
    """
    Access grant encoded in a QR code.

    Immutable after creation. Only the SHA-256 of the token is stored; the
    plaintext is handed to the manager once at issuance. A grant may be
    redeemed any number of times until expires_at.
    """
    __tablename__ = "qr_sessions"
    __table_args__ = (
        db.Index("ix_qr_sessions_store_expires", "store_id", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    issued_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    store = db.relationship("Store", backref=db.backref("qr_sessions", lazy=True))

    def is_expired(self, now=None) -> bool:
        return is_past(self.expires_at, now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }


class CustomerSession(db.Model):
    """
    Ephemeral, anonymous shopper session created by redeeming a QR grant.

    expires_at is copied from the grant and never extended. There is no stored
    "expired" state: liveness is recomputed on every access.
    """
    __tablename__ = "customer_sessions"
    __table_args__ = (
        db.Index("ix_customer_sessions_store_expires", "store_id", "expires_at"),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_customer_session_id)
    qr_session_id = db.Column(db.Integer, db.ForeignKey("qr_sessions.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    photo_ref = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    qr_session = db.relationship("QrSession", backref=db.backref("customer_sessions", lazy=True))
    store = db.relationship("Store", backref=db.backref("customer_sessions", lazy=True))

    def is_live(self, now=None) -> bool:
        return not is_past(self.expires_at, now)

    def to_dict(self) -> dict:
        return {
            "session_id": self.id,
            "store_id": self.store_id,
            "photo_url": self.photo_ref,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }
