# Overview: Service-layer operations for maintenance; removes customer photos after expiry.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import CustomerSession
from ..time_utils import utcnow
from . import storage_service


def purge_expired_customer_photos(*, grace_minutes: int = 0) -> int:
    """
    Delete uploaded customer photos of sessions that expired more than
    grace_minutes ago and clear their photo references.

    Expired sessions are already unusable (expiry is enforced on access), so
    this only reclaims the photos. Returns the number of sessions purged.
    """
    cutoff = utcnow() - timedelta(minutes=grace_minutes)
    sessions = db.session.query(CustomerSession).filter(
        CustomerSession.expires_at <= cutoff,
        CustomerSession.photo_ref.isnot(None),
    ).all()

    purged = 0
    for session in sessions:
        storage_service.delete_ref(session.photo_ref)
        session.photo_ref = None
        purged += 1

    db.session.commit()
    if purged:
        current_app.logger.info("Purged %d expired customer photos", purged)
    return purged
