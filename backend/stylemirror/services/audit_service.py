# Overview: Service-layer operations for the store usage log (audit trail).

from __future__ import annotations

import json

from ..extensions import db
from ..models import UsageLog

# Action tags
STORE_CREATED = "store_created"
CLOTHING_UPLOAD = "clothing_upload"
QR_GENERATED = "qr_generated"
SESSION_CREATED = "session_created"
PHOTO_UPLOADED = "photo_uploaded"
TRY_ON = "try_on"


def log_usage(store_id: int, action: str, metadata: dict | None = None, *, commit: bool = True) -> UsageLog:
    """
    Append a usage event for a store.

    Pass commit=False to stage the event inside a caller's transaction.
    """
    log = UsageLog(
        store_id=store_id,
        action=action,
        metadata_json=json.dumps(metadata, sort_keys=True) if metadata else None,
    )
    db.session.add(log)
    if commit:
        db.session.commit()
    return log


def list_usage_logs(store_id: int, *, limit: int = 200) -> list[UsageLog]:
    return (
        db.session.query(UsageLog)
        .filter(UsageLog.store_id == store_id)
        .order_by(UsageLog.created_at.desc(), UsageLog.id.desc())
        .limit(limit)
        .all()
    )


def count_actions(action: str, store_id: int | None = None) -> int:
    query = db.session.query(UsageLog).filter(UsageLog.action == action)
    if store_id is not None:
        query = query.filter(UsageLog.store_id == store_id)
    return query.count()
