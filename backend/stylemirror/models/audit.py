from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z


class UsageLog(db.Model):
    """
    Store-scoped audit event.

    IMMUTABLE: Never update or delete. Append-only; only read back for the
    audit listing and aggregate counts.
    """
    __tablename__ = "usage_logs"
    __table_args__ = (
        db.Index("ix_usage_logs_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    metadata_json = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    @property
    def event_metadata(self) -> dict:
        if not self.metadata_json:
            return {}
        return json.loads(self.metadata_json)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "action": self.action,
            "metadata": self.event_metadata,
            "created_at": to_utc_z(self.created_at),
        }
