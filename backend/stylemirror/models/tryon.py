from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class TryOnHistory(db.Model):
    """One row per completed try-on (generated or demo). Append-only."""
    __tablename__ = "try_on_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_session_id = db.Column(
        db.String(64), db.ForeignKey("customer_sessions.id"), nullable=False, index=True
    )
    clothing_item_id = db.Column(db.Integer, db.ForeignKey("clothing_items.id"), nullable=False, index=True)
    result_image_ref = db.Column(db.String(512), nullable=False)
    is_demo = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    customer_session = db.relationship("CustomerSession", backref=db.backref("try_ons", lazy=True))
    clothing_item = db.relationship("ClothingItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_session_id": self.customer_session_id,
            "clothing_item_id": self.clothing_item_id,
            "result_image_url": self.result_image_ref,
            "is_demo": self.is_demo,
            "created_at": to_utc_z(self.created_at),
        }
