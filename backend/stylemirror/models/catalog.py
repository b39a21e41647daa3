from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class ClothingCategory(enum.Enum):
    SHIRTS = "shirts"
    PANTS = "pants"
    JACKETS = "jackets"
    DRESSES = "dresses"
    SKIRTS = "skirts"
    ACCESSORIES = "accessories"
    SHOES = "shoes"
    OTHER = "other"


class ClothingItem(db.Model):
    """
    Garment a store offers for virtual try-on.

    Barcodes are unique within a store, not globally. try_on_count is only
    ever changed through an atomic UPDATE (see catalog_service).
    """
    __tablename__ = "clothing_items"
    __table_args__ = (
        db.UniqueConstraint("store_id", "barcode", name="uq_clothing_items_store_barcode"),
        db.Index("ix_clothing_items_store_category", "store_id", "category"),
        db.Index("ix_clothing_items_store_available", "store_id", "is_available"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.Enum(ClothingCategory, native_enum=False, length=32), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)

    # Reference under the uploads folder, e.g. "/uploads/clothing/abc.png"
    image_ref = db.Column(db.String(512), nullable=False, default="")

    is_available = db.Column(db.Boolean, nullable=False, default=True)
    try_on_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("clothing_items", lazy=True))

    def __repr__(self) -> str:
        return f"<ClothingItem id={self.id} store_id={self.store_id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "category": self.category.value,
            "barcode": self.barcode,
            "image_url": self.image_ref,
            "is_available": self.is_available,
            "try_on_count": self.try_on_count,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
