# Overview: Service-layer operations for clothing inventory; every query is store-scoped.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..errors import ValidationError, ConflictError, NotFound
from ..models import ClothingItem, ClothingCategory, TryOnHistory

MAX_NAME_LENGTH = 255
MAX_BARCODE_LENGTH = 64


def parse_category(value) -> ClothingCategory:
    """Exact match against the category enum (wire values, e.g. "shirts")."""
    if isinstance(value, ClothingCategory):
        return value
    try:
        return ClothingCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in ClothingCategory)
        raise ValidationError(f"category must be one of: {allowed}")


def parse_bool(value, *, default: bool = False) -> bool:
    # Multipart forms send booleans as strings
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    raise ValidationError("Expected a boolean")


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return name


def _clean_barcode(barcode) -> str | None:
    if barcode is None:
        return None
    # Scanners posting JSON may send numeric barcodes
    if isinstance(barcode, int) and not isinstance(barcode, bool):
        barcode = str(barcode)
    if not isinstance(barcode, str):
        raise ValidationError("Barcode must be a string")
    barcode = barcode.strip()
    if not barcode:
        return None
    if len(barcode) > MAX_BARCODE_LENGTH:
        raise ValidationError(f"Barcode must be at most {MAX_BARCODE_LENGTH} characters")
    return barcode


def _ensure_barcode_free(store_id: int, barcode: str | None, exclude_item_id: int | None = None) -> None:
    if barcode is None:
        return
    query = db.session.query(ClothingItem).filter(
        ClothingItem.store_id == store_id,
        ClothingItem.barcode == barcode,
    )
    if exclude_item_id is not None:
        query = query.filter(ClothingItem.id != exclude_item_id)
    if query.first():
        raise ConflictError("Barcode already used by another item in this store")


def create_item(
    store_id: int,
    *,
    name,
    category,
    image_ref: str,
    barcode=None,
    is_available: bool = True,
) -> ClothingItem:
    name = _clean_name(name)
    category = parse_category(category)
    barcode = _clean_barcode(barcode)
    _ensure_barcode_free(store_id, barcode)

    item = ClothingItem(
        store_id=store_id,
        name=name,
        category=category,
        barcode=barcode,
        image_ref=image_ref or "",
        is_available=is_available,
        try_on_count=0,
    )
    db.session.add(item)
    db.session.commit()
    return item


def _parse_id(value) -> int | None:
    """Accept ints and digit strings only; floats and booleans are not ids."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def get_item_for_store(store_id: int, item_id) -> ClothingItem:
    """
    Fetch an item that belongs to store_id.

    Items of other stores raise NotFound exactly like missing ones.
    """
    item_id = _parse_id(item_id)
    if item_id is None:
        raise NotFound("Item not found")

    item = db.session.query(ClothingItem).filter_by(id=item_id, store_id=store_id).first()
    if not item:
        raise NotFound("Item not found")
    return item


def update_item(store_id: int, item_id, fields: dict, image_ref: str | None = None) -> ClothingItem:
    item = get_item_for_store(store_id, item_id)

    if fields.get("name"):
        item.name = _clean_name(fields["name"])
    if fields.get("category"):
        item.category = parse_category(fields["category"])
    if "barcode" in fields:
        barcode = _clean_barcode(fields["barcode"])
        _ensure_barcode_free(store_id, barcode, exclude_item_id=item.id)
        item.barcode = barcode
    if fields.get("is_available") is not None:
        item.is_available = parse_bool(fields["is_available"])
    if image_ref:
        item.image_ref = image_ref

    db.session.commit()
    return item


def delete_item(store_id: int, item_id) -> None:
    """
    Delete an item that has never been tried on.

    Try-on history is append-only, so items with history can only be made
    unavailable.
    """
    item = get_item_for_store(store_id, item_id)
    has_history = db.session.query(TryOnHistory.id).filter_by(clothing_item_id=item.id).first()
    if has_history:
        raise ConflictError("Item has try-on history; mark it unavailable instead")
    db.session.delete(item)
    db.session.commit()


def toggle_availability(store_id: int, item_id) -> ClothingItem:
    item = get_item_for_store(store_id, item_id)
    item.is_available = not item.is_available
    db.session.commit()
    return item


def list_items(store_id: int, category=None, *, available_only: bool = False) -> list[ClothingItem]:
    query = db.session.query(ClothingItem).filter(ClothingItem.store_id == store_id)
    if category:
        query = query.filter(ClothingItem.category == parse_category(category))
    if available_only:
        query = query.filter(ClothingItem.is_available.is_(True))
    return query.order_by(ClothingItem.created_at.desc(), ClothingItem.id.desc()).all()


def list_available_items(store_id: int, category=None) -> list[ClothingItem]:
    """
    Customer browsing: available items of one store.

    Needs no live session; knowing the store id is enough.
    """
    return list_items(store_id, category, available_only=True)


def find_by_barcode(store_id: int, barcode) -> ClothingItem:
    barcode = _clean_barcode(barcode)
    if barcode is None:
        raise ValidationError("Barcode is required")
    item = db.session.query(ClothingItem).filter_by(store_id=store_id, barcode=barcode).first()
    if not item:
        raise NotFound("Item not found")
    return item


def increment_try_on_count(item_id: int) -> None:
    """
    Atomic `try_on_count = try_on_count + 1` at the database.

    Does not commit; the caller owns the transaction.
    """
    db.session.execute(
        update(ClothingItem)
        .where(ClothingItem.id == item_id)
        .values(try_on_count=ClothingItem.try_on_count + 1)
        .execution_options(synchronize_session=False)
    )
