# Overview: Read-only aggregate counts for owner and manager dashboards.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Store, ClothingItem, CustomerSession
from . import audit_service


def store_stats(store_id: int) -> dict:
    clothing_count = db.session.query(func.count(ClothingItem.id)).filter(
        ClothingItem.store_id == store_id
    ).scalar()
    available_count = db.session.query(func.count(ClothingItem.id)).filter(
        ClothingItem.store_id == store_id,
        ClothingItem.is_available.is_(True),
    ).scalar()
    try_on_count = db.session.query(func.coalesce(func.sum(ClothingItem.try_on_count), 0)).filter(
        ClothingItem.store_id == store_id
    ).scalar()
    session_count = db.session.query(func.count(CustomerSession.id)).filter(
        CustomerSession.store_id == store_id
    ).scalar()

    return {
        "clothing_count": clothing_count or 0,
        "available_count": available_count or 0,
        "try_on_count": int(try_on_count or 0),
        "session_count": session_count or 0,
    }


def global_stats() -> dict:
    return {
        "total_stores": db.session.query(func.count(Store.id)).scalar() or 0,
        "total_api_calls": audit_service.count_actions(audit_service.TRY_ON),
        "total_sessions": db.session.query(func.count(CustomerSession.id)).scalar() or 0,
        "total_clothing_items": db.session.query(func.count(ClothingItem.id)).scalar() or 0,
    }
