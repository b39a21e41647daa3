# Overview: Service-layer operations for stores and their manager accounts.

from __future__ import annotations

from ..extensions import db
from ..errors import ValidationError, NotFound
from ..models import Store, User, UserRole
from . import audit_service, auth_service


def get_store(store_id) -> Store:
    try:
        store_id = int(store_id)
    except (TypeError, ValueError):
        raise NotFound("Store not found")
    store = db.session.get(Store, store_id)
    if not store:
        raise NotFound("Store not found")
    return store


def list_stores() -> list[Store]:
    return db.session.query(Store).order_by(Store.created_at.desc(), Store.id.desc()).all()


def get_store_manager(store_id: int) -> User | None:
    return db.session.query(User).filter_by(store_id=store_id, role=UserRole.MANAGER).first()


def create_store_with_manager(
    *,
    name,
    manager_email,
    description=None,
    created_by: str | None = None,
) -> tuple[Store, User, str]:
    """
    Create a store and its manager account in one transaction.

    The manager gets a generated temporary password (returned once) and must
    reset it at first login.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Store name is required")
    manager_email = auth_service.normalize_email(manager_email)

    temp_password = auth_service.generate_temp_password()
    try:
        store = Store(name=name, description=(description or "").strip() or None, is_active=True)
        db.session.add(store)
        db.session.flush()

        manager = auth_service.create_user(
            manager_email,
            temp_password,
            UserRole.MANAGER,
            store_id=store.id,
            must_reset_password=True,
            commit=False,
        )
        audit_service.log_usage(
            store.id,
            audit_service.STORE_CREATED,
            {"createdBy": created_by},
            commit=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return store, manager, temp_password


def toggle_status(store_id) -> Store:
    store = get_store(store_id)
    store.is_active = not store.is_active
    db.session.commit()
    return store


def reset_manager_password(store_id) -> tuple[User, str]:
    store = get_store(store_id)
    manager = get_store_manager(store.id)
    if not manager:
        raise NotFound("Store manager not found")
    temp_password = auth_service.issue_temporary_password(manager)
    return manager, temp_password
