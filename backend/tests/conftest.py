"""
Pytest fixtures for StyleMirror backend tests.

Provides an in-memory database, a temporary uploads folder, two isolated
stores (tenants) with their managers, a company owner, and bearer headers.
"""

import os

import pytest

from stylemirror import create_app
from stylemirror.config import Config
from stylemirror.extensions import db
from stylemirror.models import Store, ClothingItem, ClothingCategory, UserRole
from stylemirror.services import auth_service, token_service


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-jwt-secret"
    GEMINI_API_KEY = None
    PUBLIC_BASE_URL = "https://tryon.example.com"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app(TestConfig)
    app.config["UPLOAD_FOLDER"] = str(tmp_path_factory.mktemp("uploads"))

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store_a(db_session):
    """Store A (first tenant)."""
    store = Store(name="Store A - Downtown", description="Flagship", is_active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session):
    """Store B (second tenant)."""
    store = Store(name="Store B - Uptown", is_active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def owner(db_session):
    return auth_service.create_user("owner@stylemirror.com", "owner-pass", UserRole.OWNER)


@pytest.fixture(scope='function')
def manager_a(db_session, store_a):
    return auth_service.create_user(
        "manager_a@stylemirror.com", "manager-pass", UserRole.MANAGER, store_id=store_a.id
    )


@pytest.fixture(scope='function')
def manager_b(db_session, store_b):
    return auth_service.create_user(
        "manager_b@stylemirror.com", "manager-pass", UserRole.MANAGER, store_id=store_b.id
    )


def write_upload(app, ref: str, content: bytes = b"\x89PNG fake image bytes") -> str:
    """Create the file behind an uploads reference and return the reference."""
    relative = ref[len("/uploads/"):]
    path = os.path.join(app.config["UPLOAD_FOLDER"], relative)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(content)
    return ref


def make_item(app, store, *, name="Linen Shirt", category=ClothingCategory.SHIRTS,
              barcode=None, is_available=True, image_name=None) -> ClothingItem:
    image_ref = write_upload(app, f"/uploads/clothing/{image_name or f'{store.id}-{name}.png'}")
    item = ClothingItem(
        store_id=store.id,
        name=name,
        category=category,
        barcode=barcode,
        image_ref=image_ref,
        is_available=is_available,
        try_on_count=0,
    )
    db.session.add(item)
    db.session.commit()
    return item


@pytest.fixture(scope='function')
def item_a(app, db_session, store_a):
    return make_item(app, store_a, barcode="A-0001")


@pytest.fixture(scope='function')
def item_b(app, db_session, store_b):
    return make_item(app, store_b, name="Wool Coat", category=ClothingCategory.JACKETS, barcode="A-0001")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(owner):
    return auth_headers(token_service.create_access_token(owner))


@pytest.fixture(scope='function')
def manager_a_headers(manager_a):
    return auth_headers(token_service.create_access_token(manager_a))


@pytest.fixture(scope='function')
def manager_b_headers(manager_b):
    return auth_headers(token_service.create_access_token(manager_b))
