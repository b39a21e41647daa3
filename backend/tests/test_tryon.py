"""
Try-on orchestration.

Verifies:
- Full flow: QR -> session -> photo -> try-on writes one history row and
  bumps the item counter by one
- Expired sessions, missing photos and cross-store items are rejected
  before anything is written
- Demo mode substitutes the garment image and still records the try-on
- Generator failures leave no history, counter change or usage log
- A failed commit rolls back all three writes and removes the result file
- Parallel try-ons from worker threads increment the counter exactly N times
"""

import base64
import json
import os
import threading
from datetime import timedelta

import httpx
import pytest
from flask import current_app

from stylemirror import create_app
from stylemirror.errors import GenerationFailed, NoPhoto, NotConfigured, NotFound, SessionExpired
from stylemirror.extensions import db
from stylemirror.models import ClothingItem, CustomerSession, Store, TryOnHistory, UsageLog
from stylemirror.services import (
    audit_service,
    catalog_service,
    customer_session_service,
    qr_service,
    storage_service,
    tryon_service,
)
from stylemirror.services.image_generation import TryOnImageGenerator
from stylemirror.time_utils import utcnow
from tests.conftest import TestConfig as BaseTestConfig, make_item, write_upload

RESULT_BYTES = b"\x89PNG generated result"


class FakeGenerator:
    """Writes a canned image and records its calls."""

    def __init__(self):
        self.calls = []

    def generate(self, subject_path, garment_path, output_path):
        self.calls.append((subject_path, garment_path, output_path))
        with open(output_path, "wb") as fh:
            fh.write(RESULT_BYTES)
        return output_path


class FailingGenerator:
    def generate(self, subject_path, garment_path, output_path):
        raise GenerationFailed("Image generation timed out")


def demo_generator():
    return TryOnImageGenerator(None, model="m", base_url="https://example.invalid", timeout=1)


def _session_for(store, *, with_photo=True) -> CustomerSession:
    grant = qr_service.issue(store.id)
    view = customer_session_service.validate(grant.token)
    if with_photo:
        photo_ref = write_upload(current_app, f"/uploads/customers/{view.session_id[:12]}.jpg")
        customer_session_service.attach_photo(view.session_id, photo_ref)
    return db.session.get(CustomerSession, view.session_id)


def _counter(item_id) -> int:
    db.session.expire_all()
    return db.session.get(ClothingItem, item_id).try_on_count


@pytest.fixture
def session_a(db_session, store_a):
    return _session_for(store_a)


@pytest.fixture
def file_backed_app(tmp_path):
    """Second app on a SQLite file, so worker threads use separate connections."""

    class FileBackedConfig(BaseTestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'tryon.sqlite3'}"

    file_app = create_app(FileBackedConfig)
    file_app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    with file_app.app_context():
        db.create_all()

    yield file_app

    with file_app.app_context():
        db.drop_all()
        db.engine.dispose()


class TestScenario:

    def test_full_flow(self, db_session, store_a, item_a, session_a):
        generator = FakeGenerator()
        result = tryon_service.request_try_on(session_a.id, item_a.id, generator=generator)

        assert result.is_demo is False
        assert result.result_ref.startswith("/uploads/results/")
        with open(storage_service.resolve_ref(result.result_ref), "rb") as fh:
            assert fh.read() == RESULT_BYTES

        subject, garment, _ = generator.calls[0]
        assert subject == storage_service.resolve_ref(session_a.photo_ref)
        assert garment == storage_service.resolve_ref(item_a.image_ref)

        history = db_session.query(TryOnHistory).all()
        assert len(history) == 1
        assert history[0].customer_session_id == session_a.id
        assert history[0].clothing_item_id == item_a.id
        assert history[0].result_image_ref == result.result_ref

        assert _counter(item_a.id) == 1
        log = db_session.query(UsageLog).filter_by(action="try_on").one()
        assert log.store_id == store_a.id
        assert log.event_metadata == {"clothingItemId": item_a.id, "customerSessionId": session_a.id}

    def test_multiple_try_ons_same_session(self, db_session, item_a, session_a):
        generator = FakeGenerator()
        for _ in range(3):
            tryon_service.request_try_on(session_a.id, item_a.id, generator=generator)
        assert db_session.query(TryOnHistory).count() == 3
        assert _counter(item_a.id) == 3


class TestPreconditions:

    def test_no_photo(self, db_session, store_a, item_a):
        session = _session_for(store_a, with_photo=False)
        generator = FakeGenerator()

        with pytest.raises(NoPhoto):
            tryon_service.request_try_on(session.id, item_a.id, generator=generator)

        assert generator.calls == []
        assert db_session.query(TryOnHistory).count() == 0
        assert _counter(item_a.id) == 0

    def test_expired_after_photo_upload(self, db_session, item_a, session_a):
        assert session_a.photo_ref
        session_a.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        with pytest.raises(SessionExpired):
            tryon_service.request_try_on(session_a.id, item_a.id, generator=FakeGenerator())
        assert db_session.query(TryOnHistory).count() == 0

    def test_cross_store_item_is_not_found(self, db_session, item_b, session_a):
        with pytest.raises(NotFound) as excinfo:
            tryon_service.request_try_on(session_a.id, item_b.id, generator=FakeGenerator())

        assert type(excinfo.value) is NotFound
        assert excinfo.value.message == "Item not found"
        assert _counter(item_b.id) == 0

    def test_cross_store_and_missing_items_look_the_same(self, db_session, item_b, session_a):
        with pytest.raises(NotFound) as cross:
            tryon_service.request_try_on(session_a.id, item_b.id, generator=FakeGenerator())
        with pytest.raises(NotFound) as missing:
            tryon_service.request_try_on(session_a.id, 999999, generator=FakeGenerator())
        assert cross.value.to_dict() == missing.value.to_dict()

    @pytest.mark.parametrize("make_id", [
        lambda item: item.id + 0.7,
        lambda item: True,
        lambda item: f"{item.id}.0",
        lambda item: [item.id],
    ])
    def test_item_id_must_be_an_integer(self, db_session, item_a, session_a, make_id):
        with pytest.raises(NotFound):
            tryon_service.request_try_on(session_a.id, make_id(item_a), generator=FakeGenerator())
        assert db_session.query(TryOnHistory).count() == 0

    def test_item_id_as_digit_string(self, db_session, item_a, session_a):
        result = tryon_service.request_try_on(session_a.id, str(item_a.id), generator=FakeGenerator())
        assert result.history.clothing_item_id == item_a.id

    def test_unknown_session(self, db_session, item_a):
        with pytest.raises(NotFound):
            tryon_service.request_try_on("nope", item_a.id, generator=FakeGenerator())


class TestDemoMode:

    def test_garment_image_substitutes_result(self, db_session, item_a, session_a):
        result = tryon_service.request_try_on(session_a.id, item_a.id, generator=demo_generator())

        assert result.is_demo is True
        assert result.result_ref == item_a.image_ref
        assert "Demo mode" in result.to_dict()["message"]

        history = db_session.query(TryOnHistory).one()
        assert history.result_image_ref == item_a.image_ref
        assert history.is_demo is True
        assert _counter(item_a.id) == 1

        log = db_session.query(UsageLog).filter_by(action="try_on").one()
        assert log.event_metadata["mock"] is True

    def test_route_runs_in_demo_mode_without_key(self, client, item_a, session_a):
        resp = client.post('/api/tryon', json={'sessionId': session_a.id, 'clothingItemId': item_a.id})
        assert resp.status_code == 200
        assert resp.json['is_demo'] is True
        assert resp.json['result_image_url'] == item_a.image_ref


class TestGenerationFailure:

    def test_failure_writes_nothing(self, db_session, item_a, session_a):
        with pytest.raises(GenerationFailed):
            tryon_service.request_try_on(session_a.id, item_a.id, generator=FailingGenerator())

        assert db_session.query(TryOnHistory).count() == 0
        assert db_session.query(UsageLog).filter_by(action="try_on").count() == 0
        assert _counter(item_a.id) == 0

    def test_route_maps_failure_to_502(self, client, monkeypatch, item_a, session_a):
        monkeypatch.setattr(tryon_service, "get_image_generator", lambda: FailingGenerator())
        resp = client.post('/api/tryon', json={'sessionId': session_a.id, 'itemId': item_a.id})
        assert resp.status_code == 502


class TestRecordingFailure:
    """History, counter and usage log commit together or not at all."""

    def test_usage_log_failure_rolls_back_everything(self, db_session, monkeypatch, item_a, session_a):
        def broken_log_usage(*args, **kwargs):
            raise RuntimeError("usage log unavailable")

        monkeypatch.setattr(audit_service, "log_usage", broken_log_usage)
        generator = FakeGenerator()

        with pytest.raises(RuntimeError):
            tryon_service.request_try_on(session_a.id, item_a.id, generator=generator)

        assert db_session.query(TryOnHistory).count() == 0
        assert db_session.query(UsageLog).filter_by(action="try_on").count() == 0
        assert _counter(item_a.id) == 0
        _, _, output_path = generator.calls[0]
        assert not os.path.exists(output_path)

    def test_demo_mode_failure_keeps_garment_image(self, db_session, monkeypatch, item_a, session_a):
        def broken_increment(item_id):
            raise RuntimeError("counter update failed")

        monkeypatch.setattr(catalog_service, "increment_try_on_count", broken_increment)

        with pytest.raises(RuntimeError):
            tryon_service.request_try_on(session_a.id, item_a.id, generator=demo_generator())

        assert db_session.query(TryOnHistory).count() == 0
        assert os.path.exists(storage_service.resolve_ref(item_a.image_ref))

    def test_route_answers_500(self, client, monkeypatch, item_a, session_a):
        def broken_log_usage(*args, **kwargs):
            raise RuntimeError("usage log unavailable")

        monkeypatch.setattr(tryon_service, "get_image_generator", lambda: FakeGenerator())
        monkeypatch.setattr(audit_service, "log_usage", broken_log_usage)

        resp = client.post('/api/tryon', json={'sessionId': session_a.id, 'clothingItemId': item_a.id})
        assert resp.status_code == 500
        assert resp.json == {'error': 'Internal server error'}


class TestCounter:

    def test_n_successful_try_ons_increment_by_n(self, db_session, store_a, item_a):
        generator = FakeGenerator()
        sessions = [_session_for(store_a) for _ in range(4)]
        for session in sessions:
            tryon_service.request_try_on(session.id, item_a.id, generator=generator)
        assert _counter(item_a.id) == 4

    def test_increment_happens_in_the_database(self, db_session, item_a):
        # Both updates are computed by the database, not from the loaded value
        stale = db_session.get(ClothingItem, item_a.id)
        assert stale.try_on_count == 0
        catalog_service.increment_try_on_count(item_a.id)
        catalog_service.increment_try_on_count(item_a.id)
        db_session.commit()
        assert _counter(item_a.id) == 2

    def test_concurrent_try_ons_increment_by_n(self, file_backed_app):
        workers = 8
        with file_backed_app.app_context():
            store = Store(name="Concurrency Store", is_active=True)
            db.session.add(store)
            db.session.commit()
            item_id = make_item(file_backed_app, store).id
            session_ids = [_session_for(store).id for _ in range(workers)]

        generator = FakeGenerator()
        barrier = threading.Barrier(workers)
        errors = []

        def try_on(session_id):
            try:
                with file_backed_app.app_context():
                    barrier.wait(timeout=10)
                    tryon_service.request_try_on(session_id, item_id, generator=generator)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=try_on, args=(sid,)) for sid in session_ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        with file_backed_app.app_context():
            assert db.session.get(ClothingItem, item_id).try_on_count == workers
            assert db.session.query(TryOnHistory).count() == workers
            assert db.session.query(UsageLog).filter_by(action="try_on").count() == workers


class TestRoutes:

    def test_missing_fields(self, client, db_session):
        assert client.post('/api/tryon', json={'sessionId': 'abc'}).status_code == 400

    def test_no_photo_message(self, client, db_session, store_a, item_a):
        session = _session_for(store_a, with_photo=False)
        resp = client.post('/api/tryon', json={'sessionId': session.id, 'clothingItemId': item_a.id})
        assert resp.status_code == 400
        assert resp.json['error'] == "Please upload a photo first"

    def test_expired_session(self, client, db_session, item_a, session_a):
        session_a.expires_at = utcnow() - timedelta(minutes=5)
        db_session.commit()
        resp = client.post('/api/tryon', json={'sessionId': session_a.id, 'clothingItemId': item_a.id})
        assert resp.status_code == 401
        assert resp.json['expired'] is True

    def test_cross_store_item(self, client, item_b, session_a):
        resp = client.post('/api/tryon', json={'sessionId': session_a.id, 'clothingItemId': item_b.id})
        assert resp.status_code == 404

    def test_fractional_item_id(self, client, item_a, session_a):
        resp = client.post('/api/tryon', json={'sessionId': session_a.id, 'clothingItemId': item_a.id + 0.7})
        assert resp.status_code == 404

    def test_history(self, client, item_a, session_a):
        client.post('/api/tryon', json={'sessionId': session_a.id, 'clothingItemId': item_a.id})
        resp = client.get(f'/api/customer-sessions/{session_a.id}/history')
        assert resp.status_code == 200
        assert len(resp.json) == 1
        assert resp.json[0]['clothing_item_id'] == item_a.id


class TestImageGenerator:

    @pytest.fixture
    def sources(self, app):
        subject = storage_service.resolve_ref(write_upload(app, "/uploads/customers/subject.jpg", b"subject"))
        garment = storage_service.resolve_ref(write_upload(app, "/uploads/clothing/garment.png", b"garment"))
        output = storage_service.resolve_ref("/uploads/results/out.png")
        return subject, garment, output

    def _generator(self, handler):
        return TryOnImageGenerator(
            "test-key",
            model="gemini-test",
            base_url="https://gemini.example.com/v1beta",
            timeout=5,
            transport=httpx.MockTransport(handler),
        )

    def test_success_writes_output(self, app, sources):
        subject, garment, output = sources
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [
                    {"text": "here you go"},
                    {"inlineData": {"mimeType": "image/png", "data": base64.b64encode(RESULT_BYTES).decode()}},
                ]}}],
            })

        assert self._generator(handler).generate(subject, garment, output) == output
        with open(output, "rb") as fh:
            assert fh.read() == RESULT_BYTES

        assert seen["url"] == "https://gemini.example.com/v1beta/models/gemini-test:generateContent"
        assert seen["key"] == "test-key"
        parts = seen["body"]["contents"][0]["parts"]
        assert base64.b64decode(parts[0]["inline_data"]["data"]) == b"subject"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == b"garment"
        assert parts[1]["inline_data"]["mime_type"] == "image/png"

    def test_timeout(self, app, sources):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(GenerationFailed, match="timed out"):
            self._generator(handler).generate(*sources)

    def test_error_status(self, app, sources):
        with pytest.raises(GenerationFailed):
            self._generator(lambda request: httpx.Response(500, text="boom")).generate(*sources)

    def test_response_without_image(self, app, sources):
        body = {"candidates": [{"content": {"parts": [{"text": "I cannot do that"}]}}]}
        with pytest.raises(GenerationFailed, match="no image"):
            self._generator(lambda request: httpx.Response(200, json=body)).generate(*sources)

    def test_missing_source_file(self, app, sources):
        _, garment, output = sources
        with pytest.raises(GenerationFailed):
            self._generator(lambda request: httpx.Response(200)).generate("/nope.jpg", garment, output)

    def test_not_configured(self, app, sources):
        with pytest.raises(NotConfigured):
            demo_generator().generate(*sources)
