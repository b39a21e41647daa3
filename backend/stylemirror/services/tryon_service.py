# Overview: Service-layer orchestration of a try-on request.

"""
Try-On Orchestrator

requires: live customer session -> attached photo -> item of the same store
then:     external generation (or demo fallback) -> one transaction with
          history row + atomic try_on_count increment + usage log

Demo mode: with no GEMINI_API_KEY the generator raises NotConfigured and the
garment's own image stands in for the result. History, counter and usage log
are still written, so the flow behaves the same without a credential.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..errors import NoPhoto, NotConfigured, GenerationFailed, ValidationError
from ..models import ClothingItem, CustomerSession, TryOnHistory
from . import audit_service, catalog_service, customer_session_service, storage_service
from .image_generation import TryOnImageGenerator, get_image_generator

DEMO_MODE_MESSAGE = "Demo mode - image generation is not configured"


@dataclass(frozen=True)
class TryOnResult:
    history: TryOnHistory
    result_ref: str
    is_demo: bool

    def to_dict(self) -> dict:
        data = {
            "result_image_url": self.result_ref,
            "history_id": self.history.id,
            "clothing_item_id": self.history.clothing_item_id,
            "is_demo": self.is_demo,
        }
        if self.is_demo:
            data["message"] = DEMO_MODE_MESSAGE
        return data


def generate(photo_ref: str, item: ClothingItem, generator: TryOnImageGenerator) -> tuple[str, bool]:
    """
    Produce a result image reference for (photo, garment).

    Returns (result_ref, is_demo). Raises GenerationFailed on any external
    failure; NotConfigured is absorbed into demo mode.
    """
    if not item.image_ref:
        raise GenerationFailed("Clothing item has no image")

    try:
        subject_path = storage_service.resolve_ref(photo_ref)
        garment_path = storage_service.resolve_ref(item.image_ref)
    except ValidationError as exc:
        raise GenerationFailed("Source image is missing") from exc

    result_ref = storage_service.new_result_ref()
    try:
        generator.generate(subject_path, garment_path, storage_service.resolve_ref(result_ref))
    except NotConfigured:
        current_app.logger.warning(
            "Image generation not configured; returning garment image for item %s", item.id
        )
        return item.image_ref, True
    return result_ref, False


def _record(session: CustomerSession, item: ClothingItem, result_ref: str, is_demo: bool) -> TryOnHistory:
    try:
        history = TryOnHistory(
            customer_session_id=session.id,
            clothing_item_id=item.id,
            result_image_ref=result_ref,
            is_demo=is_demo,
        )
        db.session.add(history)
        catalog_service.increment_try_on_count(item.id)

        metadata = {"clothingItemId": item.id, "customerSessionId": session.id}
        if is_demo:
            metadata["mock"] = True
        audit_service.log_usage(session.store_id, audit_service.TRY_ON, metadata, commit=False)

        db.session.commit()
    except Exception:
        db.session.rollback()
        if not is_demo:
            storage_service.delete_ref(result_ref)
        raise
    return history


def request_try_on(
    session_id,
    clothing_item_id,
    *,
    generator: TryOnImageGenerator | None = None,
) -> TryOnResult:
    """
    Run one try-on for a customer session.

    Raises:
        NotFound: unknown session, or item missing / belonging to another store
        SessionExpired: session past expires_at
        NoPhoto: no photo attached yet
        GenerationFailed: external generator failed or timed out
    """
    session = customer_session_service.get_live_session(session_id)
    if not session.photo_ref:
        raise NoPhoto()

    item = catalog_service.get_item_for_store(session.store_id, clothing_item_id)

    if generator is None:
        generator = get_image_generator()

    try:
        result_ref, is_demo = generate(session.photo_ref, item, generator)
    except GenerationFailed:
        current_app.logger.exception(
            "Try-on generation failed for session %s item %s", session.id, item.id
        )
        raise

    history = _record(session, item, result_ref, is_demo)
    return TryOnResult(history=history, result_ref=result_ref, is_demo=is_demo)
