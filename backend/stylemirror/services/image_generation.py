# Overview: Client for the external try-on image generator (Gemini generateContent).

"""
External image generation.

(subject photo, garment photo, output path) -> output path, bounded by
TRYON_TIMEOUT_SECONDS. No retries. Failures of any kind surface as
GenerationFailed; a missing API key surfaces as NotConfigured so the caller
can fall back to demo mode.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import os

import httpx
from flask import current_app

from ..errors import GenerationFailed, NotConfigured

TRY_ON_PROMPT = (
    "Create a photorealistic image of the person in the first image wearing the "
    "garment shown in the second image. Keep the person's face, body shape, pose "
    "and the background unchanged. Fit the garment naturally, preserving its "
    "colour, pattern and texture. Return only the edited image."
)


class TryOnImageGenerator:
    def __init__(
        self,
        api_key: str | None,
        *,
        model: str,
        base_url: str,
        timeout: float,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config) -> "TryOnImageGenerator":
        return cls(
            config.get("GEMINI_API_KEY"),
            model=config.get("GEMINI_MODEL", "gemini-2.5-flash-image"),
            base_url=config.get("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
            timeout=float(config.get("TRYON_TIMEOUT_SECONDS", 45)),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _inline_part(self, path: str) -> dict:
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            raise GenerationFailed("Source image is missing") from exc
        mime_type = mimetypes.guess_type(path)[0] or "image/jpeg"
        return {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(data).decode("ascii")}}

    def _build_payload(self, subject_path: str, garment_path: str) -> dict:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        self._inline_part(subject_path),
                        self._inline_part(garment_path),
                        {"text": TRY_ON_PROMPT},
                    ],
                }
            ],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }

    @staticmethod
    def _extract_image(body: dict) -> bytes:
        for candidate in body.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    try:
                        return base64.b64decode(inline["data"])
                    except (binascii.Error, ValueError) as exc:
                        raise GenerationFailed("Image generator returned corrupt data") from exc
        raise GenerationFailed("Image generator returned no image")

    def generate(self, subject_path: str, garment_path: str, output_path: str) -> str:
        if not self.is_configured:
            raise NotConfigured()

        payload = self._build_payload(subject_path, garment_path)
        url = f"{self.base_url}/models/{self.model}:generateContent"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, json=payload, headers={"x-goog-api-key": self.api_key})
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as exc:
            raise GenerationFailed("Image generation timed out") from exc
        except httpx.HTTPStatusError as exc:
            current_app.logger.warning(
                "Image generator answered %s: %s", exc.response.status_code, exc.response.text[:500]
            )
            raise GenerationFailed() from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise GenerationFailed() from exc

        image = self._extract_image(body)
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
        with open(output_path, "wb") as fh:
            fh.write(image)
        return output_path


def get_image_generator() -> TryOnImageGenerator:
    return TryOnImageGenerator.from_config(current_app.config)
