# backend/stylemirror/config.py
from __future__ import annotations
import os


def _split_origins(value: str | None) -> set[str]:
    if not value:
        return {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
    return {origin.strip() for origin in value.split(",") if origin.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Staff bearer tokens are signed with this key (HS256)
    JWT_SECRET_KEY = (
        os.environ.get("JWT_SECRET_KEY")
        or os.environ.get("SESSION_SECRET")
        or SECRET_KEY
    )
    JWT_ALGORITHM = "HS256"

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stylemirror.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Garment, customer and result images live under this folder
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.abspath("uploads"))
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    # Image generation. Without an API key try-ons run in demo mode.
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or None
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash-image")
    GEMINI_BASE_URL = os.environ.get(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    )
    TRYON_TIMEOUT_SECONDS = float(os.environ.get("TRYON_TIMEOUT_SECONDS", "45"))

    # Base of the URL encoded into QR codes; defaults to the request host
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL") or None

    CORS_ORIGINS = _split_origins(os.environ.get("CORS_ORIGINS"))
