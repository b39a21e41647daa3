# backend/stylemirror/routes/system.py
"""
System health endpoint and uploaded image serving.
"""

import time

from flask import Blueprint, current_app, jsonify, send_from_directory
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    overall = "healthy" if database["status"] == "healthy" else "unhealthy"
    return jsonify({
        "status": overall,
        "database": database,
        "image_generation": "live" if current_app.config.get("GEMINI_API_KEY") else "demo",
    }), 200 if overall == "healthy" else 503


@system_bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    response = send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
    response.headers["Cache-Control"] = "public, max-age=31536000"
    return response
