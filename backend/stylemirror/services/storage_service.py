# Overview: Service-layer operations for image files stored under UPLOAD_FOLDER.

"""
Images are shared between entities by reference. A reference is the public
URL path of the file, e.g. "/uploads/customers/1718000000000-3f2a9c1d.jpg",
which maps onto UPLOAD_FOLDER/customers/<name>.
"""

from __future__ import annotations

import os
import secrets
import time

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import ValidationError

URL_PREFIX = "/uploads"

CLOTHING_DIR = "clothing"
CUSTOMER_DIR = "customers"
RESULT_DIR = "results"

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}


def upload_root() -> str:
    return current_app.config["UPLOAD_FOLDER"]


def ensure_upload_dirs() -> None:
    for subdir in (CLOTHING_DIR, CUSTOMER_DIR, RESULT_DIR):
        os.makedirs(os.path.join(upload_root(), subdir), exist_ok=True)


def _unique_name(extension: str) -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{extension}"


def _extension_of(filename: str) -> str:
    name = secure_filename(filename or "")
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def save_upload(file: FileStorage | None, subdir: str) -> str:
    """Persist an uploaded image and return its reference."""
    if file is None or not file.filename:
        raise ValidationError("No image uploaded")

    extension = _extension_of(file.filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported image type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    if file.mimetype and not file.mimetype.startswith("image/"):
        raise ValidationError("File must be an image")

    ensure_upload_dirs()
    filename = _unique_name(extension)
    file.save(os.path.join(upload_root(), subdir, filename))
    return f"{URL_PREFIX}/{subdir}/{filename}"


def new_result_ref(extension: str = "png") -> str:
    ensure_upload_dirs()
    return f"{URL_PREFIX}/{RESULT_DIR}/result-{_unique_name(extension)}"


def resolve_ref(ref: str) -> str:
    """
    Map a reference to its absolute path under UPLOAD_FOLDER.

    Raises ValidationError for references outside the uploads tree.
    """
    if not ref or not ref.startswith(URL_PREFIX + "/"):
        raise ValidationError("Invalid file reference")

    root = os.path.abspath(upload_root())
    relative = ref[len(URL_PREFIX) + 1:]
    path = os.path.abspath(os.path.join(root, relative))
    if os.path.commonpath([root, path]) != root:
        raise ValidationError("Invalid file reference")
    return path


def delete_ref(ref: str | None) -> bool:
    """Remove the file behind a reference. Returns False if it was already gone."""
    if not ref:
        return False
    path = resolve_ref(ref)
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True
