"""
Hand-off of uploaded files to the asset store.

The store is the configured UPLOAD_FOLDER; callers only keep the returned
reference and never read the file back.
"""
from __future__ import annotations

import os
import uuid
import logging

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


def has_file(file: FileStorage | None) -> bool:
    return file is not None and bool(file.filename)


def store_upload(file: FileStorage, kind: str) -> str:
    """Save ``file`` under UPLOAD_FOLDER/<kind>/ and return its reference."""
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], kind)
    os.makedirs(folder, exist_ok=True)
    name = secure_filename(file.filename or "") or "upload"
    path = os.path.join(folder, f"{uuid.uuid4().hex}-{name}")
    file.save(path)
    logger.info("Stored %s upload at %s", kind, path)
    return path


def discard_upload(path: str | None) -> None:
    """Remove a stored upload whose owning record was never committed."""
    if path and os.path.exists(path):
        os.remove(path)
        logger.info("Discarded upload %s", path)
