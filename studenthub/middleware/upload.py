"""
Image upload handling.

Accepts jpg/jpeg/png/gif (by extension, case-insensitive) up to 5 MB and
stores them under UPLOAD_DIR as `<field>-<epoch ms>-<random><ext>`.
"""

import os
import random
import re
import time
from pathlib import Path

from fastapi import UploadFile

from studenthub import config
from studenthub.logging import get_logger, sanitize_string_for_logging

logger = get_logger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_EXTENSIONS = re.compile(r"\.(jpg|jpeg|png|gif)$", re.IGNORECASE)
ERROR_IMAGES_ONLY = "Only image files are allowed!"
ERROR_FILE_TOO_LARGE = "File too large. Maximum size is 5MB"


class UploadError(Exception):
    """Rejected upload; the message is safe to show to the client."""


def validate_upload(filename: str | None, size: int) -> None:
    """Raise UploadError unless the file is an allowed image within the size limit."""
    if not filename or not ALLOWED_EXTENSIONS.search(filename):
        raise UploadError(ERROR_IMAGES_ONLY)
    if size > MAX_UPLOAD_BYTES:
        raise UploadError(ERROR_FILE_TOO_LARGE)


def build_upload_filename(field: str, original: str) -> str:
    ext = os.path.splitext(original)[1]
    return f"{field}-{int(time.time() * 1000)}-{round(random.random() * 1e9)}{ext}"


def get_upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


async def save_uploads(files: list[UploadFile] | None, field: str = "images") -> list[str]:
    """
    Validate and store uploaded files.

    All files are validated before anything is written.

    Returns:
        Stored paths, relative to the working directory (e.g. `uploads/images-...jpg`)

    Raises:
        UploadError: first rejected file
    """
    if not files:
        return []

    payloads = []
    for upload in files:
        content = await upload.read()
        validate_upload(upload.filename, len(content))
        payloads.append((upload.filename, content))

    upload_dir = get_upload_dir()
    paths = []
    for original, content in payloads:
        name = build_upload_filename(field, original)
        (upload_dir / name).write_bytes(content)
        paths.append(f"{config.UPLOAD_DIR}/{name}")
        logger.debug(f"Stored upload {sanitize_string_for_logging(original)} as {name}")
    return paths


def remove_upload(path: str) -> bool:
    """Delete a stored upload; paths outside UPLOAD_DIR are left alone."""
    upload_dir = Path(config.UPLOAD_DIR).resolve()
    target = Path(path).resolve()
    if upload_dir not in target.parents:
        return False
    try:
        target.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Failed to remove upload {sanitize_string_for_logging(path)}: {e}")
        return False
    return True
