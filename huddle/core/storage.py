"""Local disk storage for uploaded files."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final
from uuid import uuid4

from fastapi import UploadFile

from huddle.config import get_settings
from huddle.core.errors import FileNotFound, InvalidInput, PayloadTooLarge

settings = get_settings()

logger = logging.getLogger(__name__)

_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB


@dataclass(slots=True)
class StoredFile:
    """Represents a file persisted by the storage backend."""

    file_name: str
    content_type: str
    file_size: int
    absolute_path: Path
    relative_path: str


def _media_root() -> Path:
    root = settings.media_root
    root.mkdir(parents=True, exist_ok=True)
    return root


def _normalise_content_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


async def store_upload(user_id: int, upload: UploadFile) -> StoredFile:
    """Persist an uploaded file and return its storage metadata."""

    content_type = _normalise_content_type(upload.content_type)
    if content_type not in settings.allowed_upload_types:
        await upload.close()
        logger.warning("Rejected upload with content type %r from user %s", content_type, user_id)
        raise InvalidInput(f"File type {content_type or 'unknown'} is not allowed")

    target_dir = _media_root() / f"user_{user_id}"
    target_dir.mkdir(parents=True, exist_ok=True)

    original_name = Path(upload.filename or "upload.bin").name
    extension = Path(original_name).suffix
    file_name = f"{uuid4().hex}{extension}"
    absolute_path = target_dir / file_name

    total_size = 0
    try:
        with absolute_path.open("wb") as buffer:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > settings.max_upload_size:
                    raise PayloadTooLarge("File exceeds allowed size")
                buffer.write(chunk)
    except PayloadTooLarge:
        logger.warning("Rejected oversized upload from user %s", user_id)
        if absolute_path.exists():
            absolute_path.unlink()
        raise
    finally:
        await upload.close()

    relative_path = os.path.relpath(absolute_path, _media_root())
    return StoredFile(
        file_name=original_name,
        content_type=content_type,
        file_size=total_size,
        absolute_path=absolute_path,
        relative_path=relative_path,
    )


def resolve_path(relative_path: str) -> Path:
    """Return an absolute path for a stored file relative path."""

    root = _media_root().resolve()
    candidate = (root / relative_path).resolve()
    if not candidate.is_relative_to(root):
        raise InvalidInput("Invalid file path")
    if not candidate.is_file():
        raise FileNotFound()
    return candidate


def remove_stored(relative_path: str) -> None:
    """Delete a stored object, ignoring files that are already gone."""

    try:
        resolve_path(relative_path).unlink()
    except FileNotFound:
        logger.debug("Stored file %s already removed", relative_path)


def build_download_url(file_id: int) -> str:
    """Construct a relative download URL for a stored file."""

    base = settings.media_base_url.rstrip("/")
    return f"{base}/{file_id}/download"
