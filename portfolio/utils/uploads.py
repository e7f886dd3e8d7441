"""
Streaming upload helpers shared by the media, resume and document routes.
"""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Iterable, NamedTuple

import aiofiles
from fastapi import HTTPException, UploadFile, status

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 1024 * 1024  # 1 MB slices

PROJECTS_SUBDIR = "projects"
ABOUT_SUBDIR = "about"

# Served under /uploads/<subdir>; resume and chatbot document folders stay private
PUBLIC_MEDIA_SUBDIRS = (PROJECTS_SUBDIR, ABOUT_SUBDIR)


class StoredFile(NamedTuple):
    stored_name: str
    path: str
    size: int
    extension: str


def safe_remove(path: str) -> None:
    try:
        if path and os.path.exists(path):
            os.remove(path)
    except Exception as exc:
        logger.warning("Could not remove file %r: %s", path, exc)


def validate_extension(filename: str, allowed: Iterable[str]) -> str:
    """Return the lower-cased extension or raise 400 if it is not allowed."""
    allowed = list(allowed)
    ext = Path(filename).suffix.lower()
    if ext not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '{ext}'. Accepted: {', '.join(allowed)}",
        )
    return ext


async def save_upload(
    file: UploadFile,
    dest_dir: str,
    allowed: Iterable[str],
    max_size: int,
) -> StoredFile:
    """
    Stream *file* into *dest_dir* under a UUID name while enforcing *max_size*.

    Raises:
        HTTPException 400: missing filename or disallowed extension.
        HTTPException 413: the file is larger than *max_size*.
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must include a filename.",
        )
    ext = validate_extension(file.filename, allowed)

    os.makedirs(dest_dir, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}{ext}"
    file_path = os.path.join(dest_dir, stored_name)
    size = 0

    try:
        async with aiofiles.open(file_path, "wb") as out:
            while True:
                chunk = await file.read(READ_CHUNK_BYTES)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"File exceeds the {max_size // (1024 * 1024)} MB size limit.",
                    )
                await out.write(chunk)
    except Exception:
        safe_remove(file_path)
        raise

    logger.info("Saved %r → %s (%s bytes)", file.filename, file_path, f"{size:,}")
    return StoredFile(stored_name=stored_name, path=file_path, size=size, extension=ext)


def public_url(*parts: str) -> str:
    """URL under the ``/uploads`` static mount."""
    return "/uploads/" + "/".join(p.strip("/") for p in parts)
