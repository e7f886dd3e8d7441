"""
Project media upload endpoint (mounted at /api/admin).

POST /upload - up to MAX_FILES_PER_UPLOAD images/videos, saved under
UPLOAD_DIR/projects and served from /uploads/projects/<name>.
"""
import logging
import os
from typing import List

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from portfolio.config import settings
from portfolio.models.schemas import UploadedFile, UploadResponse
from portfolio.utils.uploads import PROJECTS_SUBDIR, public_url, safe_remove, save_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_media(files: List[UploadFile] = File(...)) -> UploadResponse:
    """
    Save project images and videos.

    Either every file is stored or none is: a failure on one file removes
    the ones already written by this request.
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files were uploaded.",
        )
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.MAX_FILES_PER_UPLOAD} files can be uploaded at once.",
        )

    dest_dir = os.path.join(settings.UPLOAD_DIR, PROJECTS_SUBDIR)
    saved: List[UploadedFile] = []
    written: List[str] = []

    try:
        for upload in files:
            stored = await save_upload(
                upload, dest_dir, settings.SUPPORTED_IMAGE_TYPES, settings.MAX_IMAGE_SIZE
            )
            written.append(stored.path)
            saved.append(
                UploadedFile(
                    filename=stored.stored_name,
                    original_name=upload.filename,
                    url=public_url(PROJECTS_SUBDIR, stored.stored_name),
                    size=stored.size,
                    content_type=upload.content_type,
                )
            )
    except Exception:
        for path in written:
            safe_remove(path)
        raise

    logger.info("Uploaded %d media file(s) to %s", len(saved), dest_dir)
    return UploadResponse(files=saved, urls=[f.url for f in saved])
