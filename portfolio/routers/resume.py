"""
Resume endpoints.

Public (mounted at /api/resume)
GET    /status      - whether an active resume exists
POST   /download    - password-gated PDF download

Admin (mounted at /api/admin/resume)
GET    ""           - active resume metadata
POST   /upload      - replace the resume (PDF only)

At most one ResumeContent row exists after an upload; earlier rows and their
files are removed.
"""
import logging
import os
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.models.database_models import ResumeContent
from portfolio.models.schemas import ResumeDownloadRequest, ResumeResponse, ResumeStatusResponse
from portfolio.utils.uploads import safe_remove, save_upload

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()

RESUME_SUBDIR = "resume"

# Resume files are never served statically
DOWNLOAD_URL = "/api/resume/download"


async def _active_resume(db: AsyncSession) -> Optional[ResumeContent]:
    return await db.scalar(select(ResumeContent).where(ResumeContent.is_active.is_(True)))


# ═══════════════════════════════════════════════════════════════════════════════
# PUBLIC
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/status", response_model=ResumeStatusResponse)
async def resume_status(db: AsyncSession = Depends(get_db)):
    resume = await _active_resume(db)
    if resume is None:
        return ResumeStatusResponse(available=False)
    return ResumeStatusResponse(
        available=True,
        original_name=resume.original_name,
        uploaded_at=resume.uploaded_at,
    )


@router.post("/download")
async def download_resume(body: ResumeDownloadRequest, db: AsyncSession = Depends(get_db)):
    """Return the active resume PDF when the shared password matches."""
    if not secrets.compare_digest(body.password, settings.RESUME_DOWNLOAD_PASSWORD):
        logger.warning("Resume download rejected: wrong password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password.",
        )

    resume = await _active_resume(db)
    if resume is None or not os.path.exists(resume.file_path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No resume is available.",
        )

    logger.info("Serving resume id=%d", resume.id)
    return FileResponse(
        resume.file_path,
        media_type="application/pdf",
        filename=resume.original_name,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# ADMIN
# ═══════════════════════════════════════════════════════════════════════════════

@admin_router.get("", response_model=ResumeResponse)
async def get_resume(db: AsyncSession = Depends(get_db)):
    resume = await _active_resume(db)
    if resume is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No resume has been uploaded.",
        )
    return resume


@admin_router.post("/upload", response_model=ResumeResponse, status_code=status.HTTP_201_CREATED)
async def upload_resume(file: UploadFile = File(...), db: AsyncSession = Depends(get_db)):
    """
    Upload a new resume PDF.

    - Max file size: MAX_RESUME_SIZE
    - The previous resume row and its file are deleted once the new one is stored
    """
    stored = await save_upload(
        file,
        os.path.join(settings.UPLOAD_DIR, RESUME_SUBDIR),
        [".pdf"],
        settings.MAX_RESUME_SIZE,
    )

    try:
        result = await db.execute(select(ResumeContent))
        previous = list(result.scalars().all())
        for old in previous:
            await db.delete(old)
        await db.flush()

        resume = ResumeContent(
            filename=stored.stored_name,
            original_name=file.filename,
            file_path=stored.path,
            url=DOWNLOAD_URL,
            size=stored.size,
            is_active=True,
        )
        db.add(resume)
        await db.flush()
        # Old files go only once the replacement row is durable
        await db.commit()
    except Exception:
        safe_remove(stored.path)
        raise

    for old in previous:
        safe_remove(old.file_path)

    logger.info(
        "Created resume id=%d name=%r (%d bytes), replaced %d previous",
        resume.id, resume.original_name, resume.size, len(previous),
    )
    return resume
