"""
About page endpoints.

Public (mounted at /api/about-me)
GET    ""               - About page content (defaults until an admin saves it)

Admin (mounted at /api/admin/about-me)
GET    ""               - same content
POST   ""               - replace the content
PUT / PATCH ""          - update some fields
POST   /upload-image    - store an image under /uploads/about, optionally
                          assigning it to ?field=hero_image|life_pictures_image

The page keeps a single AboutMeContent row, created on first save.
"""
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.models.database_models import AboutMeContent
from portfolio.models.schemas import (
    AboutImageFieldSchema,
    AboutImageUploadResponse,
    AboutMeResponse,
    AboutMeSave,
    AboutMeUpdate,
)
from portfolio.services.content import apply_updates
from portfolio.utils.uploads import ABOUT_SUBDIR, public_url, save_upload

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


async def _current(db: AsyncSession) -> Optional[AboutMeContent]:
    return await db.scalar(select(AboutMeContent).order_by(AboutMeContent.id).limit(1))


async def _current_or_new(db: AsyncSession) -> AboutMeContent:
    content = await _current(db)
    if content is None:
        content = AboutMeContent()
        db.add(content)
    return content


def _response(content: Optional[AboutMeContent]) -> AboutMeResponse:
    if content is None:
        return AboutMeResponse()
    return AboutMeResponse.model_validate(content)


@router.get("", response_model=AboutMeResponse)
async def get_about_me(db: AsyncSession = Depends(get_db)):
    return _response(await _current(db))


@admin_router.get("", response_model=AboutMeResponse)
async def admin_get_about_me(db: AsyncSession = Depends(get_db)):
    return _response(await _current(db))


@admin_router.post("", response_model=AboutMeResponse)
async def save_about_me(body: AboutMeSave, db: AsyncSession = Depends(get_db)):
    """Overwrite every field; omitted fields go back to their defaults."""
    content = await _current_or_new(db)
    for field, value in body.model_dump().items():
        setattr(content, field, value)
    await db.flush()
    await db.refresh(content)

    logger.info("Saved About page content id=%d", content.id)
    return content


@admin_router.api_route("", methods=["PUT", "PATCH"], response_model=AboutMeResponse)
async def update_about_me(body: AboutMeUpdate, db: AsyncSession = Depends(get_db)):
    content = await _current_or_new(db)
    changes = body.model_dump(exclude_unset=True)
    apply_updates(content, changes, nullable=("hero_image", "life_pictures_image"))
    await db.flush()
    await db.refresh(content)

    logger.info("Updated About page content id=%d fields=%s", content.id, sorted(changes))
    return content


@admin_router.post("/upload-image", response_model=AboutImageUploadResponse)
async def upload_about_image(
    image: UploadFile = File(...),
    field: Optional[AboutImageFieldSchema] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    stored = await save_upload(
        image,
        os.path.join(settings.UPLOAD_DIR, ABOUT_SUBDIR),
        settings.SUPPORTED_IMAGE_TYPES,
        settings.MAX_IMAGE_SIZE,
    )
    url = public_url(ABOUT_SUBDIR, stored.stored_name)

    if field is not None:
        content = await _current_or_new(db)
        setattr(content, field.value, url)
        await db.flush()
        logger.info("About page %s set to %s", field.value, url)

    return AboutImageUploadResponse(
        url=url,
        filename=stored.stored_name,
        original_name=image.filename,
        field=field,
    )
