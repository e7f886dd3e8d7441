"""
Home page carousel endpoints.

Public (mounted at /api/carousel-images)
GET    ""   - visible images ordered by position

Admin (mounted at /api/admin/carousel-images)
GET / POST ""   ·   GET / PUT / PATCH / DELETE /{image_id}
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db
from portfolio.models.database_models import CarouselImage
from portfolio.models.schemas import (
    CarouselImageCreate,
    CarouselImageResponse,
    CarouselImageUpdate,
)
from portfolio.services.content import apply_updates

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


async def _get_image_or_404(db: AsyncSession, image_id: int) -> CarouselImage:
    image = await db.get(CarouselImage, image_id)
    if image is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Carousel image {image_id} not found.",
        )
    return image


@router.get("", response_model=List[CarouselImageResponse])
async def list_visible_images(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(CarouselImage)
        .where(CarouselImage.is_visible.is_(True))
        .order_by(CarouselImage.position, CarouselImage.id)
    )
    return result.scalars().all()


@admin_router.get("", response_model=List[CarouselImageResponse])
async def list_all_images(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(CarouselImage).order_by(CarouselImage.position, CarouselImage.id))
    return result.scalars().all()


@admin_router.get("/{image_id}", response_model=CarouselImageResponse)
async def get_image(image_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_image_or_404(db, image_id)


@admin_router.post("", response_model=CarouselImageResponse, status_code=status.HTTP_201_CREATED)
async def create_image(body: CarouselImageCreate, db: AsyncSession = Depends(get_db)):
    image = CarouselImage(**body.model_dump(exclude_none=True))
    db.add(image)
    await db.flush()

    logger.info("Created carousel image id=%d position=%d", image.id, image.position)
    return image


@admin_router.api_route("/{image_id}", methods=["PUT", "PATCH"], response_model=CarouselImageResponse)
async def update_image(image_id: int, body: CarouselImageUpdate, db: AsyncSession = Depends(get_db)):
    image = await _get_image_or_404(db, image_id)
    changes = body.model_dump(exclude_unset=True)
    apply_updates(image, changes, nullable=("caption", "alt_text"))
    await db.flush()
    await db.refresh(image)

    logger.info("Updated carousel image id=%d fields=%s", image_id, sorted(changes))
    return image


@admin_router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image(image_id: int, db: AsyncSession = Depends(get_db)):
    image = await _get_image_or_404(db, image_id)
    await db.delete(image)
    await db.flush()
    logger.info("Deleted carousel image id=%d", image_id)
