"""
Top-5 list endpoints.

Public (mounted at /api/lists)
GET    ""                         - lists by position, each with its items by position
GET    /{list_id}/items           - the items of one list

Admin (mounted at /api/admin/lists)
GET / POST ""   ·   GET / PUT / PATCH / DELETE /{list_id}
POST   /{list_id}/items
PUT / PATCH / DELETE /{list_id}/items/{item_id}
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portfolio.database import get_db
from portfolio.models.database_models import TopFiveList, TopFiveListItem
from portfolio.models.schemas import (
    TopFiveListCreate,
    TopFiveListItemCreate,
    TopFiveListItemResponse,
    TopFiveListItemUpdate,
    TopFiveListResponse,
    TopFiveListUpdate,
)
from portfolio.services.content import apply_updates

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _lists_query():
    return (
        select(TopFiveList)
        .options(selectinload(TopFiveList.items))
        .execution_options(populate_existing=True)
    )


async def _all_lists(db: AsyncSession) -> List[TopFiveList]:
    result = await db.execute(_lists_query().order_by(TopFiveList.position, TopFiveList.id))
    return list(result.scalars().all())


async def _load_list_or_404(db: AsyncSession, list_id: int) -> TopFiveList:
    top_list = await db.scalar(_lists_query().where(TopFiveList.id == list_id))
    if top_list is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"List {list_id} not found.",
        )
    return top_list


async def _get_item_or_404(db: AsyncSession, list_id: int, item_id: int) -> TopFiveListItem:
    item = await db.get(TopFiveListItem, item_id)
    if item is None or item.list_id != list_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found in list {list_id}.",
        )
    return item


async def _list_items(db: AsyncSession, list_id: int) -> List[TopFiveListItem]:
    result = await db.execute(
        select(TopFiveListItem)
        .where(TopFiveListItem.list_id == list_id)
        .order_by(TopFiveListItem.position, TopFiveListItem.id)
    )
    return list(result.scalars().all())


# ═══════════════════════════════════════════════════════════════════════════════
# PUBLIC
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("", response_model=List[TopFiveListResponse])
async def list_top_five_lists(db: AsyncSession = Depends(get_db)):
    return await _all_lists(db)


@router.get("/{list_id}/items", response_model=List[TopFiveListItemResponse])
async def list_top_five_items(list_id: int, db: AsyncSession = Depends(get_db)):
    await _load_list_or_404(db, list_id)
    return await _list_items(db, list_id)


# ═══════════════════════════════════════════════════════════════════════════════
# ADMIN - LISTS
# ═══════════════════════════════════════════════════════════════════════════════

@admin_router.get("", response_model=List[TopFiveListResponse])
async def admin_list_lists(db: AsyncSession = Depends(get_db)):
    return await _all_lists(db)


@admin_router.get("/{list_id}", response_model=TopFiveListResponse)
async def admin_get_list(list_id: int, db: AsyncSession = Depends(get_db)):
    return await _load_list_or_404(db, list_id)


@admin_router.post("", response_model=TopFiveListResponse, status_code=status.HTTP_201_CREATED)
async def create_list(body: TopFiveListCreate, db: AsyncSession = Depends(get_db)):
    top_list = TopFiveList(**body.model_dump(exclude_none=True))
    db.add(top_list)
    await db.flush()

    logger.info("Created top-5 list id=%d title=%r", top_list.id, top_list.title)
    return await _load_list_or_404(db, top_list.id)


@admin_router.api_route("/{list_id}", methods=["PUT", "PATCH"], response_model=TopFiveListResponse)
async def update_list(list_id: int, body: TopFiveListUpdate, db: AsyncSession = Depends(get_db)):
    top_list = await _load_list_or_404(db, list_id)
    changes = body.model_dump(exclude_unset=True)
    apply_updates(top_list, changes, nullable=("description", "main_image"))
    await db.flush()

    logger.info("Updated top-5 list id=%d fields=%s", list_id, sorted(changes))
    return await _load_list_or_404(db, list_id)


@admin_router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_list(list_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a list and all of its items."""
    top_list = await _load_list_or_404(db, list_id)
    await db.delete(top_list)
    await db.flush()
    logger.info("Deleted top-5 list id=%d", list_id)


# ═══════════════════════════════════════════════════════════════════════════════
# ADMIN - ITEMS
# ═══════════════════════════════════════════════════════════════════════════════

@admin_router.post(
    "/{list_id}/items",
    response_model=TopFiveListItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_item(list_id: int, body: TopFiveListItemCreate, db: AsyncSession = Depends(get_db)):
    await _load_list_or_404(db, list_id)

    item = TopFiveListItem(list_id=list_id, **body.model_dump(exclude_none=True))
    db.add(item)
    await db.flush()

    logger.info("Created list item id=%d in list=%d position=%d", item.id, list_id, item.position)
    return item


@admin_router.api_route(
    "/{list_id}/items/{item_id}",
    methods=["PUT", "PATCH"],
    response_model=TopFiveListItemResponse,
)
async def update_item(
    list_id: int,
    item_id: int,
    body: TopFiveListItemUpdate,
    db: AsyncSession = Depends(get_db),
):
    item = await _get_item_or_404(db, list_id, item_id)
    changes = body.model_dump(exclude_unset=True)
    apply_updates(item, changes, nullable=("description", "link", "link_text", "image"))
    await db.flush()
    await db.refresh(item)

    logger.info("Updated list item id=%d fields=%s", item_id, sorted(changes))
    return item


@admin_router.delete("/{list_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(list_id: int, item_id: int, db: AsyncSession = Depends(get_db)):
    item = await _get_item_or_404(db, list_id, item_id)
    await db.delete(item)
    await db.flush()
    logger.info("Deleted list item id=%d from list=%d", item_id, list_id)
