"""
Shared lookups for slugged site content (projects, blog posts, blog series).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.services.errors import ConflictError, NotFoundError
from portfolio.utils.helpers import parse_identifier, slugify

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


async def get_by_identifier(
    db: AsyncSession,
    model: Type[ModelT],
    identifier: str,
    published_only: bool = False,
) -> ModelT:
    """
    Look a row up by numeric id, falling back to slug.

    Raises:
        NotFoundError: nothing matches (or the match is unpublished and
        ``published_only`` is set).
    """
    key = parse_identifier(identifier)
    row = None
    if isinstance(key, int):
        row = await db.get(model, key)
    if row is None:
        row = await db.scalar(select(model).where(model.slug == str(key)))

    if row is None or (published_only and not getattr(row, "published", True)):
        raise NotFoundError(f"{model.__name__} {identifier!r} not found")
    return row


async def claim_slug(
    db: AsyncSession,
    model: Type[Any],
    title: str,
    slug: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> str:
    """
    Normalise *slug* (or derive it from *title*) and make sure no other row uses it.

    Raises:
        ConflictError: another row already has the slug.
    """
    candidate = slugify(slug or title)
    if not candidate:
        raise ValueError("Slug cannot be empty")

    stmt = select(model.id).where(model.slug == candidate)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if await db.scalar(stmt) is not None:
        raise ConflictError(f"Slug {candidate!r} is already in use")
    return candidate


def apply_updates(row: Any, changes: Dict[str, Any], nullable: Iterable[str] = ()) -> Any:
    """
    Copy each provided field onto the ORM row. An explicit null only clears
    fields listed in *nullable*; for any other field it is ignored.
    """
    nullable = set(nullable)
    for field, value in changes.items():
        if value is None and field not in nullable:
            continue
        setattr(row, field, value)
    return row
