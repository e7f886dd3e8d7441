"""
Blog post and blog series endpoints.

Public (mounted at /api/blog)
GET    ""                      - published posts, newest first
GET    /series                 - all series with their post counts
GET    /series/{identifier}    - series by id or slug with its published posts
GET    /{identifier}           - published post by id or slug

Admin posts (mounted at /api/admin/blog)
GET / POST ""   ·   GET / PUT / PATCH / DELETE /{post_id}
POST   /import             - parse a Markdown file into an unsaved draft
GET    /{post_id}/export   - download a post as Markdown

Admin series (mounted at /api/admin/blog-series)
GET / POST ""   ·   GET / PUT / PATCH / DELETE /{series_id}

Posts inside a series are ordered by ``series_position`` (nulls last), then id.
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.models.database_models import BlogPost, BlogSeries
from portfolio.models.schemas import (
    BlogMarkdownImportResponse,
    BlogPostCreate,
    BlogPostResponse,
    BlogPostUpdate,
    BlogSeriesCreate,
    BlogSeriesDetailResponse,
    BlogSeriesResponse,
    BlogSeriesUpdate,
)
from portfolio.services.content import apply_updates, claim_slug, get_by_identifier
from portfolio.services.errors import ConflictError, NotFoundError
from portfolio.services.markdown import parse_markdown_post, post_to_markdown
from portfolio.utils.helpers import estimate_read_time, strip_html
from portfolio.utils.uploads import validate_extension

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()
series_admin_router = APIRouter()

MARKDOWN_EXTENSIONS = [".md", ".markdown", ".txt"]


# ─── Helpers ──────────────────────────────────────────────────────────────────

async def _slug_or_409(db: AsyncSession, model, title: str, slug, exclude_id=None) -> str:
    try:
        return await claim_slug(db, model, title, slug, exclude_id=exclude_id)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


async def _get_post_or_404(db: AsyncSession, post_id: int) -> BlogPost:
    post = await db.get(BlogPost, post_id)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Blog post {post_id} not found.",
        )
    return post


async def _get_series_or_404(db: AsyncSession, series_id: int) -> BlogSeries:
    series = await db.get(BlogSeries, series_id)
    if series is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Blog series {series_id} not found.",
        )
    return series


async def _ensure_series_exists(db: AsyncSession, series_id: Optional[int]) -> None:
    if series_id is not None:
        await _get_series_or_404(db, series_id)


async def _series_posts(db: AsyncSession, series_id: int, published_only: bool) -> List[BlogPost]:
    stmt = select(BlogPost).where(BlogPost.series_id == series_id)
    if published_only:
        stmt = stmt.where(BlogPost.published.is_(True))
    stmt = stmt.order_by(
        BlogPost.series_position.is_(None),
        BlogPost.series_position,
        BlogPost.id,
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _post_counts(db: AsyncSession) -> Dict[int, int]:
    rows = await db.execute(
        select(BlogPost.series_id, func.count(BlogPost.id))
        .where(BlogPost.series_id.is_not(None))
        .group_by(BlogPost.series_id)
    )
    return {series_id: count for series_id, count in rows.all()}


def _series_response(series: BlogSeries, post_count: int) -> BlogSeriesResponse:
    return BlogSeriesResponse(
        id=series.id,
        title=series.title,
        slug=series.slug,
        description=series.description,
        cover_image=series.cover_image,
        post_count=post_count,
        created_at=series.created_at,
        updated_at=series.updated_at,
    )


def _series_detail(series: BlogSeries, posts: List[BlogPost]) -> BlogSeriesDetailResponse:
    return BlogSeriesDetailResponse(
        **_series_response(series, len(posts)).model_dump(),
        posts=[BlogPostResponse.model_validate(p) for p in posts],
    )


# ═══════════════════════════════════════════════════════════════════════════════
# PUBLIC
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("", response_model=List[BlogPostResponse])
async def list_published_posts(db: AsyncSession = Depends(get_db)):
    """Published posts, newest first."""
    result = await db.execute(
        select(BlogPost)
        .where(BlogPost.published.is_(True))
        .order_by(BlogPost.date.desc(), BlogPost.id.desc())
    )
    return result.scalars().all()


@router.get("/series", response_model=List[BlogSeriesResponse])
async def list_series(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(BlogSeries).order_by(BlogSeries.title, BlogSeries.id))
    counts = await _post_counts(db)
    return [_series_response(s, counts.get(s.id, 0)) for s in result.scalars().all()]


@router.get("/series/{identifier}", response_model=BlogSeriesDetailResponse)
async def get_series(identifier: str, db: AsyncSession = Depends(get_db)):
    """A series with its published posts in reading order."""
    try:
        series = await get_by_identifier(db, BlogSeries, identifier)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Blog series {identifier!r} not found.",
        )
    posts = await _series_posts(db, series.id, published_only=True)
    return _series_detail(series, posts)


@router.get("/{identifier}", response_model=BlogPostResponse)
async def get_published_post(identifier: str, db: AsyncSession = Depends(get_db)):
    try:
        return await get_by_identifier(db, BlogPost, identifier, published_only=True)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Blog post {identifier!r} not found.",
        )


# ═══════════════════════════════════════════════════════════════════════════════
# ADMIN - POSTS
# ═══════════════════════════════════════════════════════════════════════════════

@admin_router.get("", response_model=List[BlogPostResponse])
async def list_all_posts(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(BlogPost).order_by(BlogPost.date.desc(), BlogPost.id.desc()))
    return result.scalars().all()


@admin_router.get("/{post_id}", response_model=BlogPostResponse)
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_post_or_404(db, post_id)


@admin_router.post("", response_model=BlogPostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(body: BlogPostCreate, db: AsyncSession = Depends(get_db)):
    """Create a post. ``read_time`` is estimated from the content when omitted."""
    await _ensure_series_exists(db, body.series_id)

    data = body.model_dump(exclude_none=True)
    data["slug"] = await _slug_or_409(db, BlogPost, body.title, body.slug)
    if body.read_time is None:
        data["read_time"] = estimate_read_time(strip_html(body.content))

    post = BlogPost(**data)
    db.add(post)
    await db.flush()

    logger.info(
        "Created blog post id=%d slug=%r series=%s position=%s",
        post.id, post.slug, post.series_id, post.series_position,
    )
    return post


@admin_router.api_route("/{post_id}", methods=["PUT", "PATCH"], response_model=BlogPostResponse)
async def update_post(post_id: int, body: BlogPostUpdate, db: AsyncSession = Depends(get_db)):
    post = await _get_post_or_404(db, post_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("slug"):
        changes["slug"] = await _slug_or_409(db, BlogPost, post.title, changes["slug"], exclude_id=post.id)
    if changes.get("series_id") is not None:
        await _ensure_series_exists(db, changes["series_id"])
    if changes.get("content") is not None and "read_time" not in changes:
        changes["read_time"] = estimate_read_time(strip_html(changes["content"]))

    apply_updates(post, changes, nullable=("category", "series_id", "series_position"))
    await db.flush()
    await db.refresh(post)

    logger.info("Updated blog post id=%d fields=%s", post.id, sorted(changes))
    return post


@admin_router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: int, db: AsyncSession = Depends(get_db)):
    post = await _get_post_or_404(db, post_id)
    await db.delete(post)
    await db.flush()
    logger.info("Deleted blog post id=%d", post_id)


@admin_router.post("/import", response_model=BlogMarkdownImportResponse)
async def import_markdown(markdown: UploadFile = File(...)) -> BlogMarkdownImportResponse:
    """
    Parse an uploaded Markdown file (YAML front matter + body) into a post
    draft. Nothing is saved; the draft is meant for POST /api/admin/blog.
    """
    validate_extension(markdown.filename or "", MARKDOWN_EXTENSIONS)
    raw = await markdown.read()
    if len(raw) > settings.MAX_DOCUMENT_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Markdown file is too large.",
        )
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Markdown file must be UTF-8 text.",
        )

    try:
        draft = parse_markdown_post(text)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid front matter: {exc.error_count()} field(s) rejected.",
        )

    logger.info("Parsed markdown %r into draft slug=%r", markdown.filename, draft.slug)
    return BlogMarkdownImportResponse(message="Markdown imported successfully", data=draft)


@admin_router.get("/{post_id}/export")
async def export_markdown(post_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    """Download a post as a Markdown file with YAML front matter."""
    post = await _get_post_or_404(db, post_id)
    return Response(
        content=post_to_markdown(post),
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{post.slug}.md"'},
    )


# ═══════════════════════════════════════════════════════════════════════════════
# ADMIN - SERIES
# ═══════════════════════════════════════════════════════════════════════════════

@series_admin_router.get("", response_model=List[BlogSeriesResponse])
async def admin_list_series(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(BlogSeries).order_by(BlogSeries.created_at.desc(), BlogSeries.id.desc()))
    counts = await _post_counts(db)
    return [_series_response(s, counts.get(s.id, 0)) for s in result.scalars().all()]


@series_admin_router.get("/{series_id}", response_model=BlogSeriesDetailResponse)
async def admin_get_series(series_id: int, db: AsyncSession = Depends(get_db)):
    """A series with every post that references it, drafts included."""
    series = await _get_series_or_404(db, series_id)
    posts = await _series_posts(db, series.id, published_only=False)
    return _series_detail(series, posts)


@series_admin_router.post("", response_model=BlogSeriesResponse, status_code=status.HTTP_201_CREATED)
async def create_series(body: BlogSeriesCreate, db: AsyncSession = Depends(get_db)):
    data = body.model_dump(exclude_none=True)
    data["slug"] = await _slug_or_409(db, BlogSeries, body.title, body.slug)

    series = BlogSeries(**data)
    db.add(series)
    await db.flush()

    logger.info("Created blog series id=%d slug=%r", series.id, series.slug)
    return _series_response(series, 0)


@series_admin_router.api_route(
    "/{series_id}", methods=["PUT", "PATCH"], response_model=BlogSeriesResponse
)
async def update_series(series_id: int, body: BlogSeriesUpdate, db: AsyncSession = Depends(get_db)):
    series = await _get_series_or_404(db, series_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("slug"):
        changes["slug"] = await _slug_or_409(
            db, BlogSeries, series.title, changes["slug"], exclude_id=series.id
        )

    apply_updates(series, changes, nullable=("description", "cover_image"))
    await db.flush()
    await db.refresh(series)

    counts = await _post_counts(db)
    logger.info("Updated blog series id=%d fields=%s", series.id, sorted(changes))
    return _series_response(series, counts.get(series.id, 0))


@series_admin_router.delete("/{series_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_series(series_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a series; its posts stay and lose their series link."""
    series = await _get_series_or_404(db, series_id)
    await db.delete(series)
    await db.flush()
    logger.info("Deleted blog series id=%d", series_id)
