"""
Portfolio project endpoints.

Public (mounted at /api/portfolio)
GET    ""              - published projects, featured first then newest
GET    /{identifier}   - one published project by id or slug

Admin (mounted at /api/admin/projects)
GET    ""              - every project including drafts
GET    /{project_id}   - one project
POST   ""              - create (slug derived from the title when omitted)
PUT    /{project_id}   - partial update (PATCH accepted too)
DELETE /{project_id}   - delete
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db
from portfolio.models.database_models import Project
from portfolio.models.schemas import ProjectCreate, ProjectResponse, ProjectUpdate
from portfolio.services.content import apply_updates, claim_slug, get_by_identifier
from portfolio.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


# ─── Helpers ──────────────────────────────────────────────────────────────────

async def _get_project_or_404(db: AsyncSession, project_id: int) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found.",
        )
    return project


async def _slug_or_409(db: AsyncSession, title: str, slug, exclude_id=None) -> str:
    try:
        return await claim_slug(db, Project, title, slug, exclude_id=exclude_id)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ═══════════════════════════════════════════════════════════════════════════════
# PUBLIC
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("", response_model=List[ProjectResponse])
async def list_published_projects(db: AsyncSession = Depends(get_db)):
    """Published projects, featured first, then newest."""
    result = await db.execute(
        select(Project)
        .where(Project.published.is_(True))
        .order_by(Project.featured.desc(), Project.date.desc(), Project.id.desc())
    )
    return result.scalars().all()


@router.get("/{identifier}", response_model=ProjectResponse)
async def get_published_project(identifier: str, db: AsyncSession = Depends(get_db)):
    """Look a published project up by numeric id, else by slug."""
    try:
        return await get_by_identifier(db, Project, identifier, published_only=True)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {identifier!r} not found.",
        )


# ═══════════════════════════════════════════════════════════════════════════════
# ADMIN
# ═══════════════════════════════════════════════════════════════════════════════

@admin_router.get("", response_model=List[ProjectResponse])
async def list_all_projects(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Project).order_by(Project.date.desc(), Project.id.desc()))
    return result.scalars().all()


@admin_router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_project_or_404(db, project_id)


@admin_router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(body: ProjectCreate, db: AsyncSession = Depends(get_db)):
    data = body.model_dump(exclude_none=True)
    data["slug"] = await _slug_or_409(db, body.title, body.slug)

    project = Project(**data)
    db.add(project)
    await db.flush()

    logger.info("Created project id=%d slug=%r", project.id, project.slug)
    return project


@admin_router.api_route("/{project_id}", methods=["PUT", "PATCH"], response_model=ProjectResponse)
async def update_project(project_id: int, body: ProjectUpdate, db: AsyncSession = Depends(get_db)):
    project = await _get_project_or_404(db, project_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("slug"):
        changes["slug"] = await _slug_or_409(db, project.title, changes["slug"], exclude_id=project.id)

    apply_updates(project, changes, nullable=("client",))
    await db.flush()
    await db.refresh(project)

    logger.info("Updated project id=%d fields=%s", project.id, sorted(changes))
    return project


@admin_router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: int, db: AsyncSession = Depends(get_db)):
    project = await _get_project_or_404(db, project_id)
    await db.delete(project)
    await db.flush()
    logger.info("Deleted project id=%d", project_id)
