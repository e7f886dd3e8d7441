"""
Contact form endpoints.

Public (mounted at /api/contact)
POST   ""                - store a visitor submission

Admin (mounted at /api/admin/contacts)
GET    ""                - submissions, newest first
DELETE /{contact_id}     - remove a submission
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db
from portfolio.models.database_models import ContactSubmission
from portfolio.models.schemas import ContactCreate, ContactResponse

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def submit_contact(body: ContactCreate, db: AsyncSession = Depends(get_db)):
    submission = ContactSubmission(**body.model_dump())
    db.add(submission)
    await db.flush()

    logger.info("Created contact submission id=%d subject=%r", submission.id, submission.subject)
    return submission


@admin_router.get("", response_model=List[ContactResponse])
async def list_contacts(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ContactSubmission)
        .order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@admin_router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(contact_id: int, db: AsyncSession = Depends(get_db)):
    submission = await db.get(ContactSubmission, contact_id)
    if submission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Contact submission {contact_id} not found.",
        )
    await db.delete(submission)
    await db.flush()
    logger.info("Deleted contact submission id=%d", contact_id)
