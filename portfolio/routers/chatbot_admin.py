"""
Chatbot administration endpoints (mounted at /api/admin/chatbot).

GET    /conversations               - stored exchanges, newest first
GET    /feedback                    - visitor ratings, newest first
GET    /analytics                   - usage totals and rating counts

GET / POST /training                - curated Q&A pairs
GET / PUT / PATCH / DELETE /training/{session_id}

POST   /documents                   - upload a reference document; parse, chunk, embed
GET    /documents                   - list documents with chunk counts
DELETE /documents/{document_id}     - delete a document, its chunks and its file
POST   /documents/reindex           - embed every chunk still missing a vector
"""
from __future__ import annotations

import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.dependencies.llm import get_llm_client
from portfolio.models.database_models import (
    ChatbotConversation,
    ChatbotDocument,
    ChatbotDocumentChunk,
    ChatbotTrainingSession,
    UserFeedback,
)
from portfolio.models.schemas import (
    ChatAnalyticsResponse,
    ChatbotDocumentResponse,
    ChatbotDocumentUploadResponse,
    ConversationResponse,
    FeedbackResponse,
    ReindexResponse,
    TrainingSessionCreate,
    TrainingSessionResponse,
    TrainingSessionUpdate,
)
from portfolio.services.chatbot_service import ChatbotService
from portfolio.services.content import apply_updates
from portfolio.services.document_parser import DocumentParser
from portfolio.services.llm_client import LLMClient
from portfolio.services.retrieval import VectorStore
from portfolio.utils.uploads import safe_remove, save_upload

logger = logging.getLogger(__name__)

router = APIRouter()

DOCUMENTS_SUBDIR = "chatbot_documents"


# ═══════════════════════════════════════════════════════════════════════════════
# CONVERSATIONS / FEEDBACK / ANALYTICS
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    session_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(ChatbotConversation)
    if session_id:
        stmt = stmt.where(ChatbotConversation.session_id == session_id)
    result = await db.execute(
        stmt.order_by(ChatbotConversation.created_at.desc(), ChatbotConversation.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/feedback", response_model=List[FeedbackResponse])
async def list_feedback(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(UserFeedback)
        .order_by(UserFeedback.created_at.desc(), UserFeedback.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/analytics", response_model=ChatAnalyticsResponse)
async def chat_analytics(
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    return ChatAnalyticsResponse(**await ChatbotService(db, llm).analytics())


# ═══════════════════════════════════════════════════════════════════════════════
# TRAINING Q&A
# ═══════════════════════════════════════════════════════════════════════════════

async def _get_training_or_404(db: AsyncSession, session_id: int) -> ChatbotTrainingSession:
    row = await db.get(ChatbotTrainingSession, session_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Training session {session_id} not found.",
        )
    return row


@router.get("/training", response_model=List[TrainingSessionResponse])
async def list_training(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(ChatbotTrainingSession).order_by(
            ChatbotTrainingSession.created_at.desc(), ChatbotTrainingSession.id.desc()
        )
    )
    return result.scalars().all()


@router.get("/training/{session_id}", response_model=TrainingSessionResponse)
async def get_training(session_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_training_or_404(db, session_id)


@router.post("/training", response_model=TrainingSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_training(body: TrainingSessionCreate, db: AsyncSession = Depends(get_db)):
    row = ChatbotTrainingSession(**body.model_dump())
    db.add(row)
    await db.flush()

    logger.info("Created training session id=%d category=%r", row.id, row.category)
    return row


@router.api_route(
    "/training/{session_id}", methods=["PUT", "PATCH"], response_model=TrainingSessionResponse
)
async def update_training(
    session_id: int, body: TrainingSessionUpdate, db: AsyncSession = Depends(get_db)
):
    row = await _get_training_or_404(db, session_id)
    changes = body.model_dump(exclude_unset=True)
    apply_updates(row, changes)
    await db.flush()

    logger.info("Updated training session id=%d fields=%s", session_id, sorted(changes))
    return row


@router.delete("/training/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_training(session_id: int, db: AsyncSession = Depends(get_db)):
    row = await _get_training_or_404(db, session_id)
    await db.delete(row)
    await db.flush()
    logger.info("Deleted training session id=%d", session_id)


# ═══════════════════════════════════════════════════════════════════════════════
# REFERENCE DOCUMENTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post(
    "/documents",
    response_model=ChatbotDocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> ChatbotDocumentUploadResponse:
    """
    Upload a PDF, DOCX, TXT or MD reference document.

    The extracted text is stored, split into chunks and embedded. Chunks
    whose embedding fails keep a NULL vector; POST /documents/reindex retries them.
    """
    stored = await save_upload(
        file,
        os.path.join(settings.UPLOAD_DIR, DOCUMENTS_SUBDIR),
        settings.SUPPORTED_DOCUMENT_TYPES,
        settings.MAX_DOCUMENT_SIZE,
    )

    parser = DocumentParser()
    try:
        parsed = await parser.parse_document(stored.path, stored.extension)
    except (RuntimeError, ValueError) as exc:
        safe_remove(stored.path)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    if not parsed.full_text.strip():
        safe_remove(stored.path)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Document contains no extractable text.",
        )

    try:
        document = ChatbotDocument(
            filename=stored.stored_name,
            original_name=file.filename,
            file_path=stored.path,
            file_type=stored.extension.lstrip("."),
            size=stored.size,
            content=parsed.full_text,
        )
        db.add(document)
        await db.flush()

        indexed = await VectorStore(db, llm).index_document(document)
    except Exception:
        safe_remove(stored.path)
        raise

    logger.info(
        "Created chatbot document id=%d name=%r with %d chunks",
        document.id, document.original_name, indexed.chunk_count,
    )
    message = f"Document uploaded. {indexed.chunk_count} chunks created, {indexed.embedded} embedded."
    if indexed.failed:
        message += f" {indexed.failed} chunks could not be embedded; run reindex to retry."

    return ChatbotDocumentUploadResponse(
        id=document.id,
        original_name=document.original_name,
        file_type=document.file_type,
        chunk_count=indexed.chunk_count,
        embedded_count=indexed.embedded,
        message=message,
    )


@router.get("/documents", response_model=List[ChatbotDocumentResponse])
async def list_documents(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(ChatbotDocument, func.count(ChatbotDocumentChunk.id))
        .outerjoin(ChatbotDocumentChunk, ChatbotDocumentChunk.document_id == ChatbotDocument.id)
        .group_by(ChatbotDocument.id)
        .order_by(ChatbotDocument.uploaded_at.desc(), ChatbotDocument.id.desc())
    )
    return [
        ChatbotDocumentResponse(
            id=doc.id,
            filename=doc.filename,
            original_name=doc.original_name,
            file_type=doc.file_type,
            size=doc.size,
            uploaded_at=doc.uploaded_at,
            chunk_count=chunk_count,
        )
        for doc, chunk_count in result.all()
    ]


@router.post("/documents/reindex", response_model=ReindexResponse)
async def reindex_documents(
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> ReindexResponse:
    indexed = await VectorStore(db, llm).reindex_all()
    return ReindexResponse(
        embedded=indexed.embedded,
        failed=indexed.failed,
        message=f"Embedded {indexed.embedded} of {indexed.chunk_count} pending chunks.",
    )


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: int, db: AsyncSession = Depends(get_db)):
    document = await db.get(ChatbotDocument, document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found.",
        )

    file_path = document.file_path
    await db.delete(document)
    await db.flush()
    safe_remove(file_path)
    logger.info("Deleted chatbot document id=%d", document_id)
