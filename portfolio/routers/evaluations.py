"""
Chatbot evaluation endpoints (mounted at /api/admin/chatbot/evaluations).

POST /evaluate/{conversation_id}  - score one conversation (re-scoring replaces the old row)
POST /batch                       - score several, or every unevaluated one
GET  ""                           - stored evaluations, newest first
GET  /stats                       - aggregate scores
GET  /{evaluation_id}             - one evaluation
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db
from portfolio.dependencies.llm import get_llm_client
from portfolio.models.database_models import ChatbotEvaluation
from portfolio.models.schemas import (
    EvaluationBatchRequest,
    EvaluationBatchResponse,
    EvaluationResponse,
    EvaluationStatsResponse,
)
from portfolio.services.errors import NotFoundError
from portfolio.services.evaluator import EvaluationService
from portfolio.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/evaluate/{conversation_id}", response_model=EvaluationResponse)
async def evaluate_conversation(
    conversation_id: int,
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    try:
        return await EvaluationService(db, llm).evaluate_conversation(conversation_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.post("/batch", response_model=EvaluationBatchResponse)
async def evaluate_batch(
    body: EvaluationBatchRequest,
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> EvaluationBatchResponse:
    batch = await EvaluationService(db, llm).evaluate_batch(body.conversation_ids, limit=body.limit)
    logger.info(
        "Batch evaluation: %d evaluated, %d skipped", len(batch.evaluations), len(batch.skipped)
    )
    return EvaluationBatchResponse(
        evaluated=len(batch.evaluations),
        skipped=batch.skipped,
        evaluations=[EvaluationResponse.model_validate(e) for e in batch.evaluations],
    )


@router.get("", response_model=List[EvaluationResponse])
async def list_evaluations(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ChatbotEvaluation)
        .order_by(ChatbotEvaluation.evaluated_at.desc(), ChatbotEvaluation.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/stats", response_model=EvaluationStatsResponse)
async def evaluation_stats(
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    return EvaluationStatsResponse(**await EvaluationService(db, llm).evaluation_stats())


@router.get("/{evaluation_id}", response_model=EvaluationResponse)
async def get_evaluation(evaluation_id: int, db: AsyncSession = Depends(get_db)):
    evaluation = await db.get(ChatbotEvaluation, evaluation_id)
    if evaluation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Evaluation {evaluation_id} not found.",
        )
    return evaluation
