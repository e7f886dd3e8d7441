"""
Learning insight endpoints (mounted at /api/admin/chatbot/learning).

POST   /extract/{evaluation_id}   - distil insights from one evaluation
POST   /process-recent            - extract from recent evaluations not yet processed
GET    /stats                     - counts per category
GET    /insights                  - all insights (filter with ?active=true|false)
GET    /insights/{insight_id}
PATCH  /insights/{insight_id}     - toggle, re-weight or reword
DELETE /insights/{insight_id}
GET    /prompt-preview            - system prompt in effect, with what it is built from
POST   /update-prompt             - activate a custom prompt, or snapshot the
                                    insight-enhanced default into the enhanced slot
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db
from portfolio.dependencies.llm import get_llm_client
from portfolio.models.database_models import ChatbotLearningInsight, PromptSlot
from portfolio.models.schemas import (
    ExtractInsightsResponse,
    LearningInsightResponse,
    LearningInsightUpdate,
    LearningPromptUpdateRequest,
    LearningPromptUpdateResponse,
    PromptPreviewResponse,
    PromptSlotSchema,
)
from portfolio.services.chatbot_service import ChatbotService
from portfolio.services.content import apply_updates
from portfolio.services.errors import NotFoundError
from portfolio.services.learning_service import LearningService
from portfolio.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_insight_or_404(db: AsyncSession, insight_id: int) -> ChatbotLearningInsight:
    insight = await db.get(ChatbotLearningInsight, insight_id)
    if insight is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Insight {insight_id} not found.",
        )
    return insight


@router.post("/extract/{evaluation_id}", response_model=ExtractInsightsResponse)
async def extract_insights(
    evaluation_id: int,
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> ExtractInsightsResponse:
    try:
        insights = await LearningService(db, llm).extract_insights(evaluation_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return ExtractInsightsResponse(
        evaluation_id=evaluation_id,
        insights=[LearningInsightResponse.model_validate(i) for i in insights],
    )


@router.post("/process-recent", response_model=List[LearningInsightResponse])
async def process_recent(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    return await LearningService(db, llm).process_recent_evaluations(limit=limit)


@router.get("/stats")
async def learning_stats(
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> Dict[str, Any]:
    return await LearningService(db, llm).stats()


@router.get("/insights", response_model=List[LearningInsightResponse])
async def list_insights(
    active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(ChatbotLearningInsight)
    if active is not None:
        stmt = stmt.where(ChatbotLearningInsight.is_active.is_(active))
    result = await db.execute(
        stmt.order_by(ChatbotLearningInsight.importance.desc(), ChatbotLearningInsight.id.desc())
    )
    return result.scalars().all()


@router.get("/insights/{insight_id}", response_model=LearningInsightResponse)
async def get_insight(insight_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_insight_or_404(db, insight_id)


@router.patch("/insights/{insight_id}", response_model=LearningInsightResponse)
async def update_insight(
    insight_id: int,
    body: LearningInsightUpdate,
    db: AsyncSession = Depends(get_db),
):
    insight = await _get_insight_or_404(db, insight_id)
    changes = body.model_dump(exclude_unset=True)
    apply_updates(insight, changes)
    await db.flush()

    logger.info("Updated insight id=%d fields=%s", insight_id, sorted(changes))
    return insight


@router.delete("/insights/{insight_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_insight(insight_id: int, db: AsyncSession = Depends(get_db)):
    insight = await _get_insight_or_404(db, insight_id)
    await db.delete(insight)
    await db.flush()
    logger.info("Deleted insight id=%d", insight_id)


@router.get("/prompt-preview", response_model=PromptPreviewResponse)
async def prompt_preview(
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    return await ChatbotService(db, llm).prompt_preview()


@router.post("/update-prompt", response_model=LearningPromptUpdateResponse)
async def update_prompt(
    body: LearningPromptUpdateRequest,
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> LearningPromptUpdateResponse:
    template = await ChatbotService(db, llm).update_learning_prompt(body.custom_prompt)
    message = (
        "Custom prompt activated"
        if template.slot == PromptSlot.CUSTOM
        else "Enhanced prompt saved with current insights"
    )
    return LearningPromptUpdateResponse(
        message=message,
        slot=PromptSlotSchema(template.slot.value),
        prompt=template.template,
    )
