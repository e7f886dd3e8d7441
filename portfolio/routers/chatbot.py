"""
Public chatbot endpoints (mounted at /api/chatbot).

POST /chat      - answer a visitor question
POST /feedback  - thumbs up/down on a stored answer (one per conversation)
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.dependencies.llm import get_llm_client
from portfolio.models.database_models import FeedbackRating
from portfolio.models.schemas import ChatRequest, ChatResponse, FeedbackRequest, FeedbackResponse
from portfolio.services.chatbot_service import ChatbotService
from portfolio.services.errors import ConflictError, NotFoundError
from portfolio.services.evaluator import run_background_evaluation
from portfolio.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> ChatResponse:
    """
    Answer a visitor question about the site owner.

    Upstream LLM failures come back as a polite apology with
    ``is_on_topic=false`` and ``confidence=0``; they never produce a 5xx.
    """
    result = await ChatbotService(db, llm).chat(body.message, body.session_id)

    if settings.AUTO_EVALUATE_CONVERSATIONS and result.conversation_id is not None:
        # The evaluation task opens its own session and must see this row
        await db.commit()
        background_tasks.add_task(run_background_evaluation, [result.conversation_id], llm)

    return ChatResponse(
        response=result.response,
        is_on_topic=result.is_on_topic,
        confidence=result.confidence,
        conversation_id=result.conversation_id,
        sources=result.sources,
    )


@router.post("/feedback", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    body: FeedbackRequest,
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    try:
        return await ChatbotService(db, llm).feedback(
            body.conversation_id,
            body.session_id,
            FeedbackRating(body.rating.value),
            body.comment,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
