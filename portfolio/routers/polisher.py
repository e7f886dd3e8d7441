"""
Writing assistant endpoints for the admin editor (mounted at /api/admin).

POST /polish-content      - full review: suggestions, scores and a summary
POST /quick-suggestions   - a few short tips
POST /improve-selection   - rewrite a highlighted span

Upstream LLM failures fall back to local results; these routes do not 5xx on them.
"""
import dataclasses
import logging

from fastapi import APIRouter, Depends

from portfolio.dependencies.llm import get_llm_client
from portfolio.models.schemas import (
    ImproveSelectionRequest,
    ImproveSelectionResponse,
    PolishRequest,
    PolishResponse,
    QuickSuggestionsRequest,
    QuickSuggestionsResponse,
)
from portfolio.services.llm_client import LLMClient
from portfolio.services.polisher import ContentPolisher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/polish-content", response_model=PolishResponse)
async def polish_content(
    body: PolishRequest,
    llm: LLMClient = Depends(get_llm_client),
) -> PolishResponse:
    report = await ContentPolisher(llm).polish(body.content, body.content_type.value)
    return PolishResponse(**dataclasses.asdict(report))


@router.post("/quick-suggestions", response_model=QuickSuggestionsResponse)
async def quick_suggestions(
    body: QuickSuggestionsRequest,
    llm: LLMClient = Depends(get_llm_client),
) -> QuickSuggestionsResponse:
    tips = await ContentPolisher(llm).quick_suggestions(body.content)
    return QuickSuggestionsResponse(suggestions=tips)


@router.post("/improve-selection", response_model=ImproveSelectionResponse)
async def improve_selection(
    body: ImproveSelectionRequest,
    llm: LLMClient = Depends(get_llm_client),
) -> ImproveSelectionResponse:
    improved = await ContentPolisher(llm).improve_selection(body.text, body.context)
    return ImproveSelectionResponse(original=body.text, improved=improved)
