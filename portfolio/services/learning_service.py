"""
Turns evaluations into reusable lessons for the chatbot.

An insight is a short, actionable instruction (``improvement``,
``best_practice`` or ``avoid_pattern``) with an importance of 1-10. Active
insights are appended to the chatbot system prompt, most important first.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.models.database_models import (
    ChatbotConversation,
    ChatbotEvaluation,
    ChatbotLearningInsight,
    InsightCategory,
    UserFeedback,
)
from portfolio.services import prompts
from portfolio.services.errors import NotFoundError
from portfolio.services.llm_client import LLMClient, parse_json_response

logger = logging.getLogger(__name__)


_SECTION_TITLES = (
    (InsightCategory.BEST_PRACTICE, "BEST PRACTICES TO FOLLOW"),
    (InsightCategory.IMPROVEMENT, "AREAS TO IMPROVE"),
    (InsightCategory.AVOID_PATTERN, "PATTERNS TO AVOID"),
)


def format_insights_section(insights: Sequence[ChatbotLearningInsight]) -> str:
    """Render active insights as a prompt section grouped by category."""
    if not insights:
        return ""

    lines = [f"LEARNING INSIGHTS (from {len(insights)} reviewed answers):"]
    for category, title in _SECTION_TITLES:
        group = [i for i in insights if i.category == category]
        if not group:
            continue
        lines.append("")
        lines.append(f"{title}:")
        for item in sorted(group, key=lambda i: i.importance, reverse=True):
            suffix = f" (e.g. {', '.join(item.examples)})" if item.examples else ""
            lines.append(f"- {item.insight}{suffix}")
    return "\n".join(lines)


def _coerce_category(value: Any) -> InsightCategory:
    try:
        return InsightCategory(str(value).strip().lower())
    except ValueError:
        return InsightCategory.IMPROVEMENT


def _coerce_importance(value: Any) -> int:
    try:
        importance = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        importance = 5
    return max(1, min(10, importance))


class LearningService:
    """Extracts, lists and curates learning insights."""

    def __init__(self, db: AsyncSession, llm: LLMClient) -> None:
        self.db = db
        self.llm = llm

    async def extract_insights(self, evaluation_id: int) -> List[ChatbotLearningInsight]:
        """
        Ask the LLM for lessons from one evaluation and persist them.
        Returns an empty list when the LLM fails or answers nonsense.

        Raises:
            NotFoundError: the evaluation (or its conversation) does not exist.
        """
        evaluation = await self.db.get(ChatbotEvaluation, evaluation_id)
        if evaluation is None:
            raise NotFoundError(f"Evaluation {evaluation_id} not found")

        conversation = await self.db.get(ChatbotConversation, evaluation.conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation {evaluation.conversation_id} not found")

        feedback = await self.db.scalar(
            select(UserFeedback).where(UserFeedback.conversation_id == conversation.id)
        )

        prompt = prompts.render(
            "learning.extract",
            question=conversation.user_question,
            response=conversation.bot_response,
            correctness=evaluation.correctness_score,
            conciseness=evaluation.conciseness_score,
            comprehensiveness=evaluation.comprehensiveness_score,
            coherence=evaluation.coherence_score,
            overall=round(evaluation.overall_score, 2),
            feedback=evaluation.feedback,
            strengths=", ".join(evaluation.strengths or []) or "None",
            improvements=", ".join(evaluation.improvements or []) or "None",
            user_feedback=feedback.rating.value if feedback else "None",
        )
        messages = [
            {"role": "system", "content": prompts.render("learning.system")},
            {"role": "user", "content": prompt},
        ]

        try:
            raw = await self.llm.complete(messages, temperature=0.3, max_tokens=1200, json_mode=True)
        except Exception as exc:
            logger.warning("extract_insights: LLM failed for evaluation %d: %s", evaluation_id, exc)
            return []

        ok, data = parse_json_response(raw)
        items = data.get("insights") if ok and isinstance(data, dict) else None
        if not isinstance(items, list):
            logger.warning("extract_insights: no insights array in LLM output")
            return []

        saved: List[ChatbotLearningInsight] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            text = str(item.get("insight") or "").strip()
            if not text:
                continue
            examples = item.get("examples") or []
            if not isinstance(examples, list):
                examples = [examples]
            insight = ChatbotLearningInsight(
                category=_coerce_category(item.get("category")),
                insight=text,
                examples=[str(e) for e in examples if str(e).strip()],
                importance=_coerce_importance(item.get("importance")),
                source_evaluation_id=evaluation_id,
                is_active=True,
            )
            self.db.add(insight)
            saved.append(insight)

        await self.db.flush()
        logger.info("Saved %d insights from evaluation id=%d", len(saved), evaluation_id)
        return saved

    async def process_recent_evaluations(self, limit: int = 10) -> List[ChatbotLearningInsight]:
        """Extract insights from recent evaluations that have none yet."""
        processed = select(ChatbotLearningInsight.source_evaluation_id).where(
            ChatbotLearningInsight.source_evaluation_id.is_not(None)
        )
        result = await self.db.execute(
            select(ChatbotEvaluation.id)
            .where(ChatbotEvaluation.id.not_in(processed))
            .order_by(ChatbotEvaluation.evaluated_at.desc())
            .limit(limit)
        )

        insights: List[ChatbotLearningInsight] = []
        for evaluation_id in result.scalars().all():
            insights.extend(await self.extract_insights(evaluation_id))
        return insights

    async def active_insights(self, limit: Optional[int] = None) -> List[ChatbotLearningInsight]:
        """Active insights, most important first."""
        result = await self.db.execute(
            select(ChatbotLearningInsight)
            .where(ChatbotLearningInsight.is_active.is_(True))
            .order_by(ChatbotLearningInsight.importance.desc(), ChatbotLearningInsight.id.desc())
            .limit(limit or settings.MAX_ACTIVE_INSIGHTS)
        )
        return list(result.scalars().all())

    async def stats(self) -> Dict[str, Any]:
        rows = await self.db.execute(
            select(
                ChatbotLearningInsight.category,
                func.count(ChatbotLearningInsight.id),
            ).group_by(ChatbotLearningInsight.category)
        )
        by_category = {category.value: count for category, count in rows.all()}
        active = await self.db.scalar(
            select(func.count(ChatbotLearningInsight.id))
            .where(ChatbotLearningInsight.is_active.is_(True))
        )
        return {
            "total": sum(by_category.values()),
            "active": active or 0,
            "by_category": by_category,
        }
