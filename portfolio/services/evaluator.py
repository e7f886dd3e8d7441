"""
LLM-as-judge scoring of chatbot answers.

Four independent judges (correctness, conciseness, comprehensiveness,
coherence) each answer in the form::

    Score: 8
    Feedback: ...

They run concurrently; a judge that fails contributes a neutral score of 5
so a single upstream error never sinks the whole evaluation.

Public API
----------
ChatbotEvaluator.evaluate(question, response, source_documents) -> EvaluationResult
EvaluationService.evaluate_conversation(conversation_id)         -> ChatbotEvaluation
EvaluationService.evaluate_batch(ids, limit)                     -> BatchResult
EvaluationService.evaluation_stats()                             -> Dict
run_background_evaluation(conversation_ids, llm)                 -> None
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import re
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import AsyncSessionLocal
from portfolio.models.database_models import ChatbotConversation, ChatbotEvaluation
from portfolio.services import prompts
from portfolio.services.errors import NotFoundError
from portfolio.services.llm_client import LLMClient
from portfolio.utils.helpers import clamp, utcnow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class CriterionResult:
    evaluator: str
    score: float
    feedback: str


@dataclasses.dataclass
class EvaluationResult:
    """Scores for one question/answer pair. ``overall_score`` is the mean of the four."""

    correctness_score: float
    conciseness_score: float
    comprehensiveness_score: float
    coherence_score: float
    overall_score: float
    feedback: str
    strengths: List[str]
    improvements: List[str]
    evaluator_insights: List[CriterionResult]


@dataclasses.dataclass
class BatchResult:
    evaluations: List[ChatbotEvaluation]
    skipped: List[int]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_SCORE_RE = re.compile(r"Score:\s*\**\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_FEEDBACK_RE = re.compile(r"Feedback:\s*(.+)", re.IGNORECASE | re.DOTALL)

NEUTRAL_SCORE: float = 5.0


def parse_judgement(content: str) -> Tuple[float, str]:
    """
    Extract ``(score, feedback)`` from a judge's reply.
    A missing score counts as neutral; the score is clamped to [1, 10].
    """
    score_match = _SCORE_RE.search(content or "")
    feedback_match = _FEEDBACK_RE.search(content or "")

    score = float(score_match.group(1)) if score_match else NEUTRAL_SCORE
    feedback = feedback_match.group(1).strip() if feedback_match else (content or "").strip()
    return clamp(score, 1.0, 10.0), feedback or "No feedback available"


def _first_sentence(text: str) -> str:
    return text.split(".")[0].strip()


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

class ChatbotEvaluator:
    """Runs the four judges against one question/answer pair."""

    CRITERIA: Tuple[str, ...] = ("correctness", "conciseness", "comprehensiveness", "coherence")
    STRENGTH_THRESHOLD: float = 8.0
    IMPROVEMENT_THRESHOLD: float = 5.0

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def evaluate(
        self,
        question: str,
        response: str,
        source_documents: Optional[Sequence[str]] = None,
    ) -> EvaluationResult:
        context_block = ""
        if source_documents:
            context_block = f"\nAVAILABLE CONTEXT: answer drew on {', '.join(source_documents)}\n"

        results: List[CriterionResult] = await asyncio.gather(
            *(
                self._judge(criterion, question, response, context_block)
                for criterion in self.CRITERIA
            )
        )
        by_name = {r.evaluator: r for r in results}

        strengths: List[str] = []
        improvements: List[str] = []
        for r in results:
            if r.score >= self.STRENGTH_THRESHOLD:
                strengths.append(f"Strong {r.evaluator}: {_first_sentence(r.feedback)}")
            elif r.score <= self.IMPROVEMENT_THRESHOLD:
                improvements.append(f"Improve {r.evaluator}: {_first_sentence(r.feedback)}")

        overall = sum(r.score for r in results) / len(results)
        summary = ", ".join(f"{r.evaluator.capitalize()}: {r.score:g}/10" for r in results)

        return EvaluationResult(
            correctness_score=by_name["correctness"].score,
            conciseness_score=by_name["conciseness"].score,
            comprehensiveness_score=by_name["comprehensiveness"].score,
            coherence_score=by_name["coherence"].score,
            overall_score=overall,
            feedback=f"Evaluator analysis: {summary}",
            strengths=strengths,
            improvements=improvements,
            evaluator_insights=list(results),
        )

    async def _judge(
        self, criterion: str, question: str, response: str, context_block: str
    ) -> CriterionResult:
        prompt = prompts.render(
            f"evaluator.{criterion}",
            question=question,
            response=response,
            context_block=context_block,
        )
        try:
            content = await self.llm.complete(
                [{"role": "user", "content": prompt}],
                temperature=0.1,
                max_tokens=500,
            )
        except Exception as exc:
            logger.warning("%s judge failed, using neutral score: %s", criterion, exc)
            return CriterionResult(
                evaluator=criterion,
                score=NEUTRAL_SCORE,
                feedback=f"Error occurred during {criterion} evaluation",
            )

        score, feedback = parse_judgement(content)
        return CriterionResult(evaluator=criterion, score=score, feedback=feedback)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class EvaluationService:
    """Evaluates stored conversations and keeps one evaluation row per conversation."""

    def __init__(self, db: AsyncSession, llm: LLMClient) -> None:
        self.db = db
        self.evaluator = ChatbotEvaluator(llm)

    async def evaluate_conversation(self, conversation_id: int) -> ChatbotEvaluation:
        """
        Score a stored conversation and upsert its evaluation.

        Raises:
            NotFoundError: the conversation does not exist.
        """
        conversation = await self.db.get(ChatbotConversation, conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")

        result = await self.evaluator.evaluate(
            conversation.user_question,
            conversation.bot_response,
            conversation.source_documents or [],
        )

        existing = await self.db.scalar(
            select(ChatbotEvaluation).where(ChatbotEvaluation.conversation_id == conversation_id)
        )
        evaluation = existing or ChatbotEvaluation(conversation_id=conversation_id)
        evaluation.correctness_score = result.correctness_score
        evaluation.conciseness_score = result.conciseness_score
        evaluation.comprehensiveness_score = result.comprehensiveness_score
        evaluation.coherence_score = result.coherence_score
        evaluation.overall_score = result.overall_score
        evaluation.feedback = result.feedback
        evaluation.strengths = result.strengths
        evaluation.improvements = result.improvements
        evaluation.evaluator_insights = [dataclasses.asdict(r) for r in result.evaluator_insights]
        evaluation.evaluated_at = utcnow()

        if existing is None:
            self.db.add(evaluation)
        await self.db.flush()

        logger.info(
            "%s evaluation id=%d for conversation=%d overall=%.2f",
            "Updated" if existing else "Created",
            evaluation.id,
            conversation_id,
            evaluation.overall_score,
        )
        return evaluation

    async def evaluate_batch(
        self, conversation_ids: Sequence[int], limit: int = 20
    ) -> BatchResult:
        """
        Evaluate each id in turn, skipping unknown ones. With no ids, evaluate
        up to *limit* conversations that have no evaluation yet.
        """
        ids = list(conversation_ids)
        if not ids:
            rows = await self.db.execute(
                select(ChatbotConversation.id)
                .outerjoin(
                    ChatbotEvaluation,
                    ChatbotEvaluation.conversation_id == ChatbotConversation.id,
                )
                .where(ChatbotEvaluation.id.is_(None))
                .order_by(ChatbotConversation.created_at.desc())
                .limit(limit)
            )
            ids = list(rows.scalars().all())

        evaluations: List[ChatbotEvaluation] = []
        skipped: List[int] = []
        for conversation_id in ids:
            try:
                evaluations.append(await self.evaluate_conversation(conversation_id))
            except NotFoundError:
                logger.warning("Batch evaluation: conversation %d not found, skipping", conversation_id)
                skipped.append(conversation_id)

        return BatchResult(evaluations=evaluations, skipped=skipped)

    async def evaluation_stats(self) -> Dict[str, Any]:
        row = (
            await self.db.execute(
                select(
                    func.count(ChatbotEvaluation.id),
                    func.avg(ChatbotEvaluation.overall_score),
                    func.avg(ChatbotEvaluation.correctness_score),
                    func.avg(ChatbotEvaluation.conciseness_score),
                    func.avg(ChatbotEvaluation.comprehensiveness_score),
                    func.avg(ChatbotEvaluation.coherence_score),
                )
            )
        ).one()
        total, overall, correctness, conciseness, comprehensiveness, coherence = row

        stats: Dict[str, Any] = {
            "total_evaluations": total or 0,
            "average_overall": _round(overall),
            "average_correctness": _round(correctness),
            "average_conciseness": _round(conciseness),
            "average_comprehensiveness": _round(comprehensiveness),
            "average_coherence": _round(coherence),
        }

        now = utcnow()
        for days in (7, 30):
            count, avg = (
                await self.db.execute(
                    select(func.count(ChatbotEvaluation.id), func.avg(ChatbotEvaluation.overall_score))
                    .where(ChatbotEvaluation.evaluated_at >= now - timedelta(days=days))
                )
            ).one()
            stats[f"last_{days}_days_count"] = count or 0
            stats[f"last_{days}_days_average"] = _round(avg) if count else None

        return stats


def _round(value: Optional[float]) -> float:
    return round(float(value), 2) if value is not None else 0.0


# ---------------------------------------------------------------------------
# Background entry point
# ---------------------------------------------------------------------------

async def run_background_evaluation(conversation_ids: List[int], llm: LLMClient) -> None:
    """
    Evaluate conversations after the response has been sent.
    Uses its own session because the request session is already closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            service = EvaluationService(session, llm)
            batch = await service.evaluate_batch(conversation_ids)
            await session.commit()
            logger.info(
                "Background evaluation finished: %d evaluated, %d skipped",
                len(batch.evaluations),
                len(batch.skipped),
            )
        except Exception as exc:
            await session.rollback()
            logger.error("Background evaluation failed: %s", exc, exc_info=True)
