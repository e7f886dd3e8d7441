"""
Visitor-facing portfolio chatbot.

One ``chat`` call:
  1. resolves the system prompt (active ``custom`` override, else the registry
     default) and appends the active learning insights
  2. retrieves relevant reference-document chunks
  3. adds the admin training Q&A and the session's recent exchanges
  4. makes a single JSON-mode LLM call
  5. persists the exchange and returns the answer

LLM failures never reach the caller: the visitor gets a fixed apology and the
exchange is still stored.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.models.database_models import (
    ChatbotConversation,
    ChatbotDocument,
    ChatbotTrainingSession,
    FeedbackRating,
    PromptSlot,
    SystemPromptTemplate,
    UserFeedback,
)
from portfolio.services import prompts
from portfolio.services.errors import ConflictError, NotFoundError
from portfolio.services.learning_service import LearningService, format_insights_section
from portfolio.services.llm_client import LLMClient, parse_json_response
from portfolio.services.retrieval import RetrievedChunk, VectorStore
from portfolio.utils.helpers import clamp, safe_divide, truncate_text

logger = logging.getLogger(__name__)


APOLOGY = (
    "I'm sorry, I'm having trouble answering right now. "
    "Please try again in a moment."
)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ChatResult:
    response: str
    is_on_topic: bool
    confidence: float
    conversation_id: Optional[int]
    sources: List[str]


# ---------------------------------------------------------------------------
# Prompt slots
# ---------------------------------------------------------------------------

async def active_template(db: AsyncSession, slot: PromptSlot) -> Optional[SystemPromptTemplate]:
    """The active override for *slot*, if any."""
    return await db.scalar(
        select(SystemPromptTemplate).where(
            SystemPromptTemplate.slot == slot,
            SystemPromptTemplate.is_active.is_(True),
        )
    )


async def deactivate_templates(db: AsyncSession, slot: PromptSlot) -> None:
    await db.execute(
        update(SystemPromptTemplate)
        .where(SystemPromptTemplate.slot == slot, SystemPromptTemplate.is_active.is_(True))
        .values(is_active=False)
    )


async def activate_template(db: AsyncSession, slot: PromptSlot, template: str, name: str) -> SystemPromptTemplate:
    """Store *template* as the only active override for *slot*."""
    await deactivate_templates(db, slot)
    row = SystemPromptTemplate(slot=slot, name=name, template=template, is_active=True)
    db.add(row)
    await db.flush()
    logger.info("Created system prompt id=%d for slot=%s", row.id, slot.value)
    return row


def _owner_values() -> Dict[str, str]:
    return {"owner_name": settings.OWNER_NAME, "owner_short_name": settings.OWNER_SHORT_NAME}


def _as_bool(value: Any, default: bool = True) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    if isinstance(value, (int, float)):
        return bool(value)
    return default


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ChatbotService:
    """Answers visitor questions and records their feedback."""

    TRAINING_PAIRS_LIMIT: int = 50
    CONTEXT_CHARS_PER_CHUNK: int = 1500

    def __init__(self, db: AsyncSession, llm: LLMClient) -> None:
        self.db = db
        self.llm = llm

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def resolve_system_prompt(self) -> str:
        """Custom override or registry default, plus the active insights section."""
        override = await active_template(self.db, PromptSlot.CUSTOM)
        if override is not None:
            base = prompts.render_text(override.template, **_owner_values())
        else:
            base = prompts.render("chatbot.default", **_owner_values())

        insights = await LearningService(self.db, self.llm).active_insights()
        section = format_insights_section(insights)
        return f"{base}\n\n{section}" if section else base

    async def prompt_preview(self) -> Dict[str, Any]:
        """The current system prompt and counts of what it is built from."""
        prompt = await self.resolve_system_prompt()
        learning = await LearningService(self.db, self.llm).stats()
        documents = await self.db.scalar(select(func.count(ChatbotDocument.id)))
        training = await self.db.scalar(select(func.count(ChatbotTrainingSession.id)))
        return {
            "prompt": prompt,
            "stats": {
                "documents": documents or 0,
                "training_sessions": training or 0,
                "learning_insights": learning["total"],
                "active_insights": learning["active"],
            },
        }

    async def update_learning_prompt(self, custom_prompt: Optional[str] = None) -> SystemPromptTemplate:
        """
        Store a new prompt built by the learning loop.

        A non-blank ``custom_prompt`` becomes the active ``custom`` override
        and therefore what visitors are answered with. Without one, the
        registry default with the current insights baked in is saved to the
        ``enhanced`` slot as a reviewable snapshot.
        """
        if custom_prompt and custom_prompt.strip():
            return await activate_template(
                self.db, PromptSlot.CUSTOM, custom_prompt.strip(), "learning custom prompt"
            )

        base = prompts.render(prompts.SLOT_DEFAULTS[PromptSlot.ENHANCED.value], **_owner_values())
        insights = await LearningService(self.db, self.llm).active_insights()
        section = format_insights_section(insights)
        template = f"{base}\n\n{section}" if section else base
        return await activate_template(
            self.db, PromptSlot.ENHANCED, template, f"learning snapshot ({len(insights)} insights)"
        )

    async def chat(self, message: str, session_id: str) -> ChatResult:
        system_prompt = await self.resolve_system_prompt()
        training = await self._training_context()
        chunks = await self._retrieve(message)
        history = await self._history(session_id)

        parts = [system_prompt]
        if training:
            parts.append(f"TRAINING Q&A:\n{training}")
        if chunks:
            context = "\n\n".join(
                f"[{c.document_name}]\n{truncate_text(c.content, self.CONTEXT_CHARS_PER_CHUNK)}"
                for c in chunks
            )
            parts.append(f"CONTEXT FROM DOCUMENTS:\n{context}")
        parts.append(prompts.render("chatbot.response_format", **_owner_values()))

        messages: List[Dict[str, str]] = [{"role": "system", "content": "\n\n".join(parts)}]
        for turn in history:
            messages.append({"role": "user", "content": turn.user_question})
            messages.append({"role": "assistant", "content": turn.bot_response})
        messages.append({"role": "user", "content": message})

        sources: List[str] = []
        for c in chunks:
            if c.document_name not in sources:
                sources.append(c.document_name)

        try:
            raw = await self.llm.complete(messages, max_tokens=600, json_mode=True)
            answer, on_topic, confidence = self._interpret(raw)
        except Exception as exc:
            logger.error("Chat completion failed for session=%s: %s", session_id, exc)
            answer, on_topic, confidence = APOLOGY, False, 0.0
            sources = []

        conversation = ChatbotConversation(
            session_id=session_id,
            user_question=message,
            bot_response=answer,
            is_on_topic=on_topic,
            confidence=confidence,
            source_documents=sources,
        )
        self.db.add(conversation)
        await self.db.flush()
        logger.info(
            "Stored conversation id=%d session=%s on_topic=%s confidence=%.2f",
            conversation.id, session_id, on_topic, confidence,
        )

        return ChatResult(
            response=answer,
            is_on_topic=on_topic,
            confidence=confidence,
            conversation_id=conversation.id,
            sources=sources,
        )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    async def feedback(
        self,
        conversation_id: int,
        session_id: str,
        rating: FeedbackRating,
        comment: Optional[str] = None,
    ) -> UserFeedback:
        """
        Record a thumbs rating.

        Raises:
            NotFoundError: unknown conversation (nothing is written).
            ConflictError: the conversation already has a rating.
        """
        conversation = await self.db.get(ChatbotConversation, conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")

        existing = await self.db.scalar(
            select(UserFeedback.id).where(UserFeedback.conversation_id == conversation_id)
        )
        if existing is not None:
            raise ConflictError(f"Conversation {conversation_id} already has feedback")

        row = UserFeedback(
            conversation_id=conversation_id,
            session_id=session_id,
            rating=FeedbackRating(rating),
            comment=comment,
        )
        self.db.add(row)
        await self.db.flush()
        logger.info("Stored %s feedback id=%d for conversation=%d", row.rating.value, row.id, conversation_id)
        return row

    async def analytics(self) -> Dict[str, Any]:
        total, sessions, on_topic, avg_conf = (
            await self.db.execute(
                select(
                    func.count(ChatbotConversation.id),
                    func.count(distinct(ChatbotConversation.session_id)),
                    func.count(ChatbotConversation.id).filter(ChatbotConversation.is_on_topic.is_(True)),
                    func.avg(ChatbotConversation.confidence),
                )
            )
        ).one()

        rating_rows = await self.db.execute(
            select(UserFeedback.rating, func.count(UserFeedback.id)).group_by(UserFeedback.rating)
        )
        ratings = {rating: count for rating, count in rating_rows.all()}
        up = ratings.get(FeedbackRating.UP, 0)
        down = ratings.get(FeedbackRating.DOWN, 0)

        return {
            "total_conversations": total or 0,
            "unique_sessions": sessions or 0,
            "on_topic_rate": round(safe_divide(on_topic or 0, total or 0), 4),
            "average_confidence": round(float(avg_conf or 0.0), 4),
            "thumbs_up": up,
            "thumbs_down": down,
            "feedback_count": up + down,
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _interpret(raw: str):
        """Map the model reply to ``(answer, is_on_topic, confidence)``."""
        ok, data = parse_json_response(raw)
        if ok and isinstance(data, dict) and str(data.get("response") or "").strip():
            try:
                confidence = clamp(float(data.get("confidence", 0.8)), 0.0, 1.0)
            except (TypeError, ValueError):
                confidence = 0.8
            return (
                str(data["response"]).strip(),
                _as_bool(data.get("isOnTopic", data.get("is_on_topic")), default=True),
                confidence,
            )

        logger.warning("Chat reply was not the expected JSON; using it verbatim")
        return raw.strip(), True, 0.5

    async def _training_context(self) -> str:
        result = await self.db.execute(
            select(ChatbotTrainingSession)
            .order_by(ChatbotTrainingSession.created_at.desc(), ChatbotTrainingSession.id.desc())
            .limit(self.TRAINING_PAIRS_LIMIT)
        )
        return "\n\n".join(
            f"Q: {s.question}\nA: {s.answer}" for s in reversed(result.scalars().all())
        )

    async def _retrieve(self, message: str) -> List[RetrievedChunk]:
        store = VectorStore(self.db, self.llm)
        try:
            if await store.is_empty():
                return []
            return await store.search(message)
        except Exception as exc:
            logger.warning("Retrieval skipped: %s", exc)
            return []

    async def _history(self, session_id: str) -> List[ChatbotConversation]:
        if settings.CHAT_HISTORY_LIMIT <= 0:
            return []
        result = await self.db.execute(
            select(ChatbotConversation)
            .where(ChatbotConversation.session_id == session_id)
            .order_by(ChatbotConversation.created_at.desc(), ChatbotConversation.id.desc())
            .limit(settings.CHAT_HISTORY_LIMIT)
        )
        return list(reversed(result.scalars().all()))
