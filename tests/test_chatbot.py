"""
Tests for the visitor chatbot: prompt assembly, reply interpretation,
failure handling, feedback and analytics.
"""
import json

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.dependencies.llm import get_llm_client
from portfolio.main import app
from portfolio.models.database_models import (
    ChatbotConversation,
    ChatbotEvaluation,
    ChatbotLearningInsight,
    InsightCategory,
    UserFeedback,
)
from portfolio.services.chatbot_service import APOLOGY, ChatbotService
from tests.conftest import ADMIN_HEADERS, FakeLLMClient


async def _chat(client: AsyncClient, message: str = "What does Nick work on?", session_id: str = "s1"):
    resp = await client.post("/api/chatbot/chat", json={"message": message, "session_id": session_id})
    assert resp.status_code == 200, resp.text
    return resp.json()


def _system_prompt(call: dict) -> str:
    assert call["messages"][0]["role"] == "system"
    return call["messages"][0]["content"]


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_chat_returns_model_answer_and_persists(
    client: AsyncClient, db_session: AsyncSession, fake_llm: FakeLLMClient
):
    data = await _chat(client)
    assert data["response"] == "Happy to help."
    assert data["is_on_topic"] is True
    assert data["confidence"] == pytest.approx(0.9)
    assert data["sources"] == []

    row = await db_session.get(ChatbotConversation, data["conversation_id"])
    assert row.user_question == "What does Nick work on?"
    assert row.bot_response == "Happy to help."

    call = fake_llm.calls[0]
    assert call["json_mode"] is True
    assert call["max_tokens"] == 600
    assert "Nick Lanahan" in _system_prompt(call)
    assert call["messages"][-1] == {"role": "user", "content": "What does Nick work on?"}


@pytest.mark.asyncio
async def test_llm_failure_returns_apology_and_still_persists(
    client: AsyncClient, db_session: AsyncSession, fake_llm: FakeLLMClient
):
    fake_llm.fail = True
    data = await _chat(client)

    assert data["response"] == APOLOGY
    assert data["is_on_topic"] is False
    assert data["confidence"] == 0.0

    count = await db_session.scalar(select(func.count(ChatbotConversation.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_confidence_is_clamped(client: AsyncClient, fake_llm: FakeLLMClient):
    fake_llm.queue(json.dumps({"response": "Sure.", "isOnTopic": False, "confidence": 7}))
    data = await _chat(client)
    assert data["confidence"] == 1.0
    assert data["is_on_topic"] is False


@pytest.mark.asyncio
async def test_non_json_reply_used_verbatim(client: AsyncClient, fake_llm: FakeLLMClient):
    fake_llm.queue("  Nick mostly writes Python.  ")
    data = await _chat(client)
    assert data["response"] == "Nick mostly writes Python."
    assert data["is_on_topic"] is True
    assert data["confidence"] == 0.5


@pytest.mark.asyncio
async def test_history_replayed_oldest_first(client: AsyncClient, fake_llm: FakeLLMClient):
    fake_llm.queue(
        json.dumps({"response": "First answer"}),
        json.dumps({"response": "Second answer"}),
    )
    await _chat(client, "first question", "session-a")
    await _chat(client, "second question", "session-a")
    await _chat(client, "other session", "session-b")
    await _chat(client, "third question", "session-a")

    turns = [(m["role"], m["content"]) for m in fake_llm.calls[-1]["messages"][1:]]
    assert turns == [
        ("user", "first question"),
        ("assistant", "First answer"),
        ("user", "second question"),
        ("assistant", "Second answer"),
        ("user", "third question"),
    ]


@pytest.mark.asyncio
async def test_training_pairs_in_system_prompt(client: AsyncClient, fake_llm: FakeLLMClient):
    resp = await client.post(
        "/api/admin/chatbot/training",
        json={"question": "Favourite language?", "answer": "Python, by a mile."},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201

    await _chat(client)
    system = _system_prompt(fake_llm.calls[0])
    assert "TRAINING Q&A:" in system
    assert "Q: Favourite language?\nA: Python, by a mile." in system


@pytest.mark.asyncio
async def test_document_context_and_sources(client: AsyncClient, fake_llm: FakeLLMClient):
    resp = await client.post(
        "/api/admin/chatbot/documents",
        files={"file": ("profile.txt", b"Nick wrote a Rust compiler called Ferrite during university.", "text/plain")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["embedded_count"] == 1

    data = await _chat(client, "Rust compiler Ferrite")
    assert data["sources"] == ["profile.txt"]
    system = _system_prompt(fake_llm.calls[-1])
    assert "CONTEXT FROM DOCUMENTS:" in system
    assert "Ferrite" in system


@pytest.mark.asyncio
async def test_embedding_outage_skips_retrieval(client: AsyncClient, fake_llm: FakeLLMClient):
    await client.post(
        "/api/admin/chatbot/documents",
        files={"file": ("profile.txt", b"Nick likes sailing.", "text/plain")},
        headers=ADMIN_HEADERS,
    )
    fake_llm.fail_embed = True

    data = await _chat(client, "sailing")
    assert data["response"] == "Happy to help."
    assert data["sources"] == []


# ---------------------------------------------------------------------------
# System prompt resolution
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_custom_override_replaces_default(client: AsyncClient, fake_llm: FakeLLMClient):
    resp = await client.put(
        "/api/admin/chatbot/system-prompts/custom",
        json={"template": "Speak like a pirate about {owner_short_name}. Keep {unknown}."},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200

    await _chat(client)
    system = _system_prompt(fake_llm.calls[0])
    assert system.startswith("Speak like a pirate about Nick. Keep {unknown}.")
    assert "IMPORTANT GUIDELINES" not in system


@pytest.mark.asyncio
async def test_active_insights_appended(db_session: AsyncSession, fake_llm: FakeLLMClient):
    db_session.add_all([
        ChatbotLearningInsight(
            category=InsightCategory.AVOID_PATTERN,
            insight="Do not speculate about salary.",
            examples=[],
            importance=9,
            is_active=True,
        ),
        ChatbotLearningInsight(
            category=InsightCategory.BEST_PRACTICE,
            insight="Mention concrete projects.",
            examples=["Ferrite"],
            importance=6,
            is_active=True,
        ),
        ChatbotLearningInsight(
            category=InsightCategory.IMPROVEMENT,
            insight="Retired advice.",
            examples=[],
            importance=10,
            is_active=False,
        ),
    ])
    await db_session.flush()

    prompt = await ChatbotService(db_session, fake_llm).resolve_system_prompt()
    assert "LEARNING INSIGHTS (from 2 reviewed answers):" in prompt
    assert "- Mention concrete projects. (e.g. Ferrite)" in prompt
    assert "PATTERNS TO AVOID:\n- Do not speculate about salary." in prompt
    assert "Retired advice." not in prompt
    assert prompt.index("BEST PRACTICES TO FOLLOW") < prompt.index("PATTERNS TO AVOID")


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_feedback_recorded_once(client: AsyncClient):
    data = await _chat(client)
    body = {"conversation_id": data["conversation_id"], "session_id": "s1", "rating": "up"}

    resp = await client.post("/api/chatbot/feedback", json=body)
    assert resp.status_code == 201
    assert resp.json()["rating"] == "up"

    resp = await client.post("/api/chatbot/feedback", json={**body, "rating": "down"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_feedback_for_unknown_conversation(client: AsyncClient, db_session: AsyncSession):
    resp = await client.post(
        "/api/chatbot/feedback",
        json={"conversation_id": 424242, "session_id": "s1", "rating": "down"},
    )
    assert resp.status_code == 404
    assert await db_session.scalar(select(func.count(UserFeedback.id))) == 0


@pytest.mark.asyncio
async def test_feedback_rejects_unknown_rating(client: AsyncClient):
    data = await _chat(client)
    resp = await client.post(
        "/api/chatbot/feedback",
        json={"conversation_id": data["conversation_id"], "session_id": "s1", "rating": "meh"},
    )
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Admin views
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_analytics(client: AsyncClient, fake_llm: FakeLLMClient):
    first = await _chat(client, session_id="a")
    fake_llm.queue(json.dumps({"response": "Off topic.", "isOnTopic": False, "confidence": 0.5}))
    await _chat(client, "Weather?", session_id="b")
    await client.post(
        "/api/chatbot/feedback",
        json={"conversation_id": first["conversation_id"], "session_id": "a", "rating": "up"},
    )

    resp = await client.get("/api/admin/chatbot/analytics", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    stats = resp.json()
    assert stats["total_conversations"] == 2
    assert stats["unique_sessions"] == 2
    assert stats["on_topic_rate"] == 0.5
    assert stats["average_confidence"] == pytest.approx(0.7)
    assert stats["thumbs_up"] == 1
    assert stats["thumbs_down"] == 0


@pytest.mark.asyncio
async def test_conversation_list_filters_by_session(client: AsyncClient):
    await _chat(client, "one", session_id="a")
    await _chat(client, "two", session_id="b")

    resp = await client.get("/api/admin/chatbot/conversations?session_id=b", headers=ADMIN_HEADERS)
    assert [c["user_question"] for c in resp.json()] == ["two"]


@pytest.mark.asyncio
async def test_auto_evaluation_sees_committed_conversation(
    db_session: AsyncSession, fake_llm: FakeLLMClient, monkeypatch
):
    # Real request session, so the background task reads through its own session
    monkeypatch.setattr(settings, "AUTO_EVALUATE_CONVERSATIONS", True)
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.post(
                "/api/chatbot/chat",
                json={"message": "What does Nick build?", "session_id": "auto"},
            )
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 200, resp.text
    conversation_id = resp.json()["conversation_id"]
    count = await db_session.scalar(
        select(func.count(ChatbotEvaluation.id))
        .where(ChatbotEvaluation.conversation_id == conversation_id)
    )
    assert count == 1
    # one chat call plus one call per judge
    assert len(fake_llm.calls) == 5
