"""Tests for learning-insight extraction and curation."""
import json

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.models.database_models import ChatbotConversation, ChatbotEvaluation, InsightCategory
from portfolio.services.learning_service import LearningService
from tests.conftest import ADMIN_HEADERS, FakeLLMClient


async def _evaluation(db: AsyncSession) -> ChatbotEvaluation:
    conv = ChatbotConversation(
        session_id="s1",
        user_question="Does Nick know Kubernetes?",
        bot_response="Yes.",
        is_on_topic=True,
        confidence=0.6,
        source_documents=[],
    )
    db.add(conv)
    await db.flush()

    evaluation = ChatbotEvaluation(
        conversation_id=conv.id,
        correctness_score=6,
        conciseness_score=9,
        comprehensiveness_score=3,
        coherence_score=8,
        overall_score=6.5,
        feedback="Evaluator analysis",
        strengths=["Strong conciseness: Short"],
        improvements=["Improve comprehensiveness: Too thin"],
        evaluator_insights=[],
    )
    db.add(evaluation)
    await db.flush()
    return evaluation


INSIGHTS_REPLY = json.dumps({
    "insights": [
        {"category": "improvement", "insight": "Give an example project.", "examples": ["k8s migration"], "importance": 14},
        {"category": "nonsense", "insight": "Unknown category falls back.", "importance": "0"},
        {"category": "avoid_pattern", "insight": "", "importance": 5},
        {"category": "best_practice", "insight": "Keep answers short.", "examples": "one example", "importance": 6.6},
    ]
})


@pytest.mark.asyncio
async def test_extract_coerces_fields(db_session: AsyncSession, fake_llm: FakeLLMClient):
    evaluation = await _evaluation(db_session)
    fake_llm.queue(INSIGHTS_REPLY)

    insights = await LearningService(db_session, fake_llm).extract_insights(evaluation.id)

    assert [i.insight for i in insights] == [
        "Give an example project.",
        "Unknown category falls back.",
        "Keep answers short.",
    ]
    assert insights[0].importance == 10
    assert insights[1].importance == 1
    assert insights[1].category == InsightCategory.IMPROVEMENT
    assert insights[2].importance == 7
    assert insights[2].examples == ["one example"]
    assert all(i.source_evaluation_id == evaluation.id and i.is_active for i in insights)
    assert fake_llm.calls[0]["json_mode"] is True
    assert "Does Nick know Kubernetes?" in fake_llm.calls[0]["messages"][1]["content"]


@pytest.mark.asyncio
async def test_extract_tolerates_non_finite_importance(db_session: AsyncSession, fake_llm: FakeLLMClient):
    evaluation = await _evaluation(db_session)
    fake_llm.queue(
        '{"insights": ['
        '{"category": "improvement", "insight": "Mention the team size.", "importance": Infinity},'
        '{"category": "best_practice", "insight": "Lead with the result.", "importance": -Infinity},'
        '{"category": "avoid_pattern", "insight": "Do not guess dates.", "importance": NaN}'
        ']}'
    )

    insights = await LearningService(db_session, fake_llm).extract_insights(evaluation.id)

    assert [i.importance for i in insights] == [5, 5, 5]
    assert insights[2].category == InsightCategory.AVOID_PATTERN


@pytest.mark.asyncio
async def test_extract_returns_empty_on_llm_failure(db_session: AsyncSession, fake_llm: FakeLLMClient):
    evaluation = await _evaluation(db_session)
    fake_llm.fail = True
    assert await LearningService(db_session, fake_llm).extract_insights(evaluation.id) == []


@pytest.mark.asyncio
async def test_extract_returns_empty_on_garbage(db_session: AsyncSession, fake_llm: FakeLLMClient):
    evaluation = await _evaluation(db_session)
    fake_llm.queue("I have no insights today.")
    assert await LearningService(db_session, fake_llm).extract_insights(evaluation.id) == []


@pytest.mark.asyncio
async def test_extract_endpoint_unknown_evaluation(client: AsyncClient):
    resp = await client.post("/api/admin/chatbot/learning/extract/999", headers=ADMIN_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_process_recent_skips_already_processed(
    client: AsyncClient, db_session: AsyncSession, fake_llm: FakeLLMClient
):
    await _evaluation(db_session)
    fake_llm.responder = lambda messages: INSIGHTS_REPLY

    first = await client.post("/api/admin/chatbot/learning/process-recent", headers=ADMIN_HEADERS)
    assert len(first.json()) == 3

    second = await client.post("/api/admin/chatbot/learning/process-recent", headers=ADMIN_HEADERS)
    assert second.json() == []
    assert len(fake_llm.calls) == 1


@pytest.mark.asyncio
async def test_toggle_and_filter_insights(client: AsyncClient, db_session: AsyncSession, fake_llm: FakeLLMClient):
    evaluation = await _evaluation(db_session)
    fake_llm.queue(INSIGHTS_REPLY)
    extracted = await client.post(
        f"/api/admin/chatbot/learning/extract/{evaluation.id}", headers=ADMIN_HEADERS
    )
    first_id = extracted.json()["insights"][0]["id"]

    resp = await client.patch(
        f"/api/admin/chatbot/learning/insights/{first_id}",
        json={"is_active": False},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    active = (await client.get("/api/admin/chatbot/learning/insights?active=true", headers=ADMIN_HEADERS)).json()
    assert first_id not in [i["id"] for i in active]
    assert len(active) == 2

    stats = (await client.get("/api/admin/chatbot/learning/stats", headers=ADMIN_HEADERS)).json()
    assert stats == {"total": 3, "active": 2, "by_category": {"improvement": 2, "best_practice": 1}}

    resp = await client.delete(f"/api/admin/chatbot/learning/insights/{first_id}", headers=ADMIN_HEADERS)
    assert resp.status_code == 204
    resp = await client.get(f"/api/admin/chatbot/learning/insights/{first_id}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_prompt_preview_reports_sources(client: AsyncClient, db_session: AsyncSession, fake_llm: FakeLLMClient):
    evaluation = await _evaluation(db_session)
    fake_llm.queue(INSIGHTS_REPLY)
    await LearningService(db_session, fake_llm).extract_insights(evaluation.id)
    await client.post(
        "/api/admin/chatbot/training",
        json={"question": "Favourite language?", "answer": "Python."},
        headers=ADMIN_HEADERS,
    )

    resp = await client.get("/api/admin/chatbot/learning/prompt-preview", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert "- Give an example project. (e.g. k8s migration)" in body["prompt"]
    assert body["stats"] == {
        "documents": 0,
        "training_sessions": 1,
        "learning_insights": 3,
        "active_insights": 3,
    }


@pytest.mark.asyncio
async def test_update_prompt_activates_custom_prompt(client: AsyncClient, fake_llm: FakeLLMClient):
    resp = await client.post(
        "/api/admin/chatbot/learning/update-prompt",
        json={"custom_prompt": "  Answer as {owner_short_name}'s assistant.  "},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["slot"] == "custom"
    assert resp.json()["prompt"] == "Answer as {owner_short_name}'s assistant."

    preview = (await client.get("/api/admin/chatbot/learning/prompt-preview", headers=ADMIN_HEADERS)).json()
    assert preview["prompt"].startswith("Answer as ")
    assert "{owner_short_name}" not in preview["prompt"]

    slots = (await client.get("/api/admin/chatbot/system-prompts", headers=ADMIN_HEADERS)).json()
    custom = next(s for s in slots if s["slot"] == "custom")
    assert custom["is_overridden"] is True


@pytest.mark.asyncio
async def test_update_prompt_snapshots_enhanced_slot(
    client: AsyncClient, db_session: AsyncSession, fake_llm: FakeLLMClient
):
    evaluation = await _evaluation(db_session)
    fake_llm.queue(INSIGHTS_REPLY)
    await LearningService(db_session, fake_llm).extract_insights(evaluation.id)

    for _ in range(2):
        resp = await client.post(
            "/api/admin/chatbot/learning/update-prompt", json={}, headers=ADMIN_HEADERS
        )
        assert resp.status_code == 200
    body = resp.json()
    assert body["slot"] == "enhanced"
    assert "LEARNING INSIGHTS (from 3 reviewed answers):" in body["prompt"]

    slots = (await client.get("/api/admin/chatbot/system-prompts", headers=ADMIN_HEADERS)).json()
    by_slot = {s["slot"]: s for s in slots}
    assert by_slot["enhanced"]["active_template"] == body["prompt"]
    assert by_slot["custom"]["is_overridden"] is False


@pytest.mark.asyncio
async def test_prompt_endpoints_require_admin(client: AsyncClient):
    resp = await client.get("/api/admin/chatbot/learning/prompt-preview")
    assert resp.status_code == 401
