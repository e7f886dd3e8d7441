"""Tests for the prompt registry and the system prompt slot endpoints."""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.models.database_models import SystemPromptTemplate
from portfolio.services import prompts
from tests.conftest import ADMIN_HEADERS

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_registry_lists_every_template():
    names = [p.name for p in prompts.list_prompts()]
    assert names == sorted(names)
    for name in (
        "chatbot.default",
        "chatbot.response_format",
        "evaluator.correctness",
        "evaluator.coherence",
        "polisher.system",
        "learning.extract",
    ):
        assert name in names


def test_slot_defaults_resolve_to_registered_templates():
    for slot, name in prompts.SLOT_DEFAULTS.items():
        assert prompts.get_prompt(name).name == name


def test_render_fills_placeholders():
    text = prompts.render("chatbot.default", owner_name="Ada Lovelace", owner_short_name="Ada")
    assert "Ada Lovelace" in text
    assert "{owner_name}" not in text


def test_unknown_template_raises():
    with pytest.raises(KeyError):
        prompts.get_prompt("nope")


def test_render_text_keeps_unknown_placeholders():
    assert prompts.render_text("Hi {owner_name}, {mystery}", owner_name="Ada") == "Hi Ada, {mystery}"


def test_render_text_with_unbalanced_braces_is_verbatim():
    assert prompts.render_text("Answer in {json", owner_name="Ada") == "Answer in {json"


# ---------------------------------------------------------------------------
# Slot endpoints
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_slots_shows_defaults(client: AsyncClient):
    resp = await client.get("/api/admin/chatbot/system-prompts", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    slots = {s["slot"]: s for s in resp.json()}
    assert set(slots) == {"default", "enhanced", "custom", "langchain"}
    assert all(not s["is_overridden"] for s in slots.values())
    assert slots["custom"]["default_template"] == prompts.get_prompt("chatbot.default").template


@pytest.mark.asyncio
async def test_put_twice_keeps_one_active(client: AsyncClient, db_session: AsyncSession):
    for text in ("First override", "Second override"):
        resp = await client.put(
            "/api/admin/chatbot/system-prompts/custom",
            json={"template": text},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 200

    assert resp.json()["active_template"] == "Second override"
    assert resp.json()["is_overridden"] is True

    active = await db_session.scalar(
        select(func.count(SystemPromptTemplate.id)).where(SystemPromptTemplate.is_active.is_(True))
    )
    total = await db_session.scalar(select(func.count(SystemPromptTemplate.id)))
    assert (active, total) == (1, 2)


@pytest.mark.asyncio
async def test_delete_reverts_to_default(client: AsyncClient):
    await client.put(
        "/api/admin/chatbot/system-prompts/enhanced",
        json={"template": "Temporary"},
        headers=ADMIN_HEADERS,
    )
    resp = await client.delete("/api/admin/chatbot/system-prompts/enhanced", headers=ADMIN_HEADERS)
    assert resp.status_code == 204

    slots = {s["slot"]: s for s in (await client.get("/api/admin/chatbot/system-prompts", headers=ADMIN_HEADERS)).json()}
    assert slots["enhanced"]["is_overridden"] is False
    assert slots["enhanced"]["active_template"] is None


@pytest.mark.asyncio
async def test_unknown_slot_rejected(client: AsyncClient):
    resp = await client.put(
        "/api/admin/chatbot/system-prompts/bogus",
        json={"template": "x"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 422
