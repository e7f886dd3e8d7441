"""Tests for the writing assistant."""
import json

import pytest
from httpx import AsyncClient

from portfolio.services.polisher import ContentPolisher, count_syllables, readability_score
from tests.conftest import ADMIN_HEADERS, FakeLLMClient

DRAFT = "<p>I has been working on this projects for a long time and it are great.</p>"


# ---------------------------------------------------------------------------
# Readability
# ---------------------------------------------------------------------------

def test_count_syllables():
    assert count_syllables("cat") == 1
    assert count_syllables("table") == 2
    assert count_syllables("make") == 1
    assert count_syllables("banana") == 3


def test_readability_bounds():
    assert readability_score("The cat sat. The dog ran.") == 100.0
    dense = (
        "Internationalization organizational responsibilities necessitate "
        "comprehensive institutionalization"
    )
    assert readability_score(dense) == 0.0
    assert readability_score("") == 50.0


def test_readability_is_deterministic():
    text = "Writing clearly takes practice. Short sentences help readers follow along."
    assert readability_score(text) == readability_score(text)
    assert 0.0 <= readability_score(text) <= 100.0


# ---------------------------------------------------------------------------
# polish
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_short_content_skips_llm(fake_llm: FakeLLMClient):
    report = await ContentPolisher(fake_llm).polish("<b>Hi</b>")
    assert report.summary == ContentPolisher.SHORT_TEXT_SUMMARY
    assert report.overall_score == 50.0
    assert report.readability_score == 50.0
    assert fake_llm.calls == []


@pytest.mark.asyncio
async def test_polish_normalises_model_output(fake_llm: FakeLLMClient):
    fake_llm.queue(json.dumps({
        "suggestions": [
            {"type": "Grammar", "original": "I has", "suggested": "I have", "explanation": "Agreement", "confidence": 0.95},
            {"type": "vibes", "original": "it are great", "improved": "it is great", "confidence": 4},
            "not a dict",
        ],
        "overallScore": 140,
        "readabilityScore": "n/a",
        "summary": "Fix the verb agreement.",
    }))

    report = await ContentPolisher(fake_llm).polish(DRAFT, "blog")

    assert [s.type for s in report.suggestions] == ["grammar", "style"]
    assert report.suggestions[1].suggested == "it is great"
    assert report.suggestions[1].confidence == 1.0
    assert report.overall_score == 100.0
    assert report.readability_score == ContentPolisher.DEFAULT_SCORE
    assert report.word_count == 15

    call = fake_llm.calls[0]
    assert call["json_mode"] is True
    assert "<p>" not in call["messages"][1]["content"]
    assert "engaging storytelling" in call["messages"][0]["content"]


@pytest.mark.asyncio
async def test_polish_falls_back_when_llm_fails(fake_llm: FakeLLMClient):
    fake_llm.fail = True
    report = await ContentPolisher(fake_llm).polish(DRAFT)
    assert report.suggestions == []
    assert report.overall_score == ContentPolisher.DEFAULT_SCORE
    assert report.summary == ContentPolisher.FALLBACK_SUMMARY
    assert report.readability_score == readability_score(
        "I has been working on this projects for a long time and it are great."
    )


@pytest.mark.asyncio
async def test_polish_falls_back_on_unparseable_output(fake_llm: FakeLLMClient):
    fake_llm.queue("Looks good to me!")
    report = await ContentPolisher(fake_llm).polish(DRAFT)
    assert report.summary == ContentPolisher.FALLBACK_SUMMARY


# ---------------------------------------------------------------------------
# quick suggestions / improve selection
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_quick_suggestions(fake_llm: FakeLLMClient):
    polisher = ContentPolisher(fake_llm)
    assert await polisher.quick_suggestions("too short") == []

    fake_llm.queue(json.dumps({"tips": ["Use active voice.", " ", "Cut filler words."]}))
    assert await polisher.quick_suggestions(DRAFT) == ["Use active voice.", "Cut filler words."]

    fake_llm.fail = True
    assert await polisher.quick_suggestions(DRAFT) == [ContentPolisher.FALLBACK_TIP]


@pytest.mark.asyncio
async def test_improve_selection(fake_llm: FakeLLMClient):
    polisher = ContentPolisher(fake_llm)

    fake_llm.queue('"I have been working on this project."')
    assert await polisher.improve_selection("I has been working") == "I have been working on this project."

    fake_llm.fail = True
    assert await polisher.improve_selection("I has been working") == "I has been working"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_polish_endpoint(client: AsyncClient, fake_llm: FakeLLMClient):
    fake_llm.fail = True
    resp = await client.post(
        "/api/admin/polish-content",
        json={"content": DRAFT, "content_type": "project"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["suggestions"] == []
    assert data["overall_score"] == ContentPolisher.DEFAULT_SCORE


@pytest.mark.asyncio
async def test_polish_endpoint_rejects_unknown_content_type(client: AsyncClient):
    resp = await client.post(
        "/api/admin/polish-content",
        json={"content": DRAFT, "content_type": "poem"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_improve_selection_endpoint(client: AsyncClient, fake_llm: FakeLLMClient):
    fake_llm.queue("Much better.")
    resp = await client.post(
        "/api/admin/improve-selection",
        json={"text": "Kinda ok.", "context": "A blog intro"},
        headers=ADMIN_HEADERS,
    )
    assert resp.json() == {"original": "Kinda ok.", "improved": "Much better."}
