"""
AI writing assistant for admin-authored content.

Public API
----------
ContentPolisher.polish(content, content_type) -> PolishReport
ContentPolisher.quick_suggestions(content)    -> List[str]
ContentPolisher.improve_selection(text, ctx)  -> str
readability_score(text)                       -> float   (pure, no LLM)

Every LLM-backed method degrades to a local answer instead of raising.
"""
from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any, Dict, List

from portfolio.services import prompts
from portfolio.services.llm_client import LLMClient, parse_json_response
from portfolio.utils.helpers import clamp, strip_html

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class Suggestion:
    type: str
    original: str
    suggested: str
    explanation: str
    confidence: float


@dataclasses.dataclass
class PolishReport:
    """Returned by ContentPolisher.polish."""

    suggestions: List[Suggestion]
    overall_score: float
    summary: str
    word_count: int
    readability_score: float


# ---------------------------------------------------------------------------
# Readability (Flesch reading ease)
# ---------------------------------------------------------------------------

def count_syllables(word: str) -> int:
    """Heuristic syllable count: vowel groups with silent-e / -le adjustments."""
    word = word.lower()
    if len(word) <= 3:
        return 1
    groups = re.findall(r"[aeiouy]+", word)
    count = len(groups) if groups else 1
    if word.endswith("e"):
        count -= 1
    if word.endswith("le"):
        count += 1
    return max(1, count)


def readability_score(text: str) -> float:
    """
    Flesch reading-ease score clamped to [0, 100]; higher is easier.
    Returns 50 when the text has no words or no sentences.
    """
    sentences = [s for s in re.split(r"[.!?]+", text or "") if s.strip()]
    words = (text or "").split()
    if not sentences or not words:
        return 50.0

    syllables = sum(count_syllables(w) for w in words)
    words_per_sentence = len(words) / len(sentences)
    syllables_per_word = syllables / len(words)
    score = 206.835 - 1.015 * words_per_sentence - 84.6 * syllables_per_word
    return clamp(score, 0.0, 100.0)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ContentPolisher:
    """LLM-backed editing suggestions with deterministic fallbacks."""

    MIN_POLISH_CHARS: int = 10
    MIN_QUICK_CHARS: int = 20
    DEFAULT_SCORE: float = 70.0

    VALID_TYPES = frozenset({"grammar", "clarity", "style", "tone", "structure", "engagement"})

    CONTENT_FOCUS: Dict[str, str] = {
        "blog": (
            "This is blog post content. Focus on engaging storytelling, clear "
            "structure and an authentic personal voice."
        ),
        "project": (
            "This is a portfolio project description. Focus on concrete outcomes, "
            "the problem solved and the technologies used."
        ),
        "general": "Focus on clarity and a natural, confident tone.",
    }

    SHORT_TEXT_SUMMARY = "Content too short for meaningful analysis"
    FALLBACK_SUMMARY = "AI analysis is unavailable right now; showing local readability metrics only."
    FALLBACK_TIP = "Consider varying your sentence length for better flow."

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def polish(self, content: str, content_type: str = "general") -> PolishReport:
        plain = strip_html(content or "")
        word_count = len(plain.split())

        if len(plain) < self.MIN_POLISH_CHARS:
            return PolishReport(
                suggestions=[],
                overall_score=50.0,
                summary=self.SHORT_TEXT_SUMMARY,
                word_count=word_count,
                readability_score=50.0,
            )

        focus = self.CONTENT_FOCUS.get(content_type, self.CONTENT_FOCUS["general"])
        messages = [
            {"role": "system", "content": prompts.render("polisher.system", content_focus=focus)},
            {
                "role": "user",
                "content": prompts.render("polisher.user", content_type=content_type, content=plain),
            },
        ]

        try:
            raw = await self.llm.complete(messages, temperature=0.3, max_tokens=2000, json_mode=True)
        except Exception as exc:
            logger.warning("polish: LLM unavailable, using local fallback: %s", exc)
            return self._fallback(plain, word_count)

        ok, data = parse_json_response(raw)
        if not ok or not isinstance(data, dict):
            logger.warning("polish: unparseable LLM output, using local fallback")
            return self._fallback(plain, word_count)

        suggestions = [
            self._format_suggestion(item)
            for item in data.get("suggestions") or []
            if isinstance(item, dict)
        ]

        return PolishReport(
            suggestions=suggestions,
            overall_score=self._score(data.get("overallScore")),
            summary=str(data.get("summary") or "Content analysis completed"),
            word_count=word_count,
            readability_score=self._score(data.get("readabilityScore")),
        )

    async def quick_suggestions(self, content: str) -> List[str]:
        plain = strip_html(content or "")
        if len(plain) < self.MIN_QUICK_CHARS:
            return []

        messages = [
            {"role": "system", "content": prompts.render("polisher.quick")},
            {
                "role": "user",
                "content": (
                    "Analyze this text and provide quick improvement tips that will "
                    f'make it sound more natural and human: "{plain[:500]}"'
                ),
            },
        ]
        try:
            raw = await self.llm.complete(messages, temperature=0.4, max_tokens=300, json_mode=True)
        except Exception as exc:
            logger.warning("quick_suggestions: LLM unavailable: %s", exc)
            return [self.FALLBACK_TIP]

        ok, data = parse_json_response(raw)
        if not ok:
            return [self.FALLBACK_TIP]
        tips = data.get("tips") if isinstance(data, dict) else data
        if not isinstance(tips, list):
            return []
        return [str(t).strip() for t in tips if str(t).strip()]

    async def improve_selection(self, text: str, context: str = "") -> str:
        user = f'Improve this text to sound more natural and human: "{text}"'
        if context:
            user += f"\n\nContext: {context[:200]}"

        messages = [
            {"role": "system", "content": prompts.render("polisher.improve")},
            {"role": "user", "content": user},
        ]
        try:
            improved = await self.llm.complete(messages, temperature=0.3, max_tokens=500)
        except Exception as exc:
            logger.warning("improve_selection: LLM unavailable, returning original: %s", exc)
            return text

        improved = improved.strip().strip('"').strip()
        return improved or text

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fallback(self, plain: str, word_count: int) -> PolishReport:
        return PolishReport(
            suggestions=[],
            overall_score=self.DEFAULT_SCORE,
            summary=self.FALLBACK_SUMMARY,
            word_count=word_count,
            readability_score=readability_score(plain),
        )

    def _format_suggestion(self, item: Dict[str, Any]) -> Suggestion:
        kind = str(item.get("type", "")).lower().strip()
        if kind not in self.VALID_TYPES:
            kind = "style"
        return Suggestion(
            type=kind,
            original=str(item.get("original") or ""),
            suggested=str(item.get("suggested") or item.get("improved") or ""),
            explanation=str(item.get("explanation") or ""),
            confidence=self._clamp(item.get("confidence"), default=0.7),
        )

    def _score(self, value: Any) -> float:
        try:
            score = float(value)
        except (TypeError, ValueError):
            return self.DEFAULT_SCORE
        return clamp(score, 0.0, 100.0)

    @staticmethod
    def _clamp(value: Any, default: float = 0.7) -> float:
        try:
            return clamp(float(value), 0.0, 1.0)
        except (TypeError, ValueError):
            return default
