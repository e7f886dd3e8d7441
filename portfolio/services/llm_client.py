"""
Client for a hosted, OpenAI-compatible LLM endpoint.

One instance is created in the application lifespan and handed to routes
through the ``get_llm_client`` dependency; services never build their own.

Public API
----------
LLMClient.complete(messages, *, temperature, max_tokens, json_mode) -> str
LLMClient.embed(texts)                                              -> List[List[float]]
LLMClient.check_health()                                            -> bool
parse_json_response(text)                                           -> (ok, value)
"""
from __future__ import annotations

import asyncio
import json
import logging
import math
import re
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from portfolio.config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when the LLM endpoint cannot produce a usable answer."""


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def _normalize(vector: List[float]) -> List[float]:
    """Return a unit-length copy of *vector*."""
    magnitude = math.sqrt(sum(x * x for x in vector))
    if magnitude == 0.0:
        return vector
    return [x / magnitude for x in vector]


def _is_transient(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class LLMClient:
    """
    Thin async wrapper over ``/chat/completions`` and ``/embeddings``.

    * Semaphore caps concurrent upstream calls (MAX_CONCURRENT = 4)
    * Exponential-backoff retries on connect errors, timeouts, 429 and 5xx
    * Any other failure raises ``LLMError`` immediately
    * Embeddings are L2-normalized before they are returned
    """

    MAX_CONCURRENT: int = 4

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        chat_model: Optional[str] = None,
        embed_model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.chat_model = chat_model or settings.LLM_CHAT_MODEL
        self.embed_model = embed_model or settings.LLM_EMBED_MODEL
        self.max_retries = max_retries if max_retries is not None else settings.LLM_MAX_RETRIES
        self.backoff_base = backoff_base
        self._semaphore = asyncio.Semaphore(self.MAX_CONCURRENT)

        key = api_key if api_key is not None else settings.LLM_API_KEY
        headers = {"Content-Type": "application/json"}
        if key:
            headers["Authorization"] = f"Bearer {key}"

        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(float(timeout or settings.LLM_TIMEOUT), connect=10.0),
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: int = 1000,
        json_mode: bool = False,
    ) -> str:
        """
        Run one chat completion and return the assistant message text.

        Args:
            messages: OpenAI-style ``[{"role": ..., "content": ...}]`` list.
            temperature: Sampling temperature (defaults to LLM_TEMPERATURE).
            max_tokens: Completion token cap.
            json_mode: Ask the endpoint for a JSON object response.

        Raises:
            LLMError: on a non-retryable failure or when retries run out.
        """
        payload: Dict[str, Any] = {
            "model": self.chat_model,
            "messages": messages,
            "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = await self._post_with_retry("/chat/completions", payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(f"Malformed completion response: {exc}") from exc

        if not content or not content.strip():
            raise LLMError("Empty completion from LLM")
        return content.strip()

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a batch of texts. Order of the result matches *texts*.

        Raises:
            LLMError: when the endpoint fails or returns the wrong count.
        """
        if not texts:
            return []

        data = await self._post_with_retry(
            "/embeddings",
            {"model": self.embed_model, "input": texts},
        )
        try:
            rows = sorted(data["data"], key=lambda row: row.get("index", 0))
            vectors = [_normalize(list(row["embedding"])) for row in rows]
        except (KeyError, TypeError) as exc:
            raise LLMError(f"Malformed embeddings response: {exc}") from exc

        if len(vectors) != len(texts):
            raise LLMError(
                f"Embedding count mismatch: sent {len(texts)}, got {len(vectors)}"
            )
        return vectors

    async def check_health(self) -> bool:
        """Return True when the endpoint answers ``GET /models``."""
        try:
            resp = await self._http.get("/models")
            return resp.status_code == 200
        except httpx.HTTPError as exc:
            logger.warning("LLM health check failed: %s", exc)
            return False

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _post_with_retry(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST *payload* to *path* with up to ``max_retries`` attempts.
        Backs off exponentially between transient failures.
        """
        last_error = "no attempt made"
        attempts = max(1, self.max_retries)

        async with self._semaphore:
            for attempt in range(1, attempts + 1):
                try:
                    t0 = time.perf_counter()
                    resp = await self._http.post(path, json=payload)
                    elapsed_ms = (time.perf_counter() - t0) * 1000
                except (httpx.ConnectError, httpx.TimeoutException) as exc:
                    last_error = f"{type(exc).__name__}: {exc}"
                    logger.warning(
                        "LLM %s transport error (attempt %d/%d): %s",
                        path, attempt, attempts, exc,
                    )
                    if attempt < attempts:
                        await asyncio.sleep(self.backoff_base * 2 ** (attempt - 1))
                    continue
                except httpx.HTTPError as exc:
                    raise LLMError(f"HTTP error calling {path}: {exc}") from exc

                if resp.status_code == 200:
                    logger.debug("LLM %s answered in %.1f ms", path, elapsed_ms)
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise LLMError(f"Non-JSON body from {path}") from exc

                last_error = f"HTTP {resp.status_code}: {resp.text[:300]}"
                if not _is_transient(resp.status_code):
                    logger.error("LLM %s rejected request: %s", path, last_error)
                    raise LLMError(last_error)

                logger.warning(
                    "LLM %s returned %d (attempt %d/%d)",
                    path, resp.status_code, attempt, attempts,
                )
                if attempt < attempts:
                    await asyncio.sleep(self.backoff_base * 2 ** (attempt - 1))

        logger.error("All %d LLM attempts to %s failed: %s", attempts, path, last_error)
        raise LLMError(f"LLM request to {path} failed after {attempts} attempts: {last_error}")


# ---------------------------------------------------------------------------
# Robust JSON parsing of model output
# ---------------------------------------------------------------------------

def parse_json_response(response: Optional[str]) -> Tuple[bool, Any]:
    """
    Try multiple strategies to parse JSON from potentially messy LLM output.

    Handles:
    - Markdown code fences (```json … ```, ``` … ```)
    - Trailing commas before ] or }
    - Python-style True / False / None
    - Surrounding prose (finds the first balanced {...} or [...] block)

    Returns ``(success, parsed_value)``.
    """
    if not response:
        return False, None

    text = response.strip()

    ok, val = _try_json(text)
    if ok:
        return True, val

    stripped = _strip_code_fences(text)
    if stripped != text:
        ok, val = _try_json(stripped)
        if ok:
            return True, val
        text = stripped

    fixed = _fix_json_issues(text)
    ok, val = _try_json(fixed)
    if ok:
        return True, val

    for bracket_pair in (("{", "}"), ("[", "]")):
        fragment = _extract_json_structure(text, *bracket_pair)
        if fragment:
            ok, val = _try_json(fragment)
            if ok:
                return True, val
            ok, val = _try_json(_fix_json_issues(fragment))
            if ok:
                return True, val

    logger.debug("parse_json_response: no JSON found. Preview: %s", response[:200])
    return False, None


def _try_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _strip_code_fences(text: str) -> str:
    """Remove ```json / ``` delimiters that LLMs often wrap output in."""
    text = re.sub(r"^```(?:json|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def _fix_json_issues(text: str) -> str:
    """Repair the most common JSON mangling patterns from LLMs."""
    text = re.sub(r",(\s*[}\]])", r"\1", text)
    text = re.sub(r"\bTrue\b", "true", text)
    text = re.sub(r"\bFalse\b", "false", text)
    text = re.sub(r"\bNone\b", "null", text)
    return text.strip()


def _extract_json_structure(text: str, open_b: str, close_b: str) -> str:
    """
    Find the first complete balanced open_b … close_b structure in *text*.
    Returns the matched fragment, or empty string if not found.
    """
    start = text.find(open_b)
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escape_next = False

    for i, ch in enumerate(text[start:], start=start):
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_b:
            depth += 1
        elif ch == close_b:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return ""
