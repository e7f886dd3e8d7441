"""
Shared fixtures for portfolio backend integration tests.

Runs against TEST_DATABASE_URL (a throwaway SQLite file by default, via
aiosqlite). Each test function gets its own session; tables are created
before the test and dropped afterwards so each test starts with a clean slate.
The hosted LLM is replaced by FakeLLMClient through dependency_overrides.
"""
from __future__ import annotations

import math
import os
import tempfile
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override settings *before* any portfolio module is imported, so that
# settings and the global engine point at the test resources.
_TMP_DIR = os.environ.setdefault("PORTFOLIO_TEST_TMP", tempfile.mkdtemp(prefix="portfolio-tests-"))
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["RESUME_DOWNLOAD_PASSWORD"] = "let-me-in"
os.environ["AUTO_EVALUATE_CONVERSATIONS"] = "false"
os.environ["LLM_API_KEY"] = "test-llm-key"

from portfolio.database import Base, get_db  # noqa: E402
from portfolio.dependencies.llm import get_llm_client  # noqa: E402
from portfolio.main import app  # noqa: E402
from portfolio.services.llm_client import LLMError  # noqa: E402


# ---------------------------------------------------------------------------
# Fake LLM
# ---------------------------------------------------------------------------

EMBED_DIM = 32


def bag_of_words_vector(text: str) -> List[float]:
    """Deterministic unit vector: words hashed into EMBED_DIM buckets."""
    vec = [0.0] * EMBED_DIM
    for word in text.lower().split():
        word = word.strip(".,!?;:\"'()")
        if word:
            vec[sum(ord(c) for c in word) % EMBED_DIM] += 1.0
    norm = math.sqrt(sum(v * v for v in vec))
    return [v / norm for v in vec] if norm else vec


class FakeLLMClient:
    """
    Stand-in for LLMClient.

    * ``queue(...)`` scripts completion replies in call order; an Exception
      instance in the queue is raised instead of returned
    * ``responder`` (messages -> str) answers when the queue is empty
    * ``fail = True`` makes every completion raise LLMError
    * ``fail_embed = True`` makes every embedding call raise LLMError
    """

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.embed_calls: List[List[str]] = []
        self.responses: List[Any] = []
        self.responder: Optional[Callable[[List[Dict[str, str]]], str]] = None
        self.default_response = '{"response": "Happy to help.", "isOnTopic": true, "confidence": 0.9}'
        self.fail = False
        self.fail_embed = False
        self.healthy = True

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: int = 1000,
        json_mode: bool = False,
    ) -> str:
        self.calls.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens, "json_mode": json_mode}
        )
        if self.fail:
            raise LLMError("upstream unavailable")
        if self.responses:
            reply = self.responses.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply
        if self.responder is not None:
            return self.responder(messages)
        return self.default_response

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.embed_calls.append(list(texts))
        if self.fail_embed:
            raise LLMError("embeddings unavailable")
        return [bag_of_words_vector(t) for t in texts]

    async def check_health(self) -> bool:
        return self.healthy

    async def aclose(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, all tables are dropped
    so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, fake_llm: FakeLLMClient) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB and LLM
    dependencies overridden to use the per-test session and the fake.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_llm_client] = lambda: fake_llm

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}

BAD_ADMIN_HEADERS = {"X-Admin-Key": "wrong-key"}

RESUME_PASSWORD = "let-me-in"
