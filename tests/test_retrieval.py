"""Tests for document chunking, indexing and similarity search."""
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.models.database_models import ChatbotDocument, ChatbotDocumentChunk
from portfolio.services.retrieval import VectorStore, chunk_text, similarity_statement
from tests.conftest import ADMIN_HEADERS, FakeLLMClient


# ---------------------------------------------------------------------------
# chunk_text
# ---------------------------------------------------------------------------

def test_empty_text_has_no_chunks():
    assert chunk_text("") == []
    assert chunk_text("   \n\n  ") == []


def test_short_text_is_one_chunk():
    assert chunk_text("one  two\nthree", chunk_size=10) == ["one two three"]


def test_paragraphs_are_packed_with_overlap():
    text = "a b c d\n\ne f g h\n\ni j k l"
    chunks = chunk_text(text, chunk_size=8, overlap=2)
    assert chunks == ["a b c d e f g h", "g h i j k l"]


def test_oversized_paragraph_split_on_sentences():
    text = "One two three four. Five six seven eight. Nine ten eleven twelve."
    chunks = chunk_text(text, chunk_size=5, overlap=0)
    assert chunks == ["One two three four.", "Five six seven eight.", "Nine ten eleven twelve."]


def test_single_long_sentence_hard_split():
    words = " ".join(f"w{i}" for i in range(12))
    chunks = chunk_text(words, chunk_size=5, overlap=0)
    assert [len(c.split()) for c in chunks] == [5, 5, 2]


# ---------------------------------------------------------------------------
# VectorStore
# ---------------------------------------------------------------------------

async def _document(db: AsyncSession, name: str, content: str) -> ChatbotDocument:
    doc = ChatbotDocument(
        filename=f"stored-{name}",
        original_name=name,
        file_path=f"/tmp/{name}",
        file_type="txt",
        size=len(content),
        content=content,
    )
    db.add(doc)
    await db.flush()
    return doc


@pytest.mark.asyncio
async def test_index_and_search(db_session: AsyncSession, fake_llm: FakeLLMClient):
    store = VectorStore(db_session, fake_llm)
    assert await store.is_empty()

    rust = await _document(db_session, "rust.txt", "Nick built a Rust compiler named Ferrite.")
    await _document(db_session, "music.txt", "Nick plays jazz piano on weekends.")
    for doc in (await db_session.execute(select(ChatbotDocument))).scalars().all():
        result = await store.index_document(doc)
        assert (result.chunk_count, result.embedded, result.failed) == (1, 1, 0)

    assert not await store.is_empty()
    hits = await store.search("Rust compiler Ferrite", top_k=1)
    assert len(hits) == 1
    assert hits[0].document_id == rust.id
    assert hits[0].document_name == "rust.txt"
    assert 0.0 < hits[0].similarity <= 1.0


@pytest.mark.asyncio
async def test_reindex_replaces_chunks(db_session: AsyncSession, fake_llm: FakeLLMClient):
    store = VectorStore(db_session, fake_llm)
    doc = await _document(db_session, "a.txt", "first version")
    await store.index_document(doc)
    doc.content = "second version"
    await store.index_document(doc)

    chunks = (await db_session.execute(select(ChatbotDocumentChunk))).scalars().all()
    assert [c.content for c in chunks] == ["second version"]


@pytest.mark.asyncio
async def test_fixed_width_store_rejects_mismatched_vectors(
    db_session: AsyncSession, fake_llm: FakeLLMClient, monkeypatch
):
    store = VectorStore(db_session, fake_llm)
    monkeypatch.setattr(store, "_uses_pgvector", lambda: True)
    doc = await _document(db_session, "short.txt", "A vector of the wrong width.")

    result = await store.index_document(doc)

    assert (result.chunk_count, result.embedded, result.failed) == (1, 0, 1)
    chunk = (await db_session.execute(select(ChatbotDocumentChunk))).scalar_one()
    assert chunk.embedding is None


def test_similarity_statement_orders_by_cosine_distance():
    stmt = similarity_statement([0.0] * settings.VECTOR_DIMENSION, top_k=3)
    sql = str(stmt.compile(dialect=postgresql.dialect()))

    assert "<=>" in sql
    assert "ORDER BY" in sql
    assert "LIMIT" in sql


@pytest.mark.asyncio
async def test_failed_embeddings_are_retried_by_reindex(client: AsyncClient, fake_llm: FakeLLMClient):
    fake_llm.fail_embed = True
    resp = await client.post(
        "/api/admin/chatbot/documents",
        files={"file": ("notes.md", b"# Notes\n\nNick enjoys distributed systems.", "text/markdown")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201
    assert resp.json()["chunk_count"] == 1
    assert resp.json()["embedded_count"] == 0
    assert "reindex" in resp.json()["message"]

    fake_llm.fail_embed = False
    resp = await client.post("/api/admin/chatbot/documents/reindex", headers=ADMIN_HEADERS)
    assert resp.json()["embedded"] == 1
    assert resp.json()["failed"] == 0

    resp = await client.post("/api/admin/chatbot/documents/reindex", headers=ADMIN_HEADERS)
    assert resp.json()["embedded"] == 0


@pytest.mark.asyncio
async def test_document_list_and_delete(client: AsyncClient):
    resp = await client.post(
        "/api/admin/chatbot/documents",
        files={"file": ("bio.txt", b"Nick lives in Denver.", "text/plain")},
        headers=ADMIN_HEADERS,
    )
    doc_id = resp.json()["id"]

    listed = (await client.get("/api/admin/chatbot/documents", headers=ADMIN_HEADERS)).json()
    assert [(d["id"], d["chunk_count"]) for d in listed] == [(doc_id, 1)]

    resp = await client.delete(f"/api/admin/chatbot/documents/{doc_id}", headers=ADMIN_HEADERS)
    assert resp.status_code == 204
    assert (await client.get("/api/admin/chatbot/documents", headers=ADMIN_HEADERS)).json() == []


@pytest.mark.asyncio
async def test_empty_and_unsupported_documents_rejected(client: AsyncClient):
    resp = await client.post(
        "/api/admin/chatbot/documents",
        files={"file": ("blank.txt", b"   \n", "text/plain")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 422

    resp = await client.post(
        "/api/admin/chatbot/documents",
        files={"file": ("sheet.xlsx", b"PK", "application/octet-stream")},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400
