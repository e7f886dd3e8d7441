"""
Vector store over admin-uploaded chatbot reference documents.

Splitting strategy (in priority order):
  1. Primary   by paragraph boundaries, packed up to CHUNK_SIZE words
  2. Secondary by sentence boundaries when a paragraph exceeds CHUNK_SIZE
  3. Last resort a hard word-boundary split for a single oversized sentence

Consecutive chunks share CHUNK_OVERLAP words from the tail of their
predecessor. Vectors are produced through the injected LLMClient and stored
unit-length on ChatbotDocumentChunk.embedding. On PostgreSQL the column is a
pgvector ``vector`` and search runs in the database ordered by cosine
distance; on SQLite the vectors are JSON lists scored with numpy.

Public API
----------
chunk_text(text, chunk_size, overlap)      -> List[str]
similarity_statement(query_vec, top_k)     -> Select
VectorStore.index_document(document)       -> IndexResult
VectorStore.search(query, top_k)           -> List[RetrievedChunk]
VectorStore.reindex_all()                  -> IndexResult
"""
from __future__ import annotations

import dataclasses
import logging
import re
from typing import List, Optional, Tuple

import numpy as np
from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.config import settings
from portfolio.models.database_models import ChatbotDocument, ChatbotDocumentChunk
from portfolio.services.llm_client import LLMClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class RetrievedChunk:
    """A chunk returned by VectorStore.search, best match first."""

    document_id: int
    document_name: str
    chunk_index: int
    content: str
    similarity: float


@dataclasses.dataclass
class IndexResult:
    chunk_count: int = 0
    embedded: int = 0
    failed: int = 0


# ---------------------------------------------------------------------------
# Text splitting helpers
# ---------------------------------------------------------------------------

def _count_tokens(text: str) -> int:
    """Approximate token count via whitespace splitting (1 word ≈ 1 token)."""
    return len(text.split())


def _split_paragraphs(text: str) -> List[str]:
    parts = re.split(r"\n\s*\n", text)
    return [p.strip() for p in parts if p.strip()]


# End of sentence punctuation followed by whitespace and an uppercase letter
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z\"\(\[])")


def _split_sentences(text: str) -> List[str]:
    parts = _SENTENCE_RE.split(text)
    return [p.strip() for p in parts if p.strip()]


def _pack(pieces: List[str], chunk_size: int) -> List[str]:
    """Greedily join pieces into chunks of at most ``chunk_size`` words."""
    chunks: List[str] = []
    current: List[str] = []

    for piece in pieces:
        size = _count_tokens(piece)
        if size > chunk_size:
            if current:
                chunks.append(" ".join(current))
                current = []
            sentences = _split_sentences(piece)
            if len(sentences) > 1:
                chunks.extend(_pack(sentences, chunk_size))
            else:
                words = piece.split()
                for i in range(0, len(words), chunk_size):
                    chunks.append(" ".join(words[i:i + chunk_size]))
            continue

        if current and len(current) + size > chunk_size:
            chunks.append(" ".join(current))
            current = []
        current.extend(piece.split())

    if current:
        chunks.append(" ".join(current))
    return chunks


def _apply_overlap(chunks: List[str], overlap_tokens: int) -> List[str]:
    """Prepend the tail of the previous chunk to each subsequent chunk."""
    if len(chunks) <= 1 or overlap_tokens <= 0:
        return chunks

    result = [chunks[0]]
    for i in range(1, len(chunks)):
        tail_words = chunks[i - 1].split()[-overlap_tokens:]
        result.append(" ".join(tail_words) + " " + chunks[i])
    return result


def chunk_text(
    text: str,
    chunk_size: Optional[int] = None,
    overlap: Optional[int] = None,
) -> List[str]:
    """
    Split *text* into overlapping, paragraph- and sentence-aware chunks.
    Empty or whitespace-only text yields no chunks.
    """
    chunk_size = chunk_size or settings.CHUNK_SIZE
    overlap = settings.CHUNK_OVERLAP if overlap is None else overlap
    if not text or not text.strip():
        return []

    if _count_tokens(text) <= chunk_size:
        return [" ".join(text.split())]

    pieces = _pack(_split_paragraphs(text), chunk_size)
    return _apply_overlap(pieces, min(overlap, chunk_size - 1))


def _retrieved(chunk: ChatbotDocumentChunk, document_name: str, similarity: float) -> RetrievedChunk:
    return RetrievedChunk(
        document_id=chunk.document_id,
        document_name=document_name,
        chunk_index=chunk.chunk_index,
        content=chunk.content,
        similarity=round(similarity, 4),
    )


def similarity_statement(query_vec: List[float], top_k: int) -> Select:
    """
    pgvector nearest-neighbour query: chunks ordered by cosine distance
    (``<=>``) to *query_vec*, cut off at RETRIEVAL_MIN_SIMILARITY.
    """
    distance = ChatbotDocumentChunk.embedding.cosine_distance(query_vec)
    return (
        select(ChatbotDocumentChunk, ChatbotDocument.original_name, distance.label("distance"))
        .join(ChatbotDocument, ChatbotDocument.id == ChatbotDocumentChunk.document_id)
        .where(ChatbotDocumentChunk.embedding.is_not(None))
        .where(distance <= 1.0 - settings.RETRIEVAL_MIN_SIMILARITY)
        .order_by(distance)
        .limit(top_k)
    )


# ---------------------------------------------------------------------------
# Vector store
# ---------------------------------------------------------------------------

class VectorStore:
    """Chunk storage and similarity search backed by the relational store."""

    EMBED_BATCH_SIZE: int = 16

    def __init__(self, db: AsyncSession, llm: LLMClient) -> None:
        self.db = db
        self.llm = llm

    async def index_document(self, document: ChatbotDocument) -> IndexResult:
        """
        Replace the chunks of *document* with fresh ones and embed them.
        Embedding failures leave ``embedding`` NULL so ``reindex_all`` can retry.
        """
        await self.db.execute(
            delete(ChatbotDocumentChunk).where(ChatbotDocumentChunk.document_id == document.id)
        )

        pieces = chunk_text(document.content or "")
        chunks = [
            ChatbotDocumentChunk(document_id=document.id, chunk_index=i, content=piece)
            for i, piece in enumerate(pieces)
        ]
        self.db.add_all(chunks)
        await self.db.flush()

        embedded, failed = await self._embed_chunks(chunks)
        logger.info(
            "Indexed document id=%d: %d chunks, %d embedded, %d failed",
            document.id, len(chunks), embedded, failed,
        )
        return IndexResult(chunk_count=len(chunks), embedded=embedded, failed=failed)

    async def reindex_all(self) -> IndexResult:
        """Embed every chunk that is still missing a vector."""
        result = await self.db.execute(
            select(ChatbotDocumentChunk)
            .where(ChatbotDocumentChunk.embedding.is_(None))
            .order_by(ChatbotDocumentChunk.document_id, ChatbotDocumentChunk.chunk_index)
        )
        chunks = list(result.scalars().all())
        embedded, failed = await self._embed_chunks(chunks)
        logger.info("Reindex: %d embedded, %d failed", embedded, failed)
        return IndexResult(chunk_count=len(chunks), embedded=embedded, failed=failed)

    async def is_empty(self) -> bool:
        count = await self.db.scalar(
            select(func.count(ChatbotDocumentChunk.id))
            .where(ChatbotDocumentChunk.embedding.is_not(None))
        )
        return not count

    async def search(self, query: str, top_k: Optional[int] = None) -> List[RetrievedChunk]:
        """
        Return up to *top_k* chunks whose cosine similarity to *query* is at
        least RETRIEVAL_MIN_SIMILARITY, best match first.

        Raises:
            LLMError: when the query cannot be embedded.
        """
        top_k = top_k or settings.RETRIEVAL_TOP_K
        if not query.strip() or await self.is_empty():
            return []

        [query_vec] = await self.llm.embed([query])

        if self._uses_pgvector():
            if len(query_vec) != settings.VECTOR_DIMENSION:
                logger.warning(
                    "Query embedding has %d dimensions, store expects %d",
                    len(query_vec), settings.VECTOR_DIMENSION,
                )
                return []
            rows = (await self.db.execute(similarity_statement(query_vec, top_k))).all()
            return [
                _retrieved(chunk, document_name, 1.0 - float(distance))
                for chunk, document_name, distance in rows
            ]

        return await self._search_in_memory(query_vec, top_k)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _uses_pgvector(self) -> bool:
        return self.db.get_bind().dialect.name == "postgresql"

    async def _search_in_memory(self, query_vec: List[float], top_k: int) -> List[RetrievedChunk]:
        """Cosine similarity with numpy, for backends without pgvector."""
        rows = (
            await self.db.execute(
                select(ChatbotDocumentChunk, ChatbotDocument.original_name)
                .join(ChatbotDocument, ChatbotDocument.id == ChatbotDocumentChunk.document_id)
                .where(ChatbotDocumentChunk.embedding.is_not(None))
            )
        ).all()
        query_arr = np.asarray(query_vec, dtype=float)

        # Vectors from a previous embedding model have a different width
        candidates = [
            (chunk, document_name)
            for chunk, document_name in rows
            if len(chunk.embedding) == query_arr.shape[0]
        ]
        if not candidates:
            return []

        matrix = np.array([list(chunk.embedding) for chunk, _ in candidates], dtype=float)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms = np.where(norms == 0, 1.0, norms)
        query_norm = float(np.linalg.norm(query_arr)) or 1.0
        similarities = (matrix / norms) @ (query_arr / query_norm)

        scored = [
            _retrieved(chunk, document_name, float(sim))
            for (chunk, document_name), sim in zip(candidates, similarities)
            if float(sim) >= settings.RETRIEVAL_MIN_SIMILARITY
        ]
        scored.sort(key=lambda c: c.similarity, reverse=True)
        return scored[:top_k]

    async def _embed_chunks(self, chunks: List[ChatbotDocumentChunk]) -> Tuple[int, int]:
        embedded = 0
        failed = 0
        fixed_width = self._uses_pgvector()
        for start in range(0, len(chunks), self.EMBED_BATCH_SIZE):
            batch = chunks[start:start + self.EMBED_BATCH_SIZE]
            try:
                vectors = await self.llm.embed([c.content for c in batch])
            except Exception as exc:
                logger.error(
                    "Embedding batch of %d chunks failed: %s", len(batch), exc
                )
                failed += len(batch)
                continue
            if fixed_width and any(len(v) != settings.VECTOR_DIMENSION for v in vectors):
                logger.error(
                    "Embedding batch of %d chunks has the wrong width (expected %d)",
                    len(batch), settings.VECTOR_DIMENSION,
                )
                failed += len(batch)
                continue
            for chunk, vector in zip(batch, vectors):
                chunk.embedding = vector
            embedded += len(batch)

        if embedded:
            await self.db.flush()
        return embedded, failed
