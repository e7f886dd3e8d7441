"""
Text extraction for chatbot reference documents.

Supports PDF (PyMuPDF), DOCX (python-docx) and plain text / markdown.
Returns a ParsedDocument with the full text and light metadata.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import fitz  # PyMuPDF
from docx import Document as DocxDocument

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class ParsedDocument:
    """
    Output of the DocumentParser.

    Attributes:
        full_text: Complete text of the document, paragraphs separated by blank lines.
        metadata:  Dict with page_count, word_count, title, author and file_type.
    """

    full_text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class DocumentParser:
    """Parses PDF, DOCX and text documents into ParsedDocument objects."""

    async def parse_document(self, file_path: str, file_type: str) -> ParsedDocument:
        """
        Parse a document file.

        Args:
            file_path: Path to the file on disk.
            file_type: Extension with or without dot, e.g. ".pdf" or "md".

        Raises:
            ValueError:   Unsupported file type.
            RuntimeError: Password-protected or unreadable file.
        """
        ft = file_type.lower().lstrip(".")
        if ft == "pdf":
            return await self._parse_pdf(file_path)
        elif ft == "docx":
            return await self._parse_docx(file_path)
        elif ft in ("txt", "md"):
            return await self._parse_text(file_path, ft)
        else:
            raise ValueError(f"Unsupported file type: {file_type!r}")

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def _parse_pdf(self, file_path: str) -> ParsedDocument:
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            raise RuntimeError(f"Cannot open PDF file: {exc}") from exc

        try:
            if doc.needs_pass:
                raise RuntimeError(
                    "PDF is password-protected. Please provide an unlocked copy."
                )

            raw_meta = doc.metadata or {}
            pages: List[str] = []
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    pages.append(text)
            page_count = doc.page_count
        finally:
            doc.close()

        full_text = "\n\n".join(pages)
        return ParsedDocument(
            full_text=full_text,
            metadata={
                "page_count": page_count,
                "word_count": len(full_text.split()),
                "title": raw_meta.get("title") or "",
                "author": raw_meta.get("author") or "",
                "file_type": "pdf",
            },
        )

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    async def _parse_docx(self, file_path: str) -> ParsedDocument:
        """Paragraphs in order, headings marked with '#', then tables."""
        try:
            doc = DocxDocument(file_path)
        except Exception as exc:
            raise RuntimeError(f"Cannot open DOCX file: {exc}") from exc

        parts: List[str] = []
        for para in doc.paragraphs:
            text = para.text.strip()
            if not text:
                continue
            style_name = para.style.name.lower() if para.style and para.style.name else ""
            if style_name.startswith("heading") or style_name == "title":
                parts.append(f"# {text}")
            else:
                parts.append(text)

        for table in doc.tables:
            rows: List[str] = []
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                non_empty = [c for c in cells if c]
                if non_empty:
                    rows.append(" | ".join(non_empty))
            if rows:
                parts.append("\n".join(rows))

        core = doc.core_properties
        full_text = "\n\n".join(parts)
        return ParsedDocument(
            full_text=full_text,
            metadata={
                "page_count": None,  # python-docx cannot report rendered page count
                "word_count": len(full_text.split()),
                "title": core.title or "",
                "author": core.author or "",
                "file_type": "docx",
            },
        )

    # ------------------------------------------------------------------
    # Plain text / markdown
    # ------------------------------------------------------------------

    async def _parse_text(self, file_path: str, file_type: str) -> ParsedDocument:
        try:
            with open(file_path, "rb") as fh:
                raw = fh.read()
        except OSError as exc:
            raise RuntimeError(f"Cannot read text file: {exc}") from exc

        full_text = raw.decode("utf-8", errors="replace").replace("\r\n", "\n").strip()
        return ParsedDocument(
            full_text=full_text,
            metadata={
                "page_count": None,
                "word_count": len(full_text.split()),
                "title": "",
                "author": "",
                "file_type": file_type,
            },
        )
