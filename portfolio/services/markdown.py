"""
Markdown import and export for blog posts.

A post file is a YAML front matter block between ``---`` lines followed by a
Markdown body. Headings (``#`` to ``###``), bold, italics, line breaks and
paragraphs are converted in both directions; any other HTML is dropped on
export.

Public API
----------
split_front_matter(text)   -> (dict, body)
markdown_to_html(text)     -> str
html_to_markdown(html)     -> str
parse_markdown_post(text)  -> BlogPostCreate   (draft, not saved)
post_to_markdown(post)     -> str
"""
from __future__ import annotations

import datetime as dt
import html
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import yaml

from portfolio.models.database_models import BlogPost
from portfolio.models.schemas import BlogPostCreate
from portfolio.utils.helpers import slugify

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"
DEFAULT_IMPORT_TITLE = "Imported Blog Post"

_HEADING_RE = re.compile(r"^(#{1,3})\s+(.+?)\s*#*$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_RE = re.compile(r"(?<!\*)\*(?!\*)(.+?)(?<!\*)\*(?!\*)")

_EXPORT_RULES = (
    (re.compile(r"<h([1-3])[^>]*>(.*?)</h\1>", re.S | re.I), lambda m: "#" * int(m.group(1)) + f" {m.group(2).strip()}\n\n"),
    (re.compile(r"<(strong|b)>(.*?)</\1>", re.S | re.I), lambda m: f"**{m.group(2)}**"),
    (re.compile(r"<(em|i)>(.*?)</\1>", re.S | re.I), lambda m: f"*{m.group(2)}*"),
    (re.compile(r"<br\s*/?>", re.I), lambda m: "\n"),
    (re.compile(r"<p[^>]*>(.*?)</p>", re.S | re.I), lambda m: f"{m.group(1).strip()}\n\n"),
)


# ---------------------------------------------------------------------------
# Front matter
# ---------------------------------------------------------------------------

def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Separate the YAML header from the body. Text without a closed header, or
    with a header that is not a YAML mapping, comes back unchanged with no
    metadata.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return {}, text

    for index in range(1, len(lines)):
        if lines[index].strip() == FRONT_MATTER_DELIMITER:
            header = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1:])
            try:
                meta = yaml.safe_load(header) or {}
            except yaml.YAMLError as exc:
                logger.warning("Ignoring unreadable front matter: %s", exc)
                return {}, body
            if not isinstance(meta, dict):
                return {}, body
            return meta, body

    return {}, text


# ---------------------------------------------------------------------------
# Body conversion
# ---------------------------------------------------------------------------

def _inline(text: str) -> str:
    text = _BOLD_RE.sub(r"<strong>\1</strong>", text)
    return _ITALIC_RE.sub(r"<em>\1</em>", text)


def markdown_to_html(text: str) -> str:
    """Convert the supported Markdown subset to HTML, one block per line."""
    blocks: List[str] = []
    for block in re.split(r"\n\s*\n", text.strip()):
        paragraph: List[str] = []
        for line in block.splitlines():
            line = line.strip()
            heading = _HEADING_RE.match(line)
            if heading:
                if paragraph:
                    blocks.append("<p>" + "<br>".join(paragraph) + "</p>")
                    paragraph = []
                level = len(heading.group(1))
                blocks.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
            elif line:
                paragraph.append(_inline(line))
        if paragraph:
            blocks.append("<p>" + "<br>".join(paragraph) + "</p>")
    return "\n".join(blocks)


def html_to_markdown(content: str) -> str:
    """Convert post HTML back to Markdown, dropping unsupported tags."""
    if not content:
        return ""
    text = content
    for pattern, replacement in _EXPORT_RULES:
        text = pattern.sub(replacement, text)
    text = re.sub(r"<[^>]+>", "", text)
    text = html.unescape(text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "yes", "1")


def _as_tags(value: Any) -> List[str]:
    if value is None:
        return []
    items = value if isinstance(value, list) else str(value).split(",")
    return [str(tag).strip() for tag in items if str(tag).strip()]


def _as_datetime(value: Any) -> Optional[Any]:
    # YAML turns bare dates into datetime.date; strings are left to pydantic
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time(), tzinfo=dt.timezone.utc)
    return str(value) if value else None


def parse_markdown_post(text: str) -> BlogPostCreate:
    """
    Build an unsaved post draft from a Markdown file. Imported posts are
    unpublished unless the front matter says otherwise.

    Raises:
        pydantic.ValidationError: a front matter value has the wrong shape.
    """
    meta, body = split_front_matter(text)

    title = str(meta.get("title") or "").strip()[:255] or DEFAULT_IMPORT_TITLE
    slug = slugify(str(meta.get("slug") or title))
    cover = meta.get("cover_image") or meta.get("coverImage") or meta.get("image") or ""

    return BlogPostCreate(
        title=title,
        slug=slug or None,
        excerpt=str(meta.get("excerpt") or meta.get("description") or ""),
        content=markdown_to_html(body),
        cover_image=str(cover),
        tags=_as_tags(meta.get("tags")),
        category=str(meta["category"]) if meta.get("category") else None,
        featured=_as_bool(meta.get("featured", False)),
        published=_as_bool(meta.get("published", False)),
        date=_as_datetime(meta.get("date")),
    )


def post_to_markdown(post: BlogPost) -> str:
    """Serialise a stored post as front matter plus a Markdown body."""
    meta: Dict[str, Any] = {
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt or "",
        "category": post.category or "",
        "tags": list(post.tags or []),
        "featured": bool(post.featured),
        "published": bool(post.published),
        "date": post.date.isoformat() if post.date else None,
    }
    if post.cover_image:
        meta["cover_image"] = post.cover_image

    header = yaml.safe_dump(meta, allow_unicode=True, sort_keys=False, default_flow_style=False)
    body = html_to_markdown(post.content)
    return f"{FRONT_MATTER_DELIMITER}\n{header}{FRONT_MATTER_DELIMITER}\n\n{body}\n"
