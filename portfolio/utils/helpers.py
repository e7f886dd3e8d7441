"""
Common utility functions and helpers.
"""
from datetime import datetime, timezone
from typing import Optional, Union
import html
import re
import unicodedata


def utcnow() -> datetime:
    """Timezone-aware current UTC time, used for column defaults."""
    return datetime.now(timezone.utc)


def slugify(text: str, max_length: int = 200) -> str:
    """
    Derive a URL slug from a title.

    Args:
        text: Raw title

    Returns:
        Lowercase, hyphen-separated ASCII slug
    """
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = text.lower().strip()
    # Drop anything that is not a word character, space or hyphen
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")[:max_length].strip("-")


def parse_identifier(identifier: str) -> Union[int, str]:
    """
    Interpret a path identifier as a numeric id when it is all digits,
    otherwise as a slug.
    """
    identifier = identifier.strip()
    if identifier.isdigit():
        return int(identifier)
    return identifier


def strip_html(text: str) -> str:
    """
    Remove HTML tags and collapse whitespace.

    Args:
        text: Rich-text or markdown-ish content

    Returns:
        Plain text
    """
    if not text:
        return ""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", " ", text, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<br\s*/?>|</p>|</div>|</li>|</h[1-6]>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n+", "\n\n", text)
    return text.strip()


def estimate_read_time(text: str, words_per_minute: int = 200) -> int:
    """Whole minutes needed to read ``text``; never less than one."""
    words = len(strip_html(text).split())
    return max(1, round(words / words_per_minute))


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` to the closed interval [lo, hi]."""
    return max(lo, min(hi, value))


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.
    """
    return numerator / denominator if denominator != 0 else default


def truncate_text(text: Optional[str], max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
