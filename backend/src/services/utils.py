"""Shared utility functions for service layer."""
import math
import re
from datetime import UTC, date, datetime, time

from bs4 import BeautifulSoup

from schemas.post import ReadingTime

WORDS_PER_MINUTE = 200

_NON_SLUG_CHARS = re.compile(r"[^\w\s-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(text: str) -> str:
    """
    Convert text to a URL-safe slug.

    Lowercases, drops anything that is not a word character, whitespace or hyphen,
    collapses runs of whitespace/underscores/hyphens into one hyphen and trims
    leading/trailing hyphens.
    """
    slug = _NON_SLUG_CHARS.sub("", text.lower())
    slug = _SLUG_SEPARATORS.sub("-", slug)
    return slug.strip("-")


def strip_markup(content: str) -> str:
    """
    Reduce HTML produced by the editor to plain text.

    Lossy: formatting, links and images are dropped and only text nodes are
    kept. Text without tags is returned unchanged apart from entity decoding.
    """
    if "<" not in content and "&" not in content:
        return content
    return BeautifulSoup(content, "html.parser").get_text()


def chunk_text(text: str, size: int) -> list[str]:
    """Split text into consecutive pieces of at most ``size`` characters."""
    if size <= 0:
        raise ValueError("size must be positive")
    return [text[i:i + size] for i in range(0, len(text), size)]


def compute_reading_time(text: str) -> ReadingTime:
    """
    Estimate reading time from the word count at 200 words per minute.

    ``text`` is rounded up to whole minutes and never below one minute.
    """
    words = len(text.split())
    minutes = words / WORDS_PER_MINUTE
    display = max(1, math.ceil(minutes))
    return ReadingTime(
        text=f"{display} min read",
        minutes=minutes,
        time=round(minutes * 60_000),
        words=words,
    )


def coerce_datetime(value: object) -> datetime | None:
    """
    Normalize front-matter or API date values to timezone-aware datetimes.

    Accepts datetimes, dates and ISO 8601 strings (``Z`` suffix allowed). Naive
    values are assumed to be UTC. Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            result = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if result.tzinfo is None:
        result = result.replace(tzinfo=UTC)
    return result
