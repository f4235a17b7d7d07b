from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from dateutil import parser as date_parser


UTM_PREFIXES = ("utm_", "fbclid", "gclid", "mc_cid", "mc_eid")
SENTENCE_RE = re.compile(r"\S.*?[.!?]+(?=\s|$)", re.DOTALL)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().replace(microsecond=0).isoformat()


def normalize_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def strip_html(value: str) -> str:
    text = re.sub(r"<[^>]+>", " ", value or "")
    text = html.unescape(text)
    return normalize_whitespace(text)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value) -> datetime | None:
    """Parse a feed timestamp into an aware UTC datetime, or None when unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return ensure_utc(date_parser.parse(str(value)))
    except (ValueError, TypeError, OverflowError):
        return None


def canonicalize_url(url: str) -> str:
    if not url:
        return ""
    parsed = urlparse(url)
    query_pairs = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=False)
        if not any(key.lower().startswith(prefix) for prefix in UTM_PREFIXES)
    ]
    cleaned = parsed._replace(
        query=urlencode(query_pairs),
        fragment="",
        scheme=parsed.scheme.lower(),
        netloc=parsed.netloc.lower(),
    )
    return urlunparse(cleaned)


def split_sentences(text: str) -> list[str]:
    return [normalize_whitespace(match) for match in SENTENCE_RE.findall(text or "") if re.search(r"\w", match)]


def safe_sentence(text: str, max_chars: int = 220) -> str:
    cleaned = normalize_whitespace(text)
    if len(cleaned) <= max_chars:
        return cleaned
    truncated = cleaned[: max_chars - 1]
    period_idx = truncated.rfind(".")
    if period_idx > 80:
        return truncated[: period_idx + 1]
    return truncated + "..."
