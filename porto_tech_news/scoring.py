"""Relevance scoring of an article against one candidate category.

The score is the sum of five independently capped components plus a flat
regional boost:

- title keywords (cap 40): earlier keyword positions in the title weigh more
- content keywords (cap 30): log-scaled occurrence counts in the body
- source quality (cap 15): best matching publisher from a fixed table
- length (cap 10): log-scaled body length
- content value (0..25): funding, market analysis and milestone signals,
  minus a promotional penalty

The regional category gets +15 when the text names the region more than
twice. The result is a pure function of the article text and the category.
"""

from __future__ import annotations

import math
import re

from .config import (
    CATEGORY_BY_SLUG,
    CONTENT_KEYWORD_CAP,
    CONTENT_VALUE_CAP,
    FUNDING_PATTERNS,
    FUNDING_POINTS,
    LENGTH_CAP,
    MARKET_ANALYSIS_PATTERNS,
    MARKET_ANALYSIS_POINTS,
    MILESTONE_PATTERNS,
    MILESTONE_POINTS,
    PROMOTIONAL_PATTERNS,
    PROMOTIONAL_PENALTY,
    REGION_NAME_VARIANTS,
    REGIONAL_BOOST,
    REGIONAL_BOOST_MIN_MENTIONS,
    REGIONAL_CATEGORY,
    SOURCE_QUALITY,
    SOURCE_QUALITY_CAP,
    TITLE_KEYWORD_CAP,
)
from .models import Article, ScoreBreakdown


# Each group is all-or-nothing: the first matching pattern awards the points.
CONTENT_VALUE_RULES: list[tuple[list[re.Pattern], float]] = [
    ([re.compile(pattern) for pattern in FUNDING_PATTERNS], FUNDING_POINTS),
    ([re.compile(pattern) for pattern in MARKET_ANALYSIS_PATTERNS], MARKET_ANALYSIS_POINTS),
    ([re.compile(pattern) for pattern in MILESTONE_PATTERNS], MILESTONE_POINTS),
    ([re.compile(pattern) for pattern in PROMOTIONAL_PATTERNS], -PROMOTIONAL_PENALTY),
]

REGION_RE = re.compile(r"\b(?:" + "|".join(re.escape(name) for name in REGION_NAME_VARIANTS) + r")\b")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def title_keyword_score(title: str, keywords: tuple[str, ...]) -> float:
    lowered = (title or "").lower()
    if not lowered:
        return 0.0
    total = 0.0
    for keyword in keywords:
        position = lowered.find(keyword)
        if position < 0:
            continue
        total += 4 + 8 * (1 - position / len(lowered))
    return _clamp(total, 0.0, TITLE_KEYWORD_CAP)


def content_keyword_score(body: str, keywords: tuple[str, ...]) -> float:
    lowered = (body or "").lower()
    total = 0.0
    for keyword in keywords:
        occurrences = lowered.count(keyword)
        if occurrences > 0:
            total += min(8.0, 2 + 3 * math.log(occurrences))
    return _clamp(total, 0.0, CONTENT_KEYWORD_CAP)


def source_quality_score(source: str) -> float:
    lowered = (source or "").lower()
    best = 0.0
    for name, points in SOURCE_QUALITY.items():
        if name in lowered and points > best:
            best = points
    return min(best, SOURCE_QUALITY_CAP)


def length_score(body: str) -> float:
    return min(LENGTH_CAP, 1.5 * math.log(max(100, len(body or ""))))


def content_value_score(text: str) -> float:
    lowered = (text or "").lower()
    total = 0.0
    for patterns, points in CONTENT_VALUE_RULES:
        if any(pattern.search(lowered) for pattern in patterns):
            total += points
    return _clamp(total, 0.0, CONTENT_VALUE_CAP)


def region_mentions(text: str) -> int:
    return len(REGION_RE.findall((text or "").lower()))


def score_breakdown(article: Article, category_slug: str) -> ScoreBreakdown:
    category = CATEGORY_BY_SLUG.get(category_slug)
    keywords = category.keywords if category else ()
    combined = article.combined_text()
    breakdown = ScoreBreakdown(
        title_keywords=title_keyword_score(article.title, keywords),
        content_keywords=content_keyword_score(article.body, keywords),
        source_quality=source_quality_score(article.source),
        length=length_score(article.body),
        content_value=content_value_score(combined),
    )
    if category_slug == REGIONAL_CATEGORY and region_mentions(combined) > REGIONAL_BOOST_MIN_MENTIONS:
        breakdown.regional_boost = REGIONAL_BOOST
    return breakdown


def score(article: Article, category_slug: str) -> float:
    return score_breakdown(article, category_slug).total
