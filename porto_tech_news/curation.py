from __future__ import annotations

import logging
import re
from collections import defaultdict

from .config import (
    CATEGORIES,
    CATEGORY_BY_SLUG,
    DEFAULT_CATEGORY,
    REGIONAL_CATEGORY,
    REGIONAL_SOURCE_PATTERNS,
    REGIONAL_TEXT_PATTERNS,
    TOPICAL_RULES,
)
from .models import Article
from .scoring import score_breakdown

log = logging.getLogger(__name__)


def _compile(patterns: list[str]) -> list[re.Pattern]:
    return [re.compile(pattern) for pattern in patterns]


# (category, field, patterns) in evaluation order. "source" rules look at the
# publisher name only, "text" rules at title + body + source.
CATEGORY_RULES: list[tuple[str, str, list[re.Pattern]]] = [
    (REGIONAL_CATEGORY, "source", _compile(REGIONAL_SOURCE_PATTERNS)),
    (REGIONAL_CATEGORY, "text", _compile(REGIONAL_TEXT_PATTERNS)),
] + [(slug, "text", _compile(patterns)) for slug, patterns in TOPICAL_RULES]


def _rule_matches(article: Article, field: str, patterns: list[re.Pattern]) -> bool:
    if field == "source":
        haystack = (article.source or "").lower()
    else:
        haystack = f"{article.title} {article.body} {article.source}".lower()
    return any(pattern.search(haystack) for pattern in patterns)


def classify(article: Article) -> list[str]:
    """Return the article's candidate categories in insertion order, never empty."""
    candidates: dict[str, None] = {}
    hint = (article.source_hint or "").strip()
    if hint in CATEGORY_BY_SLUG:
        candidates[hint] = None
    elif hint:
        log.debug("Ignoring unknown source category hint %r for %s", hint, article.id)

    for slug, field, patterns in CATEGORY_RULES:
        if slug in candidates:
            continue
        if _rule_matches(article, field, patterns):
            candidates[slug] = None

    if not candidates:
        candidates[DEFAULT_CATEGORY] = None
    return list(candidates)


def resolve(article: Article) -> tuple[str, float]:
    if not article.candidate_categories:
        article.candidate_categories = classify(article)

    best_slug: str | None = None
    best_score = 0.0
    for slug in article.candidate_categories:
        breakdown = score_breakdown(article, slug)
        article.score_breakdowns[slug] = breakdown
        article.scores_by_category[slug] = breakdown.total
        if best_slug is None or breakdown.total > best_score:
            best_slug = slug
            best_score = breakdown.total

    article.final_category = best_slug
    article.final_score = best_score
    return best_slug, best_score


def categorize_articles(articles: list[Article]) -> dict[str, list[Article]]:
    grouped: dict[str, list[Article]] = {category.slug: [] for category in CATEGORIES}
    multi_candidate = 0
    for article in articles:
        article.candidate_categories = classify(article)
        if len(article.candidate_categories) > 1:
            multi_candidate += 1
        slug, _ = resolve(article)
        grouped[slug].append(article)
    log.debug("%d of %d articles had more than one candidate category", multi_candidate, len(articles))
    log.info(
        "Grouped articles: %s",
        ", ".join(f"{slug}: {len(items)}" for slug, items in grouped.items()),
    )
    return grouped


def category_counts(articles: list[Article]) -> dict[str, int]:
    counts: defaultdict[str, int] = defaultdict(int)
    for article in articles:
        if article.final_category:
            counts[article.final_category] += 1
    return {category.slug: counts[category.slug] for category in CATEGORIES}
