from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ScoreBreakdown:
    """Per-category scoring components, kept for diagnostics only."""

    title_keywords: float = 0.0
    content_keywords: float = 0.0
    source_quality: float = 0.0
    length: float = 0.0
    content_value: float = 0.0
    regional_boost: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.title_keywords
            + self.content_keywords
            + self.source_quality
            + self.length
            + self.content_value
            + self.regional_boost
        )


@dataclass
class Article:
    id: str
    title: str
    url: str
    body: str
    source: str
    source_url: str
    published_at: datetime | None
    source_hint: str | None = None
    candidate_categories: list[str] = field(default_factory=list)
    scores_by_category: dict[str, float] = field(default_factory=dict)
    score_breakdowns: dict[str, ScoreBreakdown] = field(default_factory=dict)
    final_category: str | None = None
    final_score: float = 0.0

    def combined_text(self) -> str:
        return f"{self.title}\n{self.body}".strip()


@dataclass
class ReportItem:
    headline: str
    details: str
    link: str
    source: str
    score: float = 0.0

    def to_dict(self) -> dict:
        return {
            "headline": self.headline,
            "details": self.details,
            "link": self.link,
            "source": self.source,
            "score": self.score,
        }


@dataclass
class Report:
    categories: dict[str, list[ReportItem]]
    total_articles: int
    category_counts: dict[str, int]
    generated_at: str
    ai_used: bool = False

    def to_dict(self) -> dict:
        payload: dict = {slug: [item.to_dict() for item in items] for slug, items in self.categories.items()}
        payload["meta"] = {
            "total_articles": self.total_articles,
            "categories": dict(self.category_counts),
            "generated_at": self.generated_at,
            "ai_used": self.ai_used,
        }
        return payload
