from __future__ import annotations

import logging
from datetime import datetime

from .config import Settings
from .curation import categorize_articles
from .ingestion import SeenStore, select_fresh_articles
from .models import Report
from .report import assemble_report
from .summarizer import Summarizer

log = logging.getLogger(__name__)


def run_pipeline(
    records: list[dict],
    store: SeenStore,
    settings: Settings,
    now: datetime | None = None,
) -> Report | None:
    """Filter, categorize and summarize raw records into a report.

    Returns None when no recent unseen article is left, so callers can skip
    persistence and delivery for the run.
    """
    articles = select_fresh_articles(
        records,
        store,
        now=now,
        window_hours=settings.recency_window_hours,
    )
    log.info('Fetched %d new articles', len(articles))
    if not articles:
        log.info('No new articles found')
        return None

    categorize_articles(articles)
    summarizer = Summarizer(settings)
    report = assemble_report(articles, summarizer, per_category=settings.top_per_category)
    log.info('Report generated (ai_used=%s)', report.ai_used)
    return report
