##########################################################################################
#
# Script name: report.py
#
# Description: Report assembly (top articles per category with summaries) and JSON
#              archive persistence.
#
##########################################################################################

import json
import logging
from pathlib import Path

from .config import CATEGORIES, CATEGORY_BY_SLUG, TOP_ARTICLES_PER_CATEGORY
from .curation import category_counts, resolve
from .models import Article, Report, ReportItem
from .summarizer import Summarizer
from .utils import utc_now_iso


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)

PLACEHOLDER_HEADLINE = 'No news found'
PLACEHOLDER_SOURCE = 'Porto Tech News'


# ****************************************************************************************
# Functions
# ****************************************************************************************


def placeholder_item(category_slug: str) -> ReportItem:
    category = CATEGORY_BY_SLUG[category_slug]
    details = '\n'.join(
        [
            f'No new {category.label} stories were found in the last day.',
            'The sources will be checked again for the next report.',
            'Follow the link below for the latest coverage in the meantime.',
        ]
    )
    return ReportItem(
        headline=PLACEHOLDER_HEADLINE,
        details=details,
        link=category.fallback_link,
        source=PLACEHOLDER_SOURCE,
        score=0.0,
    )


def select_top_articles(
    articles: list[Article],
    per_category: int = TOP_ARTICLES_PER_CATEGORY,
) -> dict[str, list[Article]]:
    grouped: dict[str, list[Article]] = {category.slug: [] for category in CATEGORIES}
    for article in articles:
        if article.final_category is None:
            resolve(article)
        grouped[article.final_category].append(article)
    # sorted() is stable with reverse=True, so equal scores keep their input order.
    return {
        slug: sorted(items, key=lambda item: item.final_score, reverse=True)[:per_category]
        for slug, items in grouped.items()
    }


def assemble_report(
    articles: list[Article],
    summarizer: Summarizer,
    per_category: int = TOP_ARTICLES_PER_CATEGORY,
    generated_at: str | None = None,
) -> Report:
    selected = select_top_articles(articles, per_category=per_category)
    categories: dict[str, list[ReportItem]] = {}
    for category in CATEGORIES:
        picks = selected.get(category.slug, [])
        if not picks:
            log.info('No articles for %s, inserting placeholder.', category.slug)
            categories[category.slug] = [placeholder_item(category.slug)]
            continue
        categories[category.slug] = [
            ReportItem(
                headline=article.title,
                details=summarizer.summarize(article),
                link=article.url,
                source=article.source,
                score=round(article.final_score, 2),
            )
            for article in picks
        ]
    return Report(
        categories=categories,
        total_articles=len(articles),
        category_counts=category_counts(articles),
        generated_at=generated_at or utc_now_iso(),
        ai_used=summarizer.ai_used,
    )


def _read_index(path: Path) -> list[dict]:
    if not path.exists():
        return []
    with path.open('r', encoding='utf-8') as handle:
        payload = json.load(handle)
    if isinstance(payload, list):
        return payload
    return []


def _update_index(existing: list[dict], report: Report, report_date: str) -> list[dict]:
    entries = [entry for entry in existing if entry.get('date') != report_date]
    lead_story = ''
    lead_url = ''
    for items in report.categories.values():
        if items and items[0].headline != PLACEHOLDER_HEADLINE:
            lead_story = items[0].headline
            lead_url = items[0].link
            break
    entries.append(
        {
            'date': report_date,
            'lead_story': lead_story,
            'lead_url': lead_url,
            'total_articles': report.total_articles,
            'generated_at': report.generated_at,
        }
    )
    entries.sort(key=lambda item: item.get('date', ''), reverse=True)
    return entries


def write_report(report: Report, report_date: str, output_dir: str) -> Path:
    root = Path(output_dir)
    root.mkdir(parents=True, exist_ok=True)

    report_path = root / f'{report_date}.json'
    report_path.write_text(json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding='utf-8')

    index_path = root / 'index.json'
    index_data = _update_index(_read_index(index_path), report, report_date)
    index_path.write_text(json.dumps(index_data, ensure_ascii=False, indent=2), encoding='utf-8')
    return report_path
