##########################################################################################
#
# Script name: ingestion.py
#
# Description: Normalizes raw feed records, applies the recency window, and drops
#              articles already recorded in the seen-article store.
#
##########################################################################################

import json
import logging
import os
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Protocol

import yaml

from .config import RECENCY_WINDOW_HOURS, SEEN_TTL_SECONDS
from .models import Article
from .utils import canonicalize_url, ensure_utc, normalize_whitespace, parse_timestamp, strip_html, utc_now


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)

ID_FIELDS = ('guid', 'link', 'id')
BODY_FIELDS = ('content', 'contentSnippet', 'summary', 'description', 'body')
PUBLISHED_FIELDS = ('pubDate', 'isoDate', 'published', 'publishedAt')
HINT_FIELDS = ('sourceCategoryHint', 'source_category_hint', 'category_hint')


class SeenStore(Protocol):
    def get(self, key: str): ...

    def put(self, key: str, value: str, ttl_seconds: int) -> None: ...


class MemorySeenStore:
    """Seen store kept in process memory. Expired keys read as absent."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._items: dict[str, tuple[str, float]] = {}

    def get(self, key: str):
        entry = self._items.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._items[key]
            return None
        return value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._items[key] = (value, self._clock() + ttl_seconds)


class JsonFileSeenStore:
    """Seen store persisted to a JSON file so ids survive between runs."""

    def __init__(self, path: str, clock: Callable[[], float] = time.time) -> None:
        self.path = Path(path)
        self._clock = clock
        self._items = self._read()

    def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            log.warning('Failed reading seen store %s, starting empty: %s', self.path, exc)
            return {}
        if not isinstance(payload, dict):
            return {}
        now = self._clock()
        return {
            key: entry
            for key, entry in payload.items()
            if isinstance(entry, dict) and float(entry.get('expires_at', 0)) > now
        }

    def get(self, key: str):
        entry = self._items.get(key)
        if entry is None:
            return None
        if float(entry.get('expires_at', 0)) <= self._clock():
            del self._items[key]
            return None
        return entry.get('value')

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._items[key] = {'value': value, 'expires_at': self._clock() + ttl_seconds}
        self._write()

    def _write(self) -> None:
        # Keeps ids other runs wrote since this store was opened. The file is only
        # ever replaced whole.
        merged = self._read()
        merged.update(self._items)
        self._items = merged
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            'w', encoding='utf-8', dir=self.path.parent, prefix=f'.{self.path.name}.', delete=False
        ) as handle:
            json.dump(merged, handle, ensure_ascii=True, indent=2)
        try:
            os.replace(handle.name, self.path)
        except OSError:
            os.unlink(handle.name)
            raise


# ****************************************************************************************
# Functions
# ****************************************************************************************


def _first_value(record: dict, keys: tuple[str, ...]):
    for key in keys:
        value = record.get(key)
        if isinstance(value, str):
            value = value.strip()
        if value:
            return value
    return None


def _text_value(value) -> str:
    # YAML loads bare scalars such as `title: 1984` as numbers.
    if value is None:
        return ''
    return str(value).strip()


def article_from_record(record: dict) -> Article | None:
    article_id = _first_value(record, ID_FIELDS)
    if not article_id:
        log.warning('Article has no ID: %s', record.get('title'))
        return None
    body = _first_value(record, BODY_FIELDS) or ''
    if not isinstance(body, str):
        log.warning('Dropping article %s: body is %s, not text', article_id, type(body).__name__)
        return None
    link = _text_value(record.get('link'))
    source = _text_value(record.get('source')) or _text_value(record.get('sourceUrl')) or 'Unknown'
    return Article(
        id=str(article_id),
        title=normalize_whitespace(strip_html(_text_value(record.get('title')))),
        url=canonicalize_url(link) if link else '',
        body=body,
        source=source,
        source_url=_text_value(record.get('sourceUrl')),
        published_at=parse_timestamp(_first_value(record, PUBLISHED_FIELDS)),
        source_hint=_text_value(_first_value(record, HINT_FIELDS)) or None,
    )


def is_recent(published_at, now: datetime | None = None, window_hours: float = RECENCY_WINDOW_HOURS) -> bool:
    parsed = parse_timestamp(published_at)
    if parsed is None:
        return False
    reference = ensure_utc(now) if now is not None else utc_now()
    return parsed >= reference - timedelta(hours=window_hours)


def is_new_article(article: Article, store: SeenStore) -> bool:
    if store.get(article.id):
        return False
    metadata = {
        'title': article.title,
        'source': article.source,
        'published_at': article.published_at.isoformat() if article.published_at else None,
    }
    store.put(article.id, json.dumps(metadata, ensure_ascii=True), SEEN_TTL_SECONDS)
    return True


def select_fresh_articles(
    records: list[dict],
    store: SeenStore,
    now: datetime | None = None,
    window_hours: float = RECENCY_WINDOW_HOURS,
) -> list[Article]:
    articles = [article for article in (article_from_record(record) for record in records) if article]
    recent = [article for article in articles if is_recent(article.published_at, now, window_hours)]
    log.info('Found %d recent articles out of %d total', len(recent), len(articles))

    unseen = [article for article in recent if is_new_article(article, store)]
    log.info('Found %d unseen articles out of %d recent', len(unseen), len(recent))

    unseen.sort(key=lambda article: article.published_at, reverse=True)
    return unseen


def load_records_file(path: str) -> list[dict]:
    with open(path, 'r', encoding='utf-8') as handle:
        payload = yaml.safe_load(handle) or []
    if isinstance(payload, dict):
        payload = payload.get('articles', [])
    if not isinstance(payload, list):
        raise ValueError(f'{path}: records must be a list or an "articles" list')
    source_name = Path(path).stem
    records: list[dict] = []
    for row in payload:
        if not isinstance(row, dict):
            continue
        row.setdefault('sourceUrl', path)
        row.setdefault('source', source_name)
        records.append(row)
    return records


def gather_records(loaders: list[Callable[[], list[dict]]], max_workers: int = 8) -> list[dict]:
    def _run(loader: Callable[[], list[dict]]) -> list[dict]:
        try:
            return loader()
        except Exception as exc:  # noqa: BLE001
            log.exception('Record source failed, treating as empty: %s', exc)
            return []

    if not loaders:
        return []
    with ThreadPoolExecutor(max_workers=min(max_workers, len(loaders))) as pool:
        results = list(pool.map(_run, loaders))
    return [record for batch in results for record in batch]


def build_sample_records(now: datetime | None = None) -> list[dict]:
    reference = ensure_utc(now) if now is not None else utc_now()
    templates = [
        (
            'Porto startup raises €5 million Series A to expand its logistics platform',
            'The Porto-based company closed a Series A round led by a Lisbon venture fund. '
            'The funding will be used to hire engineers in Porto and Braga. '
            'Revenue grew 120% year-over-year according to the founders.',
            'Portugal Tech News',
        ),
        (
            'Lisbon AI meetup returns with a focus on open source models',
            'Join us for an evening of talks on open source language models. '
            'The meetup takes place in Lisbon and is free to attend. Register now to save a seat.',
            'Tech in Porto',
        ),
        (
            'Cloud provider launches new developer platform for AI workloads',
            'The release brings managed GPUs and a new software development kit. '
            'Analysts expect the launch to shift market share in the cloud segment.',
            'TechCrunch',
        ),
        (
            'Security researchers disclose flaw in popular open source library',
            '<p>A critical vulnerability affects <b>millions</b> of installs.</p> '
            'Maintainers shipped a patch within a day. Users should upgrade immediately.',
            'Hacker News',
        ),
        (
            'Portuguese fintech acquires Spanish payments startup',
            'The acquisition makes the Portugal-based fintech the largest payments player in Iberia. '
            'The combined company will keep offices in Porto and Madrid.',
            'ECO.sapo',
        ),
    ]
    records: list[dict] = []
    for idx in range(15):
        title, content, source = templates[idx % len(templates)]
        link = f'https://example.com/news/{idx}'
        records.append(
            {
                'guid': link,
                'link': link,
                'title': f'{title} ({idx + 1})',
                'content': content,
                'source': source,
                'sourceUrl': 'sample',
                'isoDate': (reference - timedelta(hours=idx)).isoformat(),
            }
        )
    return records
