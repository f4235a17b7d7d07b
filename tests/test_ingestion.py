##########################################################################################
#
# Script name: test_ingestion.py
#
# Description: Record normalization, recency window, and seen-store deduplication tests.
#
##########################################################################################

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from porto_tech_news.config import SEEN_TTL_SECONDS, Settings
from porto_tech_news.ingestion import (
    JsonFileSeenStore,
    MemorySeenStore,
    article_from_record,
    gather_records,
    is_new_article,
    is_recent,
    load_records_file,
    select_fresh_articles,
)
from porto_tech_news.pipeline import run_pipeline

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _record(guid: str, hours_ago: float, **extra) -> dict:
    record = {
        'guid': guid,
        'link': f'https://example.com/{guid}?utm_source=rss',
        'title': f'Story {guid}',
        'contentSnippet': 'Short snippet.',
        'source': 'Example Wire',
        'isoDate': (NOW - timedelta(hours=hours_ago)).isoformat(),
    }
    record.update(extra)
    return record


def test_is_recent_boundary_is_inclusive() -> None:
    assert is_recent(NOW - timedelta(hours=24), now=NOW, window_hours=24)
    assert not is_recent(NOW - timedelta(hours=24, seconds=1), now=NOW, window_hours=24)
    assert is_recent((NOW - timedelta(hours=3)).isoformat(), now=NOW)


def test_is_recent_rejects_missing_or_unparseable_timestamps() -> None:
    assert not is_recent(None, now=NOW)
    assert not is_recent('', now=NOW)
    assert not is_recent('not a date at all', now=NOW)


def test_is_recent_treats_naive_timestamps_as_utc() -> None:
    assert is_recent('2026-03-01 00:00:00', now=NOW, window_hours=12)
    assert not is_recent('2026-02-28 23:59:59', now=NOW, window_hours=12)


def test_article_from_record_prefers_guid_then_link() -> None:
    article = article_from_record(_record('abc', 1))
    assert article.id == 'abc'
    assert article.url == 'https://example.com/abc'
    assert article.body == 'Short snippet.'

    no_guid = _record('def', 1)
    del no_guid['guid']
    assert article_from_record(no_guid).id == 'https://example.com/def?utm_source=rss'


def test_article_from_record_skips_records_without_id() -> None:
    record = {'title': 'Orphan', 'content': 'Body.', 'isoDate': NOW.isoformat()}
    assert article_from_record(record) is None


def test_article_from_record_prefers_full_content_and_keeps_hint() -> None:
    record = _record('abc', 1, content='<p>Full body.</p>', sourceCategoryHint='upcoming_events')
    article = article_from_record(record)
    assert article.body == '<p>Full body.</p>'
    assert article.source_hint == 'upcoming_events'


def test_article_from_record_coerces_scalar_fields_to_text() -> None:
    record = _record('abc', 1, title=1984, link=42, source=7, sourceUrl=3.5, sourceCategoryHint=9)
    article = article_from_record(record)
    assert article.title == '1984'
    assert article.url == '42'
    assert article.source == '7'
    assert article.source_url == '3.5'
    assert article.source_hint == '9'


def test_article_from_record_drops_records_with_non_text_body() -> None:
    record = _record('abc', 1, content=[1, 2])
    assert article_from_record(record) is None


def test_numeric_yaml_title_flows_through_the_pipeline(tmp_path: Path) -> None:
    path = tmp_path / 'feed.yaml'
    path.write_text(
        '\n'.join(
            [
                'articles:',
                '  - guid: orwell',
                '    title: 1984',
                '    content: A new edition ships this week.',
                f"    isoDate: '{(NOW - timedelta(hours=1)).isoformat()}'",
                '  - guid: broken',
                '    title: Broken body',
                '    content: [1, 2]',
                f"    isoDate: '{(NOW - timedelta(hours=1)).isoformat()}'",
            ]
        )
        + '\n',
        encoding='utf-8',
    )
    report = run_pipeline(load_records_file(str(path)), MemorySeenStore(), Settings(), now=NOW)

    assert report is not None
    assert report.total_articles == 1
    headlines = [item.headline for items in report.categories.values() for item in items]
    assert '1984' in headlines


def test_is_new_article_records_id_with_thirty_day_ttl() -> None:
    clock = [1000.0]
    store = MemorySeenStore(clock=lambda: clock[0])
    article = article_from_record(_record('abc', 1))

    assert is_new_article(article, store)
    assert not is_new_article(article, store)
    assert json.loads(store.get('abc'))['title'] == 'Story abc'

    clock[0] += SEEN_TTL_SECONDS
    assert store.get('abc') is None
    assert is_new_article(article, store)


def test_json_file_seen_store_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / 'seen.json'
    store = JsonFileSeenStore(str(path), clock=lambda: 1000.0)
    store.put('abc', 'meta', 10)

    assert JsonFileSeenStore(str(path), clock=lambda: 1005.0).get('abc') == 'meta'
    assert JsonFileSeenStore(str(path), clock=lambda: 1011.0).get('abc') is None


def test_json_file_seen_store_keeps_ids_written_by_another_instance(tmp_path: Path) -> None:
    path = tmp_path / 'seen.json'
    first = JsonFileSeenStore(str(path), clock=lambda: 1000.0)
    second = JsonFileSeenStore(str(path), clock=lambda: 1000.0)
    first.put('article-a', 'meta-a', 60)
    second.put('article-b', 'meta-b', 60)

    fresh = JsonFileSeenStore(str(path), clock=lambda: 1001.0)
    assert fresh.get('article-a') == 'meta-a'
    assert fresh.get('article-b') == 'meta-b'
    assert [entry.name for entry in tmp_path.iterdir()] == ['seen.json']


def test_json_file_seen_store_starts_empty_on_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / 'seen.json'
    path.write_text('{not json', encoding='utf-8')
    store = JsonFileSeenStore(str(path))
    assert store.get('abc') is None


def test_select_fresh_articles_filters_and_orders_newest_first() -> None:
    records = [
        _record('old', 30),
        _record('mid', 3),
        _record('new', 1),
        _record('older', 5),
        _record('undated', 1, isoDate=None),
    ]
    store = MemorySeenStore()
    articles = select_fresh_articles(records, store, now=NOW, window_hours=24)
    assert [article.id for article in articles] == ['new', 'mid', 'older']

    again = select_fresh_articles(records + [_record('late', 2)], store, now=NOW, window_hours=24)
    assert [article.id for article in again] == ['late']


def test_gather_records_isolates_failing_sources() -> None:
    def broken() -> list[dict]:
        raise RuntimeError('feed down')

    records = gather_records([lambda: [_record('a', 1)], broken, lambda: [_record('b', 1)]])
    assert sorted(record['guid'] for record in records) == ['a', 'b']


def test_load_records_file_reads_yaml_and_sets_source_defaults(tmp_path: Path) -> None:
    path = tmp_path / 'porto_feed.yaml'
    path.write_text(
        '\n'.join(
            [
                'articles:',
                '  - guid: one',
                '    title: First story',
                '    content: Body text.',
                '  - guid: two',
                '    title: Second story',
                '    source: Tech in Porto',
            ]
        )
        + '\n',
        encoding='utf-8',
    )
    records = load_records_file(str(path))
    assert [record['guid'] for record in records] == ['one', 'two']
    assert records[0]['source'] == 'porto_feed'
    assert records[1]['source'] == 'Tech in Porto'
    assert records[0]['sourceUrl'] == str(path)
