##########################################################################################
#
# Script name: test_scoring.py
#
# Description: Relevance scoring component and bounds tests.
#
##########################################################################################

import math
from datetime import datetime, timezone

import pytest

from porto_tech_news.config import CATEGORIES
from porto_tech_news.ingestion import article_from_record, build_sample_records
from porto_tech_news.models import Article
from porto_tech_news.scoring import (
    content_keyword_score,
    content_value_score,
    length_score,
    region_mentions,
    score,
    score_breakdown,
    source_quality_score,
    title_keyword_score,
)


def _article(title: str, body: str, source: str = 'Example Wire') -> Article:
    return Article(
        id=title,
        title=title,
        url='https://example.com/story',
        body=body,
        source=source,
        source_url='https://example.com/feed',
        published_at=datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
    )


def test_title_keyword_rewards_earlier_positions() -> None:
    assert title_keyword_score('Funding round closes', ('funding',)) == pytest.approx(12.0)
    late = title_keyword_score('Startup closes funding', ('funding',))
    assert 4.0 < late < 12.0


def test_title_keyword_is_capped() -> None:
    keywords = ('a', 'b', 'c', 'd', 'e', 'f', 'g')
    assert title_keyword_score('abcdefg', keywords) == 40.0
    assert title_keyword_score('', keywords) == 0.0


def test_content_keyword_log_scales_and_caps_per_keyword() -> None:
    assert content_keyword_score('porto', ('porto',)) == pytest.approx(2.0)
    assert content_keyword_score('porto porto porto', ('porto',)) == pytest.approx(2 + 3 * math.log(3))
    assert content_keyword_score('porto ' * 8, ('porto',)) == pytest.approx(8.0)
    assert content_keyword_score('nothing here', ('porto',)) == 0.0


def test_content_keyword_total_is_capped() -> None:
    keywords = tuple(f'k{idx}x' for idx in range(5))
    body = ' '.join(keyword for keyword in keywords for _ in range(10))
    assert content_keyword_score(body, keywords) == 30.0


def test_category_keywords_never_contain_one_another() -> None:
    for category in CATEGORIES:
        for keyword in category.keywords:
            others = [other for other in category.keywords if other != keyword and keyword in other]
            assert others == [], f'{category.slug}: {keyword!r} is part of {others!r}'


def test_funding_title_word_scores_once() -> None:
    vc_keywords = next(category.keywords for category in CATEGORIES if category.slug == 'vc_investments')
    title = 'Investors back Porto startup'
    assert title_keyword_score(title, vc_keywords) == pytest.approx(title_keyword_score(title, ('invest',)))


def test_source_quality_takes_single_best_match() -> None:
    assert source_quality_score('TechCrunch Europe') == 15.0
    assert source_quality_score('Observador via Hacker News') == 10.0
    assert source_quality_score('Unknown Blog') == 0.0


def test_length_score_has_floor_and_cap() -> None:
    assert length_score('') == pytest.approx(1.5 * math.log(100))
    assert length_score('x' * 5000) == 10.0


def test_content_value_signals_are_independent_and_clamped() -> None:
    assert content_value_score('Startup raises €5 million Series A') == 15.0
    assert content_value_score('Market analysis of cloud spend') == 10.0
    assert content_value_score('Company completes acquisition of rival') == 12.0
    assert content_value_score('Series A round, market share grows after acquisition') == 25.0
    assert content_value_score('Sponsored: 20% off all plans') == 0.0
    assert content_value_score('Series A closes. Sponsored post.') == 0.0
    assert content_value_score('Series A closes, partnership signed, sponsored post') == 12.0


def test_regional_boost_requires_more_than_two_mentions() -> None:
    two = _article('Porto update', 'News from Lisbon.')
    assert region_mentions(two.combined_text()) == 2
    assert score_breakdown(two, 'market_moves_pt').regional_boost == 0.0

    many = _article('Porto update', 'News from Lisbon, Braga and the rest of Portugal.')
    assert region_mentions(many.combined_text()) == 4
    assert score_breakdown(many, 'market_moves_pt').regional_boost == 15.0
    assert score_breakdown(many, 'market_moves_global').regional_boost == 0.0


def test_funding_scenario_differs_only_by_category_components() -> None:
    article = _article(
        'Startup raises €5 million Series A',
        'The company will hire more engineers next year.',
        source='TechCrunch',
    )
    regional = score_breakdown(article, 'market_moves_pt')
    global_ = score_breakdown(article, 'market_moves_global')

    assert regional.content_value == 15.0
    assert global_.content_value == 15.0
    assert regional.source_quality == global_.source_quality
    assert regional.length == global_.length

    def category_parts(item) -> float:
        return item.title_keywords + item.content_keywords + item.regional_boost

    assert regional.total - global_.total == pytest.approx(category_parts(regional) - category_parts(global_))


def test_score_is_deterministic_and_bounded() -> None:
    articles = [article_from_record(record) for record in build_sample_records()]
    articles.append(_article('', ''))
    articles.append(
        _article(
            'Porto Lisbon Portugal startup ecosystem tech hub raises funding',
            ('Porto Lisbon Portugal Braga Coimbra startup ecosystem tech hub. ' * 30)
            + 'Series A closed. Market share grew. Acquisition done.',
            source='TechCrunch',
        )
    )
    for article in articles:
        for category in CATEGORIES:
            first = score(article, category.slug)
            second = score(article, category.slug)
            assert first == second
            assert 0.0 <= first <= 135.0
