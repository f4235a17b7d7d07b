##########################################################################################
#
# Script name: config.py
#
# Description: Category taxonomy, scoring tables, and runtime settings for the digest.
#
##########################################################################################

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Category:
    slug: str
    label: str
    fallback_link: str
    keywords: tuple[str, ...]


CATEGORIES = [
    Category(
        slug='vc_investments',
        label='VC Investments & Funding',
        fallback_link='https://www.techmeme.com/',
        keywords=(
            'raise',
            'funding',
            'invest',
            'venture',
            'million',
            'series a',
            'series b',
            'seed',
            'valuation',
            'round',
        ),
    ),
    Category(
        slug='market_moves_pt',
        label='Portuguese Tech Scene',
        fallback_link='https://www.portugaltechnews.com/',
        keywords=(
            'portugal',
            'portuguese',
            'porto',
            'lisbon',
            'lisboa',
            'startup',
            'tech hub',
            'ecosystem',
            'braga',
            'coimbra',
        ),
    ),
    Category(
        slug='market_moves_global',
        label='Global Tech News',
        fallback_link='https://news.ycombinator.com/',
        keywords=(
            'artificial intelligence',
            'machine learning',
            'cloud',
            'software',
            'platform',
            'launch',
            'release',
            'acquisition',
            'market',
            'developer',
            'open source',
            'security',
            'regulation',
        ),
    ),
    Category(
        slug='upcoming_events',
        label='Upcoming Events',
        fallback_link='https://www.techinporto.com/',
        keywords=(
            'event',
            'conference',
            'meetup',
            'webinar',
            'summit',
            'workshop',
            'hackathon',
            'register',
            'tickets',
        ),
    ),
]

CATEGORY_BY_SLUG = {category.slug: category for category in CATEGORIES}

REGIONAL_CATEGORY = 'market_moves_pt'
DEFAULT_CATEGORY = 'market_moves_global'

# Categorizer rule tables, evaluated in this order over "title body source".
REGIONAL_SOURCE_PATTERNS = [r'porto', r'portugal']
REGIONAL_TEXT_PATTERNS = [
    r'\bportugal\b',
    r'\bportuguese\b',
    r'\bporto\b',
    r'\blisbon\b',
    r'\blisboa\b',
    r'\bbraga\b',
    r'\bcoimbra\b',
    r'\baveiro\b',
]
TOPICAL_RULES = [
    (
        'vc_investments',
        [
            r'\brais(?:e|es|ed|ing)\b',
            r'\bfunding\b',
            r'\binvest(?:s|ed|ment|ments|or|ors)?\b',
            r'\bventure\b',
            r'\bmillion\b',
            r'\bseries [a-d]\b',
            r'\bseed round\b',
            r'\binvestment round\b',
        ],
    ),
    (
        'upcoming_events',
        [
            r'\bevents?\b',
            r'\bconference\b',
            r'\bmeetup\b',
            r'\bwebinar\b',
            r'\bsummit\b',
            r'\bjoin us\b',
            r'\bregister now\b',
            r'\bsave the date\b',
        ],
    ),
]

# Counted for the regional boost; more than REGIONAL_BOOST_MIN_MENTIONS hits adds the boost.
REGION_NAME_VARIANTS = [
    'portugal',
    'portuguese',
    'porto',
    'lisbon',
    'lisboa',
    'braga',
    'coimbra',
    'aveiro',
]
REGIONAL_BOOST = 15.0
REGIONAL_BOOST_MIN_MENTIONS = 2

# Scorer caps.
TITLE_KEYWORD_CAP = 40.0
CONTENT_KEYWORD_CAP = 30.0
SOURCE_QUALITY_CAP = 15.0
LENGTH_CAP = 10.0
CONTENT_VALUE_CAP = 25.0

# Publisher name substring -> points. Only the best match counts.
SOURCE_QUALITY = {
    'techcrunch': 15.0,
    'reuters': 15.0,
    'bloomberg': 15.0,
    'financial times': 14.0,
    'the verge': 12.0,
    'wired': 12.0,
    'infoq': 12.0,
    'the new stack': 11.0,
    'eco.sapo': 11.0,
    'techmeme': 10.0,
    'hacker news': 10.0,
    'portugal tech': 10.0,
    'tech in porto': 10.0,
    'techinporto': 10.0,
    'dinheiro vivo': 9.0,
    'expresso': 9.0,
    'observador': 8.0,
    'publico': 8.0,
}

FUNDING_POINTS = 15.0
MARKET_ANALYSIS_POINTS = 10.0
MILESTONE_POINTS = 12.0
PROMOTIONAL_PENALTY = 15.0

FUNDING_PATTERNS = [
    r'\bseries [a-d]\b',
    r'\bseed (?:round|funding)\b',
    r'\brais(?:e|es|ed|ing) (?:[$€£]\s?)?\d',
    r'[$€£]\s?\d+(?:[.,]\d+)?\s?(?:million|billion|m|bn)\b',
    r'\b\d+(?:[.,]\d+)? (?:million|billion) (?:euros?|dollars?|usd|eur)\b',
    r'\bfunding round\b',
    r'\bventure capital\b',
]
MARKET_ANALYSIS_PATTERNS = [
    r'\bmarket share\b',
    r'\bmarket (?:analysis|report|trends?)\b',
    r'\brevenue (?:grew|growth|rose|fell|declined)\b',
    r'\b(?:quarterly|annual) (?:results|earnings)\b',
    r'\byear[- ]over[- ]year\b',
    r'\bforecast\b',
]
MILESTONE_PATTERNS = [
    r'\bacquir(?:e|es|ed|ing)\b',
    r'\bacquisition\b',
    r'\bipo\b',
    r'\bunicorn\b',
    r'\b(?:launch|launches|launched)\b',
    r'\bexpan(?:ds|ded|sion) (?:to|into)\b',
    r'\b\d+(?:[.,]\d+)?\s?(?:k|million) (?:users|customers)\b',
    r'\bpartnership\b',
]
PROMOTIONAL_PATTERNS = [
    r'\bsponsored\b',
    r'\bdiscount\b',
    r'\bpromo(?:tion|tional)? code\b',
    r'\bbuy now\b',
    r'\blimited[- ]time offer\b',
    r'\b\d+% off\b',
    r'\bsign up today\b',
]

TOP_ARTICLES_PER_CATEGORY = 3
RECENCY_WINDOW_HOURS = 24.0
SEEN_TTL_SECONDS = 60 * 60 * 24 * 30

DEFAULT_GENERATION_ENDPOINT = 'https://api-inference.huggingface.co/models/facebook/bart-large-cnn'
DEFAULT_GENERATION_FALLBACK_ENDPOINT = (
    'https://api-inference.huggingface.co/models/sshleifer/distilbart-cnn-12-6'
)

ENV_OVERRIDES = {
    'generation_api_key': 'GENERATION_API_KEY',
    'generation_endpoint': 'GENERATION_ENDPOINT',
    'generation_fallback_endpoint': 'GENERATION_FALLBACK_ENDPOINT',
    'generation_timeout': 'GENERATION_TIMEOUT',
    'recency_window_hours': 'RECENCY_WINDOW_HOURS',
    'seen_store_path': 'SEEN_STORE_PATH',
}


@dataclass
class Settings:
    generation_api_key: str = ''
    generation_endpoint: str = DEFAULT_GENERATION_ENDPOINT
    generation_fallback_endpoint: str = DEFAULT_GENERATION_FALLBACK_ENDPOINT
    generation_timeout: float = 30.0
    max_new_tokens: int = 150
    temperature: float = 0.3
    recency_window_hours: float = RECENCY_WINDOW_HOURS
    top_per_category: int = TOP_ARTICLES_PER_CATEGORY
    seen_store_path: str = 'data/seen_articles.json'


# ****************************************************************************************
# Functions
# ****************************************************************************************


def _coerce(name: str, value, default):
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f'setting {name} must be an integer, got {value!r}') from exc
    if isinstance(default, float):
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f'setting {name} must be a number, got {value!r}') from exc
    return '' if value is None else str(value)


def load_settings(path: str | None = None) -> Settings:
    settings = Settings()
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise RuntimeError(f'Settings file not found: {path}')
        with config_path.open('r', encoding='utf-8') as handle:
            payload = yaml.safe_load(handle) or {}
        values = payload.get('settings', {})
        if not isinstance(values, dict):
            raise ValueError('config.settings must be a mapping')
        known = {field.name for field in fields(Settings)}
        for key, value in values.items():
            if key not in known:
                log.warning('Ignoring unknown setting %s in %s', key, path)
                continue
            setattr(settings, key, _coerce(key, value, getattr(settings, key)))

    for attr, env_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            setattr(settings, attr, _coerce(attr, value, getattr(settings, attr)))
    return settings
