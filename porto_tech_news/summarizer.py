##########################################################################################
#
# Script name: summarizer.py
#
# Description: Three-line article summaries from a text-generation endpoint, with a
#              deterministic body-derived fallback.
#
##########################################################################################

import logging
import re
from dataclasses import dataclass

import requests

from .config import Settings
from .models import Article
from .utils import normalize_whitespace, safe_sentence, split_sentences, strip_html


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)

SUMMARY_LINES = 3
PROMPT_BODY_CHARS = 1200

NO_CONTENT_SUMMARY = (
    'No content was available for this article.',
    'The source did not provide a text excerpt.',
    'Follow the link to read the original story.',
)

# Padding for generated summaries that came back short. Taken in order, never repeated.
GENERATED_FILLER_POOL = (
    'Further details are expected as the story develops.',
    'Readers can find the complete coverage at the original source.',
    'Additional context is available in the full article.',
)

BODY_FALLBACK_FILLER = 'See the full article for more details.'

# Phrases models echo back from the prompt; removed before splitting.
INSTRUCTION_PHRASES = (
    'summarize the following news article in exactly 3 sentences, one per line.',
    'each sentence must add new information that is not in the title.',
    'do not repeat or restate the title.',
    'summarize the following news article',
    'in exactly 3 sentences',
    'one per line',
    'do not repeat or restate the title',
    'here is a summary:',
    'here is the summary:',
    'summary:',
)

# Still present after cleanup means the model answered the instructions, not the article.
LEAK_MARKERS = (
    'new information',
    'restate the title',
    '3 sentences',
    'three sentences',
    'as an ai',
    'the following news article',
)

NUMBERING_RE = re.compile(r'^\s*(?:\(?\d+[.):]|[-*•])\s+')


@dataclass(frozen=True)
class GeneratedText:
    text: str


@dataclass(frozen=True)
class UnrecognizedPayload:
    reason: str


@dataclass(frozen=True)
class SummaryResult:
    text: str
    used_ai: bool = False


# ****************************************************************************************
# Functions
# ****************************************************************************************


def build_prompt(article: Article) -> str:
    body = safe_sentence(strip_html(article.body), PROMPT_BODY_CHARS)
    return (
        'Summarize the following news article in exactly 3 sentences, one per line.\n'
        'Each sentence must add new information that is not in the title.\n'
        'Do not repeat or restate the title.\n\n'
        f'Title: {article.title}\n'
        f'Article: {body}\n\n'
        'Summary:'
    )


def parse_generation_payload(payload) -> GeneratedText | UnrecognizedPayload:
    """Classify a generation response body.

    Accepted shapes are a list of records or a single record, where a record
    carries a non-empty ``generated_text`` or ``summary_text`` string.
    """
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        records = [payload]
    else:
        return UnrecognizedPayload(f'unexpected payload type {type(payload).__name__}')

    for record in records:
        if not isinstance(record, dict):
            continue
        for key in ('generated_text', 'summary_text'):
            value = record.get(key)
            if isinstance(value, str) and value.strip():
                return GeneratedText(value)
    return UnrecognizedPayload('no generated_text or summary_text field')


def _post_generation(endpoint: str, prompt: str, settings: Settings):
    """Return the decoded response body, or None when the endpoint is unusable."""
    try:
        response = requests.post(
            endpoint,
            headers={
                'Authorization': f'Bearer {settings.generation_api_key}',
                'Content-Type': 'application/json',
            },
            json={
                'inputs': prompt,
                'parameters': {
                    'max_new_tokens': settings.max_new_tokens,
                    'temperature': settings.temperature,
                },
            },
            timeout=settings.generation_timeout,
        )
    except requests.RequestException as exc:
        log.warning('Generation request to %s failed: %s', endpoint, exc)
        return None
    if not 200 <= response.status_code < 300:
        log.warning('Generation endpoint %s returned status %s', endpoint, response.status_code)
        return None
    try:
        return response.json()
    except ValueError as exc:
        log.warning('Generation endpoint %s returned invalid JSON: %s', endpoint, exc)
        return UnrecognizedPayload('invalid JSON body')


def request_generation(prompt: str, settings: Settings) -> GeneratedText | UnrecognizedPayload | None:
    if not settings.generation_api_key:
        log.debug('No generation API key configured, using body fallback.')
        return None
    endpoints = [settings.generation_endpoint, settings.generation_fallback_endpoint]
    for endpoint in endpoints:
        if not endpoint:
            continue
        payload = _post_generation(endpoint, prompt, settings)
        if payload is None:
            continue
        if isinstance(payload, UnrecognizedPayload):
            return payload
        return parse_generation_payload(payload)
    return None


def clean_generated_text(text: str, prompt: str, title: str) -> list[str] | None:
    """Turn raw model output into at most three summary lines.

    Returns None when the output is unusable: nothing left after cleanup, or
    the kept lines restate the title or echo the instructions.
    """
    cleaned = text.replace(prompt, ' ')
    for phrase in INSTRUCTION_PHRASES:
        cleaned = re.sub(re.escape(phrase), ' ', cleaned, flags=re.IGNORECASE)

    lines = []
    for raw_line in cleaned.splitlines():
        line = normalize_whitespace(NUMBERING_RE.sub('', raw_line))
        if re.search(r'\w', line):
            lines.append(line)

    sentences = split_sentences(' '.join(lines))
    kept = (sentences or lines)[:SUMMARY_LINES]
    if not kept:
        return None

    joined = ' '.join(kept).lower()
    normalized_title = normalize_whitespace(title).lower()
    if normalized_title and re.search(r'(?<!\w)' + re.escape(normalized_title) + r'(?!\w)', joined):
        log.debug('Generated summary restates the title, discarding.')
        return None
    if any(marker in joined for marker in LEAK_MARKERS):
        log.debug('Generated summary leaked prompt instructions, discarding.')
        return None
    return kept


def pad_generated_lines(lines: list[str]) -> list[str]:
    padded = list(lines[:SUMMARY_LINES])
    pool = iter(GENERATED_FILLER_POOL)
    while len(padded) < SUMMARY_LINES:
        padded.append(next(pool))
    return padded


def fallback_summary(body: str) -> str:
    text = strip_html(body)
    sentences = [safe_sentence(sentence) for sentence in split_sentences(text)]
    if not sentences and text:
        sentences = [safe_sentence(text)]
    lines = sentences[:SUMMARY_LINES]
    while len(lines) < SUMMARY_LINES:
        lines.append(BODY_FALLBACK_FILLER)
    return '\n'.join(lines)


def summarize_article(article: Article, settings: Settings) -> SummaryResult:
    if not strip_html(article.body):
        return SummaryResult('\n'.join(NO_CONTENT_SUMMARY))

    try:
        prompt = build_prompt(article)
        result = request_generation(prompt, settings)
        if isinstance(result, GeneratedText):
            lines = clean_generated_text(result.text, prompt, article.title)
            if lines:
                return SummaryResult('\n'.join(pad_generated_lines(lines)), used_ai=True)
        elif isinstance(result, UnrecognizedPayload):
            log.warning('Unrecognized generation payload for %s: %s', article.id, result.reason)
    except Exception as exc:  # noqa: BLE001
        log.warning('Generation failed for %s: %s', article.id, exc)

    return SummaryResult(fallback_summary(article.body))


class Summarizer:
    """Summarizes articles and remembers whether the generation service contributed."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.ai_used = False

    def summarize(self, article: Article) -> str:
        result = summarize_article(article, self.settings)
        if result.used_ai:
            self.ai_used = True
        return result.text
