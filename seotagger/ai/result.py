"""Validate raw model output against ResultSchema; repair it when strict validation fails."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from seotagger.ai.schema import (
    ALT_TEXT_MIN_LENGTH,
    TITLE_MIN_LENGTH,
    KEYWORDS_MIN_COUNT,
    AnalysisResult,
    ResultSchema,
)

_log = logging.getLogger(__name__)

TITLE_STORAGE_MAX_LENGTH = 70
KEYWORDS_KEEP_COUNT = 25

FALLBACK_KEYWORDS = ["image", "photo", "visual", "content", "media"]
FALLBACK_ALT_TEXT = "Professional image"
FALLBACK_TITLE = "High-quality image"
ALT_TEXT_QUALIFIER = "Professional"
TITLE_QUALIFIER = "High-quality"


def _dedupe(items: Iterable[str]) -> list[str]:
    """Order-preserving, case-sensitive de-duplication."""
    return list(dict.fromkeys(items))


def _top_up_keywords(keywords: list[str]) -> list[str]:
    """Append unused FALLBACK_KEYWORDS until the list reaches KEYWORDS_MIN_COUNT."""
    topped = list(keywords)
    for word in FALLBACK_KEYWORDS:
        if len(topped) >= KEYWORDS_MIN_COUNT:
            break
        if word not in topped:
            topped.append(word)
    return topped


def _truncate_title(title: str) -> str:
    if len(title) <= TITLE_STORAGE_MAX_LENGTH:
        return title
    return title[:TITLE_STORAGE_MAX_LENGTH].rstrip()


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value:
            return value
    return None


def _ensure_min_length(value: Any, fallback: str, qualifier: str, min_length: int) -> str:
    text = str(value) if value else fallback
    if len(text) >= min_length:
        return text
    return f"{qualifier} {text}"


def repair_result(raw: Any) -> AnalysisResult:
    """
    Best-effort reconstruction of an AnalysisResult from malformed output.

    alt_text falls back to description, title to caption, each to a placeholder.
    Keywords are padded with FALLBACK_KEYWORDS when fewer than five survive.
    """
    source: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    alt_text = _ensure_min_length(
        _first_present(source, "alt_text", "description"),
        FALLBACK_ALT_TEXT,
        ALT_TEXT_QUALIFIER,
        ALT_TEXT_MIN_LENGTH,
    )
    title = _ensure_min_length(
        _first_present(source, "title", "caption"),
        FALLBACK_TITLE,
        TITLE_QUALIFIER,
        TITLE_MIN_LENGTH,
    )

    raw_keywords = source.get("keywords")
    keywords = [k for k in raw_keywords if isinstance(k, str)] if isinstance(raw_keywords, list) else []
    if len(keywords) < KEYWORDS_MIN_COUNT:
        keywords = (keywords + FALLBACK_KEYWORDS)[:KEYWORDS_KEEP_COUNT]
    keywords = _dedupe(keywords)
    if len(keywords) < KEYWORDS_MIN_COUNT:
        keywords = list(FALLBACK_KEYWORDS)

    return AnalysisResult(
        alt_text=alt_text,
        title=_truncate_title(title),
        keywords=keywords[:KEYWORDS_KEEP_COUNT],
        raw=raw,
    )


def process_result(raw: Any) -> AnalysisResult:
    """
    Validate raw decoded model output and normalize it.

    Strict path: title cut to 70 chars (trailing whitespace trimmed), keywords
    de-duplicated in first-seen order, topped up from FALLBACK_KEYWORDS when fewer
    than five remain, and capped at 25. When strict validation fails the result is
    repaired instead of rejected.
    """
    try:
        validated = ResultSchema.model_validate(raw)
    except ValidationError as e:
        _log.warning("Model result failed validation, repairing: %s", e.errors(include_url=False))
        return repair_result(raw)

    return AnalysisResult(
        alt_text=validated.alt_text,
        title=_truncate_title(validated.title),
        keywords=_top_up_keywords(_dedupe(validated.keywords))[:KEYWORDS_KEEP_COUNT],
        raw=raw,
    )
