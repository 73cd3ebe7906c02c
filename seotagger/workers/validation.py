"""Preset-aware validation of analysis metadata: warnings for soft limits, errors for unusable data."""

from collections.abc import Mapping
from typing import Any

from seotagger.ai.schema import AnalysisResult, ValidationOutcome
from seotagger.models.entities import Preset

DEFAULT_TITLE_MAX_LENGTH = 70
DEFAULT_KEYWORDS_MIN = 15
DEFAULT_KEYWORDS_MAX = 25
ALT_TEXT_RECOMMENDED_MAX = 125


def _as_mapping(metadata: AnalysisResult | Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if metadata is None:
        return None
    if isinstance(metadata, AnalysisResult):
        return metadata.metadata()
    return metadata


def _bound(preset: Preset | None, name: str, default: int) -> int:
    value = getattr(preset, name, None)
    return default if value is None else value


def validate_metadata(
    metadata: AnalysisResult | Mapping[str, Any] | None,
    preset: Preset | None = None,
) -> ValidationOutcome:
    """
    Check metadata against a preset's bounds (defaults 70 / 15 / 25 when no preset or unset).

    Errors: missing metadata, blank title, keywords not a list.
    Warnings: title over title_max_length, alt text missing or over 125 chars,
    keyword count outside [keywords_min, keywords_max], case-insensitive duplicates.
    """
    outcome = ValidationOutcome()
    data = _as_mapping(metadata)
    if not data:
        outcome.errors.append("No metadata provided")
        return outcome

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        outcome.errors.append("Title is required")
    else:
        max_length = _bound(preset, "title_max_length", DEFAULT_TITLE_MAX_LENGTH)
        if len(title) > max_length:
            outcome.warnings.append(f"Title exceeds {max_length} characters ({len(title)})")

    alt_text = data.get("alt_text")
    if not isinstance(alt_text, str) or not alt_text.strip():
        outcome.warnings.append("Alt text is missing")
    elif len(alt_text) > ALT_TEXT_RECOMMENDED_MAX:
        outcome.warnings.append(
            f"Alt text exceeds {ALT_TEXT_RECOMMENDED_MAX} characters ({len(alt_text)})"
        )

    keywords = data.get("keywords")
    if not isinstance(keywords, list):
        outcome.errors.append("Keywords must be an array")
        return outcome

    min_keywords = _bound(preset, "keywords_min", DEFAULT_KEYWORDS_MIN)
    max_keywords = _bound(preset, "keywords_max", DEFAULT_KEYWORDS_MAX)
    if len(keywords) < min_keywords:
        outcome.warnings.append(f"Too few keywords: {len(keywords)} (minimum: {min_keywords})")
    if len(keywords) > max_keywords:
        outcome.warnings.append(f"Too many keywords: {len(keywords)} (maximum: {max_keywords})")

    lowered = {str(k).lower() for k in keywords}
    if len(lowered) != len(keywords):
        outcome.warnings.append("Duplicate keywords detected")

    return outcome
