"""Pydantic data contracts for model output, endpoint health and validation outcomes."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ALT_TEXT_MIN_LENGTH = 5
ALT_TEXT_MAX_LENGTH = 160
TITLE_MIN_LENGTH = 5
KEYWORDS_MIN_COUNT = 5
KEYWORDS_MAX_COUNT = 50


class ResultSchema(BaseModel):
    """Strict contract a model response must satisfy before post-processing."""

    model_config = ConfigDict(strict=True, extra="ignore")

    alt_text: str = Field(min_length=ALT_TEXT_MIN_LENGTH, max_length=ALT_TEXT_MAX_LENGTH)
    title: str = Field(min_length=TITLE_MIN_LENGTH)
    keywords: list[str] = Field(min_length=KEYWORDS_MIN_COUNT, max_length=KEYWORDS_MAX_COUNT)


class AnalysisResult(BaseModel):
    """Normalized SEO metadata for one image. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    alt_text: str
    title: str
    keywords: list[str] = Field(default_factory=list)
    raw: Any = Field(default=None, exclude=True, repr=False)

    def metadata(self) -> dict[str, Any]:
        """Return the persisted fields only (no raw response)."""
        return {"alt_text": self.alt_text, "title": self.title, "keywords": list(self.keywords)}


class EndpointHealth(BaseModel):
    """Result of probing a model endpoint."""

    ok: bool
    info: str | None = None


class ValidationOutcome(BaseModel):
    """Preset-aware validation result. Errors make the outcome invalid; warnings are informational."""

    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
