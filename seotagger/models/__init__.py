"""SQLModel table/entity definitions. Used by Repository layer only."""

from seotagger.models.entities import (
    AnalysisSession,
    ExportFormat,
    Image,
    ImageStatus,
    Preset,
)

__all__ = [
    "AnalysisSession",
    "ExportFormat",
    "Image",
    "ImageStatus",
    "Preset",
]
