"""Workers: the analysis pipeline and its preset-aware validation."""

from seotagger.workers.analysis_worker import (
    AnalysisWorker,
    BatchReport,
    DuplicateSubmissionError,
    ImageOutcome,
)
from seotagger.workers.validation import validate_metadata

__all__ = [
    "AnalysisWorker",
    "BatchReport",
    "DuplicateSubmissionError",
    "ImageOutcome",
    "validate_metadata",
]
