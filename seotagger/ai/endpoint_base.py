"""Model endpoint interface and the settings shared by both protocol adapters."""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from seotagger.ai.schema import AnalysisResult, EndpointHealth

DEFAULT_TIMEOUT_MS = 60_000
DEFAULT_RETRIES = 2
DEFAULT_RETRY_BASE_DELAY_MS = 1_000
HEALTH_TIMEOUT_SECONDS = 5.0


@runtime_checkable
class ModelEndpoint(Protocol):
    """A vision model reachable over some wire protocol. Implementations share no state."""

    mode: str

    def analyze(
        self,
        image_reference: str | Path,
        prompt: str,
        model: str | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisResult:
        """Analyze one image; return normalized metadata or raise an EndpointError."""
        ...

    def health(self) -> EndpointHealth:
        """Probe connectivity with a short timeout. Never raises, never retries."""
        ...


@dataclass(frozen=True)
class RequestPolicy:
    """Per-attempt timeout and retry budget for analyze calls."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    retry_base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def retry_base_delay_seconds(self) -> float:
        return self.retry_base_delay_ms / 1000.0
