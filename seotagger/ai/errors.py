"""Error taxonomy for model endpoints: transport, response format, configuration."""

from seotagger.core.retry import OperationCancelledError

__all__ = [
    "ConfigurationError",
    "EndpointError",
    "EndpointHTTPError",
    "InvalidResponseShapeError",
    "ModelResponseFormatError",
    "OperationCancelledError",
    "RequestTimeoutError",
    "TransportError",
]


class EndpointError(Exception):
    """Base for all model-endpoint failures."""


class TransportError(EndpointError):
    """Connection, DNS or socket I/O failure talking to the model endpoint. Retryable."""


class RequestTimeoutError(TransportError):
    """The request did not complete within its deadline."""

    def __init__(self, url: str, timeout_seconds: float) -> None:
        super().__init__(f"Request to {url} timed out after {timeout_seconds:g}s")
        self.url = url
        self.timeout_seconds = timeout_seconds


class EndpointHTTPError(TransportError):
    """Endpoint answered with a non-2xx status."""

    def __init__(self, label: str, status_code: int, reason: str = "") -> None:
        super().__init__(f"{label} error: {status_code} {reason}".rstrip())
        self.status_code = status_code
        self.reason = reason


class ModelResponseFormatError(EndpointError):
    """Model output could not be parsed into the expected shape. Not retried."""

    def __init__(self, message: str, raw_content: str | None = None) -> None:
        super().__init__(message)
        self.raw_content = raw_content


class InvalidResponseShapeError(EndpointError):
    """Custom backend response is missing one of alt_text, title, keywords. Not retried."""


class ConfigurationError(EndpointError):
    """Required endpoint configuration is missing or invalid. Raised before any processing."""
