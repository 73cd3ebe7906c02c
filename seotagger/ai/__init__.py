"""AI module: data contracts, model endpoint protocol adapters and factory."""

from seotagger.ai.endpoint_base import ModelEndpoint, RequestPolicy
from seotagger.ai.errors import (
    ConfigurationError,
    EndpointError,
    EndpointHTTPError,
    InvalidResponseShapeError,
    ModelResponseFormatError,
    OperationCancelledError,
    RequestTimeoutError,
    TransportError,
)
from seotagger.ai.factory import (
    analyze,
    create_model_endpoint,
    get_model_endpoint,
    health,
    init_model_endpoint,
    reset_model_endpoint,
    set_model_endpoint,
)
from seotagger.ai.result import process_result
from seotagger.ai.schema import AnalysisResult, EndpointHealth, ValidationOutcome

__all__ = [
    "AnalysisResult",
    "ConfigurationError",
    "EndpointError",
    "EndpointHTTPError",
    "EndpointHealth",
    "InvalidResponseShapeError",
    "ModelEndpoint",
    "ModelResponseFormatError",
    "OperationCancelledError",
    "RequestPolicy",
    "RequestTimeoutError",
    "TransportError",
    "ValidationOutcome",
    "analyze",
    "create_model_endpoint",
    "get_model_endpoint",
    "health",
    "init_model_endpoint",
    "process_result",
    "reset_model_endpoint",
    "set_model_endpoint",
]
