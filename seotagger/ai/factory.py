"""Factory for model endpoints plus the process-scoped registry holding the active one."""

import logging
import threading
from pathlib import Path

from seotagger.ai.endpoint_base import ModelEndpoint, RequestPolicy
from seotagger.ai.errors import ConfigurationError
from seotagger.ai.schema import AnalysisResult, EndpointHealth
from seotagger.core.config import ENDPOINT_MODES, Settings, get_config

_log = logging.getLogger(__name__)


def _policy_from_settings(settings: Settings) -> RequestPolicy:
    return RequestPolicy(
        timeout_ms=settings.request_timeout_ms,
        retries=settings.request_retries,
        retry_base_delay_ms=settings.retry_base_delay_ms,
    )


def create_model_endpoint(settings: Settings) -> ModelEndpoint:
    """
    Build the adapter selected by settings.model_endpoint_mode.

    Raises ConfigurationError when the mode is unknown or a required parameter for it
    (lm_base/lm_model for openai, backend_base for custom) is missing.
    """
    mode = settings.model_endpoint_mode
    policy = _policy_from_settings(settings)
    if mode == "custom":
        if not settings.backend_base:
            raise ConfigurationError("BACKEND_BASE environment variable is required for custom mode")
        from seotagger.ai.endpoint_custom import CustomBackendEndpoint

        return CustomBackendEndpoint(settings.backend_base, policy=policy)
    if mode == "openai":
        if not settings.lm_base:
            raise ConfigurationError("LM_BASE environment variable is required for openai mode")
        if not settings.lm_model:
            raise ConfigurationError("LM_MODEL environment variable is required for openai mode")
        from seotagger.ai.endpoint_openai import OpenAICompatibleEndpoint

        return OpenAICompatibleEndpoint(
            settings.lm_base,
            settings.lm_model,
            settings.lm_api_key,
            policy=policy,
            max_tokens=settings.max_tokens,
        )
    raise ConfigurationError(
        f"Unknown MODEL_ENDPOINT_MODE: {mode!r} (expected one of {', '.join(ENDPOINT_MODES)})"
    )


class EndpointRegistry:
    """Holds the one model endpoint for this process. init() once at startup; reset() in tests."""

    def __init__(self) -> None:
        self._endpoint: ModelEndpoint | None = None
        self._lock = threading.Lock()

    def init(self, settings: Settings | None = None) -> ModelEndpoint:
        """Construct and cache the endpoint, replacing any previous one."""
        endpoint = create_model_endpoint(settings or get_config())
        with self._lock:
            self._endpoint = endpoint
        _log.info("Model endpoint initialised (mode=%s)", endpoint.mode)
        return endpoint

    def get(self) -> ModelEndpoint:
        """Return the cached endpoint, constructing it from config on first use."""
        with self._lock:
            endpoint = self._endpoint
        if endpoint is not None:
            return endpoint
        return self.init()

    def set(self, endpoint: ModelEndpoint) -> None:
        """Install a prebuilt endpoint (tests, embedding)."""
        with self._lock:
            self._endpoint = endpoint

    def reset(self) -> None:
        with self._lock:
            self._endpoint = None

    @property
    def initialised(self) -> bool:
        return self._endpoint is not None


_registry = EndpointRegistry()


def init_model_endpoint(settings: Settings | None = None) -> ModelEndpoint:
    return _registry.init(settings)


def get_model_endpoint() -> ModelEndpoint:
    return _registry.get()


def set_model_endpoint(endpoint: ModelEndpoint) -> None:
    _registry.set(endpoint)


def reset_model_endpoint() -> None:
    """Drop the cached endpoint so the next get_model_endpoint() rebuilds it (for tests)."""
    _registry.reset()


def analyze(file_reference: str | Path, prompt: str) -> AnalysisResult:
    """Adapter-agnostic entry point: analyze one image with the active endpoint."""
    return get_model_endpoint().analyze(file_reference, prompt)


def health() -> EndpointHealth:
    """Adapter-agnostic health probe of the active endpoint."""
    return get_model_endpoint().health()
