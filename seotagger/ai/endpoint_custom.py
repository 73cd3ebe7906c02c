"""Custom backend adapter: POST {imageBase64, prompt} to /api/analyze, health via /healthz."""

import logging
import threading
from pathlib import Path
from typing import Any

from seotagger.ai.endpoint_base import HEALTH_TIMEOUT_SECONDS, RequestPolicy
from seotagger.ai.errors import (
    EndpointHTTPError,
    InvalidResponseShapeError,
    ModelResponseFormatError,
    TransportError,
)
from seotagger.ai.image_source import encode_image
from seotagger.ai.result import process_result
from seotagger.ai.schema import AnalysisResult, EndpointHealth
from seotagger.ai.transport import HttpTransport
from seotagger.core.retry import with_retry

_log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("alt_text", "title", "keywords")


class CustomBackendEndpoint:
    """Model endpoint for a bespoke backend that already returns alt_text/title/keywords."""

    mode = "custom"

    def __init__(
        self,
        base_url: str,
        *,
        policy: RequestPolicy | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.policy = policy or RequestPolicy()
        self._transport = transport or HttpTransport()

    def analyze(
        self,
        image_reference: str | Path,
        prompt: str,
        model: str | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisResult:
        # The custom contract has no model selector; an override is ignored.
        image = encode_image(image_reference)
        body = {"imageBase64": image.data, "prompt": prompt}
        url = f"{self.base_url}/api/analyze"

        def _post() -> Any:
            resp = self._transport.request(
                "POST",
                url,
                timeout_seconds=self.policy.timeout_seconds,
                headers={"Content-Type": "application/json"},
                json_body=body,
            )
            if not resp.ok:
                raise EndpointHTTPError("Custom backend", resp.status_code, resp.reason)
            try:
                return resp.json()
            except ValueError as e:
                raise ModelResponseFormatError(
                    f"Custom backend returned non-JSON body: {resp.text[:200]}", raw_content=resp.text
                ) from e

        data = with_retry(
            _post,
            self.policy.retries,
            self.policy.retry_base_delay_seconds,
            retry_on=(TransportError,),
            cancel_event=cancel_event,
        )
        if not isinstance(data, dict) or not all(data.get(f) for f in REQUIRED_FIELDS):
            raise InvalidResponseShapeError("Invalid response format from custom backend")
        return process_result(data).model_copy(update={"raw": data})

    def health(self) -> EndpointHealth:
        try:
            resp = self._transport.request(
                "GET",
                f"{self.base_url}/healthz",
                timeout_seconds=HEALTH_TIMEOUT_SECONDS,
            )
        except TransportError as e:
            return EndpointHealth(ok=False, info=f"Health check error: {e}")
        if not resp.ok:
            return EndpointHealth(ok=False, info=f"Health check failed: {resp.status_code} {resp.reason}".rstrip())
        return EndpointHealth(ok=True, info=f"Connected to custom backend. Response: {resp.text}")
