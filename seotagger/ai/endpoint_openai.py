"""Chat-Completions adapter for OpenAI-compatible vision endpoints (LM Studio, Ollama, OpenAI).

Sends the image inline as a base64 data URL in a two-message exchange and parses the
assistant's reply as JSON, tolerating Markdown fences and surrounding prose.
"""

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any

from seotagger.ai.endpoint_base import HEALTH_TIMEOUT_SECONDS, RequestPolicy
from seotagger.ai.errors import EndpointHTTPError, ModelResponseFormatError, TransportError
from seotagger.ai.image_source import encode_image
from seotagger.ai.result import process_result
from seotagger.ai.schema import AnalysisResult, EndpointHealth
from seotagger.ai.transport import HttpTransport
from seotagger.core.retry import with_retry

_log = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a stock-metadata editor. Return strict JSON with alt_text,title,keywords."
TEMPERATURE = 0.2
DEFAULT_MAX_TOKENS = 512

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def strip_code_fences(content: str) -> str:
    """Remove a ```json ... ``` or ``` ... ``` wrapper around the whole reply."""
    cleaned = content.strip()
    if cleaned.endswith("```"):
        if cleaned.startswith("```json"):
            return cleaned[7:-3].strip()
        if cleaned.startswith("```") and len(cleaned) >= 6:
            return cleaned[3:-3].strip()
    return cleaned


def parse_model_json(content: str) -> Any:
    """
    Decode the JSON object in an assistant reply.

    Strips code fences, then narrows to the first '{' .. last '}' span when prose surrounds
    the object. Raises ModelResponseFormatError carrying the raw content on failure.
    """
    cleaned = strip_code_fences(content)
    match = _JSON_OBJECT_RE.search(cleaned)
    if match:
        cleaned = match.group(0)
    try:
        return json.loads(cleaned)
    except ValueError as e:
        raise ModelResponseFormatError(
            f"Failed to parse JSON from model response: {content}", raw_content=content
        ) from e


def _extract_message_content(payload: Any) -> str | None:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if isinstance(content, list):
        # Some servers return content parts instead of a plain string.
        content = "".join(
            part.get("text", "") for part in content if isinstance(part, dict)
        )
    return content if isinstance(content, str) and content.strip() else None


class OpenAICompatibleEndpoint:
    """Model endpoint speaking the OpenAI chat/completions protocol."""

    mode = "openai"

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "",
        *,
        policy: RequestPolicy | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        transport: HttpTransport | None = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.model = model.strip()
        self.api_key = (api_key or "").strip()
        self.policy = policy or RequestPolicy()
        self.max_tokens = max_tokens
        self._transport = transport or HttpTransport()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_request(self, image_reference: str | Path, prompt: str, model: str | None = None) -> dict[str, Any]:
        image = encode_image(image_reference)
        return {
            "model": model or self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image.data_url}},
                    ],
                },
            ],
            "temperature": TEMPERATURE,
            "max_tokens": self.max_tokens,
        }

    def analyze(
        self,
        image_reference: str | Path,
        prompt: str,
        model: str | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisResult:
        body = self.build_request(image_reference, prompt, model)
        url = f"{self.base_url}/chat/completions"

        def _post() -> Any:
            resp = self._transport.request(
                "POST",
                url,
                timeout_seconds=self.policy.timeout_seconds,
                headers=self._headers(),
                json_body=body,
            )
            if not resp.ok:
                raise EndpointHTTPError("OpenAI API", resp.status_code, resp.reason)
            try:
                return resp.json()
            except ValueError as e:
                raise ModelResponseFormatError(
                    f"Model endpoint returned non-JSON body: {resp.text[:200]}", raw_content=resp.text
                ) from e

        payload = with_retry(
            _post,
            self.policy.retries,
            self.policy.retry_base_delay_seconds,
            retry_on=(TransportError,),
            cancel_event=cancel_event,
        )
        content = _extract_message_content(payload)
        if content is None:
            raise ModelResponseFormatError("No content in OpenAI response", raw_content=json.dumps(payload)[:2000])
        _log.debug("Model reply (%s chars) from %s", len(content), url)
        result = process_result(parse_model_json(content))
        return result.model_copy(update={"raw": payload})

    def health(self) -> EndpointHealth:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            resp = self._transport.request(
                "GET",
                f"{self.base_url}/models",
                timeout_seconds=HEALTH_TIMEOUT_SECONDS,
                headers=headers,
            )
        except TransportError as e:
            return EndpointHealth(ok=False, info=f"Health check error: {e}")
        if not resp.ok:
            return EndpointHealth(ok=False, info=f"Health check failed: {resp.status_code} {resp.reason}".rstrip())
        try:
            data = resp.json()
        except ValueError:
            data = {}
        models = data.get("data") if isinstance(data, dict) else None
        count = len(models) if isinstance(models, list) else 0
        return EndpointHealth(
            ok=True,
            info=f"Connected to OpenAI-compatible endpoint. Available models: {count}",
        )
