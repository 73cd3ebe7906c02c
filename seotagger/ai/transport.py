"""HTTP transport with a hard per-request deadline.

Uses a persistent requests.Session with connection pooling. The response body is
streamed and read under the same deadline as the request; when the deadline
elapses the connection is closed and RequestTimeoutError is raised. No retries
happen here.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests
from requests.adapters import HTTPAdapter

from seotagger.ai.errors import RequestTimeoutError, TransportError

_log = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass
class TransportResponse:
    status_code: int
    reason: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text)


class HttpTransport:
    """Pooled HTTP client. request() enforces a total deadline of timeout_seconds."""

    def __init__(self, session: requests.Session | None = None) -> None:
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=4, pool_maxsize=8)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout_seconds: float,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
    ) -> TransportResponse:
        deadline = time.monotonic() + timeout_seconds

        def _remaining() -> float:
            left = deadline - time.monotonic()
            if left <= 0:
                raise RequestTimeoutError(url, timeout_seconds)
            return left

        try:
            resp = self._session.request(
                method,
                url,
                headers=dict(headers or {}),
                json=json_body,
                timeout=_remaining(),
                stream=True,
            )
        except requests.Timeout as e:
            raise RequestTimeoutError(url, timeout_seconds) from e
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        chunks: list[bytes] = []
        try:
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                chunks.append(chunk)
                _remaining()
        except RequestTimeoutError:
            _log.debug("Aborting %s %s: deadline of %ss exceeded while reading body", method, url, timeout_seconds)
            raise
        except requests.Timeout as e:
            raise RequestTimeoutError(url, timeout_seconds) from e
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed while reading response: {e}") from e
        finally:
            resp.close()

        return TransportResponse(
            status_code=resp.status_code,
            reason=resp.reason or "",
            headers=dict(resp.headers),
            content=b"".join(chunks),
        )

    def close(self) -> None:
        self._session.close()
