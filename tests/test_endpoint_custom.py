"""Tests for the custom backend endpoint: payload, response shape checks and /healthz."""

import base64
import json
import os
from unittest.mock import MagicMock

import pytest

from seotagger.ai.endpoint_base import RequestPolicy
from seotagger.ai.endpoint_custom import CustomBackendEndpoint
from seotagger.ai.errors import EndpointHTTPError, InvalidResponseShapeError, TransportError
from seotagger.ai.transport import TransportResponse

pytestmark = [pytest.mark.fast]

NO_WAIT = RequestPolicy(timeout_ms=2000, retries=2, retry_base_delay_ms=0)
RESULT = {
    "alt_text": "Mountain lake at dawn",
    "title": "Calm mountain lake",
    "keywords": ["lake", "mountain", "dawn", "water", "nature", "lake"],
}


def _json_response(data, status_code=200) -> TransportResponse:
    return TransportResponse(status_code=status_code, content=json.dumps(data).encode())


def _endpoint(transport) -> CustomBackendEndpoint:
    return CustomBackendEndpoint("http://backend:8000/", policy=NO_WAIT, transport=transport)


def test_analyze_posts_base64_file_and_normalizes(make_png):
    path = make_png("lake.png")
    transport = MagicMock()
    transport.request.return_value = _json_response(RESULT)

    result = _endpoint(transport).analyze(path, "Describe", model="ignored")

    args, kwargs = transport.request.call_args
    assert args == ("POST", "http://backend:8000/api/analyze")
    assert kwargs["json_body"]["prompt"] == "Describe"
    assert base64.b64decode(kwargs["json_body"]["imageBase64"]) == path.read_bytes()
    assert kwargs["timeout_seconds"] == 2.0
    assert result.keywords == ["lake", "mountain", "dawn", "water", "nature"]
    assert result.raw == RESULT


@pytest.mark.parametrize("missing", ["alt_text", "title", "keywords"])
def test_missing_field_raises_shape_error_without_retry(missing):
    data = {k: v for k, v in RESULT.items() if k != missing}
    transport = MagicMock()
    transport.request.return_value = _json_response(data)
    with pytest.raises(InvalidResponseShapeError, match="Invalid response format from custom backend"):
        _endpoint(transport).analyze("aGVsbG8=", "p")
    assert transport.request.call_count == 1


def test_non_object_response_raises_shape_error():
    transport = MagicMock()
    transport.request.return_value = _json_response(["alt_text", "title", "keywords"])
    with pytest.raises(InvalidResponseShapeError):
        _endpoint(transport).analyze("aGVsbG8=", "p")


def test_http_error_is_retried_then_surfaced():
    transport = MagicMock()
    transport.request.return_value = TransportResponse(status_code=502, reason="Bad Gateway")
    with pytest.raises(EndpointHTTPError, match="Custom backend error: 502 Bad Gateway"):
        _endpoint(transport).analyze("aGVsbG8=", "p")
    assert transport.request.call_count == 3


def test_bare_base64_reference_passed_through():
    transport = MagicMock()
    transport.request.return_value = _json_response(RESULT)
    _endpoint(transport).analyze("aGVsbG8=", "p")
    assert transport.request.call_args.kwargs["json_body"]["imageBase64"] == "aGVsbG8="


def test_realistic_base64_payload_never_treated_as_path():
    payload = base64.b64encode(os.urandom(30_000)).decode("ascii")
    transport = MagicMock()
    transport.request.return_value = _json_response(RESULT)
    _endpoint(transport).analyze(payload, "p")
    assert transport.request.call_args.kwargs["json_body"]["imageBase64"] == payload


def test_health_ok_includes_backend_text():
    transport = MagicMock()
    transport.request.return_value = TransportResponse(status_code=200, content=b"OK")
    health = _endpoint(transport).health()
    assert health.ok
    assert health.info == "Connected to custom backend. Response: OK"
    assert transport.request.call_args.args == ("GET", "http://backend:8000/healthz")


def test_health_failure_is_reported_not_raised():
    transport = MagicMock()
    transport.request.side_effect = TransportError("dns failure")
    health = _endpoint(transport).health()
    assert health.ok is False
    assert "dns failure" in health.info
