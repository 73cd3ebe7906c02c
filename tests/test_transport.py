"""Tests for HttpTransport: deadline enforcement and mapping of requests exceptions."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from seotagger.ai.errors import RequestTimeoutError, TransportError
from seotagger.ai.transport import HttpTransport, TransportResponse

pytestmark = [pytest.mark.fast]


def _mock_response(status_code=200, reason="OK", chunks=(b'{"ok": true}',)):
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason = reason
    resp.headers = {"Content-Type": "application/json"}
    resp.iter_content.return_value = iter(chunks)
    return resp


def test_request_returns_body_and_closes_response():
    session = MagicMock()
    resp = _mock_response(chunks=(b'{"a": ', b"1}"))
    session.request.return_value = resp
    transport = HttpTransport(session=session)

    out = transport.request("POST", "http://lm/v1/chat/completions", timeout_seconds=5, json_body={"x": 1})

    assert out.ok
    assert out.json() == {"a": 1}
    resp.close.assert_called_once()
    _, kwargs = session.request.call_args
    assert kwargs["stream"] is True
    assert kwargs["json"] == {"x": 1}
    assert 0 < kwargs["timeout"] <= 5


def test_non_2xx_is_returned_not_raised():
    session = MagicMock()
    session.request.return_value = _mock_response(status_code=503, reason="Service Unavailable", chunks=(b"",))
    out = HttpTransport(session=session).request("GET", "http://lm/v1/models", timeout_seconds=5)
    assert out.status_code == 503
    assert not out.ok


def test_requests_timeout_maps_to_request_timeout_error():
    session = MagicMock()
    session.request.side_effect = requests.ReadTimeout("read timed out")
    with pytest.raises(RequestTimeoutError, match=r"timed out after 2s"):
        HttpTransport(session=session).request("GET", "http://lm/v1/models", timeout_seconds=2)


def test_connection_error_maps_to_transport_error():
    session = MagicMock()
    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(TransportError) as excinfo:
        HttpTransport(session=session).request("GET", "http://lm/v1/models", timeout_seconds=2)
    assert not isinstance(excinfo.value, RequestTimeoutError)


def test_deadline_enforced_while_reading_body(monkeypatch):
    """Body chunks arriving after the deadline abort the request with RequestTimeoutError."""
    clock = iter([100.0, 100.0, 100.5, 102.0, 103.0])
    monkeypatch.setattr("seotagger.ai.transport.time", SimpleNamespace(monotonic=lambda: next(clock)))
    session = MagicMock()
    resp = _mock_response(chunks=(b"a", b"b", b"c"))
    session.request.return_value = resp

    with pytest.raises(RequestTimeoutError):
        HttpTransport(session=session).request("GET", "http://slow/v1/models", timeout_seconds=1.5)
    resp.close.assert_called_once()


def test_transport_response_text_and_json():
    resp = TransportResponse(status_code=200, content='{"k": "värde"}'.encode("utf-8"))
    assert resp.text == '{"k": "värde"}'
    assert resp.json() == {"k": "värde"}
