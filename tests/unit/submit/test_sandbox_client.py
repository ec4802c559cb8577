"""Unit tests for sandbox submission with a faked HTTP layer."""

from __future__ import annotations

import json

import pytest
import requests
from urllib3.exceptions import ReadTimeoutError

from bundle.project_assembler import assemble_bundle
from core.config import ScenepackConfig
from core.errors import (
    MalformedResponseError,
    SubmissionRejectedError,
    SubmissionTimeoutError,
    TransportError,
)
from submit.sandbox_client import SandboxClient

_SOURCE = "const renderer = new THREE.WebGLRenderer();\n"


class _FakeResponse:
    def __init__(self, status_code: int, body: bytes, headers: dict[str, str] | None = None):
        self.status_code = status_code
        self.headers = headers or {}
        self._body = body
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        for offset in range(0, len(self._body), chunk_size):
            yield self._body[offset : offset + chunk_size]

    def close(self) -> None:
        self.closed = True


def _install_fake_post(monkeypatch: pytest.MonkeyPatch, response_or_error) -> list[dict]:
    calls: list[dict] = []

    def fake_post(url: str, **kwargs):
        calls.append({"url": url, **kwargs})
        if isinstance(response_or_error, Exception):
            raise response_or_error
        return response_or_error

    monkeypatch.setattr(requests, "post", fake_post)
    return calls


def _client(**overrides) -> SandboxClient:
    return SandboxClient(ScenepackConfig(**overrides))


def test_submit_returns_viewer_url_from_og_url_marker(monkeypatch: pytest.MonkeyPatch) -> None:
    """A 200 page with an og:url marker should yield the viewer URL."""
    body = b'<html><head><meta property="og:url" content="https://codesandbox.io/s/abc123" />'
    calls = _install_fake_post(monkeypatch, _FakeResponse(200, body))

    result = _client().submit(assemble_bundle(_SOURCE, "threejs"))

    assert result.viewer_url == "https://codesandbox.io/s/abc123"
    assert result.embed_url == "https://codesandbox.io/embed/abc123"
    assert result.raw_identifier == "abc123"
    assert result.http_status == 200
    assert calls[0]["url"] == "https://codesandbox.io/api/v1/sandboxes/define"
    assert calls[0]["allow_redirects"] is False
    payload = json.loads(calls[0]["data"].decode("utf-8"))
    assert payload["files"]["src/index.js"] == {"content": _SOURCE, "isBinary": False}


def test_submit_rejects_service_errors_without_retry(monkeypatch: pytest.MonkeyPatch) -> None:
    """A 503 should raise with status and excerpt after exactly one request."""
    calls = _install_fake_post(monkeypatch, _FakeResponse(503, b"Service   Unavailable\n"))

    with pytest.raises(SubmissionRejectedError) as caught:
        _client().submit(assemble_bundle(_SOURCE, "threejs"))

    assert len(calls) == 1
    assert caught.value.status == 503
    assert caught.value.excerpt == "Service Unavailable"
    assert caught.value.failure_kind == "SubmissionRejected"


def test_submit_accepts_redirect_location(monkeypatch: pytest.MonkeyPatch) -> None:
    """A redirect to /s/<id> should be read without following it."""
    _install_fake_post(monkeypatch, _FakeResponse(302, b"", {"Location": "/s/xyz789"}))

    result = _client(sandbox_origin="http://localhost:3000").submit(
        assemble_bundle(_SOURCE, "threejs")
    )

    assert result.viewer_url == "http://localhost:3000/s/xyz789"
    assert result.http_status == 302


def test_submit_accepts_json_sandbox_id(monkeypatch: pytest.MonkeyPatch) -> None:
    """A JSON body with sandbox_id should be accepted."""
    _install_fake_post(monkeypatch, _FakeResponse(200, b'{"sandbox_id": "json-42"}'))

    result = _client().submit(assemble_bundle(_SOURCE, "threejs"))

    assert result.raw_identifier == "json-42"


def test_submit_raises_malformed_for_success_without_marker(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A success page without any identifier marker is malformed."""
    _install_fake_post(monkeypatch, _FakeResponse(200, b"<html>welcome</html>"))

    with pytest.raises(MalformedResponseError) as caught:
        _client().submit(assemble_bundle(_SOURCE, "threejs"))

    assert caught.value.status == 200


def test_submit_only_scans_bounded_body_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    """Markers beyond the scan limit must not be found."""
    body = b" " * (256 * 1024) + b'<a href="/s/late1">late</a>'
    _install_fake_post(monkeypatch, _FakeResponse(200, body))

    with pytest.raises(MalformedResponseError):
        _client().submit(assemble_bundle(_SOURCE, "threejs"))


def test_submit_sends_bearer_token(monkeypatch: pytest.MonkeyPatch) -> None:
    """Configured API keys should be sent as bearer tokens."""
    body = b'<link rel="canonical" href="https://codesandbox.io/s/k3y" />'
    calls = _install_fake_post(monkeypatch, _FakeResponse(200, body))

    result = _client(api_key="token-1").submit(assemble_bundle(_SOURCE, "threejs"))

    assert calls[0]["headers"]["Authorization"] == "Bearer token-1"
    assert result.raw_identifier == "k3y"


def test_submit_maps_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    """Request timeouts should raise SubmissionTimeoutError."""
    _install_fake_post(monkeypatch, requests.Timeout("slow"))

    with pytest.raises(SubmissionTimeoutError):
        _client().submit(assemble_bundle(_SOURCE, "threejs"))


def test_submit_maps_connection_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    """Connection failures should raise TransportError."""
    _install_fake_post(monkeypatch, requests.ConnectionError("refused"))

    with pytest.raises(TransportError):
        _client().submit(assemble_bundle(_SOURCE, "threejs"))


class _StalledResponse(_FakeResponse):
    def iter_content(self, chunk_size: int = 1):
        yield b"<html>"
        raise requests.ConnectionError(
            ReadTimeoutError(None, "https://codesandbox.io", "Read timed out.")
        )


def test_submit_maps_body_read_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    """A read timeout while streaming the body is still a timeout."""
    response = _StalledResponse(200, b"")
    _install_fake_post(monkeypatch, response)

    with pytest.raises(SubmissionTimeoutError):
        _client(request_timeout_seconds=5.0).submit(assemble_bundle(_SOURCE, "threejs"))

    assert response.closed is True
