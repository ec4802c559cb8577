"""Sandbox define-API client.

One bundle is sent as one POST. Redirects are not followed because the
service may answer with ``Location: /s/<id>``, and there are no retries:
a rejected submission is reported with its status and a body excerpt.
"""

from __future__ import annotations

import json
from typing import Mapping

import requests
from urllib3.exceptions import ReadTimeoutError

from bundle.project_assembler import bundle_payload
from core.config import ScenepackConfig
from core.constants import DEFINE_API_PATH, EMBED_PATH_PREFIX, RESPONSE_SCAN_LIMIT_BYTES
from core.errors import (
    MalformedResponseError,
    SubmissionError,
    SubmissionRejectedError,
    SubmissionTimeoutError,
    TransportError,
)
from core.logging_config import get_logger
from core.types import ProjectBundle, SandboxSubmissionResult
from submit.response_parsing import (
    bounded_body,
    extract_redirect_id,
    extract_sandbox_id,
    response_excerpt,
    viewer_url,
)

_LOGGER = get_logger(__name__)
_CHUNK_SIZE = 64 * 1024


class SandboxClient:
    """Submit project bundles to the sandbox service."""

    def __init__(self, config: ScenepackConfig) -> None:
        self._config = config

    @property
    def define_url(self) -> str:
        return f"{self._config.sandbox_origin}{DEFINE_API_PATH}"

    def submit(self, bundle: ProjectBundle) -> SandboxSubmissionResult:
        """Create a sandbox from a bundle.

        Args:
            bundle: Assembled project bundle.

        Returns:
            Viewer and embed addresses of the created sandbox.

        Raises:
            SubmissionRejectedError: If the service answers without a sandbox.
            MalformedResponseError: If a success response carries no identifier.
            SubmissionTimeoutError: If the service does not answer in time.
            TransportError: If the request or body read fails for another reason.
        """
        _LOGGER.info(
            "sandbox_submission_started",
            framework=bundle.framework,
            file_count=len(bundle),
            verified=bundle.verified,
            define_url=self.define_url,
        )
        response = self._post(bundle)
        try:
            status = response.status_code
            body_text = bounded_body(self._read_body(response))
            sandbox_id = self._recover_identifier(status, body_text, response.headers)
        finally:
            response.close()
        result = SandboxSubmissionResult(
            viewer_url=viewer_url(self._config.sandbox_origin, sandbox_id),
            raw_identifier=sandbox_id,
            http_status=status,
            embed_url=f"{self._config.sandbox_origin}{EMBED_PATH_PREFIX}{sandbox_id}",
        )
        _LOGGER.info(
            "sandbox_submission_completed",
            framework=bundle.framework,
            http_status=status,
            sandbox_id=sandbox_id,
            viewer_url=result.viewer_url,
        )
        return result

    def _post(self, bundle: ProjectBundle) -> requests.Response:
        headers = {"Content-Type": "application/json", "Accept": "text/html,application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        body = json.dumps(bundle_payload(bundle))
        try:
            return requests.post(
                self.define_url,
                data=body.encode("utf-8"),
                headers=headers,
                timeout=self._config.request_timeout_seconds,
                allow_redirects=False,
                stream=True,
            )
        except requests.RequestException as error:
            raise self._transport_failure(error) from error

    def _read_body(self, response: requests.Response) -> bytes:
        try:
            return _read_bounded(response)
        except requests.RequestException as error:
            raise self._transport_failure(error) from error

    def _transport_failure(self, error: requests.RequestException) -> SubmissionError:
        if _is_timeout(error):
            _LOGGER.error(
                "sandbox_submission_timeout",
                timeout_seconds=self._config.request_timeout_seconds,
            )
            return SubmissionTimeoutError(
                "Sandbox service did not answer within "
                f"{self._config.request_timeout_seconds:g}s. "
                "Raise SCENEPACK_REQUEST_TIMEOUT_SECONDS or retry later."
            )
        _LOGGER.error("sandbox_submission_transport_error", error=str(error))
        return TransportError(f"Failed to reach sandbox service at {self.define_url}: {error}.")

    def _recover_identifier(
        self, status: int, body_text: str, headers: Mapping[str, str]
    ) -> str:
        excerpt = response_excerpt(body_text, self._config.excerpt_length)
        if 300 <= status < 400:
            sandbox_id = extract_redirect_id(headers)
            if sandbox_id is not None:
                return sandbox_id
        if not 200 <= status < 300:
            _LOGGER.error("sandbox_submission_rejected", http_status=status)
            raise SubmissionRejectedError(
                f"Sandbox service rejected the submission with HTTP {status}: {excerpt}",
                status=status,
                excerpt=excerpt,
            )
        sandbox_id = extract_sandbox_id(body_text)
        if sandbox_id is None:
            _LOGGER.error("sandbox_submission_malformed_response", http_status=status)
            raise MalformedResponseError(
                f"Sandbox service answered HTTP {status} without a sandbox identifier. "
                "The response format may have changed.",
                status=status,
                excerpt=excerpt,
            )
        return sandbox_id


def _read_bounded(response: requests.Response, limit: int = RESPONSE_SCAN_LIMIT_BYTES) -> bytes:
    """Read at most ``limit`` bytes of a streamed response body."""
    collected = bytearray()
    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
        if not chunk:
            continue
        collected.extend(chunk)
        if len(collected) >= limit:
            break
    return bytes(collected[:limit])


def _is_timeout(error: requests.RequestException) -> bool:
    # requests re-raises a read timeout hit while streaming the body as ConnectionError.
    if isinstance(error, requests.Timeout):
        return True
    return (
        isinstance(error, requests.ConnectionError)
        and bool(error.args)
        and isinstance(error.args[0], ReadTimeoutError)
    )
