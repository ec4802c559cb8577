"""Runtime configuration model for scenepack.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

from core.constants import (
    DEFAULT_EXCERPT_LENGTH,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SANDBOX_ORIGIN,
)
from core.errors import ScenepackConfigError


@dataclass(frozen=True)
class ScenepackConfig:
    """Validated runtime configuration.

    Attributes:
        sandbox_origin: Scheme and host of the sandbox service, no trailing slash.
        api_key: Optional bearer token for authenticated sandbox creation.
        request_timeout_seconds: Upper bound for one define-API request.
        excerpt_length: Characters of response body kept on failures.
    """

    sandbox_origin: str = DEFAULT_SANDBOX_ORIGIN
    api_key: str | None = None
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    excerpt_length: int = DEFAULT_EXCERPT_LENGTH

    @classmethod
    def from_env(cls) -> "ScenepackConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ScenepackConfigError: If environment values are invalid.
        """
        origin = _parse_origin(os.getenv("SCENEPACK_SANDBOX_ORIGIN", DEFAULT_SANDBOX_ORIGIN))
        api_key = os.getenv("SCENEPACK_SANDBOX_API_KEY") or None
        timeout = _parse_timeout(
            os.getenv("SCENEPACK_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS))
        )
        excerpt_length = _parse_excerpt_length(
            os.getenv("SCENEPACK_EXCERPT_LENGTH", str(DEFAULT_EXCERPT_LENGTH))
        )
        return cls(
            sandbox_origin=origin,
            api_key=api_key,
            request_timeout_seconds=timeout,
            excerpt_length=excerpt_length,
        )


def _parse_origin(raw_value: str) -> str:
    """Validate the sandbox origin URL.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Origin without trailing slash.

    Raises:
        ScenepackConfigError: If the value is not an http(s) origin.
    """
    parsed = urlparse(raw_value.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ScenepackConfigError(
            "Invalid SCENEPACK_SANDBOX_ORIGIN value: "
            f"expected an http(s) origin, got '{raw_value}'. "
            "Set it to a value like https://codesandbox.io."
        )
    return f"{parsed.scheme}://{parsed.netloc}"


def _parse_timeout(raw_value: str) -> float:
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise ScenepackConfigError(
            "Invalid SCENEPACK_REQUEST_TIMEOUT_SECONDS value: "
            f"expected a number, got '{raw_value}'."
        ) from error
    if timeout <= 0:
        raise ScenepackConfigError(
            "Invalid SCENEPACK_REQUEST_TIMEOUT_SECONDS value: "
            f"expected a positive number, got '{raw_value}'."
        )
    return timeout


def _parse_excerpt_length(raw_value: str) -> int:
    try:
        length = int(raw_value)
    except ValueError as error:
        raise ScenepackConfigError(
            "Invalid SCENEPACK_EXCERPT_LENGTH value: "
            f"expected integer, got '{raw_value}'. "
            "Set SCENEPACK_EXCERPT_LENGTH to a positive whole number."
        ) from error
    if length <= 0:
        raise ScenepackConfigError(
            f"Invalid SCENEPACK_EXCERPT_LENGTH value: expected positive integer, got {length}."
        )
    return length
