"""Unit tests for core config parsing."""

from __future__ import annotations

import pytest

from core.config import ScenepackConfig
from core.errors import ScenepackConfigError


def test_from_env_uses_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fall back to the public sandbox origin."""
    for name in (
        "SCENEPACK_SANDBOX_ORIGIN",
        "SCENEPACK_SANDBOX_API_KEY",
        "SCENEPACK_REQUEST_TIMEOUT_SECONDS",
        "SCENEPACK_EXCERPT_LENGTH",
    ):
        monkeypatch.delenv(name, raising=False)

    config = ScenepackConfig.from_env()

    assert config.sandbox_origin == "https://codesandbox.io"
    assert config.api_key is None
    assert config.request_timeout_seconds == 120.0
    assert config.excerpt_length == 500


def test_from_env_strips_origin_path(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should keep only scheme and host of the origin."""
    monkeypatch.setenv("SCENEPACK_SANDBOX_ORIGIN", "http://localhost:8080/")
    monkeypatch.setenv("SCENEPACK_SANDBOX_API_KEY", "secret")

    config = ScenepackConfig.from_env()

    assert config.sandbox_origin == "http://localhost:8080"
    assert config.api_key == "secret"


def test_from_env_raises_for_invalid_origin(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for origins without an http(s) scheme."""
    monkeypatch.setenv("SCENEPACK_SANDBOX_ORIGIN", "codesandbox.io")

    with pytest.raises(ScenepackConfigError):
        ScenepackConfig.from_env()


@pytest.mark.parametrize("raw_value", ["soon", "0", "-5"])
def test_from_env_raises_for_invalid_timeout(
    monkeypatch: pytest.MonkeyPatch, raw_value: str
) -> None:
    """Config should fail for non-positive or non-numeric timeouts."""
    monkeypatch.setenv("SCENEPACK_REQUEST_TIMEOUT_SECONDS", raw_value)

    with pytest.raises(ScenepackConfigError):
        ScenepackConfig.from_env()


def test_from_env_raises_for_invalid_excerpt_length(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a non-integer excerpt length."""
    monkeypatch.setenv("SCENEPACK_EXCERPT_LENGTH", "lots")

    with pytest.raises(ScenepackConfigError):
        ScenepackConfig.from_env()
