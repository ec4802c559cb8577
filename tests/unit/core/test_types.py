"""Unit tests for shared typed models."""

from __future__ import annotations

from core.types import ImportManifest, StageOutcome, error_diagnostic, warning_diagnostic


def test_diagnostic_render_includes_stage_line_and_code() -> None:
    """Rendered diagnostics should be single readable lines."""
    diagnostic = warning_diagnostic(
        "usage_resolver", "unknown_hook", "Hook 'useFoo' is unknown.", 4
    )

    assert diagnostic.render() == "[usage_resolver:4] unknown_hook: Hook 'useFoo' is unknown."
    assert not diagnostic.is_error


def test_stage_outcome_accumulates_diagnostics() -> None:
    """Advancing should append diagnostics and track text changes."""
    first = StageOutcome.initial("a").advance("b", [warning_diagnostic("s1", "w", "m")])
    second = first.advance("b", [error_diagnostic("s2", "e", "m")])

    assert first.changed is True
    assert second.changed is False
    assert [item.code for item in second.diagnostics] == ["w", "e"]
    assert [item.code for item in second.errors()] == ["e"]
    assert [item.code for item in second.warnings()] == ["w"]


def test_import_manifest_drops_empty_modules() -> None:
    """Modules without identifiers should not appear in the manifest."""
    manifest = ImportManifest.from_mapping({"react": ["React"], "three": []})

    assert manifest.module_names() == ("react",)
    assert manifest.identifiers() == ("React",)
    assert not manifest.is_empty()
