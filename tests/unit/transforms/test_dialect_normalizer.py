"""Unit tests for TypeScript dialect normalization."""

from __future__ import annotations

import pytest

from core.types import StageOutcome
from transforms.dialect_normalizer import normalize_dialect, normalize_source


def test_normalize_strips_nested_generic_arguments() -> None:
    """Nested generic arguments on a hook call should disappear entirely."""
    text, diagnostics = normalize_source("const meshes = useRef<Array<Mesh | null>>([]);\n")

    assert text == "const meshes = useRef([]);\n"
    assert diagnostics == []


def test_normalize_removes_interface_and_signature_annotations() -> None:
    """Interfaces, parameter types and return types should be removed."""
    source = (
        "interface Props {\n"
        "  color: string;\n"
        "}\n"
        "function Box({ color }: Props): JSX.Element {\n"
        "  return <mesh />;\n"
        "}\n"
    )

    text, diagnostics = normalize_source(source)

    assert text == "function Box({ color }) {\n  return <mesh />;\n}\n"
    assert diagnostics == []


def test_normalize_converts_literal_enum_to_frozen_object() -> None:
    """Literal-valued enums should become frozen object literals."""
    text, _diagnostics = normalize_source("enum Color { Red, Green = 5, Blue }\n")

    assert text == "const Color = Object.freeze({ Red: 0, Green: 5, Blue: 6 });\n"


def test_normalize_removes_casts_and_non_null_assertions() -> None:
    """Casts and non-null assertions should be stripped from expressions."""
    source = "const el = ref.current as HTMLElement;\nref.current!.position.x = 1;\n"

    text, _diagnostics = normalize_source(source)

    assert text == "const el = ref.current;\nref.current.position.x = 1;\n"


def test_normalize_leaves_string_literals_untouched() -> None:
    """Annotation-like text inside strings must not be rewritten."""
    source = 'const label = "x: number as Y";\n'

    text, diagnostics = normalize_source(source)

    assert text == source
    assert diagnostics == []


def test_normalize_strips_variable_annotations_and_type_aliases() -> None:
    """Declaration annotations and type aliases should be removed."""
    source = "type Speed = number;\nlet speed: Speed = 2;\nconst name: string = 'box';\n"

    text, _diagnostics = normalize_source(source)

    assert text == "let speed = 2;\nconst name = 'box';\n"


def test_normalize_warns_for_namespace_blocks() -> None:
    """Namespaces have no JavaScript form and should be reported."""
    _text, diagnostics = normalize_source("namespace Shapes {\n  export const size = 1;\n}\n")

    assert [diagnostic.code for diagnostic in diagnostics] == ["unsupported_namespace"]
    assert diagnostics[0].severity == "warning"
    assert diagnostics[0].line == 1


def test_normalize_is_idempotent() -> None:
    """Normalizing normalized output should change nothing."""
    source = (
        "import type { Mesh } from 'three';\n"
        "const mesh = useRef<Mesh>(null!);\n"
        "function spin(delta: number): void {\n"
        "  mesh.current!.rotation.y += delta;\n"
        "}\n"
    )

    once, _diagnostics = normalize_source(source)
    twice, second_diagnostics = normalize_source(once)

    assert twice == once
    assert second_diagnostics == []
    assert "Mesh" not in once


def test_normalize_dialect_advances_outcome() -> None:
    """The stage wrapper should mark the outcome as changed."""
    outcome = normalize_dialect(StageOutcome.initial("let count: number = 0;\n"))

    assert outcome.text == "let count = 0;\n"
    assert outcome.changed is True


@pytest.mark.parametrize(
    "source",
    [
        "const ok = count<limit && size>0;\n",
        "if (i<n) { flag = j>k; }\n",
        "for (let i=0;i<items.length;i++) {\n  total += items[i];\n}\n",
        "const inside = a < b && c > d;\n",
    ],
)
def test_normalize_keeps_comparison_operators(source: str) -> None:
    """Less-than and greater-than comparisons are not generic arguments."""
    text, diagnostics = normalize_source(source)

    assert text == source
    assert diagnostics == []


def test_normalize_strips_generics_next_to_comparisons() -> None:
    """Generic arguments go while a nearby comparison survives."""
    source = "const ref = useRef<Mesh>(null);\nconst ok = count<limit && size>0;\n"

    text, _diagnostics = normalize_source(source)

    assert text == "const ref = useRef(null);\nconst ok = count<limit && size>0;\n"
