"""Unit tests for pipeline orchestration."""

from __future__ import annotations

import pytest
import requests

from core.errors import EmptyComponentManifestError, StructuralImbalanceError
from core.types import SourceDocument
from pipeline.runner import build_document, prepare_bundle, process, run_transform_stages

_R3F_SOURCE = (
    "import { Canvas } from '@react-three/fiber';\n"
    "\n"
    "interface BoxProps {\n"
    "  speed: number;\n"
    "}\n"
    "\n"
    "function SpinningBox({ speed }: BoxProps) {\n"
    "  const mesh = useRef<Mesh>(null);\n"
    "  useFrame(() => {\n"
    "    mesh.current.rotation.y += speed;\n"
    "  });\n"
    "  return (\n"
    "    <mesh ref={mesh}>\n"
    "      <boxGeometry />\n"
    "    </mesh>\n"
    "  );\n"
    "}\n"
    "\n"
    "export default function App() {\n"
    "  return (\n"
    "    <Canvas>\n"
    "      <SpinningBox speed={0.01} />\n"
    "      <OrbitControls />\n"
    "    </Canvas>\n"
    "  );\n"
    "}\n"
)
_UNBALANCED_SOURCE = (
    "const App = () => <Canvas />;\n"
    "function Broken() {\n"
    "  const a = 1;\n"
)


class _FakeResponse:
    status_code = 200
    headers: dict[str, str] = {}

    def iter_content(self, chunk_size: int = 1):
        yield b'<meta property="og:url" content="https://codesandbox.io/s/scene01" />'

    def close(self) -> None:
        return None


def test_prepare_bundle_turns_typescript_scene_into_runnable_project() -> None:
    """A TypeScript R3F scene should become a verified CRA project."""
    document = build_document(_R3F_SOURCE, "r3f")

    prepared = prepare_bundle(document)

    app_source = prepared.bundle.get("src/App.js").content
    assert prepared.bundle.framework == "react-three-fiber"
    assert prepared.bundle.verified is True
    assert prepared.warnings == ()
    assert "interface" not in app_source
    assert "useRef(null)" in app_source
    assert "import { OrbitControls } from '@react-three/drei';" in app_source
    assert "import { Canvas, useFrame } from '@react-three/fiber';" in app_source
    assert "import React, { useRef } from 'react';" in app_source
    assert app_source.endswith("}\n\nexport default App;\n")
    assert app_source.count("export default") == 1


def test_run_transform_stages_is_deterministic() -> None:
    """Identical input should yield identical outcomes."""
    document = SourceDocument(text=_R3F_SOURCE, framework="react-three-fiber")

    assert run_transform_stages(document) == run_transform_stages(document)


def test_prepare_bundle_raises_for_source_without_components() -> None:
    """Source with no catalog usage should fail with every diagnostic attached."""
    document = build_document("export function App() {\n  return <div>hi</div>;\n}\n", "r3f")

    with pytest.raises(EmptyComponentManifestError) as caught:
        prepare_bundle(document)

    codes = [diagnostic.code for diagnostic in caught.value.diagnostics]
    assert "empty_component_manifest" in codes
    assert "no_entry_point_candidate" in codes
    assert caught.value.stage == "usage_resolver"


def test_prepare_bundle_raises_for_remaining_imbalance() -> None:
    """An unclosed block should block the bundle by default."""
    document = build_document(_UNBALANCED_SOURCE, "react-three-fiber")

    with pytest.raises(StructuralImbalanceError) as caught:
        prepare_bundle(document)

    assert caught.value.failure_kind == "StructuralImbalance"


def test_prepare_bundle_raises_earliest_stage_failure_first() -> None:
    """Imbalance from repair outranks failures reported by later stages."""
    document = build_document("function Broken() {\n  return <div>hi</div>;\n", "r3f")

    with pytest.raises(StructuralImbalanceError) as caught:
        prepare_bundle(document)

    codes = [diagnostic.code for diagnostic in caught.value.diagnostics]
    assert codes.index("structural_imbalance") < codes.index("empty_component_manifest")
    assert caught.value.stage == "structural_repair"
    with pytest.raises(EmptyComponentManifestError):
        prepare_bundle(document, allow_unverified=True)


def test_prepare_bundle_can_return_unverified_bundle() -> None:
    """Callers may opt into an unverified bundle instead of an error."""
    document = build_document(_UNBALANCED_SOURCE, "react-three-fiber")

    prepared = prepare_bundle(document, allow_unverified=True)

    assert prepared.bundle.verified is False
    assert prepared.bundle.get("src/App.js").content.endswith("export default App;\n")


def test_process_submits_bundle_and_returns_viewer_url(monkeypatch: pytest.MonkeyPatch) -> None:
    """The full pipeline should end with the recovered viewer URL."""
    for name in (
        "SCENEPACK_SANDBOX_ORIGIN",
        "SCENEPACK_SANDBOX_API_KEY",
        "SCENEPACK_REQUEST_TIMEOUT_SECONDS",
        "SCENEPACK_EXCERPT_LENGTH",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(requests, "post", lambda *_args, **_kwargs: _FakeResponse())

    result = process(_R3F_SOURCE, "react-three-fiber")

    assert result.viewer_url == "https://codesandbox.io/s/scene01"
    assert result.submission.raw_identifier == "scene01"
    assert result.warnings == ()
    assert result.warnings_only is False
