"""Unit tests for project bundle assembly."""

from __future__ import annotations

import json

import pytest

from bundle.framework_templates import template_for
from bundle.project_assembler import (
    assemble_bundle,
    bundle_payload,
    package_name_for_module,
    write_bundle,
)
from core.errors import ScenepackBundleError
from core.types import ImportManifest, ProjectBundle, ProjectFile

_APP_SOURCE = (
    "import { Canvas } from '@react-three/fiber';\n"
    "\n"
    "function App() {\n"
    "  return <Canvas />;\n"
    "}\n"
    "\n"
    "export default App;\n"
)


def test_component_bundle_layout_and_pinned_versions() -> None:
    """R3F bundles should hold the CRA layout with exact versions."""
    manifest = ImportManifest.from_mapping({"@react-three/fiber": ["Canvas"], "react": ["React"]})

    bundle = assemble_bundle(_APP_SOURCE, "react-three-fiber", manifest)

    assert bundle.paths() == (
        "package.json",
        "public/index.html",
        "src/index.js",
        "src/App.js",
        "src/index.css",
        ".gitignore",
    )
    assert bundle.entry_path == "src/index.js"
    assert bundle.get("src/App.js").content == _APP_SOURCE
    package = json.loads(bundle.get("package.json").content)
    assert package["dependencies"]["@react-three/fiber"] == "8.17.10"
    assert package["dependencies"]["three"] == "0.171.0"
    assert all(not version.startswith(("^", "~")) for version in package["dependencies"].values())
    assert "import App from './App';" in bundle.get("src/index.js").content


def test_module_bundle_runs_source_as_entry() -> None:
    """Babylon bundles should run the cleaned source directly."""
    source = "const engine = new BABYLON.Engine(canvas, true);\n"

    bundle = assemble_bundle(source, "babylonjs")

    assert bundle.entry_path == "src/index.js"
    assert bundle.get("src/index.js").content == source
    assert '<canvas id="renderCanvas"></canvas>' in bundle.get("index.html").content
    package = json.loads(bundle.get("package.json").content)
    assert package["dependencies"]["@babylonjs/core"] == "6.49.0"
    assert package["devDependencies"] == {"parcel-bundler": "1.12.5"}


def test_assemble_rejects_modules_without_pinned_dependency() -> None:
    """A manifest module with no pinned package should block assembly."""
    manifest = ImportManifest.from_mapping({"leva": ["useControls"]})

    with pytest.raises(ScenepackBundleError, match="leva"):
        assemble_bundle(_APP_SOURCE, "react-three-fiber", manifest)


def test_assemble_rejects_component_source_without_default_export() -> None:
    """The bootstrap needs a default export to mount."""
    with pytest.raises(ScenepackBundleError, match="default export"):
        assemble_bundle("function App() {}\n", "react-three-fiber")


def test_assemble_rejects_empty_entry() -> None:
    """A module bundle with empty source has no entry file."""
    with pytest.raises(ScenepackBundleError, match="entry file"):
        assemble_bundle("   \n", "threejs")


@pytest.mark.parametrize(
    ("module_name", "package_name"),
    [
        ("three/examples/jsm/controls/OrbitControls.js", "three"),
        ("@react-three/drei", "@react-three/drei"),
        ("@babylonjs/core/Meshes", "@babylonjs/core"),
        ("react", "react"),
    ],
)
def test_package_name_for_module(module_name: str, package_name: str) -> None:
    """Module specifiers should map to their npm package."""
    assert package_name_for_module(module_name) == package_name


def test_bundle_payload_uses_define_api_shape() -> None:
    """Payload files should carry content and the binary flag."""
    bundle = assemble_bundle(_APP_SOURCE, "react-three-fiber")

    payload = bundle_payload(bundle)

    assert list(payload) == ["files"]
    assert payload["files"]["src/App.js"] == {"content": _APP_SOURCE, "isBinary": False}


def test_assemble_is_deterministic() -> None:
    """Identical input should produce identical bundles."""
    first = assemble_bundle(_APP_SOURCE, "reactylon")
    second = assemble_bundle(_APP_SOURCE, "reactylon")

    assert first == second
    assert template_for("reactylon").package_manifest() == first.get("package.json").content


def test_write_bundle_creates_nested_files(tmp_path) -> None:
    """Writing should create every file below the output directory."""
    bundle = assemble_bundle(_APP_SOURCE, "react-three-fiber")

    written = write_bundle(bundle, tmp_path)

    assert (tmp_path / "public" / "index.html").is_file()
    assert (tmp_path / "src" / "App.js").read_text(encoding="utf-8") == _APP_SOURCE
    assert len(written) == len(bundle)


def test_write_bundle_refuses_escaping_paths(tmp_path) -> None:
    """Paths that leave the output directory must be refused."""
    bundle = ProjectBundle(
        framework="threejs",
        files=(ProjectFile("../evil.js", "x"),),
        entry_path="../evil.js",
    )

    with pytest.raises(ScenepackBundleError, match="outside"):
        write_bundle(bundle, tmp_path / "out")
