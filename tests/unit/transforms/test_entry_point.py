"""Unit tests for entry-point synthesis."""

from __future__ import annotations

from core.catalog import load_component_catalog
from core.types import StageOutcome
from transforms.entry_point import (
    ComponentCandidate,
    choose_root,
    find_component_candidates,
    synthesize_component_entry,
    synthesize_entry_point,
)


def test_entry_exports_component_rendering_canvas_and_drops_mount_call() -> None:
    """The Canvas-rendering component should become the single default export."""
    catalog = load_component_catalog("react-three-fiber")
    source = (
        "function Scene() {\n"
        "  return <mesh />;\n"
        "}\n"
        "\n"
        "function Viewer() {\n"
        "  return (\n"
        "    <Canvas>\n"
        "      <Scene />\n"
        "    </Canvas>\n"
        "  );\n"
        "}\n"
        "\n"
        "ReactDOM.render(<Viewer />, document.getElementById('root'));\n"
    )

    text, diagnostics = synthesize_component_entry(source, catalog)

    assert "ReactDOM" not in text
    assert text.endswith("}\n\nexport default Viewer;\n")
    assert text.count("export default") == 1
    assert [diagnostic.code for diagnostic in diagnostics] == ["mount_code_removed"]


def test_entry_collapses_duplicate_default_exports() -> None:
    """Competing default exports should collapse into one."""
    catalog = load_component_catalog("react-three-fiber")
    source = (
        "export default function App() {\n"
        "  return <Canvas />;\n"
        "}\n"
        "export default App;\n"
    )

    text, diagnostics = synthesize_component_entry(source, catalog)

    assert text == "function App() {\n  return <Canvas />;\n}\n\nexport default App;\n"
    assert diagnostics == []


def test_entry_removes_create_root_mount_code() -> None:
    """createRoot lookups, guards and render calls should all be removed."""
    catalog = load_component_catalog("react-three-fiber")
    source = (
        "function App() {\n"
        "  return <Canvas />;\n"
        "}\n"
        "const container = document.getElementById('root');\n"
        "if (!container) throw new Error('missing root');\n"
        "const root = createRoot(container);\n"
        "root.render(<App />);\n"
    )

    text, diagnostics = synthesize_component_entry(source, catalog)

    assert text == "function App() {\n  return <Canvas />;\n}\n\nexport default App;\n"
    assert [diagnostic.code for diagnostic in diagnostics] == ["mount_code_removed"]


def test_entry_reports_missing_root_container() -> None:
    """Without a Canvas-rendering component no entry can be chosen."""
    catalog = load_component_catalog("react-three-fiber")

    text, diagnostics = synthesize_component_entry(
        "function Widget() {\n  return <mesh />;\n}\n", catalog
    )

    assert "export default" not in text
    assert diagnostics[0].code == "no_entry_point_candidate"
    assert diagnostics[0].is_error


def test_find_candidates_covers_arrow_components() -> None:
    """Arrow-function components should be found as candidates."""
    source = "const Viewer = () => (\n  <Canvas>\n    <mesh />\n  </Canvas>\n);\n"

    candidates = find_component_candidates(source, "Canvas")

    assert [candidate.name for candidate in candidates] == ["Viewer"]


def test_choose_root_prefers_conventional_name() -> None:
    """With several candidates the conventional root name should win."""
    candidates = [ComponentCandidate("Viewer", 0, 10), ComponentCandidate("App", 20, 30)]

    assert choose_root(candidates, "App").name == "App"
    assert choose_root(candidates, "Main").name == "Viewer"


def test_module_entry_appends_missing_scene_invocation() -> None:
    """A Babylon scene builder that is never called should be invoked."""
    catalog = load_component_catalog("babylonjs")
    source = (
        "const canvas = document.getElementById('renderCanvas');\n"
        "const engine = new BABYLON.Engine(canvas, true);\n"
        "const createScene = function () {\n"
        "  const scene = new BABYLON.Scene(engine);\n"
        "  return scene;\n"
        "};\n"
    )

    outcome = synthesize_entry_point(StageOutcome.initial(source), catalog)

    assert outcome.text.endswith("};\n\ncreateScene();\n")
    assert [diagnostic.code for diagnostic in outcome.diagnostics] == ["entry_invocation_added"]


def test_module_entry_requires_root_construction() -> None:
    """A Three.js module that never builds a renderer has no entry."""
    catalog = load_component_catalog("threejs")

    outcome = synthesize_entry_point(
        StageOutcome.initial("const scene = new THREE.Scene();\n"), catalog
    )

    assert outcome.text == "const scene = new THREE.Scene();\n"
    assert outcome.errors()[0].code == "no_entry_point_candidate"


def test_entry_replaces_default_export_specifier() -> None:
    """An ``App as default`` export list should give way to the single default."""
    catalog = load_component_catalog("react-three-fiber")
    source = (
        "function App() {\n"
        "  return <Canvas><mesh /></Canvas>;\n"
        "}\n"
        "export { App as default };\n"
    )

    text, diagnostics = synthesize_component_entry(source, catalog)

    assert text == (
        "function App() {\n"
        "  return <Canvas><mesh /></Canvas>;\n"
        "}\n"
        "\n"
        "export default App;\n"
    )
    assert text.count("default") == 1
    assert diagnostics == []


def test_entry_keeps_named_specifiers_beside_default_specifier() -> None:
    """Only the default specifier leaves a mixed export list."""
    catalog = load_component_catalog("react-three-fiber")
    source = (
        "function Box() {\n"
        "  return <mesh />;\n"
        "}\n"
        "function App() {\n"
        "  return <Canvas><Box /></Canvas>;\n"
        "}\n"
        "export { App as default, Box };\n"
    )

    text, _diagnostics = synthesize_component_entry(source, catalog)

    assert "export { Box };\n" in text
    assert text.endswith("\n\nexport default App;\n")
    assert text.count("default") == 1


def test_entry_names_anonymous_default_when_app_is_taken() -> None:
    """An anonymous default component gets a fresh name instead of being dropped."""
    catalog = load_component_catalog("react-three-fiber")
    source = (
        "const App = 'demo';\n"
        "export default () => (\n"
        "  <Canvas>\n"
        "    <mesh />\n"
        "  </Canvas>\n"
        ");\n"
    )

    text, diagnostics = synthesize_component_entry(source, catalog)

    assert "const App2 = () => (\n" in text
    assert text.endswith(");\n\nexport default App2;\n")
    assert diagnostics == []
