"""Per-framework project templates.

Each supported framework maps to one fixed project layout: a dependency
manifest with exact pinned versions, a host page, a stylesheet, a
``.gitignore``, and for component frameworks a bootstrap script that mounts
the default export of ``src/App.js``. Nothing here depends on the source
being packaged, so bundles for the same source are byte-identical.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from core.errors import ScenepackBundleError
from core.types import SUPPORTED_FRAMEWORKS, ProjectFile, TargetFramework

PACKAGE_MANIFEST_PATH = "package.json"
GITIGNORE_PATH = ".gitignore"

_REACT_BOOTSTRAP = """import React, { StrictMode } from 'react';
import { createRoot } from 'react-dom/client';
import './index.css';
import App from './App';

const rootElement = document.getElementById('root');
if (!rootElement) throw new Error('Root element not found');

const root = createRoot(rootElement);
root.render(
  <StrictMode>
    <App />
  </StrictMode>
);
"""

_REACT_STYLESHEET = """* {
  margin: 0;
  padding: 0;
  box-sizing: border-box;
}

html,
body,
#root {
  width: 100%;
  height: 100%;
  overflow: hidden;
}

body {
  background: #000;
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Roboto', 'Oxygen',
    'Ubuntu', 'Cantarell', 'Fira Sans', 'Droid Sans', 'Helvetica Neue',
    sans-serif;
  -webkit-font-smoothing: antialiased;
  -moz-osx-font-smoothing: grayscale;
}

canvas {
  display: block;
}
"""

_REACT_HOST_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1, shrink-to-fit=no" />
    <meta name="theme-color" content="#000000" />
    <title>{title}</title>
  </head>
  <body>
    <noscript>You need to enable JavaScript to run this app.</noscript>
    <div id="root"></div>
  </body>
</html>
"""

_MODULE_HOST_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{title}</title>
    <link rel="stylesheet" href="src/styles.css" />
  </head>
  <body>
{body}    <script src="src/index.js"></script>
  </body>
</html>
"""

_THREEJS_STYLESHEET = """* {
  margin: 0;
  padding: 0;
}

body {
  overflow: hidden;
  background: #000;
}

canvas {
  display: block;
}
"""

_BABYLONJS_STYLESHEET = """* {
  margin: 0;
  padding: 0;
}

html,
body {
  width: 100%;
  height: 100%;
  overflow: hidden;
  background: #000;
}

#renderCanvas {
  width: 100%;
  height: 100%;
  touch-action: none;
}
"""

_GITIGNORE = """# dependencies
/node_modules
/.pnp
.pnp.js

# testing
/coverage

# production
/build
/dist
/.cache

# misc
.DS_Store
.env.local
.env.development.local
.env.test.local
.env.production.local

npm-debug.log*
yarn-debug.log*
yarn-error.log*
"""

_REACT_SCRIPTS = (
    ("start", "react-scripts start"),
    ("build", "react-scripts build"),
    ("test", "react-scripts test --env=jsdom"),
    ("eject", "react-scripts eject"),
)
_PARCEL_SCRIPTS = (
    ("start", "parcel index.html --open"),
    ("build", "parcel build index.html"),
)
_REACT_APP_EXTRAS: tuple[tuple[str, object], ...] = (
    ("eslintConfig", {"extends": ["react-app"]}),
    (
        "browserslist",
        {
            "production": [">0.2%", "not dead", "not op_mini all"],
            "development": [
                "last 1 chrome version",
                "last 1 firefox version",
                "last 1 safari version",
            ],
        },
    ),
)
_PARCEL_DEV_DEPENDENCIES = (("parcel-bundler", "1.12.5"),)


@dataclass(frozen=True)
class FrameworkTemplate:
    """Fixed project layout for one framework.

    Attributes:
        framework: Framework tag the template serves.
        display_name: Human-readable framework name for page titles.
        package_name: ``name`` field of package.json.
        keywords: ``keywords`` field of package.json.
        dependencies: Runtime packages and exact versions.
        dev_dependencies: Build-only packages and exact versions.
        scripts: package.json scripts.
        extra_manifest_fields: Additional package.json fields, in order.
        host_page_path: Path of the HTML host page.
        host_page: Host page content.
        bootstrap_path: Path of the mount script, None for module frameworks.
        bootstrap: Mount script content.
        source_path: Path the cleaned source is written to.
        stylesheet_path: Path of the stylesheet.
        stylesheet: Stylesheet content.
        entry_path: Path of the designated entry file.
    """

    framework: TargetFramework
    display_name: str
    package_name: str
    keywords: tuple[str, ...]
    dependencies: tuple[tuple[str, str], ...]
    dev_dependencies: tuple[tuple[str, str], ...]
    scripts: tuple[tuple[str, str], ...]
    extra_manifest_fields: tuple[tuple[str, object], ...]
    host_page_path: str
    host_page: str
    bootstrap_path: str | None
    bootstrap: str
    source_path: str
    stylesheet_path: str
    stylesheet: str
    entry_path: str

    def dependency_names(self) -> frozenset[str]:
        return frozenset(name for name, _version in self.dependencies)

    def package_manifest(self) -> str:
        """Render package.json with a stable key order."""
        manifest: dict[str, object] = {
            "name": self.package_name,
            "version": "1.0.0",
            "description": f"{self.display_name} scene packaged by scenepack",
            "keywords": list(self.keywords),
            "main": self.entry_path,
            "dependencies": dict(self.dependencies),
        }
        if self.dev_dependencies:
            manifest["devDependencies"] = dict(self.dev_dependencies)
        manifest["scripts"] = dict(self.scripts)
        manifest.update(self.extra_manifest_fields)
        return json.dumps(manifest, indent=2) + "\n"

    def render_files(self, source_text: str) -> tuple[ProjectFile, ...]:
        """Lay out every project file around the cleaned source.

        Args:
            source_text: Output of the transform stages.

        Returns:
            Files in template order: manifest, host page, bootstrap (when
            present), source, stylesheet, ``.gitignore``.
        """
        files = [
            ProjectFile(PACKAGE_MANIFEST_PATH, self.package_manifest()),
            ProjectFile(self.host_page_path, self.host_page),
        ]
        if self.bootstrap_path is not None:
            files.append(ProjectFile(self.bootstrap_path, self.bootstrap))
        files.append(ProjectFile(self.source_path, source_text))
        files.append(ProjectFile(self.stylesheet_path, self.stylesheet))
        files.append(ProjectFile(GITIGNORE_PATH, _GITIGNORE))
        return tuple(files)


def _react_template(
    framework: TargetFramework,
    display_name: str,
    package_name: str,
    keywords: tuple[str, ...],
    dependencies: tuple[tuple[str, str], ...],
) -> FrameworkTemplate:
    return FrameworkTemplate(
        framework=framework,
        display_name=display_name,
        package_name=package_name,
        keywords=keywords,
        dependencies=dependencies,
        dev_dependencies=(),
        scripts=_REACT_SCRIPTS,
        extra_manifest_fields=_REACT_APP_EXTRAS,
        host_page_path="public/index.html",
        host_page=_REACT_HOST_PAGE.format(title=f"scenepack - {display_name}"),
        bootstrap_path="src/index.js",
        bootstrap=_REACT_BOOTSTRAP,
        source_path="src/App.js",
        stylesheet_path="src/index.css",
        stylesheet=_REACT_STYLESHEET,
        entry_path="src/index.js",
    )


def _module_template(
    framework: TargetFramework,
    display_name: str,
    package_name: str,
    keywords: tuple[str, ...],
    dependencies: tuple[tuple[str, str], ...],
    stylesheet: str,
    body_markup: str = "",
) -> FrameworkTemplate:
    return FrameworkTemplate(
        framework=framework,
        display_name=display_name,
        package_name=package_name,
        keywords=keywords,
        dependencies=dependencies,
        dev_dependencies=_PARCEL_DEV_DEPENDENCIES,
        scripts=_PARCEL_SCRIPTS,
        extra_manifest_fields=(),
        host_page_path="index.html",
        host_page=_MODULE_HOST_PAGE.format(
            title=f"scenepack - {display_name}", body=body_markup
        ),
        bootstrap_path=None,
        bootstrap="",
        source_path="src/index.js",
        stylesheet_path="src/styles.css",
        stylesheet=stylesheet,
        entry_path="src/index.js",
    )


_TEMPLATES: dict[TargetFramework, FrameworkTemplate] = {
    "react-three-fiber": _react_template(
        "react-three-fiber",
        "React Three Fiber",
        "r3f-scenepack-scene",
        ("react", "three", "3d", "react-three-fiber"),
        (
            ("@react-three/drei", "9.114.3"),
            ("@react-three/fiber", "8.17.10"),
            ("@react-three/postprocessing", "2.16.3"),
            ("react", "18.3.1"),
            ("react-dom", "18.3.1"),
            ("react-scripts", "5.0.1"),
            ("three", "0.171.0"),
        ),
    ),
    "reactylon": _react_template(
        "reactylon",
        "Reactylon",
        "reactylon-scenepack-scene",
        ("react", "babylonjs", "3d", "reactylon"),
        (
            ("@babylonjs/core", "7.42.1"),
            ("@babylonjs/gui", "7.42.1"),
            ("@babylonjs/loaders", "7.42.1"),
            ("@babylonjs/materials", "7.42.1"),
            ("react", "18.3.1"),
            ("react-babylonjs", "3.2.0"),
            ("react-dom", "18.3.1"),
            ("react-scripts", "5.0.1"),
        ),
    ),
    "threejs": _module_template(
        "threejs",
        "Three.js",
        "threejs-scenepack-scene",
        ("threejs", "3d", "webgl"),
        (("three", "0.158.0"),),
        _THREEJS_STYLESHEET,
    ),
    "babylonjs": _module_template(
        "babylonjs",
        "Babylon.js",
        "babylonjs-scenepack-scene",
        ("babylonjs", "3d", "webgl"),
        (
            ("@babylonjs/core", "6.49.0"),
            ("@babylonjs/gui", "6.49.0"),
            ("@babylonjs/loaders", "6.49.0"),
        ),
        _BABYLONJS_STYLESHEET,
        body_markup='    <canvas id="renderCanvas"></canvas>\n',
    ),
}


def template_for(framework: TargetFramework) -> FrameworkTemplate:
    """Return the project template of a framework.

    Args:
        framework: Supported framework tag.

    Returns:
        Fixed template.

    Raises:
        ScenepackBundleError: If no template exists for the framework.
    """
    template = _TEMPLATES.get(framework)
    if template is None:
        raise ScenepackBundleError(
            f"No project template for framework '{framework}'. "
            f"Use one of: {', '.join(SUPPORTED_FRAMEWORKS)}."
        )
    return template
