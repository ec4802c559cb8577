"""Project bundle assembly and serialization.

The assembler lays the cleaned source into its framework template. It never
edits the source: any defect it finds is raised, because every repair belongs
to an earlier transform stage.
"""

from __future__ import annotations

import json
import re
from pathlib import Path, PurePosixPath

from bundle.framework_templates import template_for
from core.errors import ScenepackBundleError
from core.types import ImportManifest, ProjectBundle, TargetFramework

_DEFAULT_EXPORT = re.compile(r"^\s*export\s+default\b", re.MULTILINE)


def assemble_bundle(
    source_text: str,
    framework: TargetFramework,
    manifest: ImportManifest | None = None,
    verified: bool = True,
) -> ProjectBundle:
    """Build the project bundle for cleaned source.

    Args:
        source_text: Output of the entry-point stage.
        framework: Target framework tag.
        manifest: Import manifest whose modules must all be pinned.
        verified: False when structural repair could not balance the source.

    Returns:
        Bundle with files in template order.

    Raises:
        ScenepackBundleError: If a module has no pinned dependency or the
            bundle would lack its entry file.
    """
    template = template_for(framework)
    if manifest is not None:
        _require_pinned_modules(manifest, template.dependency_names(), framework)
    files = template.render_files(source_text)
    bundle = ProjectBundle(
        framework=framework,
        files=files,
        entry_path=template.entry_path,
        verified=verified,
    )
    entry_file = bundle.get(bundle.entry_path)
    if entry_file is None or not entry_file.content.strip():
        raise ScenepackBundleError(
            f"Bundle for '{framework}' has no entry file at {bundle.entry_path}. "
            "The source produced by the transform stages is empty."
        )
    if template.bootstrap_path is not None and not _DEFAULT_EXPORT.search(source_text):
        raise ScenepackBundleError(
            f"{template.source_path} has no default export for the bootstrap to mount. "
            "Run the entry-point stage before assembling."
        )
    return bundle


def package_name_for_module(module_name: str) -> str:
    """Return the npm package that provides a module specifier.

    Args:
        module_name: Import specifier such as ``three/examples/jsm/...``.

    Returns:
        Package name, including its scope when scoped.
    """
    segments = module_name.split("/")
    if module_name.startswith("@") and len(segments) > 1:
        return "/".join(segments[:2])
    return segments[0]


def bundle_payload(bundle: ProjectBundle) -> dict[str, object]:
    """Serialize a bundle to the define-API request body."""
    return {
        "files": {
            project_file.path: {
                "content": project_file.content,
                "isBinary": project_file.is_binary,
            }
            for project_file in bundle.files
        }
    }


def bundle_payload_json(bundle: ProjectBundle) -> str:
    return json.dumps(bundle_payload(bundle), indent=2) + "\n"


def write_bundle(bundle: ProjectBundle, output_dir: Path) -> list[Path]:
    """Write every bundle file below a local directory.

    Args:
        bundle: Bundle to write.
        output_dir: Destination directory, created when missing.

    Returns:
        Written file paths in bundle order.

    Raises:
        ScenepackBundleError: If a path escapes the directory or writing fails.
    """
    written: list[Path] = []
    for project_file in bundle.files:
        relative_path = PurePosixPath(project_file.path)
        if relative_path.is_absolute() or ".." in relative_path.parts:
            raise ScenepackBundleError(
                f"Refusing to write bundle file outside {output_dir}: {project_file.path}."
            )
        target_path = output_dir.joinpath(*relative_path.parts)
        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            target_path.write_text(project_file.content, encoding="utf-8")
        except OSError as error:
            raise ScenepackBundleError(
                f"Failed to write bundle file {target_path}: {error}."
            ) from error
        written.append(target_path)
    return written


def _require_pinned_modules(
    manifest: ImportManifest,
    pinned_packages: frozenset[str],
    framework: TargetFramework,
) -> None:
    missing = sorted(
        {
            package_name_for_module(module_name)
            for module_name in manifest.module_names()
            if package_name_for_module(module_name) not in pinned_packages
        }
    )
    if missing:
        raise ScenepackBundleError(
            f"No pinned dependency for {', '.join(missing)} in the '{framework}' template. "
            "Add the package to the framework template or drop it from the catalog."
        )
