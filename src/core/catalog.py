"""Per-framework component catalogs.

Catalogs are YAML files shipped inside the package. Each one lists the
identifiers a framework's modules really export, plus the framework facts
the transform stages need (root container, conventional root name, legacy
module names). A catalog is parsed once per process and exposed through
read-only mappings, so concurrent pipelines can share it without locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Literal, Mapping, Sequence, cast

from core.constants import CATALOG_DIR_NAME, CATALOG_FILE_SUFFIX, CATALOG_SCHEMA_VERSION
from core.errors import ScenepackCatalogError, ScenepackDependencyError
from core.types import SUPPORTED_FRAMEWORKS, TargetFramework

EntryStyle = Literal["component", "module"]
_ENTRY_STYLES: tuple[EntryStyle, ...] = ("component", "module")
_ROOT_KEYS = {
    "version",
    "framework",
    "aliases",
    "entry_style",
    "root_container",
    "root_name",
    "requires_components",
    "implicit_imports",
    "module_aliases",
    "intrinsic_aliases",
    "modules",
}
_MODULE_KEYS = {"default", "named", "namespace"}


@dataclass(frozen=True)
class CatalogEntry:
    """Where one canonical identifier is imported from.

    Attributes:
        identifier: Local name used in source code.
        module_name: Module specifier to import from.
        export_name: Name exported by the module.
        is_default: Imported as the module default export.
        is_namespace: Imported as ``* as identifier``.
    """

    identifier: str
    module_name: str
    export_name: str
    is_default: bool = False
    is_namespace: bool = False


@dataclass(frozen=True)
class ComponentCatalog:
    """Read-only identifier table and facts for one framework."""

    framework: TargetFramework
    aliases: tuple[str, ...]
    entry_style: EntryStyle
    root_container: str
    root_name: str
    requires_components: bool
    implicit_imports: tuple[str, ...]
    module_aliases: Mapping[str, str]
    intrinsic_aliases: Mapping[str, str]
    entries: Mapping[str, CatalogEntry]

    def lookup(self, identifier: str) -> CatalogEntry | None:
        return self.entries.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.entries

    def namespace_identifiers(self) -> tuple[str, ...]:
        return tuple(
            sorted(name for name, entry in self.entries.items() if entry.is_namespace)
        )

    def canonical_module(self, module_name: str) -> str:
        """Map a legacy or misspelled module specifier to the real one."""
        return self.module_aliases.get(module_name, module_name)

    def known_modules(self) -> tuple[str, ...]:
        return tuple(sorted({entry.module_name for entry in self.entries.values()}))


@lru_cache(maxsize=None)
def load_component_catalog(framework: TargetFramework) -> ComponentCatalog:
    """Load and validate the packaged catalog for a framework.

    Args:
        framework: Supported framework tag.

    Returns:
        Cached, read-only catalog.

    Raises:
        ScenepackCatalogError: If the framework is unknown or its file is invalid.
        ScenepackDependencyError: If PyYAML is unavailable.
    """
    if framework not in SUPPORTED_FRAMEWORKS:
        raise ScenepackCatalogError(
            f"Unsupported framework '{framework}'. "
            f"Use one of: {', '.join(SUPPORTED_FRAMEWORKS)}."
        )
    catalog_path = catalog_directory() / f"{framework}{CATALOG_FILE_SUFFIX}"
    payload = _load_yaml_payload(catalog_path)
    return parse_catalog(payload, str(catalog_path))


def resolve_framework(name: str) -> TargetFramework:
    """Resolve a framework tag or one of its aliases.

    Args:
        name: Tag such as "react-three-fiber" or alias such as "reactThreeFiber".

    Returns:
        Canonical framework tag.

    Raises:
        ScenepackCatalogError: If no catalog claims the name.
    """
    normalized = name.strip()
    if normalized in SUPPORTED_FRAMEWORKS:
        return cast(TargetFramework, normalized)
    for framework in SUPPORTED_FRAMEWORKS:
        aliases = load_component_catalog(framework).aliases
        if normalized.lower() in (alias.lower() for alias in aliases):
            return framework
    raise ScenepackCatalogError(
        f"Unknown framework '{name}'. Use one of: {', '.join(SUPPORTED_FRAMEWORKS)}."
    )


def catalog_directory() -> Path:
    return Path(__file__).resolve().parent / CATALOG_DIR_NAME


def parse_catalog(payload: object, source: str) -> ComponentCatalog:
    """Validate a decoded catalog document.

    Args:
        payload: Object decoded from YAML.
        source: Display name of the document for error messages.

    Returns:
        Read-only catalog.

    Raises:
        ScenepackCatalogError: If any schema check fails.
    """
    root = _expect_mapping(payload, f"catalog {source}")
    unknown_keys = sorted(set(root) - _ROOT_KEYS)
    if unknown_keys:
        raise ScenepackCatalogError(
            f"Catalog {source} contains unknown fields: {', '.join(unknown_keys)}."
        )
    if root.get("version") != CATALOG_SCHEMA_VERSION:
        raise ScenepackCatalogError(
            f"Catalog {source} must declare version: {CATALOG_SCHEMA_VERSION}."
        )
    framework = _parse_framework(root, source)
    entries = _parse_modules(root.get("modules"), source)
    implicit_imports = _string_tuple(root.get("implicit_imports", []), f"{source} implicit_imports")
    for identifier in implicit_imports:
        if identifier not in entries:
            raise ScenepackCatalogError(
                f"Catalog {source} lists implicit import '{identifier}' that no module exports."
            )
    return ComponentCatalog(
        framework=framework,
        aliases=_string_tuple(root.get("aliases", []), f"{source} aliases"),
        entry_style=_parse_entry_style(root, source),
        root_container=_required_string(root, "root_container", source),
        root_name=_required_string(root, "root_name", source),
        requires_components=bool(root.get("requires_components", True)),
        implicit_imports=implicit_imports,
        module_aliases=_string_mapping(root.get("module_aliases", {}), f"{source} module_aliases"),
        intrinsic_aliases=_string_mapping(
            root.get("intrinsic_aliases", {}), f"{source} intrinsic_aliases"
        ),
        entries=MappingProxyType(entries),
    )


def _load_yaml_payload(catalog_path: Path) -> object:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise ScenepackDependencyError(
            "Component catalogs require PyYAML. Install with 'pip install pyyaml'."
        ) from error
    if not catalog_path.exists():
        raise ScenepackCatalogError(
            f"Component catalog missing at {catalog_path}. Reinstall scenepack."
        )
    try:
        payload = cast(object, yaml.safe_load(catalog_path.read_text(encoding="utf-8")))
    except OSError as error:
        raise ScenepackCatalogError(
            f"Failed to read component catalog at {catalog_path}: {error}."
        ) from error
    except yaml.YAMLError as error:
        raise ScenepackCatalogError(
            f"Failed to parse component catalog at {catalog_path}: {error}."
        ) from error
    if payload is None:
        raise ScenepackCatalogError(f"Component catalog at {catalog_path} is empty.")
    return payload


def _parse_framework(root: Mapping[str, object], source: str) -> TargetFramework:
    raw_framework = root.get("framework")
    if raw_framework not in SUPPORTED_FRAMEWORKS:
        raise ScenepackCatalogError(
            f"Catalog {source} declares unsupported framework '{raw_framework}'."
        )
    return cast(TargetFramework, raw_framework)


def _parse_entry_style(root: Mapping[str, object], source: str) -> EntryStyle:
    raw_style = root.get("entry_style")
    if raw_style not in _ENTRY_STYLES:
        raise ScenepackCatalogError(
            f"Catalog {source} field 'entry_style' must be one of: {', '.join(_ENTRY_STYLES)}."
        )
    return cast(EntryStyle, raw_style)


def _parse_modules(raw_modules: object, source: str) -> dict[str, CatalogEntry]:
    modules = _expect_mapping(raw_modules, f"catalog {source} modules")
    if not modules:
        raise ScenepackCatalogError(f"Catalog {source} must list at least one module.")
    entries: dict[str, CatalogEntry] = {}
    for module_name in sorted(modules):
        module_mapping = _expect_mapping(modules[module_name], f"{source} module {module_name}")
        unknown_keys = sorted(set(module_mapping) - _MODULE_KEYS)
        if unknown_keys:
            raise ScenepackCatalogError(
                f"Catalog {source} module '{module_name}' has unknown fields: "
                f"{', '.join(unknown_keys)}."
            )
        context = f"{source} module {module_name}"
        for kind in ("default", "named", "namespace"):
            for identifier in _string_tuple(module_mapping.get(kind, []), f"{context} {kind}"):
                if identifier in entries:
                    raise ScenepackCatalogError(
                        f"Catalog {source} exports '{identifier}' from both "
                        f"'{entries[identifier].module_name}' and '{module_name}'."
                    )
                entries[identifier] = CatalogEntry(
                    identifier=identifier,
                    module_name=module_name,
                    export_name=identifier,
                    is_default=kind == "default",
                    is_namespace=kind == "namespace",
                )
    return entries


def _required_string(root: Mapping[str, object], field_name: str, source: str) -> str:
    raw_value = root.get(field_name)
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip()
    raise ScenepackCatalogError(f"Catalog {source} field '{field_name}' must be a string.")


def _expect_mapping(value: object, context: str) -> dict[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise ScenepackCatalogError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise ScenepackCatalogError(
        f"Invalid {context}: expected mapping, got {type(value).__name__}."
    )


def _string_tuple(value: object, context: str) -> tuple[str, ...]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        if all(isinstance(item, str) for item in value):
            return tuple(cast(Sequence[str], value))
    raise ScenepackCatalogError(f"Invalid {context}: expected list of strings.")


def _string_mapping(value: object, context: str) -> Mapping[str, str]:
    mapping = _expect_mapping(value, context)
    for key, item in mapping.items():
        if not isinstance(item, str):
            raise ScenepackCatalogError(f"Invalid {context}: value for '{key}' must be a string.")
    return MappingProxyType(cast(dict[str, str], mapping))
