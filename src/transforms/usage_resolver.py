"""Component usage resolver transform.

This module discards whatever imports the model wrote and derives them again
from what the code actually uses, intersected with the framework's component
catalog. Imports the model did write are still read first: they tell the
resolver which local aliases to undo and which namespace a bare identifier
came from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Literal

from core.catalog import CatalogEntry, ComponentCatalog
from core.constants import STAGE_RESOLVE
from core.types import (
    Diagnostic,
    ImportManifest,
    StageOutcome,
    error_diagnostic,
    warning_diagnostic,
)
from transforms.markup_scanner import JsxTag, find_closing_tag, scan_tags
from transforms.source_masking import Edit, apply_edits, line_number_at, mask_source

BindingKind = Literal["default", "named", "namespace"]

_IMPORT_STATEMENT = re.compile(
    r"^[ \t]*import\s*(?:(?P<clause>[\w$*{},\s]+?)\s*from\s*)?(?P<quote>['\"])",
    re.MULTILINE,
)
_NAMESPACE_CLAUSE = re.compile(r"\*\s*as\s+([A-Za-z_$][\w$]*)")
_NAMED_CLAUSE = re.compile(r"\{([^}]*)\}")
_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")
_SPECIFIER_ALIAS = re.compile(r"\s+as\s+")
_DECLARED_NAME = re.compile(
    r"\b(?:function\*?|class|const|let|var)\s+([A-Za-z_$][\w$]*)"
)
_DESTRUCTURED_DECLARATION = re.compile(r"\b(?:const|let|var)\s+([\[{])")
_PATTERN_BINDING = re.compile(r"([A-Za-z_$][\w$]*)\s*(?=[,}\]=]|$)")
_CALL = re.compile(r"(?<![\w$.])([A-Za-z_$][\w$]*)\s*\(")
_MEMBER_ACCESS = re.compile(r"(?<![\w$.])([A-Za-z_$][\w$]*)\s*\.(?!\.)")
_VALUE_REFERENCE = re.compile(r"(?<=[(,\[{])\s*([A-Za-z_$][\w$]*)\s*(?=[,)\]}])")
_EXTENDS = re.compile(r"\bextends\s+([A-Za-z_$][\w$]*)")
_HOOK_NAME = re.compile(r"use[A-Z][\w$]*")


@dataclass(frozen=True)
class ImportedBinding:
    """One name bound by an import statement the model wrote.

    Attributes:
        local_name: Name the source refers to.
        module_name: Canonical module specifier.
        imported_name: Exported name, "default" or "*".
        kind: Binding form.
        line: 1-based line of the import statement.
    """

    local_name: str
    module_name: str
    imported_name: str
    kind: BindingKind
    line: int


@dataclass(frozen=True)
class ImportStatement:
    """One import statement removed from the source."""

    raw_module: str
    module_name: str
    bindings: tuple[ImportedBinding, ...]
    line: int


def resolve_usage(outcome: StageOutcome, catalog: ComponentCatalog) -> StageOutcome:
    """Run the usage resolver as a pipeline stage.

    Args:
        outcome: Outcome of structural repair.
        catalog: Catalog of the declared framework.

    Returns:
        Outcome with consolidated imports and its import manifest.
    """
    text, diagnostics, manifest = resolve_source(outcome.text, catalog)
    return outcome.advance(text, diagnostics, manifest=manifest)


def resolve_source(
    text: str,
    catalog: ComponentCatalog,
) -> tuple[str, list[Diagnostic], ImportManifest]:
    """Rebuild the import block of a source text from actual usage.

    Args:
        text: Repaired JavaScript/JSX source.
        catalog: Catalog of the declared framework.

    Returns:
        Text with one consolidated import block, diagnostics, and the
        manifest of everything imported.
    """
    diagnostics: list[Diagnostic] = []
    body, statements = _remove_imports(text, catalog)
    diagnostics.extend(_import_diagnostics(statements, catalog))
    local_names = declared_names(mask_source(body))
    body = _recover_aliases(body, statements, catalog, local_names)
    body = _rename_intrinsic_tags(body, catalog, local_names)
    body, hallucinated = _remove_hallucinated_elements(body, catalog, local_names)
    diagnostics.extend(hallucinated)
    masked = mask_source(body)
    used = _used_identifiers(masked) - local_names
    diagnostics.extend(_unknown_hook_diagnostics(body, masked, catalog, local_names))
    modules: dict[str, set[str]] = {}
    for identifier in sorted(used | set(catalog.implicit_imports)):
        entry = catalog.lookup(identifier)
        if entry is not None:
            modules.setdefault(entry.module_name, set()).add(identifier)
    manifest = ImportManifest.from_mapping(modules)
    imported = set(manifest.identifiers()) - set(catalog.implicit_imports)
    if catalog.requires_components and not imported:
        diagnostics.append(
            error_diagnostic(
                STAGE_RESOLVE,
                "empty_component_manifest",
                f"Source uses no {catalog.framework} component, hook or namespace "
                "from the catalog.",
            )
        )
    return _prepend_import_block(body, manifest, catalog), diagnostics, manifest


def declared_names(masked: str) -> set[str]:
    """Collect identifiers the source declares itself.

    Args:
        masked: Masked source without import statements.

    Returns:
        Names bound by function, class and variable declarations.
    """
    names = {match.group(1) for match in _DECLARED_NAME.finditer(masked)}
    for match in _DESTRUCTURED_DECLARATION.finditer(masked):
        pattern = _bracketed_text(masked, match.start(1))
        names.update(
            binding.group(1)
            for binding in _PATTERN_BINDING.finditer(pattern)
            if not _is_object_key(pattern, binding.end(1))
        )
    return names


def render_import_block(manifest: ImportManifest, catalog: ComponentCatalog) -> str:
    """Render one import statement per module, in lexicographic order.

    Args:
        manifest: Consolidated imports.
        catalog: Catalog that says how each identifier is imported.

    Returns:
        Import statements joined by newlines, "" for an empty manifest.
    """
    lines: list[str] = []
    for module_name in manifest.module_names():
        entries = [catalog.entries[name] for name in sorted(manifest.modules[module_name])]
        default_names = [entry.identifier for entry in entries if entry.is_default]
        namespace_names = [entry.identifier for entry in entries if entry.is_namespace]
        named = [
            _named_specifier(entry)
            for entry in entries
            if not entry.is_default and not entry.is_namespace
        ]
        clause_parts = default_names[:1]
        if named:
            clause_parts.append("{ " + ", ".join(named) + " }")
        if clause_parts:
            lines.append(f"import {', '.join(clause_parts)} from '{module_name}';")
        for namespace in namespace_names:
            lines.append(f"import * as {namespace} from '{module_name}';")
    return "\n".join(lines)


def _named_specifier(entry: CatalogEntry) -> str:
    if entry.export_name == entry.identifier:
        return entry.identifier
    return f"{entry.export_name} as {entry.identifier}"


def _remove_imports(text: str, catalog: ComponentCatalog) -> tuple[str, list[ImportStatement]]:
    masked = mask_source(text)
    statements: list[ImportStatement] = []
    edits: list[Edit] = []
    for match in _IMPORT_STATEMENT.finditer(masked):
        quote_index = match.end("quote") - 1
        closing_quote = masked.find(match.group("quote"), quote_index + 1)
        if closing_quote == -1:
            continue
        raw_module = text[quote_index + 1 : closing_quote]
        module_name = catalog.canonical_module(raw_module)
        line = line_number_at(text, match.start())
        clause = match.group("clause") or ""
        statements.append(
            ImportStatement(
                raw_module=raw_module,
                module_name=module_name,
                bindings=_parse_clause(clause, module_name, line),
                line=line,
            )
        )
        edits.append(_line_removal(masked, match.start(), closing_quote + 1))
    body = apply_edits(text, edits)
    return body.lstrip("\n"), statements


def _parse_clause(clause: str, module_name: str, line: int) -> tuple[ImportedBinding, ...]:
    bindings: list[ImportedBinding] = []
    named = _NAMED_CLAUSE.search(clause)
    if named is not None:
        for specifier in named.group(1).split(","):
            parts = _SPECIFIER_ALIAS.split(specifier.strip())
            if not parts[0]:
                continue
            bindings.append(
                ImportedBinding(parts[-1], module_name, parts[0], "named", line)
            )
        clause = clause[: named.start()] + clause[named.end() :]
    namespace = _NAMESPACE_CLAUSE.search(clause)
    if namespace is not None:
        bindings.append(ImportedBinding(namespace.group(1), module_name, "*", "namespace", line))
        clause = clause[: namespace.start()] + clause[namespace.end() :]
    default_name = clause.strip(" \t\r\n,")
    if _IDENTIFIER.fullmatch(default_name):
        bindings.append(ImportedBinding(default_name, module_name, "default", "default", line))
    return tuple(bindings)


def _line_removal(masked: str, start: int, end: int) -> Edit:
    position = end
    while position < len(masked) and masked[position] in " \t;":
        position += 1
    if position < len(masked) and masked[position] == "\n":
        position += 1
    return start, position, ""


def _import_diagnostics(
    statements: Iterable[ImportStatement],
    catalog: ComponentCatalog,
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for statement in statements:
        if statement.raw_module != statement.module_name:
            diagnostics.append(
                warning_diagnostic(
                    STAGE_RESOLVE,
                    "legacy_module_name",
                    f"Module '{statement.raw_module}' is published as '{statement.module_name}'.",
                    statement.line,
                )
            )
        if not statement.bindings:
            diagnostics.append(
                warning_diagnostic(
                    STAGE_RESOLVE,
                    "side_effect_import_dropped",
                    f"Dropped side-effect import of '{statement.raw_module}'.",
                    statement.line,
                )
            )
        for binding in statement.bindings:
            known = _canonical_identifier(binding, catalog) or _namespace_for(binding, catalog)
            if known is None:
                diagnostics.append(
                    warning_diagnostic(
                        STAGE_RESOLVE,
                        "unknown_import_dropped",
                        f"Dropped import of '{binding.imported_name}' "
                        f"from '{statement.raw_module}': "
                        f"{catalog.framework} does not provide it.",
                        binding.line,
                    )
                )
    return diagnostics


def _canonical_identifier(binding: ImportedBinding, catalog: ComponentCatalog) -> str | None:
    """Return the catalog identifier an imported binding stands for."""
    if binding.kind == "named":
        entry = catalog.lookup(binding.imported_name)
        if entry is None or entry.is_default or entry.is_namespace:
            return None
        return entry.identifier
    module_entries = [
        entry for entry in catalog.entries.values() if entry.module_name == binding.module_name
    ]
    for wanted_default in (binding.kind == "default", False):
        for entry in module_entries:
            if wanted_default and entry.is_default:
                return entry.identifier
            if not wanted_default and entry.is_namespace:
                return entry.identifier
    return None


def _namespace_for(binding: ImportedBinding, catalog: ComponentCatalog) -> str | None:
    """Return the namespace a named import can be qualified through."""
    if binding.kind != "named":
        return None
    for entry in catalog.entries.values():
        if entry.is_namespace and entry.module_name == binding.module_name:
            return entry.identifier
    return None


def _recover_aliases(
    body: str,
    statements: Iterable[ImportStatement],
    catalog: ComponentCatalog,
    local_names: set[str],
) -> str:
    """Point aliased and namespace-owned imports back at catalog names."""
    renames: dict[str, str] = {}
    for statement in statements:
        for binding in statement.bindings:
            if binding.local_name in local_names:
                continue
            canonical = _canonical_identifier(binding, catalog)
            if canonical is not None:
                if canonical != binding.local_name and canonical not in local_names:
                    renames[binding.local_name] = canonical
                continue
            namespace = _namespace_for(binding, catalog)
            if namespace is not None and namespace not in local_names:
                renames[binding.local_name] = f"{namespace}.{binding.imported_name}"
    if not renames:
        return body
    masked = mask_source(body)
    alternatives = "|".join(re.escape(name) for name in sorted(renames, reverse=True))
    pattern = re.compile(r"(?<![\w$.])(" + alternatives + r")(?![\w$])")
    edits = [
        (match.start(), match.end(), renames[match.group(1)])
        for match in pattern.finditer(masked)
        if not _is_object_key(masked, match.end())
    ]
    return apply_edits(body, edits)


def _rename_intrinsic_tags(body: str, catalog: ComponentCatalog, local_names: set[str]) -> str:
    """Rewrite capitalized pseudo-components to the framework's intrinsic tags."""
    if not catalog.intrinsic_aliases:
        return body
    edits: list[Edit] = []
    for tag in scan_tags(mask_source(body)):
        intrinsic = catalog.intrinsic_aliases.get(tag.name)
        if intrinsic is None or tag.name in local_names:
            continue
        name_start = tag.start + (2 if tag.kind == "close" else 1)
        edits.append((name_start, name_start + len(tag.name), intrinsic))
    return apply_edits(body, edits)


def _remove_hallucinated_elements(
    body: str,
    catalog: ComponentCatalog,
    local_names: set[str],
) -> tuple[str, list[Diagnostic]]:
    """Remove elements whose component the framework does not export."""
    masked = mask_source(body)
    tags = scan_tags(masked)
    edits: list[Edit] = []
    diagnostics: list[Diagnostic] = []
    for position, tag in enumerate(tags):
        if tag.kind == "close" or not tag.is_component:
            continue
        identifier = tag.root_identifier
        if identifier in catalog or identifier in local_names:
            continue
        end = tag.end
        if tag.kind == "open":
            closing_position = find_closing_tag(tags, position)
            if closing_position is not None:
                end = tags[closing_position].end
        edits.append(_element_removal(masked, tag, end))
        diagnostics.append(
            warning_diagnostic(
                STAGE_RESOLVE,
                "hallucinated_component",
                f"<{tag.name}> is not exported by {catalog.framework}; the element was removed.",
                line_number_at(masked, tag.start),
            )
        )
    return apply_edits(body, edits), diagnostics


def _element_removal(masked: str, tag: JsxTag, end: int) -> Edit:
    line_start = masked.rfind("\n", 0, tag.start) + 1
    line_end = masked.find("\n", end)
    if line_end == -1:
        line_end = len(masked)
    if not masked[line_start : tag.start].strip() and not masked[end:line_end].strip():
        return line_start, min(line_end + 1, len(masked)), ""
    return tag.start, end, ""


def _used_identifiers(masked: str) -> set[str]:
    """Collect identifiers referenced through tags, calls, members and values."""
    used = {
        tag.root_identifier
        for tag in scan_tags(masked)
        if tag.kind != "close" and tag.is_component
    }
    for pattern in (_CALL, _MEMBER_ACCESS, _VALUE_REFERENCE, _EXTENDS):
        used.update(match.group(1) for match in pattern.finditer(masked))
    return used


def _unknown_hook_diagnostics(
    body: str,
    masked: str,
    catalog: ComponentCatalog,
    local_names: set[str],
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    reported: set[str] = set()
    for match in _CALL.finditer(masked):
        name = match.group(1)
        if not _HOOK_NAME.fullmatch(name) or name in catalog or name in local_names:
            continue
        if name in reported:
            continue
        reported.add(name)
        diagnostics.append(
            warning_diagnostic(
                STAGE_RESOLVE,
                "unknown_hook",
                f"Hook '{name}' is not provided by {catalog.framework}.",
                line_number_at(body, match.start()),
            )
        )
    return diagnostics


def _prepend_import_block(body: str, manifest: ImportManifest, catalog: ComponentCatalog) -> str:
    block = render_import_block(manifest, catalog)
    if not block:
        return body
    return block + "\n\n" + body.lstrip("\n")


def _bracketed_text(masked: str, open_index: int) -> str:
    closer = "}" if masked[open_index] == "{" else "]"
    depth = 0
    for index in range(open_index, len(masked)):
        char = masked[index]
        if char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth == 0:
                return masked[open_index + 1 : index] if char == closer else ""
    return ""


def _is_object_key(text: str, end: int) -> bool:
    """True when the identifier ending at ``end`` is followed by a lone ``:``."""
    index = end
    while index < len(text) and text[index] in " \t":
        index += 1
    return text.startswith(":", index) and not text.startswith("::", index)
