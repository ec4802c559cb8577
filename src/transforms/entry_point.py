"""Entry-point synthesizer transform.

Component frameworks get exactly one ``export default`` naming the component
that renders the framework root container; the fixed bootstrap script mounts
it, so any mount code the model wrote is removed. Module frameworks run the
cleaned module itself and only need it to construct the root container.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.catalog import ComponentCatalog
from core.constants import STAGE_ENTRY
from core.types import Diagnostic, StageOutcome, error_diagnostic, warning_diagnostic
from transforms.markup_scanner import scan_tags
from transforms.source_masking import (
    Edit,
    apply_edits,
    brace_depth_at,
    line_number_at,
    mask_source,
    match_brackets,
)

_ROOT_LOOKUP = re.compile(
    r"^[ \t]*(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*document\s*\.\s*getElementById\s*\(",
    re.MULTILINE,
)
_ROOT_CREATION = re.compile(
    r"^[ \t]*(?:(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*)?"
    r"(?:ReactDOM\s*\.\s*)?createRoot\s*\(",
    re.MULTILINE,
)
_LEGACY_RENDER = re.compile(r"^[ \t]*ReactDOM\s*\.\s*(?:render|hydrate)\s*\(", re.MULTILINE)
_ANONYMOUS_DEFAULT_FUNCTION = re.compile(
    r"^([ \t]*)export\s+default\s+(async\s+)?function\s*(?=\()",
    re.MULTILINE,
)
_ANONYMOUS_DEFAULT_ARROW = re.compile(
    r"^([ \t]*)export\s+default\s+(?=(?:async\s*)?(?:\([^()]*\)|[A-Za-z_$][\w$]*)\s*=>)",
    re.MULTILINE,
)
_DEFAULT_DECLARATION = re.compile(
    r"^([ \t]*)export\s+default\s+(?=(?:async\s+)?function\b|class\b)",
    re.MULTILINE,
)
_DEFAULT_EXPRESSION = re.compile(r"^[ \t]*export\s+default\s+", re.MULTILINE)
_EXPORT_LIST = re.compile(r"^[ \t]*export\s*\{([^{}]*)\}(?!\s*from\b)", re.MULTILINE)
_DEFAULT_SPECIFIER = re.compile(r"[A-Za-z_$][\w$]*\s+as\s+default")
_FUNCTION_COMPONENT = re.compile(
    r"^[ \t]*(?:export\s+)?(?:async\s+)?function\s+([A-Z][\w$]*)\s*\(",
    re.MULTILINE,
)
_ARROW_COMPONENT = re.compile(
    r"^[ \t]*(?:export\s+)?(?:const|let|var)\s+([A-Z][\w$]*)\s*=\s*"
    r"(?:(?:React\s*\.\s*)?(?:memo|forwardRef)\s*\(\s*)?"
    r"(?:async\s*)?(?:\([^()]*(?:\([^()]*\)[^()]*)*\)|[A-Za-z_$][\w$]*)\s*=>",
    re.MULTILINE,
)
_FUNCTION_EXPRESSION_COMPONENT = re.compile(
    r"^[ \t]*(?:export\s+)?(?:const|let|var)\s+([A-Z][\w$]*)\s*=\s*function\b[^(]*\(",
    re.MULTILINE,
)
_CLASS_COMPONENT = re.compile(
    r"^[ \t]*(?:export\s+)?class\s+([A-Z][\w$]*)[^{;]*\{",
    re.MULTILINE,
)
_FUNCTION_DEFINITION = r"(?:function\s+{name}\s*\(|(?:const|let|var)\s+{name}\s*=)"


@dataclass(frozen=True)
class ComponentCandidate:
    """A top-level component and the span of its definition.

    Attributes:
        name: Component identifier.
        start: Offset where the definition starts.
        end: Offset just past the definition body.
    """

    name: str
    start: int
    end: int


def synthesize_entry_point(outcome: StageOutcome, catalog: ComponentCatalog) -> StageOutcome:
    """Run the entry-point synthesizer as a pipeline stage.

    Args:
        outcome: Outcome of the usage resolver.
        catalog: Catalog of the declared framework.

    Returns:
        Outcome whose text has exactly one program entry.
    """
    if catalog.entry_style == "module":
        text, diagnostics = _module_entry(outcome.text, catalog)
    else:
        text, diagnostics = synthesize_component_entry(outcome.text, catalog)
    return outcome.advance(text, diagnostics)


def synthesize_component_entry(
    text: str,
    catalog: ComponentCatalog,
) -> tuple[str, list[Diagnostic]]:
    """Leave exactly one default export naming the root component.

    Args:
        text: Resolved component source.
        catalog: Catalog of a component framework.

    Returns:
        Text ending in ``export default <Root>;`` and diagnostics. When no
        component renders the root container, the text is returned without
        a default export and an error diagnostic is reported.
    """
    diagnostics: list[Diagnostic] = []
    text, mount_diagnostics = _strip_mount_code(text)
    diagnostics.extend(mount_diagnostics)
    text = _name_anonymous_default(text, catalog.root_name)
    text = _strip_default_exports(text)
    candidates = find_component_candidates(text, catalog.root_container)
    if not candidates:
        diagnostics.append(
            error_diagnostic(
                STAGE_ENTRY,
                "no_entry_point_candidate",
                f"No top-level component renders <{catalog.root_container}>.",
            )
        )
        return text, diagnostics
    root = choose_root(candidates, catalog.root_name)
    return f"{text.rstrip()}\n\nexport default {root.name};\n", diagnostics


def find_component_candidates(text: str, root_container: str) -> list[ComponentCandidate]:
    """Return top-level capitalized components that render the root container.

    Args:
        text: Component source.
        root_container: Tag name of the framework root, such as "Canvas".

    Returns:
        Candidates in textual order.
    """
    masked = mask_source(text)
    candidates = []
    for component in _top_level_components(masked):
        body_tags = scan_tags(masked[component.start : component.end])
        if any(tag.name == root_container and tag.kind != "close" for tag in body_tags):
            candidates.append(component)
    return candidates


def choose_root(candidates: list[ComponentCandidate], root_name: str) -> ComponentCandidate:
    """Break ties: the only candidate, then the conventional name, then the first."""
    if len(candidates) == 1:
        return candidates[0]
    for candidate in candidates:
        if candidate.name == root_name:
            return candidate
    return candidates[0]


def _top_level_components(masked: str) -> list[ComponentCandidate]:
    pairs = match_brackets(masked)
    components: dict[int, ComponentCandidate] = {}
    for pattern in (_FUNCTION_COMPONENT, _FUNCTION_EXPRESSION_COMPONENT):
        for match in pattern.finditer(masked):
            if brace_depth_at(masked, match.start()) != 0:
                continue
            params_close = pairs.get(match.end() - 1)
            if params_close is None:
                continue
            body_open = masked.find("{", params_close)
            body_close = pairs.get(body_open) if body_open != -1 else None
            if body_close is not None:
                components[match.start()] = ComponentCandidate(
                    match.group(1), match.start(), body_close + 1
                )
    for match in _ARROW_COMPONENT.finditer(masked):
        if brace_depth_at(masked, match.start()) != 0:
            continue
        components[match.start()] = ComponentCandidate(
            match.group(1), match.start(), _arrow_body_end(masked, match.end(), pairs)
        )
    for match in _CLASS_COMPONENT.finditer(masked):
        body_close = pairs.get(match.end() - 1)
        if body_close is not None and brace_depth_at(masked, match.start()) == 0:
            components[match.start()] = ComponentCandidate(
                match.group(1), match.start(), body_close + 1
            )
    return [components[start] for start in sorted(components)]


def _arrow_body_end(masked: str, arrow_end: int, pairs: dict[int, int]) -> int:
    position = arrow_end
    while position < len(masked) and masked[position].isspace():
        position += 1
    if position < len(masked) and masked[position] in "({":
        closing = pairs.get(position)
        if closing is not None:
            return closing + 1
    line_end = masked.find("\n", position)
    return len(masked) if line_end == -1 else line_end


def _strip_mount_code(text: str) -> tuple[str, list[Diagnostic]]:
    """Remove manual root lookups, createRoot calls and render calls."""
    masked = mask_source(text)
    pairs = match_brackets(masked)
    edits: list[Edit] = []
    root_variables: list[str] = []
    for match in _ROOT_LOOKUP.finditer(masked):
        root_variables.append(match.group(1))
        edits.append(_call_statement_removal(masked, match.start(), match.end() - 1, pairs))
    for match in _ROOT_CREATION.finditer(masked):
        if match.group(1):
            root_variables.append(match.group(1))
        edits.append(_call_statement_removal(masked, match.start(), match.end() - 1, pairs))
    for match in _LEGACY_RENDER.finditer(masked):
        edits.append(_call_statement_removal(masked, match.start(), match.end() - 1, pairs))
    for variable in root_variables:
        render_call = re.compile(
            rf"^[ \t]*{re.escape(variable)}\s*\.\s*render\s*\(", re.MULTILINE
        )
        for match in render_call.finditer(masked):
            edits.append(_call_statement_removal(masked, match.start(), match.end() - 1, pairs))
        guard = re.compile(rf"^[ \t]*if\s*\(\s*!\s*{re.escape(variable)}\s*\)\s*", re.MULTILINE)
        for match in guard.finditer(masked):
            edits.append(_guard_removal(masked, match, pairs))
    if not edits:
        return text, []
    first_start = min(start for start, _end, _replacement in edits)
    diagnostic = warning_diagnostic(
        STAGE_ENTRY,
        "mount_code_removed",
        "Removed manual mount code; the project bootstrap mounts the root component.",
        line_number_at(text, first_start),
    )
    return apply_edits(text, edits), [diagnostic]


def _call_statement_removal(
    masked: str,
    start: int,
    open_index: int,
    pairs: dict[int, int],
) -> Edit:
    """Remove a statement made of one call plus any chained calls."""
    end = pairs.get(open_index, open_index) + 1
    chained = re.compile(r"\s*\.\s*[A-Za-z_$][\w$]*\s*\(")
    while True:
        link = chained.match(masked, end)
        if link is None or link.end() - 1 not in pairs:
            break
        end = pairs[link.end() - 1] + 1
    return _through_line_end(masked, start, end)


def _guard_removal(masked: str, match: re.Match[str], pairs: dict[int, int]) -> Edit:
    position = match.end()
    if masked.startswith("{", position) and position in pairs:
        return _through_line_end(masked, match.start(), pairs[position] + 1)
    end = masked.find(";", position)
    newline = masked.find("\n", position)
    if end == -1 or (newline != -1 and newline < end):
        end = len(masked) if newline == -1 else newline
    else:
        end += 1
    return _through_line_end(masked, match.start(), end)


def _through_line_end(masked: str, start: int, end: int) -> Edit:
    position = end
    while position < len(masked) and masked[position] in " \t;":
        position += 1
    if position < len(masked) and masked[position] == "\n":
        position += 1
    return start, position, ""


def _name_anonymous_default(text: str, root_name: str) -> str:
    """Give an anonymous default-exported component the conventional name.

    When the conventional name is already taken, a numbered variant such as
    ``App2`` is used so the component survives default-export stripping.
    """
    masked = mask_source(text)
    matches = sorted(
        [
            *_ANONYMOUS_DEFAULT_FUNCTION.finditer(masked),
            *_ANONYMOUS_DEFAULT_ARROW.finditer(masked),
        ],
        key=lambda match: match.start(),
    )
    if not matches:
        return text
    match = matches[0]
    name = _unused_name(masked, root_name)
    if match.re is _ANONYMOUS_DEFAULT_FUNCTION:
        replacement = f"{match.group(1)}{match.group(2) or ''}function {name}"
    else:
        replacement = f"{match.group(1)}const {name} = "
    return apply_edits(text, [(match.start(), match.end(), replacement)])


def _unused_name(masked: str, root_name: str) -> str:
    name = root_name
    suffix = 2
    while re.search(rf"(?<![\w$.]){re.escape(name)}(?![\w$])", masked):
        name = f"{root_name}{suffix}"
        suffix += 1
    return name


def _strip_default_exports(text: str) -> str:
    """Drop every ``export default``, keeping exported declarations."""
    masked = mask_source(text)
    pairs = match_brackets(masked)
    edits: list[Edit] = []
    declaration_starts = set()
    for match in _DEFAULT_DECLARATION.finditer(masked):
        declaration_starts.add(match.start())
        edits.append((match.start(), match.end(), match.group(1)))
    for match in _DEFAULT_EXPRESSION.finditer(masked):
        if match.start() not in declaration_starts:
            edits.append(_expression_statement_removal(masked, match.start(), match.end(), pairs))
    edits.extend(_default_specifier_edits(masked))
    return apply_edits(text, edits)


def _default_specifier_edits(masked: str) -> list[Edit]:
    """Remove ``X as default`` from local export lists."""
    edits: list[Edit] = []
    for match in _EXPORT_LIST.finditer(masked):
        specifiers = [item.strip() for item in match.group(1).split(",") if item.strip()]
        kept = [item for item in specifiers if not _DEFAULT_SPECIFIER.fullmatch(item)]
        if len(kept) == len(specifiers):
            continue
        if kept:
            edits.append((match.start(1), match.end(1), f" {', '.join(kept)} "))
        else:
            edits.append(_through_line_end(masked, match.start(), match.end()))
    return edits


def _expression_statement_removal(
    masked: str,
    start: int,
    expression_start: int,
    pairs: dict[int, int],
) -> Edit:
    position = expression_start
    while position < len(masked):
        char = masked[position]
        if char in "([{" and position in pairs:
            position = pairs[position] + 1
            continue
        if char in ";\n":
            break
        position += 1
    return _through_line_end(masked, start, position)


def _module_entry(text: str, catalog: ComponentCatalog) -> tuple[str, list[Diagnostic]]:
    """Check that a module constructs its root and invokes its scene builder."""
    masked = mask_source(text)
    construction = re.compile(
        rf"\bnew\s+(?:[A-Za-z_$][\w$]*\s*\.\s*)?{re.escape(catalog.root_container)}\s*\("
    )
    if construction.search(masked) is None:
        return text, [
            error_diagnostic(
                STAGE_ENTRY,
                "no_entry_point_candidate",
                f"Module never constructs {catalog.root_container}, so nothing would render.",
            )
        ]
    name = re.escape(catalog.root_name)
    if re.search(_FUNCTION_DEFINITION.format(name=name), masked) is None:
        return text, []
    calls = re.compile(rf"(?<![\w$.]){name}\s*\(")
    if any(not _is_definition_call(masked, match) for match in calls.finditer(masked)):
        return text, []
    return f"{text.rstrip()}\n\n{catalog.root_name}();\n", [
        warning_diagnostic(
            STAGE_ENTRY,
            "entry_invocation_added",
            f"'{catalog.root_name}' was defined but never called; a call was appended.",
        )
    ]


def _is_definition_call(masked: str, match: re.Match[str]) -> bool:
    prefix = masked[max(0, match.start() - 16) : match.start()]
    return bool(re.search(r"function\s+$", prefix))
