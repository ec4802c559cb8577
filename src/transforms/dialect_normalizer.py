"""Dialect normalizer transform.

This module strips TypeScript-only syntax from model output so a plain
JavaScript/JSX toolchain can run it. Every rewrite is located on the masked
view from ``transforms.source_masking`` and spliced into the original text,
so string literals, template text and comments are never edited. Constructs
with no plain-JavaScript equivalent are left in place and reported.
"""

from __future__ import annotations

import re
from typing import Callable

from core.constants import STAGE_NORMALIZE
from core.types import Diagnostic, StageOutcome, warning_diagnostic
from transforms.source_masking import (
    Edit,
    apply_edits,
    line_number_at,
    mask_source,
    match_brackets,
    previous_significant,
)

_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")
_IDENTIFIER_CHAR = re.compile(r"[\w$]")
_TYPE_ONLY_IMPORT = re.compile(r"^[ \t]*(?:import\s+type\b|export\s+type\s*\{)", re.MULTILINE)
_INTERFACE = re.compile(
    r"^[ \t]*(?:export\s+)?(?:declare\s+)?interface\s+[A-Za-z_$][\w$]*[^{]*\{",
    re.MULTILINE,
)
_TYPE_ALIAS = re.compile(
    r"^[ \t]*(?:export\s+)?(?:declare\s+)?type\s+[A-Za-z_$][\w$]*\s*(?:<[^=;]*?>\s*)?=(?![=>])",
    re.MULTILINE,
)
_DECLARE = re.compile(r"^[ \t]*(?:export\s+)?declare\s+(?!(?:interface|type)\b)", re.MULTILINE)
_ENUM = re.compile(
    r"^([ \t]*)(export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+([A-Za-z_$][\w$]*)\s*\{",
    re.MULTILINE,
)
_ENUM_KEY = re.compile(r"\s*([A-Za-z_$][\w$]*|'[^'\\\n]*'|\"[^\"\\\n]*\")\s*(=)?")
_INTEGER_LITERAL = re.compile(r"-?\d+")
_STRING_LITERAL = re.compile(r"'[^'\\\n]*'|\"[^\"\\\n]*\"")
_NAMESPACE_BLOCK = re.compile(
    r"^[ \t]*(?:export\s+)?(?:namespace|module)\s+([A-Za-z_$][\w$.]*)\s*\{",
    re.MULTILINE,
)
_ABSTRACT_CLASS = re.compile(r"\babstract\s+class\s+([A-Za-z_$][\w$]*)")
_GENERIC_ARGUMENTS = re.compile(r"(?<![\w$])([A-Za-z_$][\w$]*)<([^<>]*)>")
_ARROW_TYPE_PARAMETERS = re.compile(
    r"(?<==)(\s*)<[A-Za-z_$][\w$]*(?:\s+extends\s+[\w$.]+)?\s*,?\s*>(?=\s*\()"
)
_TYPE_CONTENT_START = re.compile(r"\s*[A-Za-z_$\[{('\"]")
_NON_TYPE_TOKENS = ("&&", "||", "==", "!=", ";", "+", "-", "*", "/", "%", "!")
_NON_NULL_MEMBER = re.compile(r"(?<=[\w$)\]])!(?=[.\[;,)\]}])")
_NON_NULL_LINE_END = re.compile(r"(?<=[)\]])!(?=[ \t]*$)", re.MULTILINE)
_CAST = re.compile(
    r"(?<=[\w$)\]])[ \t]+(?:as|satisfies)[ \t]+"
    r"(?:const\b|[A-Za-z_$][\w$.]*(?:\[\])*)(?=[ \t]*[)\];,}])"
)
_MODULE_SPECIFIERS = re.compile(
    r"\b(?:import|export)\s+(?:type\s+)?(?:[A-Za-z_$][\w$]*\s*,\s*)?\{"
)
_CLASS_HEADER = re.compile(r"\bclass\s+[A-Za-z_$][\w$]*[^{;]*\{")
_IMPLEMENTS = re.compile(r"\s+implements\s+[^{]+?(?=\s*\{)")
_MEMBER_KEYWORD = re.compile(
    r"(public|private|protected|readonly|override|static)[ \t]+(?=[#A-Za-z_$\[])"
)
_FIELD = re.compile(r"(#?[A-Za-z_$][\w$]*)[ \t]*([!?])?[ \t]*:(?!:)")
_ABSTRACT_MEMBER = re.compile(r"[ \t]*abstract\s+")
_DECLARATION = re.compile(r"\b(?:const|let|var)\s+(?=[A-Za-z_$\[{])")
_PARAMETER_MODIFIER = re.compile(
    r"(?:public|private|protected|readonly|override)\s+(?=[A-Za-z_$\[{])"
)
_FUNCTION_BEFORE_PAREN = re.compile(r"\bfunction\b\s*\*?\s*(?:[A-Za-z_$][\w$]*)?\s*$")
_EXPRESSION_KEYWORDS = {
    "return",
    "typeof",
    "instanceof",
    "in",
    "of",
    "new",
    "case",
    "void",
    "delete",
    "yield",
    "await",
    "else",
}
_NON_METHOD_WORDS = _EXPRESSION_KEYWORDS | {
    "if",
    "for",
    "while",
    "switch",
    "with",
    "do",
    "throw",
    "function",
}
_RETURN_TYPE_SCAN_LIMIT = 256


def normalize_dialect(outcome: StageOutcome) -> StageOutcome:
    """Run the dialect normalizer as a pipeline stage.

    Args:
        outcome: Outcome of the previous stage.

    Returns:
        Outcome carrying plain JavaScript/JSX text.
    """
    text, diagnostics = normalize_source(outcome.text)
    return outcome.advance(text, diagnostics)


def normalize_source(text: str) -> tuple[str, list[Diagnostic]]:
    """Strip TypeScript-only syntax from source text.

    Args:
        text: Raw source, possibly mixing TypeScript into JavaScript.

    Returns:
        Normalized text and warnings for constructs left untouched.
    """
    diagnostics = _unsupported_construct_warnings(text)
    text, enum_diagnostics = _convert_enums(text)
    diagnostics.extend(enum_diagnostics)
    for collect_edits in (
        _type_declaration_edits,
        _generic_argument_edits,
        _non_null_edits,
        _cast_edits,
        _class_member_edits,
        _declaration_edits,
        _signature_edits,
    ):
        text = _rewrite_until_stable(text, collect_edits)
    return text, sorted(diagnostics, key=lambda item: (item.line or 0, item.code))


def _rewrite_until_stable(text: str, collect_edits: Callable[[str], list[Edit]]) -> str:
    for _ in range(len(text) + 1):
        edits = collect_edits(mask_source(text))
        if not edits:
            return text
        rewritten = apply_edits(text, edits)
        if rewritten == text:
            return text
        text = rewritten
    return text


def _unsupported_construct_warnings(text: str) -> list[Diagnostic]:
    masked = mask_source(text)
    diagnostics: list[Diagnostic] = []
    for match in _NAMESPACE_BLOCK.finditer(masked):
        diagnostics.append(
            warning_diagnostic(
                STAGE_NORMALIZE,
                "unsupported_namespace",
                f"Namespace '{match.group(1)}' has no JavaScript equivalent "
                "and was left unchanged.",
                line_number_at(text, match.start()),
            )
        )
    for match in _ABSTRACT_CLASS.finditer(masked):
        diagnostics.append(
            warning_diagnostic(
                STAGE_NORMALIZE,
                "unsupported_abstract_class",
                f"Abstract class '{match.group(1)}' was left unchanged.",
                line_number_at(text, match.start()),
            )
        )
    return diagnostics


def _convert_enums(text: str) -> tuple[str, list[Diagnostic]]:
    """Rewrite literal-valued enums as frozen object literals."""
    masked = mask_source(text)
    pairs = match_brackets(masked)
    edits: list[Edit] = []
    diagnostics: list[Diagnostic] = []
    for match in _ENUM.finditer(masked):
        open_index = match.end() - 1
        close_index = pairs.get(open_index)
        if close_index is None:
            continue
        name = match.group(3)
        members = _enum_members(text, masked, open_index, close_index)
        if members is None:
            diagnostics.append(
                warning_diagnostic(
                    STAGE_NORMALIZE,
                    "computed_enum",
                    f"Enum '{name}' has computed members and was left unchanged.",
                    line_number_at(text, match.start()),
                )
            )
            continue
        body = ", ".join(f"{key}: {value}" for key, value in members)
        literal = f"{{ {body} }}" if body else "{}"
        export_prefix = "export " if match.group(2) else ""
        end = close_index + 1
        if masked.startswith(";", end):
            end += 1
        edits.append(
            (
                match.start(),
                end,
                f"{match.group(1)}{export_prefix}const {name} = Object.freeze({literal});",
            )
        )
    return apply_edits(text, edits), diagnostics


def _enum_members(
    text: str,
    masked: str,
    open_index: int,
    close_index: int,
) -> list[tuple[str, str]] | None:
    members: list[tuple[str, str]] = []
    next_value: int | None = 0
    for start, end in _split_top_level(masked, open_index + 1, close_index):
        if not masked[start:end].strip():
            continue
        key_match = _ENUM_KEY.match(text, start, end)
        if key_match is None:
            return None
        remainder = text[key_match.end() : end].strip()
        if key_match.group(2):
            if _INTEGER_LITERAL.fullmatch(remainder):
                next_value = int(remainder) + 1
            elif _STRING_LITERAL.fullmatch(remainder):
                next_value = None
            else:
                return None
            value = remainder
        else:
            if remainder or next_value is None:
                return None
            value = str(next_value)
            next_value += 1
        members.append((key_match.group(1), value))
    return members


def _type_declaration_edits(masked: str) -> list[Edit]:
    """Remove statements that only exist at type level."""
    pairs = match_brackets(masked)
    edits: list[Edit] = []
    for match in _TYPE_ONLY_IMPORT.finditer(masked):
        end = _statement_end(masked, match.start())
        edits.append(_statement_removal(masked, match.start(), end))
    for match in _INTERFACE.finditer(masked):
        close_index = pairs.get(match.end() - 1)
        if close_index is not None:
            edits.append(_statement_removal(masked, match.start(), close_index + 1))
    for pattern in (_TYPE_ALIAS, _DECLARE):
        for match in pattern.finditer(masked):
            end = _statement_end(masked, match.end())
            edits.append(_statement_removal(masked, match.start(), end))
    return edits


def _generic_argument_edits(masked: str) -> list[Edit]:
    edits = [
        (match.start(2) - 1, match.end(), "")
        for match in _GENERIC_ARGUMENTS.finditer(masked)
        if _is_generic_argument_list(masked, match)
    ]
    edits.extend(
        (match.end(1), match.end(), "") for match in _ARROW_TYPE_PARAMETERS.finditer(masked)
    )
    return edits


def _is_generic_argument_list(masked: str, match: re.Match[str]) -> bool:
    if match.group(1) in _EXPRESSION_KEYWORDS:
        return False
    inner = match.group(2)
    if not _TYPE_CONTENT_START.match(inner):
        return False
    if any(token in inner for token in _NON_TYPE_TOKENS):
        return False
    follower = masked[match.end() : match.end() + 1]
    return not follower or not (_IDENTIFIER_CHAR.match(follower) or follower == "<")


def _non_null_edits(masked: str) -> list[Edit]:
    edits = [(match.start(), match.end(), "") for match in _NON_NULL_MEMBER.finditer(masked)]
    edits.extend((match.start(), match.end(), "") for match in _NON_NULL_LINE_END.finditer(masked))
    return edits


def _cast_edits(masked: str) -> list[Edit]:
    pairs = match_brackets(masked)
    specifier_spans = [
        (match.end() - 1, pairs[match.end() - 1])
        for match in _MODULE_SPECIFIERS.finditer(masked)
        if match.end() - 1 in pairs
    ]
    return [
        (match.start(), match.end(), "")
        for match in _CAST.finditer(masked)
        if not any(start < match.start() < end for start, end in specifier_spans)
    ]


def _class_member_edits(masked: str) -> list[Edit]:
    """Strip access modifiers, implements clauses and field annotations."""
    pairs = match_brackets(masked)
    edits: list[Edit] = []
    for match in _CLASS_HEADER.finditer(masked):
        implements = _IMPLEMENTS.search(masked, match.start(), match.end())
        if implements is not None:
            edits.append((implements.start(), implements.end(), ""))
        open_index = match.end() - 1
        close_index = pairs.get(open_index)
        if close_index is None:
            continue
        for line_start in _member_line_starts(masked, open_index, close_index):
            edits.extend(_member_edits(masked, line_start, close_index))
    return edits


def _member_line_starts(masked: str, open_index: int, close_index: int) -> list[int]:
    starts: list[int] = []
    depth = 0
    for index in range(open_index + 1, close_index):
        char = masked[index]
        if char == "\n" and depth == 0:
            starts.append(index + 1)
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
    return starts


def _member_edits(masked: str, line_start: int, limit: int) -> list[Edit]:
    position = _skip_space(masked, line_start)
    if _ABSTRACT_MEMBER.match(masked, line_start, limit):
        return []
    edits: list[Edit] = []
    while True:
        keyword = _MEMBER_KEYWORD.match(masked, position, limit)
        if keyword is None:
            break
        if keyword.group(1) != "static":
            edits.append((keyword.start(), keyword.end(), ""))
        position = keyword.end()
    field = _FIELD.match(masked, position, limit)
    if field is not None:
        if field.group(2):
            edits.append((field.start(2), field.end(2), ""))
        colon = field.end() - 1
        type_end = _scan_type_end(masked, colon + 1, limit, "=;\n")
        edits.append((colon, _trim_end(masked, colon, type_end), ""))
    return edits


def _declaration_edits(masked: str) -> list[Edit]:
    """Strip annotations and definite-assignment marks from declarations."""
    pairs = match_brackets(masked)
    edits: list[Edit] = []
    for match in _DECLARATION.finditer(masked):
        position = match.end()
        if masked[position] in "[{":
            close_index = pairs.get(position)
            if close_index is None:
                continue
            position = close_index + 1
        else:
            name = _IDENTIFIER.match(masked, position)
            if name is None:
                continue
            position = name.end()
        marker = _skip_space(masked, position)
        if masked.startswith("!", marker) and not masked.startswith("!=", marker):
            edits.append((marker, marker + 1, ""))
            marker = _skip_space(masked, marker + 1)
        if masked.startswith(":", marker):
            type_end = _scan_type_end(masked, marker + 1, len(masked), "=;,\n")
            edits.append((marker, _trim_end(masked, marker, type_end), ""))
    return edits


def _signature_edits(masked: str) -> list[Edit]:
    """Strip parameter and return annotations from function signatures."""
    pairs = match_brackets(masked)
    edits: list[Edit] = []
    for open_index, close_index in pairs.items():
        if masked[open_index] != "(":
            continue
        annotation, follower = _after_parameters(masked, close_index)
        if not _is_parameter_list(masked, open_index, follower):
            continue
        edits.extend(_parameter_edits(masked, open_index, close_index, pairs))
        if annotation is not None:
            edits.append((annotation[0], annotation[1], ""))
    return edits


def _after_parameters(masked: str, close_index: int) -> tuple[tuple[int, int] | None, str]:
    position = _skip_space(masked, close_index + 1, newlines=True)
    annotation: tuple[int, int] | None = None
    if masked.startswith(":", position):
        type_end = _scan_return_type_end(masked, position + 1)
        if type_end is None:
            return None, ""
        annotation = (position, _trim_end(masked, position, type_end))
        position = type_end
    if masked.startswith("=>", position):
        return annotation, "=>"
    if masked.startswith("{", position):
        return annotation, "{"
    return annotation, ""


def _is_parameter_list(masked: str, open_index: int, follower: str) -> bool:
    if follower == "=>":
        return True
    if follower != "{":
        return False
    if _FUNCTION_BEFORE_PAREN.search(masked, max(0, open_index - 96), open_index):
        return True
    char, position = previous_significant(masked, open_index)
    if position < 0 or not _IDENTIFIER_CHAR.match(char):
        return False
    return _word_ending_at(masked, position) not in _NON_METHOD_WORDS


def _parameter_edits(
    masked: str,
    open_index: int,
    close_index: int,
    pairs: dict[int, int],
) -> list[Edit]:
    edits: list[Edit] = []
    for start, end in _split_top_level(masked, open_index + 1, close_index):
        position = _skip_space(masked, start, newlines=True)
        if position >= end:
            continue
        modifier = _PARAMETER_MODIFIER.match(masked, position, end)
        if modifier is not None:
            edits.append((modifier.start(), modifier.end(), ""))
            position = modifier.end()
        if masked.startswith("...", position):
            position += 3
        if masked[position] in "[{":
            binding_close = pairs.get(position)
            if binding_close is None or binding_close >= end:
                continue
            position = binding_close + 1
        else:
            name = _IDENTIFIER.match(masked, position, end)
            if name is None:
                continue
            position = name.end()
        marker = _skip_space(masked, position)
        if marker < end and masked[marker] == "?":
            edits.append((marker, marker + 1, ""))
            marker = _skip_space(masked, marker + 1)
        if marker < end and masked[marker] == ":":
            type_end = _scan_type_end(masked, marker + 1, end, "=")
            edits.append((marker, _trim_end(masked, marker, type_end), ""))
    return edits


def _split_top_level(masked: str, start: int, end: int) -> list[tuple[int, int]]:
    """Split ``masked[start:end]`` on commas outside nested brackets."""
    segments: list[tuple[int, int]] = []
    depth = 0
    segment_start = start
    for index in range(start, end):
        char = masked[index]
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == "," and depth == 0:
            segments.append((segment_start, index))
            segment_start = index + 1
    segments.append((segment_start, end))
    return segments


def _scan_type_end(masked: str, start: int, limit: int, stops: str) -> int:
    """Return where a type annotation starting at ``start`` ends.

    Brackets and angle brackets nest; ``=>`` inside function types never
    closes anything. The scan stops at a depth-0 stop character or at a
    closer that belongs to the enclosing construct.
    """
    depth = 0
    index = start
    while index < limit:
        char = masked[index]
        if depth == 0 and char in stops and not _is_compound_equals(masked, index):
            return index
        if char in "([{<":
            depth += 1
        elif char in ")]}" or (char == ">" and masked[index - 1] != "="):
            depth -= 1
            if depth < 0:
                return index
        index += 1
    return limit


def _scan_return_type_end(masked: str, start: int) -> int | None:
    depth = 0
    seen_type = False
    limit = min(len(masked), start + _RETURN_TYPE_SCAN_LIMIT)
    for index in range(start, limit):
        char = masked[index]
        if depth == 0:
            if masked.startswith("=>", index):
                return index if seen_type else None
            if char == "{" and seen_type:
                return index
            if char in ";,=":
                return None
        if char in "([{<":
            depth += 1
        elif char in ")]}" or (char == ">" and masked[index - 1] != "="):
            depth -= 1
            if depth < 0:
                return None
        if not char.isspace():
            seen_type = True
    return None


def _statement_end(masked: str, start: int) -> int:
    """Return the end of a statement, following bracket nesting and continuations."""
    depth = 0
    index = start
    while index < len(masked):
        char = masked[index]
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
            if depth < 0:
                return index
        elif char == ";" and depth == 0:
            return index + 1
        elif char == "\n" and depth == 0 and not _continues_on_next_line(masked, start, index):
            return index
        index += 1
    return len(masked)


def _continues_on_next_line(masked: str, start: int, newline_index: int) -> bool:
    consumed = masked[start:newline_index].strip()
    upcoming = masked[newline_index + 1 :].lstrip()
    if not consumed or consumed.endswith(("=", "|", "&", ",", ":")):
        return True
    return upcoming.startswith(("|", "&"))


def _statement_removal(masked: str, start: int, end: int) -> Edit:
    if masked.startswith(";", end):
        end += 1
    position = end
    while position < len(masked) and masked[position] in " \t":
        position += 1
    if position < len(masked) and masked[position] == "\n":
        return start, position + 1, ""
    return start, end, ""


def _is_compound_equals(masked: str, index: int) -> bool:
    if masked[index] != "=":
        return False
    if masked[index + 1 : index + 2] in ("=", ">"):
        return True
    return index > 0 and masked[index - 1] in "=!<>"


def _skip_space(masked: str, index: int, newlines: bool = False) -> int:
    blanks = " \t\r\n" if newlines else " \t"
    while index < len(masked) and masked[index] in blanks:
        index += 1
    return index


def _trim_end(masked: str, start: int, end: int) -> int:
    while end > start and masked[end - 1].isspace():
        end -= 1
    return end


def _word_ending_at(masked: str, position: int) -> str:
    start = position
    while start > 0 and _IDENTIFIER_CHAR.match(masked[start - 1]):
        start -= 1
    return masked[start : position + 1]
