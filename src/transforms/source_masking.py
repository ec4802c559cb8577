"""Lexical masking of JavaScript/JSX source.

``mask_source`` returns a copy of the text with the same length in which the
contents of string literals, template-literal text, regex literals, comments
and JSX text children are blanked out. Transforms search the masked copy and
splice the original, so nothing inside a literal is ever rewritten. Newlines
are kept, so offsets and line numbers agree between the two texts.

JSX is tracked with two stacks: tag heads being read (``<mesh position={p}``)
and open elements whose children are text. Inside an element, text such as
``see https://threejs.org`` or ``Don't`` is blanked rather than lexed as code,
while nested tags and ``{expression}`` containers stay visible.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

_IDENTIFIER_CHARS = re.compile(r"[A-Za-z0-9_$]")
_TAG_NAME = re.compile(r"[A-Za-z_$][\w$.:-]*")
_HEAD_REJECTS = set(",;()<[]")
_TYPE_PARAMETER_TAIL = re.compile(r"(?:extends\b|=)")
_CALL_FOLLOWS = re.compile(r"\s*\(")
_KEYWORDS_BEFORE_EXPRESSION = {
    "return",
    "case",
    "typeof",
    "in",
    "of",
    "else",
    "yield",
    "await",
    "from",
    "import",
    "export",
    "default",
    "void",
    "delete",
    "throw",
    "new",
}
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%>~^")
_CLOSERS = {"(": ")", "[": "]", "{": "}"}

Edit = tuple[int, int, str]


@dataclass(frozen=True)
class _MarkupFrame:
    """A JSX tag head or open element at one brace depth."""

    depth: int
    name: str
    closing: bool
    name_end: int


def mask_source(text: str) -> str:
    """Blank out literal and comment contents.

    Args:
        text: JavaScript, JSX or TypeScript source.

    Returns:
        Same-length text where only code characters survive.
    """
    masked = list(text)
    index = 0
    length = len(text)
    template_depths: list[int] = []
    heads: list[_MarkupFrame] = []
    elements: list[_MarkupFrame] = []
    brace_depth = 0
    while index < length:
        char = text[index]
        if heads and heads[-1].depth == brace_depth:
            if char in "'\"":
                index = _scan_quoted(masked, text, index, char)
                continue
            if char == ">" or text.startswith("/>", index):
                head = heads.pop()
                if head.closing:
                    _close_element(elements, head)
                elif char == ">":
                    elements.append(head)
                index += 1 if char == ">" else 2
                continue
            if char != "}":
                if char == "{":
                    brace_depth += 1
                index += 1
                continue
            heads.pop()
        elif elements and elements[-1].depth == brace_depth:
            if char == "<":
                head = _markup_head(text, index, brace_depth)
                if head is not None:
                    heads.append(head)
                    index = head.name_end
                    continue
            if char == "{":
                brace_depth += 1
                index += 1
                continue
            if char != "}" and not _leaves_markup(text, index):
                if char != "\n":
                    masked[index] = " "
                index += 1
                continue
            while elements and elements[-1].depth == brace_depth:
                elements.pop()
        if char == "/" and text.startswith("//", index):
            index = _blank_line_comment(masked, text, index)
            continue
        if char == "/" and text.startswith("/*", index):
            end = text.find("*/", index + 2)
            end = length if end == -1 else end + 2
            _blank_range(masked, text, index, end)
            index = end
            continue
        if char == "`" or (char == "}" and template_depths and template_depths[-1] == brace_depth):
            if char == "}":
                template_depths.pop()
            index = _scan_template(masked, text, index + 1, template_depths, brace_depth)
            continue
        if char in "'\"" and _starts_string(masked, index):
            index = _scan_quoted(masked, text, index, char)
            continue
        # "/>" closes a self-closing JSX tag such as <mesh args={[1]} />
        if char == "/" and not text.startswith("/>", index) and _starts_regex(masked, index):
            index = _scan_regex(masked, text, index)
            continue
        if char == "<" and _starts_regex(masked, index):
            head = _markup_head(text, index, brace_depth)
            if head is not None:
                heads.append(head)
                index = head.name_end
                continue
        if char == "{":
            brace_depth += 1
        elif char == "}":
            brace_depth -= 1
            _drop_frames_above(heads, brace_depth)
            _drop_frames_above(elements, brace_depth)
        index += 1
    return "".join(masked)


def find_matching_bracket(masked: str, open_index: int) -> int:
    """Return the index of the bracket closing ``masked[open_index]``.

    Args:
        masked: Masked source.
        open_index: Index of "(", "[" or "{".

    Returns:
        Index of the matching closer, or -1 when the document ends first.
    """
    opener = masked[open_index]
    closer = _CLOSERS[opener]
    depth = 0
    for index in range(open_index, len(masked)):
        char = masked[index]
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
    return -1


def match_brackets(masked: str) -> dict[int, int]:
    """Pair every balanced opener with its closer in one pass.

    Args:
        masked: Masked source.

    Returns:
        Mapping from opener index to closer index. Unbalanced brackets are
        left out.
    """
    pairs: dict[int, int] = {}
    stacks: dict[str, list[int]] = {opener: [] for opener in _CLOSERS}
    openers_by_closer = {closer: opener for opener, closer in _CLOSERS.items()}
    for index, char in enumerate(masked):
        if char in _CLOSERS:
            stacks[char].append(index)
        elif char in openers_by_closer:
            stack = stacks[openers_by_closer[char]]
            if stack:
                pairs[stack.pop()] = index
    return pairs


def line_number_at(text: str, offset: int) -> int:
    """Return the 1-based line number containing ``offset``."""
    return text.count("\n", 0, offset) + 1


def brace_depth_at(masked: str, offset: int) -> int:
    """Return the curly-brace nesting depth just before ``offset``."""
    prefix = masked[:offset]
    return prefix.count("{") - prefix.count("}")


def previous_significant(masked: str, index: int) -> tuple[str, int]:
    """Return the nearest non-whitespace character before ``index``.

    Returns:
        Character and its index, or ("", -1) at document start.
    """
    position = index - 1
    while position >= 0 and masked[position].isspace():
        position -= 1
    if position < 0:
        return "", -1
    return masked[position], position


def _previous_word(masked: str, end: int) -> str:
    start = end
    while start >= 0 and _IDENTIFIER_CHARS.match(masked[start]):
        start -= 1
    return masked[start + 1 : end + 1]


def _starts_string(masked: list[str], index: int) -> bool:
    window = "".join(masked[max(0, index - 64) : index])
    char, position = previous_significant(window, len(window))
    if position < 0:
        return True
    if _IDENTIFIER_CHARS.match(char):
        return _previous_word(window, position) in _KEYWORDS_BEFORE_EXPRESSION
    return char not in ")]"


def _starts_regex(masked: list[str], index: int) -> bool:
    window = "".join(masked[max(0, index - 64) : index])
    char, position = previous_significant(window, len(window))
    if position < 0:
        return True
    if char in _REGEX_PRECEDERS:
        return True
    if _IDENTIFIER_CHARS.match(char):
        return _previous_word(window, position) in _KEYWORDS_BEFORE_EXPRESSION
    return False


def _markup_head(text: str, index: int, depth: int) -> _MarkupFrame | None:
    """Return the JSX tag head opening at ``text[index]``, or None for an operator."""
    position = index + 1
    closing = text.startswith("/", position)
    if closing:
        position += 1
    if text.startswith(">", position):
        return _MarkupFrame(depth, "", closing, position)
    name_match = _TAG_NAME.match(text, position)
    if name_match is None:
        return None
    end = _head_end(text, name_match.end())
    if end is None:
        return None
    attributes = text[name_match.end() : end - 1].strip()
    if not closing and _is_type_parameters(text, attributes, end):
        return None
    return _MarkupFrame(depth, name_match.group(0), closing, name_match.end())


def _is_type_parameters(text: str, attributes: str, end: int) -> bool:
    # <T>(value: T) => value, <T extends Base>(value: T) => value
    if _TYPE_PARAMETER_TAIL.match(attributes):
        return True
    return not attributes and _CALL_FOLLOWS.match(text, end) is not None


def _head_end(text: str, index: int) -> int | None:
    depth = 0
    while index < len(text):
        char = text[index]
        if char in "'\"":
            closing = text.find(char, index + 1)
            if closing == -1:
                return None
            index = closing + 1
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return None
        elif depth == 0 and char == ">":
            return index + 1
        elif depth == 0 and char in _HEAD_REJECTS:
            return None
        index += 1
    return None


def _close_element(elements: list[_MarkupFrame], closer: _MarkupFrame) -> None:
    """Pop the element ``closer`` names along with its unclosed children."""
    for position in range(len(elements) - 1, -1, -1):
        frame = elements[position]
        if frame.depth != closer.depth:
            return
        if frame.name == closer.name:
            del elements[position:]
            return


def _drop_frames_above(frames: list[_MarkupFrame], depth: int) -> None:
    while frames and frames[-1].depth > depth:
        frames.pop()


def _leaves_markup(text: str, index: int) -> bool:
    """True for a ")" or ";" opening a line, which ends unclosed markup."""
    if text[index] not in ");":
        return False
    line_start = text.rfind("\n", 0, index) + 1
    return not text[line_start:index].strip()


def _scan_quoted(masked: list[str], text: str, start: int, quote: str) -> int:
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == "\\":
            _blank_range(masked, text, index, min(index + 2, len(text)))
            index += 2
            continue
        if char == quote:
            return index + 1
        if char == "\n":
            return index
        masked[index] = " "
        index += 1
    return index


def _scan_template(
    masked: list[str],
    text: str,
    index: int,
    template_depths: list[int],
    brace_depth: int,
) -> int:
    while index < len(text):
        char = text[index]
        if char == "\\":
            _blank_range(masked, text, index, min(index + 2, len(text)))
            index += 2
            continue
        if char == "`":
            return index + 1
        if char == "$" and text.startswith("${", index):
            template_depths.append(brace_depth)
            return index + 2
        if char != "\n":
            masked[index] = " "
        index += 1
    return index


def _scan_regex(masked: list[str], text: str, start: int) -> int:
    index = start + 1
    in_class = False
    while index < len(text):
        char = text[index]
        if char == "\n":
            return start + 1
        if char == "\\":
            index += 2
            continue
        if char == "[":
            in_class = True
        elif char == "]":
            in_class = False
        elif char == "/" and not in_class:
            _blank_range(masked, text, start + 1, index)
            return index + 1
        index += 1
    return start + 1


def _blank_line_comment(masked: list[str], text: str, start: int) -> int:
    end = text.find("\n", start)
    if end == -1:
        end = len(text)
    _blank_range(masked, text, start, end)
    return end


def _blank_range(masked: list[str], text: str, start: int, end: int) -> None:
    for position in range(start, end):
        if text[position] != "\n":
            masked[position] = " "


def apply_edits(text: str, edits: Iterable[Edit]) -> str:
    """Splice non-overlapping edits into text.

    Edits are applied in offset order. An edit overlapping an earlier one is
    dropped; callers that iterate to a fixed point pick it up next round.

    Args:
        text: Text to edit.
        edits: ``(start, end, replacement)`` triples with offsets into text.

    Returns:
        Edited text.
    """
    pieces: list[str] = []
    cursor = 0
    for start, end, replacement in sorted(set(edits)):
        if start < cursor:
            continue
        pieces.append(text[cursor:start])
        pieces.append(replacement)
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)
