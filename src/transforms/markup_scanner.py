"""JSX tag scanning over masked source.

The scanner only recognizes ``<`` in markup position: immediately followed by
a tag name, ``/`` or ``>``, and not glued to a preceding identifier (which
would make it a comparison or a generic argument list).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Sequence

TagKind = Literal["open", "close", "self"]

_TAG_NAME = re.compile(r"[A-Za-z_$][\w$.:-]*")
_IDENTIFIER_CHAR = re.compile(r"[\w$]")


@dataclass(frozen=True)
class JsxTag:
    """One JSX tag located in masked source.

    Attributes:
        name: Tag name, empty for fragments.
        start: Offset of the opening ``<``.
        end: Offset just past the closing ``>``.
        kind: "open", "close" or "self" (self-closing).
    """

    name: str
    start: int
    end: int
    kind: TagKind

    @property
    def is_component(self) -> bool:
        """True for capitalized tags, which JSX resolves as identifiers."""
        return bool(self.name) and self.name[0].isupper()

    @property
    def root_identifier(self) -> str:
        """Identifier a member tag such as ``motion.div`` resolves through."""
        return self.name.split(".", 1)[0]


def scan_tags(masked: str) -> list[JsxTag]:
    """Locate every JSX tag in masked source.

    Args:
        masked: Output of ``mask_source``.

    Returns:
        Tags in document order.
    """
    tags: list[JsxTag] = []
    index = masked.find("<")
    while index != -1:
        tag = _tag_at(masked, index)
        if tag is None:
            index = masked.find("<", index + 1)
            continue
        tags.append(tag)
        index = masked.find("<", tag.end)
    return tags


def find_closing_tag(tags: Sequence[JsxTag], open_position: int) -> int | None:
    """Return the index of the tag closing ``tags[open_position]``.

    Args:
        tags: Tags from ``scan_tags``.
        open_position: Index of an opening tag in ``tags``.

    Returns:
        Index of the matching closer, or None when it is missing.
    """
    name = tags[open_position].name
    depth = 0
    for position in range(open_position, len(tags)):
        tag = tags[position]
        if tag.name != name or tag.kind == "self":
            continue
        depth += 1 if tag.kind == "open" else -1
        if depth == 0:
            return position
    return None


def unbalanced_tags(tags: Sequence[JsxTag]) -> list[JsxTag]:
    """Return tags that have no partner in a stack-based pairing.

    Args:
        tags: Tags from ``scan_tags``.

    Returns:
        Unpaired opening and closing tags, in document order.
    """
    stack: list[JsxTag] = []
    unpaired: list[JsxTag] = []
    for tag in tags:
        if tag.kind == "open":
            stack.append(tag)
        elif tag.kind == "close":
            if stack and stack[-1].name == tag.name:
                stack.pop()
            else:
                unpaired.append(tag)
    return sorted(unpaired + stack, key=lambda tag: tag.start)


def _tag_at(masked: str, index: int) -> JsxTag | None:
    if index > 0 and _IDENTIFIER_CHAR.match(masked[index - 1]):
        return None
    position = index + 1
    kind: TagKind = "open"
    if masked.startswith("/", position):
        kind = "close"
        position += 1
    if masked.startswith(">", position):
        return JsxTag(name="", start=index, end=position + 1, kind=kind)
    name_match = _TAG_NAME.match(masked, position)
    if name_match is None:
        return None
    end = _tag_end(masked, name_match.end())
    if end is None:
        return None
    if kind == "open" and masked[end - 2] == "/":
        kind = "self"
    return JsxTag(name=name_match.group(0), start=index, end=end, kind=kind)


def _tag_end(masked: str, index: int) -> int | None:
    depth = 0
    while index < len(masked):
        char = masked[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return None
        elif char == ">" and depth == 0:
            return index + 1
        elif char in "<;" and depth == 0:
            return None
        index += 1
    return None
