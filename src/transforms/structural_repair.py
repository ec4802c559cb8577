"""Structural repair transform.

This module removes punctuation orphaned by partial edits and closes JSX
component tags whose closer never arrives. It only deletes whole lines of
closers under strict conditions and never raises: anything it cannot settle
is reported as a ``structural_imbalance`` error diagnostic.
"""

from __future__ import annotations

import re

from core.constants import STAGE_REPAIR, STATEMENT_TERMINATOR
from core.types import Diagnostic, StageOutcome, error_diagnostic, warning_diagnostic
from transforms.markup_scanner import find_closing_tag, scan_tags, unbalanced_tags
from transforms.source_masking import line_number_at, mask_source

_CLOSER_ONLY_LINE = re.compile(r"^\s*[)\]}][\s)\]}]*;?\s*$")
_PAIRS = {")": "(", "]": "[", "}": "{"}


def repair_structure(outcome: StageOutcome) -> StageOutcome:
    """Run structural repair as a pipeline stage.

    Args:
        outcome: Outcome of the dialect normalizer.

    Returns:
        Outcome with orphan closers removed and dangling tags self-closed.
    """
    text, diagnostics = repair_source(outcome.text)
    return outcome.advance(text, diagnostics)


def repair_source(text: str) -> tuple[str, list[Diagnostic]]:
    """Repair orphaned closers and dangling component tags.

    Args:
        text: Normalized JavaScript/JSX source.

    Returns:
        Repaired text and the diagnostics describing each repair, plus a
        ``structural_imbalance`` error when the result is still unbalanced.
    """
    text, diagnostics = _remove_orphan_closer_lines(text)
    text, tag_diagnostics = _self_close_dangling_tags(text)
    diagnostics.extend(tag_diagnostics)
    imbalance = describe_imbalance(text)
    if imbalance:
        diagnostics.append(
            error_diagnostic(
                STAGE_REPAIR,
                "structural_imbalance",
                f"Source is still unbalanced after repair: {imbalance}.",
            )
        )
    return text, diagnostics


def describe_imbalance(text: str) -> str:
    """Summarize bracket and tag imbalance, or return "" when balanced.

    Args:
        text: JavaScript/JSX source.

    Returns:
        Human-readable summary of every unbalanced construct.
    """
    masked = mask_source(text)
    problems = []
    for opener, count in _net_bracket_counts(masked).items():
        if count:
            closer = next(key for key, value in _PAIRS.items() if value == opener)
            problems.append(f"{opener}{closer} off by {count:+d}")
    for tag in unbalanced_tags(scan_tags(masked)):
        marker = "</" if tag.kind == "close" else "<"
        problems.append(f"unpaired {marker}{tag.name}> on line {line_number_at(masked, tag.start)}")
    return ", ".join(problems)


def _remove_orphan_closer_lines(text: str) -> tuple[str, list[Diagnostic]]:
    """Delete closer-only lines that only add excess closers."""
    masked_lines = mask_source(text).split("\n")
    lines = text.split("\n")
    counts = {opener: 0 for opener in _PAIRS.values()}
    kept: list[int] = []
    diagnostics: list[Diagnostic] = []
    previous_code = ""
    for number, masked_line in enumerate(masked_lines):
        line_counts = _bracket_deltas(masked_line)
        would_underflow = any(counts[key] + line_counts[key] < 0 for key in counts)
        if (
            _CLOSER_ONLY_LINE.match(masked_line)
            and would_underflow
            and previous_code.endswith(STATEMENT_TERMINATOR)
        ):
            diagnostics.append(
                warning_diagnostic(
                    STAGE_REPAIR,
                    "orphan_closer_removed",
                    f"Removed orphaned '{masked_line.strip()}'.",
                    number + 1,
                )
            )
            continue
        for key in counts:
            counts[key] += line_counts[key]
        kept.append(number)
        if masked_line.strip():
            previous_code = masked_line.rstrip()
    kept, trailing = _trim_trailing_orphans(masked_lines, kept, counts)
    for number in trailing:
        diagnostics.append(
            warning_diagnostic(
                STAGE_REPAIR,
                "orphan_closer_removed",
                f"Removed trailing orphaned '{masked_lines[number].strip()}'.",
                number + 1,
            )
        )
    return "\n".join(lines[number] for number in kept), diagnostics


def _trim_trailing_orphans(
    masked_lines: list[str],
    kept: list[int],
    counts: dict[str, int],
) -> tuple[list[int], list[int]]:
    removed: list[int] = []
    position = len(kept) - 1
    while position >= 0 and any(count < 0 for count in counts.values()):
        number = kept[position]
        masked_line = masked_lines[number]
        if not masked_line.strip():
            position -= 1
            continue
        if not _CLOSER_ONLY_LINE.match(masked_line):
            break
        line_counts = _bracket_deltas(masked_line)
        if any(line_counts[key] < counts[key] for key in counts):
            break
        for key in counts:
            counts[key] -= line_counts[key]
        removed.append(number)
        del kept[position]
        position -= 1
    return kept, sorted(removed)


def _self_close_dangling_tags(text: str) -> tuple[str, list[Diagnostic]]:
    """Rewrite component tags with no later closer as self-closing."""
    masked = mask_source(text)
    tags = scan_tags(masked)
    insertions: list[int] = []
    diagnostics: list[Diagnostic] = []
    for position, tag in enumerate(tags):
        if tag.kind != "open" or not tag.is_component:
            continue
        # Any later closer pairs the tag.
        if find_closing_tag(tags, position) is not None:
            continue
        open_line = line_number_at(masked, tag.start)
        insertions.append(tag.end - 1)
        diagnostics.append(
            warning_diagnostic(
                STAGE_REPAIR,
                "unclosed_tag_self_closed",
                f"Tag <{tag.name}> has no closing tag and was made self-closing.",
                open_line,
            )
        )
    for insertion in sorted(insertions, reverse=True):
        separator = "" if text[insertion - 1].isspace() else " "
        text = f"{text[:insertion]}{separator}/{text[insertion:]}"
    return text, diagnostics


def _bracket_deltas(masked_line: str) -> dict[str, int]:
    return {
        opener: masked_line.count(opener) - masked_line.count(closer)
        for closer, opener in _PAIRS.items()
    }


def _net_bracket_counts(masked: str) -> dict[str, int]:
    """Net opener minus closer count per bracket kind, with underflow kept."""
    counts = {opener: 0 for opener in _PAIRS.values()}
    underflow = {opener: 0 for opener in _PAIRS.values()}
    for char in masked:
        if char in counts:
            counts[char] += 1
        elif char in _PAIRS:
            opener = _PAIRS[char]
            counts[opener] -= 1
            underflow[opener] = min(underflow[opener], counts[opener])
    return {
        opener: counts[opener] if counts[opener] else underflow[opener]
        for opener in counts
    }
