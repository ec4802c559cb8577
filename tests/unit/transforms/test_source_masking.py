"""Unit tests for literal masking and edit splicing."""

from __future__ import annotations

from transforms.markup_scanner import scan_tags, unbalanced_tags
from transforms.source_masking import apply_edits, find_matching_bracket, mask_source


def test_mask_blanks_strings_and_comments_with_same_length() -> None:
    """Masking should blank literal contents but keep offsets and newlines."""
    source = "const a = 'x: y'; // note\nconst b = `t ${a} u`;\n"

    masked = mask_source(source)

    assert len(masked) == len(source)
    assert masked.count("\n") == 2
    assert "x: y" not in masked and "note" not in masked
    assert masked.split("\n")[1] == "const b = `  ${a}  `;"


def test_mask_keeps_self_closing_tag_after_expression_attribute() -> None:
    """A "/>" after an attribute expression is markup, not a regex literal."""
    source = "<group><mesh args={[1]} /></group>"

    assert mask_source(source) == source


def test_find_matching_bracket_skips_brackets_in_strings() -> None:
    """Brackets inside strings must not affect matching."""
    source = "call('(', [1, 2])"

    assert find_matching_bracket(mask_source(source), 4) == len(source) - 1


def test_apply_edits_drops_overlapping_edits() -> None:
    """Overlapping edits after the first one should be ignored."""
    assert apply_edits("abcdef", [(1, 3, "X"), (2, 4, "Y"), (5, 6, "")]) == "aXde"


def test_scan_tags_ignores_comparisons_and_generics() -> None:
    """Comparisons and glued generic arguments are not markup."""
    masked = mask_source("if (a < b) { f<T>(x); }\nconst el = <Box><mesh /></Box>;\n")

    tags = scan_tags(masked)

    assert [(tag.name, tag.kind) for tag in tags] == [
        ("Box", "open"),
        ("mesh", "self"),
        ("Box", "close"),
    ]
    assert unbalanced_tags(tags) == []


def test_mask_blanks_jsx_text_that_looks_like_a_comment() -> None:
    """A URL in element text must not hide the closing tags after it."""
    source = "const el = <Html><a>see https://threejs.org</a></Html>;\n"

    masked = mask_source(source)

    assert "https" not in masked
    assert masked.endswith("</a></Html>;\n")
    assert unbalanced_tags(scan_tags(masked)) == []


def test_mask_blanks_apostrophes_in_jsx_text() -> None:
    """An apostrophe in element text does not open a string literal."""
    source = (
        "function Label() {\n"
        "  return <Text color=\"white\">Don't panic</Text>;\n"
        "}\n"
    )

    masked = mask_source(source)

    assert masked.split("\n")[1] == "  return <Text color=\"     \">           </Text>;"
    assert masked.split("\n")[2] == "}"


def test_mask_keeps_expression_containers_inside_elements() -> None:
    """Braced expressions in element children stay visible as code."""
    source = "const el = <p>Score: {score > 1 ? 'high' : 'low'}</p>;\n"

    masked = mask_source(source)

    assert "Score" not in masked
    assert "{score > 1 ?" in masked
    assert "high" not in masked


def test_mask_leaves_generic_arrow_functions_alone() -> None:
    """Type parameter lists in expression position are not markup."""
    source = "const first = <T,>(items: T[]) => items[0];\nconst same = <T>(value: T) => value;\n"

    assert mask_source(source) == source
