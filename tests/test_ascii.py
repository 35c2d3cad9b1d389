"""Tests for the Unicode/ASCII text renderer.

Golden files live in testdata/ascii and testdata/unicode. Each .txt file
holds the diagram source above a ``---`` separator and the expected output
below it.
"""
from __future__ import annotations

import os
import re
from typing import get_args

import pytest

from graphs_tui import render_diagram
from graphs_tui.ascii import ASCII, UNICODE, render_layout
from graphs_tui.ascii.canvas import canvas_to_string, ensure_fits, increase_size, mk_canvas
from graphs_tui.ascii.draw import expand_path
from graphs_tui.ascii.shapes import _SHAPE_DRAWERS
from graphs_tui.ascii.types import Down, Left, Right, Up
from graphs_tui.errors import RenderError
from graphs_tui.layout import compute_layout
from graphs_tui.parser import parse_mermaid
from graphs_tui.types import NodeShape, Point, RenderOptions

# ============================================================================
# Golden files
# ============================================================================


def _parse_test_case(content: str) -> dict:
    """Parse a golden test file into its components.

    Format:
      [paddingX=N]     (optional)
      [paddingY=N]     (optional)
      <diagram source>
      ---
      <expected output>
    """
    tc = {"source": "", "expected": "", "padding_x": 5, "padding_y": 3}
    padding_regex = re.compile(r"^padding([xy])\s*=\s*(\d+)\s*$", re.IGNORECASE)

    in_source = True
    source_lines: list[str] = []
    expected_lines: list[str] = []
    for line in content.split("\n"):
        if line == "---" and in_source:
            in_source = False
            continue
        if in_source:
            match = padding_regex.match(line.strip())
            if not source_lines and match:
                tc["padding_" + match.group(1).lower()] = int(match.group(2))
                continue
            if source_lines or line.strip():
                source_lines.append(line)
        else:
            expected_lines.append(line)

    tc["source"] = "\n".join(source_lines) + "\n"
    tc["expected"] = _normalize_whitespace("\n".join(expected_lines))
    return tc


def _normalize_whitespace(s: str) -> str:
    """Trim trailing spaces from each line and drop leading/trailing blank lines."""
    normalized = [line.rstrip() for line in s.split("\n")]
    while normalized and normalized[0] == "":
        normalized.pop(0)
    while normalized and normalized[-1] == "":
        normalized.pop()
    return "\n".join(normalized)


def _visualize_whitespace(s: str) -> str:
    """Replace spaces with middle dots for clearer diff output."""
    return s.replace(" ", "\u00b7")


def _collect_golden_tests(directory: str, use_ascii: bool) -> list:
    if not os.path.isdir(directory):
        return []
    return [
        (filename[: -len(".txt")], os.path.join(directory, filename), use_ascii)
        for filename in sorted(os.listdir(directory))
        if filename.endswith(".txt")
    ]


_testdata_dir = os.path.join(os.path.dirname(__file__), "testdata")
_golden_tests = _collect_golden_tests(os.path.join(_testdata_dir, "ascii"), True) + (
    _collect_golden_tests(os.path.join(_testdata_dir, "unicode"), False)
)


@pytest.mark.parametrize(
    "test_name,filepath,use_ascii",
    _golden_tests,
    ids=[("ascii-" if t[2] else "unicode-") + t[0] for t in _golden_tests],
)
def test_golden_rendering(test_name: str, filepath: str, use_ascii: bool):
    with open(filepath, encoding="utf-8") as f:
        tc = _parse_test_case(f.read())

    actual = render_diagram(tc["source"], {
        "useAscii": use_ascii,
        "paddingX": tc["padding_x"],
        "paddingY": tc["padding_y"],
    })
    actual = _normalize_whitespace(actual)

    if actual != tc["expected"]:
        pytest.fail(
            f"{test_name}: output mismatch\n"
            f"expected:\n{_visualize_whitespace(tc['expected'])}\n"
            f"actual:\n{_visualize_whitespace(actual)}"
        )


# ============================================================================
# Glyph sets
# ============================================================================

_COMPLEX = """flowchart TD
  A[Start] --> B{Is it?}
  B -->|Yes| C[OK]
  B -.->|No| D([Retry])
  D ==> A
  C --- E[(Store)]
  C <--> F((Done))
  subgraph grp [Group]
    E
  end
"""


class TestGlyphSets:
    def test_ascii_output_is_plain_ascii(self):
        output = render_diagram(_COMPLEX, {"ascii": True})
        assert all(ord(ch) < 128 for ch in output), output

    def test_unicode_output_has_no_ascii_line_glyphs(self):
        output = render_diagram("flowchart TD\n  A --> B\n  A --> C\n  C --> A")
        assert not set(output) & set("+-|=<>^v*.:")

    def test_charsets_cover_the_same_fields(self):
        for name in ("horizontal", "cross", "arrow_up", "bar_filled", "start_marker"):
            assert len(getattr(ASCII, name)) == 1
            assert len(getattr(UNICODE, name)) == 1

    def test_junction_glyphs(self):
        assert UNICODE.line(frozenset({Up, Down, Left, Right})) == "┼"
        assert UNICODE.line(frozenset({Left, Right, Down})) == "┬"
        assert UNICODE.line(frozenset({Left, Right, Up})) == "┴"
        assert UNICODE.line(frozenset({Up, Down, Right})) == "├"
        assert UNICODE.line(frozenset({Up, Down, Left})) == "┤"
        assert ASCII.line(frozenset({Up, Down, Left, Right})) == "+"

    def test_corner_glyphs(self):
        assert UNICODE.line(frozenset({Down, Right})) == "┌"
        assert UNICODE.line(frozenset({Up, Left})) == "┘"
        assert UNICODE.line(frozenset({Down, Left}), "thick") == "┓"

    def test_styled_lines(self):
        assert UNICODE.line(frozenset({Left, Right}), "dotted") == "┄"
        assert UNICODE.line(frozenset({Up, Down}), "thick") == "┃"
        assert ASCII.line(frozenset({Up, Down}), "dotted") == ":"
        assert ASCII.line(frozenset({Left}), "thick") == "="

    def test_arrows(self):
        assert [UNICODE.arrow(d) for d in (Up, Down, Left, Right)] == ["▲", "▼", "◀", "▶"]
        assert [ASCII.arrow(d) for d in (Up, Down, Left, Right)] == ["^", "v", "<", ">"]


# ============================================================================
# Shapes
# ============================================================================


class TestShapes:
    def _render(self, text: str, **options) -> list[str]:
        return render_diagram(text, options).split("\n")

    def test_rounded(self):
        assert self._render("flowchart LR\n  A(Hi)") == ["╭────╮", "│ Hi │", "╰────╯"]

    def test_stadium(self):
        assert self._render("flowchart LR\n  A([Hi])") == ["╭──────╮", "(  Hi  )", "╰──────╯"]

    def test_diamond(self):
        assert self._render("flowchart LR\n  A{Yes}") == [" /─────\\", "<  Yes  >", " \\─────/"]

    def test_cylinder(self):
        assert self._render("flowchart LR\n  A[(DB)]") == ["╭────╮", "├────┤", "│ DB │", "╰────╯"]

    def test_ascii_rectangle(self):
        assert self._render("flowchart LR\n  A[Hi]", ascii=True) == ["+----+", "| Hi |", "+----+"]

    def test_wider_border_padding(self):
        lines = self._render("flowchart LR\n  A[Hi]", box_border_padding=2)
        assert lines == ["┌──────┐", "│  Hi  │", "└──────┘"]

    def test_every_shape_has_a_drawer(self):
        assert set(_SHAPE_DRAWERS) == set(get_args(NodeShape))


# ============================================================================
# Edges and labels
# ============================================================================


class TestEdges:
    def test_edge_label_appears_once(self):
        output = render_diagram("flowchart LR\n  A -->|yes| B")
        assert output.count("yes") == 1

    def test_vertical_edge_label_appears_once(self):
        output = render_diagram("flowchart TD\n  A -->|go| B\n  A -->|stop| C")
        assert output.count("go") == 1
        assert output.count("stop") == 1

    def test_back_edge_has_an_arrowhead(self):
        output = render_diagram("flowchart TD\n  A --> B\n  B --> A")
        # back edges enter from the flow-facing side too
        assert output.count("▼") == 2
        assert "▲" not in output

    def test_self_loop(self):
        output = render_diagram("flowchart LR\n  A --> A")
        assert output.count("▶") == 1

    def test_state_markers(self):
        output = render_diagram("stateDiagram-v2\n  [*] --> Idle\n  Idle --> [*]")
        assert "●" in output
        assert "◉" in output
        assert "Idle" in output


# ============================================================================
# Containers
# ============================================================================


class TestContainers:
    def test_container_title_on_border(self):
        output = render_diagram("flowchart TD\n  subgraph g [Group]\n    A --> B\n  end")
        assert "┌─ Group ─┐" in output

    def test_edge_entering_container(self):
        output = render_diagram(
            "flowchart LR\n  X --> A\n  subgraph g [Backend]\n    A --> B\n  end"
        )
        assert "Backend" in output
        assert "▶" in output

    def test_d2_container(self):
        output = render_diagram("backend: Backend {\n  api -> db\n}\nclient -> backend.api")
        assert "Backend" in output
        assert "client" in output
        assert "api" in output


# ============================================================================
# Canvas
# ============================================================================


class TestCanvas:
    def test_mk_canvas_is_inclusive(self):
        canvas = mk_canvas(3, 2)
        assert len(canvas) == 4
        assert len(canvas[0]) == 3

    def test_increase_size_preserves_content(self):
        canvas = mk_canvas(1, 1)
        canvas[1][1] = "x"
        increase_size(canvas, 4, 3)
        assert len(canvas) == 5
        assert all(len(col) == 4 for col in canvas)
        assert canvas[1][1] == "x"

    def test_canvas_to_string_strips_trailing_spaces(self):
        canvas = mk_canvas(3, 1)
        canvas[0][0] = "a"
        canvas[2][1] = "b"
        assert canvas_to_string(canvas) == "a\n  b"

    def test_expand_path(self):
        cells = expand_path((Point(0, 0), Point(2, 0), Point(2, 1)))
        assert cells == [Point(0, 0), Point(1, 0), Point(2, 0), Point(2, 1)]

    def test_ensure_fits(self):
        assert ensure_fits("abc\nde", 3) == "abc\nde"
        with pytest.raises(RenderError, match=r"\(4 > 3\)") as exc:
            ensure_fits("abcd", 3)
        assert exc.value.width == 4
        assert exc.value.max_width == 3


# ============================================================================
# Width limit
# ============================================================================


class TestMaxWidth:
    def test_fits_after_compaction(self):
        text = "flowchart LR\n  A --> B"
        opts = RenderOptions(padding_x=20, max_width=16)
        output = render_layout(compute_layout(parse_mermaid(text), opts), opts)
        assert max(len(line) for line in output.split("\n")) <= 16

    def test_too_wide_raises(self):
        text = "flowchart LR\n  A[A long label] --> B[Another long label]"
        opts = RenderOptions(max_width=20)
        with pytest.raises(RenderError):
            render_layout(compute_layout(parse_mermaid(text), opts), opts)
