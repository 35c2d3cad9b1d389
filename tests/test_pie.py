"""Tests for pie chart layout and bar rendering."""

from __future__ import annotations

import pytest

from graphs_tui import render_pie_chart
from graphs_tui.errors import LayoutError, RenderError
from graphs_tui.parser import parse_pie_chart
from graphs_tui.pie import BAR_WIDTH, layout_pie, render_pie
from graphs_tui.pie.renderer import format_number
from graphs_tui.types import PieChart, PieSlice, RenderOptions

PETS = 'pie title Pets\n  "Dogs" : 50\n  "Cats" : 50'


# ============================================================================
# Layout
# ============================================================================


class TestLayout:
    def test_even_split(self):
        layout = layout_pie(parse_pie_chart(PETS))
        assert [r.filled for r in layout.rows] == [15, 15]
        assert [r.percent for r in layout.rows] == [50.0, 50.0]
        assert layout.total == 100
        assert layout.bar_width == BAR_WIDTH

    def test_fills_track_proportions(self):
        chart = PieChart(slices=[PieSlice("a", 1), PieSlice("b", 2), PieSlice("c", 3)])
        layout = layout_pie(chart)
        assert [r.filled for r in layout.rows] == [5, 10, 15]

    def test_rounding_keeps_total_close_to_bar_width(self):
        chart = PieChart(slices=[PieSlice(str(i), 1) for i in range(7)])
        total = sum(r.filled for r in layout_pie(chart).rows)
        assert abs(total - BAR_WIDTH) <= len(chart.slices)

    def test_label_width_is_longest_label(self):
        chart = PieChart(slices=[PieSlice("x", 1), PieSlice("longer", 1)])
        assert layout_pie(chart).label_width == 6

    def test_zero_sum_is_an_error(self):
        chart = PieChart(slices=[PieSlice("a", 0), PieSlice("b", 0)])
        with pytest.raises(LayoutError, match="zero-sum"):
            layout_pie(chart)

    def test_no_slices_is_an_error(self):
        with pytest.raises(LayoutError):
            layout_pie(PieChart(title="Empty"))


# ============================================================================
# Rendering
# ============================================================================


class TestRender:
    def test_full_output(self):
        output = render_pie_chart(PETS)
        bar = "█" * 15 + "░" * 15
        assert output.split("\n") == [
            "  Pets",
            "  ────",
            "",
            f"  Dogs  │{bar}│ 50 (50.0%)",
            f"  Cats  │{bar}│ 50 (50.0%)",
            "",
            "  Total: 100",
        ]

    def test_without_title(self):
        output = render_pie_chart('pie\n  "A" : 1')
        assert output.split("\n")[0].startswith("  A  │")
        assert output.endswith("Total: 1")

    def test_labels_are_aligned(self):
        lines = render_pie_chart('pie\n  "A" : 1\n  "Longer" : 3').split("\n")
        assert lines[0].index("│") == lines[1].index("│")

    def test_ascii_bars(self):
        output = render_pie_chart(PETS, {"ascii": True})
        assert "|" + "#" * 15 + "." * 15 + "|" in output
        assert "  ----" in output
        assert all(ord(ch) < 128 for ch in output)

    def test_zero_slice_shows_marker(self):
        output = render_pie_chart('pie\n  "None" : 0\n  "All" : 10')
        none_row = next(line for line in output.split("\n") if "None" in line)
        assert "│▏" + "░" * (BAR_WIDTH - 1) + "│" in none_row
        assert "0 (0.0%)" in none_row

    def test_show_data_renders_like_plain_pie(self):
        plain = render_pie_chart('pie\n  "A" : 1\n  "B" : 3')
        assert render_pie_chart('pie showData\n  "A" : 1\n  "B" : 3') == plain

    def test_fractional_values(self):
        output = render_pie_chart('pie\n  "A" : 1.5\n  "B" : 0.5')
        assert "1.5 (75.0%)" in output
        assert "Total: 2" in output

    def test_max_width(self):
        layout = layout_pie(parse_pie_chart(PETS))
        with pytest.raises(RenderError):
            render_pie(layout, RenderOptions(max_width=20))


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value, text",
        [(100.0, "100"), (1.5, "1.5"), (0.0, "0"), (2.25, "2.25"), (1 / 3, "0.333333")],
    )
    def test_format(self, value, text):
        assert format_number(value) == text
