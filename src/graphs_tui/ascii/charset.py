from __future__ import annotations

# ============================================================================
# Glyph sets -- Unicode box-drawing or plain ASCII
#
# Output never mixes the two: every glyph the renderers draw comes from the
# selected CharSet.
# ============================================================================

from dataclasses import dataclass

from ..types import EdgeStyle
from .types import Direction, Down, Left, Right, Up


@dataclass(frozen=True, slots=True)
class CharSet:
    ascii: bool
    # Light lines and corners
    horizontal: str
    vertical: str
    top_left: str
    top_right: str
    bottom_left: str
    bottom_right: str
    # Rounded corners
    round_top_left: str
    round_top_right: str
    round_bottom_left: str
    round_bottom_right: str
    # Junctions, named by the side the stem points to
    tee_right: str   # ├
    tee_left: str    # ┤
    tee_down: str    # ┬
    tee_up: str      # ┴
    cross: str
    # Edge styles
    dotted_horizontal: str
    dotted_vertical: str
    thick_horizontal: str
    thick_vertical: str
    thick_top_left: str
    thick_top_right: str
    thick_bottom_left: str
    thick_bottom_right: str
    # Arrowheads
    arrow_up: str
    arrow_down: str
    arrow_left: str
    arrow_right: str
    # State markers
    start_marker: str
    end_marker: str
    # Pie bars
    bar_filled: str
    bar_empty: str
    bar_marker: str

    def arrow(self, direction: Direction) -> str:
        """Arrowhead pointing in ``direction``."""
        if direction == Up:
            return self.arrow_up
        if direction == Down:
            return self.arrow_down
        if direction == Left:
            return self.arrow_left
        return self.arrow_right

    def tee(self, stem: Direction) -> str:
        """Border tee whose stem points in ``stem``."""
        if stem == Right:
            return self.tee_right
        if stem == Left:
            return self.tee_left
        if stem == Down:
            return self.tee_down
        return self.tee_up

    def line(self, dirs: frozenset[Direction], style: EdgeStyle = "solid") -> str:
        """Glyph for a cell connected towards each direction in ``dirs``."""
        up, down, left, right = Up in dirs, Down in dirs, Left in dirs, Right in dirs
        count = up + down + left + right

        if count == 4:
            return self.cross
        if count == 3:
            if not up:
                return self.tee_down
            if not down:
                return self.tee_up
            if not left:
                return self.tee_right
            return self.tee_left

        vertical_only = (up or down) and not (left or right)
        horizontal_only = (left or right) and not (up or down)
        if vertical_only:
            if style == "dotted":
                return self.dotted_vertical
            if style == "thick":
                return self.thick_vertical
            return self.vertical
        if horizontal_only:
            if style == "dotted":
                return self.dotted_horizontal
            if style == "thick":
                return self.thick_horizontal
            return self.horizontal
        if count == 0:
            return " "

        thick = style == "thick"
        if down and right:
            return self.thick_top_left if thick else self.top_left
        if down and left:
            return self.thick_top_right if thick else self.top_right
        if up and right:
            return self.thick_bottom_left if thick else self.bottom_left
        return self.thick_bottom_right if thick else self.bottom_right


UNICODE = CharSet(
    ascii=False,
    horizontal="─",
    vertical="│",
    top_left="┌",
    top_right="┐",
    bottom_left="└",
    bottom_right="┘",
    round_top_left="╭",
    round_top_right="╮",
    round_bottom_left="╰",
    round_bottom_right="╯",
    tee_right="├",
    tee_left="┤",
    tee_down="┬",
    tee_up="┴",
    cross="┼",
    dotted_horizontal="┄",
    dotted_vertical="┆",
    thick_horizontal="━",
    thick_vertical="┃",
    thick_top_left="┏",
    thick_top_right="┓",
    thick_bottom_left="┗",
    thick_bottom_right="┛",
    arrow_up="▲",
    arrow_down="▼",
    arrow_left="◀",
    arrow_right="▶",
    start_marker="●",
    end_marker="◉",
    bar_filled="█",
    bar_empty="░",
    bar_marker="▏",
)

ASCII = CharSet(
    ascii=True,
    horizontal="-",
    vertical="|",
    top_left="+",
    top_right="+",
    bottom_left="+",
    bottom_right="+",
    round_top_left=".",
    round_top_right=".",
    round_bottom_left="'",
    round_bottom_right="'",
    tee_right="+",
    tee_left="+",
    tee_down="+",
    tee_up="+",
    cross="+",
    dotted_horizontal=".",
    dotted_vertical=":",
    thick_horizontal="=",
    thick_vertical="#",
    thick_top_left="+",
    thick_top_right="+",
    thick_bottom_left="+",
    thick_bottom_right="+",
    arrow_up="^",
    arrow_down="v",
    arrow_left="<",
    arrow_right=">",
    start_marker="*",
    end_marker="@",
    bar_filled="#",
    bar_empty=".",
    bar_marker=":",
)


def charset_for(use_ascii: bool) -> CharSet:
    return ASCII if use_ascii else UNICODE
