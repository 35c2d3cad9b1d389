from __future__ import annotations

# ============================================================================
# Node shape templates
#
# Every shape fills exactly the node's width x height box; the label is
# centered on the label row. Shapes are approximations on a character grid:
#
#   rectangle  ┌─────┐   rounded  ╭─────╮   stadium  ╭─────╮
#              │ Foo │            │ Foo │            ( Foo )
#              └─────┘            ╰─────╯            ╰─────╯
#
#   circle      ╭───╮    diamond   /───\    hexagon  /─────\
#              ( Foo )            < Foo >            │ Foo │
#               ╰───╯              \───/             \─────/
#
#   cylinder   ╭─────╮
#              ├─────┤
#              │ Foo │
#              ╰─────╯
# ============================================================================

from typing import Callable

from ..types import NodeShape, PlacedNode, Point
from .canvas import draw_text, increase_size
from .charset import CharSet
from .types import Canvas


def draw_node(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    """Draw a node's outline and label onto the canvas."""
    increase_size(canvas, node.x + node.width - 1, node.y + node.height - 1)
    _SHAPE_DRAWERS[node.shape](canvas, node, chars)
    text = _label_text(node, chars)
    draw_text(canvas, _label_start(node, text), text)


def label_row(node: PlacedNode) -> int:
    if node.shape == "cylinder":
        return node.y + 2
    return node.y + node.height // 2


def _label_text(node: PlacedNode, chars: CharSet) -> str:
    if node.shape == "state-start":
        return chars.start_marker
    if node.shape == "state-end":
        return chars.end_marker
    return node.label[: max(node.width - 2, 0)]


def _label_start(node: PlacedNode, text: str) -> Point:
    interior = node.width - 2
    return Point(node.x + 1 + (interior - len(text)) // 2, label_row(node))


# ============================================================================
# Outlines
# ============================================================================


def _frame(
    canvas: Canvas,
    node: PlacedNode,
    corners: tuple[str, str, str, str],
    left: str,
    right: str,
    horizontal: str,
    inset: int = 0,
) -> None:
    """Draw a closed outline; ``inset`` pulls the top and bottom rows in."""
    x0, y0 = node.x, node.y
    x1, y1 = node.x + node.width - 1, node.y + node.height - 1
    top_left, top_right, bottom_left, bottom_right = corners

    for x in range(x0 + inset + 1, x1 - inset):
        canvas[x][y0] = horizontal
        canvas[x][y1] = horizontal
    for y in range(y0 + 1, y1):
        canvas[x0][y] = left
        canvas[x1][y] = right
    canvas[x0 + inset][y0] = top_left
    canvas[x1 - inset][y0] = top_right
    canvas[x0 + inset][y1] = bottom_left
    canvas[x1 - inset][y1] = bottom_right


def _draw_rectangle(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    corners = (chars.top_left, chars.top_right, chars.bottom_left, chars.bottom_right)
    _frame(canvas, node, corners, chars.vertical, chars.vertical, chars.horizontal)


def _rounded_corners(chars: CharSet) -> tuple[str, str, str, str]:
    return (
        chars.round_top_left,
        chars.round_top_right,
        chars.round_bottom_left,
        chars.round_bottom_right,
    )


def _draw_rounded(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    _frame(canvas, node, _rounded_corners(chars), chars.vertical, chars.vertical, chars.horizontal)


def _draw_stadium(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    _frame(canvas, node, _rounded_corners(chars), "(", ")", chars.horizontal)


def _draw_circle(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    _frame(canvas, node, _rounded_corners(chars), "(", ")", chars.horizontal, inset=1)


def _draw_diamond(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    _frame(canvas, node, ("/", "\\", "\\", "/"), "<", ">", chars.horizontal, inset=1)


def _draw_hexagon(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    _frame(canvas, node, ("/", "\\", "\\", "/"), chars.vertical, chars.vertical, chars.horizontal)


def _draw_cylinder(canvas: Canvas, node: PlacedNode, chars: CharSet) -> None:
    _draw_rounded(canvas, node, chars)
    seam = node.y + 1
    for x in range(node.x + 1, node.x + node.width - 1):
        canvas[x][seam] = chars.horizontal
    canvas[node.x][seam] = chars.tee_right
    canvas[node.x + node.width - 1][seam] = chars.tee_left


_SHAPE_DRAWERS: dict[NodeShape, Callable[[Canvas, PlacedNode, CharSet], None]] = {
    "rectangle": _draw_rectangle,
    "default": _draw_rectangle,
    "rounded": _draw_rounded,
    "stadium": _draw_stadium,
    "circle": _draw_circle,
    "diamond": _draw_diamond,
    "hexagon": _draw_hexagon,
    "cylinder": _draw_cylinder,
    "state-start": _draw_circle,
    "state-end": _draw_circle,
}
