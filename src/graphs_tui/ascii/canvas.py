from __future__ import annotations

# ============================================================================
# Text renderer -- 2D text canvas
#
# The canvas is a column-major 2D array of single-character strings.
# canvas[x][y] gives the character at column x, row y.
# ============================================================================

from ..errors import RenderError
from ..types import Point
from .types import Canvas


def mk_canvas(x: int, y: int) -> Canvas:
    """Create a blank canvas filled with spaces.

    Dimensions are inclusive: mk_canvas(3, 2) creates a 4x3 grid
    (indices 0..3, 0..2).
    """
    canvas: Canvas = []
    for _ in range(x + 1):
        col: list[str] = [" "] * (y + 1)
        canvas.append(col)
    return canvas


def get_canvas_size(canvas: Canvas) -> tuple[int, int]:
    """Return (max_x, max_y) -- the highest valid indices in each dimension."""
    max_x = len(canvas) - 1
    max_y = (len(canvas[0]) if canvas else 1) - 1
    return (max_x, max_y)


def increase_size(canvas: Canvas, new_x: int, new_y: int) -> Canvas:
    """Grow the canvas to fit at least (new_x, new_y), preserving content.

    Mutates the canvas in place and returns it.
    """
    curr_x, curr_y = get_canvas_size(canvas)
    if new_x <= curr_x and new_y <= curr_y:
        return canvas
    for col in canvas:
        col.extend([" "] * max(new_y - curr_y, 0))
    height = max(new_y, curr_y) + 1
    for _ in range(max(new_x - curr_x, 0)):
        canvas.append([" "] * height)
    return canvas


def get_cell(canvas: Canvas, point: Point) -> str:
    if 0 <= point.x < len(canvas) and canvas and 0 <= point.y < len(canvas[0]):
        return canvas[point.x][point.y]
    return " "


def draw_text(canvas: Canvas, start: Point, text: str) -> None:
    """Draw text string onto the canvas starting at the given coordinate."""
    increase_size(canvas, start.x + len(text) - 1, start.y)
    for i, ch in enumerate(text):
        canvas[start.x + i][start.y] = ch


# ============================================================================
# Canvas -> string conversion
# ============================================================================


def canvas_to_string(canvas: Canvas) -> str:
    """Convert the canvas to a multi-line string (row by row, left to right).

    Trailing spaces are dropped from every row.
    """
    max_x, max_y = get_canvas_size(canvas)
    lines: list[str] = []
    for y in range(max_y + 1):
        line = "".join(canvas[x][y] for x in range(max_x + 1))
        lines.append(line.rstrip())
    return "\n".join(lines)


def ensure_fits(text: str, max_width: int | None) -> str:
    """Raise RenderError if any line of ``text`` is wider than ``max_width``."""
    if max_width is None:
        return text
    width = max((len(line) for line in text.split("\n")), default=0)
    if width > max_width:
        raise RenderError("diagram exceeds max width", width=width, max_width=max_width)
    return text
