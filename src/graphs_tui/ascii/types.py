from __future__ import annotations

# ============================================================================
# Text renderer -- type definitions
#
# The canvas is column-major: canvas[x][y] is the character at column x,
# row y. Directions are unit steps on that grid.
# ============================================================================

from dataclasses import dataclass

from ..types import Point

Canvas = list[list[str]]
"""2D text canvas -- column-major (canvas[x][y]).
Each cell holds a single character (or space)."""


@dataclass(slots=True, frozen=True)
class Direction:
    dx: int
    dy: int

    def step(self, point: Point) -> Point:
        return Point(point.x + self.dx, point.y + self.dy)

    @property
    def opposite(self) -> Direction:
        return Direction(-self.dx, -self.dy)


Up = Direction(dx=0, dy=-1)
Down = Direction(dx=0, dy=1)
Left = Direction(dx=-1, dy=0)
Right = Direction(dx=1, dy=0)

ALL_DIRECTIONS: tuple[Direction, ...] = (Up, Down, Left, Right)


def direction_between(a: Point, b: Point) -> Direction:
    """Unit direction from ``a`` towards ``b`` (which share a row or column)."""
    dx = (b.x > a.x) - (b.x < a.x)
    dy = (b.y > a.y) - (b.y < a.y)
    return Direction(dx, dy)
