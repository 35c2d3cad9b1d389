from __future__ import annotations

# ============================================================================
# Text renderer -- drawing a Layout onto a canvas
#
# Lines are not drawn glyph by glyph. Every cell first collects the
# directions it connects to, across all edges and container borders; the
# glyph is then picked from that set, so overlaps resolve to the right
# corner, tee or cross regardless of drawing order.
#
# Draw order: line cells, nodes, arrowheads and border tees, container
# labels, edge labels.
# ============================================================================

from dataclasses import dataclass, field

from ..types import ContainerBox, EdgeStyle, Layout, PlacedNode, Point, RoutedEdge
from .canvas import draw_text, get_cell, increase_size, mk_canvas
from .charset import CharSet
from .shapes import draw_node
from .types import ALL_DIRECTIONS, Canvas, Direction, Down, Left, Right, Up, direction_between


@dataclass(slots=True)
class _Cell:
    style: EdgeStyle
    dirs: set[Direction] = field(default_factory=set)


@dataclass(slots=True)
class _Rect:
    x: int
    y: int
    width: int
    height: int

    def overlaps(self, other: _Rect) -> bool:
        return (
            self.x < other.x + other.width
            and other.x < self.x + self.width
            and self.y < other.y + other.height
            and other.y < self.y + self.height
        )


def draw_layout(layout: Layout, chars: CharSet) -> Canvas:
    """Draw every container, edge and node of ``layout``."""
    canvas = mk_canvas(max(layout.width - 1, 0), max(layout.height - 1, 0))

    cells: dict[Point, _Cell] = {}
    for box in layout.containers.values():
        _add_container_border(cells, box)
    edge_cells = [_add_edge(cells, edge, layout) for edge in layout.edges]

    for point, cell in cells.items():
        increase_size(canvas, point.x, point.y)
        canvas[point.x][point.y] = chars.line(frozenset(cell.dirs), cell.style)

    for node in layout.nodes.values():
        draw_node(canvas, node, chars)

    for edge, path in zip(layout.edges, edge_cells):
        _draw_edge_ends(canvas, edge, path, layout, chars)

    for box in layout.containers.values():
        _draw_container_label(canvas, box)

    _draw_edge_labels(canvas, layout, set(cells))
    return canvas


# ============================================================================
# Line cells
# ============================================================================


def expand_path(points: tuple[Point, ...]) -> list[Point]:
    """Every cell along a polyline of axis-aligned segments, in order."""
    if not points:
        return []
    cells = [points[0]]
    for a, b in zip(points, points[1:]):
        step = direction_between(a, b)
        current = a
        while current != b:
            current = step.step(current)
            cells.append(current)
    return cells


def _toward(point: Point, node: PlacedNode) -> Direction:
    """Direction from ``point`` to the neighbouring cell inside ``node``."""
    for direction in ALL_DIRECTIONS:
        neighbour = direction.step(point)
        if node.contains(neighbour.x, neighbour.y):
            return direction
    # Not adjacent: use the side the node lies on.
    if point.x < node.x:
        return Right
    if point.x >= node.x + node.width:
        return Left
    return Down if point.y < node.y else Up


def _add_edge(cells: dict[Point, _Cell], edge: RoutedEdge, layout: Layout) -> list[Point]:
    path = expand_path(edge.points)
    if not path:
        return path
    source = layout.nodes[edge.source]
    target = layout.nodes[edge.target]
    last = len(path) - 1
    for i, point in enumerate(path):
        cell = cells.setdefault(point, _Cell(edge.style))
        if i > 0:
            cell.dirs.add(direction_between(point, path[i - 1]))
        if i < last:
            cell.dirs.add(direction_between(point, path[i + 1]))
        if i == 0:
            cell.dirs.add(_toward(point, source))
        if i == last:
            cell.dirs.add(_toward(point, target))
    return path


def _add_container_border(cells: dict[Point, _Cell], box: ContainerBox) -> None:
    x0, y0 = box.x, box.y
    x1, y1 = box.x + box.width - 1, box.y + box.height - 1
    for x in range(x0, x1 + 1):
        for y in (y0, y1):
            cell = cells.setdefault(Point(x, y), _Cell("solid"))
            if x > x0:
                cell.dirs.add(Left)
            if x < x1:
                cell.dirs.add(Right)
    for y in range(y0, y1 + 1):
        for x in (x0, x1):
            cell = cells.setdefault(Point(x, y), _Cell("solid"))
            if y > y0:
                cell.dirs.add(Up)
            if y < y1:
                cell.dirs.add(Down)


# ============================================================================
# Arrowheads and border tees
# ============================================================================


def _draw_edge_ends(
    canvas: Canvas,
    edge: RoutedEdge,
    path: list[Point],
    layout: Layout,
    chars: CharSet,
) -> None:
    if not path:
        return
    source = layout.nodes[edge.source]
    target = layout.nodes[edge.target]
    start, end = path[0], path[-1]
    into_source = _toward(start, source)
    into_target = _toward(end, target)

    if edge.style == "line":
        _draw_tee(canvas, end, into_target, chars)
    else:
        canvas[end.x][end.y] = chars.arrow(into_target)

    if edge.style == "bidirectional":
        if start != end:
            canvas[start.x][start.y] = chars.arrow(into_source)
    else:
        _draw_tee(canvas, start, into_source, chars)


def _draw_tee(canvas: Canvas, point: Point, into_node: Direction, chars: CharSet) -> None:
    """Turn the border cell an edge attaches to into a tee (Unicode only)."""
    if chars.ascii:
        return
    border = into_node.step(point)
    if get_cell(canvas, border) in (chars.vertical, chars.horizontal):
        canvas[border.x][border.y] = chars.tee(into_node.opposite)


# ============================================================================
# Labels
# ============================================================================


def _draw_container_label(canvas: Canvas, box: ContainerBox) -> None:
    room = box.width - 4
    if room < 3 or not box.label:
        return
    text = f" {box.label} "
    if len(text) > room:
        text = text[:room]
    draw_text(canvas, Point(box.x + 2, box.y), text)


def _longest_segment(edge: RoutedEdge) -> tuple[Point, Point]:
    points = edge.points
    if len(points) < 2:
        return points[0], points[0]
    best = (points[0], points[1])
    best_len = -1
    for a, b in zip(points, points[1:]):
        length = abs(a.x - b.x) + abs(a.y - b.y)
        if length > best_len:
            best, best_len = (a, b), length
    return best


def _label_candidates(edge: RoutedEdge, text: str) -> list[Point]:
    a, b = _longest_segment(edge)
    mx, my = (a.x + b.x) // 2, (a.y + b.y) // 2
    n = len(text)
    if a.x == b.x and a.y != b.y:
        return [
            Point(mx + 2, my),
            Point(mx - n - 1, my),
            Point(mx + 2, my + 1),
            Point(mx + 2, my - 1),
        ]
    x = mx - n // 2
    return [Point(x, my - 1), Point(x, my + 1), Point(x, my - 2), Point(x, my + 2)]


def _draw_edge_labels(canvas: Canvas, layout: Layout, line_cells: set[Point]) -> None:
    node_rects = [_Rect(n.x, n.y, n.width, n.height) for n in layout.nodes.values()]
    placed: list[_Rect] = []

    for edge in layout.edges:
        if not edge.label or not edge.points:
            continue
        text = edge.label
        candidates = [c for c in _label_candidates(edge, text) if c.x >= 0 and c.y >= 0]
        if not candidates:
            candidates = [Point(max(c.x, 0), max(c.y, 0)) for c in _label_candidates(edge, text)]

        def clear_of_boxes(c: Point) -> bool:
            rect = _Rect(c.x, c.y, len(text), 1)
            return not any(rect.overlaps(r) for r in node_rects + placed)

        def clear_of_lines(c: Point) -> bool:
            return all(Point(c.x + i, c.y) not in line_cells for i in range(len(text)))

        choice = next((c for c in candidates if clear_of_boxes(c) and clear_of_lines(c)), None)
        if choice is None:
            choice = next((c for c in candidates if clear_of_boxes(c)), candidates[0])

        draw_text(canvas, choice, text)
        placed.append(_Rect(choice.x, choice.y, len(text), 1))
