from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .errors import DiagramError

# ============================================================================
# Closed sets
# ============================================================================

DiagramKind = Literal["flowchart", "state", "pie", "d2"]

DiagramFormat = Literal["mermaid", "d2"]

Direction = Literal["LR", "RL", "TB", "BT"]

NodeShape = Literal[
    "rectangle",
    "rounded",
    "circle",
    "diamond",
    "cylinder",
    "stadium",
    "hexagon",
    "state-start",    # filled dot
    "state-end",      # bullseye
    "default",        # no explicit shape given; drawn as a rectangle
]

EdgeStyle = Literal["solid", "dotted", "thick", "line", "bidirectional"]


# ============================================================================
# Parsed graph -- format-independent structure shared by every parser
# ============================================================================


@dataclass(slots=True)
class Node:
    id: str
    label: str
    shape: NodeShape = "default"


@dataclass(slots=True)
class Edge:
    source: str
    target: str
    label: str | None = None
    style: EdgeStyle = "solid"


@dataclass(slots=True)
class Container:
    id: str
    label: str | None = None
    members: list[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.label if self.label is not None else self.id


@dataclass(slots=True)
class DiagramGraph:
    """Nodes, edges and one level of containers.

    ``nodes`` keeps first-seen order. Replacing the value for an existing key
    keeps its position, which gives last-write-wins label/shape updates
    without disturbing the ordering used by the layout.
    """

    kind: DiagramKind
    direction: Direction = "TB"
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    containers: list[Container] = field(default_factory=list)
    title: str | None = None

    def container_of(self, node_id: str) -> str | None:
        for container in self.containers:
            if node_id in container.members:
                return container.id
        return None

    def validate(self) -> None:
        """Raise DiagramError if any reference points outside the graph."""
        for edge in self.edges:
            for end in (edge.source, edge.target):
                if end not in self.nodes:
                    raise DiagramError(
                        f"edge {edge.source} -> {edge.target} references unknown node '{end}'"
                    )
        owner: dict[str, str] = {}
        for container in self.containers:
            for member in container.members:
                if member not in self.nodes:
                    raise DiagramError(
                        f"container '{container.id}' references unknown node '{member}'"
                    )
                if member in owner and owner[member] != container.id:
                    raise DiagramError(
                        f"node '{member}' belongs to both '{owner[member]}' and '{container.id}'"
                    )
                owner[member] = container.id


@dataclass(slots=True)
class PieSlice:
    label: str
    value: float


@dataclass(slots=True)
class PieChart:
    title: str | None = None
    slices: list[PieSlice] = field(default_factory=list)

    @property
    def kind(self) -> DiagramKind:
        return "pie"


# ============================================================================
# Laid-out graph -- integer character-cell geometry, ready for the renderer
# ============================================================================


@dataclass(frozen=True, slots=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class PlacedNode:
    id: str
    label: str
    shape: NodeShape
    x: int
    y: int
    width: int
    height: int
    layer: int
    order: int

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height


@dataclass(frozen=True, slots=True)
class RoutedEdge:
    source: str
    target: str
    label: str | None
    style: EdgeStyle
    # Cells from the one next to the source border to the one next to the
    # target border; consecutive points share a row or a column.
    points: tuple[Point, ...]
    back: bool = False
    lane: int | None = None


@dataclass(frozen=True, slots=True)
class ContainerBox:
    id: str
    label: str
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Layout:
    kind: DiagramKind
    direction: Direction
    width: int
    height: int
    nodes: dict[str, PlacedNode]
    edges: tuple[RoutedEdge, ...]
    containers: dict[str, ContainerBox]

    @property
    def node_positions(self) -> dict[str, tuple[int, int]]:
        """Node id -> (row, col) of the top-left corner."""
        return {nid: (n.y, n.x) for nid, n in self.nodes.items()}

    @property
    def node_sizes(self) -> dict[str, tuple[int, int]]:
        """Node id -> (width, height)."""
        return {nid: (n.width, n.height) for nid, n in self.nodes.items()}

    @property
    def edge_paths(self) -> list[list[tuple[int, int]]]:
        """Edge polylines as (row, col) points, in edge order."""
        return [[(p.y, p.x) for p in e.points] for e in self.edges]

    @property
    def container_boxes(self) -> dict[str, tuple[int, int, int, int]]:
        """Container id -> (row, col, width, height)."""
        return {cid: (c.y, c.x, c.width, c.height) for cid, c in self.containers.items()}


# ============================================================================
# Render options
# ============================================================================


@dataclass(slots=True)
class RenderOptions:
    """Options shared by every entry point."""

    # true = ASCII chars (+,-,|,>), false = Unicode box-drawing. Default: false
    ascii: bool = False
    # Fail with RenderError when the output is wider than this. Default: no limit
    max_width: int | None = None
    # Gap between layers of a left-right flow. Default: 5
    padding_x: int = 5
    # Gap between layers of a top-bottom flow. Default: 3
    padding_y: int = 3
    # Padding inside node boxes. Default: 1
    box_border_padding: int = 1
