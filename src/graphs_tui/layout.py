from __future__ import annotations

import heapq
import logging
import threading
from dataclasses import dataclass

from grandalf.graphs import Edge as GEdge, Graph as GGraph, Vertex

from .edge_routing import CanonicalNode, build_polyline, plan_routes
from .errors import LayoutError
from .types import (
    ContainerBox,
    DiagramGraph,
    Layout,
    Node,
    PlacedNode,
    Point,
    RenderOptions,
    RoutedEdge,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Layered layout for flowcharts, state diagrams and D2
#
# 1. Size every node from its label.
# 2. Break cycles (grandalf's Tarjan pass marks feedback edges) and assign
#    longest-path layers over what remains.
# 3. Stack nodes of a layer across the flow, one band per container.
# 4. Plan edge routes (edge_routing), size the gaps between layers to fit
#    them, then fix positions along the flow.
# 5. Normalise and map canonical (p, s) coordinates onto the real direction.
# ============================================================================

NODE_HEIGHT = 3
CYLINDER_HEIGHT = 4
MIN_NODE_WIDTH = 5
MARKER_WIDTH = 5
MIN_GAP = 3
CONTAINER_MARGIN = 2  # blank cell + border

# Spacing between siblings of a layer, across the flow
SIBLING_SPACING_HORIZONTAL = 3
SIBLING_SPACING_VERTICAL = 1

_WIDE_SHAPES = ("circle", "diamond", "stadium", "hexagon")

# grandalf keeps Tarjan state on the Vertex class and resets the recursion
# limit on every call; one pass at a time.
_feedback_lock = threading.Lock()


def node_size(node: Node, box_border_padding: int = 1) -> tuple[int, int]:
    """Return (width, height) of a node box in character cells."""
    if node.shape in ("state-start", "state-end"):
        return MARKER_WIDTH, NODE_HEIGHT
    width = len(node.label) + 2 + 2 * box_border_padding
    if node.shape in _WIDE_SHAPES:
        width += 2
    height = CYLINDER_HEIGHT if node.shape == "cylinder" else NODE_HEIGHT
    return max(width, MIN_NODE_WIDTH), height


def compute_layout(graph: DiagramGraph, options: RenderOptions | None = None) -> Layout:
    """Place nodes on integer cells and route every edge.

    Raises LayoutError for an empty graph or one that cannot be layered.
    """
    opts = options or RenderOptions()
    graph.validate()
    if not graph.nodes:
        raise LayoutError("empty graph: nothing to lay out")

    layers = assign_layers(graph)
    horizontal = graph.direction in ("LR", "RL")
    base_gap = max(opts.padding_x if horizontal else opts.padding_y, MIN_GAP)

    layout = _build(graph, layers, opts, base_gap, compact=False)
    if opts.max_width is not None and layout.width > opts.max_width:
        logger.debug(
            "layout width %d exceeds max_width %d, compacting gaps", layout.width, opts.max_width
        )
        layout = _build(graph, layers, opts, MIN_GAP, compact=True)
    return layout


# ============================================================================
# Layering
# ============================================================================


def assign_layers(graph: DiagramGraph) -> dict[str, int]:
    """Longest-path layers after removing feedback edges.

    Depth-first search starts from sources in first-seen order, then from the
    remaining nodes in first-seen order, so the first-declared node of a
    cycle with no entry point lands on the earliest layer.
    """
    order = list(graph.nodes)
    index = {nid: i for i, nid in enumerate(order)}

    vertices = {nid: Vertex(nid) for nid in order}
    g_edges = [
        GEdge(vertices[e.source], vertices[e.target], data=e)
        for e in graph.edges
        if e.source != e.target
    ]
    g = GGraph(list(vertices.values()), g_edges)

    targets = {ge.data.target for ge in g_edges}
    with _feedback_lock:
        for component in g.C:
            members = sorted(component.sV, key=lambda v: index[v.data])
            roots = [v for v in members if v.data not in targets]
            roots += [v for v in members if v.data in targets]
            component.get_scs_with_feedback(roots)

    dag_edges = [ge.data for ge in g_edges if not getattr(ge, "feedback", False)]
    logger.debug("removed %d feedback edges", len(g_edges) - len(dag_edges))

    successors: dict[str, list[str]] = {nid: [] for nid in order}
    indegree = {nid: 0 for nid in order}
    for e in dag_edges:
        successors[e.source].append(e.target)
        indegree[e.target] += 1

    layers = {nid: 0 for nid in order}
    ready = [index[nid] for nid in order if indegree[nid] == 0]
    heapq.heapify(ready)
    processed = 0
    while ready:
        nid = order[heapq.heappop(ready)]
        processed += 1
        for target in successors[nid]:
            layers[target] = max(layers[target], layers[nid] + 1)
            indegree[target] -= 1
            if indegree[target] == 0:
                heapq.heappush(ready, index[target])

    if processed != len(order):
        raise LayoutError("could not break every cycle into layers")

    if graph.kind == "state":
        _pin_state_markers(graph, layers)
    return layers


def _pin_state_markers(graph: DiagramGraph, layers: dict[str, int]) -> None:
    """Start markers on the first layer, end markers past every other node."""
    ends = [nid for nid, n in graph.nodes.items() if n.shape == "state-end"]
    others = [layers[nid] for nid, n in graph.nodes.items() if n.shape != "state-end"]
    last = max(others, default=-1) + 1
    for nid, node in graph.nodes.items():
        if node.shape == "state-start":
            layers[nid] = 0
    for nid in ends:
        layers[nid] = last


# ============================================================================
# Placement
# ============================================================================


@dataclass(slots=True)
class _Band:
    container_id: str | None
    members: list[str]


def _build(
    graph: DiagramGraph,
    layers: dict[str, int],
    opts: RenderOptions,
    base_gap: int,
    compact: bool,
) -> Layout:
    horizontal = graph.direction in ("LR", "RL")
    layer_count = max(layers.values()) + 1
    order = {nid: i for i, nid in enumerate(graph.nodes)}

    # --- sizes in canonical orientation ---
    nodes: dict[str, CanonicalNode] = {}
    for nid, node in graph.nodes.items():
        width, height = node_size(node, opts.box_border_padding)
        plen, slen = (width, height) if horizontal else (height, width)
        nodes[nid] = CanonicalNode(nid, layers[nid], 0, plen, slen)

    # --- across the flow: bands ---
    if horizontal:
        spacing = SIBLING_SPACING_VERTICAL
    else:
        spacing = 1 if compact else SIBLING_SPACING_HORIZONTAL
    container_s = _place_bands(graph, nodes, order, layer_count, spacing, horizontal)

    s_min = min([n.s for n in nodes.values()] + [lo for lo, _ in container_s.values()])
    s_max = max([n.s_end for n in nodes.values()] + [hi for _, hi in container_s.values()])

    # --- routes, then gaps along the flow ---
    plan = plan_routes(graph.edges, nodes, s_min, s_max)
    thickness = [0] * layer_count
    for n in nodes.values():
        thickness[n.layer] = max(thickness[n.layer], n.plen)

    container_layers: list[tuple[int, int]] = []
    for container in graph.containers:
        member_layers = [layers[m] for m in container.members]
        if member_layers:
            container_layers.append((min(member_layers), max(member_layers)))

    label_need: dict[int, int] = {}
    if horizontal:
        for ep in plan.edges:
            if ep.kind in ("straight", "elbow") and ep.edge.label:
                label_need[ep.from_layer] = max(
                    label_need.get(ep.from_layer, 0), len(ep.edge.label) + 4
                )

    channel_p: dict[tuple[int, int], int] = {}
    band_start: list[int] = [0] * layer_count
    cursor = 0
    for gap in range(-1, layer_count):
        channels = plan.gap_channels.get(gap, 0)
        before = CONTAINER_MARGIN if any(hi == gap for _, hi in container_layers) else 0
        after = CONTAINER_MARGIN if any(lo == gap + 1 for lo, _ in container_layers) else 0
        if 0 <= gap < layer_count - 1:
            zone = max(base_gap, channels + 2, label_need.get(gap, 0))
        else:
            zone = channels + 2 if channels else 0

        zone_start = cursor + before
        offset = (zone - channels) // 2
        for position in range(channels):
            channel_p[(gap, position)] = zone_start + offset + position
        cursor = zone_start + zone + after

        if gap + 1 < layer_count:
            band_start[gap + 1] = cursor
            cursor += thickness[gap + 1]

    for n in nodes.values():
        n.p = band_start[n.layer] + (thickness[n.layer] - n.plen) // 2

    # --- container boxes (canonical p0, s0, p1, s1, inclusive) ---
    boxes: dict[str, tuple[int, int, int, int]] = {}
    for container in graph.containers:
        if not container.members:
            continue
        members = [nodes[m] for m in container.members]
        p0 = min(m.p for m in members) - CONTAINER_MARGIN
        p1 = max(m.p_end for m in members) + CONTAINER_MARGIN
        if horizontal:
            p1 = max(p1, p0 + len(container.title) + 5)
        s0, s1 = container_s[container.id]
        boxes[container.id] = (p0, s0, p1, s1)

    paths = {ep.index: build_polyline(ep, nodes, channel_p) for ep in plan.edges}

    # --- normalise ---
    all_p = [n.p for n in nodes.values()] + [n.p_end for n in nodes.values()]
    all_s = [n.s for n in nodes.values()] + [n.s_end for n in nodes.values()]
    for p0, s0, p1, s1 in boxes.values():
        all_p += [p0, p1]
        all_s += [s0, s1]
    for points in paths.values():
        all_p += [p for p, _ in points]
        all_s += [s for _, s in points]
    dp, ds = -min(all_p), -min(all_s)
    p_size = max(all_p) + dp + 1
    s_size = max(all_s) + ds + 1

    mapper = _AxisMapper(graph.direction, p_size)

    placed: dict[str, PlacedNode] = {}
    for nid, n in nodes.items():
        node = graph.nodes[nid]
        x, y, w, h = mapper.box(n.p + dp, n.s + ds, n.plen, n.slen)
        placed[nid] = PlacedNode(nid, node.label, node.shape, x, y, w, h, n.layer, n.order)

    routed = []
    for ep in plan.edges:
        points = tuple(Point(*mapper.point(p + dp, s + ds)) for p, s in paths[ep.index])
        routed.append(
            RoutedEdge(
                source=ep.edge.source,
                target=ep.edge.target,
                label=ep.edge.label,
                style=ep.edge.style,
                points=points,
                back=ep.back,
                lane=ep.lane,
            )
        )

    container_boxes: dict[str, ContainerBox] = {}
    for container in graph.containers:
        if container.id not in boxes:
            continue
        p0, s0, p1, s1 = boxes[container.id]
        x, y, w, h = mapper.box(p0 + dp, s0 + ds, p1 - p0 + 1, s1 - s0 + 1)
        container_boxes[container.id] = ContainerBox(container.id, container.title, x, y, w, h)

    width, height = (p_size, s_size) if horizontal else (s_size, p_size)
    logger.debug(
        "laid out %d nodes on %d layers (%d back edges), %dx%d",
        len(placed), layer_count, sum(1 for e in routed if e.back), width, height,
    )
    return Layout(
        kind=graph.kind,
        direction=graph.direction,
        width=width,
        height=height,
        nodes=placed,
        edges=tuple(routed),
        containers=container_boxes,
    )


def _place_bands(
    graph: DiagramGraph,
    nodes: dict[str, CanonicalNode],
    order: dict[str, int],
    layer_count: int,
    spacing: int,
    horizontal: bool,
) -> dict[str, tuple[int, int]]:
    """Fix ``s`` and within-layer ``order`` of every node.

    Returns container id -> (s0, s1) of its border, inclusive.
    """
    owner = {m: c.id for c in graph.containers for m in c.members}
    bands: dict[str | None, _Band] = {}
    for nid in graph.nodes:
        cid = owner.get(nid)
        if cid not in bands:
            bands[cid] = _Band(cid, [])
        bands[cid].members.append(nid)

    titles = {c.id: c.title for c in graph.containers}
    extents: dict[str, tuple[int, int]] = {}
    cursor = 0
    for band in bands.values():
        per_layer: list[list[CanonicalNode]] = [[] for _ in range(layer_count)]
        for nid in band.members:
            per_layer[nodes[nid].layer].append(nodes[nid])

        def stack_extent(stack: list[CanonicalNode]) -> int:
            return sum(n.slen for n in stack) + spacing * max(len(stack) - 1, 0)

        content = max(stack_extent(stack) for stack in per_layer)
        margin = CONTAINER_MARGIN if band.container_id is not None else 0
        if band.container_id is not None and not horizontal:
            content = max(content, len(titles[band.container_id]) + 6 - 2 * margin)

        inner = cursor + margin
        for stack in per_layer:
            s = inner + (content - stack_extent(stack)) // 2
            for n in sorted(stack, key=lambda n: order[n.id]):
                n.s = s
                s += n.slen + spacing
        if band.container_id is not None:
            extents[band.container_id] = (cursor, inner + content - 1 + margin)
        cursor = inner + content + margin + spacing

    by_layer: dict[int, list[CanonicalNode]] = {}
    for n in nodes.values():
        by_layer.setdefault(n.layer, []).append(n)
    for stack in by_layer.values():
        for position, n in enumerate(sorted(stack, key=lambda n: (n.s, order[n.id]))):
            n.order = position
    return extents


# ============================================================================
# Canonical (p, s) -> real (x, y)
# ============================================================================


@dataclass(slots=True)
class _AxisMapper:
    direction: str
    p_size: int

    def point(self, p: int, s: int) -> tuple[int, int]:
        if self.direction in ("RL", "BT"):
            p = self.p_size - 1 - p
        if self.direction in ("LR", "RL"):
            return p, s
        return s, p

    def box(self, p: int, s: int, plen: int, slen: int) -> tuple[int, int, int, int]:
        if self.direction in ("RL", "BT"):
            p = self.p_size - (p + plen)
        if self.direction in ("LR", "RL"):
            return p, s, plen, slen
        return s, p, slen, plen
