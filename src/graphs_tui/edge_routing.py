from __future__ import annotations

# ============================================================================
# Edge routing -- orthogonal polylines over a layered placement
#
# Works in canonical coordinates: ``p`` runs along the flow (layer after
# layer), ``s`` across it. layout.py maps (p, s) onto (x, y) for the real
# direction afterwards.
#
# Every edge leaves its source through the side facing the flow (p_end + 1)
# and enters its target from the opposite side (p - 1):
#
#   straight  adjacent layers, same slot row/column
#   elbow     adjacent layers, one bend in a channel of the gap between them
#   near      spans several layers; runs along a lane before the first node
#   far       back edge or self-loop; runs along a lane past the last node
#
# Gap k lies between layer k and k + 1. Gap -1 (leading) and gap L - 1
# (trailing) only exist when back edges need them.
# ============================================================================

from dataclasses import dataclass, field
from typing import Literal

from .types import Edge

RouteKind = Literal["straight", "elbow", "near", "far"]
Bend = Literal["exit", "entry"]

LANE_SPACING = 2

_SIDE_RANK: dict[RouteKind, int] = {"near": 0, "straight": 1, "elbow": 1, "far": 2}


@dataclass(slots=True)
class CanonicalNode:
    id: str
    layer: int
    order: int
    plen: int
    slen: int
    s: int = 0
    p: int = 0

    @property
    def s_end(self) -> int:
        return self.s + self.slen - 1

    @property
    def p_end(self) -> int:
        return self.p + self.plen - 1

    @property
    def s_center(self) -> int:
        return self.s + self.slen // 2


@dataclass(slots=True)
class EdgePlan:
    index: int
    edge: Edge
    kind: RouteKind
    from_layer: int
    to_layer: int
    exit_s: int = 0
    entry_s: int = 0
    lane: int | None = None
    lane_s: int = 0
    # Bend -> (gap, position within the gap). Elbows only have an exit bend.
    channels: dict[Bend, tuple[int, int]] = field(default_factory=dict)

    @property
    def back(self) -> bool:
        return self.kind == "far"


@dataclass(slots=True)
class RoutePlan:
    edges: list[EdgePlan]
    # gap index -> number of channels requested in it
    gap_channels: dict[int, int]


def plan_routes(
    edges: list[Edge],
    nodes: dict[str, CanonicalNode],
    s_min: int,
    s_max: int,
) -> RoutePlan:
    """Classify edges, pick attachment slots, lanes and channels.

    Needs final ``s`` positions; ``p`` positions are not known yet because
    gap widths depend on the channel counts computed here.
    """
    plans: list[EdgePlan] = []
    for index, edge in enumerate(edges):
        src = nodes[edge.source]
        tgt = nodes[edge.target]
        if edge.source == edge.target or tgt.layer <= src.layer:
            kind: RouteKind = "far"
        elif tgt.layer - src.layer == 1:
            kind = "straight"
        else:
            kind = "near"
        plans.append(EdgePlan(index, edge, kind, src.layer, tgt.layer))

    _assign_slots(plans, nodes)

    for plan in plans:
        if plan.kind == "straight" and plan.exit_s != plan.entry_s:
            plan.kind = "elbow"

    _assign_lanes(plans, s_min, s_max)
    gap_channels = _assign_channels(plans)
    return RoutePlan(plans, gap_channels)


# ============================================================================
# Attachment slots
# ============================================================================


def _assign_slots(plans: list[EdgePlan], nodes: dict[str, CanonicalNode]) -> None:
    outgoing: dict[str, list[EdgePlan]] = {nid: [] for nid in nodes}
    incoming: dict[str, list[EdgePlan]] = {nid: [] for nid in nodes}
    for plan in plans:
        outgoing[plan.edge.source].append(plan)
        incoming[plan.edge.target].append(plan)

    for nid, node in nodes.items():
        outs = sorted(
            outgoing[nid],
            key=lambda e: (_SIDE_RANK[e.kind], nodes[e.edge.target].s_center, e.index),
        )
        for plan, s in zip(outs, spread_slots(node, len(outs))):
            plan.exit_s = s

        ins = sorted(
            incoming[nid],
            key=lambda e: (_SIDE_RANK[e.kind], nodes[e.edge.source].s_center, e.index),
        )
        for plan, s in zip(ins, spread_slots(node, len(ins))):
            plan.entry_s = s


def spread_slots(node: CanonicalNode, count: int) -> list[int]:
    """Spread ``count`` attachment points over the interior of a node side."""
    if count == 0:
        return []
    if count == 1:
        return [node.s_center]
    interior = max(node.slen - 2, 1)
    return [node.s + 1 + (2 * i + 1) * interior // (2 * count) for i in range(count)]


# ============================================================================
# Lanes -- one per long or backward edge, stacked outward from the diagram
# ============================================================================


def _assign_lanes(plans: list[EdgePlan], s_min: int, s_max: int) -> None:
    def lane_order(plan: EdgePlan) -> tuple[int, int, int]:
        return (plan.from_layer, plan.to_layer, plan.index)

    near = sorted((p for p in plans if p.kind == "near"), key=lane_order)
    for lane, plan in enumerate(near):
        plan.lane = lane
        plan.lane_s = s_min - LANE_SPACING * (lane + 1)

    far = sorted((p for p in plans if p.kind == "far"), key=lane_order)
    for lane, plan in enumerate(far):
        plan.lane = lane
        plan.lane_s = s_max + LANE_SPACING * (lane + 1)


# ============================================================================
# Channels -- bend positions inside the gaps between layers
# ============================================================================


def _assign_channels(plans: list[EdgePlan]) -> dict[int, int]:
    # Within a gap: lane exits first (innermost lane nearest the source),
    # then elbows, then lane entries (innermost lane nearest the target).
    # A back edge enters through a gap that lies before its exit gap.
    requests: dict[int, list[tuple[tuple[int, int, int], EdgePlan, Bend]]] = {}

    def request(gap: int, key: tuple[int, int, int], plan: EdgePlan, bend: Bend) -> None:
        requests.setdefault(gap, []).append((key, plan, bend))

    for plan in plans:
        if plan.kind == "elbow":
            request(plan.from_layer, (1, plan.index, 0), plan, "exit")
        elif plan.kind in ("near", "far"):
            assert plan.lane is not None
            kind_rank = 0 if plan.kind == "near" else 1
            request(plan.from_layer, (0, plan.lane, kind_rank), plan, "exit")
            request(plan.to_layer - 1, (2, -plan.lane, kind_rank), plan, "entry")

    gap_channels: dict[int, int] = {}
    for gap in sorted(requests):
        ordered = sorted(requests[gap], key=lambda item: item[0])
        gap_channels[gap] = len(ordered)
        for position, (_, plan, bend) in enumerate(ordered):
            plan.channels[bend] = (gap, position)
    return gap_channels


# ============================================================================
# Polylines
# ============================================================================


def build_polyline(
    plan: EdgePlan,
    nodes: dict[str, CanonicalNode],
    channel_p: dict[tuple[int, int], int],
) -> list[tuple[int, int]]:
    """Return the (p, s) corner points of an edge, first and last cell included."""
    src = nodes[plan.edge.source]
    tgt = nodes[plan.edge.target]
    start = (src.p_end + 1, plan.exit_s)
    end = (tgt.p - 1, plan.entry_s)

    if plan.kind == "straight":
        points = [start, end]
    elif plan.kind == "elbow":
        c = channel_p[plan.channels["exit"]]
        points = [start, (c, plan.exit_s), (c, plan.entry_s), end]
    else:
        c1 = channel_p[plan.channels["exit"]]
        c2 = channel_p[plan.channels["entry"]]
        points = [
            start,
            (c1, plan.exit_s),
            (c1, plan.lane_s),
            (c2, plan.lane_s),
            (c2, plan.entry_s),
            end,
        ]
    return merge_path(points)


def merge_path(points: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Drop repeated points and the middle of collinear runs."""
    deduped: list[tuple[int, int]] = []
    for point in points:
        if not deduped or deduped[-1] != point:
            deduped.append(point)
    if len(deduped) <= 2:
        return deduped

    merged = [deduped[0]]
    for i in range(1, len(deduped) - 1):
        a, b, c = merged[-1], deduped[i], deduped[i + 1]
        if (a[0] == b[0] == c[0]) or (a[1] == b[1] == c[1]):
            continue
        merged.append(b)
    merged.append(deduped[-1])
    return merged
