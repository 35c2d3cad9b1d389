from __future__ import annotations

import logging
import math
import re

from .errors import ParseError
from .types import (
    Container,
    DiagramGraph,
    Direction,
    Edge,
    EdgeStyle,
    Node,
    NodeShape,
    PieChart,
    PieSlice,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Mermaid parser -- flowcharts, state diagrams and pie charts
# ============================================================================

Statement = tuple[int, str]
"""(1-based source line, trimmed statement text)"""

_FLOWCHART_HEADER = re.compile(r"^(?:graph|flowchart)\s+(LR|RL|TB|TD|BT)\s*$", re.IGNORECASE)
_FLOWCHART_KEYWORD = re.compile(r"^(?:graph|flowchart)\b", re.IGNORECASE)
_STATE_HEADER = re.compile(r"^stateDiagram(?:-v2)?\s*$", re.IGNORECASE)
_PIE_HEADER = re.compile(r"^pie(?:\s+showData)?(?:\s+title\s+(.*?))?\s*$", re.IGNORECASE)
_PIE_KEYWORD = re.compile(r"^pie\b", re.IGNORECASE)

_HEADER_HINT = "start with 'flowchart LR', 'graph TD', 'stateDiagram-v2' or 'pie'"


def parse_mermaid(text: str) -> DiagramGraph | PieChart:
    """Parse Mermaid text, dispatching on the header line."""
    statements = _split_statements(text)
    if not statements:
        raise ParseError("empty diagram", suggestion=_HEADER_HINT)

    lineno, header = statements[0]
    if _FLOWCHART_KEYWORD.match(header):
        return _parse_flowchart(statements)
    if _STATE_HEADER.match(header):
        return _parse_state_diagram(statements)
    if _PIE_KEYWORD.match(header):
        return _parse_pie(statements)
    raise ParseError("unknown diagram header", lineno, header, _HEADER_HINT)


def parse_flowchart(text: str) -> DiagramGraph:
    statements = _require_header(text, _FLOWCHART_KEYWORD, "flowchart")
    return _parse_flowchart(statements)


def parse_state_diagram(text: str) -> DiagramGraph:
    statements = _require_header(text, _STATE_HEADER, "state diagram")
    return _parse_state_diagram(statements)


def parse_pie_chart(text: str) -> PieChart:
    statements = _require_header(text, _PIE_KEYWORD, "pie chart")
    return _parse_pie(statements)


def _require_header(text: str, pattern: re.Pattern[str], what: str) -> list[Statement]:
    statements = _split_statements(text)
    if not statements:
        raise ParseError("empty diagram", suggestion=_HEADER_HINT)
    lineno, header = statements[0]
    if not pattern.match(header):
        raise ParseError(f"expected a {what} header", lineno, header, _HEADER_HINT)
    return statements


# ============================================================================
# Shared utilities
# ============================================================================


def _split_statements(text: str) -> list[Statement]:
    """Trim lines, drop blanks and %% comments, split on ';' outside quotes."""
    statements: list[Statement] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("%%"):
            continue
        for part in _split_outside_quotes(line, ";"):
            part = part.strip()
            if part:
                statements.append((lineno, part))
    return statements


def _split_outside_quotes(line: str, sep: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in line:
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == sep:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def _normalize_direction(raw: str) -> Direction:
    direction = raw.upper()
    if direction == "TD":
        return "TB"
    return direction  # type: ignore[return-value]


def _clean_label(raw: str) -> str:
    label = raw.strip()
    if len(label) >= 2 and label[0] == label[-1] and label[0] in "\"'":
        label = label[1:-1]
    label = re.sub(r"<br\s*/?>", " ", label, flags=re.IGNORECASE)
    return label.strip()


def _join_container(graph: DiagramGraph, container: Container | None, node_id: str) -> None:
    """Nodes belong to the first container they are mentioned in."""
    if container is not None and graph.container_of(node_id) is None:
        container.members.append(node_id)


# ============================================================================
# Flowchart parser
# ============================================================================

_IGNORED_FLOWCHART = re.compile(r"^(?:classDef|class|style|linkStyle|click|direction)\b")
_SUBGRAPH = re.compile(r"^subgraph\b\s*(.*)$")

NODE_ID_REGEX = re.compile(r"\w+(?:-\w+)*")
CLASS_SUFFIX_REGEX = re.compile(r"^:::[\w-]+")
CONNECTOR_TOKEN_REGEX = re.compile(r"^[<>\-.=]+")
# A connector inside an unquoted shape body means its closer is missing.
_BODY_CONNECTOR_REGEX = re.compile(r"<?-{2,}>|-\.+->|={2,}>|-{3,}")

# Longest openers first so "((" wins over "(".
SHAPE_DELIMITERS: list[tuple[str, str, NodeShape]] = [
    ("((", "))", "circle"),
    ("([", "])", "stadium"),
    ("[(", ")]", "cylinder"),
    ("{{", "}}", "hexagon"),
    ("[", "]", "rectangle"),
    ("(", ")", "rounded"),
    ("{", "}", "diamond"),
]

CONNECTORS: list[tuple[re.Pattern[str], EdgeStyle]] = [
    (re.compile(r"<-{2,}>"), "bidirectional"),
    (re.compile(r"-{2,}>"), "solid"),
    (re.compile(r"-\.+->"), "dotted"),
    (re.compile(r"={2,}>"), "thick"),
    (re.compile(r"-{3,}"), "line"),
]

_CONNECTOR_HINT = "use -->, ---, -.->, ==> or <-->"


def _parse_flowchart(statements: list[Statement]) -> DiagramGraph:
    lineno, header = statements[0]
    m = _FLOWCHART_HEADER.match(header)
    if not m:
        raise ParseError(
            "invalid flowchart header", lineno, header,
            "expected a direction: LR, RL, TB, TD or BT",
        )

    graph = DiagramGraph(kind="flowchart", direction=_normalize_direction(m.group(1)))
    current: Container | None = None
    opened_at: Statement | None = None

    for lineno, line in statements[1:]:
        # --- styling and interaction statements ---
        if _IGNORED_FLOWCHART.match(line):
            logger.debug("line %d: ignoring %r", lineno, line)
            continue

        # --- subgraph start ---
        m = _SUBGRAPH.match(line)
        if m:
            if current is not None:
                raise ParseError("nested subgraphs are not supported", lineno, line)
            current = _open_subgraph(graph, m.group(1).strip(), lineno, line)
            opened_at = (lineno, line)
            continue

        # --- subgraph end ---
        if line == "end":
            if current is None:
                raise ParseError("'end' without a matching 'subgraph'", lineno, line)
            current = None
            opened_at = None
            continue

        # --- nodes and edges ---
        _parse_chain(line, lineno, graph, current)

    if opened_at is not None:
        raise ParseError("unterminated subgraph", opened_at[0], opened_at[1], "close it with 'end'")
    return graph


def _open_subgraph(graph: DiagramGraph, rest: str, lineno: int, line: str) -> Container:
    if not rest:
        raise ParseError("subgraph needs an id or a title", lineno, line)

    bracket = re.match(r"^(\w+(?:-\w+)*)\s*\[(.*)\]$", rest)
    if bracket:
        sg_id, label = bracket.group(1), _clean_label(bracket.group(2))
    elif NODE_ID_REGEX.fullmatch(rest):
        sg_id, label = rest, rest
    else:
        label = _clean_label(rest)
        sg_id = re.sub(r"\W", "", label.replace(" ", "_")) or f"subgraph{len(graph.containers)}"

    for existing in graph.containers:
        if existing.id == sg_id:
            return existing
    container = Container(id=sg_id, label=label)
    graph.containers.append(container)
    return container


def _parse_chain(line: str, lineno: int, graph: DiagramGraph, container: Container | None) -> None:
    """Parse ``A & B --> C -->|label| D`` into nodes and cartesian-product edges."""
    prev_ids, remaining = _consume_node_group(line, lineno, line, graph, container)
    remaining = remaining.strip()

    while remaining:
        style, remaining = _consume_connector(remaining, lineno, line)
        label, remaining = _consume_edge_label(remaining.lstrip(), lineno, line)
        remaining = remaining.strip()
        if not remaining:
            raise ParseError("connector has no target node", lineno, line)

        next_ids, remaining = _consume_node_group(remaining, lineno, line, graph, container)
        remaining = remaining.strip()

        for source_id in prev_ids:
            for target_id in next_ids:
                graph.edges.append(Edge(source_id, target_id, label, style))
        prev_ids = next_ids


def _consume_node_group(
    text: str,
    lineno: int,
    line: str,
    graph: DiagramGraph,
    container: Container | None,
) -> tuple[list[str], str]:
    node_id, remaining = _consume_node(text, lineno, line, graph, container)
    ids = [node_id]
    remaining = remaining.strip()
    while remaining.startswith("&"):
        node_id, remaining = _consume_node(remaining[1:].strip(), lineno, line, graph, container)
        ids.append(node_id)
        remaining = remaining.strip()
    return ids, remaining


def _consume_node(
    text: str,
    lineno: int,
    line: str,
    graph: DiagramGraph,
    container: Container | None,
) -> tuple[str, str]:
    m = NODE_ID_REGEX.match(text)
    if not m:
        raise ParseError("expected a node id", lineno, line)
    node_id = m.group(0)
    remaining = text[m.end():]

    for opener, closer, shape in SHAPE_DELIMITERS:
        if remaining.startswith(opener):
            body, remaining = _read_delimited(remaining[len(opener):], opener, closer, lineno, line)
            graph.nodes[node_id] = Node(node_id, _clean_label(body), shape)
            break
    else:
        if node_id not in graph.nodes:
            graph.nodes[node_id] = Node(node_id, node_id)

    _join_container(graph, container, node_id)

    class_match = CLASS_SUFFIX_REGEX.match(remaining)
    if class_match:
        remaining = remaining[class_match.end():]
    return node_id, remaining


def _read_delimited(text: str, opener: str, closer: str, lineno: int, line: str) -> tuple[str, str]:
    """Return (body, rest) for text following an opening shape delimiter.

    An unquoted body ends before the next connector or same-kind opener, so
    a missing closer is reported instead of borrowing a later node's.
    """
    start = 0
    stripped = text.lstrip()
    if stripped.startswith('"'):
        quote_end = stripped.find('"', 1)
        if quote_end != -1:
            start = len(text) - len(stripped) + quote_end + 1
    end = text.find(closer, start)
    if end != -1:
        unquoted = text[start:end]
        if opener in unquoted or _BODY_CONNECTOR_REGEX.search(unquoted):
            end = -1
    if end == -1:
        raise ParseError(
            f"unterminated shape delimiter '{opener}'", lineno, line, f"close it with '{closer}'"
        )
    return text[:end], text[end + len(closer):]


def _consume_connector(text: str, lineno: int, line: str) -> tuple[EdgeStyle, str]:
    m = CONNECTOR_TOKEN_REGEX.match(text)
    if not m:
        raise ParseError("expected a connector", lineno, line, _CONNECTOR_HINT)
    token = m.group(0)
    for pattern, style in CONNECTORS:
        if pattern.fullmatch(token):
            return style, text[m.end():]
    raise ParseError(f"unrecognised connector '{token}'", lineno, line, _CONNECTOR_HINT)


def _consume_edge_label(text: str, lineno: int, line: str) -> tuple[str | None, str]:
    if not text.startswith("|"):
        return None, text
    end = text.find("|", 1)
    if end == -1:
        raise ParseError("unterminated edge label", lineno, line, "close it with '|'")
    label = _clean_label(text[1:end])
    return label or None, text[end + 1:]


# ============================================================================
# State diagram parser
# ============================================================================

_STATE_ID = r"\w+(?:-\w+)*"
_STATE_COMPOSITE = re.compile(rf'^state\s+(?:"([^"]*)"\s+as\s+)?({_STATE_ID})\s*\{{$')
_STATE_ALIAS = re.compile(rf'^state\s+"([^"]*)"\s+as\s+({_STATE_ID})\s*$')
_STATE_DECLARATION = re.compile(rf"^state\s+({_STATE_ID})(?:\s+<<(\w+)>>)?\s*$")
_STATE_TRANSITION = re.compile(
    rf"^(\[\*\]|{_STATE_ID})\s*([<>\-.=]+)\s*(\[\*\]|{_STATE_ID})(?:\s*:\s*(.*))?$"
)
_STATE_DESCRIPTION = re.compile(rf"^({_STATE_ID})\s*:\s*(.*)$")
_STATE_BARE = re.compile(rf"^{_STATE_ID}$")
_STATE_IGNORED = re.compile(r"^(?:direction|classDef|class|style|accTitle|accDescr)\b")
_NOTE_SINGLE = re.compile(r"^note\s+.*:")
_NOTE_BLOCK = re.compile(r"^note\b")


def _parse_state_diagram(statements: list[Statement]) -> DiagramGraph:
    graph = DiagramGraph(kind="state", direction="TB")
    current: Container | None = None
    opened_at: Statement | None = None
    in_note = False

    for lineno, line in statements[1:]:
        # --- notes ---
        if in_note:
            if re.match(r"^end\s+note$", line):
                in_note = False
            continue
        if _NOTE_SINGLE.match(line):
            continue
        if _NOTE_BLOCK.match(line):
            in_note = True
            continue

        # --- ignored statements (state diagrams always flow top-down) ---
        if _STATE_IGNORED.match(line) or line == "--":
            logger.debug("line %d: ignoring %r", lineno, line)
            continue

        # --- composite state start ---
        m = _STATE_COMPOSITE.match(line)
        if m:
            if current is not None:
                raise ParseError("nested composite states are not supported", lineno, line)
            sid = m.group(2)
            current = Container(id=sid, label=m.group(1) or sid)
            graph.containers.append(current)
            opened_at = (lineno, line)
            continue

        # --- composite state end ---
        if line == "}":
            if current is None:
                raise ParseError("'}' without a matching composite state", lineno, line)
            current = None
            opened_at = None
            continue

        # --- state alias ---
        m = _STATE_ALIAS.match(line)
        if m:
            sid = m.group(2)
            shape = graph.nodes[sid].shape if sid in graph.nodes else "rounded"
            graph.nodes[sid] = Node(sid, m.group(1), shape)
            _join_container(graph, current, sid)
            continue

        # --- state declaration ---
        m = _STATE_DECLARATION.match(line)
        if m:
            sid = m.group(1)
            _ensure_state(graph, current, sid)
            if (m.group(2) or "").lower() == "choice":
                graph.nodes[sid] = Node(sid, graph.nodes[sid].label, "diamond")
            continue

        # --- transition ---
        m = _STATE_TRANSITION.match(line)
        if m:
            if m.group(2) != "-->":
                raise ParseError(
                    f"unrecognised transition '{m.group(2)}'", lineno, line, "use -->"
                )
            source_id = _resolve_state(graph, current, m.group(1), start=True)
            target_id = _resolve_state(graph, current, m.group(3), start=False)
            label = (m.group(4) or "").strip() or None
            graph.edges.append(Edge(source_id, target_id, label, "solid"))
            continue

        # --- state description ---
        m = _STATE_DESCRIPTION.match(line)
        if m:
            sid = m.group(1)
            _ensure_state(graph, current, sid)
            description = m.group(2).strip()
            if description:
                graph.nodes[sid] = Node(sid, description, graph.nodes[sid].shape)
            continue

        # --- bare state ---
        if _STATE_BARE.match(line):
            _ensure_state(graph, current, line)
            continue

        raise ParseError("unrecognised state diagram statement", lineno, line)

    if opened_at is not None:
        raise ParseError("unterminated composite state", opened_at[0], opened_at[1], "close it with '}'")
    return graph


def _resolve_state(
    graph: DiagramGraph,
    current: Container | None,
    raw_id: str,
    start: bool,
) -> str:
    """Map ``[*]`` to the scope's start or end marker, creating it on first use."""
    if raw_id != "[*]":
        _ensure_state(graph, current, raw_id)
        return raw_id

    suffix = "_start" if start else "_end"
    sid = f"{current.id}.{suffix}" if current is not None else suffix
    if sid not in graph.nodes:
        shape: NodeShape = "state-start" if start else "state-end"
        graph.nodes[sid] = Node(sid, "", shape)
    _join_container(graph, current, sid)
    return sid


def _ensure_state(graph: DiagramGraph, current: Container | None, sid: str) -> None:
    if sid not in graph.nodes:
        graph.nodes[sid] = Node(sid, sid, "rounded")
    _join_container(graph, current, sid)


# ============================================================================
# Pie chart parser
# ============================================================================

_PIE_TITLE = re.compile(r"^title\s+(.*)$", re.IGNORECASE)
_PIE_SLICE = re.compile(r"""^(["'])(.*?)\1\s*:\s*(\S+)\s*$""")
_PIE_IGNORED = re.compile(r"^(?:showData|accTitle|accDescr)\b", re.IGNORECASE)


def _parse_pie(statements: list[Statement]) -> PieChart:
    lineno, header = statements[0]
    m = _PIE_HEADER.match(header)
    if not m:
        raise ParseError("invalid pie header", lineno, header, "expected 'pie', 'pie showData' or 'pie title ...'")

    chart = PieChart(title=(m.group(1) or None))

    for lineno, line in statements[1:]:
        # --- title ---
        m = _PIE_TITLE.match(line)
        if m:
            chart.title = m.group(1).strip() or None
            continue

        if _PIE_IGNORED.match(line):
            continue

        # --- slice ---
        m = _PIE_SLICE.match(line)
        if not m:
            raise ParseError("expected a slice like '\"Label\" : 42'", lineno, line)
        chart.slices.append(PieSlice(m.group(2), _parse_slice_value(m.group(3), lineno, line)))

    return chart


def _parse_slice_value(raw: str, lineno: int, line: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ParseError(f"invalid slice value '{raw}'", lineno, line) from None
    if not math.isfinite(value):
        raise ParseError(f"invalid slice value '{raw}'", lineno, line)
    if value < 0:
        raise ParseError("slice value must not be negative", lineno, line)
    return value
