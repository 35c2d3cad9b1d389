from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from ..errors import ParseError
from ..types import Container, DiagramGraph, Direction, Edge, EdgeStyle, Node, NodeShape

logger = logging.getLogger(__name__)

# ============================================================================
# D2 parser -- shapes, connections and one level of containers
# ============================================================================

SHAPES: dict[str, NodeShape] = {
    "rectangle": "rectangle",
    "square": "rectangle",
    "page": "rectangle",
    "document": "rectangle",
    "package": "rectangle",
    "step": "rectangle",
    "callout": "rectangle",
    "parallelogram": "rectangle",
    "text": "default",
    "person": "rounded",
    "cloud": "rounded",
    "circle": "circle",
    "oval": "circle",
    "diamond": "diamond",
    "cylinder": "cylinder",
    "queue": "cylinder",
    "stored_data": "cylinder",
    "hexagon": "hexagon",
}

DIRECTIONS: dict[str, Direction] = {
    "right": "LR",
    "left": "RL",
    "down": "TB",
    "up": "BT",
}

IGNORED_PROPERTIES = frozenset(
    {"style", "tooltip", "link", "icon", "near", "width", "height", "class", "classes", "vars"}
)

BlockKind = Literal["open", "node", "ignored"]


@dataclass(slots=True)
class _Block:
    # "open": top-level block that becomes a container once it declares a
    # member; "node": property block of a single shape; "ignored": style etc.
    kind: BlockKind
    key: str
    lineno: int
    text: str
    label: str | None = None
    shape: NodeShape | None = None


@dataclass(slots=True)
class _Statement:
    lineno: int
    raw: str
    text: str


def parse_d2(text: str) -> DiagramGraph:
    """Parse D2 source into a DiagramGraph (kind ``"d2"``)."""
    parser = _D2Parser()
    for statement in _split_statements(text):
        parser.feed(statement)
    return parser.finish()


# ============================================================================
# Lexing
# ============================================================================


def _split_statements(text: str) -> list[_Statement]:
    """Split lines into statements on ';', after '{' and around '}'.

    ``#`` starts a comment outside quotes. Inline blocks such as
    ``x: {shape: circle}`` become three statements.
    """
    statements: list[_Statement] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        raw_stripped = raw.strip()
        current: list[str] = []
        quote: str | None = None

        def flush(extra: str = "") -> None:
            stmt = ("".join(current) + extra).strip()
            current.clear()
            if stmt:
                statements.append(_Statement(lineno, raw_stripped, stmt))

        for ch in raw:
            if quote:
                current.append(ch)
                if ch == quote:
                    quote = None
            elif ch in "\"'":
                quote = ch
                current.append(ch)
            elif ch == "#":
                break
            elif ch == ";":
                flush()
            elif ch == "{":
                flush("{")
            elif ch == "}":
                flush()
                statements.append(_Statement(lineno, raw_stripped, "}"))
            else:
                current.append(ch)
        flush()
    return statements


def _unquote(raw: str) -> tuple[str, bool]:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1], True
    return value, False


def _find_outside_quotes(text: str, target: str) -> int:
    quote: str | None = None
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == target:
            return i
    return -1


def _split_connections(text: str) -> tuple[list[str], list[str], str | None]:
    """Split ``a -> b -- c: label`` into endpoints, connector runs and label.

    A lone ``-`` belongs to an id (``my-node``); any other run of ``<``,
    ``-`` and ``>`` is a connector. A ``:`` after the first connector starts
    the edge label.
    """
    parts: list[str] = []
    connectors: list[str] = []
    current: list[str] = []
    quote: str | None = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in "\"'":
            quote = ch
        elif ch == ":":
            if connectors:
                parts.append("".join(current))
                return parts, connectors, text[i + 1:]
            break
        elif ch in "<->":
            j = i
            while j < len(text) and text[j] in "<->":
                j += 1
            run = text[i:j]
            if run != "-":
                parts.append("".join(current))
                current = []
                connectors.append(run)
                i = j
                continue
        current.append(ch)
        i += 1
    if not connectors:
        return [text], [], None
    parts.append("".join(current))
    return parts, connectors, None


def _connector_style(run: str, lineno: int, raw: str) -> tuple[EdgeStyle, bool]:
    """Return (style, reversed) for a connector run."""
    body = run.strip("<>")
    if body and set(body) == {"-"} and run.count("<") <= 1 and run.count(">") <= 1:
        starts = run.startswith("<")
        ends = run.endswith(">")
        if starts and ends:
            return "bidirectional", False
        if ends:
            return "solid", False
        if starts:
            return "solid", True
        if len(body) >= 2:
            return "line", False
    raise ParseError(f"unrecognised connector '{run}'", lineno, raw, "use ->, <-, <-> or --")


# ============================================================================
# Statement handling
# ============================================================================


@dataclass(slots=True)
class _D2Parser:
    graph: DiagramGraph = field(default_factory=lambda: DiagramGraph(kind="d2", direction="TB"))
    stack: list[_Block] = field(default_factory=list)

    # --- scope helpers ---

    def _scope(self) -> _Block | None:
        for block in reversed(self.stack):
            if block.kind != "ignored":
                return block
        return None

    def _container(self, container_id: str, label: str | None = None) -> Container:
        for container in self.graph.containers:
            if container.id == container_id:
                return container
        container = Container(id=container_id, label=label if label is not None else container_id)
        self.graph.containers.append(container)
        return container

    def _qualify(self, raw: str, st: _Statement) -> tuple[str, str, str | None]:
        """Resolve a key to (node id, default label, container id)."""
        key, quoted = _unquote(raw)
        if not key:
            raise ParseError("missing shape id", st.lineno, st.raw)

        scope = self._scope()
        if key.startswith("_.") and not quoted:
            key = key[2:]
            scope = None
        parts = [key] if quoted else key.split(".")

        if scope is not None:
            if scope.kind == "node" or len(parts) > 1:
                raise ParseError("nested containers are not supported", st.lineno, st.raw)
            return f"{scope.key}.{key}", key, scope.key
        if len(parts) == 1:
            return key, key, None
        if len(parts) == 2:
            return key, parts[1], parts[0]
        raise ParseError("nested containers are not supported", st.lineno, st.raw)

    def _declare(self, node_id: str, label: str, container_id: str | None, explicit: bool) -> None:
        nodes = self.graph.nodes
        if node_id not in nodes:
            nodes[node_id] = Node(node_id, label)
        elif explicit:
            nodes[node_id] = Node(node_id, label, nodes[node_id].shape)
        if container_id is not None and self.graph.container_of(node_id) is None:
            scope = self._scope()
            label_hint = scope.label if scope is not None and scope.key == container_id else None
            self._container(container_id, label_hint).members.append(node_id)

    def _set_shape(self, node_id: str, keyword: str, st: _Statement) -> None:
        shape = self._shape_for(keyword, st)
        node = self.graph.nodes[node_id]
        self.graph.nodes[node_id] = Node(node_id, node.label, shape)

    @staticmethod
    def _shape_for(keyword: str, st: _Statement) -> NodeShape:
        value, _ = _unquote(keyword)
        shape = SHAPES.get(value.lower())
        if shape is None:
            raise ParseError(
                f"unknown shape '{value}'", st.lineno, st.raw,
                "known shapes: " + ", ".join(sorted(SHAPES)),
            )
        return shape

    # --- statements ---

    def feed(self, st: _Statement) -> None:
        text = st.text

        # --- block end ---
        if text == "}":
            self._close(st)
            return

        # --- inside style blocks ---
        if self.stack and self.stack[-1].kind == "ignored":
            if text.endswith("{"):
                self.stack.append(_Block("ignored", "", st.lineno, st.raw))
            return

        # --- connections ---
        parts, connectors, label = _split_connections(text)
        if connectors:
            self._connections(parts, connectors, label, st)
            return

        # --- block start ---
        if text.endswith("{"):
            self._open(text[:-1].strip(), st)
            return

        # --- key: value ---
        colon = _find_outside_quotes(text, ":")
        if colon != -1:
            self._key_value(text[:colon].strip(), text[colon + 1:].strip(), st)
            return

        # --- bare declaration ---
        node_id, default_label, container_id = self._qualify(text, st)
        self._declare(node_id, default_label, container_id, explicit=False)

    def _connections(
        self,
        parts: list[str],
        connectors: list[str],
        label: str | None,
        st: _Statement,
    ) -> None:
        opens_block = False
        if label is not None and label.rstrip().endswith("{"):
            label = label.rstrip()[:-1]
            opens_block = True
        elif parts[-1].rstrip().endswith("{"):
            parts[-1] = parts[-1].rstrip()[:-1]
            opens_block = True

        ids: list[str] = []
        for part in parts:
            if not part.strip():
                raise ParseError("connection is missing an endpoint", st.lineno, st.raw)
            node_id, default_label, container_id = self._qualify(part, st)
            self._declare(node_id, default_label, container_id, explicit=False)
            ids.append(node_id)

        edge_label = None
        if label is not None:
            edge_label = _unquote(label)[0] or None

        for i, run in enumerate(connectors):
            style, reverse = _connector_style(run, st.lineno, st.raw)
            source, target = ids[i], ids[i + 1]
            if reverse:
                source, target = target, source
            self.graph.edges.append(Edge(source, target, edge_label, style))

        if opens_block:
            self.stack.append(_Block("ignored", "", st.lineno, st.raw))

    def _open(self, head: str, st: _Statement) -> None:
        key, label = head, None
        colon = _find_outside_quotes(head, ":")
        if colon != -1:
            key = head[:colon].strip()
            label = _unquote(head[colon + 1:])[0] or None

        bare_key, quoted = _unquote(key)
        leaf = bare_key if quoted else bare_key.split(".")[-1]
        if not quoted and (leaf in IGNORED_PROPERTIES or bare_key in IGNORED_PROPERTIES):
            self.stack.append(_Block("ignored", "", st.lineno, st.raw))
            return

        node_id, default_label, container_id = self._qualify(key, st)
        self._declare(node_id, label or default_label, container_id, explicit=label is not None)
        kind: BlockKind = "node" if container_id is not None else "open"
        self.stack.append(_Block(kind, node_id, st.lineno, st.raw, label=label))

    def _close(self, st: _Statement) -> None:
        if not self.stack:
            raise ParseError("'}' without a matching '{'", st.lineno, st.raw)
        block = self.stack.pop()
        if block.kind == "ignored":
            return

        container = next((c for c in self.graph.containers if c.id == block.key), None)
        if block.kind == "open" and container is not None:
            if block.label is not None:
                container.label = block.label
            return

        node = self.graph.nodes[block.key]
        self.graph.nodes[block.key] = Node(
            block.key,
            block.label if block.label is not None else node.label,
            block.shape if block.shape is not None else node.shape,
        )

    def _key_value(self, key: str, value: str, st: _Statement) -> None:
        bare_key, quoted = _unquote(key)
        scope = self._scope()

        if not quoted:
            # --- diagram direction ---
            if bare_key == "direction":
                if scope is None:
                    direction = DIRECTIONS.get(_unquote(value)[0].lower())
                    if direction is None:
                        raise ParseError(
                            f"unknown direction '{value}'", st.lineno, st.raw,
                            "use right, left, down or up",
                        )
                    self.graph.direction = direction
                return

            # --- block-level properties ---
            if scope is not None and bare_key in ("shape", "label"):
                if bare_key == "shape":
                    scope.shape = self._shape_for(value, st)
                else:
                    scope.label = _unquote(value)[0]
                return

            segments = bare_key.split(".")
            if segments[0] in IGNORED_PROPERTIES:
                logger.debug("line %d: ignoring property %r", st.lineno, bare_key)
                return
            ignored_at = next(
                (i for i, s in enumerate(segments) if s in IGNORED_PROPERTIES), None
            )
            if ignored_at is not None:
                # a.style.fill: still declares a
                owner = ".".join(segments[:ignored_at])
                node_id, default_label, container_id = self._qualify(owner, st)
                self._declare(node_id, default_label, container_id, explicit=False)
                logger.debug("line %d: ignoring property %r", st.lineno, bare_key)
                return

            # --- id.shape / id.label ---
            if len(segments) > 1 and segments[-1] in ("shape", "label"):
                target = ".".join(segments[:-1])
                node_id, default_label, container_id = self._qualify(target, st)
                self._declare(node_id, default_label, container_id, explicit=False)
                if segments[-1] == "shape":
                    self._set_shape(node_id, value, st)
                else:
                    node = self.graph.nodes[node_id]
                    self.graph.nodes[node_id] = Node(node_id, _unquote(value)[0], node.shape)
                return

        # --- id: label ---
        node_id, _, container_id = self._qualify(key, st)
        self._declare(node_id, _unquote(value)[0], container_id, explicit=True)

    def finish(self) -> DiagramGraph:
        if self.stack:
            block = self.stack[0]
            raise ParseError("unterminated block", block.lineno, block.text, "close it with '}'")

        # A container's own declaration is not a separate shape unless it is
        # connected to something.
        connected = {end for e in self.graph.edges for end in (e.source, e.target)}
        for container in self.graph.containers:
            if container.id in self.graph.nodes and container.id not in connected:
                del self.graph.nodes[container.id]
        return self.graph
