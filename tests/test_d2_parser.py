"""Tests for the D2 parser."""

from __future__ import annotations

import pytest

from graphs_tui.d2 import parse_d2
from graphs_tui.errors import ParseError


# ============================================================================
# Shapes and labels
# ============================================================================


class TestShapes:
    def test_bare_shape(self):
        g = parse_d2("server")
        assert g.kind == "d2"
        assert g.nodes["server"].label == "server"
        assert g.nodes["server"].shape == "default"

    def test_shape_with_label(self):
        g = parse_d2("db: Main Database")
        assert g.nodes["db"].label == "Main Database"

    def test_quoted_label(self):
        g = parse_d2('db: "Main: Database"')
        assert g.nodes["db"].label == "Main: Database"

    def test_last_label_wins(self):
        g = parse_d2("a: First\nb\na: Second")
        assert g.nodes["a"].label == "Second"
        assert list(g.nodes) == ["a", "b"]

    def test_shape_property(self):
        g = parse_d2("db.shape: cylinder")
        assert g.nodes["db"].shape == "cylinder"

    def test_label_property(self):
        g = parse_d2("db\ndb.label: Storage")
        assert g.nodes["db"].label == "Storage"

    @pytest.mark.parametrize(
        "keyword, shape",
        [
            ("rectangle", "rectangle"),
            ("square", "rectangle"),
            ("circle", "circle"),
            ("oval", "circle"),
            ("diamond", "diamond"),
            ("hexagon", "hexagon"),
            ("queue", "cylinder"),
            ("person", "rounded"),
        ],
    )
    def test_shape_keywords(self, keyword, shape):
        g = parse_d2(f"x.shape: {keyword}")
        assert g.nodes["x"].shape == shape

    def test_unknown_shape_is_an_error(self):
        with pytest.raises(ParseError, match="unknown shape 'blob'") as exc:
            parse_d2("a\nx.shape: blob")
        assert exc.value.line == 2

    def test_property_block(self):
        g = parse_d2("db: Database {\n  shape: cylinder\n}")
        assert g.nodes["db"].shape == "cylinder"
        assert g.nodes["db"].label == "Database"
        assert g.containers == []

    def test_inline_property_block(self):
        g = parse_d2("x: {shape: circle}")
        assert g.nodes["x"].shape == "circle"
        assert g.containers == []

    def test_style_properties_are_ignored(self):
        g = parse_d2(
            "a.style.fill: red\n"
            "a.tooltip: hi\n"
            "b: {\n  style: {\n    stroke: blue\n  }\n  shape: diamond\n}"
        )
        assert list(g.nodes) == ["a", "b"]
        assert g.nodes["b"].shape == "diamond"

    def test_comments_are_ignored(self):
        g = parse_d2("# heading\na -> b # trailing")
        assert list(g.nodes) == ["a", "b"]


# ============================================================================
# Direction
# ============================================================================


class TestDirection:
    def test_default_is_top_down(self):
        assert parse_d2("a -> b").direction == "TB"

    @pytest.mark.parametrize(
        "value, direction",
        [("right", "LR"), ("left", "RL"), ("down", "TB"), ("up", "BT")],
    )
    def test_direction(self, value, direction):
        assert parse_d2(f"direction: {value}\na -> b").direction == direction

    def test_unknown_direction_is_an_error(self):
        with pytest.raises(ParseError, match="unknown direction"):
            parse_d2("direction: sideways")


# ============================================================================
# Connections
# ============================================================================


class TestConnections:
    def test_arrow_declares_endpoints(self):
        g = parse_d2("a -> b")
        assert list(g.nodes) == ["a", "b"]
        assert g.edges[0].source == "a"
        assert g.edges[0].style == "solid"

    def test_reverse_arrow_swaps_endpoints(self):
        g = parse_d2("a <- b")
        assert (g.edges[0].source, g.edges[0].target) == ("b", "a")

    def test_bidirectional(self):
        assert parse_d2("a <-> b").edges[0].style == "bidirectional"

    def test_undirected_line(self):
        assert parse_d2("a -- b").edges[0].style == "line"

    def test_chain_with_label(self):
        g = parse_d2("a -> b -> c: flows")
        assert [(e.source, e.target) for e in g.edges] == [("a", "b"), ("b", "c")]
        assert all(e.label == "flows" for e in g.edges)

    def test_label_may_contain_arrows(self):
        g = parse_d2("a -> b: x -> y")
        assert g.edges[0].label == "x -> y"
        assert list(g.nodes) == ["a", "b"]

    def test_quoted_ids(self):
        g = parse_d2('"web server" -> db')
        assert "web server" in g.nodes

    def test_hyphenated_ids(self):
        g = parse_d2("web-server -> db")
        assert list(g.nodes) == ["web-server", "db"]

    def test_semicolons(self):
        g = parse_d2("a -> b; b -> c")
        assert len(g.edges) == 2

    def test_unknown_connector_is_an_error(self):
        with pytest.raises(ParseError, match="unrecognised connector") as exc:
            parse_d2("a\nb >> c")
        assert exc.value.line == 2

    def test_missing_endpoint_is_an_error(self):
        with pytest.raises(ParseError, match="missing an endpoint"):
            parse_d2("a ->")

    def test_edge_style_block_is_ignored(self):
        g = parse_d2("a -> b: hi {\n  style.stroke: red\n}\nc")
        assert list(g.nodes) == ["a", "b", "c"]
        assert g.edges[0].label == "hi"


# ============================================================================
# Containers
# ============================================================================


class TestContainers:
    def test_block_with_members_is_a_container(self):
        g = parse_d2("backend: Backend {\n  api -> db\n}\nclient -> backend.api")
        assert len(g.containers) == 1
        container = g.containers[0]
        assert container.id == "backend"
        assert container.label == "Backend"
        assert container.members == ["backend.api", "backend.db"]
        assert g.nodes["backend.api"].label == "api"
        assert [(e.source, e.target) for e in g.edges] == [
            ("backend.api", "backend.db"),
            ("client", "backend.api"),
        ]

    def test_container_declaration_is_not_a_shape(self):
        g = parse_d2("cloud {\n  a\n}")
        assert "cloud" not in g.nodes
        assert g.containers[0].members == ["cloud.a"]

    def test_label_inside_block(self):
        g = parse_d2("c {\n  label: Cluster\n  a\n}")
        assert g.containers[0].label == "Cluster"

    def test_dotted_reference_creates_container(self):
        g = parse_d2("x.a -> x.b")
        assert g.containers[0].id == "x"
        assert g.containers[0].members == ["x.a", "x.b"]

    def test_parent_reference_from_inside_block(self):
        g = parse_d2("c {\n  a -> _.outside\n}")
        assert g.edges[0].target == "outside"
        assert g.container_of("outside") is None

    def test_property_block_inside_container(self):
        g = parse_d2("c {\n  db {\n    shape: cylinder\n  }\n}")
        assert g.nodes["c.db"].shape == "cylinder"
        assert g.containers[0].members == ["c.db"]

    def test_nested_container_is_an_error(self):
        with pytest.raises(ParseError, match="nested containers") as exc:
            parse_d2("outer {\n  inner {\n    leaf\n  }\n}")
        assert exc.value.line == 3

    def test_deep_dotted_path_is_an_error(self):
        with pytest.raises(ParseError, match="nested containers"):
            parse_d2("a.b.c")

    def test_unterminated_block_reports_opening_line(self):
        with pytest.raises(ParseError, match="unterminated block") as exc:
            parse_d2("a\nc {\n  x\n")
        assert exc.value.line == 2

    def test_stray_closing_brace(self):
        with pytest.raises(ParseError, match="without a matching"):
            parse_d2("a\n}")
