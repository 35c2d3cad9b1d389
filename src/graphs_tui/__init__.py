"""graphs-tui -- Render Mermaid and D2 diagrams to Unicode or ASCII art for the terminal."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .ascii import render_layout
from .d2 import parse_d2
from .detect import detect_format
from .errors import DiagramError, LayoutError, ParseError, RenderError
from .layout import compute_layout
from .parser import parse_flowchart, parse_mermaid, parse_pie_chart, parse_state_diagram
from .pie import layout_pie, render_pie
from .types import (
    Container,
    DiagramFormat,
    DiagramGraph,
    Edge,
    Layout,
    Node,
    PieChart,
    PieSlice,
    RenderOptions,
)

__all__ = [
    "render_diagram",
    "render_mermaid_to_tui",
    "render_state_diagram",
    "render_pie_chart",
    "render_d2_to_tui",
    "detect_format",
    "parse_mermaid",
    "parse_d2",
    "compute_layout",
    "RenderOptions",
    "DiagramGraph",
    "Node",
    "Edge",
    "Container",
    "PieChart",
    "PieSlice",
    "Layout",
    "DiagramError",
    "ParseError",
    "LayoutError",
    "RenderError",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
logger = logging.getLogger(__name__)

_PARSERS: dict[DiagramFormat, Callable[[str], DiagramGraph | PieChart]] = {
    "mermaid": parse_mermaid,
    "d2": parse_d2,
}


def render_diagram(text: str, options: RenderOptions | dict[str, Any] | None = None) -> str:
    """Render Mermaid or D2 text, detecting the format from the text itself.

    Args:
        text: Diagram source (flowchart, state diagram, pie chart or D2).
        options: Rendering options. Can be a ``RenderOptions`` instance
            or a plain dict with the same keys.

    Returns:
        Multi-line Unicode (or ASCII) string.

    Raises:
        ParseError, LayoutError, RenderError: all subclasses of DiagramError.

    Example::

        result = render_diagram("flowchart LR\\n  A --> B", {"ascii": True})
        # +---+     +---+
        # | A |---->| B |
        # +---+     +---+
    """
    fmt = detect_format(text)
    logger.debug("detected %s input", fmt)
    return _render(_PARSERS[fmt](text), _normalize_options(options))


def render_mermaid_to_tui(text: str, options: RenderOptions | dict[str, Any] | None = None) -> str:
    """Render a Mermaid flowchart (``flowchart``/``graph`` header)."""
    return _render(parse_flowchart(text), _normalize_options(options))


def render_state_diagram(text: str, options: RenderOptions | dict[str, Any] | None = None) -> str:
    """Render a Mermaid state diagram (``stateDiagram``/``stateDiagram-v2`` header)."""
    return _render(parse_state_diagram(text), _normalize_options(options))


def render_pie_chart(text: str, options: RenderOptions | dict[str, Any] | None = None) -> str:
    """Render a Mermaid pie chart as horizontal bars."""
    return _render(parse_pie_chart(text), _normalize_options(options))


def render_d2_to_tui(text: str, options: RenderOptions | dict[str, Any] | None = None) -> str:
    """Render D2 source."""
    return _render(parse_d2(text), _normalize_options(options))


def _render(diagram: DiagramGraph | PieChart, opts: RenderOptions) -> str:
    if isinstance(diagram, PieChart):
        return render_pie(layout_pie(diagram), opts)
    return render_layout(compute_layout(diagram, opts), opts)


def _normalize_options(options: RenderOptions | dict[str, Any] | None) -> RenderOptions:
    if options is None:
        return RenderOptions()
    if isinstance(options, dict):
        return RenderOptions(
            ascii=options.get("ascii", options.get("use_ascii", options.get("useAscii", False))),
            max_width=options.get("max_width", options.get("maxWidth")),
            padding_x=options.get("padding_x", options.get("paddingX", 5)),
            padding_y=options.get("padding_y", options.get("paddingY", 3)),
            box_border_padding=options.get(
                "box_border_padding",
                options.get("boxBorderPadding", 1),
            ),
        )
    return options
