from __future__ import annotations

# ============================================================================
# Text renderer public API
#
# Draws a Layout as Unicode box-drawing art (default) or plain ASCII.
#
# Usage:
#   from graphs_tui.ascii import render_layout
#   text = render_layout(compute_layout(graph), RenderOptions(ascii=True))
# ============================================================================

from ..types import Layout, RenderOptions
from .canvas import canvas_to_string, ensure_fits
from .charset import ASCII, UNICODE, CharSet, charset_for
from .draw import draw_layout

__all__ = ["render_layout", "charset_for", "CharSet", "ASCII", "UNICODE"]


def render_layout(layout: Layout, options: RenderOptions | None = None) -> str:
    """Render a laid-out graph to a multi-line string.

    Raises RenderError when ``options.max_width`` is set and the drawing is
    wider; the output is never truncated.
    """
    opts = options or RenderOptions()
    canvas = draw_layout(layout, charset_for(opts.ascii))
    return ensure_fits(canvas_to_string(canvas), opts.max_width)
