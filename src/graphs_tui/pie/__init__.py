from __future__ import annotations

from .layout import BAR_WIDTH, PieLayout, PieRow, layout_pie
from .renderer import render_pie

__all__ = ["BAR_WIDTH", "PieLayout", "PieRow", "layout_pie", "render_pie"]
