from __future__ import annotations

from ..ascii.canvas import ensure_fits
from ..ascii.charset import CharSet, charset_for
from ..types import RenderOptions
from .layout import PieLayout, PieRow

# ============================================================================
# Pie renderer
#
#   Pets
#   ────
#
#   Dogs  │███████████████░░░░░░░░░░░░░░░│ 50 (50.0%)
#   Cats  │███████████████░░░░░░░░░░░░░░░│ 50 (50.0%)
#
#   Total: 100
# ============================================================================

INDENT = "  "


def render_pie(layout: PieLayout, options: RenderOptions | None = None) -> str:
    opts = options or RenderOptions()
    chars = charset_for(opts.ascii)

    lines: list[str] = []
    if layout.title:
        lines.append(f"{INDENT}{layout.title}")
        lines.append(f"{INDENT}{chars.horizontal * len(layout.title)}")
        lines.append("")

    for row in layout.rows:
        lines.append(_format_row(row, layout, chars))

    lines.append("")
    lines.append(f"{INDENT}Total: {format_number(layout.total)}")
    return ensure_fits("\n".join(lines), opts.max_width)


def _format_row(row: PieRow, layout: PieLayout, chars: CharSet) -> str:
    filled = min(row.filled, layout.bar_width)
    if filled == 0:
        bar = chars.bar_marker + chars.bar_empty * (layout.bar_width - 1)
    else:
        bar = chars.bar_filled * filled + chars.bar_empty * (layout.bar_width - filled)
    label = row.label.ljust(layout.label_width)
    return (
        f"{INDENT}{label}  {chars.vertical}{bar}{chars.vertical} "
        f"{format_number(row.value)} ({row.percent:.1f}%)"
    )


def format_number(value: float) -> str:
    """Integral values without a decimal point, others without trailing zeros."""
    if value == int(value):
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")
