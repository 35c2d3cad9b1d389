from __future__ import annotations

import math
from dataclasses import dataclass

from ..errors import LayoutError
from ..types import PieChart

# ============================================================================
# Pie layout -- one horizontal bar per slice
# ============================================================================

BAR_WIDTH = 30


@dataclass(frozen=True, slots=True)
class PieRow:
    label: str
    value: float
    percent: float
    filled: int


@dataclass(frozen=True, slots=True)
class PieLayout:
    title: str | None
    rows: tuple[PieRow, ...]
    total: float
    bar_width: int
    label_width: int


def layout_pie(chart: PieChart, width: int = BAR_WIDTH) -> PieLayout:
    """Split ``width`` bar cells between slices in proportion to their values.

    Raises LayoutError when there is nothing to divide.
    """
    total = math.fsum(s.value for s in chart.slices)
    if total <= 0:
        raise LayoutError("empty or zero-sum pie")

    rows = tuple(
        PieRow(
            label=s.label,
            value=s.value,
            percent=s.value / total * 100,
            filled=math.floor(s.value / total * width + 0.5),
        )
        for s in chart.slices
    )
    return PieLayout(
        title=chart.title,
        rows=rows,
        total=total,
        bar_width=width,
        label_width=max(len(r.label) for r in rows),
    )
