from __future__ import annotations

import re

from .types import DiagramFormat

# ============================================================================
# Input format detection -- Mermaid or D2
# ============================================================================

_MERMAID_HEADERS = (
    re.compile(r"^(?:flowchart|graph)\s+\w+\s*;?$", re.IGNORECASE),
    re.compile(r"^statediagram(?:-v2)?\s*$", re.IGNORECASE),
    re.compile(r"^pie(?:\s+showdata)?(?:\s+title\b.*)?$", re.IGNORECASE),
)

_MERMAID_ARROWS = ("-->", "---", "-.->", "==>")


def detect_format(text: str) -> DiagramFormat:
    """Guess whether ``text`` is Mermaid or D2.

    A Mermaid header on the first significant line, or any Mermaid-only
    arrow token, means Mermaid. Everything else (including empty input)
    is treated as D2.
    """
    first = _first_significant_line(text)
    if first is not None and any(p.match(first) for p in _MERMAID_HEADERS):
        return "mermaid"
    if any(arrow in text for arrow in _MERMAID_ARROWS):
        return "mermaid"
    return "d2"


def _first_significant_line(text: str) -> str | None:
    for raw in text.splitlines():
        line = raw.strip()
        if line and not line.startswith("%%"):
            return line
    return None
