from __future__ import annotations

from .parser import parse_d2

__all__ = ["parse_d2"]
