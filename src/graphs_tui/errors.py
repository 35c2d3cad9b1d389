from __future__ import annotations

# ============================================================================
# Error taxonomy
#
# Every stage raises to its caller. All errors derive from ValueError so the
# public entry points can be guarded with a single except clause.
# ============================================================================


class DiagramError(ValueError):
    """Base class for every error raised while turning text into a diagram."""


class ParseError(DiagramError):
    """Malformed diagram source, with the 1-based line it was found on."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        text: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.message = message
        self.line = line
        self.text = text
        self.suggestion = suggestion
        super().__init__(self._format())

    def _format(self) -> str:
        out = self.message
        if self.line is not None:
            out = f"Line {self.line}: {out}"
        if self.text:
            out = f"{out}: {self.text!r}"
        if self.suggestion:
            out = f"{out} ({self.suggestion})"
        return out


class LayoutError(DiagramError):
    """The parsed diagram cannot be placed on a grid."""


class RenderError(DiagramError):
    """The laid-out diagram cannot be drawn within the requested limits."""

    def __init__(
        self,
        message: str,
        width: int | None = None,
        max_width: int | None = None,
    ) -> None:
        self.width = width
        self.max_width = max_width
        if width is not None and max_width is not None:
            message = f"{message} ({width} > {max_width})"
        super().__init__(message)
