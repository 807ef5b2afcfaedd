from __future__ import annotations

from typing import Optional, Sequence


class EinfactorError(Exception):
    """Base class for einfactor-specific exceptions."""


class ParseError(EinfactorError, ValueError):
    def __init__(
        self,
        message: str,
        *,
        column: Optional[int] = None,
        line_text: Optional[str] = None,
    ):
        detail = _format_location(column, line_text)
        super().__init__(f"{message}{detail}")
        self.column = column
        self.line_text = line_text


class UnknownIndexError(EinfactorError, ValueError):
    def __init__(self, index: str, available: Sequence[str] = ()):
        self.index = index
        self.available = tuple(available)
        listed = ", ".join(self.available) if self.available else "∅"
        super().__init__(f"Unknown index: {index} (contraction indices: {{{listed}}})")


class ArgumentCountMismatch(EinfactorError, ValueError):
    def __init__(self, expected: int, received: int, *, call_site: Optional[str] = None):
        self.expected = expected
        self.received = received
        self.call_site = call_site
        message = f"Argument number mismatch: subscripts ({expected}), args ({received})"
        if call_site:
            message = f"{message} at {call_site}"
        super().__init__(message)


class NameCollisionError(EinfactorError, RuntimeError):
    pass


class CodegenError(EinfactorError, RuntimeError):
    pass


def _format_location(column: Optional[int], line_text: Optional[str]) -> str:
    if column is None:
        return ""
    location_str = f" (col {column})"
    if line_text is None or column < 1:
        return location_str
    caret = " " * (column - 1) + "^"
    return f"{location_str}\n  {line_text}\n  {caret}"
