from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple, Union

# Ellipses render as three underscores in step names, keeping them valid
# identifiers. Different placements can therefore render identically.
ELLIPSIS_NAME = "___"
ELLIPSIS_TEXT = "..."


def _labels(value: Iterable[str]) -> Tuple[str, ...]:
    return tuple(str(label) for label in value)


@dataclass(frozen=True)
class Indices:
    """Plain label sequence, e.g. ``ij``."""

    labels: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "labels", _labels(self.labels))

    def notation(self) -> str:
        return "".join(self.labels)

    def __str__(self) -> str:
        return "".join(self.labels)


@dataclass(frozen=True)
class EllipsisIndices:
    """Label sequence with a broadcast region between ``start`` and ``end``.

    ``ij...k`` is ``EllipsisIndices(start=("i", "j"), end=("k",))``.
    """

    start: Tuple[str, ...] = ()
    end: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "start", _labels(self.start))
        object.__setattr__(self, "end", _labels(self.end))

    def notation(self) -> str:
        return "".join(self.start) + ELLIPSIS_TEXT + "".join(self.end)

    def __str__(self) -> str:
        return "".join(self.start) + ELLIPSIS_NAME + "".join(self.end)


RawSubscript = Union[Indices, EllipsisIndices]


def indices(raw: RawSubscript) -> Tuple[str, ...]:
    """Flatten a raw subscript into its labels, dropping the ellipsis position."""
    if isinstance(raw, Indices):
        return raw.labels
    if isinstance(raw, EllipsisIndices):
        return raw.start + raw.end
    raise TypeError(f"Unsupported raw subscript: {raw!r}")


def has_ellipsis(raw: RawSubscript) -> bool:
    if isinstance(raw, Indices):
        return False
    if isinstance(raw, EllipsisIndices):
        return True
    raise TypeError(f"Unsupported raw subscript: {raw!r}")


@dataclass(frozen=True)
class RawSubscripts:
    """Parsed notation: ordered inputs plus the output when written explicitly."""

    inputs: Tuple[RawSubscript, ...]
    output: Optional[RawSubscript] = None

    def __post_init__(self):
        object.__setattr__(self, "inputs", tuple(self.inputs))

    @property
    def is_explicit(self) -> bool:
        return self.output is not None

    def notation(self) -> str:
        text = ",".join(raw.notation() for raw in self.inputs)
        if self.output is not None:
            text = f"{text}->{self.output.notation()}"
        return text


def json_ready(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): json_ready(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [json_ready(v) for v in value]
    return str(value)
