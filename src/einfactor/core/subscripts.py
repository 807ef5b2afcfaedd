"""Einsum subscripts with tensor provenance, e.g. ``ij,jk->ik | arg0 arg1 -> out0``.

Factorizing an einsum needs to track which tensor each subscript belongs to
in addition to its labels, so every :class:`Subscript` carries a
:class:`Position`: either a user argument or an intermediate result issued by
a :class:`Namespace`.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .exceptions import UnknownIndexError
from .ir import (
    EllipsisIndices,
    Indices,
    RawSubscript,
    RawSubscripts,
    has_ellipsis,
    indices,
)
from .parser import parse

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class User:
    """The tensor passed as the ``index``-th argument of the einsum call."""

    index: int

    def __str__(self) -> str:
        return f"arg{self.index}"


@dataclass(frozen=True, order=True)
class Intermediate:
    """The tensor created in the ``index``-th step of one expansion."""

    index: int

    def __str__(self) -> str:
        return f"out{self.index}"


Position = Union[User, Intermediate]


class Namespace:
    """Counter issuing intermediate tensor names ``out0``, ``out1``, ...

    One namespace lives for exactly one top-level expansion.
    """

    def __init__(self, last: int = 0):
        self.last = last

    @classmethod
    def init(cls) -> "Namespace":
        return cls(0)

    def new(self) -> Intermediate:
        position = Intermediate(self.last)
        self.last += 1
        return position

    def __repr__(self) -> str:
        return f"Namespace(last={self.last})"


@dataclass(frozen=True)
class Subscript:
    raw: RawSubscript
    position: Position

    def indices(self) -> Tuple[str, ...]:
        return indices(self.raw)

    def __str__(self) -> str:
        return str(self.raw)


def count_indices(inputs: Sequence[Subscript]) -> Dict[str, int]:
    """Occurrences of every label over all inputs, keyed in ascending order."""
    count: Counter = Counter()
    for sub in inputs:
        count.update(sub.indices())
    return {label: count[label] for label in sorted(count)}


@dataclass(frozen=True)
class Subscripts:
    """One contraction step: ordered inputs and exactly one output."""

    inputs: Tuple[Subscript, ...]
    output: Subscript

    def __post_init__(self):
        object.__setattr__(self, "inputs", tuple(self.inputs))

    # Construction -------------------------------------------------------------
    @classmethod
    def from_raw(cls, names: Namespace, raw: RawSubscripts) -> "Subscripts":
        """Normalize parsed subscripts into explicit mode.

        Inputs become ``User(0)``, ``User(1)``, ... in argument order and the
        output takes a fresh intermediate position. In implicit mode the output
        holds the labels occurring exactly once, reordered alphabetically as
        numpy does: ``ji`` alone transposes to ``ij``.
        """
        inputs = tuple(
            Subscript(raw=sub, position=User(i)) for i, sub in enumerate(raw.inputs)
        )
        position = names.new()
        if raw.output is not None:
            output = Subscript(raw=raw.output, position=position)
        else:
            count = count_indices(inputs)
            labels = [label for label, n in count.items() if n == 1]
            if any(has_ellipsis(sub) for sub in raw.inputs):
                out_raw: RawSubscript = EllipsisIndices(start=(), end=labels)
            else:
                out_raw = Indices(labels)
            output = Subscript(raw=out_raw, position=position)
        subscripts = cls(inputs=inputs, output=output)
        logger.debug("constructed %s", subscripts.describe())
        return subscripts

    @classmethod
    def from_raw_indices(cls, names: Namespace, text: str) -> "Subscripts":
        return cls.from_raw(names, parse(text))

    # Analysis -----------------------------------------------------------------
    def contraction_indices(self) -> Tuple[str, ...]:
        """Labels to be summed away, in ascending order.

        >>> Subscripts.from_raw_indices(Namespace.init(), "ij,jk->ik").contraction_indices()
        ('j',)
        >>> Subscripts.from_raw_indices(Namespace.init(), "ij,ji->").contraction_indices()
        ('i', 'j')
        >>> Subscripts.from_raw_indices(Namespace.init(), "ii->i").contraction_indices()
        ()
        """
        count = count_indices(self.inputs)
        kept = set(self.output.indices())
        return tuple(label for label, n in count.items() if n > 1 and label not in kept)

    # Factorization ------------------------------------------------------------
    def factorize(
        self, names: Namespace, index: str
    ) -> Optional[Tuple["Subscripts", "Subscripts"]]:
        """Split along ``index`` into two steps joined by a new intermediate.

        ``ij,jk,kl->il | arg0 arg1 arg2 -> out0`` along ``j`` becomes::

            ij,jk->ik | arg0 arg1 -> out1
            ik,kl->il | out1 arg2 -> out0

        Every input of ``first`` contains ``index`` and every other label of
        them survives into its output, so ``first.contraction_indices()`` is
        exactly ``(index,)``. No input of ``second`` contains ``index``, so its
        contraction indices are a strict subset of ours.

        Returns ``None`` when all inputs contain ``index`` (the step is not
        ``index``-factorizable). Raises :class:`UnknownIndexError` when
        ``index`` is not a contraction index; the namespace is left untouched.
        """
        available = self.contraction_indices()
        if index not in available:
            raise UnknownIndexError(index, available)

        first: List[Subscript] = []
        second: List[Subscript] = []
        for sub in self.inputs:
            if index in sub.indices():
                first.append(sub)
            else:
                second.append(sub)

        if not second:
            return None

        labels = sorted({label for sub in first for label in sub.indices() if label != index})
        if any(has_ellipsis(sub.raw) for sub in first):
            out_raw: RawSubscript = EllipsisIndices(start=(), end=labels)
        else:
            out_raw = Indices(labels)
        intermediate = Subscript(raw=out_raw, position=names.new())

        head = Subscripts(inputs=tuple(first), output=intermediate)
        tail = Subscripts(inputs=(intermediate, *second), output=self.output)
        logger.debug(
            "factorized %s along %r into %s and %s",
            self.notation(),
            index,
            head.describe(),
            tail.describe(),
        )
        return head, tail

    # Rendering ----------------------------------------------------------------
    def notation(self) -> str:
        lhs = ",".join(sub.raw.notation() for sub in self.inputs)
        return f"{lhs}->{self.output.raw.notation()}"

    def describe(self) -> str:
        args = " ".join(str(sub.position) for sub in self.inputs)
        return f"{self.notation()} | {args} -> {self.output.position}"

    def __str__(self) -> str:
        # Used as a function name. Not injective: ``i...,j->ij`` and
        # ``i,...j->ij`` both render as ``i____j__ij``.
        parts = [f"{sub.raw}_" for sub in self.inputs]
        return "".join(parts) + f"_{self.output.raw}"
