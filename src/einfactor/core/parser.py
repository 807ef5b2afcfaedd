from __future__ import annotations

from collections import Counter
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

from lark import Lark, Token, Transformer
from lark.exceptions import (
    LarkError,
    UnexpectedCharacters,
    UnexpectedInput,
    UnexpectedToken,
)

from .exceptions import ParseError
from .ir import (
    EllipsisIndices,
    Indices,
    RawSubscript,
    RawSubscripts,
    has_ellipsis,
    indices,
)

GRAMMAR_PATH = Path(__file__).with_name("subscripts_grammar.lark")

ARROW = "->"


@lru_cache(maxsize=1)
def _build_lark() -> Lark:
    grammar = GRAMMAR_PATH.read_text(encoding="utf-8")
    return Lark(
        grammar,
        parser="lalr",
        start="start",
        maybe_placeholders=False,
    )


class SubscriptsTransformer(Transformer):
    def start(self, items) -> RawSubscripts:
        inputs = items[0]
        output = items[1] if len(items) > 1 else None
        return RawSubscripts(inputs=inputs, output=output)

    def inputs(self, items) -> Tuple[RawSubscript, ...]:
        return tuple(items)

    def output(self, items) -> RawSubscript:
        return items[0]

    def subscript(self, items: List[Token]) -> RawSubscript:
        start: List[str] = []
        end: List[str] = []
        seen_ellipsis = False
        for token in items:
            if token.type == "ELLIPSIS":
                seen_ellipsis = True
            elif seen_ellipsis:
                end.append(token.value)
            else:
                start.append(token.value)
        if seen_ellipsis:
            return EllipsisIndices(start=start, end=end)
        return Indices(start)


def _describe_unexpected(exc: UnexpectedInput) -> str:
    if isinstance(exc, UnexpectedCharacters):
        return f"Unexpected character {exc.char!r} in subscripts"
    if isinstance(exc, UnexpectedToken):
        value = exc.token.value if exc.token.value else "end of input"
        return f"Unexpected {value!r} in subscripts"
    return "Unexpected end of subscripts"


def _output_column(text: str, label: str) -> Optional[int]:
    arrow = text.find(ARROW)
    if arrow < 0:
        return None
    pos = text.find(label, arrow + len(ARROW))
    return pos + 1 if pos >= 0 else None


def _validate(raw: RawSubscripts, text: str) -> None:
    if raw.output is None:
        return
    known = {label for sub in raw.inputs for label in indices(sub)}
    counts = Counter(indices(raw.output))
    for label, count in counts.items():
        if label not in known:
            raise ParseError(
                f"Output subscript '{label}' does not appear in any input",
                column=_output_column(text, label),
                line_text=text,
            )
        if count > 1:
            raise ParseError(
                f"Output subscript '{label}' appears more than once",
                column=_output_column(text, label),
                line_text=text,
            )
    if has_ellipsis(raw.output) and not any(has_ellipsis(sub) for sub in raw.inputs):
        raise ParseError(
            "Output has an ellipsis but no input broadcasts",
            column=_output_column(text, "..."),
            line_text=text,
        )


def parse(text: str) -> RawSubscripts:
    """Parse einsum subscripts such as ``ij,jk->ik`` into :class:`RawSubscripts`.

    Without ``->`` the notation is in implicit mode and ``output`` is ``None``;
    inferring the output is left to :meth:`Subscripts.from_raw`.
    """
    if not isinstance(text, str):
        raise TypeError(f"Subscripts must be a string, got {type(text).__name__}")
    try:
        tree = _build_lark().parse(text)
    except UnexpectedInput as exc:
        column = exc.column if isinstance(exc.column, int) and exc.column > 0 else len(text) + 1
        raise ParseError(_describe_unexpected(exc), column=column, line_text=text) from exc
    except LarkError as exc:  # pragma: no cover - grammar errors only
        raise ParseError(str(exc)) from exc
    raw = SubscriptsTransformer().transform(tree)
    _validate(raw, text)
    return raw
