"""Nested-loop Python source for factorized einsum steps.

The generated code depends only on NumPy. Each step becomes one function with
positional parameters ``arg0, arg1, ...`` that infers label extents from the
operand shapes, asserts that shared labels agree, and accumulates the product
of the operands over nested loops::

    def ij_jk__ik(arg0, arg1):
        ...
        for i in range(n_i):
            for k in range(n_k):
                for j in range(n_j):
                    out[i, k] += arg0[i, j] * arg1[j, k]
        return out
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .exceptions import CodegenError
from .ir import EllipsisIndices, Indices, RawSubscript, has_ellipsis, indices
from .planner import Plan
from .subscripts import Subscripts

INDENT = "    "
NUMPY_ALIAS = "np"


def _tuple_literal(items: Sequence[str]) -> str:
    if not items:
        return "()"
    if len(items) == 1:
        return f"({items[0]},)"
    return "(" + ", ".join(items) + ")"


def _index_expr(var: str, raw: RawSubscript) -> str:
    if isinstance(raw, Indices):
        items = list(raw.labels)
    elif isinstance(raw, EllipsisIndices):
        items = list(raw.start) + ["..."] + list(raw.end)
    else:
        raise CodegenError(f"Unsupported raw subscript: {raw!r}")
    if not items:
        return f"{var}[()]"
    return f"{var}[{', '.join(items)}]"


def _broadcast_region(var: str, raw: EllipsisIndices) -> str:
    head = len(raw.start)
    tail = len(raw.end)
    if tail == 0:
        return f"{var}.shape[{head}:]"
    return f"{var}.shape[{head}:-{tail}]"


def _loop_order(step: Subscripts) -> List[str]:
    ordered: Dict[str, None] = {}
    for label in step.output.indices():
        ordered.setdefault(label, None)
    for sub in step.inputs:
        for label in sub.indices():
            ordered.setdefault(label, None)
    return list(ordered)


def def_einsum_fn(step: Subscripts, name: Optional[str] = None) -> str:
    """Source of one function computing ``step`` with nested loops."""
    if not step.inputs:
        raise CodegenError("Cannot generate code for a step without inputs")
    fn_name = name or str(step)
    if not fn_name.isidentifier():
        raise CodegenError(f"Step name is not a valid identifier: {fn_name!r}")
    broadcasting = [sub for sub in step.inputs if has_ellipsis(sub.raw)]
    if broadcasting and not has_ellipsis(step.output.raw):
        raise CodegenError(
            f"Broadcast dimensions of '{step.notation()}' must appear in the output"
        )

    params = [f"arg{i}" for i in range(len(step.inputs))]
    body: List[str] = []
    for var in params:
        body.append(f"{var} = {NUMPY_ALIAS}.asarray({var})")

    extents: Dict[str, str] = {}
    for var, sub in zip(params, step.inputs):
        raw = sub.raw
        if isinstance(raw, Indices):
            body.append(
                f"assert {var}.ndim == {len(raw.labels)}, "
                f"\"'{raw.notation()}' expects a {len(raw.labels)}-dimensional operand\""
            )
            axes = [(label, str(pos)) for pos, label in enumerate(raw.labels)]
        else:
            fixed = len(raw.start) + len(raw.end)
            body.append(
                f"assert {var}.ndim >= {fixed}, "
                f"\"'{raw.notation()}' expects at least {fixed} dimensions\""
            )
            axes = [(label, str(pos)) for pos, label in enumerate(raw.start)]
            axes += [(label, str(pos - len(raw.end))) for pos, label in enumerate(raw.end)]
        for label, axis in axes:
            extent = f"{var}.shape[{axis}]"
            if label in extents:
                body.append(
                    f"assert {extents[label]} == {extent}, "
                    f"\"dimension mismatch for index '{label}'\""
                )
            else:
                body.append(f"n_{label} = {extent}")
                extents[label] = f"n_{label}"

    for label in step.output.indices():
        if label not in extents:
            raise CodegenError(f"Output index '{label}' does not appear in any input")

    out_raw = step.output.raw
    if isinstance(out_raw, EllipsisIndices):
        regions = ", ".join(
            _broadcast_region(var, sub.raw)
            for var, sub in zip(params, step.inputs)
            if isinstance(sub.raw, EllipsisIndices)
        )
        body.append(f"batch = {NUMPY_ALIAS}.broadcast_shapes({regions})")
        shape = " + ".join(
            [
                _tuple_literal([f"n_{label}" for label in out_raw.start]),
                "batch",
                _tuple_literal([f"n_{label}" for label in out_raw.end]),
            ]
        )
    else:
        shape = _tuple_literal([f"n_{label}" for label in indices(out_raw)])
    dtype = f"{NUMPY_ALIAS}.result_type({', '.join(params)})"
    body.append(f"out = {NUMPY_ALIAS}.zeros({shape}, dtype={dtype})")

    depth = 0
    for label in _loop_order(step):
        body.append(f"{INDENT * depth}for {label} in range(n_{label}):")
        depth += 1
    product = " * ".join(_index_expr(var, sub.raw) for var, sub in zip(params, step.inputs))
    body.append(f"{INDENT * depth}{_index_expr('out', out_raw)} += {product}")
    body.append("return out")

    lines = [f"def {fn_name}({', '.join(params)}):"]
    lines.extend(f"{INDENT}{line}" for line in body)
    return "\n".join(lines)


def entry_name(plan: Plan) -> str:
    return f"einsum_{plan.root}"


def generate_module(plan: Plan, entry: Optional[str] = None) -> str:
    """Source of a module with every step function and one entry function.

    The entry binds ``User(i)`` to its ``i``-th parameter and every
    ``Intermediate(k)`` to a local named from ``k``.
    """
    cfg = plan.config
    fn_entry = entry or entry_name(plan)
    if not fn_entry.isidentifier():
        raise CodegenError(f"Entry name is not a valid identifier: {fn_entry!r}")
    if fn_entry == NUMPY_ALIAS:
        raise CodegenError(f"Entry name '{fn_entry}' would shadow the numpy import")
    if fn_entry in plan.names:
        raise CodegenError(f"Entry name '{fn_entry}' collides with a step function")

    chunks: List[str] = [f"import numpy as {NUMPY_ALIAS}"]
    emitted = set()
    for name, step in zip(plan.names, plan.steps):
        if name in emitted:
            continue
        emitted.add(name)
        chunks.append(def_einsum_fn(step, name))

    params = [cfg.position_name(sub.position) for sub in plan.root.inputs]
    body: List[str] = []
    for name, step in zip(plan.names, plan.steps):
        args = ", ".join(cfg.position_name(sub.position) for sub in step.inputs)
        body.append(f"{cfg.position_name(step.output.position)} = {name}({args})")
    body.append(f"return {cfg.position_name(plan.root.output.position)}")
    entry_lines = [f"def {fn_entry}({', '.join(params)}):"]
    entry_lines.extend(f"{INDENT}{line}" for line in body)
    chunks.append("\n".join(entry_lines))
    return "\n\n\n".join(chunks) + "\n"


def generate_call(plan: Plan, entry: Optional[str] = None) -> str:
    """Call of the entry function on the plan's argument expressions."""
    return f"{entry or entry_name(plan)}({', '.join(plan.args)})"
