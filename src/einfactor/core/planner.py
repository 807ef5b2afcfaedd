from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .exceptions import ArgumentCountMismatch, NameCollisionError
from .ir import json_ready
from .subscripts import Intermediate, Namespace, Position, Subscripts, User

logger = logging.getLogger(__name__)


@dataclass
class PlanConfig:
    """
    Switches for expanding one notation into a plan.

    * ``order`` picks which end of ``contraction_indices()`` is tried first
      (``"ascending"`` or ``"descending"``). No cost model is involved; any
      contraction index is a valid choice.
    * ``collisions`` decides what happens when two structurally different steps
      share a canonical name: ``"suffix"`` appends ``_1``, ``_2``, ... and
      ``"error"`` raises :class:`NameCollisionError`.
    * ``user_prefix`` and ``intermediate_prefix`` name generated variables for
      ``User(i)`` and ``Intermediate(k)`` positions.
    """

    order: str = "ascending"  # "ascending" | "descending"
    collisions: str = "suffix"  # "suffix" | "error"
    user_prefix: str = "arg"
    intermediate_prefix: str = "out"

    def normalized(self) -> "PlanConfig":
        order = (self.order or "ascending").lower()
        if order not in {"ascending", "descending"}:
            raise ValueError(f"Unsupported factorization order: {self.order}")
        collisions = (self.collisions or "suffix").lower()
        if collisions not in {"suffix", "error"}:
            raise ValueError(f"Unsupported collision policy: {self.collisions}")
        user_prefix = str(self.user_prefix)
        intermediate_prefix = str(self.intermediate_prefix)
        for prefix in (user_prefix, intermediate_prefix):
            if not prefix.isidentifier():
                raise ValueError(f"Variable prefix must be an identifier: {prefix!r}")
        if user_prefix.startswith(intermediate_prefix) or intermediate_prefix.startswith(
            user_prefix
        ):
            raise ValueError("user_prefix and intermediate_prefix must not prefix each other")
        return replace(
            self,
            order=order,
            collisions=collisions,
            user_prefix=user_prefix,
            intermediate_prefix=intermediate_prefix,
        )

    def position_name(self, position: Position) -> str:
        if isinstance(position, User):
            return f"{self.user_prefix}{position.index}"
        if isinstance(position, Intermediate):
            return f"{self.intermediate_prefix}{position.index}"
        raise TypeError(f"Unsupported position: {position!r}")


@dataclass
class PlanNode:
    """Binary factorization tree; leaves are the steps handed to code generation."""

    step: Subscripts
    index: Optional[str] = None
    first: Optional["PlanNode"] = None
    second: Optional["PlanNode"] = None

    @property
    def is_leaf(self) -> bool:
        return self.first is None and self.second is None

    def leaves(self) -> List[Subscripts]:
        if self.is_leaf:
            return [self.step]
        out: List[Subscripts] = []
        for child in (self.first, self.second):
            if child is not None:
                out.extend(child.leaves())
        return out

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"step": self.step.describe()}
        if not self.is_leaf:
            payload["index"] = self.index
            payload["first"] = self.first.to_dict() if self.first is not None else None
            payload["second"] = self.second.to_dict() if self.second is not None else None
        return payload


def factorize_all(
    names: Namespace,
    subscripts: Subscripts,
    config: Optional[PlanConfig] = None,
) -> PlanNode:
    """Factorize repeatedly until every leaf is irreducible.

    Each successful split strictly shrinks the contraction index set of the
    second half and leaves ``first`` with a single contraction index, so the
    recursion terminates.
    """
    cfg = (config or PlanConfig()).normalized()
    candidates = subscripts.contraction_indices()
    if cfg.order == "descending":
        candidates = tuple(reversed(candidates))
    for index in candidates:
        split = subscripts.factorize(names, index)
        if split is None:
            continue
        first, second = split
        return PlanNode(
            step=subscripts,
            index=index,
            first=factorize_all(names, first, cfg),
            second=factorize_all(names, second, cfg),
        )
    logger.debug("irreducible step %s", subscripts.describe())
    return PlanNode(step=subscripts)


def step_names(steps: Sequence[Subscripts], collisions: str = "suffix") -> Tuple[str, ...]:
    """Collision-free function names for ``steps``.

    ``str(step)`` is the canonical name. Steps with the same notation share it;
    structurally different steps that render to the same name are suffixed or
    rejected depending on ``collisions``.
    """
    variants: Dict[str, List[str]] = {}
    out: List[str] = []
    for step in steps:
        base = str(step)
        seen = variants.setdefault(base, [])
        notation = step.notation()
        if notation not in seen:
            if seen and collisions == "error":
                raise NameCollisionError(
                    f"Step name '{base}' is shared by '{seen[0]}' and '{notation}'"
                )
            if seen:
                logger.warning(
                    "step name %s collides for %s and %s; suffixing", base, seen[0], notation
                )
            seen.append(notation)
        suffix = seen.index(notation)
        out.append(base if suffix == 0 else f"{base}_{suffix}")
    return tuple(out)


@dataclass
class Plan:
    notation: str
    root: Subscripts
    tree: PlanNode
    steps: Tuple[Subscripts, ...]
    names: Tuple[str, ...]
    args: Tuple[str, ...]
    config: PlanConfig = field(default_factory=PlanConfig)

    def explain(self, *, json: bool = False) -> Any:
        cfg = self.config
        steps: List[Dict[str, Any]] = []
        for name, step in zip(self.names, self.steps):
            steps.append(
                {
                    "name": name,
                    "notation": step.notation(),
                    "inputs": [cfg.position_name(sub.position) for sub in step.inputs],
                    "output": cfg.position_name(step.output.position),
                    "contraction": list(step.contraction_indices()),
                }
            )
        root_inputs = " ".join(cfg.position_name(sub.position) for sub in self.root.inputs)
        payload = {
            "notation": self.notation,
            "root": (
                f"{self.root.notation()} | {root_inputs} -> "
                f"{cfg.position_name(self.root.output.position)}"
            ),
            "args": list(self.args),
            "steps": steps,
            "tree": self.tree.to_dict(),
        }
        if json:
            return json_ready(payload)

        lines = [f"[plan] {payload['root']}"]
        for entry in steps:
            contraction = ",".join(entry["contraction"]) or "-"
            inputs = " ".join(entry["inputs"])
            lines.append(
                f"[step] {entry['name']} {entry['notation']} | {inputs} -> {entry['output']}"
                f" contract:{{{contraction}}}"
            )
        return "\n".join(lines)


def _finish(
    notation: str,
    names: Namespace,
    root: Subscripts,
    args: Tuple[str, ...],
    cfg: PlanConfig,
) -> Plan:
    tree = factorize_all(names, root, cfg)
    steps = tuple(tree.leaves())
    logger.debug("planned %s in %d step(s)", notation, len(steps))
    return Plan(
        notation=notation,
        root=root,
        tree=tree,
        steps=steps,
        names=step_names(steps, cfg.collisions),
        args=args,
        config=cfg,
    )


def build_plan(notation: str, config: Optional[PlanConfig] = None) -> Plan:
    cfg = (config or PlanConfig()).normalized()
    names = Namespace.init()
    root = Subscripts.from_raw_indices(names, notation)
    args = tuple(f"{cfg.user_prefix}{i}" for i in range(len(root.inputs)))
    return _finish(notation, names, root, args, cfg)


def expand(
    notation: str,
    args: Sequence[str],
    *,
    call_site: Optional[str] = None,
    config: Optional[PlanConfig] = None,
) -> Plan:
    """Expand ``notation`` applied to ``args`` into a plan.

    The argument count is checked once against the parsed inputs before any
    factorization; a mismatch aborts the whole expansion.
    """
    cfg = (config or PlanConfig()).normalized()
    names = Namespace.init()
    root = Subscripts.from_raw_indices(names, notation)
    if len(root.inputs) != len(args):
        raise ArgumentCountMismatch(len(root.inputs), len(args), call_site=call_site)
    return _finish(notation, names, root, tuple(str(arg) for arg in args), cfg)
