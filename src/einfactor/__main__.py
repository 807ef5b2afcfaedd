from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core.codegen import generate_call, generate_module
from .core.exceptions import EinfactorError
from .core.planner import Plan, PlanConfig, build_plan, expand


def _make_plan(notation: str, args: Optional[List[str]], order: str) -> Plan:
    config = PlanConfig(order=order)
    if args is None:
        return build_plan(notation, config=config)
    return expand(notation, args, call_site="command line", config=config)


def _run_plan(notation: str, args: Optional[List[str]], order: str, as_json: bool) -> None:
    plan = _make_plan(notation, args, order)
    if as_json:
        print(json.dumps(plan.explain(json=True), indent=2))
    else:
        print(plan.explain())


def _run_codegen(
    notation: str, args: Optional[List[str]], order: str, out: Optional[Path]
) -> None:
    plan = _make_plan(notation, args, order)
    source = generate_module(plan)
    if args is not None:
        source = f"{source}\n\n# {generate_call(plan)}\n"
    if out is None:
        print(source, end="")
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(source, encoding="utf-8")


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("notation", help="Einsum subscripts, e.g. 'ij,jk->ik'")
    parser.add_argument(
        "--args",
        nargs="*",
        default=None,
        help="Argument expressions; their number must match the inputs",
    )
    parser.add_argument(
        "--order",
        default="ascending",
        choices=["ascending", "descending"],
        help="Which contraction index to try first (default: ascending)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="einfactor command line utilities")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log factorization steps")
    subparsers = parser.add_subparsers(dest="cmd")

    plan_parser = subparsers.add_parser("plan", help="Show the factorization plan")
    _add_common(plan_parser)
    plan_parser.add_argument("--json", action="store_true", help="Emit the plan as JSON")

    codegen_parser = subparsers.add_parser("codegen", help="Emit nested-loop Python source")
    _add_common(codegen_parser)
    codegen_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Optional output path. If omitted, prints the source",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        if args.cmd == "plan":
            _run_plan(args.notation, args.args, args.order, args.json)
            return
        if args.cmd == "codegen":
            _run_codegen(args.notation, args.args, args.order, args.out)
            return
    except EinfactorError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    parser.print_help()


if __name__ == "__main__":  # pragma: no cover
    main(sys.argv[1:])
