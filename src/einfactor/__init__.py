from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _load_version

from .core.codegen import def_einsum_fn, generate_call, generate_module
from .core.exceptions import (
    ArgumentCountMismatch,
    CodegenError,
    EinfactorError,
    NameCollisionError,
    ParseError,
    UnknownIndexError,
)
from .core.ir import EllipsisIndices, Indices, RawSubscripts
from .core.parser import parse
from .core.planner import Plan, PlanConfig, PlanNode, build_plan, expand, factorize_all
from .core.subscripts import Intermediate, Namespace, Subscript, Subscripts, User

try:
    __version__ = _load_version("einfactor")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "Subscripts",
    "Subscript",
    "Namespace",
    "User",
    "Intermediate",
    "Indices",
    "EllipsisIndices",
    "RawSubscripts",
    "parse",
    "Plan",
    "PlanConfig",
    "PlanNode",
    "build_plan",
    "expand",
    "factorize_all",
    "def_einsum_fn",
    "generate_module",
    "generate_call",
    "EinfactorError",
    "ParseError",
    "UnknownIndexError",
    "ArgumentCountMismatch",
    "NameCollisionError",
    "CodegenError",
    "__version__",
]
