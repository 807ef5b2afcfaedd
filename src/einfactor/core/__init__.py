"""Core subscript algebra and factorization engine for einfactor."""

__all__ = [
    "codegen",
    "exceptions",
    "ir",
    "parser",
    "planner",
    "subscripts",
]
