"""Setuptools build hooks for einfactor."""

from __future__ import annotations

from setuptools import setup

# Metadata lives in pyproject.toml. The package is pure Python plus one
# grammar file, so the default command classes produce a ``py3-none-any`` wheel.
setup()
