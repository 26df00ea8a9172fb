"""Exceptions raised to host code.

Both signal integration bugs in the host, not operational failures, so
nothing in plugstats catches them.
"""
from __future__ import annotations


class InvalidArgumentError(ValueError):
    """A required argument was None or otherwise unusable."""


class BuilderStateError(RuntimeError):
    """A PayloadBuilder was used after build()."""
