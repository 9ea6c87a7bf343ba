"""Command line entry point for the FeelGood journal."""

from __future__ import annotations

from . import __main__ as cli  # noqa: F401

__all__ = ["cli"]
