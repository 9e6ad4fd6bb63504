"""Command-line helpers."""
from __future__ import annotations

from .common import build_parser, layer_from_args

__all__ = ["build_parser", "layer_from_args"]
