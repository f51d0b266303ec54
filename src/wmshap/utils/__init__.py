"""Utility helpers for WMSHAP."""

from .io import ensure_dir, load_table, save_json, save_figure
from .logging import setup_logging

__all__ = [
    "ensure_dir",
    "load_table",
    "save_json",
    "save_figure",
    "setup_logging",
]
