"""Shared, low-risk helpers for regioncap.

This package is intentionally thin: box geometry and JSON reading that the
dataset modules import from a single canonical location.
"""

from __future__ import annotations

from . import geometry  # noqa: F401
from .io import read_json  # noqa: F401

__all__ = ["geometry", "read_json"]
