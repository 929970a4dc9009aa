"""
Bundler module.

Loads materialized documents into handles and bundles or dereferences
the document graph.
"""

from __future__ import annotations

from .registry import DocumentHandle, DocumentRegistry
from .bundler import DEFS, Bundler

__all__ = [
    "DocumentHandle",
    "DocumentRegistry",
    "Bundler",
    "DEFS",
]
