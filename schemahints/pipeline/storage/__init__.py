"""
Storage module.

Corpus layout and atomic artifact writes.
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter
from .layout import SAMPLES_DIR, SOURCE_DIR, StorageLayout

__all__ = [
    "AtomicWriter",
    "StorageLayout",
    "SOURCE_DIR",
    "SAMPLES_DIR",
]
