"""
Hint tree module.

Contains the hint node definitions and the SCHEMAHINTS parser.
"""

from __future__ import annotations

from .nodes import MISSING, Diagnostic, EnumDefinition, FieldHint, HintBlock, NoteBlock, Severity
from .parser import HintParser, extract_note_blocks

__all__ = [
    "MISSING",
    "Diagnostic",
    "EnumDefinition",
    "FieldHint",
    "HintBlock",
    "NoteBlock",
    "Severity",
    "HintParser",
    "extract_note_blocks",
]
