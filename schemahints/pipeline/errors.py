"""
Exception hierarchy for the SCHEMAHINTS pipeline.

Failures are isolated per unit of work: callers catch these around a
single class, document or sample and record the outcome instead of
aborting the batch.
"""

from __future__ import annotations


class SchemaHintsError(Exception):
    """Base class for all pipeline errors."""

    pass


class HintParseError(SchemaHintsError):
    """Raised when an annotation block cannot be parsed at all.

    Individual malformed lines never raise; they are skipped (tolerant
    mode) or reported as diagnostics (strict mode).
    """

    pass


class ReferenceResolutionError(SchemaHintsError):
    """Raised when a hint reference path is malformed or cannot be mapped
    to a canonical identifier."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot resolve reference '{path}': {reason}")


class UnresolvedReferenceError(SchemaHintsError):
    """Raised by the synthesizer when a $ref has no target in the registry."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Unresolved $ref: {ref}")


class StorageError(SchemaHintsError):
    """Raised when reading or writing one artifact fails.

    Fatal for the affected document only.
    """

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class BundleError(SchemaHintsError):
    """Raised when a bundle cannot be produced at all (e.g. empty corpus)."""

    pass
