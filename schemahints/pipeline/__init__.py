"""
Pipeline - SCHEMAHINTS annotations to JSON Schema.

The toolchain runs in separately invoked phases:

1. Phase 1 (Hints): Parse one annotation note into a HintBlock
2. Phase 2 (Compiler): Resolve references and build the class schema,
   queueing enum emissions in the EnumRegistry
3. Phase 3 (Storage): Write schema and enum artifacts atomically
4. Phase 4 (Bundler): Reload the corpus and bundle or dereference it
5. Phase 5 (Synthesizer): Build a minimal example instance per schema
"""

from __future__ import annotations

from .config import ParseMode, SchemaHintsConfig
from .errors import (
    BundleError,
    HintParseError,
    ReferenceResolutionError,
    SchemaHintsError,
    StorageError,
    UnresolvedReferenceError,
)
from .hints import HintBlock, HintParser, extract_note_blocks
from .compiler import ArtifactKind, CanonicalId, EnumRegistry, NamespaceContext, ReferenceResolver, SchemaCompiler
from .storage import AtomicWriter, StorageLayout
from .bundler import Bundler, DocumentRegistry
from .synthesizer import NO_SAMPLE, InstanceSynthesizer

__all__ = [
    "ParseMode",
    "SchemaHintsConfig",
    "SchemaHintsError",
    "HintParseError",
    "ReferenceResolutionError",
    "UnresolvedReferenceError",
    "StorageError",
    "BundleError",
    "HintBlock",
    "HintParser",
    "extract_note_blocks",
    "ArtifactKind",
    "CanonicalId",
    "EnumRegistry",
    "NamespaceContext",
    "ReferenceResolver",
    "SchemaCompiler",
    "AtomicWriter",
    "StorageLayout",
    "Bundler",
    "DocumentRegistry",
    "InstanceSynthesizer",
    "NO_SAMPLE",
]
