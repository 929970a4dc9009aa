"""
Compiler module.

Canonical identifiers, reference resolution, the hint-to-schema
compiler and the enum emission registry.
"""

from __future__ import annotations

from .canonical_id import ArtifactKind, CanonicalId
from .reference_resolver import NamespaceContext, PathKind, ReferenceResolver, ResolvedRef
from .enum_registry import EnumArtifact, EnumEmission, EnumRegistry
from .compiler import CompiledSchema, CompileResult, SchemaCompiler

__all__ = [
    "ArtifactKind",
    "CanonicalId",
    "NamespaceContext",
    "PathKind",
    "ReferenceResolver",
    "ResolvedRef",
    "EnumArtifact",
    "EnumEmission",
    "EnumRegistry",
    "CompiledSchema",
    "CompileResult",
    "SchemaCompiler",
]
