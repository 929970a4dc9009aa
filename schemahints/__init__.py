"""SCHEMAHINTS toolchain

Compiles SCHEMAHINTS annotations embedded in PlantUML class-diagram
notes into JSON Schema documents, bundles or dereferences the resulting
document graph and synthesizes minimal example instances.
"""

__version__ = "1.0.0"

from .pipeline import (
    AtomicWriter,
    Bundler,
    DocumentRegistry,
    EnumRegistry,
    HintParser,
    InstanceSynthesizer,
    SchemaCompiler,
    SchemaHintsConfig,
    StorageLayout,
)

__all__ = [
    "HintParser",
    "SchemaCompiler",
    "SchemaHintsConfig",
    "EnumRegistry",
    "DocumentRegistry",
    "Bundler",
    "InstanceSynthesizer",
    "StorageLayout",
    "AtomicWriter",
]
