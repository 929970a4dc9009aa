"""
Corpus storage layout.

    <root>/<segment>/puml/<subpath...>/*.puml                 annotation sources
    <root>/<segment>/schemas/<subpath...>/<Name>.schema.json   compiled schemas
    <root>/<segment>/enums/<subpath...>/<Name>.json            enum artifacts
    <root>/<segment>/samples/<subpath...>/<Name>.sample.json   synthesized samples

All listings are sorted so a run never depends on filesystem
enumeration order.
"""

from __future__ import annotations

from pathlib import Path

from ..compiler.canonical_id import ArtifactKind, CanonicalId
from ..compiler.reference_resolver import NamespaceContext
from ..errors import StorageError

SOURCE_DIR = "puml"
SAMPLES_DIR = "samples"


class StorageLayout:
    """Maps canonical ids and sources onto paths below one corpus root."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def source_files(self) -> list[Path]:
        """All annotation sources, in lexicographic order."""
        return sorted(p for p in self.root.glob(f"*/{SOURCE_DIR}/**/*") if p.is_file() and p.suffix.lower() == ".puml")

    def schema_files(self) -> list[Path]:
        return sorted(self.root.glob(f"*/{ArtifactKind.SCHEMA.directory}/**/*.schema.json"))

    def enum_files(self) -> list[Path]:
        return sorted(self.root.glob(f"*/{ArtifactKind.ENUM.directory}/**/*.json"))

    def namespace_for_source(self, source: Path) -> NamespaceContext:
        """
        Derive the namespace of an annotation source from its location.

        Args:
            source: A file at <root>/<segment>/puml/<subpath...>/<File>.puml

        Returns:
            NamespaceContext(segment, subpath)

        Raises:
            StorageError: If the file is not laid out below the root as expected
        """
        try:
            parts = Path(source).resolve().relative_to(self.root.resolve()).parts
        except ValueError:
            raise StorageError(source, f"not below corpus root {self.root}") from None
        if len(parts) < 3 or parts[1] != SOURCE_DIR:
            raise StorageError(source, f"expected <segment>/{SOURCE_DIR}/.../<file>.puml")
        return NamespaceContext(segment=parts[0], subpath=tuple(parts[2:-1]))

    def artifact_path(self, canonical_id: CanonicalId) -> Path:
        return canonical_id.storage_path(self.root)

    def enum_target_path(self, target_path: str) -> Path:
        """Destination for an explicit enumDefine.targetPath (project-rooted, no suffix)."""
        parts = [p for p in target_path.split("/") if p]
        if not parts:
            raise StorageError(target_path, "empty targetPath")
        *folders, name = parts
        return Path(self.root, *folders, f"{name}.json")

    def sample_path(self, canonical_id: CanonicalId) -> Path:
        return Path(self.root, canonical_id.segment, SAMPLES_DIR, *canonical_id.subpath, f"{canonical_id.name}.sample.json")

    def relative(self, path: Path) -> str:
        """Display form of a path, relative to the root when possible."""
        try:
            return Path(path).resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError:
            return str(path)
