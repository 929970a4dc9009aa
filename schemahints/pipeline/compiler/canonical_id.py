"""
Canonical identifiers for compiled artifacts.

A CanonicalId addresses exactly one schema or enum artifact. The same
value yields its externally visible identifier string and its storage
location, so the two can never drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ArtifactKind(Enum):
    """Kind of compiled artifact."""

    SCHEMA = "schema"
    ENUM = "enum"

    @property
    def suffix(self) -> str:
        """File/identifier suffix, without the leading dot."""
        return "schema.json" if self is ArtifactKind.SCHEMA else "json"

    @property
    def directory(self) -> str:
        """Storage directory name below the segment."""
        return "schemas" if self is ArtifactKind.SCHEMA else "enums"


@dataclass(frozen=True)
class CanonicalId:
    """(segment, subpath, name, kind) address of one artifact."""

    segment: str
    subpath: tuple[str, ...]
    name: str
    kind: ArtifactKind = ArtifactKind.SCHEMA

    @property
    def namespace(self) -> tuple[str, ...]:
        """Ordered namespace path: segment, subpath segments, name."""
        return (self.segment, *self.subpath, self.name)

    def identifier(self, base: str) -> str:
        """Identifier string: <base><segment>/<subpath...>/<name>.<suffix>."""
        return base + "/".join(self.namespace) + "." + self.kind.suffix

    def storage_path(self, root: Path) -> Path:
        """Storage location: <root>/<segment>/<kind dir>/<subpath...>/<name>.<suffix>."""
        return Path(root, self.segment, self.kind.directory, *self.subpath, f"{self.name}.{self.kind.suffix}")

    def with_kind(self, kind: ArtifactKind) -> CanonicalId:
        return CanonicalId(self.segment, self.subpath, self.name, kind)

    @staticmethod
    def from_parts(parts: list[str], kind: ArtifactKind) -> CanonicalId:
        """Build from [segment, *subpath, name]."""
        if len(parts) < 2:
            raise ValueError(f"Need at least a segment and a name: {'/'.join(parts)}")
        return CanonicalId(parts[0], tuple(parts[1:-1]), parts[-1], kind)

    @staticmethod
    def from_identifier(identifier: str, base: str) -> CanonicalId | None:
        """
        Parse an identifier string produced by identifier().

        Args:
            identifier: Identifier such as "<base>core/common/Address.schema.json"
            base: The identifier prefix

        Returns:
            The CanonicalId, or None if the identifier is not under base or
            has no recognized suffix
        """
        if not identifier.startswith(base):
            return None
        rest = identifier[len(base) :]
        for kind in (ArtifactKind.SCHEMA, ArtifactKind.ENUM):
            ending = "." + kind.suffix
            if rest.endswith(ending):
                parts = [p for p in rest[: -len(ending)].split("/") if p]
                if len(parts) < 2:
                    return None
                return CanonicalId.from_parts(parts, kind)
        return None

    def __str__(self) -> str:
        return "/".join(self.namespace) + "." + self.kind.suffix
