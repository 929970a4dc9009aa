"""
Enum emission registry.

Collects enum artifacts requested by enumDefine hints across a whole
run, keyed by destination path. Distinct classes may define the same
enum; their requests are merged:

- values: set union, in first-seen order
- metadata (title, type, description, x-enumNames, x-enumDescriptions,
  x-sourcePath): the later request wins wholesale when it carries them

Nothing is written until flush(), which happens once at the end of the
run and only when emission is enabled.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..errors import SchemaHintsError, StorageError
from .canonical_id import CanonicalId

if TYPE_CHECKING:
    from ..storage.atomic_writer import AtomicWriter

logger = logging.getLogger(__name__)


@dataclass
class EnumArtifact:
    """A standalone enum document."""

    canonical_id: CanonicalId
    title: str = ""
    value_type: str = "string"  # "string" or "integer"
    values: list[Any] = field(default_factory=list)
    names: list[str] | None = None  # x-enumNames
    descriptions: list[str] | None = None  # x-enumDescriptions
    description: str | None = None
    source_path: str | None = None  # x-sourcePath

    def merge(self, newer: EnumArtifact) -> EnumArtifact:
        """Return a new artifact: values unioned, newer metadata winning."""
        merged = copy.deepcopy(self)
        for value in newer.values:
            if value not in merged.values:
                merged.values.append(value)
        merged.title = newer.title or merged.title
        merged.value_type = newer.value_type
        for attr in ("names", "descriptions", "description", "source_path"):
            if getattr(newer, attr) is not None:
                setattr(merged, attr, copy.deepcopy(getattr(newer, attr)))
        return merged

    def as_document(self, base_id: str) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "$id": self.canonical_id.identifier(base_id),
            "title": self.title or self.canonical_id.name,
            "type": self.value_type,
            "enum": list(self.values),
        }
        if self.description:
            doc["description"] = self.description
        if self.names is not None:
            doc["x-enumNames"] = list(self.names)
        if self.descriptions is not None:
            doc["x-enumDescriptions"] = list(self.descriptions)
        if self.source_path:
            doc["x-sourcePath"] = self.source_path
        return doc


@dataclass
class EnumEmission:
    """A request to write one enum artifact to one destination."""

    destination: Path
    artifact: EnumArtifact


class EnumRegistry:
    """Accumulates enum emission requests and writes each destination once."""

    def __init__(self, enabled: bool = False):
        """
        Initialize the registry.

        Args:
            enabled: The process-wide emission switch. When off, requests
                are ignored and flush() writes nothing.
        """
        self.enabled = enabled
        self._pending: dict[Path, EnumArtifact] = {}
        self._flushed = False

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, destination: Path) -> bool:
        return Path(destination) in self._pending

    def get(self, destination: Path) -> EnumArtifact | None:
        return self._pending.get(Path(destination))

    def request(self, emission: EnumEmission) -> bool:
        """
        Queue or merge one emission request.

        Returns:
            True if the request was recorded
        """
        if not self.enabled:
            return False
        if self._flushed:
            raise SchemaHintsError("Enum registry already flushed for this run")

        destination = Path(emission.destination)
        prior = self._pending.get(destination)
        if prior is None:
            self._pending[destination] = copy.deepcopy(emission.artifact)
        else:
            logger.debug("Merging enum request into %s", destination)
            self._pending[destination] = prior.merge(emission.artifact)
        return True

    def flush(self, writer: AtomicWriter, base_id: str) -> dict[Path, StorageError | None]:
        """
        Write every pending artifact exactly once.

        Args:
            writer: Atomic writer used for each destination
            base_id: Identifier prefix for the $id of each artifact

        Returns:
            Mapping of destination to None (written) or the StorageError
            that prevented the write
        """
        if self._flushed:
            raise SchemaHintsError("Enum registry already flushed for this run")
        self._flushed = True

        results: dict[Path, StorageError | None] = {}
        if not self.enabled:
            return results
        for destination in sorted(self._pending):
            try:
                writer.write_json(destination, self._pending[destination].as_document(base_id))
                results[destination] = None
            except StorageError as e:
                logger.error("Failed to write enum %s: %s", destination, e)
                results[destination] = e
        return results
