"""
Document registry.

A fresh read of every materialized schema and enum document in the
corpus, independent of any compiler state. Each document is assigned a
DocumentHandle up front; the bundler and synthesizer traverse handles,
never raw file paths.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..compiler.canonical_id import CanonicalId
from ..errors import StorageError
from ..storage.layout import StorageLayout
from ...utils import split_reference

logger = logging.getLogger(__name__)


@dataclass
class DocumentHandle:
    """Stable handle for one loaded document."""

    index: int
    identifier: str
    canonical_id: CanonicalId
    body: dict[str, Any]
    source: Path | None = None

    @property
    def namespace(self) -> tuple[str, ...]:
        return self.canonical_id.namespace

    @property
    def title(self) -> str:
        title = self.body.get("title")
        return title if isinstance(title, str) else ""

    @property
    def stem(self) -> str:
        return self.canonical_id.name


@dataclass
class DocumentRegistry:
    """Map from identifier to document handle."""

    base_id: str
    handles: list[DocumentHandle] = field(default_factory=list)
    failures: dict[Path, StorageError] = field(default_factory=dict)
    by_id: dict[str, DocumentHandle] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.handles)

    def __iter__(self):
        return iter(self.handles)

    @staticmethod
    def load(layout: StorageLayout, base_id: str) -> DocumentRegistry:
        """
        Load every schema and enum document below the layout root.

        Unreadable documents are recorded in `failures` and skipped.
        Documents whose $id is missing or not under base_id are skipped
        with a warning.

        Args:
            layout: Corpus layout
            base_id: Identifier prefix

        Returns:
            A DocumentRegistry with handles in sorted identifier order
        """
        documents: dict[str, tuple[CanonicalId, dict[str, Any]]] = {}
        sources: dict[str, Path] = {}
        failures: dict[Path, StorageError] = {}

        for path in sorted(layout.schema_files() + layout.enum_files()):
            try:
                with open(path, encoding="utf-8") as f:
                    body = json.load(f)
            except (OSError, ValueError) as e:
                logger.error("Cannot read %s: %s", path, e)
                failures[path] = StorageError(path, str(e))
                continue

            identifier = body.get("$id") if isinstance(body, dict) else None
            canonical = CanonicalId.from_identifier(identifier, base_id) if isinstance(identifier, str) else None
            if canonical is None:
                logger.warning("Skipping %s: $id %r is not under %s", path, identifier, base_id)
                continue
            if identifier in documents:
                logger.warning("Skipping %s: duplicate $id %s", path, identifier)
                continue
            documents[identifier] = (canonical, body)
            sources[identifier] = path

        return DocumentRegistry.from_documents(base_id, documents, sources=sources, failures=failures)

    @staticmethod
    def from_documents(
        base_id: str,
        documents: dict[str, tuple[CanonicalId, dict[str, Any]]],
        sources: dict[str, Path] | None = None,
        failures: dict[Path, StorageError] | None = None,
    ) -> DocumentRegistry:
        """Build a registry from in-memory documents keyed by identifier."""
        registry = DocumentRegistry(base_id=base_id, failures=failures or {})
        for index, identifier in enumerate(sorted(documents)):
            canonical, body = documents[identifier]
            handle = DocumentHandle(
                index=index,
                identifier=identifier,
                canonical_id=canonical,
                body=body,
                source=(sources or {}).get(identifier),
            )
            registry.handles.append(handle)
            registry.by_id[identifier] = handle
        return registry

    @staticmethod
    def from_bodies(base_id: str, bodies: list[dict[str, Any]]) -> DocumentRegistry:
        """Build a registry from documents carrying their own $id."""
        documents = {}
        for body in bodies:
            canonical = CanonicalId.from_identifier(body.get("$id", ""), base_id)
            if canonical is None:
                raise ValueError(f"$id {body.get('$id')!r} is not under {base_id}")
            documents[body["$id"]] = (canonical, body)
        return DocumentRegistry.from_documents(base_id, documents)

    def resolve(self, ref: str, current: DocumentHandle | None = None) -> tuple[DocumentHandle, str] | None:
        """
        Find the target of a $ref.

        Args:
            ref: The reference value
            current: Document the reference appears in; "#..." refs resolve
                against it

        Returns:
            (handle, fragment) or None if the target is not loaded
        """
        document, fragment = split_reference(ref)
        if not document:
            return (current, fragment) if current is not None else None
        handle = self.by_id.get(document)
        return (handle, fragment) if handle is not None else None
