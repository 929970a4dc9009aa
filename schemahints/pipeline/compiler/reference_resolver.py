"""
Reference resolver for hint paths.

Maps the path written in a hint ($ref, enumFrom, enumDefine.path, a
class-valued type) onto a canonical identifier. Every path belongs to
exactly one PathKind, and each kind has one resolution function:

    =================  ====================  ==============================
    PathKind           Example               Resolves to
    =================  ====================  ==============================
    FRAGMENT           #/$defs/Local         verbatim, no canonical id
    ABSOLUTE_URL       https://base/a/B.json canonical id if under base,
                                             else verbatim (external)
    NAMESPACE_ROOTED   /core/common/Lang     segment core, subpath common
    PROJECT_ROOTED     @core/common/Lang     same as namespace-rooted
    DOCUMENT_RELATIVE  ./Lang, ../x/Lang     relative to the document's
                                             subpath, within its segment
    BARE               Lang, sub/Lang        the document's own folder
    =================  ====================  ==============================
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from ..errors import ReferenceResolutionError
from ...utils import normalize_rel_path, split_reference
from .canonical_id import ArtifactKind, CanonicalId

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


class PathKind(Enum):
    """Closed set of reference path forms."""

    FRAGMENT = "fragment"
    ABSOLUTE_URL = "absolute_url"
    NAMESPACE_ROOTED = "namespace_rooted"
    PROJECT_ROOTED = "project_rooted"
    DOCUMENT_RELATIVE = "document_relative"
    BARE = "bare"

    @staticmethod
    def classify(path: str) -> PathKind:
        if path.startswith("#"):
            return PathKind.FRAGMENT
        if _URL_RE.match(path):
            return PathKind.ABSOLUTE_URL
        if path.startswith("/"):
            return PathKind.NAMESPACE_ROOTED
        if path.startswith("@"):
            return PathKind.PROJECT_ROOTED
        if path.startswith("./") or path.startswith("../"):
            return PathKind.DOCUMENT_RELATIVE
        return PathKind.BARE


@dataclass(frozen=True)
class NamespaceContext:
    """Where the document being compiled lives."""

    segment: str
    subpath: tuple[str, ...] = ()


@dataclass
class ResolvedRef:
    """A resolved hint path."""

    ref: str = ""  # Value to write as $ref
    canonical_id: CanonicalId | None = None  # None for fragments and external URLs
    path_kind: PathKind = PathKind.BARE
    is_external: bool = False


@dataclass
class ResolverContext:
    """Context for reference resolution."""

    base_id: str = ""
    namespace: NamespaceContext | None = None
    cache: dict[tuple[str, ArtifactKind], ResolvedRef] = field(default_factory=dict)


class ReferenceResolver:
    """Resolves hint paths to canonical identifiers."""

    def __init__(self, base_id: str, namespace: NamespaceContext):
        """
        Initialize the resolver.

        Args:
            base_id: Identifier prefix, ending with "/"
            namespace: Segment and subpath of the document being compiled
        """
        self.context = ResolverContext(base_id=base_id, namespace=namespace)
        self._resolvers = {
            PathKind.FRAGMENT: self._resolve_fragment,
            PathKind.ABSOLUTE_URL: self._resolve_absolute_url,
            PathKind.NAMESPACE_ROOTED: self._resolve_rooted,
            PathKind.PROJECT_ROOTED: self._resolve_rooted,
            PathKind.DOCUMENT_RELATIVE: self._resolve_document_relative,
            PathKind.BARE: self._resolve_bare,
        }

    @property
    def base_id(self) -> str:
        return self.context.base_id

    def resolve(self, path: str, kind: ArtifactKind) -> ResolvedRef:
        """
        Resolve a hint path.

        Args:
            path: The path as written in the hint
            kind: Kind of artifact the path must name

        Returns:
            ResolvedRef with the $ref value and canonical id

        Raises:
            ReferenceResolutionError: If the path is malformed
        """
        path = (path or "").strip()
        if not path:
            raise ReferenceResolutionError(path, "empty path")

        key = (path, kind)
        if key not in self.context.cache:
            path_kind = PathKind.classify(path)
            resolved = self._resolvers[path_kind](path, kind)
            resolved.path_kind = path_kind
            self.context.cache[key] = resolved
        return self.context.cache[key]

    def _resolve_fragment(self, path: str, kind: ArtifactKind) -> ResolvedRef:
        return ResolvedRef(ref=path)

    def _resolve_absolute_url(self, path: str, kind: ArtifactKind) -> ResolvedRef:
        document, fragment = split_reference(path)
        if not document.startswith(self.base_id):
            return ResolvedRef(ref=path, is_external=True)

        rest = document[len(self.base_id) :]
        for candidate in (ArtifactKind.SCHEMA, ArtifactKind.ENUM):
            ending = "." + candidate.suffix
            if rest.endswith(ending):
                rest, kind = rest[: -len(ending)], candidate
                break
        canonical = self._canonical(path, [p for p in rest.split("/") if p], kind)
        return self._to_ref(canonical, fragment)

    def _resolve_rooted(self, path: str, kind: ArtifactKind) -> ResolvedRef:
        return self._to_ref(self._canonical(path, path[1:].split("/"), kind))

    def _resolve_document_relative(self, path: str, kind: ArtifactKind) -> ResolvedRef:
        namespace = self.context.namespace
        try:
            parts = normalize_rel_path("/".join(namespace.subpath) + "/" + path)
        except ValueError:
            raise ReferenceResolutionError(path, f"climbs above segment '{namespace.segment}'") from None
        return self._to_ref(self._canonical(path, [namespace.segment, *parts], kind))

    def _resolve_bare(self, path: str, kind: ArtifactKind) -> ResolvedRef:
        namespace = self.context.namespace
        parts = [namespace.segment, *namespace.subpath, *path.split("/")]
        return self._to_ref(self._canonical(path, parts, kind))

    def _canonical(self, path: str, parts: list[str], kind: ArtifactKind) -> CanonicalId:
        if len(parts) < 2:
            raise ReferenceResolutionError(path, "needs at least a segment and a name")
        for part in parts:
            if not _SEGMENT_RE.match(part):
                raise ReferenceResolutionError(path, f"invalid path segment '{part}'")
        return CanonicalId.from_parts(parts, kind)

    def _to_ref(self, canonical: CanonicalId, fragment: str = "") -> ResolvedRef:
        ref = canonical.identifier(self.base_id)
        if fragment:
            ref += "#" + fragment
        return ResolvedRef(ref=ref, canonical_id=canonical)
