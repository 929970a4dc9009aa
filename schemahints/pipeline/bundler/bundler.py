"""
Namespace bundler and dereferencer.

Both modes work over the DocumentRegistry's handles:

- bundle: every document body (minus $id) is placed in a tree nested
  under "$defs" once per namespace part, so core/common/Address lands at
  #/$defs/core/$defs/common/$defs/Address. Every $ref whose target is
  loaded is rewritten to that local pointer; other refs stay as they are.

- dereference: every resolvable $ref is replaced by a deep copy of its
  target. Traversal keeps a stack of (handle, fragment) keys; an edge back
  onto the stack is a cycle and becomes a local pointer instead: "#..."
  when it closes on the top document, otherwise a pointer into a root
  "$defs" tree that holds only the cycle targets.

Output keys are sorted so runs over an unchanged corpus are byte-identical.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from ..config import DEFAULT_DIALECT
from ..errors import BundleError
from ...utils import escape_pointer_token, resolve_pointer, sort_keys_deep
from .registry import DocumentHandle, DocumentRegistry

logger = logging.getLogger(__name__)

DEFS = "$defs"


class Bundler:
    """Produces bundled or dereferenced documents from a DocumentRegistry."""

    def __init__(self, registry: DocumentRegistry, dialect: str = DEFAULT_DIALECT):
        self.registry = registry
        self.dialect = dialect
        self._leaf_paths = self._assign_leaf_paths()

    # Top selection and namespace paths

    def select_top(self, name: str) -> DocumentHandle:
        """
        Pick the top document: exact title match, else file-stem match,
        else the first document.

        Raises:
            BundleError: If the registry is empty
        """
        if not self.registry.handles:
            raise BundleError("No schema or enum documents loaded")
        for handle in self.registry:
            if handle.title == name:
                return handle
        for handle in self.registry:
            if handle.stem == name:
                return handle
        first = self.registry.handles[0]
        logger.warning("No document titled or named '%s'; using %s", name, first.identifier)
        return first

    def _assign_leaf_paths(self) -> dict[int, tuple[str, ...]]:
        paths: dict[int, tuple[str, ...]] = {}
        taken: set[tuple[str, ...]] = set()
        for handle in self.registry:
            path = handle.namespace
            if path in taken:
                # A schema and an enum share a namespace path
                path = path[:-1] + (f"{path[-1]}.{handle.canonical_id.kind.suffix}",)
                logger.warning("Namespace collision for %s; placed at %s", handle.identifier, "/".join(path))
            taken.add(path)
            paths[handle.index] = path
        return paths

    def leaf_path(self, handle: DocumentHandle) -> tuple[str, ...]:
        return self._leaf_paths[handle.index]

    def leaf_pointer(self, handle: DocumentHandle) -> str:
        """Pointer (without "#") to a document's leaf in a $defs tree."""
        return "".join(f"/{DEFS}/{escape_pointer_token(part)}" for part in self.leaf_path(handle))

    @staticmethod
    def _place(tree: dict[str, Any], path: tuple[str, ...], value: dict[str, Any]) -> None:
        """Put value at path in a $defs-nested tree, merging with any container already there."""
        node = tree
        for part in path[:-1]:
            node = node.setdefault(DEFS, {}).setdefault(part, {})
        defs = node.setdefault(DEFS, {})
        existing = defs.get(path[-1])
        if existing is None:
            defs[path[-1]] = value
            return
        # The leaf name is also a namespace folder: keep both under one node
        merged = dict(value)
        nested = dict(value.get(DEFS, {}))
        for key, child in existing.get(DEFS, {}).items():
            if key in nested:
                logger.warning("Definition '%s' under %s shadows a namespace entry", key, "/".join(path))
                continue
            nested[key] = child
        if nested:
            merged[DEFS] = nested
        defs[path[-1]] = merged

    # Bundle mode

    def bundle(self, top_name: str) -> dict[str, Any]:
        """
        Build a locally-indexed bundle.

        Args:
            top_name: Title or file stem of the top document

        Returns:
            The bundle document, keys sorted
        """
        top = self.select_top(top_name)
        root: dict[str, Any] = {}
        for handle in self.registry:
            body = copy.deepcopy(handle.body)
            body.pop("$id", None)
            self._rewrite_refs(body, handle)
            self._place(root, self.leaf_path(handle), body)

        document = {
            "$schema": self.dialect,
            "$id": self._top_identifier(top, top_name),
            "title": top_name,
            "$ref": "#" + self.leaf_pointer(top),
            DEFS: root.get(DEFS, {}),
        }
        return sort_keys_deep(document)

    def _top_identifier(self, top: DocumentHandle, top_name: str) -> str:
        suffix = "." + top.canonical_id.kind.suffix
        head = top.identifier.rsplit("/", 1)[0]
        return f"{head}/{top_name}{suffix}"

    def _rewrite_refs(self, node: Any, current: DocumentHandle) -> None:
        if isinstance(node, list):
            for item in node:
                self._rewrite_refs(item, current)
        elif isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str):
                target = self.registry.resolve(ref, current)
                if target is not None:
                    handle, fragment = target
                    node["$ref"] = "#" + self.leaf_pointer(handle) + fragment
                else:
                    logger.debug("Leaving external $ref %s", ref)
            for key, value in node.items():
                if key != "$ref":
                    self._rewrite_refs(value, current)

    # Dereference mode

    def dereference(self, top_name: str) -> dict[str, Any]:
        """
        Inline every resolvable $ref by deep copy.

        Args:
            top_name: Title or file stem of the top document

        Returns:
            The dereferenced top document, keys sorted
        """
        top = self.select_top(top_name)
        walk = _DerefWalk(self, top)
        result = walk.run()
        return sort_keys_deep(result)


class _DerefWalk:
    """One dereference traversal with its cycle bookkeeping."""

    def __init__(self, bundler: Bundler, top: DocumentHandle):
        self.bundler = bundler
        self.registry = bundler.registry
        self.top = top
        self.stack: list[tuple[int, str]] = []
        self.cycle_targets: dict[int, DocumentHandle] = {}

    def run(self) -> dict[str, Any]:
        result = self._enter(self.top, "")
        if not isinstance(result, dict):
            raise BundleError(f"Top document {self.top.identifier} is not an object")

        definitions: dict[str, Any] = {}
        done: set[int] = set()
        while len(done) < len(self.cycle_targets):
            for index in sorted(set(self.cycle_targets) - done):
                handle = self.cycle_targets[index]
                body = self._enter(handle, "")
                body.pop("$id", None)
                Bundler._place(definitions, self.bundler.leaf_path(handle), body)
                done.add(index)

        if definitions:
            existing = result.setdefault(DEFS, {})
            for key, value in definitions[DEFS].items():
                if key in existing:
                    logger.warning("Cycle definition '%s' collides with an existing $defs entry", key)
                    continue
                existing[key] = value
        return result

    def _enter(self, handle: DocumentHandle, fragment: str) -> Any:
        target = resolve_pointer(handle.body, fragment)
        self.stack.append((handle.index, fragment))
        try:
            return self._walk(copy.deepcopy(target), handle)
        finally:
            self.stack.pop()

    def _walk(self, node: Any, current: DocumentHandle) -> Any:
        if isinstance(node, list):
            return [self._walk(item, current) for item in node]
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        siblings = {key: self._walk(value, current) for key, value in node.items() if key != "$ref"}
        if not isinstance(ref, str):
            return siblings

        target = self.registry.resolve(ref, current)
        if target is None:
            return {"$ref": ref, **siblings}
        handle, fragment = target
        try:
            resolve_pointer(handle.body, fragment)
        except KeyError:
            logger.warning("Unresolvable fragment in $ref %s", ref)
            return {"$ref": ref, **siblings}

        if (handle.index, fragment) in self.stack:
            return {"$ref": self._cycle_pointer(handle, fragment), **siblings}

        inlined = self._enter(handle, fragment)
        if isinstance(inlined, dict):
            inlined.pop("$id", None)
            inlined.update(siblings)
        return inlined

    def _cycle_pointer(self, handle: DocumentHandle, fragment: str) -> str:
        if handle is self.top:
            return "#" + fragment
        self.cycle_targets.setdefault(handle.index, handle)
        return "#" + self.bundler.leaf_pointer(handle) + fragment
