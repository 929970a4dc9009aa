"""
Instance synthesizer.

Builds a minimal example instance for a compiled schema. Per node, the
first matching rule wins:

    $ref          resolve through the registry, then recurse
    allOf         synthesize every branch, shallow-merge (later wins)
    oneOf/anyOf   first branch only
    if            then, else else, else {}
    const         the literal
    enum          the first value
    type          per-type rules below

object builds required properties only; array builds minItems elements
(one when absent); numbers take minimum, then exclusiveMinimum, then 0;
strings take a canned literal per format, "x" * minLength, or "".

Two results mean "nothing usable here":

- NO_SAMPLE: a pattern constraint or the depth ceiling was hit. It
  propagates through required properties and array elements up to the
  caller, so self-referential schemas terminate.
- UNSUPPORTED: the node has no usable shape. Parents substitute "" for
  string-typed slots and 0 otherwise.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import UnresolvedReferenceError
from ...utils import resolve_pointer, split_reference
from ..bundler.registry import DocumentRegistry

logger = logging.getLogger(__name__)

MAX_DEPTH = 6


class _Sentinel:
    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return self.name

    def __bool__(self) -> bool:
        return False


NO_SAMPLE = _Sentinel("NO_SAMPLE")
UNSUPPORTED = _Sentinel("UNSUPPORTED")

FORMAT_SAMPLES = {
    "date-time": "2025-01-01T00:00:00Z",
    "date": "2025-01-01",
    "time": "00:00:00",
    "email": "user@example.org",
    "uri": "https://example.org",
    "url": "https://example.org",
    "uuid": "00000000-0000-4000-8000-000000000000",
}


class InstanceSynthesizer:
    """Synthesizes minimal instances, resolving $refs through a DocumentRegistry."""

    def __init__(self, registry: DocumentRegistry, max_depth: int = MAX_DEPTH):
        self.registry = registry
        self.max_depth = max_depth

    def synthesize(self, schema: dict[str, Any]) -> Any:
        """
        Synthesize an instance of a schema document.

        Args:
            schema: The root schema; "#..." refs resolve against it

        Returns:
            The instance, or NO_SAMPLE if none can be produced

        Raises:
            UnresolvedReferenceError: If a $ref target is not loaded
        """
        value = self._sample(schema, schema, 0)
        return NO_SAMPLE if value is UNSUPPORTED else value

    def _resolve(self, ref: str, document: Any) -> tuple[Any, Any]:
        """Return (target schema, document it lives in)."""
        base, fragment = split_reference(ref)
        if base:
            handle = self.registry.by_id.get(base)
            if handle is None:
                raise UnresolvedReferenceError(ref)
            document = handle.body
        try:
            return resolve_pointer(document, fragment), document
        except KeyError:
            raise UnresolvedReferenceError(ref) from None

    def _sample(self, schema: Any, document: Any, depth: int) -> Any:
        if depth > self.max_depth:
            logger.debug("Depth ceiling %d reached", self.max_depth)
            return NO_SAMPLE
        if not isinstance(schema, dict) or not schema:
            return UNSUPPORTED

        if isinstance(schema.get("$ref"), str):
            target, document = self._resolve(schema["$ref"], document)
            return self._sample(target, document, depth + 1)

        if "allOf" in schema:
            merged: dict[str, Any] = {}
            for branch in schema["allOf"]:
                value = self._sample(branch, document, depth + 1)
                if value is NO_SAMPLE:
                    return NO_SAMPLE
                if isinstance(value, dict):
                    merged.update(value)
            return merged
        for key in ("oneOf", "anyOf"):
            if schema.get(key):
                logger.debug("%s: picking the first branch", key)
                return self._sample(schema[key][0], document, depth + 1)
        if "if" in schema:
            branch = schema.get("then", schema.get("else"))
            return {} if branch is None else self._sample(branch, document, depth + 1)

        if "const" in schema:
            return schema["const"]
        if schema.get("enum"):
            return schema["enum"][0]

        declared = schema.get("type")
        type_name = declared[0] if isinstance(declared, list) and declared else declared
        if type_name is None:
            if "properties" in schema or "required" in schema:
                type_name = "object"
            elif "items" in schema:
                type_name = "array"

        if type_name == "object":
            return self._sample_object(schema, document, depth)
        if type_name == "array":
            return self._sample_array(schema, document, depth)
        if type_name in ("number", "integer"):
            if "minimum" in schema:
                return schema["minimum"]
            return schema.get("exclusiveMinimum", 0)
        if type_name == "boolean":
            return False
        if type_name == "null":
            return None
        if type_name == "string":
            return self._sample_string(schema)
        return UNSUPPORTED

    def _sample_object(self, schema: dict[str, Any], document: Any, depth: int) -> Any:
        out = {}
        properties = schema.get("properties", {})
        for name in schema.get("required", []):
            sub = properties.get(name, {})
            value = self._sample(sub, document, depth + 1)
            if value is NO_SAMPLE:
                logger.debug("Required property '%s' has no sample", name)
                return NO_SAMPLE
            out[name] = self._fallback(sub) if value is UNSUPPORTED else value
        return out

    def _sample_array(self, schema: dict[str, Any], document: Any, depth: int) -> Any:
        items = schema.get("items", {})
        min_items = schema.get("minItems") or 0
        out = []
        for _ in range(max(min_items, 1)):
            value = self._sample(items, document, depth + 1)
            if value is NO_SAMPLE:
                return NO_SAMPLE
            out.append(self._fallback(items) if value is UNSUPPORTED else value)
        return out

    @staticmethod
    def _sample_string(schema: dict[str, Any]) -> Any:
        if schema.get("pattern"):
            return NO_SAMPLE
        sample = FORMAT_SAMPLES.get(schema.get("format"))
        if sample is not None:
            return sample
        min_length = schema.get("minLength") or 0
        return "x" * min_length if min_length > 0 else ""

    @staticmethod
    def _fallback(schema: Any) -> Any:
        return "" if isinstance(schema, dict) and schema.get("type") == "string" else 0
