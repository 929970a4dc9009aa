"""
Hint-to-schema compiler.

Phase 2 of the pipeline: turn one HintBlock plus the namespace of its
source into a CompiledSchema, and collect enum emission requests on the
side.

Each field's shape is decided by the first directive present, in order:

1. enumFrom    -> $ref to an existing enum artifact
2. enumDefine  -> $ref to the enum artifact, plus an emission request
3. $ref        -> $ref to another class schema
4. type        -> primitive type (arrays recurse into `items`); any other
                  type name is a class reference
5. const       -> the narrowest primitive type of the constant

A reference that cannot be resolved leaves the field with neither type
nor $ref and records a diagnostic; the other fields and classes are
compiled regardless.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..config import SchemaHintsConfig
from ..errors import ReferenceResolutionError, StorageError
from ..hints.nodes import MISSING, Diagnostic, EnumDefinition, FieldHint, HintBlock, Severity
from ...utils import is_quoted, strip_quotes
from .canonical_id import ArtifactKind, CanonicalId
from .enum_registry import EnumArtifact, EnumEmission
from .reference_resolver import NamespaceContext, ReferenceResolver

if TYPE_CHECKING:
    from ..storage.layout import StorageLayout

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_NUMBER_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


@dataclass
class CompiledSchema:
    """One compiled class schema. Never mutated once written."""

    canonical_id: CanonicalId
    title: str = ""
    description: str | None = None
    additional_properties: bool | None = None
    properties: dict[str, dict[str, Any]] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
    one_of: list[Any] = field(default_factory=list)
    any_of: list[Any] = field(default_factory=list)
    all_of: list[Any] = field(default_factory=list)

    def as_document(self, base_id: str, dialect: str) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "$schema": dialect,
            "$id": self.canonical_id.identifier(base_id),
            "title": self.title,
            "type": "object",
        }
        if self.description:
            doc["description"] = self.description
        if self.additional_properties is not None:
            doc["additionalProperties"] = self.additional_properties
        doc["properties"] = self.properties
        if self.required:
            doc["required"] = self.required
        for key, value in (("oneOf", self.one_of), ("anyOf", self.any_of), ("allOf", self.all_of)):
            if value:
                doc[key] = value
        return doc


@dataclass
class CompileResult:
    """Output of compiling one annotation block."""

    schema: CompiledSchema
    emissions: list[EnumEmission] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(d.severity is Severity.ERROR for d in self.diagnostics)


class SchemaCompiler:
    """Compiles HintBlocks into JSON Schema documents."""

    PRIMITIVE_TYPES = {"string", "number", "integer", "boolean", "object", "array", "null"}

    # Type aliases: alias -> (type, format)
    TYPE_ALIASES = {
        "datetime": ("string", "date-time"),
        "date": ("string", "date"),
    }

    def __init__(self, config: SchemaHintsConfig, layout: StorageLayout):
        """
        Initialize the compiler.

        Args:
            config: Pipeline configuration (base id, enum gates)
            layout: Corpus layout, used to compute enum destinations
        """
        self.config = config
        self.layout = layout

    def compile(self, block: HintBlock, namespace: NamespaceContext) -> CompileResult:
        """
        Compile one hint block.

        Args:
            block: The parsed annotation
            namespace: Segment and subpath of the annotation's source

        Returns:
            CompileResult with the schema, enum emissions and diagnostics
        """
        resolver = ReferenceResolver(self.config.base_id, namespace)
        canonical = CanonicalId(namespace.segment, namespace.subpath, block.name, ArtifactKind.SCHEMA)
        result = CompileResult(
            schema=CompiledSchema(
                canonical_id=canonical,
                title=block.name,
                description=block.description,
                additional_properties=block.additional_properties,
            )
        )
        ctx = _FieldContext(resolver=resolver, result=result, owner=block.owner)

        for name, hint in block.fields.items():
            ctx.field = name
            result.schema.properties[name] = self._compile_field(hint, ctx)

        required = list(block.required) + [name for name, hint in block.fields.items() if hint.required]
        result.schema.required = list(dict.fromkeys(required))
        for name in result.schema.required:
            if name not in block.fields:
                ctx.field = name
                ctx.report(Severity.WARNING, f"Required field '{name}' has no field block")

        ctx.field = ""
        result.schema.one_of = self._composition(block.one_of, ctx)
        result.schema.any_of = self._composition(block.any_of, ctx)
        result.schema.all_of = self._composition(block.all_of, ctx)
        if block.xor:
            for name in block.xor:
                if name not in block.fields:
                    ctx.report(Severity.WARNING, f"xor names undeclared field '{name}'")
            alternatives = [{"required": [name]} for name in block.xor]
            if result.schema.one_of:
                result.schema.all_of.append({"oneOf": alternatives})
            else:
                result.schema.one_of = alternatives

        return result

    # Fields

    def _compile_field(self, hint: FieldHint, ctx: _FieldContext) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if hint.description:
            out["description"] = hint.description

        shape = self._shape(hint, ctx)
        out.update(shape)

        if hint.enum is not None:
            out["enum"] = self._typed_values(hint.enum, shape.get("type"), ctx)
        if hint.const is not MISSING:
            out["const"] = self._literal(hint.const)
        if hint.format:
            out["format"] = hint.format
        if hint.pattern:
            out["pattern"] = hint.pattern
        for key, value in (
            ("minimum", hint.minimum),
            ("maximum", hint.maximum),
            ("minLength", hint.min_length),
            ("maxLength", hint.max_length),
            ("minItems", hint.min_items),
            ("maxItems", hint.max_items),
        ):
            if value is not None:
                out[key] = value
        if hint.default is not MISSING:
            out["default"] = self._literal(hint.default)
        return out

    def _shape(self, hint: FieldHint, ctx: _FieldContext) -> dict[str, Any]:
        """Decide $ref or type for a field, following the precedence order."""
        try:
            if hint.enum_from:
                return {"$ref": ctx.resolver.resolve(hint.enum_from, ArtifactKind.ENUM).ref}
            if hint.enum_define is not None:
                return self._enum_define(hint.enum_define, ctx)
            if hint.ref:
                return {"$ref": ctx.resolver.resolve(hint.ref, ArtifactKind.SCHEMA).ref}
            if hint.type:
                return self._typed_shape(hint, ctx)
        except ReferenceResolutionError as e:
            ctx.report(Severity.ERROR, str(e))
            return {}

        if hint.const is not MISSING:
            inferred = self._infer_type(self._literal(hint.const))
            return {"type": inferred} if inferred else {}
        return {}

    def _typed_shape(self, hint: FieldHint, ctx: _FieldContext) -> dict[str, Any]:
        type_name = hint.type.strip()
        alias = self.TYPE_ALIASES.get(type_name.lower())
        if alias:
            return {"type": alias[0], "format": alias[1]}
        if type_name not in self.PRIMITIVE_TYPES:
            return {"$ref": ctx.resolver.resolve(type_name, ArtifactKind.SCHEMA).ref}

        shape: dict[str, Any] = {"type": type_name}
        if type_name == "array" and hint.items is not None:
            shape["items"] = self._compile_field(hint.items, ctx)
        elif type_name == "object" and hint.properties:
            shape["properties"] = {name: self._compile_field(sub, ctx) for name, sub in hint.properties.items()}
            nested_required = [name for name, sub in hint.properties.items() if sub.required]
            if nested_required:
                shape["required"] = nested_required
        return shape

    def _enum_define(self, definition: EnumDefinition, ctx: _FieldContext) -> dict[str, Any]:
        resolved = ctx.resolver.resolve(definition.path, ArtifactKind.ENUM)

        generate = definition.generate if definition.generate is not None else self.config.enum_generate_default
        if self.config.emit_enums and generate:
            if resolved.canonical_id is None:
                ctx.report(Severity.WARNING, f"Cannot emit enum for non-local path '{definition.path}'")
            else:
                ctx.result.emissions.append(self._emission(definition, resolved.canonical_id, ctx))
        return {"$ref": resolved.ref}

    def _emission(self, definition: EnumDefinition, canonical: CanonicalId, ctx: _FieldContext) -> EnumEmission:
        destination = None
        if definition.target_path:
            try:
                destination = self.layout.enum_target_path(definition.target_path)
            except StorageError as e:
                ctx.report(Severity.WARNING, f"{e.reason}, using the default enum location")
        if destination is None:
            destination = self.layout.artifact_path(canonical)
        values = self._typed_values(definition.values, definition.type, ctx)
        artifact = EnumArtifact(
            canonical_id=canonical,
            title=definition.title or canonical.name,
            value_type=definition.type,
            values=list(dict.fromkeys(values)),
            names=definition.names,
            descriptions=definition.descriptions,
            description=definition.description,
            source_path=definition.source_path,
        )
        return EnumEmission(destination=Path(destination), artifact=artifact)

    # Root composition

    def _composition(self, entries: list[Any], ctx: _FieldContext) -> list[Any]:
        """Class names become $refs; anything else passes through verbatim."""
        out = []
        for entry in entries:
            if isinstance(entry, str):
                try:
                    out.append({"$ref": ctx.resolver.resolve(entry, ArtifactKind.SCHEMA).ref})
                except ReferenceResolutionError as e:
                    ctx.report(Severity.ERROR, str(e))
            else:
                out.append(entry)
        return out

    # Values

    @staticmethod
    def _literal(value: Any) -> Any:
        """Unwrap a quoted string literal; the bare word null is None."""
        if isinstance(value, str):
            if is_quoted(value):
                return strip_quotes(value)
            if value == "null":
                return None
        return value

    @staticmethod
    def _infer_type(value: Any) -> str | None:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "boolean"
        if isinstance(value, (int, float)):
            return "number"
        if isinstance(value, str):
            return "string"
        return None

    def _typed_values(self, values: list[Any], type_name: str | None, ctx: _FieldContext) -> list[Any]:
        """Convert enum tokens to numbers when the declared type asks for it."""
        if type_name not in ("integer", "number"):
            return list(values)
        pattern = _INTEGER_RE if type_name == "integer" else _NUMBER_RE
        out = []
        for value in values:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                out.append(value)
            elif isinstance(value, str) and pattern.match(value):
                out.append(float(value) if "." in value else int(value))
            else:
                ctx.report(Severity.ERROR, f"Enum value '{value}' is not of type {type_name}")
        return out


@dataclass
class _FieldContext:
    """Per-block compilation state passed down the field recursion."""

    resolver: ReferenceResolver
    result: CompileResult
    owner: str
    field: str = ""

    def report(self, severity: Severity, message: str) -> None:
        log = logger.warning if severity is Severity.ERROR else logger.info
        log("%s.%s: %s", self.owner, self.field, message)
        self.result.diagnostics.append(Diagnostic(severity=severity, message=message, owner=self.owner, field=self.field))
