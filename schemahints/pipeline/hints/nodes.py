"""
Hint tree node definitions.

These nodes hold one parsed SCHEMAHINTS block before any reference
resolution. They are transient: the compiler consumes them and they are
discarded once the class schema is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class _Missing:
    """Marker for attributes whose legal values include None."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class Severity(str, Enum):
    """Severity of a parser or compiler diagnostic."""

    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A problem found while parsing or compiling one annotation block."""

    severity: Severity = Severity.ERROR
    message: str = ""
    line: int | None = None  # 1-based line within the source file, when known
    owner: str = ""  # Class that owns the annotation
    field: str = ""  # Field name, if the problem is field-level

    def __str__(self) -> str:
        where = f"line {self.line}: " if self.line is not None else ""
        scope = f"{self.owner}.{self.field}" if self.field else self.owner
        scope = f"[{scope}] " if scope else ""
        return f"{where}{scope}{self.message}"


@dataclass
class EnumDefinition:
    """An inline enum definition (enumDefine) attached to a field."""

    path: str = ""  # Any supported reference path form
    title: str | None = None
    type: str = "string"  # "string" or "integer"
    generate: bool | None = None  # None: use the configured default
    values: list[Any] = field(default_factory=list)
    names: list[str] | None = None  # x-enumNames
    descriptions: list[str] | None = None  # x-enumDescriptions
    description: str | None = None
    target_path: str | None = None  # Project-rooted destination override
    source_path: str | None = None  # Carried as x-sourcePath
    value_pattern: str | None = None  # Only checked by the linter


@dataclass
class FieldHint:
    """Directives for one field of a class.

    At most one of enum_from, enum_define, ref and type decides the
    field's shape; the remaining attributes are carried through.
    """

    type: str | None = None
    ref: str | None = None
    enum_from: str | None = None
    enum_define: EnumDefinition | None = None
    const: Any = MISSING
    default: Any = MISSING
    format: str | None = None
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_items: int | None = None
    max_items: int | None = None
    enum: list[Any] | None = None
    description: str | None = None
    required: bool = False
    items: FieldHint | None = None
    properties: dict[str, FieldHint] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """Check whether no directive was given at all."""
        return self == FieldHint()


@dataclass
class HintBlock:
    """One parsed SCHEMAHINTS block, attached to a class of the diagram."""

    owner: str = ""
    title: str | None = None
    description: str | None = None
    required: list[str] = field(default_factory=list)
    additional_properties: bool | None = None
    one_of: list[Any] = field(default_factory=list)
    any_of: list[Any] = field(default_factory=list)
    all_of: list[Any] = field(default_factory=list)
    xor: list[str] = field(default_factory=list)
    fields: dict[str, FieldHint] = field(default_factory=dict)

    # Problems found while parsing (only populated in strict mode)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def name(self) -> str:
        """Artifact name: the title directive, else the owning class."""
        return self.title or self.owner


@dataclass
class NoteBlock:
    """A raw annotation located in diagram source."""

    owner: str = ""
    body: str = ""
    line: int = 1  # Line of the first body line within the source file
