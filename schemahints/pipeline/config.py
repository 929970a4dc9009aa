"""
Configuration for the SCHEMAHINTS pipeline.

One dataclass shared by every command; values come from defaults, an
optional JSON config file and command line flags, in that order.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum

DEFAULT_BASE_ID = "https://example.org/schemas/"
DEFAULT_DIALECT = "https://json-schema.org/draft/2020-12/schema"


class ParseMode(str, Enum):
    """How the hint parser treats lines it does not recognize."""

    TOLERANT = "tolerant"  # Skip silently (debug log only)
    STRICT = "strict"  # Report diagnostics and drop unknown keys


@dataclass
class SchemaHintsConfig:
    """Configuration options for compiling, bundling and sampling."""

    # Identifier prefix; always ends with "/"
    base_id: str = DEFAULT_BASE_ID

    # Corpus root: <root>/<segment>/{puml,schemas,enums,samples}/...
    root: str = "packages"

    # $schema dialect written into compiled schemas and bundles
    dialect: str = DEFAULT_DIALECT

    # Process-wide enum emission switch
    emit_enums: bool = False

    # Value of enumDefine.generate when the hint does not say
    enum_generate_default: bool = True

    # Hint parser tolerance
    parse_mode: ParseMode = ParseMode.TOLERANT

    # Synthesizer recursion ceiling
    max_depth: int = 6

    def __post_init__(self):
        if not self.base_id.endswith("/"):
            self.base_id += "/"
        if not isinstance(self.parse_mode, ParseMode):
            self.parse_mode = ParseMode(self.parse_mode)

    @property
    def strict(self) -> bool:
        return self.parse_mode is ParseMode.STRICT

    @staticmethod
    def from_dict(d: dict) -> SchemaHintsConfig:
        """Create a config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(SchemaHintsConfig)}
        return SchemaHintsConfig(**{k: v for k, v in d.items() if k in known})

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "base_id": self.base_id,
            "root": self.root,
            "dialect": self.dialect,
            "emit_enums": self.emit_enums,
            "enum_generate_default": self.enum_generate_default,
            "parse_mode": self.parse_mode.value,
            "max_depth": self.max_depth,
        }
