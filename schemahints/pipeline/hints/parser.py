"""
SCHEMAHINTS parser that builds a hint tree.

Phase 1 of the pipeline: turn the text of one annotation block into a
HintBlock without resolving references. The grammar is indentation
based:

    SCHEMAHINTS
    title: Address
    required: [street, city]
    field street:
      type: string
      range: [1, 10]
    field country:
      enumDefine:
        path: /core/common/Country
        enum:
          - FR
          - DE

Lines are first read into a generic tree of raw entries, then projected
onto the closed FieldHint / EnumDefinition types.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from ..config import ParseMode
from ..errors import HintParseError
from ...utils import strip_quotes
from .nodes import Diagnostic, EnumDefinition, FieldHint, HintBlock, NoteBlock, Severity

logger = logging.getLogger(__name__)

MARKER = "SCHEMAHINTS"
COMMENT_PREFIX = "'"

_MARKER_RE = re.compile(rf"^\s*{MARKER}\b", re.IGNORECASE)
_END_NOTE_RE = re.compile(r"^\s*end\s*note\b", re.IGNORECASE)
_FIELD_RE = re.compile(r"^\s*field\s+([A-Za-z0-9_\-]+)\s*:\s*$", re.IGNORECASE)
_KV_RE = re.compile(r"^\s*([A-Za-z$][A-Za-z0-9_$\-]*)\s*:\s*(.*?)\s*$")
_BULLET_RE = re.compile(r"^\s*[-*]\s+(.*)$")
_NUMBER_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")
_BOOL_RE = re.compile(r"^(true|false)$", re.IGNORECASE)
_NOTE_RE = re.compile(
    r"^[ \t]*note\s+(?:(?:left|right|top|bottom|over)\s+)?of\s+([A-Za-z_][A-Za-z0-9_]*)[ \t]*\r?\n"
    r"(.*?)"
    r"^[ \t]*end\s*note\b",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)

# Root-level directives, matched case-insensitively
ROOT_KEYS = {
    "title": "title",
    "description": "description",
    "required": "required",
    "additionalproperties": "additional_properties",
    "oneof": "one_of",
    "anyof": "any_of",
    "allof": "all_of",
    "xor": "xor",
}

# Field-level directives (lowercase) -> canonical name
FIELD_KEYS = {
    "type": "type",
    "$ref": "ref",
    "ref": "ref",
    "refid": "ref",
    "enumfrom": "enum_from",
    "enumref": "enum_from",
    "enumdefine": "enum_define",
    "const": "const",
    "default": "default",
    "format": "format",
    "pattern": "pattern",
    "range": "range",
    "minimum": "minimum",
    "maximum": "maximum",
    "minlength": "min_length",
    "maxlength": "max_length",
    "minitems": "min_items",
    "maxitems": "max_items",
    "enum": "enum",
    "desc": "description",
    "description": "description",
    "required": "required",
    "items": "items",
    "properties": "properties",
    "itemsref": "items_ref",
    "itemstype": "items_type",
    "itemsenumref": "items_enum_from",
}

# enumDefine keys (lowercase) -> canonical name; None means accepted but unused
ENUM_DEFINE_KEYS = {
    "enumid": "path",
    "path": "path",
    "id": "path",
    "ref": "path",
    "targetpath": "target_path",
    "sourcepath": "source_path",
    "title": "title",
    "type": "type",
    "generate": "generate",
    "enum": "values",
    "x-enumnames": "names",
    "x-enumdescriptions": "descriptions",
    "description": "description",
    "valuepattern": "value_pattern",
    "x-order": None,
    "x-deprecated": None,
    "x-aliases": None,
    "x-standard": None,
    "x-standardref": None,
}

_ENUM_PATH_PRIORITY = ("enumid", "path", "id", "ref")


@dataclass
class _Line:
    number: int  # 1-based, within the source file
    indent: int
    text: str

    @property
    def blank(self) -> bool:
        return not self.text.strip()

    @property
    def comment(self) -> bool:
        return self.text.lstrip().startswith(COMMENT_PREFIX)


@dataclass
class _Entry:
    """A raw `key: value` entry; value is a scalar, a list or a dict of entries."""

    key: str
    value: Any
    line: int


def extract_note_blocks(text: str) -> list[NoteBlock]:
    """
    Find annotation notes attached to classes in PlantUML source.

    Only notes whose first non-blank line is the SCHEMAHINTS marker are
    returned.

    Args:
        text: PlantUML source

    Returns:
        NoteBlocks in source order
    """
    blocks = []
    for match in _NOTE_RE.finditer(text):
        body = match.group(2)
        first = next((ln for ln in body.splitlines() if ln.strip()), "")
        if not _MARKER_RE.match(first):
            continue
        line = text.count("\n", 0, match.start(2)) + 1
        blocks.append(NoteBlock(owner=match.group(1), body=body, line=line))
    return blocks


def coerce_scalar(value: str) -> Any:
    """Coerce a raw value: inline list, boolean, number, else the trimmed string."""
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        return split_inline_list(value[1:-1])
    if _BOOL_RE.match(value):
        return value.lower() == "true"
    if _NUMBER_RE.match(value):
        return float(value) if "." in value else int(value)
    return value


def split_inline_list(inner: str) -> list[str]:
    """Split the inside of "[a, b, c]" into trimmed, unquoted tokens.

    Empty tokens keep their position (so "[, 10]" has an empty lower
    bound) except for a single trailing one left by a trailing comma.
    """
    if not inner.strip():
        return []
    tokens = [strip_quotes(token.strip()) for token in inner.split(",")]
    if tokens and tokens[-1] == "":
        tokens.pop()
    return tokens


def _clean_list_item(text: str) -> str:
    item = text.strip()
    if item.endswith(","):
        item = item[:-1].strip()
    return strip_quotes(item)


class HintParser:
    """Parses one SCHEMAHINTS annotation block into a HintBlock."""

    def __init__(self, mode: ParseMode = ParseMode.TOLERANT):
        """
        Initialize the parser.

        Args:
            mode: TOLERANT skips what it does not understand; STRICT also
                records a diagnostic for it and drops unknown keys.
        """
        self.mode = mode
        self._diagnostics: list[Diagnostic] = []
        self._owner = ""

    @property
    def strict(self) -> bool:
        return self.mode is ParseMode.STRICT

    def parse(self, body: str, owner: str, first_line: int = 1) -> HintBlock:
        """
        Parse an annotation body.

        Args:
            body: Note text; its first non-blank line must be the marker
            owner: Name of the class the note is attached to
            first_line: Source line number of the body's first line

        Returns:
            HintBlock with root directives, fields and diagnostics

        Raises:
            HintParseError: If the body does not start with the marker
        """
        self._diagnostics = []
        self._owner = owner
        lines = [
            _Line(number=first_line + i, indent=len(raw) - len(raw.lstrip()), text=raw)
            for i, raw in enumerate(body.replace("\t", "  ").splitlines())
        ]

        start = next((i for i, ln in enumerate(lines) if not ln.blank), None)
        if start is None or not _MARKER_RE.match(lines[start].text):
            raise HintParseError(f"Annotation for {owner} does not start with {MARKER}")

        block = HintBlock(owner=owner)
        i = start + 1
        while i < len(lines):
            line = lines[i]
            if line.blank or line.comment:
                i += 1
                continue
            if _END_NOTE_RE.match(line.text):
                break

            field_match = _FIELD_RE.match(line.text)
            if field_match:
                name = field_match.group(1)
                if i + 1 < len(lines) and lines[i + 1].blank:
                    self._report(Severity.ERROR, f'Blank line directly after "field {name}:"', lines[i + 1].number, name)
                entries, i = self._read_mapping(lines, i + 1, line.indent, nested=False)
                if name in block.fields:
                    self._report(Severity.WARNING, f"Field '{name}' declared twice; later block wins", line.number, name)
                block.fields[name] = self._project_field(entries, name, line.number)
                continue

            kv = _KV_RE.match(line.text)
            if kv:
                key, raw_value = kv.groups()
                if raw_value == "":
                    value, i = self._read_value_block(lines, i + 1, line.indent, nested=False)
                else:
                    value, i = coerce_scalar(raw_value), i + 1
                self._apply_root(block, key, value, line.number)
                continue

            self._report(Severity.ERROR, f"Unrecognized line: {line.text.strip()}", line.number)
            i += 1

        block.diagnostics = list(self._diagnostics)
        return block

    # Generic block reading

    def _read_mapping(self, lines: list[_Line], i: int, parent_indent: int, nested: bool) -> tuple[dict[str, _Entry], int]:
        """Read `key: value` lines indented deeper than parent_indent."""
        entries: dict[str, _Entry] = {}
        while i < len(lines):
            line = lines[i]
            if line.blank:
                if nested and self._continues(lines, i, parent_indent):
                    self._report(Severity.WARNING, "Blank line inside nested block", line.number)
                i += 1
                continue
            if line.comment:
                i += 1
                continue
            if line.indent <= parent_indent or _END_NOTE_RE.match(line.text) or _FIELD_RE.match(line.text):
                break

            kv = _KV_RE.match(line.text)
            if not kv:
                self._report(Severity.ERROR, f"Unrecognized line: {line.text.strip()}", line.number)
                i += 1
                continue

            key, raw_value = kv.groups()
            if raw_value == "":
                value, i = self._read_value_block(lines, i + 1, line.indent, nested=True)
            else:
                value, i = coerce_scalar(raw_value), i + 1
            entries[key] = _Entry(key=key, value=value, line=line.number)
        return entries, i

    def _read_value_block(self, lines: list[_Line], i: int, key_indent: int, nested: bool) -> tuple[Any, int]:
        """Read the block introduced by a key with an empty value.

        A bullet on the first deeper line makes it a block list, any other
        deeper line a nested mapping. No deeper line leaves the value empty.
        """
        j = i
        while j < len(lines) and (lines[j].blank or lines[j].comment):
            j += 1
        if j >= len(lines) or lines[j].indent <= key_indent or _END_NOTE_RE.match(lines[j].text):
            return "", i
        if _BULLET_RE.match(lines[j].text):
            return self._read_block_list(lines, j, key_indent)
        return self._read_mapping(lines, j, key_indent, nested=nested)

    def _read_block_list(self, lines: list[_Line], i: int, key_indent: int) -> tuple[list[str], int]:
        items: list[str] = []
        while i < len(lines):
            line = lines[i]
            if line.blank or line.comment:
                i += 1
                continue
            if line.indent <= key_indent or _END_NOTE_RE.match(line.text) or _FIELD_RE.match(line.text):
                break
            bullet = _BULLET_RE.match(line.text)
            if not bullet:
                self._report(Severity.WARNING, "List item without bullet", line.number)
            items.append(_clean_list_item(bullet.group(1) if bullet else line.text))
            i += 1
        return items, i

    @staticmethod
    def _continues(lines: list[_Line], i: int, parent_indent: int) -> bool:
        """Check whether the next non-blank line still belongs to the current block."""
        for line in lines[i + 1 :]:
            if line.blank:
                continue
            return line.indent > parent_indent and not _FIELD_RE.match(line.text)
        return False

    # Projection onto the closed hint types

    def _apply_root(self, block: HintBlock, key: str, value: Any, line: int) -> None:
        name = ROOT_KEYS.get(key.lower())
        if name is None:
            self._unknown(f"Unknown root key '{key}'", line)
            return

        if name in ("title", "description"):
            setattr(block, name, strip_quotes(str(value)))
        elif name == "required":
            block.required.extend(self._as_name_list(value))
        elif name == "additional_properties":
            if isinstance(value, bool):
                block.additional_properties = value
            else:
                self._report(Severity.ERROR, f"additionalProperties must be true or false (got '{value}')", line)
        elif name == "xor":
            block.xor.extend(self._parse_xor(value))
        else:
            getattr(block, name).extend(self._as_composition(value))

    def _project_field(self, entries: dict[str, _Entry], name: str, line: int) -> FieldHint:
        hint = FieldHint()
        items_shortcuts = FieldHint()
        for entry in entries.values():
            canonical = FIELD_KEYS.get(entry.key.lower())
            if canonical is None:
                self._unknown(f"Unknown field key '{entry.key}'", entry.line, name)
                continue
            value = entry.value

            if canonical in ("type", "format", "description", "ref", "enum_from"):
                setattr(hint, canonical, strip_quotes(str(value)))
            elif canonical in ("const", "default"):
                setattr(hint, canonical, value)
            elif canonical == "pattern":
                hint.pattern = strip_quotes(str(value))
                self._check_regex(hint.pattern, entry.line, name)
            elif canonical == "range":
                self._apply_range(hint, value, entry.line, name)
            elif canonical in ("minimum", "maximum"):
                setattr(hint, canonical, self._as_number(value, entry, name))
            elif canonical in ("min_length", "max_length", "min_items", "max_items"):
                number = self._as_number(value, entry, name)
                setattr(hint, canonical, int(number) if number is not None else None)
            elif canonical == "enum":
                hint.enum = self._as_value_list(value)
            elif canonical == "required":
                hint.required = value is True
            elif canonical == "enum_define":
                if isinstance(value, dict):
                    hint.enum_define = self._project_enum_define(value, name, entry.line)
                else:
                    self._report(Severity.ERROR, "enumDefine must be a nested block", entry.line, name)
            elif canonical == "items":
                if isinstance(value, dict):
                    hint.items = self._project_field(value, name, entry.line)
                elif value != "":
                    hint.items = FieldHint(type=str(value))
            elif canonical == "properties":
                if isinstance(value, dict):
                    hint.properties = {
                        prop: (
                            self._project_field(sub.value, f"{name}.{prop}", sub.line)
                            if isinstance(sub.value, dict)
                            else FieldHint(type=strip_quotes(str(sub.value)))
                        )
                        for prop, sub in value.items()
                    }
                else:
                    self._report(Severity.ERROR, "properties must be a nested block", entry.line, name)
            elif canonical == "items_ref":
                items_shortcuts.ref = strip_quotes(str(value))
            elif canonical == "items_type":
                items_shortcuts.type = str(value)
            elif canonical == "items_enum_from":
                items_shortcuts.enum_from = strip_quotes(str(value))

        if hint.items is None and not items_shortcuts.is_empty():
            hint.items = items_shortcuts
            hint.type = hint.type or "array"

        if hint.is_empty():
            self._report(Severity.ERROR, f'No directives found under "field {name}:"', line, name)
        return hint

    def _project_enum_define(self, entries: dict[str, _Entry], field_name: str, line: int) -> EnumDefinition:
        definition = EnumDefinition()
        lowered = {key.lower(): entry for key, entry in entries.items()}

        path_key = next((k for k in _ENUM_PATH_PRIORITY if k in lowered), None)
        if path_key is None:
            self._report(Severity.ERROR, 'enumDefine is missing "enumId:"', line, field_name)
        else:
            definition.path = strip_quotes(str(lowered[path_key].value))

        for key, entry in lowered.items():
            if key == "enumfrom":
                self._report(
                    Severity.ERROR,
                    "enumFrom is not allowed inside enumDefine; use enumId or move enumFrom directly under field",
                    entry.line,
                    field_name,
                )
                continue
            if key not in ENUM_DEFINE_KEYS:
                self._unknown(f"Unknown enumDefine key '{entry.key}'", entry.line, field_name, Severity.WARNING)
                continue
            canonical = ENUM_DEFINE_KEYS[key]
            value = entry.value
            if canonical is None or canonical == "path":
                continue
            if canonical == "generate":
                definition.generate = value if isinstance(value, bool) else None
            elif canonical == "values":
                definition.values = self._as_value_list(value)
            elif canonical in ("names", "descriptions"):
                setattr(definition, canonical, [str(v) for v in self._as_value_list(value)])
            elif canonical == "type":
                definition.type = "integer" if str(value).lower() == "integer" else "string"
            elif canonical == "value_pattern":
                definition.value_pattern = str(value)
                self._check_regex(definition.value_pattern, entry.line, field_name)
            else:
                setattr(definition, canonical, str(value))
        return definition

    # Value helpers

    def _apply_range(self, hint: FieldHint, value: Any, line: int, field_name: str) -> None:
        if isinstance(value, list) and len(value) == 1:
            # "[5, ]" loses its trailing empty token when the list is split
            value = [value[0], ""]
        if not isinstance(value, list) or len(value) != 2:
            self._report(Severity.ERROR, f"range must be [min, max] (got '{value}')", line, field_name)
            return
        bounds = []
        for token in value:
            if token in ("", "*", "null", "_"):
                bounds.append(None)
            elif _NUMBER_RE.match(token):
                bounds.append(float(token) if "." in token else int(token))
            else:
                self._report(Severity.ERROR, f"range bound is not a number: '{token}'", line, field_name)
                bounds.append(None)
        hint.minimum, hint.maximum = bounds

    def _as_number(self, value: Any, entry: _Entry, field_name: str) -> float | None:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        self._report(Severity.ERROR, f"{entry.key} must be a number (got '{value}')", entry.line, field_name)
        return None

    @staticmethod
    def _as_value_list(value: Any) -> list[Any]:
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [strip_quotes(v.strip()) for v in value.split(",") if v.strip()]
        return [value]

    @staticmethod
    def _as_name_list(value: Any) -> list[str]:
        values = value if isinstance(value, list) else str(value).split(",")
        return [str(v).strip() for v in values if str(v).strip()]

    @staticmethod
    def _as_composition(value: Any) -> list[Any]:
        if isinstance(value, dict):
            return [_entries_to_plain(value)]
        if isinstance(value, list):
            return [v for v in value if v != ""]
        return [value]

    @staticmethod
    def _parse_xor(value: Any) -> list[str]:
        if isinstance(value, list):
            return [v for v in value if v]
        text = str(value).strip()
        if text.startswith("(") and text.endswith(")"):
            text = text[1:-1]
        return [part.strip() for part in text.split("|") if part.strip()]

    def _check_regex(self, pattern: str, line: int, field_name: str) -> None:
        if not self.strict:
            return
        try:
            re.compile(pattern)
        except re.error as e:
            self._report(Severity.ERROR, f"Pattern is not a valid regex: {pattern} ({e})", line, field_name)

    # Diagnostics

    def _unknown(self, message: str, line: int, field_name: str = "", severity: Severity = Severity.ERROR) -> None:
        self._report(severity, message, line, field_name)

    def _report(self, severity: Severity, message: str, line: int | None, field_name: str = "") -> None:
        if not self.strict:
            logger.debug("%s: skipped (%s) at line %s", self._owner, message, line)
            return
        self._diagnostics.append(
            Diagnostic(severity=severity, message=message, line=line, owner=self._owner, field=field_name)
        )


def _entries_to_plain(entries: dict[str, _Entry]) -> dict[str, Any]:
    """Turn a raw entry tree into plain JSON values."""
    return {
        key: _entries_to_plain(entry.value) if isinstance(entry.value, dict) else entry.value
        for key, entry in entries.items()
    }
