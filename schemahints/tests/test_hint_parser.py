"""
Tests for the SCHEMAHINTS parser in tolerant and strict mode.
"""

from __future__ import annotations

import unittest
from pathlib import Path

import pytest

from schemahints.pipeline.config import ParseMode
from schemahints.pipeline.errors import HintParseError
from schemahints.pipeline.hints import MISSING, HintParser, Severity, extract_note_blocks
from schemahints.pipeline.hints.parser import coerce_scalar, split_inline_list

TEST_DATA_DIR = Path(__file__).parent / "test_data"


def parse(body: str, mode: ParseMode = ParseMode.TOLERANT, owner: str = "Thing"):
    return HintParser(mode).parse(body, owner)


class TestNoteExtraction(unittest.TestCase):
    def test_only_marked_notes_are_returned(self):
        text = (TEST_DATA_DIR / "diagrams" / "address.puml").read_text()
        notes = extract_note_blocks(text)
        self.assertEqual([n.owner for n in notes], ["Address", "Person"])

    def test_note_line_points_at_marker(self):
        text = (TEST_DATA_DIR / "diagrams" / "address.puml").read_text()
        notes = extract_note_blocks(text)
        lines = text.splitlines()
        self.assertEqual(lines[notes[0].line - 1].strip(), "SCHEMAHINTS")

    def test_indented_marker_activates(self):
        text = "note of A\n   SCHEMAHINTS\nfield x:\n  type: string\nend note\n"
        notes = extract_note_blocks(text)
        self.assertEqual(len(notes), 1)
        block = HintParser().parse(notes[0].body, notes[0].owner)
        self.assertEqual(block.fields["x"].type, "string")


class TestRootDirectives(unittest.TestCase):
    def test_address_block(self):
        text = (TEST_DATA_DIR / "diagrams" / "address.puml").read_text()
        note = extract_note_blocks(text)[0]
        block = HintParser().parse(note.body, note.owner, first_line=note.line)

        self.assertEqual(block.name, "Address")
        self.assertEqual(block.description, "A postal address")
        self.assertEqual(block.required, ["street", "country"])
        self.assertIs(block.additional_properties, False)
        self.assertEqual(list(block.fields), ["street", "floor", "country"])
        self.assertEqual(block.fields["street"].min_length, 1)
        self.assertEqual(block.fields["street"].max_length, 120)
        self.assertEqual(block.fields["floor"].minimum, 0)
        self.assertIsNone(block.fields["floor"].maximum)

        enum = block.fields["country"].enum_define
        self.assertEqual(enum.path, "/core/common/Country")
        self.assertEqual(enum.title, "Country")
        self.assertEqual(enum.values, ["FR", "DE"])
        self.assertEqual(enum.names, ["France", "Germany"])
        self.assertIsNone(enum.generate)

    def test_keys_are_case_insensitive(self):
        block = parse("SCHEMAHINTS\nTITLE: Renamed\nAdditionalProperties: true\n")
        self.assertEqual(block.name, "Renamed")
        self.assertIs(block.additional_properties, True)

    def test_name_defaults_to_owner(self):
        block = parse("SCHEMAHINTS\nfield a:\n  type: string\n", owner="Owner")
        self.assertEqual(block.name, "Owner")

    def test_required_accumulates(self):
        block = parse("SCHEMAHINTS\nrequired: [a, b]\nrequired: c\n")
        self.assertEqual(block.required, ["a", "b", "c"])

    def test_xor_forms(self):
        self.assertEqual(parse("SCHEMAHINTS\nxor: (email | phone)\n").xor, ["email", "phone"])
        self.assertEqual(parse("SCHEMAHINTS\nxor: [email, phone]\n").xor, ["email", "phone"])

    def test_composition_lists(self):
        block = parse("SCHEMAHINTS\noneOf: [Card, Transfer]\nallOf:\n  - Base\n")
        self.assertEqual(block.one_of, ["Card", "Transfer"])
        self.assertEqual(block.all_of, ["Base"])

    def test_missing_marker_raises(self):
        with self.assertRaises(HintParseError):
            parse("title: Address\n")

    def test_parsing_stops_at_end_note(self):
        block = parse("SCHEMAHINTS\nfield a:\n  type: string\nend note\nfield b:\n  type: string\n")
        self.assertEqual(list(block.fields), ["a"])


class TestFieldBlocks(unittest.TestCase):
    def test_nested_items_and_properties(self):
        body = """SCHEMAHINTS
field address:
  type: object
  properties:
    line1: string
    zip:
      type: string
      required: true
field tags:
  type: array
  items:
    type: string
    minLength: 2
"""
        block = parse(body)
        address = block.fields["address"]
        self.assertEqual(address.properties["line1"].type, "string")
        self.assertEqual(address.properties["zip"].type, "string")
        self.assertTrue(address.properties["zip"].required)

        tags = block.fields["tags"]
        self.assertEqual(tags.type, "array")
        self.assertEqual(tags.items.type, "string")
        self.assertEqual(tags.items.min_length, 2)

    def test_items_shortcut(self):
        block = parse("SCHEMAHINTS\nfield people:\n  itemsRef: ./Person\n")
        people = block.fields["people"]
        self.assertEqual(people.type, "array")
        self.assertEqual(people.items.ref, "./Person")

    def test_aliases(self):
        block = parse("SCHEMAHINTS\nfield a:\n  desc: Alpha\n  ref: Other\nfield b:\n  enumRef: /core/Kind\n")
        self.assertEqual(block.fields["a"].description, "Alpha")
        self.assertEqual(block.fields["a"].ref, "Other")
        self.assertEqual(block.fields["b"].enum_from, "/core/Kind")

    def test_const_and_default_keep_raw_literals(self):
        block = parse('SCHEMAHINTS\nfield a:\n  const: "v1"\nfield b:\n  type: integer\n  default: 3\nfield c:\n  type: string\n')
        self.assertEqual(block.fields["a"].const, '"v1"')
        self.assertEqual(block.fields["b"].default, 3)
        self.assertIs(block.fields["c"].const, MISSING)

    def test_quoted_pattern_is_unwrapped(self):
        block = parse('SCHEMAHINTS\nfield zip:\n  type: string\n  pattern: "^[0-9]{5}$"\n')
        self.assertEqual(block.fields["zip"].pattern, "^[0-9]{5}$")

    def test_open_lower_bound(self):
        block = parse("SCHEMAHINTS\nfield n:\n  type: number\n  range: [, 10]\n")
        self.assertIsNone(block.fields["n"].minimum)
        self.assertEqual(block.fields["n"].maximum, 10)

    def test_open_upper_bound(self):
        block = parse("SCHEMAHINTS\nfield n:\n  type: integer\n  range: [5, ]\n")
        self.assertEqual(block.fields["n"].minimum, 5)
        self.assertIsNone(block.fields["n"].maximum)


class TestToleranceModes:
    MESSY = """SCHEMAHINTS
title: Messy
this line means nothing
field a:

  type: string
  colour: red
field b:
"""

    def test_tolerant_skips_silently(self):
        block = parse(self.MESSY, ParseMode.TOLERANT)
        assert block.name == "Messy"
        assert block.fields["a"].type == "string"
        assert block.diagnostics == []

    def test_strict_reports(self):
        block = parse(self.MESSY, ParseMode.STRICT)
        messages = [d.message for d in block.diagnostics]
        assert any("Unrecognized line" in m for m in messages)
        assert any('Blank line directly after "field a:"' in m for m in messages)
        assert any("Unknown field key 'colour'" in m for m in messages)
        assert any('No directives found under "field b:"' in m for m in messages)
        assert all(d.severity is Severity.ERROR for d in block.diagnostics)

    def test_unknown_keys_are_dropped(self):
        block = parse(self.MESSY, ParseMode.STRICT)
        assert block.fields["a"].type == "string"
        assert not hasattr(block.fields["a"], "colour")

    def test_enum_define_checks(self):
        body = """SCHEMAHINTS
field kind:
  enumDefine:
    title: Kind
    enumFrom: /core/Kind
    x-unknown: 1
"""
        block = parse(body, ParseMode.STRICT)
        by_severity = {(d.severity, d.message.split(" ")[0]) for d in block.diagnostics}
        assert (Severity.ERROR, "enumDefine") in by_severity
        assert (Severity.ERROR, "enumFrom") in by_severity
        assert (Severity.WARNING, "Unknown") in by_severity

    def test_invalid_regex_only_reported_in_strict(self):
        body = "SCHEMAHINTS\nfield a:\n  type: string\n  pattern: ([a-z\n"
        assert parse(body, ParseMode.TOLERANT).diagnostics == []
        strict = parse(body, ParseMode.STRICT)
        assert any("not a valid regex" in d.message for d in strict.diagnostics)

    def test_diagnostic_lines_are_file_relative(self):
        block = HintParser(ParseMode.STRICT).parse("SCHEMAHINTS\nbogus\n", "A", first_line=10)
        assert block.diagnostics[0].line == 11


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("true", True),
        ("FALSE", False),
        ("-3", -3),
        ("2.5", 2.5),
        ("[a, 'b', \"c\"]", ["a", "b", "c"]),
        ("[]", []),
        ("plain words", "plain words"),
        ("v1.2", "v1.2"),
    ],
)
def test_coerce_scalar(raw, expected):
    assert coerce_scalar(raw) == expected


def test_inline_list_keeps_positional_empties():
    assert split_inline_list(", 10") == ["", "10"]
    assert split_inline_list("a, b,") == ["a", "b"]
