"""
Tests for the instance synthesizer.
"""

from __future__ import annotations

import json
import unittest
from pathlib import Path

import pytest

from schemahints.pipeline.bundler import DocumentRegistry
from schemahints.pipeline.errors import UnresolvedReferenceError
from schemahints.pipeline.synthesizer import MAX_DEPTH, NO_SAMPLE, InstanceSynthesizer

BASE = "https://example.org/schemas/"
TEST_DATA_DIR = Path(__file__).parent / "test_data"


def load_test_data():
    """Load sampler test cases from JSON file"""
    with open(TEST_DATA_DIR / "sampler_tests.json") as f:
        return json.load(f)


def synthesizer(bodies=(), max_depth=MAX_DEPTH):
    return InstanceSynthesizer(DocumentRegistry.from_bodies(BASE, list(bodies)), max_depth=max_depth)


@pytest.mark.parametrize("test_case", load_test_data(), ids=lambda case: case["name"])
def test_sampler_cases(test_case):
    assert synthesizer().synthesize(test_case["schema"]) == test_case["expected"]


class TestReferences(unittest.TestCase):
    def test_ref_through_registry(self):
        address = {
            "$id": BASE + "core/Address.schema.json",
            "type": "object",
            "required": ["street"],
            "properties": {"street": {"type": "string", "minLength": 2}},
        }
        person = {
            "type": "object",
            "required": ["home"],
            "properties": {"home": {"$ref": BASE + "core/Address.schema.json"}},
        }
        self.assertEqual(synthesizer([address]).synthesize(person), {"home": {"street": "xx"}})

    def test_local_fragment_ref(self):
        schema = {
            "$defs": {"Code": {"type": "string", "minLength": 2}},
            "type": "object",
            "required": ["c"],
            "properties": {"c": {"$ref": "#/$defs/Code"}},
        }
        self.assertEqual(synthesizer().synthesize(schema), {"c": "xx"})

    def test_fragment_into_registry_document(self):
        enum = {"$id": BASE + "core/Lists.schema.json", "$defs": {"Size": {"enum": ["S", "M"]}}}
        schema = {"type": "object", "required": ["size"], "properties": {"size": {"$ref": BASE + "core/Lists.schema.json#/$defs/Size"}}}
        self.assertEqual(synthesizer([enum]).synthesize(schema), {"size": "S"})

    def test_unresolved_ref_raises(self):
        schema = {"type": "object", "required": ["x"], "properties": {"x": {"$ref": BASE + "core/Missing.schema.json"}}}
        with self.assertRaises(UnresolvedReferenceError):
            synthesizer().synthesize(schema)

    def test_unresolved_optional_ref_is_never_followed(self):
        schema = {"type": "object", "properties": {"x": {"$ref": BASE + "core/Missing.schema.json"}}}
        self.assertEqual(synthesizer().synthesize(schema), {})


class TestNoSample:
    def test_pattern_is_never_guessed(self):
        schema = {"type": "string", "pattern": "^[A-Z]{3}$"}
        assert synthesizer().synthesize(schema) is NO_SAMPLE

    def test_required_pattern_propagates(self):
        schema = {
            "type": "object",
            "required": ["outer"],
            "properties": {
                "outer": {
                    "type": "object",
                    "required": ["code"],
                    "properties": {"code": {"type": "string", "pattern": "^[A-Z]+$"}},
                }
            },
        }
        assert synthesizer().synthesize(schema) is NO_SAMPLE

    def test_optional_pattern_is_skipped(self):
        schema = {"type": "object", "required": ["a"], "properties": {"a": {"type": "integer"}, "b": {"type": "string", "pattern": "x"}}}
        assert synthesizer().synthesize(schema) == {"a": 0}

    def test_array_element_without_sample(self):
        schema = {"type": "array", "items": {"type": "string", "pattern": "x"}}
        assert synthesizer().synthesize(schema) is NO_SAMPLE

    def test_self_reference_terminates(self):
        node = {
            "$id": BASE + "core/Node.schema.json",
            "type": "object",
            "required": ["name", "child"],
            "properties": {"name": {"type": "string"}, "child": {"$ref": BASE + "core/Node.schema.json"}},
        }
        assert synthesizer([node]).synthesize(node) is NO_SAMPLE

    def test_optional_self_reference(self):
        node = {
            "$id": BASE + "core/Node.schema.json",
            "type": "object",
            "required": ["name"],
            "properties": {"name": {"type": "string"}, "child": {"$ref": BASE + "core/Node.schema.json"}},
        }
        assert synthesizer([node]).synthesize(node) == {"name": ""}

    def test_depth_ceiling(self):
        schema = {
            "type": "object",
            "required": ["a"],
            "properties": {"a": {"type": "object", "required": ["b"], "properties": {"b": {"type": "string"}}}},
        }
        assert synthesizer(max_depth=1).synthesize(schema) is NO_SAMPLE
        assert synthesizer(max_depth=2).synthesize(schema) == {"a": {"b": ""}}

    def test_shapeless_top_level(self):
        assert synthesizer().synthesize({}) is NO_SAMPLE
        assert synthesizer().synthesize({"description": "nothing to go on"}) is NO_SAMPLE

    def test_no_sample_is_falsy(self):
        assert not NO_SAMPLE
