"""
Tests for hint reference path resolution and canonical identifiers.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from schemahints.pipeline.compiler import ArtifactKind, CanonicalId, NamespaceContext, PathKind, ReferenceResolver
from schemahints.pipeline.errors import ReferenceResolutionError

BASE = "https://example.org/schemas/"


@pytest.fixture
def resolver():
    return ReferenceResolver(BASE, NamespaceContext("travel", ("booking", "air")))


@pytest.mark.parametrize(
    "path, kind",
    [
        ("#/$defs/Local", PathKind.FRAGMENT),
        ("https://example.org/schemas/core/Lang.json", PathKind.ABSOLUTE_URL),
        ("/core/common/Lang", PathKind.NAMESPACE_ROOTED),
        ("@core/common/Lang", PathKind.PROJECT_ROOTED),
        ("./Seat", PathKind.DOCUMENT_RELATIVE),
        ("../rail/Seat", PathKind.DOCUMENT_RELATIVE),
        ("Seat", PathKind.BARE),
        ("sub/Seat", PathKind.BARE),
    ],
)
def test_classify(path, kind):
    assert PathKind.classify(path) is kind


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/core/common/Lang", "https://example.org/schemas/core/common/Lang.json"),
        ("@core/common/Lang", "https://example.org/schemas/core/common/Lang.json"),
        ("./Seat", "https://example.org/schemas/travel/booking/air/Seat.json"),
        ("../rail/Seat", "https://example.org/schemas/travel/booking/rail/Seat.json"),
        ("Seat", "https://example.org/schemas/travel/booking/air/Seat.json"),
        ("cabin/Seat", "https://example.org/schemas/travel/booking/air/cabin/Seat.json"),
    ],
)
def test_enum_path_forms(resolver, path, expected):
    assert resolver.resolve(path, ArtifactKind.ENUM).ref == expected


def test_rooted_and_absolute_forms_are_equivalent(resolver):
    rooted = resolver.resolve("/core/common/Lang", ArtifactKind.ENUM)
    absolute = resolver.resolve("https://example.org/schemas/core/common/Lang.json", ArtifactKind.ENUM)
    assert rooted.canonical_id == absolute.canonical_id
    assert rooted.ref == absolute.ref


def test_absolute_url_suffix_decides_kind(resolver):
    resolved = resolver.resolve("https://example.org/schemas/core/Person.schema.json", ArtifactKind.ENUM)
    assert resolved.canonical_id.kind is ArtifactKind.SCHEMA


def test_absolute_url_keeps_fragment(resolver):
    resolved = resolver.resolve("https://example.org/schemas/core/Person.schema.json#/properties/name", ArtifactKind.SCHEMA)
    assert resolved.ref == "https://example.org/schemas/core/Person.schema.json#/properties/name"
    assert resolved.canonical_id == CanonicalId("core", (), "Person", ArtifactKind.SCHEMA)


def test_external_url_is_verbatim(resolver):
    resolved = resolver.resolve("https://other.example.com/geo/Point.json", ArtifactKind.SCHEMA)
    assert resolved.is_external
    assert resolved.canonical_id is None
    assert resolved.ref == "https://other.example.com/geo/Point.json"


def test_fragment_is_verbatim(resolver):
    resolved = resolver.resolve("#/$defs/Local", ArtifactKind.SCHEMA)
    assert resolved.ref == "#/$defs/Local"
    assert resolved.canonical_id is None


def test_schema_suffix(resolver):
    assert resolver.resolve("Passenger", ArtifactKind.SCHEMA).ref == (
        "https://example.org/schemas/travel/booking/air/Passenger.schema.json"
    )


@pytest.mark.parametrize("path", ["", "   ", "../../../Escape", "/OnlyName", "/core/bad name/X"])
def test_malformed_paths_raise(resolver, path):
    with pytest.raises(ReferenceResolutionError):
        resolver.resolve(path, ArtifactKind.SCHEMA)


def test_resolution_is_cached(resolver):
    first = resolver.resolve("Seat", ArtifactKind.ENUM)
    assert resolver.resolve("Seat", ArtifactKind.ENUM) is first


class TestCanonicalId:
    def test_identifier_and_storage_path_agree(self):
        cid = CanonicalId("core", ("common",), "Lang", ArtifactKind.ENUM)
        assert cid.identifier(BASE) == "https://example.org/schemas/core/common/Lang.json"
        assert cid.storage_path(Path("/corpus")) == Path("/corpus/core/enums/common/Lang.json")
        assert CanonicalId.from_identifier(cid.identifier(BASE), BASE) == cid

    def test_schema_storage_path(self):
        cid = CanonicalId("core", (), "Person")
        assert cid.storage_path(Path("/corpus")) == Path("/corpus/core/schemas/Person.schema.json")

    def test_from_identifier_outside_base(self):
        assert CanonicalId.from_identifier("https://elsewhere.org/a/B.json", BASE) is None
        assert CanonicalId.from_identifier(BASE + "core/Person.yaml", BASE) is None
