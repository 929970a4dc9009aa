"""
Tests for the corpus layout and the atomic writer.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest

from schemahints.pipeline.compiler import ArtifactKind, CanonicalId, NamespaceContext
from schemahints.pipeline.errors import StorageError
from schemahints.pipeline.storage import AtomicWriter, StorageLayout


class TestAtomicWriter:
    """Tests for AtomicWriter."""

    def test_write_creates_file_and_parents(self):
        writer = AtomicWriter()

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "core" / "schemas" / "Person.schema.json"
            writer.write_json(path, {"title": "Person", "type": "object"})

            assert path.read_text() == '{\n  "title": "Person",\n  "type": "object"\n}\n'
            assert writer.written == [path]

    def test_write_overwrites_existing(self):
        writer = AtomicWriter()

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "existing.json"
            path.write_text('{"old": true}')

            writer.write_json(path, {"new": True})
            assert json.loads(path.read_text()) == {"new": True}

    def test_invalid_content_keeps_prior_version(self):
        writer = AtomicWriter()

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "existing.json"
            path.write_text('{"old": true}')

            with pytest.raises(StorageError):
                writer.write(path, "{not json")

            assert path.read_text() == '{"old": true}'
            assert list(Path(tmpdir).iterdir()) == [path]

    def test_validation_can_be_skipped(self):
        writer = AtomicWriter()

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "report.txt"
            writer.write(path, "PASS  a.puml", validate=False)
            assert path.read_text() == "PASS  a.puml"

    def test_custom_validator(self):
        def reject_empty(content):
            if not json.loads(content):
                raise StorageError("<content>", "empty document")

        writer = AtomicWriter(validate_json=reject_empty)
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(StorageError):
                writer.write_json(Path(tmpdir) / "empty.json", {})

    def test_sorted_keys(self):
        writer = AtomicWriter()
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sorted.json"
            writer.write_json(path, {"b": 1, "a": {"d": 2, "c": 3}}, sort_keys=True)
            assert list(json.loads(path.read_text())) == ["a", "b"]
            assert path.read_text().index('"c"') < path.read_text().index('"d"')

    def test_unwritable_destination(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageError):
            AtomicWriter().write_json(blocker / "child.json", {})


class TestStorageLayout:
    def test_namespace_for_source(self, tmp_path):
        layout = StorageLayout(tmp_path)
        source = tmp_path / "travel" / "puml" / "booking" / "air" / "Flight.puml"
        assert layout.namespace_for_source(source) == NamespaceContext("travel", ("booking", "air"))

    def test_source_outside_layout(self, tmp_path):
        layout = StorageLayout(tmp_path / "corpus")
        with pytest.raises(StorageError):
            layout.namespace_for_source(tmp_path / "elsewhere" / "puml" / "A.puml")
        with pytest.raises(StorageError):
            layout.namespace_for_source(tmp_path / "corpus" / "travel" / "docs" / "A.puml")

    def test_listings_are_sorted(self, tmp_path):
        for name in ["b/puml/Z.puml", "a/puml/sub/Y.puml", "a/puml/X.puml", "a/puml/notes.txt"]:
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("")
        layout = StorageLayout(tmp_path)
        assert [layout.relative(p) for p in layout.source_files()] == ["a/puml/X.puml", "a/puml/sub/Y.puml", "b/puml/Z.puml"]

    def test_artifact_and_sample_paths(self, tmp_path):
        layout = StorageLayout(tmp_path)
        cid = CanonicalId("core", ("common",), "Address", ArtifactKind.SCHEMA)
        assert layout.artifact_path(cid) == tmp_path / "core" / "schemas" / "common" / "Address.schema.json"
        assert layout.artifact_path(cid.with_kind(ArtifactKind.ENUM)) == tmp_path / "core" / "enums" / "common" / "Address.json"
        assert layout.sample_path(cid) == tmp_path / "core" / "samples" / "common" / "Address.sample.json"
        assert layout.enum_target_path("/shared/Kinds") == tmp_path / "shared" / "Kinds.json"

    def test_enum_target_path_keeps_dotted_names(self, tmp_path):
        layout = StorageLayout(tmp_path)
        assert layout.enum_target_path("/core/enums/Foo.v2") == tmp_path / "core" / "enums" / "Foo.v2.json"
        with pytest.raises(StorageError):
            layout.enum_target_path("/")
