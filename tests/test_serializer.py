"""
Tests for spec serialization and content hashing.
"""
import json

import pytest

from doccov.errors import MalformedSpec, NotFound
from doccov.serializer import (
    canonical_json,
    content_hash,
    load_result,
    load_spec,
    save_result,
    save_spec,
)

from builders import function, make_spec


class TestContentHash:
    """Tests for canonical JSON and content hashes."""

    def test_key_order_irrelevant(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
        assert content_hash({"b": 1, "a": 2}) == content_hash({"a": 2, "b": 1})

    def test_hash_length(self):
        assert len(content_hash({})) == 16

    def test_spec_hash_matches_dict_hash(self):
        spec = make_spec(function("a"))
        assert content_hash(spec) == content_hash(spec.to_dict())

    def test_different_specs_differ(self):
        assert content_hash(make_spec(function("a"))) != content_hash(make_spec(function("b")))


class TestSpecFiles:
    """Tests for load_spec and save_spec."""

    def test_round_trip(self, tmp_path):
        spec = make_spec(function("a", description="A"))
        path = tmp_path / "spec.json"
        save_spec(spec, path)
        assert load_spec(path) == spec

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFound):
            load_spec(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "spec.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(MalformedSpec):
            load_spec(path)

    def test_invalid_spec(self, tmp_path):
        path = tmp_path / "spec.json"
        path.write_text(json.dumps({"meta": {"name": "pkg"}, "exports": [{"kind": "function"}]}))
        with pytest.raises(MalformedSpec) as exc:
            load_spec(path)
        assert exc.value.path == "exports[0].name"


class TestResultFiles:
    """Tests for saved analysis results."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "out" / "diff.json"
        save_result({"breaking": []}, path, kind="diff")
        saved = json.loads(path.read_text())
        assert saved["kind"] == "diff"
        assert load_result(path) == {"breaking": []}

    def test_to_dict_objects(self, tmp_path):
        path = tmp_path / "spec.json"
        spec = make_spec(function("a"))
        save_result(spec, path)
        assert load_result(path) == spec.to_dict()
