import json
import os
import time

import pytest
import yaml

from inline_openapi.output import (
    ArtifactNotFound,
    DocumentCache,
    InvalidArtifact,
    SerializationError,
    dump,
    format_for,
    read_artifact,
    write_document,
)

DOCUMENT = {"openapi": "3.0.3", "info": {"title": "Tâches", "version": "1.0.0"}, "paths": {}}


class TestDump:
    def test_json(self):
        text = dump(DOCUMENT, "json")
        assert "Tâches" in text
        assert text.startswith('{\n  "openapi"')
        assert json.loads(text) == DOCUMENT

    def test_yaml_keeps_order(self):
        text = dump(DOCUMENT, "yaml")
        assert text.splitlines()[0] == "openapi: 3.0.3"
        assert yaml.safe_load(text) == DOCUMENT

    def test_yaml_without_aliases(self):
        shared = {"description": "Resource not found"}
        text = dump({"a": {"404": shared}, "b": {"404": shared}}, "yaml")
        assert "&id" not in text
        assert "*id" not in text

    def test_unencodable(self):
        with pytest.raises(SerializationError):
            dump({"value": object()}, "json")
        with pytest.raises(SerializationError):
            dump({"value": object()}, "yaml")

    def test_unknown_format(self):
        with pytest.raises(SerializationError):
            dump(DOCUMENT, "toml")


class TestFormatFor:
    def test_extensions(self, tmp_path):
        assert format_for(tmp_path / "a.json") == "json"
        assert format_for(tmp_path / "a.YML") == "yaml"
        assert format_for(tmp_path / "a.txt") is None


class TestWriteDocument:
    def test_creates_directories(self, tmp_path):
        target = tmp_path / "public" / "docs" / "openapi.yaml"
        write_document(DOCUMENT, target, "yaml")
        assert read_artifact(target, "yaml") == DOCUMENT
        assert [p.name for p in target.parent.iterdir()] == ["openapi.yaml"]

    def test_failed_encoding_leaves_existing_file(self, tmp_path):
        target = tmp_path / "openapi.json"
        write_document(DOCUMENT, target, "json")
        with pytest.raises(SerializationError):
            write_document({"value": object()}, target, "json")
        assert read_artifact(target, "json") == DOCUMENT
        assert [p.name for p in tmp_path.iterdir()] == ["openapi.json"]


class TestReadArtifact:
    def test_missing(self, tmp_path):
        with pytest.raises(ArtifactNotFound):
            read_artifact(tmp_path / "openapi.json", "json")

    @pytest.mark.parametrize("content, fmt", [("{not json", "json"), ("[1, 2]", "json"), ("a: [b", "yaml")])
    def test_malformed(self, tmp_path, content, fmt):
        path = tmp_path / f"openapi.{fmt}"
        path.write_text(content)
        with pytest.raises(InvalidArtifact):
            read_artifact(path, fmt)


class TestDocumentCache:
    def test_round_trip(self, tmp_path):
        cache = DocumentCache(tmp_path / "cache", ttl=60)
        assert cache.get("abc") is None
        cache.put("abc", DOCUMENT)
        assert cache.get("abc") == DOCUMENT

    def test_expired_entry_is_a_miss(self, tmp_path):
        cache = DocumentCache(tmp_path, ttl=60)
        cache.put("abc", DOCUMENT)
        old = time.time() - 120
        os.utime(cache.path_for("abc"), (old, old))
        assert cache.get("abc") is None

    def test_malformed_entry_is_a_miss(self, tmp_path):
        cache = DocumentCache(tmp_path, ttl=60)
        cache.path_for("abc").write_text("{broken")
        assert cache.get("abc") is None
