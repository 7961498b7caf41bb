"""Serialization, atomic artifact writes and the fingerprint-keyed cache."""

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

FORMATS = ("json", "yaml")

EXTENSIONS = {
    "json": (".json",),
    "yaml": (".yaml", ".yml"),
}


class SerializationError(Exception):
    """The document cannot be encoded in the requested format."""


class ArtifactError(Exception):
    """Base for serving-time problems with the generated file."""


class ArtifactNotFound(ArtifactError):
    """The document has not been generated yet."""


class InvalidArtifact(ArtifactError):
    """The generated file exists but cannot be parsed."""


class _DocumentDumper(yaml.SafeDumper):
    def ignore_aliases(self, data):
        return True


def format_for(path: Path) -> str | None:
    """Format implied by a file extension, if any."""
    suffix = path.suffix.lower()
    for fmt, extensions in EXTENSIONS.items():
        if suffix in extensions:
            return fmt
    return None


def dump(document: dict[str, Any], fmt: str) -> str:
    if fmt == "json":
        try:
            return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode document as JSON: {e}") from e
    if fmt == "yaml":
        try:
            return yaml.dump(
                document,
                Dumper=_DocumentDumper,
                sort_keys=False,
                allow_unicode=True,
                default_flow_style=False,
            )
        except yaml.YAMLError as e:
            raise SerializationError(f"Cannot encode document as YAML: {e}") from e
    raise SerializationError(f"Unsupported format: {fmt}")


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
    try:
        os.replace(tmp.name, path)
    except OSError:
        os.unlink(tmp.name)
        raise


def write_document(document: dict[str, Any], path: Path, fmt: str) -> Path:
    """Serialize first, then move the complete file into place."""
    text = dump(document, fmt)
    _write_atomic(path, text)
    logger.info("Wrote %s document to %s", fmt, path)
    return path


def read_artifact_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ArtifactNotFound(f"{path} has not been generated") from e
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidArtifact(f"Cannot read {path}: {e}") from e


def parse(text: str, fmt: str) -> dict[str, Any]:
    try:
        data = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise InvalidArtifact(f"Malformed {fmt} document: {e}") from e
    if not isinstance(data, dict):
        raise InvalidArtifact(f"Malformed {fmt} document: top level is not a mapping")
    return data


def read_artifact(path: Path, fmt: str) -> dict[str, Any]:
    return parse(read_artifact_text(path), fmt)


class DocumentCache:
    """Read-through cache of generated documents keyed by config fingerprint.

    An entry older than ``ttl`` seconds, or one that cannot be parsed, is a
    miss.
    """

    def __init__(self, directory: Path, ttl: int = 3600):
        self.directory = Path(directory)
        self.ttl = ttl

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> dict[str, Any] | None:
        path = self.path_for(key)
        try:
            age = time.time() - path.stat().st_mtime
        except FileNotFoundError:
            return None
        if age > self.ttl:
            logger.debug("Cache entry %s expired", key)
            return None
        try:
            return read_artifact(path, "json")
        except ArtifactError as e:
            logger.debug("Ignoring cache entry %s: %s", key, e)
            return None

    def put(self, key: str, document: dict[str, Any]) -> None:
        _write_atomic(self.path_for(key), dump(document, "json"))
