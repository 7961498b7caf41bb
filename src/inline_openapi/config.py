"""Generator configuration.

Loaded once per run (YAML, JSON being a subset) and passed explicitly to
discovery and generation; nothing mutates it afterwards.
"""

import hashlib
import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

ENV_OVERRIDES = {
    "OPENAPI_TITLE": "title",
    "OPENAPI_VERSION": "version",
    "OPENAPI_DESCRIPTION": "description",
}


class ConfigError(ValueError):
    """The configuration file cannot be read or does not validate."""


class Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Contact(Section):
    name: str | None = None
    email: str | None = None
    url: str | None = None


class Info(Section):
    title: str = "API"
    version: str = "1.0.0"
    description: str | None = None
    contact: Contact | None = None


class Server(Section):
    url: str
    description: str | None = None


class RouteRules(Section):
    include_patterns: list[str] = []
    exclude_patterns: list[str] = []
    api_prefix: str = "api"


class ModelRules(Section):
    directories: list[str] = ["app/models"]
    root_path: str = "."
    root_package: str = ""
    exclude_classes: list[str] = []


class DiscoverySettings(Section):
    routes: RouteRules = RouteRules()
    models: ModelRules = ModelRules()


class GenerationSettings(Section):
    cache_enabled: bool = False
    cache_ttl: int = 3600
    cache_dir: str = ".openapi-cache"
    include_hidden_fields: bool = False


class PathSettings(Section):
    json_route_path: str = "/openapi.json"
    yaml_route_path: str = "/openapi.yaml"
    output_directory: str = "public"
    output_filename: str = "openapi"


class UiSettings(Section):
    enabled: bool = True
    route: str = "/api-docs"
    title: str = "OpenAPI Documentation UI"
    doc_expansion: str = "list"


class OpenApiConfig(Section):
    app: str | None = None  # "module:attribute" of the application's Router
    info: Info = Info()
    servers: list[Server] = []
    discovery: DiscoverySettings = DiscoverySettings()
    generation: GenerationSettings = GenerationSettings()
    paths: PathSettings = PathSettings()
    ui: UiSettings = UiSettings()
    security_schemes: dict[str, dict[str, Any]] = {}
    security: list[dict[str, list[str]]] = []
    parameters: dict[str, dict[str, Any]] = {}
    responses: dict[str, dict[str, Any]] = {}
    tags: list[dict[str, Any]] = []

    def fingerprint(self) -> str:
        canonical = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def output_path(self, fmt: str) -> Path:
        return Path(self.paths.output_directory) / f"{self.paths.output_filename}.{fmt}"


def _apply_env(data: dict) -> dict:
    info = dict(data.get("info") or {})
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            info[key] = value
    if info:
        data = {**data, "info": info}
    return data


def load_config(path: Path | None = None) -> OpenApiConfig:
    """Load configuration from a YAML/JSON file; defaults when absent."""
    data: dict = {}
    if path is not None and path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
        data = loaded or {}

    try:
        return OpenApiConfig.model_validate(_apply_env(data))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
