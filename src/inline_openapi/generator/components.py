"""Document sections assembled from configuration and discovered routes."""

import logging
from typing import Any

from inline_openapi.annotations import ApiGroupDecl, OperationDecl
from inline_openapi.config import OpenApiConfig
from inline_openapi.discovery.base import RouteDescriptor, all_of, first_of
from inline_openapi.schema.builder import SchemaBuilder

logger = logging.getLogger(__name__)

DEFAULT_SERVER = {"url": "http://localhost", "description": "Default Server"}

API_KEY_LOCATIONS = {"query", "header", "cookie"}


def build_info(config: OpenApiConfig) -> dict[str, Any]:
    info = config.info.model_dump(exclude_none=True)
    if not info.get("contact"):
        info.pop("contact", None)
    return info


def build_servers(config: OpenApiConfig) -> list[dict[str, Any]]:
    if not config.servers:
        return [dict(DEFAULT_SERVER)]
    return [server.model_dump(exclude_none=True) for server in config.servers]


def _scheme_problem(scheme: dict[str, Any]) -> str | None:
    """Why a security scheme is unusable, or None when it is complete."""
    kind = scheme.get("type")
    if kind == "apiKey":
        if not scheme.get("name"):
            return "apiKey scheme needs a name"
        if scheme.get("in") not in API_KEY_LOCATIONS:
            return "apiKey scheme needs 'in' of query, header or cookie"
    elif kind == "http":
        if not scheme.get("scheme"):
            return "http scheme needs a scheme name"
    elif kind == "oauth2":
        flows = scheme.get("flows")
        if not isinstance(flows, dict) or not flows:
            return "oauth2 scheme needs at least one flow"
    elif kind == "openIdConnect":
        if not scheme.get("openIdConnectUrl"):
            return "openIdConnect scheme needs an openIdConnectUrl"
    else:
        return f"unknown scheme type {kind!r}"
    return None


def build_security_schemes(config: OpenApiConfig) -> dict[str, Any]:
    schemes = {}
    for name, scheme in config.security_schemes.items():
        problem = _scheme_problem(scheme)
        if problem is not None:
            logger.warning("Dropping security scheme %s: %s", name, problem)
            continue
        schemes[name] = dict(scheme)
    return schemes


def build_parameters(config: OpenApiConfig, builder: SchemaBuilder) -> dict[str, Any]:
    parameters = {}
    for name, parameter in config.parameters.items():
        parameter = dict(parameter)
        if "schema" in parameter:
            parameter["schema"] = builder.build_schema(parameter["schema"])
        parameters[name] = parameter
    return parameters


def build_responses(config: OpenApiConfig, builder: SchemaBuilder) -> dict[str, Any]:
    responses = {}
    for name, response in config.responses.items():
        response = dict(response)
        response.setdefault("description", name)
        if isinstance(response.get("content"), dict):
            content = {}
            for media_type, media in response["content"].items():
                media = dict(media or {})
                if "schema" in media:
                    media["schema"] = builder.build_schema(media["schema"])
                content[media_type] = media
            response["content"] = content
        responses[name] = response
    return responses


def build_global_security(requirements: list[dict[str, list[str]]], schemes: dict[str, Any]) -> list[dict[str, list[str]]]:
    """Keep only requirement entries whose scheme exists."""
    security = []
    for requirement in requirements:
        kept = {}
        for name, scopes in requirement.items():
            if name in schemes:
                kept[name] = list(scopes or [])
            else:
                logger.warning("Dropping security requirement on unknown scheme %s", name)
        if kept:
            security.append(kept)
    return security


def _tag_from_group(group: ApiGroupDecl) -> dict[str, Any]:
    tag: dict[str, Any] = {"name": group.name}
    if group.description:
        tag["description"] = group.description
    if group.external_docs:
        tag["externalDocs"] = {"url": group.external_docs}
    return tag


def build_tags(
    routes: list[RouteDescriptor],
    paths: dict[str, dict[str, Any]],
    declared: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Deduplicated tag list.

    Group declarations and operation tag maps come first in route order,
    then names used by operations, then configured tags. The first
    occurrence of a name wins; later ones only fill a missing description
    or externalDocs.
    """
    tags: dict[str, dict[str, Any]] = {}

    def merge(tag: dict[str, Any]) -> None:
        existing = tags.get(tag["name"])
        if existing is None:
            tags[tag["name"]] = dict(tag)
            return
        for key in ("description", "externalDocs"):
            if key in tag and key not in existing:
                existing[key] = tag[key]

    for route in routes:
        for group in all_of(route.controller_attributes, ApiGroupDecl):
            merge(_tag_from_group(group))
        operation = first_of(route.attributes, OperationDecl)
        for tag in operation.tags if operation else []:
            if isinstance(tag, dict) and tag.get("name"):
                merge(dict(tag))

    for operations in paths.values():
        for operation in operations.values():
            for name in operation.get("tags", []):
                merge({"name": name})

    for tag in declared:
        if tag.get("name") and tag["name"] not in tags:
            tags[tag["name"]] = dict(tag)

    return list(tags.values())
