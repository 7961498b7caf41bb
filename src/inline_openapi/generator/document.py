"""Document assembly: discovery results + configuration -> OpenAPI document."""

import logging
from collections import Counter
from typing import Any

from inline_openapi.config import OpenApiConfig
from inline_openapi.discovery.base import ModelDescriptor, RouteDescriptor
from inline_openapi.discovery.models import ModelDiscovery
from inline_openapi.discovery.routes import RouteDiscovery
from inline_openapi.extractor import AnnotationExtractor
from inline_openapi.generator.components import (
    build_global_security,
    build_info,
    build_parameters,
    build_responses,
    build_security_schemes,
    build_servers,
    build_tags,
)
from inline_openapi.generator.operation import OperationBuilder
from inline_openapi.host import Router
from inline_openapi.schema.builder import SchemaBuilder

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.3"


class DocumentGenerator:
    """Runs a full, stateless generation pass over one application.

    Every call to ``generate`` re-runs discovery and returns a new document.
    """

    def __init__(
        self,
        router: Router,
        config: OpenApiConfig,
        route_discovery: RouteDiscovery | None = None,
        model_discovery: ModelDiscovery | None = None,
        schema_builder: SchemaBuilder | None = None,
    ):
        extractor = AnnotationExtractor()
        self.config = config
        self.route_discovery = route_discovery or RouteDiscovery(router, config, extractor)
        self.model_discovery = model_discovery or ModelDiscovery(config, extractor)
        self.schema_builder = schema_builder or SchemaBuilder(include_hidden=config.generation.include_hidden_fields)

    def generate(self) -> dict[str, Any]:
        routes = self.route_discovery.discover()
        models = self._index_models(self.model_discovery.discover())

        paths = self.build_paths(routes, models)
        security_schemes = build_security_schemes(self.config)

        document = {
            "openapi": OPENAPI_VERSION,
            "info": build_info(self.config),
            "servers": build_servers(self.config),
            "paths": paths,
            "components": {
                "schemas": self.build_schemas(models),
                "securitySchemes": security_schemes,
                "parameters": build_parameters(self.config, self.schema_builder),
                "responses": build_responses(self.config, self.schema_builder),
            },
            "security": build_global_security(self.config.security, security_schemes),
            "tags": build_tags(routes, paths, self.config.tags),
        }

        logger.info(
            "Generated document with %d paths, %d schemas and %d tags",
            len(paths),
            len(document["components"]["schemas"]),
            len(document["tags"]),
        )
        return document

    def build_paths(self, routes: list[RouteDescriptor], models: dict[str, ModelDescriptor]) -> dict[str, Any]:
        paths: dict[str, dict[str, Any]] = {}
        names = Counter(route.name for route in routes if route.name)
        for route in routes:
            operations = paths.setdefault(route.path, {})
            method = route.method.lower()
            if method in operations:
                logger.debug("Skipping duplicate %s %s", route.method, route.path)
                continue
            operations[method] = OperationBuilder(
                route,
                self.schema_builder,
                models,
                responses=self.config.responses,
                shared_name=names[route.name] > 1,
            ).build()
        return paths

    def build_schemas(self, models: dict[str, ModelDescriptor]) -> dict[str, Any]:
        return {name: self.schema_builder.build_model_schema(model) for name, model in models.items()}

    @staticmethod
    def _index_models(descriptors: list[ModelDescriptor]) -> dict[str, ModelDescriptor]:
        models: dict[str, ModelDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.short_name in models:
                logger.warning(
                    "Schema name %s is already taken by %s; skipping %s",
                    descriptor.short_name,
                    models[descriptor.short_name].identifier,
                    descriptor.identifier,
                )
                continue
            models[descriptor.short_name] = descriptor
        return models
