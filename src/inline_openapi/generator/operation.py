"""Operation assembly for one route.

Explicit declarations are applied first; the auto-discovery steps that
follow only fill what is still missing, so a declared value is never
overwritten.
"""

import copy
import re
from collections.abc import Collection
from typing import Any

from inline_openapi.annotations import (
    ApiGroupDecl,
    MediaTypeDecl,
    OperationDecl,
    ParameterDecl,
    RequestBodyDecl,
    ResponseDecl,
    SecurityDecl,
)
from inline_openapi.discovery.base import ModelDescriptor, RouteDescriptor, all_of, first_of
from inline_openapi.discovery.routes import INVOKE_METHOD
from inline_openapi.naming import headline, plural, resource_name, singular, strip_controller_suffix
from inline_openapi.schema.builder import SchemaBuilder
from inline_openapi.schema.resolver import pointer

LIST_METHODS = {"index", "list"}
WRITE_METHODS = {"POST", "PUT", "PATCH"}

DIGIT_PATTERN = re.compile(r"(\\d|\[0-9\])[+*]?")
UUID_PATTERN = r"[\da-fA-F]{8}-[\da-fA-F]{4}-[\da-fA-F]{4}-[\da-fA-F]{4}-[\da-fA-F]{12}"

LIST_PARAMETERS = (
    {
        "name": "page",
        "in": "query",
        "description": "Page number for pagination",
        "required": False,
        "schema": {"type": "integer", "default": 1},
    },
    {
        "name": "per_page",
        "in": "query",
        "description": "Number of items per page",
        "required": False,
        "schema": {"type": "integer", "default": 15},
    },
    {
        "name": "sort_by",
        "in": "query",
        "description": "Field to sort by",
        "required": False,
        "schema": {"type": "string"},
    },
    {
        "name": "sort_direction",
        "in": "query",
        "description": "Direction to sort (asc or desc)",
        "required": False,
        "schema": {"type": "string", "enum": ["asc", "desc"], "default": "asc"},
    },
)


def parameter_schema(constraint: str | None) -> dict[str, Any]:
    """Path parameter schema implied by a route constraint pattern."""
    if not constraint:
        return {"type": "string"}
    if DIGIT_PATTERN.fullmatch(constraint):
        return {"type": "integer"}
    if "uuid" in constraint.lower() or constraint == UUID_PATTERN:
        return {"type": "string", "format": "uuid"}
    return {"type": "string", "pattern": constraint}


def describe_action(controller: type, method_name: str, http_method: str) -> tuple[str, str]:
    """(summary, description) derived from handler naming conventions."""
    resource = resource_name(controller)
    action = http_method.lower() if method_name == INVOKE_METHOD else method_name

    if action in LIST_METHODS:
        return f"List all {plural(resource)}", f"Returns a list of {resource} resources."
    if action == "show":
        return f"Get a specific {resource}", f"Returns a specific {resource} resource."
    if action == "store":
        return f"Create a new {resource}", f"Creates a new {resource} resource."
    if action == "update":
        return f"Update a {resource}", f"Updates an existing {resource} resource."
    if action == "destroy":
        return f"Delete a {resource}", f"Deletes a {resource} resource."

    words = headline(action)
    return f"{words} {resource}", f"Endpoint for {words.lower()} operation on {resource} resource."


def default_tag(controller: type) -> str:
    return plural(headline(strip_controller_suffix(controller.__name__)))


def operation_id_for(method: str, path: str) -> str:
    safe = re.sub(r"[^a-zA-Z0-9_]", "", path.replace("/", "_").replace("{", "").replace("}", ""))
    return method.lower() + safe


def _message_schema(example: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"message": {"type": "string", "example": example}},
    }


def _json(schema: dict[str, Any]) -> dict[str, Any]:
    return {"application/json": {"schema": schema}}


NOT_FOUND = {"description": "Resource not found", "content": _json(_message_schema("Resource not found"))}

VALIDATION_ERROR = {
    "description": "Validation error",
    "content": _json(
        {
            "type": "object",
            "properties": {
                "message": {"type": "string", "example": "The given data was invalid."},
                "errors": {
                    "type": "object",
                    "additionalProperties": {"type": "array", "items": {"type": "string"}},
                },
            },
        }
    ),
}

UNEXPECTED_ERROR = {"description": "Unexpected error", "content": _json(_message_schema("An unexpected error occurred"))}

PAGINATION_LINKS = {
    "type": "object",
    "properties": {
        "first": {"type": "string", "format": "uri"},
        "last": {"type": "string", "format": "uri"},
        "prev": {"type": "string", "format": "uri", "nullable": True},
        "next": {"type": "string", "format": "uri", "nullable": True},
    },
}

PAGINATION_META = {
    "type": "object",
    "properties": {
        "current_page": {"type": "integer", "example": 1},
        "from": {"type": "integer", "example": 1},
        "last_page": {"type": "integer", "example": 5},
        "path": {"type": "string", "format": "uri"},
        "per_page": {"type": "integer", "example": 15},
        "to": {"type": "integer", "example": 15},
        "total": {"type": "integer", "example": 75},
    },
}


class OperationBuilder:
    """Builds the operation object of a single route."""

    def __init__(
        self,
        route: RouteDescriptor,
        builder: SchemaBuilder,
        models: dict[str, ModelDescriptor],
        responses: Collection[str] = (),
        shared_name: bool = False,
    ):
        self.route = route
        self.builder = builder
        self.resolver = builder.resolver
        self.models = models
        # names under components.responses; other response refs name schemas
        self.reusable_responses = set(responses)
        # the route name also covers another documented method
        self.shared_name = shared_name

        self.summary: str | None = None
        self.description: str | None = None
        self.operation_id: str | None = None
        self.tags: list[str] = []
        self.deprecated = False
        self.security: list[dict[str, list[str]]] | None = None
        self.parameters: list[dict[str, Any]] = []
        self.request_body: dict[str, Any] | None = None
        self.responses: dict[str, Any] = {"default": {"description": "Default response"}}
        self.explicit_responses = False

    def build(self) -> dict[str, Any]:
        steps = (
            # explicit declarations
            self._apply_operation,
            self._apply_tags,
            self._apply_parameters,
            self._apply_request_body,
            self._apply_responses,
            self._apply_security,
            # auto-discovery, gaps only
            self._fill_operation_id,
            self._fill_summary,
            self._fill_tags,
            self._fill_parameters,
            self._fill_request_body,
            self._fill_responses,
        )
        for step in steps:
            step()
        return self._to_dict()

    # -- explicit -----------------------------------------------------------

    def _apply_operation(self) -> None:
        decl = first_of(self.route.attributes, OperationDecl)
        if decl is None:
            return
        if decl.summary:
            self.summary = decl.summary
        if decl.description:
            self.description = decl.description
        if decl.operation_id:
            self.operation_id = decl.operation_id
        if decl.deprecated:
            self.deprecated = True
        if decl.security:
            self.security = [dict(requirement) for requirement in decl.security]

    def _apply_tags(self) -> None:
        names = [group.name for group in all_of(self.route.controller_attributes, ApiGroupDecl)]
        decl = first_of(self.route.attributes, OperationDecl)
        if decl is not None:
            for tag in decl.tags:
                name = tag if isinstance(tag, str) else tag.get("name")
                if name:
                    names.append(name)
        self.tags = list(dict.fromkeys(names))

    def _apply_parameters(self) -> None:
        for decl in all_of(self.route.attributes, ParameterDecl):
            parameter: dict[str, Any] = {
                "name": decl.name,
                "in": decl.in_,
                "required": decl.required or decl.in_ == "path",
            }
            if decl.description is not None:
                parameter["description"] = decl.description
            parameter["schema"] = self.builder.build_schema(decl.schema_) or {"type": "string"}
            if decl.example is not None:
                parameter["example"] = decl.example
            if decl.examples:
                parameter["examples"] = dict(decl.examples)
            if decl.deprecated:
                parameter["deprecated"] = True
            self.parameters.append(parameter)

    def _apply_request_body(self) -> None:
        decl = first_of(self.route.attributes, RequestBodyDecl)
        if decl is None:
            return
        body: dict[str, Any] = {}
        if decl.description is not None:
            body["description"] = decl.description
        body["required"] = decl.required
        if decl.ref:
            body["content"] = _json(self.resolver.reference(decl.ref))
        else:
            body["content"] = self._content(decl.content) or _json({"type": "object"})
        self.request_body = body

    def _apply_responses(self) -> None:
        responses: dict[str, Any] = {}
        for decl in all_of(self.route.attributes, ResponseDecl):
            status = str(decl.status)
            if self._is_reusable_response(decl.ref):
                responses[status] = self.resolver.reference(decl.ref, "responses")
                continue
            response: dict[str, Any] = {
                "description": decl.description if decl.description is not None else f"Response for status {status}"
            }
            if decl.ref:
                content = _json(self.resolver.reference(decl.ref))
            else:
                content = self._content(decl.content)
            if not content and decl.properties:
                properties, required = self.builder.build_properties(decl.properties)
                schema: dict[str, Any] = {"type": "object", "properties": properties}
                if required:
                    schema["required"] = required
                content = _json(schema)
            if content:
                response["content"] = content
            if decl.headers:
                response["headers"] = dict(decl.headers)
            responses[status] = response

        if responses:
            self.responses = copy.deepcopy(responses)
            self.explicit_responses = True

    def _apply_security(self) -> None:
        if self.security is not None:
            return
        decl = first_of(self.route.attributes, SecurityDecl) or first_of(self.route.controller_attributes, SecurityDecl)
        if decl is not None:
            self.security = [{scheme: list(decl.scopes)} for scheme in decl.schemes]

    def _is_reusable_response(self, ref: Any) -> bool:
        if not isinstance(ref, str):
            return False
        return ref in self.reusable_responses or ref.startswith(pointer("", "responses"))

    def _content(self, content: Any) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if isinstance(content, dict):
            for media_type, media in content.items():
                media = dict(media or {})
                if "schema" in media:
                    media["schema"] = self.builder.build_schema(media["schema"])
                result[media_type] = media
        elif isinstance(content, list):
            for media in content:
                if isinstance(media, MediaTypeDecl):
                    result[media.media_type] = self._media(media)
        return result

    def _media(self, media: MediaTypeDecl) -> dict[str, Any]:
        entry: dict[str, Any] = {}
        schema = self.builder.build_schema(media.schema_)
        if schema is not None:
            entry["schema"] = schema
        if media.example is not None:
            entry["example"] = media.example
        if media.examples:
            entry["examples"] = dict(media.examples)
        if media.encoding:
            entry["encoding"] = dict(media.encoding)
        return entry

    # -- auto-discovery -----------------------------------------------------

    def _fill_operation_id(self) -> None:
        if self.operation_id is not None:
            return
        if not self.route.name:
            self.operation_id = operation_id_for(self.route.method, self.route.path)
        elif self.shared_name:
            self.operation_id = f"{self.route.name}.{self.route.method.lower()}"
        else:
            self.operation_id = self.route.name

    def _fill_summary(self) -> None:
        if self.summary is not None and self.description is not None:
            return
        summary, description = describe_action(self.route.controller, self.route.controller_method, self.route.method)
        if self.summary is None:
            self.summary = summary
        if self.description is None:
            self.description = description

    def _fill_tags(self) -> None:
        if not self.tags:
            self.tags = [default_tag(self.route.controller)]

    def _fill_parameters(self) -> None:
        present = {(p["name"], p["in"]) for p in self.parameters}
        discovered = []
        for name in self.route.parameters:
            discovered.append(
                {
                    "name": name,
                    "in": "path",
                    "required": True,
                    "description": f"The {name.replace('_', ' ')} parameter",
                    "schema": parameter_schema(self.route.wheres.get(name)),
                }
            )
        if self.route.controller_method in LIST_METHODS:
            discovered.extend(copy.deepcopy(LIST_PARAMETERS))

        for parameter in discovered:
            if (parameter["name"], parameter["in"]) not in present:
                self.parameters.append(parameter)

    def _fill_request_body(self) -> None:
        if self.request_body is not None or self.route.method not in WRITE_METHODS:
            return
        resource = resource_name(self.route.controller)
        body: dict[str, Any] = {
            "description": f"{resource.capitalize()} information",
            "required": True,
            "content": _json(self._resource_schema(body=True)),
        }
        if self.route.controller_method == "store":
            body["description"] = f"Create a new {resource}"
        elif self.route.controller_method == "update":
            body["description"] = f"Update an existing {resource}"
            body["required"] = False
        self.request_body = body

    def _fill_responses(self) -> None:
        if self.explicit_responses:
            return
        method = self.route.method
        resource = self._resource_schema()
        responses: dict[str, Any] = {}

        if method == "GET":
            if self.route.controller_method in LIST_METHODS:
                responses["200"] = {
                    "description": "A paginated list of resources",
                    "content": _json(
                        {
                            "type": "object",
                            "properties": {
                                "data": {"type": "array", "items": resource},
                                "links": PAGINATION_LINKS,
                                "meta": PAGINATION_META,
                            },
                        }
                    ),
                }
            elif self.route.parameters:
                responses["200"] = {"description": "The requested resource", "content": _json(resource)}
                responses["404"] = NOT_FOUND
            else:
                responses["200"] = {"description": "Successful response", "content": _json({"type": "object"})}
        elif method == "POST":
            responses["201"] = {"description": "Resource created successfully", "content": _json(resource)}
            responses["422"] = VALIDATION_ERROR
        elif method in ("PUT", "PATCH"):
            responses["200"] = {"description": "Resource updated successfully", "content": _json(resource)}
            responses["404"] = NOT_FOUND
            responses["422"] = VALIDATION_ERROR
        elif method == "DELETE":
            responses["204"] = {"description": "Resource deleted successfully"}
            responses["404"] = NOT_FOUND

        responses["default"] = UNEXPECTED_ERROR
        self.responses = copy.deepcopy(responses)

    def _resource_model(self) -> ModelDescriptor | None:
        name = strip_controller_suffix(self.route.controller.__name__)
        return self.models.get(name) or self.models.get(singular(name))

    def _resource_schema(self, body: bool = False) -> dict[str, Any]:
        model = self._resource_model()
        if model is not None:
            return self.resolver.reference(model.entity)

        label = resource_name(self.route.controller)
        if body:
            return {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": f"{label.capitalize()} name"},
                    "description": {"type": "string", "description": f"{label.capitalize()} description"},
                },
            }
        return {
            "type": "object",
            "properties": {
                "id": {"type": "integer", "example": 1},
                "name": {"type": "string", "example": f"{label.capitalize()} name"},
                "description": {"type": "string", "example": f"Description of the {label}"},
                "created_at": {"type": "string", "format": "date-time"},
                "updated_at": {"type": "string", "format": "date-time"},
            },
        }

    def _to_dict(self) -> dict[str, Any]:
        operation: dict[str, Any] = {
            "tags": self.tags,
            "summary": self.summary,
            "description": self.description,
            "operationId": self.operation_id,
        }
        if self.deprecated:
            operation["deprecated"] = True
        if self.security is not None:
            operation["security"] = self.security
        operation["parameters"] = self.parameters
        if self.request_body is not None:
            operation["requestBody"] = self.request_body
        operation["responses"] = self.responses
        return operation
