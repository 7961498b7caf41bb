"""Declarative annotations attached to handlers, controllers and models.

Every declaration kind is a frozen pydantic model carrying only the fields
of its OpenAPI counterpart. A field that was never passed is absent from
``model_fields_set``, which is how consumers tell "not provided" apart
from "provided as empty".

Code attaches declarations through the lowercase helpers at the bottom of
this module. They return lazy ``Marker`` values, usable as decorators::

    @operation(summary="List all tasks")
    @response(200, description="OK")
    def index(self): ...

or as ``typing.Annotated`` metadata on model fields::

    title: Annotated[str, property(max_length=255)]

A marker is only turned into its typed declaration by the extractor, so a
malformed one never breaks the import of the module that declares it.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

ATTRIBUTE = "__openapi__"

RefTarget = str | type


class Declaration(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    def provided(self, field: str) -> bool:
        return field in self.model_fields_set


class ItemsDecl(Declaration):
    type: str | None = None
    format: str | None = None
    ref: RefTarget | None = None
    default: Any = None
    example: Any = None
    examples: list[Any] = []
    minimum: Any = None
    maximum: Any = None
    nullable: bool | None = None
    enum: list[Any] = []
    min_length: int | None = None
    max_length: int | None = None
    properties: list["PropertyDecl"] = []


class PropertyDecl(Declaration):
    property: str | None = None
    description: str | None = None
    type: str | None = None
    format: str | None = None
    example: Any = None
    examples: list[Any] = []
    nullable: bool = False
    default: Any = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: Any = None
    maximum: Any = None
    pattern: str | None = None
    enum: list[Any] = []
    items: ItemsDecl | None = None
    properties: list["PropertyDecl"] = []
    required: bool = False
    ref: RefTarget | None = None
    read_only: bool = False
    write_only: bool = False


class SchemaDecl(Declaration):
    title: str | None = None
    description: str | None = None
    type: str | None = "object"
    required: list[str] = []
    examples: list[Any] = []
    example: Any = None
    enum: list[Any] = []
    ref: RefTarget | None = None
    format: str | None = None
    nullable: bool | None = None
    default: Any = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: Any = None
    maximum: Any = None
    items: ItemsDecl | None = None
    properties: list[PropertyDecl] = []


class MediaTypeDecl(Declaration):
    media_type: str = "application/json"
    schema_: SchemaDecl | PropertyDecl | dict | RefTarget | None = Field(default=None, alias="schema")
    example: Any = None
    examples: dict[str, Any] = {}
    encoding: dict[str, Any] = {}


class OperationDecl(Declaration):
    summary: str | None = None
    description: str | None = None
    tags: list[str | dict[str, Any]] = []
    operation_id: str | None = None
    deprecated: bool = False
    security: list[dict[str, list[str]]] = []


class ParameterDecl(Declaration):
    name: str
    in_: str = Field(alias="in", pattern="^(query|header|path|cookie)$")
    description: str | None = None
    schema_: SchemaDecl | PropertyDecl | dict | RefTarget | None = Field(default=None, alias="schema")
    required: bool = False
    example: Any = None
    examples: dict[str, Any] = {}
    deprecated: bool = False


class RequestBodyDecl(Declaration):
    content: list[MediaTypeDecl] | dict[str, Any] | None = None
    description: str | None = None
    required: bool = True
    ref: RefTarget | None = None


class ResponseDecl(Declaration):
    status: int | str = 200
    description: str | None = None
    content: list[MediaTypeDecl] | dict[str, Any] | None = None
    headers: dict[str, Any] = {}
    ref: RefTarget | None = None
    properties: list[PropertyDecl] = []

    @model_validator(mode="before")
    @classmethod
    def _status_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "response" in data:
            data = dict(data)
            data["status"] = data.pop("response")
        return data


class ApiGroupDecl(Declaration):
    name: str
    description: str | None = None
    external_docs: str | None = None


class SecurityDecl(Declaration):
    schemes: list[str] = []
    scopes: list[str] = []


class HiddenDecl(Declaration):
    pass


class RelationshipDecl(Declaration):
    type: str
    related: RefTarget
    nullable: bool = False


ItemsDecl.model_rebuild()

DECLARATIONS: dict[str, type[Declaration]] = {
    "schema": SchemaDecl,
    "property": PropertyDecl,
    "items": ItemsDecl,
    "operation": OperationDecl,
    "parameter": ParameterDecl,
    "request_body": RequestBodyDecl,
    "response": ResponseDecl,
    "media_type": MediaTypeDecl,
    "api_group": ApiGroupDecl,
    "security": SecurityDecl,
    "hidden": HiddenDecl,
    "relationship": RelationshipDecl,
}

# Argument names accepted positionally, per kind
POSITIONAL = {
    "property": ("property",),
    "items": ("type",),
    "parameter": ("name", "in"),
    "response": ("status",),
    "media_type": ("media_type", "schema"),
    "api_group": ("name", "description"),
    "security": ("schemes", "scopes"),
    "relationship": ("type", "related"),
}


def _build_value(value: Any) -> Any:
    if isinstance(value, Marker):
        return value.build()
    if isinstance(value, list | tuple):
        return [_build_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _build_value(v) for k, v in value.items()}
    return value


class Marker:
    """An unconstructed declaration attached to a class, function or field."""

    def __init__(self, kind: str, args: tuple, kwargs: dict):
        self.kind = kind
        self.args = args
        self.kwargs = kwargs

    def __repr__(self) -> str:
        return f"Marker({self.kind!r})"

    def __call__(self, target: Any) -> Any:
        if isinstance(target, type):
            existing = target.__dict__.get(ATTRIBUTE, [])
        else:
            existing = getattr(target, ATTRIBUTE, [])
        # decorators apply bottom-up; keep top-to-bottom declaration order
        setattr(target, ATTRIBUTE, [self, *existing])
        return target

    def build(self) -> Declaration:
        """Construct the typed declaration; raises TypeError or ValueError."""
        names = POSITIONAL.get(self.kind, ())
        if len(self.args) > len(names):
            raise TypeError(f"{self.kind}() takes at most {len(names)} positional arguments")
        data = dict(zip(names, self.args))
        for key, value in self.kwargs.items():
            if key in data:
                raise TypeError(f"{self.kind}() got multiple values for {key!r}")
            data[key] = value
        return DECLARATIONS[self.kind].model_validate(_build_value(data))


def _factory(kind: str):
    def declare(*args, **kwargs) -> Marker:
        return Marker(kind, args, kwargs)

    declare.__name__ = kind
    declare.__doc__ = f"Declare a {DECLARATIONS[kind].__name__} on the decorated entity."
    return declare


schema = _factory("schema")
property = _factory("property")
items = _factory("items")
operation = _factory("operation")
parameter = _factory("parameter")
request_body = _factory("request_body")
response = _factory("response")
media_type = _factory("media_type")
api_group = _factory("api_group")
security = _factory("security")
hidden = _factory("hidden")
relationship = _factory("relationship")
