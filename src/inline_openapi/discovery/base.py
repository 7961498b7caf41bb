"""Descriptors produced by discovery.

Both are frozen: later stages read them and produce new fragments, they
never modify what discovery found.
"""

from typing import TypeVar

from pydantic import BaseModel, ConfigDict

from inline_openapi.annotations import Declaration, RelationshipDecl

D = TypeVar("D", bound=Declaration)


def first_of(declarations: tuple[Declaration, ...], kind: type[D]) -> D | None:
    for declaration in declarations:
        if isinstance(declaration, kind):
            return declaration
    return None


def all_of(declarations: tuple[Declaration, ...], kind: type[D]) -> list[D]:
    return [d for d in declarations if isinstance(d, kind)]


class RouteDescriptor(BaseModel):
    """A single documented endpoint."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method: str  # GET / POST / PUT / PATCH / DELETE
    uri: str  # api/tasks/{task}
    parameters: tuple[str, ...] = ()
    wheres: dict[str, str] = {}  # parameter -> constraint pattern
    middleware: tuple[str, ...] = ()
    controller: type | None = None
    controller_method: str | None = None
    name: str | None = None
    attributes: tuple[Declaration, ...] = ()  # on the handler method
    controller_attributes: tuple[Declaration, ...] = ()  # on the handler type

    @property
    def path(self) -> str:
        return "/" + self.uri.lstrip("/")


class ModelDescriptor(BaseModel):
    """A discovered data model and its persistence metadata."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entity: type
    table: str
    casts: dict[str, str] = {}
    fillable: tuple[str, ...] = ()
    hidden: tuple[str, ...] = ()
    nullable: tuple[str, ...] = ()
    attributes: tuple[Declaration, ...] = ()  # class level
    fields: dict[str, tuple[Declaration, ...]] = {}  # ordered, unannotated fields included
    relationships: dict[str, RelationshipDecl] = {}

    @property
    def identifier(self) -> str:
        return f"{self.entity.__module__}.{self.entity.__qualname__}"

    @property
    def short_name(self) -> str:
        return self.entity.__name__
