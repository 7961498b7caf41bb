"""Host framework collaborators: the route table and the persistent-entity base.

Applications register their endpoints on a ``Router`` when their routes
module is imported and derive their data models from ``Model``. Discovery
reads nothing beyond what these two expose.
"""

import re
from contextlib import contextmanager
from typing import Any, ClassVar, Iterator

from pydantic import BaseModel, ConfigDict

from inline_openapi.naming import plural, singular, snake

PARAMETER_PATTERN = re.compile(r"\{([^}?]+)\??\}")

# (methods, uri suffix, action); the suffix takes the singular parameter name
RESOURCE_ACTIONS = (
    (("GET", "HEAD"), "", "index"),
    (("POST",), "", "store"),
    (("GET", "HEAD"), "/{%s}", "show"),
    (("PUT", "PATCH"), "/{%s}", "update"),
    (("DELETE",), "/{%s}", "destroy"),
)


class Route(BaseModel):
    """One registered endpoint, as the route table exposes it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    methods: tuple[str, ...]
    uri: str
    action: Any  # "pkg.Type@method" / (Type, "method") / Type / callable
    name: str | None = None
    middleware: tuple[str, ...] = ()
    wheres: dict[str, str] = {}
    variables: tuple[str, ...] | None = None  # set once compiled


def _join(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


class Router:
    """Explicit route registry populated by the application at import time."""

    def __init__(self):
        self._routes: list[Route] = []
        self._prefix = ""
        self._middleware: tuple[str, ...] = ()

    def add(
        self,
        methods: str | list[str] | tuple[str, ...],
        uri: str,
        action: Any,
        name: str | None = None,
        middleware: tuple[str, ...] | list[str] = (),
        where: dict[str, str] | None = None,
    ) -> Route:
        if isinstance(methods, str):
            methods = [methods]
        route = Route(
            methods=tuple(m.upper() for m in methods),
            uri=_join(self._prefix, uri),
            action=action,
            name=name,
            middleware=self._middleware + tuple(middleware),
            wheres=dict(where or {}),
        )
        self._routes.append(route)
        return route

    def get(self, uri: str, action: Any, **kwargs) -> Route:
        return self.add(("GET", "HEAD"), uri, action, **kwargs)

    def post(self, uri: str, action: Any, **kwargs) -> Route:
        return self.add("POST", uri, action, **kwargs)

    def put(self, uri: str, action: Any, **kwargs) -> Route:
        return self.add("PUT", uri, action, **kwargs)

    def patch(self, uri: str, action: Any, **kwargs) -> Route:
        return self.add("PATCH", uri, action, **kwargs)

    def delete(self, uri: str, action: Any, **kwargs) -> Route:
        return self.add("DELETE", uri, action, **kwargs)

    def resource(
        self,
        uri: str,
        controller: type | str,
        only: list[str] | None = None,
        where: dict[str, str] | None = None,
    ) -> list[Route]:
        """Register the conventional index/store/show/update/destroy set."""
        base = uri.strip("/")
        segment = base.rsplit("/", 1)[-1]
        parameter = singular(segment).replace("-", "_")
        routes = []
        for methods, suffix, action in RESOURCE_ACTIONS:
            if only is not None and action not in only:
                continue
            route_uri = base + (suffix % parameter if suffix else "")
            route_where = {k: v for k, v in (where or {}).items() if suffix}
            routes.append(
                self.add(
                    methods,
                    route_uri,
                    (controller, action),
                    name=f"{segment}.{action}",
                    where=route_where,
                )
            )
        return routes

    @contextmanager
    def group(self, prefix: str = "", middleware: tuple[str, ...] | list[str] = ()) -> Iterator["Router"]:
        saved = (self._prefix, self._middleware)
        self._prefix = _join(self._prefix, prefix)
        self._middleware = self._middleware + tuple(middleware)
        try:
            yield self
        finally:
            self._prefix, self._middleware = saved

    def compile(self) -> None:
        """Record each route's parameter names, as a compiled route would."""
        self._routes = [
            route.model_copy(update={"variables": tuple(PARAMETER_PATTERN.findall(route.uri))})
            for route in self._routes
        ]

    def routes(self) -> list[Route]:
        return list(self._routes)


class Model:
    """Base persistent-entity type.

    Subclasses declare persistence metadata as class attributes and their
    documented fields as class-body type hints (optionally ``Annotated``
    with declaration markers).
    """

    __table__: ClassVar[str | None] = None
    __abstract__: ClassVar[bool] = False

    fillable: ClassVar[list[str]] = []
    hidden: ClassVar[list[str]] = []
    casts: ClassVar[dict[str, Any]] = {}
    nullable: ClassVar[list[str]] = []

    def get_table(self) -> str:
        return self.__table__ or plural(snake(type(self).__name__))

    def get_fillable(self) -> list[str]:
        return list(self.fillable)

    def get_hidden(self) -> list[str]:
        return list(self.hidden)

    def get_casts(self) -> dict[str, Any]:
        return dict(self.casts)

    def get_nullable(self) -> list[str]:
        return list(self.nullable)
