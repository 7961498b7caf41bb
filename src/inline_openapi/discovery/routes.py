"""Route discovery: host route table -> RouteDescriptor list."""

import logging
import re
from fnmatch import fnmatch
from typing import Any

from inline_openapi.annotations import HiddenDecl
from inline_openapi.config import OpenApiConfig
from inline_openapi.discovery.base import RouteDescriptor, first_of
from inline_openapi.extractor import AnnotationExtractor
from inline_openapi.host import PARAMETER_PATTERN, Route, Router
from inline_openapi.loader import load_object

logger = logging.getLogger(__name__)

INVOKE_METHOD = "__call__"

RESERVED_NAMESPACE = "inline_openapi."

SKIPPED_METHODS = {"HEAD"}

ASSET_PATTERN = re.compile(r"\.(js|css|png|jpg|jpeg|gif|svg|ico|pdf|txt|html|xml|json|yml|yaml)$", re.IGNORECASE)


def resolve_handler(action: Any) -> tuple[type, str] | None:
    """Resolve a route action to its (handler type, method name) pair.

    Accepts "pkg.mod.Type@method", (Type or "pkg.mod.Type", "method") and a
    bare type, which is invoked through ``__call__``. Anything else is a
    closure and does not resolve.
    """
    controller: Any = None
    method = INVOKE_METHOD

    if isinstance(action, str):
        type_path, _, method_name = action.partition("@")
        controller = load_object(type_path)
        method = method_name or INVOKE_METHOD
    elif isinstance(action, tuple | list) and len(action) == 2:
        controller, method = action
        if isinstance(controller, str):
            controller = load_object(controller)
        elif controller is not None and not isinstance(controller, type):
            controller = type(controller)
    elif isinstance(action, type):
        controller = action

    if not isinstance(controller, type) or not isinstance(method, str):
        return None
    if method == INVOKE_METHOD:
        # every class is callable through its metaclass; require an own __call__
        if not any(INVOKE_METHOD in vars(klass) for klass in controller.__mro__[:-1]):
            return None
    elif not callable(getattr(controller, method, None)):
        return None
    return controller, method


def route_parameters(route: Route) -> tuple[str, ...]:
    if route.variables is not None:
        return tuple(route.variables)
    return tuple(PARAMETER_PATTERN.findall(route.uri))


class RouteDiscovery:
    """Enumerates the router's endpoints that belong in the document."""

    def __init__(self, router: Router, config: OpenApiConfig, extractor: AnnotationExtractor | None = None):
        self.router = router
        self.config = config
        self.extractor = extractor or AnnotationExtractor()

    def discover(self) -> list[RouteDescriptor]:
        descriptors = []
        controller_cache: dict[type, tuple] = {}

        for route in self.router.routes():
            handler = resolve_handler(route.action)
            if handler is None:
                logger.debug("Dropping %s: handler does not resolve", route.uri)
                continue
            if not self._should_include(route, handler):
                continue

            controller, method_name = handler
            if controller not in controller_cache:
                controller_cache[controller] = tuple(self.extractor.extract(controller))
            controller_attributes = controller_cache[controller]
            attributes = tuple(self.extractor.extract(getattr(controller, method_name)))

            if first_of(attributes, HiddenDecl) or first_of(controller_attributes, HiddenDecl):
                logger.debug("Dropping %s: declared hidden", route.uri)
                continue

            parameters = route_parameters(route)
            for method in route.methods:
                if method in SKIPPED_METHODS:
                    continue
                descriptors.append(
                    RouteDescriptor(
                        method=method,
                        uri=route.uri,
                        parameters=parameters,
                        wheres=route.wheres,
                        middleware=route.middleware,
                        controller=controller,
                        controller_method=method_name,
                        name=route.name,
                        attributes=attributes,
                        controller_attributes=controller_attributes,
                    )
                )

        return descriptors

    def _should_include(self, route: Route, handler: tuple[type, str]) -> bool:
        rules = self.config.discovery.routes
        uri = route.uri.strip("/")
        controller, method_name = handler

        action_name = f"{controller.__module__}.{controller.__qualname__}@{method_name}"
        if action_name.startswith(RESERVED_NAMESPACE):
            return False
        if uri in self._own_paths():
            return False

        if any(fnmatch(uri, pattern) for pattern in rules.exclude_patterns):
            logger.debug("Dropping %s: excluded by pattern", uri)
            return False

        if ASSET_PATTERN.search(uri):
            return False

        if rules.include_patterns:
            return any(fnmatch(uri, pattern) for pattern in rules.include_patterns)
        return rules.api_prefix in uri.split("/")

    def _own_paths(self) -> set[str]:
        paths = self.config.paths
        return {
            paths.json_route_path.strip("/"),
            paths.yaml_route_path.strip("/"),
            self.config.ui.route.strip("/"),
        }
