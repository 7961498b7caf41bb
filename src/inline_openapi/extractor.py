"""Annotation extraction: markers attached to an entity -> typed declarations."""

import logging
from typing import Annotated, Any, NamedTuple, get_args, get_origin, get_type_hints

from inline_openapi.annotations import ATTRIBUTE, Declaration, Marker

logger = logging.getLogger(__name__)


class Field(NamedTuple):
    """A declared field of a class, addressed by owner and name."""

    owner: type
    name: str


def _describe(entity: Any) -> str:
    if isinstance(entity, Field):
        return f"{entity.owner.__qualname__}.{entity.name}"
    return getattr(entity, "__qualname__", repr(entity))


def field_hints(owner: type) -> dict[str, Any]:
    """Type hints of a class, metadata included; empty when unresolvable."""
    try:
        return get_type_hints(owner, include_extras=True)
    except (NameError, TypeError) as e:
        logger.warning("Cannot resolve type hints of %s: %s", owner.__qualname__, e)
        return {}


class AnnotationExtractor:
    """Returns the declarations attached to a class, function or ``Field``.

    Order is declaration order; repeatable kinds are all returned. A marker
    that fails to construct is logged and skipped on its own.
    """

    def extract(self, entity: Any) -> list[Declaration]:
        declarations = []
        for marker in self._markers(entity):
            try:
                declarations.append(marker.build())
            except (TypeError, ValueError) as e:
                logger.warning(
                    "Skipping malformed %s declaration on %s: %s",
                    marker.kind,
                    _describe(entity),
                    e,
                )
        return declarations

    def _markers(self, entity: Any) -> list[Marker]:
        if isinstance(entity, Field):
            hint = field_hints(entity.owner).get(entity.name)
            if hint is None or get_origin(hint) is not Annotated:
                return []
            return [m for m in get_args(hint)[1:] if isinstance(m, Marker)]
        if isinstance(entity, type):
            found = entity.__dict__.get(ATTRIBUTE, [])
        else:
            found = getattr(entity, ATTRIBUTE, [])
        return [m for m in found if isinstance(m, Marker)]
