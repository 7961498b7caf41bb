"""Reference resolution: every reference notation -> one canonical pointer."""

import logging
from typing import Any

from inline_openapi.host import Model
from inline_openapi.loader import load_object

logger = logging.getLogger(__name__)

POINTER_PREFIX = "#/"


def pointer(name: str, section: str = "schemas") -> str:
    return f"#/components/{section}/{name}"


class ReferenceResolver:
    """Normalizes model types, dotted type paths, bare names and pointers.

    ``resolve`` is idempotent: resolving its own output returns it unchanged.
    """

    def __init__(self, base: type = Model):
        self.base = base

    def resolve(self, ref: Any, section: str = "schemas") -> str | None:
        if ref is None or ref == "":
            return None
        if isinstance(ref, type):
            return pointer(ref.__name__, section)

        ref = str(ref)
        if ref.startswith(POINTER_PREFIX):
            return ref

        if "." in ref or ":" in ref:
            try:
                target = load_object(ref)
            except Exception as e:
                logger.debug("Cannot load reference %s: %s", ref, e)
                target = None
            if isinstance(target, type) and issubclass(target, self.base):
                return pointer(target.__name__, section)

        # unresolvable names degrade to a pointer built from the raw string
        return pointer(ref, section)

    def reference(self, ref: Any, section: str = "schemas") -> dict[str, str] | None:
        """A pure reference fragment, or None for an empty reference."""
        resolved = self.resolve(ref, section)
        return {"$ref": resolved} if resolved else None
