"""Import-string loading for handler types, model types and the app router."""

import importlib
import logging
from typing import Any

logger = logging.getLogger(__name__)


def load_object(path: str) -> Any | None:
    """Load 'pkg.module.Name', 'pkg.module:Name' or 'pkg.module:Outer.Inner'.

    Returns None when the module or attribute cannot be found.
    """
    if not path:
        return None

    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        return None

    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        logger.debug("Cannot import %s: %s", module_name, e)
        return None

    for attr in attr_path.split("."):
        obj = getattr(obj, attr, None)
        if obj is None:
            return None
    return obj
