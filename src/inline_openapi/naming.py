"""Small naming helpers shared by discovery and auto-discovery."""

import re

CONTROLLER_SUFFIXES = ("Controller", "Handler", "View", "Resource")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def class_basename(identifier: str | type) -> str:
    """Return the unqualified name of a class or dotted class path."""
    if isinstance(identifier, type):
        return identifier.__name__
    return re.split(r"[.:\\]", identifier)[-1]


def strip_controller_suffix(name: str) -> str:
    for suffix in CONTROLLER_SUFFIXES:
        if name.endswith(suffix) and name != suffix:
            return name[: -len(suffix)]
    return name


def headline(name: str) -> str:
    """'UserProfile' -> 'User Profile', 'list_overdue' -> 'List overdue'."""
    if "_" in name or name.islower():
        words = [w for w in name.split("_") if w]
        return " ".join(words).capitalize()
    return _CAMEL_BOUNDARY.sub(" ", name).strip()


def snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def plural(word: str) -> str:
    if not word or word.endswith("s"):
        return word
    if word.endswith("y") and word[-2:-1] not in ("a", "e", "i", "o", "u"):
        return word[:-1] + "ies"
    if word.endswith(("x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def singular(word: str) -> str:
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def resource_name(controller: type) -> str:
    """Human resource name of a handler type: TaskListController -> 'task list'."""
    return headline(strip_controller_suffix(controller.__name__)).lower()
