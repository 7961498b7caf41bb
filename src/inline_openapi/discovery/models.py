"""Model discovery: source directories -> ModelDescriptor list."""

import datetime
import decimal
import importlib
import inspect
import logging
import types
from pathlib import Path
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin

from inline_openapi.annotations import RelationshipDecl
from inline_openapi.config import OpenApiConfig
from inline_openapi.discovery.base import ModelDescriptor, first_of
from inline_openapi.extractor import AnnotationExtractor, Field, field_hints
from inline_openapi.host import Model

logger = logging.getLogger(__name__)

# checked in order: bool before int, datetime before date
HINT_CASTS = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "float"),
    (decimal.Decimal, "decimal"),
    (datetime.datetime, "datetime"),
    (datetime.date, "date"),
    (list, "array"),
    (tuple, "array"),
    (set, "array"),
    (dict, "object"),
    (str, "string"),
)


def _unwrap(hint: Any) -> tuple[Any, bool]:
    """Strip Annotated/Optional from a hint; report whether None was allowed."""
    if get_origin(hint) is Annotated:
        hint = get_args(hint)[0]
    nullable = False
    if get_origin(hint) in (Union, types.UnionType):
        args = [a for a in get_args(hint) if a is not type(None)]
        nullable = len(args) != len(get_args(hint))
        hint = args[0] if len(args) == 1 else Any
    return hint, nullable


def cast_from_hint(hint: Any) -> str | None:
    hint, _ = _unwrap(hint)
    target = get_origin(hint) or hint
    if not isinstance(target, type):
        return None
    for kind, cast in HINT_CASTS:
        if issubclass(target, kind):
            return cast
    return None


def normalize_cast(cast: Any) -> str | None:
    """Casts may be given as hint strings ('decimal:2') or Python types."""
    if isinstance(cast, str):
        return cast
    return cast_from_hint(cast)


def module_name_for(path: Path, root: Path, root_package: str) -> str | None:
    try:
        relative = path.resolve().relative_to(root.resolve())
    except ValueError:
        return None
    parts = list(relative.with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    if root_package:
        parts.insert(0, root_package)
    if not parts or not all(p.isidentifier() for p in parts):
        return None
    return ".".join(parts)


class ModelDiscovery:
    """Scans source directories for concrete ``Model`` subclasses."""

    def __init__(self, config: OpenApiConfig, extractor: AnnotationExtractor | None = None, base: type = Model):
        self.config = config
        self.extractor = extractor or AnnotationExtractor()
        self.base = base

    def discover(self, directories: list[str] | None = None) -> list[ModelDescriptor]:
        rules = self.config.discovery.models
        root = Path(rules.root_path)
        seen: set[str] = set()
        descriptors = []

        for directory in directories if directories is not None else rules.directories:
            path = Path(directory)
            if not path.is_absolute():
                path = root / path
            for module_name in self._scan_directory(path, root, rules.root_package):
                for cls in self._classes_in(module_name):
                    identifier = f"{cls.__module__}.{cls.__qualname__}"
                    if identifier in seen or self._is_excluded(cls, identifier):
                        continue
                    seen.add(identifier)
                    descriptor = self._analyze(cls)
                    if descriptor is not None:
                        descriptors.append(descriptor)

        return descriptors

    def _scan_directory(self, directory: Path, root: Path, root_package: str) -> list[str]:
        if not directory.is_dir():
            logger.debug("Model directory %s does not exist", directory)
            return []
        modules = []
        for file in sorted(directory.rglob("*.py")):
            module_name = module_name_for(file, root, root_package)
            if module_name is not None and module_name not in modules:
                modules.append(module_name)
        return modules

    def _classes_in(self, module_name: str) -> list[type]:
        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            logger.debug("Skipping module %s: %s", module_name, e)
            return []
        return [
            obj
            for obj in vars(module).values()
            if inspect.isclass(obj) and obj.__module__ == module.__name__ and self.is_model_class(obj)
        ]

    def is_model_class(self, cls: type) -> bool:
        return (
            issubclass(cls, self.base)
            and cls is not self.base
            and not inspect.isabstract(cls)
            and not cls.__dict__.get("__abstract__", False)
        )

    def _is_excluded(self, cls: type, identifier: str) -> bool:
        excluded = self.config.discovery.models.exclude_classes
        return identifier in excluded or cls.__name__ in excluded

    def _analyze(self, cls: type) -> ModelDescriptor | None:
        try:
            instance = cls()
        except Exception as e:
            logger.debug("Skipping %s: cannot instantiate: %s", cls.__qualname__, e)
            return None

        hints = {
            name: hint
            for name, hint in field_hints(cls).items()
            if not name.startswith("_") and get_origin(hint) is not ClassVar
        }

        casts = {}
        for name, cast in instance.get_casts().items():
            normalized = normalize_cast(cast)
            if normalized is not None:
                casts[name] = normalized
        nullable = list(instance.get_nullable())
        for name, hint in hints.items():
            if name not in casts:
                derived = cast_from_hint(hint)
                if derived is not None:
                    casts[name] = derived
            if _unwrap(hint)[1] and name not in nullable:
                nullable.append(name)

        fillable = tuple(instance.get_fillable())
        hidden = tuple(instance.get_hidden())

        names: list[str] = []
        for name in [*hints, *fillable, *casts, *hidden]:
            if name not in names:
                names.append(name)
        fields = {name: tuple(self.extractor.extract(Field(cls, name))) for name in names}

        relationships = {}
        for name, member in vars(cls).items():
            if not inspect.isfunction(member):
                continue
            relation = first_of(tuple(self.extractor.extract(member)), RelationshipDecl)
            if relation is not None:
                relationships[name] = relation

        return ModelDescriptor(
            entity=cls,
            table=instance.get_table(),
            casts=casts,
            fillable=fillable,
            hidden=hidden,
            nullable=tuple(nullable),
            attributes=tuple(self.extractor.extract(cls)),
            fields=fields,
            relationships=relationships,
        )
