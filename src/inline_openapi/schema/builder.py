"""Schema synthesis from declarations and persistence metadata."""

from typing import Any

from inline_openapi.annotations import (
    Declaration,
    HiddenDecl,
    PropertyDecl,
    RelationshipDecl,
    SchemaDecl,
)
from inline_openapi.discovery.base import ModelDescriptor, first_of
from inline_openapi.naming import headline
from inline_openapi.schema.resolver import ReferenceResolver

INTEGER_CASTS = {"int", "integer"}
NUMBER_CASTS = {"real", "float", "double", "decimal"}
BOOLEAN_CASTS = {"bool", "boolean"}
ARRAY_CASTS = {"array", "json", "collection", "encrypted:array", "encrypted:collection"}
OBJECT_CASTS = {"object", "encrypted:object"}
DATE_CASTS = {"date", "immutable_date"}
DATETIME_CASTS = {"datetime", "immutable_datetime", "custom_datetime", "timestamp"}

TO_MANY_RELATIONS = {"hasMany", "belongsToMany", "morphMany", "morphToMany", "hasManyThrough"}

# declaration attribute -> schema keyword, copied when provided
SCHEMA_KEYWORDS = (
    ("description", "description"),
    ("format", "format"),
    ("default", "default"),
    ("example", "example"),
    ("examples", "examples"),
    ("enum", "enum"),
    ("min_length", "minLength"),
    ("max_length", "maxLength"),
    ("minimum", "minimum"),
    ("maximum", "maximum"),
    ("pattern", "pattern"),
)


def infer_from_cast(cast: str | None) -> dict[str, Any]:
    """Best-effort schema for a persistence cast hint such as 'decimal:2'."""
    key = (cast or "").strip().lower()
    if not key.startswith("encrypted:"):
        key = key.split(":", 1)[0]

    if key in INTEGER_CASTS:
        return {"type": "integer"}
    if key in NUMBER_CASTS:
        return {"type": "number", "format": "float"}
    if key in BOOLEAN_CASTS:
        return {"type": "boolean"}
    if key in ARRAY_CASTS:
        return {"type": "array", "items": {"type": "string"}}
    if key in OBJECT_CASTS:
        return {"type": "object"}
    if key in DATE_CASTS:
        return {"type": "string", "format": "date"}
    if key in DATETIME_CASTS:
        return {"type": "string", "format": "date-time"}
    return {"type": "string"}


def name_override(name: str) -> dict[str, Any] | None:
    """Conventional shapes implied by a field name alone."""
    if name == "id":
        return {"type": "integer", "format": "int64", "readOnly": True, "description": "Unique identifier"}
    if name == "created_at":
        return {"type": "string", "format": "date-time", "readOnly": True, "description": "Creation timestamp"}
    if name == "updated_at":
        return {"type": "string", "format": "date-time", "readOnly": True, "description": "Last update timestamp"}
    if name.endswith("_id"):
        relation = headline(name[:-3]).lower()
        return {"type": "integer", "format": "int64", "description": f"Identifier of the related {relation}"}
    if name.endswith("_at"):
        return {"type": "string", "format": "date-time"}
    return None


def _dedupe(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))


class SchemaBuilder:
    """Turns model descriptors and schema declarations into schema fragments."""

    def __init__(self, resolver: ReferenceResolver | None = None, include_hidden: bool = False):
        self.resolver = resolver or ReferenceResolver()
        self.include_hidden = include_hidden

    def build_model_schema(self, model: ModelDescriptor) -> dict[str, Any]:
        schema_decl = first_of(model.attributes, SchemaDecl)
        properties: dict[str, Any] = {}
        inferred_required: list[str] = []

        for name, declarations in model.fields.items():
            if self._is_hidden(name, declarations, model):
                continue
            decl = first_of(declarations, PropertyDecl) or first_of(declarations, SchemaDecl)
            fragment = self.build_field(name, decl, model)
            properties[name] = fragment
            if self._is_required(name, decl, fragment, model):
                inferred_required.append(name)

        for name, relation in model.relationships.items():
            if name not in properties:
                properties[name] = self.build_relationship(relation)

        schema: dict[str, Any] = {
            "type": (schema_decl.type if schema_decl else None) or "object",
            "title": (schema_decl.title if schema_decl else None) or model.short_name,
            "description": (schema_decl.description if schema_decl else None)
            or f"{model.short_name} model definition.",
            "properties": properties,
        }
        if schema_decl is not None and schema_decl.example is not None:
            schema["example"] = schema_decl.example

        declared = list(schema_decl.required) if schema_decl else []
        required = _dedupe(declared or inferred_required)
        if required:
            schema["required"] = required
        return schema

    def build_field(self, name: str, decl: PropertyDecl | SchemaDecl | None, model: ModelDescriptor) -> dict[str, Any]:
        if decl is not None and decl.ref:
            return self.resolver.reference(decl.ref)

        override = name_override(name)
        inferred = dict(override) if override else infer_from_cast(model.casts.get(name))
        if name in model.nullable:
            inferred["nullable"] = True
        if decl is None:
            return inferred
        fragment = self.build_property(decl, fallback=inferred)
        if override:
            # conventional names keep their shape even against a declared type
            for keyword in ("type", "format", "readOnly"):
                if keyword in override:
                    fragment[keyword] = override[keyword]
        return fragment

    def build_property(self, decl: Declaration, fallback: dict[str, Any] | None = None) -> dict[str, Any]:
        """Schema fragment for a property, items or schema declaration."""
        ref = getattr(decl, "ref", None)
        if ref:
            return self.resolver.reference(ref)

        declared_type = getattr(decl, "type", None)
        if declared_type and (decl.provided("type") or fallback is None):
            fragment: dict[str, Any] = {"type": declared_type}
            if fallback and fallback.get("type") == declared_type and "format" in fallback:
                fragment["format"] = fallback["format"]
        else:
            fragment = dict(fallback or {"type": "string"})

        if isinstance(decl, SchemaDecl) and decl.title:
            fragment["title"] = decl.title
        for attr, keyword in SCHEMA_KEYWORDS:
            if not decl.provided(attr):
                continue
            value = getattr(decl, attr)
            if value is None or value == []:
                continue
            fragment[keyword] = value

        if getattr(decl, "nullable", None):
            fragment["nullable"] = True
        if getattr(decl, "read_only", False):
            fragment["readOnly"] = True
        if getattr(decl, "write_only", False):
            fragment["writeOnly"] = True

        if fragment.get("type") == "array":
            items = getattr(decl, "items", None)
            if items is not None:
                fragment["items"] = self.build_property(items)
            else:
                fragment.setdefault("items", {"type": "string"})

        nested = getattr(decl, "properties", [])
        if nested:
            fragment["properties"], required = self.build_properties(nested)
            if required:
                fragment["required"] = required
        if isinstance(decl, SchemaDecl) and decl.required:
            fragment["required"] = _dedupe(list(decl.required))
        return fragment

    def build_relationship(self, relation: RelationshipDecl) -> dict[str, Any]:
        reference = self.resolver.reference(relation.related)
        if relation.type in TO_MANY_RELATIONS:
            return {"type": "array", "items": reference}
        return reference

    def build_schema(self, value: Any) -> dict[str, Any] | None:
        """Schema for a parameter or media type: declaration, raw map or reference."""
        if value is None:
            return None
        if isinstance(value, Declaration):
            return self.build_property(value)
        if isinstance(value, dict):
            return self.normalize(value)
        return self.resolver.reference(value)

    def normalize(self, schema: dict[str, Any]) -> dict[str, Any]:
        """Pass every reference inside a raw schema map through the resolver."""
        ref = schema.get("$ref") or schema.get("ref")
        if ref:
            return self.resolver.reference(ref)

        result = dict(schema)
        if isinstance(result.get("properties"), dict):
            result["properties"] = {
                name: self.normalize(sub) if isinstance(sub, dict) else sub
                for name, sub in result["properties"].items()
            }
        for key in ("items", "additionalProperties", "not"):
            if isinstance(result.get(key), dict):
                result[key] = self.normalize(result[key])
        for key in ("allOf", "anyOf", "oneOf"):
            if isinstance(result.get(key), list):
                result[key] = [self.normalize(s) if isinstance(s, dict) else s for s in result[key]]
        return result

    def build_properties(self, declarations: list[PropertyDecl]) -> tuple[dict[str, Any], list[str]]:
        properties: dict[str, Any] = {}
        required: list[str] = []
        for decl in declarations:
            if not decl.property:
                continue
            properties[decl.property] = self.build_property(decl)
            if decl.required:
                required.append(decl.property)
        return properties, _dedupe(required)

    def _is_hidden(self, name: str, declarations: tuple[Declaration, ...], model: ModelDescriptor) -> bool:
        if self.include_hidden:
            return False
        return name in model.hidden or first_of(declarations, HiddenDecl) is not None

    def _is_required(
        self,
        name: str,
        decl: PropertyDecl | SchemaDecl | None,
        fragment: dict[str, Any],
        model: ModelDescriptor,
    ) -> bool:
        if isinstance(decl, PropertyDecl) and decl.provided("required"):
            return decl.required
        if "$ref" in fragment:
            return False
        if fragment.get("nullable") or name in model.nullable:
            return False
        return fragment.get("type") not in ("array", "object")
