import pytest
from pydantic import ValidationError

from inline_openapi import annotations as oa
from inline_openapi.annotations import (
    ATTRIBUTE,
    ItemsDecl,
    MediaTypeDecl,
    ParameterDecl,
    PropertyDecl,
    ResponseDecl,
    SchemaDecl,
)


class TestMarker:
    def test_decorators_keep_declaration_order(self):
        @oa.response(200)
        @oa.response(404)
        @oa.operation(summary="Show")
        def show():
            pass

        kinds = [(m.kind, m.args) for m in getattr(show, ATTRIBUTE)]
        assert kinds == [("response", (200,)), ("response", (404,)), ("operation", ())]

    def test_decorator_returns_target(self):
        def handler():
            pass

        assert oa.hidden()(handler) is handler

    def test_class_markers_are_not_inherited(self):
        @oa.api_group("Tasks")
        class Base:
            pass

        @oa.api_group("Reports")
        class Child(Base):
            pass

        assert [m.args for m in Child.__dict__[ATTRIBUTE]] == [("Reports",)]
        assert [m.args for m in Base.__dict__[ATTRIBUTE]] == [("Tasks",)]

    def test_positional_arguments_map_to_fields(self):
        decl = oa.parameter("task", "path").build()
        assert isinstance(decl, ParameterDecl)
        assert decl.name == "task"
        assert decl.in_ == "path"

    def test_too_many_positional_arguments(self):
        with pytest.raises(TypeError):
            oa.response(200, "OK").build()

    def test_duplicate_argument(self):
        with pytest.raises(TypeError):
            oa.property("title", property="name").build()

    def test_nested_markers_are_built(self):
        decl = oa.media_type("application/json", schema=oa.schema(properties=[oa.property("title")])).build()
        assert isinstance(decl, MediaTypeDecl)
        assert isinstance(decl.schema_, SchemaDecl)
        assert isinstance(decl.schema_.properties[0], PropertyDecl)

    def test_items_positional_type(self):
        decl = oa.property("labels", type="array", items=oa.items("string")).build()
        assert decl.items == ItemsDecl(type="string")


class TestDeclarations:
    def test_provided_distinguishes_unset_from_default(self):
        assert not PropertyDecl().provided("required")
        assert PropertyDecl(required=False).provided("required")

    def test_declarations_are_frozen(self):
        decl = PropertyDecl(property="title")
        with pytest.raises(ValidationError):
            decl.property = "other"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            PropertyDecl(colour="red")

    def test_parameter_location_validated(self):
        with pytest.raises(ValidationError):
            ParameterDecl(name="x", **{"in": "body"})

    def test_response_accepts_response_keyword(self):
        assert ResponseDecl.model_validate({"response": 201}).status == 201

    def test_response_status_may_be_default(self):
        assert ResponseDecl(status="default").status == "default"

    def test_schema_type_defaults_to_object(self):
        decl = SchemaDecl()
        assert decl.type == "object"
        assert not decl.provided("type")
