import logging
from typing import Annotated

from inline_openapi import annotations as oa
from inline_openapi.annotations import ApiGroupDecl, OperationDecl, ParameterDecl, PropertyDecl, ResponseDecl
from inline_openapi.extractor import AnnotationExtractor, Field, field_hints
from sample_app.controllers.reports import TaskReportController
from sample_app.controllers.tasks import TaskController
from sample_app.models.product import Product
from sample_app.models.user import User


class TestAnnotationExtractor:
    def setup_method(self):
        self.extractor = AnnotationExtractor()

    def test_method_declarations_in_order(self):
        found = self.extractor.extract(TaskReportController.show)
        assert [type(d) for d in found] == [OperationDecl, ParameterDecl, ResponseDecl]

    def test_repeatable_declarations_all_returned(self):
        found = self.extractor.extract(TaskReportController.__call__)
        assert [d.status for d in found if isinstance(d, ResponseDecl)] == [202, "default"]

    def test_class_declarations(self):
        found = self.extractor.extract(TaskController)
        assert found == [ApiGroupDecl(name="Tasks", description="Task management")]

    def test_class_declarations_not_inherited(self):
        class Subclass(TaskController):
            pass

        assert self.extractor.extract(Subclass) == []

    def test_unannotated_entities(self):
        assert self.extractor.extract(TaskController.index) == []
        assert self.extractor.extract(len) == []

    def test_field_declarations(self):
        found = self.extractor.extract(Field(User, "name"))
        assert found == [PropertyDecl(description="Full name", max_length=255)]

    def test_field_without_metadata(self):
        assert self.extractor.extract(Field(User, "password")) == []
        assert self.extractor.extract(Field(User, "missing")) == []

    def test_malformed_declaration_skipped(self, caplog):
        @oa.operation(summary="Kept")
        @oa.parameter("where", "nowhere")
        @oa.response(200, colour="red")
        def handler():
            pass

        with caplog.at_level(logging.WARNING, logger="inline_openapi.extractor"):
            found = self.extractor.extract(handler)

        assert found == [OperationDecl(summary="Kept")]
        messages = [r.getMessage() for r in caplog.records]
        assert any("malformed parameter" in m for m in messages)
        assert any("malformed response" in m for m in messages)

    def test_malformed_field_declaration_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="inline_openapi.extractor"):
            assert self.extractor.extract(Field(Product, "legacy_code")) == []
        assert "Product.legacy_code" in caplog.text


class TestFieldHints:
    def test_metadata_is_kept(self):
        hints = field_hints(User)
        assert "created_at" in hints
        assert hasattr(hints["name"], "__metadata__")

    def test_unresolvable_hints(self, caplog):
        class Broken:
            value: "NoSuchType"  # noqa: F821

        with caplog.at_level(logging.WARNING, logger="inline_openapi.extractor"):
            assert field_hints(Broken) == {}
        assert "Broken" in caplog.text

    def test_annotated_marker_on_local_class(self):
        class Local:
            title: Annotated[str, oa.property(max_length=10)]

        assert AnnotationExtractor().extract(Field(Local, "title")) == [PropertyDecl(max_length=10)]
