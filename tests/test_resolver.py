import pytest

from inline_openapi.schema.resolver import ReferenceResolver, pointer
from sample_app.models.user import User


class TestReferenceResolver:
    def setup_method(self):
        self.resolver = ReferenceResolver()

    def test_empty(self):
        assert self.resolver.resolve(None) is None
        assert self.resolver.resolve("") is None
        assert self.resolver.reference("") is None

    def test_canonical_pointer_unchanged(self):
        assert self.resolver.resolve("#/components/schemas/Task") == "#/components/schemas/Task"

    def test_model_type(self):
        assert self.resolver.resolve(User) == "#/components/schemas/User"

    def test_dotted_model_path(self):
        assert self.resolver.resolve("sample_app.models.user.User") == "#/components/schemas/User"
        assert self.resolver.resolve("sample_app.models.user:User") == "#/components/schemas/User"

    def test_bare_name(self):
        assert self.resolver.resolve("Task") == "#/components/schemas/Task"

    def test_unresolvable_path_degrades_to_raw_string(self):
        assert self.resolver.resolve("no.such.Model") == "#/components/schemas/no.such.Model"
        assert self.resolver.resolve("sample_app.models.base.Helper") == "#/components/schemas/sample_app.models.base.Helper"

    def test_section(self):
        assert self.resolver.resolve("NotFound", "responses") == "#/components/responses/NotFound"
        assert pointer("Task") == "#/components/schemas/Task"

    @pytest.mark.parametrize("ref", ["#/components/schemas/Task", User, "sample_app.models.user.User", "Task"])
    def test_idempotent(self, ref):
        once = self.resolver.resolve(ref)
        assert self.resolver.resolve(once) == once

    def test_reference_fragment(self):
        assert self.resolver.reference(User) == {"$ref": "#/components/schemas/User"}

    def test_relative_path_degrades(self):
        assert self.resolver.resolve("..Task") == "#/components/schemas/..Task"

    def test_failing_module_import_degrades(self, tmp_path, monkeypatch):
        (tmp_path / "exploding_models.py").write_text("raise RuntimeError('no database')\n")
        monkeypatch.syspath_prepend(str(tmp_path))
        assert self.resolver.resolve("exploding_models.Thing") == "#/components/schemas/exploding_models.Thing"
