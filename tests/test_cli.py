import json

import yaml
from click.testing import CliRunner
from conftest import FIXTURES

from inline_openapi.cli import main

APP = "sample_app.routes:router"


def _write_config(tmp_path, **generation):
    config = {
        "info": {"title": "Sample API"},
        "discovery": {"models": {"directories": ["sample_app/models"], "root_path": str(FIXTURES)}},
        "paths": {"output_directory": str(tmp_path / "public")},
        "generation": {"cache_dir": str(tmp_path / "cache"), **generation},
    }
    path = tmp_path / "openapi.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


class TestCliGenerate:
    def test_generate_json(self, tmp_path):
        config = _write_config(tmp_path)
        output = tmp_path / "out" / "openapi.json"
        result = CliRunner().invoke(main, ["generate", "--config", str(config), "--app", APP, "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert output.exists()
        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["info"]["title"] == "Sample API"
        assert "/api/tasks" in document["paths"]
        assert f"OpenAPI document saved to {output}" in result.output

    def test_default_output_path(self, tmp_path):
        config = _write_config(tmp_path)
        result = CliRunner().invoke(main, ["generate", "--config", str(config), "--app", APP, "--format", "yaml"])

        assert result.exit_code == 0, result.output
        document = yaml.safe_load((tmp_path / "public" / "openapi.yaml").read_text(encoding="utf-8"))
        assert document["openapi"] == "3.0.3"

    def test_extension_appended(self, tmp_path):
        config = _write_config(tmp_path)
        output = tmp_path / "document"
        result = CliRunner().invoke(
            main, ["generate", "--config", str(config), "--app", APP, "-o", str(output), "--format", "yaml"]
        )

        assert result.exit_code == 0, result.output
        assert (tmp_path / "document.yaml").exists()

    def test_mismatched_extension_warns(self, tmp_path):
        config = _write_config(tmp_path)
        output = tmp_path / "document.txt"
        result = CliRunner().invoke(main, ["generate", "--config", str(config), "--app", APP, "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "Warning" in result.output
        assert json.loads(output.read_text(encoding="utf-8"))["openapi"] == "3.0.3"

    def test_app_from_config(self, tmp_path):
        config = _write_config(tmp_path)
        config.write_text(config.read_text() + f"app: '{APP}'\n")
        result = CliRunner().invoke(main, ["generate", "--config", str(config)])
        assert result.exit_code == 0, result.output

    def test_cache_reused(self, tmp_path):
        config = _write_config(tmp_path, cache_enabled=True)
        args = ["generate", "--config", str(config), "--app", APP]
        first = CliRunner().invoke(main, args)
        second = CliRunner().invoke(main, args)
        bypass = CliRunner().invoke(main, args + ["--no-cache"])

        assert first.exit_code == second.exit_code == bypass.exit_code == 0
        assert "Using cached document." not in first.output
        assert "Using cached document." in second.output
        assert "Using cached document." not in bypass.output

    def test_missing_app(self, tmp_path):
        config = _write_config(tmp_path)
        result = CliRunner().invoke(main, ["generate", "--config", str(config)])
        assert result.exit_code == 1
        assert "No application given" in result.output

    def test_app_not_a_router(self, tmp_path):
        config = _write_config(tmp_path)
        result = CliRunner().invoke(main, ["generate", "--config", str(config), "--app", "sample_app.models.task:Task"])
        assert result.exit_code == 1
        assert "is not a Router" in result.output

    def test_unimportable_app(self, tmp_path):
        config = _write_config(tmp_path)
        result = CliRunner().invoke(main, ["generate", "--config", str(config), "--app", "no_such_module:router"])
        assert result.exit_code == 1
        assert "Cannot import" in result.output

    def test_invalid_config(self, tmp_path):
        config = tmp_path / "openapi.yaml"
        config.write_text("generation: nope\n")
        result = CliRunner().invoke(main, ["generate", "--config", str(config), "--app", APP])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
