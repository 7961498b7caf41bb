import pytest
from fastapi.testclient import TestClient

from inline_openapi.config import OpenApiConfig
from inline_openapi.output import write_document
from inline_openapi.serve import create_app

DOCUMENT = {"openapi": "3.0.3", "info": {"title": "Sample API", "version": "1.0.0"}, "paths": {}}


@pytest.fixture
def config(tmp_path):
    return OpenApiConfig.model_validate({"paths": {"output_directory": str(tmp_path)}, "ui": {"title": "Sample docs"}})


@pytest.fixture
def client(config):
    return TestClient(create_app(config))


class TestServe:
    def test_not_generated(self, client):
        for path in ("/openapi.json", "/openapi.yaml"):
            response = client.get(path)
            assert response.status_code == 404
            assert "has not been generated" in response.json()["error"]

    def test_json(self, client, config):
        write_document(DOCUMENT, config.output_path("json"), "json")
        response = client.get("/openapi.json")
        assert response.status_code == 200
        assert response.json() == DOCUMENT

    def test_yaml(self, client, config):
        write_document(DOCUMENT, config.output_path("yaml"), "yaml")
        response = client.get("/openapi.yaml")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/yaml")
        assert response.text.startswith("openapi: 3.0.3")

    def test_malformed(self, client, config):
        config.output_path("json").write_text("{broken", encoding="utf-8")
        response = client.get("/openapi.json")
        assert response.status_code == 500
        assert "Malformed json document" in response.json()["error"]

    def test_viewer(self, client):
        response = client.get("/api-docs")
        assert response.status_code == 200
        assert "<title>Sample docs</title>" in response.text
        assert 'url: "/openapi.json"' in response.text

    def test_viewer_disabled(self, tmp_path):
        config = OpenApiConfig.model_validate({"paths": {"output_directory": str(tmp_path)}, "ui": {"enabled": False}})
        assert TestClient(create_app(config)).get("/api-docs").status_code == 404

    def test_framework_docs_disabled(self, client):
        assert client.get("/docs").status_code == 404
