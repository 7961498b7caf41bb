from pathlib import Path

import pytest

from inline_openapi.config import OpenApiConfig

FIXTURES = Path(__file__).parent / "fixtures"


def make_config(**overrides) -> OpenApiConfig:
    data = {
        "info": {"title": "Sample API", "version": "2.0.0"},
        "discovery": {
            "models": {"directories": ["sample_app/models"], "root_path": str(FIXTURES)},
        },
        "security_schemes": {
            "bearerAuth": {"type": "http", "scheme": "bearer"},
            "broken": {"type": "apiKey", "name": "X-Key"},
        },
        "security": [{"bearerAuth": []}, {"missing": []}],
        "responses": {"Error": {"description": "Error payload"}},
    }
    data.update(overrides)
    return OpenApiConfig.model_validate(data)


@pytest.fixture
def config() -> OpenApiConfig:
    return make_config()


@pytest.fixture
def router():
    from sample_app.routes import router

    return router
