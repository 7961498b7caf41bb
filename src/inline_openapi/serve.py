"""Read-only HTTP surface for the last generated document."""

import json
import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from inline_openapi.config import OpenApiConfig
from inline_openapi.output import ArtifactError, ArtifactNotFound, parse, read_artifact, read_artifact_text

logger = logging.getLogger(__name__)

SWAGGER_UI_VERSION = "5"

UI_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{title}</title>
  <link rel="stylesheet" href="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui.css">
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui-bundle.js"></script>
  <script>
    window.ui = SwaggerUIBundle({{
      url: {url},
      dom_id: "#swagger-ui",
      docExpansion: {doc_expansion},
      deepLinking: true
    }});
  </script>
</body>
</html>
"""


def render_ui(config: OpenApiConfig) -> str:
    return UI_TEMPLATE.format(
        title=config.ui.title,
        version=SWAGGER_UI_VERSION,
        url=json.dumps(config.paths.json_route_path),
        doc_expansion=json.dumps(config.ui.doc_expansion),
    )


def create_app(config: OpenApiConfig) -> FastAPI:
    # the app documents someone else's API, not itself
    app = FastAPI(title=config.ui.title, docs_url=None, redoc_url=None, openapi_url=None)

    @app.exception_handler(ArtifactError)
    async def artifact_error(request: Request, exc: ArtifactError) -> JSONResponse:
        status = 404 if isinstance(exc, ArtifactNotFound) else 500
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": str(exc)})

    @app.get(config.paths.json_route_path)
    def openapi_json() -> JSONResponse:
        return JSONResponse(content=read_artifact(config.output_path("json"), "json"))

    @app.get(config.paths.yaml_route_path)
    def openapi_yaml() -> Response:
        text = read_artifact_text(config.output_path("yaml"))
        parse(text, "yaml")
        return Response(content=text, media_type="application/yaml")

    if config.ui.enabled:

        @app.get(config.ui.route, response_class=HTMLResponse)
        def viewer() -> HTMLResponse:
            return HTMLResponse(render_ui(config))

    return app
