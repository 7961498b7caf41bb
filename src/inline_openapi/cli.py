"""CLI entry point for inline-openapi."""

import logging
import os
import sys
from pathlib import Path

import click

from inline_openapi.config import ConfigError, OpenApiConfig, load_config
from inline_openapi.generator.document import DocumentGenerator
from inline_openapi.host import Router
from inline_openapi.loader import load_object
from inline_openapi.output import EXTENSIONS, FORMATS, DocumentCache, SerializationError, format_for, write_document


def _load_config(config_path: Path) -> OpenApiConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def _load_router(app: str | None) -> Router:
    """Import the application's Router from a "module:attribute" string."""
    if not app:
        raise click.ClickException("No application given; pass --app or set 'app' in the config file.")
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    router = load_object(app)
    if router is None:
        raise click.ClickException(f"Cannot import {app}")
    if callable(router) and not isinstance(router, Router):
        router = router()
    if not isinstance(router, Router):
        raise click.ClickException(f"{app} is not a Router")
    return router


def _resolve_output(output: Path | None, config: OpenApiConfig, fmt: str) -> Path:
    if output is None:
        return config.output_path(fmt)
    if not output.suffix:
        return output.with_suffix(EXTENSIONS[fmt][0])
    if format_for(output) != fmt:
        click.echo(f"Warning: {output} does not have a .{fmt} extension; writing {fmt} anyway.", err=True)
    return output


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log discovery details.")
def main(verbose: bool):
    """Build an OpenAPI document from in-code declarations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--config", "config_path", default="openapi.yaml", type=click.Path(path_type=Path), help="Configuration file (YAML or JSON).")
@click.option("--app", default=None, help="Application router as module:attribute.")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file path.")
@click.option("--format", "fmt", default="json", type=click.Choice(FORMATS), help="Document format.")
@click.option("--no-cache", is_flag=True, help="Ignore the document cache.")
def generate(config_path: Path, app: str | None, output: Path | None, fmt: str, no_cache: bool):
    """Generate the OpenAPI document and write it to disk."""
    config = _load_config(config_path)
    if app:
        config = config.model_copy(update={"app": app})
    target = _resolve_output(output, config, fmt)

    cache = None
    if config.generation.cache_enabled and not no_cache:
        cache = DocumentCache(Path(config.generation.cache_dir), config.generation.cache_ttl)

    key = config.fingerprint()
    document = cache.get(key) if cache else None
    fresh = document is None
    if fresh:
        router = _load_router(config.app)
        click.echo("Discovering routes and models...")
        document = DocumentGenerator(router, config).generate()
    else:
        click.echo("Using cached document.")

    click.echo(f"Found {len(document.get('paths', {}))} paths and {len(document.get('components', {}).get('schemas', {}))} schemas.")

    try:
        write_document(document, target, fmt)
        if cache and fresh:
            cache.put(key, document)
    except (SerializationError, OSError) as e:
        raise click.ClickException(f"Cannot write {target}: {e}") from e
    click.echo(f"OpenAPI document saved to {target}")


@main.command()
@click.option("--config", "config_path", default="openapi.yaml", type=click.Path(path_type=Path), help="Configuration file (YAML or JSON).")
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", default=8000, type=int, help="Bind port.")
def serve(config_path: Path, host: str, port: int):
    """Serve the generated document and the documentation viewer."""
    import uvicorn

    from inline_openapi.serve import create_app

    config = _load_config(config_path)
    click.echo(f"Serving {config.paths.json_route_path} and {config.paths.yaml_route_path} on http://{host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port)
