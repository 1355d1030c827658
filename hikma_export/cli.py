# hikma_export/cli.py
import logging
import os

import click
from dotenv import load_dotenv

from hikma_export.config import build_backend, load_config
from hikma_export.core.models import ExportRequest
from hikma_export.errors import HikmaExportError
from hikma_export.exporter import ExportService
from hikma_export.importer import ImportService

config_option = click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (default: $HIKMA_CONFIG or ./config.yaml)'
)
token_option = click.option(
    '--token',
    envvar='HIKMA_TOKEN',
    required=True,
    help='Bearer token identifying the user (or set HIKMA_TOKEN)'
)


@click.group()
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file with Supabase credentials and signing key'
)
def main(env_file):
    """Export HikmaCash records to JSON or Excel and import them back."""
    logging.basicConfig(level=os.getenv("HIKMA_LOG_LEVEL", "INFO").upper())
    if env_file:
        load_dotenv(env_file)


@main.command('export')
@config_option
@token_option
@click.option(
    '--format', 'export_format',
    default='json',
    type=click.Choice(['json', 'excel']),
    help='Artifact format: json or excel'
)
@click.option(
    '--enterprise-name',
    default=None,
    help='Name used on the artifact (defaults to the saved enterprise setting)'
)
def export_cmd(config_path, token, export_format, enterprise_name):
    """Export all of the user's records and print a download URL."""
    cfg = load_config(config_path)
    backend = build_backend(cfg)
    service = ExportService(backend.auth, backend.store, backend.object_store, cfg)
    try:
        artifact = service.export(token, ExportRequest(export_format, enterprise_name))
    except HikmaExportError as e:
        raise click.ClickException(e.message)
    click.echo(f"Exported {artifact.file_name}")
    click.echo(artifact.signed_url)


@main.command('import')
@config_option
@token_option
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
def import_cmd(config_path, token, file):
    """Replace the user's records with the contents of an exported JSON FILE."""
    cfg = load_config(config_path)
    backend = build_backend(cfg)
    service = ImportService(backend.auth, backend.store)
    with open(file, 'rb') as f:
        raw = f.read()
    try:
        payload = service.import_records(token, raw)
    except HikmaExportError as e:
        raise click.ClickException(e.message)

    if payload.transactions is not None:
        click.echo(f"Replaced transactions with {len(payload.transactions)} record(s).")
    if payload.categories is not None:
        click.echo(f"Replaced categories with {len(payload.categories)} record(s).")
    if payload.enterprise_name:
        click.echo(f"Enterprise name set to {payload.enterprise_name}.")


@main.command('serve')
@config_option
@click.option('--host', default='127.0.0.1', help='Host to bind')
@click.option('--port', default=8000, type=int, help='Port to bind')
def serve_cmd(config_path, host, port):
    """Run the HTTP export/import service."""
    import uvicorn

    from hikma_export.web import build_app

    app = build_app(load_config(config_path))
    click.echo(f"HikmaCash export service running at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)
