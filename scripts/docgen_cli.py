#!/usr/bin/env python3
"""
Document Generation CLI

Generates PDF documents from versioned templates, repairs PDF destinations and
runs the HTTP service.

Commands:
    generate - Render a document type with JSON data into a PDF
    fix      - Repair page-number destinations of an existing PDF in place
    fetch    - Download and extract a templates version
    health   - Convert a one-line document to check the converter
    serve    - Run the HTTP service

Examples:\n

    docgen_cli.py generate InstallationReport 1.0 data.json -o report.pdf

    docgen_cli.py fix report.pdf

    docgen_cli.py fetch 1.0 /tmp/templates-1.0

    docgen_cli.py serve --port 8080
"""

import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from typing_extensions import Annotated

from docgen.contexts.rendering import (
    DestinationFixError,
    DocumentGenerator,
    fix_pdf_file,
)
from docgen.contexts.service import create_app
from docgen.contexts.templating import select_templates_store
from docgen.utils.config import ConfigurationError, DocGenConfig, load_config
from docgen.utils.logger import setup_logger_from_config
from docgen.utils.pdf_processing import page_count

app = typer.Typer(
    help="Generate PDF documents from versioned HTML templates",
    add_completion=False,
    invoke_without_command=True,
)

UVICORN_LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="YAML config file (default: DOCGEN_CONFIG_FILE or environment only)",
        exists=True,
        dir_okay=False,
    ),
]


def _load(config_file: Optional[Path], context_name: str) -> DocGenConfig:
    """Resolve configuration and set up logging, exiting with code 1 on bad config."""
    try:
        config = load_config(config_file)
    except ConfigurationError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    setup_logger_from_config(config, context_name)
    return config


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("generate")
def generate_command(
    doc_type: Annotated[
        str,
        typer.Argument(help="Document type (e.g. InstallationReport)"),
    ],
    version: Annotated[
        str,
        typer.Argument(help="Templates version (e.g. 1.0)"),
    ],
    data_file: Annotated[
        Path,
        typer.Argument(
            help="JSON file with the template data (including optional metadata)",
            exists=True,
            dir_okay=False,
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output PDF (default: {type}-v{version}.pdf in the current directory)",
        ),
    ] = None,
    config_file: ConfigOption = None,
):
    """
    Generate a PDF document.

    Examples:\n

        $ docgen_cli.py generate InstallationReport 1.0 data.json

        $ docgen_cli.py generate InstallationReport 1.0 data.json -o report.pdf
    """
    config = _load(config_file, "generate")

    try:
        data = json.loads(data_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        typer.secho(f"Error: {data_file} is not valid JSON: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    output = output or Path(f"{doc_type}-v{version}.pdf")

    typer.secho(f"\nGenerating: {doc_type} v{version}", fg=typer.colors.BLUE, bold=True)
    typer.echo("")

    try:
        pdf = DocumentGenerator(config).generate(doc_type, version, data)
    except Exception as e:
        typer.secho(f"✗ Generation failed: {e}\n", fg=typer.colors.RED, bold=True, err=True)
        raise typer.Exit(code=1)

    output.write_bytes(pdf)

    typer.secho("✓ Generation succeeded", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Pages: {page_count(pdf)}")
    typer.echo(f"  PDF: {output}")
    typer.echo("")


@app.command("fix")
def fix_command(
    pdf_file: Annotated[
        Path,
        typer.Argument(help="PDF file to repair in place", exists=True, dir_okay=False),
    ],
):
    """
    Repair page-number destinations of a PDF in place.

    Examples:\n

        $ docgen_cli.py fix report.pdf
    """
    typer.secho(f"\nRepairing: {pdf_file}", fg=typer.colors.BLUE, bold=True)

    try:
        report = fix_pdf_file(pdf_file)
    except DestinationFixError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"✓ Repaired {report.total} destinations", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Link annotations: {report.annotations}")
    typer.echo(f"  Named destinations: {report.named}")
    typer.echo(f"  Outline items: {report.outline}")
    if report.unresolved:
        typer.secho(
            f"  Out of range (left unchanged): {report.unresolved}", fg=typer.colors.YELLOW
        )
    typer.echo("")


@app.command("fetch")
def fetch_command(
    version: Annotated[
        str,
        typer.Argument(help="Templates version (e.g. 1.0)"),
    ],
    target_dir: Annotated[
        Path,
        typer.Argument(help="Directory to extract the templates into (contents are replaced)"),
    ],
    config_file: ConfigOption = None,
):
    """
    Download and extract a templates version with the configured store.

    Examples:\n

        $ docgen_cli.py fetch 1.0 /tmp/templates-1.0
    """
    config = _load(config_file, "fetch")
    store = select_templates_store(config)

    typer.secho(f"\nFetching: templates v{version}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"From: {store.get_zip_archive_download_uri(version)}")
    typer.echo("")

    try:
        path = store.get_templates_for_version(version, target_dir)
    except Exception as e:
        typer.secho(f"✗ Fetch failed: {e}\n", fg=typer.colors.RED, bold=True, err=True)
        raise typer.Exit(code=1)

    typer.secho("✓ Templates extracted", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Directory: {path}")
    typer.echo("")


@app.command("health")
def health_command(config_file: ConfigOption = None):
    """
    Convert a one-line HTML document and check the resulting PDF.

    Examples:\n

        $ docgen_cli.py health
    """
    config = _load(config_file, "health")
    health = DocumentGenerator(config).check_health()

    if health.passing:
        typer.secho("✓ passing", fg=typer.colors.GREEN, bold=True)
    else:
        typer.secho(f"✗ failing: {health.message}", fg=typer.colors.RED, bold=True)

    raise typer.Exit(code=0 if health.passing else 1)


@app.command("serve")
def serve_command(
    host: Annotated[
        str,
        typer.Option("--host", help="Interface to bind"),
    ] = "0.0.0.0",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port to listen on"),
    ] = 8080,
    config_file: ConfigOption = None,
):
    """
    Run the HTTP service.

    Examples:\n

        $ docgen_cli.py serve

        $ docgen_cli.py serve --port 9000
    """
    config = _load(config_file, "service")
    log_level = config.log_level.lower()
    # uvicorn does not know loguru-only levels such as SUCCESS
    if log_level not in UVICORN_LOG_LEVELS:
        log_level = "info"

    uvicorn.run(create_app(config), host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    app()
