"""CLI commands for scanning permits and testing field extraction."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TextIO

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from permitscan.services.exceptions import OCRDisabledError
from permitscan.services.ocr_service import OCRService, PermitScanResult
from permitscan.services.permit_parser import FIELD_KEYS


@click.group("permit")
def permit_cli() -> None:
    """Business permit scanning commands."""


def register_commands(app: Flask) -> None:
    """Register CLI commands with the application."""
    app.cli.add_command(permit_cli)


def _echo_result(result: PermitScanResult, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(f"Success: {result.success}")
    click.echo(f"Confidence: {result.confidence}")
    if result.error:
        click.echo(f"❌ Error: {result.error}")

    info = result.permit_info
    if not info.has_any_field():
        click.echo("No permit fields found")
    for attr, key in FIELD_KEYS.items():
        value = getattr(info, attr)
        if value:
            click.echo(f"  {key}: {value} [{info.sources.get(attr, '')}]")

    if result.report_path:
        click.echo(f"📄 Report: {result.report_path}")
    if result.save_message or result.database_saved:
        status = "✅ saved" if result.database_saved else "❌ not saved"
        click.echo(f"Backend: {status} ({result.save_message or 'no message'})")


@permit_cli.command("scan")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.option("--no-report", is_flag=True, help="Do not archive a text report")
@click.option("--signup-id", type=int, default=None, help="Save extracted fields for this signup")
@click.option("--business-line", default=None, help="Business line to send with the saved permit")
@with_appcontext
def scan_command(
    file_path: Path,
    as_json: bool,
    no_report: bool,
    signup_id: int | None,
    business_line: str | None,
) -> None:
    """Scan a permit image or PDF and print the extracted fields."""
    service = OCRService.from_config(current_app.config)
    try:
        result = service.scan_permit(
            file_path.read_bytes(),
            file_path.name,
            signup_id=signup_id,
            business_line=business_line,
            save_report=not no_report,
        )
    except (OCRDisabledError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    _echo_result(result, as_json)
    if not result.success:
        raise SystemExit(1)


@permit_cli.command("extract")
@click.argument("text_file", type=click.File("r", encoding="utf-8"))
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@with_appcontext
def extract_command(text_file: TextIO, as_json: bool) -> None:
    """Extract permit fields from a text file of recognized text ('-' reads stdin)."""
    service = OCRService.from_config(current_app.config)
    result = service.extract_from_text(text_file.read())
    _echo_result(result, as_json)
