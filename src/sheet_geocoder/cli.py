"""
Sheet Geocoder — CLI Entry Point
=================================
Installed as the ``geo-sheet`` command via ``pyproject.toml``.

Usage:
    geo-sheet template --output template.xlsx

    geo-sheet enrich --input addresses.xlsx --output result.xlsx \\
                     --provider here --app-id MY_ID --app-code MY_CODE

    geo-sheet enrich -i addresses.xlsx --provider google \\
                     --query "?apiKey=MY_KEY"
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from sheet_geocoder.backends import BACKENDS, Credentials, make_backend
from sheet_geocoder.enricher import SheetEnricher
from sheet_geocoder.exceptions import OutputWriteError, SheetGeocoderError
from sheet_geocoder.retry import DEFAULT_MAX_ATTEMPTS
from sheet_geocoder.scheduler import DEFAULT_WINDOW_SIZE
from sheet_geocoder.workbook import build_template


def _echo_progress(current: int, total: int) -> None:
    percent = round(current * 100 / total) if total else 100
    click.echo(f"Progress: {current}/{total} ({percent}%)", err=True)


@click.group(name="geo-sheet", help="Geocode the addresses of an Excel workbook.")
def main() -> None:
    """Command group; see the subcommands."""


@main.command(name="template", help="Write an empty addresses workbook to fill in.")
@click.option(
    "--output", "-o", "output_path",
    default="template.xlsx",
    show_default=True,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Where to write the template.",
)
def template(output_path: Path) -> None:
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(build_template())
    except OSError as exc:
        error = OutputWriteError(str(output_path), str(exc))
        click.echo(f"Error: {error.message}", err=True)
        sys.exit(1)
    click.echo(f"Template written to: {output_path}")


@main.command(name="enrich", help="Fill the latitude/longitude columns of a workbook.")
@click.option(
    "--input", "-i", "input_path",
    required=True,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Path to the source .xlsx workbook.",
)
@click.option(
    "--output", "-o", "output_path",
    default="result.xlsx",
    show_default=True,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Path for the result workbook.",
)
@click.option(
    "--provider",
    type=click.Choice(sorted(BACKENDS), case_sensitive=False),
    default="here",
    show_default=True,
    help="Geocoding provider to use.",
)
@click.option("--app-id", default=None, envvar="HERE_APP_ID", help="HERE application id.")
@click.option("--app-code", default=None, envvar="HERE_APP_CODE", help="HERE application code.")
@click.option(
    "--api-key",
    default=None,
    envvar="GOOGLE_MAPS_API_KEY",
    help="Google Maps API key. Can also be set via GOOGLE_MAPS_API_KEY.",
)
@click.option(
    "--query",
    default="",
    help="URL query string to pre-fill credentials from, e.g. '?appId=..&appCode=..'.",
)
@click.option("--window-size", default=DEFAULT_WINDOW_SIZE, show_default=True, type=int,
              help="Addresses geocoded concurrently per window.")
@click.option("--max-attempts", default=DEFAULT_MAX_ATTEMPTS, show_default=True, type=int,
              help="Attempts per address before giving up.")
@click.option("--backoff", default=0.0, show_default=True, type=float,
              help="Base seconds of exponential backoff between retries (0 = none).")
@click.option("--timeout", default=10, show_default=True, type=int,
              help="Per-request timeout in seconds.")
@click.option("--preview", default=10, show_default=True, type=int,
              help="Number of result rows to print (0 to disable).")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def enrich(
    input_path: Path,
    output_path: Path,
    provider: str,
    app_id: str | None,
    app_code: str | None,
    api_key: str | None,
    query: str,
    window_size: int,
    max_attempts: int,
    backoff: float,
    timeout: int,
    preview: int,
    verbose: bool,
) -> None:
    """CLI entry point — wires Click options into SheetEnricher."""
    credentials = Credentials(api_key=api_key, app_id=app_id, app_code=app_code)
    if query:
        credentials = credentials.merged(Credentials.from_query_string(query))

    try:
        tool = SheetEnricher(
            input_path=input_path,
            output_path=output_path,
            backend=make_backend(provider, timeout=timeout),
            credentials=credentials,
            window_size=window_size,
            max_attempts=max_attempts,
            backoff_seconds=backoff,
            on_progress=_echo_progress,
            verbose=verbose,
        )
        tool.run()
    except SheetGeocoderError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    if preview > 0 and tool.store is not None:
        click.echo(tool.store.to_frame().head(preview).to_string(index=False))

    summary = tool.summary
    click.echo(f"\nWorkbook written to: {output_path}")
    if summary is not None:
        click.echo(
            f"Geocoded: {summary.geocoded}/{summary.total} rows "
            f"({summary.no_match} no match, {summary.failed} failed, "
            f"{summary.skipped} without address)."
        )


if __name__ == "__main__":
    main()
