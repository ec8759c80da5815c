"""Main entry point for the httptap command line."""

from pathlib import Path

import httpx
import typer

from httptap import __version__
from httptap.config import load_settings
from httptap.core.errors import ConfigurationError
from httptap.core.logging import get_logger, setup_logging
from httptap.http import DiagnosticTransport
from httptap.observer import attach_from_settings


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"httptap {__version__}")
        raise typer.Exit()


@app.callback()
def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Trace outbound HTTP requests."""


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL to request"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    no_body: bool = typer.Option(
        False, "--no-body", help="Do not trace the response body"
    ),
    ignore: list[str] | None = typer.Option(
        None,
        "--ignore",
        "-i",
        help="URL regular expression to exclude from tracing (repeatable)",
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Render trace and log lines as JSON"
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML configuration file with an [httptap] table",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Perform one request with tracing attached."""
    overrides: dict[str, object] = {}
    if no_body:
        overrides["log_response_body"] = False
    if ignore:
        overrides["ignore_patterns"] = ignore
    if json_logs:
        overrides["json_logs"] = True

    try:
        settings = load_settings(config, **overrides)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from e

    setup_logging(json_logs=settings.json_logs, log_level_name=settings.log_level)

    with (
        attach_from_settings(settings),
        httpx.Client(transport=DiagnosticTransport()) as client,
    ):
        try:
            response = client.request(method.upper(), url)
        except httpx.HTTPError as e:
            logger.error("request_failed", url=url, error=str(e))
            raise typer.Exit(1) from e

    typer.echo(f"{response.status_code} {response.reason_phrase}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
