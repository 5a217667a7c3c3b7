"""Command line interface for measuring time to first byte."""

from enum import Enum

import typer
import logging
import re
import sys

from ttfb import (
    COPYRIGHT,
    ConfigError,
    Measurement,
    MeasurementError,
    SearchPatternError,
    __version__,
    compile_pattern,
    configure_logging,
    ensure_env_file,
    load_settings,
    measure_ttfb,
    search_body,
    start_metrics_server,
)
from ttfb.config import ENV_PATH, ENV_TEMPLATE, validate_timeout, validate_url
from ttfb.http_utils import close_client


class Verbosity(str, Enum):
    """Logging verbosity levels."""

    QUIET = "quiet"
    INFO = "info"
    DEBUG = "debug"


LOG_LEVELS = {
    Verbosity.QUIET: logging.WARNING,
    Verbosity.INFO: logging.INFO,
    Verbosity.DEBUG: logging.DEBUG,
}

COMMANDS = ("measure", "version", "help")

app = typer.Typer(help="ttfb command line interface")


def _format_ms(seconds: float) -> str:
    return f"{seconds * 1000:.2f} ms"


def _report(result: Measurement, pattern: re.Pattern[str], prefix: str = "") -> None:
    """Print the search results and timings of one measurement."""

    if result.ok:
        found = search_body(result.text, pattern)
        print(f"{prefix}HTML Search Results: {found.as_list() if found else []}")
    else:
        print(
            f"{prefix}Ups... no connection to {result.url} "
            f"(HTTP {result.status_code}). Please check your internet"
        )
    print(f"{prefix}Time to first byte: {_format_ms(result.ttfb)}")
    print(f"{prefix}Total time: {_format_ms(result.total)}")


def _fail(message: str, code: int) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=code)


@app.command()
def measure(
    url: str | None = typer.Option(None, help="URL to test, with http:// or https://"),
    search: str | None = typer.Option(
        None, help="Regular expression searched in the response body"
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Open a fresh connection for every request"
    ),
    timeout: float | None = typer.Option(None, help="Request deadline in seconds"),
    count: int = typer.Option(1, min=1, help="Number of sequential measurements"),
    config: str | None = typer.Option(None, help="YAML settings file"),
    env_file: str = typer.Option(str(ENV_PATH), help="dotenv file with url and search keys"),
    metrics_port: int | None = typer.Option(None, help="Serve Prometheus metrics on this port"),
    verbosity: Verbosity = typer.Option(Verbosity.QUIET, help="Logging verbosity"),
) -> None:
    """Measure the time to first byte of a URL and search its body."""

    configure_logging(LOG_LEVELS[verbosity])

    if ensure_env_file(env_file, ENV_TEMPLATE):
        print(f"Config file does not exist, linking default to {env_file}")
        print("Please edit it after all.")

    try:
        cfg = load_settings(config, env_file=env_file)
    except ConfigError as exc:
        raise _fail(str(exc), 2)
    url = url or cfg.url
    search = search or cfg.search
    no_cache = no_cache or cfg.no_cache
    timeout = timeout if timeout is not None else cfg.timeout
    metrics_port = metrics_port or cfg.metrics_port

    print("ttfb, testing your slow website since 2020 ;-)")
    print("---------------------")
    print("You can test custom url by .ttfbEnv or inline")
    print("There is also 'search' if you need some HTML body & headers info")
    print("---------------------")

    if not url:
        url = typer.prompt(
            "-> 'url' in .ttfbEnv is empty - please provide with http:// or https://"
        )
    if not search:
        search = typer.prompt(
            "-> 'search' in .ttfbEnv is empty - please provide "
            "(you can use wildcards - for ex. '.*com')"
        )

    try:
        url = validate_url(url)
        timeout = validate_timeout(timeout)
        pattern = compile_pattern(search)
    except (ConfigError, SearchPatternError) as exc:
        raise _fail(str(exc), 2)

    if metrics_port:
        start_metrics_server(metrics_port)

    print(f"Starting ttfb to {url}")
    try:
        for run in range(count):
            try:
                result = measure_ttfb(url, no_cache=no_cache, timeout=timeout)
            except MeasurementError as exc:
                raise _fail(str(exc), 1)
            _report(result, pattern, f"[{run + 1}/{count}] " if count > 1 else "")
    finally:
        close_client()


@app.command("help", hidden=True)
@app.command()
def version() -> None:
    """Print the version and exit."""

    print(f"version [{__version__}] by {COPYRIGHT}")


def _with_default_command(argv: list[str] | None) -> list[str]:
    """Run ``measure`` when no sub-command is named."""

    args = list(sys.argv[1:] if argv is None else argv)
    if not args or (args[0] not in COMMANDS and args[0] != "--help"):
        args.insert(0, "measure")
    return args


def main(argv: list[str] | None = None) -> int | None:
    """Entry point for programmatic invocation."""

    from typer.main import get_command

    return get_command(app).main(
        args=_with_default_command(argv), standalone_mode=False
    )


def run() -> None:
    """Console script entry point."""

    from typer.main import get_command

    get_command(app).main(args=_with_default_command(None), prog_name="ttfb")


if __name__ == "__main__":
    run()
