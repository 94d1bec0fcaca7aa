"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import signal
import sys

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from aprsfeed import __version__
from aprsfeed.models.config import FeedSettings
from aprsfeed.output.formatter import OutputFormatter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application context (stored in ctx.obj)
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    output_format: str | None
    verbose: bool
    config_path: str | None = None
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)
    _settings: FeedSettings | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            self._formatter = OutputFormatter(force_format=self.output_format)
        return self._formatter

    @property
    def settings(self) -> FeedSettings:
        if self._settings is None:
            self._settings = FeedSettings.load(self.config_path)
        return self._settings


def configure_logging(verbose: bool) -> None:
    """Route log records through Rich on stderr so stdout stays machine-readable."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    if not verbose:
        logging.getLogger("aprslib").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Root Click group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(__version__, prog_name="aprsfeed")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["rich", "json", "quiet"]),
    default=None,
    help="Output format (default: auto-detect)",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    envvar="APRSFEED_CONFIG",
    help="JSON config file (default: ~/.config/aprsfeed/config.json)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    output_format: str | None,
    verbose: bool,
    config_path: str | None,
) -> None:
    """Listen to the APRS-IS feed and print filtered station positions."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj = AppContext(
        output_format=output_format,
        verbose=verbose,
        config_path=config_path,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@cli.command("listen")
@click.option("--host", default=None, help="APRS-IS server host")
@click.option("--port", type=int, default=None, help="APRS-IS server port")
@click.option("--callsign", default=None, help="Login callsign")
@click.option("--passcode", default=None, help="Login passcode (-1 = receive only)")
@click.option("--filter", "filter_expr", default=None, help="Type filter, sent as t/<expr>")
@click.option(
    "--prefix",
    "prefixes",
    multiple=True,
    help="Accepted leading callsign character (repeatable)",
)
@click.option("--read-timeout", type=float, default=None, help="Idle read timeout in seconds")
@click.option("--backoff", type=float, default=None, help="Delay between reconnects in seconds")
@click.pass_obj
def listen_cmd(
    app_ctx: AppContext,
    host: str | None,
    port: int | None,
    callsign: str | None,
    passcode: str | None,
    filter_expr: str | None,
    prefixes: tuple[str, ...],
    read_timeout: float | None,
    backoff: float | None,
) -> None:
    """Connect to APRS-IS and stream sightings until interrupted."""
    settings = app_ctx.settings.merge_overrides(
        host=host,
        port=port,
        callsign=callsign,
        passcode=passcode,
        filter_expr=filter_expr,
        regional_prefixes=list(prefixes) or None,
        read_timeout=read_timeout,
        backoff=backoff,
    )
    formatter = app_ctx.formatter
    if formatter.format == "rich":
        formatter.rich.settings(settings)
        formatter.rich.info("Press Ctrl+C to stop.")

    asyncio.run(_listen(settings, formatter))


async def _listen(settings: FeedSettings, formatter: OutputFormatter) -> None:
    from aprsfeed.feed.session import FeedClient
    from aprsfeed.feed.sinks import ConsoleSink, LogSink, SightingFanout

    fanout = SightingFanout()
    if formatter.format == "quiet":
        fanout.add_sink(LogSink())
    else:
        fanout.add_sink(ConsoleSink(formatter))

    client = FeedClient(settings, on_sighting=fanout.on_sighting)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows has no loop.add_signal_handler; KeyboardInterrupt still works there
        with contextlib.suppress(NotImplementedError, AttributeError):
            loop.add_signal_handler(sig, client.stop)

    await client.run()


@cli.command("login-line")
@click.option("--callsign", default=None, help="Login callsign")
@click.option("--passcode", default=None, help="Login passcode")
@click.option("--filter", "filter_expr", default=None, help="Type filter, sent as t/<expr>")
@click.pass_obj
def login_line_cmd(
    app_ctx: AppContext,
    callsign: str | None,
    passcode: str | None,
    filter_expr: str | None,
) -> None:
    """Print the login line that would be sent to the server."""
    from aprsfeed.feed.session import login_line

    s = app_ctx.settings.merge_overrides(
        callsign=callsign, passcode=passcode, filter_expr=filter_expr
    )
    line = login_line(
        callsign=s.callsign,
        passcode=s.passcode,
        client_name=s.client_name,
        client_version=s.client_version,
        filter_expr=s.filter_expr,
    ).rstrip("\n")
    if app_ctx.formatter.format == "json":
        app_ctx.formatter.output({"login": line}, command="login-line")
    else:
        click.echo(line)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate command handler.

    The Click context is built here rather than by ``cli.main()`` so that it
    is still available when a command fails and the error can be reported
    in the selected ``--format``.
    """
    args = sys.argv[1:] if argv is None else list(argv)
    ctx: click.Context | None = None
    try:
        ctx = cli.make_context("aprsfeed", args)
        with ctx:
            cli.invoke(ctx)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.exceptions.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except SystemExit:
        raise
    except Exception as exc:
        app_ctx = ctx.obj if ctx is not None and isinstance(ctx.obj, AppContext) else None
        formatter = app_ctx.formatter if app_ctx else OutputFormatter()
        cmd_name = (ctx.invoked_subcommand if ctx is not None else None) or "unknown"

        if isinstance(exc, ValidationError):
            formatter.output_error(
                code="invalid_config",
                message=_describe_validation_error(exc),
                command=cmd_name,
            )
            raise SystemExit(1) from exc

        formatter.output_error(
            code=type(exc).__name__,
            message=str(exc),
            command=cmd_name,
        )
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# Helpers for error handling
# ---------------------------------------------------------------------------


def _describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into ``field: message; field: message``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "Invalid configuration: " + "; ".join(parts)
