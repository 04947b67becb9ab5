"""Command-line entry point (Typer-based).

``bedtime`` runs the routine once and exits.  Options::

    --version       print name and version
    --dry-run       fetch and log only; send nothing, write nothing
    --log-level     override LOGGING__LEVEL
    --log-format    override LOGGING__FORMAT
    --env-file      .env file to load (default: ./.env)
    --dimming       override COMMAND__DIMMING (1-100)

Exit codes are defined in :mod:`bedtime._errors`.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from typing import Annotated, TypeAlias, get_args

import typer
from pydantic import ValidationError

from bedtime._errors import EXIT_CONFIG_ERROR, exit_code_for
from bedtime._logging import configure_logging
from bedtime._routine import BedtimeRoutine, RunReport
from bedtime._settings import LoggingSettings, Settings
from bedtime._store import PostgresStore, StorePort
from bedtime._transport import DatagramPort, UdpClient

logger = logging.getLogger(__name__)

APP_NAME = "bedtime"

# ---------------------------------------------------------------------------
# Allowed values (extracted from LoggingSettings Literal types)
# ---------------------------------------------------------------------------

_VALID_LOG_LEVELS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["level"].annotation,
)
_VALID_LOG_FORMATS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["format"].annotation,
)

StoreFactory: TypeAlias = Callable[[Settings], StorePort]
TransportFactory: TypeAlias = Callable[[], DatagramPort]


def _version() -> str:
    from bedtime import __version__  # noqa: PLC0415

    return __version__


async def run_once(
    settings: Settings,
    *,
    store: StorePort,
    transport: DatagramPort,
    dry_run: bool = False,
) -> RunReport:
    """Configure logging from *settings* and execute one run."""
    configure_logging(settings.logging, service=APP_NAME, version=_version())
    routine = BedtimeRoutine(
        settings,
        store=store,
        transport=transport,
        dry_run=dry_run,
    )
    return await routine.run()


def build_cli(
    *,
    store_factory: StoreFactory = PostgresStore.from_settings,
    transport_factory: TransportFactory = UdpClient,
) -> typer.Typer:
    """Construct the Typer CLI.

    The adapter factories are parameters so tests can run the full
    command against in-memory doubles.

    Args:
        store_factory: Builds the store adapter from the loaded settings.
        transport_factory: Builds the datagram adapter.

    Returns:
        A configured :class:`typer.Typer` ready to invoke.
    """
    cli = typer.Typer(
        help="Dim every light flagged for bedtime and record an audit event each.",
    )

    @cli.callback(invoke_without_command=True)
    def main(
        version_flag: Annotated[
            bool | None,
            typer.Option(
                "--version",
                is_eager=True,
                help="Show version and exit.",
            ),
        ] = None,
        dry_run: Annotated[
            bool,
            typer.Option(
                "--dry-run",
                help="Fetch devices and log what would happen; send and write nothing.",
            ),
        ] = False,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Override log level."),
        ] = None,
        log_format: Annotated[
            str | None,
            typer.Option("--log-format", help="Override log format."),
        ] = None,
        env_file: Annotated[
            str,
            typer.Option("--env-file", help="Path to .env file."),
        ] = ".env",
        dimming: Annotated[
            int | None,
            typer.Option(
                "--dimming",
                min=1,
                max=100,
                help="Override the brightness (percent) sent to each light.",
            ),
        ] = None,
    ) -> None:
        # -- version ---------------------------------------------------------
        if version_flag:
            typer.echo(f"{APP_NAME} v{_version()}")
            raise typer.Exit()

        # -- validate enum-like options -------------------------------------
        if log_level is not None and log_level.upper() not in _VALID_LOG_LEVELS:
            raise typer.BadParameter(
                f"Invalid log level '{log_level}'. "
                f"Choose from: {', '.join(_VALID_LOG_LEVELS)}",
                param_hint="'--log-level'",
            )

        if log_format is not None and log_format.lower() not in _VALID_LOG_FORMATS:
            raise typer.BadParameter(
                f"Invalid log format '{log_format}'. "
                f"Choose from: {', '.join(_VALID_LOG_FORMATS)}",
                param_hint="'--log-format'",
            )

        # -- build settings -------------------------------------------------
        try:
            settings = Settings(_env_file=env_file)  # type: ignore[call-arg]
        except ValidationError as exc:
            logger.error("Configuration error: %s", exc)
            raise SystemExit(EXIT_CONFIG_ERROR) from exc

        # -- apply CLI overrides --------------------------------------------
        if log_level is not None:
            settings.logging = settings.logging.model_copy(
                update={"level": log_level.upper()},
            )

        if log_format is not None:
            settings.logging = settings.logging.model_copy(
                update={"format": log_format.lower()},
            )

        if dimming is not None:
            settings.command = settings.command.model_copy(
                update={"dimming": dimming},
            )

        # -- run ------------------------------------------------------------
        try:
            asyncio.run(
                run_once(
                    settings,
                    store=store_factory(settings),
                    transport=transport_factory(),
                    dry_run=dry_run,
                ),
            )
        except SystemExit:
            raise
        except Exception as exc:
            logger.error("Bedtime run aborted: %s", exc)
            sys.exit(exit_code_for(exc))

    return cli


def main() -> None:
    """Console-script entry point."""
    build_cli()()
