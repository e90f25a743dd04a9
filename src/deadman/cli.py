"""CLI interface for the deadman receiver.

Settings come from the environment (and optionally a YAML file), so the
usual invocation needs no flags at all:

    deadman serve                          # Run the receiver
    deadman serve --config deadman.yaml    # Layer env over a config file
    deadman check                          # Validate config + notifier credentials
    deadman version
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from deadman import __version__
from deadman.config import ConfigError, Settings, format_duration, load_settings
from deadman.notifiers import (
    Notifier,
    NotifierSetupError,
    build_notifiers,
    close_notifiers,
    setup_notifiers,
)

logger = logging.getLogger("deadman")

app = typer.Typer(
    name="deadman",
    help="Dead man's switch receiver for Alertmanager watchdog alerts",
    no_args_is_help=True,
)

console = Console()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="[DEADMAN] %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _load(config: Path | None, **overrides) -> Settings:
    try:
        return load_settings(config_file=config, **overrides)
    except ConfigError as e:
        console.print(f"[red]Unable to parse configuration: {e}[/red]")
        raise typer.Exit(1)


async def _prepare_notifiers(notifiers: list[Notifier]) -> None:
    # Clients opened here belong to this event loop; close them so the
    # server loop opens its own.
    try:
        await setup_notifiers(notifiers)
    finally:
        await close_notifiers(notifiers)


def _init_notifiers(settings: Settings) -> list[Notifier]:
    notifiers = build_notifiers(settings)
    try:
        asyncio.run(_prepare_notifiers(notifiers))
    except NotifierSetupError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return notifiers


def print_config(settings: Settings) -> None:
    logger.info("Starting Alertmanager Deadman Receiver")
    logger.info(
        f"Any missing alert is notified after "
        f"{format_duration(settings.expire_duration)} not firing")
    logger.info(
        f"Internal check routine interval is {format_duration(settings.check_interval)}")
    logger.info(f"Listening on {settings.host}:{settings.port}")
    enabled = settings.enabled_notifiers
    if enabled:
        logger.info(f"Enabled notifiers: {', '.join(enabled)}")
    else:
        logger.warning("No notifier configured, missing alerts will only be logged")


@app.command()
def serve(
    config: Path = typer.Option(
        None, "--config", "-c", help="YAML config file (env vars take precedence)"),
    host: str = typer.Option(None, "--host", help="Host to bind to"),
    port: int = typer.Option(None, "--port", "-p", help="Port to listen on"),
) -> None:
    """Run the receiver until interrupted."""
    import uvicorn

    from deadman.web import create_app

    settings = _load(config, host=host, port=port)
    _configure_logging(settings.debug)
    print_config(settings)

    notifiers = _init_notifiers(settings)
    web_app = create_app(settings, notifiers=notifiers)

    # uvicorn exits non-zero by itself when the port cannot be bound
    uvicorn.run(
        web_app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
        log_config=None,
    )


@app.command()
def check(
    config: Path = typer.Option(
        None, "--config", "-c", help="YAML config file (env vars take precedence)"),
) -> None:
    """Validate configuration and notifier credentials, then exit."""
    settings = _load(config)
    _configure_logging(settings.debug)
    notifiers = _init_notifiers(settings)

    table = Table(title="Deadman Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Expire duration", format_duration(settings.expire_duration))
    table.add_row("Check interval", format_duration(settings.check_interval))
    table.add_row("Notify timeout", format_duration(settings.notify_timeout))
    table.add_row("Listen", f"{settings.host}:{settings.port}")
    table.add_row("Debug", str(settings.debug))
    table.add_row(
        "Notifiers",
        ", ".join(n.name for n in notifiers) or "[yellow]none[/yellow]",
    )
    if settings.slack_token:
        table.add_row("Slack channel", settings.slack_channel)
    console.print(table)
    console.print("[green]Configuration OK[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"deadman version {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
