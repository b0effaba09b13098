"""Typer CLI: live dashboard and one-shot daemon commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import typer
from rich.console import Console

from syncdash import __version__
from syncdash.client.errors import MissingApiKeyError
from syncdash.client.rest import DaemonClient
from syncdash.config import Settings
from syncdash.display.live import LiveDashboard, render_dashboard
from syncdash.display.panels import missing_api_key_panel
from syncdash.events.bus import Event, EventType
from syncdash.logging.session_logger import SessionLogger
from syncdash.sync.engine import SyncEngine
from syncdash.sync.scheduler import fetch_pending_devices
from syncdash.sync.store import ProjectionStore

app = typer.Typer(
    name="syncdash",
    help="syncdash: live dashboard for a Syncthing daemon",
    no_args_is_help=True,
)
pending_app = typer.Typer(help="Act on devices asking to connect", no_args_is_help=True)
app.add_typer(pending_app, name="pending")
console = Console()

# A snapshot without these is not worth printing.
_FATAL_SOURCES = ("system_status", "config")


def _setup_logging(verbose: bool = False, config_level: str | None = None) -> None:
    if verbose:
        level = logging.DEBUG
    elif config_level:
        level = getattr(logging, config_level.upper(), logging.INFO)
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load(config: str | None, verbose: bool) -> Settings:
    settings = Settings.load(config)
    _setup_logging(verbose, config_level=settings.log_level)
    return settings


def _client(settings: Settings) -> DaemonClient:
    try:
        return DaemonClient(settings.daemon)
    except MissingApiKeyError as e:
        console.print(missing_api_key_panel(str(e)))
        raise typer.Exit(1) from None


def _print_action(event: Event) -> None:
    d = event.data
    if d.get("ok"):
        console.print(f"[green]OK[/] {d.get('action')} {d.get('target')}")
    else:
        console.print(f"[red]FAILED[/] {d.get('action')} {d.get('target')}")


# -- Async drivers ------------------------------------------------------------


async def _watch(settings: Settings, client: DaemonClient) -> None:
    async with client:
        engine = SyncEngine(client, settings.refresh)
        session_logger: SessionLogger | None = None
        if settings.session_log.enabled:
            session_logger = SessionLogger(
                settings.session_log.log_dir,
                engine.bus,
                max_sessions=settings.session_log.max_sessions,
            )
            await session_logger.open()

        dashboard = LiveDashboard(engine.bus, engine.store, console=console)
        dashboard.start()
        try:
            await engine.run()
        finally:
            dashboard.stop()
            if session_logger is not None:
                await session_logger.close()


async def _snapshot(settings: Settings, client: DaemonClient) -> ProjectionStore:
    async with client:
        engine = SyncEngine(client, settings.refresh)
        return await engine.snapshot()


def _fatal_error(store: ProjectionStore) -> str | None:
    for source in _FATAL_SOURCES:
        if source in store.errors:
            return store.errors[source]
    return None


async def _act(
    settings: Settings,
    client: DaemonClient,
    act: Callable[[SyncEngine], Any],
) -> ProjectionStore:
    """Load config and pending devices, run *act*, wait for its outcome."""
    async with client:
        engine = SyncEngine(client, settings.refresh)
        engine.bus.subscribe(EventType.ACTION_COMPLETED, _print_action)
        try:
            await engine.bootstrap()
            engine.spawn(lambda: fetch_pending_devices(client))
            await engine.drain()
            if not _fatal_error(engine.store):
                act(engine)
                await engine.drain()
        finally:
            await engine.close()
        return engine.store


def _run_action(
    config: str | None,
    verbose: bool,
    act: Callable[[SyncEngine], Any],
) -> ProjectionStore:
    settings = _load(config, verbose)
    client = _client(settings)
    store = asyncio.run(_act(settings, client, act))
    fatal = _fatal_error(store)
    if fatal:
        console.print(f"[red]Error:[/] {fatal}")
        raise typer.Exit(1)
    if "action" in store.errors:
        console.print(f"[red]Error:[/] {store.errors['action']}")
        raise typer.Exit(1)
    return store


def _folder_action(
    folder: str | None,
    all_folders: bool,
    single: Callable[[SyncEngine, str], Any],
    every: Callable[[SyncEngine], Any],
) -> Callable[[SyncEngine], Any]:
    if not folder and not all_folders:
        console.print("[red]Give a folder ID or --all[/]")
        raise typer.Exit(1)

    def act(engine: SyncEngine) -> Any:
        if all_folders:
            return every(engine)
        if folder not in engine.store.folders:
            console.print(f"[red]Unknown folder: {folder}[/]")
            raise typer.Exit(1)
        return single(engine, folder)

    return act


# -- Commands -----------------------------------------------------------------


@app.command()
def watch(
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Show the live dashboard until interrupted."""
    settings = _load(config, verbose)
    client = _client(settings)
    try:
        asyncio.run(_watch(settings, client))
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/]")


@app.command()
def snapshot(
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Fetch the daemon's state once and print it."""
    settings = _load(config, verbose)
    client = _client(settings)
    store = asyncio.run(_snapshot(settings, client))
    console.print(render_dashboard(store))
    if any(source in store.errors for source in _FATAL_SOURCES):
        raise typer.Exit(1)


@app.command()
def pause(
    folder: str | None = typer.Argument(None, help="Folder ID"),
    all_folders: bool = typer.Option(False, "--all", help="Pause every folder"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Pause a folder."""
    _run_action(config, verbose, _folder_action(
        folder, all_folders,
        lambda engine, f: engine.pause_folder(f, True),
        lambda engine: engine.pause_all(),
    ))


@app.command()
def resume(
    folder: str | None = typer.Argument(None, help="Folder ID"),
    all_folders: bool = typer.Option(False, "--all", help="Resume every folder"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Resume a paused folder."""
    _run_action(config, verbose, _folder_action(
        folder, all_folders,
        lambda engine, f: engine.pause_folder(f, False),
        lambda engine: engine.resume_all(),
    ))


@app.command()
def rescan(
    folder: str | None = typer.Argument(None, help="Folder ID"),
    all_folders: bool = typer.Option(False, "--all", help="Rescan every folder"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Ask the daemon to rescan a folder."""
    _run_action(config, verbose, _folder_action(
        folder, all_folders,
        lambda engine, f: engine.rescan(f),
        lambda engine: engine.rescan_all(),
    ))


@app.command()
def revert(
    folder: str = typer.Argument(help="Folder ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Revert local changes of a receive-only folder."""
    if not yes:
        typer.confirm(
            f"Local changes in {folder} will be discarded. Continue?", abort=True,
        )
    _run_action(config, verbose, _folder_action(
        folder, False,
        lambda engine, f: engine.revert(f),
        lambda engine: None,
    ))


@pending_app.command("list")
def pending_list(
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """List devices asking to connect."""
    store = _run_action(config, verbose, lambda engine: None)
    if not store.pending:
        console.print("No pending devices")
        return
    for p in store.pending.values():
        console.print(f"[bold]{p.id}[/] {p.name} ({p.address})")


@pending_app.command("dismiss")
def pending_dismiss(
    device: str = typer.Argument(help="Device ID"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Dismiss a connection request; the device may ask again."""
    _run_action(config, verbose, lambda engine: engine.dismiss_pending(device))


@pending_app.command("ignore")
def pending_ignore(
    device: str = typer.Argument(help="Device ID"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Ignore a device permanently."""
    _run_action(config, verbose, lambda engine: engine.ignore_pending(device))


@pending_app.command("accept")
def pending_accept(
    device: str = typer.Argument(help="Device ID"),
    name: str | None = typer.Option(None, help="Name for the new device"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Add a pending device using the configured device defaults."""
    _run_action(config, verbose, lambda engine: engine.accept_pending(device, name))


@app.command()
def version():
    """Show version."""
    console.print(f"syncdash v{__version__}")


def main() -> None:
    app()
