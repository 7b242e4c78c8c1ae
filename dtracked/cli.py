from __future__ import annotations

import asyncio
import importlib.metadata as md
import logging
import signal
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import DtrackedConfig, load_config, load_config_or_default, resolve_config_path
from .core.errors import DtrackedError
from .core.events import Event, EventBus, EventType
from .domain.models import Coordinate, Find, SiteType
from .infrastructure.gps import AsyncGPSClient, GPSConfig, MockGPSClient, path_distance_km
from .infrastructure.storage import FindStore, RouteStore
from .infrastructure.wakelock import WakeLockCoordinator, create_platform
from .tracking import ConsolePromptSurface, StopReason, TrackingSession

# Typer application: tests import this
app = typer.Typer(no_args_is_help=True, add_completion=False, help="Dtracked CLI")
console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Entry point for `dtracked` command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if ctx.invoked_subcommand is None:
        console.print("Dtracked CLI - use `dtracked --help` to see commands.")
        raise typer.Exit(code=0)


@app.command()
def version() -> None:
    """Print version information."""
    try:
        dist_version = md.version("dtracked")
    except md.PackageNotFoundError:
        from . import __version__

        dist_version = __version__
    console.print(f"dtracked {dist_version}")
    raise typer.Exit(code=0)


@app.command(name="config-validate")
def config_validate(path: Path = typer.Argument(Path("configs/dtracked.yml"))) -> None:
    """Validate and show resolved configuration."""
    resolved = resolve_config_path(path)
    console.print(f"Using config: {resolved}")
    try:
        cfg: DtrackedConfig = load_config(resolved)
    except (OSError, ValueError) as exc:
        console.print(f"Config validation failed: {exc}")
        raise typer.Exit(code=1) from exc
    console.print("Config OK.")
    console.print(f"- data: {cfg.storage.data_dir}")
    console.print(
        f"- reminders: every {cfg.tracking.check_interval_secs:.0f}s, "
        f"{cfg.tracking.max_prompts} prompt(s) {cfg.tracking.prompt_interval_secs:.0f}s apart"
    )
    console.print(f"- wake lock: {cfg.wake_lock.backend if cfg.wake_lock.enabled else 'off'}")


@app.command()
def config_which(path: Path = typer.Option(Path("configs/dtracked.yml"), "--config", "-c")) -> None:
    """Print resolved config path by priority rules."""
    resolved = resolve_config_path(path)
    console.print(str(resolved))


def _parse_point(text: str) -> Coordinate:
    try:
        lat_s, lon_s = text.split(",")
        return Coordinate(latitude=float(lat_s), longitude=float(lon_s))
    except ValueError as exc:
        raise typer.BadParameter(f"expected LAT,LON within range, got {text!r}") from exc


@app.command()
def distance(points: list[str] = typer.Argument(..., help="Points as LAT,LON")) -> None:
    """Print the length of a path through POINTS in kilometers."""
    path = [_parse_point(p) for p in points]
    console.print(f"{path_distance_km(path):.3f} km")


@app.command()
def track(
    config: Path = typer.Option(Path("configs/dtracked.yml"), "--config", "-c"),
    mock: bool = typer.Option(False, "--mock", help="Use the simulated GPS walker"),
    name: str | None = typer.Option(None, "--name", help="Save the route under NAME without asking"),
) -> None:
    """Track a route until stopped, then offer to save it."""
    cfg = load_config_or_default(config)
    root = logging.getLogger()
    if root.level != logging.DEBUG:
        root.setLevel(cfg.logging.level)
    store = RouteStore(cfg.storage.routes_path)

    try:
        session = asyncio.run(_run_tracking(cfg, mock or cfg.gps.mock_mode, store))
    except DtrackedError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    draft = session.pending_draft
    if draft is None:
        console.print("[yellow]Route too short to save.[/yellow]")
        return

    console.print(f"Route: {draft.point_count} points, {draft.distance_km:.2f} km")
    route_name = name or typer.prompt("Route name (empty to discard)", default="", show_default=False)
    if not route_name.strip():
        console.print("Route discarded.")
        return
    description = "" if name else typer.prompt("Description", default="", show_default=False)
    record = session.save(route_name, description)
    console.print(f"[green]Route saved successfully![/green] ({record.id})")


async def _run_tracking(cfg: DtrackedConfig, mock: bool, store: RouteStore) -> TrackingSession:
    bus = EventBus()
    prompt = ConsolePromptSurface(console)
    source: AsyncGPSClient
    if mock:
        source = MockGPSClient(cfg.gps.mock_lat, cfg.gps.mock_lon, interval=cfg.gps.mock_interval)
    else:
        source = AsyncGPSClient(
            GPSConfig(
                host=cfg.gps.host,
                port=cfg.gps.port,
                timeout=cfg.gps.timeout,
                reconnect_delay=cfg.gps.reconnect_delay,
                max_reconnect_attempts=cfg.gps.max_reconnect_attempts,
            )
        )
    wake_lock = None
    if cfg.wake_lock.enabled:
        wake_lock = WakeLockCoordinator(
            create_platform(cfg.wake_lock.backend, cfg.wake_lock.inhibit_path), bus=bus
        )

    session = TrackingSession(
        source, prompt, wake_lock=wake_lock, store=store, bus=bus, config=cfg.tracking
    )
    stopped = asyncio.Event()

    @bus.on(EventType.TRACKING_STOPPED)
    async def _on_stopped(event: Event) -> None:
        console.print(f"Route tracking stopped ({event.data['reason']}).")
        stopped.set()

    @bus.on(EventType.PATH_UPDATED)
    async def _on_path(event: Event) -> None:
        console.print(
            f"[dim]{event.data['points']} point(s), {event.data['distance_km']:.3f} km[/dim]"
        )

    @bus.on(EventType.POSITION_ERROR)
    async def _on_position_error(event: Event) -> None:
        console.print(f"[red]Geolocation error: {event.data['error']}[/red]")

    @bus.on(EventType.WAKE_LOCK_UNSUPPORTED)
    async def _on_no_wake_lock(event: Event) -> None:
        console.print("[yellow]Screen wake lock unavailable; the display may sleep.[/yellow]")

    @bus.on(EventType.WAKE_LOCK_FAILED)
    async def _on_wake_lock_failed(event: Event) -> None:
        console.print(f"[yellow]Could not keep the screen on: {event.data['reason']}[/yellow]")

    loop = asyncio.get_running_loop()

    def _on_line() -> None:
        line = sys.stdin.readline()
        if not line:
            loop.remove_reader(sys.stdin.fileno())
            return
        text = line.strip().lower()
        if prompt.answer(text):
            return
        if text in ("q", "quit", "stop", "s"):
            session.request_stop(StopReason.USER)
        elif text in ("bg", "fg"):
            loop.create_task(session.on_visibility_change(text == "fg"))

    await bus.start()
    await session.start()
    console.print("Starting route tracking... type [bold]stop[/bold] to finish.")

    interactive = True
    try:
        loop.add_reader(sys.stdin.fileno(), _on_line)
    except (NotImplementedError, ValueError, OSError):
        interactive = False
    try:
        loop.add_signal_handler(signal.SIGINT, session.request_stop, StopReason.USER)
    except NotImplementedError:
        pass

    try:
        await stopped.wait()
        await session.wait_stopped()
    finally:
        if interactive:
            loop.remove_reader(sys.stdin.fileno())
        await session.close()
        await bus.stop()
    return session


@app.command()
def routes(
    config: Path = typer.Option(Path("configs/dtracked.yml"), "--config", "-c"),
) -> None:
    """List saved routes."""
    cfg = load_config_or_default(config)
    records = RouteStore(cfg.storage.routes_path).list()
    if not records:
        console.print("No routes saved yet.")
        return
    table = Table(title="My Routes")
    table.add_column("Name")
    table.add_column("Distance (km)", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Saved")
    for r in records:
        table.add_row(
            r.name,
            f"{r.distance_km:.2f}",
            str(len(r.route_path)),
            r.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command(name="log-find")
def log_find(
    name: str = typer.Option(..., "--name"),
    lat: float = typer.Option(..., "--lat"),
    lon: float = typer.Option(..., "--lon"),
    site_type: str = typer.Option(..., "--site-type", help=", ".join(s.value for s in SiteType)),
    other: str | None = typer.Option(None, "--other", help="Site type details when --site-type Other"),
    description: str | None = typer.Option(None, "--description"),
    site_name: str | None = typer.Option(None, "--site-name"),
    config: Path = typer.Option(Path("configs/dtracked.yml"), "--config", "-c"),
) -> None:
    """Log a find at LAT,LON."""
    cfg = load_config_or_default(config)
    try:
        find = Find.create(
            name=name,
            latitude=lat,
            longitude=lon,
            site_type=site_type,
            custom_site_type=other,
            description=description,
            site_name=site_name,
        )
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    FindStore(cfg.storage.finds_path).add(find)
    console.print(f"[green]Find logged successfully![/green] ({find.id})")


@app.command()
def finds(
    config: Path = typer.Option(Path("configs/dtracked.yml"), "--config", "-c"),
) -> None:
    """List logged finds."""
    cfg = load_config_or_default(config)
    records = FindStore(cfg.storage.finds_path).list()
    if not records:
        console.print("No finds logged yet.")
        return
    table = Table(title="My Finds")
    table.add_column("Name")
    table.add_column("Site type")
    table.add_column("Location")
    table.add_column("Logged")
    for f in records:
        table.add_row(
            f.name,
            f.site_type,
            f"{f.latitude:.6f}, {f.longitude:.6f}",
            f.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def launch() -> None:
    """Entry point when executed as a module/script."""
    cli()


# Click command export (console script entry point)
cli = typer.main.get_command(app)

__all__ = ["app", "cli"]

if __name__ == "__main__":
    launch()
