"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import List, Optional, Annotated, Tuple

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .. import __version__
from ..adapters.device_calendar import load_device_events
from ..adapters.google_freebusy import GoogleFreeBusyClient
from ..adapters.json_store import JsonScheduleStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..domain.formatting import format_time_range
from ..domain.models import TimeRange
from ..services.calendar_sync import CalendarSyncService, events_to_busy_ranges
from ..services.slot_finder import SlotFinderService, horizon_bounds

app = typer.Typer(
    name="rallyslots",
    help="Find free slots for tennis matches from availability and calendar conflicts",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
NowOption = Annotated[
    Optional[str],
    typer.Option("--now", help="Treat this ISO 8601 instant as the current time."),
]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> Tuple[AppConfig, JsonScheduleStore]:
    """Load configuration, set up logging and open the schedule store."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    _setup_logging(config.log_level)
    store = JsonScheduleStore(config.resolve_store_path(config_path.parent))
    return config, store


def _parse_instant(value: str, tz: str) -> DateTime:
    """Parse a user-supplied date/time, reading floating times in ``tz``."""
    parsed = pendulum.parse(value, tz=tz)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Not a date and time: {value}")
    return parsed.in_timezone("UTC")


def _resolve_now(now_option: Optional[str], tz: str) -> DateTime:
    if now_option:
        return _parse_instant(now_option, tz)
    return pendulum.now("UTC")


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _print_ranges(title: str, ranges: List[TimeRange], tz: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("When", style="bold")
    table.add_column("Minutes", justify="right")

    for idx, time_range in enumerate(ranges, 1):
        table.add_row(str(idx), format_time_range(time_range, tz), str(time_range.duration_minutes()))

    console.print()
    console.print(table)
    console.print()


@app.command()
def find(
    config_file: ConfigOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Minimum slot length in minutes")] = None,
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Days ahead to search")] = None,
    now: NowOption = None,
):
    """
    List free slots: availability windows minus busy blocks.

    Examples:

        rallyslots find

        rallyslots find --duration 90 --horizon 7
    """
    try:
        config, store = _load_config(config_file)
        min_duration = duration if duration is not None else config.defaults.duration_minutes
        horizon_days = horizon if horizon is not None else config.defaults.horizon_days

        service = SlotFinderService(store=store)
        slots = service.find_free_slots(
            config.user_id,
            now=_resolve_now(now, config.timezone),
            horizon_days=horizon_days,
            min_duration_minutes=min_duration,
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    if not slots:
        console.print(
            "[yellow]No free slots found.[/yellow]\n"
            "Add availability or try a shorter duration."
        )
        return

    _print_ranges(f"{len(slots)} free slot(s), at least {min_duration} min", slots, config.timezone)


@app.command()
def suggest(
    config_file: ConfigOption = None,
    block: Annotated[Optional[int], typer.Option("--block", "-b", help="Block length in minutes")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum number of suggestions")] = None,
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Days ahead to search")] = None,
    now: NowOption = None,
):
    """
    Suggest hour-aligned match start times that fit your free slots.
    """
    try:
        config, store = _load_config(config_file)
        block_minutes = block if block is not None else config.defaults.block_minutes
        max_blocks = limit if limit is not None else config.defaults.max_blocks
        horizon_days = horizon if horizon is not None else config.defaults.horizon_days

        service = SlotFinderService(store=store)
        blocks = service.suggest_blocks(
            config.user_id,
            now=_resolve_now(now, config.timezone),
            horizon_days=horizon_days,
            block_duration_minutes=block_minutes,
            max_blocks=max_blocks,
            timezone=config.timezone,
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    if not blocks:
        console.print("[yellow]No upcoming start times fit your free slots.[/yellow]")
        return

    _print_ranges("Suggested start times", blocks, config.timezone)


@app.command("add-window")
def add_window(
    start: Annotated[str, typer.Argument(help="Window start, e.g. '2024-11-25 09:00'")],
    end: Annotated[str, typer.Argument(help="Window end, e.g. '2024-11-25 12:00'")],
    config_file: ConfigOption = None,
    now: NowOption = None,
):
    """
    Declare a window of time you are free to play.
    """
    try:
        config, store = _load_config(config_file)
        time_range = TimeRange(
            start=_parse_instant(start, config.timezone),
            end=_parse_instant(end, config.timezone),
        )
        service = SlotFinderService(store=store)
        window = service.add_availability(
            config.user_id,
            time_range,
            now=_resolve_now(now, config.timezone),
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    console.print(
        f"[green]✓ Added availability:[/green] {format_time_range(window.time_range, config.timezone)}"
    )


@app.command()
def windows(
    config_file: ConfigOption = None,
):
    """
    List your availability windows with their ids.
    """
    try:
        config, store = _load_config(config_file)
        service = SlotFinderService(store=store)
        availability = service.list_availability(config.user_id)
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    if not availability:
        console.print("[yellow]No availability windows yet.[/yellow] Add one with add-window.")
        return

    table = Table(title="Availability windows", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("When", style="bold")
    table.add_column("Minutes", justify="right")

    for window in availability:
        table.add_row(
            window.id,
            format_time_range(window.time_range, config.timezone),
            str(window.time_range.duration_minutes()),
        )

    console.print()
    console.print(table)
    console.print()


@app.command("remove-window")
def remove_window(
    window_id: Annotated[str, typer.Argument(help="Window id as shown by the windows command")],
    config_file: ConfigOption = None,
):
    """
    Delete one of your availability windows.
    """
    try:
        config, store = _load_config(config_file)
        service = SlotFinderService(store=store)
        service.remove_availability(config.user_id, window_id)
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    console.print(f"[green]✓ Removed availability window {window_id}[/green]")


@app.command()
def recommend(
    config_file: ConfigOption = None,
    days: Annotated[Optional[int], typer.Option("--days", help="Days to look at, today included")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum number of recommendations")] = None,
    now: NowOption = None,
):
    """
    Recommend mornings, evenings and weekend times that are still free.
    """
    try:
        config, store = _load_config(config_file)
        service = SlotFinderService(store=store)
        recommendations = service.recommend_windows(
            config.user_id,
            now=_resolve_now(now, config.timezone),
            timezone=config.timezone,
            days=days if days is not None else config.defaults.recommend_days,
            limit=limit if limit is not None else config.defaults.max_recommendations,
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    if not recommendations:
        console.print("[yellow]No free times to recommend.[/yellow]")
        return

    table = Table(
        title=f"{len(recommendations)} recommended window(s)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Day", style="bold")
    table.add_column("When")
    table.add_column("Why", style="green")

    for idx, rec in enumerate(recommendations, 1):
        table.add_row(str(idx), rec.label, format_time_range(rec.time_range, config.timezone), rec.reason)

    console.print()
    console.print(table)
    console.print()


@app.command("import-calendar")
def import_calendar(
    export_file: Annotated[Path, typer.Argument(help="Device calendar export (JSON list of events)")],
    config_file: ConfigOption = None,
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Days ahead to import")] = None,
    now: NowOption = None,
):
    """
    Replace your device-calendar busy blocks with events from an export.
    """
    try:
        config, store = _load_config(config_file)
        events = load_device_events(export_file, timezone=config.timezone)
        service = CalendarSyncService(store=store)
        blocks = service.import_device_events(
            config.user_id,
            events,
            now=_resolve_now(now, config.timezone),
            horizon_days=horizon if horizon is not None else config.defaults.horizon_days,
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    console.print(f"[green]✓ Imported {len(blocks)} busy block(s) from {len(events)} event(s)[/green]")


@app.command("sync-google")
def sync_google(
    token: Annotated[str, typer.Option("--token", envvar="GOOGLE_ACCESS_TOKEN", help="Google OAuth access token")],
    config_file: ConfigOption = None,
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Days ahead to sync")] = None,
    now: NowOption = None,
):
    """
    Replace your Google Calendar busy blocks with fresh free/busy data.
    """
    try:
        config, store = _load_config(config_file)
        service = CalendarSyncService(store=store)
        blocks = service.sync_provider(
            config.user_id,
            GoogleFreeBusyClient(access_token=token),
            now=_resolve_now(now, config.timezone),
            horizon_days=horizon if horizon is not None else config.defaults.horizon_days,
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    console.print(f"[green]✓ Synced {len(blocks)} busy block(s) from Google Calendar[/green]")


@app.command()
def merge(
    export_file: Annotated[Path, typer.Argument(help="Device calendar export (JSON list of events)")],
    config_file: ConfigOption = None,
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Days ahead to consider")] = None,
    now: NowOption = None,
):
    """
    Preview the busy blocks an export would produce, without storing them.
    """
    try:
        config, _ = _load_config(config_file)
        events = load_device_events(export_file, timezone=config.timezone)
        window_start, window_end = horizon_bounds(
            _resolve_now(now, config.timezone),
            horizon if horizon is not None else config.defaults.horizon_days,
        )
        busy_ranges = events_to_busy_ranges(events, window_start, window_end)
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    if not busy_ranges:
        console.print("[yellow]No blocking events in range.[/yellow]")
        return

    _print_ranges(f"{len(events)} event(s) merged into {len(busy_ranges)} busy block(s)", busy_ranges, config.timezone)


@app.command()
def version():
    """
    Show version information.
    """
    console.print(f"\n[bold cyan]rallyslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
