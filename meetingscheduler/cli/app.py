"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.mock_provider_client import MockProviderClient
from ..adapters.provider_client import ProviderClient
from ..adapters.sqlite_store import SqliteCalendarStore, SqliteMeetingStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..services.calendar_service import CalendarService
from ..services.meeting_service import MeetingService
from ..services.retry import ConcurrencyRetryPolicy

app = typer.Typer(
    name="meetingscheduler",
    help="Find free slots and schedule meetings without conflicts",
    add_completion=False
)

calendar_app = typer.Typer(help="Manage calendars.")
event_app = typer.Typer(help="Manage calendar events.")
app.add_typer(calendar_app, name="calendar")
app.add_typer(event_app, name="event")

console = Console()
error_console = Console(stderr=True)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Serve provider events from the bundled JSON fixture."),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """
    Load the config file; fall back to defaults when no file was given and
    none exists at the default location.
    """
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    config_path = get_default_config_path()
    if config_path.exists():
        return AppConfig.load_from_yaml(config_path)
    return AppConfig()


def _build_retry_policy(config: AppConfig) -> ConcurrencyRetryPolicy:
    return ConcurrencyRetryPolicy(
        max_attempts=config.retry.max_attempts,
        initial_delay=config.retry.initial_delay_seconds,
        multiplier=config.retry.multiplier,
    )


def _build_service(config: AppConfig, mock: bool) -> MeetingService:
    tz = config.timezone
    store = SqliteMeetingStore(config.store.path, timezone=tz)

    if mock:
        provider_client = MockProviderClient(timezone=tz)
    elif not config.provider.enabled:
        provider_client = MockProviderClient(events=[], timezone=tz)
    else:
        provider_client = ProviderClient(
            base_url=config.provider.base_url,
            timeout_seconds=config.provider.timeout_seconds,
            max_attempts=config.provider.max_attempts,
            initial_delay_seconds=config.provider.initial_delay_seconds,
            multiplier=config.provider.multiplier,
            timezone=tz,
        )

    return MeetingService(
        store=store,
        provider_client=provider_client,
        constraints=config.constraints.build_validator(),
        retry_policy=_build_retry_policy(config),
        default_page_size=config.default_page_size,
    )


def _load_or_exit(config_file: Optional[Path], verbose: bool) -> AppConfig:
    _configure_logging(verbose)
    try:
        return _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _setup(config_file: Optional[Path], mock: bool, verbose: bool):
    config = _load_or_exit(config_file, verbose)
    return config, _build_service(config, mock)


def _setup_calendars(config_file: Optional[Path], verbose: bool):
    config = _load_or_exit(config_file, verbose)
    service = CalendarService(
        store=SqliteCalendarStore(config.store.path, timezone=config.timezone),
        constraints=config.constraints.build_validator(),
        retry_policy=_build_retry_policy(config),
        default_page_size=config.default_page_size,
    )
    return config, service


def _parse_datetime(value: str, tz: str, option: str) -> DateTime:
    """Parse an ISO-8601 timestamp; naive values use the configured timezone."""
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid timestamp '{value}': {e}", param_hint=option)

    if not isinstance(parsed, DateTime):
        raise typer.BadParameter(f"'{value}' is not a date and time", param_hint=option)
    return parsed.in_timezone(tz)


def _fail(error: SchedulingError) -> None:
    console.print(f"[bold red]Error ({error.status_code}):[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def link(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Allow a user to schedule in a calendar.
    """
    _, service = _setup(config_file, mock=False, verbose=verbose)
    try:
        service.link_calendar(user_id, calendar_id)
    except SchedulingError as e:
        _fail(e)
    console.print(f"[green]✓ Linked {user_id} to {calendar_id}[/green]")


@app.command()
def slots(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    start: Annotated[str, typer.Option("--from", help="Range start (ISO-8601)")],
    end: Annotated[str, typer.Option("--to", help="Range end (ISO-8601)")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Slot duration in minutes")] = 30,
    page: Annotated[int, typer.Option("--page", help="Page number")] = 0,
    size: Annotated[Optional[int], typer.Option("--size", help="Page size")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    List free slots of a fixed duration.

    Examples:

        meetingscheduler slots alice team-calendar --from 2024-11-25T09:00 --to 2024-11-25T17:00 -d 60
    """
    config, service = _setup(config_file, mock, verbose)
    tz = config.timezone
    range_from = _parse_datetime(start, tz, "--from")
    range_to = _parse_datetime(end, tz, "--to")

    try:
        available = service.find_available_slots(
            user_id=user_id,
            calendar_id=calendar_id,
            range_from=range_from,
            range_to=range_to,
            slot_duration_minutes=duration,
            page=page,
            size=size,
        )
    except SchedulingError as e:
        _fail(e)

    if not available:
        console.print("[yellow]⚠ No free slots found.[/yellow]")
        return

    console.print(f"[bold green]✓ {len(available)} free slot(s):[/bold green]")
    for slot in available:
        console.print(f"  {slot} ({slot.duration_minutes()} min)")


@app.command()
def meetings(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    start: Annotated[str, typer.Option("--from", help="Range start (ISO-8601)")],
    end: Annotated[str, typer.Option("--to", help="Range end (ISO-8601)")],
    page: Annotated[int, typer.Option("--page", help="Page number")] = 0,
    size: Annotated[Optional[int], typer.Option("--size", help="Page size")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List meetings inside a time range.
    """
    config, service = _setup(config_file, mock=False, verbose=verbose)
    tz = config.timezone

    try:
        result = service.find_meetings(
            user_id=user_id,
            calendar_id=calendar_id,
            range_from=_parse_datetime(start, tz, "--from"),
            range_to=_parse_datetime(end, tz, "--to"),
            page=page,
            size=size,
        )
    except SchedulingError as e:
        _fail(e)

    if not result.items:
        console.print("[yellow]No meetings in this range.[/yellow]")
        return

    table = Table(
        title=f"Meetings (page {result.page + 1}/{result.total_pages}, {result.total} total)",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold yellow")
    table.add_column("Time")
    table.add_column("Location")
    table.add_column("Version", justify="right")

    for meeting in result.items:
        table.add_row(
            meeting.id,
            meeting.title,
            str(meeting.slot),
            meeting.location or "",
            str(meeting.version),
        )

    console.print(table)


@app.command()
def show(
    meeting_id: Annotated[str, typer.Argument(help="Meeting ID")],
    user_id: Annotated[str, typer.Option("--user", "-u", help="User ID")],
    calendar_id: Annotated[str, typer.Option("--calendar", help="Calendar ID")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Show one meeting.
    """
    _, service = _setup(config_file, mock=False, verbose=verbose)
    try:
        meeting = service.find_meeting(meeting_id, user_id, calendar_id)
    except SchedulingError as e:
        _fail(e)

    console.print(f"[bold]{meeting.title}[/bold] ({meeting.id})")
    console.print(f"  Time: {meeting.slot}")
    if meeting.location:
        console.print(f"  Location: {meeting.location}")
    if meeting.description:
        console.print(f"  {meeting.description}")
    console.print(f"  Version: {meeting.version}")


@app.command()
def create(
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    user_id: Annotated[str, typer.Option("--user", "-u", help="User ID")],
    title: Annotated[str, typer.Option("--title", "-t", help="Meeting title")],
    start: Annotated[str, typer.Option("--start", help="Meeting start (ISO-8601)")],
    end: Annotated[str, typer.Option("--end", help="Meeting end (ISO-8601)")],
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    location: Annotated[Optional[str], typer.Option("--location", help="Location")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Create a meeting if it does not conflict with busy time.
    """
    config, service = _setup(config_file, mock, verbose)
    tz = config.timezone

    try:
        meeting = service.create_meeting(
            calendar_id=calendar_id,
            title=title,
            description=description,
            start=_parse_datetime(start, tz, "--start"),
            end=_parse_datetime(end, tz, "--end"),
            location=location,
            user_id=user_id,
        )
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Meeting created:[/green] {meeting.id} ({meeting.slot})")


@app.command()
def update(
    meeting_id: Annotated[str, typer.Argument(help="Meeting ID")],
    calendar_id: Annotated[str, typer.Option("--calendar", help="Calendar ID")],
    user_id: Annotated[str, typer.Option("--user", "-u", help="User ID")],
    title: Annotated[str, typer.Option("--title", "-t", help="Meeting title")],
    start: Annotated[str, typer.Option("--start", help="Meeting start (ISO-8601)")],
    end: Annotated[str, typer.Option("--end", help="Meeting end (ISO-8601)")],
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    location: Annotated[Optional[str], typer.Option("--location", help="Location")] = None,
    expected_version: Annotated[
        Optional[int],
        typer.Option("--expected-version", help="Reject the update if the stored version differs."),
    ] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Update a meeting's details and time.
    """
    config, service = _setup(config_file, mock, verbose)
    tz = config.timezone

    try:
        meeting = service.update_meeting(
            meeting_id=meeting_id,
            calendar_id=calendar_id,
            title=title,
            description=description,
            start=_parse_datetime(start, tz, "--start"),
            end=_parse_datetime(end, tz, "--end"),
            location=location,
            user_id=user_id,
            expected_version=expected_version,
        )
    except SchedulingError as e:
        _fail(e)

    console.print(
        f"[green]✓ Meeting updated:[/green] {meeting.id} ({meeting.slot}, version {meeting.version})"
    )


@app.command()
def delete(
    meeting_id: Annotated[str, typer.Argument(help="Meeting ID")],
    user_id: Annotated[str, typer.Option("--user", "-u", help="User ID")],
    calendar_id: Annotated[str, typer.Option("--calendar", help="Calendar ID")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Delete a meeting.
    """
    _, service = _setup(config_file, mock=False, verbose=verbose)
    try:
        service.delete_meeting(meeting_id, user_id, calendar_id)
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Meeting deleted:[/green] {meeting_id}")


@calendar_app.command("list")
def list_calendars(
    page: Annotated[int, typer.Option("--page", help="Page number")] = 0,
    size: Annotated[Optional[int], typer.Option("--size", help="Page size")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List calendars.
    """
    _, service = _setup_calendars(config_file, verbose)
    try:
        result = service.list_calendars(page=page, size=size)
    except SchedulingError as e:
        _fail(e)

    if not result.items:
        console.print("[yellow]No calendars found.[/yellow]")
        return

    table = Table(
        title=f"Calendars (page {result.page + 1}/{result.total_pages}, {result.total} total)",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold yellow")
    table.add_column("Owner")
    table.add_column("Version", justify="right")

    for calendar in result.items:
        table.add_row(calendar.id, calendar.name, calendar.owner_id, str(calendar.version))

    console.print(table)


@calendar_app.command("create")
def create_calendar(
    name: Annotated[str, typer.Argument(help="Calendar name")],
    owner_id: Annotated[str, typer.Option("--owner", help="Owner user ID")],
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Create a calendar.
    """
    _, service = _setup_calendars(config_file, verbose)
    try:
        calendar = service.create_calendar(name, owner_id, description)
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Calendar created:[/green] {calendar.id}")


@calendar_app.command("update")
def update_calendar(
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    name: Annotated[str, typer.Option("--name", help="Calendar name")],
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    expected_version: Annotated[
        Optional[int],
        typer.Option("--expected-version", help="Reject the update if the stored version differs."),
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Rename a calendar or change its description.
    """
    _, service = _setup_calendars(config_file, verbose)
    try:
        calendar = service.update_calendar(calendar_id, name, description, expected_version)
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Calendar updated:[/green] {calendar.id} (version {calendar.version})")


@calendar_app.command("delete")
def delete_calendar(
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Delete a calendar and its events.
    """
    _, service = _setup_calendars(config_file, verbose)
    try:
        service.delete_calendar(calendar_id)
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Calendar deleted:[/green] {calendar_id}")


@event_app.command("list")
def list_events(
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    start: Annotated[Optional[str], typer.Option("--from", help="Range start (ISO-8601)")] = None,
    end: Annotated[Optional[str], typer.Option("--to", help="Range end (ISO-8601)")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List a calendar's events, optionally only those inside a time range.
    """
    config, service = _setup_calendars(config_file, verbose)
    tz = config.timezone
    if (start is None) != (end is None):
        raise typer.BadParameter("--from and --to must be given together")

    try:
        if start is None:
            events = service.list_events(calendar_id)
        else:
            events = service.find_events(
                calendar_id,
                _parse_datetime(start, tz, "--from"),
                _parse_datetime(end, tz, "--to"),
            )
    except SchedulingError as e:
        _fail(e)

    if not events:
        console.print("[yellow]No events found.[/yellow]")
        return

    table = Table(title=f"Events in {calendar_id}", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold yellow")
    table.add_column("Time")
    table.add_column("Version", justify="right")

    for event in events:
        table.add_row(event.id, event.title, str(event.slot), str(event.version))

    console.print(table)


@event_app.command("create")
def create_event(
    calendar_id: Annotated[str, typer.Argument(help="Calendar ID")],
    title: Annotated[str, typer.Option("--title", "-t", help="Event title")],
    start: Annotated[str, typer.Option("--start", help="Event start (ISO-8601)")],
    end: Annotated[str, typer.Option("--end", help="Event end (ISO-8601)")],
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    location: Annotated[Optional[str], typer.Option("--location", help="Location")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Add an event to a calendar.
    """
    config, service = _setup_calendars(config_file, verbose)
    tz = config.timezone

    try:
        event = service.create_event(
            calendar_id=calendar_id,
            title=title,
            start=_parse_datetime(start, tz, "--start"),
            end=_parse_datetime(end, tz, "--end"),
            description=description,
            location=location,
        )
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Event created:[/green] {event.id} ({event.slot})")


@event_app.command("update")
def update_event(
    event_id: Annotated[str, typer.Argument(help="Event ID")],
    title: Annotated[str, typer.Option("--title", "-t", help="Event title")],
    start: Annotated[str, typer.Option("--start", help="Event start (ISO-8601)")],
    end: Annotated[str, typer.Option("--end", help="Event end (ISO-8601)")],
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    location: Annotated[Optional[str], typer.Option("--location", help="Location")] = None,
    expected_version: Annotated[
        Optional[int],
        typer.Option("--expected-version", help="Reject the update if the stored version differs."),
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Update an event's details and time.
    """
    config, service = _setup_calendars(config_file, verbose)
    tz = config.timezone

    try:
        event = service.update_event(
            event_id=event_id,
            title=title,
            start=_parse_datetime(start, tz, "--start"),
            end=_parse_datetime(end, tz, "--end"),
            description=description,
            location=location,
            expected_version=expected_version,
        )
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Event updated:[/green] {event.id} ({event.slot}, version {event.version})")


@event_app.command("delete")
def delete_event(
    event_id: Annotated[str, typer.Argument(help="Event ID")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Delete an event.
    """
    _, service = _setup_calendars(config_file, verbose)
    try:
        service.delete_event(event_id)
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Event deleted:[/green] {event_id}")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]meetingscheduler[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
