"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.mock_client import MockAvailabilityClient
from ..adapters.rest_client import AvailabilityClient
from ..config import AppConfig, load_config
from ..domain.availability_resolver import AvailabilityResolver
from ..domain.exceptions import ConfigurationError, SlotResolverError
from ..domain.models import (
    DAY_NAMES,
    AvailabilityRule,
    format_time_of_day,
    minutes_since_midnight,
    parse_calendar_date,
    parse_time_of_day,
    weekday_index,
)
from ..services.booking_slots import BookableSlotService

app = typer.Typer(
    name="slotresolver",
    help="Resolve provider availability rules into bookable appointment slots",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use bundled mock data instead of the backend.")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Bookable slot resolver for provider availability.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )


def _build_client(config: AppConfig, mock: bool):
    """Create the mock client or the REST client from configuration."""
    if mock:
        console.print("[yellow]⚠  MOCK MODE: using bundled test data[/yellow]\n")
        return MockAvailabilityClient(timezone=config.timezone)

    if not config.has_backend():
        raise ConfigurationError(
            "No backend configured. Set backend_url and api_key in config.yaml "
            "or use --mock."
        )

    return AvailabilityClient(
        base_url=config.get_rest_url(),
        api_key=config.resolve_api_key(),
        table=config.availability_table,
        bookings_table=config.bookings_table,
        timezone=config.timezone
    )


def _build_service(config: AppConfig, mock: bool) -> BookableSlotService:
    resolver = AvailabilityResolver(timezone=config.timezone)
    return BookableSlotService(repository=_build_client(config, mock), resolver=resolver)


def _fail(error: Exception):
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def dates(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Days ahead to expand weekly rules")] = None,
    today: Annotated[Optional[str], typer.Option("--today", help="Pretend today is this date (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List the dates a patient can book with a provider.

    Examples:

        slotresolver dates provider-1 --mock

        slotresolver dates provider-1 --horizon 28
    """
    try:
        config = load_config(config_file)
        service = _build_service(config, mock)
        horizon_days = horizon if horizon is not None else config.defaults.horizon_days
        start = parse_calendar_date(today) if today else None

        offerable = service.offerable_dates(
            provider_id=provider_id,
            horizon_days=horizon_days,
            today=start
        )
    except (FileNotFoundError, ValueError, SlotResolverError) as e:
        _fail(e)

    if not offerable:
        console.print("[yellow]⚠ No availability set.[/yellow]")
        return

    console.print(f"[bold green]✓ {len(offerable)} bookable date(s):[/bold green]\n")
    for day in offerable:
        console.print(f"  {DAY_NAMES[weekday_index(day)]}, {day.isoformat()}")


@app.command()
def times(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    date: Annotated[str, typer.Argument(help="Date to list start times for (YYYY-MM-DD)")],
    granularity: Annotated[Optional[int], typer.Option("--granularity", "-g", help="Minutes between start times")] = None,
    session: Annotated[Optional[int], typer.Option("--session", "-s", help="Session length in minutes")] = None,
    exclude_booked: Annotated[bool, typer.Option("--exclude-booked", help="Hide start times that are already booked.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List the start times offered on one date.
    """
    try:
        config = load_config(config_file)
        service = _build_service(config, mock)
        target_date = parse_calendar_date(date)

        offerable = service.offerable_times(
            provider_id=provider_id,
            target_date=target_date,
            granularity_minutes=granularity or config.defaults.granularity_minutes,
            session_minutes=session or config.defaults.session_minutes,
            exclude_booked=exclude_booked
        )
    except (FileNotFoundError, ValueError, SlotResolverError) as e:
        _fail(e)

    if not offerable:
        console.print(f"[yellow]⚠ No bookable times on {target_date.isoformat()}.[/yellow]")
        return

    console.print(f"[bold green]✓ {len(offerable)} bookable time(s) on {target_date.isoformat()}:[/bold green]\n")
    console.print("  " + "  ".join(offerable))


@app.command()
def schedule(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    date: Annotated[str, typer.Argument(help="Day to show (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show the active rules covering one day, one-off windows first.
    """
    try:
        config = load_config(config_file)
        service = _build_service(config, mock)
        target_date = parse_calendar_date(date)
        covering = service.rules_for_date(provider_id=provider_id, target_date=target_date)
    except (FileNotFoundError, ValueError, SlotResolverError) as e:
        _fail(e)

    heading = f"{DAY_NAMES[weekday_index(target_date)]}, {target_date.isoformat()}"
    if not covering:
        console.print(f"[yellow]⚠ No availability on {heading}.[/yellow]")
        return

    table = Table(
        title=f"Schedule of {provider_id} on {heading}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Window", style="bold yellow")

    for rule in covering:
        window = f"{format_time_of_day(rule.start_time)} - {format_time_of_day(rule.end_time)}"
        table.add_row(rule.rule_id or "-", rule.kind.value, window)

    console.print()
    console.print(table)
    console.print()


@app.command()
def rules(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show a provider's availability rules and any the resolver will ignore.
    """
    try:
        config = load_config(config_file)
        service = _build_service(config, mock)
        report = service.availability_report(provider_id=provider_id)
    except (FileNotFoundError, ValueError, SlotResolverError) as e:
        _fail(e)

    if not report.rules and not report.warnings:
        console.print("[yellow]No availability set.[/yellow]")
        return

    table = Table(
        title=f"Availability of {provider_id}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("When", style="bold yellow")
    table.add_column("Status")

    for rule in report.rules:
        table.add_row(rule.rule_id or "-", rule.kind.value, rule.describe(), "[green]ok[/green]")

    for warning in report.warnings:
        rule = warning.rule
        table.add_row(rule.rule_id or "-", rule.kind.value, rule.describe(), f"[red]{warning.reason}[/red]")

    console.print()
    console.print(table)
    console.print()


@app.command()
def add_rule(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    start: Annotated[str, typer.Option("--start", help="Window start (HH:MM)")],
    end: Annotated[str, typer.Option("--end", help="Window end (HH:MM)")],
    day: Annotated[Optional[int], typer.Option("--day", help="Weekday for a weekly rule (Sunday=0)")] = None,
    on_date: Annotated[Optional[str], typer.Option("--date", help="Date for a one-off rule (YYYY-MM-DD)")] = None,
    inactive: Annotated[bool, typer.Option("--inactive", help="Store the rule as inactive.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Add a weekly (--day) or one-off (--date) availability window.
    """
    try:
        if (day is None) == (on_date is None):
            raise ValueError("Pass exactly one of --day or --date.")

        start_time = parse_time_of_day(start)
        end_time = parse_time_of_day(end)
        if minutes_since_midnight(start_time) >= minutes_since_midnight(end_time):
            raise ValueError("End time must be after start time.")

        if day is not None:
            rule = AvailabilityRule.recurring(provider_id, day, start_time, end_time, active=not inactive)
        else:
            rule = AvailabilityRule.one_off(
                provider_id, parse_calendar_date(on_date), start_time, end_time, active=not inactive
            )

        config = load_config(config_file)
        created = _build_client(config, mock).create_rule(rule)
    except (FileNotFoundError, ValueError, SlotResolverError) as e:
        _fail(e)

    console.print(f"[green]✓ Added {created.describe()} (id {created.rule_id})[/green]")


@app.command()
def delete_rule(
    rule_id: Annotated[str, typer.Argument(help="Rule identifier")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Delete an availability rule.
    """
    try:
        config = load_config(config_file)
        _build_client(config, mock).delete_rule(rule_id)
    except (FileNotFoundError, ValueError, SlotResolverError) as e:
        _fail(e)

    console.print(f"[green]✓ Deleted rule {rule_id}[/green]")


@app.command()
def test_connection(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Check that the backend table API is reachable.
    """
    try:
        config = load_config(config_file)
        info = _build_client(config, mock).test_connection()
    except (FileNotFoundError, ValueError, SlotResolverError) as e:
        _fail(e)

    console.print(f"[bold green]✓ Connected[/bold green] (table: {info['table']})")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotresolver[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
