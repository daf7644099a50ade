"""
Main CLI application using Typer.
"""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.api_client import ApiReservationRepository
from ..adapters.cached_store import CachedReservationRepository
from ..adapters.memory_store import InMemoryReservationRepository
from ..adapters.session_auth import SessionAuthenticator, StaticAuthProvider, TokenAuthProvider
from ..adapters.yaml_store import YamlReservationRepository
from ..config import AppConfig
from ..domain.exceptions import ReservationError
from ..domain.models import Reservation, format_time, parse_date
from ..domain.slot_generator import SlotGenerator
from ..domain.validation import ReservationValidator
from ..services.reservation_service import ReservationService

app = typer.Typer(
    name="carreservation",
    help="Book time slots on the shared car",
    add_completion=False
)

console = Console()

MOCK_OWNER_ID = "mock-user"

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use an empty in-memory store and a mock user.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show log output.")] = False,
):
    """
    Car reservation command line.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    try:
        return AppConfig.load_or_default(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _build_auth(config: AppConfig, mock: bool):
    if mock:
        return StaticAuthProvider(MOCK_OWNER_ID)
    if config.storage.backend == "api":
        return TokenAuthProvider(config.storage.api_token)
    return SessionAuthenticator(
        session_file=config.auth.session_file,
        use_keyring=config.auth.use_keyring,
    )


def _build_service(config: AppConfig, mock: bool = False, step: Optional[int] = None) -> ReservationService:
    """Wire the configured repository, identity provider and domain logic."""
    generator = SlotGenerator(config.slots.to_window(step))
    validator = ReservationValidator(checker=generator.checker)

    backend = "memory" if mock else config.storage.backend
    if backend == "memory":
        repository = InMemoryReservationRepository(validator=validator)
    elif backend == "api":
        repository = ApiReservationRepository(
            base_url=config.storage.api_url or "",
            access_token=config.storage.api_token,
            timeout=config.storage.timeout_seconds,
        )
    else:
        repository = YamlReservationRepository(config.storage.data_dir, validator=validator)

    if config.cache_ttl_seconds > 0:
        repository = CachedReservationRepository(repository, ttl_seconds=config.cache_ttl_seconds)

    return ReservationService(
        repository=repository,
        auth=_build_auth(config, mock),
        slot_generator=generator,
        validator=validator,
    )


def _run(coroutine):
    """Run a service call, turning domain errors into a clean exit."""
    try:
        return asyncio.run(coroutine)
    except ReservationError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(1)


def _parse_day(day: str) -> date:
    try:
        return parse_date(day)
    except ReservationError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(1)


def _today(config: AppConfig) -> str:
    today = pendulum.today(config.timezone) if config.timezone else pendulum.today()
    return today.format("YYYY-MM-DD")


def _print_reservations(reservations: List[Reservation], title: str) -> None:
    if not reservations:
        console.print("[yellow]No reservations found.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Start", style="bold")
    table.add_column("End", style="bold")
    table.add_column("Owner")

    for reservation in reservations:
        table.add_row(
            reservation.id,
            reservation.date.isoformat(),
            format_time(reservation.start_time),
            format_time(reservation.end_time),
            reservation.owner_id,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    day: Annotated[Optional[str], typer.Argument(help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Reservation being edited; its time counts as free.")] = None,
    step: Annotated[Optional[int], typer.Option("--step", help="Slot length in minutes (overrides config).")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show the slots of a day and whether they can be booked.

    Examples:

        carreservation slots 2025-03-01
        carreservation slots 2025-03-01 --step 30
        carreservation slots 2025-03-01 --exclude 6f1c...
    """
    config = _load_config(config_file)
    target = day or _today(config)

    try:
        service = _build_service(config, mock=mock, step=step)
    except ReservationError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        raise typer.Exit(1)

    result = _run(service.available_slots(target, exclude_id=exclude))

    table = Table(title=f"Slots on {target}", show_header=True, header_style="bold cyan")
    table.add_column("Time", style="bold")
    table.add_column("Status")
    for slot in result:
        status = "[green]available[/green]" if slot.available else "[red]booked[/red]"
        table.add_row(f"{format_time(slot.start)} – {format_time(slot.end)}", status)

    console.print()
    console.print(table)
    free_count = sum(1 for slot in result if slot.available)
    console.print(f"\n{free_count} of {len(result)} slot(s) available.\n")


@app.command()
def free(
    day: Annotated[Optional[str], typer.Argument(help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Reservation being edited.")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show the free stretches of a day.
    """
    config = _load_config(config_file)
    target = day or _today(config)
    service = _build_service(config, mock=mock)

    ranges = _run(service.free_ranges(target, exclude_id=exclude))

    if not ranges:
        console.print(f"[yellow]The car is fully booked on {target}.[/yellow]")
        return

    console.print(f"\n[bold green]Free on {target}:[/bold green]")
    for interval in ranges:
        console.print(f"  {interval} ({interval.duration_minutes()} min)")
    console.print()


@app.command()
def check(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    end: Annotated[str, typer.Argument(help="End time (HH:MM)")],
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Reservation being edited.")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Check whether a time range could be booked, without booking it.
    """
    config = _load_config(config_file)
    service = _build_service(config, mock=mock)

    result = _run(service.check_availability(day, start, end, exclude_id=exclude))

    if result.accepted:
        console.print(f"[green]✓ {start} – {end} on {day} is available.[/green]")
        return

    console.print(f"[red]✗ {result.message}[/red]")
    if result.conflicting_ids:
        console.print(f"  Conflicts with: {', '.join(result.conflicting_ids)}")
    raise typer.Exit(1)


@app.command()
def book(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    end: Annotated[str, typer.Argument(help="End time (HH:MM)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book the car.

    Example:

        carreservation book 2025-03-01 09:00 12:00
    """
    config = _load_config(config_file)
    service = _build_service(config, mock=mock)

    reservation = _run(service.create_reservation(day, start, end))
    console.print(
        f"[bold green]✓ Booked {reservation.interval} on {reservation.date.isoformat()}[/bold green] "
        f"(id {reservation.id})"
    )


@app.command()
def update(
    reservation_id: Annotated[str, typer.Argument(help="Reservation id")],
    day: Annotated[Optional[str], typer.Option("--date", help="New date (YYYY-MM-DD)")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="New start time (HH:MM)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="New end time (HH:MM)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Move one of your reservations.
    """
    config = _load_config(config_file)
    service = _build_service(config, mock=mock)

    reservation = _run(service.update_reservation(reservation_id, day=day, start_time=start, end_time=end))
    console.print(
        f"[bold green]✓ Reservation {reservation.id} is now {reservation.interval} "
        f"on {reservation.date.isoformat()}[/bold green]"
    )


@app.command()
def cancel(
    reservation_id: Annotated[str, typer.Argument(help="Reservation id")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Cancel one of your reservations.
    """
    config = _load_config(config_file)
    service = _build_service(config, mock=mock)

    removed = _run(service.cancel_reservation(reservation_id))
    console.print(f"[green]✓ Cancelled {removed.interval} on {removed.date.isoformat()}.[/green]")


@app.command(name="list")
def list_reservations(
    day: Annotated[Optional[str], typer.Argument(help="Only this date (YYYY-MM-DD)")] = None,
    mine: Annotated[bool, typer.Option("--mine", help="Only your own reservations.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List reservations.
    """
    config = _load_config(config_file)
    service = _build_service(config, mock=mock)

    if mine:
        reservations = _run(service.my_reservations())
        if day:
            target = _parse_day(day)
            reservations = [r for r in reservations if r.date == target]
        _print_reservations(reservations, "Your reservations")
    else:
        reservations = _run(service.list_reservations(day))
        _print_reservations(reservations, f"Reservations on {day}" if day else "All reservations")


@app.command()
def login(
    owner_id: Annotated[str, typer.Argument(help="Your user id")],
    config_file: ConfigOption = None,
):
    """
    Sign in as a user for the following commands.
    """
    config = _load_config(config_file)
    authenticator = SessionAuthenticator(
        session_file=config.auth.session_file,
        use_keyring=config.auth.use_keyring,
    )

    try:
        authenticator.login(owner_id)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Signed in as [bold]{owner_id.strip()}[/bold][/green] ({authenticator.backend})")


@app.command()
def logout(config_file: ConfigOption = None):
    """
    Forget the signed-in user.
    """
    config = _load_config(config_file)
    SessionAuthenticator(
        session_file=config.auth.session_file,
        use_keyring=config.auth.use_keyring,
    ).logout()
    console.print("[green]✓ Signed out.[/green]")


@app.command()
def whoami(config_file: ConfigOption = None):
    """
    Show the signed-in user.
    """
    config = _load_config(config_file)
    owner_id = _build_auth(config, mock=False).current_owner_id()

    if owner_id is None:
        console.print("[yellow]Not signed in.[/yellow]")
        raise typer.Exit(1)
    console.print(owner_id)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]carreservation[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
