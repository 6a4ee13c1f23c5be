"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.json_store import JsonScheduleStore
from ..adapters.rest_store import RestScheduleStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SlotValidationError, StoreError
from ..domain.models import AvailabilityRule, format_wall_time
from ..domain.slot_calculator import SlotCalculator
from ..services.availability import AvailabilityService

app = typer.Typer(
    name="bookingslots",
    help="Compute bookable appointment slots",
    add_completion=False
)

console = Console()

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Compute bookable appointment slots from weekly rules, bookings and time off.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)]
    )


def _load_config(config_file: Optional[Path]) -> Tuple[AppConfig, Path]:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path), config_path


def _build_store(config: AppConfig, config_path: Path):
    if config.store.backend == "rest":
        return RestScheduleStore(
            base_url=config.store.base_url,
            api_key=config.store.api_key,
            timeout=config.store.timeout_seconds,
            occupying_statuses=frozenset(config.policy.occupying_statuses)
        )

    return JsonScheduleStore(
        data_file=config.resolve_data_file(config_path),
        occupying_statuses=frozenset(config.policy.occupying_statuses)
    )


def _build_service(config: AppConfig, config_path: Path) -> AvailabilityService:
    return AvailabilityService(
        store=_build_store(config, config_path),
        slot_calculator=SlotCalculator(policy=config.get_policy())
    )


def _open_json_store(config_file: Optional[Path]) -> Tuple[AppConfig, JsonScheduleStore]:
    config, config_path = _load_config(config_file)
    store = _build_store(config, config_path)

    if not isinstance(store, JsonScheduleStore):
        console.print("[yellow]This command is only supported for the json store.[/yellow]")
        raise typer.Exit(1)

    return config, store


def _parse_timestamp(value: str, option: str, tz: str = "UTC") -> DateTime:
    """Parse an ISO 8601 timestamp; values without an offset are read in ``tz``."""
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        raise SlotValidationError(f"Invalid {option} timestamp {value!r}: {e}") from e

    if not isinstance(parsed, DateTime):
        raise SlotValidationError(f"{option} must be a full timestamp, got {value!r}")

    return parsed


def _parse_now(value: Optional[str]) -> Optional[DateTime]:
    if value is None:
        return None
    return _parse_timestamp(value, "--now")


def _parse_day(value: str) -> int:
    if value.isdigit():
        return int(value)

    lowered = value.lower()
    for index, name in enumerate(DAY_NAMES):
        if lowered in (name.lower(), name[:3].lower()):
            return index

    raise SlotValidationError(f"Unknown day {value!r}; use 0-6 (0=Sunday) or a day name")


def _parse_rule(spec: str) -> AvailabilityRule:
    """Parse a rule given as ``DAY HH:MM-HH:MM``, e.g. ``tue 09:00-17:00``."""
    parts = spec.split()
    if len(parts) != 2 or "-" not in parts[1]:
        raise SlotValidationError(f"Expected a rule as 'DAY HH:MM-HH:MM', got {spec!r}")

    day, hours = parts
    start_time, end_time = hours.split("-", 1)
    return AvailabilityRule.from_strings(_parse_day(day), start_time, end_time)


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Target date (YYYY-MM-DD) in the business timezone")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    privileged: Annotated[bool, typer.Option("--privileged", help="Operator view: ignore time off.")] = False,
    now: Annotated[Optional[str], typer.Option("--now", help="Simulated current time (ISO 8601).")] = None,
    config_file: ConfigOption = None,
):
    """
    List bookable start times for a date.

    Examples:

        bookingslots slots 2024-11-25

        bookingslots slots 2024-11-25 --duration 60 --privileged
    """
    try:
        config, config_path = _load_config(config_file)
        service = _build_service(config, config_path)
        minutes = duration if duration is not None else config.policy.default_duration_minutes

        result = service.compute_available_slots(
            target_date=date,
            service_duration_minutes=minutes,
            is_privileged=privileged,
            now=_parse_now(now)
        )

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except StoreError as e:
        console.print(f"[bold red]Schedule data unavailable:[/bold red] {e}")
        raise typer.Exit(1)

    if result.is_closed:
        console.print(f"[yellow]Closed on {date}.[/yellow]")
        return

    if not result.slots:
        console.print(f"[yellow]Fully booked on {date}.[/yellow]")
        return

    console.print(f"[bold green]{len(result.slots)} slot(s) on {date} ({minutes} min):[/bold green]")
    for slot in result.slots:
        console.print(f"  {slot}")


@app.command()
def check(
    date: Annotated[str, typer.Argument(help="Target date (YYYY-MM-DD)")],
    start_time: Annotated[str, typer.Argument(help="Start time (HH:MM) in the business timezone")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    privileged: Annotated[bool, typer.Option("--privileged", help="Operator view: ignore rules and time off.")] = False,
    now: Annotated[Optional[str], typer.Option("--now", help="Simulated current time (ISO 8601).")] = None,
    config_file: ConfigOption = None,
):
    """
    Check whether a single start time can still be booked.
    """
    try:
        config, config_path = _load_config(config_file)
        service = _build_service(config, config_path)
        minutes = duration if duration is not None else config.policy.default_duration_minutes

        result = service.check_slot(
            target_date=date,
            start_time=start_time,
            service_duration_minutes=minutes,
            is_privileged=privileged,
            now=_parse_now(now)
        )

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except StoreError as e:
        console.print(f"[bold red]Schedule data unavailable:[/bold red] {e}")
        raise typer.Exit(1)

    if result.available:
        console.print(f"[green]✓ {date} {start_time} is available.[/green]")
    else:
        console.print(f"[yellow]✗ {date} {start_time} is unavailable ({result.reason}).[/yellow]")
        raise typer.Exit(2)


@app.command()
def rules(config_file: ConfigOption = None):
    """
    List the configured weekly availability rules.
    """
    try:
        config, store = _open_json_store(config_file)
        all_rules = store.get_all_rules()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except StoreError as e:
        console.print(f"[bold red]Schedule data unavailable:[/bold red] {e}")
        raise typer.Exit(1)

    if not all_rules:
        console.print("[yellow]No availability rules defined.[/yellow]")
        return

    table = Table(
        title=f"Weekly availability ({config.timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Opens")
    table.add_column("Closes")

    for rule in all_rules:
        table.add_row(
            DAY_NAMES[rule.day_of_week],
            format_wall_time(rule.start_time),
            format_wall_time(rule.end_time)
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def set_rules(
    specs: Annotated[List[str], typer.Argument(help="Rules as 'DAY HH:MM-HH:MM', e.g. 'tue 09:00-17:00'")],
    config_file: ConfigOption = None,
):
    """
    Replace all weekly availability rules.

    Examples:

        bookingslots set-rules "tue 09:00-17:00" "sat 10:00-14:00"
    """
    try:
        _, store = _open_json_store(config_file)
        new_rules = [_parse_rule(spec) for spec in specs]
        store.replace_rules(new_rules)

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except StoreError as e:
        console.print(f"[bold red]Schedule data unavailable:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Saved {len(new_rules)} rule(s).[/green]")


@app.command()
def add_time_off(
    start: Annotated[str, typer.Argument(help="Start (ISO 8601); without an offset, business timezone")],
    end: Annotated[str, typer.Argument(help="End (ISO 8601); without an offset, business timezone")],
    reason: Annotated[Optional[str], typer.Option("--reason", "-r", help="Shown to staff only")] = None,
    config_file: ConfigOption = None,
):
    """
    Block out a period of time off.

    Examples:

        bookingslots add-time-off "2024-11-28 00:00" "2024-11-29 00:00" -r Thanksgiving
    """
    try:
        config, store = _open_json_store(config_file)
        block = store.add_time_off(
            _parse_timestamp(start, "start", tz=config.timezone),
            _parse_timestamp(end, "end", tz=config.timezone),
            reason=reason
        )

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except StoreError as e:
        console.print(f"[bold red]Schedule data unavailable:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Added time off {block.id}[/green]")


@app.command()
def remove_time_off(
    block_id: Annotated[str, typer.Argument(help="Id printed by add-time-off")],
    config_file: ConfigOption = None,
):
    """
    Remove a time-off block.
    """
    try:
        _, store = _open_json_store(config_file)
        removed = store.remove_time_off(block_id)

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except StoreError as e:
        console.print(f"[bold red]Schedule data unavailable:[/bold red] {e}")
        raise typer.Exit(1)

    if not removed:
        console.print(f"[yellow]No time off with id {block_id}.[/yellow]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Removed time off {block_id}[/green]")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
