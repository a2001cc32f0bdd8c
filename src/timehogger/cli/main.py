"""Main CLI interface for TimeHogger."""

import contextlib
import json
from datetime import date
from pathlib import Path
from typing import Iterator, Optional, Union

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from timehogger.config import Settings
from timehogger.core.aggregation import TimeRange, daily_range, overview, select_window
from timehogger.core.clock import now_ms, to_datetime
from timehogger.core.errors import NotFound, TimeHoggerError
from timehogger.core.export import detailed_rows, export_filename, summary_rows, write_csv
from timehogger.core.formatting import best_unit_for, format_time
from timehogger.core.repository import PersonRepository
from timehogger.core.timer import current_session_elapsed, total_time
from timehogger.core.tracker import TimeTracker
from timehogger.log import setup_logging
from timehogger.models.person import Person
from timehogger.models.session import CurrentSession

console = Console()

LEVEL_STYLES = {"success": "green", "info": "blue", "warning": "yellow", "error": "red"}
RANGE_CHOICES = [r.value for r in TimeRange]
MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


@contextlib.contextmanager
def _handle_errors() -> Iterator[None]:
    """Turn core errors into a red message and a non-zero exit."""
    try:
        yield
    except TimeHoggerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e


def _get_tracker(ctx: click.Context) -> TimeTracker:
    """Build the tracker lazily so ``--help`` never touches the data file."""
    obj = ctx.ensure_object(dict)
    if "tracker" not in obj:
        settings: Settings = obj["settings"]
        repository = PersonRepository(settings.data_file)
        obj["tracker"] = TimeTracker(
            repository, clock=now_ms, notification_limit=settings.notification_limit
        )
    return obj["tracker"]


def _resolve_person(tracker: TimeTracker, ref: str) -> Person:
    """Look a person up by id, or by case-insensitive exact name."""
    if ref.isdigit():
        return tracker.get(int(ref))
    matches = [p for p in tracker.persons if p.name.lower() == ref.strip().lower()]
    if not matches:
        raise NotFound(f"No person named {ref!r}")
    return matches[0]


def _session_ref(ref: str) -> Union[int, str]:
    return int(ref) if ref.isdigit() else ref


def _print_notifications(tracker: TimeTracker, since: int) -> None:
    for notification in list(tracker.notifications)[since:]:
        style = LEVEL_STYLES.get(notification.level, "white")
        console.print(f"[{style}]{notification.message}[/{style}]")


@contextlib.contextmanager
def _mutation(ctx: click.Context) -> Iterator[TimeTracker]:
    """Yield the tracker and echo the notifications the block produced."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        since = len(tracker.notifications)
        yield tracker
        _print_notifications(tracker, since)


def _format_timestamp(timestamp: int) -> str:
    return to_datetime(timestamp).strftime("%Y-%m-%d %H:%M:%S")


@click.group()
@click.version_option(package_name="timehogger")
@click.option(
    "--data-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON data file (default: ~/.timehogger/data/timehogger-data.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log to stderr as well as the debug log")
@click.pass_context
def main(ctx: click.Context, data_file: Optional[Path], verbose: bool):
    """TimeHogger - track who spends time on what."""
    settings = Settings.load(data_file=data_file)
    setup_logging(settings, verbose=verbose)
    ctx.ensure_object(dict)["settings"] = settings


@main.command()
@click.pass_context
def init(ctx: click.Context):
    """Create the data file."""
    settings: Settings = ctx.obj["settings"]
    repository = PersonRepository(settings.data_file)
    if repository.exists():
        console.print(f"[yellow]Data file already exists: {settings.data_file}[/yellow]")
        return
    repository.init()
    console.print(f"[green]✅ Initialized TimeHogger data in {settings.data_file}[/green]")


@main.command()
@click.pass_context
def health(ctx: click.Context):
    """Show where data is stored and whether it exists."""
    settings: Settings = ctx.obj["settings"]
    console.print_json(json.dumps(PersonRepository(settings.data_file).health()))


# --- Directory ---


@main.command()
@click.argument("name")
@click.option("--avatar", default=None, help="Emoji or photo URL")
@click.option("--photo", is_flag=True, help="Treat --avatar as a photo URL")
@click.option("--color", default=None, help="Display color, e.g. #3B82F6")
@click.pass_context
def add(ctx: click.Context, name: str, avatar: Optional[str], photo: bool, color: Optional[str]):
    """Add a person."""
    with _mutation(ctx) as tracker:
        profile = {"avatar": avatar, "color": color, "avatar_type": "photo" if photo else None}
        person = tracker.add_person(name, **{k: v for k, v in profile.items() if v is not None})
        console.print(f"[bold]ID:[/bold] {person.id}")


@main.command()
@click.argument("person")
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, person: str, name: str):
    """Rename a person."""
    with _mutation(ctx) as tracker:
        tracker.update_person(_resolve_person(tracker, person).id, name=name)


@main.command()
@click.argument("person")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def remove(ctx: click.Context, person: str, yes: bool):
    """Delete a person and all their sessions."""
    with _mutation(ctx) as tracker:
        target = _resolve_person(tracker, person)
        if not yes and not click.confirm(f"Delete {target.name}?"):
            console.print("Cancelled.")
            return
        tracker.delete_person(target.id)


@main.command(name="list")
@click.option("--search", "-s", default=None, help="Only names containing this text")
@click.pass_context
def list_persons(ctx: click.Context, search: Optional[str]):
    """List persons with their live totals."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        persons = tracker.search(search) if search else tracker.persons
        now = tracker.clock()

        if not persons:
            console.print("[yellow]No persons found.[/yellow]")
            return

        table = Table(title="Persons")
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Total", justify="right")
        table.add_column("Current", justify="right")
        table.add_column("Status")
        for person in persons:
            table.add_row(
                str(person.id),
                f"{person.avatar} {person.name}",
                format_time(total_time(person, now)),
                format_time(current_session_elapsed(person, now)) if person.is_running else "",
                "[green]Running[/green]" if person.is_running else "Stopped",
            )
        console.print(table)
        console.print(f"[bold]Active timers:[/bold] {tracker.running_count()}")


# --- Timers ---


@main.command()
@click.argument("person")
@click.pass_context
def start(ctx: click.Context, person: str):
    """Start a person's timer."""
    with _mutation(ctx) as tracker:
        tracker.start(_resolve_person(tracker, person).id)


@main.command()
@click.argument("person")
@click.pass_context
def stop(ctx: click.Context, person: str):
    """Stop a person's timer and record the session."""
    with _mutation(ctx) as tracker:
        tracker.stop(_resolve_person(tracker, person).id)


@main.command()
@click.argument("person")
@click.pass_context
def toggle(ctx: click.Context, person: str):
    """Start the timer if stopped, stop it if running."""
    with _mutation(ctx) as tracker:
        tracker.toggle(_resolve_person(tracker, person).id)


@main.command(name="stop-all")
@click.pass_context
def stop_all(ctx: click.Context):
    """Stop every running timer."""
    with _mutation(ctx) as tracker:
        if tracker.stop_all() == 0:
            console.print("No timers running.")


@main.command()
@click.argument("person")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(ctx: click.Context, person: str, yes: bool):
    """Erase a person's sessions and discard a running timer."""
    with _mutation(ctx) as tracker:
        target = _resolve_person(tracker, person)
        if not yes and not click.confirm(f"Erase all sessions of {target.name}?"):
            console.print("Cancelled.")
            return
        tracker.reset(target.id)


@main.command(name="reset-all")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset_all(ctx: click.Context, yes: bool):
    """Erase everyone's sessions."""
    with _mutation(ctx) as tracker:
        if not yes and not click.confirm("Are you sure you want to reset all timers?"):
            console.print("Cancelled.")
            return
        tracker.reset_all()


# --- Sessions ---


@main.command()
@click.argument("person")
@click.pass_context
def sessions(ctx: click.Context, person: str):
    """Show a person's sessions."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        editor = tracker.edit_sessions(_resolve_person(tracker, person).id)

        count = len(editor)
        console.print(
            f"[bold]{editor.person.name}[/bold] - total time: {format_time(editor.total_time())}"
            f" • {count} session{'s' if count != 1 else ''}"
        )
        table = Table()
        table.add_column("Session")
        table.add_column("Start")
        table.add_column("End")
        table.add_column("Duration", justify="right")
        for entry in editor.entries:
            if isinstance(entry, CurrentSession):
                table.add_row(
                    "[green]current[/green]",
                    _format_timestamp(entry.start_time),
                    "[green]running[/green]",
                    format_time(entry.duration),
                )
            else:
                table.add_row(
                    str(entry.id),
                    _format_timestamp(entry.start_time),
                    _format_timestamp(entry.end_time),
                    format_time(entry.duration),
                )
        console.print(table)


@main.command(name="session-add")
@click.argument("person")
@click.argument("start_time", metavar="START")
@click.argument("end_time", metavar="END")
@click.pass_context
def session_add(ctx: click.Context, person: str, start_time: str, end_time: str):
    """Record a session manually (e.g. 2026-03-02T09:00 2026-03-02T10:30)."""
    with _mutation(ctx) as tracker:
        draft = tracker.add_session(_resolve_person(tracker, person).id, start_time, end_time)
        console.print(f"[bold]Session:[/bold] {draft.id} ({format_time(draft.duration)})")


@main.command(name="session-edit")
@click.argument("person")
@click.argument("session")
@click.option("--start", "start_time", default=None, help="New start date/time")
@click.option("--end", "end_time", default=None, help="New end date/time")
@click.pass_context
def session_edit(
    ctx: click.Context, person: str, session: str, start_time: Optional[str], end_time: Optional[str]
):
    """Change the start and/or end of a recorded session."""
    if start_time is None and end_time is None:
        raise click.UsageError("Give --start and/or --end")
    with _mutation(ctx) as tracker:
        tracker.edit_session(
            _resolve_person(tracker, person).id,
            _session_ref(session),
            start=start_time,
            end=end_time,
        )


@main.command(name="session-delete")
@click.argument("person")
@click.argument("session")
@click.pass_context
def session_delete(ctx: click.Context, person: str, session: str):
    """Delete a recorded session."""
    with _mutation(ctx) as tracker:
        tracker.delete_session(_resolve_person(tracker, person).id, _session_ref(session))


# --- Statistics ---


@main.command()
@click.pass_context
def stats(ctx: click.Context):
    """All-time statistics per person."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        summary = overview(tracker.persons, tracker.clock())

        if not summary.rows:
            console.print("[yellow]No data to display at the moment.[/yellow]")
            console.print("Start timers to see statistics.")
            return

        table = Table(title=f"Detailed Statistics ({summary.unit.unit})")
        table.add_column("Person")
        table.add_column("Formatted Time", justify="right")
        table.add_column("Hours", justify="right")
        table.add_column("Days", justify="right")
        table.add_column("Sessions", justify="center")
        table.add_column("Status", justify="center")
        for row in summary.rows:
            table.add_row(
                row.name,
                row.formatted,
                f"{row.hours}h",
                f"{row.days}d",
                str(row.session_count),
                "[green]Running[/green]" if row.is_running else "Stopped",
            )
        console.print(table)
        console.print(
            Panel(
                f"[bold]Active people:[/bold] {summary.active_people}\n"
                f"[bold]Total time:[/bold] {format_time(summary.total_seconds)}\n"
                f"[bold]Currently running:[/bold] {summary.running_count}",
                title="Summary",
            )
        )


range_option = click.option(
    "--range",
    "time_range",
    type=click.Choice(RANGE_CHOICES),
    default=TimeRange.WEEK.value,
    show_default=True,
    help="Time window",
)


@main.command()
@range_option
@click.pass_context
def timeline(ctx: click.Context, time_range: str):
    """Sessions of everyone in a time window, oldest first."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        window = select_window(tracker.persons, TimeRange(time_range), tracker.clock())
        if window.is_empty:
            console.print("[yellow]No sessions in this period.[/yellow]")
            return

        table = Table(title=f"Sessions {_format_timestamp(window.start)} → {_format_timestamp(window.end)}")
        table.add_column("Person")
        table.add_column("Start")
        table.add_column("End")
        table.add_column("Duration", justify="right")
        for entry in window.entries:
            table.add_row(
                entry.person_name,
                _format_timestamp(entry.start_time),
                "[green]running[/green]" if entry.is_running else _format_timestamp(entry.end_time),
                format_time(entry.duration),
            )
        console.print(table)


@main.command()
@range_option
@click.pass_context
def daily(ctx: click.Context, time_range: str):
    """Time per calendar day in a window."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        window = select_window(tracker.persons, daily_range(TimeRange(time_range)), tracker.clock())
        if window.is_empty:
            console.print("[yellow]No sessions in this period.[/yellow]")
            return

        person_ids = window.person_ids()
        names = {p.id: p.name for p in tracker.persons}
        days = window.daily_totals(person_ids)
        unit = best_unit_for(max((d.total for d in days), default=0))

        table = Table(title=f"Daily time ({unit.unit})")
        table.add_column("Day")
        for pid in person_ids:
            table.add_column(names.get(pid, str(pid)), justify="right")
        table.add_column("Total", justify="right")
        for day in days:
            table.add_row(
                day.day.strftime("%a %b %d"),
                *[unit.label(day.per_person[pid]) for pid in person_ids],
                unit.label(day.total),
            )
        console.print(table)


@main.command()
@range_option
@click.pass_context
def cumulative(ctx: click.Context, time_range: str):
    """Running total per person over a window."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        window = select_window(tracker.persons, TimeRange(time_range), tracker.clock())
        if window.is_empty:
            console.print("[yellow]No sessions in this period.[/yellow]")
            return

        names = {p.id: p.name for p in tracker.persons}
        series = window.cumulative_series()
        unit = best_unit_for(max((pts[-1].seconds for pts in series.values()), default=0))
        for pid, points in series.items():
            table = Table(title=names.get(pid, str(pid)))
            table.add_column("Time")
            table.add_column(f"Cumulative ({unit.unit})", justify="right")
            for point in points:
                table.add_row(_format_timestamp(point.timestamp), unit.label(point.seconds))
            console.print(table)


@main.command()
@range_option
@click.pass_context
def leaderboard(ctx: click.Context, time_range: str):
    """Rank persons by time spent in a window."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        window = select_window(tracker.persons, TimeRange(time_range), tracker.clock())
        ranking = window.leaderboard()
        if not ranking:
            console.print("[yellow]No sessions in this period.[/yellow]")
            return

        table = Table(title="Leaderboard")
        table.add_column("#", justify="right")
        table.add_column("Person")
        table.add_column("Total", justify="right")
        table.add_column("Sessions", justify="right")
        table.add_column("Average", justify="right")
        for entry in ranking:
            medal = MEDALS.get(entry.rank, "") if len(ranking) > 1 else ""
            table.add_row(
                f"{medal} {entry.rank}".strip(),
                entry.name + (" [green](running)[/green]" if entry.is_running else ""),
                format_time(entry.total_duration),
                str(entry.session_count),
                format_time(entry.average_duration),
            )
        console.print(table)


# --- Export and backup ---


@main.command()
@click.argument("kind", type=click.Choice(["summary", "detailed"]), default="summary")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="CSV file to write (default: dated file in the current directory)",
)
@click.pass_context
def export(ctx: click.Context, kind: str, output: Optional[Path]):
    """Export totals or every session as CSV."""
    with _handle_errors():
        tracker = _get_tracker(ctx)
        now = tracker.clock()
        table = summary_rows(tracker.persons, now) if kind == "summary" else detailed_rows(tracker.persons, now)
        path = write_csv(output or Path(export_filename(kind, date.today())), table)
        console.print(f"[green]Exported {len(table.rows)} rows to {path}[/green]")


@main.command()
@click.pass_context
def backup(ctx: click.Context):
    """Write a timestamped copy of the data file."""
    with _mutation(ctx) as tracker:
        tracker.backup()


if __name__ == "__main__":
    main()
