"""Tabular exports of the person list (summary and per-session detail)."""

import csv
from datetime import date
from pathlib import Path
from typing import Iterable, List

from pydantic import BaseModel

from timehogger.core.clock import to_datetime
from timehogger.core.errors import RepositoryError
from timehogger.core.formatting import format_time, seconds_to_days, seconds_to_hours
from timehogger.core.timer import current_session, total_time
from timehogger.models.person import Person

SUMMARY_HEADERS = [
    "Name",
    "Total Time (dd hh:mm:ss)",
    "Total Time (hours)",
    "Total Time (days)",
    "Status",
]

DETAILED_HEADERS = [
    "Name",
    "Session ID",
    "Start Date",
    "Start Time",
    "End Date",
    "End Time",
    "Duration (dd hh:mm:ss)",
    "Duration (hours)",
    "Duration (days)",
    "Status",
]

FILENAME_PREFIXES = {
    "summary": "timehogger-summary",
    "detailed": "timehogger-detailed-sessions",
}


class Table(BaseModel):
    headers: List[str]
    rows: List[List[str]]


def _us_date(timestamp: int) -> str:
    value = to_datetime(timestamp)
    return f"{value.month}/{value.day}/{value.year}"


def _us_time(timestamp: int) -> str:
    value = to_datetime(timestamp)
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d}:{value.second:02d} {suffix}"


def _status(person: Person) -> str:
    return "Running" if person.is_running else "Stopped"


def summary_rows(persons: Iterable[Person], now: int) -> Table:
    """One row per person with live totals."""
    rows = []
    for person in persons:
        total = total_time(person, now)
        rows.append(
            [
                person.name,
                format_time(total),
                seconds_to_hours(total),
                seconds_to_days(total),
                _status(person),
            ]
        )
    return Table(headers=SUMMARY_HEADERS, rows=rows)


def detailed_rows(persons: Iterable[Person], now: int) -> Table:
    """One row per session, plus a ``Current`` row for each running timer."""
    rows = []
    for person in persons:
        for session in person.sessions:
            rows.append(
                [
                    person.name,
                    str(session.id),
                    _us_date(session.start_time),
                    _us_time(session.start_time),
                    _us_date(session.end_time),
                    _us_time(session.end_time),
                    format_time(session.duration),
                    seconds_to_hours(session.duration),
                    seconds_to_days(session.duration),
                    "Completed",
                ]
            )
        running = current_session(person, now)
        if running is not None:
            rows.append(
                [
                    person.name,
                    "Current",
                    _us_date(running.start_time),
                    _us_time(running.start_time),
                    "",
                    "",
                    format_time(running.duration),
                    seconds_to_hours(running.duration),
                    seconds_to_days(running.duration),
                    "Running",
                ]
            )
    return Table(headers=DETAILED_HEADERS, rows=rows)


def export_filename(kind: str, today: date) -> str:
    """e.g. ``timehogger-summary-2026-03-02.csv``."""
    try:
        prefix = FILENAME_PREFIXES[kind]
    except KeyError:
        raise ValueError(f"Unknown export kind: {kind}") from None
    return f"{prefix}-{today.isoformat()}.csv"


def write_csv(path: Path, table: Table) -> Path:
    """Write ``table`` as UTF-8 CSV with a BOM, every cell quoted.

    Raises ``RepositoryError`` when the file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8-sig", newline="") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\n")
            writer.writerow(table.headers)
            writer.writerows(table.rows)
    except OSError as e:
        raise RepositoryError(f"Failed to write {path}: {e}") from e
    return path
