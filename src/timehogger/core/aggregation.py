"""Time-bucketed aggregation over every person's sessions.

Views are recomputed from scratch on each query: a unified timeline of all
sessions (plus one synthetic entry per running timer) is filtered to a
window, then summed per day, accumulated over time, or ranked.

Window filtering keeps a session only if it *starts* inside the window.
Sessions straddling the window start are excluded whole rather than
clipped, so window totals always match the session bars drawn for them.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from timehogger.core.clock import MS_PER_DAY, day_bounds, local_date
from timehogger.core.formatting import (
    ChartUnit,
    best_unit_for_persons,
    format_time,
    seconds_to_days,
    seconds_to_hours,
)
from timehogger.core.timer import current_session, total_time
from timehogger.models.person import Person


class TimeRange(str, Enum):
    """Window selector for aggregated views."""

    TODAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    ALL = "all"

    @property
    def days(self) -> Optional[int]:
        """Length of a rolling window, ``None`` for calendar/all-time ranges."""
        return {TimeRange.WEEK: 7, TimeRange.MONTH: 30}.get(self)


def daily_range(time_range: TimeRange) -> TimeRange:
    """Daily views need more than one day; ``24h`` is widened to ``7d``."""
    return TimeRange.WEEK if time_range is TimeRange.TODAY else time_range


class TimelineEntry(BaseModel):
    """One interval on the unified timeline, tagged with its owner."""

    person_id: int
    person_name: str
    color: str
    session_id: Optional[int]
    start_time: int
    end_time: int
    duration: int
    is_running: bool = False

    model_config = {"frozen": True}


def build_timeline(persons: Iterable[Person], now: int) -> List[TimelineEntry]:
    """Flatten all sessions and running timers, sorted by start time.

    The sort is stable, so entries starting at the same instant keep person
    order.
    """
    entries: List[TimelineEntry] = []
    for person in persons:
        for session in person.sessions:
            entries.append(
                TimelineEntry(
                    person_id=person.id,
                    person_name=person.name,
                    color=person.color,
                    session_id=session.id,
                    start_time=session.start_time,
                    end_time=session.end_time,
                    duration=session.duration,
                )
            )
        running = current_session(person, now)
        if running is not None:
            entries.append(
                TimelineEntry(
                    person_id=person.id,
                    person_name=person.name,
                    color=person.color,
                    session_id=None,
                    start_time=running.start_time,
                    end_time=running.end_time,
                    duration=running.duration,
                    is_running=True,
                )
            )
    entries.sort(key=lambda e: e.start_time)
    return entries


def window_bounds(
    time_range: TimeRange, now: int, timeline: Sequence[TimelineEntry]
) -> Tuple[int, int]:
    """Return ``(start, end)`` in epoch milliseconds for ``time_range``."""
    if time_range is TimeRange.TODAY:
        return day_bounds(local_date(now))
    if time_range.days is not None:
        return now - time_range.days * MS_PER_DAY, now
    earliest = timeline[0].start_time if timeline else now
    return min(earliest, now), now


class DailyTotal(BaseModel):
    """Seconds recorded on one local calendar day."""

    day: date
    per_person: Dict[int, int]
    total: int


class CumulativePoint(BaseModel):
    timestamp: int
    seconds: int


class LeaderboardEntry(BaseModel):
    rank: int
    person_id: int
    name: str
    color: str
    total_duration: int
    session_count: int
    average_duration: float
    is_running: bool


def _person_ids(entries: Sequence[TimelineEntry], person_ids: Optional[Sequence[int]]) -> List[int]:
    if person_ids is not None:
        return list(person_ids)
    return list(dict.fromkeys(entry.person_id for entry in entries))


def daily_totals(
    entries: Sequence[TimelineEntry],
    start: int,
    end: int,
    person_ids: Optional[Sequence[int]] = None,
) -> List[DailyTotal]:
    """Sum durations per local day of session start.

    Every day from the day of ``start`` through the day of ``end`` is present,
    with zeros where nothing was recorded, so the series has no gaps.
    ``person_ids`` fixes which persons get a (possibly zero) entry per day;
    by default those appearing in ``entries``.
    """
    ids = _person_ids(entries, person_ids)
    buckets: Dict[date, Dict[int, int]] = {}
    for entry in entries:
        per_person = buckets.setdefault(local_date(entry.start_time), {})
        per_person[entry.person_id] = per_person.get(entry.person_id, 0) + entry.duration

    first_day, last_day = local_date(start), local_date(end)
    result: List[DailyTotal] = []
    day = first_day
    while day <= last_day:
        recorded = buckets.get(day, {})
        per_person = {pid: recorded.get(pid, 0) for pid in ids}
        # Entries whose owner was not requested still count towards the day
        result.append(DailyTotal(day=day, per_person=per_person, total=sum(recorded.values())))
        day += timedelta(days=1)
    return result


def cumulative_series(
    entries: Sequence[TimelineEntry],
    start: int,
    end: int,
    person_ids: Optional[Sequence[int]] = None,
) -> Dict[int, List[CumulativePoint]]:
    """Running total per person, stepping up at each session's end.

    Each series starts at 0 on ``start`` and finishes on ``end`` at the
    person's total for the window. Values never decrease.
    """
    series: Dict[int, List[CumulativePoint]] = {}
    for pid in _person_ids(entries, person_ids):
        own = sorted((e for e in entries if e.person_id == pid), key=lambda e: e.end_time)
        points = [CumulativePoint(timestamp=start, seconds=0)]
        running_total = 0
        for entry in own:
            running_total += entry.duration
            timestamp = max(entry.end_time, points[-1].timestamp)
            points.append(CumulativePoint(timestamp=timestamp, seconds=running_total))
        points.append(
            CumulativePoint(timestamp=max(end, points[-1].timestamp), seconds=running_total)
        )
        series[pid] = points
    return series


def leaderboard(entries: Sequence[TimelineEntry]) -> List[LeaderboardEntry]:
    """Rank persons by total duration in ``entries``.

    Ties keep the order in which persons first appear on the timeline.
    """
    totals: Dict[int, dict] = {}
    for entry in entries:
        row = totals.setdefault(
            entry.person_id,
            {
                "person_id": entry.person_id,
                "name": entry.person_name,
                "color": entry.color,
                "total_duration": 0,
                "session_count": 0,
                "is_running": False,
            },
        )
        row["total_duration"] += entry.duration
        row["session_count"] += 1
        row["is_running"] = row["is_running"] or entry.is_running

    ordered = sorted(totals.values(), key=lambda r: r["total_duration"], reverse=True)
    return [
        LeaderboardEntry(
            rank=rank,
            average_duration=row["total_duration"] / row["session_count"],
            **row,
        )
        for rank, row in enumerate(ordered, start=1)
    ]


class Window(BaseModel):
    """The timeline entries selected by a ``TimeRange``."""

    time_range: TimeRange
    start: int
    end: int
    entries: List[TimelineEntry]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def person_ids(self) -> List[int]:
        return _person_ids(self.entries, None)

    def daily_totals(self, person_ids: Optional[Sequence[int]] = None) -> List[DailyTotal]:
        return daily_totals(self.entries, self.start, self.end, person_ids)

    def cumulative_series(
        self, person_ids: Optional[Sequence[int]] = None
    ) -> Dict[int, List[CumulativePoint]]:
        return cumulative_series(self.entries, self.start, self.end, person_ids)

    def leaderboard(self) -> List[LeaderboardEntry]:
        return leaderboard(self.entries)


def select_window(persons: Iterable[Person], time_range: TimeRange, now: int) -> Window:
    """Build the timeline and keep entries starting at or after the window start."""
    timeline = build_timeline(persons, now)
    start, end = window_bounds(time_range, now, timeline)
    entries = [entry for entry in timeline if entry.start_time >= start]
    return Window(time_range=time_range, start=start, end=end, entries=entries)


class OverviewRow(BaseModel):
    person_id: int
    name: str
    total_seconds: int
    formatted: str
    hours: str
    days: str
    session_count: int
    is_running: bool


class Overview(BaseModel):
    """All-time statistics table with its summary figures."""

    rows: List[OverviewRow]
    unit: ChartUnit
    active_people: int
    total_seconds: int
    running_count: int


def overview(persons: Iterable[Person], now: int) -> Overview:
    """Persons with recorded time or a running timer, largest total first."""
    persons = list(persons)
    rows: List[OverviewRow] = []
    for person in persons:
        total = total_time(person, now)
        if total <= 0 and not person.is_running:
            continue
        rows.append(
            OverviewRow(
                person_id=person.id,
                name=person.name,
                total_seconds=total,
                formatted=format_time(total),
                hours=seconds_to_hours(total),
                days=seconds_to_days(total),
                session_count=len(person.sessions) + (1 if person.is_running else 0),
                is_running=person.is_running,
            )
        )
    rows.sort(key=lambda r: r.total_seconds, reverse=True)
    return Overview(
        rows=rows,
        unit=best_unit_for_persons(persons, now),
        active_people=len(rows),
        total_seconds=sum(r.total_seconds for r in rows),
        running_count=sum(1 for r in rows if r.is_running),
    )
