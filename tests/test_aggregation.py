"""Tests for the timeline, windows and aggregated views."""

from datetime import date, datetime

import pytest

from timehogger.core.aggregation import (
    TimeRange,
    build_timeline,
    cumulative_series,
    daily_range,
    daily_totals,
    leaderboard,
    overview,
    select_window,
    window_bounds,
)
from timehogger.core.clock import MS_PER_DAY, day_bounds, from_datetime
from timehogger.core.formatting import DAYS, HOURS
from timehogger.core.timer import start_timer
from timehogger.models.person import Person
from timehogger.models.session import Session


def ts(*args) -> int:
    return from_datetime(datetime(*args))


def session(session_id, start, minutes):
    return Session(id=session_id, start_time=start, end_time=start + minutes * 60_000)


NOW = ts(2026, 3, 10, 12, 0)


@pytest.fixture
def persons():
    alice = Person(
        id=1,
        name="Alice",
        color="#EF4444",
        sessions=[
            session(1, ts(2026, 3, 8, 9, 0), 60),
            session(2, ts(2026, 3, 10, 8, 0), 30),
        ],
    )
    bob = Person(
        id=2,
        name="Bob",
        color="#3B82F6",
        sessions=[session(3, ts(2026, 3, 9, 10, 0), 120)],
    )
    return [alice, bob]


class TestTimeline:
    def test_sorted_by_start(self, persons):
        timeline = build_timeline(persons, NOW)
        assert [e.session_id for e in timeline] == [1, 3, 2]
        assert timeline[1].person_name == "Bob"
        assert timeline[1].color == "#3B82F6"

    def test_running_timer_becomes_synthetic_entry(self, persons):
        persons[1] = start_timer(persons[1], NOW - 300_000)
        timeline = build_timeline(persons, NOW)

        running = [e for e in timeline if e.is_running]
        assert len(running) == 1
        assert running[0].session_id is None
        assert running[0].end_time == NOW
        assert running[0].duration == 300
        assert timeline[-1] == running[0]

    def test_equal_starts_keep_person_order(self):
        start = ts(2026, 3, 9, 9, 0)
        a = Person(id=1, name="A", sessions=[session(1, start, 10)])
        b = Person(id=2, name="B", sessions=[session(2, start, 20)])
        assert [e.person_id for e in build_timeline([a, b], NOW)] == [1, 2]


class TestWindows:
    def test_today_is_calendar_day(self, persons):
        start, end = window_bounds(TimeRange.TODAY, NOW, [])
        assert (start, end) == day_bounds(date(2026, 3, 10))
        assert start == ts(2026, 3, 10, 0, 0)

    @pytest.mark.parametrize("time_range, days", [(TimeRange.WEEK, 7), (TimeRange.MONTH, 30)])
    def test_rolling_windows(self, time_range, days):
        assert window_bounds(time_range, NOW, []) == (NOW - days * MS_PER_DAY, NOW)

    def test_all_starts_at_earliest_entry(self, persons):
        timeline = build_timeline(persons, NOW)
        assert window_bounds(TimeRange.ALL, NOW, timeline) == (ts(2026, 3, 8, 9, 0), NOW)
        assert window_bounds(TimeRange.ALL, NOW, []) == (NOW, NOW)

    def test_filter_keeps_sessions_starting_in_window(self, persons):
        window = select_window(persons, TimeRange.TODAY, NOW)
        assert [e.session_id for e in window.entries] == [2]

    def test_straddling_session_is_excluded_whole(self):
        # Starts 23:00 the day before, ends 01:00 today
        late = Person(id=1, name="Owl", sessions=[session(1, ts(2026, 3, 9, 23, 0), 120)])
        window = select_window([late], TimeRange.TODAY, NOW)
        assert window.is_empty
        assert window.daily_totals()[0].total == 0

    def test_empty_all_window(self):
        window = select_window([Person(id=1, name="Idle")], TimeRange.ALL, NOW)
        assert window.is_empty
        assert (window.start, window.end) == (NOW, NOW)
        assert window.leaderboard() == []

    def test_daily_range_widens_today(self):
        assert daily_range(TimeRange.TODAY) is TimeRange.WEEK
        assert daily_range(TimeRange.MONTH) is TimeRange.MONTH
        assert daily_range(TimeRange.ALL) is TimeRange.ALL


class TestDailyTotals:
    def test_three_day_window_has_no_gaps(self):
        """One 2h session on the middle day yields [0, 7200, 0]."""
        person = Person(id=1, name="Alice", sessions=[session(1, ts(2026, 3, 2, 10, 0), 120)])
        entries = build_timeline([person], NOW)

        totals = daily_totals(entries, ts(2026, 3, 1, 0, 0), ts(2026, 3, 3, 23, 0))
        assert [t.day for t in totals] == [date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 3)]
        assert [t.total for t in totals] == [0, 7200, 0]
        assert [t.per_person[1] for t in totals] == [0, 7200, 0]

    def test_persons_split_per_day(self, persons):
        window = select_window(persons, TimeRange.WEEK, NOW)
        totals = {t.day: t for t in window.daily_totals()}

        assert len(totals) == 8
        assert totals[date(2026, 3, 8)].per_person == {1: 3600, 2: 0}
        assert totals[date(2026, 3, 9)].per_person == {1: 0, 2: 7200}
        assert totals[date(2026, 3, 10)].total == 1800

    def test_explicit_person_ids(self, persons):
        window = select_window(persons, TimeRange.WEEK, NOW)
        totals = window.daily_totals(person_ids=[2, 99])
        assert all(set(t.per_person) == {2, 99} for t in totals)
        assert sum(t.total for t in totals) == 3600 + 1800 + 7200


class TestCumulative:
    def test_series_is_monotonic_and_ends_at_total(self, persons):
        window = select_window(persons, TimeRange.WEEK, NOW)
        series = window.cumulative_series()

        assert set(series) == {1, 2}
        for points in series.values():
            timestamps = [p.timestamp for p in points]
            values = [p.seconds for p in points]
            assert timestamps == sorted(timestamps)
            assert values == sorted(values)
            assert points[0].timestamp == window.start
            assert points[0].seconds == 0
            assert points[-1].timestamp == window.end

        assert series[1][-1].seconds == 3600 + 1800
        assert series[2][-1].seconds == 7200

    def test_steps_at_session_end(self, persons):
        entries = build_timeline(persons[:1], NOW)
        series = cumulative_series(entries, ts(2026, 3, 8, 0, 0), NOW)
        assert [(p.timestamp, p.seconds) for p in series[1]] == [
            (ts(2026, 3, 8, 0, 0), 0),
            (ts(2026, 3, 8, 10, 0), 3600),
            (ts(2026, 3, 10, 8, 30), 5400),
            (NOW, 5400),
        ]

    def test_person_without_entries_is_flat(self, persons):
        series = cumulative_series([], NOW - MS_PER_DAY, NOW, person_ids=[7])
        assert [p.seconds for p in series[7]] == [0, 0]


class TestLeaderboard:
    def test_ranked_by_total_with_averages(self):
        base = ts(2026, 3, 9, 9, 0)
        a = Person(
            id=1,
            name="A",
            sessions=[
                Session(id=1, start_time=base, end_time=base + 100_000),
                Session(id=2, start_time=base + 200_000, end_time=base + 400_000),
            ],
        )
        b = Person(id=2, name="B", sessions=[Session(id=3, start_time=base + 50_000, end_time=base + 550_000)])

        board = leaderboard(build_timeline([a, b], NOW))
        assert [(e.rank, e.name, e.total_duration) for e in board] == [(1, "B", 500), (2, "A", 300)]
        assert board[1].session_count == 2
        assert board[1].average_duration == 150
        assert board[0].average_duration == 500

    def test_ties_keep_first_seen_order(self):
        base = ts(2026, 3, 9, 9, 0)
        late = Person(id=1, name="Late", sessions=[session(1, base + 3_600_000, 30)])
        early = Person(id=2, name="Early", sessions=[session(2, base, 30)])

        board = leaderboard(build_timeline([late, early], NOW))
        assert [e.name for e in board] == ["Early", "Late"]

    def test_running_flag(self, persons):
        persons[0] = start_timer(persons[0], NOW - 60_000)
        board = select_window(persons, TimeRange.ALL, NOW).leaderboard()
        by_name = {e.name: e for e in board}
        assert by_name["Alice"].is_running
        assert by_name["Alice"].session_count == 3
        assert not by_name["Bob"].is_running


class TestOverview:
    def test_rows_sorted_and_idle_persons_hidden(self, persons):
        idle = Person(id=3, name="Idle")
        result = overview([*persons, idle], NOW)

        assert [r.name for r in result.rows] == ["Bob", "Alice"]
        assert result.active_people == 2
        assert result.total_seconds == 7200 + 5400
        assert result.running_count == 0
        assert result.unit is HOURS
        assert result.rows[0].formatted == "2:00:00"
        assert result.rows[0].hours == "2.00"

    def test_running_person_with_no_time_is_listed(self):
        fresh = start_timer(Person(id=1, name="Fresh"), NOW)
        result = overview([fresh], NOW)
        assert len(result.rows) == 1
        assert result.rows[0].session_count == 1
        assert result.running_count == 1

    def test_unit_switches_to_days(self):
        marathon = Person(id=1, name="Marathon", sessions=[session(1, ts(2026, 3, 1, 0, 0), 25 * 60)])
        assert overview([marathon], NOW).unit is DAYS
