"""Tests for the command line interface."""

import csv
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from timehogger.cli.main import main
from timehogger.core.clock import from_datetime
from timehogger.core.repository import PersonRepository

NOW = from_datetime(datetime(2026, 3, 10, 12, 0))


@pytest.fixture
def home():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def cli(home):
    """Invoke the CLI against a throwaway home directory with a fixed clock."""
    runner = CliRunner()
    clock = {"now": NOW}

    def invoke(*args, input=None):
        with patch("timehogger.cli.main.now_ms", side_effect=lambda: clock["now"]):
            return runner.invoke(main, list(args), env={"TIMEHOGGER_HOME": str(home)}, input=input)

    invoke.clock = clock
    return invoke


def stored_persons(home):
    return PersonRepository(home / "data" / "timehogger-data.json").load()


def test_help_does_not_create_data(cli, home):
    result = cli("--help")
    assert result.exit_code == 0
    assert "session-add" in result.output
    assert not (home / "data").exists()


def test_init_and_health(cli, home):
    result = cli("init")
    assert result.exit_code == 0
    assert "Initialized TimeHogger data" in result.output

    result = cli("init")
    assert "already exists" in result.output

    result = cli("health")
    assert result.exit_code == 0
    assert '"status": "ok"' in result.output


def test_data_file_option(cli, home):
    target = home / "elsewhere.json"
    result = cli("--data-file", str(target), "add", "Alice")
    assert result.exit_code == 0
    assert target.exists()
    assert stored_persons(home) == []


def test_add_and_list(cli, home):
    result = cli("add", "Alice", "--avatar", "🦊", "--color", "#EF4444")
    assert result.exit_code == 0
    assert "Alice added to directory" in result.output

    person = stored_persons(home)[0]
    assert person.avatar == "🦊"
    assert person.color == "#EF4444"

    result = cli("list")
    assert result.exit_code == 0
    assert "Alice" in result.output
    assert "Active timers: 0" in result.output


def test_add_blank_name_fails(cli, home):
    result = cli("add", "  ")
    assert result.exit_code == 1
    assert "Name is required" in result.output


def test_timer_flow(cli, home):
    cli("add", "Alice")

    result = cli("start", "alice")
    assert "Timer started for Alice" in result.output
    assert stored_persons(home)[0].is_running

    cli.clock["now"] = NOW + 90_000
    result = cli("list")
    assert "1:30" in result.output
    assert "Running" in result.output

    result = cli("stop", "Alice")
    assert "Timer stopped for Alice" in result.output
    person = stored_persons(home)[0]
    assert not person.is_running
    assert [s.duration for s in person.sessions] == [90]


def test_toggle_and_stop_all(cli, home):
    cli("add", "Alice")
    cli("add", "Bob")
    cli("toggle", "Alice")
    cli("toggle", "Bob")

    result = cli("stop-all")
    assert "2 timers stopped" in result.output
    result = cli("stop-all")
    assert "No timers running." in result.output


def test_unknown_person(cli):
    result = cli("start", "Nobody")
    assert result.exit_code == 1
    assert "No person named 'Nobody'" in result.output


def test_session_commands(cli, home):
    cli("add", "Alice")

    result = cli("session-add", "Alice", "2026-03-09T09:00", "2026-03-09T10:30")
    assert result.exit_code == 0
    assert "1:30:00" in result.output
    session_id = stored_persons(home)[0].sessions[0].id

    result = cli("session-add", "Alice", "2026-03-09T11:00", "2026-03-09T10:00")
    assert result.exit_code == 1
    assert "End time must be after start time" in result.output

    result = cli("session-edit", "Alice", str(session_id), "--end", "2026-03-09T11:00")
    assert result.exit_code == 0
    assert stored_persons(home)[0].sessions[0].duration == 7200

    result = cli("sessions", "Alice")
    assert "total time: 2:00:00" in result.output
    assert "1 session" in result.output

    result = cli("session-edit", "Alice", str(session_id))
    assert result.exit_code == 2

    result = cli("session-delete", "Alice", str(session_id))
    assert result.exit_code == 0
    assert stored_persons(home)[0].sessions == []


def test_edit_to_reversed_range_keeps_session(cli, home):
    cli("add", "Alice")
    cli("session-add", "Alice", "2026-03-09T09:00", "2026-03-09T10:00")
    session_id = stored_persons(home)[0].sessions[0].id

    result = cli("session-edit", "Alice", str(session_id), "--start", "2026-03-09T12:00")
    assert result.exit_code == 1
    assert "End time must be at least one second after start time" in result.output
    assert [s.duration for s in stored_persons(home)[0].sessions] == [3600]


def test_session_add_under_a_second_fails(cli, home):
    cli("add", "Alice")
    result = cli("session-add", "Alice", "2026-03-09T09:00:00", "2026-03-09T09:00:00.500")
    assert result.exit_code == 1
    assert "Session must last at least one second" in result.output
    assert stored_persons(home)[0].sessions == []


def test_bad_log_level_falls_back(home):
    result = CliRunner().invoke(
        main, ["list"], env={"TIMEHOGGER_HOME": str(home), "TIMEHOGGER_LOG_LEVEL": "verbose"}
    )
    assert result.exit_code == 0
    assert "No persons found." in result.output


def test_stats(cli, home):
    result = cli("stats")
    assert "No data to display at the moment." in result.output

    cli("add", "Alice")
    cli("session-add", "Alice", "2026-03-09T09:00", "2026-03-09T11:00")
    result = cli("stats")
    assert result.exit_code == 0
    assert "2:00:00" in result.output
    assert "Active people: 1" in result.output


def test_windowed_views(cli, home):
    cli("add", "Alice")
    cli("add", "Bob")
    cli("session-add", "Alice", "2026-03-09T09:00", "2026-03-09T11:00")
    cli("session-add", "Bob", "2026-03-10T08:00", "2026-03-10T08:30")

    result = cli("leaderboard", "--range", "all")
    assert result.exit_code == 0
    assert result.output.index("Alice") < result.output.index("Bob")

    result = cli("leaderboard", "--range", "24h")
    assert "Bob" in result.output
    assert "Alice" not in result.output

    for command in ("timeline", "daily", "cumulative"):
        result = cli(command, "--range", "7d")
        assert result.exit_code == 0, command
        assert "Alice" in result.output

    cli.clock["now"] = NOW + 60 * 86_400_000
    result = cli("timeline", "--range", "30d")
    assert "No sessions in this period." in result.output

    result = cli("daily", "--range", "weekly")
    assert result.exit_code == 2


def test_reset_requires_confirmation(cli, home):
    cli("add", "Alice")
    cli("session-add", "Alice", "2026-03-09T09:00", "2026-03-09T11:00")

    result = cli("reset-all", input="n\n")
    assert "Cancelled." in result.output
    assert len(stored_persons(home)[0].sessions) == 1

    result = cli("reset-all", "--yes")
    assert "All timers have been reset" in result.output
    assert stored_persons(home)[0].sessions == []


def test_remove(cli, home):
    cli("add", "Alice")
    result = cli("remove", "Alice", "--yes")
    assert "Alice deleted" in result.output
    assert stored_persons(home) == []


def test_export(cli, home):
    cli("add", "Alice")
    cli("session-add", "Alice", "2026-03-09T09:00", "2026-03-09T11:00")
    output = home / "export.csv"

    result = cli("export", "detailed", "-o", str(output))
    assert result.exit_code == 0
    assert "Exported 1 rows" in result.output

    with open(output, encoding="utf-8-sig", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "Name"
    assert rows[1][0] == "Alice"
    assert rows[1][2:4] == ["3/9/2026", "9:00:00 AM"]


def test_export_to_unwritable_path(cli, home):
    cli("add", "Alice")
    # A directory where the CSV should go makes the write fail
    (home / "taken.csv").mkdir()

    result = cli("export", "-o", str(home / "taken.csv"))
    assert result.exit_code == 1
    assert "Failed to write" in result.output


def test_backup(cli, home):
    cli("init")
    result = cli("backup")
    assert result.exit_code == 0
    assert "Backup created" in result.output
    assert list((home / "data").glob("backup-*.json"))
