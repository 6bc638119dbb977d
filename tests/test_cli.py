"""
Tests for the Typer CLI.
"""

import pendulum
import pytest
from typer.testing import CliRunner

from meetingscheduler.adapters.sqlite_store import SqliteCalendarStore, SqliteMeetingStore
from meetingscheduler.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "timezone: UTC\n"
        "provider:\n"
        "  enabled: false\n"
        "retry:\n"
        "  initial_delay_seconds: 0\n"
        f"store:\n  path: {tmp_path / 'meetings.db'}\n",
        encoding="utf-8",
    )
    return path


def _invoke(config_path, *args):
    return runner.invoke(app, [*args, "--config", str(config_path)])


def _stored_meetings(tmp_path):
    store = SqliteMeetingStore(tmp_path / "meetings.db")
    return store.find_within(
        "team-calendar",
        pendulum.parse("2024-11-25T00:00:00", tz="UTC"),
        pendulum.parse("2024-11-26T00:00:00", tz="UTC"),
    )


class TestCli:
    """End-to-end command tests against a temporary SQLite store."""

    def test_schedule_flow(self, config_path, tmp_path):
        result = _invoke(config_path, "link", "alice", "team-calendar")
        assert result.exit_code == 0, result.output

        result = _invoke(
            config_path, "create", "team-calendar",
            "--user", "alice", "--title", "Review",
            "--start", "2024-11-25T10:00:00", "--end", "2024-11-25T10:30:00",
        )
        assert result.exit_code == 0, result.output
        assert "Meeting created" in result.output

        result = _invoke(
            config_path, "slots", "alice", "team-calendar",
            "--from", "2024-11-25T09:00:00", "--to", "2024-11-25T12:00:00", "--duration", "60",
        )
        assert result.exit_code == 0, result.output
        assert "2 free slot(s)" in result.output
        assert "10:30 - 11:30" in result.output

        meeting = _stored_meetings(tmp_path)[0]

        result = _invoke(
            config_path, "update", meeting.id,
            "--calendar", "team-calendar", "--user", "alice", "--title", "Review v2",
            "--start", "2024-11-25T11:00:00", "--end", "2024-11-25T11:30:00",
            "--expected-version", "0",
        )
        assert result.exit_code == 0, result.output
        assert _stored_meetings(tmp_path)[0].version == 1

        result = _invoke(
            config_path, "update", meeting.id,
            "--calendar", "team-calendar", "--user", "alice", "--title", "Stale",
            "--start", "2024-11-25T11:00:00", "--end", "2024-11-25T11:30:00",
            "--expected-version", "0",
        )
        assert result.exit_code == 1
        assert "409" in result.output

        result = _invoke(config_path, "delete", meeting.id, "--user", "alice", "--calendar", "team-calendar")
        assert result.exit_code == 0, result.output
        assert _stored_meetings(tmp_path) == []

    def test_conflicting_create_fails(self, config_path):
        _invoke(config_path, "link", "alice", "team-calendar")
        args = [
            "create", "team-calendar", "--user", "alice", "--title", "Review",
            "--start", "2024-11-25T14:30:00", "--end", "2024-11-25T15:30:00",
        ]
        assert _invoke(config_path, *args).exit_code == 0

        result = _invoke(
            config_path, "create", "team-calendar", "--user", "alice", "--title", "Clash",
            "--start", "2024-11-25T14:00:00", "--end", "2024-11-25T15:00:00",
        )

        assert result.exit_code == 1
        assert "conflicts with existing meetings" in result.output

    def test_unlinked_user_is_not_found(self, config_path):
        result = _invoke(
            config_path, "slots", "mallory", "team-calendar",
            "--from", "2024-11-25T09:00:00", "--to", "2024-11-25T12:00:00",
        )

        assert result.exit_code == 1
        assert "404" in result.output

    def test_invalid_timestamp_is_a_usage_error(self, config_path):
        result = _invoke(
            config_path, "slots", "alice", "team-calendar",
            "--from", "yesterday", "--to", "2024-11-25T12:00:00",
        )

        assert result.exit_code == 2

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["link", "alice", "cal", "--config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_calendar_and_event_commands(self, config_path, tmp_path):
        result = _invoke(config_path, "calendar", "create", "Team", "--owner", "alice")
        assert result.exit_code == 0, result.output

        store = SqliteCalendarStore(tmp_path / "meetings.db")
        calendar = store.list_calendars()[0]

        result = _invoke(
            config_path, "event", "create", calendar.id, "--title", "Standup",
            "--start", "2024-11-25T09:00:00", "--end", "2024-11-25T09:15:00",
        )
        assert result.exit_code == 0, result.output
        event = store.list_events(calendar.id)[0]

        result = _invoke(
            config_path, "event", "update", event.id, "--title", "Standup",
            "--start", "2024-11-25T09:30:00", "--end", "2024-11-25T09:45:00",
            "--expected-version", "1",
        )
        assert result.exit_code == 1
        assert "409" in result.output

        result = _invoke(config_path, "calendar", "update", calendar.id, "--name", "Team A", "--expected-version", "0")
        assert result.exit_code == 0, result.output
        assert store.get_calendar(calendar.id).version == 1

        result = _invoke(config_path, "calendar", "delete", calendar.id)
        assert result.exit_code == 0, result.output
        assert store.get_event(event.id) is None

        result = _invoke(config_path, "event", "delete", event.id)
        assert result.exit_code == 1
        assert "404" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "meetingscheduler" in result.output
