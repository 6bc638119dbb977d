"""
SQLite-backed meeting, calendar and event stores.

Timestamps are stored as POSIX seconds so range queries compare numerically;
they are rebuilt as pendulum DateTimes in the configured timezone on read.
The version check is part of the UPDATE/DELETE statement itself, so the
compare and the write are one atomic step.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from ..domain.exceptions import StoreError, VersionMismatchError
from ..domain.models import Calendar, Event, Meeting, UserCalendarLink

logger = logging.getLogger(__name__)

MEETING_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS meetings (
        id TEXT PRIMARY KEY,
        calendar_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        location TEXT,
        start_ts REAL NOT NULL,
        end_ts REAL NOT NULL,
        version INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_calendars (
        user_id TEXT NOT NULL,
        calendar_id TEXT NOT NULL,
        PRIMARY KEY (user_id, calendar_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_meetings_calendar ON meetings(calendar_id, start_ts)",
)

CALENDAR_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS calendars (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        owner_id TEXT NOT NULL,
        description TEXT,
        version INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        id TEXT PRIMARY KEY,
        calendar_id TEXT NOT NULL REFERENCES calendars(id),
        title TEXT NOT NULL,
        description TEXT,
        location TEXT,
        start_ts REAL NOT NULL,
        end_ts REAL NOT NULL,
        version INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_calendar ON events(calendar_id, start_ts)",
)


class SqliteDatabase:
    """Connection handling shared by the SQLite stores; each store owns its tables."""

    schema: Tuple[str, ...] = ()

    def __init__(self, db_path: Path, timezone: str = "UTC"):
        self.db_path = Path(db_path)
        self.timezone = timezone
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, and translate driver errors."""
        conn = None
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30)
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreError(f"Store failure: {exc}") from exc
        finally:
            if conn is not None:
                conn.close()

    def _init_schema(self) -> None:
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            for statement in self.schema:
                conn.execute(statement)

    def _timestamp(self, value: float) -> DateTime:
        return pendulum.from_timestamp(value, tz=self.timezone)

    @staticmethod
    def _current_version(conn: sqlite3.Connection, table: str, record_id: str) -> Optional[int]:
        row = conn.execute(f"SELECT version FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return row["version"] if row else None


class SqliteMeetingStore(SqliteDatabase):
    """Meeting store persisted in a single SQLite database file."""

    schema = MEETING_SCHEMA

    def _row_to_meeting(self, row: sqlite3.Row) -> Meeting:
        return Meeting(
            id=row["id"],
            calendar_id=row["calendar_id"],
            title=row["title"],
            description=row["description"],
            location=row["location"],
            start=self._timestamp(row["start_ts"]),
            end=self._timestamp(row["end_ts"]),
            version=row["version"],
        )

    def find_link(self, user_id: str, calendar_id: str) -> Optional[UserCalendarLink]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT user_id, calendar_id FROM user_calendars WHERE user_id = ? AND calendar_id = ?",
                (user_id, calendar_id),
            ).fetchone()
        if row is None:
            return None
        return UserCalendarLink(user_id=row["user_id"], calendar_id=row["calendar_id"])

    def add_link(self, link: UserCalendarLink) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO user_calendars (user_id, calendar_id) VALUES (?, ?)",
                (link.user_id, link.calendar_id),
            )

    def find_overlapping(
        self, calendar_id: str, range_start: DateTime, range_end: DateTime
    ) -> List[Meeting]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM meetings
                WHERE calendar_id = ? AND start_ts <= ? AND end_ts >= ?
                """,
                (calendar_id, range_end.timestamp(), range_start.timestamp()),
            ).fetchall()
        return [self._row_to_meeting(row) for row in rows]

    def find_within(
        self, calendar_id: str, range_start: DateTime, range_end: DateTime
    ) -> List[Meeting]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM meetings
                WHERE calendar_id = ? AND start_ts >= ? AND end_ts <= ?
                ORDER BY start_ts, end_ts
                """,
                (calendar_id, range_start.timestamp(), range_end.timestamp()),
            ).fetchall()
        return [self._row_to_meeting(row) for row in rows]

    def get(self, calendar_id: str, meeting_id: str) -> Optional[Meeting]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM meetings WHERE id = ? AND calendar_id = ?",
                (meeting_id, calendar_id),
            ).fetchone()
        return self._row_to_meeting(row) if row else None

    def insert(self, meeting: Meeting) -> Meeting:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO meetings
                    (id, calendar_id, title, description, location, start_ts, end_ts, version)
                VALUES (?, ?, ?, ?, ?, ?, ?, 0)
                """,
                (
                    meeting.id,
                    meeting.calendar_id,
                    meeting.title,
                    meeting.description,
                    meeting.location,
                    meeting.start.timestamp(),
                    meeting.end.timestamp(),
                ),
            )

        logger.debug("Inserted meeting %s", meeting.id)
        return self._require(meeting.calendar_id, meeting.id)

    def save(self, meeting: Meeting) -> Meeting:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE meetings
                SET title = ?, description = ?, location = ?,
                    start_ts = ?, end_ts = ?, version = version + 1
                WHERE id = ? AND version = ?
                """,
                (
                    meeting.title,
                    meeting.description,
                    meeting.location,
                    meeting.start.timestamp(),
                    meeting.end.timestamp(),
                    meeting.id,
                    meeting.version,
                ),
            )
            if cursor.rowcount == 0:
                actual = self._current_version(conn, "meetings", meeting.id)
                raise VersionMismatchError(meeting.id, meeting.version, actual)

        logger.debug("Saved meeting %s", meeting.id)
        return self._require(meeting.calendar_id, meeting.id)

    def delete(self, meeting: Meeting) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM meetings WHERE id = ? AND version = ?",
                (meeting.id, meeting.version),
            )
            if cursor.rowcount == 0:
                actual = self._current_version(conn, "meetings", meeting.id)
                raise VersionMismatchError(meeting.id, meeting.version, actual)

        logger.debug("Deleted meeting %s", meeting.id)

    def _require(self, calendar_id: str, meeting_id: str) -> Meeting:
        stored = self.get(calendar_id, meeting_id)
        if stored is None:
            raise StoreError(f"Meeting {meeting_id} vanished after write")
        return stored


class SqliteCalendarStore(SqliteDatabase):
    """Calendar and event store; may share a database file with the meeting store."""

    schema = CALENDAR_SCHEMA

    def _row_to_calendar(self, row: sqlite3.Row) -> Calendar:
        return Calendar(
            id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            description=row["description"],
            version=row["version"],
        )

    def _row_to_event(self, row: sqlite3.Row) -> Event:
        return Event(
            id=row["id"],
            calendar_id=row["calendar_id"],
            title=row["title"],
            description=row["description"],
            location=row["location"],
            start=self._timestamp(row["start_ts"]),
            end=self._timestamp(row["end_ts"]),
            version=row["version"],
        )

    def list_calendars(self) -> List[Calendar]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM calendars ORDER BY name, id").fetchall()
        return [self._row_to_calendar(row) for row in rows]

    def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM calendars WHERE id = ?", (calendar_id,)).fetchone()
        return self._row_to_calendar(row) if row else None

    def insert_calendar(self, calendar: Calendar) -> Calendar:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO calendars (id, name, owner_id, description, version) VALUES (?, ?, ?, ?, 0)",
                (calendar.id, calendar.name, calendar.owner_id, calendar.description),
            )

        logger.debug("Inserted calendar %s", calendar.id)
        return self._require_calendar(calendar.id)

    def save_calendar(self, calendar: Calendar) -> Calendar:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE calendars
                SET name = ?, owner_id = ?, description = ?, version = version + 1
                WHERE id = ? AND version = ?
                """,
                (calendar.name, calendar.owner_id, calendar.description, calendar.id, calendar.version),
            )
            if cursor.rowcount == 0:
                actual = self._current_version(conn, "calendars", calendar.id)
                raise VersionMismatchError(calendar.id, calendar.version, actual)

        logger.debug("Saved calendar %s", calendar.id)
        return self._require_calendar(calendar.id)

    def delete_calendar(self, calendar: Calendar) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM calendars WHERE id = ? AND version = ?",
                (calendar.id, calendar.version),
            )
            if cursor.rowcount == 0:
                actual = self._current_version(conn, "calendars", calendar.id)
                raise VersionMismatchError(calendar.id, calendar.version, actual)
            conn.execute("DELETE FROM events WHERE calendar_id = ?", (calendar.id,))

        logger.debug("Deleted calendar %s", calendar.id)

    def list_events(self, calendar_id: str) -> List[Event]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM events WHERE calendar_id = ? ORDER BY start_ts, end_ts",
                (calendar_id,),
            ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def find_events(self, calendar_id: str, range_start: DateTime, range_end: DateTime) -> List[Event]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM events
                WHERE calendar_id = ? AND start_ts >= ? AND end_ts <= ?
                ORDER BY start_ts, end_ts
                """,
                (calendar_id, range_start.timestamp(), range_end.timestamp()),
            ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        return self._row_to_event(row) if row else None

    def insert_event(self, event: Event) -> Event:
        with self._connect() as conn:
            if self._current_version(conn, "calendars", event.calendar_id) is None:
                raise StoreError(f"Calendar {event.calendar_id} does not exist")
            conn.execute(
                """
                INSERT INTO events
                    (id, calendar_id, title, description, location, start_ts, end_ts, version)
                VALUES (?, ?, ?, ?, ?, ?, ?, 0)
                """,
                (
                    event.id,
                    event.calendar_id,
                    event.title,
                    event.description,
                    event.location,
                    event.start.timestamp(),
                    event.end.timestamp(),
                ),
            )

        logger.debug("Inserted event %s", event.id)
        return self._require_event(event.id)

    def save_event(self, event: Event) -> Event:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE events
                SET title = ?, description = ?, location = ?,
                    start_ts = ?, end_ts = ?, version = version + 1
                WHERE id = ? AND version = ?
                """,
                (
                    event.title,
                    event.description,
                    event.location,
                    event.start.timestamp(),
                    event.end.timestamp(),
                    event.id,
                    event.version,
                ),
            )
            if cursor.rowcount == 0:
                actual = self._current_version(conn, "events", event.id)
                raise VersionMismatchError(event.id, event.version, actual)

        logger.debug("Saved event %s", event.id)
        return self._require_event(event.id)

    def delete_event(self, event: Event) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM events WHERE id = ? AND version = ?",
                (event.id, event.version),
            )
            if cursor.rowcount == 0:
                actual = self._current_version(conn, "events", event.id)
                raise VersionMismatchError(event.id, event.version, actual)

        logger.debug("Deleted event %s", event.id)

    def _require_calendar(self, calendar_id: str) -> Calendar:
        stored = self.get_calendar(calendar_id)
        if stored is None:
            raise StoreError(f"Calendar {calendar_id} vanished after write")
        return stored

    def _require_event(self, event_id: str) -> Event:
        stored = self.get_event(event_id)
        if stored is None:
            raise StoreError(f"Event {event_id} vanished after write")
        return stored
