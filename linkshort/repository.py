"""SQLite storage for links and clicks."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime
from os import PathLike
from typing import Any

from .models import (
    IP_ADDRESS_MAX_LENGTH,
    SHORT_CODE_MAX_LENGTH,
    USER_AGENT_MAX_LENGTH,
    Click,
    Link,
)

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS links (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    short_code VARCHAR({SHORT_CODE_MAX_LENGTH}) NOT NULL,
    long_url TEXT NOT NULL,
    created_at DATETIME,
    updated_at DATETIME
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_links_short_code ON links (short_code);
CREATE TABLE IF NOT EXISTS clicks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    link_id INTEGER REFERENCES links (id),
    timestamp DATETIME,
    user_agent VARCHAR({USER_AGENT_MAX_LENGTH}),
    ip_address VARCHAR({IP_ADDRESS_MAX_LENGTH})
);
CREATE INDEX IF NOT EXISTS idx_clicks_link_id ON clicks (link_id);
"""


class RecordNotFoundError(LookupError):
    """Raised when a requested record does not exist."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class Database:
    """A thread-safe SQLite connection shared by the repositories."""

    def __init__(self, path: str | PathLike[str]) -> None:
        self.path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()

    def migrate(self) -> None:
        """Create the links and clicks tables and their indexes if missing."""
        with self._lock:
            self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock, self._conn:
            return self._conn.execute(sql, params)

    def _fetch(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()


def _parse_time(value: str | None) -> datetime:
    if value is None:
        return datetime.min
    return datetime.fromisoformat(value)


def _link_from_row(row: tuple[Any, ...]) -> Link:
    link_id, short_code, long_url, created_at, updated_at = row
    return Link(
        id=link_id,
        short_code=short_code,
        long_url=long_url,
        created_at=_parse_time(created_at),
        updated_at=_parse_time(updated_at),
    )


_LINK_COLUMNS = "id, short_code, long_url, created_at, updated_at"


class LinkRepository:
    """Stores and retrieves links."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_link(self, link: Link) -> None:
        """Insert *link* and set its id."""
        cursor = self._db._execute(
            "INSERT INTO links (short_code, long_url, created_at, updated_at) "
            "VALUES (?, ?, ?, ?)",
            (
                link.short_code,
                link.long_url,
                link.created_at.isoformat(),
                link.updated_at.isoformat(),
            ),
        )
        link.id = cursor.lastrowid

    def get_link_by_short_code(self, short_code: str) -> Link:
        """Return the link with *short_code*, or raise RecordNotFoundError."""
        rows = self._db._fetch(
            f"SELECT {_LINK_COLUMNS} FROM links WHERE short_code = ? ORDER BY id LIMIT 1",
            (short_code,),
        )
        if not rows:
            raise RecordNotFoundError()
        return _link_from_row(rows[0])

    def get_all_links(self) -> list[Link]:
        rows = self._db._fetch(f"SELECT {_LINK_COLUMNS} FROM links ORDER BY id")
        return [_link_from_row(row) for row in rows]


class ClickRepository:
    """Stores clicks and counts them per link."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_click(self, click: Click) -> None:
        """Insert *click* and set its id."""
        cursor = self._db._execute(
            "INSERT INTO clicks (link_id, timestamp, user_agent, ip_address) "
            "VALUES (?, ?, ?, ?)",
            (
                click.link_id,
                click.timestamp.isoformat(),
                click.user_agent,
                click.ip_address,
            ),
        )
        click.id = cursor.lastrowid

    def count_clicks_by_link_id(self, link_id: int) -> int:
        rows = self._db._fetch("SELECT COUNT(*) FROM clicks WHERE link_id = ?", (link_id,))
        return int(rows[0][0])