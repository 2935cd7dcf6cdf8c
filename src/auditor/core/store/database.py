"""
SQLite record store.

Raw sqlite3 (no ORM), WAL mode, one connection shared by the ingestion task
and every HTTP request. sqlite3 calls block, so the async Sink methods run
them in a worker thread; a lock serialises access to the connection.

Lifecycle::

    db = Database(path)
    db.connect()            # creates the file and applies migrations
    await db.append(record)
    db.close()
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from auditor.core.exceptions import SinkError
from auditor.core.models import AuditRecord, AuditTimestamp
from auditor.core.store.migrations import run_migrations
from auditor.core.store.sink import Sink, check_page

logger = logging.getLogger(__name__)

_COLUMNS = "type, timestamp, program, args, argc"
_ORDER = "ORDER BY timestamp DESC, id DESC"


def _row_to_record(row: sqlite3.Row) -> AuditRecord:
    try:
        return AuditRecord(
            kind=row["type"],
            timestamp=AuditTimestamp.from_iso(row["timestamp"]),
            program=row["program"],
            args=tuple(json.loads(row["args"] or "[]")),
            argc=row["argc"],
        )
    except ValueError as exc:
        raise SinkError(f"Corrupt audit_log row: {exc}") from exc


class Database(Sink):
    """SQLite-backed :class:`Sink`."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Open the database, enable WAL, and bring the schema up to date."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            run_migrations(conn)
        except (OSError, sqlite3.Error) as exc:
            raise SinkError(f"Cannot open database {self.path}: {exc}") from exc
        self._conn = conn
        logger.debug("Database connected: %s", self.path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise SinkError("Database is not connected")
        return self._conn

    def _execute(self, sql: str, params: tuple[Any, ...] = (), *, commit: bool = False) -> Any:
        with self._lock:
            try:
                cur = self.conn.execute(sql, params)
                if commit:
                    self.conn.commit()
                    return cur.rowcount
                return cur.fetchall()
            except (sqlite3.Error, OverflowError) as exc:
                if commit:
                    self.conn.rollback()
                raise SinkError(f"Database error: {exc}") from exc

    # ------------------------------------------------------------------
    # Synchronous API (CLI and tests)
    # ------------------------------------------------------------------

    def insert_record(self, record: AuditRecord) -> None:
        self._execute(
            f"INSERT INTO audit_log ({_COLUMNS}, command) VALUES (?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                record.kind,
                record.timestamp.isoformat(),
                record.program,
                json.dumps(list(record.args)),
                record.argc,
                record.command,
            ),
            commit=True,
        )

    def list_page(self, page: int, page_size: int) -> list[AuditRecord]:
        offset = check_page(page, page_size)
        rows = self._execute(
            f"SELECT {_COLUMNS} FROM audit_log {_ORDER} LIMIT ? OFFSET ?",  # noqa: S608
            (page_size, offset),
        )
        return [_row_to_record(r) for r in rows]

    def list_all(self) -> list[AuditRecord]:
        rows = self._execute(f"SELECT {_COLUMNS} FROM audit_log {_ORDER}")  # noqa: S608
        return [_row_to_record(r) for r in rows]

    def latest(self) -> AuditRecord | None:
        rows = self._execute(f"SELECT {_COLUMNS} FROM audit_log {_ORDER} LIMIT 1")  # noqa: S608
        return _row_to_record(rows[0]) if rows else None

    def delete_before(self, cutoff: AuditTimestamp) -> int:
        return self._execute(
            "DELETE FROM audit_log WHERE timestamp < ?",
            (cutoff.isoformat(),),
            commit=True,
        )

    def count(self) -> int:
        rows = self._execute("SELECT count(*) FROM audit_log")
        return int(rows[0][0]) if rows else 0

    # ------------------------------------------------------------------
    # Sink
    # ------------------------------------------------------------------

    async def append(self, record: AuditRecord) -> None:
        await asyncio.to_thread(self.insert_record, record)

    async def fetch_page(self, page: int, page_size: int) -> list[AuditRecord]:
        return await asyncio.to_thread(self.list_page, page, page_size)

    async def fetch_all(self) -> list[AuditRecord]:
        return await asyncio.to_thread(self.list_all)

    async def fetch_latest(self) -> AuditRecord | None:
        return await asyncio.to_thread(self.latest)

    async def delete_older_than(self, cutoff: AuditTimestamp) -> int:
        return await asyncio.to_thread(self.delete_before, cutoff)

    async def aclose(self) -> None:
        self.close()
