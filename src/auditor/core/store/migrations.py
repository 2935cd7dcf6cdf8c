"""
Schema migrations for the auditor SQLite store.

The schema version lives in ``PRAGMA user_version``. Each entry in
``_MIGRATIONS`` moves the database from version *n* to *n + 1*; running the
list is idempotent because already-applied steps are skipped by version.

v0 -> v1  audit_log table
v1 -> v2  index on audit_log.timestamp (pagination and retention)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable

logger = logging.getLogger(__name__)


def _v0_to_v1(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS audit_log (
            id        INTEGER PRIMARY KEY AUTOINCREMENT,
            type      TEXT    NOT NULL,
            timestamp TEXT    NOT NULL,
            program   TEXT    NOT NULL DEFAULT '',
            args      TEXT    NOT NULL DEFAULT '[]',
            argc      INTEGER NOT NULL DEFAULT 0,
            command   TEXT    NOT NULL DEFAULT ''
        )
        """
    )


def _v1_to_v2(conn: sqlite3.Connection) -> None:
    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_log_timestamp ON audit_log (timestamp)")


_MIGRATIONS: list[Callable[[sqlite3.Connection], None]] = [
    _v0_to_v1,
    _v1_to_v2,
]

LATEST_SCHEMA_VERSION = len(_MIGRATIONS)


def get_user_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("PRAGMA user_version").fetchone()
    return int(row[0]) if row else 0


def _set_user_version(conn: sqlite3.Connection, version: int) -> None:
    # PRAGMA does not accept bound parameters.
    conn.execute(f"PRAGMA user_version = {int(version)}")


def run_migrations(conn: sqlite3.Connection) -> int:
    """
    Apply every pending migration in its own transaction.

    Returns the schema version after the run. A database newer than this
    code is left untouched.
    """
    current = get_user_version(conn)
    if current > LATEST_SCHEMA_VERSION:
        logger.warning(
            "Database schema v%d is newer than supported v%d", current, LATEST_SCHEMA_VERSION
        )
        return current

    for version in range(current, LATEST_SCHEMA_VERSION):
        with conn:
            _MIGRATIONS[version](conn)
            _set_user_version(conn, version + 1)
        logger.info("Applied migration v%d -> v%d", version, version + 1)

    return get_user_version(conn)
