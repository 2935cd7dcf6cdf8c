"""Unit tests for auditor.core.store.migrations — PRAGMA user_version schema steps."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from auditor.core.store.database import Database
from auditor.core.store.migrations import (
    LATEST_SCHEMA_VERSION,
    _v0_to_v1,
    get_user_version,
    run_migrations,
)


def _indexes(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'").fetchall()
    return {r[0] for r in rows}


class TestRunMigrations:
    def test_fresh_database_reaches_latest(self, tmp_path: Path) -> None:
        conn = sqlite3.connect(str(tmp_path / "a.db"))
        assert get_user_version(conn) == 0
        assert run_migrations(conn) == LATEST_SCHEMA_VERSION
        assert "idx_audit_log_timestamp" in _indexes(conn)
        conn.close()

    def test_idempotent(self, tmp_path: Path) -> None:
        conn = sqlite3.connect(str(tmp_path / "a.db"))
        run_migrations(conn)
        assert run_migrations(conn) == LATEST_SCHEMA_VERSION
        conn.close()

    def test_upgrades_v1_keeping_rows(self, tmp_path: Path) -> None:
        conn = sqlite3.connect(str(tmp_path / "a.db"))
        _v0_to_v1(conn)
        conn.execute("PRAGMA user_version = 1")
        conn.execute(
            "INSERT INTO audit_log (type, timestamp, program, command) "
            "VALUES ('EXECVE', '2024-05-29T17:34:09.000000439+00:00', 'ls', 'ls')"
        )
        conn.commit()

        run_migrations(conn)

        assert get_user_version(conn) == LATEST_SCHEMA_VERSION
        assert conn.execute("SELECT count(*) FROM audit_log").fetchone()[0] == 1
        assert "idx_audit_log_timestamp" in _indexes(conn)
        conn.close()

    def test_newer_schema_left_alone(self, tmp_path: Path) -> None:
        conn = sqlite3.connect(str(tmp_path / "a.db"))
        conn.execute(f"PRAGMA user_version = {LATEST_SCHEMA_VERSION + 5}")
        assert run_migrations(conn) == LATEST_SCHEMA_VERSION + 5
        assert conn.execute("SELECT name FROM sqlite_master").fetchall() == []
        conn.close()

    def test_database_connect_migrates(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "b.db")
        db.connect()
        try:
            assert get_user_version(db.conn) == LATEST_SCHEMA_VERSION
        finally:
            db.close()
