"""
auditor.core.store — record persistence.

Modules:
    sink        Sink interface and the retention policy
    database    SQLite implementation (raw sqlite3, no ORM)
    memory      List-backed implementation for tests and dry runs
    migrations  Schema versioning via PRAGMA user_version
"""

from auditor.core.store.sink import Sink, retention_cutoff

__all__ = ["Sink", "retention_cutoff"]
