"""Shared helpers for CLI commands: config loading and store access."""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console

from auditor.core.config import AuditorConfig
from auditor.core.constants import ExitCode


def load_config_or_exit(config_path: str, console: Console) -> AuditorConfig:
    """Load configuration, printing the error and exiting on failure."""
    from auditor.core.config import load_config
    from auditor.core.exceptions import ConfigError, ConfigNotFoundError

    try:
        return load_config(Path(config_path) if config_path else None)
    except ConfigNotFoundError as exc:
        console.print(f"[red]Not configured:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)


def open_database_or_exit(config: AuditorConfig, console: Console):  # type: ignore[no-untyped-def]
    """Open the configured SQLite store, exiting with STARTUP_ERROR on failure."""
    from auditor.core.exceptions import SinkError
    from auditor.core.store.database import Database

    db = Database(config.db_path)
    try:
        db.connect()
    except SinkError as exc:
        console.print(f"[red]Database error:[/red] {exc}")
        sys.exit(ExitCode.STARTUP_ERROR)
    return db
