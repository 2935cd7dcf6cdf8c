"""auditor doctor — environment and configuration health check."""

from __future__ import annotations

import json
import os
import sqlite3
import sys

import click
from rich.console import Console

from auditor.core.config import AuditorConfig
from auditor.core.constants import ExitCode


def _check_log_file(config: AuditorConfig) -> dict[str, str]:
    path = config.log_path
    if not path.exists():
        return {"name": "Audit log", "status": "fail", "detail": f"{path} does not exist"}
    if not os.access(path, os.R_OK):
        return {"name": "Audit log", "status": "fail", "detail": f"{path} is not readable"}
    return {"name": "Audit log", "status": "pass", "detail": str(path)}


def _check_data_dir(config: AuditorConfig) -> dict[str, str]:
    try:
        d = config.data_path
    except OSError as exc:
        return {"name": "Data directory", "status": "fail", "detail": str(exc)}
    if not os.access(d, os.W_OK):
        return {"name": "Data directory", "status": "fail", "detail": f"{d} is not writable"}
    return {"name": "Data directory", "status": "pass", "detail": str(d)}


def _check_schema(config: AuditorConfig) -> dict[str, str]:
    from auditor.core.store.migrations import LATEST_SCHEMA_VERSION, get_user_version

    db_path = config.db_path
    if not db_path.exists():
        return {"name": "Database", "status": "pass", "detail": "not created yet"}
    try:
        conn = sqlite3.connect(str(db_path))
        try:
            version = get_user_version(conn)
        finally:
            conn.close()
    except sqlite3.Error as exc:
        return {"name": "Database", "status": "fail", "detail": str(exc)}
    if version > LATEST_SCHEMA_VERSION:
        return {
            "name": "Database",
            "status": "fail",
            "detail": f"schema v{version} is newer than supported v{LATEST_SCHEMA_VERSION}",
        }
    detail = f"schema v{version}"
    if version < LATEST_SCHEMA_VERSION:
        detail += f" (v{LATEST_SCHEMA_VERSION} applied on next start)"
    return {"name": "Database", "status": "pass", "detail": detail}


def cmd_doctor(config: AuditorConfig, as_json: bool, console: Console) -> None:
    checks = [
        {"name": "Python version", "status": "pass", "detail": sys.version.split()[0]},
        {"name": "Platform", "status": "pass", "detail": sys.platform},
        _check_log_file(config),
        _check_data_dir(config),
        _check_schema(config),
    ]
    all_pass = all(c["status"] == "pass" for c in checks)

    if as_json:
        click.echo(json.dumps({"checks": checks, "all_pass": all_pass}, indent=2))
    else:
        console.print("[bold]auditor doctor[/bold]\n")
        for c in checks:
            icon = "[green]PASS[/green]" if c["status"] == "pass" else "[red]FAIL[/red]"
            console.print(f"  {icon}  {c['name']}: {c['detail']}")
        console.print()
        if all_pass:
            console.print("[green]All checks passed.[/green]")
        else:
            console.print("[red]Some checks failed.[/red]")

    if not all_pass:
        sys.exit(ExitCode.ERROR)
