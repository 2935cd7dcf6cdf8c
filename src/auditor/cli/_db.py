"""Database inspection and management CLI commands."""

from __future__ import annotations

import json
import sqlite3

import click
from rich.console import Console

from auditor.cli._common import load_config_or_exit

console = Console()


@click.group("db")
def db_group() -> None:
    """Database inspection and management."""


@db_group.command("info")
@click.option("--config", "config_path", default="", help="Config file path")
@click.option("--json", "as_json", is_flag=True, default=False)
def db_info(config_path: str, as_json: bool) -> None:
    """Show database path, schema version, and record stats."""
    from auditor.core.store.migrations import LATEST_SCHEMA_VERSION, get_user_version

    cfg = load_config_or_exit(config_path, console)
    db_path = cfg.db_path

    if not db_path.exists():
        if as_json:
            click.echo(json.dumps({"exists": False, "path": str(db_path)}))
        else:
            console.print(f"Database does not exist yet: {db_path}")
            console.print("It will be created on the first [cyan]auditor run[/cyan].")
        return

    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    try:
        version = get_user_version(conn)
        try:
            count, oldest, newest = conn.execute(
                "SELECT count(*), min(timestamp), max(timestamp) FROM audit_log"
            ).fetchone()
        except sqlite3.Error:
            count, oldest, newest = -1, None, None  # table missing
        size_kb = db_path.stat().st_size / 1024

        if as_json:
            click.echo(
                json.dumps(
                    {
                        "exists": True,
                        "path": str(db_path),
                        "schema_version": version,
                        "latest_version": LATEST_SCHEMA_VERSION,
                        "size_kb": round(size_kb, 1),
                        "records": count,
                        "oldest": oldest,
                        "newest": newest,
                    },
                    indent=2,
                )
            )
        else:
            console.print(f"[bold]Database[/bold]: {db_path}")
            console.print(f"Schema version: {version} (latest: {LATEST_SCHEMA_VERSION})")
            console.print(f"Size: {size_kb:.1f} KB")
            status = f"{count}" if count >= 0 else "[red]missing[/red]"
            console.print(f"Records: {status}")
            if oldest:
                console.print(f"Oldest:  {oldest}")
                console.print(f"Newest:  {newest}")
    finally:
        conn.close()


@db_group.command("migrate")
@click.option("--config", "config_path", default="", help="Config file path")
@click.option(
    "--dry-run", is_flag=True, default=False, help="Show pending migrations without applying them."
)
@click.option(
    "--json", "as_json", is_flag=True, default=False, help="Machine-readable JSON output."
)
def db_migrate(config_path: str, dry_run: bool, as_json: bool) -> None:
    """Run (or preview) pending schema migrations."""
    from auditor.core.store.migrations import (
        LATEST_SCHEMA_VERSION,
        get_user_version,
        run_migrations,
    )

    cfg = load_config_or_exit(config_path, console)
    db_path = cfg.db_path

    if not db_path.exists():
        if as_json:
            click.echo(json.dumps({"status": "no_database", "path": str(db_path)}))
        else:
            console.print(f"Database does not exist yet: {db_path}")
            console.print("It will be created on the first [cyan]auditor run[/cyan].")
        return

    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    try:
        current = get_user_version(conn)
        pending = list(range(current, LATEST_SCHEMA_VERSION))

        if as_json:
            if pending and not dry_run:
                run_migrations(conn)
            click.echo(
                json.dumps(
                    {
                        "path": str(db_path),
                        "current_version": current,
                        "latest_version": LATEST_SCHEMA_VERSION,
                        "pending_migrations": [f"v{v} -> v{v + 1}" for v in pending],
                        "dry_run": dry_run,
                        "status": "up_to_date"
                        if not pending
                        else ("dry_run" if dry_run else "applied"),
                    },
                    indent=2,
                )
            )
            return

        if not pending:
            console.print(f"[green]Database is up to date[/green] (v{current}).")
            return

        if dry_run:
            console.print(f"[bold]Database[/bold]: {db_path}")
            console.print(f"Current schema version: {current}")
            console.print(f"Latest schema version:  {LATEST_SCHEMA_VERSION}")
            console.print(f"\n[yellow]Pending migrations ({len(pending)}):[/yellow]")
            for v in pending:
                console.print(f"  v{v} -> v{v + 1}")
            console.print("\nRun without [cyan]--dry-run[/cyan] to apply.")
            return

        run_migrations(conn)
        console.print(
            f"[green]Migrations applied successfully[/green] "
            f"(v{current} -> v{LATEST_SCHEMA_VERSION})."
        )
    finally:
        conn.close()
