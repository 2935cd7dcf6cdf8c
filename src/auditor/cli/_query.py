"""auditor logs / search / clear / parse — read and maintain the store from the shell."""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console
from rich.table import Table

from auditor.cli._common import open_database_or_exit
from auditor.core.config import AuditorConfig
from auditor.core.constants import ExitCode
from auditor.core.models import RecordView


def _print_views(views: list[RecordView], as_json: bool, console: Console, title: str) -> None:
    if as_json:
        click.echo(json.dumps([v.to_dict() for v in views], indent=2))
        return
    if not views:
        console.print("[dim]No records.[/dim]")
        return
    table = Table(title=title, show_lines=False)
    table.add_column("Timestamp (UTC)", style="dim", no_wrap=True)
    table.add_column("Command", overflow="fold")
    for v in views:
        table.add_row(v.timestamp, v.command)
    console.print(table)


def cmd_logs(
    config: AuditorConfig, page: int, page_size: int, as_json: bool, console: Console
) -> None:
    db = open_database_or_exit(config, console)
    try:
        records = db.list_page(page, page_size)
    finally:
        db.close()
    _print_views([r.view() for r in records], as_json, console, f"Page {page}")


def cmd_search(config: AuditorConfig, query: str, n: int, as_json: bool, console: Console) -> None:
    from auditor.core.search import rank

    db = open_database_or_exit(config, console)
    try:
        views = [r.view() for r in db.list_all()]
    finally:
        db.close()

    ranked = rank(query, views)[: max(n, 0)]
    if as_json:
        click.echo(
            json.dumps([{**v.to_dict(), "score": round(s, 4)} for v, s in ranked], indent=2)
        )
        return
    _print_views([v for v, _ in ranked], False, console, f"Best matches for {query!r}")


def cmd_clear(config: AuditorConfig, console: Console) -> None:
    from auditor.core.store.sink import retention_cutoff

    db = open_database_or_exit(config, console)
    try:
        cutoff = retention_cutoff(weeks=config.retention.weeks)
        deleted = db.delete_before(cutoff)
    finally:
        db.close()
    console.print(
        f"[green]Deleted {deleted} record(s)[/green] older than {cutoff.display()} UTC "
        f"({config.retention.weeks} weeks)."
    )


def cmd_parse(line: str, as_json: bool, console: Console) -> None:
    from auditor.core.exceptions import ParseError
    from auditor.core.parser import parse_line

    try:
        record = parse_line(line)
    except ParseError as exc:
        reason = exc.reason or "not an EXECVE record"
        if as_json:
            click.echo(json.dumps({"ok": False, "reason": reason}))
        else:
            console.print(f"[yellow]Rejected:[/yellow] {reason}")
        sys.exit(ExitCode.ERROR)

    if as_json:
        click.echo(json.dumps({"ok": True, "record": record.to_dict()}, indent=2))
        return
    console.print(f"[bold]timestamp[/bold]  {record.timestamp}")
    console.print(f"[bold]program[/bold]    {record.program}")
    console.print(f"[bold]argc[/bold]       {record.argc}")
    console.print(f"[bold]args[/bold]       {list(record.args)}")
    console.print(f"[bold]command[/bold]    {record.command}")
