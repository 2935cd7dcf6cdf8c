"""
auditor CLI entry point.

Commands:
  auditor run [LOG_FILE]        follow the audit log and serve the query API
  auditor logs                  newest-first page of stored records
  auditor search QUERY          fuzzy-ranked search over stored commands
  auditor clear                 delete records older than the retention period
  auditor parse LINE            parse a single audit log line
  auditor db info|migrate       inspect or migrate the SQLite store
  auditor config show|init      view or create the config file
  auditor doctor                environment and configuration health check
  auditor service install       install a systemd user unit
"""

from __future__ import annotations

import click
from rich.console import Console

from auditor import __version__
from auditor.cli._common import load_config_or_exit
from auditor.cli._config_cmd import config_group
from auditor.cli._db import db_group
from auditor.core.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SEARCH_RESULTS,
    MAX_PAGE,
    MAX_PAGE_SIZE,
)

console = Console()
err_console = Console(stderr=True)

_config_option = click.option("--config", "config_path", default="", help="Config file path")


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", "-V", message="auditor %(version)s")
def cli() -> None:
    """auditor — searchable history of executed commands from auditd EXECVE records."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("log_file", required=False, default="")
@click.option(
    "--catch-up/--skip-existing",
    default=None,
    help="Ingest the existing file contents first, or only lines appended from now on.",
)
@click.option("--host", default="", help="Address to bind the HTTP server to")
@click.option("--port", type=click.IntRange(1, 65535), default=None, help="HTTP port")
@click.option("--static-dir", default="", help="Directory of static files to serve at /")
@_config_option
def run(
    log_file: str,
    catch_up: bool | None,
    host: str,
    port: int | None,
    static_dir: str,
    config_path: str,
) -> None:
    """Follow LOG_FILE (default: /var/log/audit/audit.log) and serve the query API."""
    from auditor.cli._run import cmd_run

    cfg = load_config_or_exit(config_path, err_console)
    if log_file:
        cfg.ingest.log_file = log_file
    if catch_up is not None:
        cfg.ingest.catch_up = catch_up
    if host:
        cfg.server.host = host
    if port is not None:
        cfg.server.port = port
    if static_dir:
        cfg.server.static_dir = static_dir

    cmd_run(cfg, console=console)


# ---------------------------------------------------------------------------
# logs / search / clear
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--page", type=click.IntRange(1, MAX_PAGE), default=1, show_default=True)
@click.option(
    "--page-size",
    type=click.IntRange(1, MAX_PAGE_SIZE),
    default=DEFAULT_PAGE_SIZE,
    show_default=True,
)
@click.option("--json", "as_json", is_flag=True, default=False)
@_config_option
def logs(page: int, page_size: int, as_json: bool, config_path: str) -> None:
    """Show stored records, newest first."""
    from auditor.cli._query import cmd_logs

    cfg = load_config_or_exit(config_path, err_console)
    cmd_logs(cfg, page=page, page_size=page_size, as_json=as_json, console=console)


@cli.command()
@click.argument("query")
@click.option(
    "-n", "n", type=click.IntRange(min=0), default=DEFAULT_SEARCH_RESULTS, show_default=True
)
@click.option("--json", "as_json", is_flag=True, default=False)
@_config_option
def search(query: str, n: int, as_json: bool, config_path: str) -> None:
    """Rank stored commands by similarity to QUERY."""
    from auditor.cli._query import cmd_search

    cfg = load_config_or_exit(config_path, err_console)
    cmd_search(cfg, query=query, n=n, as_json=as_json, console=console)


@cli.command()
@_config_option
def clear(config_path: str) -> None:
    """Delete records older than the retention period."""
    from auditor.cli._query import cmd_clear

    cfg = load_config_or_exit(config_path, err_console)
    cmd_clear(cfg, console=console)


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("line")
@click.option("--json", "as_json", is_flag=True, default=False)
def parse(line: str, as_json: bool) -> None:
    """Parse a single audit log LINE and show the resulting record."""
    from auditor.cli._query import cmd_parse

    cmd_parse(line, as_json=as_json, console=console)


# ---------------------------------------------------------------------------
# db / config
# ---------------------------------------------------------------------------

cli.add_command(db_group)
cli.add_command(config_group)


# ---------------------------------------------------------------------------
# doctor
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False)
@_config_option
def doctor(as_json: bool, config_path: str) -> None:
    """Check that the audit log, data directory, and store are usable."""
    from auditor.cli._doctor import cmd_doctor

    cfg = load_config_or_exit(config_path, err_console)
    cmd_doctor(cfg, as_json=as_json, console=console)


# ---------------------------------------------------------------------------
# service
# ---------------------------------------------------------------------------


@cli.group()
def service() -> None:
    """Manage the systemd user service."""


@service.command("install")
@click.option("--print", "print_only", is_flag=True, default=False, help="Print the unit only")
@_config_option
def service_install(print_only: bool, config_path: str) -> None:
    """Install and enable a systemd user unit running `auditor run`."""
    from auditor.cli._service import cmd_service_install

    cfg = load_config_or_exit(config_path, err_console)
    cmd_service_install(cfg, print_only=print_only, console=console)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
