"""CLI commands: auditor config show | init."""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console

from auditor.core.constants import ExitCode

console = Console()


@click.group("config")
def config_group() -> None:
    """View and create auditor configuration."""


@config_group.command("show")
@click.option("--config", "config_path", default="", help="Config file path")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
def config_show(config_path: str, as_json: bool) -> None:
    """Display the effective configuration (file + environment + defaults)."""
    from auditor.cli._common import load_config_or_exit
    from auditor.core.config import config_to_dict

    cfg = load_config_or_exit(config_path, console)
    data = config_to_dict(cfg)
    data["_config_path"] = str(cfg._config_path)

    if as_json:
        click.echo(json.dumps(data, indent=2))
    else:
        _print_config_rich(data, console)


@config_group.command("init")
@click.option("--config", "config_path", default="", help="Where to write the config file")
@click.option("--log-file", default="", help="Audit log to follow")
@click.option("--port", type=int, default=None, help="HTTP port")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file")
def config_init(config_path: str, log_file: str, port: int | None, force: bool) -> None:
    """Write a config file with defaults (plus any overrides given)."""
    from pathlib import Path

    from auditor.core.config import (
        AuditorConfig,
        _config_file_path,
        config_to_dict,
        save_config,
    )
    from auditor.core.exceptions import ConfigError

    cfg_path = Path(config_path) if config_path else _config_file_path()
    if cfg_path.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {cfg_path}")
        console.print("Use [cyan]--force[/cyan] to overwrite.")
        sys.exit(ExitCode.CONFIG_ERROR)

    data = config_to_dict(AuditorConfig())
    if log_file:
        data["ingest"]["log_file"] = log_file
    if port is not None:
        data["server"]["port"] = port

    try:
        AuditorConfig.model_validate(data)
        written = save_config(data, cfg_path)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except ValueError as exc:
        console.print(f"[red]Invalid value:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)
    console.print(f"[green]Config written:[/green] {written}")


def _print_config_rich(data: dict, console: Console) -> None:
    """Print config dict in a human-friendly format."""
    path = data.pop("_config_path", "unknown")
    console.print(f"[bold]auditor configuration[/bold]  ({path})\n")

    for section, values in data.items():
        if isinstance(values, dict):
            console.print(f"  [cyan][{section}][/cyan]")
            for k, v in values.items():
                console.print(f"    {k} = {v!r}")
        else:
            console.print(f"  {section} = {values!r}")
    console.print()
