"""auditor service install — systemd user unit for the daemon."""

from __future__ import annotations

import shutil
import subprocess
import sys

import click
from rich.console import Console

from auditor.core.config import AuditorConfig
from auditor.core.constants import ExitCode


def cmd_service_install(config: AuditorConfig, print_only: bool, console: Console) -> None:
    from auditor.os.systemd.service import (
        generate_unit_file,
        install_service,
        is_systemd_available,
        reload_and_enable,
    )

    exec_path = shutil.which("auditor") or f"{sys.executable} -m auditor.cli.main"
    unit = generate_unit_file(
        exec_path=exec_path,
        config_path=str(config._config_path),
        log_file=str(config.log_path),
    )

    if print_only:
        click.echo(unit, nl=False)
        return

    if not is_systemd_available():
        console.print("[red]systemd user session not available.[/red]")
        console.print("Use [cyan]--print[/cyan] and install the unit by hand.")
        sys.exit(ExitCode.ERROR)

    unit_path = install_service(unit)
    console.print(f"[green]Unit written:[/green] {unit_path}")
    try:
        reload_and_enable()
    except (OSError, subprocess.CalledProcessError) as exc:
        console.print(f"[red]systemctl failed:[/red] {exc}")
        sys.exit(ExitCode.ERROR)
    console.print("Enabled. Start it with [cyan]systemctl --user start auditor[/cyan].")
