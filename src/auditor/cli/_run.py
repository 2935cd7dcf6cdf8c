"""auditor run — follow the audit log and serve the query API (foreground)."""

from __future__ import annotations

import asyncio
import sys

from rich.console import Console

from auditor.core.config import AuditorConfig
from auditor.core.constants import ExitCode


def cmd_run(config: AuditorConfig, console: Console) -> None:
    """Run the daemon in the foreground until a task fails or a signal arrives."""
    from auditor.core.exceptions import AuditorError, StartupError
    from auditor.core.logging_setup import configure_logging

    configure_logging(config.logging.level, config.logging.format)

    mode = "catching up on" if config.ingest.catch_up else "following new lines of"
    console.print(f"[bold]auditor[/bold] {mode} [cyan]{config.log_path}[/cyan]")
    console.print(
        f"Serving on http://{config.server.host}:{config.server.port}  "
        f"(store: {config.db_path})"
    )
    console.print("Press Ctrl+C to stop.\n")

    try:
        asyncio.run(_run_async(config))
    except StartupError as exc:
        console.print(f"[red]Startup failed:[/red] {exc}")
        sys.exit(ExitCode.STARTUP_ERROR)
    except AuditorError as exc:
        console.print(f"[red]Stopped:[/red] {exc}")
        sys.exit(ExitCode.RUNTIME_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(ExitCode.SUCCESS)


async def _run_async(config: AuditorConfig) -> None:
    from auditor.core.daemon.manager import DaemonManager

    manager = DaemonManager(config)
    await manager.start()
