"""
systemd service integration for Linux.

auditor never restarts its own tasks: when ingestion or the HTTP server
fails, the process exits. The unit generated here supplies the restart
policy.

Service lifecycle::

    auditor service install            # generate + install + enable
    systemctl --user start auditor     # start daemon
    journalctl --user -u auditor -f    # follow logs

The unit file is written to: ~/.config/systemd/user/auditor.service
(respects $XDG_CONFIG_HOME). Reading /var/log/audit/audit.log normally needs
root or membership of the log's group; for a system-wide install, copy the
printed unit to /etc/systemd/system/ instead.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

_SERVICE_NAME = "auditor.service"

_UNIT_TEMPLATE = """\
[Unit]
Description=auditor: searchable history of executed commands (auditd EXECVE)
After=network.target auditd.service

[Service]
Type=simple
ExecStart={exec_path} run {log_file}
Restart=on-failure
RestartSec=5s
Environment="AUDITOR_CONFIG={config_path}"
StandardOutput=journal
StandardError=journal
SyslogIdentifier=auditor

[Install]
WantedBy=default.target
"""


def generate_unit_file(exec_path: str, config_path: str, log_file: str) -> str:
    """
    Generate a systemd service unit file.

    Args:
        exec_path:   Absolute path to the ``auditor`` binary.
        config_path: Absolute path to the auditor config TOML file.
        log_file:    The audit log to follow.

    Returns:
        Unit file content as a string.
    """
    return _UNIT_TEMPLATE.format(
        exec_path=exec_path,
        config_path=config_path,
        log_file=log_file,
    )


def systemd_user_dir() -> Path:
    """Return the systemd user unit directory (~/.config/systemd/user/)."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config) / "systemd" / "user"


def install_service(unit_content: str) -> Path:
    """
    Write the unit file to the systemd user directory.

    Returns:
        Path where the unit file was written.
    """
    unit_dir = systemd_user_dir()
    unit_dir.mkdir(parents=True, exist_ok=True)
    unit_path = unit_dir / _SERVICE_NAME
    unit_path.write_text(unit_content, encoding="utf-8")
    unit_path.chmod(0o644)
    return unit_path


def reload_and_enable() -> None:
    """Run ``systemctl --user daemon-reload`` and ``enable auditor``."""
    for args in (["daemon-reload"], ["enable", "auditor"]):
        subprocess.run(  # nosec B603 B607
            ["systemctl", "--user", *args],
            check=True,
            capture_output=True,
        )


def is_systemd_available() -> bool:
    """
    Return True if systemd user sessions are available on the current system.

    Always returns False on non-Linux platforms.
    """
    if not sys.platform.startswith("linux"):
        return False
    try:
        result = subprocess.run(  # nosec B603 B607
            ["systemctl", "--user", "status"],
            capture_output=True,
            timeout=3.0,
        )
        # 0 = running, 3 = degraded / unit not found; both mean systemd is present
        return result.returncode in (0, 3)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
