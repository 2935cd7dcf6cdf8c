"""Builders for audit log lines and records used across the test suite."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from auditor.core.ingest.events import EventChannel, FileEvent, FileEventSource
from auditor.core.models import AuditRecord, AuditTimestamp


def execve_line(seconds: int, program: str, *args: str, nanos: int = 0, serial: int = 1) -> str:
    """Build one EXECVE line the way auditd writes it."""
    parts = [f'a0="{program}"'] + [f'a{i}="{a}"' for i, a in enumerate(args, start=1)]
    return (
        f"type=EXECVE msg=audit({seconds}.{nanos:03d}:{serial}): "
        f"argc={len(args) + 1} " + " ".join(parts)
    )


def syscall_line(seconds: int, serial: int = 1) -> str:
    return (
        f"type=SYSCALL msg=audit({seconds}.000:{serial}): arch=c000003e syscall=59 "
        'success=yes exit=0 comm="ls" exe="/usr/bin/ls"'
    )


def make_record(seconds: int, program: str, *args: str, nanos: int = 0) -> AuditRecord:
    return AuditRecord(
        timestamp=AuditTimestamp(seconds, nanos),
        program=program,
        args=tuple(args),
        argc=len(args) + 1,
    )


class ManualEventSource(FileEventSource):
    """Event source driven by the test instead of the filesystem."""

    def __init__(self) -> None:
        self.channel = EventChannel()
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.channel.bind(asyncio.get_running_loop())
        self.started = True

    async def stop(self) -> None:
        self.stopped = True
        self.channel.close()

    def poke(self, path) -> None:  # type: ignore[no-untyped-def]
        self.channel.offer(FileEvent(path))

    def __aiter__(self) -> AsyncIterator[FileEvent]:
        return self.channel
