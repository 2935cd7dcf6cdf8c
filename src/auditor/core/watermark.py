"""
Acceptance watermark — the timestamp of the last record handed to the store.

A record is accepted only when no watermark is set yet or when its timestamp
is strictly greater than the watermark. Re-reading the file from a stale
cursor therefore cannot insert the same record twice, without any dedup
index in the store. Two distinct records sharing one timestamp lose the
second one.
"""

from __future__ import annotations

import asyncio

from auditor.core.models import AuditTimestamp


class Watermark:
    """
    Guarded last-accepted timestamp.

    The check and the update happen under one ``asyncio.Lock`` so that
    concurrent ingestion tasks cannot both accept the same timestamp.
    """

    def __init__(self, initial: AuditTimestamp | None = None) -> None:
        self._value = initial
        self._lock = asyncio.Lock()

    async def admit(self, timestamp: AuditTimestamp) -> bool:
        """Accept *timestamp* and advance the watermark, or reject it."""
        async with self._lock:
            if self._value is not None and timestamp <= self._value:
                return False
            self._value = timestamp
            return True

    async def get(self) -> AuditTimestamp | None:
        async with self._lock:
            return self._value

    async def reset(self, value: AuditTimestamp | None) -> None:
        async with self._lock:
            self._value = value
