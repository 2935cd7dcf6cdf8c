"""
Tailer — follows the audit log and forwards new EXECVE records to a Sink.

Lifecycle::

    tailer = Tailer(path, sink)
    await tailer.prepare()          # watermark from the store's latest record
    await tailer.skip_existing()    # or: await tailer.catch_up()
    await tailer.run()              # until the event source closes

Each change notification is followed by a short settle delay, then the file
is read from the cursor to its end. Lines are judged one by one:

  - unparseable lines are skipped (and logged when the reason is non-empty)
  - records at or before the watermark are skipped as already seen
  - accepted records are appended to the sink, and the cursor moves to the
    byte just after that line

Read errors end ingestion. Sink errors are logged and ingestion carries on
with the next line; the record is not retried.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from auditor.core.constants import SETTLE_SECONDS
from auditor.core.exceptions import ParseError, SinkError, StartupError, WatchIOError
from auditor.core.ingest.events import FileEventSource, WatchdogEventSource
from auditor.core.models import AuditRecord
from auditor.core.parser import parse_line
from auditor.core.store.sink import Sink
from auditor.core.watermark import Watermark

logger = logging.getLogger(__name__)


class Tailer:
    """Ingestion pipeline for one growing audit log file."""

    def __init__(
        self,
        path: Path,
        sink: Sink,
        source: FileEventSource | None = None,
        *,
        settle_seconds: float = SETTLE_SECONDS,
        watermark: Watermark | None = None,
    ) -> None:
        self.path = Path(path)
        self.sink = sink
        self.source = source if source is not None else WatchdogEventSource(self.path)
        self.settle_seconds = settle_seconds
        self.watermark = watermark if watermark is not None else Watermark()
        self.cursor = 0
        self.accepted = 0
        self.rejected = 0
        self.failed_writes = 0

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        """Seed the watermark from the most recent stored record."""
        try:
            latest = await self.sink.fetch_latest()
        except SinkError as exc:
            raise StartupError(f"Cannot read latest record from store: {exc}") from exc
        if latest is not None:
            await self.watermark.reset(latest.timestamp)
            logger.info("Last stored record: %s", latest)

    async def skip_existing(self) -> int:
        """Start at the current end of the file; only future appends count."""
        try:
            size = await asyncio.to_thread(lambda: self.path.stat().st_size)
        except OSError as exc:
            raise StartupError(f"Cannot open {self.path}: {exc}") from exc
        self.cursor = size
        logger.info("Skipping %d existing bytes of %s", size, self.path)
        return self.cursor

    async def catch_up(self) -> int:
        """
        Ingest the whole existing file once, then continue from where it ended.

        Records already in the store sit at or below the watermark and are
        skipped. Returns the number of records appended.
        """
        self.cursor = 0
        try:
            added = await self.consume()
        except WatchIOError as exc:
            raise StartupError(str(exc)) from exc
        logger.info("Catch-up added %d record(s) from %s", added, self.path)
        return added

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _read_from(self, offset: int) -> tuple[int, bytes]:
        with self.path.open("rb") as fh:
            if os.fstat(fh.fileno()).st_size < offset:
                # Truncated or rotated in place: start over.
                offset = 0
            fh.seek(offset)
            return offset, fh.read()

    async def consume(self) -> int:
        """
        Read everything after the cursor and judge each complete line.

        Returns the number of records appended to the sink.

        Raises:
            WatchIOError: if the file cannot be opened, seeked, or read.
        """
        try:
            start, data = await asyncio.to_thread(self._read_from, self.cursor)
        except OSError as exc:
            raise WatchIOError(f"Cannot read {self.path} at offset {self.cursor}: {exc}") from exc
        if start != self.cursor:
            logger.warning(
                "%s shrank below offset %d; reading from the start", self.path, self.cursor
            )
            self.cursor = start

        added = 0
        pos = 0
        while True:
            nl = data.find(b"\n", pos)
            if nl < 0:
                # Unterminated tail: still being written.
                break
            raw = data[pos:nl]
            pos = nl + 1
            record = await self.judge(raw.decode("utf-8", errors="replace"))
            if record is None:
                continue
            if await self._forward(record):
                self.cursor = start + pos
                added += 1
        return added

    async def judge(self, line: str) -> AuditRecord | None:
        """Parse *line* and apply the watermark; return the record if accepted."""
        try:
            record = parse_line(line)
        except ParseError as exc:
            if exc.should_log:
                logger.error("%s", exc.reason)
            return None

        if not await self.watermark.admit(record.timestamp):
            self.rejected += 1
            logger.debug("Skipping already-seen record: %s", record)
            return None
        return record

    async def _forward(self, record: AuditRecord) -> bool:
        try:
            await self.sink.append(record)
        except SinkError as exc:
            self.failed_writes += 1
            logger.error("Could not insert new audit log: %s", exc)
            return False
        self.accepted += 1
        logger.debug("Stored: %s", record)
        return True

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Watch the file and ingest on every change until the source ends."""
        await self.source.start()
        logger.info("Tailing %s from offset %d", self.path, self.cursor)
        try:
            async for _event in self.source:
                await asyncio.sleep(self.settle_seconds)
                added = await self.consume()
                if added:
                    logger.debug("Ingested %d record(s); cursor at %d", added, self.cursor)
        finally:
            await self.source.stop()
            logger.info("Tailer stopped at offset %d", self.cursor)
