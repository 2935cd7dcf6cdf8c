"""In-memory Sink for tests and dry runs."""

from __future__ import annotations

from auditor.core.exceptions import SinkError
from auditor.core.models import AuditRecord, AuditTimestamp
from auditor.core.store.sink import Sink, check_page


class MemorySink(Sink):
    """
    List-backed sink.

    Set ``fail_appends`` to make :meth:`append` raise, which is how the
    ingestion tests exercise the best-effort write path.
    """

    def __init__(self, records: list[AuditRecord] | None = None) -> None:
        self._records: list[AuditRecord] = list(records or [])
        self.fail_appends = False
        self.closed = False

    async def append(self, record: AuditRecord) -> None:
        if self.fail_appends:
            raise SinkError("append rejected: store unavailable")
        self._records.append(record)

    def _newest_first(self) -> list[AuditRecord]:
        # Stable sort on the reversed list: later inserts win timestamp ties.
        return sorted(reversed(self._records), key=lambda r: r.timestamp, reverse=True)

    async def fetch_page(self, page: int, page_size: int) -> list[AuditRecord]:
        offset = check_page(page, page_size)
        return self._newest_first()[offset : offset + page_size]

    async def fetch_all(self) -> list[AuditRecord]:
        return self._newest_first()

    async def fetch_latest(self) -> AuditRecord | None:
        ordered = self._newest_first()
        return ordered[0] if ordered else None

    async def delete_older_than(self, cutoff: AuditTimestamp) -> int:
        kept = [r for r in self._records if r.timestamp >= cutoff]
        deleted = len(self._records) - len(kept)
        self._records = kept
        return deleted

    async def aclose(self) -> None:
        self.closed = True

    def __len__(self) -> int:
        return len(self._records)
