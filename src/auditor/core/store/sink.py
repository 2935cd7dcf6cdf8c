"""
Sink — the storage interface seen by ingestion and the query service.

Any store that can append records and hand them back newest-first satisfies
it. Implementations raise :class:`SinkError` on failure and never return
partial writes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

from auditor.core.constants import RETENTION_WEEKS
from auditor.core.models import AuditRecord, AuditTimestamp


def retention_cutoff(
    now: AuditTimestamp | None = None, weeks: int = RETENTION_WEEKS
) -> AuditTimestamp:
    """Return the instant before which records fall out of retention."""
    return (now or AuditTimestamp.now()) - timedelta(weeks=weeks)


def check_page(page: int, page_size: int) -> int:
    """Validate 1-indexed pagination and return the row offset."""
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return (page - 1) * page_size


class Sink(ABC):
    """Durable record store."""

    @abstractmethod
    async def append(self, record: AuditRecord) -> None:
        """Store one record."""

    @abstractmethod
    async def fetch_page(self, page: int, page_size: int) -> list[AuditRecord]:
        """Return page *page* (1-indexed) of records, newest first."""

    @abstractmethod
    async def fetch_all(self) -> list[AuditRecord]:
        """Return every stored record, newest first."""

    @abstractmethod
    async def fetch_latest(self) -> AuditRecord | None:
        """Return the most recent record, or None when the store is empty."""

    @abstractmethod
    async def delete_older_than(self, cutoff: AuditTimestamp) -> int:
        """Delete records strictly older than *cutoff*; return how many went."""

    async def aclose(self) -> None:  # noqa: B027
        """Release resources. The default does nothing."""
