"""
Record types shared by the parser, the store, the ranker, and the HTTP layer.

AuditTimestamp keeps the nanosecond part that auditd writes; ``datetime``
alone would round it to microseconds and two distinct records could then
compare equal under the watermark.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from auditor.core.constants import LOG_TYPE_EXECVE

_NANOS_PER_SECOND = 1_000_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ISO_RE = re.compile(
    r"(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d{1,9}))?(?:Z|\+00:00)?"
)


def _delta_nanos(delta: timedelta) -> int:
    return ((delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds) * 1000


@dataclass(frozen=True, order=True)
class AuditTimestamp:
    """UTC instant as epoch seconds plus nanoseconds."""

    seconds: int
    nanos: int = 0

    def __post_init__(self) -> None:
        if not (0 <= self.nanos < _NANOS_PER_SECOND):
            raise ValueError(f"nanos out of range: {self.nanos}")
        # Reject instants datetime cannot represent up front.
        self.to_datetime()

    @classmethod
    def from_datetime(cls, dt: datetime) -> AuditTimestamp:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        delta = dt - _EPOCH
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds, delta.microseconds * 1000)

    @classmethod
    def now(cls) -> AuditTimestamp:
        return cls.from_datetime(datetime.now(UTC))

    @classmethod
    def from_iso(cls, text: str) -> AuditTimestamp:
        """Parse the storage form written by :meth:`isoformat`."""
        m = _ISO_RE.fullmatch(text.strip())
        if m is None:
            raise ValueError(f"Not a UTC ISO-8601 timestamp: {text!r}")
        base = datetime.strptime(m["base"], "%Y-%m-%dT%H:%M:%S").replace(tzinfo=UTC)
        frac = (m["frac"] or "").ljust(9, "0")
        return cls(cls.from_datetime(base).seconds, int(frac))

    def to_datetime(self) -> datetime:
        """Return an aware datetime (nanoseconds truncated to microseconds)."""
        try:
            return _EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanos // 1000)
        except OverflowError as exc:
            raise ValueError(f"timestamp out of range: {self.seconds}") from exc

    def isoformat(self) -> str:
        """Fixed-width storage form; sorts lexicographically in time order."""
        base = self.to_datetime().replace(microsecond=0, tzinfo=None).isoformat()
        return f"{base}.{self.nanos:09d}+00:00"

    def display(self) -> str:
        return self.to_datetime().replace(microsecond=0, tzinfo=None).isoformat(sep=" ")

    def total_nanos(self) -> int:
        return self.seconds * _NANOS_PER_SECOND + self.nanos

    @classmethod
    def from_nanos(cls, total: int) -> AuditTimestamp:
        seconds, nanos = divmod(total, _NANOS_PER_SECOND)
        return cls(seconds, nanos)

    def __add__(self, other: timedelta) -> AuditTimestamp:
        return AuditTimestamp.from_nanos(self.total_nanos() + _delta_nanos(other))

    def __sub__(self, other: timedelta) -> AuditTimestamp:
        return AuditTimestamp.from_nanos(self.total_nanos() - _delta_nanos(other))

    def __str__(self) -> str:
        return f"{self.display()}.{self.nanos:09d} UTC"


@dataclass(frozen=True)
class AuditRecord:
    """One parsed EXECVE record."""

    timestamp: AuditTimestamp
    program: str
    args: tuple[str, ...] = ()
    argc: int = 0
    kind: str = LOG_TYPE_EXECVE

    @property
    def command(self) -> str:
        return " ".join([self.program, *self.args])

    def view(self) -> RecordView:
        return RecordView(timestamp=self.timestamp.display(), command=self.command)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "timestamp": self.timestamp.isoformat(),
            "program": self.program,
            "args": list(self.args),
            "argc": self.argc,
            "command": self.command,
        }

    def __str__(self) -> str:
        return f"{self.timestamp}:  {self.command}"


@dataclass(frozen=True)
class RecordView:
    """What the HTTP surface returns and the ranker scores."""

    timestamp: str
    command: str

    def to_dict(self) -> dict[str, str]:
        return {"timestamp": self.timestamp, "command": self.command}
