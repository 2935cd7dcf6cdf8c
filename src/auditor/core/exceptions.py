"""auditor exception hierarchy."""

from __future__ import annotations


class AuditorError(Exception):
    """Base exception for all auditor errors."""


class ConfigError(AuditorError):
    """Raised when the configuration is invalid or cannot be read."""


class ConfigNotFoundError(ConfigError):
    """Raised when an explicitly requested configuration file does not exist."""


class ParseError(AuditorError):
    """
    Raised when a log line cannot be turned into an AuditRecord.

    An empty reason means the line is simply not an execution event; those
    are the bulk of the audit stream and are never logged.
    """

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason)
        self.reason = reason

    @property
    def should_log(self) -> bool:
        return bool(self.reason)


class WatchIOError(AuditorError):
    """Raised when the watched file cannot be opened, seeked, or read."""


class SinkError(AuditorError):
    """Raised when the record store is unavailable or rejects a request."""


class StartupError(AuditorError):
    """Raised when the process cannot reach a state where it can run."""
