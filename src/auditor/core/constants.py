"""auditor constants: filesystem layout, defaults, and limits."""

from __future__ import annotations

from enum import IntEnum

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    STARTUP_ERROR = 3
    RUNTIME_ERROR = 4


# ---------------------------------------------------------------------------
# Filesystem layout
# ---------------------------------------------------------------------------

AUDITOR_DIR_NAME = ".auditor"
CONFIG_FILENAME = "config.toml"
DB_FILENAME = "auditor.db"
DEFAULT_LOG_FILE = "/var/log/audit/audit.log"

# ---------------------------------------------------------------------------
# Audit records
# ---------------------------------------------------------------------------

LOG_TYPE_EXECVE = "EXECVE"

# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

SETTLE_SECONDS = 0.1  # wait after a change notification before reading
EVENT_CHANNEL_CAPACITY = 1

# ---------------------------------------------------------------------------
# Query service
# ---------------------------------------------------------------------------

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 1000
# Keeps (page - 1) * page_size inside a signed 64-bit SQLite integer.
MAX_PAGE = 10**15
DEFAULT_SEARCH_RESULTS = 20
RETENTION_WEEKS = 2
