"""
auditor — live, searchable history of the commands executed on a host.

auditor follows the auditd log file, keeps every EXECVE record it sees in a
local SQLite store, and serves them over a small HTTP API with pagination and
fuzzy search.

Package layout (src/auditor/):
  core/        parser, ranker, watermark, ingestion, store, daemon
  dashboard/   FastAPI query service and bundled static page
  os/systemd/  systemd user unit generation
  cli/         Click CLI entry point
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
