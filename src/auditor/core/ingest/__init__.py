"""
auditor.core.ingest — following the audit log.

Modules:
    events  File change notifications (watchdog) and the one-slot channel
    tailer  Offset tracking, per-line judging, forwarding to the store
"""
