"""
auditd line parser — turns one raw ``audit.log`` line into an AuditRecord.

Only EXECVE records are of interest. Every other record type (SYSCALL, CWD,
PATH, PROCTITLE, ...) is rejected with an empty reason so that callers can
skip it without logging.

The first pair must be ``type=``. Lines carrying a ``node=`` prefix (auditd
with ``name_format`` set) are therefore malformed, and every one of them is
rejected with a reason that the tailer logs at ERROR.

Usage::

    try:
        record = parse_line(line)
    except ParseError as exc:
        if exc.should_log:
            logger.error("%s", exc.reason)
"""

from __future__ import annotations

import re

from auditor.core.constants import LOG_TYPE_EXECVE
from auditor.core.exceptions import ParseError
from auditor.core.models import AuditRecord, AuditTimestamp

# key=value where value is either a double-quoted string (with \" escapes)
# or a run of non-whitespace.
_PAIR_RE = re.compile(r'(\w+)=("(?:\\.|[^"\\])*"|[^\s]+)')

_HEADER_RE = re.compile(r"audit\((?P<seconds>-?\d+)\.(?P<nanos>\d+):(?P<serial>\d+)\):")

_ARG_KEY_RE = re.compile(r"a\d+")


def tokenize(line: str) -> list[tuple[str, str]]:
    """Return the ``(key, raw_value)`` pairs of *line* in order of appearance."""
    return [(m.group(1), m.group(2)) for m in _PAIR_RE.finditer(line)]


def strip_quotes(value: str, field: str = "argument") -> str:
    """
    Drop one leading and one trailing double quote.

    Unquoted values (auditd hex-encodes arguments with spaces or control
    characters) are returned unchanged. Escaped quotes inside the value are
    left exactly as written.

    Raises:
        ParseError: if the value opens a quote that is never closed.
    """
    if not value.startswith('"'):
        return value
    if len(value) < 2 or not value.endswith('"'):
        raise ParseError(f'Unable to strip " from {field}: {value!r}')
    return value[1:-1]


def parse_timestamp(header: str) -> AuditTimestamp:
    """
    Decode an ``audit(SECONDS.NANOS:SERIAL):`` message header.

    The fractional part is read as a whole number of nanoseconds, the way
    the records have always been stored.

    Raises:
        ParseError: if the header is malformed or out of range.
    """
    m = _HEADER_RE.fullmatch(header)
    if m is None:
        raise ParseError(f"Invalid timestamp: {header}")
    try:
        return AuditTimestamp(int(m["seconds"]), int(m["nanos"]))
    except ValueError as exc:
        raise ParseError(f"Invalid timestamp: {header} ({exc})") from exc


def parse_line(line: str) -> AuditRecord:
    """
    Parse one audit log line.

    Args:
        line: Raw line, with or without the trailing newline.

    Returns:
        The parsed :class:`AuditRecord`.

    Raises:
        ParseError: with an empty reason when the line is not an EXECVE
            record, or with a descriptive reason when it is malformed.
    """
    pairs = iter(tokenize(line))

    first = next(pairs, None)
    if first is None or first[0] != "type":
        raise ParseError(f"Missing log type in line: {line.rstrip()}")
    if first[1] != LOG_TYPE_EXECVE:
        raise ParseError("")

    header = next(pairs, None)
    if header is None:
        raise ParseError(f"Missing timestamp in line: {line.rstrip()}")
    timestamp = parse_timestamp(header[1])

    program = ""
    args: list[str] = []
    argc = 0
    try:
        for key, value in pairs:
            if key == "a0":
                program = strip_quotes(value, "program")
            elif key == "argc":
                if not (value.isascii() and value.isdigit()):
                    raise ParseError(f"Invalid argc {value!r}")
                argc = int(value)
            elif _ARG_KEY_RE.fullmatch(key):
                args.append(strip_quotes(value))
    except ParseError as exc:
        raise ParseError(f"{exc.reason} in line: {line.rstrip()}") from exc

    return AuditRecord(
        kind=LOG_TYPE_EXECVE,
        timestamp=timestamp,
        program=program,
        args=tuple(args),
        argc=argc,
    )
