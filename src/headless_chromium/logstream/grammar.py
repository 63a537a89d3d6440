"""Chromium log line grammar.

Chromium prefixes every log line with a header of the form::

    [pid:tid:MMDD/hhmmss.uuuuuu:tickcount:SEVERITY:source(lineno)] message

pid, tid, the timestamp and the tick count are all optional. Chrome 56
added sub-second precision to the timestamp and made it optional, so the
pattern accepts every historical variant. Lines that do not match are
continuations of the previous record, never errors.
"""

from __future__ import annotations

import re

from headless_chromium.logstream.records import LogRecord

LOG_LINE_RE = re.compile(
    r"^\["
    # pid and tid
    r"(?:\d+:){0,2}"
    # MMDD/hhmmss with optional .mmm or .uuuuuu
    r"(?:\d{4}/\d{6}(?:\.(?:\d{3}){1,2})?:)?"
    # tickcount
    r"(?:\d+:)?"
    r"(?P<severity>INFO|WARNING|ERROR|ERROR_REPORT|FATAL|VERBOSE\d*|UNKNOWN)"
    r":(?P<source>.*?)\((?P<line>\d+)\)"
    r"\] "
    r"(?P<message>.*)$"
)


def parse_line(line: str) -> LogRecord | None:
    """Parse one complete line (without its trailing newline).

    Returns:
        The ``LogRecord`` if the line starts with a log header, else ``None``
        (the line continues the previous record).
    """
    match = LOG_LINE_RE.match(line)
    if match is None:
        return None
    return LogRecord(
        severity=match.group("severity"),
        source=match.group("source"),
        line_number=int(match.group("line")),
        message=match.group("message"),
    )
