"""Chromium log stream processing.

Raw bytes from Chromium's stdout/stderr are split into lines by
``decoder``, matched against Chromium's log header by ``grammar`` and
routed by ``router``: JavaScript console messages are reassembled
(``console``) and always printed, other records are printed only when
``filters`` allows them.
"""

from headless_chromium.logstream.decoder import LineDecoder
from headless_chromium.logstream.filters import SeverityFilter
from headless_chromium.logstream.grammar import parse_line
from headless_chromium.logstream.records import CONSOLE_SOURCE, LogRecord, Severity
from headless_chromium.logstream.router import LogRouter, StreamState

__all__ = [
    "CONSOLE_SOURCE",
    "LineDecoder",
    "LogRecord",
    "LogRouter",
    "Severity",
    "SeverityFilter",
    "StreamState",
    "parse_line",
]
