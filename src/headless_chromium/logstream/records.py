"""Log record model for parsed Chromium output lines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Source reported by Chromium for messages written to the JavaScript console.
CONSOLE_SOURCE = "CONSOLE"


class Severity(str, Enum):
    """Chromium log severities.

    ``VERBOSE`` records carry their level as a suffix (``VERBOSE1``,
    ``VERBOSE2``); use :meth:`from_token` to map a raw token.
    """

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    ERROR_REPORT = "ERROR_REPORT"
    FATAL = "FATAL"
    VERBOSE = "VERBOSE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_token(cls, token: str) -> "Severity":
        if token.startswith(cls.VERBOSE.value):
            return cls.VERBOSE
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class LogRecord:
    """One Chromium log entry.

    Attributes:
        severity: Raw severity token as printed, e.g. ``"ERROR"`` or ``"VERBOSE1"``.
        source: Source file name, or ``"CONSOLE"`` for JavaScript console output.
        line_number: Line number reported next to the source.
        message: Text after the header, up to the end of the physical line.
    """

    severity: str
    source: str
    line_number: int
    message: str

    @property
    def level(self) -> Severity:
        return Severity.from_token(self.severity)

    @property
    def is_console(self) -> bool:
        return self.source == CONSOLE_SOURCE

    def render(self) -> str:
        """Format as ``severity:source(line): message``."""
        return f"{self.severity}:{self.source}({self.line_number}): {self.message}"
