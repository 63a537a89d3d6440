"""Decide which non-console Chromium records reach stdout."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from headless_chromium.exceptions import InvalidPatternError
from headless_chromium.logstream.records import LogRecord

if TYPE_CHECKING:
    from headless_chromium.settings.config import LogSettings

DEFAULT_FORWARD_PATTERN = "ERROR|ERROR_REPORT|FATAL"
DEFAULT_HIDE_PATTERN = "kwallet"


def _compile(setting: str, pattern: str, flags: int = 0) -> re.Pattern[str]:
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise InvalidPatternError(setting, pattern, str(exc)) from exc


class SeverityFilter:
    """Allow/suppress rule for Chromium's own log records.

    A record is forwarded when ``forward`` matches its severity and
    ``hide`` does not match its message. Both are searched anywhere in the
    text, so ``forward="WARN"`` also lets ``WARNING`` through.

    Args:
        forward: Severity pattern, e.g. ``"ERROR|FATAL"``.
        hide: Message pattern, matched case-insensitively. An empty
            pattern matches everything and so hides every record.
    """

    def __init__(
        self,
        forward: str = DEFAULT_FORWARD_PATTERN,
        hide: str = DEFAULT_HIDE_PATTERN,
    ) -> None:
        self._forward = _compile("logs.forward_pattern", forward)
        self._hide = _compile("logs.hide_pattern", hide, re.IGNORECASE)

    @classmethod
    def from_settings(cls, settings: "LogSettings") -> "SeverityFilter":
        return cls(forward=settings.forward_pattern, hide=settings.hide_pattern)

    def allows(self, record: LogRecord) -> bool:
        return bool(self._forward.search(record.severity)) and not self.is_hidden(record.message)

    def is_hidden(self, text: str) -> bool:
        return self._hide.search(text) is not None
