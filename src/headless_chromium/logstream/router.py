"""Route classified Chromium log lines to the caller's output.

Line-oriented: every complete line from either stream goes through
:meth:`LogRouter.handle_line`. A line without a log header continues the
previous record, so the routing decision made for that record
(:class:`StreamState`) is carried over to it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TextIO

from headless_chromium.logstream.console import (
    completion_exit_code,
    split_continuation_marker,
    strip_console_decoration,
)
from headless_chromium.logstream.filters import SeverityFilter
from headless_chromium.logstream.grammar import parse_line
from headless_chromium.logstream.records import LogRecord, Severity

logger = logging.getLogger(__name__)


@dataclass
class StreamState:
    """Routing decision of the most recent record.

    ``output_allowed`` starts True so that output without any log header
    (``chromium --version``) is printed.
    """

    last_was_console: bool = False
    output_allowed: bool = True


class LogRouter:
    """Print JavaScript console output and selected Chromium records.

    Args:
        output: Text stream receiving forwarded output (normally stdout).
        severity_filter: Rule for non-console records.
        on_completion: Called with the exit code when the page logs the
            ``All tests completed!`` sentinel.
    """

    def __init__(
        self,
        output: TextIO,
        severity_filter: SeverityFilter | None = None,
        on_completion: Callable[[int], None] | None = None,
    ) -> None:
        self._output = output
        self._filter = severity_filter or SeverityFilter()
        self.on_completion = on_completion
        self.state = StreamState()
        self._detached = False

    @property
    def detached(self) -> bool:
        return self._detached

    def detach(self) -> None:
        """Stop routing; later lines are dropped."""
        self._detached = True

    def handle_line(self, line: str) -> None:
        if self._detached:
            return
        record = parse_line(line)
        if record is None:
            self._handle_continuation(line)
        elif record.is_console:
            self._handle_console(record)
        else:
            self._handle_record(record)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle_console(self, record: LogRecord) -> None:
        self.state.last_was_console = True
        message = strip_console_decoration(record.message, first_line=True)
        self._write_console(message)

        if record.level is Severity.INFO:
            exit_code = completion_exit_code(message)
            if exit_code is not None:
                logger.debug("Completion sentinel seen, exit code %d", exit_code)
                if self.on_completion is not None:
                    self.on_completion(exit_code)

    def _handle_record(self, record: LogRecord) -> None:
        self.state.last_was_console = False
        self.state.output_allowed = self._filter.allows(record)
        if self.state.output_allowed:
            self._write(record.render() + "\n")

    def _handle_continuation(self, line: str) -> None:
        if self.state.last_was_console:
            self._write_console(strip_console_decoration(line, first_line=False))
        elif self.state.output_allowed and not self._filter.is_hidden(line):
            self._write(line + "\n")

    def _write_console(self, message: str) -> None:
        fragment = split_continuation_marker(message)
        self._write(fragment.text + "\n" if fragment.complete else fragment.text)

    def _write(self, text: str) -> None:
        self._output.write(text)
        self._output.flush()
