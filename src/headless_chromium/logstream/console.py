"""JavaScript console message handling.

Chromium logs ``console.log("x")`` as::

    [...:INFO:CONSOLE(12)] "x", source: file:///page.html (12)

A message that itself contains newlines spans several physical lines; only
the first carries the header. Pages that want to print partial lines end a
fragment with :data:`NOT_END_OF_LINE`, which tells the runner not to emit a
line break after it.
"""

from __future__ import annotations

import re
from typing import NamedTuple

# Terminates a console fragment whose line continues in a later message.
NOT_END_OF_LINE = "\x03\b"

CONSOLE_START_RE = re.compile(r'^"')
CONSOLE_END_RE = re.compile(r'", source: .*? \(\d+\)$')

COMPLETION_RE = re.compile(r"^All tests completed!(?P<code>-?\d*)$")


class ConsoleFragment(NamedTuple):
    """Console text ready to print.

    ``complete`` is False when the text ended with :data:`NOT_END_OF_LINE`
    (already removed from ``text``) and must be printed without a newline.
    """

    text: str
    complete: bool


def strip_console_decoration(message: str, *, first_line: bool) -> str:
    """Remove Chromium's quoting around a console message.

    The opening quote is only present on the line that carries the log
    header; the ``", source: ... (N)`` suffix sits on whichever line ends
    the message.
    """
    if first_line:
        message = CONSOLE_START_RE.sub("", message, count=1)
    return CONSOLE_END_RE.sub("", message, count=1)


def split_continuation_marker(text: str) -> ConsoleFragment:
    if text.endswith(NOT_END_OF_LINE):
        return ConsoleFragment(text[: -len(NOT_END_OF_LINE)], complete=False)
    return ConsoleFragment(text, complete=True)


def completion_exit_code(message: str) -> int | None:
    """Return the exit code carried by an ``All tests completed!<n>`` message.

    A missing number (or a lone ``-``) means 0. The value is reduced to the
    0-255 range of a process exit status, so ``-1`` becomes 255.

    Returns:
        The exit code, or ``None`` if ``message`` is not the completion sentinel.
    """
    match = COMPLETION_RE.match(message)
    if match is None:
        return None
    digits = match.group("code")
    value = int(digits) if digits not in ("", "-") else 0
    return value & 0xFF
