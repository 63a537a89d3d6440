"""Exception hierarchy for the headless Chromium runner."""

from __future__ import annotations


class HeadlessChromiumError(Exception):
    """Base exception for all runner errors."""


class SetupError(HeadlessChromiumError):
    """Raised before Chromium starts; the run is aborted without teardown."""


class ExecutableNotFoundError(SetupError):
    """Raised when a required executable cannot be located on the host.

    Attributes:
        name: Human-readable name of the missing program.
        candidates: The names/paths that were tried, in order.
    """

    def __init__(self, name: str, candidates: list[str], hint: str = "") -> None:
        self.name = name
        self.candidates = candidates
        message = f"Cannot find {name} executable (tried: {', '.join(candidates) or 'nothing'})."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class MissingFlagsError(SetupError):
    """Raised when no Chromium flags were supplied."""

    def __init__(self) -> None:
        super().__init__("Require at least one flag")


class InvalidPatternError(SetupError):
    """Raised when a configured log pattern is not a valid regular expression."""

    def __init__(self, setting: str, pattern: str, reason: str) -> None:
        self.setting = setting
        self.pattern = pattern
        super().__init__(f"Invalid regular expression for {setting} ({pattern!r}): {reason}")


class LaunchError(SetupError):
    """Raised when the Chromium process itself could not be spawned."""


class DisplayError(HeadlessChromiumError):
    """Raised when the virtual display fails to start or stop."""
