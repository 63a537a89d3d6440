"""Complete the Chromium command line with the flags the runner depends on."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


def has_flag(flags: Sequence[str], name: str) -> bool:
    """Return True if ``--name`` or ``--name=...`` is among ``flags``."""
    wanted = f"--{name}"
    return any(flag.split("=", 1)[0] == wanted for flag in flags)


def build_chromium_flags(flags: Sequence[str], user_data_dir: Path | str | None = None) -> list[str]:
    """Return ``flags`` followed by the implicit flags that are still missing.

    Args:
        flags: Flags given by the caller; kept first and unchanged.
        user_data_dir: Fresh profile directory, used only if the caller did
            not pass ``--user-data-dir``.
    """
    result = list(flags)
    if not has_flag(flags, "user-data-dir") and user_data_dir is not None:
        result.append("--no-first-run")
        result.append(f"--user-data-dir={user_data_dir}")
    if not has_flag(flags, "allow-file-access-from-files"):
        result.append("--allow-file-access-from-files")
    # Log to stderr, with at least verbosity 1: JavaScript console messages
    # are logged at that level.
    if not has_flag(flags, "enable-logging"):
        result.append("--enable-logging=stderr")
    if not has_flag(flags, "v"):
        result.append("--v=1")
    return result
