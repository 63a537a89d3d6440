"""Locate executables on the host."""

from __future__ import annotations

import logging
import shutil
from typing import Iterable

from headless_chromium.exceptions import ExecutableNotFoundError

logger = logging.getLogger(__name__)


def resolve_executable(candidates: Iterable[str | None]) -> str | None:
    """Return the path of the first candidate found on ``PATH`` (or as a path).

    Empty and ``None`` entries are skipped, so an unset override can be
    passed as the first candidate.
    """
    for candidate in candidates:
        if not candidate:
            continue
        path = shutil.which(candidate)
        if path:
            logger.debug("Resolved %s -> %s", candidate, path)
            return path
    return None


def find_chromium(override: str, candidates: list[str]) -> str:
    """Locate Chromium/Chrome, trying ``override`` first.

    Raises:
        ExecutableNotFoundError: If no candidate resolves.
    """
    tried = [override, *candidates] if override else list(candidates)
    path = resolve_executable(tried)
    if path is None:
        raise ExecutableNotFoundError(
            "Chromium/Chrome",
            tried,
            hint="Please install it, or put its location in the CHROMIUM_EXE_PATH environment variable.",
        )
    return path


def find_xvfb(binary: str = "Xvfb") -> str:
    """Locate the Xvfb server.

    Raises:
        ExecutableNotFoundError: If Xvfb is not installed.
    """
    path = resolve_executable([binary])
    if path is None:
        raise ExecutableNotFoundError("Xvfb", [binary], hint="Please install xvfb before trying again.")
    return path
