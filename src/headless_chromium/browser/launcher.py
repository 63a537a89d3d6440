"""Run the headless runner in a child Python process.

Starting Xvfb changes the environment (``DISPLAY``) of the runner, so
callers embedding it should use :func:`spawn` rather than calling
:func:`headless_chromium.runner.run` in their own process.
"""

from __future__ import annotations

import subprocess
import sys
from typing import Any, Sequence


def runner_command(chromium_flags: Sequence[str]) -> list[str]:
    """Command line that runs the runner with ``chromium_flags``."""
    return [sys.executable, "-m", "headless_chromium", *chromium_flags]


def spawn(chromium_flags: Sequence[str], **popen_kwargs: Any) -> subprocess.Popen:
    """Start the runner as a separate process.

    Args:
        chromium_flags: Flags passed to Chromium.
        **popen_kwargs: Forwarded to :class:`subprocess.Popen` (``stdout``,
            ``env``, ...).

    Returns:
        The running process; its exit status is the runner's exit code.
    """
    return subprocess.Popen(runner_command(chromium_flags), **popen_kwargs)
