"""Xvfb virtual display.

Starts an Xvfb server on the first free display number and stops it
again. Chromium renders into it through the ``DISPLAY`` environment
variable.
"""

from __future__ import annotations

import asyncio
import logging
import os
from asyncio import subprocess as aio_subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

from headless_chromium.exceptions import DisplayError

if TYPE_CHECKING:
    from headless_chromium.settings.config import DisplaySettings

logger = logging.getLogger(__name__)


@dataclass
class DisplayHandle:
    """A running Xvfb server."""

    number: int
    process: aio_subprocess.Process

    @property
    def name(self) -> str:
        """Value for the ``DISPLAY`` environment variable."""
        return f":{self.number}"


class VirtualDisplay:
    """Manage one Xvfb server.

    Args:
        settings: Display section of the runner settings.
        binary: Resolved Xvfb executable; defaults to ``settings.binary``.
    """

    # X servers announce a taken display with a lock file and accept
    # clients on a UNIX socket.
    lock_file_template = "/tmp/.X{}-lock"
    socket_template = "/tmp/.X11-unix/X{}"

    def __init__(self, settings: "DisplaySettings", binary: str | None = None) -> None:
        self._settings = settings
        self._binary = binary or settings.binary
        self._handle: DisplayHandle | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> DisplayHandle:
        """Launch Xvfb and wait until it accepts connections.

        Raises:
            DisplayError: If Xvfb cannot be spawned, exits early or does not
                come up within ``startup_timeout_sec``.
        """
        if self._handle is not None:
            return self._handle

        number = self._next_free_display()
        args = [
            self._binary,
            f":{number}",
            "-screen",
            self._settings.screen,
            self._settings.resolution,
            *self._settings.extra_args,
        ]
        logger.debug("Starting Xvfb: %s", args)
        try:
            process = await aio_subprocess.create_subprocess_exec(
                *args,
                stdin=aio_subprocess.DEVNULL,
                stdout=aio_subprocess.DEVNULL,
                stderr=aio_subprocess.DEVNULL,
            )
        except OSError as exc:
            raise DisplayError(f"Could not launch {self._binary}: {exc}") from exc

        handle = DisplayHandle(number=number, process=process)
        try:
            await self._wait_for_display_socket(handle)
        except DisplayError:
            await self._terminate(process)
            raise

        self._handle = handle
        logger.info("Xvfb running on display %s", handle.name)
        return handle

    async def stop(self) -> None:
        """Terminate Xvfb; a display that is not running is a no-op.

        Raises:
            DisplayError: If the server cannot be terminated.
        """
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            await self._terminate(handle.process)
        except (OSError, asyncio.TimeoutError) as exc:
            raise DisplayError(f"Could not stop Xvfb on {handle.name}: {exc}") from exc
        logger.debug("Xvfb on %s stopped", handle.name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_free_display(self) -> int:
        number = self._settings.first_display
        while os.path.exists(self.lock_file_template.format(number)):
            number += 1
        return number

    async def _wait_for_display_socket(self, handle: DisplayHandle) -> None:
        """Wait until Xvfb creates its UNIX socket."""
        socket_path = self.socket_template.format(handle.number)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.startup_timeout_sec
        while True:
            if os.path.exists(socket_path):
                return
            if handle.process.returncode is not None:
                raise DisplayError(f"Xvfb exited with code {handle.process.returncode}")
            if loop.time() >= deadline:
                raise DisplayError(f"Timed out waiting for Xvfb display {handle.name}")
            await asyncio.sleep(0.05)

    async def _terminate(self, process: aio_subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self._settings.stop_timeout_sec)
        except asyncio.TimeoutError:
            logger.warning("Xvfb ignored SIGTERM, killing it")
            process.kill()
            await asyncio.wait_for(process.wait(), timeout=self._settings.stop_timeout_sec)
