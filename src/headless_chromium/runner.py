"""Run Chromium headless inside Xvfb and forward its console output.

Setup (locating binaries, completing flags, starting Xvfb, spawning
Chromium) raises :class:`~headless_chromium.exceptions.SetupError` or
:class:`~headless_chromium.exceptions.DisplayError`. Once Chromium runs,
nothing raises: every outcome converges on the coordinator's teardown
and an exit code.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from asyncio import subprocess as aio_subprocess
from typing import Sequence, TextIO

from headless_chromium.browser.flags import build_chromium_flags, has_flag
from headless_chromium.browser.resolver import find_chromium, find_xvfb
from headless_chromium.browser.workspace import TempWorkspace
from headless_chromium.display import VirtualDisplay
from headless_chromium.exceptions import DisplayError, LaunchError, MissingFlagsError
from headless_chromium.lifecycle import LifecycleCoordinator
from headless_chromium.logstream.filters import SeverityFilter
from headless_chromium.logstream.pump import OutputPump
from headless_chromium.logstream.router import LogRouter
from headless_chromium.settings import Settings, get_settings

logger = logging.getLogger(__name__)

INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ChromiumProtocol(aio_subprocess.SubprocessStreamProtocol):
    """Stream protocol that reports Chromium's exit as soon as it happens.

    ``Process.wait()`` also waits for every pipe to close, which can take
    as long as any helper process that inherited Chromium's stdio lives.
    """

    def __init__(self, limit: int, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(limit=limit, loop=loop)
        self.exited: asyncio.Future[int | None] = loop.create_future()

    def process_exited(self) -> None:
        returncode = self._transport.get_returncode() if self._transport is not None else None
        super().process_exited()
        if not self.exited.done():
            self.exited.set_result(returncode)

    def close(self) -> None:
        """Close the pipes, including any a helper process still holds open."""
        if self._transport is not None:
            self._transport.close()


async def spawn_chromium(
    executable: str,
    flags: Sequence[str],
    env: dict[str, str],
    *,
    limit: int = 2**16,
) -> tuple[aio_subprocess.Process, ChromiumProtocol]:
    """Start Chromium with piped stdout/stderr.

    Mirrors :func:`asyncio.create_subprocess_exec`, keeping hold of the
    protocol so callers can await :attr:`ChromiumProtocol.exited`.

    Raises:
        OSError: If the executable cannot be run.
    """
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.subprocess_exec(
        lambda: ChromiumProtocol(limit=limit, loop=loop),
        executable,
        *flags,
        stdin=aio_subprocess.DEVNULL,
        stdout=aio_subprocess.PIPE,
        stderr=aio_subprocess.PIPE,
        env=env,
    )
    return aio_subprocess.Process(transport, protocol, loop), protocol


async def run_headless(
    flags: Sequence[str],
    settings: Settings | None = None,
    *,
    output: TextIO | None = None,
    install_signal_handlers: bool = True,
) -> int:
    """Run Chromium with ``flags`` until it exits or the page reports completion.

    Args:
        flags: Chromium flags from the caller; implicit flags are appended.
        settings: Runner settings; defaults to :func:`get_settings`.
        output: Destination for forwarded output; defaults to ``sys.stdout``.
        install_signal_handlers: Treat SIGINT/SIGTERM as interrupts. Only
            possible from the main thread.

    Returns:
        The exit code from ``All tests completed!<n>``, or -1 if Chromium
        exited without it.

    Raises:
        SetupError: Missing flags, binaries or an invalid log pattern.
        DisplayError: Xvfb could not be started.
    """
    settings = settings or get_settings()
    output = output or sys.stdout
    if not flags:
        raise MissingFlagsError()

    chromium = find_chromium(settings.chromium.executable_path, settings.chromium.candidates)
    xvfb = find_xvfb(settings.display.binary)
    severity_filter = SeverityFilter.from_settings(settings.logs)

    workspace: TempWorkspace | None = None
    if not has_flag(flags, "user-data-dir"):
        workspace = TempWorkspace.allocate(settings.workspace.base_dir, settings.workspace.prefix)
    chromium_flags = build_chromium_flags(flags, workspace.path if workspace else None)

    display = VirtualDisplay(settings.display, binary=xvfb)
    handle = await display.start()

    logger.info("Starting Chromium...")
    logger.debug("Chromium command: %s %s", chromium, chromium_flags)
    try:
        process, protocol = await spawn_chromium(
            chromium,
            chromium_flags,
            {**os.environ, "DISPLAY": handle.name},
            limit=settings.logs.read_chunk_size,
        )
    except OSError as exc:
        try:
            await display.stop()
        except DisplayError as stop_exc:
            logger.error("Failed to stop Xvfb: %s", stop_exc)
        raise LaunchError(f"Could not start {chromium}: {exc}") from exc

    router = LogRouter(output, severity_filter)
    pump = OutputPump(router, chunk_size=settings.logs.read_chunk_size)
    coordinator = LifecycleCoordinator(
        process,
        display=display,
        workspace=workspace,
        pump=pump,
        kill_wait_sec=settings.chromium.kill_wait_sec,
        wait_exit=lambda: asyncio.shield(protocol.exited),
    )
    router.on_completion = coordinator.notify_completion
    for reader, name in ((process.stdout, "stdout"), (process.stderr, "stderr")):
        if reader is not None:
            pump.attach(reader, name)

    async def _watch_child() -> None:
        returncode = await protocol.exited
        logger.debug("Chromium exited with status %s", returncode)
        # Let buffered output through before the exit tears everything down.
        await pump.wait_drained(settings.chromium.drain_timeout_sec)
        coordinator.notify_child_exit()

    watcher = asyncio.create_task(_watch_child(), name="chromium-exit")

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    if install_signal_handlers:
        for sig in INTERRUPT_SIGNALS:
            try:
                loop.add_signal_handler(sig, coordinator.interrupt)
            except (NotImplementedError, RuntimeError, ValueError):
                logger.debug("Cannot handle %s here", sig.name)
            else:
                installed.append(sig)

    try:
        return await coordinator.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            pass
        protocol.close()


def run(
    flags: Sequence[str],
    settings: Settings | None = None,
    *,
    output: TextIO | None = None,
) -> int:
    """Synchronous wrapper around :func:`run_headless`."""
    return asyncio.run(run_headless(flags, settings, output=output))
