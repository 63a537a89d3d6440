"""Lifecycle of one Chromium run.

Chromium exiting, the page logging the completion sentinel and an
external interrupt all arrive as :class:`LifecycleEvent` on one queue.
The first event that ends the run starts the teardown; anything after
that is ignored. Teardown always runs the same steps in the same order:

1. detach from Chromium's output
2. stop the virtual display
3. SIGKILL Chromium if it is still alive
4. remove the temporary profile directory
5. report the exit code

Every step logs its own failure and lets the next one run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

if TYPE_CHECKING:
    from headless_chromium.browser.workspace import TempWorkspace
    from headless_chromium.display import VirtualDisplay
    from headless_chromium.logstream.pump import OutputPump

logger = logging.getLogger(__name__)

# Exit code when Chromium exits without logging the completion sentinel.
CHILD_EXIT_CODE = -1


class ChildProcess(Protocol):
    """The subset of ``asyncio.subprocess.Process`` the coordinator uses."""

    returncode: int | None

    def terminate(self) -> None: ...

    def kill(self) -> None: ...

    async def wait(self) -> int: ...


class LifecycleState(str, Enum):
    """Coordinator states; ``EXITED`` is terminal."""

    RUNNING = "RUNNING"
    TEARING_DOWN = "TEARING_DOWN"
    EXITED = "EXITED"


class EventKind(str, Enum):
    """What happened."""

    CHILD_EXITED = "child_exited"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class LifecycleEvent:
    kind: EventKind
    exit_code: int | None = None


class LifecycleCoordinator:
    """Own the Chromium process, the display and the workspace.

    Args:
        process: The running Chromium process.
        display: Started virtual display, stopped during teardown.
        workspace: Profile directory to delete, or ``None`` when the caller
            supplied their own ``--user-data-dir``.
        pump: Output pump detached at the start of teardown.
        kill_wait_sec: How long to wait for a SIGKILLed Chromium to be reaped.
        wait_exit: Returns an awaitable that resolves once Chromium has
            exited; defaults to ``process.wait``.
    """

    def __init__(
        self,
        process: ChildProcess,
        display: "VirtualDisplay | None" = None,
        workspace: "TempWorkspace | None" = None,
        pump: "OutputPump | None" = None,
        *,
        kill_wait_sec: float = 5.0,
        wait_exit: Callable[[], Awaitable[Any]] | None = None,
    ) -> None:
        self._process = process
        self._display = display
        self._workspace = workspace
        self._pump = pump
        self._kill_wait_sec = kill_wait_sec
        self._wait_exit = wait_exit or process.wait

        self._events: asyncio.Queue[LifecycleEvent] = asyncio.Queue()
        self._exited = asyncio.Event()
        self._teardown_started = False

        self.state = LifecycleState.RUNNING
        self.child_exited = False
        self.exit_code: int | None = None

    # ------------------------------------------------------------------
    # Event sources
    # ------------------------------------------------------------------

    def post(self, event: LifecycleEvent) -> None:
        """Queue an event; safe to call from any callback on the loop."""
        self._events.put_nowait(event)

    def notify_child_exit(self) -> None:
        """Chromium exited (for whatever reason)."""
        self.child_exited = True
        self.post(LifecycleEvent(EventKind.CHILD_EXITED, CHILD_EXIT_CODE))

    def notify_completion(self, exit_code: int) -> None:
        """The page logged the completion sentinel."""
        self.post(LifecycleEvent(EventKind.COMPLETED, exit_code))

    def interrupt(self) -> None:
        """An interrupt signal was received."""
        self.post(LifecycleEvent(EventKind.INTERRUPTED))

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> int:
        """Consume events until the run ends, then return the exit code."""
        while self.state is LifecycleState.RUNNING:
            event = await self._events.get()
            logger.debug("Lifecycle event: %s", event.kind.value)
            if event.kind is EventKind.INTERRUPTED:
                self._forward_interrupt()
                continue
            code = CHILD_EXIT_CODE if event.exit_code is None else event.exit_code
            await self.teardown(code)
        await self._exited.wait()
        if self.exit_code is None:
            raise RuntimeError("teardown finished without an exit code")
        return self.exit_code

    def _forward_interrupt(self) -> None:
        # Chromium's exit event then drives the teardown.
        if self.child_exited or self._process.returncode is not None:
            return
        logger.info("Interrupted, asking Chromium to exit")
        try:
            self._process.terminate()
        except ProcessLookupError:
            pass

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def teardown(self, exit_code: int) -> bool:
        """Shut everything down once.

        Returns:
            False if a teardown had already started (this call did nothing).
        """
        if self._teardown_started:
            return False
        self._teardown_started = True
        self.state = LifecycleState.TEARING_DOWN
        self.exit_code = exit_code
        logger.debug("Tearing down with exit code %d", exit_code)

        if self._pump is not None:
            self._pump.detach()

        if self._display is not None:
            try:
                await self._display.stop()
            except Exception as exc:
                logger.error("Failed to stop Xvfb: %s", exc)

        if not self.child_exited and self._process.returncode is None:
            logger.error("Chromium process was still alive. Sending SIGKILL...")
            await self._kill_child()

        if self._workspace is not None:
            try:
                await self._workspace.remove()
            except OSError as exc:
                logger.error("Failed to remove %s: %s", self._workspace.path, exc)

        self.state = LifecycleState.EXITED
        self._exited.set()
        return True

    async def _kill_child(self) -> None:
        try:
            self._process.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(self._wait_exit(), timeout=self._kill_wait_sec)
        except asyncio.TimeoutError:
            logger.error("Chromium did not exit %.1fs after SIGKILL", self._kill_wait_sec)
        self.child_exited = True
