"""Feed Chromium's stdout and stderr into a single :class:`LogRouter`."""

from __future__ import annotations

import asyncio
import logging

from headless_chromium.logstream.decoder import LineDecoder
from headless_chromium.logstream.router import LogRouter

logger = logging.getLogger(__name__)


class OutputPump:
    """Read several streams concurrently, one decoder per stream.

    Lines reach the router in the order the event loop delivers the
    reads; there is no ordering guarantee between two streams.

    Args:
        router: Shared router for all attached streams.
        chunk_size: Maximum bytes per read.
    """

    def __init__(self, router: LogRouter, chunk_size: int = 65536) -> None:
        self._router = router
        self._chunk_size = chunk_size
        self._tasks: list[asyncio.Task[None]] = []

    def attach(self, reader: asyncio.StreamReader, name: str) -> asyncio.Task[None]:
        """Start pumping ``reader`` until end of stream or :meth:`detach`."""
        task = asyncio.create_task(self._pump(reader, LineDecoder(), name), name=f"pump:{name}")
        self._tasks.append(task)
        return task

    def detach(self) -> None:
        """Stop routing and cancel every read."""
        self._router.detach()
        for task in self._tasks:
            task.cancel()

    async def wait_drained(self, timeout: float | None = None) -> bool:
        """Wait for all attached streams to reach end of stream.

        Returns:
            True if every stream finished within ``timeout``.
        """
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(self._tasks, timeout=timeout)
        if pending:
            logger.debug("%d stream(s) still open after %.1fs", len(pending), timeout or 0.0)
        return not pending

    async def _pump(self, reader: asyncio.StreamReader, decoder: LineDecoder, name: str) -> None:
        while True:
            chunk = await reader.read(self._chunk_size)
            if not chunk:
                break
            for line in decoder.feed(chunk):
                self._router.handle_line(line)
        for line in decoder.flush():
            self._router.handle_line(line)
        logger.debug("Chromium %s closed", name)
