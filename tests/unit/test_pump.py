"""Unit tests for the output pump (two streams into one router)."""

from __future__ import annotations

import asyncio
import io

import pytest

from headless_chromium.logstream.pump import OutputPump
from headless_chromium.logstream.router import LogRouter


def _reader(*chunks: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    return reader


class TestOutputPump:
    @pytest.mark.anyio
    async def test_streams_are_drained(self, output: io.StringIO) -> None:
        pump = OutputPump(LogRouter(output), chunk_size=4)
        pump.attach(_reader(b'[1:1:INFO:CONSOLE(1)] "from stderr", source: x (1)\n'), "stderr")
        assert await pump.wait_drained(1.0)
        assert output.getvalue() == "from stderr\n"

    @pytest.mark.anyio
    async def test_unterminated_tail_flushed_at_eof(self, output: io.StringIO) -> None:
        pump = OutputPump(LogRouter(output), chunk_size=3)
        pump.attach(_reader(b"Chromium 120", b".0"), "stdout")
        assert await pump.wait_drained(1.0)
        assert output.getvalue() == "Chromium 120.0\n"

    @pytest.mark.anyio
    async def test_partial_lines_per_stream(self, output: io.StringIO) -> None:
        pump = OutputPump(LogRouter(output))
        pump.attach(_reader(b"out-a"), "stdout")
        pump.attach(_reader(b"err-a\n"), "stderr")
        assert await pump.wait_drained(1.0)
        assert sorted(output.getvalue().splitlines()) == ["err-a", "out-a"]

    @pytest.mark.anyio
    async def test_open_stream_times_out(self, output: io.StringIO) -> None:
        pump = OutputPump(LogRouter(output))
        pump.attach(_reader(b"x\n", eof=False), "stdout")
        assert await pump.wait_drained(0.1) is False
        pump.detach()

    @pytest.mark.anyio
    async def test_detach_cancels_and_silences(self, output: io.StringIO) -> None:
        router = LogRouter(output)
        pump = OutputPump(router)
        reader = _reader(eof=False)
        task = pump.attach(reader, "stdout")
        pump.detach()
        reader.feed_data(b"late line\n")
        with pytest.raises(asyncio.CancelledError):
            await task
        assert router.detached
        assert output.getvalue() == ""

    @pytest.mark.anyio
    async def test_nothing_attached(self, output: io.StringIO) -> None:
        assert await OutputPump(LogRouter(output)).wait_drained(0.1)
