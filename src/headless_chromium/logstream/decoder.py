"""Split a byte stream into lines regardless of how reads are chunked."""

from __future__ import annotations

NEWLINE = b"\n"


class LineDecoder:
    """Buffer partial lines between reads of a single stream.

    Each stream (stdout, stderr) needs its own decoder. Bytes are kept
    undecoded until a line is complete, so a multi-byte UTF-8 character
    split across two reads still decodes correctly.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding
        self._pending = b""

    @property
    def pending(self) -> bytes:
        """Bytes received after the last newline."""
        return self._pending

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return every line it completes, in order."""
        parts = (self._pending + chunk).split(NEWLINE)
        self._pending = parts.pop()
        return [self._decode(part) for part in parts]

    def flush(self) -> list[str]:
        """Signal end of stream; returns the unterminated tail, if any."""
        tail, self._pending = self._pending, b""
        return [self._decode(tail)] if tail else []

    def _decode(self, data: bytes) -> str:
        return data.decode(self._encoding, errors="replace")
