"""A bounded reader over a seekable binary stream."""

from __future__ import annotations

import io
from typing import BinaryIO

DEFAULT_BUFFER_SIZE = 4096


class Reader:
    """Reads from a stream while counting consumed bytes against a size limit.

    Reads are refused once the consumed count reaches the limit; a read that
    starts below the limit is not truncated to it. Discards are clamped to it.
    """

    def __init__(self, stream: BinaryIO, size: int, buffer_size: int = DEFAULT_BUFFER_SIZE):
        if buffer_size <= 0:
            raise ValueError("buffer size must be positive")
        self._stream = stream
        self._size = size
        self._buffer_size = buffer_size
        self._base = stream.tell()
        self._n = 0

    def _position(self) -> int:
        return self._stream.tell() - self._base

    def read_byte(self) -> int:
        """Read one byte and return its value."""
        if self._n >= self._size:
            raise EOFError("read limit reached")
        data = self._stream.read(1)
        if not data:
            raise EOFError("end of stream")
        self._n += 1
        return data[0]

    def read(self, n: int) -> bytes:
        """Read up to n bytes; raise EOFError if nothing can be read."""
        if self._n >= self._size:
            raise EOFError("read limit reached")
        if n <= 0:
            return b""
        data = self._stream.read(n)
        if not data:
            raise EOFError("end of stream")
        self._n += len(data)
        return data

    def read_full(self, n: int) -> bytes:
        """Read exactly n bytes or raise EOFError."""
        chunks = []
        got = 0
        while got < n:
            try:
                chunk = self.read(n - got)
            except EOFError as exc:
                if got:
                    raise EOFError(f"unexpected EOF: got {got} of {n} bytes") from exc
                raise
            chunks.append(chunk)
            got += len(chunk)
        return b"".join(chunks)

    def seek(self, offset: int, whence: int = io.SEEK_CUR) -> int:
        """Move the stream position without touching the consumed count."""
        if whence == io.SEEK_SET:
            self._stream.seek(self._base + offset, io.SEEK_SET)
        else:
            self._stream.seek(offset, whence)
        return self._position()

    def unread(self, n: int) -> None:
        """Step back n bytes, giving them back to the consumed count."""
        self._stream.seek(-n, io.SEEK_CUR)
        self._n -= n

    def unread_byte(self) -> None:
        self.unread(1)

    def discard(self, n: int) -> int:
        """Skip up to n bytes within the limit; return how many were skipped."""
        if n < 0:
            raise ValueError("cannot discard a negative number of bytes")
        available = max(self._size - self._position(), 0)
        skipped = min(n, available)
        if skipped:
            self._stream.seek(skipped, io.SEEK_CUR)
            self._n += skipped
        return skipped

    def peek(self, n: int) -> bytes:
        """Return up to n upcoming bytes without consuming them."""
        if n > self._buffer_size:
            raise ValueError(f"peek of {n} bytes exceeds buffer size {self._buffer_size}")
        pos = self._stream.tell()
        data = self._stream.read(n)
        self._stream.seek(pos, io.SEEK_SET)
        return data

    def bytes_read(self) -> int:
        return self._n

    def buffer_size(self) -> int:
        return self._buffer_size