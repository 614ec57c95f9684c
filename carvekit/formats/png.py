"""PNG scanner: walks chunks, checking order and CRCs, up to IEND."""

from __future__ import annotations

import zlib
from enum import IntEnum

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

PNG_HEADER = b"\x89PNG\r\n\x1a\n"

_MAX_SMALL_CHUNK = 3 * 256
_COPY_SIZE = 4096
_MAX_CHUNK_LENGTH = 0x7FFFFFFF


class ChunkOrderError(FormatError):
    """Raised when PNG chunks appear in an invalid order."""

    def __init__(self) -> None:
        super().__init__("invalid PNG chunk order")


class _Stage(IntEnum):
    START = 0
    SEEN_IHDR = 1
    SEEN_PLTE = 2
    SEEN_TRNS = 3
    SEEN_IDAT = 4
    SEEN_IEND = 5


class _PngDecoder:
    def __init__(self, reader: Reader) -> None:
        self.reader = reader
        self.stage = _Stage.START
        self.crc = 0

    def check_header(self) -> None:
        if self.reader.read_full(len(PNG_HEADER)) != PNG_HEADER:
            raise FormatError("not a PNG file")

    def _consume(self, length: int) -> None:
        remaining = length
        while remaining > 0:
            chunk = self.reader.read_full(min(_COPY_SIZE, remaining))
            self.crc = zlib.crc32(chunk, self.crc)
            remaining -= len(chunk)

    def _consume_small(self, length: int) -> None:
        if length > _MAX_SMALL_CHUNK:
            raise FormatError(f"bad chunk length: {length}")
        self._consume(length)

    def _verify_checksum(self) -> None:
        expected = int.from_bytes(self.reader.read_full(4), "big")
        if expected != self.crc:
            raise FormatError("invalid checksum")

    def parse_chunk(self) -> None:
        head = self.reader.read_full(8)
        length = int.from_bytes(head[:4], "big")
        chunk_type = head[4:8]
        self.crc = zlib.crc32(chunk_type)

        if chunk_type == b"IHDR":
            if self.stage != _Stage.START:
                raise ChunkOrderError()
            self.stage = _Stage.SEEN_IHDR
            self._consume_small(length)
            self._verify_checksum()
            return
        if chunk_type == b"PLTE":
            if self.stage != _Stage.SEEN_IHDR:
                raise ChunkOrderError()
            self.stage = _Stage.SEEN_PLTE
            self._consume_small(length)
            self._verify_checksum()
            return
        if chunk_type == b"tRNS":
            self.stage = _Stage.SEEN_TRNS
            self._consume_small(length)
            self._verify_checksum()
            return
        if chunk_type == b"IDAT":
            if self.stage < _Stage.SEEN_IHDR or self.stage > _Stage.SEEN_IDAT:
                raise ChunkOrderError()
            if self.stage != _Stage.SEEN_IDAT:
                self.stage = _Stage.SEEN_IDAT
                self._consume(length)
                self._verify_checksum()
                return
            # Further IDAT chunks are skipped like any other chunk.
        elif chunk_type == b"IEND":
            if self.stage != _Stage.SEEN_IDAT:
                raise ChunkOrderError()
            self.stage = _Stage.SEEN_IEND
            self._consume_small(length)
            self._verify_checksum()
            return

        if length > _MAX_CHUNK_LENGTH:
            raise FormatError(f"bad chunk length: {length}")
        self._consume(length)
        self._verify_checksum()


def scan_png(reader: Reader) -> ScanResult:
    """Validate PNG chunks and return the size up to the end of IEND."""
    decoder = _PngDecoder(reader)
    decoder.check_header()
    while decoder.stage != _Stage.SEEN_IEND:
        decoder.parse_chunk()
    return ScanResult(size=reader.bytes_read())


FILE_HEADER = FileHeader(
    ext="png",
    description="Portable Network Graphics Format",
    signatures=(PNG_HEADER,),
    scan_file=scan_png,
)