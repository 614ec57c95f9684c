"""Sun/NeXT audio (.au) scanner."""

from __future__ import annotations

import struct

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

AU_MAGIC = 0x2E736E64
MIN_AU_HEADER_SIZE = 24
AU_DATA_SIZE_UNKNOWN = 0xFFFFFFFF


def scan_sun_audio(reader: Reader) -> ScanResult:
    """Validate an AU header and return the size of the audio file."""
    try:
        header = reader.read_full(MIN_AU_HEADER_SIZE)
    except EOFError as exc:
        raise FormatError(
            f"reader too small to contain a minimum AU header ({MIN_AU_HEADER_SIZE} bytes)"
        ) from exc

    magic, header_size, data_size = struct.unpack(">III", header[:12])
    if magic != AU_MAGIC:
        raise FormatError("reader does not start with AU magic signature")
    if header_size < MIN_AU_HEADER_SIZE:
        raise FormatError(f"AU header size ({header_size}) is invalid")

    bytes_read = MIN_AU_HEADER_SIZE
    extra = header_size - MIN_AU_HEADER_SIZE
    if extra > 0:
        skipped = reader.discard(extra)
        if skipped < extra:
            raise FormatError(
                f"AU header truncated: expected {header_size} bytes, "
                f"got {MIN_AU_HEADER_SIZE + skipped}"
            )
        bytes_read += skipped

    if data_size == AU_DATA_SIZE_UNKNOWN:
        raise FormatError("unknown AU file size")

    total = header_size + data_size
    remaining = total - bytes_read
    if remaining > 0:
        skipped = reader.discard(remaining)
        if skipped < remaining:
            return ScanResult(size=bytes_read + skipped)
    return ScanResult(size=total)


FILE_HEADER = FileHeader(
    ext="au",
    description="Audio file format developed by Sun Microsystems",
    signatures=(b".snd",),
    scan_file=scan_sun_audio,
)