"""WAV (RIFF/WAVE) audio scanner."""

from __future__ import annotations

import struct
from typing import Optional, Tuple

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

FMT_CHUNK_SIZE_PCM = 16
CHUNK_HEADER_SIZE = 8


def _read_chunk_header(reader: Reader, what: str) -> Optional[Tuple[bytes, int]]:
    """Read a chunk id and size; return None if the data ends cleanly first."""
    try:
        head = reader.read(CHUNK_HEADER_SIZE)
    except EOFError:
        return None
    if len(head) < CHUNK_HEADER_SIZE:
        try:
            head += reader.read_full(CHUNK_HEADER_SIZE - len(head))
        except EOFError as exc:
            raise FormatError(
                f"failed to read chunk header while searching for {what}: {exc}"
            ) from exc
    chunk_id = head[:4]
    (chunk_size,) = struct.unpack_from("<I", head, 4)
    return chunk_id, chunk_size


def scan_wav(reader: Reader) -> ScanResult:
    """Locate the 'fmt ' and 'data' chunks and return the size of the WAV file."""
    try:
        riff = reader.read_full(CHUNK_HEADER_SIZE)
    except EOFError as exc:
        raise FormatError(f"failed to read RIFF chunk header: {exc}") from exc
    if riff[:4] != b"RIFF":
        raise FormatError("reader does not start with RIFF signature")
    (riff_size,) = struct.unpack_from("<I", riff, 4)
    limit = riff_size + 8

    try:
        wave = reader.read_full(4)
    except EOFError as exc:
        raise FormatError(f"failed to read WAVE format identifier: {exc}") from exc
    if wave != b"WAVE":
        raise FormatError("missing WAVE format identifier")

    bytes_read = 12

    fmt_found = False
    while bytes_read < limit:
        header = _read_chunk_header(reader, "'fmt '")
        if header is None:
            break
        chunk_id, chunk_size = header
        bytes_read += CHUNK_HEADER_SIZE

        if chunk_id == b"fmt ":
            if chunk_size != FMT_CHUNK_SIZE_PCM:
                raise FormatError(
                    f"unsupported 'fmt ' chunk size ({chunk_size}), "
                    f"expected {FMT_CHUNK_SIZE_PCM} for PCM"
                )
            try:
                reader.read_full(chunk_size)
            except EOFError as exc:
                raise FormatError(f"failed to read 'fmt ' chunk data: {exc}") from exc
            bytes_read += chunk_size
            fmt_found = True
            break

        skipped = reader.discard(chunk_size)
        if skipped < chunk_size:
            break
        bytes_read += skipped

    if not fmt_found:
        raise FormatError("missing 'fmt ' sub-chunk")

    data_size: Optional[int] = None
    while bytes_read < limit:
        header = _read_chunk_header(reader, "'data'")
        if header is None:
            break
        chunk_id, chunk_size = header
        bytes_read += CHUNK_HEADER_SIZE

        if chunk_id == b"data":
            data_size = chunk_size
            break

        skipped = reader.discard(chunk_size)
        if skipped < chunk_size:
            return ScanResult(size=bytes_read + skipped)
        bytes_read += skipped

    if data_size is None:
        raise FormatError("missing 'data' sub-chunk")

    total = bytes_read + data_size
    if total > limit:
        return ScanResult(size=limit)

    skipped = reader.discard(data_size)
    if skipped < data_size:
        return ScanResult(size=bytes_read + skipped)
    return ScanResult(size=total)


FILE_HEADER = FileHeader(
    ext="wav",
    description="Waveform Audio File Format",
    signatures=(b"RIFF", b"RIFX"),
    scan_file=scan_wav,
)