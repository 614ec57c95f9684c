"""TIFF image scanner: follows the IFD chain to find the end of the file."""

from __future__ import annotations

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

TIFF_HEADER_LITTLE = b"\x49\x49\x2a\x00"
TIFF_HEADER_BIG = b"\x4d\x4d\x00\x2a"
TIFF_HEADER_SIZE = 8
TIFF_MAGIC = 42
IFD_ENTRY_SIZE = 12

_BYTE_ORDERS = {b"II": "little", b"MM": "big"}


def _read(reader: Reader, n: int, what: str) -> bytes:
    try:
        return reader.read_full(n)
    except EOFError as exc:
        raise FormatError(f"failed to read {what}: {exc}") from exc


def _skip(reader: Reader, n: int, what: str) -> None:
    if reader.discard(n) < n:
        raise FormatError(f"failed to skip {what}: unexpected EOF")


def scan_tiff(reader: Reader) -> ScanResult:
    """Walk the chain of image file directories and return the bytes it spans."""
    header = reader.peek(TIFF_HEADER_SIZE)
    if len(header) < TIFF_HEADER_SIZE:
        raise FormatError("not enough data for TIFF header")

    order = _BYTE_ORDERS.get(header[:2])
    if order is None:
        raise FormatError(f"invalid endian marker: {header[:2].hex()}")

    magic = int.from_bytes(header[2:4], order)
    if magic != TIFF_MAGIC:
        raise FormatError(f"invalid TIFF magic number: 0x{magic:04x}")

    first_ifd = int.from_bytes(header[4:8], order)
    if first_ifd < TIFF_HEADER_SIZE:
        raise FormatError(f"invalid IFD offset: {first_ifd}")

    reader.discard(TIFF_HEADER_SIZE)
    offset = TIFF_HEADER_SIZE

    gap = first_ifd - TIFF_HEADER_SIZE
    if gap > 0:
        if reader.discard(gap) != gap:
            raise FormatError(f"failed to reach first IFD at offset {first_ifd}")
        offset += gap

    while True:
        entry_count = int.from_bytes(_read(reader, 2, "IFD entry count"), order)
        offset += 2

        entries_size = entry_count * IFD_ENTRY_SIZE
        _skip(reader, entries_size, "IFD entries")
        offset += entries_size

        next_ifd = int.from_bytes(_read(reader, 4, "next IFD offset"), order)
        offset += 4
        if next_ifd == 0:
            break

        gap = next_ifd - offset
        if gap < 0:
            raise FormatError("invalid backward IFD pointer")
        if gap > 0:
            _skip(reader, gap, "to next IFD")
            offset += gap

    return ScanResult(size=offset, ext="tif")


FILE_HEADER = FileHeader(
    ext="tif",
    description="Tagged Image File Format",
    signatures=(TIFF_HEADER_LITTLE, TIFF_HEADER_BIG),
    scan_file=scan_tiff,
)