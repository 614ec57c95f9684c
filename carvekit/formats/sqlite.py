"""SQLite 3 database scanner."""

from __future__ import annotations

import struct

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

SQLITE_SIGNATURE = b"SQLite format 3\x00"
SQLITE_HEADER_SIZE = 100


def is_power_of_two(x: int) -> bool:
    return x != 0 and (x & (x - 1)) == 0


def scan_sqlite(reader: Reader) -> ScanResult:
    """Read a SQLite header and return the database size it declares.

    The size is zero when the header's in-header page count is not reliable.
    """
    try:
        header = reader.read_full(SQLITE_HEADER_SIZE)
    except EOFError as exc:
        raise FormatError(f"failed to read SQLite header: {exc}") from exc

    magic = header[: len(SQLITE_SIGNATURE)]
    if magic != SQLITE_SIGNATURE:
        raise FormatError(
            f"invalid SQLite magic header: expected {SQLITE_SIGNATURE!r}, got {magic!r}"
        )

    (page_size,) = struct.unpack_from(">H", header, 16)
    if page_size == 1:
        page_size = 65536
    if not is_power_of_two(page_size) or not 512 <= page_size <= 65536:
        raise FormatError(f"invalid SQLite page size: {page_size}")

    change_counter, page_count = struct.unpack_from(">II", header, 24)
    (version_valid_for,) = struct.unpack_from(">I", header, 92)

    size = 0
    if page_count != 0 and change_counter == version_valid_for:
        size = page_count * page_size
    return ScanResult(size=size)


FILE_HEADER = FileHeader(
    ext="sqlite",
    description="SQLite Database Format",
    signatures=(SQLITE_SIGNATURE,),
    scan_file=scan_sqlite,
)