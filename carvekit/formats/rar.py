"""RAR archive scanner for the 1.5 and 5.0 formats."""

from __future__ import annotations

import struct
from typing import Tuple

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

RAR_MHD_PASSWORD_FLAG = 0x0080

RAR15_SIGNATURE = b"\x52\x61\x72\x21\x1a\x07\x00"
RAR50_SIGNATURE = b"\x52\x61\x72\x21\x1a\x07\x01\x00"

RAR15_ARCHIVE_HEADER = 0x73
RAR15_END_OF_ARCHIVE = 0x7B
RAR5_MAIN_HEADER = 0x1
RAR5_END_OF_ARCHIVE = 0x5

RAR5_MAX_HEADER_SIZE = 2 * 1024 * 1024
MAX_VINT_LENGTH = 10

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF


class _Rar5BlockError(FormatError):
    """A RAR 5.0 block failed to parse; remembers the header type if known."""

    def __init__(self, header_type: int, message: str) -> None:
        super().__init__(message)
        self.header_type = header_type


def read_vint(reader: Reader) -> Tuple[int, int]:
    """Read a RAR variable-length integer; return its value and encoded length."""
    value = 0
    shift = 0
    length = 0
    while True:
        b = reader.read_byte()
        length += 1
        if length > MAX_VINT_LENGTH:
            raise FormatError(
                f"invalid RAR variable-length integer: length {length} exceeds "
                f"maximum of {MAX_VINT_LENGTH} bytes"
            )
        value |= (b & 0x7F) << shift
        if not b & 0x80:
            return value & _U64, length
        shift += 7


def _read_rar15_block(reader: Reader) -> Tuple[int, int]:
    """Read one RAR 1.5 block and skip its payload; return (type, flags)."""
    head = reader.read_full(7)
    header_type = head[2]
    flags, payload_size = struct.unpack_from("<HH", head, 3)
    if header_type < 0x72 or header_type > RAR15_END_OF_ARCHIVE:
        raise FormatError(
            "invalid RAR file header type: expected 0x72-0x7A or 0x7B, "
            f"got 0x{header_type:02x}"
        )
    if header_type == RAR15_END_OF_ARCHIVE:
        return header_type, flags

    consumed = 7
    if header_type in (0x74, 0x75, 0x7A):
        # File, comment and subblock headers carry a packed data size.
        if not (header_type == 0x75 and not flags & 0x0008):
            (pack_size,) = struct.unpack("<I", reader.read_full(4))
            payload_size = (payload_size + pack_size) & _U32
            consumed += 4
    elif header_type == 0x78:
        num_blocks, block_size = struct.unpack("<II", reader.read_full(8))
        payload_size = (payload_size + num_blocks * block_size) & _U32
        consumed += 8

    if payload_size <= consumed:
        raise FormatError(
            f"invalid RAR file header: payload size {payload_size} is less than or "
            f"equal to header size {consumed}"
        )
    remaining = payload_size - consumed
    if reader.discard(remaining) < remaining:
        raise FormatError("error discarding RAR file header and packed data: unexpected EOF")
    return header_type, flags


def _scan_rar15(reader: Reader) -> ScanResult:
    try:
        header_type, flags = _read_rar15_block(reader)
    except (FormatError, EOFError) as exc:
        raise FormatError(f"error reading RAR 1.5 header: {exc}") from exc

    if header_type != RAR15_ARCHIVE_HEADER:
        raise FormatError(
            f"invalid RAR 1.5 header type: expected 0x73, got 0x{header_type:02x}"
        )
    if (flags >> 8) & RAR_MHD_PASSWORD_FLAG:
        raise FormatError("RAR archive is password protected")

    while _read_rar15_block(reader)[0] != RAR15_END_OF_ARCHIVE:
        pass
    return ScanResult(size=reader.bytes_read())


def _read_rar5_block(reader: Reader) -> Tuple[int, int]:
    """Read one RAR 5.0 block and skip its body; return (type, flags)."""
    header_type = 0
    try:
        if reader.discard(4) < 4:
            raise FormatError("error discarding RAR 5.0 block CRC: unexpected EOF")

        header_size, length = read_vint(reader)
        if length > 3 or header_size > RAR5_MAX_HEADER_SIZE:
            raise FormatError(
                f"invalid RAR 5.0 header size: len = {length} (max 3), "
                f"size = {header_size} (max 2 MB)"
            )

        header_type, length = read_vint(reader)
        consumed = length
        flags, length = read_vint(reader)
        consumed += length

        total = header_size
        if flags & 0x0001:
            _, length = read_vint(reader)
            consumed += length
        if flags & 0x0002:
            data_size, length = read_vint(reader)
            consumed += length
            total = (total + data_size) & _U64

        remaining = total - consumed
        if remaining <= 0:
            raise FormatError(
                f"invalid RAR 5.0 block size: total size {total} is less than "
                f"bytes read {consumed}"
            )
        if reader.discard(remaining) < remaining:
            raise FormatError("error discarding RAR 5.0 block data: unexpected EOF")
        return header_type, flags
    except (FormatError, EOFError) as exc:
        raise _Rar5BlockError(header_type, str(exc) or "unexpected EOF") from exc


def _scan_rar50(reader: Reader) -> ScanResult:
    try:
        header_type, flags = _read_rar5_block(reader)
    except _Rar5BlockError as exc:
        raise FormatError(f"error reading RAR 5.0 header: {exc}") from exc

    if header_type != RAR5_MAIN_HEADER:
        raise FormatError(
            f"invalid RAR 5.0 header type: expected 0x1, got 0x{header_type:02x}"
        )
    if (flags >> 56) & RAR_MHD_PASSWORD_FLAG:
        raise FormatError("RAR 5.0 archive is password protected")

    while True:
        try:
            header_type, _ = _read_rar5_block(reader)
        except _Rar5BlockError as exc:
            if exc.header_type == RAR5_END_OF_ARCHIVE:
                break
            raise FormatError(f"error skipping RAR 5.0 block: {exc}") from exc
        if header_type == RAR5_END_OF_ARCHIVE:
            break
    return ScanResult(size=reader.bytes_read())


def scan_rar(reader: Reader) -> ScanResult:
    """Walk RAR blocks up to the end-of-archive block and return the archive size."""
    head = reader.read_full(8)
    if head[: len(RAR15_SIGNATURE)] == RAR15_SIGNATURE:
        reader.unread_byte()
        return _scan_rar15(reader)
    if head[: len(RAR50_SIGNATURE)] == RAR50_SIGNATURE:
        return _scan_rar50(reader)
    raise FormatError("invalid RAR signature")


FILE_HEADER = FileHeader(
    ext="rar",
    description="Rar Archive Format",
    signatures=(RAR15_SIGNATURE, RAR50_SIGNATURE),
    scan_file=scan_rar,
)