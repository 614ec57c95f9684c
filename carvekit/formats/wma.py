"""Windows Media Audio (ASF container) scanner."""

from __future__ import annotations

import struct

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

# ASF object GUIDs, in the byte order in which they appear in a file.
ASF_HEADER_GUID = bytes(
    [0x30, 0x26, 0xB2, 0x75, 0x8E, 0x66, 0xCF, 0x11, 0xA6, 0xD9, 0x00, 0xAA, 0x00, 0x62, 0xCE, 0x6C]
)
ASF_FILE_PROP_GUID = bytes(
    [0xA1, 0xDC, 0xAB, 0x8C, 0x47, 0xA9, 0xCF, 0x11, 0x8E, 0xE4, 0x00, 0xC0, 0x0C, 0x20, 0x53, 0x65]
)
ASF_STREAM_PROP_GUID = bytes(
    [0x91, 0x07, 0xDC, 0xB7, 0xB7, 0xA9, 0xCF, 0x11, 0x8E, 0xE6, 0x00, 0xC0, 0x0C, 0x20, 0x53, 0x65]
)
STREAM_TYPE_WMA = bytes(
    [0x40, 0x9E, 0x69, 0xF8, 0x4D, 0x5B, 0xCF, 0x11, 0xA8, 0xFD, 0x00, 0x80, 0x5F, 0x5C, 0x44, 0x2B]
)

MIN_ASF_HEADER_OBJ_SIZE = 30
MIN_SUB_OBJECT_HEADER_SIZE = 24
MIN_FILE_PROP_OBJ_SIZE = 40
FILE_PROP_FILE_SIZE_OFFSET = 40
MIN_STREAM_PROP_OBJ_SIZE = 40
STREAM_PROP_STREAM_TYPE_OFFSET = 24
MIN_HEADER_OBJECTS = 4
MAX_SAFE_OBJECT_SIZE = 1000 * 1024 * 1024 * 2

_GUID_SIZE = 16


def scan_wma(reader: Reader) -> ScanResult:
    """Parse the ASF header objects and return the file size they declare."""
    try:
        head = reader.read_full(MIN_ASF_HEADER_OBJ_SIZE)
    except EOFError as exc:
        raise FormatError("ASF header object is truncated") from exc

    if head[:_GUID_SIZE] != ASF_HEADER_GUID:
        raise FormatError("ASF header GUID not found at buffer start")

    header_size, num_objects = struct.unpack_from("<QI", head, 16)
    if header_size < MIN_ASF_HEADER_OBJ_SIZE or num_objects < MIN_HEADER_OBJECTS:
        raise FormatError("invalid ASF Header Object structure or too few internal objects")

    total_file_size = 0
    wma_stream_found = False
    bytes_read = MIN_ASF_HEADER_OBJ_SIZE

    for _ in range(num_objects):
        if bytes_read + MIN_SUB_OBJECT_HEADER_SIZE > header_size:
            raise FormatError("malformed ASF header: sub-object extends beyond parent header")

        obj_head = reader.read_full(MIN_SUB_OBJECT_HEADER_SIZE)
        obj_id = obj_head[:_GUID_SIZE]
        (obj_size,) = struct.unpack_from("<Q", obj_head, 16)

        if obj_size < MIN_SUB_OBJECT_HEADER_SIZE or obj_size > MAX_SAFE_OBJECT_SIZE:
            raise FormatError(f"invalid ASF internal object size: {obj_size}")
        if bytes_read + obj_size > header_size:
            raise FormatError("malformed ASF header: sub-object extends beyond header boundary")

        if obj_id == ASF_FILE_PROP_GUID:
            if obj_size < MIN_FILE_PROP_OBJ_SIZE:
                raise FormatError("invalid ASF File Properties Object size")
            if FILE_PROP_FILE_SIZE_OFFSET + 8 > obj_size:
                raise FormatError("truncated ASF File Properties Object for 'file_size'")
            # The file size follows the 16-byte file ID.
            body = reader.peek(_GUID_SIZE + 8)
            if len(body) < _GUID_SIZE + 8:
                raise FormatError("truncated ASF File Properties Object for 'file_size'")
            (total_file_size,) = struct.unpack_from("<Q", body, _GUID_SIZE)
            if total_file_size < header_size:
                raise FormatError("invalid total file size in File Properties Object")
        elif obj_id == ASF_STREAM_PROP_GUID:
            if obj_size < MIN_STREAM_PROP_OBJ_SIZE:
                raise FormatError("invalid ASF Stream Properties Object size")
            if STREAM_PROP_STREAM_TYPE_OFFSET + _GUID_SIZE > obj_size:
                raise FormatError("truncated ASF Stream Properties Object for 'stream_type'")
            if reader.peek(_GUID_SIZE) == STREAM_TYPE_WMA:
                wma_stream_found = True

        remaining = obj_size - MIN_SUB_OBJECT_HEADER_SIZE
        if reader.discard(remaining) < remaining:
            raise FormatError("ASF header object extends beyond the available data")
        bytes_read += obj_size

    if total_file_size == 0:
        raise FormatError("WMA file size not definitively determined from ASF structure")
    if total_file_size < bytes_read:
        raise FormatError(
            "inconsistent WMA file size: declared size is smaller than parsed header"
        )
    if not wma_stream_found:
        raise FormatError("no WMA audio stream found in ASF header")
    return ScanResult(size=total_file_size)


FILE_HEADER = FileHeader(
    ext="wma",
    description="Windows Media Audio Format",
    signatures=(ASF_HEADER_GUID,),
    scan_file=scan_wma,
)