import io
import struct

import pytest

from carvekit.core import FormatError
from carvekit.formats.tiff import FILE_HEADER, scan_tiff
from carvekit.reader import Reader


def make_reader(data: bytes) -> Reader:
    return Reader(io.BytesIO(data), len(data))


def little_tiff(entries: int = 1, gap: bytes = b"") -> bytes:
    first = 8 + len(gap)
    ifd = struct.pack("<H", entries) + b"\x01" * (12 * entries) + struct.pack("<I", 0)
    return b"II*\x00" + struct.pack("<I", first) + gap + ifd


def test_single_ifd_little_endian():
    data = little_tiff()
    result = scan_tiff(make_reader(data))
    assert result.size == len(data)
    assert result.ext == "tif"


def test_gap_before_first_ifd():
    data = little_tiff(entries=2, gap=b"\x00" * 10)
    assert scan_tiff(make_reader(data)).size == len(data)


def test_trailing_data_excluded():
    data = little_tiff()
    trailer = b"\xaa" * 33
    assert scan_tiff(make_reader(data + trailer)).size == len(data)


def test_big_endian_chained_ifds():
    first = struct.pack(">H", 1) + b"\x02" * 12
    second_offset = 8 + len(first) + 4 + 6
    first += struct.pack(">I", second_offset) + b"\x00" * 6
    second = struct.pack(">H", 0) + struct.pack(">I", 0)
    data = b"MM\x00*" + struct.pack(">I", 8) + first + second
    assert second_offset == 8 + len(first)
    assert scan_tiff(make_reader(data)).size == len(data)


def test_invalid_endian_marker():
    with pytest.raises(FormatError):
        scan_tiff(make_reader(b"XX*\x00" + struct.pack("<I", 8) + b"\x00" * 6))


def test_invalid_magic():
    with pytest.raises(FormatError):
        scan_tiff(make_reader(b"II+\x00" + struct.pack("<I", 8) + b"\x00" * 6))


def test_ifd_offset_inside_header():
    with pytest.raises(FormatError):
        scan_tiff(make_reader(b"II*\x00" + struct.pack("<I", 4) + b"\x00" * 6))


def test_backward_ifd_pointer():
    ifd = struct.pack("<H", 0) + struct.pack("<I", 8)
    with pytest.raises(FormatError):
        scan_tiff(make_reader(b"II*\x00" + struct.pack("<I", 8) + ifd))


def test_truncated_entries():
    data = little_tiff(entries=3)
    with pytest.raises(FormatError):
        scan_tiff(make_reader(data[:20]))


def test_short_header():
    with pytest.raises(FormatError):
        scan_tiff(make_reader(b"II*\x00"))


def test_file_header_signatures():
    data = little_tiff(entries=2)
    assert FILE_HEADER.ext == "tif"
    assert b"II*\x00" in FILE_HEADER.signatures
    assert b"MM\x00*" in FILE_HEADER.signatures
    result = FILE_HEADER.scan(make_reader(data))
    assert (result.size, result.ext) == (len(data), "tif")