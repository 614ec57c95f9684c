import io
import struct

import pytest

from carvekit.core import FormatError
from carvekit.formats.rar import (
    FILE_HEADER,
    RAR15_SIGNATURE,
    RAR50_SIGNATURE,
    read_vint,
    scan_rar,
)
from carvekit.reader import Reader


def _reader(data: bytes) -> Reader:
    return Reader(io.BytesIO(data), len(data))


def _vint(value: int) -> bytes:
    out = bytearray()
    while True:
        b = value & 0x7F
        value >>= 7
        if value:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


# RAR 1.5 building blocks


def _main15(flags=0):
    return b"\x00\x00" + bytes([0x73]) + struct.pack("<HH", flags, 13) + bytes(6)


def _file15(pack=b"data1234xx", head_size=32):
    return (
        b"\x00\x00"
        + bytes([0x74])
        + struct.pack("<HHI", 0, head_size, len(pack))
        + bytes(max(head_size - 11, 0))
        + pack
    )


_COMMENT15 = b"\x00\x00" + bytes([0x75]) + struct.pack("<HH", 0, 12) + bytes(5)
_END15 = b"\x00\x00" + bytes([0x7B]) + struct.pack("<HH", 0, 7)


# RAR 5.0 building blocks


def _block5(htype, flags, body=b"", data=b""):
    fields = _vint(htype) + _vint(flags)
    if flags & 0x0002:
        fields += _vint(len(data))
    fields += body
    return bytes(4) + _vint(len(fields)) + fields + data


_MAIN5 = _block5(1, 0, body=b"\x00")
_END5 = _block5(5, 0, body=b"\x00")


def test_read_vint_known_encoding():
    assert read_vint(_reader(bytes([0x80, 0x01]))) == (128, 2)


@pytest.mark.parametrize("value", [0, 1, 127, 300, 2**21, 2**63 + 5])
def test_read_vint_round_trip(value):
    encoded = _vint(value)
    assert read_vint(_reader(encoded)) == (value, len(encoded))


def test_read_vint_too_long():
    with pytest.raises(FormatError):
        read_vint(_reader(bytes([0x80] * 11) + b"\x00"))


def test_rar15_archive():
    archive = RAR15_SIGNATURE + _main15() + _file15() + _COMMENT15 + _END15
    trailing = b"trailing"
    result = scan_rar(_reader(archive + trailing))
    assert result.size == len(archive)


def test_rar15_password_protected():
    archive = RAR15_SIGNATURE + _main15(flags=0x8000) + _END15
    with pytest.raises(FormatError, match="password"):
        scan_rar(_reader(archive))


def test_rar15_first_block_not_archive_header():
    archive = RAR15_SIGNATURE + _file15() + _END15
    with pytest.raises(FormatError):
        scan_rar(_reader(archive))


def test_rar15_invalid_block_type():
    bad = b"\x00\x00" + bytes([0x10]) + struct.pack("<HH", 0, 7)
    archive = RAR15_SIGNATURE + _main15() + bad + _END15
    with pytest.raises(FormatError):
        scan_rar(_reader(archive))


def test_rar15_payload_too_small():
    archive = RAR15_SIGNATURE + _main15() + _file15(pack=b"", head_size=5) + _END15
    with pytest.raises(FormatError):
        scan_rar(_reader(archive))


def test_rar15_truncated_data():
    archive = RAR15_SIGNATURE + _main15() + _file15()[:20]
    with pytest.raises(FormatError):
        scan_rar(_reader(archive))


def test_rar50_archive():
    archive = RAR50_SIGNATURE + _MAIN5 + _block5(2, 0x02, body=b"abc", data=b"hello") + _END5
    result = scan_rar(_reader(archive + b"junkjunk"))
    assert result.size == len(archive)


def test_rar50_end_block_truncated_is_tolerated():
    archive = RAR50_SIGNATURE + _MAIN5 + bytes(4) + _vint(100) + _vint(5) + _vint(0)
    result = scan_rar(_reader(archive))
    assert result.size == len(archive)


def test_rar50_password_protected():
    archive = RAR50_SIGNATURE + _block5(1, 1 << 63, body=b"\x00") + _END5
    with pytest.raises(FormatError, match="password"):
        scan_rar(_reader(archive))


def test_rar50_first_block_not_main():
    archive = RAR50_SIGNATURE + _block5(2, 0, body=b"\x00") + _END5
    with pytest.raises(FormatError):
        scan_rar(_reader(archive))


def test_rar50_header_size_too_large():
    archive = RAR50_SIGNATURE + bytes(4) + _vint(3 * 1024 * 1024) + bytes(16)
    with pytest.raises(FormatError):
        scan_rar(_reader(archive))


def test_rar50_truncated_file_block():
    block = _block5(2, 0x02, body=b"abc", data=b"hello" * 10)
    archive = RAR50_SIGNATURE + _MAIN5 + block[:-20]
    with pytest.raises(FormatError):
        scan_rar(_reader(archive))


def test_invalid_signature():
    with pytest.raises(FormatError):
        scan_rar(_reader(b"NotARar!" + bytes(32)))


def test_too_short_for_signature():
    with pytest.raises(EOFError):
        scan_rar(_reader(b"Rar!"))


def test_file_header():
    assert FILE_HEADER.signatures == (RAR15_SIGNATURE, RAR50_SIGNATURE)
    archive = RAR50_SIGNATURE + _MAIN5 + _END5
    assert FILE_HEADER.scan(_reader(archive)).size == len(archive)