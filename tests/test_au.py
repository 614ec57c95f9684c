import io
import struct

import pytest

from carvekit.core import FormatError
from carvekit.formats.au import FILE_HEADER, scan_sun_audio
from carvekit.reader import Reader


def au(data_size, payload, header_size=24, magic=b".snd"):
    head = magic + struct.pack(">IIIII", header_size, data_size, 1, 8000, 1)
    return head + b"\x00" * (header_size - 24) + payload


def scan(blob):
    return scan_sun_audio(Reader(io.BytesIO(blob), len(blob)))


def test_complete_file():
    payload = b"\x11" * 100
    blob = au(len(payload), payload) + b"trailing"
    assert scan(blob).size == 24 + len(payload)


def test_reader_ends_after_audio():
    payload = b"\x22" * 40
    blob = au(len(payload), payload) + b"junk"
    r = Reader(io.BytesIO(blob), len(blob))
    res = scan_sun_audio(r)
    assert r.bytes_read() == res.size


def test_extended_header():
    payload = b"\x01" * 16
    blob = au(len(payload), payload, header_size=32)
    assert scan(blob).size == len(blob)


def test_truncated_data_returns_available():
    payload = b"\x33" * 10
    blob = au(500, payload)
    assert scan(blob).size == len(blob)


def test_bad_magic():
    with pytest.raises(FormatError):
        scan(au(4, b"abcd", magic=b"snd."))


def test_header_size_too_small():
    with pytest.raises(FormatError):
        scan(au(4, b"abcd", header_size=24)[:4] + struct.pack(">I", 8) + b"\x00" * 20)


def test_unknown_data_size():
    with pytest.raises(FormatError, match="unknown"):
        scan(au(0xFFFFFFFF, b"abcd"))


def test_truncated_extended_header():
    blob = au(4, b"", header_size=24)[:4] + struct.pack(">II", 200, 4) + b"\x00" * 16
    with pytest.raises(FormatError, match="truncated"):
        scan(blob)


def test_too_small():
    with pytest.raises(FormatError):
        scan(b".snd\x00\x00")


def test_signature():
    payload = b"\x05" * 8
    blob = au(len(payload), payload)
    assert FILE_HEADER.ext == "au"
    assert blob.startswith(FILE_HEADER.signatures[0])
    assert FILE_HEADER.scan(Reader(io.BytesIO(blob), len(blob))).size == 32