import io
import struct

import pytest

from carvekit.core import FormatError
from carvekit.formats.wma import (
    ASF_FILE_PROP_GUID,
    ASF_HEADER_GUID,
    ASF_STREAM_PROP_GUID,
    FILE_HEADER,
    STREAM_TYPE_WMA,
    scan_wma,
)
from carvekit.reader import Reader

OTHER_GUID = bytes(range(16))
VIDEO_TYPE = bytes(range(16, 32))


def make_reader(data: bytes) -> Reader:
    return Reader(io.BytesIO(data), len(data))


def obj(guid: bytes, body: bytes, declared=None) -> bytes:
    size = 24 + len(body) if declared is None else declared
    return guid + struct.pack("<Q", size) + body


def file_props(file_size: int) -> bytes:
    return obj(ASF_FILE_PROP_GUID, b"\x11" * 16 + struct.pack("<Q", file_size) + b"\x00" * 56)


def stream_props(stream_type: bytes = STREAM_TYPE_WMA) -> bytes:
    return obj(ASF_STREAM_PROP_GUID, stream_type + b"\x00" * 38)


def make_asf(objects, file_size=None, count=None, header_size=None, payload=0):
    body = b"".join(objects)
    size = 30 + len(body) if header_size is None else header_size
    n = len(objects) if count is None else count
    head = ASF_HEADER_GUID + struct.pack("<QI", size, n) + b"\x01\x02"
    return head + body + b"\x00" * payload


def standard_objects(file_size, stream_type=STREAM_TYPE_WMA):
    return [
        file_props(file_size),
        stream_props(stream_type),
        obj(OTHER_GUID, b"\x00" * 8),
        obj(OTHER_GUID, b""),
    ]


def header_len() -> int:
    return 30 + sum(len(o) for o in standard_objects(0))


def test_declared_file_size_is_returned():
    declared = header_len() + 64
    data = make_asf(standard_objects(declared), payload=64)
    assert scan_wma(make_reader(data)).size == declared


def test_declared_size_equal_to_header():
    declared = header_len()
    data = make_asf(standard_objects(declared))
    assert scan_wma(make_reader(data)).size == len(data)


def test_wrong_header_guid():
    data = make_asf(standard_objects(header_len()))
    with pytest.raises(FormatError):
        scan_wma(make_reader(OTHER_GUID + data[16:]))


def test_too_few_header_objects():
    objects = standard_objects(header_len())[:3]
    with pytest.raises(FormatError):
        scan_wma(make_reader(make_asf(objects)))


def test_no_wma_stream():
    declared = header_len()
    data = make_asf(standard_objects(declared, stream_type=VIDEO_TYPE))
    with pytest.raises(FormatError, match="no WMA audio stream"):
        scan_wma(make_reader(data))


def test_missing_file_properties():
    objects = [stream_props(), obj(OTHER_GUID, b""), obj(OTHER_GUID, b""), obj(OTHER_GUID, b"")]
    with pytest.raises(FormatError, match="not definitively determined"):
        scan_wma(make_reader(make_asf(objects)))


def test_file_size_smaller_than_header():
    data = make_asf(standard_objects(50))
    with pytest.raises(FormatError):
        scan_wma(make_reader(data))


def test_sub_object_beyond_header_boundary():
    declared = header_len()
    data = make_asf(standard_objects(declared), header_size=header_len() - 10)
    with pytest.raises(FormatError, match="malformed ASF header"):
        scan_wma(make_reader(data))


def test_sub_object_size_too_small():
    objects = standard_objects(header_len())
    objects[2] = obj(OTHER_GUID, b"\x00" * 8, declared=10)
    with pytest.raises(FormatError, match="invalid ASF internal object size"):
        scan_wma(make_reader(make_asf(objects)))


def test_file_properties_too_small():
    objects = standard_objects(0)
    objects[0] = obj(ASF_FILE_PROP_GUID, b"\x00" * 20)
    with pytest.raises(FormatError):
        scan_wma(make_reader(make_asf(objects)))


def test_truncated_header_object():
    with pytest.raises(FormatError):
        scan_wma(make_reader(ASF_HEADER_GUID + b"\x00" * 4))


def test_file_header_signature():
    declared = header_len() + 32
    data = make_asf(standard_objects(declared), payload=32)
    assert FILE_HEADER.ext == "wma"
    assert FILE_HEADER.signatures == (ASF_HEADER_GUID,)
    assert data[:4] == b"\x30\x26\xb2\x75"
    assert FILE_HEADER.scan(make_reader(data)).size == declared