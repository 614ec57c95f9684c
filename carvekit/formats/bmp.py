"""Windows bitmap (.bmp) scanner."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

_U32 = 0xFFFFFFFF

BMP_HEADER_SIZE = 14
MIN_DIB_PARSE_SIZE = 40

_BMP_STRUCT = struct.Struct("<2sIHHI")
_DIB_STRUCT = struct.Struct("<IiiHHIIiiII")

# BITMAPCOREHEADER, BITMAPINFOHEADER, V2, V4, V5
_VALID_DIB_SIZES = frozenset({12, 40, 64, 108, 124})
_VALID_BITS_PER_PIXEL = frozenset({1, 4, 8, 16, 24, 32})


class BmpCompression(IntEnum):
    """Compression methods recognised in a DIB header."""

    RGB = 0
    RLE8 = 1
    RLE4 = 2
    BITFIELDS = 3
    JPEG = 4
    PNG = 5
    ALPHABITFIELDS = 6
    CMYK = 11
    CMYKRLE8 = 12
    CMYKRLE4 = 13


_KNOWN_COMPRESSIONS = frozenset(int(c) for c in BmpCompression)


@dataclass(frozen=True)
class BmpHeader:
    """The 14-byte BITMAPFILEHEADER."""

    signature: bytes
    file_size: int
    reserved1: int
    reserved2: int
    data_offset: int

    @classmethod
    def parse(cls, data: bytes) -> "BmpHeader":
        if len(data) < BMP_HEADER_SIZE:
            raise FormatError("incomplete BMP header: end of file reached")
        return cls(*_BMP_STRUCT.unpack_from(data))


@dataclass(frozen=True)
class DibHeader:
    """The fields of a BITMAPINFOHEADER, the common prefix of later DIB headers."""

    header_size: int
    width: int
    height: int
    planes: int
    bits_per_pixel: int
    compression: int
    image_size: int
    x_pixels_per_meter: int
    y_pixels_per_meter: int
    colors_used: int
    colors_important: int

    @classmethod
    def parse(cls, data: bytes) -> "DibHeader":
        if len(data) < MIN_DIB_PARSE_SIZE:
            raise FormatError(
                f"failed to parse DIB header: need {MIN_DIB_PARSE_SIZE} bytes, got {len(data)}"
            )
        return cls(*_DIB_STRUCT.unpack_from(data))


def _read_dib(reader: Reader) -> DibHeader:
    try:
        size_raw = reader.read_full(4)
    except EOFError as exc:
        raise FormatError("incomplete DIB header: not enough bytes for header size") from exc
    header_size = int.from_bytes(size_raw, "little")
    if header_size not in _VALID_DIB_SIZES:
        raise FormatError(f"unsupported DIB header size: {header_size}")
    try:
        rest = reader.read_full(header_size - 4)
    except EOFError as exc:
        raise FormatError("incomplete DIB header: not enough bytes for full header") from exc
    return DibHeader.parse(size_raw + rest)


def _image_data_size(dib: DibHeader) -> int:
    bpp = dib.bits_per_pixel
    width = dib.width & _U32
    if bpp == 1:
        row_size = (width + 7) // 8
    elif bpp == 4:
        row_size = (width + 1) // 2
    else:
        row_size = (width * (bpp // 8)) & _U32
    padded_row = ((row_size + 3) & ~3) & _U32
    abs_height = abs(dib.height) & _U32
    return (padded_row * abs_height) & _U32


def scan_bmp(reader: Reader) -> ScanResult:
    """Validate BMP and DIB headers and return the file size they declare."""
    try:
        raw = reader.read_full(BMP_HEADER_SIZE)
    except EOFError as exc:
        raise FormatError("incomplete BMP header: end of file reached") from exc
    bmp = BmpHeader.parse(raw)

    if bmp.signature != b"BM":
        raise FormatError("invalid BMP signature: expected 'BM'")
    if bmp.reserved1 != 0 or bmp.reserved2 != 0:
        raise FormatError("invalid BMP header: reserved fields are not zero")
    if bmp.file_size < BMP_HEADER_SIZE + 40:
        raise FormatError("invalid BMP header: file size too small to contain basic headers")
    if bmp.data_offset < BMP_HEADER_SIZE:
        raise FormatError("invalid BMP header: data offset is before the BMP file header")

    dib = _read_dib(reader)

    if dib.planes != 1:
        raise FormatError("invalid DIB header: number of planes must be 1")
    if dib.bits_per_pixel not in _VALID_BITS_PER_PIXEL:
        raise FormatError(f"unsupported bits per pixel: {dib.bits_per_pixel}")
    if dib.compression not in _KNOWN_COMPRESSIONS:
        raise FormatError(
            f"unrecognized or unsupported BMP compression type: {dib.compression}"
        )
    if dib.width <= 0 or dib.height == 0:
        raise FormatError("invalid DIB header: image dimensions are invalid")

    min_offset = BMP_HEADER_SIZE + dib.header_size
    if dib.bits_per_pixel <= 8:
        if dib.colors_used == 0:
            min_offset += (1 << dib.bits_per_pixel) * 4
        else:
            min_offset += dib.colors_used * 4
    min_offset &= _U32
    if bmp.data_offset < min_offset:
        raise FormatError(
            f"invalid BMP header: data offset ({bmp.data_offset}) is less than "
            f"expected minimum ({min_offset})"
        )

    expected_image_size = _image_data_size(dib)
    if dib.image_size != 0 and dib.image_size < expected_image_size:
        raise FormatError(
            f"invalid DIB header: image size ({dib.image_size}) is less than "
            f"calculated minimum ({expected_image_size})"
        )

    if dib.compression == BmpCompression.RGB:
        actual_image_size = expected_image_size
    else:
        actual_image_size = dib.image_size

    expected_total = (bmp.data_offset + actual_image_size) & _U32
    if bmp.file_size < expected_total:
        raise FormatError(
            f"inconsistent file size: header states {bmp.file_size}, but expected at "
            f"least {expected_total} based on data offset and image size"
        )
    return ScanResult(size=bmp.file_size)


FILE_HEADER = FileHeader(
    ext="bmp",
    description="Bitmap Image File Format",
    signatures=(b"BM",),
    scan_file=scan_bmp,
)