"""ZSoft PCX image scanner, for both uncompressed and RLE-encoded images."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

PCX_HEADER_SIZE = 128
PCX_MANUFACTURER = 0x0A
PALETTE_MARKER = 0x0C
PALETTE_SIZE = 256

_U32 = 0xFFFFFFFF
_PCX_STRUCT = struct.Struct("<4B6H48s2B4H54s")

_VALID_VERSIONS = frozenset({0, 2, 3, 4, 5})
_VALID_BITS_PER_PIXEL = frozenset({1, 2, 4, 8})


@dataclass(frozen=True)
class PcxHeader:
    """The 128-byte PCX file header."""

    manufacturer: int
    version: int
    encoding: int
    bits_per_pixel: int
    x_min: int
    y_min: int
    x_max: int
    y_max: int
    h_res: int
    v_res: int
    color_map: bytes
    reserved: int
    num_planes: int
    bytes_per_line: int
    palette_type: int
    h_screen_size: int
    v_screen_size: int
    filler: bytes

    @classmethod
    def parse(cls, data: bytes) -> "PcxHeader":
        if len(data) < PCX_HEADER_SIZE:
            raise FormatError(f"incomplete PCX header: only {len(data)} bytes read")
        return cls(*_PCX_STRUCT.unpack_from(data))


def read_rle_scanline(reader: Reader, expected: int) -> int:
    """Consume one RLE-encoded scanline of one plane; return the bytes consumed."""
    consumed = 0
    decoded = 0
    while decoded < expected:
        try:
            b = reader.read_byte()
        except EOFError as exc:
            raise FormatError("unexpected EOF while reading RLE data") from exc
        consumed += 1

        if b & 0xC0 == 0xC0:
            run_length = b & 0x3F
            if run_length == 0:
                raise FormatError("invalid RLE run length of 0")
            try:
                reader.read_byte()
            except EOFError as exc:
                raise FormatError("unexpected EOF while reading RLE run data byte") from exc
            consumed += 1
            decoded += run_length
        else:
            decoded += 1
        # Some encoders let runs cross scanline ends, so overshoot is tolerated.
    return consumed


def _validate(header: PcxHeader) -> int:
    """Check the header fields and return the image height."""
    if header.manufacturer != PCX_MANUFACTURER:
        raise FormatError(
            f"invalid PCX manufacturer ID: expected 0x0A, got 0x{header.manufacturer:02X}"
        )
    if header.encoding not in (0, 1):
        raise FormatError(
            "unsupported PCX encoding: expected 0 (uncompressed) or 1 (RLE), "
            f"got {header.encoding}"
        )
    if header.version not in _VALID_VERSIONS:
        raise FormatError(f"unsupported PCX version: {header.version}")
    if header.bits_per_pixel not in _VALID_BITS_PER_PIXEL:
        raise FormatError(f"unsupported bits per pixel: {header.bits_per_pixel}")
    if header.num_planes == 0 or header.num_planes > 4:
        raise FormatError(f"unsupported number of planes: {header.num_planes}")

    width = (header.x_max - header.x_min + 1) & _U32
    height = (header.y_max - header.y_min + 1) & _U32
    if width == 0 or height == 0:
        raise FormatError("invalid PCX header: image dimensions (width or height) are zero")
    if header.x_max < header.x_min or header.y_max < header.y_min:
        raise FormatError("invalid PCX header: XMax < XMin or YMax < YMin")

    min_bytes_per_line = ((width * header.bits_per_pixel + 7) // 8) & _U32
    if min_bytes_per_line % 2:
        min_bytes_per_line += 1
    if header.bytes_per_line < (min_bytes_per_line & 0xFFFF):
        raise FormatError(
            f"invalid PCX header: BytesPerLine ({header.bytes_per_line}) is less than "
            f"calculated minimum ({min_bytes_per_line})"
        )
    return height


def scan_pcx(reader: Reader) -> ScanResult:
    """Validate a PCX header, walk its image data and return the file size."""
    try:
        raw = reader.read_full(PCX_HEADER_SIZE)
    except EOFError as exc:
        raise FormatError("incomplete PCX header: end of file reached") from exc
    header = PcxHeader.parse(raw)
    height = _validate(header)

    total = PCX_HEADER_SIZE

    if header.encoding == 0:
        expected = (header.bytes_per_line * header.num_planes * height) & _U32
        if reader.discard(expected) < expected:
            raise FormatError("unexpected EOF while skipping uncompressed image data")
        total += expected
    else:
        for y in range(height):
            for plane in range(header.num_planes):
                try:
                    total += read_rle_scanline(reader, header.bytes_per_line)
                except FormatError as exc:
                    raise FormatError(
                        f"error reading RLE scanline (Y:{y}, Plane:{plane}): {exc}"
                    ) from exc

    if header.version == 5 and header.bits_per_pixel == 8:
        # An optional 256-colour palette follows, introduced by a marker byte.
        try:
            marker = reader.read_byte()
        except EOFError:
            return ScanResult(size=total)
        total += 1
        if marker == PALETTE_MARKER:
            if reader.discard(PALETTE_SIZE) < PALETTE_SIZE:
                raise FormatError("unexpected EOF while reading 256-byte palette")
            total += PALETTE_SIZE

    return ScanResult(size=total)


FILE_HEADER = FileHeader(
    ext="pcx",
    description="Picture Exchange Format",
    signatures=(b"\x0a",),
    scan_file=scan_pcx,
)