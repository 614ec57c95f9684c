"""GIF image scanner: walks the block structure up to the trailer."""

from __future__ import annotations

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

# Section indicators.
S_EXTENSION = 0x21
S_IMAGE_DESCRIPTOR = 0x2C
S_TRAILER = 0x3B

# Extensions.
E_TEXT = 0x01
E_GRAPHIC_CONTROL = 0xF9
E_COMMENT = 0xFE
E_APPLICATION = 0xFF

F_COLOR_TABLE = 1 << 7
F_COLOR_TABLE_BITS_MASK = 7

GIF_VERSIONS = (b"GIF87a", b"GIF89a")


class _GifDecoder:
    def __init__(self, reader: Reader) -> None:
        self.reader = reader
        self.loop_count = -1
        self.width = 0
        self.height = 0
        self.has_global_color_table = False
        self.data_parsed = False

    def _read(self, n: int, what: str) -> bytes:
        try:
            return self.reader.read_full(n)
        except EOFError as exc:
            raise FormatError(f"gif: {what}: {exc}") from exc

    def _read_byte(self, what: str) -> int:
        try:
            return self.reader.read_byte()
        except EOFError as exc:
            raise FormatError(f"gif: {what}: {exc}") from exc

    def _skip_color_table(self, fields: int) -> None:
        entries = 1 << (1 + (fields & F_COLOR_TABLE_BITS_MASK))
        self._read(3 * entries, "reading color table")

    def read_header_and_screen_descriptor(self) -> None:
        data = self._read(13, "reading header")
        version = data[:6]
        if version not in GIF_VERSIONS:
            raise FormatError(f"gif: can't recognize format {version!r}")
        self.width = int.from_bytes(data[6:8], "little")
        self.height = int.from_bytes(data[8:10], "little")
        fields = data[10]
        if fields & F_COLOR_TABLE:
            self.has_global_color_table = True
            self._skip_color_table(fields)

    def _read_block(self) -> bytes:
        n = self._read_byte("reading extension")
        if n == 0:
            return b""
        return self._read(n, "reading extension")

    def _read_graphic_control(self) -> None:
        data = self._read(6, "can't read graphic control")
        if data[0] != 4:
            raise FormatError(
                f"gif: invalid graphic control extension block size: {data[0]}"
            )
        if data[5] != 0:
            raise FormatError(
                f"gif: invalid graphic control extension block terminator: {data[5]}"
            )

    def read_extension(self) -> None:
        extension = self._read_byte("reading extension")
        if extension == E_GRAPHIC_CONTROL:
            self._read_graphic_control()
            return
        if extension == E_TEXT:
            size = 13
        elif extension == E_COMMENT:
            size = 0
        elif extension == E_APPLICATION:
            size = self._read_byte("reading extension")
        else:
            raise FormatError(f"gif: unknown extension 0x{extension:02x}")

        data = self._read(size, "reading extension") if size > 0 else b""

        if extension == E_APPLICATION and data == b"NETSCAPE2.0":
            block = self._read_block()
            if not block:
                return
            if len(block) == 3 and block[0] == 1:
                self.loop_count = block[1] | (block[2] << 8)

        while self._read_block():
            pass

    def read_image_descriptor(self) -> None:
        data = self._read(9, "can't read image descriptor")
        left = int.from_bytes(data[0:2], "little")
        top = int.from_bytes(data[2:4], "little")
        width = int.from_bytes(data[4:6], "little")
        height = int.from_bytes(data[6:8], "little")
        fields = data[8]
        if left + width > self.width or top + height > self.height:
            raise FormatError("gif: frame bounds larger than image bounds")

        if fields & F_COLOR_TABLE:
            self._skip_color_table(fields)
        elif not self.has_global_color_table:
            raise FormatError("gif: no color table")

        lit_width = self._read_byte("reading image data")
        if not 2 <= lit_width <= 8:
            raise FormatError(f"gif: pixel size in decode out of range: {lit_width}")

        while True:
            size = self._read_byte("reading image data")
            if size == 0:
                break
            if self.reader.discard(size) < size:
                raise FormatError("gif: reading image data: unexpected end of data")

        self.data_parsed = True


def scan_gif(reader: Reader) -> ScanResult:
    """Walk GIF blocks up to the trailer and return the number of bytes consumed."""
    decoder = _GifDecoder(reader)
    decoder.read_header_and_screen_descriptor()
    while True:
        block = decoder._read_byte("reading frames")
        if block == S_EXTENSION:
            decoder.read_extension()
        elif block == S_IMAGE_DESCRIPTOR:
            decoder.read_image_descriptor()
        elif block == S_TRAILER:
            if not decoder.data_parsed:
                raise FormatError("gif: missing image data")
            return ScanResult(size=reader.bytes_read())
        else:
            raise FormatError(f"gif: unknown block type: 0x{block:02x}")


FILE_HEADER = FileHeader(
    ext="gif",
    description="Graphics Interchange Format",
    signatures=GIF_VERSIONS,
    scan_file=scan_gif,
)