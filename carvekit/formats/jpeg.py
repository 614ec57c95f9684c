"""JPEG scanner: walks marker segments up to the End Of Image marker."""

from __future__ import annotations

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

SOF0_MARKER = 0xC0  # Start Of Frame (Baseline Sequential).
SOF1_MARKER = 0xC1  # Start Of Frame (Extended Sequential).
SOF2_MARKER = 0xC2  # Start Of Frame (Progressive).
DHT_MARKER = 0xC4  # Define Huffman Table.
RST0_MARKER = 0xD0  # ReSTart (0).
RST7_MARKER = 0xD7  # ReSTart (7).
SOI_MARKER = 0xD8  # Start Of Image.
EOI_MARKER = 0xD9  # End Of Image.
SOS_MARKER = 0xDA  # Start Of Scan.
DQT_MARKER = 0xDB  # Define Quantization Table.
DRI_MARKER = 0xDD  # Define Restart Interval.
COM_MARKER = 0xFE  # COMment.
APP0_MARKER = 0xE0
APP14_MARKER = 0xEE
APP15_MARKER = 0xEF

_SKIPPABLE_MARKERS = frozenset(
    {
        SOF0_MARKER,
        SOF1_MARKER,
        SOF2_MARKER,
        DHT_MARKER,
        DQT_MARKER,
        SOS_MARKER,
        DRI_MARKER,
        COM_MARKER,
        *range(APP0_MARKER, APP15_MARKER + 1),
    }
)


def _next_marker(reader: Reader) -> int:
    """Return the next marker code, skipping extraneous bytes and fill bytes.

    Returns 0 for a stuffed ``FF 00`` pair, which the caller ignores.
    """
    first, second = reader.read_full(2)
    # Extraneous non-marker data is silently ignored, as libjpeg does.
    while first != 0xFF:
        first, second = second, reader.read_byte()
    marker = second
    if marker == 0:
        return 0
    # Any marker may be preceded by any number of 0xFF fill bytes.
    while marker == 0xFF:
        marker = reader.read_byte()
    return marker


def scan_jpeg(reader: Reader) -> ScanResult:
    """Walk JPEG segments and return the size up to and including the EOI marker."""
    first, second = reader.read_full(2)
    if first != 0xFF or second != SOI_MARKER:
        raise FormatError("missing SOI marker")

    while True:
        marker = _next_marker(reader)
        if marker == 0:
            continue
        if marker == EOI_MARKER:
            return ScanResult(size=reader.bytes_read())
        if RST0_MARKER <= marker <= RST7_MARKER:
            # Restart markers carry no length; a stray final one is harmless.
            continue

        length_raw = reader.read_full(2)
        n = int.from_bytes(length_raw, "big") - 2
        if n < 0:
            raise FormatError("short segment length")

        if marker not in _SKIPPABLE_MARKERS:
            raise FormatError("unknown marker")
        if reader.discard(n) < n:
            raise EOFError("JPEG segment extends beyond the available data")


FILE_HEADER = FileHeader(
    ext="jpeg",
    description="Joint Photographic Experts Group Format",
    signatures=(b"\xff\xd8\xff",),
    scan_file=scan_jpeg,
)