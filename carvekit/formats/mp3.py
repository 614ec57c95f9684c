"""MP3 (MPEG audio layer III) stream scanner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader

# Frame size bounds used to reject implausible frames during carving.
MIN_MP3_FRAME_SIZE = 100
MAX_MP3_FRAME_SIZE = 1500

MINIMUM_REQUIRED_FRAMES = 2

ID3_HEADER_SIZE = 10

BITRATE_MPEG1_LAYER3 = (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320, 0)
BITRATE_MPEG2_LAYER3 = (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160, 0)

# Indexed by the two MPEG version bits: 0 = 2.5, 1 = reserved, 2 = MPEG 2, 3 = MPEG 1.
SAMPLE_RATE_TABLE = (
    (11025, 12000, 8000, 0),
    (0, 0, 0, 0),
    (22050, 24000, 16000, 0),
    (44100, 48000, 32000, 0),
)

_MPEG_VERSIONS = {3: 1, 2: 2, 0: 2.5}


@dataclass(frozen=True)
class Mp3Header:
    """Information decoded from a 4-byte MPEG audio layer III frame header."""

    mpeg_version: float
    layer: int
    bitrate: int
    sample_rate: int
    padding: bool
    frame_size: int


def parse_synchsafe_int(data: bytes) -> int:
    """Decode a 4-byte synchsafe integer (7 significant bits per byte)."""
    if len(data) < 4:
        raise ValueError(
            f"byte slice too short for synchsafe int (expected 4, got {len(data)})"
        )
    value = 0
    for b in data[:4]:
        value = (value << 7) | (b & 0x7F)
    return value


def parse_mp3_header(data: bytes) -> Optional[Mp3Header]:
    """Parse a layer III frame header, or return None if it is not one."""
    if len(data) < 4:
        return None
    header = int.from_bytes(data[:4], "big")

    if header & 0xFFE00000 != 0xFFE00000:
        return None

    version_bits = (header >> 19) & 0x03
    mpeg_version = _MPEG_VERSIONS.get(version_bits)
    if mpeg_version is None:
        return None

    if (header >> 17) & 0x03 != 1:
        return None

    bitrate_index = (header >> 12) & 0x0F
    if bitrate_index in (0, 15):
        return None
    table = BITRATE_MPEG1_LAYER3 if mpeg_version == 1 else BITRATE_MPEG2_LAYER3
    bitrate = table[bitrate_index]

    sample_rate_index = (header >> 10) & 0x03
    if sample_rate_index == 3:
        return None
    sample_rate = SAMPLE_RATE_TABLE[version_bits][sample_rate_index]
    if sample_rate == 0:
        return None

    padding = bool((header >> 9) & 0x01)

    frame_size = (1152 * bitrate * 1000 // sample_rate) // 8
    if padding:
        frame_size += 1
    if frame_size <= 4:
        return None

    return Mp3Header(
        mpeg_version=mpeg_version,
        layer=3,
        bitrate=bitrate,
        sample_rate=sample_rate,
        padding=padding,
        frame_size=frame_size,
    )


def _skip_id3v2_tag(reader: Reader) -> int:
    head = reader.peek(ID3_HEADER_SIZE)
    if len(head) < ID3_HEADER_SIZE:
        raise FormatError("error processing initial ID3v2 tag: not enough data")
    if head[:3] != b"ID3":
        return 0
    total = ID3_HEADER_SIZE + parse_synchsafe_int(head[6:10])
    if reader.discard(total) < total:
        raise FormatError("error processing initial ID3v2 tag: tag is truncated")
    return total


def scan_mp3(reader: Reader) -> ScanResult:
    """Follow contiguous MP3 frames, after an optional ID3v2 tag, and return their size."""
    size = _skip_id3v2_tag(reader)
    frames = 0

    while True:
        try:
            raw = reader.read_full(4)
        except EOFError:
            break

        header = parse_mp3_header(raw)
        if header is None:
            break
        if not MIN_MP3_FRAME_SIZE <= header.frame_size <= MAX_MP3_FRAME_SIZE:
            raise FormatError("invalid mp3 frame size")

        body = header.frame_size - 4
        if reader.discard(body) < body:
            raise EOFError("MP3 frame extends beyond the available data")

        size += header.frame_size
        frames += 1

    if frames < MINIMUM_REQUIRED_FRAMES:
        raise FormatError(f"detected MP3 stream is too short (only {frames} frames)")
    return ScanResult(size=size)


FILE_HEADER = FileHeader(
    ext="mp3",
    description="MPEG Audio Layer III audio format",
    signatures=(
        b"\xff\xfa",
        b"\xff\xfb",
        b"\xff\xf2",
        b"\xff\xf3",
        b"\xff\xe2",
        b"\xff\xe3",
        b"ID3",
    ),
    scan_file=scan_mp3,
)