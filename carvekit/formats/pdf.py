"""PDF scanner: carves from the header to the last end-of-file marker."""

from __future__ import annotations

from carvekit.core import FileHeader, FormatError, ScanResult
from carvekit.reader import Reader
from carvekit.search import seek_at

PDF_HEADER = b"%PDF-"
EOF_MARKER = b"%%EOF"
PDF_MAX_FILE_SIZE = 16 * 1024 * 1024


def scan_pdf(reader: Reader) -> ScanResult:
    """Return the size up to and including the last ``%%EOF`` marker."""
    if reader.read_full(len(PDF_HEADER)) != PDF_HEADER:
        raise FormatError("invalid pdf file")

    size = 0
    while seek_at(reader, EOF_MARKER, PDF_MAX_FILE_SIZE):
        if reader.discard(len(EOF_MARKER)) < len(EOF_MARKER):
            raise EOFError("end-of-file marker lies beyond the read limit")
        size = reader.bytes_read()

    if size == 0:
        raise FormatError("invalid pdf file")
    return ScanResult(size=size)


FILE_HEADER = FileHeader(
    ext="pdf",
    description="Portable Document Format",
    signatures=(PDF_HEADER,),
    scan_file=scan_pdf,
)