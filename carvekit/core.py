"""Shared types for file-format scanners."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Tuple

if TYPE_CHECKING:
    from carvekit.reader import Reader


class FormatError(Exception):
    """Raised when data does not hold a valid file of the expected format."""


@dataclass
class ScanResult:
    """Outcome of a successful scan: the carved size and optional naming hints."""

    size: int = 0
    ext: str = ""
    name: str = ""


@dataclass(frozen=True)
class FileHeader:
    """Describes a file format: its extension, signatures and scan function."""

    ext: str
    description: str
    signatures: Tuple[bytes, ...]
    scan_file: Callable[["Reader"], ScanResult] = field(compare=False)

    def __post_init__(self) -> None:
        sigs: Iterable[bytes] = self.signatures
        object.__setattr__(self, "signatures", tuple(bytes(s) for s in sigs))

    def scan(self, reader: "Reader") -> ScanResult:
        """Scan a candidate file from the reader's current position."""
        return self.scan_file(reader)