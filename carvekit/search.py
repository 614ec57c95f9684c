"""Forward search for a byte signature through a Reader."""

from __future__ import annotations

from carvekit.reader import Reader


def seek_at(reader: Reader, sig: bytes, limit: int) -> bool:
    """Advance the reader to the start of the next occurrence of sig.

    Searches window by window for at most about ``limit`` bytes. Returns True
    when found, leaving the reader positioned at the signature, else False.
    """
    if not sig:
        raise ValueError("signature must not be empty")
    pad = len(sig) - 1
    window = reader.buffer_size()
    tail = b""
    scanned = 0
    while scanned < limit:
        chunk = reader.peek(window)
        haystack = tail + chunk
        if chunk:
            idx = haystack.find(sig)
            if idx >= 0:
                delta = idx - len(tail)
                if delta < 0:
                    reader.unread(-delta)
                elif delta > 0 and reader.discard(delta) < delta:
                    raise EOFError("signature lies beyond the read limit")
                return True
        if len(chunk) < window:
            return False
        scanned += len(chunk)
        tail = haystack[len(haystack) - pad:]
        if reader.discard(len(chunk)) < len(chunk):
            return False
    return False