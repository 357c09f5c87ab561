"""IPS (International Patching System) reader and writer.

IPS Format:
- Header: "PATCH" (5 bytes)
- Records: [offset(3) + size(2) + data(size)] or [offset(3) + 0x0000 + RLE_size(2) + RLE_byte(1)]
- Footer: "EOF" (3 bytes)
- Optional truncation: final file length (3 bytes)

All integers are big-endian.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Tuple

from ..exceptions import MalformedPatchError


IPS_MAGIC = b"PATCH"
IPS_FOOTER = b"EOF"
BPS_MAGIC = b"BPS1"
UPS_MAGIC = b"UPS1"

MAX_OFFSET = 0xFFFFFF
MAX_RECORD_SIZE = 0xFFFF
# Offset whose encoding collides with the footer
EOF_OFFSET = int.from_bytes(IPS_FOOTER, "big")

# Equal bytes shorter than this are absorbed into the surrounding hunk
_MIN_GAP = 6


class PatchFormat(Enum):
    """Patch formats recognized by their magic bytes."""

    IPS = auto()  # International Patching System
    BPS = auto()  # Beat Patching System
    UPS = auto()  # Universal Patching System
    UNKNOWN = auto()


def detect_format(header: bytes) -> PatchFormat:
    """Detect patch format from the leading bytes of a patch."""
    if header[:5] == IPS_MAGIC:
        return PatchFormat.IPS
    if header[:4] == BPS_MAGIC:
        return PatchFormat.BPS
    if header[:4] == UPS_MAGIC:
        return PatchFormat.UPS
    return PatchFormat.UNKNOWN


@dataclass(frozen=True)
class Hunk:
    """A single offset + payload edit."""

    offset: int
    payload: bytes

    @property
    def end(self) -> int:
        return self.offset + len(self.payload)


@dataclass(frozen=True)
class Patch:
    """Parsed patch: hunks in file order plus an optional final length."""

    hunks: Tuple[Hunk, ...] = ()
    truncation: Optional[int] = None

    @classmethod
    def parse(cls, buffer: bytes) -> "Patch":
        return parse_ips(buffer)

    def to_bytes(self) -> bytes:
        return serialize_ips(self)


class _Reader:
    def __init__(self, buffer: bytes):
        self.buffer = buffer
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self.buffer) - self.pos

    def take(self, size: int, what: str) -> bytes:
        if self.remaining < size:
            raise MalformedPatchError(
                f"Patch ends inside {what}: needed {size} bytes, {self.remaining} left",
                position=self.pos,
            )
        chunk = self.buffer[self.pos : self.pos + size]
        self.pos += size
        return chunk

    def take_int(self, size: int, what: str) -> int:
        return int.from_bytes(self.take(size, what), "big")


def parse_ips(buffer: bytes) -> Patch:
    """Parse an IPS patch buffer.

    Args:
        buffer: Raw patch bytes

    Returns:
        Patch with hunks in the order they appear

    Raises:
        MalformedPatchError: bad header, record cut short, empty RLE run,
            missing footer or unexpected data after the footer
    """
    data = bytes(buffer)
    if data[:5] != IPS_MAGIC:
        raise MalformedPatchError("Invalid IPS header", position=0)

    reader = _Reader(data)
    reader.pos = len(IPS_MAGIC)
    hunks: List[Hunk] = []

    while True:
        if reader.remaining < 3:
            raise MalformedPatchError("Missing IPS EOF footer", position=reader.pos)
        if data[reader.pos : reader.pos + 3] == IPS_FOOTER:
            reader.pos += 3
            break

        record_start = reader.pos
        offset = reader.take_int(3, "record offset")
        size = reader.take_int(2, "record size")

        if size == 0:
            run_length = reader.take_int(2, "RLE run length")
            if run_length == 0:
                raise MalformedPatchError("RLE record with zero length", position=record_start)
            fill = reader.take(1, "RLE fill byte")
            payload = fill * run_length
        else:
            payload = reader.take(size, "record payload")

        hunks.append(Hunk(offset=offset, payload=payload))

    truncation = None
    if reader.remaining == 3:
        truncation = reader.take_int(3, "truncation length")
    elif reader.remaining:
        raise MalformedPatchError(
            f"Unexpected {reader.remaining} bytes after IPS footer",
            position=reader.pos,
        )

    return Patch(hunks=tuple(hunks), truncation=truncation)


def serialize_ips(patch: Patch) -> bytes:
    """Encode a Patch as IPS.

    Payloads longer than 0xFFFF bytes are split into consecutive records.
    Runs of a single repeated byte are emitted as RLE records.
    """
    out = bytearray(IPS_MAGIC)

    for hunk in patch.hunks:
        if not hunk.payload:
            raise MalformedPatchError(f"Empty payload at offset {hunk.offset:#x}")
        for start in range(0, len(hunk.payload), MAX_RECORD_SIZE):
            chunk = hunk.payload[start : start + MAX_RECORD_SIZE]
            offset = hunk.offset + start
            if offset > MAX_OFFSET:
                raise MalformedPatchError(f"Offset {offset:#x} exceeds IPS 24-bit limit")
            if offset == EOF_OFFSET:
                raise MalformedPatchError(f"Offset {offset:#x} collides with the IPS footer")
            out += offset.to_bytes(3, "big")
            if len(chunk) > 3 and chunk.count(chunk[0]) == len(chunk):
                out += b"\x00\x00"
                out += len(chunk).to_bytes(2, "big")
                out += chunk[:1]
            else:
                out += len(chunk).to_bytes(2, "big")
                out += chunk

    out += IPS_FOOTER
    if patch.truncation is not None:
        if not 0 <= patch.truncation <= MAX_OFFSET:
            raise MalformedPatchError(f"Truncation {patch.truncation} exceeds IPS 24-bit limit")
        out += patch.truncation.to_bytes(3, "big")
    return bytes(out)


def create_ips_patch(original: bytes, modified: bytes) -> Patch:
    """Create a Patch turning ``original`` into ``modified``.

    Bytes past the end of ``original`` are always written so the patched
    file reaches the full length. A shorter ``modified`` yields a
    truncation to its length.
    """
    size = max(len(original), len(modified))
    if size > MAX_OFFSET:
        raise MalformedPatchError(f"File size {size} exceeds IPS 24-bit limit")

    def differs(i: int) -> bool:
        return i >= len(original) or original[i] != modified[i]

    hunks: List[Hunk] = []
    i = 0
    while i < len(modified):
        # Find start of difference
        while i < len(modified) and not differs(i):
            i += 1
        if i >= len(modified):
            break

        start = i
        while i < len(modified) and i - start < MAX_RECORD_SIZE:
            if not differs(i):
                gap = 0
                j = i
                while j < len(modified) and gap < _MIN_GAP and not differs(j):
                    gap += 1
                    j += 1
                if gap >= _MIN_GAP or j >= len(modified):
                    break
                i = j
                continue
            i += 1

        end = min(i, start + MAX_RECORD_SIZE)
        if start == EOF_OFFSET:
            # Shift one byte back so the record does not read as the footer
            start -= 1
        hunks.append(Hunk(offset=start, payload=bytes(modified[start:end])))
        i = end

    truncation = len(modified) if len(modified) < len(original) else None
    return Patch(hunks=tuple(hunks), truncation=truncation)
