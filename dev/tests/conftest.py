from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Iterable, Optional, Tuple

import pytest

# Ensure repo root on path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _record(offset: int, payload: bytes) -> bytes:
    return offset.to_bytes(3, "big") + len(payload).to_bytes(2, "big") + payload


def _rle_record(offset: int, length: int, fill: int) -> bytes:
    return offset.to_bytes(3, "big") + b"\x00\x00" + length.to_bytes(2, "big") + bytes([fill])


@pytest.fixture
def build_ips() -> Callable[..., bytes]:
    """Return a helper that assembles IPS bytes by hand.

    ``records`` holds ``(offset, payload)`` for normal records and
    ``(offset, length, fill)`` for RLE records.
    """

    def _build(records: Iterable[Tuple] = (), truncation: Optional[int] = None) -> bytes:
        out = b"PATCH"
        for rec in records:
            out += _record(*rec) if len(rec) == 2 else _rle_record(*rec)
        out += b"EOF"
        if truncation is not None:
            out += truncation.to_bytes(3, "big")
        return out

    return _build


@pytest.fixture
def base_rom(tmp_path: Path) -> Path:
    """100 zero bytes with an .sfc extension."""
    rom = tmp_path / "game.sfc"
    rom.write_bytes(bytes(100))
    return rom
