"""Tests for in-place patch application."""

import io
import shutil
from pathlib import Path

import pytest

from hackpatcher.exceptions import FileOperationError
from hackpatcher.patching.ips import Hunk, Patch
from hackpatcher.patching.patcher import apply_patch
from hackpatcher.utils.log_sink import LogSink


def _apply_to_copy(base: Path, dest: Path, patch: Patch) -> bytes:
    shutil.copyfile(base, dest)
    with open(dest, "r+b") as fh:
        apply_patch(patch, fh)
    return dest.read_bytes()


class FailingTarget(io.BytesIO):
    """BytesIO that fails on the n-th write."""

    def __init__(self, initial: bytes, fail_on: int):
        super().__init__(initial)
        self.writes = 0
        self.fail_on = fail_on

    def write(self, data):
        self.writes += 1
        if self.writes == self.fail_on:
            raise OSError(28, "No space left on device")
        return super().write(data)


def test_hunk_and_truncation_scenario(base_rom, tmp_path):
    patch = Patch(hunks=(Hunk(50, b"\xff" * 10),), truncation=60)

    result = _apply_to_copy(base_rom, tmp_path / "out.sfc", patch)

    assert len(result) == 60
    assert result[:50] == bytes(50)
    assert result[50:60] == b"\xff" * 10


def test_later_hunk_wins_on_overlap():
    target = io.BytesIO(bytes(8))
    patch = Patch(hunks=(Hunk(1, b"\xaa\xaa\xaa\xaa"), Hunk(3, b"\xbb\xbb")))

    assert apply_patch(patch, target) == 2
    assert target.getvalue() == b"\x00\xaa\xaa\xbb\xbb\x00\x00\x00"


def test_truncation_cuts_bytes_written_by_a_hunk(base_rom, tmp_path):
    patch = Patch(hunks=(Hunk(90, b"\x11" * 30),), truncation=95)

    result = _apply_to_copy(base_rom, tmp_path / "out.sfc", patch)

    assert len(result) == 95
    assert result[90:] == b"\x11" * 5


def test_hunk_past_end_zero_fills_gap(base_rom, tmp_path):
    patch = Patch(hunks=(Hunk(150, b"\x42\x43"),))

    result = _apply_to_copy(base_rom, tmp_path / "out.sfc", patch)

    assert len(result) == 152
    assert result[:150] == bytes(150)
    assert result[150:] == b"\x42\x43"


def test_truncation_beyond_end_zero_fills(tmp_path):
    base = tmp_path / "small.bin"
    base.write_bytes(b"\x01\x02\x03")

    result = _apply_to_copy(base, tmp_path / "out.bin", Patch(truncation=8))

    assert result == b"\x01\x02\x03" + bytes(5)


def test_reapplication_on_fresh_copies_is_identical(base_rom, tmp_path):
    patch = Patch(
        hunks=(Hunk(0, b"\x01\x02"), Hunk(99, b"\x03\x04\x05"), Hunk(1, b"\x09")),
        truncation=101,
    )

    first = _apply_to_copy(base_rom, tmp_path / "a.sfc", patch)
    second = _apply_to_copy(base_rom, tmp_path / "b.sfc", patch)

    assert first == second
    assert first[:2] == b"\x01\x09"


def test_write_failure_stops_remaining_hunks():
    target = FailingTarget(bytes(4), fail_on=2)
    patch = Patch(hunks=(Hunk(0, b"\x01"), Hunk(1, b"\x02"), Hunk(2, b"\x03")), truncation=1)

    with pytest.raises(FileOperationError) as exc_info:
        apply_patch(patch, target)

    assert exc_info.value.details["operation"] == "write"
    assert exc_info.value.details["hunks_applied"] == 1
    # first hunk stays applied, nothing after the failure, no truncation
    assert target.getvalue() == b"\x01\x00\x00\x00"


def test_logs_steps():
    stream = io.StringIO()
    apply_patch(Patch(hunks=(Hunk(0, b"\x01"),), truncation=1), io.BytesIO(bytes(4)), LogSink(stream))

    assert stream.getvalue().splitlines() == ["Applying hunks", "Truncating"]


class TruncateFailingTarget(io.BytesIO):
    def truncate(self, size=None):
        raise OSError(13, "Permission denied")


def test_truncate_failure_keeps_written_hunks():
    target = TruncateFailingTarget(bytes(4))
    patch = Patch(hunks=(Hunk(0, b"\x01\x02"),), truncation=2)

    with pytest.raises(FileOperationError) as exc_info:
        apply_patch(patch, target)

    assert exc_info.value.details["operation"] == "truncate"
    assert exc_info.value.details["length"] == 2
    assert target.getvalue() == b"\x01\x02\x00\x00"
