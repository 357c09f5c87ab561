"""Tests for the IPS reader, writer and diff builder."""

import pytest

from hackpatcher.exceptions import MalformedPatchError
from hackpatcher.patching.ips import (
    EOF_OFFSET,
    Hunk,
    Patch,
    PatchFormat,
    create_ips_patch,
    detect_format,
    parse_ips,
    serialize_ips,
)


class TestParse:
    def test_normal_and_rle_records_in_order(self, build_ips):
        data = build_ips([(0x10, b"\xaa\xbb\xcc"), (0x20, 4, 0xFF), (0x05, b"\x01")])

        patch = parse_ips(data)

        assert patch.hunks == (
            Hunk(0x10, b"\xaa\xbb\xcc"),
            Hunk(0x20, b"\xff" * 4),
            Hunk(0x05, b"\x01"),
        )
        assert patch.truncation is None

    def test_truncation_after_footer(self, build_ips):
        patch = parse_ips(build_ips([(0, b"\x01")], truncation=60))
        assert patch.truncation == 60

    def test_empty_patch(self, build_ips):
        assert parse_ips(build_ips()) == Patch()

    def test_overlapping_hunks_are_kept_separately(self, build_ips):
        patch = Patch.parse(build_ips([(0, b"\x01\x01\x01"), (1, b"\x02")]))
        assert [h.offset for h in patch.hunks] == [0, 1]
        assert patch.hunks[0].end == 3

    def test_eof_bytes_at_record_boundary_end_the_patch(self):
        # "EOF" followed by three bytes is read as footer + truncation
        patch = parse_ips(b"PATCHEOF\x00\x01\xaa")
        assert patch.hunks == ()
        assert patch.truncation == 0x01AA

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"PATC",
            b"IPS\x00\x00",
            b"patchEOF",
        ],
    )
    def test_bad_header(self, data):
        with pytest.raises(MalformedPatchError) as exc_info:
            parse_ips(data)
        assert exc_info.value.error_code == "MALFORMED_PATCH"

    @pytest.mark.parametrize(
        "data",
        [
            b"PATCH\x00\x00",  # offset cut
            b"PATCH\x00\x00\x10\x00",  # size cut
            b"PATCH\x00\x00\x10\x00\x05\xaa\xbb",  # payload cut
            b"PATCH\x00\x00\x10\x00\x00\x00",  # RLE length cut
            b"PATCH\x00\x00\x10\x00\x00\x00\x04",  # RLE byte cut
            b"PATCH\x00\x00\x10\x00\x01\xaa",  # footer missing
        ],
    )
    def test_cut_short(self, data):
        with pytest.raises(MalformedPatchError):
            parse_ips(data)

    @pytest.mark.parametrize("trailer", [b"\x00", b"\x00\x01", b"\x00\x00\x00\x00"])
    def test_unexpected_bytes_after_footer(self, build_ips, trailer):
        with pytest.raises(MalformedPatchError, match="after IPS footer"):
            parse_ips(build_ips([(0, b"\x01")]) + trailer)

    def test_zero_length_rle_rejected(self, build_ips):
        with pytest.raises(MalformedPatchError, match="zero length"):
            parse_ips(build_ips([(0x10, 0, 0xFF)]))

    def test_error_reports_position(self):
        with pytest.raises(MalformedPatchError) as exc_info:
            parse_ips(b"PATCH\x00\x00\x10\x00\x05\xaa")
        assert exc_info.value.details["position"] == 10


class TestDetectFormat:
    @pytest.mark.parametrize(
        "header,expected",
        [
            (b"PATCH", PatchFormat.IPS),
            (b"BPS1\x00", PatchFormat.BPS),
            (b"UPS1\x00", PatchFormat.UPS),
            (b"\x00\x00\x00\x00\x00", PatchFormat.UNKNOWN),
            (b"", PatchFormat.UNKNOWN),
        ],
    )
    def test_magic(self, header, expected):
        assert detect_format(header) == expected


class TestSerialize:
    def test_layout(self, build_ips):
        patch = Patch(hunks=(Hunk(0x10, b"\xaa\xbb"),), truncation=0x40)
        assert serialize_ips(patch) == build_ips([(0x10, b"\xaa\xbb")], truncation=0x40)

    def test_repeated_bytes_become_rle(self, build_ips):
        patch = Patch(hunks=(Hunk(0x20, b"\xff" * 300),))
        assert patch.to_bytes() == build_ips([(0x20, 300, 0xFF)])

    def test_long_payload_is_split(self):
        payload = bytes(range(256)) * 300  # 76800 bytes, not a single run
        data = serialize_ips(Patch(hunks=(Hunk(0, payload),)))

        parsed = parse_ips(data)

        assert [h.offset for h in parsed.hunks] == [0, 0xFFFF]
        assert b"".join(h.payload for h in parsed.hunks) == payload

    @pytest.mark.parametrize(
        "patch",
        [
            Patch(hunks=(Hunk(0x1000000, b"\x01"),)),
            Patch(hunks=(Hunk(EOF_OFFSET, b"\x01"),)),
            Patch(hunks=(Hunk(0, b""),)),
            Patch(truncation=0x1000000),
        ],
    )
    def test_unencodable(self, patch):
        with pytest.raises(MalformedPatchError):
            serialize_ips(patch)


def _apply_in_memory(original: bytes, patch: Patch) -> bytes:
    data = bytearray(original)
    for hunk in patch.hunks:
        if hunk.end > len(data):
            data.extend(bytes(hunk.end - len(data)))
        data[hunk.offset:hunk.end] = hunk.payload
    if patch.truncation is not None:
        del data[patch.truncation:]
    return bytes(data)


class TestCreatePatch:
    def test_identical_inputs_give_empty_patch(self):
        assert create_ips_patch(b"abcdef", b"abcdef") == Patch()

    def test_short_equal_gap_is_absorbed(self):
        original = bytes(32)
        modified = bytearray(original)
        modified[4] = 1
        modified[8] = 2  # gap of 3 equal bytes
        modified[20] = 3  # gap of 11 equal bytes

        patch = create_ips_patch(original, bytes(modified))

        assert [(h.offset, len(h.payload)) for h in patch.hunks] == [(4, 5), (20, 1)]

    def test_growth_writes_every_new_byte(self):
        original = b"\x01\x02\x03"
        modified = b"\x01\x02\x03\x00\x00\x00\x00"

        patch = create_ips_patch(original, modified)

        assert patch.hunks == (Hunk(3, bytes(4)),)
        assert _apply_in_memory(original, patch) == modified

    def test_shrink_sets_truncation(self):
        original = bytes(range(50))
        modified = bytes(range(20)) + b"\xff"

        patch = create_ips_patch(original, modified)

        assert patch.truncation == 21
        assert _apply_in_memory(original, patch) == modified
