"""IPS Patcher.

Applies parsed patches to a writable file in place and drives the
copy-then-patch flow for a single patch file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..exceptions import FileOperationError, MalformedPatchError
from ..utils.log_sink import LogSink, log_line
from .ips import Patch, PatchFormat, detect_format, parse_ips
from .target import prepare_target

logger = logging.getLogger(__name__)


@dataclass
class PatchResult:
    """Result of a patch operation."""

    success: bool
    output_path: Optional[str] = None
    original_size: int = 0
    patched_size: int = 0
    format_used: PatchFormat = PatchFormat.UNKNOWN
    hunks_applied: int = 0
    truncated: bool = False
    error: Optional[str] = None


def apply_patch(patch: Patch, target: BinaryIO, log: Optional[LogSink] = None) -> int:
    """Apply ``patch`` to an open, seekable, writable ``target``.

    Hunks are written in order, so overlapping hunks resolve to the later
    payload. Truncation runs after every hunk; a length beyond the current
    end zero-fills the extension.

    Returns:
        Number of hunks applied

    Raises:
        FileOperationError: a seek, write or truncate failed; the target is
            left with whatever hunks were already written
    """
    name = getattr(target, "name", None)
    file_path = str(name) if name is not None else None

    log_line(log, "Applying hunks")
    applied = 0
    for hunk in patch.hunks:
        try:
            target.seek(hunk.offset)
            target.write(hunk.payload)
        except OSError as e:
            raise FileOperationError(
                f"Writing hunk {applied} at offset {hunk.offset:#x} failed: {e}",
                file_path=file_path,
                operation="write",
                details={"offset": hunk.offset, "hunks_applied": applied},
            ) from e
        applied += 1

    if patch.truncation is not None:
        log_line(log, "Truncating")
        try:
            target.flush()
            target.truncate(patch.truncation)
        except OSError as e:
            raise FileOperationError(
                f"Truncating to {patch.truncation} bytes failed: {e}",
                file_path=file_path,
                operation="truncate",
                details={"length": patch.truncation},
            ) from e

    return applied


class Patcher:
    """Copy-then-patch driver for a single IPS file."""

    def read_patch(self, patch_path: Union[str, Path], log: Optional[LogSink] = None) -> Patch:
        """Read and parse a patch file.

        Raises:
            FileOperationError: the patch cannot be read
            MalformedPatchError: unsupported format or invalid IPS data
        """
        log_line(log, f"Reading patch file {patch_path}")
        try:
            contents = Path(patch_path).read_bytes()
        except OSError as e:
            raise FileOperationError(
                f"Cannot read patch {patch_path}: {e}", file_path=str(patch_path), operation="read"
            ) from e

        patch_format = detect_format(contents[:5])
        if patch_format != PatchFormat.IPS:
            raise MalformedPatchError(
                f"Unsupported patch format {patch_format.name}: {patch_path}",
                source_path=str(patch_path),
            )

        try:
            return parse_ips(contents)
        except MalformedPatchError as e:
            e.details.setdefault("source_path", str(patch_path))
            raise

    def apply(
        self,
        rom_path: Union[str, Path],
        patch_path: Union[str, Path],
        output_path: Union[str, Path],
        log: Optional[LogSink] = None,
    ) -> PatchResult:
        """Copy ``rom_path`` to ``output_path`` and apply ``patch_path`` to the copy.

        The copy is made before the patch is parsed, so a malformed patch
        leaves an unmodified copy of the base ROM behind.

        Raises:
            FileOperationError: copy, permission, open, read, write or
                truncate failure
            MalformedPatchError: the patch cannot be parsed
        """
        target = prepare_target(rom_path, output_path, log)
        original_size = target.stat().st_size

        log_line(log, f"Opening {target} to apply patch")
        try:
            handle = open(target, "r+b")
        except OSError as e:
            raise FileOperationError(
                f"Cannot open {target}: {e}", file_path=str(target), operation="open"
            ) from e

        with handle:
            patch = self.read_patch(patch_path, log)
            applied = apply_patch(patch, handle, log)

        patched_size = target.stat().st_size
        logger.info(
            "Patched %s -> %s (%d hunks, %d -> %d bytes)",
            patch_path, target, applied, original_size, patched_size,
        )
        return PatchResult(
            success=True,
            output_path=str(target),
            original_size=original_size,
            patched_size=patched_size,
            format_used=PatchFormat.IPS,
            hunks_applied=applied,
            truncated=patch.truncation is not None,
        )


# Convenience function
def apply_ips_patch(
    rom_path: Union[str, Path],
    patch_path: Union[str, Path],
    output_path: Union[str, Path],
) -> PatchResult:
    """Apply an IPS patch to a fresh copy of a ROM."""
    return Patcher().apply(rom_path, patch_path, output_path)
