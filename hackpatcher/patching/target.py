"""Output path derivation and fresh target copies for patching."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path, PurePath
from typing import Optional, Union

from ..exceptions import FileOperationError, PathResolutionError
from ..utils.log_sink import LogSink, log_line

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _mirrored_dir(patch_dir: PurePath, walk_root: Optional[PathLike]) -> PurePath:
    if walk_root is None:
        if patch_dir.is_absolute():
            return patch_dir.relative_to(patch_dir.anchor)
        return patch_dir
    try:
        return patch_dir.relative_to(Path(walk_root))
    except ValueError as e:
        raise PathResolutionError(
            f"Patch directory {patch_dir} is not inside {walk_root}",
            path=str(patch_dir),
        ) from e


def derive_output_path(
    patch_path: PathLike,
    base_rom: PathLike,
    output_root: PathLike,
    walk_root: Optional[PathLike] = None,
) -> Path:
    """Build ``<output_root>/<mirrored dir>/<patch stem><base ext>``.

    Args:
        patch_path: Discovered patch file
        base_rom: Base ROM whose extension the output takes
        output_root: Root of the mirrored output tree
        walk_root: Directory the patch was discovered under; when None the
            patch's directory is mirrored as given

    Raises:
        PathResolutionError: base ROM without extension, patch path without
            a file name, or patch outside ``walk_root``
    """
    base = PurePath(base_rom)
    extension = base.suffix
    if not extension:
        raise PathResolutionError(
            f"Base ROM has no file extension: {base_rom}", path=str(base_rom)
        )

    patch = PurePath(patch_path)
    if not patch.name:
        raise PathResolutionError(f"Patch path has no file name: {patch_path}", path=str(patch_path))

    relative_dir = _mirrored_dir(patch.parent, walk_root)
    return Path(output_root) / relative_dir / f"{patch.stem}{extension}"


def ensure_writable(path: PathLike) -> None:
    """Clear the read-only state of ``path`` for its owner."""
    mode = os.stat(path).st_mode
    if not mode & stat.S_IWUSR:
        os.chmod(path, stat.S_IMODE(mode) | stat.S_IWUSR)


def prepare_target(
    base_rom: PathLike,
    output_path: PathLike,
    log: Optional[LogSink] = None,
) -> Path:
    """Create a fresh writable copy of ``base_rom`` at ``output_path``.

    Parent directories are created as needed and any previous output is
    overwritten.

    Raises:
        FileOperationError: base ROM missing, or the copy or permission
            change failed
    """
    source = Path(base_rom)
    target = Path(output_path)

    if not source.is_file():
        raise FileOperationError(
            f"Base ROM does not exist: {source}", file_path=str(source), operation="copy"
        )

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileOperationError(
            f"Cannot create output directory {target.parent}: {e}",
            file_path=str(target.parent),
            operation="mkdir",
        ) from e

    log_line(log, f"Copying {source} to {target}")
    try:
        if target.exists():
            ensure_writable(target)
        shutil.copy(source, target)
    except OSError as e:
        raise FileOperationError(
            f"Copy of {source} to {target} failed: {e}", file_path=str(target), operation="copy"
        ) from e

    log_line(log, f"Setting permissions on {target}")
    try:
        ensure_writable(target)
    except OSError as e:
        raise FileOperationError(
            f"Cannot make {target} writable: {e}", file_path=str(target), operation="chmod"
        ) from e

    logger.debug("Prepared target %s from %s", target, source)
    return target
