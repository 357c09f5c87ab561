#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""hackpatcher - Archive member validation.

Checks archive member names before extraction so that nothing is written
outside the directory an archive unpacks into.
"""

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Iterable, Union

from ..exceptions import PathTraversalError

logger = logging.getLogger(__name__)


def is_safe_archive_member(member_name: str, is_symlink: bool = False) -> bool:
    """Check for safe archive members (no traversal, no abs paths, no symlinks)."""
    if is_symlink:
        return False
    if not member_name:
        return False
    if "\x00" in member_name:
        return False
    if member_name.startswith(('/', '\\')):
        return False
    if re.match(r"^[a-zA-Z]:", member_name):
        return False
    try:
        parts = PurePosixPath(member_name.replace("\\", "/")).parts
    except Exception:
        return False
    return ".." not in parts


def is_within_directory(root: Union[str, Path], candidate: Union[str, Path]) -> bool:
    """Return True if ``candidate`` resolves to ``root`` or a path below it."""
    root_path = Path(root).resolve()
    try:
        Path(candidate).resolve().relative_to(root_path)
        return True
    except ValueError:
        return False


def validate_archive_members(
    archive_path: Union[str, Path],
    dest_dir: Union[str, Path],
    members: Iterable[tuple],
) -> None:
    """Validate ``(name, is_symlink)`` pairs against ``dest_dir``.

    Raises:
        PathTraversalError: the first member that is unsafe or would land
            outside ``dest_dir``
    """
    dest_root = Path(dest_dir)
    for name, is_symlink in members:
        if not is_safe_archive_member(name, is_symlink=is_symlink) or not is_within_directory(
            dest_root, dest_root / name
        ):
            logger.warning("Unsafe archive member blocked in %s: %r", archive_path, name)
            raise PathTraversalError(
                f"Unsafe archive member blocked: {name}",
                path=str(archive_path),
                details={"member": name},
            )
