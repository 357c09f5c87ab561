"""Archive extraction for downloaded hack bundles.

Each archive unpacks into a sibling directory named after its stem:
``hacks/0001-foo/bundle.zip`` -> ``hacks/0001-foo/bundle/``.
"""

from __future__ import annotations

import logging
import stat
import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import py7zr
import rarfile
from py7zr.exceptions import ArchiveError, Bad7zFile

from ..exceptions import ArchiveExtractionError
from ..security.security_utils import validate_archive_members
from ..utils.log_sink import LogSink, log_line

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def unpack_dir_for(archive_path: PathLike) -> Path:
    path = Path(archive_path)
    return path.parent / path.stem


def _is_zip_symlink(info: zipfile.ZipInfo) -> bool:
    return stat.S_IFMT(info.external_attr >> 16) == stat.S_IFLNK


def extract_zip(archive_path: PathLike, dest_dir: PathLike, log: Optional[LogSink] = None) -> int:
    """Safely extract a ZIP file, preventing zip-slip path traversal."""
    log_line(log, f"Zip file: {archive_path}")
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()
            validate_archive_members(
                archive_path, dest_dir, ((m.filename, _is_zip_symlink(m)) for m in members)
            )
            log_line(log, f"creating unpack directory: {dest_dir}")
            Path(dest_dir).mkdir(parents=True, exist_ok=True)
            files = [m for m in members if not m.is_dir()]
            for member in files:
                log_line(log, f"Creating: {Path(dest_dir) / member.filename}")
            zf.extractall(dest_dir, members=files)
    except zipfile.BadZipFile as e:
        raise ArchiveExtractionError(f"Bad zip file {archive_path}: {e}", source_path=str(archive_path)) from e
    return len(files)


def extract_7z(archive_path: PathLike, dest_dir: PathLike, log: Optional[LogSink] = None) -> int:
    """Extract a 7z archive with py7zr."""
    log_line(log, f"7z file: {archive_path}")
    try:
        with py7zr.SevenZipFile(archive_path, mode="r") as archive:
            infos = archive.list()
            validate_archive_members(archive_path, dest_dir, ((i.filename, False) for i in infos))
            log_line(log, f"Creating: {dest_dir}")
            Path(dest_dir).mkdir(parents=True, exist_ok=True)
            archive.extractall(path=dest_dir)
    except (Bad7zFile, ArchiveError) as e:
        raise ArchiveExtractionError(f"Bad 7z file {archive_path}: {e}", source_path=str(archive_path)) from e
    return sum(1 for i in infos if not i.is_directory)


def extract_rar(archive_path: PathLike, dest_dir: PathLike, log: Optional[LogSink] = None) -> int:
    """Extract a RAR archive with rarfile (needs an unrar backend installed)."""
    log_line(log, f"Rar file: {archive_path}")
    try:
        with rarfile.RarFile(archive_path) as rf:
            infos = rf.infolist()
            validate_archive_members(archive_path, dest_dir, ((i.filename, i.is_symlink()) for i in infos))
            Path(dest_dir).mkdir(parents=True, exist_ok=True)
            files = [i for i in infos if not i.is_dir()]
            for info in files:
                log_line(log, f"Creating: {Path(dest_dir) / info.filename}")
            rf.extractall(path=dest_dir, members=files)
    except rarfile.Error as e:
        raise ArchiveExtractionError(f"Bad rar file {archive_path}: {e}", source_path=str(archive_path)) from e
    return len(files)


EXTRACTORS: Dict[str, Callable[[PathLike, PathLike, Optional[LogSink]], int]] = {
    ".zip": extract_zip,
    ".7z": extract_7z,
    ".rar": extract_rar,
}


def extract_archive(archive_path: PathLike, log: Optional[LogSink] = None) -> Path:
    """Unpack ``archive_path`` next to itself and return the unpack directory.

    Raises:
        ArchiveExtractionError: unknown extension or a corrupt archive
        PathTraversalError: a member would escape the unpack directory
    """
    path = Path(archive_path)
    extractor = EXTRACTORS.get(path.suffix.lower())
    if extractor is None:
        raise ArchiveExtractionError(f"Not a supported archive: {path}", source_path=str(path))

    dest_dir = unpack_dir_for(path)
    count = extractor(path, dest_dir, log)
    logger.info("Extracted %d files from %s into %s", count, path, dest_dir)
    return dest_dir
