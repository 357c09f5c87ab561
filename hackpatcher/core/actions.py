"""Per-entry actions for directory batch runs.

Each action decides which files it wants (``filter``) and what to do with
one of them (``apply``). ``apply`` never raises for expected failures: the
error is written to the log sink and returned as ``Err`` so the batch can
carry on with the next file.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Generic, Iterable, Optional, Set, TypeVar, Union

from ..exceptions import BaseError
from ..patching.patcher import Patcher, PatchResult
from ..patching.target import derive_output_path
from ..utils.log_sink import LogSink
from ..utils.result import Err, Ok, Result
from .archives import extract_archive

logger = logging.getLogger(__name__)

T = TypeVar("T")
PathLike = Union[str, Path]


def _normalize_extensions(extensions: Iterable[str]) -> frozenset:
    return frozenset(
        (ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions
    )


class EntryAction(ABC, Generic[T]):
    """Strategy applied by the directory walker to each matching file."""

    name = "action"

    @abstractmethod
    def filter(self, path: Path) -> bool:
        """Return True if ``path`` should be handed to ``apply``."""

    @abstractmethod
    def process(self, path: Path, log: LogSink) -> T:
        """Handle one file; raise on failure."""

    def apply(self, path: Path, log: LogSink) -> Result[T]:
        try:
            return Ok(self.process(path, log), path=str(path))
        except (BaseError, OSError) as e:
            log.write_line(f"Hit an error but continuing: {e}")
            logger.warning("%s failed for %s: %s", self.name, path, e)
            return Err(e, path=str(path))


class PatchAction(EntryAction[PatchResult]):
    """Apply each discovered patch to a fresh copy of the base ROM."""

    name = "patch"

    def __init__(
        self,
        base_rom: PathLike,
        output_root: PathLike = "patched",
        walk_root: Optional[PathLike] = None,
        extensions: Iterable[str] = (".ips",),
        patcher: Optional[Patcher] = None,
    ):
        self.base_rom = Path(base_rom)
        self.output_root = Path(output_root)
        self.walk_root = Path(walk_root) if walk_root is not None else None
        self.extensions = _normalize_extensions(extensions)
        self.patcher = patcher or Patcher()
        self._claimed: Dict[Path, Path] = {}
        self._lock = threading.Lock()

    def filter(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def process(self, path: Path, log: LogSink) -> PatchResult:
        output_path = derive_output_path(path, self.base_rom, self.output_root, self.walk_root)
        with self._lock:
            previous = self._claimed.setdefault(output_path, path)
        if previous != path:
            log.write_line(f"Warning: {path} and {previous} both write {output_path}")
            logger.warning("%s overwrites the output of %s: %s", path, previous, output_path)
        log.write_line(f"Applying {path} to create {output_path}, in {path.parent}")
        return self.patcher.apply(self.base_rom, path, output_path, log)


class UnarchiveAction(EntryAction[Path]):
    """Unpack zip, rar and 7z archives next to themselves."""

    name = "unzip"

    def __init__(self, extensions: Iterable[str] = (".zip", ".rar", ".7z")):
        self.extensions = _normalize_extensions(extensions)

    def filter(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def process(self, path: Path, log: LogSink) -> Path:
        return extract_archive(path, log)


class ExtensionScanAction(EntryAction[Optional[str]]):
    """Collect the lowercase extensions of every file seen."""

    name = "filetypes"

    def __init__(self):
        self.extensions: Set[str] = set()
        self._lock = threading.Lock()

    def filter(self, path: Path) -> bool:
        return True

    def process(self, path: Path, log: LogSink) -> Optional[str]:
        suffix = path.suffix
        if not suffix:
            return None
        extension = suffix[1:].lower()
        with self._lock:
            self.extensions.add(extension)
        return extension
