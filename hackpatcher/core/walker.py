"""Directory walker that feeds matching files to an EntryAction."""

from __future__ import annotations

import concurrent.futures
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Union

from ..exceptions import ScannerError
from ..utils.result import Err, Ok, Result
from ..utils.log_sink import LogSink
from .actions import EntryAction

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """Outcome of one walk."""

    action: str
    results: List[Result[Any]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if isinstance(r, Ok))

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if isinstance(r, Err))

    @property
    def failed_paths(self) -> List[str]:
        return [str(r.path) for r in self.results if isinstance(r, Err)]


def iter_candidates(start_dir: Path, action: EntryAction, log: LogSink) -> List[Path]:
    """List files under ``start_dir`` accepted by ``action``, in sorted walk order."""

    def _on_error(error: OSError) -> None:
        log.write_line(f"Skipping directory due to error: {error}")
        logger.warning("Skipping directory due to error: %s", error)

    candidates: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(start_dir, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if action.filter(path):
                candidates.append(path)
    return candidates


def process_directory(
    action: EntryAction,
    start_dir: Union[str, Path],
    log: LogSink,
    max_workers: int = 1,
) -> BatchSummary:
    """Apply ``action`` to every matching file below ``start_dir``.

    Per-file failures are logged and recorded; they never stop the walk.
    With ``max_workers`` above 1 the files are processed on a thread pool;
    results keep the walk order either way.

    Raises:
        ScannerError: ``start_dir`` does not exist or is not a directory
    """
    root = Path(start_dir)
    if not root.is_dir():
        raise ScannerError(
            f"Start directory does not exist: {root}", file_path=str(root), scanner_name=action.name
        )

    candidates = iter_candidates(root, action, log)
    logger.info("%s: %d candidate files under %s", action.name, len(candidates), root)

    summary = BatchSummary(action=action.name)
    if max_workers > 1 and len(candidates) > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            summary.results.extend(executor.map(lambda p: action.apply(p, log), candidates))
    else:
        for path in candidates:
            summary.results.append(action.apply(path, log))

    log.flush()
    logger.info(
        "%s finished: %d processed, %d succeeded, %d failed",
        action.name, summary.processed, summary.succeeded, summary.failed,
    )
    return summary
