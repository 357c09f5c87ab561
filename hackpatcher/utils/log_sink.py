"""Per-run text log written by batch actions."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, TextIO, Union


class LogSink:
    """Append-only, line-oriented text stream.

    Lines are also forwarded to ``mirror`` at DEBUG level so they show up in
    the application log when debug logging is enabled.
    """

    def __init__(self, stream: TextIO, mirror: Optional[logging.Logger] = None):
        self._stream = stream
        self._mirror = mirror
        self._lock = threading.Lock()

    def write_line(self, message: str) -> None:
        with self._lock:
            self._stream.write(message + "\n")
        if self._mirror is not None:
            self._mirror.debug(message)

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()

    def close(self) -> None:
        with self._lock:
            self._stream.close()

    def __enter__(self) -> "LogSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_log(path: Union[str, Path], mirror: Optional[logging.Logger] = None) -> LogSink:
    """Open a fresh log file, replacing any previous run's contents."""
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return LogSink(open(log_path, "w", encoding="utf-8"), mirror=mirror)


def log_line(log: Optional[LogSink], message: str) -> None:
    if log is not None:
        log.write_line(message)
