#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
Logging setup for hackpatcher.

- Level-dependent plain formatter for console and file output
- Optional structured JSON output (argument or HACKPATCHER_LOG_JSON=1)
- Rotating application log under the log directory
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "hackpatcher"

# =====================================================================================================
# Formatters
# =====================================================================================================

class FastFormatter(logging.Formatter):
    """Formatter that picks a layout by level."""

    _FORMATS = {
        logging.ERROR: "[{asctime}] ERROR   [{name}] {message}",
        logging.WARNING: "[{asctime}] WARNING [{name}] {message}",
        logging.INFO: "[{asctime}] INFO    {message}",
        logging.DEBUG: "[{asctime}] DEBUG   {name}:{lineno} - {message}",
    }

    def __init__(self):
        super().__init__()
        self._formatters = {
            level: logging.Formatter(fmt, style="{", datefmt="%H:%M:%S")
            for level, fmt in self._FORMATS.items()
        }

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelno if record.levelno in self._formatters else logging.INFO
        if record.levelno >= logging.ERROR:
            level = logging.ERROR
        return self._formatters[level].format(record)


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter (optional)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "thread": record.threadName,
            "process": record.process,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

# =====================================================================================================
# Main Setup Function
# =====================================================================================================

def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    enable_file_logging: bool = True,
    enable_console_logging: bool = True,
    max_log_size: str = "10MB",
    backup_count: int = 3,
    structured_json: Optional[bool] = None,
) -> Dict[str, Any]:
    """Configure the root logger with console and rotating file handlers.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    log_dir_path = Path(log_dir) if log_dir else Path("logs")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    use_json = structured_json if structured_json is not None else _env_bool("HACKPATCHER_LOG_JSON")
    handlers = {}

    if enable_console_logging:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(console_handler)
        handlers["console"] = console_handler

    if enable_file_logging:
        log_dir_path.mkdir(parents=True, exist_ok=True)
        main_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "hackpatcher.log"),
            maxBytes=_parse_size_string(max_log_size),
            backupCount=backup_count,
            encoding="utf-8",
        )
        main_handler.setLevel(numeric_level)
        main_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(main_handler)
        handlers["main_file"] = main_handler

    get_logger("logging").debug(
        "Logging initialized (level=%s, file=%s, json=%s)", log_level, enable_file_logging, use_json
    )
    return {"handlers": handlers, "log_dir": log_dir_path}

# =====================================================================================================
# Utility functions
# =====================================================================================================

def _parse_size_string(size_str: str) -> int:
    """Parse size string into bytes."""
    size_str = size_str.upper().strip()

    multipliers = {
        'KB': 1024,
        'MB': 1024 ** 2,
        'GB': 1024 ** 3,
        'B': 1,
    }

    for suffix, multiplier in multipliers.items():
        if size_str.endswith(suffix):
            try:
                return int(float(size_str[:-len(suffix)].strip()) * multiplier)
            except ValueError:
                continue

    try:
        return int(float(size_str))
    except ValueError:
        return 10 * 1024 * 1024


@lru_cache(maxsize=32)
def get_logger(name: str) -> logging.Logger:
    """Get cached logger instance."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def cleanup_logging() -> None:
    """Close and detach all root handlers."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    get_logger.cache_clear()
