"""Version utilities for hackpatcher."""

from __future__ import annotations

from importlib import metadata


def load_version() -> str:
    try:
        return metadata.version("hackpatcher")
    except metadata.PackageNotFoundError:
        return "0.1.0"
