"""Patch handling.

Features:
- IPS reader/writer and patch diffing
- In-place patch application on a fresh copy of a base ROM
- Output path derivation for batch runs
"""

from .ips import (
    Hunk,
    Patch,
    PatchFormat,
    create_ips_patch,
    detect_format,
    parse_ips,
    serialize_ips,
)
from .patcher import (
    Patcher,
    PatchResult,
    apply_ips_patch,
    apply_patch,
)
from .target import (
    derive_output_path,
    ensure_writable,
    prepare_target,
)

__all__ = [
    # Format
    "Hunk",
    "Patch",
    "PatchFormat",
    "create_ips_patch",
    "detect_format",
    "parse_ips",
    "serialize_ips",
    # Engine
    "Patcher",
    "PatchResult",
    "apply_ips_patch",
    "apply_patch",
    # Targets
    "derive_output_path",
    "ensure_writable",
    "prepare_target",
]
