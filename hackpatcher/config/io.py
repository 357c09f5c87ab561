"""Config I/O utilities."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "hackpatcher.yaml"
CONFIG_ENV_VAR = "HACKPATCHER_CONFIG"
ENV_PREFIX = "HACKPATCHER_"


class PatcherConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    downloads_dir: str = "downloads"
    output_dir: str = "patched"
    log_dir: str = "logs"
    log_level: str = "INFO"
    log_json: bool = False
    max_workers: int = Field(default=1, ge=1)
    patch_extensions: Tuple[str, ...] = (".ips",)
    archive_extensions: Tuple[str, ...] = (".zip", ".rar", ".7z")

    @field_validator("patch_extensions", "archive_extensions", mode="before")
    @classmethod
    def _split_extensions(cls, value: Any) -> Any:
        # env values arrive as "ips, bps"
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("patch_extensions", "archive_extensions")
    @classmethod
    def _dot_prefix(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(ext if ext.startswith(".") else f".{ext}" for ext in value)


def get_config_path(config_path: Optional[Union[str, Path]] = None) -> Path:
    if config_path:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_NAME


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config: {e}", file_path=str(path)) from e
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config: {e}", file_path=str(path)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config root must be a mapping", file_path=str(path))
    return data


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for name in PatcherConfig.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            overrides[name] = raw
    return overrides


def load_config(config_path: Optional[Union[str, Path]] = None) -> PatcherConfig:
    """Load settings from YAML, then apply ``HACKPATCHER_<KEY>`` overrides.

    A missing file at the default location yields the defaults; an explicit
    path that does not exist is an error.

    Raises:
        ConfigurationError: unreadable file or invalid YAML
        ValidationError: a value has the wrong type or is out of range
    """
    path = get_config_path(config_path)
    explicit = bool(config_path) or bool(os.environ.get(CONFIG_ENV_VAR, "").strip())

    data: Dict[str, Any] = {}
    if path.exists():
        data = _read_yaml(path)
    elif explicit:
        raise ConfigurationError("Config file not found", file_path=str(path))

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in PatcherConfig.model_fields:
            logger.warning("Ignoring unknown config key: %s", key)
            continue
        values[key] = value
    values.update(_env_overrides())

    try:
        return PatcherConfig(**values)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field_name = ".".join(str(part) for part in first["loc"])
        raise ValidationError(
            f"Invalid value for {field_name}: {first['msg']}",
            field_name=field_name,
            expected_type=first["type"],
            details={"errors": e.error_count()},
        ) from e


def save_config(config: PatcherConfig, config_path: Optional[Union[str, Path]] = None) -> Path:
    path = get_config_path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(config.model_dump(mode="json"), fh, sort_keys=False)
    return path
