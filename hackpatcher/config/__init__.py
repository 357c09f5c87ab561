"""hackpatcher - Configuration Package."""

from .io import PatcherConfig, get_config_path, load_config, save_config

__all__ = ["PatcherConfig", "get_config_path", "load_config", "save_config"]
