"""Configuration management system"""

import copy
from pathlib import Path
from typing import Any, Optional
import yaml


DEFAULT_CONFIG = {
    "app": {
        "name": "rigexport",
        "version": "0.1.0",
        "log_level": "INFO",
        "log_file": "rigexport",
        "log_dir": "logs",
    },
    "hierarchy": {
        "fixup_mode": "none",
        "terrain_mode": False,
        "root_name": "RootTransform",
        "name_length": 15,
    },
    "motion": {
        "start_frame": 0,
        "end_frame": 0,
        "frame_rate": 30,
        "clear_invisible_data": True,
        "continuity_unwrap": True,
        "identity_tolerance": 0.00005,
    },
    "export": {
        "output_dir": "./output",
        "hierarchy_name": "skeleton",
        "animation_name": "animation",
        "indent": 2,
    },
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Centralized configuration manager with dot-notation access.

    Values from ``config.yaml`` are layered over ``DEFAULT_CONFIG``, so a
    missing file or a partial file still yields a complete configuration.
    """

    _instance: Optional["Config"] = None
    _config: dict = {}

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized and config_path is None:
            return

        if config_path is None:
            config_path = self._find_config()

        self._load(config_path)
        self._initialized = True

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the shared instance so the next ``Config()`` reloads."""
        cls._instance = None

    def _find_config(self) -> Optional[str]:
        """Find config.yaml in the working directory or above the package."""
        cwd_config = Path.cwd() / "config.yaml"
        if cwd_config.exists():
            return str(cwd_config)

        current = Path(__file__).parent
        for _ in range(5):
            config_file = current / "config.yaml"
            if config_file.exists():
                return str(config_file)
            current = current.parent

        return None

    def _load(self, config_path: Optional[str]) -> None:
        """Load configuration from YAML file over the defaults."""
        loaded = {}
        if config_path is not None:
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
        self._config = _merge(DEFAULT_CONFIG, loaded)
        self._config_path = config_path

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load(self._config_path)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value using dot notation.

        Example:
            config.get("motion.frame_rate", 30)
            config.get("hierarchy.fixup_mode")
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set config value using dot notation (runtime only, not persisted)."""
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self, path: Optional[str] = None) -> None:
        """Save current configuration to file."""
        save_path = path or self._config_path
        if save_path is None:
            raise ValueError("No path to save configuration to")
        with open(save_path, "w") as f:
            yaml.dump(self._config, f, default_flow_style=False)

    @property
    def app(self) -> dict:
        return self._config.get("app", {})

    @property
    def hierarchy(self) -> dict:
        return self._config.get("hierarchy", {})

    @property
    def motion(self) -> dict:
        return self._config.get("motion", {})

    @property
    def export(self) -> dict:
        return self._config.get("export", {})

    @property
    def path(self) -> Optional[str]:
        return self._config_path

    def __repr__(self) -> str:
        return f"Config({self._config_path})"
