"""
User configuration loaded from YAML.

The file is looked up at $ARTA_CONFIG, then ~/.config/arta/config.yaml.  A
missing file means defaults.  Command-line flags override what is loaded.

Example config.yaml:

    dry_run: false
    output: json
    life_interval: 2.5
    max_delete_files: 50
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ARTA_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/arta/config.yaml")
OUTPUT_MODES = ("human", "json")


@dataclass
class ArtaConfig:
    dry_run: bool = False
    allow_actions: bool = False
    allow_life_actions: bool = False
    output: str = "human"
    verbose: bool = False
    life_interval: float = 1.0
    max_nesting_depth: int = 10
    max_delete_files: int = 100
    max_kill_processes: int = 10

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtaConfig":
        """
        Build a config from a mapping, checking keys and value types.

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        known = {f.name: f for f in fields(cls)}
        defaults = cls()
        values = {}
        for key, value in data.items():
            if key not in known:
                raise ConfigError(f"Unknown configuration key: {key}")
            expected = type(getattr(defaults, key))
            if expected is float and isinstance(value, int) and not isinstance(value, bool):
                value = float(value)
            # bool is an int subclass; reject it for numeric keys
            if not isinstance(value, expected) or (expected is not bool and isinstance(value, bool)):
                raise ConfigError(
                    f"Configuration key '{key}' must be {expected.__name__}, "
                    f"got {type(value).__name__}"
                )
            values[key] = value
        config = cls(**values)
        if config.output not in OUTPUT_MODES:
            raise ConfigError(f"Configuration key 'output' must be one of {', '.join(OUTPUT_MODES)}")
        if config.life_interval <= 0:
            raise ConfigError("Configuration key 'life_interval' must be positive")
        return config


def config_path() -> Path:
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def load_config(path: Optional[Path] = None) -> ArtaConfig:
    """
    Load configuration, falling back to defaults when no file exists.

    An explicitly given path must exist.

    Raises:
        ConfigError: If the file is unreadable, malformed or invalid
    """
    explicit = path is not None
    path = Path(path).expanduser() if explicit else config_path()
    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return ArtaConfig()

    try:
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed config file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.debug("loaded config from %s", path)
    return ArtaConfig.from_dict(data)
