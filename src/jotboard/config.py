"""
Configuration management for Jotboard.

Uses XDG base directories:
- Config: ~/.config/jotboard/config.toml
- Data: ~/jotboard/ (the note database)
"""

import logging
from pathlib import Path
from typing import Any, TextIO
import os

# XDG defaults
DEFAULT_CONFIG_HOME = Path.home() / ".config"
DEFAULT_DATA_HOME = Path.home() / "jotboard"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_config_dir() -> Path:
    """Get the config directory (XDG_CONFIG_HOME/jotboard)."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", DEFAULT_CONFIG_HOME))
    return base / "jotboard"


def get_jotboard_home() -> Path:
    """Get the jotboard data directory (~/jotboard or JOTBOARD_HOME)."""
    if env_home := os.environ.get("JOTBOARD_HOME"):
        return Path(env_home)
    return DEFAULT_DATA_HOME


def get_config_path() -> Path:
    """Get the path to config.toml."""
    return get_config_dir() / "config.toml"


def get_db_path() -> Path:
    """Get the path to jotboard.db."""
    return get_jotboard_home() / "jotboard.db"


def ensure_dirs() -> None:
    """Ensure all required directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_jotboard_home().mkdir(parents=True, exist_ok=True)


def load_config() -> dict[str, Any]:
    """
    Load configuration from config.toml.

    Values from the file are merged over the defaults, so a partial
    config only needs the keys it changes.
    """
    config = get_default_config()
    config_path = get_config_path()

    if not config_path.exists():
        return config

    # Lazy import tomli only when needed
    import tomli

    with open(config_path, "rb") as f:
        user_config = tomli.load(f)

    return merge_config(config, user_config)


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> dict[str, Any]:
    """Return default configuration."""
    return {
        "jotboard": {
            "home": str(get_jotboard_home()),
        },
        "store": {
            "backend": "sqlite",  # or "http"
            "base_url": "http://localhost:3001",
            "timeout": 10.0,
        },
        "view": {
            "sort_by": "custom",
            "sort_order": "desc",
            "show_done": False,
        },
        "logging": {
            "level": "WARNING",
        },
    }


def setup_logging(config: dict[str, Any] | None = None, stream: TextIO | None = None) -> None:
    """Configure root logging from config (JOTBOARD_LOG_LEVEL wins)."""
    config = config or load_config()
    level_name = (
        os.environ.get("JOTBOARD_LOG_LEVEL")
        or config.get("logging", {}).get("level", "WARNING")
    )
    level = getattr(logging, str(level_name).upper(), logging.WARNING)

    logging.basicConfig(format=LOG_FORMAT, level=level, stream=stream)
