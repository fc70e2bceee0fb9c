"""Configuration management for itermcat.

Stores configuration in the user configuration directory reported by click
(e.g. ~/.config/itermcat/config.json on Linux). Set ITERMCAT_CONFIG_DIR to
use a different directory.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import click


def config_dir() -> Path:
    """Directory holding config.json."""
    override = os.environ.get("ITERMCAT_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(click.get_app_dir("itermcat"))


def config_file() -> Path:
    return config_dir() / "config.json"


# Default configuration values
DEFAULTS: dict[str, Any] = {
    "print_filename": False,  # Print the filename or URL after each image
    "legacy": False,  # Send the whole image in a single control sequence
    "width": "",  # Default width: N, Npx, N% or auto. Empty lets the terminal decide
    "height": "",  # Default height, same syntax as width
    "preserve_aspect_ratio": None,  # None (terminal default), True or False
    "codec": "auto",  # Base64 codec: "auto", "library" or "external"
    "url_timeout": 30.0,  # Seconds to wait when fetching remote images
    "debug_log_file": str(Path(tempfile.gettempdir()) / "itermcat-debug.log"),
}


def _ensure_config_dir() -> None:
    """Create config directory if it doesn't exist."""
    config_dir().mkdir(parents=True, exist_ok=True)


def _load_config() -> dict[str, Any]:
    """Load configuration from disk, returning defaults if file doesn't exist."""
    path = config_file()
    if not path.exists():
        return DEFAULTS.copy()

    try:
        with open(path, "r") as f:
            stored = json.load(f)
    except (json.JSONDecodeError, IOError):
        return DEFAULTS.copy()

    if not isinstance(stored, dict):
        return DEFAULTS.copy()

    # Merge with defaults to ensure all keys exist
    result = DEFAULTS.copy()
    result.update(stored)
    try:
        result["url_timeout"] = float(result["url_timeout"])
    except (TypeError, ValueError):
        result["url_timeout"] = DEFAULTS["url_timeout"]
    return result


def _save_config(config: dict[str, Any]) -> None:
    """Save configuration to disk."""
    _ensure_config_dir()
    with open(config_file(), "w") as f:
        json.dump(config, f, indent=2)


def get_config() -> dict[str, Any]:
    """Get current configuration."""
    return _load_config()


def get_config_value(key: str) -> Any:
    """Get a single configuration value."""
    config = _load_config()
    return config.get(key, DEFAULTS.get(key))


def set_config_value(key: str, value: Any) -> dict[str, Any]:
    """Set a single configuration value and return updated config."""
    if key not in DEFAULTS:
        raise ValueError(f"Unknown configuration key: {key}")

    config = _load_config()
    config[key] = value
    _save_config(config)
    return config


def update_config(updates: dict[str, Any]) -> dict[str, Any]:
    """Update multiple configuration values and return updated config."""
    for key in updates:
        if key not in DEFAULTS:
            raise ValueError(f"Unknown configuration key: {key}")

    config = _load_config()
    config.update(updates)
    _save_config(config)
    return config


def reset_config() -> dict[str, Any]:
    """Reset configuration to defaults."""
    _save_config(DEFAULTS.copy())
    return DEFAULTS.copy()
