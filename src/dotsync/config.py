"""User configuration for dotsync."""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import typer

# Constants
DOTSYNC_DIR_NAME = ".dotsync"
CONFIG_FILENAME = "config.json"

# Default configuration
DEFAULT_CONFIG: Dict[str, Any] = {
    "manifest_filename": "dotsync.json",
    "answers_filename": ".dotsync-answers.json",
    "backup_dir_name": "backups",
    "lock_filename": ".dotsync.lock",
    "timestamp_format": "%Y%m%d_%H%M%S",
    "ignore_patterns": [
        ".DS_Store",  # macOS system files
        ".gitkeep",  # placeholders for empty template folders
        "*.swp",  # editor swap files
        "*.rej",  # rejected hunks
    ],
    "commit": {
        "author_name": "dotsync",
        "author_email": "dotsync@localhost",
    },
}


# ============================================================================
# PATH MANAGEMENT
# ============================================================================


def get_home_dir() -> Path:
    """Get the home directory, respecting environment variables for testing."""
    if "HOME" in os.environ:
        return Path(os.environ["HOME"])
    return Path.home()


def get_config_file(home_dir: Optional[Path] = None) -> Path:
    if home_dir is None:
        home_dir = get_home_dir()
    return home_dir / DOTSYNC_DIR_NAME / CONFIG_FILENAME


# ============================================================================
# CONFIGURATION MANAGEMENT
# ============================================================================


def load_config(home_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from config file, or return default if not exists."""
    config_file = get_config_file(home_dir)
    merged_config = copy.deepcopy(DEFAULT_CONFIG)
    if not config_file.exists():
        return merged_config

    try:
        with open(config_file, "r") as f:
            config = json.load(f)
        if not isinstance(config, dict):
            raise ValueError("top level must be an object")
    except (json.JSONDecodeError, ValueError) as e:
        typer.secho(
            f"Warning: Error reading config file: {e}. Using defaults.",
            fg=typer.colors.YELLOW,
            err=True,
        )
        return merged_config

    # Nested dictionaries are merged one level deep
    for key, value in config.items():
        if isinstance(value, dict) and isinstance(merged_config.get(key), dict):
            merged_config[key].update(value)
        else:
            merged_config[key] = value
    return merged_config


def save_config(config: Dict[str, Any], home_dir: Optional[Path] = None) -> None:
    """Save configuration to config file."""
    config_file = get_config_file(home_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        json.dump(config, f, indent=2)


def get_config_value(
    key_path: str, home_dir: Optional[Path] = None, quiet: bool = False
) -> Any:
    """Get a configuration value by key path (e.g., 'commit.author_name')."""
    value: Any = load_config(home_dir)

    try:
        for key in key_path.split("."):
            value = value[key]
        return value
    except (KeyError, TypeError):
        if not quiet:
            typer.secho(
                f"Error: Configuration key '{key_path}' not found.",
                fg=typer.colors.RED,
                err=True,
            )
        return None


def set_config_value(
    key_path: str, value: str, home_dir: Optional[Path] = None, quiet: bool = False
) -> bool:
    """Set a configuration value by key path."""
    config = load_config(home_dir)
    keys = key_path.split(".")

    # Navigate to the parent of the final key
    current = config
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    try:
        if value.startswith("[") or value.startswith("{"):
            current[keys[-1]] = json.loads(value)
        elif value.lower() in ("true", "false"):
            current[keys[-1]] = value.lower() == "true"
        else:
            current[keys[-1]] = value
    except json.JSONDecodeError:
        if not quiet:
            typer.secho(
                f"Error: Invalid JSON value: {value}", fg=typer.colors.RED, err=True
            )
        return False

    save_config(config, home_dir)
    if not quiet:
        typer.secho(f"✓ Set {key_path} = {current[keys[-1]]}", fg=typer.colors.GREEN)
    return True


def reset_config(home_dir: Optional[Path] = None, quiet: bool = False) -> bool:
    """Reset configuration to defaults."""
    save_config(copy.deepcopy(DEFAULT_CONFIG), home_dir)
    if not quiet:
        typer.secho("✓ Configuration reset to defaults", fg=typer.colors.GREEN)
    return True
