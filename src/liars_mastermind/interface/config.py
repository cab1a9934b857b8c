"""
User configuration persistence.

Stores settings like the history file location in a JSON file next to the
game data.
"""

import json
import logging
from pathlib import Path
from typing import TypedDict

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path("data")
CONFIG_FILENAME = ".mastermind_config.json"
HISTORY_FILENAME = "mastermind_history.txt"


class Config(TypedDict, total=False):
    """User configuration."""
    history_file: str | None  # None means <data_dir>/mastermind_history.txt
    background_scoring: bool  # Score guesses on a worker thread
    show_banner: bool  # Show the title banner on startup


DEFAULT_CONFIG: Config = {
    "history_file": None,
    "background_scoring": True,
    "show_banner": True,
}


def get_config_path(data_dir: Path | str = DEFAULT_DATA_DIR) -> Path:
    """Get path to config file."""
    return Path(data_dir) / CONFIG_FILENAME


def get_history_path(config: Config, data_dir: Path | str = DEFAULT_DATA_DIR) -> Path:
    """History file from config, falling back to the data directory."""
    configured = config.get("history_file")
    if configured:
        return Path(configured)
    return Path(data_dir) / HISTORY_FILENAME


def load_config(data_dir: Path | str = DEFAULT_DATA_DIR) -> Config:
    """Load config from file, or return defaults if not found."""
    path = get_config_path(data_dir)

    if not path.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return DEFAULT_CONFIG.copy()

    if not isinstance(saved, dict):
        logger.warning("Ignoring config %s: expected a JSON object", path)
        return DEFAULT_CONFIG.copy()

    # Merge with defaults to handle missing keys
    config = DEFAULT_CONFIG.copy()
    config.update({k: v for k, v in saved.items() if k in DEFAULT_CONFIG})
    return config


def save_config(config: Config, data_dir: Path | str = DEFAULT_DATA_DIR) -> bool:
    """Save config to file. Returns True on success."""
    path = get_config_path(data_dir)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except OSError as e:
        logger.error("Could not save config to %s: %s", path, e)
        return False


def update_config(updates: Config, data_dir: Path | str = DEFAULT_DATA_DIR) -> bool:
    """Merge preferences into the saved config."""
    config = load_config(data_dir)
    config.update({k: v for k, v in updates.items() if k in DEFAULT_CONFIG})
    return save_config(config, data_dir)
