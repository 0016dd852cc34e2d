"""Preferences manager for agent-bwstoolkit.

Preferences live in ``$XDG_CONFIG_HOME/agent-bwstoolkit/preferences.json``
(``~/.config`` when XDG_CONFIG_HOME is unset). Paths are resolved on every
call so a changed HOME or XDG_CONFIG_HOME takes effect immediately.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

APP_DIR_NAME = "agent-bwstoolkit"
PREFERENCES_FILE_NAME = "preferences.json"


def config_dir() -> Path:
    """Directory holding config.yml and preferences.json."""
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".config"
    return base / APP_DIR_NAME


def preferences_file() -> Path:
    return config_dir() / PREFERENCES_FILE_NAME


def _load_preferences() -> Dict[str, Any]:
    """Load preferences, or an empty dict if the file is missing or unreadable."""
    path = preferences_file()
    if not path.exists():
        return {}

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read preferences file {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring preferences file {path}: expected a JSON object")
        return {}
    return data


def _save_preferences(preferences: Dict[str, Any]) -> None:
    path = preferences_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(preferences, f, indent=2)


def get_preference(key: str) -> Optional[str]:
    """Return the stored value for ``key``, or None."""
    return _load_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove ``key``; a missing key is not an error."""
    preferences = _load_preferences()
    if key not in preferences:
        logger.debug(f"Preference '{key}' not found, nothing to clear")
        return
    del preferences[key]
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' cleared")

