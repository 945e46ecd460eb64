"""
Persistent Settings Manager

Description: Manages persistent settings for the board scraper across runs
Author: Eric Hiss (GitHub: EricRollei)
Contact: eric@historic.camera, eric@rollei.us
License: Dual License (Non-Commercial and Commercial Use)
Copyright (c) 2025 Eric Hiss. All rights reserved.
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, Any, Dict, Union

logger = logging.getLogger("pinboard_scraper")

SCRAPER_SECTION = "scraper"
DOWNLOADS_SECTION = "downloads"

SETTINGS_ENV_VAR = "PINBOARD_SCRAPER_SETTINGS"
DEFAULT_SETTINGS_FILE = Path.home() / ".pinboard_scraper" / "settings.json"


def default_settings() -> Dict[str, Dict[str, Any]]:
    return {
        SCRAPER_SECTION: {
            "max_pages": 10,
            "budget_seconds": 150,
            "use_browser": True,
            "headless": True,
        },
        DOWNLOADS_SECTION: {
            "output_dir": "",
        },
    }


class PersistentSettings:
    """
    Manages persistent scraper settings.
    Settings are stored in a JSON file, one object per section.
    """

    def __init__(self, settings_file: Union[str, Path, None] = None):
        if settings_file is None:
            settings_file = os.environ.get(SETTINGS_ENV_VAR) or DEFAULT_SETTINGS_FILE
        self._settings_file = Path(settings_file)
        self._settings = self._load_settings()
        logger.debug("PersistentSettings initialized from: %s", self._settings_file)

    @property
    def settings_file(self) -> Path:
        return self._settings_file

    def _load_settings(self) -> Dict[str, Any]:
        """Load settings from the JSON file, creating it with defaults when missing."""
        defaults = default_settings()

        try:
            if self._settings_file.exists():
                with open(self._settings_file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    raise ValueError("settings root must be an object")
                # Merge with defaults to ensure all keys exist
                for section, values in defaults.items():
                    current = loaded.setdefault(section, {})
                    for key, value in values.items():
                        current.setdefault(key, value)
                return loaded

            self._settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._settings_file, 'w', encoding='utf-8') as f:
                json.dump(defaults, f, indent=4)
            return defaults
        except (OSError, ValueError) as e:
            logger.warning("Error loading persistent settings from %s: %s", self._settings_file, e)
            return defaults

    def _save_settings(self) -> bool:
        try:
            self._settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._settings_file, 'w', encoding='utf-8') as f:
                json.dump(self._settings, f, indent=4)
            return True
        except OSError as e:
            logger.error("Error saving persistent settings: %s", e)
            return False

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            section: Settings section ('scraper', 'downloads')
            key: The setting key to retrieve
            default: Returned when the key is missing or empty

        Returns:
            The setting value or default
        """
        value = self._settings.get(section, {}).get(key)
        return default if value is None or value == "" else value

    def set(self, section: str, key: str, value: Any) -> bool:
        """
        Set a setting value and write the file.

        Empty strings and None never overwrite a stored value.

        Returns:
            True if successful, False otherwise
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return True
        if isinstance(value, str):
            value = value.strip()
        self._settings.setdefault(section, {})[key] = value
        return self._save_settings()

    def get_all(self, section: str) -> Dict[str, Any]:
        return dict(self._settings.get(section, {}))

    def reload(self) -> None:
        """Reload settings from file (useful if file was edited externally)."""
        self._settings = self._load_settings()


# Global instance for easy access
_settings_manager: Optional[PersistentSettings] = None


def get_settings_manager(settings_file: Union[str, Path, None] = None) -> PersistentSettings:
    """
    Get the global settings manager instance.

    Passing a path replaces the global instance with one bound to that file.
    """
    global _settings_manager
    if settings_file is not None:
        _settings_manager = PersistentSettings(settings_file)
    elif _settings_manager is None:
        _settings_manager = PersistentSettings()
    return _settings_manager


def get_persistent_setting(section: str, key: str, default: Any = None) -> Any:
    return get_settings_manager().get(section, key, default)


def set_persistent_setting(section: str, key: str, value: Any) -> bool:
    return get_settings_manager().set(section, key, value)
