"""
Utils Package

Settings persistence shared by the scraper library and its CLI.
"""

from .persistent_settings import (
    DOWNLOADS_SECTION,
    SCRAPER_SECTION,
    PersistentSettings,
    get_settings_manager,
    get_persistent_setting,
    set_persistent_setting
)

__all__ = [
    'DOWNLOADS_SECTION',
    'SCRAPER_SECTION',
    'PersistentSettings',
    'get_settings_manager',
    'get_persistent_setting',
    'set_persistent_setting'
]
