"""
Scrape Config

Description: Tunable limits of one board scrape, with persisted overrides
Author: Eric Hiss (GitHub: EricRollei)
Contact: eric@historic.camera, eric@rollei.us
License: Dual License (Non-Commercial and Commercial Use)
Copyright (c) 2025 Eric Hiss. All rights reserved.

Dual License:
1. Non-Commercial Use: This software is licensed under the terms of the
   Creative Commons Attribution-NonCommercial 4.0 International License.
   To view a copy of this license, visit http://creativecommons.org/licenses/by-nc/4.0/

2. Commercial Use: For commercial use, a separate license is required.
   Please contact Eric Hiss at eric@historic.camera or eric@rollei.us for licensing options.
"""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .models import SizeTag
from .utils.persistent_settings import SCRAPER_SECTION, PersistentSettings, get_settings_manager

logger = logging.getLogger("pinboard_scraper")


@dataclass
class ScrapeConfig:
    # Static feed pagination
    max_pages: int = 10
    page_size: int = 25

    # In-browser pagination
    browser_page_size: int = 250
    browser_max_pages: int = 30
    section_max_pages: int = 20

    # Scrolling
    max_scrolls: int = 120
    scroll_wait_ms: int = 700
    height_recheck_ms: int = 1200

    detail_fetch_cap: int = 300

    # Heuristic extraction
    heuristic_candidate_cap: int = 250
    occurrence_threshold: int = 100
    min_embedded_items: int = 20

    budget_seconds: float = 150.0
    use_browser: bool = True
    headless: bool = True
    request_timeout: float = 30.0

    # Downloads
    download_retries: int = 3
    download_size: str = SizeTag.LARGE.value
    download_workers: int = 8

    @classmethod
    def from_settings(cls, settings: Optional[PersistentSettings] = None, **overrides) -> "ScrapeConfig":
        """Defaults, then persisted values, then explicit overrides (``None`` overrides are ignored)."""
        settings = settings or get_settings_manager()
        values: Dict[str, Any] = {}
        names = {f.name: f for f in fields(cls)}
        for key, value in settings.get_all(SCRAPER_SECTION).items():
            if key in names:
                values[key] = value
            else:
                logger.debug("Ignoring unknown scraper setting: %s", key)
        values.update({k: v for k, v in overrides.items() if v is not None and k in names})
        return cls(**values)

    @property
    def download_size_tag(self) -> SizeTag:
        try:
            return SizeTag(self.download_size)
        except ValueError:
            logger.warning("Unknown download size '%s', using large", self.download_size)
            return SizeTag.LARGE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
