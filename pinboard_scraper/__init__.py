"""
Pinboard Scraper

Description: Extracts every pin of a public Pinterest board, at every resolution, by
    reconciling the embedded page data, the internal board feed and an optional
    headless-browser session.

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

Dependencies:
This package uses the following third-party libraries:
- Requests (Apache 2.0): https://github.com/psf/requests
- Playwright (Apache 2.0, optional at runtime): https://github.com/microsoft/playwright-python
- Pillow (HPND): https://python-pillow.org/
See CREDITS.md for complete list of dependencies and their licenses.
"""

from .config import ScrapeConfig
from .errors import (
    AutomationUnavailableError,
    BoardUnreachableError,
    InvalidBoardUrlError,
    MalformedSourceError,
    NetworkFailureError,
    ScraperError,
)
from .models import CandidateSet, CollectionInfo, Item, ScrapeResult, SizeTag, Tier
from .scraper import BoardScraper, scrape_board

__version__ = "1.0.0"

__all__ = [
    'AutomationUnavailableError',
    'BoardScraper',
    'BoardUnreachableError',
    'CandidateSet',
    'CollectionInfo',
    'InvalidBoardUrlError',
    'Item',
    'MalformedSourceError',
    'NetworkFailureError',
    'ScrapeConfig',
    'ScrapeResult',
    'ScraperError',
    'SizeTag',
    'Tier',
    'scrape_board',
]
