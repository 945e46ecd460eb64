"""
Document Fetcher

Description: Fetches the board document with browser-like headers
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

import asyncio
import logging
from typing import Optional

from .download_proxy import RetryingFetchProxy
from .errors import NetworkFailureError

logger = logging.getLogger("pinboard_scraper")

DOCUMENT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}


class DocumentFetcher:
    """Static GET of the board page through the retrying proxy."""

    def __init__(self, proxy: Optional[RetryingFetchProxy] = None):
        self.proxy = proxy or RetryingFetchProxy()

    def fetch(self, url: str) -> str:
        result = self.proxy.fetch(url, referer="https://www.pinterest.com/", headers=DOCUMENT_HEADERS)
        if not result.ok:
            raise NetworkFailureError(f"Failed to fetch {url}: {result.error}", url=url, status=result.status)
        logger.info("Fetched %s (%d chars, %d retries)", url, len(result.content), result.retries)
        return result.text

    async def fetch_async(self, url: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.fetch, url)
