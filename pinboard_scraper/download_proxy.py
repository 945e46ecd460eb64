"""
Download Proxy

Description: Retrying fetch proxy and concurrent pin image downloader
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
This code depends on several third-party libraries, each with its own license.
See CREDITS.md for a comprehensive list of dependencies and their licenses.

Third-party code:
- Uses Requests (Apache 2.0): https://github.com/psf/requests
- Uses Pillow (HPND): https://python-pillow.org/
"""

import asyncio
import logging
import os
import random
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Dict, Iterable, List, Optional

import requests
from PIL import Image, UnidentifiedImageError

from .models import Item, SizeTag

logger = logging.getLogger("pinboard_scraper")

PRIMARY_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
ALTERNATE_USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
]

DEFAULT_REFERER = "https://www.pinterest.com/"

# Blocked or throttled: worth one retry with a different browser identity
BLOCKED_STATUSES = (403, 429)

UA_SWITCH_DELAY = (0.25, 0.75)


@dataclass
class FetchResult:
    url: str
    ok: bool
    status: Optional[int] = None
    content: bytes = b""
    content_type: str = ""
    attempts: int = 0
    retries: int = 0
    delays: List[float] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class RetryingFetchProxy:
    """
    Fetches a URL on behalf of a caller that cannot reach the source itself.

    A first 403/429 is retried once with an alternate user agent after a short
    jittered delay. Every other failure (transport error, non-2xx status, empty
    or rejected body) is retried with exponential backoff up to ``max_retries``.
    """

    def __init__(self, session: Optional[requests.Session] = None, max_retries: int = 3,
                 backoff_base: float = 1.0, timeout: float = 30.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.timeout = timeout
        self._sleep = sleep

    def _headers(self, user_agent: str, referer: Optional[str], extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {
            "User-Agent": user_agent,
            "Referer": referer or DEFAULT_REFERER,
            "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
        }
        if extra:
            headers.update(extra)
        return headers

    def fetch(self, url: str, referer: Optional[str] = None,
              headers: Optional[Dict[str, str]] = None,
              validate: Optional[Callable[[bytes, str], Optional[str]]] = None) -> FetchResult:
        """
        Fetch ``url`` with retries.

        ``validate(content, content_type)`` may return an error message for a
        2xx body that is still unusable; that counts as a failed attempt.
        """
        result = FetchResult(url=url, ok=False)
        user_agent = PRIMARY_USER_AGENT
        switched_agent = False
        backoff_step = 0

        while True:
            result.attempts += 1
            status = None
            try:
                response = self.session.get(url, headers=self._headers(user_agent, referer, headers),
                                            timeout=self.timeout)
                status = response.status_code
                if 200 <= status < 300:
                    content = response.content or b""
                    content_type = response.headers.get("content-type", "").lower()
                    problem = "Empty response body" if not content else None
                    if problem is None and validate is not None:
                        problem = validate(content, content_type)
                    if problem is None:
                        result.ok = True
                        result.status = status
                        result.content = content
                        result.content_type = content_type
                        result.error = None
                        return result
                    result.error = problem
                else:
                    result.error = f"HTTP error {status}"
            except requests.RequestException as e:
                result.error = str(e)
            result.status = status

            if result.retries >= self.max_retries:
                break
            if status in BLOCKED_STATUSES and not switched_agent:
                switched_agent = True
                user_agent = random.choice(ALTERNATE_USER_AGENTS)
                delay = random.uniform(*UA_SWITCH_DELAY)
            else:
                delay = self.backoff_base * (2 ** backoff_step)
                backoff_step += 1

            result.retries += 1
            result.delays.append(delay)
            logger.debug("Retry %d for %s in %.2fs (%s)", result.retries, url, delay, result.error)
            self._sleep(delay)

        logger.warning("Giving up on %s after %d attempt(s): %s", url, result.attempts, result.error)
        return result


@dataclass
class DownloadResult:
    item_id: str
    url: Optional[str]
    ok: bool
    content: bytes = b""
    content_type: str = ""
    retries: int = 0
    error: Optional[str] = None


class DownloadReport:
    """Order-independent accumulator for one batch of downloads."""

    def __init__(self):
        self.results: Dict[str, DownloadResult] = {}

    def add(self, result: DownloadResult) -> None:
        self.results[result.item_id] = result

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results.values() if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results.values() if not r.ok)

    def content_for(self, item_id: str) -> Optional[bytes]:
        result = self.results.get(item_id)
        return result.content if result and result.ok else None

    def save_to(self, directory: str, items: Iterable[Item]) -> List[str]:
        """Write successful downloads as ``NNN_pinterest_<id>.jpg``, numbered in item order."""
        os.makedirs(directory, exist_ok=True)
        paths = []
        for index, item in enumerate(items, start=1):
            content = self.content_for(item.id)
            if content is None:
                continue
            path = os.path.join(directory, f"{index:03d}_pinterest_{item.id}.jpg")
            with open(path, "wb") as f:
                f.write(content)
            paths.append(path)
        logger.info("Saved %d file(s) to %s", len(paths), directory)
        return paths

    def to_dict(self) -> Dict[str, object]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failures": {r.item_id: r.error for r in self.results.values() if not r.ok},
        }


def looks_like_image(content: bytes) -> bool:
    try:
        with Image.open(BytesIO(content)) as img:
            img.verify()
        return True
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return False


def image_problem(content: bytes, content_type: str) -> Optional[str]:
    """Error message for a body that is neither typed nor decodable as an image, else None."""
    if content_type.startswith("image/") or looks_like_image(content):
        return None
    return f"Content is not an image ({content_type or 'unknown type'})"


class ImageDownloader:
    """Downloads one size variant per item, concurrently, one task per item."""

    def __init__(self, proxy: Optional[RetryingFetchProxy] = None, max_workers: int = 8):
        self.proxy = proxy or RetryingFetchProxy()
        self.max_workers = max_workers

    def download(self, item: Item, size: SizeTag = SizeTag.LARGE) -> DownloadResult:
        """Never raises: any error becomes a failed result for this one item."""
        url = item.url_for(size) or item.thumbnail
        if not url:
            return DownloadResult(item_id=item.id, url=None, ok=False, error="No URL for requested size")

        try:
            fetched = self.proxy.fetch(url, validate=image_problem)
        except Exception as e:
            logger.error("Unexpected error downloading pin %s: %s", item.id, e)
            return DownloadResult(item_id=item.id, url=url, ok=False, error=f"{type(e).__name__}: {e}")

        if not fetched.ok:
            return DownloadResult(item_id=item.id, url=url, ok=False, retries=fetched.retries, error=fetched.error)
        return DownloadResult(item_id=item.id, url=url, ok=True, content=fetched.content,
                              content_type=fetched.content_type, retries=fetched.retries)

    async def download_all(self, items: Iterable[Item], size: SizeTag = SizeTag.LARGE) -> DownloadReport:
        items = list(items)
        report = DownloadReport()
        if not items:
            return report

        logger.info("Downloading %d pin(s) at size %s using %d workers", len(items), size.value, self.max_workers)
        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            tasks = [loop.run_in_executor(executor, self.download, item, size) for item in items]
            for future in asyncio.as_completed(tasks):
                result = await future
                report.add(result)
                if not result.ok:
                    logger.info("Download failed for pin %s: %s", result.item_id, result.error)

        logger.info("Downloads complete: %d succeeded, %d failed", report.succeeded, report.failed)
        return report
