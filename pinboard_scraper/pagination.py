"""
Pagination

Description: Continuation-token pagination against the internal board feed resource
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
"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import requests

from .board_metadata import BoardMetadataResolver
from .models import CandidateSet, CollectionInfo, Item, Tier
from .pin_records import bookmark_from_response, items_from_records, results_from_response
from .pin_urls import board_source_path
from .scrape_context import ItemAccumulator, ScrapeContext
from .extractors.base_extractor import BaseExtractor

logger = logging.getLogger("pinboard_scraper")

PINTEREST_ORIGIN = "https://www.pinterest.com"
RESOURCE_URL = PINTEREST_ORIGIN + "/resource/{name}/get/"

BOARD_FEED_RESOURCE = "BoardFeedResource"
BOARD_SECTIONS_RESOURCE = "BoardSectionsResource"
SECTION_FEED_RESOURCES = ("BoardSectionPinsResource", "BoardSectionFeedResource")
PIN_RESOURCE = "PinResource"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)

# (status, decoded json or None)
Transport = Callable[[str, Dict[str, str], Dict[str, str]], Awaitable[Tuple[int, Any]]]


def resource_url(name: str) -> str:
    return RESOURCE_URL.format(name=name)


def feed_headers(owner: str, slug: str) -> Dict[str, str]:
    """Headers that make a resource call look like it came from the board page itself."""
    return {
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "X-Requested-With": "XMLHttpRequest",
        "X-Pinterest-AppState": "active",
        "Referer": f"{PINTEREST_ORIGIN}{board_source_path(owner, slug)}",
    }


def resource_params(owner: str, slug: str, options: Dict[str, Any]) -> Dict[str, str]:
    """Query string shared by every resource endpoint: scoping URL plus a JSON options envelope."""
    return {
        "source_url": board_source_path(owner, slug),
        "data": json.dumps({"options": options, "context": {}}),
    }


def feed_params(owner: str, slug: str, page_size: int, bookmark: Optional[str] = None,
                extra_options: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
    options: Dict[str, Any] = {
        "board_url": board_source_path(owner, slug),
        "field_set_key": "react_grid_pin",
        "filter_section_pins": True,
        "sort": "default",
        "layout": "default",
        "page_size": page_size,
    }
    if extra_options:
        options.update(extra_options)
    if bookmark:
        options["bookmarks"] = [bookmark]
    return resource_params(owner, slug, options)


def requests_transport(session: Optional[requests.Session] = None, timeout: float = 30.0) -> Transport:
    """Transport that issues resource calls with requests, off the event loop."""
    session = session or requests.Session()

    def _get(url, params, headers):
        merged = {"User-Agent": DEFAULT_USER_AGENT}
        merged.update(headers)
        response = session.get(url, params=params, headers=merged, timeout=timeout)
        if not response.ok:
            return response.status_code, None
        try:
            return response.status_code, response.json()
        except ValueError:
            return response.status_code, None

    async def transport(url, params, headers):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _get, url, params, headers)

    return transport


@dataclass
class PageResult:
    status: int
    items: List[Item] = field(default_factory=list)
    bookmark: Optional[str] = None
    collection: Optional[CollectionInfo] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class PaginationStats:
    pages: int = 0
    new_items: int = 0
    stop_reason: str = ""


class PaginationClient:
    """
    Walks a feed resource with continuation tokens.

    Requests are strictly sequential: a token is only usable once the response
    that carried it has been consumed.
    """

    def __init__(self, transport: Transport, page_size: int = 25, max_pages: int = 10,
                 delay_range: Tuple[float, float] = (0.3, 0.8),
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.transport = transport
        self.page_size = page_size
        self.max_pages = max_pages
        self.delay_range = delay_range
        self._sleep = sleep

    async def fetch_page(self, owner: str, slug: str, bookmark: Optional[str] = None,
                         resource: str = BOARD_FEED_RESOURCE,
                         extra_options: Optional[Dict[str, Any]] = None,
                         collection_id: Optional[str] = None) -> PageResult:
        """One request; any transport error becomes a non-success page."""
        params = feed_params(owner, slug, self.page_size, bookmark, extra_options)
        try:
            status, data = await self.transport(resource_url(resource), params, feed_headers(owner, slug))
        except (requests.RequestException, OSError, ValueError) as e:
            logger.warning("%s request failed: %s", resource, e)
            return PageResult(status=0)
        if not (200 <= status < 300):
            return PageResult(status=status)
        if data is None:
            logger.warning("%s returned a body that is not JSON", resource)
            return PageResult(status=0)

        resolver = BoardMetadataResolver(f"{PINTEREST_ORIGIN}{board_source_path(owner, slug)}", owner, slug)
        collection = resolver.from_feed_response(data)
        board_id = collection.id if collection else collection_id
        return PageResult(
            status=status,
            items=items_from_records(results_from_response(data), board_id),
            bookmark=bookmark_from_response(data),
            collection=collection,
        )

    async def paginate(self, owner: str, slug: str, accumulator: ItemAccumulator,
                       bookmark: Optional[str] = None, resource: str = BOARD_FEED_RESOURCE,
                       extra_options: Optional[Dict[str, Any]] = None,
                       on_page: Optional[Callable[[PageResult], None]] = None,
                       max_pages: Optional[int] = None) -> PaginationStats:
        """
        Request pages until a page adds nothing new, no token comes back, or the
        page bound is hit. Items are merged into ``accumulator`` as they arrive,
        so a cancelled walk keeps everything fetched so far.
        """
        stats = PaginationStats()
        limit = max_pages if max_pages is not None else self.max_pages
        while stats.pages < limit:
            if stats.pages:
                await self._sleep(random.uniform(*self.delay_range))
            page = await self.fetch_page(owner, slug, bookmark, resource, extra_options)
            stats.pages += 1
            if not page.ok:
                logger.info("%s returned HTTP %s, treating as exhausted", resource, page.status)
                stats.stop_reason = f"http-{page.status}"
                return stats
            if on_page is not None:
                on_page(page)

            added = accumulator.merge(page.items)
            stats.new_items += added
            logger.info("%s page %d: added %d new pins (total %d)", resource, stats.pages, added, len(accumulator))
            if added == 0:
                stats.stop_reason = "no-new-items"
                return stats
            if not page.bookmark:
                stats.stop_reason = "no-bookmark"
                return stats
            bookmark = page.bookmark
        stats.stop_reason = "max-pages"
        return stats


class FeedPaginationExtractor(BaseExtractor):
    """Strategy: extend the first page through the live feed resource, without a browser."""

    name = "feed-pagination"
    tier = Tier.DOCUMENT

    def __init__(self, client: PaginationClient):
        self.client = client

    def is_applicable(self, context: ScrapeContext) -> bool:
        return bool(context.owner and context.slug)

    async def extract(self, context: ScrapeContext) -> CandidateSet:
        # The walk gets its own accumulator: page one repeats what the document
        # already embedded, and that must not read as "nothing new".
        accumulator = ItemAccumulator()
        candidates = self.empty()
        # Registered before the walk so partial pages survive cancellation
        context.add_candidates(candidates)

        def on_page(page: PageResult):
            context.update_collection(page.collection)
            fresh = ItemAccumulator()
            for item in page.items:
                if item.id not in accumulator and fresh.add(item):
                    candidates.items.append(item)

        stats = await self.client.paginate(context.owner, context.slug, accumulator, on_page=on_page)
        logger.info("Feed pagination stopped after %d page(s): %s", stats.pages, stats.stop_reason)
        return candidates
