"""
Browser Harvester

Description: Headless-browser evidence gathering: live feed interception, in-session pagination, DOM harvest
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
- Uses Playwright (Apache 2.0): https://github.com/microsoft/playwright-python
"""

"""
Drives one Playwright page through a fixed sequence of states. Every state
writes straight into the ScrapeContext, so whatever was gathered before a
failure, a timeout or a cancellation is still there afterwards.
"""

import asyncio
import logging
import random
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from .config import ScrapeConfig
from .errors import AutomationUnavailableError
from .json_tree import first_path, get_path
from .models import CandidateSet, Item, Tier
from .pagination import (
    BOARD_FEED_RESOURCE,
    BOARD_SECTIONS_RESOURCE,
    PIN_RESOURCE,
    SECTION_FEED_RESOURCES,
    PaginationClient,
    PageResult,
    Transport,
    feed_headers,
    resource_params,
    resource_url,
)
from .pin_records import item_from_record, items_from_records, results_from_response
from .pin_urls import build_variants, identity_hash, is_valid_identity_hash, size_segment
from .scrape_context import RENDERED_MARKUP, ItemAccumulator, ScrapeContext
from .board_metadata import BoardMetadataResolver
from .extractors.base_extractor import BaseExtractor

# Try importing Playwright safely
try:
    from playwright.async_api import async_playwright
    from playwright.async_api import Error as PlaywrightError
    PLAYWRIGHT_AVAILABLE = True
    _PLAYWRIGHT_ERRORS: Tuple[type, ...] = (PlaywrightError,)
except ImportError:
    async_playwright = None
    PLAYWRIGHT_AVAILABLE = False
    _PLAYWRIGHT_ERRORS = ()

logger = logging.getLogger("pinboard_scraper")

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0 Safari/537.36"
)
VIEWPORT = {"width": 1280, "height": 2000}

# Responses the page issues on its own while scrolling
INTERCEPTED_RESOURCES = (BOARD_FEED_RESOURCE,) + SECTION_FEED_RESOURCES

# Resolution segments kept from the rendered DOM
DOM_SIZES = {"236x", "474x", "564x", "736x", "originals"}

FEED_DELAY = (0.4, 0.7)
SECTION_DELAY = (0.3, 0.6)
DETAIL_DELAY = (0.25, 0.5)

# In-page scripts. Kept as constants so they can be matched on in tests.
DISMISS_OVERLAYS_JS = """() => {
    const dialogs = document.querySelectorAll('[role="dialog"], [data-test-id*="Signup"], [data-test-id*="login"]');
    dialogs.forEach(d => d.style.display = 'none');
    const style = document.createElement('style');
    style.textContent = '*[style*="position: fixed"][style*="z-index"] { display: none !important; }';
    document.head.appendChild(style);
}"""

SCROLL_TO_BOTTOM_JS = """() => {
    window.scrollTo(0, document.body.scrollHeight);
    return document.body.scrollHeight;
}"""

PAGE_HEIGHT_JS = "() => document.body.scrollHeight"

FETCH_JSON_JS = """async ({url, params, headers}) => {
    try {
        const resp = await fetch(url + '?' + new URLSearchParams(params).toString(),
                                 {headers, credentials: 'include'});
        if (!resp.ok) return {status: resp.status, data: null};
        try {
            return {status: resp.status, data: await resp.json()};
        } catch (e) {
            return {status: resp.status, data: null};
        }
    } catch (e) {
        return {status: 0, data: null};
    }
}"""

COLLECT_PIN_IDS_JS = """() => {
    const ids = [];
    const seen = new Set();
    for (const a of document.querySelectorAll('a[href*="/pin/"]')) {
        const m = (a.getAttribute('href') || '').match(/\\/pin\\/(\\d{8,})/);
        if (m && !seen.has(m[1])) {
            seen.add(m[1]);
            ids.push(m[1]);
        }
    }
    return ids;
}"""

HARVEST_IMAGE_URLS_JS = """() => {
    const urls = [];
    const seen = new Set();
    const add = (u) => { if (u && !seen.has(u)) { seen.add(u); urls.push(u); } };
    for (const img of document.querySelectorAll('img')) {
        add(img.getAttribute('src'));
        const srcset = img.getAttribute('srcset');
        if (srcset) {
            for (const part of srcset.split(',')) {
                add(part.trim().split(' ')[0]);
            }
        }
    }
    return urls;
}"""


class HarvestState(str, Enum):
    NAVIGATING = "navigating"
    SCROLLING = "scrolling"
    PAGINATING = "paginating"
    DETAIL_FILLING = "detail_filling"
    HARVESTING = "harvesting"
    DONE = "done"


# Happy-path edges; every state also has an implicit edge to DONE on failure
TRANSITIONS = {
    HarvestState.NAVIGATING: HarvestState.SCROLLING,
    HarvestState.SCROLLING: HarvestState.PAGINATING,
    HarvestState.PAGINATING: HarvestState.DETAIL_FILLING,
    HarvestState.DETAIL_FILLING: HarvestState.HARVESTING,
    HarvestState.HARVESTING: HarvestState.DONE,
}


def browser_transport(page) -> Transport:
    """Issue resource calls from inside the page so they carry the session's cookies."""

    async def transport(url, params, headers):
        result = await page.evaluate(FETCH_JSON_JS, {"url": url, "params": params, "headers": headers})
        result = result or {}
        return int(result.get("status") or 0), result.get("data")

    return transport


def dom_items_from_urls(urls: List[str]) -> List[Item]:
    """One item per distinct content image among rendered ``img`` sources, keyed by identity hash."""
    items: List[Item] = []
    seen: Set[str] = set()
    for url in urls:
        if size_segment(url) not in DOM_SIZES:
            continue
        image_hash = identity_hash(url)
        if not is_valid_identity_hash(image_hash) or image_hash in seen:
            continue
        seen.add(image_hash)
        items.append(Item(id=image_hash, image_variants=build_variants(url)))
    return items


class BrowserHarvester:
    """
    Headless-browser harvester.

    States run in order NAVIGATING, SCROLLING, PAGINATING, DETAIL_FILLING,
    HARVESTING; an exception in any state jumps straight to DONE. Without
    Playwright the harvester is a no-op.
    """

    def __init__(self, config: Optional[ScrapeConfig] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.config = config or ScrapeConfig()
        self._sleep = sleep
        self._pending: Set[asyncio.Future] = set()
        self._handlers = {
            HarvestState.NAVIGATING: self._navigate,
            HarvestState.SCROLLING: self._scroll,
            HarvestState.PAGINATING: self._paginate,
            HarvestState.DETAIL_FILLING: self._fill_details,
            HarvestState.HARVESTING: self._harvest_dom,
        }

    @property
    def available(self) -> bool:
        return PLAYWRIGHT_AVAILABLE

    async def harvest(self, context: ScrapeContext) -> None:
        """Launch a browser, run the state machine, always close the browser."""
        if not self.available:
            logger.info("Playwright not installed, skipping browser harvest")
            context.record_error("browser-harvest", AutomationUnavailableError("playwright is not installed"))
            return

        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=self.config.headless)
                try:
                    browser_context = await browser.new_context(viewport=VIEWPORT, user_agent=BROWSER_USER_AGENT)
                    page = await browser_context.new_page()
                    context.automation_available = True
                    await self.run_on_page(page, context)
                finally:
                    await browser.close()
        except _PLAYWRIGHT_ERRORS as e:
            # Usually a missing browser binary; nothing to do but fall back
            logger.info("Browser automation unavailable: %s", e)
            context.record_error("browser-harvest", AutomationUnavailableError(str(e)))

    async def run_on_page(self, page, context: ScrapeContext) -> None:
        state = HarvestState.NAVIGATING
        while state is not HarvestState.DONE:
            context.harvest_states.append(state.value)
            try:
                await self._handlers[state](page, context)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Browser harvest failed while %s: %s", state.value, e)
                context.record_error(f"browser-harvest:{state.value}", e)
                break
            state = TRANSITIONS[state]
        context.harvest_states.append(HarvestState.DONE.value)
        await self._drain_pending()
        logger.info(
            "Browser harvest finished: %d network pins, %d DOM urls, %d scrolls",
            len(context.network_items), len(context.dom_urls), context.scroll_count,
        )

    def _collection_id(self, context: ScrapeContext) -> Optional[str]:
        return context.collection.id if context.collection else None

    # -- NAVIGATING --------------------------------------------------------

    async def _navigate(self, page, context: ScrapeContext) -> None:
        timeout_ms = int(self.config.request_timeout * 1000)
        await page.goto(context.board_url, wait_until="domcontentloaded", timeout=timeout_ms)
        await self._wait_for_idle(page)
        logger.info("Navigated to %s", context.board_url)

        # Opportunistic; a page without overlays is fine
        try:
            await page.keyboard.press("Escape")
            await page.evaluate(DISMISS_OVERLAYS_JS)
        except _PLAYWRIGHT_ERRORS as e:
            logger.debug("Overlay dismissal skipped: %s", e)

    async def _wait_for_idle(self, page) -> None:
        try:
            await page.wait_for_load_state("networkidle", timeout=int(self.config.request_timeout * 1000))
        except _PLAYWRIGHT_ERRORS as e:
            logger.debug("Network never went idle: %s", e)

    # -- SCROLLING ---------------------------------------------------------

    def _on_response(self, response, context: ScrapeContext) -> None:
        if not any(f"/resource/{name}/get" in response.url for name in INTERCEPTED_RESOURCES):
            return
        task = asyncio.ensure_future(self._decode_response(response, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _decode_response(self, response, context: ScrapeContext) -> None:
        if not 200 <= response.status < 300:
            return
        try:
            data = await response.json()
        except _PLAYWRIGHT_ERRORS + (ValueError,):
            return
        resolver = BoardMetadataResolver(context.board_url, context.owner, context.slug)
        context.update_collection(resolver.from_feed_response(data))
        items = items_from_records(results_from_response(data), self._collection_id(context))
        added = context.network_items.merge(items)
        if added:
            logger.debug("Intercepted feed response: %d new pins (total %d)", added, len(context.network_items))

    async def _drain_pending(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _scroll(self, page, context: ScrapeContext) -> None:
        handler = lambda response: self._on_response(response, context)
        page.on("response", handler)
        try:
            last_height = 0
            for i in range(self.config.max_scrolls):
                height = await page.evaluate(SCROLL_TO_BOTTOM_JS)
                if height == last_height:
                    # No growth: wait once more before calling it the end
                    await page.wait_for_timeout(self.config.height_recheck_ms)
                    if await page.evaluate(PAGE_HEIGHT_JS) == last_height:
                        logger.info("Reached end of content after %d scrolls", i)
                        break
                last_height = height
                context.scroll_count = i + 1
                await self._wait_for_idle(page)
                await page.wait_for_timeout(self.config.scroll_wait_ms)
                logger.debug("Scroll %d: page height %spx", context.scroll_count, height)
        finally:
            page.remove_listener("response", handler)
            await self._drain_pending()
        logger.info("Network capture during scrolling: %d pins", len(context.network_items))

    # -- PAGINATING --------------------------------------------------------

    def _merge_page(self, context: ScrapeContext):
        def on_page(page_result: PageResult):
            context.update_collection(page_result.collection)
            context.network_items.merge(
                item.with_collection(self._collection_id(context)) for item in page_result.items
            )
        return on_page

    async def _paginate(self, page, context: ScrapeContext) -> None:
        if not (context.owner and context.slug):
            logger.info("No owner/slug for %s, skipping in-page pagination", context.board_url)
            return
        transport = browser_transport(page)

        feed = PaginationClient(transport, page_size=self.config.browser_page_size,
                                max_pages=self.config.browser_max_pages,
                                delay_range=FEED_DELAY, sleep=self._sleep)
        # A fresh accumulator per walk: the scroll already saw the first pages
        await feed.paginate(context.owner, context.slug, ItemAccumulator(),
                            extra_options={"filter_section_pins": False},
                            on_page=self._merge_page(context))
        logger.info("In-page feed pagination: %d pins so far", len(context.network_items))

        await self._paginate_sections(transport, context)

    async def _list_sections(self, transport: Transport, context: ScrapeContext) -> List[Dict[str, Any]]:
        params = resource_params(context.owner, context.slug,
                                 {"board_url": f"/{context.owner}/{context.slug}/"})
        status, data = await transport(resource_url(BOARD_SECTIONS_RESOURCE), params,
                                       feed_headers(context.owner, context.slug))
        if not 200 <= status < 300 or data is None:
            return []
        sections = first_path(data, ("resource_response.data.sections", "resource_response.data"))
        if not isinstance(sections, list):
            return []
        return [s for s in sections if isinstance(s, dict) and s.get("id")]

    async def _paginate_sections(self, transport: Transport, context: ScrapeContext) -> None:
        sections = await self._list_sections(transport, context)
        if not sections:
            return
        logger.info("Board has %d section(s)", len(sections))
        client = PaginationClient(transport, page_size=self.config.browser_page_size,
                                  max_pages=self.config.section_max_pages,
                                  delay_range=SECTION_DELAY, sleep=self._sleep)
        for section in sections:
            # Both endpoints, since either may be the one serving a given board
            for resource in SECTION_FEED_RESOURCES:
                await client.paginate(context.owner, context.slug, ItemAccumulator(),
                                      resource=resource,
                                      extra_options={"section_id": section["id"]},
                                      on_page=self._merge_page(context))
        logger.info("Sections pagination: %d pins so far", len(context.network_items))

    # -- DETAIL_FILLING ----------------------------------------------------

    async def _fill_details(self, page, context: ScrapeContext) -> None:
        if not (context.owner and context.slug):
            return
        pin_ids = await page.evaluate(COLLECT_PIN_IDS_JS) or []
        missing = [pin_id for pin_id in pin_ids if pin_id not in context.network_items]
        if not missing:
            return
        logger.info("%d pin(s) rendered but never seen on the network, fetching details", len(missing))

        transport = browser_transport(page)
        headers = feed_headers(context.owner, context.slug)
        filled = 0
        for index, pin_id in enumerate(missing):
            if index >= self.config.detail_fetch_cap:
                logger.info("Detail fetch cap (%d requests) reached, %d pin(s) left unfetched",
                            self.config.detail_fetch_cap, len(missing) - index)
                break
            if index:
                await self._sleep(random.uniform(*DETAIL_DELAY))
            params = resource_params(context.owner, context.slug, {"id": pin_id})
            status, data = await transport(resource_url(PIN_RESOURCE), params, headers)
            if not 200 <= status < 300 or data is None:
                continue
            item = item_from_record(get_path(data, "resource_response.data"), self._collection_id(context))
            if item is not None and context.network_items.add(item):
                filled += 1
        logger.info("Detail filling added %d pin(s)", filled)

    # -- HARVESTING --------------------------------------------------------

    async def _harvest_dom(self, page, context: ScrapeContext) -> None:
        urls = await page.evaluate(HARVEST_IMAGE_URLS_JS) or []
        known = set(context.dom_urls)
        context.dom_urls.extend(u for u in urls if u and u not in known)
        context.markup[RENDERED_MARKUP] = await page.content()
        logger.info("Harvested %d DOM image urls and %d chars of rendered markup",
                    len(context.dom_urls), len(context.markup[RENDERED_MARKUP]))


class BrowserHarvestExtractor(BaseExtractor):
    """
    Strategy wrapper. Returns the network-confirmed set and records the
    lower-trust DOM set alongside it.
    """

    name = "browser-harvest"
    tier = Tier.NETWORK
    dom_strategy = "browser-dom"

    def __init__(self, harvester: Optional[BrowserHarvester] = None):
        self.harvester = harvester or BrowserHarvester()

    async def extract(self, context: ScrapeContext) -> CandidateSet:
        await self.harvester.harvest(context)
        context.add_candidates(CandidateSet(
            strategy=self.dom_strategy,
            tier=Tier.DOM,
            items=dom_items_from_urls(context.dom_urls),
            raw_urls=list(context.dom_urls),
        ))
        return self.candidates(context.network_items.items())
