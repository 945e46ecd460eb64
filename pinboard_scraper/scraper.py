"""
Board Scraper

Description: Orchestrates document fetch, the strategy chain, fusion and downloads for one board
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
"""

import asyncio
import logging
import time
from typing import List, Optional

from .board_metadata import BoardMetadataResolver
from .browser_harvester import BrowserHarvestExtractor, BrowserHarvester
from .config import ScrapeConfig
from .download_proxy import DownloadReport, ImageDownloader, RetryingFetchProxy
from .errors import BoardUnreachableError, InvalidBoardUrlError, NetworkFailureError
from .extractors.base_extractor import BaseExtractor
from .extractors.embedded_data_extractor import EmbeddedDataExtractor
from .extractors.heuristic_extractor import HeuristicExtractor, HeuristicMarkupExtractor
from .fetcher import DocumentFetcher
from .fusion import FusionValidator
from .models import ScrapeResult, SizeTag
from .pagination import FeedPaginationExtractor, PaginationClient, requests_transport
from .pin_urls import board_source_path, parse_board_url
from .scrape_context import RENDERED_MARKUP, STATIC_MARKUP, ScrapeContext

logger = logging.getLogger("pinboard_scraper")

TRUNCATED_BUDGET = "budget"
TRUNCATED_CANCELLED = "cancelled"


def canonical_board_url(url: str) -> str:
    parts = parse_board_url(url)
    if not parts:
        raise InvalidBoardUrlError(f"Not a Pinterest board URL: {url}", context={"url": url})
    return f"https://www.pinterest.com{board_source_path(*parts)}"


def build_summary(found: int, expected: Optional[int], truncated: Optional[str]) -> str:
    if not found:
        message = "No pins found on this board."
    elif expected:
        message = f"Found {found} of {expected} board pins"
    else:
        message = f"Found {found} pins."
    if truncated == TRUNCATED_BUDGET:
        message += " (time budget exhausted, results are partial)"
    elif truncated == TRUNCATED_CANCELLED:
        message += " (cancelled, results are partial)"
    return message


class BoardScraper:
    """
    Scrapes one board per :meth:`scrape` call.

    The whole chain runs under a wall-clock budget. When the budget runs out or
    :meth:`cancel` is called, the chain is cancelled and everything gathered so
    far is fused and returned.
    """

    def __init__(self, config: Optional[ScrapeConfig] = None,
                 fetcher: Optional[DocumentFetcher] = None,
                 harvester: Optional[BrowserHarvester] = None,
                 extractors: Optional[List[BaseExtractor]] = None,
                 downloader: Optional[ImageDownloader] = None):
        self.config = config or ScrapeConfig()
        proxy = RetryingFetchProxy(max_retries=self.config.download_retries, timeout=self.config.request_timeout)
        self.fetcher = fetcher or DocumentFetcher(proxy)
        self.downloader = downloader or ImageDownloader(proxy, max_workers=self.config.download_workers)
        self.harvester = harvester
        if self.harvester is None and self.config.use_browser:
            self.harvester = BrowserHarvester(self.config)
        self.extractors = extractors if extractors is not None else self.default_chain()
        self.fusion = FusionValidator()

        self._cancel_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def default_chain(self) -> List[BaseExtractor]:
        cfg = self.config

        def heuristic(source):
            return HeuristicMarkupExtractor(
                source,
                HeuristicExtractor(cfg.occurrence_threshold, cfg.heuristic_candidate_cap),
                min_embedded_items=cfg.min_embedded_items,
            )

        chain: List[BaseExtractor] = [
            EmbeddedDataExtractor(STATIC_MARKUP),
            heuristic(STATIC_MARKUP),
            FeedPaginationExtractor(PaginationClient(
                requests_transport(timeout=cfg.request_timeout),
                page_size=cfg.page_size,
                max_pages=cfg.max_pages,
            )),
        ]
        if self.harvester is not None:
            chain.append(BrowserHarvestExtractor(self.harvester))
        chain.extend([EmbeddedDataExtractor(RENDERED_MARKUP), heuristic(RENDERED_MARKUP)])
        return chain

    def cancel(self) -> None:
        """Request cancellation of the running scrape. Safe to call from another thread."""
        if self._loop is not None and self._cancel_event is not None:
            self._loop.call_soon_threadsafe(self._cancel_event.set)

    async def _fetch_document(self, context: ScrapeContext) -> None:
        try:
            context.markup[STATIC_MARKUP] = await self.fetcher.fetch_async(context.board_url)
        except NetworkFailureError as e:
            logger.warning("Static fetch failed, continuing with remaining strategies: %s", e.message)
            context.document_fetch_failed = True
            context.record_error("document", e)

    async def _run_chain(self, context: ScrapeContext) -> None:
        await self._fetch_document(context)
        for extractor in self.extractors:
            if not extractor.is_applicable(context):
                logger.debug("Skipping strategy %s", extractor.name)
                continue
            try:
                candidates = await extractor.extract(context)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Strategy %s failed: %s", extractor.name, e)
                context.record_error(extractor.name, e)
                continue
            if not any(existing is candidates for existing in context.candidate_sets):
                context.add_candidates(candidates)
            logger.info("Strategy %s produced %d candidate(s)", candidates.strategy, len(candidates))

    async def _run_with_budget(self, context: ScrapeContext) -> Optional[str]:
        """Returns the truncation reason, or None when the chain ran to completion."""
        chain = asyncio.ensure_future(self._run_chain(context))
        cancelled = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {chain, cancelled},
                timeout=self.config.budget_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancelled.cancel()

        if chain in done:
            chain.result()
            return None

        reason = TRUNCATED_CANCELLED if cancelled in done else TRUNCATED_BUDGET
        logger.warning("Scrape %s, returning partial results", "cancelled" if reason == TRUNCATED_CANCELLED else "ran out of time")
        chain.cancel()
        await asyncio.wait({chain})
        return reason

    async def scrape(self, url: str) -> ScrapeResult:
        """
        Scrape a board.

        Raises:
            InvalidBoardUrlError: the URL is not a board page
            BoardUnreachableError: the document could not be fetched and no
                strategy found anything either
        """
        started = time.monotonic()
        context = ScrapeContext(board_url=canonical_board_url(url))
        self._loop = asyncio.get_running_loop()
        self._cancel_event = asyncio.Event()
        logger.info("Scraping board %s/%s", context.owner, context.slug)

        try:
            truncated = await self._run_with_budget(context)
        finally:
            self._cancel_event = None
            self._loop = None

        outcome = self.fusion.fuse(context)
        if not outcome.items and context.document_fetch_failed and not context.network_items:
            raise BoardUnreachableError(
                f"Could not reach {context.board_url}",
                context={"errors": list(context.errors)},
            )

        collection = context.collection
        if collection is None:
            collection = BoardMetadataResolver(context.board_url, context.owner, context.slug).fallback()
        summary = build_summary(len(outcome.items), collection.expected_count, truncated)
        logger.info(summary)

        return ScrapeResult(
            items=outcome.items,
            collection=collection,
            provenance=outcome.provenance,
            summary=summary,
            completion_percentage=outcome.completion_percentage,
            no_content=not outcome.items,
            truncated=truncated,
            strategy_counts=outcome.strategy_counts,
            execution_ms=int((time.monotonic() - started) * 1000),
            errors=list(context.errors),
        )

    async def download(self, result: ScrapeResult, size: Optional[SizeTag] = None,
                       output_dir: Optional[str] = None) -> DownloadReport:
        """Download every item of a result; failures are counted, never raised."""
        report = await self.downloader.download_all(result.items, size or self.config.download_size_tag)
        result.download_report = report
        if output_dir:
            report.save_to(output_dir, result.items)
        return report


async def scrape_board(url: str, download: bool = False, output_dir: Optional[str] = None,
                       config: Optional[ScrapeConfig] = None, **overrides) -> ScrapeResult:
    """One-call convenience wrapper: persisted settings, overrides, optional download."""
    config = config or ScrapeConfig.from_settings(**overrides)
    scraper = BoardScraper(config)
    result = await scraper.scrape(url)
    if download and result.items:
        await scraper.download(result, output_dir=output_dir)
    return result
