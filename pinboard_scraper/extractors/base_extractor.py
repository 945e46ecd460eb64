"""
Base Extractor

Description: Base class for the extraction strategies of the board scraper
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

"""
Base class for the strategies in the extraction chain
"""
import logging
from typing import List, Optional

from ..models import CandidateSet, Item, Tier
from ..scrape_context import STATIC_MARKUP, ScrapeContext

logger = logging.getLogger("pinboard_scraper")


class BaseExtractor:
    """
    Base class that every extraction strategy inherits from.

    A strategy reads what it needs from the :class:`ScrapeContext` and returns a
    :class:`CandidateSet`. Strategies never talk to each other and never decide
    what ends up in the final result; that is the fusion stage's job.
    """

    name: str = "base"
    tier: Tier = Tier.DOCUMENT

    def is_applicable(self, context: ScrapeContext) -> bool:
        """
        Determine if this strategy should run for the current context.

        Returns:
            bool: True to run, False to skip without recording a candidate set
        """
        return True

    async def extract(self, context: ScrapeContext) -> CandidateSet:
        """
        Run the strategy.

        Args:
            context (ScrapeContext): per-invocation state

        Returns:
            CandidateSet: items found by this strategy
        """
        raise NotImplementedError

    def empty(self) -> CandidateSet:
        return CandidateSet(strategy=self.name, tier=self.tier)

    def candidates(self, items: List[Item], raw_urls: Optional[List[str]] = None) -> CandidateSet:
        return CandidateSet(strategy=self.name, tier=self.tier, items=list(items), raw_urls=list(raw_urls or []))


class MarkupExtractor(BaseExtractor):
    """A strategy that reads one of the fetched markup documents."""

    base_name: str = "markup"

    def __init__(self, source: str = STATIC_MARKUP):
        self.source = source
        self.name = f"{self.base_name}:{source}"

    def markup(self, context: ScrapeContext) -> str:
        return context.markup.get(self.source) or ""

    def is_applicable(self, context: ScrapeContext) -> bool:
        return bool(self.markup(context))
