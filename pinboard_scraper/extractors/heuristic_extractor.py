"""
Heuristic Extractor

Description: Regex and occurrence-count fallback extraction of pin images from raw markup
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
import re
from collections import Counter
from typing import Iterator, List, Optional, Tuple

from ..models import CandidateSet, Item, SizeTag
from ..pin_urls import build_variants, identity_hash, is_valid_identity_hash, size_segment, transform_image_url
from ..scrape_context import ScrapeContext
from .base_extractor import MarkupExtractor

logger = logging.getLogger("pinboard_scraper")

# Several shapes the CDN URLs take in markup; a URL matched by more than one
# pattern at the same offset is one occurrence.
IMAGE_URL_PATTERNS = [
    re.compile(r'"(https?://i\.pinimg\.com/[^"\s]+)"'),
    re.compile(r"'(https?://i\.pinimg\.com/[^'\s]+)'"),
    re.compile(r'url\(\s*["\']?(https?://i\.pinimg\.com/[^"\')\s]+)'),
    re.compile(
        r"(https?://i\.pinimg\.com/(?:\d+x|\d+x\d+(?:_RS)?|originals)/[A-Za-z0-9/._-]+)"
    ),
]

NON_CONTENT_PATH_MARKERS = ("/user/", "/avatars/", "/static/", "/boards/", "/closeup/")

# Fixed-size UI thumbnails: profile pictures, ad slots, board covers
UI_SIZE_MARKERS = ("30x30", "75x75", "_RS", "200x150")

DEFAULT_OCCURRENCE_THRESHOLD = 100
DEFAULT_CANDIDATE_CAP = 250


class HeuristicExtractor:
    """
    Two-pass extractor over raw markup.

    Pass 1 counts how often each identity hash occurs. Content images recur a
    handful of times (grid, srcset, preload hints); page chrome recurs hundreds
    of times. Pass 2 walks the matches again and keeps candidates that survive
    the exclusion rules, first occurrence wins.
    """

    def __init__(self, occurrence_threshold: int = DEFAULT_OCCURRENCE_THRESHOLD,
                 candidate_cap: int = DEFAULT_CANDIDATE_CAP):
        self.occurrence_threshold = occurrence_threshold
        self.candidate_cap = candidate_cap

    def iter_urls(self, markup: str) -> Iterator[Tuple[int, str]]:
        """Yield ``(offset, url)`` for every distinct URL occurrence, in document order."""
        found = {}
        for pattern in IMAGE_URL_PATTERNS:
            for match in pattern.finditer(markup):
                start = match.start(1)
                if start not in found:
                    found[start] = match.group(1)
        for start in sorted(found):
            yield start, found[start]

    def count_occurrences(self, markup: str) -> Counter:
        counts: Counter = Counter()
        for _, url in self.iter_urls(markup):
            image_hash = identity_hash(url)
            if image_hash:
                counts[image_hash] += 1
        return counts

    def rejection_reason(self, url: str, counts: Counter, seen: set) -> Optional[str]:
        if any(marker in url for marker in NON_CONTENT_PATH_MARKERS):
            return "non-content path"
        segment = size_segment(url)
        if not segment:
            return "no size segment"
        if any(marker in segment for marker in UI_SIZE_MARKERS):
            return "ui thumbnail size"
        image_hash = identity_hash(url)
        if not is_valid_identity_hash(image_hash):
            return "not a content hash"
        if counts[image_hash] > self.occurrence_threshold:
            return f"ui chrome ({counts[image_hash]} occurrences)"
        if image_hash in seen:
            return "duplicate"
        return None

    def extract(self, markup: str) -> List[Item]:
        if not markup:
            return []
        counts = self.count_occurrences(markup)
        logger.debug("Heuristic pass 1: %d references, %d unique hashes", sum(counts.values()), len(counts))

        items: List[Item] = []
        seen = set()
        for _, url in self.iter_urls(markup):
            reason = self.rejection_reason(url, counts, seen)
            if reason:
                if reason.startswith("ui"):
                    logger.debug("Filtered %s: %s", url, reason)
                continue
            image_hash = identity_hash(url)
            seen.add(image_hash)
            if len(items) >= self.candidate_cap:
                logger.info("Heuristic extraction reached candidate cap (%d)", self.candidate_cap)
                break
            thumb = transform_image_url(url, SizeTag.SMALL)
            items.append(Item(id=image_hash, image_variants=build_variants(thumb)))

        logger.info("Heuristic extraction: %d references -> %d candidate pins", sum(counts.values()), len(items))
        return items


class HeuristicMarkupExtractor(MarkupExtractor):
    """
    Strategy wrapper: runs only when the embedded-data strategy over the same
    markup came up short.
    """

    base_name = "heuristic-markup"

    def __init__(self, source: str, extractor: Optional[HeuristicExtractor] = None,
                 min_embedded_items: int = 20):
        super().__init__(source)
        self.extractor = extractor or HeuristicExtractor()
        self.min_embedded_items = min_embedded_items

    def is_applicable(self, context: ScrapeContext) -> bool:
        if not super().is_applicable(context):
            return False
        embedded = context.candidates_for(f"embedded-data:{self.source}")
        return embedded is None or len(embedded) < self.min_embedded_items

    async def extract(self, context: ScrapeContext) -> CandidateSet:
        return self.candidates(self.extractor.extract(self.markup(context)))
