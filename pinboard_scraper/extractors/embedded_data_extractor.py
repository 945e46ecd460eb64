"""
Embedded Data Extractor

Description: Parses the board page's embedded __PWS_DATA__ blob into pins and board metadata
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

import json
import logging
import re
from typing import Any, List, Optional, Tuple

from ..board_metadata import BoardMetadataResolver
from ..errors import MalformedSourceError
from ..json_tree import DEFAULT_MAX_DEPTH, TreeSearch, iter_matches
from ..models import CandidateSet, CollectionInfo, Item
from ..pin_records import item_from_record, is_pin_record
from ..scrape_context import ScrapeContext
from .base_extractor import MarkupExtractor

logger = logging.getLogger("pinboard_scraper")

PWS_DATA_RE = re.compile(
    r'<script[^>]*id=["\']__PWS_DATA__["\'][^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)

# Subtrees holding suggestions rather than board content
EXCLUDED_KEYS = {"related", "relatedPins", "moreIdeas", "stories", "suggestions", "ads"}
EXCLUDED_SECTION_TYPES = {"related", "suggested"}
EXCLUDED_NODE_TYPES = {"story", "idea"}

SAMPLE_CHARS = 200


def is_excluded_node(key: Optional[str], node: Any) -> bool:
    if key in EXCLUDED_KEYS:
        return True
    if isinstance(node, dict):
        if node.get("section_type") in EXCLUDED_SECTION_TYPES:
            return True
        if node.get("type") in EXCLUDED_NODE_TYPES:
            return True
    return False


def locate_blob(markup: str) -> Optional[str]:
    match = PWS_DATA_RE.search(markup or "")
    return match.group(1) if match else None


def load_blob(markup: str) -> Optional[Any]:
    """
    Parse the embedded blob.

    Returns None when the page has no blob; raises MalformedSourceError when it
    has one that does not parse.
    """
    raw = locate_blob(markup)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise MalformedSourceError(f"__PWS_DATA__ is not valid JSON: {e}", sample=raw[:SAMPLE_CHARS])


class EmbeddedDataParser:
    """Walks the parsed blob for pin nodes and resolves board metadata."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    def pin_search(self, collection_id: Optional[str] = None) -> TreeSearch[Item]:
        return TreeSearch(
            match=is_pin_record,
            extract=lambda node: item_from_record(node, collection_id),
            skip=is_excluded_node,
            max_depth=self.max_depth,
        )

    def items_from_tree(self, data: Any, collection_id: Optional[str] = None) -> List[Item]:
        items: List[Item] = []
        seen = set()
        for item in iter_matches(data, self.pin_search(collection_id)):
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
        return items

    def parse(self, markup: str, resolver: BoardMetadataResolver) -> Tuple[List[Item], Optional[CollectionInfo]]:
        """Never raises: a broken blob yields no items and a logged sample."""
        try:
            data = load_blob(markup)
        except MalformedSourceError as e:
            logger.warning("Failed to parse __PWS_DATA__: %s", e.message)
            logger.info("Script content sample: %s", e.sample)
            return [], None
        if data is None:
            logger.debug("No __PWS_DATA__ blob in markup")
            return [], None

        collection = resolver.from_blob(data)
        items = self.items_from_tree(data, collection.id)
        logger.info("Found %d pins in __PWS_DATA__ for board %s", len(items), collection.name)
        return items, collection


class EmbeddedDataExtractor(MarkupExtractor):
    """Strategy wrapper around :class:`EmbeddedDataParser`."""

    base_name = "embedded-data"

    def __init__(self, source: str, parser: Optional[EmbeddedDataParser] = None):
        super().__init__(source)
        self.parser = parser or EmbeddedDataParser()

    async def extract(self, context: ScrapeContext) -> CandidateSet:
        resolver = BoardMetadataResolver(context.board_url, context.owner, context.slug)
        items, collection = self.parser.parse(self.markup(context), resolver)
        context.update_collection(collection)
        return self.candidates(items)
