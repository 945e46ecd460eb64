"""
Fusion

Description: Reconciles the candidate sets of every strategy into one validated item list
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
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .models import CandidateSet, Item, Tier
from .pin_urls import identity_hash
from .scrape_context import ScrapeContext

logger = logging.getLogger("pinboard_scraper")

NETWORK_STRATEGY = "browser-harvest"
UNVALIDATED_SUFFIX = " (unvalidated)"


@dataclass
class FusionOutcome:
    items: List[Item]
    provenance: str
    relaxed: bool
    completion_percentage: Optional[int] = None
    strategy_counts: Dict[str, int] = field(default_factory=dict)


def item_hashes(item: Item) -> Set[str]:
    hashes = set()
    for url in item.image_variants.values():
        image_hash = identity_hash(url)
        if image_hash:
            hashes.add(image_hash)
    return hashes


def completion_percentage(found: int, expected: Optional[int]) -> Optional[int]:
    """Found vs. advisory expected count, capped at 100. Never used to stop anything."""
    if not expected or expected <= 0:
        return None
    return min(100, round(found * 100 / expected))


class _Merger:
    """Order-stable output list, deduplicated on both id and identity hash."""

    def __init__(self):
        self.items: List[Item] = []
        self.ids: Set[str] = set()
        self.hashes: Set[str] = set()

    def add(self, item: Item) -> bool:
        hashes = item_hashes(item)
        if item.id in self.ids or (hashes & self.hashes):
            return False
        self.items.append(item)
        self.ids.add(item.id)
        self.hashes |= hashes
        return True


class FusionValidator:
    """
    Applies the trust ordering to a finished (or interrupted) strategy chain.

    1. Network-confirmed items are accepted unconditionally.
    2. DOM candidates are accepted only when their identity hash is among the
       network-confirmed image hashes.
    3. Document candidates are accepted only when their id or identity hash
       matches a network-confirmed item.

    With no network-confirmed evidence at all, document candidates are taken
    as-is (relaxed mode) and the provenance label says so.
    """

    def network_items(self, context: ScrapeContext) -> List[Item]:
        """The live accumulator plus any NETWORK-tier set, in discovery order."""
        merger = _Merger()
        for item in context.network_items:
            merger.add(item)
        for candidates in context.candidate_sets:
            if candidates.tier is Tier.NETWORK:
                for item in candidates.items:
                    merger.add(item)
        return merger.items

    def fuse(self, context: ScrapeContext) -> FusionOutcome:
        network = self.network_items(context)
        network_ids = {item.id for item in network}
        network_hashes: Set[str] = set()
        for item in network:
            network_hashes |= item_hashes(item)
        relaxed = not network

        merger = _Merger()
        contributors: List[str] = []
        counts: Dict[str, int] = {}

        def contribute(name: str, accepted: int):
            counts[name] = counts.get(name, 0) + accepted
            if accepted and name not in contributors:
                contributors.append(name)

        if network:
            for item in network:
                merger.add(item)
            network_sets = [c.strategy for c in context.candidate_sets if c.tier is Tier.NETWORK]
            contribute(network_sets[0] if network_sets else NETWORK_STRATEGY, len(network))

        for candidates in self._ordered(context.candidate_sets, Tier.DOM):
            accepted = 0
            for item in candidates.items:
                if not relaxed and item_hashes(item) & network_hashes:
                    accepted += 1
                    merger.add(item)
            contribute(candidates.strategy, accepted)

        for candidates in self._ordered(context.candidate_sets, Tier.DOCUMENT):
            accepted = 0
            for item in candidates.items:
                if relaxed:
                    if merger.add(item):
                        accepted += 1
                elif item.id in network_ids or item_hashes(item) & network_hashes:
                    # Corroborates a network item; the network copy stays
                    accepted += 1
                    merger.add(item)
            contribute(candidates.strategy, accepted)

        provenance = "+".join(contributors) if contributors else "none"
        if relaxed and contributors:
            provenance += UNVALIDATED_SUFFIX

        collection_id = context.collection.id if context.collection else None
        items = [item.with_collection(collection_id) for item in merger.items]
        expected = context.collection.expected_count if context.collection else None

        if relaxed:
            logger.info("No network-confirmed pins; accepting document-level candidates unvalidated")
        logger.info("Fusion: %d pins via %s", len(items), provenance)
        return FusionOutcome(
            items=items,
            provenance=provenance,
            relaxed=relaxed,
            completion_percentage=completion_percentage(len(items), expected),
            strategy_counts=counts,
        )

    @staticmethod
    def _ordered(candidate_sets: List[CandidateSet], tier: Tier) -> List[CandidateSet]:
        return [c for c in candidate_sets if c.tier is tier]
