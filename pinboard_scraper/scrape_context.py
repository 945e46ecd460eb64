"""
Scrape Context

Description: Per-invocation accumulators threaded through the scraping pipeline
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

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from .models import CandidateSet, CollectionInfo, Item
from .pin_urls import parse_board_url

STATIC_MARKUP = "static"
RENDERED_MARKUP = "rendered"


class ItemAccumulator:
    """Order-stable map of items keyed by id; the first item seen for an id wins."""

    def __init__(self, items: Iterable[Item] = ()):
        self._items: Dict[str, Item] = {}
        self.merge(items)

    def add(self, item: Item) -> bool:
        if item is None or not item.id or item.id in self._items:
            return False
        self._items[item.id] = item
        return True

    def merge(self, items: Iterable[Item]) -> int:
        return sum(1 for item in items if self.add(item))

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items.values())

    def ids(self) -> List[str]:
        return [item.id for item in self]

    def items(self) -> List[Item]:
        return list(self)


@dataclass
class ScrapeContext:
    """Everything one scrape invocation gathers. Nothing outlives the call."""

    board_url: str
    owner: Optional[str] = None
    slug: Optional[str] = None
    markup: Dict[str, str] = field(default_factory=dict)
    candidate_sets: List[CandidateSet] = field(default_factory=list)
    network_items: ItemAccumulator = field(default_factory=ItemAccumulator)
    dom_urls: List[str] = field(default_factory=list)
    collection: Optional[CollectionInfo] = None
    errors: List[str] = field(default_factory=list)
    harvest_states: List[str] = field(default_factory=list)
    scroll_count: int = 0
    document_fetch_failed: bool = False
    automation_available: bool = False

    def __post_init__(self):
        if self.owner is None and self.slug is None:
            parts = parse_board_url(self.board_url)
            if parts:
                self.owner, self.slug = parts

    def record_error(self, source: str, error: Exception) -> None:
        self.errors.append(f"{source}: {error}")

    def add_candidates(self, candidates: CandidateSet) -> None:
        self.candidate_sets.append(candidates)

    def candidates_for(self, strategy: str) -> Optional[CandidateSet]:
        for candidates in self.candidate_sets:
            if candidates.strategy == strategy:
                return candidates
        return None

    def update_collection(self, info: Optional[CollectionInfo]) -> None:
        """Fill missing metadata fields; the first non-empty value for each field wins."""
        if info is None:
            return
        if self.collection is None:
            self.collection = info
            return
        current = self.collection
        if current.expected_count is None and info.expected_count is not None:
            current.expected_count = info.expected_count
        if not current.owner_handle and info.owner_handle:
            current.owner_handle = info.owner_handle
        if current.name == self.slug and info.name and info.name != self.slug:
            current.name = info.name
        if current.id == self._fallback_board_id() and info.id and info.id != current.id:
            current.id = info.id

    def _fallback_board_id(self) -> str:
        return f"{self.owner}/{self.slug}"
