"""
Models

Description: Data models shared by every stage of the board scraping pipeline
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
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional


class SizeTag(str, Enum):
    """Resolution variants served by the pin CDN, mapped to their URL path segment."""

    TINY = "tiny"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ORIGINAL = "original"

    @property
    def segment(self) -> str:
        return _SIZE_SEGMENTS[self]

    @classmethod
    def from_segment(cls, segment: str) -> Optional["SizeTag"]:
        for tag, seg in _SIZE_SEGMENTS.items():
            if seg == segment:
                return tag
        return None


_SIZE_SEGMENTS = {
    SizeTag.TINY: "170x",
    SizeTag.SMALL: "236x",
    SizeTag.MEDIUM: "474x",
    SizeTag.LARGE: "736x",
    SizeTag.ORIGINAL: "originals",
}

# Every item the pipeline emits carries these four variants.
POPULATED_SIZES = (SizeTag.SMALL, SizeTag.MEDIUM, SizeTag.LARGE, SizeTag.ORIGINAL)


class Tier(str, Enum):
    """Trust tier of a candidate set, strongest first."""

    NETWORK = "network"
    DOM = "dom"
    DOCUMENT = "document"


@dataclass(frozen=True)
class Item:
    """One pin with its resolution variants."""

    id: str
    image_variants: Mapping[SizeTag, str]
    title: Optional[str] = None
    description: Optional[str] = None
    collection_id: Optional[str] = None

    def __post_init__(self):
        # Freeze the mapping so a merged item cannot be mutated afterwards
        object.__setattr__(self, "image_variants", MappingProxyType(dict(self.image_variants)))

    @property
    def thumbnail(self) -> Optional[str]:
        return self.image_variants.get(SizeTag.SMALL)

    @property
    def identity_hash(self) -> Optional[str]:
        from .pin_urls import identity_hash

        for tag in (SizeTag.SMALL, SizeTag.MEDIUM, SizeTag.LARGE, SizeTag.ORIGINAL, SizeTag.TINY):
            url = self.image_variants.get(tag)
            if url:
                return identity_hash(url)
        return None

    def url_for(self, size: SizeTag) -> Optional[str]:
        return self.image_variants.get(size)

    def with_collection(self, collection_id: Optional[str]) -> "Item":
        if not collection_id or self.collection_id:
            return self
        return Item(
            id=self.id,
            image_variants=self.image_variants,
            title=self.title,
            description=self.description,
            collection_id=collection_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.thumbnail,
            "thumbnail": self.image_variants.get(SizeTag.SMALL),
            "medium": self.image_variants.get(SizeTag.MEDIUM),
            "large": self.image_variants.get(SizeTag.LARGE),
            "original": self.image_variants.get(SizeTag.ORIGINAL),
            "title": self.title or "",
            "description": self.description or "",
            "boardId": self.collection_id,
        }


@dataclass
class CollectionInfo:
    """Board metadata. ``expected_count`` is advisory and never a stop condition."""

    id: str
    name: str
    source_url: str
    expected_count: Optional[int] = None
    owner_handle: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.source_url,
            "pinCount": self.expected_count,
            "owner": self.owner_handle or "",
        }


@dataclass
class CandidateSet:
    """Output contract shared by every extractor in the strategy chain."""

    strategy: str
    tier: Tier
    items: List[Item] = field(default_factory=list)
    raw_urls: List[str] = field(default_factory=list)

    def __len__(self):
        return len(self.items)


@dataclass
class ScrapeResult:
    """What the selection/packaging layer consumes."""

    items: List[Item]
    collection: CollectionInfo
    provenance: str
    summary: str
    completion_percentage: Optional[int] = None
    no_content: bool = False
    truncated: Optional[str] = None
    strategy_counts: Dict[str, int] = field(default_factory=dict)
    execution_ms: int = 0
    errors: List[str] = field(default_factory=list)
    download_report: Optional[Any] = None

    @property
    def success(self) -> bool:
        return not self.no_content

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "method": self.provenance,
            "totalPinsFound": len(self.items),
            "targetPins": self.collection.expected_count or len(self.items),
            "completionPercentage": self.completion_percentage,
            "executionTimeMs": self.execution_ms,
            "images": [item.to_dict() for item in self.items],
            "boardInfo": self.collection.to_dict(),
            "metadata": {
                "strategyCounts": dict(self.strategy_counts),
                "truncated": self.truncated,
                "errors": list(self.errors),
            },
            "message": self.summary,
        }
        if self.download_report is not None:
            data["downloads"] = self.download_report.to_dict()
        return data
