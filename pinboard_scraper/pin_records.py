"""
Pin Records

Description: Converts raw pin JSON records (embedded blob, feed and detail responses) into Items
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

import re
from typing import Any, Dict, Iterable, List, Optional

from .json_tree import first_path
from .models import Item, SizeTag
from .pin_urls import PIN_CDN_HOST, build_variants

# Canonical thumbnail key every real pin record carries in its ``images`` map
THUMBNAIL_KEY = "236x"

_PIN_ID_RE = re.compile(r"^\d{8,}$")

# images map key -> size tag, in preference order per tag
_IMAGE_KEYS = {
    SizeTag.TINY: ("170x",),
    SizeTag.SMALL: ("236x",),
    SizeTag.MEDIUM: ("474x", "564x"),
    SizeTag.LARGE: ("736x", "564x"),
    SizeTag.ORIGINAL: ("orig", "originals"),
}

RESULTS_PATHS = (
    "resource_response.data.results",
    "resource_response.data",
)

BOOKMARK_PATHS = (
    "resource.options.bookmarks.0",
    "resource_response.bookmark",
    "resource_response.data.bookmark",
    "bookmark",
)


def is_pin_id(value: Any) -> bool:
    return value is not None and bool(_PIN_ID_RE.match(str(value)))


def _image_url(images: Dict[str, Any], key: str) -> Optional[str]:
    entry = images.get(key)
    if isinstance(entry, dict):
        url = entry.get("url")
        if isinstance(url, str) and url:
            return url
    return None


def thumbnail_url(record: Any) -> Optional[str]:
    if not isinstance(record, dict):
        return None
    images = record.get("images")
    if not isinstance(images, dict):
        return None
    return _image_url(images, THUMBNAIL_KEY)


def is_pin_record(node: Any) -> bool:
    """A pin-like node: long numeric id plus an image map holding the thumbnail key."""
    if not isinstance(node, dict) or not is_pin_id(node.get("id")):
        return False
    url = thumbnail_url(node)
    return bool(url) and PIN_CDN_HOST in url


def item_from_record(record: Any, collection_id: Optional[str] = None) -> Optional[Item]:
    """Build an Item from a pin record, or None when the record is not a usable pin."""
    if not is_pin_record(record):
        return None
    images = record["images"]
    thumb = _image_url(images, THUMBNAIL_KEY)

    known: Dict[SizeTag, str] = {}
    for tag, keys in _IMAGE_KEYS.items():
        for key in keys:
            url = _image_url(images, key)
            if url:
                known[tag] = url
                break

    board = record.get("board")
    board_id = board.get("id") if isinstance(board, dict) else None
    return Item(
        id=str(record["id"]),
        image_variants=build_variants(thumb, known),
        title=record.get("title") or record.get("grid_title") or None,
        description=record.get("description") or None,
        collection_id=str(board_id) if board_id else collection_id,
    )


def items_from_records(records: Iterable[Any], collection_id: Optional[str] = None) -> List[Item]:
    items = []
    for record in records:
        item = item_from_record(record, collection_id)
        if item is not None:
            items.append(item)
    return items


def results_from_response(data: Any) -> List[Any]:
    """Raw pin records from a feed response; the results list sits at one of two depths."""
    results = first_path(data, RESULTS_PATHS)
    return results if isinstance(results, list) else []


def bookmark_from_response(data: Any) -> Optional[str]:
    """Next continuation token, probing every known nesting path in order."""
    token = first_path(data, BOOKMARK_PATHS)
    return token if isinstance(token, str) and token else None
