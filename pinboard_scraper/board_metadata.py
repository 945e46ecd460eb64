"""
Board Metadata

Description: Best-effort board name / pin count resolution, for reporting only
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
from typing import Any, Optional

from .json_tree import TreeSearch, find_first, get_path
from .models import CollectionInfo

logger = logging.getLogger("pinboard_scraper")

PIN_COUNT_PATTERNS = [
    re.compile(r'"pin_count":\s*(\d+)'),
    re.compile(r"'pin_count':\s*(\d+)"),
    re.compile(r'"board_pin_count":\s*(\d+)'),
    re.compile(r'"pinCount":\s*(\d+)'),
    re.compile(r'"pin_count":\s*"(\d+)"'),
    re.compile(r'pin_count["\']?\s*:\s*(\d+)'),
]

BOARD_NAME_PATTERNS = [
    re.compile(r'"board_name":\s*"([^"]{1,200})"'),
    re.compile(r'"boardName":\s*"([^"]{1,200})"'),
    re.compile(r'"board":\s*\{[^{}]*?"name":\s*"([^"]{1,200})"'),
]


def _is_board_node(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    if node.get("type") == "board" and node.get("name"):
        return True
    has_count = isinstance(node.get("pin_count"), int) or isinstance(node.get("board_pin_count"), int)
    return bool(node.get("name")) and has_count and ("board_id" in node or "url" in node)


def _owner_of(node: dict) -> Optional[str]:
    for key in ("owner", "user"):
        value = node.get(key)
        if isinstance(value, dict) and value.get("username"):
            return value["username"]
    return None


class BoardMetadataResolver:
    """
    Resolves :class:`CollectionInfo` for a board.

    The expected count found here only feeds the completion estimate in the
    summary; nothing in the pipeline stops or gates on it.
    """

    def __init__(self, board_url: str, owner: Optional[str], slug: Optional[str]):
        self.board_url = board_url
        self.owner = owner
        self.slug = slug

    def fallback(self) -> CollectionInfo:
        name = self.slug or "board"
        board_id = f"{self.owner}/{self.slug}" if self.owner and self.slug else name
        return CollectionInfo(
            id=board_id,
            name=name,
            source_url=self.board_url,
            expected_count=None,
            owner_handle=self.owner,
        )

    def from_board_node(self, board: Any) -> Optional[CollectionInfo]:
        """Build metadata from a board object as returned by the feed resources."""
        if not isinstance(board, dict):
            return None
        info = self.fallback()
        if board.get("id") or board.get("board_id"):
            info.id = str(board.get("id") or board.get("board_id"))
        if board.get("name"):
            info.name = str(board["name"])
        count = board.get("pin_count", board.get("board_pin_count"))
        if isinstance(count, int):
            info.expected_count = count
        info.owner_handle = _owner_of(board) or self.owner
        return info

    def from_feed_response(self, data: Any) -> Optional[CollectionInfo]:
        board = get_path(data, "resource_response.data.board")
        return self.from_board_node(board)

    def from_blob(self, data: Any) -> CollectionInfo:
        """Structured lookup first, then string search over the serialized blob."""
        search = TreeSearch(match=_is_board_node, extract=lambda node: node, max_depth=12)
        board = find_first(data, search)
        info = self.from_board_node(board) if board else None
        if info is None:
            info = self.fallback()

        if info.expected_count is None or info.name == self.slug:
            try:
                serialized = json.dumps(data)
            except (TypeError, ValueError):
                serialized = ""
            if info.expected_count is None:
                info.expected_count = self.search_pin_count(serialized)
            if info.name == self.slug or not info.name:
                info.name = self.search_board_name(serialized) or info.name
        logger.debug("Board metadata resolved: %s (%s pins)", info.name, info.expected_count)
        return info

    @staticmethod
    def search_pin_count(text: str) -> Optional[int]:
        if not text:
            return None
        for pattern in PIN_COUNT_PATTERNS:
            match = pattern.search(text)
            if match:
                return int(match.group(1))
        if "pin_count" in text:
            # Last resort: first number after the key
            number = re.search(r"(\d+)", text.split("pin_count", 1)[1])
            if number:
                return int(number.group(1))
        return None

    @staticmethod
    def search_board_name(text: str) -> Optional[str]:
        if not text:
            return None
        for pattern in BOARD_NAME_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None
