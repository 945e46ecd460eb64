"""
Pin Urls

Description: URL helpers for pin images and board pages (size substitution, identity hashes)
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
from typing import Dict, Optional, Tuple, Union
from urllib.parse import urlparse

from .models import POPULATED_SIZES, SizeTag

PIN_CDN_HOST = "i.pinimg.com"

# https://i.pinimg.com/{segment}/ab/cd/ef/<hash>.jpg
_SIZE_SEGMENT_RE = re.compile(r"^(https?://i\.pinimg\.com/)([^/]+)/")
_IDENTITY_HASH_RE = re.compile(r"^[0-9a-f]{16,}$", re.IGNORECASE)

# First path segments that are site sections, not board owners
RESERVED_BOARD_PREFIXES = {
    "pin", "search", "ideas", "today", "settings", "login", "signup",
    "business", "resource", "_", "explore", "categories",
}

_BOARD_URL_PATTERNS = [
    re.compile(r"^(?:[\w-]+\.)?pinterest\.[a-z.]+$", re.IGNORECASE),
]


def size_segment(url: str) -> Optional[str]:
    """Return the resolution segment (``236x``, ``originals``...) of a CDN URL."""
    if not url:
        return None
    match = _SIZE_SEGMENT_RE.match(url)
    return match.group(2) if match else None


def transform_image_url(url: str, size: Union[SizeTag, str]) -> str:
    """
    Swap the resolution segment of a pin CDN URL.

    Pure string transform: non-CDN URLs are returned untouched, and applying the
    same target twice gives the same URL as applying it once.
    """
    if not url:
        return url
    if not isinstance(size, SizeTag):
        # Tag values ("large") are coerced; anything else is taken as a raw segment ("736x")
        try:
            size = SizeTag(size)
        except ValueError:
            pass
    segment = size.segment if isinstance(size, SizeTag) else str(size)
    return _SIZE_SEGMENT_RE.sub(lambda m: f"{m.group(1)}{segment}/", url, count=1)


def identity_hash(url: str) -> Optional[str]:
    """Filename of the URL without its extension; shared by every resolution of one asset."""
    if not url:
        return None
    try:
        path = urlparse(url).path
    except ValueError:
        path = url
    last = [part for part in path.split("/") if part]
    if not last:
        return None
    base = last[-1].split(".")[0]
    return base or None


def is_valid_identity_hash(value: Optional[str]) -> bool:
    """Content hashes are long hex strings; UI asset names are not."""
    return bool(value) and bool(_IDENTITY_HASH_RE.match(value))


def build_variants(url: str, known: Optional[Dict[SizeTag, str]] = None) -> Dict[SizeTag, str]:
    """Fill every populated size from any single variant URL, keeping known URLs as-is."""
    variants: Dict[SizeTag, str] = {}
    known = known or {}
    for tag in POPULATED_SIZES:
        variants[tag] = known.get(tag) or transform_image_url(url, tag)
    if SizeTag.TINY in known:
        variants[SizeTag.TINY] = known[SizeTag.TINY]
    return variants


def is_board_host(url: str) -> bool:
    try:
        host = urlparse(url).netloc.lower()
    except ValueError:
        return False
    return any(pattern.match(host) for pattern in _BOARD_URL_PATTERNS)


def parse_board_url(board_url: str) -> Optional[Tuple[str, str]]:
    """Extract ``(owner, slug)`` from ``pinterest.com/{owner}/{slug}/``."""
    if not board_url or not is_board_host(board_url):
        return None
    path_parts = [part for part in urlparse(board_url).path.split("/") if part]
    if len(path_parts) < 2:
        return None
    owner, slug = path_parts[0], path_parts[1]
    if owner.lower() in RESERVED_BOARD_PREFIXES:
        return None
    if slug in ("pins", "following", "followers", "_saved", "_created"):
        return None
    return owner, slug


def board_source_path(owner: str, slug: str) -> str:
    return f"/{owner}/{slug}/"
