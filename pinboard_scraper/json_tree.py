"""
Json Tree

Description: Depth-bounded visitor over loosely structured JSON (object / array / scalar)
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

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")

DEFAULT_MAX_DEPTH = 10

_MISSING = object()


@dataclass
class TreeSearch(Generic[T]):
    """
    One search over a JSON tree.

    ``match`` decides whether a node is interesting, ``extract`` turns a matching
    node into a result (returning None drops it), and ``skip`` prunes a whole
    subtree, called with the key the node hangs under (None for list entries).
    """

    match: Callable[[Any], bool]
    extract: Callable[[Any], Optional[T]]
    skip: Optional[Callable[[Optional[str], Any], bool]] = None
    max_depth: int = DEFAULT_MAX_DEPTH
    descend_into_matches: bool = True


def iter_matches(tree: Any, search: TreeSearch[T]) -> Iterator[T]:
    """Yield extracted results in document order."""
    # Explicit stack keeps the walk iterative; reversed pushes preserve order
    stack: List[tuple] = [(None, tree, 0)]
    while stack:
        key, node, depth = stack.pop()
        if depth > search.max_depth:
            continue
        if not isinstance(node, (dict, list)):
            continue
        if search.skip is not None and search.skip(key, node):
            continue

        matched = False
        if search.match(node):
            matched = True
            result = search.extract(node)
            if result is not None:
                yield result
        if matched and not search.descend_into_matches:
            continue

        if isinstance(node, dict):
            children = list(node.items())
        else:
            children = [(None, child) for child in node]
        for child_key, child in reversed(children):
            stack.append((child_key, child, depth + 1))


def find_all(tree: Any, search: TreeSearch[T]) -> List[T]:
    return list(iter_matches(tree, search))


def find_first(tree: Any, search: TreeSearch[T]) -> Optional[T]:
    for result in iter_matches(tree, search):
        return result
    return None


def get_path(tree: Any, path: str, default: Any = None) -> Any:
    """Safe dotted lookup; numeric parts index into lists (``a.b.0.c``)."""
    current = tree
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part, _MISSING)
        elif isinstance(current, list) and part.lstrip("-").isdigit():
            index = int(part)
            current = current[index] if -len(current) <= index < len(current) else _MISSING
        else:
            current = _MISSING
        if current is _MISSING:
            return default
    return current


def first_path(tree: Any, paths: Iterable[str]) -> Any:
    """Try paths in order and return the first non-empty value."""
    for path in paths:
        value = get_path(tree, path)
        if value not in (None, "", [], {}):
            return value
    return None
