"""
Locate schema.org structured data embedded in a page.

Blocks are read in document order; for each block that parses as JSON the
candidates are checked as:
    1) items of an "@graph" array
    2) the top-level object itself
    3) items of a top-level array
The first object whose "@type" is (or contains) the target type wins.

Dependencies: BeautifulSoup4 (lxml)
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, Optional

from bs4 import BeautifulSoup

log = logging.getLogger(__name__)

JSONLD_TYPE = "application/ld+json"


def is_type(obj: Any, target_type: str = "Recipe") -> bool:
    if not isinstance(obj, dict):
        return False
    t = obj.get("@type")
    if isinstance(t, str):
        return t == target_type
    if isinstance(t, list):
        return target_type in t
    return False


def _jsonld_blocks(html: str) -> Iterator[Any]:
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all("script", attrs={"type": JSONLD_TYPE}):
        text = tag.string or tag.get_text()
        if not text or not text.strip():
            continue
        try:
            yield json.loads(text)
        except ValueError:
            log.debug("skipping invalid JSON-LD block")
            continue


def _match_in_block(data: Any, target_type: str) -> Optional[Dict[str, Any]]:
    if isinstance(data, dict):
        graph = data.get("@graph")
        if isinstance(graph, list):
            for item in graph:
                if is_type(item, target_type):
                    return item
        if is_type(data, target_type):
            return data
    elif isinstance(data, list):
        for item in data:
            if is_type(item, target_type):
                return item
    return None


def extract_recipe(html: str, target_type: str = "Recipe") -> Optional[Dict[str, Any]]:
    """Return the first JSON-LD object of `target_type` in the page, or None."""
    for data in _jsonld_blocks(html):
        found = _match_in_block(data, target_type)
        if found is not None:
            return found
    return None
