"""
===============================================================================
sites.py: Recipe URL discovery for ICA.se and Koket.se
===============================================================================

-------------------------------------------------------------------------------
Purpose:
    Collects up to `limit` recipe page URLs for one site in two phases:

    1) Sitemap phase
         fetch the site sitemap; if it is a sitemap index, pick the
         sub-sitemaps the site strategy selects and follow each, recursing
         through nested indexes until plain sitemaps are reached; scan
         every plain sitemap for recipe URLs.
    2) Category phase (only while under the limit)
         fetch fixed category listing pages and keep every <a href> that
         resolves to a recipe URL.

    Each site is a SiteStrategy subclass holding its URLs, its recipe-URL
    predicate and its sub-sitemap selection policy:
        • ICA:   only sub-sitemaps mentioning recept/recipe
        • Koket: recept/recipe/koket, and when nothing matches every
                 listed sub-sitemap is tried

-------------------------------------------------------------------------------
Notes:
    • A failed sitemap or category fetch is logged and skipped.
    • Each sitemap URL is fetched at most once per discovery, so index cycles end.
    • Results are de-duplicated and never longer than `limit`.

===============================================================================
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Sequence, Set
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from recipe_ingest.fetcher import Fetcher

log = logging.getLogger(__name__)


# ================== Site strategies ==================
class SiteStrategy:
    name: str = ""
    origin: str = ""
    sitemap_urls: Sequence[str] = ()
    category_urls: Sequence[str] = ()
    sitemap_keywords: Sequence[str] = ("recept", "recipe")

    def is_recipe_url(self, url: str) -> bool:
        raise NotImplementedError

    def matching_sub_sitemaps(self, locs: List[str]) -> List[str]:
        return [loc for loc in locs if any(k in loc for k in self.sitemap_keywords)]

    def select_sub_sitemaps(self, locs: List[str]) -> List[str]:
        return self.matching_sub_sitemaps(locs)


class IcaStrategy(SiteStrategy):
    name = "ica"
    origin = "https://www.ica.se"
    sitemap_urls = ("https://www.ica.se/sitemap.xml",)
    category_urls = (
        "https://www.ica.se/recept/middag/",
        "https://www.ica.se/recept/lunch/",
        "https://www.ica.se/recept/frukost/",
        "https://www.ica.se/recept/efterratt/",
        "https://www.ica.se/recept/vegetariskt/",
        "https://www.ica.se/recept/fisk-och-skaldjur/",
        "https://www.ica.se/recept/kyckling/",
        "https://www.ica.se/recept/pasta/",
        "https://www.ica.se/recept/soppor/",
        "https://www.ica.se/recept/sallad/",
        "https://www.ica.se/recept/bakning/",
    )

    # https://www.ica.se/recept/kycklinggryta-med-curry-723456/
    _RECIPE_RE = re.compile(r"^https://www\.ica\.se/recept/[a-z0-9-]+-\d+/?$")

    def is_recipe_url(self, url: str) -> bool:
        return bool(self._RECIPE_RE.match(url))


class KoketStrategy(SiteStrategy):
    name = "koket"
    origin = "https://www.koket.se"
    sitemap_urls = ("https://www.koket.se/sitemap.xml",)
    sitemap_keywords = ("recept", "recipe", "koket")
    category_urls = (
        "https://www.koket.se/recept/middag",
        "https://www.koket.se/recept/lunch",
        "https://www.koket.se/recept/frukost",
        "https://www.koket.se/recept/dessert",
        "https://www.koket.se/recept/vegetariskt",
        "https://www.koket.se/recept/fisk",
        "https://www.koket.se/recept/kyckling",
        "https://www.koket.se/recept/pasta",
        "https://www.koket.se/recept/soppa",
        "https://www.koket.se/recept/sallad",
        "https://www.koket.se/recept/bakning",
    )
    excluded_prefixes = (
        "/recept/",
        "/mat-och-dryck/",
        "/vin/",
        "/inspiration/",
        "/videorecept/",
        "/blogg/",
        "/om-koket/",
        "/sok/",
        "/ingrediens/",
    )

    def is_recipe_url(self, url: str) -> bool:
        # https://www.koket.se/pasta-med-kramig-svampsas
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        if parsed.hostname != "www.koket.se":
            return False
        path = parsed.path
        if path in ("", "/"):
            return False
        if path.startswith(self.excluded_prefixes):
            return False
        segments = [s for s in path.split("/") if s]
        return len(segments) == 1 and "-" in segments[0]

    def select_sub_sitemaps(self, locs: List[str]) -> List[str]:
        return self.matching_sub_sitemaps(locs) or list(locs)


STRATEGIES: Dict[str, SiteStrategy] = {
    "ica": IcaStrategy(),
    "koket": KoketStrategy(),
}


# ================== Helpers ==================
def _locs(soup: BeautifulSoup, parent: str) -> List[str]:
    out = []
    for node in soup.find_all(parent):
        loc = node.find("loc", recursive=False)
        if loc and loc.get_text(strip=True):
            out.append(loc.get_text(strip=True))
    return out


class _Collector:
    """Ordered, de-duplicated URL list with a hard cap."""

    def __init__(self, limit: int):
        self.limit = limit
        self.urls: List[str] = []
        self._seen = set()

    @property
    def full(self) -> bool:
        return len(self.urls) >= self.limit

    def add(self, url: str) -> None:
        if not self.full and url not in self._seen:
            self._seen.add(url)
            self.urls.append(url)


def _scan_leaf_sitemap(soup: BeautifulSoup, strategy: SiteStrategy, found: _Collector) -> None:
    for loc in _locs(soup, "url"):
        if found.full:
            return
        if strategy.is_recipe_url(loc):
            found.add(loc)


# ================== Phases ==================
def _walk_sitemap(url: str, strategy: SiteStrategy, fetcher: Fetcher,
                  found: _Collector, visited: Set[str]) -> None:
    """Scan one sitemap; an index is followed through its selected sub-sitemaps, depth first."""
    if found.full or url in visited:
        return
    visited.add(url)
    try:
        log.info("[%s] fetching sitemap %s", strategy.name, url)
        soup = BeautifulSoup(fetcher.get_text(url), "xml")
    except Exception as e:
        log.warning("[%s] failed to fetch sitemap %s: %s", strategy.name, url, e)
        return

    sub_locs = _locs(soup, "sitemap")
    if not sub_locs:
        _scan_leaf_sitemap(soup, strategy, found)
        log.info("[%s] collected %d URLs so far", strategy.name, len(found.urls))
        return

    candidates = strategy.select_sub_sitemaps(sub_locs)
    log.info("[%s] %d sub-sitemap(s) to check in %s", strategy.name, len(candidates), url)
    for sub_url in candidates:
        if found.full:
            return
        _walk_sitemap(sub_url, strategy, fetcher, found, visited)


def _sitemap_phase(strategy: SiteStrategy, fetcher: Fetcher, found: _Collector) -> None:
    visited: Set[str] = set()
    for sitemap_url in strategy.sitemap_urls:
        _walk_sitemap(sitemap_url, strategy, fetcher, found, visited)


def _category_phase(strategy: SiteStrategy, fetcher: Fetcher, found: _Collector) -> None:
    log.info("[%s] supplementing with category pages", strategy.name)
    for cat_url in strategy.category_urls:
        if found.full:
            return
        try:
            soup = BeautifulSoup(fetcher.get_text(cat_url), "lxml")
        except Exception as e:
            log.warning("[%s] failed to crawl category %s: %s", strategy.name, cat_url, e)
            continue
        for a in soup.find_all("a", href=True):
            if found.full:
                break
            full_url = urljoin(strategy.origin + "/", a["href"].strip())
            if strategy.is_recipe_url(full_url):
                found.add(full_url)
        log.info("[%s] collected %d URLs after %s", strategy.name, len(found.urls), cat_url)


def discover_urls(strategy: SiteStrategy, fetcher: Fetcher, limit: int) -> List[str]:
    if limit <= 0:
        return []
    log.info("[%s] discovering recipe URLs (limit %d)", strategy.name, limit)
    found = _Collector(limit)

    _sitemap_phase(strategy, fetcher, found)
    if not found.full:
        _category_phase(strategy, fetcher, found)

    log.info("[%s] discovered %d recipe URLs", strategy.name, len(found.urls))
    return found.urls[:limit]
