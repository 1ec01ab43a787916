# runner.py
"""
Pipeline drivers.

Crawl:
  1) discover recipe URLs per site (recipe_ingest.sites.discover_urls)
  2) for each URL: fetch → extract JSON-LD → transform → insert
  3) tally inserted / skipped / errors; one bad URL never stops the run

Enrichment:
  1) read ingredient names still lacking nutrition from the store
  2) fetch the Livsmedelsverket food list once
  3) per name: best match above threshold → nutrient breakdown → upsert + link

Both are invoked from main.py.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Literal, Optional, Tuple

from recipe_ingest.datasets import CrawlStats, EnrichStats
from recipe_ingest.fetcher import Fetcher
from recipe_ingest.jsonld import extract_recipe
from recipe_ingest.nutrition_info import (
    DEFAULT_THRESHOLD,
    LivsmedelsverketClient,
    best_match,
    extract_macros,
)
from recipe_ingest.sites import STRATEGIES, discover_urls
from recipe_ingest.store import (
    Database,
    ingredient_names_needing_nutrition,
    insert_recipe,
    save_ingredient_nutrition,
)
from recipe_ingest.transform import transform_recipe

log = logging.getLogger("recipe_ingest.runner")

Source = Literal["ica", "koket", "all"]
Status = Literal["inserted", "skipped", "error"]

PROGRESS_EVERY = 10


@dataclass
class CrawlOutcome:
    status: Status
    reason: str = ""


# =============== Crawl ==================================================
def split_limit(source: Source, limit: int) -> List[Tuple[str, int]]:
    """Per-site limits; 'all' gives ICA the ceiling half and Koket the floor half."""
    if source == "all":
        return [("ica", math.ceil(limit / 2)), ("koket", limit // 2)]
    return [(source, limit)]


def discover_all(source: Source, fetcher: Fetcher, limit: int) -> List[Tuple[str, str]]:
    found: List[Tuple[str, str]] = []
    for site, site_limit in split_limit(source, limit):
        urls = discover_urls(STRATEGIES[site], fetcher, site_limit)
        found.extend((url, site) for url in urls)
    return found[:limit]


def process_url(fetcher: Fetcher, db: Database, url: str) -> CrawlOutcome:
    try:
        html = fetcher.get_text(url)

        doc = extract_recipe(html)
        if doc is None:
            return CrawlOutcome("skipped", "no structured data")

        recipe = transform_recipe(doc, url)
        if recipe is None:
            return CrawlOutcome("skipped", "transform failed")

        if not insert_recipe(db, recipe):
            return CrawlOutcome("skipped", "duplicate")
        return CrawlOutcome("inserted")
    except Exception as e:
        return CrawlOutcome("error", str(e) or e.__class__.__name__)


def run_crawl(source: Source, limit: int, fetcher: Fetcher, db: Database) -> CrawlStats:
    stats = CrawlStats()
    targets = discover_all(source, fetcher, limit)
    if not targets:
        log.info("no recipe URLs discovered")
        return stats

    total = len(targets)
    log.info("starting to crawl %d recipe URLs", total)
    for url, site in targets:
        stats.crawled += 1
        outcome = process_url(fetcher, db, url)

        if outcome.status == "inserted":
            stats.inserted += 1
        elif outcome.status == "skipped":
            stats.skipped += 1
            log.debug("skipped %s: %s", url, outcome.reason)
        else:
            stats.errors += 1

        if stats.crawled % PROGRESS_EVERY == 0 or stats.crawled == total or outcome.status == "error":
            log.info(
                "crawled %d/%d recipes (inserted: %d, skipped: %d, errors: %d) [%s]",
                stats.crawled, total, stats.inserted, stats.skipped, stats.errors, site,
            )
        if outcome.status == "error":
            log.warning("error on %s: %s", url, outcome.reason)

    return stats


# =============== Enrichment =============================================
def run_enrichment(
    db: Database,
    client: LivsmedelsverketClient,
    threshold: float = DEFAULT_THRESHOLD,
    dry_run: bool = False,
    delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichStats:
    stats = EnrichStats()
    names = ingredient_names_needing_nutrition(db)
    stats.candidates = len(names)
    log.info("found %d ingredient names needing nutrition data", len(names))
    if not names:
        return stats

    log.info("fetching food list from Livsmedelsverket")
    foods = client.list_foods()
    log.info("fetched %d food items", len(foods))

    for name in names:
        match, score = best_match(name, foods)
        if match is None or score < threshold:
            log.info("SKIP %r: no good match (best score: %.1f)", name, score)
            stats.skipped += 1
            continue

        log.info("MATCH %r -> %r (score: %.1f, id: %s)", name, match.name, score, match.number)
        if dry_run:
            stats.enriched += 1
            continue

        try:
            profile = extract_macros(client.nutrient_values(match.number))
            if profile.is_empty():
                log.info("no useful nutrition data for %r, skipping", name)
                stats.skipped += 1
                continue

            linked = save_ingredient_nutrition(db, name, match.group, profile)
            stats.enriched += 1
            log.info(
                "enriched %r: cal=%s prot=%s carbs=%s fat=%s fiber=%s (%d lines linked)",
                name, profile.calories, profile.protein, profile.carbs, profile.fat, profile.fiber, linked,
            )
        except Exception as e:
            stats.errors += 1
            log.error("error enriching %r from food %s: %s", name, match.number, e)
        finally:
            sleep(delay)

    return stats


def format_summary(title: str, rows: List[Tuple[str, int]], note: Optional[str] = None) -> str:
    width = max(len(label) for label, _ in rows) + 2
    lines = ["", "=" * len(title), title, "=" * len(title)]
    lines += [f"{(label + ':').ljust(width)} {value}" for label, value in rows]
    if note:
        lines.append(note)
    return "\n".join(lines)
