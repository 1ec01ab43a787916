"""
===============================================================================
main.py: Command-line entry point for the recipe ingestion pipeline
===============================================================================

-------------------------------------------------------------------------------
Usage:
    python main.py crawl --source ica --limit 200
    python main.py crawl --source koket --limit 100
    python main.py crawl --source all --limit 500
    python main.py enrich [--dry-run]

    (installed: `recipe-ingest crawl ...` / `recipe-ingest enrich ...`)

-------------------------------------------------------------------------------
Behaviour:
    crawl   discovers recipe pages on ICA.se / Koket.se and stores every
            recipe found in their JSON-LD data.
    enrich  links stored ingredient names to Livsmedelsverket foods and
            fills in calories / protein / carbs / fat / fiber.
            --dry-run logs matches but fetches no details and writes nothing.

-------------------------------------------------------------------------------
Exit codes:
    0  run finished (per-recipe / per-ingredient errors are only counted)
    1  fatal setup failure (configuration, database unreachable, food list)
    2  invalid command-line arguments

===============================================================================
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from recipe_ingest.config import ConfigError, load_crawler_settings, load_enrichment_settings
from recipe_ingest.fetcher import Fetcher, RateLimiter
from recipe_ingest.logging_setup import setup_logging
from recipe_ingest.nutrition_info import LivsmedelsverketClient
from recipe_ingest.store import Database
from runner import format_summary, run_crawl, run_enrichment

log = logging.getLogger("recipe_ingest.main")

DB_HINT = ("Make sure POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DATABASE, "
           "POSTGRES_USER, and POSTGRES_PASSWORD are set.")


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid --limit value: {value}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"invalid --limit value: {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="recipe-ingest", description="Recipe crawler and nutrition enrichment")
    sub = parser.add_subparsers(dest="command", required=True)

    crawl = sub.add_parser("crawl", help="crawl ICA.se / Koket.se recipes into the database")
    crawl.add_argument("--source", type=str.lower, choices=["ica", "koket", "all"], default="all")
    crawl.add_argument("--limit", type=_positive_int, default=200)

    enrich = sub.add_parser("enrich", help="enrich ingredients with Livsmedelsverket nutrition data")
    enrich.add_argument("--dry-run", action="store_true", help="match and log only, no writes")
    return parser


def _connect(settings) -> Database:
    db = Database.from_settings(settings)
    db.ping()
    return db


def _crawl(args) -> int:
    settings = load_crawler_settings()
    setup_logging(settings.log_level, settings.log_json)

    print(f"\nRecipe Crawler\n==============\nSource: {args.source}\nLimit:  {args.limit}\n")
    try:
        db = _connect(settings)
    except Exception as e:
        print(f"[ERROR] Failed to connect to database: {e}\n{DB_HINT}", file=sys.stderr)
        return 1
    log.info("database connection established")

    try:
        fetcher = Fetcher(RateLimiter(settings.crawl_min_delay), timeout=settings.http_timeout)
        stats = run_crawl(args.source, args.limit, fetcher, db)
    finally:
        db.close()

    print(format_summary("Crawl Complete", [
        ("Total crawled", stats.crawled),
        ("Inserted", stats.inserted),
        ("Skipped/dupes", stats.skipped),
        ("Errors", stats.errors),
    ]))
    return 0


def _enrich(args) -> int:
    settings = load_enrichment_settings()
    setup_logging(settings.log_level, settings.log_json)
    if args.dry_run:
        print("DRY RUN - no database changes will be made\n")

    try:
        db = _connect(settings)
    except Exception as e:
        print(f"[ERROR] Failed to connect to database: {e}\n{DB_HINT}", file=sys.stderr)
        return 1

    try:
        fetcher = Fetcher(RateLimiter(settings.crawl_min_delay), timeout=settings.http_timeout)
        client = LivsmedelsverketClient(fetcher, settings.nutrition_api_url)
        stats = run_enrichment(
            db, client,
            threshold=settings.match_threshold,
            dry_run=args.dry_run,
            delay=settings.enrich_delay,
        )
    except Exception as e:
        print(f"[ERROR] Enrichment failed: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(format_summary("Enrichment Complete", [
        ("Candidates", stats.candidates),
        ("Enriched", stats.enriched),
        ("Skipped", stats.skipped),
        ("Errors", stats.errors),
    ], note="(dry run)" if args.dry_run else None))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "crawl":
            return _crawl(args)
        return _enrich(args)
    except ConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
