"""CLI entrypoint for the topper enrichment batch job."""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Any

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.collection import Collection

from config import ConfigError, Settings
from enrich import enrich_topper
from models import Topper
from store import find_backlog

MONGO_MAX_POOL_SIZE = 10
OUTCOME_FAILED = "failed"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Enrich toppers with researched bio, strategy and insights")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of toppers to select (overrides TEST_LIMIT)")
    parser.add_argument("--concurrency", type=int, default=None, help="Number of worker threads (overrides CONCURRENCY)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only list the toppers that would be processed, without API calls or writes",
    )
    return parser.parse_args(argv)


def process_backlog(
    documents: list[dict[str, Any]],
    collection: Collection,
    settings: Settings,
) -> Counter[str]:
    """Run every document through the pipeline on a bounded worker pool.

    A record that blows up is logged and counted as failed; the others keep
    going. Returns a count per outcome label.
    """
    outcomes: Counter[str] = Counter()
    workers = max(1, settings.concurrency)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="enrich") as pool:
        futures = {pool.submit(enrich_topper, doc, collection, settings): doc for doc in documents}
        for future in as_completed(futures):
            doc = futures[future]
            try:
                outcomes[future.result()] += 1
            except Exception as exc:
                outcomes[OUTCOME_FAILED] += 1
                logging.exception("Failed processing topper _id=%s: %s", doc.get("_id"), exc)

    return outcomes


def run(settings: Settings, dry_run: bool = False) -> Counter[str]:
    """Select the backlog once and drain it."""
    logging.info("Connecting to MongoDB...")
    client: MongoClient = MongoClient(settings.mongo_url, maxPoolSize=MONGO_MAX_POOL_SIZE)
    try:
        collection = client[settings.db_name][settings.collection]
        documents = find_backlog(collection, settings.batch_limit)

        if not documents:
            logging.info("No toppers found matching the query. Exiting.")
            return Counter()

        if dry_run:
            for doc in documents:
                topper = Topper.from_document(doc)
                rank = topper.rank if topper.rank is not None else "?"
                logging.info("[dry-run] Would process: %s (AIR %s)", topper.full_name, rank)
            return Counter()

        outcomes = process_backlog(documents, collection, settings)
        logging.info(
            "Run complete. selected=%s %s",
            len(documents),
            " ".join(f"{label}={count}" for label, count in sorted(outcomes.items())),
        )
        return outcomes
    finally:
        client.close()


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute the batch."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        for problem in exc.problems:
            logging.error("Configuration error: %s", problem)
        return 1

    overrides: dict[str, int] = {}
    if args.limit is not None and args.limit > 0:
        overrides["batch_limit"] = args.limit
    if args.concurrency is not None and args.concurrency > 0:
        overrides["concurrency"] = args.concurrency
    if overrides:
        settings = replace(settings, **overrides)

    try:
        run(settings, dry_run=args.dry_run)
    except Exception as exc:
        logging.exception("Fatal error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
