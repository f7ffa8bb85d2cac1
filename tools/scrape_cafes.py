#!/usr/bin/env python3
"""
CLI tool for ingesting cafe reviews into the venue database.

Usage:
    python tools/scrape_cafes.py ChIJN1t_tDeuEmsRUsoyG83frY4 --output data/cafe_compass.db
    python tools/scrape_cafes.py --json-dir exports/ --output data/cafe_compass.db

Options:
    PLACE_ID ...          Google place ids to scrape
    --places-file         File with one place id per line
    --json-dir            Directory of exported reviews-v3 responses (<place_id>.json)
    --output, -o          Database path (default: data/cafe_compass.db)
    --reviews-limit       Max reviews fetched per venue (default: 100)
    --api-key             Outscraper API key (defaults to OUTSCRAPER_API_KEY env var)
    --verbose, -v         Verbose output
    --dry-run             Fetch and report, don't write to database
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.work_friendliness import (
    JSONDirectorySource,
    OutscraperReviewSource,
    ReviewSource,
    VenueStorage,
    WorkFriendlinessError,
    WorkFriendlinessSettings,
    get_settings,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Ingest Google Maps reviews for cafes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    # Source options
    source_group = parser.add_argument_group("Source options")
    source_group.add_argument(
        "place_ids",
        nargs="*",
        help="Google place ids to scrape",
    )
    source_group.add_argument(
        "--places-file",
        type=Path,
        help="File with one place id per line",
    )
    source_group.add_argument(
        "--json-dir",
        type=Path,
        help="Directory containing exported reviews-v3 responses (e.g., <place_id>.json)",
    )
    source_group.add_argument(
        "--reviews-limit",
        type=int,
        default=100,
        help="Max reviews fetched per venue (default: 100)",
    )
    source_group.add_argument(
        "--api-key",
        type=str,
        help="Outscraper API key (defaults to OUTSCRAPER_API_KEY env var)",
    )

    # Output options
    output_group = parser.add_argument_group("Output options")
    output_group.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("data/cafe_compass.db"),
        help="Output database path (default: data/cafe_compass.db)",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and report, don't write to database",
    )

    return parser.parse_args(argv)


def collect_place_ids(args: argparse.Namespace, source: ReviewSource) -> List[str]:
    """Place ids from the command line, the places file, or the JSON directory."""
    place_ids = list(args.place_ids)
    if args.places_file:
        lines = args.places_file.read_text(encoding="utf-8").splitlines()
        place_ids.extend(line.strip() for line in lines if line.strip() and not line.startswith("#"))
    if not place_ids and isinstance(source, JSONDirectorySource):
        place_ids = source.get_venue_ids()
    return list(dict.fromkeys(place_ids))


def create_source(args: argparse.Namespace, settings: WorkFriendlinessSettings) -> ReviewSource:
    """Create review source from arguments."""
    if args.json_dir:
        if not args.json_dir.exists():
            raise WorkFriendlinessError(f"JSON directory not found: {args.json_dir}")
        return JSONDirectorySource(args.json_dir)

    return OutscraperReviewSource(
        api_key=settings.outscraper_api_key,
        base_url=settings.outscraper_base_url,
        reviews_limit=settings.reviews_limit,
        language=settings.language,
        region=settings.region,
        timeout_seconds=settings.fetch_timeout_seconds,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    overrides = {"db_path": args.output, "reviews_limit": args.reviews_limit}
    if args.api_key:
        overrides["outscraper_api_key"] = args.api_key
    settings = get_settings(**overrides)

    try:
        source = create_source(args, settings)
    except WorkFriendlinessError as e:
        logger.error(str(e))
        return 1

    place_ids = collect_place_ids(args, source)
    if not place_ids:
        logger.error("No place ids given. Pass PLACE_ID arguments, --places-file or --json-dir")
        return 1

    logger.info(f"Source: {source.get_source_name()}")
    logger.info(f"Output: {args.output}")

    storage = None if args.dry_run else VenueStorage(settings.db_path)
    fetched = stored = failed = 0
    errors: List[str] = []

    try:
        for place_id in place_ids:
            try:
                result = source.fetch_venue(place_id)
            except WorkFriendlinessError as e:
                failed += 1
                errors.append(f"{place_id}: {e}")
                logger.error(f"Failed to fetch {place_id}: {e}")
                continue

            fetched += 1
            if storage is None:
                logger.info(
                    f"Would store {result.metadata.name} ({place_id}): "
                    f"{len(result.reviews)} reviews"
                )
                continue

            try:
                inserted = storage.write_fetch_result(result)
            except WorkFriendlinessError as e:
                failed += 1
                errors.append(f"{place_id}: {e}")
                logger.error(f"Failed to store {place_id}: {e}")
                continue

            stored += inserted
            logger.info(
                f"Stored {result.metadata.name} ({place_id}): "
                f"{inserted} new of {len(result.reviews)} reviews"
            )
    finally:
        if storage is not None:
            storage.close()
        if isinstance(source, OutscraperReviewSource):
            source.close()

    # Print summary
    print("\n" + "=" * 60)
    print("SCRAPE SUMMARY" + (" (DRY RUN)" if args.dry_run else ""))
    print("=" * 60)
    print(f"Venues requested: {len(place_ids)}")
    print(f"Venues fetched: {fetched}")
    print(f"Failed: {failed}")
    print(f"New reviews stored: {stored}")

    if errors:
        print(f"\nErrors ({len(errors)}):")
        for error in errors[:10]:  # Show first 10
            print(f"  - {error}")
        if len(errors) > 10:
            print(f"  ... and {len(errors) - 10} more")

    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
