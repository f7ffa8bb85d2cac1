#!/usr/bin/env python3
"""
CLI tool for analyzing cafes for remote-work suitability.

Usage:
    python tools/analyze_cafes.py --db data/cafe_compass.db
    python tools/analyze_cafes.py --venues ChIJN1t_tDeuEmsRUsoyG83frY4 --summary-mode llm

Options:
    --db                  Venue database path (default: data/cafe_compass.db)
    --venues              Comma-separated venue ids (default: venues needing reanalysis)
    --limit               Max venues to analyze
    --workers             Venues analyzed in parallel (default: 4)
    --refresh             Fetch new reviews from Outscraper before analyzing
    --scoring-config      Path to scoring.json (default: built-in table)
    --summary-mode        template or llm (default: template)
    --summary-failure     fallback or fail_run (default: fallback)
    --llm-model           LLM model to use (default: gpt-4o-mini)
    --mock-llm            Use mock LLM (no API calls)
    --failure-mode        How to handle failures: continue, fail_fast
    --metrics-output      Path to write metrics JSON
    --verbose, -v         Verbose output
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.work_friendliness import (
    OutscraperReviewSource,
    WorkFriendlinessError,
    get_settings,
)
from shared.work_friendliness.pipeline import VenueAnalysisPipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Analyze cafe reviews for remote-work suitability",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--db",
        type=Path,
        default=Path("data/cafe_compass.db"),
        help="Venue database path (default: data/cafe_compass.db)",
    )

    # Processing options
    proc_group = parser.add_argument_group("Processing options")
    proc_group.add_argument(
        "--venues",
        type=str,
        help="Comma-separated list of venue ids",
    )
    proc_group.add_argument(
        "--limit",
        type=int,
        help="Max venues to analyze",
    )
    proc_group.add_argument(
        "--workers",
        type=int,
        default=4,
        help="Venues analyzed in parallel (default: 4)",
    )
    proc_group.add_argument(
        "--refresh",
        action="store_true",
        help="Fetch new reviews from Outscraper before analyzing",
    )
    proc_group.add_argument(
        "--scoring-config",
        type=Path,
        help="Path to scoring.json (default: built-in table)",
    )

    # LLM options
    llm_group = parser.add_argument_group("LLM options")
    llm_group.add_argument(
        "--summary-mode",
        choices=["template", "llm"],
        default="template",
        help="How work summaries are written (default: template)",
    )
    llm_group.add_argument(
        "--summary-failure",
        choices=["fallback", "fail_run"],
        default="fallback",
        help="What to do when the LLM summary is invalid (default: fallback)",
    )
    llm_group.add_argument(
        "--llm-model",
        type=str,
        default="gpt-4o-mini",
        help="LLM model to use (default: gpt-4o-mini)",
    )
    llm_group.add_argument(
        "--mock-llm",
        action="store_true",
        help="Use mock LLM (no API calls)",
    )
    llm_group.add_argument(
        "--api-key",
        type=str,
        help="OpenAI API key (defaults to OPENAI_API_KEY env var)",
    )

    # Failure handling
    parser.add_argument(
        "--failure-mode",
        choices=["continue", "fail_fast"],
        default="continue",
        help="How to handle failures (default: continue)",
    )

    # Output options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--metrics-output",
        type=Path,
        help="Path to write metrics JSON",
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    venue_ids = None
    if args.venues:
        venue_ids = [v.strip() for v in args.venues.split(",") if v.strip()]

    overrides = {
        "db_path": args.db,
        "max_workers": args.workers,
        "summary_mode": args.summary_mode,
        "summary_failure_policy": args.summary_failure,
        "llm_model": args.llm_model,
        "use_mock_llm": args.mock_llm,
        "failure_mode": args.failure_mode,
    }
    if args.scoring_config:
        overrides["scoring_config_path"] = args.scoring_config
    if args.api_key:
        overrides["llm_api_key"] = args.api_key

    try:
        settings = get_settings(**overrides)

        review_source = None
        if args.refresh:
            review_source = OutscraperReviewSource(
                api_key=settings.outscraper_api_key,
                base_url=settings.outscraper_base_url,
                reviews_limit=settings.reviews_limit,
                language=settings.language,
                region=settings.region,
                timeout_seconds=settings.fetch_timeout_seconds,
            )

        pipeline = VenueAnalysisPipeline(settings=settings, review_source=review_source)
    except WorkFriendlinessError as e:
        logger.error(f"Setup failed: {e}")
        return 1

    logger.info(f"Database: {args.db}")
    logger.info(f"Summary mode: {args.summary_mode}")

    try:
        result = pipeline.run(venue_ids=venue_ids, limit=args.limit, refresh=args.refresh)

        # Print summary
        print("\n" + "=" * 60)
        print("ANALYSIS SUMMARY")
        print("=" * 60)
        print(f"Success: {result.success}")
        print(f"Total venues: {result.metrics.total_venues}")
        print(f"Successful: {result.metrics.successful_venues}")
        print(f"Failed: {result.metrics.failed_venues}")
        print(f"Skipped: {result.metrics.skipped_venues}")
        print(f"Total reviews: {result.metrics.total_reviews}")
        print(f"Work-related reviews: {result.metrics.work_reviews}")
        print(f"Estimated cost: ${result.metrics.estimated_cost_usd:.3f}")
        if result.metrics.llm_calls:
            print(
                f"LLM calls: {result.metrics.llm_calls} "
                f"({result.metrics.llm_tokens_input} in / {result.metrics.llm_tokens_output} out tokens)"
            )
        if result.metrics.duration_seconds:
            print(f"Duration: {result.metrics.duration_seconds:.1f} seconds")

        completed = [r for r in result.results if r.profile is not None]
        if completed:
            print("\nScores:")
            for run in completed[:10]:
                profile = run.profile
                print(
                    f"  {run.venue_id}: {profile.remote_work_score}/10 "
                    f"({profile.wifi_speed.value} wifi, {profile.noise_level.value}, "
                    f"confidence {profile.ai_confidence_score:.1f})"
                )
            if len(completed) > 10:
                print(f"  ... and {len(completed) - 10} more")

        if result.metrics.errors:
            print(f"\nErrors ({len(result.metrics.errors)}):")
            for error in result.metrics.errors[:10]:  # Show first 10
                print(f"  - {error}")
            if len(result.metrics.errors) > 10:
                print(f"  ... and {len(result.metrics.errors) - 10} more")

        # Save metrics if requested
        if args.metrics_output:
            metrics_dict = result.metrics.model_dump(mode="json")
            with open(args.metrics_output, "w") as f:
                json.dump(metrics_dict, f, indent=2, default=str)
            logger.info(f"Metrics saved to {args.metrics_output}")

        return 0 if result.success else 1

    except Exception as e:
        logger.exception(f"Analysis failed: {e}")
        return 1
    finally:
        pipeline.close()


if __name__ == "__main__":
    sys.exit(main())
