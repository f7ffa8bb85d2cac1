"""
Analysis pipeline for venue work-friendliness profiles.

Coordinates ingestion, review analysis, aggregation, summary generation,
persistence and the audit trail for batches of venues.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Dict, List, Optional

from shared.cafe_review_agent.aggregator import ProfileAggregator
from shared.cafe_review_agent.analyzer import ReviewAnalyzer
from shared.cafe_review_agent.summarizer import LLMSummaryGenerator, TemplateSummaryGenerator

from .config import WorkFriendlinessSettings, resolve_scoring_config
from .exceptions import (
    PipelineError,
    ReviewSourceError,
    StorageError,
    SummaryGenerationError,
    SummaryTimeoutError,
)
from .interfaces import ReviewSource, StorageInterface, SummaryGeneratorInterface
from .models import (
    AnalysisRunLog,
    AnalysisStatus,
    AnalysisType,
    BatchMetrics,
    BatchResult,
    FailureMode,
    RawReview,
    ReviewAnalysis,
    ScoringConfig,
    SummaryFailurePolicy,
    SummaryMode,
    VenueProfile,
    VenueRunResult,
)
from .storage import VenueStorage

logger = logging.getLogger(__name__)


class VenueAnalysisPipeline:
    """
    Orchestrates analysis runs over venues.

    Each venue run (fetch -> filter -> extract -> aggregate -> summarize ->
    persist) is sequential; venues run in parallel up to settings.max_workers.

    Features:
        - One audit record per run, whatever the outcome
        - Per-venue failure isolation, or fail-fast
        - Summary failure policy (template fallback or fail the run)
        - LLM usage tracking
    """

    def __init__(
        self,
        settings: Optional[WorkFriendlinessSettings] = None,
        scoring_config: Optional[ScoringConfig] = None,
        storage: Optional[StorageInterface] = None,
        review_source: Optional[ReviewSource] = None,
        summarizer: Optional[SummaryGeneratorInterface] = None,
    ):
        """
        Initialize pipeline with optional dependency injection.

        Args:
            settings: Configuration settings
            scoring_config: Scoring table (from settings or default if not provided)
            storage: Storage instance (creates from settings if not provided)
            review_source: Upstream source, needed only to refresh reviews
            summarizer: Summary generator (creates from settings if not provided)
        """
        self.settings = settings or WorkFriendlinessSettings()
        self.scoring_config = scoring_config or resolve_scoring_config(self.settings)

        self.analyzer = ReviewAnalyzer(self.scoring_config)
        self.aggregator = ProfileAggregator(self.scoring_config)
        self.template_summarizer = TemplateSummaryGenerator()

        self._storage = storage
        self._review_source = review_source
        self._summarizer = summarizer

        # Metrics
        self._metrics = BatchMetrics()

    @property
    def storage(self) -> StorageInterface:
        """Get or create storage instance."""
        if self._storage is None:
            self._storage = VenueStorage(self.settings.db_path)
        return self._storage

    @property
    def summarizer(self) -> SummaryGeneratorInterface:
        """Get or create summarizer instance."""
        if self._summarizer is None:
            if self.settings.summary_mode == SummaryMode.LLM:
                self._summarizer = LLMSummaryGenerator(
                    llm_model=self.settings.llm_model,
                    llm_temperature=self.settings.llm_temperature,
                    api_key=self.settings.llm_api_key,
                    timeout_seconds=self.settings.llm_timeout_seconds,
                    max_reviews=self.settings.llm_max_reviews,
                    mock_llm=self.settings.use_mock_llm,
                )
            else:
                self._summarizer = self.template_summarizer
        return self._summarizer

    def _summarizer_name(self) -> str:
        """Summarizer name for audit records, even if it failed to build."""
        if self._summarizer is None:
            return SummaryMode(self.settings.summary_mode).value
        return self._summarizer.model_name

    # --- Ingestion ---

    def ingest_venue(self, venue_id: str) -> int:
        """
        Fetch a venue from the review source and store it.

        Returns:
            Number of newly stored reviews

        Raises:
            ReviewSourceError: If no source is configured or the fetch fails
        """
        if self._review_source is None:
            raise ReviewSourceError("No review source configured")

        result = self._review_source.fetch_venue(venue_id)
        inserted = self.storage.write_fetch_result(result)
        logger.info(
            f"Stored {result.metadata.name} ({venue_id}): "
            f"{inserted} new of {len(result.reviews)} fetched reviews"
        )
        return inserted

    # --- Analysis ---

    def _summarize(
        self,
        venue_name: str,
        profile: VenueProfile,
        reviews: List[RawReview],
        analyses: List[ReviewAnalysis],
    ) -> str:
        """Apply the summarizer, falling back to the template per policy."""
        try:
            return self.summarizer.generate_summary(venue_name, profile, reviews, analyses)
        except SummaryTimeoutError:
            raise
        except SummaryGenerationError as e:
            if self.settings.summary_failure_policy == SummaryFailurePolicy.FAIL_RUN:
                raise
            logger.warning(f"Summary generation failed for {venue_name}, using template: {e}")
            return self.template_summarizer.generate_summary(
                venue_name, profile, reviews, analyses
            )

    def analyze_venue(self, venue_id: str, refresh: bool = False) -> VenueRunResult:
        """
        Run one analysis of a venue and record it in the audit log.

        The profile and review annotations are replaced only when the run
        completes; failed and skipped runs leave the stored profile untouched.

        Args:
            venue_id: Venue to analyze
            refresh: Fetch new reviews from the review source first

        Returns:
            VenueRunResult with status completed, failed or skipped
        """
        start = time.monotonic()
        analysis_type = AnalysisType.INITIAL_ANALYSIS
        previous_score: Optional[int] = None
        reviews: List[RawReview] = []

        def finish(
            status: AnalysisStatus,
            profile: Optional[VenueProfile] = None,
            error: Optional[str] = None,
        ) -> VenueRunResult:
            new_score = profile.remote_work_score if profile else None
            score_change = None
            if new_score is not None and previous_score is not None:
                score_change = new_score - previous_score

            try:
                self.storage.append_analysis_log(AnalysisRunLog(
                    venue_id=venue_id,
                    analysis_type=analysis_type,
                    status=status,
                    reviews_processed=len(reviews),
                    work_reviews_found=profile.work_reviews_count if profile else 0,
                    ai_model=f"keywords+{self._summarizer_name()}",
                    ai_cost_usd=(
                        len(reviews) * self.settings.cost_per_review_usd if profile else 0.0
                    ),
                    processing_time_ms=int((time.monotonic() - start) * 1000),
                    previous_work_score=previous_score,
                    new_work_score=new_score,
                    score_change=score_change,
                    confidence_score=profile.ai_confidence_score if profile else 0.0,
                    analysis_summary=profile.work_summary if profile else None,
                    error_message=error,
                ))
            except StorageError as e:
                logger.error(f"Could not write audit record for {venue_id}: {e}")
            return VenueRunResult(
                venue_id=venue_id,
                status=status,
                profile=profile,
                reviews_processed=len(reviews),
                error=error,
            )

        try:
            previous = self.storage.get_venue_profile(venue_id)
            if previous is not None:
                analysis_type = AnalysisType.REANALYSIS
                previous_score = previous.remote_work_score

            if refresh:
                self.ingest_venue(venue_id)

            venue = self.storage.get_venue(venue_id)
            if venue is None:
                raise ReviewSourceError(f"Unknown venue: {venue_id}")

            reviews = self.storage.get_reviews(venue_id)
            if not reviews:
                logger.info(f"No reviews for {venue_id}, skipping analysis")
                return finish(AnalysisStatus.SKIPPED, error="No reviews")

            analyses = self.analyzer.analyze_batch(reviews)
            profile = self.aggregator.aggregate(analyses)
            profile.work_summary = self._summarize(venue.name, profile, reviews, analyses)

            self.storage.write_venue_analysis(
                venue_id, profile, analyses, self.scoring_config.version
            )

        except Exception as e:
            logger.error(f"Venue {venue_id} analysis failed: {e}")
            return finish(AnalysisStatus.FAILED, error=str(e))

        logger.info(
            f"Analyzed {venue.name} ({venue_id}): score {profile.remote_work_score}, "
            f"{profile.work_reviews_count}/{profile.total_reviews_count} work-related reviews"
        )
        return finish(AnalysisStatus.COMPLETED, profile=profile)

    def _record(self, result: VenueRunResult) -> None:
        """Fold one venue result into the batch metrics."""
        self._metrics.total_reviews += result.reviews_processed
        if result.status == AnalysisStatus.COMPLETED:
            self._metrics.successful_venues += 1
            if result.profile:
                self._metrics.work_reviews += result.profile.work_reviews_count
            self._metrics.estimated_cost_usd += (
                result.reviews_processed * self.settings.cost_per_review_usd
            )
        elif result.status == AnalysisStatus.SKIPPED:
            self._metrics.skipped_venues += 1
        else:
            self._metrics.failed_venues += 1
            self._metrics.errors.append(f"{result.venue_id}: {result.error}")

    def run(
        self,
        venue_ids: Optional[List[str]] = None,
        limit: Optional[int] = None,
        refresh: bool = False,
    ) -> BatchResult:
        """
        Analyze a batch of venues.

        Args:
            venue_ids: Venues to analyze (default: those flagged needs_reanalysis)
            limit: Max number of venues
            refresh: Fetch new reviews from the review source first

        Returns:
            BatchResult with metrics and per-venue results
        """
        self._metrics = BatchMetrics(start_time=datetime.now(timezone.utc))
        usage_before: Optional[Dict[str, int]] = None
        results: Dict[str, VenueRunResult] = {}
        scheduled: List[str] = []
        aborted = False

        try:
            usage_before = self.summarizer.get_token_usage()

            if venue_ids is not None:
                scheduled = list(dict.fromkeys(venue_ids))[:limit]
            else:
                scheduled = self.storage.get_venues_needing_analysis(limit)
            self._metrics.total_venues = len(scheduled)

            logger.info(
                f"Analysis started: {len(scheduled)} venues, "
                f"workers={self.settings.max_workers}, summarizer={self.summarizer.model_name}"
            )

            failure_mode = FailureMode(self.settings.failure_mode)

            executor = ThreadPoolExecutor(max_workers=self.settings.max_workers)
            try:
                futures: Dict[Future, str] = {
                    executor.submit(self.analyze_venue, venue_id, refresh): venue_id
                    for venue_id in scheduled
                }
                for future in as_completed(futures):
                    try:
                        result = future.result()
                    except Exception as e:
                        venue_id = futures[future]
                        logger.error(f"Venue {venue_id} analysis crashed: {e}")
                        result = VenueRunResult(
                            venue_id=venue_id, status=AnalysisStatus.FAILED, error=str(e)
                        )
                    results[result.venue_id] = result
                    self._record(result)

                    if result.status == AnalysisStatus.FAILED and failure_mode == FailureMode.FAIL_FAST:
                        raise PipelineError(f"Failed processing {result.venue_id}: {result.error}")
            finally:
                executor.shutdown(wait=True, cancel_futures=True)

            self.storage.write_meta_info("last_run_utc", datetime.now(timezone.utc).isoformat())
            self.storage.write_meta_info("scoring_version", self.scoring_config.version)

        except Exception as e:
            aborted = True
            self._metrics.errors.append(f"Batch failed: {str(e)}")
            logger.error(f"Batch failed: {e}")

        self._finalize_metrics(usage_before)

        logger.info(
            f"Analysis completed: {self._metrics.successful_venues} successful, "
            f"{self._metrics.failed_venues} failed, {self._metrics.skipped_venues} skipped, "
            f"{self._metrics.duration_seconds:.1f}s"
        )

        ordered = [results[venue_id] for venue_id in scheduled if venue_id in results]
        return BatchResult(
            success=self._metrics.failed_venues == 0 and not aborted,
            metrics=self._metrics,
            results=ordered,
            output_db_path=str(self.settings.db_path),
        )

    def _finalize_metrics(self, usage_before: Optional[Dict[str, int]]) -> None:
        if usage_before is not None:
            usage = self.summarizer.get_token_usage()
            self._metrics.llm_calls = usage["total_calls"] - usage_before["total_calls"]
            self._metrics.llm_tokens_input = usage["input_tokens"] - usage_before["input_tokens"]
            self._metrics.llm_tokens_output = (
                usage["output_tokens"] - usage_before["output_tokens"]
            )

        self._metrics.end_time = datetime.now(timezone.utc)
        self._metrics.duration_seconds = (
            self._metrics.end_time - self._metrics.start_time
        ).total_seconds()

    def get_metrics(self) -> BatchMetrics:
        """Get current batch metrics."""
        return self._metrics

    def close(self) -> None:
        """Clean up resources."""
        if self._storage:
            self._storage.close()
        close_source = getattr(self._review_source, "close", None)
        if close_source:
            close_source()
