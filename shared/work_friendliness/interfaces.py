"""
Abstract interfaces for work_friendliness library.

These interfaces define the contracts that must be implemented by concrete classes.
They enable dependency injection and testing with mocks.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import (
    AnalysisRunLog,
    RawReview,
    ReviewAnalysis,
    VenueFetchResult,
    VenueMetadata,
    VenueProfile,
)


class ReviewSource(ABC):
    """
    Abstract base class for review data sources.

    Implementations:
        - OutscraperReviewSource: Fetch from the Outscraper Google Maps API
        - JSONDirectorySource: Load previously exported provider responses
    """

    @abstractmethod
    def fetch_venue(self, venue_id: str) -> VenueFetchResult:
        """
        Fetch venue metadata and reviews for one venue.

        Args:
            venue_id: Google place id

        Returns:
            VenueFetchResult with metadata and RawReview list

        Raises:
            ReviewSourceError: If the venue can't be fetched
        """
        pass

    def get_source_name(self) -> str:
        """Get the name/identifier of this source."""
        return self.__class__.__name__


class StorageInterface(ABC):
    """
    Abstract interface for venue storage operations.

    Defines all database operations needed by the library.
    Concrete implementation: VenueStorage (in storage.py)
    """

    @abstractmethod
    def close(self) -> None:
        """Close database connection and cleanup resources."""
        pass

    # --- Venues ---

    @abstractmethod
    def upsert_venue(self, metadata: VenueMetadata) -> None:
        """Insert venue facts or refresh them, keeping any existing profile."""
        pass

    @abstractmethod
    def get_venue(self, venue_id: str) -> Optional[VenueMetadata]:
        """Read venue facts, or None if unknown."""
        pass

    @abstractmethod
    def get_all_venue_ids(self) -> List[str]:
        """Get all venue ids in the store."""
        pass

    @abstractmethod
    def get_venues_needing_analysis(self, limit: Optional[int] = None) -> List[str]:
        """Get venue ids flagged needs_reanalysis."""
        pass

    @abstractmethod
    def mark_for_reanalysis(self, venue_id: str) -> None:
        """Set the needs_reanalysis flag for a venue."""
        pass

    # --- Reviews ---

    @abstractmethod
    def write_reviews(self, venue_id: str, reviews: List[RawReview]) -> int:
        """
        Append reviews, ignoring ones already stored (by provider review id).

        Returns:
            Number of newly inserted reviews
        """
        pass

    @abstractmethod
    def write_fetch_result(self, result: VenueFetchResult) -> int:
        """
        Store venue facts and newly seen reviews in one transaction.

        Returns:
            Number of newly inserted reviews
        """
        pass

    @abstractmethod
    def get_reviews(self, venue_id: str) -> List[RawReview]:
        """Get the full stored review list for a venue."""
        pass

    @abstractmethod
    def get_review_analyses(self, venue_id: str) -> Dict[str, ReviewAnalysis]:
        """Get stored per-review annotations keyed by review id."""
        pass

    # --- Profile ---

    @abstractmethod
    def get_venue_profile(self, venue_id: str) -> Optional[VenueProfile]:
        """Read the current profile, or None if never analyzed."""
        pass

    @abstractmethod
    def write_venue_analysis(
        self,
        venue_id: str,
        profile: VenueProfile,
        analyses: List[ReviewAnalysis],
        scoring_version: str,
    ) -> None:
        """
        Persist a profile and its per-review annotations all-or-nothing.

        Clears the venue's needs_reanalysis flag.
        """
        pass

    # --- Audit ---

    @abstractmethod
    def append_analysis_log(self, log: AnalysisRunLog) -> None:
        """Append one audit record."""
        pass

    @abstractmethod
    def get_analysis_logs(self, venue_id: Optional[str] = None) -> List[AnalysisRunLog]:
        """Get audit records, oldest first."""
        pass

    # --- Meta Info ---

    @abstractmethod
    def write_meta_info(self, key: str, value: str) -> None:
        """Write to meta_info table."""
        pass

    @abstractmethod
    def get_meta_info(self, key: str) -> Optional[str]:
        """Read from meta_info table."""
        pass


class SummaryGeneratorInterface(ABC):
    """
    Abstract interface for work summary generation.

    Implementations:
        - TemplateSummaryGenerator: deterministic score-bracket phrases
        - LLMSummaryGenerator: generative model with schema validation
    """

    @abstractmethod
    def generate_summary(
        self,
        venue_name: str,
        profile: VenueProfile,
        reviews: List[RawReview],
        analyses: List[ReviewAnalysis],
    ) -> str:
        """
        Generate the work_summary text for a venue.

        Raises:
            SummaryGenerationError: If the summary can't be produced
        """
        pass

    @property
    def model_name(self) -> str:
        """Model identifier recorded in the audit log."""
        return self.__class__.__name__

    def get_token_usage(self) -> Dict[str, int]:
        """Get cumulative token usage stats."""
        return {"input_tokens": 0, "output_tokens": 0, "total_calls": 0}
