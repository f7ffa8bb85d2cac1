"""
Pydantic models for work_friendliness library.

All data structures used throughout the library are defined here for consistency
and validation. Models use Pydantic for automatic validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# --- Attribute names ---

WIFI_QUALITY = "wifi_quality"
NOISE_LEVEL = "noise_level"
OUTLET_AVAILABILITY = "outlet_availability"
SEATING_COMFORT = "seating_comfort"
LAPTOP_FRIENDLINESS = "laptop_friendliness"

ATTRIBUTE_NAMES = [
    WIFI_QUALITY,
    NOISE_LEVEL,
    OUTLET_AVAILABILITY,
    SEATING_COMFORT,
    LAPTOP_FRIENDLINESS,
]


# --- Categorical outputs ---


class WifiSpeed(str, Enum):
    FAST = "fast"
    ADEQUATE = "adequate"
    SLOW = "slow"


class NoiseCategory(str, Enum):
    QUIET = "quiet"
    MODERATE = "moderate"
    LOUD = "loud"


class LaptopPolicy(str, Enum):
    ENCOURAGED = "encouraged"
    ALLOWED = "allowed"
    DISCOURAGED = "discouraged"


# --- Raw Input Models ---


class RawReview(BaseModel):
    """
    Raw review as ingested from the review provider.

    Immutable once stored; analysis results live in ReviewAnalysis.
    """

    venue_id: str = Field(..., description="Venue identifier (Google place id)")
    review_id: str = Field(..., description="Provider-assigned id, used for deduplication")
    author: str = Field(default="Anonymous", description="Review author display name")
    text: str = Field(default="", description="Raw review text content")
    rating: int = Field(..., ge=1, le=5, description="Star rating 1-5")
    timestamp: Optional[int] = Field(
        default=None, description="Unix timestamp (seconds) of the review"
    )
    source: str = Field(default="google", description='Source identifier (e.g., "google")')


class VenueMetadata(BaseModel):
    """Venue facts returned by the review provider alongside reviews."""

    venue_id: str = Field(..., description="Google place id")
    name: str = Field(..., description="Venue name")
    address: str = Field(default="", description="Full street address")
    city: str = Field(default="", description="City or borough")
    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    google_rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    google_review_count: int = Field(default=0, ge=0)
    google_maps_url: Optional[str] = Field(default=None)


class VenueFetchResult(BaseModel):
    """Everything a review source returns for one venue."""

    metadata: VenueMetadata
    reviews: List[RawReview] = Field(default_factory=list)


# --- Per-review analysis ---


class AttributeScore(BaseModel):
    """Single extracted attribute value for one review."""

    score: float = Field(..., ge=1.0, le=10.0, description="Sub-score on a 1-10 scale")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Fixed weight per attribute type")
    evidence: str = Field(default="", description="Matched snippet of review text")


class ReviewAnalysis(BaseModel):
    """Derived annotation attached to a review by one analysis pass."""

    review_id: str = Field(..., description="Provider review id")
    is_work_related: bool = Field(default=False)
    work_relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    matched_keywords: List[str] = Field(default_factory=list)
    attributes: Dict[str, AttributeScore] = Field(
        default_factory=dict,
        description="attribute name -> score; absent when the review has no cue for it",
    )
    sentiment_score: float = Field(default=0.0, ge=-1.0, le=1.0)


# --- Venue profile ---


class VenueProfile(BaseModel):
    """Aggregate work-friendliness profile, recomputed wholesale on each run."""

    wifi_speed: WifiSpeed = Field(default=WifiSpeed.ADEQUATE)
    noise_level: NoiseCategory = Field(default=NoiseCategory.MODERATE)
    laptop_policy: LaptopPolicy = Field(default=LaptopPolicy.ALLOWED)
    good_for_calls: bool = Field(default=False)
    good_for_focus: bool = Field(default=False)
    remote_work_score: int = Field(default=5, ge=0, le=10)
    outlet_rating: int = Field(default=3, ge=1, le=5)
    seating_rating: int = Field(default=3, ge=1, le=5)
    work_summary: str = Field(default="")
    vibe_tags: List[str] = Field(default_factory=list)
    deal_breakers: List[str] = Field(default_factory=list)
    ai_confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    work_reviews_count: int = Field(default=0, ge=0)
    total_reviews_count: int = Field(default=0, ge=0)
    attribute_averages: Dict[str, float] = Field(
        default_factory=dict, description="Averaged 1-10 sub-score per attribute"
    )


# --- Scoring configuration ---


class CueRule(BaseModel):
    """One row of an attribute decision table: any of `terms` present -> `score`."""

    terms: List[str] = Field(..., min_length=1)
    score: float = Field(..., ge=1.0, le=10.0)


class AttributeRule(BaseModel):
    """How to extract one attribute from review text."""

    cues: List[str] = Field(..., min_length=1, description="Terms that trigger extraction")
    rules: List[CueRule] = Field(
        default_factory=list, description="Refining terms, evaluated in order"
    )
    default_score: float = Field(..., ge=1.0, le=10.0, description="Score when no rule matches")
    confidence: float = Field(..., ge=0.0, le=1.0)


class CategoryThresholds(BaseModel):
    """Cut points mapping averaged sub-scores to categorical outputs."""

    wifi_fast_min: float = 7.0
    wifi_adequate_min: float = 4.0
    noise_quiet_max: float = 3.0
    noise_moderate_max: float = 7.0
    laptop_encouraged_min: float = 7.0
    laptop_allowed_min: float = 4.0
    calls_max_noise: float = 4.0
    focus_max_noise: float = 3.0
    focus_min_wifi: float = 6.0

    @model_validator(mode="after")
    def validate_ordering(self) -> "CategoryThresholds":
        if self.wifi_adequate_min > self.wifi_fast_min:
            raise ValueError("wifi_adequate_min must not exceed wifi_fast_min")
        if self.noise_quiet_max > self.noise_moderate_max:
            raise ValueError("noise_quiet_max must not exceed noise_moderate_max")
        if self.laptop_allowed_min > self.laptop_encouraged_min:
            raise ValueError("laptop_allowed_min must not exceed laptop_encouraged_min")
        return self


class WorkScoreWeights(BaseModel):
    """Weights of the remote work score linear combination (noise is inverted)."""

    wifi_quality: float = Field(default=0.30, ge=0.0)
    noise_level: float = Field(default=0.20, ge=0.0)
    outlet_availability: float = Field(default=0.20, ge=0.0)
    seating_comfort: float = Field(default=0.15, ge=0.0)
    laptop_friendliness: float = Field(default=0.15, ge=0.0)

    def total_weight(self) -> float:
        """Calculate total weight across all attributes."""
        return (
            self.wifi_quality
            + self.noise_level
            + self.outlet_availability
            + self.seating_comfort
            + self.laptop_friendliness
        )


class ThresholdTag(BaseModel):
    """Tag appended when `metric` satisfies `op threshold`."""

    tag: str
    metric: str = Field(..., description="Attribute name or 'remote_work_score'")
    op: Literal["ge", "le"]
    threshold: float

    def matches(self, value: float) -> bool:
        if self.op == "ge":
            return value >= self.threshold
        return value <= self.threshold


class ScoringConfig(BaseModel):
    """
    Every vocabulary, decision table and constant used by review scoring.

    Loaded from scoring.json or the inline default in config.py.
    """

    version: str = Field(..., description="Scoring config version string")
    work_vocabulary: List[str] = Field(..., min_length=1)
    relevance_min_matches: int = Field(default=2, ge=1)
    relevance_normalizer: float = Field(
        default=10.0, gt=0, description="Matches needed for work_relevance_score 1.0"
    )
    attributes: Dict[str, AttributeRule]
    default_attribute_score: float = Field(default=5.0, ge=1.0, le=10.0)
    positive_phrases: List[str] = Field(default_factory=list)
    negative_phrases: List[str] = Field(default_factory=list)
    thresholds: CategoryThresholds = Field(default_factory=CategoryThresholds)
    weights: WorkScoreWeights = Field(default_factory=WorkScoreWeights)
    work_score_scale: float = Field(default=0.8, gt=0)
    tag_rules: List[ThresholdTag] = Field(default_factory=list)
    deal_breaker_rules: List[ThresholdTag] = Field(default_factory=list)
    default_tags: List[str] = Field(default_factory=lambda: ["general"])
    default_work_score: int = Field(default=5, ge=0, le=10)
    confidence_normalizer: float = Field(
        default=10.0, gt=0, description="Work-related reviews needed for confidence 1.0"
    )
    evidence_window: int = Field(
        default=40, ge=0, description="Characters kept each side of a cue in evidence"
    )

    @field_validator("attributes")
    @classmethod
    def validate_attributes(cls, v: Dict[str, AttributeRule]) -> Dict[str, AttributeRule]:
        missing = [name for name in ATTRIBUTE_NAMES if name not in v]
        if missing:
            raise ValueError(f"Scoring config missing attributes: {missing}")
        return v


# --- LLM summary schema ---


class ModelSummaryResponse(BaseModel):
    """Structure the generative summarizer must return."""

    work_score: float = Field(..., ge=0.0, le=5.0)
    wifi_quality: float = Field(..., ge=0.0, le=5.0)
    noise_level: float = Field(..., ge=0.0, le=5.0)
    summary: str = Field(..., min_length=1)
    confidence: Literal["high", "medium", "low"]


# --- Audit trail ---


class AnalysisType(str, Enum):
    INITIAL_ANALYSIS = "initial_analysis"
    REANALYSIS = "reanalysis"


class AnalysisStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class AnalysisRunLog(BaseModel):
    """One audit record per analysis run, success or failure."""

    venue_id: str
    analysis_type: AnalysisType = Field(default=AnalysisType.INITIAL_ANALYSIS)
    status: AnalysisStatus
    reviews_processed: int = Field(default=0, ge=0)
    work_reviews_found: int = Field(default=0, ge=0)
    ai_model: str = Field(default="keyword-heuristic")
    ai_cost_usd: float = Field(default=0.0, ge=0.0)
    processing_time_ms: int = Field(..., ge=0)
    previous_work_score: Optional[int] = Field(default=None)
    new_work_score: Optional[int] = Field(default=None)
    score_change: Optional[int] = Field(default=None)
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    analysis_summary: Optional[str] = Field(default=None)
    error_message: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(default=None)


# --- Pipeline results ---


class FailureMode(str, Enum):
    """How to handle per-venue failures during a batch."""

    CONTINUE = "continue"  # Log, audit and continue with next venue
    FAIL_FAST = "fail_fast"  # Stop the batch on first failure


class SummaryMode(str, Enum):
    TEMPLATE = "template"
    LLM = "llm"


class SummaryFailurePolicy(str, Enum):
    """What a run does when the LLM summary is still invalid after the retry."""

    FALLBACK = "fallback"  # Use the template summary, run completes
    FAIL_RUN = "fail_run"  # Fail the run, keep the existing profile


class VenueRunResult(BaseModel):
    """Outcome of processing a single venue."""

    venue_id: str
    status: AnalysisStatus
    profile: Optional[VenueProfile] = None
    reviews_processed: int = 0
    error: Optional[str] = None


class BatchMetrics(BaseModel):
    """Metrics collected during a batch run."""

    total_venues: int = Field(default=0, description="Total venues scheduled")
    successful_venues: int = Field(default=0, description="Successfully analyzed")
    failed_venues: int = Field(default=0, description="Failed to analyze")
    skipped_venues: int = Field(default=0, description="Skipped (no reviews)")
    total_reviews: int = Field(default=0, description="Total reviews processed")
    work_reviews: int = Field(default=0, description="Work-related reviews found")

    # LLM metrics
    llm_calls: int = Field(default=0, description="Number of LLM API calls")
    llm_tokens_input: int = Field(default=0, description="Total input tokens")
    llm_tokens_output: int = Field(default=0, description="Total output tokens")
    estimated_cost_usd: float = Field(default=0.0, description="Estimated analysis cost in USD")

    # Timing
    start_time: Optional[datetime] = Field(default=None)
    end_time: Optional[datetime] = Field(default=None)
    duration_seconds: Optional[float] = Field(default=None)

    # Errors
    errors: List[str] = Field(default_factory=list, description="Error messages")


class BatchResult(BaseModel):
    """Result of a batch run."""

    success: bool = Field(..., description="Whether every venue completed or was skipped")
    metrics: BatchMetrics = Field(..., description="Batch metrics")
    results: List[VenueRunResult] = Field(default_factory=list)
    output_db_path: Optional[str] = Field(default=None, description="Path to database")
