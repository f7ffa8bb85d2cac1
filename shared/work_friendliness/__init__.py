"""
Work Friendliness Library

A library for scoring cafes ("venues") for remote-work suitability
based on their Google Maps reviews.

Main components:
    - Models: Pydantic models for data structures
    - Config: Settings and the scoring table
    - Sources: Outscraper and offline review sources
    - Storage: Database operations for the venue database

The analysis pipeline lives in shared.work_friendliness.pipeline and pulls
in shared.cafe_review_agent; import it from there.

Example usage:
    from shared.work_friendliness import VenueStorage, get_settings
    from shared.work_friendliness.pipeline import VenueAnalysisPipeline

    settings = get_settings()
    pipeline = VenueAnalysisPipeline(settings, storage=VenueStorage(settings.db_path))
    result = pipeline.run(limit=10)
"""

# --- Exceptions ---
from .exceptions import (
    ConfigurationError,
    PipelineError,
    ReviewSourceError,
    StorageError,
    SummaryGenerationError,
    SummaryTimeoutError,
    WorkFriendlinessError,
)

# --- Models ---
from .models import (
    ATTRIBUTE_NAMES,
    # Raw input
    RawReview,
    VenueMetadata,
    VenueFetchResult,
    # Analysis
    AttributeScore,
    ReviewAnalysis,
    # Profile
    WifiSpeed,
    NoiseCategory,
    LaptopPolicy,
    VenueProfile,
    # Scoring config
    CueRule,
    AttributeRule,
    CategoryThresholds,
    WorkScoreWeights,
    ThresholdTag,
    ScoringConfig,
    ModelSummaryResponse,
    # Audit
    AnalysisType,
    AnalysisStatus,
    AnalysisRunLog,
    # Pipeline
    FailureMode,
    SummaryMode,
    SummaryFailurePolicy,
    VenueRunResult,
    BatchMetrics,
    BatchResult,
)

# --- Configuration ---
from .config import (
    WorkFriendlinessSettings,
    DEFAULT_SCORING_CONFIG,
    get_settings,
    load_scoring_config,
    get_default_scoring_config,
    resolve_scoring_config,
)

# --- Database ---
from .database import (
    SCHEMA_VERSION,
    get_connection,
    create_schema,
    ensure_schema_version,
)

# --- Storage ---
from .storage import (
    VenueStorage,
    parse_timestamp,
)

# --- Interfaces ---
from .interfaces import (
    ReviewSource,
    StorageInterface,
    SummaryGeneratorInterface,
)

# --- Sources ---
from .sources import (
    OutscraperReviewSource,
    JSONDirectorySource,
)

__all__ = [
    # Exceptions
    "WorkFriendlinessError",
    "ConfigurationError",
    "ReviewSourceError",
    "SummaryGenerationError",
    "SummaryTimeoutError",
    "StorageError",
    "PipelineError",
    # Models
    "ATTRIBUTE_NAMES",
    "RawReview",
    "VenueMetadata",
    "VenueFetchResult",
    "AttributeScore",
    "ReviewAnalysis",
    "WifiSpeed",
    "NoiseCategory",
    "LaptopPolicy",
    "VenueProfile",
    "CueRule",
    "AttributeRule",
    "CategoryThresholds",
    "WorkScoreWeights",
    "ThresholdTag",
    "ScoringConfig",
    "ModelSummaryResponse",
    "AnalysisType",
    "AnalysisStatus",
    "AnalysisRunLog",
    "FailureMode",
    "SummaryMode",
    "SummaryFailurePolicy",
    "VenueRunResult",
    "BatchMetrics",
    "BatchResult",
    # Configuration
    "WorkFriendlinessSettings",
    "DEFAULT_SCORING_CONFIG",
    "get_settings",
    "load_scoring_config",
    "get_default_scoring_config",
    "resolve_scoring_config",
    # Database
    "SCHEMA_VERSION",
    "get_connection",
    "create_schema",
    "ensure_schema_version",
    # Storage
    "VenueStorage",
    "parse_timestamp",
    # Interfaces
    "ReviewSource",
    "StorageInterface",
    "SummaryGeneratorInterface",
    # Sources
    "OutscraperReviewSource",
    "JSONDirectorySource",
]
