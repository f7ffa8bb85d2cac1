"""
Configuration loading and validation for work_friendliness library.

Supports loading from JSON files and environment variables.
Uses Pydantic BaseSettings for runtime settings; the scoring table
(vocabularies, cue tables, thresholds, weights) is a separate ScoringConfig.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError
from .models import (
    ATTRIBUTE_NAMES,
    FailureMode,
    ScoringConfig,
    SummaryFailurePolicy,
    SummaryMode,
)


class WorkFriendlinessSettings(BaseSettings):
    """Settings for review analysis and ingestion.

    Can be loaded from environment variables with CAFE_COMPASS_ prefix,
    or set directly in code.
    """

    # Paths
    db_path: Path = Field(
        default=Path("data/cafe_compass.db"), description="Path to venue database"
    )
    scoring_config_path: Optional[Path] = Field(
        default=None, description="Path to scoring.json (inline default if unset)"
    )
    reviews_dir: Optional[Path] = Field(
        default=None, description="Directory of exported provider responses for offline runs"
    )

    # Review provider
    outscraper_api_key: Optional[str] = Field(
        default=None, description="Outscraper API key (from env or explicit)"
    )
    outscraper_base_url: str = Field(
        default="https://api.app.outscraper.com", description="Outscraper API base URL"
    )
    reviews_limit: int = Field(default=100, ge=1, description="Max reviews fetched per venue")
    language: str = Field(default="en", description="Review language")
    region: str = Field(default="us", description="Review region")
    fetch_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Timeout for one provider request"
    )
    fetch_max_retries: int = Field(default=3, ge=1, description="Max provider retry attempts")

    # LLM settings
    summary_mode: SummaryMode = Field(
        default=SummaryMode.TEMPLATE, description="How work_summary text is produced"
    )
    summary_failure_policy: SummaryFailurePolicy = Field(
        default=SummaryFailurePolicy.FALLBACK,
        description="What to do when the LLM summary is invalid after retry",
    )
    llm_model: str = Field(default="gpt-4o-mini", description="LLM model name")
    llm_temperature: float = Field(
        default=0.3, ge=0.0, le=2.0, description="LLM temperature"
    )
    llm_api_key: Optional[str] = Field(
        default=None, description="LLM API key (from env or explicit)"
    )
    llm_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Timeout for one LLM call"
    )
    use_mock_llm: bool = Field(
        default=False, description="Use mock LLM for testing (ignores API key)"
    )
    llm_max_reviews: int = Field(
        default=20, ge=1, description="Max work-related reviews embedded in the prompt"
    )

    # Processing settings
    max_workers: int = Field(default=4, ge=1, description="Venues analyzed in parallel")
    cost_per_review_usd: float = Field(
        default=0.001, ge=0.0, description="Estimated analysis cost per review"
    )

    # Failure handling
    failure_mode: FailureMode = Field(
        default=FailureMode.CONTINUE,
        description="How to handle per-venue failures: 'continue' or 'fail_fast'",
    )

    model_config = {
        "env_prefix": "CAFE_COMPASS_",
        "env_file": ".env",
        "extra": "ignore",
        # Run the API key fallbacks below when the field is left unset
        "validate_default": True,
    }

    @field_validator("outscraper_api_key", mode="before")
    @classmethod
    def get_outscraper_key_from_env(cls, v: Optional[str]) -> Optional[str]:
        """Fall back to OUTSCRAPER_API_KEY if not set."""
        if v is None:
            return os.getenv("OUTSCRAPER_API_KEY")
        return v

    @field_validator("llm_api_key", mode="before")
    @classmethod
    def get_api_key_from_env(cls, v: Optional[str]) -> Optional[str]:
        """Fall back to OPENAI_API_KEY if not set."""
        if v is None:
            return os.getenv("OPENAI_API_KEY")
        return v


def load_json_file(path: Path, description: str = "JSON file") -> Dict[str, Any]:
    """
    Load and parse a JSON file.

    Args:
        path: Path to JSON file
        description: Description for error messages

    Returns:
        Parsed JSON as dict

    Raises:
        ConfigurationError: If file doesn't exist or JSON is malformed
    """
    if not path.exists():
        raise ConfigurationError(f"{description} not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {description} ({path}): {e}")
    except OSError as e:
        raise ConfigurationError(f"Error reading {description} ({path}): {e}")


def validate_scoring_config(config: ScoringConfig) -> ScoringConfig:
    """
    Check the parts of a scoring table pydantic can't check field by field.

    Raises:
        ConfigurationError: If weights don't sum to ~1.0 or tag rules reference
            unknown metrics
    """
    total_weight = config.weights.total_weight()
    if abs(total_weight - 1.0) > 0.05:
        raise ConfigurationError(
            f"Work score weights sum to {total_weight:.3f}, expected approximately 1.0 (±0.05)"
        )

    valid_metrics = set(ATTRIBUTE_NAMES) | {"remote_work_score"}
    for rule in list(config.tag_rules) + list(config.deal_breaker_rules):
        if rule.metric not in valid_metrics:
            raise ConfigurationError(
                f"Tag '{rule.tag}' references unknown metric: '{rule.metric}'. "
                f"Valid metrics: {', '.join(sorted(valid_metrics))}"
            )

    return config


def load_scoring_config(path: Path) -> ScoringConfig:
    """
    Load and validate scoring.json.

    Args:
        path: Path to scoring.json

    Returns:
        Validated ScoringConfig

    Raises:
        ConfigurationError: If JSON is malformed or structure invalid
    """
    data = load_json_file(path, "scoring.json")

    try:
        config = ScoringConfig(**data)
    except Exception as e:
        raise ConfigurationError(f"Invalid scoring config structure: {e}")

    return validate_scoring_config(config)


def get_settings(**overrides: Any) -> WorkFriendlinessSettings:
    """
    Load settings from environment variables and defaults.

    Environment variables (prefixed with CAFE_COMPASS_):
        CAFE_COMPASS_DB_PATH
        CAFE_COMPASS_SCORING_CONFIG_PATH
        CAFE_COMPASS_SUMMARY_MODE
        CAFE_COMPASS_LLM_MODEL
        CAFE_COMPASS_MAX_WORKERS
        OUTSCRAPER_API_KEY (or CAFE_COMPASS_OUTSCRAPER_API_KEY)
        OPENAI_API_KEY (or CAFE_COMPASS_LLM_API_KEY)

    Args:
        **overrides: Override specific settings

    Returns:
        WorkFriendlinessSettings instance
    """
    return WorkFriendlinessSettings(**overrides)


# --- Default scoring table (inline fallback) ---

DEFAULT_SCORING_CONFIG: Dict[str, Any] = {
    "version": "work_scores_v1",
    "work_vocabulary": [
        "wifi", "wi-fi", "internet", "laptop", "work", "study", "meeting",
        "call", "quiet", "noise", "loud", "outlet", "power", "charging",
        "focus", "productive", "remote", "office", "desk", "seating",
        "comfortable",
    ],
    "relevance_min_matches": 2,
    "relevance_normalizer": 10,
    "attributes": {
        "wifi_quality": {
            "cues": ["wifi", "wi-fi", "internet"],
            "rules": [
                {"terms": ["fast", "good wifi"], "score": 8},
                {"terms": ["slow", "bad wifi"], "score": 3},
            ],
            "default_score": 6,
            "confidence": 0.7,
        },
        "noise_level": {
            "cues": ["quiet", "loud", "noise"],
            "rules": [
                {"terms": ["quiet"], "score": 2},
                {"terms": ["loud"], "score": 8},
            ],
            "default_score": 5,
            "confidence": 0.8,
        },
        "outlet_availability": {
            "cues": ["outlet", "power", "charging"],
            "rules": [
                {"terms": ["plenty", "lots of outlets"], "score": 9},
                {"terms": ["no outlets", "few outlets"], "score": 2},
            ],
            "default_score": 6,
            "confidence": 0.6,
        },
        "seating_comfort": {
            "cues": ["seating", "seat", "chair", "couch", "comfortable"],
            "rules": [
                {"terms": ["uncomfortable", "hard chairs", "no seating"], "score": 3},
                {"terms": ["comfortable", "comfy", "spacious"], "score": 8},
            ],
            "default_score": 6,
            "confidence": 0.5,
        },
        "laptop_friendliness": {
            "cues": ["laptop", "computer", "work"],
            "rules": [
                {"terms": ["laptop friendly", "welcome laptops"], "score": 9},
                {"terms": ["no laptops"], "score": 1},
            ],
            "default_score": 7,
            "confidence": 0.7,
        },
    },
    "default_attribute_score": 5,
    "positive_phrases": ["great", "excellent", "love", "perfect", "amazing", "good", "nice"],
    "negative_phrases": ["bad", "terrible", "awful", "hate", "worst", "poor", "slow"],
    "thresholds": {
        "wifi_fast_min": 7,
        "wifi_adequate_min": 4,
        "noise_quiet_max": 3,
        "noise_moderate_max": 7,
        "laptop_encouraged_min": 7,
        "laptop_allowed_min": 4,
        "calls_max_noise": 4,
        "focus_max_noise": 3,
        "focus_min_wifi": 6,
    },
    "weights": {
        "wifi_quality": 0.30,
        "noise_level": 0.20,
        "outlet_availability": 0.20,
        "seating_comfort": 0.15,
        "laptop_friendliness": 0.15,
    },
    "work_score_scale": 0.8,
    "tag_rules": [
        {"tag": "quiet", "metric": "noise_level", "op": "le", "threshold": 3},
        {"tag": "laptop-friendly", "metric": "laptop_friendliness", "op": "ge", "threshold": 7},
        {"tag": "fast-wifi", "metric": "wifi_quality", "op": "ge", "threshold": 7},
        {"tag": "plenty-of-outlets", "metric": "outlet_availability", "op": "ge", "threshold": 7},
        {"tag": "work-friendly", "metric": "remote_work_score", "op": "ge", "threshold": 7},
    ],
    "deal_breaker_rules": [
        {"tag": "slow wifi", "metric": "wifi_quality", "op": "le", "threshold": 3},
    ],
    "default_tags": ["general"],
    "default_work_score": 5,
    "confidence_normalizer": 10,
    "evidence_window": 40,
}


def get_default_scoring_config() -> ScoringConfig:
    """Get the default built-in scoring table."""
    return validate_scoring_config(ScoringConfig(**DEFAULT_SCORING_CONFIG))


def resolve_scoring_config(settings: WorkFriendlinessSettings) -> ScoringConfig:
    """Scoring table from settings.scoring_config_path, or the built-in default."""
    if settings.scoring_config_path:
        return load_scoring_config(settings.scoring_config_path)
    return get_default_scoring_config()
