"""
Pytest fixtures for cafe_review_agent tests.
"""

import pytest

from shared.work_friendliness import (
    ScoringConfig,
    get_default_scoring_config,
)
from shared.cafe_review_agent import ProfileAggregator, ReviewAnalyzer


# --- Fixtures ---


@pytest.fixture
def scoring_config() -> ScoringConfig:
    """Return the built-in scoring table."""
    return get_default_scoring_config()


@pytest.fixture
def analyzer(scoring_config: ScoringConfig) -> ReviewAnalyzer:
    """Return an analyzer over the built-in table."""
    return ReviewAnalyzer(scoring_config)


@pytest.fixture
def aggregator(scoring_config: ScoringConfig) -> ProfileAggregator:
    """Return an aggregator over the built-in table."""
    return ProfileAggregator(scoring_config)


# --- Pytest markers ---


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "llm: Tests that require LLM (may incur costs)")
