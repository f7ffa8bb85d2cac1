"""
Pytest fixtures for work_friendliness tests.
"""

import copy
import json
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import pytest

from shared.work_friendliness import (
    DEFAULT_SCORING_CONFIG,
    RawReview,
    ScoringConfig,
    VenueFetchResult,
    VenueMetadata,
    VenueStorage,
    WorkFriendlinessSettings,
    get_default_scoring_config,
)


# --- Sample Data ---

SAMPLE_VENUE: Dict[str, Any] = {
    "venue_id": "ChIJ_test_cafe_1",
    "name": "Bean There",
    "address": "12 Bedford Ave, Brooklyn, NY 11211",
    "city": "Brooklyn",
    "latitude": 40.7175,
    "longitude": -73.9571,
    "google_rating": 4.5,
    "google_review_count": 321,
    "google_maps_url": "https://maps.google.com/?cid=1",
}

SAMPLE_REVIEWS: List[Dict[str, Any]] = [
    {
        "venue_id": "ChIJ_test_cafe_1",
        "review_id": "rev_001",
        "author": "Dana",
        "text": "Fast wifi, great for laptop work",
        "rating": 5,
        "timestamp": 1717000000,
    },
    {
        "venue_id": "ChIJ_test_cafe_1",
        "review_id": "rev_002",
        "author": "Sam",
        "text": "Super loud and crowded",
        "rating": 2,
        "timestamp": 1717100000,
    },
    {
        "venue_id": "ChIJ_test_cafe_1",
        "review_id": "rev_003",
        "author": "Lee",
        "text": "Nice pastries",
        "rating": 4,
        "timestamp": 1717200000,
    },
]

# reviews-v3 response shape (async=false)
SAMPLE_OUTSCRAPER_RESPONSE: Dict[str, Any] = {
    "id": "a6b8-test",
    "status": "Success",
    "data": [
        {
            "name": "Bean There",
            "full_address": "12 Bedford Ave, Brooklyn, NY 11211",
            "latitude": 40.7175,
            "longitude": -73.9571,
            "rating": 4.5,
            "reviews": 321,
            "location_link": "https://maps.google.com/?cid=1",
            "reviews_data": [
                {
                    "review_id": "rev_001",
                    "author_title": "Dana",
                    "author_id": "111",
                    "review_text": "Fast wifi, great for laptop work",
                    "review_rating": 5,
                    "review_timestamp": 1717000000,
                },
                {
                    "author_title": "Sam",
                    "author_id": "222",
                    "review_text": "Super loud and crowded",
                    "review_rating": 2,
                    "review_timestamp": 1717100000,
                },
                {
                    "review_id": "rev_bad",
                    "author_title": "Nobody",
                    "review_text": "No stars given",
                    "review_rating": None,
                },
            ],
        }
    ],
}


# --- Fixtures ---


@pytest.fixture
def outscraper_response() -> Dict[str, Any]:
    """Return a reviews-v3 response for the sample venue."""
    return copy.deepcopy(SAMPLE_OUTSCRAPER_RESPONSE)


@pytest.fixture
def sample_metadata() -> VenueMetadata:
    """Return sample venue facts."""
    return VenueMetadata(**SAMPLE_VENUE)


@pytest.fixture
def sample_reviews() -> List[RawReview]:
    """Return sample raw reviews."""
    return [RawReview(**r) for r in SAMPLE_REVIEWS]


@pytest.fixture
def sample_fetch_result(sample_metadata, sample_reviews) -> VenueFetchResult:
    """Return a fetch result for the sample venue."""
    return VenueFetchResult(metadata=sample_metadata, reviews=sample_reviews)


@pytest.fixture
def scoring_config() -> ScoringConfig:
    """Return the built-in scoring table."""
    return get_default_scoring_config()


@pytest.fixture
def scoring_config_dict() -> Dict[str, Any]:
    """Return a mutable copy of the built-in scoring table."""
    return copy.deepcopy(DEFAULT_SCORING_CONFIG)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_dir: Path) -> Path:
    """Return path to temporary database."""
    return temp_dir / "test_cafe_compass.db"


@pytest.fixture
def temp_storage(temp_db_path: Path) -> VenueStorage:
    """Create a temporary storage instance."""
    storage = VenueStorage(temp_db_path)
    yield storage
    storage.close()


@pytest.fixture
def settings(temp_db_path: Path) -> WorkFriendlinessSettings:
    """Settings pointing at the temporary database, one worker."""
    return WorkFriendlinessSettings(db_path=temp_db_path, max_workers=1)


@pytest.fixture
def scoring_json_path(temp_dir: Path, scoring_config_dict: Dict[str, Any]) -> Path:
    """Create temporary scoring.json file."""
    path = temp_dir / "scoring.json"
    with open(path, "w") as f:
        json.dump(scoring_config_dict, f)
    return path


@pytest.fixture
def reviews_dir(temp_dir: Path) -> Path:
    """Directory holding one exported reviews-v3 response."""
    path = temp_dir / "exports"
    path.mkdir()
    with open(path / "ChIJ_test_cafe_1.json", "w") as f:
        json.dump(SAMPLE_OUTSCRAPER_RESPONSE, f)
    return path


# --- Pytest markers ---


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "llm: Tests that require LLM (may incur costs)")
    config.addinivalue_line("markers", "slow: Tests that take longer to run")
