"""
Pytest fixtures for command line tool tests.
"""

import json
import tempfile
from pathlib import Path

import pytest

EXPORTED_RESPONSE = {
    "data": [
        {
            "name": "Bean There",
            "full_address": "12 Bedford Ave, Brooklyn, NY 11211",
            "rating": 4.5,
            "reviews": 321,
            "reviews_data": [
                {
                    "review_id": "rev_001",
                    "author_title": "Dana",
                    "review_text": "Fast wifi, great for laptop work",
                    "review_rating": 5,
                    "review_timestamp": 1717000000,
                },
                {
                    "review_id": "rev_002",
                    "author_title": "Sam",
                    "review_text": "Quiet corner, plenty of outlets, good wifi",
                    "review_rating": 4,
                    "review_timestamp": 1717100000,
                },
            ],
        }
    ],
}


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def export_dir(temp_dir: Path) -> Path:
    """Directory with one exported reviews-v3 response."""
    path = temp_dir / "exports"
    path.mkdir()
    with open(path / "ChIJ_test_cafe_1.json", "w") as f:
        json.dump(EXPORTED_RESPONSE, f)
    return path


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
