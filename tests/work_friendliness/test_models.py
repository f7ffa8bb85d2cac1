"""
Unit tests for work_friendliness models.
"""

import pytest
from pydantic import ValidationError

from shared.work_friendliness import (
    AnalysisRunLog,
    AnalysisStatus,
    AnalysisType,
    AttributeScore,
    LaptopPolicy,
    ModelSummaryResponse,
    NoiseCategory,
    RawReview,
    ThresholdTag,
    VenueProfile,
    WifiSpeed,
)


@pytest.mark.unit
class TestRawReview:
    """Tests for RawReview model."""

    def test_defaults(self):
        review = RawReview(venue_id="v1", review_id="r1", rating=4)
        assert review.author == "Anonymous"
        assert review.text == ""
        assert review.timestamp is None
        assert review.source == "google"

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValidationError):
            RawReview(venue_id="v1", review_id="r1", rating=rating)


@pytest.mark.unit
class TestAttributeScore:
    """Tests for AttributeScore bounds."""

    def test_valid(self):
        score = AttributeScore(score=8, confidence=0.7, evidence="fast wifi")
        assert score.score == 8.0

    def test_score_below_scale(self):
        with pytest.raises(ValidationError):
            AttributeScore(score=0.5, confidence=0.7)

    def test_confidence_above_one(self):
        with pytest.raises(ValidationError):
            AttributeScore(score=5, confidence=1.5)


@pytest.mark.unit
class TestVenueProfile:
    """Tests for VenueProfile defaults."""

    def test_defaults_are_mid_range(self):
        profile = VenueProfile()
        assert profile.wifi_speed == WifiSpeed.ADEQUATE
        assert profile.noise_level == NoiseCategory.MODERATE
        assert profile.laptop_policy == LaptopPolicy.ALLOWED
        assert profile.remote_work_score == 5
        assert profile.outlet_rating == 3
        assert profile.seating_rating == 3
        assert profile.ai_confidence_score == 0.0

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            VenueProfile(remote_work_score=11)
        with pytest.raises(ValidationError):
            VenueProfile(outlet_rating=0)

    def test_enum_serialization(self):
        data = VenueProfile(wifi_speed=WifiSpeed.FAST).model_dump(mode="json")
        assert data["wifi_speed"] == "fast"


@pytest.mark.unit
class TestThresholdTag:
    """Tests for ThresholdTag.matches."""

    def test_ge_inclusive(self):
        rule = ThresholdTag(tag="fast-wifi", metric="wifi_quality", op="ge", threshold=7)
        assert rule.matches(7.0)
        assert not rule.matches(6.99)

    def test_le_inclusive(self):
        rule = ThresholdTag(tag="quiet", metric="noise_level", op="le", threshold=3)
        assert rule.matches(3.0)
        assert not rule.matches(3.01)

    def test_invalid_op(self):
        with pytest.raises(ValidationError):
            ThresholdTag(tag="x", metric="wifi_quality", op="gt", threshold=1)


@pytest.mark.unit
class TestModelSummaryResponse:
    """Tests for the LLM summary schema."""

    def test_valid(self):
        response = ModelSummaryResponse(
            work_score=4.0,
            wifi_quality=4.5,
            noise_level=2.0,
            summary="Great spot to work.",
            confidence="high",
        )
        assert response.confidence == "high"

    def test_confidence_label(self):
        with pytest.raises(ValidationError):
            ModelSummaryResponse(
                work_score=4.0, wifi_quality=4.0, noise_level=2.0,
                summary="ok", confidence="certain",
            )

    def test_sub_score_range(self):
        with pytest.raises(ValidationError):
            ModelSummaryResponse(
                work_score=7.0, wifi_quality=4.0, noise_level=2.0,
                summary="ok", confidence="low",
            )

    def test_empty_summary(self):
        with pytest.raises(ValidationError):
            ModelSummaryResponse(
                work_score=3.0, wifi_quality=4.0, noise_level=2.0,
                summary="", confidence="low",
            )


@pytest.mark.unit
class TestAnalysisRunLog:
    """Tests for AnalysisRunLog."""

    def test_requires_status_and_duration(self):
        with pytest.raises(ValidationError):
            AnalysisRunLog(venue_id="v1", status=AnalysisStatus.COMPLETED)
        with pytest.raises(ValidationError):
            AnalysisRunLog(venue_id="v1", processing_time_ms=10)

    def test_defaults(self):
        log = AnalysisRunLog(venue_id="v1", status="failed", processing_time_ms=0)
        assert log.analysis_type == AnalysisType.INITIAL_ANALYSIS
        assert log.status == AnalysisStatus.FAILED
        assert log.score_change is None
