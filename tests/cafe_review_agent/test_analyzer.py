"""
Unit tests for keyword review analysis.
"""

import pytest

from shared.cafe_review_agent import ReviewAnalyzer
from shared.cafe_review_agent.analyzer import find_terms
from shared.work_friendliness import RawReview, ScoringConfig


def make_review(text: str, review_id: str = "r1") -> RawReview:
    return RawReview(venue_id="test_venue", review_id=review_id, text=text, rating=4)


@pytest.mark.unit
class TestFindTerms:
    """Tests for find_terms."""

    def test_distinct_matches(self):
        assert find_terms("wifi wifi wifi", ["wifi", "laptop"]) == ["wifi"]

    def test_substring_match(self):
        assert find_terms("working with laptops", ["work", "laptop"]) == ["work", "laptop"]

    def test_table_order(self):
        assert find_terms("quiet and good wifi", ["wifi", "quiet"]) == ["wifi", "quiet"]


@pytest.mark.unit
class TestRelevanceFilter:
    """Tests for the work-related threshold."""

    def test_one_term_not_work_related(self, analyzer):
        analysis = analyzer.analyze(make_review("Great wifi here"))
        assert not analysis.is_work_related
        assert analysis.work_relevance_score == 0.0
        assert analysis.attributes == {}
        assert analysis.matched_keywords == ["wifi"]

    def test_two_terms_work_related(self, analyzer):
        analysis = analyzer.analyze(make_review("Great wifi and very quiet"))
        assert analysis.is_work_related
        assert analysis.work_relevance_score == pytest.approx(0.2)

    def test_repeated_term_counts_once(self, analyzer):
        assert not analyzer.is_work_related("wifi, wifi and more wifi")

    def test_case_insensitive(self, analyzer):
        assert analyzer.is_work_related("WIFI and LAPTOP")

    def test_relevance_caps_at_one(self, analyzer):
        text = "wifi internet laptop work study meeting call quiet outlet power focus"
        analysis = analyzer.analyze(make_review(text))
        assert analysis.work_relevance_score == 1.0

    def test_empty_text(self, analyzer):
        analysis = analyzer.analyze(make_review(""))
        assert not analysis.is_work_related
        assert analysis.sentiment_score == 0.0

    def test_threshold_is_configurable(self, scoring_config):
        config = scoring_config.model_copy(update={"relevance_min_matches": 1})
        assert ReviewAnalyzer(config).is_work_related("Great wifi here")


@pytest.mark.unit
class TestAttributeExtraction:
    """Tests for per-attribute cue tables."""

    def test_fast_wifi(self, analyzer):
        attributes = analyzer.extract_attributes("Fast wifi, great for laptop work")
        assert attributes["wifi_quality"].score == 8
        assert attributes["wifi_quality"].confidence == 0.7
        assert attributes["laptop_friendliness"].score == 7
        assert "noise_level" not in attributes

    def test_wifi_default(self, analyzer):
        attributes = analyzer.extract_attributes("Great wifi and very quiet")
        assert attributes["wifi_quality"].score == 6
        assert attributes["noise_level"].score == 2
        assert attributes["noise_level"].confidence == 0.8

    def test_first_matching_rule_wins(self, analyzer):
        attributes = analyzer.extract_attributes("Fast wifi but sometimes slow")
        assert attributes["wifi_quality"].score == 8

    def test_loud(self, analyzer):
        attributes = analyzer.extract_attributes("Too loud to focus with my laptop")
        assert attributes["noise_level"].score == 8
        assert attributes["laptop_friendliness"].score == 7

    def test_outlets(self, analyzer):
        plenty = analyzer.extract_attributes("Plenty of outlets and fast wifi")
        assert plenty["outlet_availability"].score == 9
        assert plenty["outlet_availability"].confidence == 0.6

        scarce = analyzer.extract_attributes("No outlets and slow wifi")
        assert scarce["outlet_availability"].score == 2
        assert scarce["wifi_quality"].score == 3

    def test_no_laptops(self, analyzer):
        attributes = analyzer.extract_attributes("No laptops on weekends, wifi is ok")
        assert attributes["laptop_friendliness"].score == 1

    def test_seating(self, analyzer):
        comfy = analyzer.extract_attributes("Comfortable seating, good for work")
        assert comfy["seating_comfort"].score == 8
        assert comfy["seating_comfort"].confidence == 0.5

        hard = analyzer.extract_attributes("Uncomfortable chairs, bad for laptop work")
        assert hard["seating_comfort"].score == 3

    def test_evidence_whole_short_text(self, analyzer):
        attributes = analyzer.extract_attributes("Fast wifi, great for laptop work")
        assert attributes["wifi_quality"].evidence == "Fast wifi, great for laptop work"

    def test_evidence_window(self, analyzer):
        text = "x" * 60 + " fast wifi " + "y" * 60
        evidence = analyzer.extract_attributes(text)["wifi_quality"].evidence
        assert evidence.startswith("...")
        assert evidence.endswith("...")
        assert "fast wifi" in evidence
        assert len(evidence) < len(text)


@pytest.mark.unit
class TestSentiment:
    """Tests for sentiment scoring."""

    def test_positive(self, analyzer):
        assert analyzer.sentiment_score("Great place, love it") == 1.0

    def test_negative(self, analyzer):
        assert analyzer.sentiment_score("Slow wifi") == -1.0

    def test_mixed(self, analyzer):
        assert analyzer.sentiment_score("good coffee, bad music") == 0.0
        assert analyzer.sentiment_score("great, excellent, terrible") == pytest.approx(1 / 3)

    def test_neutral(self, analyzer):
        assert analyzer.sentiment_score("Nothing to report") == 0.0

    def test_computed_for_every_review(self, analyzer):
        analysis = analyzer.analyze(make_review("Nice pastries"))
        assert not analysis.is_work_related
        assert analysis.sentiment_score == 1.0


@pytest.mark.unit
class TestAnalyzeBatch:
    """Tests for batch analysis."""

    def test_order_preserved(self, analyzer):
        reviews = [
            make_review("Nice pastries", "r1"),
            make_review("Fast wifi, great for laptop work", "r2"),
        ]
        analyses = analyzer.analyze_batch(reviews)
        assert [a.review_id for a in analyses] == ["r1", "r2"]
        assert [a.is_work_related for a in analyses] == [False, True]

    def test_pure(self, analyzer):
        review = make_review("Fast wifi, quiet, plenty of outlets")
        assert analyzer.analyze(review) == analyzer.analyze(review)

    def test_custom_vocabulary(self, scoring_config):
        config = ScoringConfig(**{
            **scoring_config.model_dump(),
            "work_vocabulary": ["espresso", "pastry"],
        })
        assert ReviewAnalyzer(config).is_work_related("Espresso and a pastry")
