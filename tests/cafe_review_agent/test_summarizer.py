"""
Unit tests for work summary generation.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace
from typing import List

import pytest
from tenacity import wait_none

from shared.cafe_review_agent import LLMSummaryGenerator, TemplateSummaryGenerator
from shared.cafe_review_agent.summarizer import (
    GENERAL_REVIEWS_NOTE,
    LIMITED_INFORMATION_SUMMARY,
    SUMMARY_PROMPT_TEMPLATE,
    WORK_REVIEWS_NOTE,
    parse_summary_response,
    strip_code_fences,
)
from shared.work_friendliness import (
    LaptopPolicy,
    NoiseCategory,
    RawReview,
    ReviewAnalysis,
    SummaryGenerationError,
    SummaryTimeoutError,
    VenueProfile,
    WifiSpeed,
)

VALID_RESPONSE = {
    "work_score": 4.0,
    "wifi_quality": 4.5,
    "noise_level": 1.5,
    "summary": "Quiet cafe with fast WiFi, good for focused work.",
    "confidence": "high",
}


class FakeChain:
    """Returns queued responses (or raises queued exceptions) from invoke()."""

    def __init__(self, responses: List):
        self.responses = list(responses)
        self.inputs: List[dict] = []

    def invoke(self, inputs):
        self.inputs.append(inputs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(
            content=response,
            usage_metadata={"input_tokens": 100, "output_tokens": 20},
        )


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Skip the backoff before the schema retry."""
    monkeypatch.setattr(LLMSummaryGenerator._call_llm.retry, "wait", wait_none())


def make_generator(chain: FakeChain) -> LLMSummaryGenerator:
    generator = LLMSummaryGenerator(llm_model="gpt-4o-mini", mock_llm=True)
    generator.mock_llm = False
    generator._chain = chain
    return generator


def profile_with(score: int, work_reviews: int = 3, **kwargs) -> VenueProfile:
    return VenueProfile(remote_work_score=score, work_reviews_count=work_reviews, **kwargs)


@pytest.fixture
def venue_reviews():
    reviews = [
        RawReview(venue_id="v1", review_id="r1", text="Nice pastries", rating=5),
        RawReview(venue_id="v1", review_id="r2", text="Fast wifi, laptop friendly", rating=5),
        RawReview(venue_id="v1", review_id="r3", text="Quiet, wifi, outlets, focus", rating=4),
    ]
    analyses = [
        ReviewAnalysis(review_id="r1"),
        ReviewAnalysis(review_id="r2", is_work_related=True, work_relevance_score=0.2),
        ReviewAnalysis(review_id="r3", is_work_related=True, work_relevance_score=0.4),
    ]
    return reviews, analyses


@pytest.mark.unit
class TestTemplateSummary:
    """Tests for TemplateSummaryGenerator."""

    @pytest.mark.parametrize("score,opening", [
        (9, "Excellent for remote work."),
        (8, "Excellent for remote work."),
        (7, "Good for remote work."),
        (6, "Good for remote work."),
        (5, "Decent for remote work."),
        (4, "Decent for remote work."),
        (3, "May not be ideal for remote work."),
    ])
    def test_score_brackets(self, score, opening):
        summary = TemplateSummaryGenerator().generate_summary("Cafe", profile_with(score), [], [])
        assert summary.startswith(opening)

    def test_full_text(self):
        profile = profile_with(
            8,
            wifi_speed=WifiSpeed.FAST,
            noise_level=NoiseCategory.QUIET,
            laptop_policy=LaptopPolicy.ENCOURAGED,
        )
        summary = TemplateSummaryGenerator().generate_summary("Cafe", profile, [], [])
        assert summary == (
            "Excellent for remote work. Fast WiFi, quiet atmosphere. "
            "Laptops are welcome. Based on 3 work-related reviews."
        )

    def test_discouraged_laptops(self):
        profile = profile_with(3, work_reviews=1, laptop_policy=LaptopPolicy.DISCOURAGED)
        summary = TemplateSummaryGenerator().generate_summary("Cafe", profile, [], [])
        assert "Laptops may not be encouraged." in summary
        assert summary.endswith("Based on 1 work-related review.")

    def test_allowed_laptops_not_mentioned(self):
        summary = TemplateSummaryGenerator().generate_summary("Cafe", profile_with(5), [], [])
        assert "Laptops" not in summary

    def test_no_work_reviews(self):
        summary = TemplateSummaryGenerator().generate_summary(
            "Cafe", profile_with(5, work_reviews=0), [], []
        )
        assert summary == LIMITED_INFORMATION_SUMMARY


@pytest.mark.unit
class TestResponseParsing:
    """Tests for model response parsing."""

    def test_strip_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strip_plain_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_parse_valid(self):
        result = parse_summary_response("```json\n" + json.dumps(VALID_RESPONSE) + "\n```")
        assert result.confidence == "high"
        assert result.summary.startswith("Quiet cafe")

    def test_parse_not_json(self):
        with pytest.raises(SummaryGenerationError, match="JSON"):
            parse_summary_response("Sure! Here is the summary you asked for.")

    def test_parse_schema_violation(self):
        bad = dict(VALID_RESPONSE, confidence="very high")
        with pytest.raises(SummaryGenerationError, match="schema"):
            parse_summary_response(json.dumps(bad))

    def test_parse_missing_field(self):
        bad = {k: v for k, v in VALID_RESPONSE.items() if k != "summary"}
        with pytest.raises(SummaryGenerationError):
            parse_summary_response(json.dumps(bad))


@pytest.mark.unit
class TestLLMSummaryGenerator:
    """Tests for LLMSummaryGenerator with a fake chain."""

    def test_mock_llm(self, venue_reviews):
        reviews, analyses = venue_reviews
        generator = LLMSummaryGenerator(mock_llm=True)
        profile = profile_with(7, wifi_speed=WifiSpeed.FAST)

        summary = generator.generate_summary("Bean There", profile, reviews, analyses)

        assert summary == "Bean There has fast WiFi and a moderate atmosphere."
        assert generator.model_name == "mock-llm"

    def test_valid_response(self, venue_reviews):
        reviews, analyses = venue_reviews
        chain = FakeChain([json.dumps(VALID_RESPONSE)])
        generator = make_generator(chain)

        summary = generator.generate_summary("Bean There", profile_with(7), reviews, analyses)

        assert summary == VALID_RESPONSE["summary"]
        assert generator.model_name == "gpt-4o-mini"
        assert generator.get_token_usage() == {
            "input_tokens": 100,
            "output_tokens": 20,
            "total_calls": 1,
        }

    def test_prompt_has_work_reviews_only(self, venue_reviews):
        reviews, analyses = venue_reviews
        chain = FakeChain([json.dumps(VALID_RESPONSE)])
        make_generator(chain).generate_summary("Bean There", profile_with(7), reviews, analyses)

        reviews_text = chain.inputs[0]["reviews_text"]
        assert "Nice pastries" not in reviews_text
        # Most relevant first
        assert reviews_text.index("Quiet, wifi") < reviews_text.index("Fast wifi")
        assert chain.inputs[0]["venue_name"] == "Bean There"
        assert chain.inputs[0]["review_note"] == WORK_REVIEWS_NOTE

    def test_retries_once_on_malformed(self, no_retry_wait, venue_reviews):
        reviews, analyses = venue_reviews
        chain = FakeChain(["not json at all", "```json\n" + json.dumps(VALID_RESPONSE) + "\n```"])
        generator = make_generator(chain)

        summary = generator.generate_summary("Bean There", profile_with(7), reviews, analyses)

        assert summary == VALID_RESPONSE["summary"]
        assert len(chain.inputs) == 2

    def test_fails_after_second_malformed(self, no_retry_wait, venue_reviews):
        reviews, analyses = venue_reviews
        chain = FakeChain(["not json", json.dumps(dict(VALID_RESPONSE, work_score=9))])
        generator = make_generator(chain)

        with pytest.raises(SummaryGenerationError):
            generator.generate_summary("Bean There", profile_with(7), reviews, analyses)
        assert len(chain.inputs) == 2

    def test_timeout_not_retried(self, no_retry_wait, venue_reviews):
        reviews, analyses = venue_reviews
        chain = FakeChain([TimeoutError("read timed out"), json.dumps(VALID_RESPONSE)])
        generator = make_generator(chain)

        with pytest.raises(SummaryTimeoutError):
            generator.generate_summary("Bean There", profile_with(7), reviews, analyses)
        assert len(chain.inputs) == 1

    def test_reset_token_usage(self, venue_reviews):
        reviews, analyses = venue_reviews
        generator = make_generator(FakeChain([json.dumps(VALID_RESPONSE)]))
        generator.generate_summary("Bean There", profile_with(7), reviews, analyses)

        generator.reset_token_usage()
        assert generator.get_token_usage()["total_calls"] == 0

    def test_general_reviews_when_none_work_related(self):
        reviews = [
            RawReview(venue_id="v1", review_id="r1", text="Super loud and crowded", rating=3),
            RawReview(venue_id="v1", review_id="r2", text="Nice pastries", rating=5),
        ]
        analyses = [ReviewAnalysis(review_id="r1"), ReviewAnalysis(review_id="r2")]
        chain = FakeChain([json.dumps(VALID_RESPONSE)])

        make_generator(chain).generate_summary(
            "Bean There", profile_with(5, work_reviews=0), reviews, analyses
        )

        reviews_text = chain.inputs[0]["reviews_text"]
        assert "Super loud and crowded" in reviews_text
        assert "Nice pastries" in reviews_text
        assert chain.inputs[0]["review_note"] == GENERAL_REVIEWS_NOTE

    def test_prompt_asks_for_one_sentence(self):
        assert '"summary": "one sentence about work-friendliness"' in SUMMARY_PROMPT_TEMPLATE
        assert "{review_note}" in SUMMARY_PROMPT_TEMPLATE

    def test_token_usage_across_threads(self, venue_reviews):
        reviews, analyses = venue_reviews

        class SteadyChain:
            def invoke(self, inputs):
                return SimpleNamespace(
                    content=json.dumps(VALID_RESPONSE),
                    usage_metadata={"input_tokens": 100, "output_tokens": 20},
                )

        generator = make_generator(SteadyChain())
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(
                lambda _: generator.generate_summary("Bean There", profile_with(7), reviews, analyses),
                range(200),
            ))

        assert generator.get_token_usage() == {
            "input_tokens": 20000,
            "output_tokens": 4000,
            "total_calls": 200,
        }
