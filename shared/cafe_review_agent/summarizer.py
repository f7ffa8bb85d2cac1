"""
Work summary generation for venue profiles.

TemplateSummaryGenerator builds deterministic text from the profile;
LLMSummaryGenerator asks a chat model to summarize the work-related reviews.
"""

import json
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from shared.work_friendliness.exceptions import SummaryGenerationError, SummaryTimeoutError
from shared.work_friendliness.interfaces import SummaryGeneratorInterface
from shared.work_friendliness.models import (
    LaptopPolicy,
    ModelSummaryResponse,
    RawReview,
    ReviewAnalysis,
    VenueProfile,
)

logger = logging.getLogger(__name__)


LIMITED_INFORMATION_SUMMARY = "Limited information available for work assessment."


class TemplateSummaryGenerator(SummaryGeneratorInterface):
    """Deterministic summary from score brackets and categorical outputs."""

    @property
    def model_name(self) -> str:
        return "template"

    def generate_summary(
        self,
        venue_name: str,
        profile: VenueProfile,
        reviews: List[RawReview],
        analyses: List[ReviewAnalysis],
    ) -> str:
        if profile.work_reviews_count == 0:
            return LIMITED_INFORMATION_SUMMARY

        score = profile.remote_work_score
        if score >= 8:
            parts = ["Excellent for remote work."]
        elif score >= 6:
            parts = ["Good for remote work."]
        elif score >= 4:
            parts = ["Decent for remote work."]
        else:
            parts = ["May not be ideal for remote work."]

        parts.append(
            f"{profile.wifi_speed.value.capitalize()} WiFi, {profile.noise_level.value} atmosphere."
        )

        if profile.laptop_policy == LaptopPolicy.ENCOURAGED:
            parts.append("Laptops are welcome.")
        elif profile.laptop_policy == LaptopPolicy.DISCOURAGED:
            parts.append("Laptops may not be encouraged.")

        count = profile.work_reviews_count
        parts.append(f"Based on {count} work-related review{'' if count == 1 else 's'}.")
        return " ".join(parts)


SUMMARY_PROMPT_TEMPLATE = """You are an expert at assessing cafes as places to work remotely.

Based on the following Google reviews of {venue_name}, assess how suitable
it is for remote work (WiFi, noise, power outlets, seating, laptop policy).

Keyword analysis so far:
- Remote work score: {work_score}/10
- WiFi: {wifi_speed}
- Noise: {noise_level}

Reviews:
{reviews_text}

{review_note}

Respond with a JSON object in this exact format:
{{
    "work_score": <0-5>,
    "wifi_quality": <0-5>,
    "noise_level": <0-5, 0 = silent>,
    "summary": "one sentence about work-friendliness",
    "confidence": "high" | "medium" | "low"
}}

Only use what the reviews say. Be balanced - mention drawbacks if present."""

WORK_REVIEWS_NOTE = "These reviews specifically mention work, WiFi, or laptop usage."
GENERAL_REVIEWS_NOTE = (
    "These are general reviews. Estimate work-friendliness based on atmosphere, noise, seating."
)


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` markdown block, if any."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def parse_summary_response(content: str) -> ModelSummaryResponse:
    """
    Parse and validate a model response.

    Raises:
        SummaryGenerationError: If it isn't JSON or doesn't match the schema
    """
    try:
        data = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        raise SummaryGenerationError(f"Failed to parse LLM response as JSON: {e}")

    try:
        return ModelSummaryResponse.model_validate(data)
    except ValidationError as e:
        raise SummaryGenerationError(f"LLM response doesn't match summary schema: {e}")


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, TimeoutError) or "timeout" in type(exc).__name__.lower()


def _should_retry(exc: BaseException) -> bool:
    """Schema violations get one more attempt; timeouts never do."""
    return isinstance(exc, SummaryGenerationError) and not isinstance(exc, SummaryTimeoutError)


class LLMSummaryGenerator(SummaryGeneratorInterface):
    """
    Generates work summaries with a chat model.

    Features:
        - Code fence stripping and pydantic schema validation of the response
        - One retry on schema violations
        - Token usage tracking
        - Support for mock LLM for testing
    """

    def __init__(
        self,
        llm_model: str = "gpt-4o-mini",
        llm_temperature: float = 0.3,  # Slightly higher for more natural text
        api_key: Optional[str] = None,
        timeout_seconds: float = 30.0,
        max_reviews: int = 20,
        mock_llm: bool = False,
    ):
        """
        Initialize summary generator.

        Args:
            llm_model: LLM model name
            llm_temperature: LLM temperature
            api_key: OpenAI API key (uses env var if not provided)
            timeout_seconds: Timeout for one model call
            max_reviews: Max reviews embedded in the prompt
            mock_llm: If True, use mock LLM for testing
        """
        self.llm_model = llm_model
        self.llm_temperature = llm_temperature
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.max_reviews = max_reviews
        self.mock_llm = mock_llm

        # Token usage tracking
        self._token_usage = {
            "input_tokens": 0,
            "output_tokens": 0,
            "total_calls": 0,
        }
        self._usage_lock = threading.Lock()

        # Initialize LLM chain if not mock
        self._chain = None
        if not mock_llm:
            self._init_chain()

    @property
    def model_name(self) -> str:
        return "mock-llm" if self.mock_llm else self.llm_model

    def _init_chain(self) -> None:
        """Initialize LangChain chain."""
        try:
            from langchain_core.prompts import ChatPromptTemplate
            from langchain_openai import ChatOpenAI

            # Create LLM
            llm_kwargs: Dict[str, Any] = {
                "model": self.llm_model,
                "temperature": self.llm_temperature,
                "timeout": self.timeout_seconds,
                "max_retries": 0,
            }
            if self.api_key:
                llm_kwargs["api_key"] = self.api_key

            self._llm = ChatOpenAI(**llm_kwargs)

            # Create prompt template
            self._prompt = ChatPromptTemplate.from_template(SUMMARY_PROMPT_TEMPLATE)

            # Create chain
            self._chain = self._prompt | self._llm

        except ImportError as e:
            raise SummaryGenerationError(
                f"LangChain not available. Install with: pip install langchain-openai. Error: {e}"
            )

    def _build_reviews_text(
        self, reviews: List[RawReview], analyses: List[ReviewAnalysis]
    ) -> Tuple[str, str]:
        """
        Prompt lines and a note describing them.

        Work-related reviews go first by relevance. With none, the general
        reviews are sent instead.
        """
        relevance = {a.review_id: a.work_relevance_score for a in analyses if a.is_work_related}
        selected = [r for r in reviews if r.review_id in relevance]
        selected.sort(key=lambda r: -relevance[r.review_id])
        note = WORK_REVIEWS_NOTE
        if not selected:
            selected = [r for r in reviews if r.text.strip()]
            note = GENERAL_REVIEWS_NOTE

        lines = [
            f"- ({review.rating}/5) {review.text.strip()}"
            for review in selected[: self.max_reviews]
        ]
        return "\n".join(lines) if lines else "No reviews", note

    def _mock_generate(self, inputs: Dict[str, Any]) -> str:
        """Generate mock response text for testing."""
        score = float(inputs["work_score"]) / 2
        return "```json\n" + json.dumps({
            "work_score": score,
            "wifi_quality": 4.0 if inputs["wifi_speed"] == "fast" else 2.5,
            "noise_level": 1.0 if inputs["noise_level"] == "quiet" else 3.0,
            "summary": (
                f"{inputs['venue_name']} has {inputs['wifi_speed']} WiFi and a "
                f"{inputs['noise_level']} atmosphere."
            ),
            "confidence": "medium",
        }) + "\n```"

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception(_should_retry),
        reraise=True,
    )
    def _call_llm(self, inputs: Dict[str, Any]) -> ModelSummaryResponse:
        """Call LLM and validate the response, retrying once on schema violations."""
        if self.mock_llm:
            return parse_summary_response(self._mock_generate(inputs))

        if self._chain is None:
            raise SummaryGenerationError("LLM chain not initialized")

        try:
            response = self._chain.invoke(inputs)
        except Exception as e:
            if _is_timeout(e):
                raise SummaryTimeoutError(
                    f"LLM call timed out after {self.timeout_seconds}s: {e}"
                )
            logger.error(f"LLM call failed: {e}")
            raise SummaryGenerationError(f"LLM call failed: {e}")

        content = response.content if hasattr(response, "content") else str(response)

        # Track token usage (pipeline workers share this generator)
        usage = getattr(response, "usage_metadata", None)
        with self._usage_lock:
            if usage:
                self._token_usage["input_tokens"] += usage.get("input_tokens", 0)
                self._token_usage["output_tokens"] += usage.get("output_tokens", 0)
            self._token_usage["total_calls"] += 1

        return parse_summary_response(content)

    def generate_summary(
        self,
        venue_name: str,
        profile: VenueProfile,
        reviews: List[RawReview],
        analyses: List[ReviewAnalysis],
    ) -> str:
        """
        Generate the work summary for a venue.

        Only the summary text is used; the model's numeric ratings are
        validated but the profile's categoricals stay keyword-derived.

        Raises:
            SummaryTimeoutError: If the model call timed out
            SummaryGenerationError: If the response is still invalid after one retry
        """
        reviews_text, review_note = self._build_reviews_text(reviews, analyses)
        inputs = {
            "venue_name": venue_name or "this cafe",
            "work_score": profile.remote_work_score,
            "wifi_speed": profile.wifi_speed.value,
            "noise_level": profile.noise_level.value,
            "reviews_text": reviews_text,
            "review_note": review_note,
        }
        result = self._call_llm(inputs)
        logger.debug(f"LLM summary for {venue_name}: confidence={result.confidence}")
        return result.summary

    def get_token_usage(self) -> Dict[str, int]:
        """Get cumulative token usage stats."""
        with self._usage_lock:
            return self._token_usage.copy()

    def reset_token_usage(self) -> None:
        """Reset token usage counters."""
        with self._usage_lock:
            self._token_usage = {
                "input_tokens": 0,
                "output_tokens": 0,
                "total_calls": 0,
            }
