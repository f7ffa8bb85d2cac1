"""
Profile aggregation for work-friendliness scoring.

Turns per-review analyses into a categorical VenueProfile.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from shared.work_friendliness.models import (
    ATTRIBUTE_NAMES,
    LAPTOP_FRIENDLINESS,
    NOISE_LEVEL,
    OUTLET_AVAILABILITY,
    SEATING_COMFORT,
    WIFI_QUALITY,
    LaptopPolicy,
    NoiseCategory,
    RawReview,
    ReviewAnalysis,
    ScoringConfig,
    VenueProfile,
    WifiSpeed,
)

from .analyzer import ReviewAnalyzer
from .summarizer import TemplateSummaryGenerator

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to nearest int, .5 away from zero (Python's round() is half-to-even)."""
    # Trim float noise so e.g. 5.4999999999 from the weighted sum lands on 5.5.
    value = round(value, 9)
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class ProfileAggregator:
    """
    Aggregates review analyses into a VenueProfile.

    Features:
        - Per-attribute means over the reviews that expressed the attribute
        - Threshold mapping to categorical outputs
        - Weighted remote work score
        - Tags, deal breakers and confidence from configurable rules
    """

    def __init__(self, config: ScoringConfig):
        self.config = config

    def default_profile(self, total_reviews: int = 0) -> VenueProfile:
        """Mid-range profile used when there's nothing work-related to go on."""
        baseline = self.config.default_attribute_score
        return VenueProfile(
            wifi_speed=WifiSpeed.ADEQUATE,
            noise_level=NoiseCategory.MODERATE,
            laptop_policy=LaptopPolicy.ALLOWED,
            good_for_calls=False,
            good_for_focus=False,
            remote_work_score=self.config.default_work_score,
            outlet_rating=3,
            seating_rating=3,
            vibe_tags=list(self.config.default_tags),
            deal_breakers=[],
            ai_confidence_score=0.0,
            work_reviews_count=0,
            total_reviews_count=total_reviews,
            attribute_averages={name: baseline for name in ATTRIBUTE_NAMES},
        )

    def attribute_averages(self, analyses: List[ReviewAnalysis]) -> Dict[str, float]:
        """Mean sub-score per attribute; attributes nobody expressed get the baseline."""
        averages: Dict[str, float] = {}
        for name in ATTRIBUTE_NAMES:
            scores = [a.attributes[name].score for a in analyses if name in a.attributes]
            if scores:
                averages[name] = sum(scores) / len(scores)
            else:
                averages[name] = self.config.default_attribute_score
        return averages

    def wifi_category(self, wifi: float) -> WifiSpeed:
        t = self.config.thresholds
        if wifi >= t.wifi_fast_min:
            return WifiSpeed.FAST
        if wifi >= t.wifi_adequate_min:
            return WifiSpeed.ADEQUATE
        return WifiSpeed.SLOW

    def noise_category(self, noise: float) -> NoiseCategory:
        t = self.config.thresholds
        if noise <= t.noise_quiet_max:
            return NoiseCategory.QUIET
        if noise <= t.noise_moderate_max:
            return NoiseCategory.MODERATE
        return NoiseCategory.LOUD

    def laptop_category(self, laptop: float) -> LaptopPolicy:
        t = self.config.thresholds
        if laptop >= t.laptop_encouraged_min:
            return LaptopPolicy.ENCOURAGED
        if laptop >= t.laptop_allowed_min:
            return LaptopPolicy.ALLOWED
        return LaptopPolicy.DISCOURAGED

    def remote_work_score(self, averages: Dict[str, float]) -> int:
        """
        Weighted combination of the sub-scores, scaled and rounded half-up.

        Noise is inverted (10 - noise) since quieter is better.
        """
        w = self.config.weights
        raw = (
            averages[WIFI_QUALITY] * w.wifi_quality
            + (10 - averages[NOISE_LEVEL]) * w.noise_level
            + averages[OUTLET_AVAILABILITY] * w.outlet_availability
            + averages[SEATING_COMFORT] * w.seating_comfort
            + averages[LAPTOP_FRIENDLINESS] * w.laptop_friendliness
        ) * self.config.work_score_scale
        return clamp(round_half_up(raw), 0, 10)

    def aggregate(self, analyses: List[ReviewAnalysis]) -> VenueProfile:
        """
        Build the profile for one venue from all of its review analyses.

        Only work-related analyses feed the sub-scores; every analysis counts
        toward total_reviews_count. work_summary is left empty for the
        summarizer.
        """
        total = len(analyses)
        work = [a for a in analyses if a.is_work_related]
        if not work:
            return self.default_profile(total_reviews=total)

        averages = self.attribute_averages(work)
        score = self.remote_work_score(averages)
        t = self.config.thresholds

        metrics: Dict[str, float] = dict(averages)
        metrics["remote_work_score"] = score
        tags = [rule.tag for rule in self.config.tag_rules if rule.matches(metrics[rule.metric])]
        deal_breakers = [
            rule.tag for rule in self.config.deal_breaker_rules if rule.matches(metrics[rule.metric])
        ]

        wifi = averages[WIFI_QUALITY]
        noise = averages[NOISE_LEVEL]

        return VenueProfile(
            wifi_speed=self.wifi_category(wifi),
            noise_level=self.noise_category(noise),
            laptop_policy=self.laptop_category(averages[LAPTOP_FRIENDLINESS]),
            good_for_calls=noise <= t.calls_max_noise,
            good_for_focus=noise <= t.focus_max_noise and wifi >= t.focus_min_wifi,
            remote_work_score=score,
            outlet_rating=clamp(round_half_up(averages[OUTLET_AVAILABILITY] / 2), 1, 5),
            seating_rating=clamp(round_half_up(averages[SEATING_COMFORT] / 2), 1, 5),
            vibe_tags=tags,
            deal_breakers=deal_breakers,
            ai_confidence_score=min(1.0, len(work) / self.config.confidence_normalizer),
            work_reviews_count=len(work),
            total_reviews_count=total,
            attribute_averages=averages,
        )


def aggregate_reviews(
    reviews: List[RawReview],
    config: ScoringConfig,
    analyzer: Optional[ReviewAnalyzer] = None,
) -> Tuple[VenueProfile, List[ReviewAnalysis]]:
    """
    Run the full deterministic aggregation for one venue's reviews.

    Returns the profile (with a template summary) and the per-review
    analyses. An empty review list yields the default profile.
    """
    analyzer = analyzer or ReviewAnalyzer(config)
    analyses = analyzer.analyze_batch(reviews)
    profile = ProfileAggregator(config).aggregate(analyses)
    profile.work_summary = TemplateSummaryGenerator().generate_summary(
        "", profile, reviews, analyses
    )
    return profile, analyses
