"""
Keyword-based review analysis for work-friendliness scoring.

Decides whether a review talks about working from the venue, extracts
per-attribute sub-scores from cue terms, and scores sentiment.
"""

import logging
from typing import Dict, List, Optional

from shared.work_friendliness.models import (
    AttributeRule,
    AttributeScore,
    RawReview,
    ReviewAnalysis,
    ScoringConfig,
)

logger = logging.getLogger(__name__)


def find_terms(text_lower: str, terms: List[str]) -> List[str]:
    """Distinct terms occurring in text (case-insensitive substring), in table order."""
    found: List[str] = []
    for term in terms:
        if term.lower() in text_lower and term not in found:
            found.append(term)
    return found


class ReviewAnalyzer:
    """
    Analyzes single reviews against a ScoringConfig.

    Pure: the same review text always produces the same ReviewAnalysis.
    """

    def __init__(self, config: ScoringConfig):
        self.config = config

    def is_work_related(self, text: str) -> bool:
        return len(find_terms(text.lower(), self.config.work_vocabulary)) >= (
            self.config.relevance_min_matches
        )

    def _evidence(self, text: str, text_lower: str, cues: List[str]) -> str:
        """Snippet of the original text around the earliest cue occurrence."""
        positions = [
            (text_lower.find(cue.lower()), cue) for cue in cues if cue.lower() in text_lower
        ]
        start, cue = min(positions)
        window = self.config.evidence_window
        lo = max(0, start - window)
        hi = min(len(text), start + len(cue) + window)
        snippet = text[lo:hi].strip()
        if lo > 0:
            snippet = "..." + snippet
        if hi < len(text):
            snippet = snippet + "..."
        return snippet

    def score_attribute(self, text: str, rule: AttributeRule) -> Optional[AttributeScore]:
        """
        Score one attribute from review text.

        Returns None when none of the attribute's cues occur; the first
        matching refining rule picks the score, otherwise the default.
        """
        text_lower = text.lower()
        if not find_terms(text_lower, rule.cues):
            return None

        score = rule.default_score
        for cue_rule in rule.rules:
            if find_terms(text_lower, cue_rule.terms):
                score = cue_rule.score
                break

        return AttributeScore(
            score=score,
            confidence=rule.confidence,
            evidence=self._evidence(text, text_lower, rule.cues),
        )

    def extract_attributes(self, text: str) -> Dict[str, AttributeScore]:
        attributes: Dict[str, AttributeScore] = {}
        for name, rule in self.config.attributes.items():
            score = self.score_attribute(text, rule)
            if score is not None:
                attributes[name] = score
        return attributes

    def sentiment_score(self, text: str) -> float:
        """
        (positive - negative) / max(positive + negative, 1), clamped to [-1, 1].

        Counts distinct matched phrases, not occurrences.
        """
        text_lower = text.lower()
        positive = len(find_terms(text_lower, self.config.positive_phrases))
        negative = len(find_terms(text_lower, self.config.negative_phrases))
        score = (positive - negative) / max(positive + negative, 1)
        return max(-1.0, min(1.0, score))

    def analyze(self, review: RawReview) -> ReviewAnalysis:
        """
        Analyze a single review.

        Attributes are only extracted from work-related reviews; sentiment is
        computed for every review.
        """
        text = review.text or ""
        text_lower = text.lower()
        matched = find_terms(text_lower, self.config.work_vocabulary)
        work_related = len(matched) >= self.config.relevance_min_matches

        relevance = 0.0
        attributes: Dict[str, AttributeScore] = {}
        if work_related:
            relevance = min(len(matched) / self.config.relevance_normalizer, 1.0)
            attributes = self.extract_attributes(text)

        return ReviewAnalysis(
            review_id=review.review_id,
            is_work_related=work_related,
            work_relevance_score=relevance,
            matched_keywords=matched,
            attributes=attributes,
            sentiment_score=self.sentiment_score(text),
        )

    def analyze_batch(self, reviews: List[RawReview]) -> List[ReviewAnalysis]:
        """Analyze reviews in order."""
        analyses = [self.analyze(review) for review in reviews]
        logger.debug(
            f"Analyzed {len(analyses)} reviews, "
            f"{sum(1 for a in analyses if a.is_work_related)} work-related"
        )
        return analyses
