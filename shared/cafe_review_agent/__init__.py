"""
Cafe Review Agent

Review processing for work-friendliness scoring.

Components:
    - ReviewAnalyzer: Relevance filter, attribute extraction and sentiment per review
    - ProfileAggregator: Aggregate review analyses into a venue profile
    - TemplateSummaryGenerator: Deterministic work summary text
    - LLMSummaryGenerator: Chat model work summary with schema validation
"""

from .analyzer import ReviewAnalyzer
from .aggregator import ProfileAggregator, aggregate_reviews, round_half_up
from .summarizer import LLMSummaryGenerator, TemplateSummaryGenerator

__all__ = [
    "ReviewAnalyzer",
    "ProfileAggregator",
    "aggregate_reviews",
    "round_half_up",
    "TemplateSummaryGenerator",
    "LLMSummaryGenerator",
]
