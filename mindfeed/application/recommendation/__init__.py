"""Recommendation module for personalized article ranking."""

from .behavior import analyze_behavior_pattern
from .engine import RecommendationEngine
from .repository import ArticleEnhancer, ContentRepository, InMemoryContentRepository

__all__ = [
    "RecommendationEngine",
    "ContentRepository",
    "ArticleEnhancer",
    "InMemoryContentRepository",
    "analyze_behavior_pattern",
]
