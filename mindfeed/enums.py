"""Enums module for mindfeed.

Contains the closed vocabularies used by task requirements, model profiles
and user profiles.
"""

from enum import StrEnum


class TaskType(StrEnum):
    """Kinds of generation work a model can be selected for."""
    ContentGeneration = "content_generation"
    QuestionAnswering = "question_answering"
    Analysis = "analysis"
    Translation = "translation"
    Coding = "coding"
    Creative = "creative"


class Complexity(StrEnum):
    """Task complexity, also used as the model capability tier."""
    Simple = "simple"
    Medium = "medium"
    Complex = "complex"


class OutputLength(StrEnum):
    Short = "short"
    Medium = "medium"
    Long = "long"


class Language(StrEnum):
    Hebrew = "hebrew"
    English = "english"
    Mixed = "mixed"


class Quality(StrEnum):
    Draft = "draft"
    Standard = "standard"
    Premium = "premium"


class Urgency(StrEnum):
    Low = "low"
    Medium = "medium"
    High = "high"


class Speed(StrEnum):
    """Relative response speed of a model."""
    Fast = "fast"
    Medium = "medium"
    Slow = "slow"


class CostTier(StrEnum):
    Low = "low"
    Medium = "medium"
    High = "high"


class ReadingLevel(StrEnum):
    Beginner = "beginner"
    Intermediate = "intermediate"
    Advanced = "advanced"


class ContentStyle(StrEnum):
    Practical = "practical"
    Theoretical = "theoretical"
    Mixed = "mixed"


class ContentDepth(StrEnum):
    Shallow = "shallow"
    Medium = "medium"
    Deep = "deep"


class InteractionStyle(StrEnum):
    Passive = "passive"
    Active = "active"
    Mixed = "mixed"
