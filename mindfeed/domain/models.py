from datetime import datetime
from typing import Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from ..enums import (
    Complexity,
    ContentDepth,
    ContentStyle,
    CostTier,
    InteractionStyle,
    Language,
    OutputLength,
    Quality,
    ReadingLevel,
    Speed,
    TaskType,
    Urgency,
)


class ModelProfile(BaseModel):
    """Static catalog entry describing one backing language model.

    Attributes:
        id (str): Stable identifier used for tie-breaks and deduplication.
        name (str): Provider-facing model name.
        provider (str): Hosting provider of the model.
        strengths (Tuple[str, ...]): Capabilities the model is good at.
        weaknesses (Tuple[str, ...]): Capabilities the model handles poorly.
        specialties (Tuple[str, ...]): Content niches the model is tuned for.
        speed (Speed): Relative response speed.
        complexity (Complexity): Capability tier.
        languages (Tuple[str, ...]): Supported output languages.
        max_tokens (int): Largest output the model produces reliably.
        cost_tier (CostTier): Relative price bracket.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    provider: str = "huggingface"
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    specialties: Tuple[str, ...] = ()
    speed: Speed
    complexity: Complexity
    languages: Tuple[str, ...] = ()
    max_tokens: int = Field(default=2048, gt=0)
    cost_tier: CostTier = CostTier.Medium


class TaskRequirements(BaseModel):
    """Caller-supplied description of a generation task.

    ``output_length`` falls back to ``medium`` when omitted; ``context`` is
    optional free text whose keywords are matched against model specialties.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    task_type: TaskType
    complexity: Complexity
    output_length: OutputLength = OutputLength.Medium
    language: Language
    quality: Quality
    urgency: Urgency
    context: Optional[str] = None


class ModelRecommendation(BaseModel):
    """Outcome of a model selection: the pick, ranked runners-up and why."""

    model_config = ConfigDict(frozen=True)

    recommended: ModelProfile
    alternatives: Tuple[ModelProfile, ...] = ()
    reasoning: Tuple[str, ...] = ()
    score: float = 0.0


class TopCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    score: float = Field(ge=0)


class UserProfile(BaseModel):
    """Read-only preference profile owned by the profile-storage collaborator."""

    model_config = ConfigDict(frozen=True)

    reading_level: ReadingLevel = ReadingLevel.Intermediate
    top_categories: Tuple[TopCategory, ...] = ()
    preferred_topics: Tuple[str, ...] = ()
    content_style: ContentStyle = ContentStyle.Mixed

    def is_cold_start(self) -> bool:
        """True when the profile carries no category or topic signal."""
        return not self.top_categories and not self.preferred_topics

    def category_weights(self) -> Dict[str, float]:
        """Map each top category to a weight in [0, 1].

        Scores already in [0, 1] are kept as-is; larger scales are divided by
        the highest score.
        """
        if not self.top_categories:
            return {}
        scale = max(1.0, max(c.score for c in self.top_categories))
        weights: Dict[str, float] = {}
        for entry in self.top_categories:
            key = entry.category.lower()
            weights[key] = max(weights.get(key, 0.0), entry.score / scale)
        return weights


class ActivityEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: str
    target_id: Optional[str] = None
    created_at: datetime


class UserActivity(BaseModel):
    """Recent activity snapshot used to infer reading behavior."""

    model_config = ConfigDict(frozen=True)

    events: Tuple[ActivityEvent, ...] = ()
    saved_read_times: Tuple[int, ...] = ()
    saved_categories: Tuple[str, ...] = ()
    questions: Tuple[str, ...] = ()


class BehaviorPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    reading_velocity: float = 0.0
    engagement_level: float = 0.0
    content_depth_preference: ContentDepth = ContentDepth.Shallow
    interaction_style: InteractionStyle = InteractionStyle.Passive
    learning_goals: Tuple[str, ...] = ()


class ArticleCandidate(BaseModel):
    """Article offered by the content collaborator for scoring.

    Attributes:
        read_time (int): Estimated reading time in minutes.
        difficulty (Optional[ReadingLevel]): Explicit difficulty, when known.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    category: str
    tags: Tuple[str, ...] = ()
    read_time: int = Field(default=5, ge=0)
    content: str = ""
    excerpt: Optional[str] = None
    created_at: Optional[datetime] = None
    difficulty: Optional[ReadingLevel] = None


class ScoredArticle(BaseModel):
    """A candidate article annotated with personalization scores."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    category: str
    excerpt: str = ""
    read_time: int = 0
    tags: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    difficulty: ReadingLevel = ReadingLevel.Intermediate
    personality_match: float = Field(ge=0, le=100)
    relevance_score: float = Field(ge=0)
    reasoning: Tuple[str, ...] = Field(min_length=1)


class ArticleEnhancement(BaseModel):
    """Adjustment proposed by an external enhancer for one ranked article.

    ``index`` is 1-based, matching the order the enhancer was given.
    """

    index: int = Field(ge=1)
    personality_match: Optional[float] = Field(default=None, ge=0, le=100)
    reasoning: Optional[str] = None
    tags: Tuple[str, ...] = ()


class RecommendationResult(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    articles: Tuple[ScoredArticle, ...] = ()
    topics: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    difficulty: ReadingLevel = ReadingLevel.Intermediate
    confidence: float = Field(ge=0, le=100)
    reasoning: str = ""
    cold_start: bool = False
    model_id: Optional[str] = None
