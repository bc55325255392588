"""Personalized article recommendations.

The engine loads a user's profile and recent activity, infers a behavior
pattern, scores a pool of articles the user has not read yet and returns
the top ``limit`` articles with per-article reasons plus result-level
topics, categories, difficulty and confidence. Results are memoized in the
shared :class:`TTLCache`, keyed by user id, limit and a fingerprint of the
profile, behavior and read history.
"""

from datetime import datetime, timezone
from statistics import mean
from typing import AbstractSet, Callable, Dict, List, Optional, Sequence, Tuple

from .behavior import analyze_behavior_pattern, read_article_ids
from .repository import ArticleEnhancer, ContentRepository
from .scoring import ranking_key, score_article
from ..cache import TTLCache
from ..model_selection import AdaptiveModelSelector
from ...config import Settings
from ...constants import (
    CATEGORY_TOPICS,
    CONFIDENCE_BASE,
    CONFIDENCE_CATEGORIES_BONUS,
    CONFIDENCE_COLD_START_PENALTY,
    CONFIDENCE_MAX,
    CONFIDENCE_MIN,
    CONFIDENCE_POOL_BONUS,
    CONFIDENCE_POOL_THRESHOLD,
    CONFIDENCE_VELOCITY_BONUS,
    CONFIDENCE_VELOCITY_THRESHOLD,
    DEFAULT_CANDIDATE_POOL_MULTIPLIER,
    DEFAULT_RECOMMENDATION_LIMIT,
    DEFAULT_RECOMMENDATION_TTL_SECONDS,
    DEFAULT_USER_ID,
    MAX_SUGGESTED_TOPICS,
    READING_LEVEL_RANK,
    READING_LEVELS,
    RECOMMENDATIONS_NAMESPACE,
)
from ...domain.exceptions import (
    ConfigurationError,
    DependencyError,
    MindFeedException,
    ValidationError,
)
from ...domain.models import (
    ArticleCandidate,
    ArticleEnhancement,
    BehaviorPattern,
    ModelProfile,
    RecommendationResult,
    ScoredArticle,
    TaskRequirements,
    UserActivity,
    UserProfile,
)
from ...enums import (
    Complexity,
    ContentDepth,
    InteractionStyle,
    Language,
    OutputLength,
    Quality,
    ReadingLevel,
    TaskType,
    Urgency,
)
from ...logging import debug, error, info, warning, LogRecord, LogEvent

ENHANCED_ARTICLE_COUNT = 5

ENHANCEMENT_REQUIREMENTS = TaskRequirements(
    task_type=TaskType.Analysis,
    complexity=Complexity.Medium,
    output_length=OutputLength.Medium,
    language=Language.Hebrew,
    quality=Quality.Standard,
    urgency=Urgency.Medium,
    context="personalized recommendations analysis",
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_request(user_id: object, limit: object) -> Tuple[str, int]:
    """Reject malformed ids and non-positive or non-integer limits."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id must be a non-empty string", field="user_id")
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(
            "limit must be a positive integer",
            field="limit",
            details={"received_type": type(limit).__name__},
        )
    if limit <= 0:
        raise ValidationError(
            "limit must be a positive integer", field="limit", details={"limit": limit}
        )
    return user_id, limit


def suggest_topics(profile: UserProfile, articles: Sequence[ScoredArticle]) -> Tuple[str, ...]:
    """Preferred topics, then topics expanding the user's and the result's categories."""
    topics: List[str] = list(profile.preferred_topics[:5])
    for entry in profile.top_categories[:3]:
        topics.extend(CATEGORY_TOPICS.get(entry.category.lower(), ()))
    for article in articles:
        topics.extend(CATEGORY_TOPICS.get(article.category.lower(), ()))
    for article in articles:
        topics.extend(t for t in article.tags if t != article.category)
    return tuple(dict.fromkeys(topics))[:MAX_SUGGESTED_TOPICS]


def overall_difficulty(profile: UserProfile, articles: Sequence[ScoredArticle]) -> ReadingLevel:
    """Average of the reader's level and the selected articles' mean level, half rounding up."""
    reader = READING_LEVEL_RANK[profile.reading_level.value]
    if not articles:
        return profile.reading_level
    content = mean(READING_LEVEL_RANK[a.difficulty.value] for a in articles)
    index = int((reader + content) / 2 + 0.5)
    return ReadingLevel(READING_LEVELS[min(len(READING_LEVELS) - 1, max(0, index))])


def confidence_score(
    profile: UserProfile, behavior: BehaviorPattern, pool_size: int, cold_start: bool
) -> float:
    confidence = CONFIDENCE_BASE
    if len(profile.top_categories) >= 3:
        confidence += CONFIDENCE_CATEGORIES_BONUS
    if behavior.reading_velocity > CONFIDENCE_VELOCITY_THRESHOLD:
        confidence += CONFIDENCE_VELOCITY_BONUS
    if pool_size >= CONFIDENCE_POOL_THRESHOLD:
        confidence += CONFIDENCE_POOL_BONUS
    confidence = min(CONFIDENCE_MAX, confidence)
    if cold_start:
        confidence = max(CONFIDENCE_MIN, confidence - CONFIDENCE_COLD_START_PENALTY)
    return confidence


def summarize_reasoning(
    profile: UserProfile, behavior: BehaviorPattern, cold_start: bool
) -> str:
    reasons = []
    if cold_start:
        reasons.append("Starting with broadly popular articles until we learn your preferences")
    if profile.reading_level == ReadingLevel.Advanced:
        reasons.append("Selected advanced content matching your reading level")
    if behavior.interaction_style == InteractionStyle.Active:
        reasons.append("Included articles that invite questions and reflection")
    if behavior.content_depth_preference == ContentDepth.Deep:
        reasons.append("Focused on detailed, in-depth articles")
    return "; ".join(reasons) or "Based on your preferences and recent activity"


def apply_enhancements(
    articles: Sequence[ScoredArticle], enhancements: Sequence[ArticleEnhancement]
) -> List[ScoredArticle]:
    """Merge enhancer output into ``articles``; out-of-range indexes are ignored."""
    updated = list(articles)
    for enhancement in enhancements:
        position = enhancement.index - 1
        if position >= len(updated):
            continue
        article = updated[position]
        changes: Dict[str, object] = {
            "tags": tuple(dict.fromkeys(article.tags + tuple(enhancement.tags)))
        }
        if enhancement.personality_match is not None:
            changes["personality_match"] = enhancement.personality_match
        if enhancement.reasoning:
            changes["reasoning"] = article.reasoning + (f"AI: {enhancement.reasoning}",)
        updated[position] = article.model_copy(update=changes)
    return updated


class RecommendationEngine:
    """
    Ranks candidate articles for a user and explains the ranking.

    Identical ``(user_id, limit)`` requests with an unchanged profile and
    behavior snapshot return the identical cached result until the
    recommendation TTL elapses.
    """

    def __init__(
        self,
        repository: ContentRepository,
        cache: TTLCache,
        selector: Optional[AdaptiveModelSelector] = None,
        enhancer: Optional[ArticleEnhancer] = None,
        ttl_seconds: float = DEFAULT_RECOMMENDATION_TTL_SECONDS,
        pool_multiplier: int = DEFAULT_CANDIDATE_POOL_MULTIPLIER,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if enhancer is not None and selector is None:
            raise ConfigurationError(
                "An article enhancer requires a model selector",
                config_key="selector",
            )
        self._repository = repository
        self._cache = cache
        self._selector = selector
        self._enhancer = enhancer
        self._ttl_seconds = ttl_seconds
        self._pool_multiplier = max(1, pool_multiplier)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        repository: ContentRepository,
        cache: TTLCache,
        selector: Optional[AdaptiveModelSelector] = None,
        enhancer: Optional[ArticleEnhancer] = None,
    ) -> "RecommendationEngine":
        return cls(
            repository=repository,
            cache=cache,
            selector=selector,
            enhancer=enhancer,
            ttl_seconds=settings.recommendation_ttl_seconds,
            pool_multiplier=settings.recommendation_pool_multiplier,
        )

    async def generate_personalized_recommendations(
        self,
        user_id: str = DEFAULT_USER_ID,
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> RecommendationResult:
        """Return up to ``limit`` scored articles for ``user_id``.

        Unknown users get a cold-start result built from default profile
        values with reduced confidence.

        Raises:
            ValidationError: If ``user_id`` or ``limit`` is malformed.
            DependencyError: If the content repository fails.
            ConfigurationError: If no candidate articles are available.
        """
        user_id, limit = validate_request(user_id, limit)

        profile, activity = await self._load_user(user_id)
        cold_start = profile is None or profile.is_cold_start()
        profile = profile or UserProfile()
        now = self._clock()
        behavior = analyze_behavior_pattern(activity, now)
        read_ids = read_article_ids(activity)

        debug(
            LogRecord(
                event=LogEvent.RECOMMENDATION_START.value,
                message="Generating recommendations",
                data={
                    "user_id": user_id,
                    "limit": limit,
                    "cold_start": cold_start,
                    "interaction_style": behavior.interaction_style.value,
                },
            )
        )

        key = self._cache.create_key(
            {
                "user_id": user_id,
                "limit": limit,
                "profile": profile,
                "behavior": behavior,
                "read_article_ids": read_ids,
            },
            RECOMMENDATIONS_NAMESPACE,
        )

        async def compute() -> RecommendationResult:
            return await self._build(
                user_id, limit, profile, behavior, read_ids, cold_start, now
            )

        return await self._cache.get_or_compute(key, compute, self._ttl_seconds)

    async def _load_user(
        self, user_id: str
    ) -> Tuple[Optional[UserProfile], Optional[UserActivity]]:
        try:
            profile = await self._repository.get_user_profile(user_id)
            activity = await self._repository.get_user_activity(user_id)
        except MindFeedException:
            raise
        except Exception as e:
            raise self._dependency_failure("Failed to load user data", user_id, e) from e
        return profile, activity

    async def _load_candidates(
        self,
        user_id: str,
        profile: UserProfile,
        pool_size: int,
        read_ids: AbstractSet[str],
    ) -> List[ArticleCandidate]:
        try:
            candidates = await self._repository.get_candidate_articles(
                profile, pool_size, exclude_ids=read_ids
            )
        except MindFeedException:
            raise
        except Exception as e:
            raise self._dependency_failure(
                "Failed to load candidate articles", user_id, e
            ) from e

        unique: Dict[str, ArticleCandidate] = {}
        for candidate in candidates:
            if candidate.id not in read_ids:
                unique.setdefault(candidate.id, candidate)
        return list(unique.values())

    def _dependency_failure(
        self, message: str, user_id: str, cause: Exception
    ) -> DependencyError:
        failure = DependencyError(
            message,
            dependency="content_repository",
            details={"cause": type(cause).__name__},
        )
        error(
            LogRecord(
                event=LogEvent.DEPENDENCY_FAILURE.value,
                message=message,
                data={"user_id": user_id, "dependency": "content_repository"},
            ),
            exc=cause,
        )
        return failure

    async def _build(
        self,
        user_id: str,
        limit: int,
        profile: UserProfile,
        behavior: BehaviorPattern,
        read_ids: AbstractSet[str],
        cold_start: bool,
        now: datetime,
    ) -> RecommendationResult:
        candidates = await self._load_candidates(
            user_id, profile, limit * self._pool_multiplier, read_ids
        )
        if not candidates:
            failure = ConfigurationError(
                "No candidate articles available for recommendations",
                details={"limit": limit},
            )
            warning(
                LogRecord(
                    event=LogEvent.RECOMMENDATION_FAILURE.value,
                    message=failure.message,
                    data={"user_id": user_id},
                ),
                exc=failure,
            )
            raise failure

        weights = profile.category_weights()
        scored = sorted(
            (score_article(c, profile, behavior, now, weights) for c in candidates),
            key=ranking_key,
        )
        selected = scored[:limit]

        model_id = None
        if self._enhancer is not None:
            selected, model_id = await self._enhance(selected, profile, behavior)

        result = RecommendationResult(
            articles=tuple(selected),
            topics=suggest_topics(profile, selected),
            categories=tuple(dict.fromkeys(a.category for a in selected)),
            difficulty=overall_difficulty(profile, selected),
            confidence=confidence_score(profile, behavior, len(candidates), cold_start),
            reasoning=summarize_reasoning(profile, behavior, cold_start),
            cold_start=cold_start,
            model_id=model_id,
        )

        info(
            LogRecord(
                event=LogEvent.RECOMMENDATIONS_GENERATED.value,
                message=f"Generated {len(result.articles)} recommendations",
                data={
                    "user_id": user_id,
                    "limit": limit,
                    "pool_size": len(candidates),
                    "confidence": result.confidence,
                    "cold_start": cold_start,
                    "model_id": model_id,
                },
            )
        )
        return result

    async def _enhance(
        self,
        articles: List[ScoredArticle],
        profile: UserProfile,
        behavior: BehaviorPattern,
    ) -> Tuple[List[ScoredArticle], Optional[str]]:
        """Let the enhancer refine the top articles; base scores survive any failure."""
        model: Optional[ModelProfile] = None
        try:
            model = await self._selector.select_best_model(ENHANCEMENT_REQUIREMENTS)
            raw = await self._enhancer.enhance(
                articles[:ENHANCED_ARTICLE_COUNT], profile, behavior, model
            )
            enhancements = [
                item if isinstance(item, ArticleEnhancement) else ArticleEnhancement.model_validate(item)
                for item in raw
            ]
        except Exception as e:
            warning(
                LogRecord(
                    event=LogEvent.RECOMMENDATION_ENHANCEMENT.value,
                    message="Article enhancement failed, keeping base scores",
                    data={"model_id": model.id if model else None},
                ),
                exc=e,
            )
            return articles, None

        enhanced = sorted(apply_enhancements(articles, enhancements), key=ranking_key)
        debug(
            LogRecord(
                event=LogEvent.RECOMMENDATION_ENHANCEMENT.value,
                message=f"Applied {len(enhancements)} enhancements",
                data={"model_id": model.id},
            )
        )
        return enhanced, model.id
