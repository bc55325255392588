"""Per-article scoring: personality match, relevance and the reasons behind them."""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from ...constants import (
    PERSONALITY_BASE,
    PERSONALITY_CATEGORY_POINTS,
    PERSONALITY_DEEP_POINTS,
    PERSONALITY_INTERACTIVE_POINTS,
    PERSONALITY_PRACTICAL_POINTS,
    PERSONALITY_SHALLOW_POINTS,
    PERSONALITY_TAG_CAP,
    PERSONALITY_TAG_POINTS,
    PRACTICAL_TITLE_MARKERS,
    RELEVANCE_CATEGORY_POINTS,
    RELEVANCE_TOPIC_CAP,
    RELEVANCE_TOPIC_POINTS,
)
from ...domain.models import ArticleCandidate, BehaviorPattern, ScoredArticle, UserProfile
from ...enums import ContentDepth, ContentStyle, InteractionStyle, ReadingLevel

EXCERPT_LENGTH = 200
FALLBACK_REASON = "Broadens your reading beyond your usual categories"


def length_fit_score(read_time: int, depth: ContentDepth) -> float:
    """Points for how well ``read_time`` minutes suits the preferred depth."""
    if depth == ContentDepth.Shallow:
        return 20.0 if read_time <= 5 else 10.0 if read_time <= 8 else 0.0
    if depth == ContentDepth.Deep:
        return 20.0 if read_time >= 8 else 10.0 if read_time >= 5 else 0.0
    return 20.0 if 5 <= read_time <= 10 else 10.0


def topic_hits(text: str, preferred_topics: Sequence[str]) -> List[str]:
    lowered = text.lower()
    return [t for t in dict.fromkeys(preferred_topics) if t and t.lower() in lowered]


def topic_score(hits: Sequence[str]) -> float:
    return min(RELEVANCE_TOPIC_CAP, RELEVANCE_TOPIC_POINTS * len(hits))


def freshness_score(created_at: Optional[datetime], now: datetime) -> float:
    """15 within a day, 10 within a week, 5 within a month, else 0."""
    if created_at is None:
        return 0.0
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    age_days = (now - created_at).total_seconds() / 86400
    if age_days <= 1:
        return 15.0
    if age_days <= 7:
        return 10.0
    if age_days <= 30:
        return 5.0
    return 0.0


def estimate_difficulty(article: ArticleCandidate) -> ReadingLevel:
    if article.difficulty is not None:
        return article.difficulty
    if article.read_time < 5:
        return ReadingLevel.Beginner
    if article.read_time <= 10:
        return ReadingLevel.Intermediate
    return ReadingLevel.Advanced


def article_tags(article: ArticleCandidate) -> Tuple[str, ...]:
    """Category, the article's own tags, then up to two notable title words."""
    title_words = [w for w in article.title.split() if len(w) > 3][:2]
    return tuple(dict.fromkeys([article.category, *article.tags, *title_words]))


def _is_practical(title: str) -> bool:
    lowered = title.lower()
    return any(marker in lowered for marker in PRACTICAL_TITLE_MARKERS)


def personality_match(
    article: ArticleCandidate,
    profile: UserProfile,
    behavior: BehaviorPattern,
    weights: Optional[Dict[str, float]] = None,
) -> float:
    """How well the article fits the reader's style, clamped to [0, 100]."""
    weights = profile.category_weights() if weights is None else weights
    match = PERSONALITY_BASE
    match += PERSONALITY_CATEGORY_POINTS * weights.get(article.category.lower(), 0.0)

    interests = set(weights) | {t.lower() for t in profile.preferred_topics}
    overlapping = sum(1 for tag in set(t.lower() for t in article.tags) if tag in interests)
    match += min(PERSONALITY_TAG_CAP, PERSONALITY_TAG_POINTS * overlapping)

    if profile.content_style == ContentStyle.Practical and _is_practical(article.title):
        match += PERSONALITY_PRACTICAL_POINTS
    if behavior.interaction_style == InteractionStyle.Active and "?" in article.content:
        match += PERSONALITY_INTERACTIVE_POINTS
    if behavior.content_depth_preference == ContentDepth.Deep and article.read_time > 10:
        match += PERSONALITY_DEEP_POINTS
    elif behavior.content_depth_preference == ContentDepth.Shallow and article.read_time < 5:
        match += PERSONALITY_SHALLOW_POINTS

    return round(min(100.0, max(0.0, match)), 1)


def score_article(
    article: ArticleCandidate,
    profile: UserProfile,
    behavior: BehaviorPattern,
    now: datetime,
    weights: Optional[Dict[str, float]] = None,
) -> ScoredArticle:
    weights = profile.category_weights() if weights is None else weights
    reasoning: List[str] = []
    relevance = 0.0

    category_weight = weights.get(article.category.lower(), 0.0)
    if category_weight > 0:
        points = RELEVANCE_CATEGORY_POINTS * category_weight
        relevance += points
        reasoning.append(f"Preferred category: {article.category} (+{points:.1f})")

    length_points = length_fit_score(article.read_time, behavior.content_depth_preference)
    relevance += length_points
    if length_points > 0:
        reasoning.append(f"Suitable length: {article.read_time} min (+{length_points:.1f})")

    hits = topic_hits(f"{article.title} {article.content}", profile.preferred_topics)
    topic_points = topic_score(hits)
    relevance += topic_points
    if topic_points > 0:
        reasoning.append(f"Matches your topics: {', '.join(hits)} (+{topic_points:.1f})")

    fresh_points = freshness_score(article.created_at, now)
    relevance += fresh_points
    if fresh_points > 5:
        reasoning.append(f"Fresh content (+{fresh_points:.1f})")

    if not reasoning:
        reasoning.append(FALLBACK_REASON)

    return ScoredArticle(
        id=article.id,
        title=article.title,
        category=article.category,
        excerpt=article.excerpt or article.content[:EXCERPT_LENGTH],
        read_time=article.read_time,
        tags=article_tags(article),
        created_at=article.created_at,
        difficulty=estimate_difficulty(article),
        personality_match=personality_match(article, profile, behavior, weights),
        relevance_score=round(max(0.0, relevance), 1),
        reasoning=tuple(reasoning),
    )


def ranking_key(article: ScoredArticle) -> Tuple[float, float, str]:
    return (-article.relevance_score, -article.personality_match, article.id)
