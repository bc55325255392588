"""Inference of reading behavior from a user's recent activity."""

from datetime import datetime, timedelta, timezone
from typing import Dict, FrozenSet, List, Optional

from ...constants import (
    ACTIVITY_WINDOW_DAYS,
    DEEP_PREFERENCE_RATIO,
    ENGAGEMENT_ACTIONS,
    LONG_ARTICLE_MINUTES,
    MAX_LEARNING_GOALS,
    MEDIUM_PREFERENCE_RATIO,
    READ_ACTION,
)
from ...domain.models import BehaviorPattern, UserActivity
from ...enums import ContentDepth, InteractionStyle

# question marker -> learning goal
_QUESTION_GOALS: Dict[str, str] = {
    "how": "practical skills",
    "איך": "practical skills",
    "what is": "theoretical understanding",
    "מה זה": "theoretical understanding",
    "מהו": "theoretical understanding",
}

# saved article category -> learning goal
_CATEGORY_GOALS: Dict[str, str] = {
    "technology": "technology",
    "self-improvement": "personal development",
}


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _depth_preference(saved_read_times) -> ContentDepth:
    long_reads = sum(1 for minutes in saved_read_times if minutes > LONG_ARTICLE_MINUTES)
    ratio = long_reads / max(len(saved_read_times), 1)
    if ratio > DEEP_PREFERENCE_RATIO:
        return ContentDepth.Deep
    if ratio > MEDIUM_PREFERENCE_RATIO:
        return ContentDepth.Medium
    return ContentDepth.Shallow


def _interaction_style(question_count: int, saved_count: int) -> InteractionStyle:
    if question_count > saved_count:
        return InteractionStyle.Active
    if question_count > saved_count * 0.5:
        return InteractionStyle.Mixed
    return InteractionStyle.Passive


def extract_learning_goals(activity: UserActivity) -> List[str]:
    goals: Dict[str, None] = {}
    for question in activity.questions:
        text = question.lower()
        for marker, goal in _QUESTION_GOALS.items():
            if marker in text:
                goals[goal] = None
    for category in activity.saved_categories:
        goal = _CATEGORY_GOALS.get(category.lower())
        if goal:
            goals[goal] = None
    return list(goals)[:MAX_LEARNING_GOALS]


def read_article_ids(activity: Optional[UserActivity]) -> FrozenSet[str]:
    """Ids of every article the user has read, regardless of age."""
    if activity is None:
        return frozenset()
    return frozenset(
        e.target_id for e in activity.events if e.action == READ_ACTION and e.target_id
    )


def analyze_behavior_pattern(
    activity: Optional[UserActivity], now: Optional[datetime] = None
) -> BehaviorPattern:
    """Derive a :class:`BehaviorPattern` from ``activity``.

    Only events from the last two weeks before ``now`` count toward reading
    velocity and engagement. A user without any activity record is treated
    like one with an empty record.

    Args:
        activity: Snapshot from the activity collaborator, or ``None``.
        now: Reference time; defaults to the current UTC time.

    Returns:
        BehaviorPattern: velocity and engagement ratios, preferred depth,
        interaction style and up to three learning goals.
    """
    if activity is None:
        activity = UserActivity()

    now = _as_utc(now or datetime.now(timezone.utc))
    window_start = now - timedelta(days=ACTIVITY_WINDOW_DAYS)
    recent = [e for e in activity.events if _as_utc(e.created_at) >= window_start]

    reads = sum(1 for e in recent if e.action == READ_ACTION)
    engagements = sum(1 for e in recent if e.action in ENGAGEMENT_ACTIONS)

    return BehaviorPattern(
        reading_velocity=round(reads / max(len(recent), 1), 4),
        engagement_level=round(engagements / max(reads, 1), 4),
        content_depth_preference=_depth_preference(activity.saved_read_times),
        interaction_style=_interaction_style(
            len(activity.questions), len(activity.saved_read_times)
        ),
        learning_goals=tuple(extract_learning_goals(activity)),
    )
