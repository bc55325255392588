import math
from datetime import datetime, timezone
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from typing_extensions import Protocol

from ...constants import (
    MAX_POOL_DISCOVERY_CATEGORIES,
    MAX_POOL_PREFERRED_CATEGORIES,
    PREFERRED_POOL_PERCENT,
)
from ...domain.models import (
    ArticleCandidate,
    ArticleEnhancement,
    BehaviorPattern,
    ModelProfile,
    ScoredArticle,
    UserActivity,
    UserProfile,
)


class ContentRepository(Protocol):
    """Source of profiles, activity and candidate articles.

    ``None`` from the profile or activity lookup means the user is unknown.
    Candidate lookups skip ``exclude_ids``, the articles already read.
    Any exception raised is treated as a collaborator outage.
    """

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]: ...

    async def get_user_activity(self, user_id: str) -> Optional[UserActivity]: ...

    async def get_candidate_articles(
        self,
        profile: UserProfile,
        limit: int,
        exclude_ids: AbstractSet[str] = frozenset(),
    ) -> Sequence[ArticleCandidate]: ...


class ArticleEnhancer(Protocol):
    """Optional post-processor that refines the top ranked articles with a model."""

    async def enhance(
        self,
        articles: Sequence[ScoredArticle],
        profile: UserProfile,
        behavior: BehaviorPattern,
        model: ModelProfile,
    ) -> Sequence[ArticleEnhancement]: ...


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _newest_first_key(article: ArticleCandidate):
    created = article.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (-created.timestamp(), article.id)


def _take_from_categories(
    shelves: Dict[str, List[ArticleCandidate]],
    categories: Sequence[str],
    budget: int,
    taken: Dict[str, int],
) -> List[ArticleCandidate]:
    """Split ``budget`` evenly over ``categories``, newest articles first."""
    if not categories or budget <= 0:
        return []
    per_category = math.ceil(budget / len(categories))
    picked: List[ArticleCandidate] = []
    for category in categories:
        shelf = shelves.get(category, [])
        batch = shelf[taken.get(category, 0):][:per_category]
        picked.extend(batch)
        taken[category] = taken.get(category, 0) + len(batch)
    # ceil rounding can overshoot; give the excess back to the last shelves
    for article in picked[budget:]:
        taken[article.category.lower()] -= 1
    return picked[:budget]


class InMemoryContentRepository:
    """Dictionary-backed :class:`ContentRepository`.

    Roughly 70% of the pool comes from the user's top categories (split
    evenly, newest first) and the rest from the three most stocked other
    categories. Short shelves are backfilled with the newest remaining
    articles. Excluded ids never appear.
    """

    def __init__(
        self,
        articles: Iterable[ArticleCandidate] = (),
        profiles: Optional[Dict[str, UserProfile]] = None,
        activities: Optional[Dict[str, UserActivity]] = None,
    ):
        self._articles: List[ArticleCandidate] = list(articles)
        self._profiles: Dict[str, UserProfile] = dict(profiles or {})
        self._activities: Dict[str, UserActivity] = dict(activities or {})

    def add_article(self, article: ArticleCandidate) -> None:
        self._articles.append(article)

    def set_profile(self, user_id: str, profile: UserProfile) -> None:
        self._profiles[user_id] = profile

    def set_activity(self, user_id: str, activity: UserActivity) -> None:
        self._activities[user_id] = activity

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    async def get_user_activity(self, user_id: str) -> Optional[UserActivity]:
        return self._activities.get(user_id)

    async def get_candidate_articles(
        self,
        profile: UserProfile,
        limit: int,
        exclude_ids: AbstractSet[str] = frozenset(),
    ) -> Sequence[ArticleCandidate]:
        weights = profile.category_weights()

        shelves: Dict[str, List[ArticleCandidate]] = {}
        for article in sorted(self._articles, key=_newest_first_key):
            if article.id not in exclude_ids:
                shelves.setdefault(article.category.lower(), []).append(article)

        preferred = sorted(weights, key=lambda c: (-weights[c], c))
        preferred = preferred[:MAX_POOL_PREFERRED_CATEGORIES]
        discovery = sorted(
            (c for c in shelves if c not in weights),
            key=lambda c: (-len(shelves[c]), c),
        )[:MAX_POOL_DISCOVERY_CATEGORIES]

        taken: Dict[str, int] = {}
        preferred_budget = (
            math.ceil(limit * PREFERRED_POOL_PERCENT / 100) if preferred else 0
        )
        pool = _take_from_categories(shelves, preferred, preferred_budget, taken)
        pool += _take_from_categories(shelves, discovery, limit - len(pool), taken)

        if len(pool) < limit:
            leftovers = sorted(
                (a for c, shelf in shelves.items() for a in shelf[taken.get(c, 0):]),
                key=_newest_first_key,
            )
            pool += leftovers[: limit - len(pool)]
        return pool
