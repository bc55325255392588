from datetime import datetime, timedelta, timezone
from typing import Iterator, List

from unittest.mock import MagicMock, patch
import pytest

from mindfeed.application.cache import TTLCache
from mindfeed.application.model_catalog import load_model_catalog
from mindfeed.application.model_selection import AdaptiveModelSelector
from mindfeed.domain.models import (
    ArticleCandidate,
    TopCategory,
    UserProfile,
)
from mindfeed.enums import ContentStyle, ReadingLevel


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# Configure anyio to only use asyncio backend
@pytest.fixture
def anyio_backend() -> str:
    """Force tests to use asyncio backend only."""
    return "asyncio"


@pytest.fixture(autouse=True, scope="session")
def mock_logger() -> Iterator[MagicMock]:
    with patch("mindfeed.logging._logger", MagicMock()) as mock_logger:
        mock_logger.log.return_value = None
        yield mock_logger


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    """Create a cache with a controllable clock."""
    return TTLCache(default_ttl_seconds=600, max_size=50, clock=clock)


@pytest.fixture(scope="session")
def catalog():
    return load_model_catalog()


@pytest.fixture
def selector(cache: TTLCache, catalog) -> AdaptiveModelSelector:
    return AdaptiveModelSelector(cache=cache, catalog=catalog)


@pytest.fixture
def tech_profile() -> UserProfile:
    return UserProfile(
        reading_level=ReadingLevel.Intermediate,
        top_categories=(
            TopCategory(category="technology", score=0.9),
            TopCategory(category="science", score=0.5),
            TopCategory(category="business", score=0.2),
        ),
        preferred_topics=("python", "machine learning"),
        content_style=ContentStyle.Practical,
    )


def make_articles(count: int, category: str = "technology", **overrides) -> List[ArticleCandidate]:
    return [
        ArticleCandidate(
            id=f"{category}-{i:03d}",
            title=overrides.get("title", f"Article number {i} about {category}"),
            category=category,
            tags=overrides.get("tags", (category,)),
            read_time=overrides.get("read_time", 3 + i % 12),
            content=overrides.get("content", f"Body text {i}"),
            created_at=NOW - timedelta(days=i),
        )
        for i in range(count)
    ]


@pytest.fixture
def articles() -> List[ArticleCandidate]:
    mixed = make_articles(8, "technology") + make_articles(6, "science") + make_articles(6, "history")
    mixed.append(
        ArticleCandidate(
            id="guide-python",
            title="How to profile Python code",
            category="technology",
            tags=("python", "performance"),
            read_time=7,
            content="Why is my loop slow? A practical guide to machine learning pipelines.",
            created_at=NOW - timedelta(hours=2),
        )
    )
    return mixed
