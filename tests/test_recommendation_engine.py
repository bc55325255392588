"""Tests for the personalized recommendation engine."""

from datetime import timedelta
from typing import List
from unittest.mock import AsyncMock, MagicMock

import anyio
import pytest

from mindfeed.application.cache import TTLCache
from mindfeed.application.model_selection import AdaptiveModelSelector
from mindfeed.application.recommendation import (
    InMemoryContentRepository,
    RecommendationEngine,
)
from mindfeed.application.recommendation.engine import (
    ENHANCEMENT_REQUIREMENTS,
    apply_enhancements,
    confidence_score,
    overall_difficulty,
    suggest_topics,
)
from mindfeed.application.recommendation.scoring import ranking_key
from mindfeed.config import Settings
from mindfeed.domain.exceptions import (
    ConfigurationError,
    DependencyError,
    ValidationError,
)
from mindfeed.domain.models import (
    ActivityEvent,
    ArticleEnhancement,
    BehaviorPattern,
    TopCategory,
    UserActivity,
    UserProfile,
)
from mindfeed.enums import ReadingLevel

from conftest import NOW, make_articles


class RecordingEnhancer:
    """Enhancer double that remembers what it was asked to refine."""

    def __init__(self, result=None, exc: Exception = None) -> None:
        self.result = result or []
        self.exc = exc
        self.calls: List[tuple] = []

    async def enhance(self, articles, profile, behavior, model):
        self.calls.append((tuple(a.id for a in articles), model.id))
        if self.exc:
            raise self.exc
        return self.result


@pytest.fixture
def repository(articles, tech_profile) -> InMemoryContentRepository:
    return InMemoryContentRepository(articles=articles, profiles={"u1": tech_profile})


@pytest.fixture
def engine(repository, cache: TTLCache) -> RecommendationEngine:
    return RecommendationEngine(repository=repository, cache=cache, clock=lambda: NOW)


class TestRecommendationBounds:
    """Test result size and ordering."""

    @pytest.mark.anyio
    async def test_limit_respected(self, engine: RecommendationEngine) -> None:
        result = await engine.generate_personalized_recommendations("u1", 5)
        assert len(result.articles) == 5

    @pytest.mark.anyio
    async def test_limit_above_pool_returns_whole_pool(
        self, engine: RecommendationEngine, articles
    ) -> None:
        result = await engine.generate_personalized_recommendations("u1", 100)
        assert len(result.articles) == len(articles)

    @pytest.mark.anyio
    async def test_articles_sorted_by_relevance_then_match(
        self, engine: RecommendationEngine
    ) -> None:
        result = await engine.generate_personalized_recommendations("u1", 50)
        assert list(result.articles) == sorted(result.articles, key=ranking_key)

    @pytest.mark.anyio
    async def test_article_scores_within_bounds(self, engine: RecommendationEngine) -> None:
        result = await engine.generate_personalized_recommendations("u1", 50)
        for article in result.articles:
            assert 0 <= article.personality_match <= 100
            assert article.relevance_score >= 0
            assert len(article.reasoning) >= 1
        assert 0 <= result.confidence <= 100

    @pytest.mark.anyio
    async def test_best_match_first(self, engine: RecommendationEngine) -> None:
        result = await engine.generate_personalized_recommendations("u1", 3)
        top = result.articles[0]
        assert top.id == "guide-python"
        assert top.relevance_score == 81.0
        assert top.personality_match == 87.0
        assert any("python" in reason for reason in top.reasoning)

    @pytest.mark.anyio
    async def test_categories_follow_rank_order(self, engine: RecommendationEngine) -> None:
        result = await engine.generate_personalized_recommendations("u1", 50)
        expected = list(dict.fromkeys(a.category for a in result.articles))
        assert list(result.categories) == expected
        assert len(result.topics) <= 8

    @pytest.mark.anyio
    async def test_duplicate_candidates_collapsed(self, cache: TTLCache, tech_profile) -> None:
        article = make_articles(1)[0]
        repository = InMemoryContentRepository(
            articles=[article, article], profiles={"u1": tech_profile}
        )
        engine = RecommendationEngine(repository=repository, cache=cache, clock=lambda: NOW)
        result = await engine.generate_personalized_recommendations("u1", 5)
        assert [a.id for a in result.articles] == [article.id]


class TestRecommendationCaching:
    """Test memoization by user, limit and profile snapshot."""

    @pytest.mark.anyio
    async def test_identical_calls_return_equal_results(
        self, engine: RecommendationEngine, cache: TTLCache
    ) -> None:
        first = await engine.generate_personalized_recommendations("u1", 5)
        second = await engine.generate_personalized_recommendations("u1", 5)

        assert first == second
        assert first.model_dump_json() == second.model_dump_json()
        assert cache.get_stats().hits == 1
        assert cache.get_stats().sets == 1

    @pytest.mark.anyio
    async def test_different_limit_is_separate_entry(
        self, engine: RecommendationEngine, cache: TTLCache
    ) -> None:
        await engine.generate_personalized_recommendations("u1", 5)
        await engine.generate_personalized_recommendations("u1", 6)
        assert cache.get_stats().sets == 2

    @pytest.mark.anyio
    async def test_profile_change_invalidates(
        self, engine: RecommendationEngine, repository, cache: TTLCache
    ) -> None:
        await engine.generate_personalized_recommendations("u1", 5)
        repository.set_profile(
            "u1", UserProfile(top_categories=(TopCategory(category="history", score=1.0),))
        )
        result = await engine.generate_personalized_recommendations("u1", 5)

        assert cache.get_stats().sets == 2
        assert result.articles[0].category == "history"

    @pytest.mark.anyio
    async def test_expired_result_recomputed(
        self, engine: RecommendationEngine, cache: TTLCache, clock
    ) -> None:
        await engine.generate_personalized_recommendations("u1", 5)
        clock.advance(601)
        await engine.generate_personalized_recommendations("u1", 5)
        assert cache.get_stats().sets == 2

    @pytest.mark.anyio
    async def test_concurrent_requests_compute_once(
        self, engine: RecommendationEngine, cache: TTLCache
    ) -> None:
        async with anyio.create_task_group() as tg:
            for _ in range(3):
                tg.start_soon(engine.generate_personalized_recommendations, "u1", 5)
        assert cache.get_stats().sets == 1


class TestColdStart:
    """Test unknown and signal-less users."""

    @pytest.mark.anyio
    async def test_unknown_user_gets_result(self, engine: RecommendationEngine) -> None:
        result = await engine.generate_personalized_recommendations("stranger", 5)
        assert result.cold_start is True
        assert len(result.articles) == 5
        assert result.difficulty in list(ReadingLevel)

    @pytest.mark.anyio
    async def test_cold_start_confidence_reduced_but_positive(
        self, engine: RecommendationEngine
    ) -> None:
        known = await engine.generate_personalized_recommendations("u1", 10)
        unknown = await engine.generate_personalized_recommendations("stranger", 10)

        assert known.confidence == 85
        assert unknown.confidence == 45
        assert 0 < unknown.confidence < known.confidence
        assert "learn your preferences" in unknown.reasoning

    @pytest.mark.anyio
    async def test_default_user_id(self, engine: RecommendationEngine) -> None:
        result = await engine.generate_personalized_recommendations()
        assert result.cold_start is True
        assert len(result.articles) == 10


class TestRequestValidation:
    """Test malformed requests are rejected before any work."""

    @pytest.mark.anyio
    @pytest.mark.parametrize("limit", [0, -1, True, 2.5, "5", None])
    async def test_invalid_limit(self, cache: TTLCache, limit) -> None:
        repository = MagicMock()
        repository.get_user_profile = AsyncMock()
        engine = RecommendationEngine(repository=repository, cache=cache)

        with pytest.raises(ValidationError) as exc_info:
            await engine.generate_personalized_recommendations("u1", limit)

        assert exc_info.value.field == "limit"
        repository.get_user_profile.assert_not_called()
        assert cache.get_stats().misses == 0

    @pytest.mark.anyio
    @pytest.mark.parametrize("user_id", ["", "   ", None, 42])
    async def test_invalid_user_id(self, engine: RecommendationEngine, user_id) -> None:
        with pytest.raises(ValidationError):
            await engine.generate_personalized_recommendations(user_id, 5)


class TestRecommendationFailures:
    """Test collaborator and data failures."""

    @pytest.mark.anyio
    async def test_profile_lookup_failure_is_dependency_error(self, cache: TTLCache) -> None:
        repository = MagicMock()
        repository.get_user_profile = AsyncMock(side_effect=RuntimeError("db down"))
        engine = RecommendationEngine(repository=repository, cache=cache)

        with pytest.raises(DependencyError) as exc_info:
            await engine.generate_personalized_recommendations("u1", 5)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.dependency == "content_repository"
        assert len(cache) == 0

    @pytest.mark.anyio
    async def test_candidate_failure_not_cached(self, cache: TTLCache, tech_profile) -> None:
        repository = MagicMock()
        repository.get_user_profile = AsyncMock(return_value=tech_profile)
        repository.get_user_activity = AsyncMock(return_value=None)
        repository.get_candidate_articles = AsyncMock(side_effect=TimeoutError())
        engine = RecommendationEngine(repository=repository, cache=cache)

        with pytest.raises(DependencyError):
            await engine.generate_personalized_recommendations("u1", 5)
        assert cache.get_stats().sets == 0

    @pytest.mark.anyio
    async def test_empty_pool_is_configuration_error(self, cache: TTLCache, tech_profile) -> None:
        repository = InMemoryContentRepository(profiles={"u1": tech_profile})
        engine = RecommendationEngine(repository=repository, cache=cache, clock=lambda: NOW)

        with pytest.raises(ConfigurationError):
            await engine.generate_personalized_recommendations("u1", 5)
        assert len(cache) == 0

        repository.add_article(make_articles(1)[0])
        result = await engine.generate_personalized_recommendations("u1", 5)
        assert len(result.articles) == 1

    def test_enhancer_requires_selector(self, repository, cache: TTLCache) -> None:
        with pytest.raises(ConfigurationError):
            RecommendationEngine(repository=repository, cache=cache, enhancer=RecordingEnhancer())


class TestEnhancement:
    """Test the optional model-backed enhancement step."""

    @pytest.mark.anyio
    async def test_enhancements_applied(
        self, repository, cache: TTLCache, selector: AdaptiveModelSelector
    ) -> None:
        enhancer = RecordingEnhancer(
            result=[
                ArticleEnhancement(
                    index=1, personality_match=99, reasoning="great fit", tags=("bonus",)
                )
            ]
        )
        engine = RecommendationEngine(
            repository=repository,
            cache=cache,
            selector=selector,
            enhancer=enhancer,
            clock=lambda: NOW,
        )
        result = await engine.generate_personalized_recommendations("u1", 10)

        expected_model = await selector.select_best_model(ENHANCEMENT_REQUIREMENTS)
        assert result.model_id == expected_model.id
        assert len(enhancer.calls[0][0]) == 5
        top = result.articles[0]
        assert top.personality_match == 99
        assert "AI: great fit" in top.reasoning
        assert "bonus" in top.tags

    @pytest.mark.anyio
    async def test_enhancer_failure_keeps_base_scores(
        self, repository, cache: TTLCache, selector: AdaptiveModelSelector
    ) -> None:
        plain = RecommendationEngine(repository=repository, cache=TTLCache(), clock=lambda: NOW)
        baseline = await plain.generate_personalized_recommendations("u1", 10)

        engine = RecommendationEngine(
            repository=repository,
            cache=cache,
            selector=selector,
            enhancer=RecordingEnhancer(exc=RuntimeError("model offline")),
            clock=lambda: NOW,
        )
        result = await engine.generate_personalized_recommendations("u1", 10)

        assert result.model_id is None
        assert result.articles == baseline.articles

    @pytest.mark.anyio
    async def test_malformed_enhancement_ignored(
        self, repository, cache: TTLCache, selector: AdaptiveModelSelector
    ) -> None:
        engine = RecommendationEngine(
            repository=repository,
            cache=cache,
            selector=selector,
            enhancer=RecordingEnhancer(result=[{"index": 1, "personality_match": 150}]),
            clock=lambda: NOW,
        )
        result = await engine.generate_personalized_recommendations("u1", 10)
        assert result.model_id is None
        assert all(a.personality_match <= 100 for a in result.articles)


class TestResultAggregation:
    """Test result-level helpers."""

    def test_apply_enhancements_ignores_out_of_range(self, tech_profile) -> None:
        from mindfeed.application.recommendation.scoring import score_article

        scored = [score_article(a, tech_profile, BehaviorPattern(), NOW) for a in make_articles(2)]
        updated = apply_enhancements(scored, [ArticleEnhancement(index=7, reasoning="x")])
        assert updated == scored

    def test_confidence_caps(self, tech_profile) -> None:
        eager = BehaviorPattern(reading_velocity=0.9)
        assert confidence_score(tech_profile, eager, 50, cold_start=False) == 95
        assert confidence_score(UserProfile(), BehaviorPattern(), 1, cold_start=True) == 35

    def test_difficulty_blends_reader_and_content(self, tech_profile) -> None:
        from mindfeed.application.recommendation.scoring import score_article

        short_reads = make_articles(3, read_time=2)
        long_reads = make_articles(3, read_time=20)
        beginner = UserProfile(reading_level=ReadingLevel.Beginner)
        advanced = UserProfile(reading_level=ReadingLevel.Advanced)

        easy = [score_article(a, beginner, BehaviorPattern(), NOW) for a in short_reads]
        hard = [score_article(a, advanced, BehaviorPattern(), NOW) for a in long_reads]
        assert overall_difficulty(beginner, easy) == ReadingLevel.Beginner
        assert overall_difficulty(advanced, hard) == ReadingLevel.Advanced
        assert overall_difficulty(beginner, hard) == ReadingLevel.Intermediate

    def test_topics_expand_categories(self, tech_profile) -> None:
        topics = suggest_topics(tech_profile, [])
        assert topics[:2] == ("python", "machine learning")
        assert "artificial intelligence" in topics
        assert len(topics) == 8

    @pytest.mark.anyio
    async def test_active_reader_reasoning(self, cache: TTLCache, tech_profile, articles) -> None:
        activity = UserActivity(
            events=tuple(
                ActivityEvent(action="article_read", created_at=NOW - timedelta(days=1))
                for _ in range(3)
            ),
            questions=("how?", "why?", "what is it?"),
            saved_read_times=(12,),
        )
        repository = InMemoryContentRepository(
            articles=articles, profiles={"u1": tech_profile}, activities={"u1": activity}
        )
        engine = RecommendationEngine(repository=repository, cache=cache, clock=lambda: NOW)
        result = await engine.generate_personalized_recommendations("u1", 10)

        assert "questions" in result.reasoning
        assert result.confidence == 95


class TestCandidatePool:
    """Test which articles make it into the scored pool."""

    @pytest.mark.anyio
    async def test_read_articles_excluded(self, engine: RecommendationEngine, repository) -> None:
        repository.set_activity(
            "u1",
            UserActivity(
                events=(
                    ActivityEvent(
                        action="article_read",
                        target_id="guide-python",
                        created_at=NOW - timedelta(days=1),
                    ),
                )
            ),
        )
        result = await engine.generate_personalized_recommendations("u1", 50)

        ids = [a.id for a in result.articles]
        assert "guide-python" not in ids
        assert len(ids) == 20

    @pytest.mark.anyio
    async def test_read_history_is_part_of_cache_key(
        self, engine: RecommendationEngine, repository, cache: TTLCache
    ) -> None:
        await engine.generate_personalized_recommendations("u1", 50)
        # too old to affect the behavior pattern, still excluded
        repository.set_activity(
            "u1",
            UserActivity(
                events=(
                    ActivityEvent(
                        action="article_read",
                        target_id="history-005",
                        created_at=NOW - timedelta(days=30),
                    ),
                )
            ),
        )
        result = await engine.generate_personalized_recommendations("u1", 50)

        assert cache.get_stats().sets == 2
        assert "history-005" not in [a.id for a in result.articles]

    @pytest.mark.anyio
    async def test_read_articles_filtered_from_any_repository(
        self, cache: TTLCache, tech_profile
    ) -> None:
        activity = UserActivity(
            events=(
                ActivityEvent(action="article_read", target_id="technology-000", created_at=NOW),
            )
        )
        repository = MagicMock()
        repository.get_user_profile = AsyncMock(return_value=tech_profile)
        repository.get_user_activity = AsyncMock(return_value=activity)
        repository.get_candidate_articles = AsyncMock(return_value=make_articles(3))
        engine = RecommendationEngine(repository=repository, cache=cache, clock=lambda: NOW)

        result = await engine.generate_personalized_recommendations("u1", 5)

        assert sorted(a.id for a in result.articles) == ["technology-001", "technology-002"]
        repository.get_candidate_articles.assert_awaited_once_with(
            tech_profile, 15, exclude_ids=frozenset({"technology-000"})
        )

    @pytest.mark.anyio
    async def test_pool_reserves_room_for_other_categories(self) -> None:
        profile = UserProfile(top_categories=(TopCategory(category="technology", score=1.0),))
        repository = InMemoryContentRepository(
            articles=make_articles(40, "technology") + make_articles(10, "history")
        )
        pool = await repository.get_candidate_articles(profile, 30)

        categories = [a.category for a in pool]
        assert len(pool) == 30
        assert categories.count("technology") == 21
        assert categories.count("history") == 9

    @pytest.mark.anyio
    async def test_pool_discovery_uses_most_stocked_categories(self) -> None:
        profile = UserProfile(top_categories=(TopCategory(category="technology", score=1.0),))
        articles = (
            make_articles(10, "technology")
            + make_articles(5, "science")
            + make_articles(4, "history")
            + make_articles(3, "business")
            + make_articles(1, "art")
        )
        pool = await InMemoryContentRepository(articles=articles).get_candidate_articles(
            profile, 10
        )
        assert {a.category for a in pool} == {"technology", "science", "history", "business"}

    @pytest.mark.anyio
    async def test_short_shelves_backfilled_newest_first(self) -> None:
        profile = UserProfile(top_categories=(TopCategory(category="technology", score=1.0),))
        repository = InMemoryContentRepository(articles=make_articles(20, "technology"))

        pool = await repository.get_candidate_articles(profile, 10)
        assert [a.id for a in pool] == [f"technology-{i:03d}" for i in range(10)]

    @pytest.mark.anyio
    async def test_pool_skips_excluded_ids(self) -> None:
        repository = InMemoryContentRepository(articles=make_articles(5))
        pool = await repository.get_candidate_articles(
            UserProfile(), 10, exclude_ids={"technology-000", "technology-003"}
        )
        assert [a.id for a in pool] == ["technology-001", "technology-002", "technology-004"]


class TestFromSettings:
    """Test construction from application settings."""

    @pytest.mark.anyio
    async def test_settings_drive_ttl_and_pool_size(
        self, repository, cache: TTLCache, clock
    ) -> None:
        settings = Settings(
            _env_file=None,
            recommendation_ttl_seconds=5,
            recommendation_pool_multiplier=1,
        )
        engine = RecommendationEngine.from_settings(settings, repository, cache)

        result = await engine.generate_personalized_recommendations("u1", 5)
        # three top categories but a pool of five: no pool bonus
        assert result.confidence == 75
        assert len(result.articles) == 5

        clock.advance(6)
        await engine.generate_personalized_recommendations("u1", 5)
        assert cache.get_stats().sets == 2
