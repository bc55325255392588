"""Constants module for mindfeed configuration.

Contains cache defaults, scoring weights and lookup tables shared by the
model selector and the recommendation engine.
"""

from typing import Dict, FrozenSet, Tuple

# Cache defaults
DEFAULT_CACHE_TTL_SECONDS = 600
DEFAULT_CACHE_MAX_SIZE = 500
DEFAULT_MODEL_SELECTION_TTL_SECONDS = 600
DEFAULT_RECOMMENDATION_TTL_SECONDS = 600

# Cache key namespaces
MODEL_SELECTION_NAMESPACE = "model_selection"
RECOMMENDATIONS_NAMESPACE = "recommendations"

# Model selection
DEFAULT_MAX_ALTERNATIVES = 2
DEFAULT_MODEL_CATALOG_FILE = "model_catalog.json"

# Ordinal ranks for tiered enums
COMPLEXITY_RANK: Dict[str, int] = {"simple": 1, "medium": 2, "complex": 3}
READING_LEVEL_RANK: Dict[str, int] = {"beginner": 0, "intermediate": 1, "advanced": 2}
READING_LEVELS: Tuple[str, ...] = ("beginner", "intermediate", "advanced")

# Model strengths that matter for each task type
TASK_STRENGTHS: Dict[str, FrozenSet[str]] = {
    "content_generation": frozenset({"reasoning", "creative_writing", "long_form"}),
    "question_answering": frozenset({"reasoning", "quick_responses"}),
    "analysis": frozenset({"reasoning", "math", "analysis"}),
    "translation": frozenset({"multilingual", "translation"}),
    "coding": frozenset({"code_generation", "reasoning"}),
    "creative": frozenset({"creative_writing", "storytelling"}),
}

# Model specialties that match each task type
TASK_SPECIALTIES: Dict[str, FrozenSet[str]] = {
    "content_generation": frozenset({"educational", "creative_content", "long_form_content"}),
    "question_answering": frozenset({"simple_qa", "chat"}),
    "analysis": frozenset({"technical_content", "research", "problem_solving"}),
    "translation": frozenset({"translation"}),
    "coding": frozenset({"technical_content", "problem_solving"}),
    "creative": frozenset({"creative_content", "narrative"}),
}

# Approximate tokens needed per requested output length
OUTPUT_LENGTH_TOKENS: Dict[str, int] = {"short": 500, "medium": 2000, "long": 8000}

# Model selection weights
TASK_STRENGTH_POINTS = 20.0
COMPLEXITY_EXACT_POINTS = 30.0
COMPLEXITY_ADJACENT_POINTS = 15.0
LANGUAGE_SUPPORTED_POINTS = 25.0
LANGUAGE_MIXED_POINTS = 20.0
OUTPUT_LENGTH_FIT_POINTS = 20.0
OUTPUT_LENGTH_NEAR_POINTS = 10.0
OUTPUT_LENGTH_PENALTY = -10.0
OUTPUT_LENGTH_NEAR_RATIO = 0.7
TASK_SPECIALTY_POINTS = 10.0
CONTEXT_SPECIALTY_POINTS = 15.0

# urgency -> model speed -> points. For any two speeds the faster model's
# advantage must not shrink as urgency rises.
URGENCY_SPEED_POINTS: Dict[str, Dict[str, float]] = {
    "high": {"fast": 25.0, "medium": 12.0, "slow": 0.0},
    "medium": {"fast": 15.0, "medium": 20.0, "slow": 8.0},
    "low": {"fast": 5.0, "medium": 10.0, "slow": 15.0},
}

# quality -> model complexity -> points
QUALITY_COMPLEXITY_POINTS: Dict[str, Dict[str, float]] = {
    "draft": {"simple": 20.0, "medium": 10.0, "complex": 5.0},
    "standard": {"simple": 10.0, "medium": 20.0, "complex": 15.0},
    "premium": {"simple": 0.0, "medium": 10.0, "complex": 25.0},
}

# quality -> model speed -> points
QUALITY_SPEED_POINTS: Dict[str, Dict[str, float]] = {
    "draft": {"fast": 10.0, "medium": 5.0, "slow": 0.0},
    "standard": {"fast": 8.0, "medium": 5.0, "slow": 0.0},
    "premium": {"fast": 0.0, "medium": 3.0, "slow": 5.0},
}

# Recommendation engine
DEFAULT_USER_ID = "default-user"
DEFAULT_RECOMMENDATION_LIMIT = 10
DEFAULT_CANDIDATE_POOL_MULTIPLIER = 3
# Percent of the candidate pool drawn from the user's top categories; the rest
# comes from the most stocked other categories
PREFERRED_POOL_PERCENT = 70
MAX_POOL_PREFERRED_CATEGORIES = 5
MAX_POOL_DISCOVERY_CATEGORIES = 3
MAX_SUGGESTED_TOPICS = 8

PERSONALITY_BASE = 50.0
PERSONALITY_CATEGORY_POINTS = 30.0
PERSONALITY_TAG_POINTS = 5.0
PERSONALITY_TAG_CAP = 10.0
PERSONALITY_PRACTICAL_POINTS = 5.0
PERSONALITY_INTERACTIVE_POINTS = 5.0
PERSONALITY_DEEP_POINTS = 10.0
PERSONALITY_SHALLOW_POINTS = 5.0

RELEVANCE_CATEGORY_POINTS = 40.0
RELEVANCE_TOPIC_POINTS = 10.0
RELEVANCE_TOPIC_CAP = 30.0

# Titles that read as hands-on material
PRACTICAL_TITLE_MARKERS: Tuple[str, ...] = (
    "how to",
    "guide",
    "tips",
    "step by step",
    "איך",
    "מדריך",
)

CONFIDENCE_BASE = 60.0
CONFIDENCE_CATEGORIES_BONUS = 15.0
CONFIDENCE_VELOCITY_BONUS = 10.0
CONFIDENCE_POOL_BONUS = 10.0
CONFIDENCE_COLD_START_PENALTY = 25.0
CONFIDENCE_MAX = 95.0
CONFIDENCE_MIN = 10.0
CONFIDENCE_POOL_THRESHOLD = 20
CONFIDENCE_VELOCITY_THRESHOLD = 0.3

# Topics suggested for each well-known category
CATEGORY_TOPICS: Dict[str, Tuple[str, ...]] = {
    "technology": ("artificial intelligence", "software development", "information security"),
    "self-improvement": ("leadership", "productivity", "self discipline"),
    "business": ("entrepreneurship", "management", "digital marketing"),
    "science": ("data science", "biology", "quantum physics"),
}

# Behavior analysis
ACTIVITY_WINDOW_DAYS = 14
READ_ACTION = "article_read"
ENGAGEMENT_ACTIONS: FrozenSet[str] = frozenset(
    {"article_save", "ai_question", "article_share"}
)
LONG_ARTICLE_MINUTES = 8
DEEP_PREFERENCE_RATIO = 0.6
MEDIUM_PREFERENCE_RATIO = 0.3
MAX_LEARNING_GOALS = 3
