"""Adaptive selection of a backing language model for a generation task.

Every model in the catalog is scored against the caller's
:class:`TaskRequirements` along seven dimensions (task strengths, complexity,
output length, language, quality, urgency and specialties). The highest
scorer is recommended, the next ones below it are offered as alternatives,
and the outcome is memoized in the shared :class:`TTLCache` keyed by the
requirements fingerprint.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .cache import TTLCache
from .model_catalog import load_model_catalog
from ..config import Settings
from ..constants import (
    COMPLEXITY_ADJACENT_POINTS,
    COMPLEXITY_EXACT_POINTS,
    COMPLEXITY_RANK,
    CONTEXT_SPECIALTY_POINTS,
    DEFAULT_MAX_ALTERNATIVES,
    DEFAULT_MODEL_SELECTION_TTL_SECONDS,
    LANGUAGE_MIXED_POINTS,
    LANGUAGE_SUPPORTED_POINTS,
    MODEL_SELECTION_NAMESPACE,
    OUTPUT_LENGTH_FIT_POINTS,
    OUTPUT_LENGTH_NEAR_POINTS,
    OUTPUT_LENGTH_NEAR_RATIO,
    OUTPUT_LENGTH_PENALTY,
    OUTPUT_LENGTH_TOKENS,
    QUALITY_COMPLEXITY_POINTS,
    QUALITY_SPEED_POINTS,
    TASK_SPECIALTIES,
    TASK_SPECIALTY_POINTS,
    TASK_STRENGTH_POINTS,
    TASK_STRENGTHS,
    URGENCY_SPEED_POINTS,
)
from ..domain.exceptions import ConfigurationError, ValidationError
from ..domain.models import ModelProfile, ModelRecommendation, TaskRequirements
from ..enums import Language
from ..logging import debug, info, warning, LogRecord, LogEvent

RequirementsInput = Union[TaskRequirements, Mapping[str, Any]]


@dataclass(frozen=True)
class ModelScore:
    """Score of one model against one set of requirements.

    ``breakdown`` holds the points contributed by each dimension; ``total`` is
    their sum clamped at zero.
    """

    model: ModelProfile
    total: float
    breakdown: Dict[str, float] = field(default_factory=dict)
    matched_strengths: Tuple[str, ...] = ()
    matched_specialties: Tuple[str, ...] = ()
    context_matches: Tuple[str, ...] = ()

    def sort_key(self) -> Tuple[float, int, str]:
        return (-self.total, -len(self.model.languages), self.model.id)


def validate_requirements(requirements: RequirementsInput) -> TaskRequirements:
    """Coerce ``requirements`` into :class:`TaskRequirements`.

    Raises:
        ValidationError: If a field is missing or outside its enumeration.
    """
    if isinstance(requirements, TaskRequirements):
        return requirements
    if not isinstance(requirements, Mapping):
        raise ValidationError(
            "Task requirements must be a mapping or TaskRequirements",
            details={"received_type": type(requirements).__name__},
        )
    try:
        return TaskRequirements.model_validate(dict(requirements))
    except PydanticValidationError as e:
        errors = e.errors(include_url=False)
        first_loc = errors[0].get("loc", ()) if errors else ()
        raise ValidationError(
            f"Invalid task requirements: {errors[0].get('msg') if errors else e}",
            field=".".join(str(part) for part in first_loc) or None,
            details={"errors": errors},
        ) from e


def _complexity_points(model: ModelProfile, req: TaskRequirements) -> float:
    distance = abs(COMPLEXITY_RANK[model.complexity.value] - COMPLEXITY_RANK[req.complexity.value])
    if distance == 0:
        return COMPLEXITY_EXACT_POINTS
    if distance == 1:
        return COMPLEXITY_ADJACENT_POINTS
    return 0.0


def _supports_mixed(model: ModelProfile) -> bool:
    return len(model.languages) > 1 or "multilingual" in model.strengths


def _language_points(model: ModelProfile, req: TaskRequirements) -> float:
    if req.language == Language.Mixed:
        return LANGUAGE_MIXED_POINTS if _supports_mixed(model) else 0.0
    return LANGUAGE_SUPPORTED_POINTS if req.language.value in model.languages else 0.0


def _output_length_points(model: ModelProfile, req: TaskRequirements) -> float:
    needed = OUTPUT_LENGTH_TOKENS[req.output_length.value]
    if model.max_tokens >= needed:
        return OUTPUT_LENGTH_FIT_POINTS
    if model.max_tokens >= needed * OUTPUT_LENGTH_NEAR_RATIO:
        return OUTPUT_LENGTH_NEAR_POINTS
    return OUTPUT_LENGTH_PENALTY


def _context_matches(model: ModelProfile, context: Optional[str]) -> Tuple[str, ...]:
    if not context:
        return ()
    text = context.lower()
    matches = []
    for term in dict.fromkeys(model.specialties + model.strengths):
        if term.lower() in text or term.replace("_", " ").lower() in text:
            matches.append(term)
    return tuple(matches)


def score_model(model: ModelProfile, requirements: TaskRequirements) -> ModelScore:
    """Score ``model`` against ``requirements``; pure and deterministic."""
    task = requirements.task_type.value
    matched_strengths = tuple(
        s for s in model.strengths if s in TASK_STRENGTHS.get(task, frozenset())
    )
    matched_specialties = tuple(
        s for s in model.specialties if s in TASK_SPECIALTIES.get(task, frozenset())
    )
    context_matches = _context_matches(model, requirements.context)

    breakdown = {
        "task_strengths": TASK_STRENGTH_POINTS * len(matched_strengths),
        "complexity": _complexity_points(model, requirements),
        "output_length": _output_length_points(model, requirements),
        "language": _language_points(model, requirements),
        "quality": (
            QUALITY_COMPLEXITY_POINTS[requirements.quality.value][model.complexity.value]
            + QUALITY_SPEED_POINTS[requirements.quality.value][model.speed.value]
        ),
        "urgency": URGENCY_SPEED_POINTS[requirements.urgency.value][model.speed.value],
        "specialty": (
            TASK_SPECIALTY_POINTS * len(matched_specialties)
            + CONTEXT_SPECIALTY_POINTS * len(context_matches)
        ),
    }

    return ModelScore(
        model=model,
        total=max(0.0, sum(breakdown.values())),
        breakdown=breakdown,
        matched_strengths=matched_strengths,
        matched_specialties=matched_specialties,
        context_matches=context_matches,
    )


def rank_models(
    catalog: Sequence[ModelProfile], requirements: TaskRequirements
) -> List[ModelScore]:
    """Score every model and order best first.

    Ties on score prefer broader language support, then the smaller id.
    """
    return sorted((score_model(m, requirements) for m in catalog), key=ModelScore.sort_key)


def pick_alternatives(ranked: Sequence[ModelScore], limit: int) -> Tuple[ModelProfile, ...]:
    """Runners-up scoring strictly below the winner, unique by id."""
    if not ranked or limit <= 0:
        return ()
    top = ranked[0]
    seen = {top.model.id}
    picked: List[ModelProfile] = []
    for candidate in ranked[1:]:
        if candidate.total >= top.total or candidate.model.id in seen:
            continue
        seen.add(candidate.model.id)
        picked.append(candidate.model)
        if len(picked) >= limit:
            break
    return tuple(picked)


def explain_choice(score: ModelScore, requirements: TaskRequirements) -> Tuple[str, ...]:
    """Human-readable reasons naming the dimensions that drove the pick."""
    model = score.model
    reasons: List[str] = []

    if score.matched_strengths:
        reasons.append(
            f"Strong fit for {requirements.task_type.value}: "
            f"{', '.join(score.matched_strengths)}"
        )

    if score.breakdown["complexity"] == COMPLEXITY_EXACT_POINTS:
        reasons.append(
            f"Capability tier '{model.complexity.value}' matches "
            f"{requirements.complexity.value} task complexity"
        )
    elif score.breakdown["complexity"] > 0:
        reasons.append(
            f"Capability tier '{model.complexity.value}' is close to "
            f"{requirements.complexity.value} task complexity"
        )

    if score.breakdown["language"] > 0:
        if requirements.language == Language.Mixed:
            reasons.append(f"Handles mixed-language content ({', '.join(model.languages)})")
        else:
            reasons.append(f"Supports {requirements.language.value}")

    reasons.append(
        f"{model.speed.value.capitalize()} response speed suits "
        f"{requirements.urgency.value} urgency"
    )

    if score.breakdown["quality"] > 0:
        reasons.append(
            f"Fits {requirements.quality.value} quality with a "
            f"{model.complexity.value} model"
        )

    if score.matched_specialties:
        reasons.append(f"Specialized in {', '.join(score.matched_specialties)}")
    if score.context_matches:
        reasons.append(f"Context mentions {', '.join(score.context_matches)}")

    if score.breakdown["output_length"] < 0:
        reasons.append(
            f"Output may be limited by {model.max_tokens} max tokens "
            f"for {requirements.output_length.value} output"
        )

    return tuple(reasons)


class AdaptiveModelSelector:
    """
    Picks the best catalog model for a task and memoizes the decision.

    Identical requirements inside the selection TTL return the identical
    cached :class:`ModelRecommendation`.
    """

    def __init__(
        self,
        cache: TTLCache,
        catalog: Optional[Sequence[ModelProfile]] = None,
        ttl_seconds: float = DEFAULT_MODEL_SELECTION_TTL_SECONDS,
        max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
    ):
        self._cache = cache
        self._catalog: Tuple[ModelProfile, ...] = (
            tuple(catalog) if catalog is not None else load_model_catalog()
        )
        self._ttl_seconds = ttl_seconds
        self._max_alternatives = max_alternatives

    @classmethod
    def from_settings(cls, settings: Settings, cache: TTLCache) -> "AdaptiveModelSelector":
        return cls(
            cache=cache,
            catalog=load_model_catalog(settings.model_catalog_path),
            ttl_seconds=settings.model_selection_ttl_seconds,
            max_alternatives=settings.model_selection_max_alternatives,
        )

    @property
    def catalog(self) -> Tuple[ModelProfile, ...]:
        return self._catalog

    async def get_model_recommendation(
        self, requirements: RequirementsInput
    ) -> ModelRecommendation:
        """Return the recommended model, ranked alternatives and reasoning.

        Raises:
            ValidationError: If ``requirements`` is malformed.
            ConfigurationError: If the catalog is empty.
        """
        req = validate_requirements(requirements)

        if not self._catalog:
            error = ConfigurationError(
                "No models available for selection",
                config_key="model_catalog_path",
            )
            warning(
                LogRecord(
                    event=LogEvent.MODEL_SELECTION_FAILURE.value,
                    message=error.message,
                    data={"task_type": req.task_type.value},
                ),
                exc=error,
            )
            raise error

        key = self._cache.create_key(req, MODEL_SELECTION_NAMESPACE)

        async def compute() -> ModelRecommendation:
            return self._select(req)

        return await self._cache.get_or_compute(key, compute, self._ttl_seconds)

    async def select_best_model(self, requirements: RequirementsInput) -> ModelProfile:
        """Shorthand for the ``recommended`` field of :meth:`get_model_recommendation`."""
        recommendation = await self.get_model_recommendation(requirements)
        return recommendation.recommended

    def _select(self, req: TaskRequirements) -> ModelRecommendation:
        ranked = rank_models(self._catalog, req)
        best = ranked[0]
        alternatives = pick_alternatives(ranked, self._max_alternatives)
        recommendation = ModelRecommendation(
            recommended=best.model,
            alternatives=alternatives,
            reasoning=explain_choice(best, req),
            score=best.total,
        )

        info(
            LogRecord(
                event=LogEvent.MODEL_SELECTION.value,
                message=f"Selected model '{best.model.id}' for {req.task_type.value}",
                data={
                    "model_id": best.model.id,
                    "score": best.total,
                    "alternatives": [m.id for m in alternatives],
                    "urgency": req.urgency.value,
                    "quality": req.quality.value,
                },
            )
        )
        debug(
            LogRecord(
                event=LogEvent.MODEL_SELECTION.value,
                message="Model score breakdown",
                data={s.model.id: s.breakdown for s in ranked},
            )
        )
        return recommendation
