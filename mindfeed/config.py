from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices, field_validator
from typing import Optional, List, Union, Any

from mindfeed.constants import (
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CANDIDATE_POOL_MULTIPLIER,
    DEFAULT_MAX_ALTERNATIVES,
    DEFAULT_MODEL_SELECTION_TTL_SECONDS,
    DEFAULT_RECOMMENDATION_TTL_SECONDS,
)
from mindfeed.domain.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
        populate_by_name=True,
        protected_namespaces=(),
    )

    app_name: str = "mindfeed"
    app_version: str = "1.0.0"
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))
    log_file_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LOG_FILE_PATH")
    )
    error_log_file_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ERROR_LOG_FILE_PATH")
    )
    log_pretty_console: bool = Field(
        default=False, validation_alias=AliasChoices("LOG_PRETTY_CONSOLE")
    )
    redact_log_fields: Union[List[str], str] = Field(
        default_factory=lambda: ["user_id", "authorization"],
        validation_alias=AliasChoices("REDACT_LOG_FIELDS"),
    )

    # Shared cache
    cache_default_ttl_seconds: float = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        validation_alias=AliasChoices("CACHE_DEFAULT_TTL_SECONDS"),
    )
    cache_max_size: int = Field(
        default=DEFAULT_CACHE_MAX_SIZE, validation_alias=AliasChoices("CACHE_MAX_SIZE")
    )
    cache_single_flight_enabled: bool = Field(
        default=True, validation_alias=AliasChoices("CACHE_SINGLE_FLIGHT_ENABLED")
    )

    # Model selection
    model_catalog_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("MODEL_CATALOG_PATH")
    )
    model_selection_ttl_seconds: float = Field(
        default=DEFAULT_MODEL_SELECTION_TTL_SECONDS,
        validation_alias=AliasChoices("MODEL_SELECTION_TTL_SECONDS"),
    )
    model_selection_max_alternatives: int = Field(
        default=DEFAULT_MAX_ALTERNATIVES,
        validation_alias=AliasChoices("MODEL_SELECTION_MAX_ALTERNATIVES"),
    )

    # Recommendations
    recommendation_ttl_seconds: float = Field(
        default=DEFAULT_RECOMMENDATION_TTL_SECONDS,
        validation_alias=AliasChoices("RECOMMENDATION_TTL_SECONDS"),
    )
    recommendation_pool_multiplier: int = Field(
        default=DEFAULT_CANDIDATE_POOL_MULTIPLIER,
        validation_alias=AliasChoices("RECOMMENDATION_POOL_MULTIPLIER"),
    )

    @field_validator("redact_log_fields")
    @classmethod
    def parse_comma_separated(cls, v: Union[List[str], str]) -> List[str]:
        """Parse comma-separated string values into lists for configuration fields.

        Handles both string inputs (splitting by commas) and already-list inputs.
        Empty strings are converted to empty lists.
        """
        if isinstance(v, str):
            if v.strip() == "":
                return []
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    def __init__(self, **kwargs: Any) -> None:
        """Initialize settings object and validate cache and scoring limits.

        Raises:
            ConfigurationError: If a TTL, size or multiplier is not positive.
        """
        super().__init__(**kwargs)
        self._validate_limits()

    def _validate_limits(self) -> None:
        errors = []

        for name in (
            "cache_default_ttl_seconds",
            "model_selection_ttl_seconds",
            "recommendation_ttl_seconds",
        ):
            if getattr(self, name) <= 0:
                errors.append(f"{name.upper()} must be greater than zero.")

        if self.cache_max_size <= 0:
            errors.append("CACHE_MAX_SIZE must be greater than zero.")

        if self.recommendation_pool_multiplier < 1:
            errors.append("RECOMMENDATION_POOL_MULTIPLIER must be at least 1.")

        if self.model_selection_max_alternatives < 0:
            errors.append("MODEL_SELECTION_MAX_ALTERNATIVES cannot be negative.")

        if errors:
            raise ConfigurationError(
                "Configuration Error:\n" + "\n".join(errors),
                details={"errors": errors},
            )
