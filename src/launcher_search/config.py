"""Centralized configuration for launcher-search using Pydantic Settings."""

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from launcher_search.domain.catalog import FieldTag


DEFAULT_FIELD_WEIGHTS: dict[FieldTag, float] = {
    FieldTag.NAME: 1.0,
    FieldTag.ALIAS: 0.9,
    FieldTag.KEYWORD: 0.8,
    FieldTag.CATEGORY: 0.6,
    FieldTag.DESCRIPTION: 0.5,
    FieldTag.AUTHOR: 0.3,
}


class FuzzyScoring(BaseModel):
    """Bonus and penalty constants for fuzzy subsequence matching.

    Defaults guarantee that an exact, case-sensitive prefix match always
    outranks any other match of the same pattern against another candidate:
    a contiguous step is worth more than any boundary bonus a jump can earn,
    and matching the pattern's case is worth more than a CamelCase hump.
    """

    model_config = ConfigDict(frozen=True)

    base_match_score: float = Field(default=1.0, gt=0)
    consecutive_bonus: float = Field(default=5.0, ge=0)
    word_boundary_bonus: float = Field(default=3.0, ge=0)
    camel_case_bonus: float = Field(default=2.0, ge=0)
    exact_case_bonus: float = Field(default=3.0, ge=0)
    leading_letter_penalty: float = Field(default=1.0, ge=0)
    max_leading_letter_penalty: float = Field(default=3.0, ge=0)

    @model_validator(mode="after")
    def _check_exact_prefix_dominance(self) -> "FuzzyScoring":
        if self.consecutive_bonus <= max(self.word_boundary_bonus, self.camel_case_bonus):
            raise ValueError("consecutive_bonus must exceed both word_boundary_bonus and camel_case_bonus")
        if self.camel_case_bonus > self.word_boundary_bonus:
            raise ValueError("camel_case_bonus must not exceed word_boundary_bonus")
        if self.exact_case_bonus <= self.camel_case_bonus:
            raise ValueError("exact_case_bonus must exceed camel_case_bonus")
        return self


class RankingWeights(BaseModel):
    """Weights combining field scores with extrinsic signals."""

    model_config = ConfigDict(frozen=True)

    field_weights: dict[FieldTag, float] = Field(default_factory=lambda: dict(DEFAULT_FIELD_WEIGHTS))
    usage_weight: float = Field(default=2.0, ge=0)
    recency_weight: float = Field(default=5.0, ge=0)
    recency_half_life_hours: float = Field(default=168.0, gt=0)
    favorite_boost: float = Field(default=10.0, ge=0)

    @model_validator(mode="after")
    def _fill_missing_weights(self) -> "RankingWeights":
        # Partial overrides keep the defaults for tags they do not mention
        missing = {tag: weight for tag, weight in DEFAULT_FIELD_WEIGHTS.items() if tag not in self.field_weights}
        if missing:
            self.field_weights.update(missing)
        return self

    def weight_for(self, tag: FieldTag) -> float:
        return self.field_weights[tag]


class SearchSettings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Nested groups use ``__`` as delimiter, e.g.
    ``LAUNCHER_SEARCH_SCORING__CONSECUTIVE_BONUS=6``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LAUNCHER_SEARCH_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    scoring: FuzzyScoring = Field(default_factory=FuzzyScoring)
    ranking: RankingWeights = Field(default_factory=RankingWeights)

    # Query lifecycle
    debounce_ms: int = Field(default=40, ge=0, description="Quiet period before a typed query is scored")
    cancel_check_interval: int = Field(
        default=64, ge=1, description="Items scored between cooperative cancellation checks"
    )
    parallel_threshold: int = Field(
        default=2048, ge=1, description="Candidate count above which scoring is chunked onto the worker pool"
    )
    max_workers: int = Field(default=4, ge=1, description="Size of the scoring worker pool")
    max_results: int | None = Field(default=None, ge=1, description="Result list cap; None keeps every match")
    min_score: float = Field(
        default=0.0, ge=0, description="Lowest total score a fuzzy match needs to be listed; the empty query is exempt"
    )

    # Result cache
    cache_enabled: bool = Field(default=True, description="Cache committed result lists per index version")
    cache_ttl_seconds: float = Field(default=300.0, gt=0, description="Lifetime of a cached result list")
    max_cache_size: int = Field(default=100, ge=1, description="Maximum number of cached queries")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")


@lru_cache(maxsize=1)
def get_settings() -> SearchSettings:
    """Return the process-wide settings loaded from the environment."""
    return SearchSettings()
