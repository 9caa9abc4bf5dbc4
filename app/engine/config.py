"""
Tunable parameters for the rating and selection engine.

Every engine function receives one of these models as an explicit argument.
The service layer assembles an ``EngineConfig`` snapshot from the defaults
below, the ``ENGINE_OVERRIDES`` environment setting and the runtime overrides
stored in the database, and validates it once at load time.
"""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from app.engine.exceptions import ConfigurationError

# (upper bound of comparisons / comparisons-ago, multiplier)
Tier = Tuple[int, float]


def _check_tiers(name: str, tiers: List[Tier]) -> None:
    previous = -1
    for bound, multiplier in tiers:
        if bound < 0 or multiplier < 0:
            raise ValueError(f"{name} entries must be non-negative")
        if bound <= previous:
            raise ValueError(f"{name} bounds must be strictly increasing")
        previous = bound


class RatingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_k_factor: float = Field(32.0, gt=0)
    high_confidence_k: float = Field(16.0, gt=0)
    medium_confidence_k: float = Field(24.0, gt=0)
    low_confidence_k: float = Field(32.0, gt=0)
    high_confidence_threshold: float = Field(0.8, ge=0, le=1)
    medium_confidence_threshold: float = Field(0.33, ge=0, le=1)
    dynamic_k_enabled: bool = True
    upset_threshold: float = Field(200.0, ge=0)

    @model_validator(mode="after")
    def check_thresholds(self) -> "RatingConfig":
        if self.medium_confidence_threshold > self.high_confidence_threshold:
            raise ValueError(
                "medium_confidence_threshold must not exceed high_confidence_threshold"
            )
        return self


class ScoringConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min_comparisons_for_confidence: int = Field(30, gt=0)
    comparison_saturation_point: int = Field(50, gt=0)
    recency_decay_days: float = Field(30.0, gt=0)
    comparison_factor_weight: float = Field(0.40, ge=0, le=1)
    win_rate_factor_weight: float = Field(0.25, ge=0, le=1)
    recency_factor_weight: float = Field(0.20, ge=0, le=1)
    engagement_factor_weight: float = Field(0.15, ge=0, le=1)

    @model_validator(mode="after")
    def check_weights(self) -> "ScoringConfig":
        total = (
            self.comparison_factor_weight
            + self.win_rate_factor_weight
            + self.recency_factor_weight
            + self.engagement_factor_weight
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"familiarity factor weights must sum to 1.0 (got {total})")
        return self


class SelectionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    candidate_pool_size: int = Field(100, ge=2)
    # How many of the voter's most recent comparisons are read per request
    recency_lookback: int = Field(30, ge=0)
    # Anything above the last bound gets a weight of 1.0
    vote_count_tiers: List[Tier] = [(0, 1000.0), (5, 100.0), (20, 10.0)]
    recency_tiers: List[Tier] = [(5, 0.1), (10, 0.3), (20, 0.5), (30, 0.7)]
    diversity_filtering_enabled: bool = True
    diversity_tiers: List[Tier] = [(5, 0.2), (10, 0.4), (15, 0.6), (20, 0.8)]
    diversity_penalty_strength: float = Field(0.8, ge=0, le=1)
    diversity_lookback_count: int = Field(20, ge=0)

    @model_validator(mode="after")
    def check_tiers(self) -> "SelectionConfig":
        _check_tiers("vote_count_tiers", self.vote_count_tiers)
        _check_tiers("recency_tiers", self.recency_tiers)
        _check_tiers("diversity_tiers", self.diversity_tiers)
        for _, multiplier in self.diversity_tiers:
            if multiplier > 1:
                raise ValueError("diversity_tiers multipliers must be <= 1.0")
        return self


class EngineConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: RatingConfig = Field(default_factory=RatingConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)

    def flatten(self) -> Dict[str, Any]:
        """Return all tunables as a single ``{setting_key: value}`` mapping."""
        flat: Dict[str, Any] = {}
        for section in SECTIONS:
            flat.update(getattr(self, section).model_dump())
        return flat

    @classmethod
    def from_overrides(
        cls, overrides: Optional[Dict[str, Any]] = None
    ) -> "EngineConfig":
        """
        Build a validated snapshot from flat ``{setting_key: value}`` overrides.

        Unknown keys and out-of-range values raise ``ConfigurationError``.
        """
        sections: Dict[str, Dict[str, Any]] = {section: {} for section in SECTIONS}
        for key, value in (overrides or {}).items():
            section = SETTING_SECTIONS.get(key)
            if section is None:
                raise ConfigurationError(f"Unknown engine setting: {key}")
            sections[section][key] = value
        try:
            return cls(**sections)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc


SECTIONS = ("rating", "scoring", "selection")

# setting key -> section name
SETTING_SECTIONS: Dict[str, str] = {
    **{key: "rating" for key in RatingConfig.model_fields},
    **{key: "scoring" for key in ScoringConfig.model_fields},
    **{key: "selection" for key in SelectionConfig.model_fields},
}
