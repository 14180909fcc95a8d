"""Scoring weights, catalog roles and ranker configuration.

The ranker never hardcodes slugs: which program is the flagship, the
entry-level kickstart, the premium option or the repeat program is decided
by ProgramRoles, so the same engine works for any catalog.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProgramRoles(BaseModel):
    """Catalog-role designations used only by the scoring heuristics."""

    model_config = ConfigDict(frozen=True)

    flagship_slug: str = "sleep-reset-14"
    entry_level_slug: str = "sleep-kickstart-7"
    premium_slug: str = "deep-reset-28"
    repeat_slug: str = "repeat-reset-10"


class ScoringWeights(BaseModel):
    """Additive score adjustments and the signal thresholds that trigger them."""

    model_config = ConfigDict(frozen=True)

    base_score: int = 50
    new_user_kickstart_boost: int = 40
    new_user_full_program_boost: int = 30
    returning_user_repeat_boost: int = 35
    returning_user_premium_boost: int = 25
    poor_sleep_full_program: int = 45
    moderate_sleep_kickstart: int = 20
    good_sleep_premium: int = 15
    recent_completion_penalty: int = -20
    long_gap_boost: int = 15
    budget_option_boost: int = 10
    coach_recommended_boost: int = 30

    # Sleep score: 0 = great sleep, 100 = very poor sleep
    poor_sleep_above: int = 60
    good_sleep_below: int = 30

    # Days since the last program
    recent_days_below: int = 30
    long_gap_days_above: int = 90

    min_score: int = 0
    max_score: int = 100


class RecommendationConfig(BaseModel):
    """Per-call ranker options. Defaults match the production catalog."""

    model_config = ConfigDict(frozen=True)

    max_recommendations: int = Field(default=3, ge=1)
    include_non_public: bool = False
    boost_new_user_programs: bool = True
    boost_premium_for_good_sleep: bool = False
    roles: ProgramRoles = Field(default_factory=ProgramRoles)
    weights: ScoringWeights = Field(default_factory=ScoringWeights)


DEFAULT_CONFIG = RecommendationConfig()
