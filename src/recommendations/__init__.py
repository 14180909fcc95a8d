"""Recommendation ranker — scored, tiered program suggestions."""

from src.recommendations.engine import (
    get_best_recommendation,
    get_paywall_recommendations,
    recommend_programs,
)
from src.recommendations.weights import ProgramRoles, RecommendationConfig, ScoringWeights
from src.schemas.programs import (
    PriorityTier,
    ProgramRecommendation,
    RecommendationContext,
    RecommendationReason,
)

__all__ = [
    "recommend_programs",
    "get_best_recommendation",
    "get_paywall_recommendations",
    "ProgramRoles",
    "ScoringWeights",
    "RecommendationConfig",
    "RecommendationContext",
    "ProgramRecommendation",
    "RecommendationReason",
    "PriorityTier",
]
