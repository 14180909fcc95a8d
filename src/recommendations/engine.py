"""Recommendation ranker — scores and orders the programs a user may enroll in.

Pure Python. Ineligible programs are pruned with the eligibility engine
(same rules, no duplicated logic), survivors get an additive score from
ScoringWeights, then are sorted, tiered and capped.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.eligibility.engine import check_program_eligibility
from src.models.enums import ProgramStatus, TargetAudience
from src.recommendations.weights import DEFAULT_CONFIG, RecommendationConfig
from src.schemas.programs import (
    EligibilityContext,
    PriorityTier,
    ProgramRecommendation,
    ProgramTemplate,
    RecommendationContext,
    RecommendationReason,
)


@dataclass(frozen=True)
class _UserStanding:
    """Facts about the user's history shared by every template's score."""

    is_new_user: bool
    has_completed_flagship: bool
    cheapest_price: int | None


def _standing(ctx: RecommendationContext, config: RecommendationConfig) -> _UserStanding:
    completed = [p for p in ctx.completed_programs if p.status == ProgramStatus.COMPLETED]
    flagship = config.roles.flagship_slug
    # Budget positioning looks at the full catalog, not just eligible survivors
    prices = [t.price_euro_cents for t in ctx.templates]
    return _UserStanding(
        is_new_user=not completed,
        has_completed_flagship=any(p.template.slug == flagship for p in completed),
        cheapest_price=min(prices) if prices else None,
    )


def _is_candidate(ctx: RecommendationContext, template: ProgramTemplate, config: RecommendationConfig) -> bool:
    if not template.is_active:
        return False
    if not template.is_public and not config.include_non_public:
        return False
    eligibility = check_program_eligibility(EligibilityContext(
        user=ctx.user,
        template=template,
        completed_programs=ctx.completed_programs,
        active_program=ctx.active_program,
        has_coach_recommendation=ctx.has_coach_recommendation,
        now=ctx.now,
    ))
    return eligibility.eligible


def _score_template(
    ctx: RecommendationContext,
    template: ProgramTemplate,
    standing: _UserStanding,
    config: RecommendationConfig,
) -> tuple[int, RecommendationReason]:
    """Additive score plus the reason of the last adjustment that set one."""
    w = config.weights
    roles = config.roles
    slug = template.slug

    score = w.base_score
    reason = RecommendationReason.DEFAULT

    # User status
    if standing.is_new_user:
        if config.boost_new_user_programs:
            if slug == roles.entry_level_slug:
                score += w.new_user_kickstart_boost
                reason = RecommendationReason.KICKSTART_NEW_USER
            elif slug == roles.flagship_slug:
                score += w.new_user_full_program_boost
                reason = RecommendationReason.RESET_NEW_USER
    elif standing.has_completed_flagship:
        if slug == roles.repeat_slug:
            score += w.returning_user_repeat_boost
            reason = RecommendationReason.REPEAT_RETURNING
        elif slug == roles.premium_slug:
            score += w.returning_user_premium_boost
            reason = RecommendationReason.DEEP_AFTER_RESET

    # Sleep score
    sleep = ctx.sleep_score
    if sleep is not None:
        if sleep > w.poor_sleep_above:
            if slug == roles.flagship_slug:
                score += w.poor_sleep_full_program
                reason = RecommendationReason.RESET_POOR_SLEEP
        elif sleep >= w.good_sleep_below:
            if slug == roles.entry_level_slug:
                score += w.moderate_sleep_kickstart
                reason = RecommendationReason.KICKSTART_MODERATE
        elif config.boost_premium_for_good_sleep and slug == roles.premium_slug:
            score += w.good_sleep_premium
            reason = RecommendationReason.DEEP_OPTIMIZE

    # Time since last program
    days = ctx.days_since_last_program
    if days is not None and not standing.is_new_user:
        if days < w.recent_days_below:
            if not template.is_repeat_program:
                score += w.recent_completion_penalty
        elif days > w.long_gap_days_above:
            score += w.long_gap_boost
            if slug == roles.repeat_slug:
                reason = RecommendationReason.REPEAT_AFTER_GAP

    # Coach recommendation
    if ctx.has_coach_recommendation and template.target_audience == TargetAudience.COACH_RECOMMENDED:
        score += w.coach_recommended_boost
        reason = RecommendationReason.COACH_RECOMMENDED

    # Budget option
    if standing.cheapest_price is not None and template.price_euro_cents == standing.cheapest_price:
        score += w.budget_option_boost

    score = max(w.min_score, min(w.max_score, score))
    return score, reason


def _tier_for_rank(index: int) -> PriorityTier:
    if index == 0:
        return PriorityTier.PRIMARY
    if index == 1:
        return PriorityTier.SECONDARY
    return PriorityTier.ALTERNATIVE


def recommend_programs(
    ctx: RecommendationContext,
    config: RecommendationConfig | None = None,
) -> list[ProgramRecommendation]:
    """Rank the eligible catalog for one user.

    Returns at most `config.max_recommendations` entries, best first, with
    exactly one PRIMARY when the list is non-empty. An empty catalog, a
    fully ineligible catalog or a running ACTIVE enrollment yield [].
    """
    config = config or DEFAULT_CONFIG
    standing = _standing(ctx, config)

    scored: list[tuple[str, int, RecommendationReason]] = []
    for template in ctx.templates:
        if not _is_candidate(ctx, template, config):
            continue
        score, reason = _score_template(ctx, template, standing, config)
        scored.append((template.slug, score, reason))

    # sorted() is stable: equal scores keep catalog order
    scored = sorted(scored, key=lambda item: item[1], reverse=True)

    return [
        ProgramRecommendation(
            template_slug=slug,
            score=score,
            reason_key=reason,
            priority=_tier_for_rank(index),
        )
        for index, (slug, score, reason) in enumerate(scored[: config.max_recommendations])
    ]


def get_best_recommendation(
    ctx: RecommendationContext,
    config: RecommendationConfig | None = None,
) -> ProgramRecommendation | None:
    """The single top recommendation, or None."""
    config = (config or DEFAULT_CONFIG).model_copy(update={"max_recommendations": 1})
    recommendations = recommend_programs(ctx, config)
    return recommendations[0] if recommendations else None


def get_paywall_recommendations(
    ctx: RecommendationContext,
    config: RecommendationConfig | None = None,
    max_recommendations: int = 2,
) -> list[ProgramRecommendation]:
    """Up to two options for the paywall. A sleep score is mandatory here."""
    if ctx.sleep_score is None:
        msg = "Paywall recommendations require a sleep score"
        raise ValueError(msg)
    config = (config or DEFAULT_CONFIG).model_copy(
        update={"max_recommendations": max_recommendations, "boost_new_user_programs": True},
    )
    return recommend_programs(ctx, config)
