"""Tests for the recommendation ranker.

Scores are checked exactly where the scenario pins them down; the default
weights are base 50, so e.g. a new user's kickstart scores 50 + 40 + 10
(cheapest in catalog) = 100.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.eligibility import check_multiple_program_eligibility
from src.recommendations import (
    PriorityTier,
    ProgramRoles,
    RecommendationConfig,
    RecommendationContext,
    RecommendationReason,
    ScoringWeights,
    get_best_recommendation,
    get_paywall_recommendations,
    recommend_programs,
)
from tests.factories import (
    NOW,
    active_instance,
    all_templates,
    coach_recommended_only,
    completed_sleep_reset,
    deep_reset_28,
    kickstart_7,
    make_template,
    new_user,
    pending_payment_instance,
    repeat_reset_10,
    returning_user,
    sleep_reset_14,
)

Reason = RecommendationReason

public_repeat_reset = repeat_reset_10.model_copy(update={"is_public": True})
returning_catalog = (sleep_reset_14, kickstart_7, deep_reset_28, public_repeat_reset)


def _ctx(**overrides):
    data = {
        "user": new_user,
        "templates": all_templates,
        "completed_programs": (),
        "active_program": None,
        "now": NOW,
    }
    data.update(overrides)
    return RecommendationContext(**data)


def _returning_ctx(**overrides):
    data = {
        "user": returning_user,
        "templates": returning_catalog,
        "completed_programs": (completed_sleep_reset,),
    }
    data.update(overrides)
    return _ctx(**data)


def _by_slug(recommendations):
    return {r.template_slug: r for r in recommendations}


# ── New users ────────────────────────────────────────────────────────


class TestNewUser:
    @pytest.fixture()
    def recommendations(self):
        return recommend_programs(_ctx())

    def test_kickstart_is_primary(self, recommendations):
        top = recommendations[0]
        assert top.template_slug == "sleep-kickstart-7"
        assert top.priority == PriorityTier.PRIMARY
        assert top.reason_key == Reason.KICKSTART_NEW_USER
        assert top.score == 100

    def test_flagship_is_secondary(self, recommendations):
        second = recommendations[1]
        assert second.template_slug == "sleep-reset-14"
        assert second.priority == PriorityTier.SECONDARY
        assert second.reason_key == Reason.RESET_NEW_USER
        assert second.score == 80

    def test_premium_gets_default_reason(self, recommendations):
        deep = _by_slug(recommendations)["deep-reset-28"]
        assert deep.score == 50
        assert deep.reason_key == Reason.DEFAULT
        assert deep.priority == PriorityTier.ALTERNATIVE

    def test_repeat_excluded(self, recommendations):
        assert "repeat-reset-10" not in _by_slug(recommendations)

    def test_public_repeat_excluded_as_ineligible(self):
        recommendations = recommend_programs(
            _ctx(templates=(kickstart_7, sleep_reset_14, public_repeat_reset)),
        )
        assert [r.template_slug for r in recommendations] == ["sleep-kickstart-7", "sleep-reset-14"]
        assert [r.priority for r in recommendations] == [PriorityTier.PRIMARY, PriorityTier.SECONDARY]

    def test_default_cap(self, recommendations):
        assert len(recommendations) <= 3

    def test_recency_ignored_for_new_users(self):
        flagship = _by_slug(recommend_programs(_ctx(days_since_last_program=5)))["sleep-reset-14"]
        assert flagship.score == 80

    def test_new_user_boost_can_be_disabled(self):
        recommendations = recommend_programs(_ctx(), RecommendationConfig(boost_new_user_programs=False))
        scores = {r.template_slug: r.score for r in recommendations}
        assert scores == {"sleep-kickstart-7": 60, "sleep-reset-14": 50, "deep-reset-28": 50}
        assert all(r.reason_key == Reason.DEFAULT for r in recommendations)

    def test_pending_payment_does_not_suppress(self):
        assert recommend_programs(_ctx(active_program=pending_payment_instance))


class TestSleepScore:
    def test_poor_sleep_flagship_primary(self):
        recommendations = recommend_programs(_ctx(sleep_score=85))
        top = recommendations[0]
        assert top.template_slug == "sleep-reset-14"
        assert top.score > 80
        assert top.reason_key == Reason.RESET_POOR_SLEEP

    def test_poor_sleep_boundary_is_exclusive(self):
        flagship = _by_slug(recommend_programs(_ctx(sleep_score=60)))["sleep-reset-14"]
        assert flagship.reason_key == Reason.RESET_NEW_USER

    def test_fractional_score_just_above_poor_threshold(self):
        flagship = _by_slug(recommend_programs(_ctx(sleep_score=60.5)))["sleep-reset-14"]
        assert flagship.reason_key == Reason.RESET_POOR_SLEEP
        assert flagship.score == 100

    def test_fractional_score_just_below_poor_threshold(self):
        by_slug = _by_slug(recommend_programs(_ctx(sleep_score=59.9)))
        assert by_slug["sleep-reset-14"].reason_key == Reason.RESET_NEW_USER
        assert by_slug["sleep-kickstart-7"].reason_key == Reason.KICKSTART_MODERATE

    def test_fractional_score_just_below_good_threshold(self):
        config = RecommendationConfig(boost_premium_for_good_sleep=True)
        deep = _by_slug(recommend_programs(_returning_ctx(sleep_score=29.5), config))["deep-reset-28"]
        assert deep.reason_key == Reason.DEEP_OPTIMIZE

    def test_fractional_score_ranks(self):
        recommendations = recommend_programs(_ctx(sleep_score=72.5))
        assert recommendations[0].template_slug == "sleep-reset-14"
        assert recommendations[0].reason_key == Reason.RESET_POOR_SLEEP

    @pytest.mark.parametrize("sleep_score", [30, 30.0, 45, 60, 60.0])
    def test_moderate_sleep_kickstart(self, sleep_score):
        kickstart = _by_slug(recommend_programs(_ctx(sleep_score=sleep_score)))["sleep-kickstart-7"]
        assert kickstart.score > 60
        assert kickstart.reason_key == Reason.KICKSTART_MODERATE

    def test_good_sleep_premium_when_enabled(self):
        config = RecommendationConfig(boost_premium_for_good_sleep=True)
        deep = _by_slug(recommend_programs(_returning_ctx(sleep_score=20), config))["deep-reset-28"]
        assert deep.score == 90
        assert deep.reason_key == Reason.DEEP_OPTIMIZE

    def test_good_sleep_premium_off_by_default(self):
        deep = _by_slug(recommend_programs(_returning_ctx(sleep_score=20)))["deep-reset-28"]
        assert deep.score == 75
        assert deep.reason_key == Reason.DEEP_AFTER_RESET

    def test_zero_is_a_signal(self):
        config = RecommendationConfig(boost_premium_for_good_sleep=True)
        deep = _by_slug(recommend_programs(_returning_ctx(sleep_score=0), config))["deep-reset-28"]
        assert deep.reason_key == Reason.DEEP_OPTIMIZE

    def test_scores_stay_in_range_for_worst_sleep(self):
        for rec in recommend_programs(_ctx(sleep_score=100), RecommendationConfig(max_recommendations=10)):
            assert 0 <= rec.score <= 100

    @pytest.mark.parametrize("sleep_score", [-1, 101])
    def test_out_of_range_rejected_at_boundary(self, sleep_score):
        with pytest.raises(ValidationError):
            _ctx(sleep_score=sleep_score)

    def test_negative_days_rejected(self):
        with pytest.raises(ValidationError):
            _ctx(days_since_last_program=-3)


# ── Returning users ──────────────────────────────────────────────────


class TestReturningUser:
    @pytest.fixture()
    def recommendations(self):
        return recommend_programs(_returning_ctx())

    def test_repeat_recommended(self, recommendations):
        repeat = _by_slug(recommendations)["repeat-reset-10"]
        assert repeat.score == 85
        assert repeat.reason_key == Reason.REPEAT_RETURNING
        assert repeat.priority == PriorityTier.PRIMARY

    def test_premium_after_flagship(self, recommendations):
        deep = _by_slug(recommendations)["deep-reset-28"]
        assert deep.score == 75
        assert deep.reason_key == Reason.DEEP_AFTER_RESET

    def test_kickstart_and_flagship_excluded(self, recommendations):
        slugs = _by_slug(recommendations)
        assert "sleep-kickstart-7" not in slugs
        assert "sleep-reset-14" not in slugs

    def test_non_public_repeat_hidden_by_default(self):
        recommendations = recommend_programs(_returning_ctx(templates=all_templates))
        assert "repeat-reset-10" not in _by_slug(recommendations)

    def test_non_public_repeat_with_include_non_public(self):
        config = RecommendationConfig(include_non_public=True)
        recommendations = recommend_programs(_returning_ctx(templates=all_templates), config)
        assert _by_slug(recommendations)["repeat-reset-10"].reason_key == Reason.REPEAT_RETURNING

    def test_recent_completion_penalty(self):
        scores = _by_slug(recommend_programs(_returning_ctx(days_since_last_program=15)))
        assert scores["deep-reset-28"].score == 55
        # repeat-type programs are not penalized
        assert scores["repeat-reset-10"].score == 85

    def test_mid_gap_no_adjustment(self):
        scores = _by_slug(recommend_programs(_returning_ctx(days_since_last_program=60)))
        assert scores["deep-reset-28"].score == 75

    def test_long_gap_boost(self):
        scores = _by_slug(recommend_programs(_returning_ctx(days_since_last_program=120)))
        assert scores["deep-reset-28"].score == 90
        assert scores["repeat-reset-10"].score == 100
        assert scores["repeat-reset-10"].reason_key == Reason.REPEAT_AFTER_GAP

    def test_score_clamped_at_zero(self):
        config = RecommendationConfig(weights=ScoringWeights(recent_completion_penalty=-200))
        deep = _by_slug(recommend_programs(_returning_ctx(days_since_last_program=1), config))["deep-reset-28"]
        assert deep.score == 0


class TestCoachRecommendation:
    def test_coach_program_boosted(self):
        config = RecommendationConfig(include_non_public=True, max_recommendations=10)
        ctx = _ctx(templates=(*all_templates, coach_recommended_only), has_coach_recommendation=True)
        coach = _by_slug(recommend_programs(ctx, config))["coach-recommended-only"]
        assert coach.score == 80
        assert coach.reason_key == Reason.COACH_RECOMMENDED

    def test_coach_program_needs_recommendation(self):
        config = RecommendationConfig(include_non_public=True, max_recommendations=10)
        ctx = _ctx(templates=(*all_templates, coach_recommended_only))
        assert "coach-recommended-only" not in _by_slug(recommend_programs(ctx, config))


class TestBudgetOption:
    def test_every_cheapest_template_boosted(self):
        catalog = (
            make_template(slug="a", price_euro_cents=1000),
            make_template(slug="b", price_euro_cents=5000),
            make_template(slug="c", price_euro_cents=1000),
        )
        scores = {r.template_slug: r.score for r in recommend_programs(_ctx(templates=catalog))}
        assert scores == {"a": 60, "c": 60, "b": 50}

    def test_cheapest_measured_on_full_catalog(self):
        cheap_inactive = make_template(slug="cheap-inactive", price_euro_cents=100, is_active=False)
        recommendations = recommend_programs(_ctx(templates=(*all_templates, cheap_inactive)))
        assert _by_slug(recommendations)["sleep-kickstart-7"].score == 90


# ── Configuration ────────────────────────────────────────────────────


class TestConfiguration:
    def test_max_recommendations(self):
        assert len(recommend_programs(_ctx(), RecommendationConfig(max_recommendations=1))) == 1

    def test_max_recommendations_must_be_positive(self):
        with pytest.raises(ValidationError):
            RecommendationConfig(max_recommendations=0)

    def test_private_program_excluded_by_default(self):
        private = sleep_reset_14.model_copy(update={"slug": "private-program", "is_public": False})
        recommendations = recommend_programs(_ctx(templates=(*all_templates, private)))
        assert "private-program" not in _by_slug(recommendations)

    def test_private_program_included_when_configured(self):
        private = sleep_reset_14.model_copy(update={"slug": "private-program", "is_public": False})
        config = RecommendationConfig(include_non_public=True, max_recommendations=10)
        recommendations = recommend_programs(_ctx(templates=(*all_templates, private)), config)
        assert "private-program" in _by_slug(recommendations)

    def test_synthetic_roles(self):
        roles = ProgramRoles(
            flagship_slug="full", entry_level_slug="taster", premium_slug="gold", repeat_slug="again",
        )
        catalog = (
            make_template(slug="full", price_euro_cents=900),
            make_template(slug="taster", price_euro_cents=900),
        )
        recommendations = recommend_programs(_ctx(templates=catalog), RecommendationConfig(roles=roles))
        assert recommendations[0].template_slug == "taster"
        assert recommendations[0].score == 100
        assert recommendations[1].reason_key == Reason.RESET_NEW_USER


# ── Ordering & tiers ─────────────────────────────────────────────────


class TestPriorityTiers:
    def test_single_primary(self):
        recommendations = recommend_programs(_ctx())
        assert sum(r.priority == PriorityTier.PRIMARY for r in recommendations) == 1

    def test_tier_sequence(self):
        recommendations = recommend_programs(_ctx(), RecommendationConfig(max_recommendations=5))
        assert [r.priority for r in recommendations] == [
            PriorityTier.PRIMARY,
            PriorityTier.SECONDARY,
            PriorityTier.ALTERNATIVE,
        ]

    def test_ties_keep_catalog_order(self):
        catalog = tuple(make_template(slug=s, price_euro_cents=1000) for s in ("x", "y", "z"))
        recommendations = recommend_programs(_ctx(templates=catalog))
        assert [r.template_slug for r in recommendations] == ["x", "y", "z"]

    def test_deterministic(self):
        ctx = _returning_ctx(sleep_score=40, days_since_last_program=100)
        assert recommend_programs(ctx) == recommend_programs(ctx)


class TestEdgeCases:
    def test_empty_catalog(self):
        assert recommend_programs(_ctx(templates=())) == []

    def test_all_inactive(self):
        inactive = tuple(t.model_copy(update={"is_active": False}) for t in all_templates)
        assert recommend_programs(_ctx(templates=inactive)) == []

    def test_active_enrollment(self):
        assert recommend_programs(_ctx(active_program=active_instance)) == []

    @pytest.mark.parametrize("ctx_kwargs", [
        {},
        {"sleep_score": 90},
        {"user": returning_user, "completed_programs": (completed_sleep_reset,), "days_since_last_program": 200},
        {"has_coach_recommendation": True},
    ])
    def test_never_recommends_ineligible(self, ctx_kwargs):
        ctx = _ctx(templates=(*returning_catalog, coach_recommended_only), **ctx_kwargs)
        config = RecommendationConfig(include_non_public=True, max_recommendations=10)
        eligibility = check_multiple_program_eligibility(
            ctx.user,
            ctx.templates,
            ctx.completed_programs,
            ctx.active_program,
            now=ctx.now,
            has_coach_recommendation=ctx.has_coach_recommendation,
        )
        for rec in recommend_programs(ctx, config):
            assert eligibility[rec.template_slug].eligible is True


# ── Helpers ──────────────────────────────────────────────────────────


class TestBestRecommendation:
    def test_returns_primary(self):
        best = get_best_recommendation(_ctx())
        assert best is not None
        assert best.priority == PriorityTier.PRIMARY
        assert best.template_slug == "sleep-kickstart-7"

    def test_none_for_empty_catalog(self):
        assert get_best_recommendation(_ctx(templates=())) is None


class TestPaywallRecommendations:
    def test_at_most_two(self):
        assert len(get_paywall_recommendations(_ctx(sleep_score=70))) <= 2

    def test_poor_sleep_puts_flagship_first(self):
        recommendations = get_paywall_recommendations(_ctx(sleep_score=80))
        assert recommendations[0].template_slug == "sleep-reset-14"

    def test_requires_sleep_score(self):
        with pytest.raises(ValueError, match="sleep score"):
            get_paywall_recommendations(_ctx())
