"""Per-rule eligibility checks.

Each function takes an EligibilityContext and returns the violation code it
is responsible for, or None when the rule passes. Pure and deterministic —
`now` always comes from the context, never from the clock.
"""

from __future__ import annotations

from collections.abc import Callable

from src.models.enums import ProgramStatus, TargetAudience
from src.schemas.programs import EligibilityContext, EligibilityReason, ProgramInstance

Rule = Callable[[EligibilityContext], EligibilityReason | None]


def _completed(programs: tuple[ProgramInstance, ...]) -> list[ProgramInstance]:
    """History entries with status COMPLETED."""
    return [p for p in programs if p.status == ProgramStatus.COMPLETED]


def _has_completed_slug(programs: tuple[ProgramInstance, ...], slug: str) -> bool:
    return any(p.template.slug == slug for p in _completed(programs))


# ── 1. Program status ─────────────────────────────────────────────────────


def check_program_active(ctx: EligibilityContext) -> EligibilityReason | None:
    """Inactive catalog entries accept nobody."""
    if not ctx.template.is_active:
        return EligibilityReason.PROGRAM_INACTIVE
    return None


# ── 2. Active enrollment ──────────────────────────────────────────────────


def check_no_active_program(ctx: EligibilityContext) -> EligibilityReason | None:
    """One running program at a time.

    PENDING_PAYMENT does not count, so an abandoned checkout never locks
    the user out.
    """
    active = ctx.active_program
    if active is not None and active.status == ProgramStatus.ACTIVE:
        return EligibilityReason.ACTIVE_PROGRAM_EXISTS
    return None


# ── 3. Repeat programs ────────────────────────────────────────────────────


def check_repeat_has_previous(ctx: EligibilityContext) -> EligibilityReason | None:
    """A repeat program needs at least one completed program of any kind."""
    if ctx.template.is_repeat_program and not _completed(ctx.completed_programs):
        return EligibilityReason.REPEAT_PROGRAM_REQUIRES_PREVIOUS
    return None


# ── 4. Prerequisite ───────────────────────────────────────────────────────


def check_prerequisite(ctx: EligibilityContext) -> EligibilityReason | None:
    """The prerequisite slug must appear among COMPLETED instances."""
    prerequisite = ctx.template.prerequisite_slug
    if prerequisite and not _has_completed_slug(ctx.completed_programs, prerequisite):
        return EligibilityReason.PREREQUISITE_NOT_COMPLETED
    return None


# ── 5. Target audience ────────────────────────────────────────────────────


def _new_users_only(ctx: EligibilityContext, completed_count: int) -> EligibilityReason | None:
    if completed_count > 0:
        return EligibilityReason.PROGRAM_FOR_NEW_USERS_ONLY
    return None


def _returning_users_only(ctx: EligibilityContext, completed_count: int) -> EligibilityReason | None:
    if completed_count == 0:
        return EligibilityReason.PROGRAM_FOR_RETURNING_USERS_ONLY
    return None


def _coach_recommended_only(ctx: EligibilityContext, completed_count: int) -> EligibilityReason | None:
    if not ctx.has_coach_recommendation:
        return EligibilityReason.COACH_RECOMMENDATION_REQUIRED
    return None


def _open_to_all(ctx: EligibilityContext, completed_count: int) -> EligibilityReason | None:
    return None


# One entry per TargetAudience member; tests assert the mapping is exhaustive.
AUDIENCE_CHECKS: dict[TargetAudience, Callable[[EligibilityContext, int], EligibilityReason | None]] = {
    TargetAudience.ALL: _open_to_all,
    TargetAudience.NEW_USERS: _new_users_only,
    TargetAudience.RETURNING_USERS: _returning_users_only,
    TargetAudience.COACH_RECOMMENDED: _coach_recommended_only,
}


def check_target_audience(ctx: EligibilityContext) -> EligibilityReason | None:
    """Audience targeting, based on the number of COMPLETED instances."""
    completed_count = len(_completed(ctx.completed_programs))
    return AUDIENCE_CHECKS[ctx.template.target_audience](ctx, completed_count)


def check_coach_only_visibility(ctx: EligibilityContext) -> EligibilityReason | None:
    """Non-public coach programs are hidden without a recommendation.

    Fires together with coach_recommendation_required; both are reported.
    """
    template = ctx.template
    if (
        template.target_audience == TargetAudience.COACH_RECOMMENDED
        and not template.is_public
        and not ctx.has_coach_recommendation
    ):
        return EligibilityReason.PROGRAM_NOT_PUBLIC
    return None


# ── 6. Availability window ────────────────────────────────────────────────


def check_available_from(ctx: EligibilityContext) -> EligibilityReason | None:
    """Window start is inclusive."""
    start = ctx.template.available_from
    if start is not None and ctx.now < start:
        return EligibilityReason.PROGRAM_NOT_YET_AVAILABLE
    return None


def check_available_until(ctx: EligibilityContext) -> EligibilityReason | None:
    """Window end is inclusive."""
    end = ctx.template.available_until
    if end is not None and ctx.now > end:
        return EligibilityReason.PROGRAM_NO_LONGER_AVAILABLE
    return None


# ── 7. Already completed ──────────────────────────────────────────────────


def check_not_already_completed(ctx: EligibilityContext) -> EligibilityReason | None:
    """Non-repeat programs can be completed once. Repeat programs have no limit."""
    template = ctx.template
    if not template.is_repeat_program and _has_completed_slug(ctx.completed_programs, template.slug):
        return EligibilityReason.ALREADY_COMPLETED_THIS_PROGRAM
    return None


# ── Rule registry ─────────────────────────────────────────────────────────

# Evaluation order is the order violations are reported in.
RULE_CHECKS: dict[str, Rule] = {
    "program_active": check_program_active,
    "no_active_program": check_no_active_program,
    "repeat_has_previous": check_repeat_has_previous,
    "prerequisite": check_prerequisite,
    "target_audience": check_target_audience,
    "coach_only_visibility": check_coach_only_visibility,
    "available_from": check_available_from,
    "available_until": check_available_until,
    "not_already_completed": check_not_already_completed,
}
