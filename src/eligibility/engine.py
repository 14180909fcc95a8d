"""Eligibility engine — evaluates a program template against a user's history.

Pure Python orchestrator. No DB access, no clock reads, no logging.
The service layer loads the history snapshot and decides what to do with
the result.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from src.eligibility.rules import RULE_CHECKS
from src.schemas.programs import (
    EligibilityContext,
    EligibilityReason,
    EligibilityResult,
    ProgramInstance,
    ProgramTemplate,
    UserSnapshot,
)


def check_program_eligibility(ctx: EligibilityContext) -> EligibilityResult:
    """Run every rule in order and collect all violations.

    Never short-circuits: a template failing several rules reports all of
    them. Not being eligible is a normal result, not an exception.
    """
    reasons: list[EligibilityReason] = []

    for _rule_name, check_fn in RULE_CHECKS.items():
        reason = check_fn(ctx)
        if reason is not None:
            reasons.append(reason)

    return EligibilityResult(eligible=not reasons, reasons=tuple(reasons))


def _contexts(
    user: UserSnapshot,
    templates: Iterable[ProgramTemplate],
    completed_programs: Iterable[ProgramInstance],
    active_program: ProgramInstance | None,
    now: datetime,
    has_coach_recommendation: bool,
) -> Iterable[EligibilityContext]:
    history = tuple(completed_programs)
    for template in templates:
        yield EligibilityContext(
            user=user,
            template=template,
            completed_programs=history,
            active_program=active_program,
            has_coach_recommendation=has_coach_recommendation,
            now=now,
        )


def check_multiple_program_eligibility(
    user: UserSnapshot,
    templates: Iterable[ProgramTemplate],
    completed_programs: Iterable[ProgramInstance],
    active_program: ProgramInstance | None,
    *,
    now: datetime,
    has_coach_recommendation: bool = False,
) -> dict[str, EligibilityResult]:
    """Evaluate a whole catalog for one user, keyed by template slug."""
    return {
        ctx.template.slug: check_program_eligibility(ctx)
        for ctx in _contexts(user, templates, completed_programs, active_program, now, has_coach_recommendation)
    }


def filter_eligible_programs(
    user: UserSnapshot,
    templates: Iterable[ProgramTemplate],
    completed_programs: Iterable[ProgramInstance],
    active_program: ProgramInstance | None,
    *,
    now: datetime,
    has_coach_recommendation: bool = False,
) -> list[ProgramTemplate]:
    """Only the templates the user may enroll in, catalog order preserved."""
    return [
        ctx.template
        for ctx in _contexts(user, templates, completed_programs, active_program, now, has_coach_recommendation)
        if check_program_eligibility(ctx).eligible
    ]
