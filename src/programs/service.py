"""Program service — loads a consistent history snapshot and calls the engines.

The eligibility and recommendation engines are pure; this module is where
DB reads, the current time and environment settings come together.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, settings
from src.eligibility import check_program_eligibility
from src.models.enums import ProgramStatus
from src.programs.queries import (
    create_pending_instance,
    get_active_program,
    get_catalog,
    get_current_instance,
    get_program_history,
    get_template_by_slug,
    get_user,
)
from src.recommendations import (
    ProgramRoles,
    RecommendationConfig,
    get_paywall_recommendations,
    recommend_programs,
)
from src.schemas.programs import (
    EligibilityContext,
    EligibilityReason,
    EligibilityResult,
    ProgramInstance,
    ProgramRecommendation,
    ProgramTemplate,
    RecommendationContext,
    UserSnapshot,
)

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────


class ProgramServiceError(Exception):
    """Base class for service-level failures (not business-rule outcomes)."""


class ProgramNotFoundError(ProgramServiceError):
    def __init__(self, slug: str) -> None:
        super().__init__(f"Program not found: {slug}")
        self.slug = slug


class UserNotFoundError(ProgramServiceError):
    def __init__(self, user_id: uuid.UUID) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class NotEligibleError(ProgramServiceError):
    """Raised only when the caller tries to *act* on an ineligible program."""

    def __init__(self, slug: str, reasons: tuple[EligibilityReason, ...]) -> None:
        super().__init__(f"Not eligible for {slug}: {', '.join(r.value for r in reasons)}")
        self.slug = slug
        self.reasons = reasons


# ── Snapshot ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProgramSnapshot:
    """A user's history as of one read."""

    user: UserSnapshot
    history: tuple[ProgramInstance, ...] = ()
    active_program: ProgramInstance | None = None


async def load_snapshot(db: AsyncSession, user_id: uuid.UUID) -> ProgramSnapshot | None:
    """Read user, full history and active enrollment in the same session."""
    user = await get_user(db, user_id)
    if user is None:
        return None
    history = await get_program_history(db, user_id)
    active = await get_active_program(db, user_id)
    return ProgramSnapshot(user=user, history=tuple(history), active_program=active)


def days_since_last_program(history: Sequence[ProgramInstance], now: datetime) -> int | None:
    """Whole days since the most recent completion, or None if nothing completed."""
    completed_at = [
        p.completed_at
        for p in history
        if p.status == ProgramStatus.COMPLETED and p.completed_at is not None
    ]
    if not completed_at:
        return None
    return max(0, (now - max(completed_at)).days)


def recommendation_config_from_settings(cfg: Settings | None = None) -> RecommendationConfig:
    """Build the ranker config from environment settings."""
    p = (cfg or settings).programs
    return RecommendationConfig(
        max_recommendations=p.max_recommendations,
        include_non_public=p.include_non_public,
        boost_premium_for_good_sleep=p.boost_premium_for_good_sleep,
        roles=ProgramRoles(
            flagship_slug=p.flagship_slug,
            entry_level_slug=p.entry_level_slug,
            premium_slug=p.premium_slug,
            repeat_slug=p.repeat_slug,
        ),
    )


async def _ranking_catalog(db: AsyncSession) -> list[ProgramTemplate]:
    """Active catalog handed to the ranker; hidden entries only when configured."""
    return await get_catalog(db, public_only=not settings.programs.include_non_public)


def _recommendation_context(
    snapshot: ProgramSnapshot,
    catalog: list[ProgramTemplate],
    now: datetime,
    sleep_score: float | None,
    has_coach_recommendation: bool,
) -> RecommendationContext:
    return RecommendationContext(
        user=snapshot.user,
        templates=tuple(catalog),
        completed_programs=snapshot.history,
        active_program=snapshot.active_program,
        now=now,
        sleep_score=sleep_score,
        days_since_last_program=days_since_last_program(snapshot.history, now),
        has_coach_recommendation=has_coach_recommendation,
    )


# ── Operations ───────────────────────────────────────────────────────


async def list_programs_with_recommendations(
    db: AsyncSession,
    user_id: uuid.UUID | None,
    *,
    now: datetime,
    sleep_score: float | None = None,
    has_coach_recommendation: bool = False,
) -> tuple[list[ProgramTemplate], list[ProgramRecommendation] | None]:
    """Public catalog plus, for a known user, ranked recommendations.

    With PROGRAM_INCLUDE_NON_PUBLIC the ranker also sees hidden entries
    (repeat and coach-only programs); the listing itself stays public.
    """
    catalog = await _ranking_catalog(db)
    programs = [t for t in catalog if t.is_public]
    if user_id is None:
        return programs, None

    snapshot = await load_snapshot(db, user_id)
    if snapshot is None:
        logger.warning("Recommendations skipped: unknown user %s", user_id)
        return programs, None

    ctx = _recommendation_context(snapshot, catalog, now, sleep_score, has_coach_recommendation)
    recommendations = recommend_programs(ctx, recommendation_config_from_settings())
    logger.debug(
        "Recommended %s for user %s",
        [r.template_slug for r in recommendations],
        user_id,
    )
    return programs, recommendations


async def get_paywall_options(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    now: datetime,
    sleep_score: float,
) -> list[ProgramRecommendation]:
    """Short recommendation list shown on the paywall after a sleep check."""
    snapshot = await load_snapshot(db, user_id)
    if snapshot is None:
        raise UserNotFoundError(user_id)
    catalog = await _ranking_catalog(db)
    ctx = _recommendation_context(snapshot, catalog, now, sleep_score, False)
    return get_paywall_recommendations(
        ctx,
        recommendation_config_from_settings(),
        max_recommendations=settings.programs.paywall_max_recommendations,
    )


async def get_current_program(db: AsyncSession, user_id: uuid.UUID) -> ProgramInstance | None:
    """The running or awaiting-payment enrollment, if the user has one."""
    return await get_current_instance(db, user_id)


async def get_program_with_eligibility(
    db: AsyncSession,
    slug: str,
    user_id: uuid.UUID | None,
    *,
    now: datetime,
) -> tuple[ProgramTemplate, EligibilityResult | None]:
    """A catalog entry, plus the caller's eligibility when identified."""
    template = await get_template_by_slug(db, slug)
    if template is None:
        raise ProgramNotFoundError(slug)
    if user_id is None:
        return template, None

    snapshot = await load_snapshot(db, user_id)
    if snapshot is None:
        return template, None

    result = check_program_eligibility(EligibilityContext(
        user=snapshot.user,
        template=template,
        completed_programs=snapshot.history,
        active_program=snapshot.active_program,
        now=now,
    ))
    return template, result


async def start_program(
    db: AsyncSession,
    user_id: uuid.UUID,
    slug: str | None,
    *,
    now: datetime,
) -> ProgramInstance:
    """Create a PENDING_PAYMENT enrollment after the eligibility gate."""
    slug = slug or settings.programs.default_program_slug

    template = await get_template_by_slug(db, slug)
    if template is None or not template.is_active:
        raise ProgramNotFoundError(slug)

    snapshot = await load_snapshot(db, user_id)
    if snapshot is None:
        raise UserNotFoundError(user_id)

    result = check_program_eligibility(EligibilityContext(
        user=snapshot.user,
        template=template,
        completed_programs=snapshot.history,
        active_program=snapshot.active_program,
        now=now,
    ))
    if not result.eligible:
        logger.info(
            "User %s not eligible for %s: %s",
            user_id,
            slug,
            [r.value for r in result.reasons],
        )
        raise NotEligibleError(slug, result.reasons)

    return await create_pending_instance(db, user_id, template.id)
