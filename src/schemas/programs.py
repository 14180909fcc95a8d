"""Pydantic schemas for the eligibility evaluator and recommendation ranker.

Pure, frozen value records — no DB dependencies. The query layer converts
ORM rows into these before anything is evaluated, and the HTTP layer
serializes the result records straight into response bodies.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import CoachIntensity, ProgramStatus, ReportType, TargetAudience

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EligibilityReason(str, Enum):
    """Stable violation codes, one per eligibility rule."""

    PROGRAM_INACTIVE = "program_inactive"
    ACTIVE_PROGRAM_EXISTS = "active_program_exists"
    REPEAT_PROGRAM_REQUIRES_PREVIOUS = "repeat_program_requires_previous"
    PREREQUISITE_NOT_COMPLETED = "prerequisite_not_completed"
    PROGRAM_FOR_NEW_USERS_ONLY = "program_for_new_users_only"
    PROGRAM_FOR_RETURNING_USERS_ONLY = "program_for_returning_users_only"
    COACH_RECOMMENDATION_REQUIRED = "coach_recommendation_required"
    PROGRAM_NOT_PUBLIC = "program_not_public"
    PROGRAM_NOT_YET_AVAILABLE = "program_not_yet_available"
    PROGRAM_NO_LONGER_AVAILABLE = "program_no_longer_available"
    ALREADY_COMPLETED_THIS_PROGRAM = "already_completed_this_program"


class RecommendationReason(str, Enum):
    """i18n message keys explaining why a program was recommended."""

    DEFAULT = "programs.recommend.default"
    KICKSTART_NEW_USER = "programs.recommend.kickstart_new_user"
    RESET_NEW_USER = "programs.recommend.reset_new_user"
    REPEAT_RETURNING = "programs.recommend.repeat_returning"
    DEEP_AFTER_RESET = "programs.recommend.deep_after_reset"
    RESET_POOR_SLEEP = "programs.recommend.reset_poor_sleep"
    KICKSTART_MODERATE = "programs.recommend.kickstart_moderate"
    DEEP_OPTIMIZE = "programs.recommend.deep_optimize"
    REPEAT_AFTER_GAP = "programs.recommend.repeat_after_gap"
    COACH_RECOMMENDED = "programs.recommend.coach_recommended"


class PriorityTier(str, Enum):
    """Display rank class assigned after sorting."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    ALTERNATIVE = "alternative"


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


class UserSnapshot(BaseModel):
    """The user as seen by the decision core (identity + timestamps)."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    email: str
    locale: str = "de-DE"
    timezone: str = "Europe/Berlin"
    data_consent_at: datetime | None = None
    marketing_consent_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ProgramTemplate(BaseModel):
    """A catalog entry."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    slug: str = Field(min_length=1)
    name_key: str
    duration_days: int = Field(gt=0)
    coach_required: bool = True
    coach_intensity: CoachIntensity = CoachIntensity.DAILY
    price_euro_cents: int = Field(ge=0)      # smallest currency unit
    report_type: ReportType = ReportType.STANDARD
    target_audience: TargetAudience = TargetAudience.ALL
    is_repeat_program: bool = False
    prerequisite_slug: str | None = None
    is_active: bool = True
    is_public: bool = True
    sort_order: int = 0
    available_from: datetime | None = None   # inclusive
    available_until: datetime | None = None  # inclusive


class ProgramInstance(BaseModel):
    """One user's enrollment, with its template denormalized."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    user_id: uuid.UUID
    template: ProgramTemplate
    status: ProgramStatus
    current_day: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime


class EligibilityContext(BaseModel):
    """Everything the eligibility evaluator needs for one template.

    `completed_programs` is the user's full history in any status — each
    rule filters to COMPLETED itself.
    """

    model_config = ConfigDict(frozen=True)

    user: UserSnapshot
    template: ProgramTemplate
    completed_programs: tuple[ProgramInstance, ...] = ()
    active_program: ProgramInstance | None = None
    has_coach_recommendation: bool = False
    now: datetime


class RecommendationContext(BaseModel):
    """A user snapshot plus the full catalog and optional signals.

    Optional signals stay None when not supplied; zero is a real value.
    """

    model_config = ConfigDict(frozen=True)

    user: UserSnapshot
    templates: tuple[ProgramTemplate, ...] = ()
    completed_programs: tuple[ProgramInstance, ...] = ()
    active_program: ProgramInstance | None = None
    now: datetime
    sleep_score: float | None = Field(default=None, ge=0, le=100)  # higher = worse sleep
    days_since_last_program: int | None = Field(default=None, ge=0)
    has_coach_recommendation: bool = False


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------


class EligibilityResult(BaseModel):
    """Pass/fail plus every violated rule, in rule evaluation order."""

    model_config = ConfigDict(frozen=True)

    eligible: bool
    reasons: tuple[EligibilityReason, ...] = ()


class ProgramRecommendation(BaseModel):
    """One ranked, justified recommendation."""

    model_config = ConfigDict(frozen=True)

    template_slug: str
    score: int = Field(ge=0, le=100)
    reason_key: RecommendationReason
    priority: PriorityTier
