"""Database query functions for the program catalog and enrollment history.

Every function takes an AsyncSession and returns frozen schema records, so
callers never hand ORM rows to the eligibility or recommendation engines.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.models import program as orm
from src.models.enums import ProgramStatus
from src.models.user import User
from src.schemas.programs import ProgramInstance, ProgramTemplate, UserSnapshot

logger = logging.getLogger(__name__)


# ── Row → record conversion ──────────────────────────────────────────


def to_template(row: orm.ProgramTemplate) -> ProgramTemplate:
    """Convert a catalog row into the immutable template record."""
    return ProgramTemplate(
        id=row.id,
        slug=row.slug,
        name_key=row.name_key,
        duration_days=row.duration_days,
        coach_required=row.coach_required,
        coach_intensity=row.coach_intensity,
        price_euro_cents=row.price_euro_cents,
        report_type=row.report_type,
        target_audience=row.target_audience,
        is_repeat_program=row.is_repeat_program,
        prerequisite_slug=row.prerequisite_slug,
        is_active=row.is_active,
        is_public=row.is_public,
        sort_order=row.sort_order,
        available_from=row.available_from,
        available_until=row.available_until,
    )


def to_instance(row: orm.ProgramInstance) -> ProgramInstance:
    """Convert an enrollment row; the template must already be loaded."""
    return ProgramInstance(
        id=row.id,
        user_id=row.user_id,
        template=to_template(row.template),
        status=row.status,
        current_day=row.current_day,
        started_at=row.started_at,
        completed_at=row.completed_at,
        paid_at=row.paid_at,
        created_at=row.created_at,
    )


def to_user(row: User) -> UserSnapshot:
    return UserSnapshot(
        id=row.id,
        email=row.email,
        locale=row.locale,
        timezone=row.timezone,
        data_consent_at=row.data_consent_at,
        marketing_consent_at=row.marketing_consent_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ── Catalog ──────────────────────────────────────────────────────────


async def get_catalog(db: AsyncSession, public_only: bool = False) -> list[ProgramTemplate]:
    """Active catalog in display order. public_only hides coach-only entries."""
    stmt = select(orm.ProgramTemplate).where(orm.ProgramTemplate.is_active.is_(True))
    if public_only:
        stmt = stmt.where(orm.ProgramTemplate.is_public.is_(True))
    result = await db.execute(stmt.order_by(orm.ProgramTemplate.sort_order.asc()))
    return [to_template(row) for row in result.scalars().all()]


async def get_template_by_slug(db: AsyncSession, slug: str) -> ProgramTemplate | None:
    result = await db.execute(
        select(orm.ProgramTemplate).where(orm.ProgramTemplate.slug == slug)
    )
    row = result.scalar_one_or_none()
    return to_template(row) if row is not None else None


# ── Users & history ──────────────────────────────────────────────────


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> UserSnapshot | None:
    """Fetch a user, ignoring soft-deleted accounts."""
    result = await db.execute(
        select(User).where(User.id == user_id, User.deleted_at.is_(None))
    )
    row = result.scalar_one_or_none()
    return to_user(row) if row is not None else None


async def get_program_history(db: AsyncSession, user_id: uuid.UUID) -> list[ProgramInstance]:
    """All of a user's enrollments in every status, oldest first.

    Not pre-filtered to COMPLETED: eligibility rules do that themselves.
    """
    result = await db.execute(
        select(orm.ProgramInstance)
        .where(orm.ProgramInstance.user_id == user_id)
        .options(selectinload(orm.ProgramInstance.template))
        .order_by(orm.ProgramInstance.created_at.asc())
    )
    return [to_instance(row) for row in result.scalars().all()]


async def get_active_program(db: AsyncSession, user_id: uuid.UUID) -> ProgramInstance | None:
    """The user's running program, if any."""
    result = await db.execute(
        select(orm.ProgramInstance)
        .where(
            orm.ProgramInstance.user_id == user_id,
            orm.ProgramInstance.status == ProgramStatus.ACTIVE.value,
        )
        .options(selectinload(orm.ProgramInstance.template))
        .order_by(orm.ProgramInstance.created_at.desc())
        .limit(1)
    )
    row = result.scalars().first()
    return to_instance(row) if row is not None else None


async def get_current_instance(db: AsyncSession, user_id: uuid.UUID) -> ProgramInstance | None:
    """The enrollment the user is in or paying for (ACTIVE or PENDING_PAYMENT)."""
    result = await db.execute(
        select(orm.ProgramInstance)
        .where(
            orm.ProgramInstance.user_id == user_id,
            orm.ProgramInstance.status.in_(
                [ProgramStatus.ACTIVE.value, ProgramStatus.PENDING_PAYMENT.value]
            ),
        )
        .options(selectinload(orm.ProgramInstance.template))
        .order_by(orm.ProgramInstance.created_at.desc())
        .limit(1)
    )
    row = result.scalars().first()
    return to_instance(row) if row is not None else None


# ── Enrollment ───────────────────────────────────────────────────────


async def create_pending_instance(
    db: AsyncSession,
    user_id: uuid.UUID,
    template_id: uuid.UUID,
) -> ProgramInstance:
    """Insert a PENDING_PAYMENT enrollment and return it as a record."""
    row = orm.ProgramInstance(
        user_id=user_id,
        template_id=template_id,
        status=ProgramStatus.PENDING_PAYMENT.value,
        current_day=0,
    )
    db.add(row)
    await db.flush()
    await db.refresh(row, attribute_names=["template", "created_at"])
    logger.info("Pending enrollment %s created for user %s", row.id, user_id)
    return to_instance(row)
