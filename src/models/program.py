"""Program catalog and enrollment models.

ProgramTemplate is the catalog entry, ProgramInstance one user's enrollment
against it. Eligibility and ranking never touch these rows directly — the
query layer converts them into frozen schema records first.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import CoachIntensity, ProgramStatus, ReportType, TargetAudience

if TYPE_CHECKING:
    from src.models.user import User


class ProgramTemplate(TimestampMixin, Base):
    """A program offering in the catalog."""

    __tablename__ = "program_templates"

    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    name_key: Mapped[str] = mapped_column(String(150), nullable=False)

    # Content
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    coach_required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    coach_intensity: Mapped[str] = mapped_column(
        String(20), default=CoachIntensity.DAILY.value, nullable=False
    )
    report_type: Mapped[str] = mapped_column(
        String(20), default=ReportType.STANDARD.value, nullable=False
    )

    # Pricing
    price_euro_cents: Mapped[int] = mapped_column(Integer, nullable=False, comment="Price in cents")

    # Targeting
    target_audience: Mapped[str] = mapped_column(
        String(30), default=TargetAudience.ALL.value, nullable=False
    )
    is_repeat_program: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    prerequisite_slug: Mapped[str | None] = mapped_column(String(100))

    # Visibility
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    available_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    available_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    instances: Mapped[list[ProgramInstance]] = relationship(
        "ProgramInstance", back_populates="template"
    )

    def __repr__(self) -> str:
        return f"<ProgramTemplate slug={self.slug} active={self.is_active}>"


class ProgramInstance(TimestampMixin, Base):
    """One user's enrollment in one program template."""

    __tablename__ = "program_instances"

    # Foreign keys
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("program_templates.id"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20), default=ProgramStatus.PENDING_PAYMENT.value, nullable=False, index=True
    )
    current_day: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timeline
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="program_instances")
    template: Mapped[ProgramTemplate] = relationship(
        "ProgramTemplate", back_populates="instances", lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<ProgramInstance id={self.id} status={self.status} day={self.current_day}>"
