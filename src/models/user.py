"""User model — the person enrolling in sleep programs.

Only identity, locale and consent timestamps live here; auth and sessions
are handled upstream.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.program import ProgramInstance


class User(TimestampMixin, Base):
    """A consumer of the program catalog."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    locale: Mapped[str] = mapped_column(String(10), default="de-DE", nullable=False)
    timezone: Mapped[str] = mapped_column(String(50), default="Europe/Berlin", nullable=False)

    # Consent
    data_consent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    marketing_consent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Soft delete
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    # Relationships
    program_instances: Mapped[list[ProgramInstance]] = relationship(
        "ProgramInstance", back_populates="user", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} locale={self.locale}>"
