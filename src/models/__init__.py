"""SQLAlchemy ORM models.

Import all models here so Base.metadata.create_all() discovers them.
"""

from __future__ import annotations

from src.models.base import Base
from src.models.enums import CoachIntensity, ProgramStatus, ReportType, TargetAudience
from src.models.program import ProgramInstance, ProgramTemplate
from src.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "ProgramTemplate",
    "ProgramInstance",
    # Enums
    "ProgramStatus",
    "TargetAudience",
    "CoachIntensity",
    "ReportType",
]
