"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization and PostgreSQL native enum types.
"""

from __future__ import annotations

from enum import Enum


class ProgramStatus(str, Enum):
    """Lifecycle of one user's enrollment in a program."""

    PENDING_PAYMENT = "PENDING_PAYMENT"  # checkout started, not paid yet
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TargetAudience(str, Enum):
    """Who a catalog program is offered to — drives eligibility."""

    ALL = "ALL"
    NEW_USERS = "NEW_USERS"
    RETURNING_USERS = "RETURNING_USERS"
    COACH_RECOMMENDED = "COACH_RECOMMENDED"


class CoachIntensity(str, Enum):
    """How often the coach is in touch during a program."""

    NONE = "NONE"
    LIGHT = "LIGHT"
    DAILY = "DAILY"
    INTENSIVE = "INTENSIVE"


class ReportType(str, Enum):
    """Depth of the end-of-program report."""

    MINI = "MINI"
    STANDARD = "STANDARD"
    DETAILED = "DETAILED"
