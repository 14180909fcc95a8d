"""Eligibility engine — rule-based enrollment checks for catalog programs."""

from src.eligibility.engine import (
    check_multiple_program_eligibility,
    check_program_eligibility,
    filter_eligible_programs,
)
from src.eligibility.rules import RULE_CHECKS
from src.schemas.programs import EligibilityContext, EligibilityReason, EligibilityResult

__all__ = [
    "check_program_eligibility",
    "check_multiple_program_eligibility",
    "filter_eligible_programs",
    "RULE_CHECKS",
    "EligibilityContext",
    "EligibilityReason",
    "EligibilityResult",
]
