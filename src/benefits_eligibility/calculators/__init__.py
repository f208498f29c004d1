"""
Program calculators.

Each calculator evaluates one program against the rule table in effect
at calculation time. ``evaluate`` selects the table and dispatches.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Union

from ..errors import UnsupportedProgram
from ..models import UserProfile
from ..money import ZERO
from ..rules import RuleSet
from .medicaid import MedicaidResult, calculate_medicaid, select_category
from .snap import SNAPResult, calculate_snap

ProgramResult = Union[SNAPResult, MedicaidResult]

SUPPORTED_PROGRAMS = ("snap", "medicaid")


def evaluate(
    program: str,
    state: str,
    household_size: int,
    gross_monthly_income: Decimal,
    net_monthly_income: Decimal,
    countable_assets: Decimal,
    household: UserProfile,
    *,
    rules: RuleSet,
    as_of: Union[date, datetime],
    earned_income: Decimal = ZERO,
) -> ProgramResult:
    """
    Evaluate one program for a household.

    Args:
        program: 'snap' or 'medicaid'
        state: Two-letter state code
        household_size: Size used for threshold lookups
        gross_monthly_income: Normalized gross income
        net_monthly_income: Income after SNAP deductions
        countable_assets: Non-exempt asset total
        household: Profile with household composition
        rules: Rule tables to select from
        as_of: Calculation timestamp selecting the effective table
        earned_income: Earned portion of gross income

    Raises:
        UnsupportedProgram, UnsupportedState, StaleConfiguration
    """
    if program not in SUPPORTED_PROGRAMS:
        raise UnsupportedProgram(f"no calculator for program {program!r}", field="program")

    table = rules.lookup(state, program, as_of)

    if program == "snap":
        return calculate_snap(
            table,
            household_size,
            gross_monthly_income,
            net_monthly_income,
            countable_assets,
            household,
            earned_income=earned_income,
        )
    return calculate_medicaid(
        table,
        household_size,
        gross_monthly_income,
        countable_assets,
        household,
    )


__all__ = [
    "evaluate",
    "calculate_snap",
    "calculate_medicaid",
    "select_category",
    "SNAPResult",
    "MedicaidResult",
    "ProgramResult",
    "SUPPORTED_PROGRAMS",
]
