"""
benefits-eligibility: SNAP and Medicaid eligibility snapshots.

Converts household income, expense and asset records into normalized
monthly figures, applies program deductions and tests against
effective-dated state rule tables, and produces an auditable,
reproducible eligibility snapshot.
"""

__version__ = "0.1.0"

from .calculators import evaluate
from .deductions import DeductionBreakdown, compute_net_income, excess_shelter_deduction
from .errors import (
    EligibilityError,
    InsufficientData,
    InvalidInput,
    StaleConfiguration,
    UnsupportedProgram,
    UnsupportedState,
)
from .models import Asset, Expense, Household, HouseholdMember, IncomeSource, UserProfile
from .normalizer import monthly_amount
from .rules import RuleSet, RuleTable, load_rules
from .snapshot import (
    CalculationDetails,
    EligibilitySnapshot,
    StateSpecificData,
    build_snapshot,
)
from .summary import ProfileSummary, summarize_profile

__all__ = [
    "build_snapshot",
    "compute_net_income",
    "evaluate",
    "excess_shelter_deduction",
    "load_rules",
    "monthly_amount",
    "summarize_profile",
    "Asset",
    "CalculationDetails",
    "DeductionBreakdown",
    "EligibilitySnapshot",
    "Expense",
    "Household",
    "HouseholdMember",
    "IncomeSource",
    "ProfileSummary",
    "RuleSet",
    "RuleTable",
    "StateSpecificData",
    "UserProfile",
    "EligibilityError",
    "InsufficientData",
    "InvalidInput",
    "StaleConfiguration",
    "UnsupportedProgram",
    "UnsupportedState",
]
