"""Profile summary for injecting household context into the chat assistant."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .errors import field_context
from .models import (
    SHELTER_EXPENSE_TYPES,
    Asset,
    Expense,
    IncomeSource,
    UserProfile,
    countable_assets,
    total_assets,
)
from .money import ZERO, format_money, round_cents
from .normalizer import monthly_amount
from .snapshot import EligibilitySnapshot

LIKELY_ELIGIBLE = "likely_eligible"
LIKELY_INELIGIBLE = "likely_ineligible"
UNKNOWN = "unknown"


@dataclass
class ProfileSummary:
    state: Optional[str]
    household_size: int
    household_has_elderly: bool
    household_has_disabled: bool
    total_gross_monthly_income: Decimal
    income_sources_count: int
    has_irregular_income: bool
    total_monthly_expenses: Decimal
    shelter_expenses: Decimal
    total_assets: Decimal
    countable_assets: Decimal
    snap_status: str
    snap_estimated_benefit: Optional[Decimal]
    medicaid_status: str
    last_calculated: Optional[datetime]

    def to_dict(self) -> dict:
        data = dict(self.__dict__)
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = format_money(value)
            elif isinstance(value, datetime):
                data[key] = value.isoformat()
        return data


def eligibility_status(eligible: Optional[bool]) -> str:
    if eligible is None:
        return UNKNOWN
    return LIKELY_ELIGIBLE if eligible else LIKELY_INELIGIBLE


def summarize_profile(
    profile: UserProfile,
    income_sources: List[IncomeSource],
    expenses: List[Expense],
    assets: List[Asset],
    latest: Optional[EligibilitySnapshot] = None,
) -> ProfileSummary:
    """
    Summarize a household's finances and latest eligibility outcome.

    Irregular income without recorded months raises InsufficientData here
    just as it does in the snapshot builder.
    """
    gross = ZERO
    for i, source in enumerate(income_sources):
        with field_context(f"income_sources[{i}]"):
            gross += monthly_amount(source)

    total_expenses = ZERO
    shelter = ZERO
    for i, expense in enumerate(expenses):
        with field_context(f"expenses[{i}]"):
            amount = monthly_amount(expense)
        total_expenses += amount
        if expense.expense_type in SHELTER_EXPENSE_TYPES:
            shelter += amount

    members = profile.household_composition
    return ProfileSummary(
        state=profile.state_code,
        household_size=profile.household_size,
        household_has_elderly=any(m.elderly_for_snap() for m in members),
        household_has_disabled=any(m.is_disabled for m in members),
        total_gross_monthly_income=round_cents(gross),
        income_sources_count=len(income_sources),
        has_irregular_income=any(s.uses_irregular_months for s in income_sources),
        total_monthly_expenses=round_cents(total_expenses),
        shelter_expenses=round_cents(shelter),
        total_assets=total_assets(assets),
        countable_assets=countable_assets(assets),
        snap_status=eligibility_status(latest.snap_eligible if latest else None),
        snap_estimated_benefit=latest.snap_estimated_benefit if latest else None,
        medicaid_status=eligibility_status(latest.medicaid_eligible if latest else None),
        last_calculated=latest.calculated_at if latest else None,
    )
