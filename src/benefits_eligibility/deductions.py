"""
SNAP deduction calculator.

Source: 7 CFR 273.9(d)

Deductions are taken from gross monthly income in this order:

1. Standard deduction, by household size (273.9(d)(1))
2. Earned income deduction, a share of earned income only (273.9(d)(2))
3. Dependent care, passed through as paid (273.9(d)(4))
4. Medical expenses above a floor, elderly or disabled households only (273.9(d)(3))
5. Excess shelter: shelter costs above half of the income left after 1-4,
   capped unless the household has an elderly or disabled member (273.9(d)(6))

Only the final net income is floored at zero.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Union

from .errors import InvalidInput, field_context
from .models import (
    DEPENDENT_CARE_EXPENSE_TYPES,
    MEDICAL_EXPENSE_TYPES,
    SHELTER_EXPENSE_TYPES,
    Expense,
)
from .money import ZERO, format_money, round_cents, to_decimal
from .normalizer import monthly_amount
from .rules import RuleSet, RuleTable

logger = logging.getLogger(__name__)


@dataclass
class DeductionBreakdown:
    """Every component of the net income calculation, kept for the audit trail."""

    gross_income: Decimal
    earned_income: Decimal
    standard_deduction: Decimal
    earned_income_deduction: Decimal
    dependent_care_deduction: Decimal
    medical_expenses: Decimal
    medical_deduction: Decimal
    adjusted_income: Decimal
    shelter_costs: Decimal
    shelter_deduction: Decimal
    shelter_cap_applied: bool
    total_deductions: Decimal
    net_income: Decimal
    rule_table: str = ""
    citations: list = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = format_money(value)
        return data


def excess_shelter_deduction(
    shelter_costs: Decimal,
    adjusted_income: Decimal,
    income_share: Decimal,
    cap: Decimal,
    uncapped: bool = False,
) -> Decimal:
    """
    Excess shelter deduction per 7 CFR 273.9(d)(6)(ii).

    Args:
        shelter_costs: Monthly rent/mortgage, property tax, insurance, utilities
        adjusted_income: Income after all other deductions
        income_share: Share of adjusted income the household pays itself (0.50)
        cap: Maximum deduction for households without elderly/disabled members
        uncapped: True when the household has an elderly or disabled member

    Returns:
        Deduction rounded to the cent, never negative
    """
    excess = shelter_costs - income_share * max(ZERO, adjusted_income)
    excess = max(ZERO, excess)
    if not uncapped:
        excess = min(excess, cap)
    return round_cents(excess)


def _monthly_total(expenses: List[Expense], types) -> Decimal:
    total = ZERO
    for i, expense in enumerate(expenses):
        if expense.expense_type in types:
            with field_context(f"expenses[{i}]"):
                total += monthly_amount(expense)
    return total


def shelter_costs(expenses: List[Expense]) -> Decimal:
    return _monthly_total(expenses, SHELTER_EXPENSE_TYPES)


def compute_net_income(
    gross_monthly_income: Decimal,
    expenses: List[Expense],
    household_size: int,
    state: str,
    rules: Union[RuleSet, RuleTable],
    as_of: Union[date, datetime, None] = None,
    *,
    earned_income: Decimal,
    elderly_or_disabled: bool = False,
) -> DeductionBreakdown:
    """
    Apply SNAP deductions to gross monthly income.

    Args:
        gross_monthly_income: Normalized gross income for the household
        expenses: Household expense records
        household_size: Size used for the standard deduction lookup
        state: Two-letter state code
        rules: RuleSet (looked up by state and ``as_of``) or an already
            selected SNAP RuleTable
        as_of: Calculation date; required with a RuleSet
        earned_income: Portion of gross income from earned income types
        elderly_or_disabled: Household has an elderly or disabled member

    Returns:
        DeductionBreakdown; ``net_income`` is the figure for the net test
    """
    if isinstance(rules, RuleSet):
        if as_of is None:
            raise InvalidInput("required when rules is a RuleSet", field="as_of")
        table = rules.lookup(state, "snap", as_of)
    else:
        table = rules

    gross = to_decimal(gross_monthly_income, "gross_monthly_income")
    earned = to_decimal(earned_income, "earned_income")

    standard = round_cents(table.by_household_size("standard_deduction", household_size))
    earned_deduction = round_cents(earned * table.number("earned_income_deduction_rate"))
    dependent_care = _monthly_total(expenses, DEPENDENT_CARE_EXPENSE_TYPES)

    medical_expenses = _monthly_total(expenses, MEDICAL_EXPENSE_TYPES)
    medical = ZERO
    if elderly_or_disabled:
        medical = max(ZERO, medical_expenses - table.number("medical_deduction_floor"))

    adjusted = gross - standard - earned_deduction - dependent_care - medical

    shelter = shelter_costs(expenses)
    cap = table.number("shelter_deduction_cap")
    shelter_deduction = excess_shelter_deduction(
        shelter,
        adjusted,
        table.number("shelter_income_share"),
        cap,
        uncapped=elderly_or_disabled,
    )
    uncapped_amount = excess_shelter_deduction(
        shelter, adjusted, table.number("shelter_income_share"), cap, uncapped=True
    )

    total = standard + earned_deduction + dependent_care + medical + shelter_deduction
    net = max(ZERO, gross - total)

    logger.debug(
        f"Deductions for {state} size {household_size}: standard={standard} "
        f"earned={earned_deduction} dependent_care={dependent_care} "
        f"medical={medical} shelter={shelter_deduction} net={net}"
    )

    return DeductionBreakdown(
        gross_income=round_cents(gross),
        earned_income=round_cents(earned),
        standard_deduction=standard,
        earned_income_deduction=earned_deduction,
        dependent_care_deduction=round_cents(dependent_care),
        medical_expenses=round_cents(medical_expenses),
        medical_deduction=round_cents(medical),
        adjusted_income=round_cents(adjusted),
        shelter_costs=round_cents(shelter),
        shelter_deduction=shelter_deduction,
        shelter_cap_applied=uncapped_amount > shelter_deduction,
        total_deductions=round_cents(total),
        net_income=round_cents(net),
        rule_table=table.version,
        citations=[
            {"param": "standard_deduction", "source": "7 CFR 273.9(d)(1)"},
            {"param": "earned_income_deduction_rate", "source": "7 CFR 273.9(d)(2)"},
            {"param": "medical_deduction_floor", "source": "7 CFR 273.9(d)(3)"},
            {"param": "dependent_care", "source": "7 CFR 273.9(d)(4)"},
            {"param": "shelter_deduction_cap", "source": "7 CFR 273.9(d)(6)(ii)"},
        ],
    )
