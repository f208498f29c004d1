"""
SNAP eligibility and benefit estimate.

Source: 7 USC 2014, 2017; 7 CFR 273.8-273.10

Tests:
    gross income <= gross_income_limit_pct of FPL (130%), skipped for
        households with an elderly or disabled member and no earned income
    net income   <= net_income_limit_pct of FPL (100%)
    countable assets <= asset limit (higher limit for elderly/disabled)

Benefit = max allotment - 30% of net income, floored at zero.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from ..models import UserProfile
from ..money import ZERO, round_cents, to_decimal
from ..rules import RuleTable

logger = logging.getLogger(__name__)

GROSS_INCOME_TEST = "gross_income_test"


@dataclass
class SNAPResult:
    """SNAP determination with the thresholds it was made against."""

    eligible: bool
    gross_income_test: bool
    net_income_test: bool
    asset_test: bool
    estimated_benefit: Optional[Decimal]
    fpl_monthly: Decimal
    gross_income_limit: Decimal
    net_income_limit: Decimal
    asset_limit: Decimal
    max_allotment: Decimal
    benefit_reduction: Decimal
    elderly_or_disabled: bool
    rule_table: RuleTable
    skipped_tests: List[str] = field(default_factory=list)
    citations: list = field(default_factory=list)

    program = "snap"


def gross_income_test_waived(elderly_or_disabled: bool, earned_income: Decimal) -> bool:
    """Elderly/disabled households without earned income skip the gross test."""
    return elderly_or_disabled and earned_income <= ZERO


def calculate_snap(
    table: RuleTable,
    household_size: int,
    gross_monthly_income: Decimal,
    net_monthly_income: Decimal,
    countable_assets: Decimal,
    household: UserProfile,
    earned_income: Decimal = ZERO,
) -> SNAPResult:
    """
    Evaluate SNAP tests and estimate the monthly benefit.

    Args:
        table: SNAP rule table in effect at calculation time
        household_size: Size used for every table lookup
        gross_monthly_income: Normalized gross income
        net_monthly_income: Income after deductions
        countable_assets: Sum of non-exempt assets
        household: Profile supplying the household composition
        earned_income: Earned portion of gross income

    Returns:
        SNAPResult; ``estimated_benefit`` is None when not eligible
    """
    gross = to_decimal(gross_monthly_income, "gross_monthly_income")
    net = to_decimal(net_monthly_income, "net_monthly_income")
    assets = to_decimal(countable_assets, "countable_assets")
    earned = to_decimal(earned_income, "earned_income")

    elderly_or_disabled = household.has_elderly_or_disabled(table.integer("elderly_age"))

    fpl = round_cents(table.fpl_monthly(household_size))
    gross_limit = round_cents(
        table.percent_of_fpl(table.number("gross_income_limit_pct"), household_size)
    )
    net_limit = round_cents(
        table.percent_of_fpl(table.number("net_income_limit_pct"), household_size)
    )
    asset_limit = table.number(
        "asset_limit_elderly_disabled" if elderly_or_disabled else "asset_limit"
    )

    skipped = []
    if gross_income_test_waived(elderly_or_disabled, earned):
        gross_test = True
        skipped.append(GROSS_INCOME_TEST)
    else:
        gross_test = gross <= gross_limit
    net_test = net <= net_limit
    asset_test = assets <= asset_limit
    eligible = gross_test and net_test and asset_test

    max_allotment = table.by_household_size("max_allotment", household_size)
    reduction = round_cents(net * table.number("benefit_reduction_rate"))
    benefit = max(ZERO, max_allotment - reduction) if eligible else None

    logger.debug(
        f"SNAP {table.version}: gross={gross_test} net={net_test} "
        f"asset={asset_test} benefit={benefit}"
    )

    return SNAPResult(
        eligible=eligible,
        gross_income_test=gross_test,
        net_income_test=net_test,
        asset_test=asset_test,
        estimated_benefit=round_cents(benefit) if benefit is not None else None,
        fpl_monthly=fpl,
        gross_income_limit=gross_limit,
        net_income_limit=net_limit,
        asset_limit=round_cents(asset_limit),
        max_allotment=round_cents(max_allotment),
        benefit_reduction=reduction,
        elderly_or_disabled=elderly_or_disabled,
        rule_table=table,
        skipped_tests=skipped,
        citations=[
            {"param": "gross_income_limit_pct", "source": "7 CFR 273.9(a)(1)"},
            {"param": "net_income_limit_pct", "source": "7 CFR 273.9(a)(2)"},
            {"param": "asset_limit", "source": "7 CFR 273.8(b)"},
            {"param": "max_allotment", "source": "7 CFR 273.10(e)(4)"},
            {"param": "benefit_reduction_rate", "source": "7 USC 2017(a)"},
        ],
    )
