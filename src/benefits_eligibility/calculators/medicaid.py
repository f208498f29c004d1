"""
Medicaid category selection and income/asset tests.

Categories are a priority-ordered decision list taken from the rule
table: the first category whose condition matches the household wins.
A household matching no category has no Medicaid pathway.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Optional

from ..errors import InvalidInput
from ..models import UserProfile
from ..money import round_cents, to_decimal
from ..rules import RuleTable

logger = logging.getLogger(__name__)


def _aged_or_disabled(household: UserProfile, table: RuleTable) -> bool:
    aged_age = table.integer("aged_age")
    return any(m.is_disabled or m.age >= aged_age for m in household.household_composition)


def _pregnant(household: UserProfile, table: RuleTable) -> bool:
    return any(m.is_pregnant for m in household.household_composition)


def _child(household: UserProfile, table: RuleTable) -> bool:
    limit = table.integer("child_age_limit")
    return any(m.age < limit for m in household.household_composition)


def _adult(household: UserProfile, table: RuleTable) -> bool:
    limit = table.integer("child_age_limit")
    aged_age = table.integer("aged_age")
    return any(limit <= m.age < aged_age for m in household.household_composition)


def _parent_caretaker(household: UserProfile, table: RuleTable) -> bool:
    return _child(household, table) and _adult(household, table)


# Conditions a rule table may name in a category's "when" key
CATEGORY_CONDITIONS: Dict[str, Callable[[UserProfile, RuleTable], bool]] = {
    "aged_or_disabled": _aged_or_disabled,
    "pregnant": _pregnant,
    "child": _child,
    "adult": _adult,
    "parent_caretaker": _parent_caretaker,
}


@dataclass
class MedicaidResult:
    """Medicaid determination for the selected category."""

    eligible: bool
    category: Optional[str]
    income_test: Optional[bool]
    asset_test: Optional[bool]
    asset_test_exempt: bool
    fpl_monthly: Decimal
    income_limit: Optional[Decimal]
    income_limit_pct: Optional[Decimal]
    asset_limit: Optional[Decimal]
    rule_table: RuleTable
    citations: list = field(default_factory=list)

    program = "medicaid"


def select_category(household: UserProfile, table: RuleTable) -> Optional[dict]:
    """Return the first category in table order whose condition matches."""
    for i, entry in enumerate(table.params["categories"]):
        condition = CATEGORY_CONDITIONS.get(entry.get("when"))
        if condition is None:
            raise InvalidInput(
                f"unknown category condition {entry.get('when')!r}",
                field=f"{table.path or table.version}:categories[{i}].when",
            )
        if condition(household, table):
            return entry
    return None


def medicaid_asset_limit(table: RuleTable, household_size: int) -> Optional[Decimal]:
    """Asset limit for the household, or None when the state has no asset test."""
    limit = table.params.get("asset_limit")
    if limit is None:
        return None
    where = table.path or table.version
    base = to_decimal(limit.get("base"), f"{where}:asset_limit.base")
    per_additional = to_decimal(limit.get("per_additional", 0), f"{where}:asset_limit.per_additional")
    return base + per_additional * (household_size - 1)


def calculate_medicaid(
    table: RuleTable,
    household_size: int,
    gross_monthly_income: Decimal,
    countable_assets: Decimal,
    household: UserProfile,
) -> MedicaidResult:
    """
    Evaluate Medicaid for the household's highest-priority category.

    Income is compared on a gross monthly basis against the category's
    percentage of FPL. Eligible = income test AND (asset test OR the
    category is exempt from asset testing).
    """
    gross = to_decimal(gross_monthly_income, "gross_monthly_income")
    assets = to_decimal(countable_assets, "countable_assets")
    fpl = round_cents(table.fpl_monthly(household_size))
    asset_limit = medicaid_asset_limit(table, household_size)

    entry = select_category(household, table)
    if entry is None:
        logger.debug(f"Medicaid {table.version}: no category matches household")
        return MedicaidResult(
            eligible=False,
            category=None,
            income_test=None,
            asset_test=None,
            asset_test_exempt=False,
            fpl_monthly=fpl,
            income_limit=None,
            income_limit_pct=None,
            asset_limit=round_cents(asset_limit) if asset_limit is not None else None,
            rule_table=table,
        )

    where = table.path or table.version
    pct = to_decimal(entry.get("income_limit_pct"), f"{where}:{entry['category']}.income_limit_pct")
    income_limit = round_cents(table.percent_of_fpl(pct, household_size))
    exempt = bool(entry.get("asset_test_exempt", False))

    income_test = gross <= income_limit
    asset_test = True if asset_limit is None else assets <= asset_limit
    eligible = income_test and (asset_test or exempt)

    logger.debug(
        f"Medicaid {table.version}: category={entry['category']} "
        f"income={income_test} asset={asset_test} exempt={exempt}"
    )

    return MedicaidResult(
        eligible=eligible,
        category=entry["category"],
        income_test=income_test,
        asset_test=asset_test,
        asset_test_exempt=exempt,
        fpl_monthly=fpl,
        income_limit=income_limit,
        income_limit_pct=pct,
        asset_limit=round_cents(asset_limit) if asset_limit is not None else None,
        rule_table=table,
        citations=[
            {"param": "income_limit_pct", "source": "42 CFR 435 Subpart B/C"},
            {"param": "asset_limit", "source": "42 CFR 435.840"},
        ],
    )
