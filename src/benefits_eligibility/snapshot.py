"""
Snapshot builder: one immutable, auditable eligibility record per run.

A snapshot copies every input figure it used (per-source monthly amounts,
household members, deduction components, rule-table versions) so it can
be diffed against later snapshots without consulting live data. Apart
from ``calculated_at`` and ``expires_at`` the serialized content depends
only on the inputs and the rule tables in effect.
"""

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import List, Optional

from .calculators import MedicaidResult, SNAPResult, evaluate
from .deductions import DeductionBreakdown, compute_net_income
from .errors import InvalidInput, field_context
from .models import (
    Asset,
    Expense,
    IncomeSource,
    UserProfile,
    countable_assets,
    total_assets,
)
from .money import ZERO, format_money, round_cents
from .normalizer import monthly_amount
from .rules import RuleSet

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=30)

TIMESTAMP_FIELDS = ("calculated_at", "expires_at")


def _plain(value):
    """Convert Decimals (recursively) to canonical strings for serialization."""
    if isinstance(value, Decimal):
        return format_money(value)
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _read_only(mapping: Mapping) -> Mapping:
    """Read-only copy of a mapping, so a stored snapshot cannot be edited in place."""
    return MappingProxyType(dict(mapping))


def _fields_dict(obj) -> dict:
    return {name: _plain(getattr(obj, name)) for name in obj.__dataclass_fields__}


@dataclass(frozen=True)
class CalculationDetails:
    """Audit trail: thresholds used, every deduction, per-source income."""

    fpl_monthly: Decimal
    gross_income_limit: Decimal
    net_income_limit: Decimal
    asset_limit: Decimal
    income_sources: tuple
    expenses: tuple
    standard_deduction: Decimal
    earned_income_deduction: Decimal
    shelter_deduction: Decimal
    dependent_care_deduction: Decimal
    medical_deduction: Decimal
    gross_income: Decimal
    earned_income: Decimal
    adjusted_income: Decimal
    shelter_costs: Decimal
    shelter_cap_applied: bool
    total_deductions: Decimal
    net_income: Decimal
    max_allotment: Decimal
    benefit_reduction: Decimal
    household_members: tuple
    skipped_tests: tuple
    medicaid: Mapping
    rule_tables: Mapping
    warnings: tuple = ()

    def __post_init__(self):
        for name in ("income_sources", "expenses", "household_members"):
            rows = tuple(_read_only(row) for row in getattr(self, name))
            object.__setattr__(self, name, rows)
        for name in ("medicaid", "rule_tables"):
            object.__setattr__(self, name, _read_only(getattr(self, name)))
        object.__setattr__(self, "skipped_tests", tuple(self.skipped_tests))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def to_dict(self) -> dict:
        return _fields_dict(self)


@dataclass(frozen=True)
class StateSpecificData:
    """Program name, limits and special rules active at calculation time."""

    state: str
    program: str
    program_name: str
    income_limit: Optional[Decimal]
    asset_limit: Optional[Decimal]
    special_rules: tuple = ()
    effective_from: str = ""
    effective_to: str = ""

    def __post_init__(self):
        object.__setattr__(self, "special_rules", tuple(self.special_rules))

    def to_dict(self) -> dict:
        return _fields_dict(self)


@dataclass(frozen=True)
class EligibilitySnapshot:
    """Immutable result of one eligibility calculation."""

    user_id: Optional[str]
    household_size: int
    state: str

    total_gross_monthly_income: Decimal
    total_net_monthly_income: Decimal
    total_monthly_expenses: Decimal
    total_assets: Decimal
    total_countable_assets: Decimal

    snap_eligible: bool
    snap_gross_income_test: bool
    snap_net_income_test: bool
    snap_asset_test: bool
    snap_estimated_benefit: Optional[Decimal]

    medicaid_eligible: bool
    medicaid_income_test: Optional[bool]
    medicaid_asset_test: Optional[bool]
    medicaid_category: Optional[str]

    calculation_details: CalculationDetails
    state_specific_data: Mapping[str, StateSpecificData]

    calculated_at: datetime
    expires_at: datetime

    def __post_init__(self):
        object.__setattr__(self, "state_specific_data", _read_only(self.state_specific_data))

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        """True until ``expires_at``; the caller decides whether to recalculate."""
        now = _utc(now or datetime.now(timezone.utc))
        return now < self.expires_at

    def to_dict(self) -> dict:
        data = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif name == "calculation_details":
                value = value.to_dict()
            elif name == "state_specific_data":
                value = {k: v.to_dict() for k, v in value.items()}
            data[name] = _plain(value)
        return data

    def content_dict(self) -> dict:
        """Serialized snapshot without timestamps."""
        data = self.to_dict()
        for name in TIMESTAMP_FIELDS:
            data.pop(name)
        return data

    def to_json(self, include_timestamps: bool = True, indent: Optional[int] = None) -> str:
        data = self.to_dict() if include_timestamps else self.content_dict()
        return json.dumps(data, sort_keys=True, indent=indent, separators=None if indent else (",", ":"))

    @property
    def fingerprint(self) -> str:
        """SHA-256 of the timestamp-free content; equal inputs give equal fingerprints."""
        return hashlib.sha256(self.to_json(include_timestamps=False).encode("utf-8")).hexdigest()


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _state_data(result, state: str, income_limit) -> StateSpecificData:
    table = result.rule_table
    return StateSpecificData(
        state=state,
        program=table.program,
        program_name=table.program_name,
        income_limit=income_limit,
        asset_limit=result.asset_limit,
        special_rules=table.special_rules,
        effective_from=table.effective_from.isoformat(),
        effective_to=table.effective_to.isoformat(),
    )


def _details(
    snap: SNAPResult,
    medicaid: MedicaidResult,
    deductions: DeductionBreakdown,
    income_rows: List[dict],
    expense_rows: List[dict],
    profile: UserProfile,
    warnings: List[str],
) -> CalculationDetails:
    return CalculationDetails(
        fpl_monthly=snap.fpl_monthly,
        gross_income_limit=snap.gross_income_limit,
        net_income_limit=snap.net_income_limit,
        asset_limit=snap.asset_limit,
        income_sources=tuple(income_rows),
        expenses=tuple(expense_rows),
        standard_deduction=deductions.standard_deduction,
        earned_income_deduction=deductions.earned_income_deduction,
        shelter_deduction=deductions.shelter_deduction,
        dependent_care_deduction=deductions.dependent_care_deduction,
        medical_deduction=deductions.medical_deduction,
        gross_income=deductions.gross_income,
        earned_income=deductions.earned_income,
        adjusted_income=deductions.adjusted_income,
        shelter_costs=deductions.shelter_costs,
        shelter_cap_applied=deductions.shelter_cap_applied,
        total_deductions=deductions.total_deductions,
        net_income=deductions.net_income,
        max_allotment=snap.max_allotment,
        benefit_reduction=snap.benefit_reduction,
        household_members=tuple(m.to_dict() for m in profile.household_composition),
        skipped_tests=tuple(snap.skipped_tests),
        medicaid={
            "category": medicaid.category,
            "fpl_monthly": medicaid.fpl_monthly,
            "income_limit": medicaid.income_limit,
            "income_limit_pct": medicaid.income_limit_pct,
            "asset_limit": medicaid.asset_limit,
            "asset_test_exempt": medicaid.asset_test_exempt,
        },
        rule_tables={
            "snap": snap.rule_table.version,
            "medicaid": medicaid.rule_table.version,
        },
        warnings=tuple(warnings),
    )


def build_snapshot(
    profile: UserProfile,
    income_sources: List[IncomeSource],
    expenses: List[Expense],
    assets: List[Asset],
    now: Optional[datetime] = None,
    *,
    rules: RuleSet,
    ttl: timedelta = DEFAULT_TTL,
) -> EligibilitySnapshot:
    """
    Run the full pipeline and assemble an EligibilitySnapshot.

    Normalizes every income and expense record, applies SNAP deductions
    once, evaluates SNAP and Medicaid against the tables in effect at
    ``now``, and copies every figure used into the audit trail.

    Args:
        profile: Household profile
        income_sources: Income records
        expenses: Expense records
        assets: Asset records
        now: Calculation timestamp (UTC now when omitted)
        rules: Rule tables; the table covering ``now`` is used
        ttl: Freshness window for ``expires_at``

    Returns:
        EligibilitySnapshot, or raises; never a partial result
    """
    calculated_at = _utc(now or datetime.now(timezone.utc))

    state = profile.state_code
    if state is None:
        raise InvalidInput("state is required to determine eligibility", field="profile.state")
    household_size = profile.household_size

    # Resolve both tables up front so configuration errors surface first
    snap_table = rules.lookup(state, "snap", calculated_at)
    rules.lookup(state, "medicaid", calculated_at)

    warnings = []
    if profile.composition_mismatch:
        message = (
            f"household_size {household_size} differs from "
            f"{len(profile.household_composition)} listed household members; "
            f"household_size used for all lookups"
        )
        logger.warning(message)
        warnings.append(message)
    if not profile.household_composition:
        message = (
            "household_composition not supplied; elderly/disabled status and "
            "Medicaid category cannot be determined"
        )
        logger.warning(message)
        warnings.append(message)

    income_rows = []
    gross = ZERO
    earned = ZERO
    for i, source in enumerate(income_sources):
        with field_context(f"income_sources[{i}]"):
            amount = monthly_amount(source)
        gross += amount
        if source.is_earned:
            earned += amount
        income_rows.append({
            "source_name": source.source_name,
            "income_type": source.income_type.value,
            "frequency": source.frequency.value,
            "is_irregular": source.uses_irregular_months,
            "earned": source.is_earned,
            "monthly_amount": round_cents(amount),
        })

    expense_rows = []
    total_expenses = ZERO
    for i, expense in enumerate(expenses):
        with field_context(f"expenses[{i}]"):
            amount = monthly_amount(expense)
        total_expenses += amount
        expense_rows.append({
            "expense_type": expense.expense_type.value,
            "frequency": expense.frequency.value,
            "shelter": expense.is_shelter,
            "monthly_amount": round_cents(amount),
        })

    countable = countable_assets(assets)
    elderly_or_disabled = profile.has_elderly_or_disabled(snap_table.integer("elderly_age"))

    deductions = compute_net_income(
        gross,
        expenses,
        household_size,
        state,
        snap_table,
        earned_income=earned,
        elderly_or_disabled=elderly_or_disabled,
    )

    # Program tests compare the stored (cent-rounded) totals
    program_args = (
        state, household_size, deductions.gross_income, deductions.net_income, countable, profile
    )
    snap = evaluate("snap", *program_args, rules=rules, as_of=calculated_at, earned_income=earned)
    medicaid = evaluate("medicaid", *program_args, rules=rules, as_of=calculated_at)

    snapshot = EligibilitySnapshot(
        user_id=profile.user_id,
        household_size=household_size,
        state=state,
        total_gross_monthly_income=deductions.gross_income,
        total_net_monthly_income=deductions.net_income,
        total_monthly_expenses=round_cents(total_expenses),
        total_assets=total_assets(assets),
        total_countable_assets=countable,
        snap_eligible=snap.eligible,
        snap_gross_income_test=snap.gross_income_test,
        snap_net_income_test=snap.net_income_test,
        snap_asset_test=snap.asset_test,
        snap_estimated_benefit=snap.estimated_benefit,
        medicaid_eligible=medicaid.eligible,
        medicaid_income_test=medicaid.income_test,
        medicaid_asset_test=medicaid.asset_test,
        medicaid_category=medicaid.category,
        calculation_details=_details(
            snap, medicaid, deductions, income_rows, expense_rows, profile, warnings
        ),
        state_specific_data={
            "snap": _state_data(snap, state, snap.gross_income_limit),
            "medicaid": _state_data(medicaid, state, medicaid.income_limit),
        },
        calculated_at=calculated_at,
        expires_at=calculated_at + ttl,
    )

    logger.info(
        f"Built snapshot for user {profile.user_id or '-'} in {state}: "
        f"snap_eligible={snap.eligible} medicaid_eligible={medicaid.eligible}"
    )
    return snapshot
