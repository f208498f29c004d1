"""
Household financial records consumed by the eligibility engine.

These mirror the rows the web application persists (profile, income
sources, expenses, assets). Values are validated and coerced on
construction: enums from their string values, money to Decimal.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from .errors import InvalidInput, field_context
from .money import ZERO, optional_decimal, to_decimal


class SupportedState(Enum):
    """States with rule tables."""
    CA = "CA"
    TX = "TX"
    NY = "NY"


class CitizenshipStatus(Enum):
    CITIZEN = "citizen"
    PERMANENT_RESIDENT = "permanent_resident"
    QUALIFIED_IMMIGRANT = "qualified_immigrant"
    OTHER = "other"


class EmploymentStatus(Enum):
    EMPLOYED = "employed"
    UNEMPLOYED = "unemployed"
    SELF_EMPLOYED = "self_employed"
    RETIRED = "retired"
    DISABLED = "disabled"
    STUDENT = "student"


class Relationship(Enum):
    """Relationship of a household member to the account holder."""
    SELF = "self"
    SPOUSE = "spouse"
    CHILD = "child"
    PARENT = "parent"
    SIBLING = "sibling"
    GRANDPARENT = "grandparent"
    GRANDCHILD = "grandchild"
    OTHER_RELATIVE = "other_relative"
    UNRELATED = "unrelated"


class IncomeType(Enum):
    W2_EMPLOYMENT = "w2_employment"
    SELF_EMPLOYMENT = "self_employment"
    GIG_WORK = "gig_work"
    FREELANCE = "freelance"
    SEASONAL = "seasonal"
    TIPS = "tips"
    COMMISSION = "commission"
    SOCIAL_SECURITY = "social_security"
    SSI = "ssi"
    SSDI = "ssdi"
    UNEMPLOYMENT = "unemployment"
    CHILD_SUPPORT = "child_support"
    ALIMONY = "alimony"
    PENSION = "pension"
    RENTAL_INCOME = "rental_income"
    INVESTMENT_INCOME = "investment_income"
    OTHER = "other"


class IncomeFrequency(Enum):
    HOURLY = "hourly"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMI_MONTHLY = "semi_monthly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    IRREGULAR = "irregular"


class ExpenseType(Enum):
    RENT = "rent"
    MORTGAGE = "mortgage"
    PROPERTY_TAX = "property_tax"
    HOMEOWNERS_INSURANCE = "homeowners_insurance"
    UTILITIES_ELECTRIC = "utilities_electric"
    UTILITIES_GAS = "utilities_gas"
    UTILITIES_WATER = "utilities_water"
    UTILITIES_PHONE = "utilities_phone"
    UTILITIES_INTERNET = "utilities_internet"
    CHILD_CARE = "child_care"
    CHILD_SUPPORT_PAID = "child_support_paid"
    MEDICAL_OUT_OF_POCKET = "medical_out_of_pocket"
    MEDICAL_INSURANCE_PREMIUM = "medical_insurance_premium"
    DEPENDENT_CARE = "dependent_care"
    OTHER = "other"


class AssetType(Enum):
    CHECKING_ACCOUNT = "checking_account"
    SAVINGS_ACCOUNT = "savings_account"
    CASH = "cash"
    STOCKS = "stocks"
    BONDS = "bonds"
    RETIREMENT_401K = "retirement_401k"
    RETIREMENT_IRA = "retirement_ira"
    VEHICLE_PRIMARY = "vehicle_primary"
    VEHICLE_ADDITIONAL = "vehicle_additional"
    PROPERTY_PRIMARY_HOME = "property_primary_home"
    PROPERTY_OTHER = "property_other"
    LIFE_INSURANCE_CASH_VALUE = "life_insurance_cash_value"
    OTHER = "other"


EARNED_INCOME_TYPES = frozenset({
    IncomeType.W2_EMPLOYMENT,
    IncomeType.SELF_EMPLOYMENT,
    IncomeType.GIG_WORK,
    IncomeType.FREELANCE,
    IncomeType.SEASONAL,
    IncomeType.TIPS,
    IncomeType.COMMISSION,
})

SHELTER_EXPENSE_TYPES = frozenset({
    ExpenseType.RENT,
    ExpenseType.MORTGAGE,
    ExpenseType.PROPERTY_TAX,
    ExpenseType.HOMEOWNERS_INSURANCE,
    ExpenseType.UTILITIES_ELECTRIC,
    ExpenseType.UTILITIES_GAS,
    ExpenseType.UTILITIES_WATER,
    ExpenseType.UTILITIES_PHONE,
    ExpenseType.UTILITIES_INTERNET,
})

DEPENDENT_CARE_EXPENSE_TYPES = frozenset({
    ExpenseType.CHILD_CARE,
    ExpenseType.DEPENDENT_CARE,
})

MEDICAL_EXPENSE_TYPES = frozenset({
    ExpenseType.MEDICAL_OUT_OF_POCKET,
    ExpenseType.MEDICAL_INSURANCE_PREMIUM,
})

INCOME_FREQUENCIES = frozenset(IncomeFrequency) - {IncomeFrequency.QUARTERLY}

EXPENSE_FREQUENCIES = frozenset({
    IncomeFrequency.WEEKLY,
    IncomeFrequency.BIWEEKLY,
    IncomeFrequency.SEMI_MONTHLY,
    IncomeFrequency.MONTHLY,
    IncomeFrequency.QUARTERLY,
    IncomeFrequency.ANNUAL,
})

# Age at which a member counts as elderly for SNAP, whatever the stored flag says
SNAP_ELDERLY_AGE = 60

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidInput(f"{value!r} is not one of: {allowed}", field=field_name)


def _optional_enum(enum_cls, value: Any, field_name: str):
    if value is None:
        return None
    return _enum(enum_cls, value, field_name)


@dataclass
class HouseholdMember:
    """A person counted in the household."""

    name: str
    age: int
    relationship: Relationship
    is_disabled: bool = False
    is_elderly: bool = False
    is_pregnant: bool = False

    def __post_init__(self):
        if isinstance(self.age, bool) or not isinstance(self.age, int) or self.age < 0:
            raise InvalidInput(f"must be an integer >= 0, got {self.age!r}", field="age")
        self.relationship = _enum(Relationship, self.relationship, "relationship")

    def elderly_for_snap(self, elderly_age: int = SNAP_ELDERLY_AGE) -> bool:
        """Stored flag OR age threshold; the two are never trusted alone."""
        return self.is_elderly or self.age >= elderly_age

    @classmethod
    def from_dict(cls, data: dict) -> "HouseholdMember":
        return cls(
            name=data.get("name", ""),
            age=data.get("age"),
            relationship=data.get("relationship"),
            is_disabled=bool(data.get("is_disabled", data.get("isDisabled", False))),
            is_elderly=bool(data.get("is_elderly", data.get("isElderly", False))),
            is_pregnant=bool(data.get("is_pregnant", data.get("isPregnant", False))),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "age": self.age,
            "relationship": self.relationship.value,
            "is_disabled": self.is_disabled,
            "is_elderly": self.is_elderly,
            "is_pregnant": self.is_pregnant,
        }


@dataclass
class UserProfile:
    """Household-level profile for one user."""

    household_size: int
    state: Optional[SupportedState]
    household_composition: List[HouseholdMember] = field(default_factory=list)
    citizenship_status: Optional[CitizenshipStatus] = None
    employment_status: Optional[EmploymentStatus] = None
    user_id: Optional[str] = None

    def __post_init__(self):
        if (
            isinstance(self.household_size, bool)
            or not isinstance(self.household_size, int)
            or self.household_size < 1
        ):
            raise InvalidInput(
                f"must be an integer >= 1, got {self.household_size!r}",
                field="household_size",
            )
        # Unknown state codes stay as strings; the rule lookup rejects them
        if isinstance(self.state, str) and self.state in _STATE_CODES:
            self.state = SupportedState(self.state)
        self.citizenship_status = _optional_enum(
            CitizenshipStatus, self.citizenship_status, "citizenship_status"
        )
        self.employment_status = _optional_enum(
            EmploymentStatus, self.employment_status, "employment_status"
        )

    @property
    def state_code(self) -> Optional[str]:
        if self.state is None:
            return None
        if isinstance(self.state, SupportedState):
            return self.state.value
        return str(self.state)

    @property
    def composition_mismatch(self) -> bool:
        """Composition was supplied and disagrees with household_size."""
        return bool(self.household_composition) and (
            len(self.household_composition) != self.household_size
        )

    def has_elderly_or_disabled(self, elderly_age: int = SNAP_ELDERLY_AGE) -> bool:
        return any(
            m.is_disabled or m.elderly_for_snap(elderly_age)
            for m in self.household_composition
        )

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        members = []
        for i, row in enumerate(data.get("household_composition") or []):
            with field_context(f"household_composition[{i}]"):
                members.append(HouseholdMember.from_dict(row))
        return cls(
            household_size=data.get("household_size"),
            state=data.get("state"),
            household_composition=members,
            citizenship_status=data.get("citizenship_status"),
            employment_status=data.get("employment_status"),
            user_id=data.get("user_id"),
        )


_STATE_CODES = frozenset(s.value for s in SupportedState)


@dataclass
class IrregularMonth:
    """Income actually received in one calendar month (YYYY-MM)."""

    month: str
    amount: Decimal

    def __post_init__(self):
        if not isinstance(self.month, str) or not _MONTH_PATTERN.match(self.month):
            raise InvalidInput(f"expected YYYY-MM, got {self.month!r}", field="month")
        self.amount = to_decimal(self.amount, "amount")


@dataclass
class IncomeSource:
    """One recurring or irregular stream of household income."""

    income_type: IncomeType
    amount: Decimal
    frequency: IncomeFrequency
    hours_per_week: Optional[Decimal] = None
    is_irregular: bool = False
    irregular_months: List[IrregularMonth] = field(default_factory=list)
    business_expenses: Decimal = ZERO
    source_name: str = ""
    id: Optional[str] = None
    verified: bool = False

    def __post_init__(self):
        self.income_type = _enum(IncomeType, self.income_type, "income_type")
        self.frequency = _enum(IncomeFrequency, self.frequency, "frequency")
        if self.frequency not in INCOME_FREQUENCIES:
            raise InvalidInput(
                f"{self.frequency.value!r} is not a valid income frequency",
                field="frequency",
            )
        self.amount = to_decimal(self.amount, "amount")
        self.hours_per_week = optional_decimal(self.hours_per_week, "hours_per_week")
        self.business_expenses = to_decimal(self.business_expenses, "business_expenses")
        months = []
        for i, month in enumerate(self.irregular_months or []):
            with field_context(f"irregular_months[{i}]"):
                if not isinstance(month, IrregularMonth):
                    month = IrregularMonth(month=month.get("month"), amount=month.get("amount"))
                months.append(month)
        self.irregular_months = sorted(months, key=lambda m: m.month)

    @property
    def is_earned(self) -> bool:
        return self.income_type in EARNED_INCOME_TYPES

    @property
    def uses_irregular_months(self) -> bool:
        """Flagged irregular, or recorded with the irregular frequency."""
        return self.is_irregular or self.frequency is IncomeFrequency.IRREGULAR

    @classmethod
    def from_dict(cls, data: dict) -> "IncomeSource":
        return cls(
            income_type=data.get("income_type"),
            amount=data.get("amount"),
            frequency=data.get("frequency"),
            hours_per_week=data.get("hours_per_week"),
            is_irregular=bool(data.get("is_irregular", False)),
            irregular_months=data.get("irregular_months") or [],
            business_expenses=data.get("business_expenses") or 0,
            source_name=data.get("source_name") or "",
            id=data.get("id"),
            verified=bool(data.get("verified", False)),
        )


@dataclass
class Expense:
    """One recurring household expense."""

    expense_type: ExpenseType
    amount: Decimal
    frequency: IncomeFrequency
    description: Optional[str] = None
    id: Optional[str] = None
    verified: bool = False

    def __post_init__(self):
        self.expense_type = _enum(ExpenseType, self.expense_type, "expense_type")
        self.frequency = _enum(IncomeFrequency, self.frequency, "frequency")
        if self.frequency not in EXPENSE_FREQUENCIES:
            raise InvalidInput(
                f"{self.frequency.value!r} is not a valid expense frequency",
                field="frequency",
            )
        self.amount = to_decimal(self.amount, "amount")

    @property
    def is_shelter(self) -> bool:
        return self.expense_type in SHELTER_EXPENSE_TYPES

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        return cls(
            expense_type=data.get("expense_type"),
            amount=data.get("amount"),
            frequency=data.get("frequency"),
            description=data.get("description"),
            id=data.get("id"),
            verified=bool(data.get("verified", False)),
        )


@dataclass
class Asset:
    """A household resource; exempt assets never count toward asset limits."""

    asset_type: AssetType
    current_value: Decimal
    is_exempt: bool = False
    exemption_reason: Optional[str] = None
    description: Optional[str] = None
    id: Optional[str] = None
    verified: bool = False

    def __post_init__(self):
        self.asset_type = _enum(AssetType, self.asset_type, "asset_type")
        self.current_value = to_decimal(self.current_value, "current_value")

    @classmethod
    def from_dict(cls, data: dict) -> "Asset":
        return cls(
            asset_type=data.get("asset_type"),
            current_value=data.get("current_value"),
            is_exempt=bool(data.get("is_exempt", False)),
            exemption_reason=data.get("exemption_reason"),
            description=data.get("description"),
            id=data.get("id"),
            verified=bool(data.get("verified", False)),
        )


def load_records(cls, rows: list, name: str) -> list:
    """Build ``cls`` records from persisted rows, naming the failing row."""
    records = []
    for i, row in enumerate(rows or []):
        with field_context(f"{name}[{i}]"):
            records.append(row if isinstance(row, cls) else cls.from_dict(row))
    return records


def total_assets(assets: List[Asset]) -> Decimal:
    return sum((a.current_value for a in assets), ZERO)


def countable_assets(assets: List[Asset]) -> Decimal:
    return sum((a.current_value for a in assets if not a.is_exempt), ZERO)


@dataclass
class Household:
    """Everything the engine needs for one user, as loaded by the caller."""

    profile: UserProfile
    income_sources: List[IncomeSource] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    assets: List[Asset] = field(default_factory=list)
    household_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Household":
        """
        Build from the JSON document shape::

            {"household_id": ..., "profile": {...}, "income_sources": [...],
             "expenses": [...], "assets": [...]}
        """
        if not isinstance(data.get("profile"), dict):
            raise InvalidInput("profile object is required", field="profile")
        with field_context("profile"):
            profile = UserProfile.from_dict(data["profile"])
        return cls(
            profile=profile,
            income_sources=load_records(IncomeSource, data.get("income_sources"), "income_sources"),
            expenses=load_records(Expense, data.get("expenses"), "expenses"),
            assets=load_records(Asset, data.get("assets"), "assets"),
            household_id=data.get("household_id", profile.user_id),
        )
