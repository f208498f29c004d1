"""Shared fixtures: packaged rule tables and a reference household."""

import json
from datetime import datetime, timezone

import pytest

from benefits_eligibility.models import (
    Asset,
    Expense,
    HouseholdMember,
    IncomeSource,
    UserProfile,
)
from benefits_eligibility.rules import DATA_DIR, RuleSet

# Inside FY2026 tables (2025-10-01 .. 2026-09-30)
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
# Inside FY2025 tables (2024-10-01 .. 2025-09-30)
LAST_YEAR = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def rules():
    return RuleSet.from_directory(DATA_DIR)


@pytest.fixture
def snap_table(rules):
    return rules.lookup("CA", "snap", NOW)


@pytest.fixture
def medicaid_table(rules):
    return rules.lookup("CA", "medicaid", NOW)


@pytest.fixture
def family():
    """Two working-age parents and one child in California."""
    return UserProfile(
        household_size=3,
        state="CA",
        household_composition=[
            HouseholdMember(name="Ana", age=34, relationship="self"),
            HouseholdMember(name="Luis", age=33, relationship="spouse"),
            HouseholdMember(name="Sofia", age=6, relationship="child"),
        ],
        user_id="user-1",
    )


@pytest.fixture
def wages():
    return [
        IncomeSource(
            income_type="w2_employment",
            amount="2000",
            frequency="monthly",
            source_name="Warehouse job",
        )
    ]


@pytest.fixture
def rent():
    return [Expense(expense_type="rent", amount="1200", frequency="monthly")]


@pytest.fixture
def savings():
    return [
        Asset(asset_type="savings_account", current_value="500"),
        Asset(
            asset_type="vehicle_primary",
            current_value="8000",
            is_exempt=True,
            exemption_reason="primary vehicle",
        ),
    ]


@pytest.fixture
def household_document():
    """The reference household as the web application would send it."""
    return {
        "household_id": "hh-1",
        "profile": {
            "user_id": "user-1",
            "household_size": 3,
            "state": "CA",
            "household_composition": [
                {"name": "Ana", "age": 34, "relationship": "self"},
                {"name": "Luis", "age": 33, "relationship": "spouse"},
                {"name": "Sofia", "age": 6, "relationship": "child"},
            ],
        },
        "income_sources": [
            {"income_type": "w2_employment", "amount": 2000, "frequency": "monthly",
             "source_name": "Warehouse job"},
        ],
        "expenses": [
            {"expense_type": "rent", "amount": 1200, "frequency": "monthly"},
        ],
        "assets": [
            {"asset_type": "savings_account", "current_value": 500},
            {"asset_type": "vehicle_primary", "current_value": 8000, "is_exempt": True},
        ],
    }


@pytest.fixture
def snap_table_doc():
    """Factory for a minimal SNAP rule-table document."""

    def make(**overrides):
        doc = json.loads((DATA_DIR / "CA_snap_2025-10-01.json").read_text())
        doc.update(overrides)
        return doc

    return make
