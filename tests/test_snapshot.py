"""End-to-end tests for the eligibility snapshot builder."""

import dataclasses
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from benefits_eligibility.errors import (
    InsufficientData,
    InvalidInput,
    StaleConfiguration,
    UnsupportedState,
)
from benefits_eligibility.models import HouseholdMember, IncomeSource, UserProfile
from benefits_eligibility.snapshot import build_snapshot

from conftest import LAST_YEAR, NOW


@pytest.fixture
def snapshot(rules, family, wages, rent, savings):
    return build_snapshot(family, wages, rent, savings, NOW, rules=rules)


class TestReferenceHousehold:
    """CA family of three with one job and rent."""

    def test_totals(self, snapshot):
        assert snapshot.state == "CA"
        assert snapshot.user_id == "user-1"
        assert snapshot.total_gross_monthly_income == Decimal("2000.00")
        assert snapshot.total_net_monthly_income == Decimal("886.50")
        assert snapshot.total_monthly_expenses == Decimal("1200.00")
        assert snapshot.total_assets == Decimal("8500")
        assert snapshot.total_countable_assets == Decimal("500")

    def test_snap(self, snapshot):
        assert snapshot.snap_eligible
        assert snapshot.snap_gross_income_test
        assert snapshot.snap_net_income_test
        assert snapshot.snap_asset_test
        assert snapshot.snap_estimated_benefit == Decimal("519.05")

    def test_medicaid(self, snapshot):
        assert snapshot.medicaid_eligible
        assert snapshot.medicaid_category == "child"
        assert snapshot.medicaid_income_test
        assert snapshot.medicaid_asset_test

    def test_calculation_details(self, snapshot):
        details = snapshot.calculation_details
        assert details.fpl_monthly == Decimal("2220.83")
        assert details.gross_income_limit == Decimal("2887.08")
        assert details.standard_deduction == Decimal("209.00")
        assert details.earned_income_deduction == Decimal("400.00")
        assert details.shelter_deduction == Decimal("504.50")
        assert details.benefit_reduction == Decimal("265.95")
        assert details.rule_tables == {
            "snap": "CA-snap-2025-10-01",
            "medicaid": "CA-medicaid-2025-10-01",
        }
        assert details.warnings == ()

    def test_per_source_rows(self, snapshot):
        (row,) = snapshot.calculation_details.income_sources
        assert row["source_name"] == "Warehouse job"
        assert row["earned"]
        assert row["monthly_amount"] == Decimal("2000.00")

    def test_state_specific_data(self, snapshot):
        snap = snapshot.state_specific_data["snap"]
        medicaid = snapshot.state_specific_data["medicaid"]
        assert snap.program_name == "CalFresh"
        assert snap.income_limit == Decimal("2887.08")
        assert snap.effective_from == "2025-10-01"
        assert medicaid.program_name == "Medi-Cal"
        assert medicaid.income_limit == Decimal("5907.42")

    def test_previous_policy_year(self, rules, family, wages, rent, savings):
        snapshot = build_snapshot(family, wages, rent, savings, LAST_YEAR, rules=rules)
        assert snapshot.total_net_monthly_income == Decimal("894.00")
        assert snapshot.snap_estimated_benefit == Decimal("499.80")
        assert snapshot.calculation_details.rule_tables["snap"] == "CA-snap-2024-10-01"


class TestImmutability:
    """Snapshots are frozen copies of their inputs."""

    def test_frozen(self, snapshot):
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.snap_eligible = False

    def test_details_frozen(self, snapshot):
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.calculation_details.net_income = Decimal("0")

    def test_nested_details_read_only(self, snapshot):
        details = snapshot.calculation_details
        with pytest.raises(TypeError):
            details.medicaid["category"] = "adult"
        with pytest.raises(TypeError):
            details.rule_tables["snap"] = "other"
        with pytest.raises(TypeError):
            details.income_sources[0]["monthly_amount"] = Decimal("0")
        with pytest.raises(TypeError):
            details.household_members[0]["age"] = 99

    def test_state_specific_data_read_only(self, snapshot):
        with pytest.raises(TypeError):
            snapshot.state_specific_data["snap"] = None
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.state_specific_data["snap"].income_limit = Decimal("0")

    def test_later_profile_edits_do_not_leak(self, snapshot, family):
        family.household_composition[0].name = "Changed"
        members = snapshot.calculation_details.household_members
        assert members[0]["name"] == "Ana"


class TestDeterminism:
    """Same inputs and rule tables give the same content."""

    def test_same_inputs_same_fingerprint(self, rules, family, wages, rent, savings):
        first = build_snapshot(family, wages, rent, savings, NOW, rules=rules)
        later = build_snapshot(
            family, wages, rent, savings, NOW + timedelta(days=3), rules=rules
        )
        assert first.fingerprint == later.fingerprint
        assert first.to_json(include_timestamps=False) == later.to_json(include_timestamps=False)
        assert first.to_json() != later.to_json()

    def test_changed_income_changes_fingerprint(self, rules, family, wages, rent, savings):
        first = build_snapshot(family, wages, rent, savings, NOW, rules=rules)
        wages[0].amount = Decimal("2100")
        second = build_snapshot(family, wages, rent, savings, NOW, rules=rules)
        assert first.fingerprint != second.fingerprint

    def test_serialized_money_is_string(self, snapshot):
        data = snapshot.to_dict()
        assert data["snap_estimated_benefit"] == "519.05"
        assert data["calculated_at"] == "2026-01-15T12:00:00+00:00"
        assert data["calculation_details"]["income_sources"][0]["monthly_amount"] == "2000.00"


class TestFreshness:
    """expires_at = calculated_at + TTL."""

    def test_default_ttl(self, snapshot):
        assert snapshot.expires_at == NOW + timedelta(days=30)

    def test_custom_ttl(self, rules, family, wages, rent, savings):
        snapshot = build_snapshot(
            family, wages, rent, savings, NOW, rules=rules, ttl=timedelta(days=7)
        )
        assert snapshot.expires_at == NOW + timedelta(days=7)

    def test_is_fresh(self, snapshot):
        assert snapshot.is_fresh(NOW + timedelta(days=29))
        assert not snapshot.is_fresh(NOW + timedelta(days=30))

    def test_naive_timestamp_is_utc(self, rules, family, wages, rent, savings):
        snapshot = build_snapshot(
            family, wages, rent, savings, datetime(2026, 1, 15, 12, 0), rules=rules
        )
        assert snapshot.calculated_at == NOW
        assert snapshot.calculated_at.tzinfo is not None


class TestEdgeCases:
    """Households at the edges of the tests."""

    def test_no_income(self, rules, family, rent):
        snapshot = build_snapshot(family, [], rent, [], NOW, rules=rules)
        assert snapshot.total_gross_monthly_income == Decimal("0.00")
        assert snapshot.total_net_monthly_income == Decimal("0.00")
        # Full allotment for a household of three
        assert snapshot.snap_estimated_benefit == Decimal("785.00")

    def test_weekly_sources_sum_without_drift(self, rules, family):
        income = [
            IncomeSource(income_type="w2_employment", amount="100", frequency="weekly")
            for _ in range(3)
        ]
        snapshot = build_snapshot(family, income, [], [], NOW, rules=rules)
        # 3 * 100 * 52 / 12
        assert snapshot.total_gross_monthly_income == Decimal("1300.00")
        rows = snapshot.calculation_details.income_sources
        assert [row["monthly_amount"] for row in rows] == [Decimal("433.33")] * 3

    def test_missing_composition_warns(self, rules, caplog):
        profile = UserProfile(household_size=2, state="CA")
        with caplog.at_level(logging.WARNING, logger="benefits_eligibility.snapshot"):
            snapshot = build_snapshot(profile, [], [], [], NOW, rules=rules)
        assert "household_composition not supplied" in caplog.text
        (warning,) = snapshot.calculation_details.warnings
        assert "Medicaid category" in warning
        assert not snapshot.medicaid_eligible
        assert snapshot.medicaid_category is None

    def test_earned_deduction_ignores_unearned_income(self, rules, family):
        income = [
            IncomeSource(income_type="social_security", amount="1000", frequency="monthly"),
            IncomeSource(income_type="w2_employment", amount="1000", frequency="monthly"),
        ]
        snapshot = build_snapshot(family, income, [], [], NOW, rules=rules)
        assert snapshot.total_gross_monthly_income == Decimal("2000.00")
        assert snapshot.calculation_details.earned_income == Decimal("1000.00")
        assert snapshot.calculation_details.earned_income_deduction == Decimal("200.00")

    def test_composition_mismatch_warns(self, rules, family, wages, rent, savings, caplog):
        family.household_size = 4
        with caplog.at_level(logging.WARNING, logger="benefits_eligibility.snapshot"):
            snapshot = build_snapshot(family, wages, rent, savings, NOW, rules=rules)
        assert "household_size 4" in caplog.text
        assert snapshot.household_size == 4
        assert len(snapshot.calculation_details.warnings) == 1
        # Size 4 thresholds: (15650 + 3 * 5500) / 12
        assert snapshot.calculation_details.fpl_monthly == Decimal("2679.17")

    def test_elderly_member_raises_asset_limit(self, rules, wages, rent):
        profile = UserProfile(
            household_size=1,
            state="CA",
            household_composition=[HouseholdMember(name="Rosa", age=66, relationship="self")],
        )
        snapshot = build_snapshot(profile, [], rent, [], NOW, rules=rules)
        assert snapshot.calculation_details.asset_limit == Decimal("4500.00")
        assert snapshot.calculation_details.skipped_tests == ("gross_income_test",)
        assert snapshot.medicaid_category == "aged_disabled"

    def test_texas_adult_has_no_medicaid_category(self, rules):
        profile = UserProfile(
            household_size=1,
            state="TX",
            household_composition=[HouseholdMember(name="Sam", age=30, relationship="self")],
        )
        snapshot = build_snapshot(profile, [], [], [], NOW, rules=rules)
        assert not snapshot.medicaid_eligible
        assert snapshot.medicaid_category is None
        assert snapshot.medicaid_income_test is None
        assert snapshot.state_specific_data["snap"].program_name == "SNAP"


class TestFailures:
    """Failures name their kind and field; no partial snapshot is returned."""

    def test_missing_state(self, rules):
        profile = UserProfile(household_size=1, state=None)
        with pytest.raises(InvalidInput) as exc_info:
            build_snapshot(profile, [], [], [], NOW, rules=rules)
        assert exc_info.value.field == "profile.state"

    def test_unsupported_state(self, rules):
        profile = UserProfile(household_size=1, state="FL")
        with pytest.raises(UnsupportedState) as exc_info:
            build_snapshot(profile, [], [], [], NOW, rules=rules)
        assert exc_info.value.to_dict()["error"] == "unsupported_state"

    def test_stale_configuration(self, rules, family):
        with pytest.raises(StaleConfiguration):
            build_snapshot(
                family, [], [], [], datetime(2023, 5, 1, tzinfo=timezone.utc), rules=rules
            )

    def test_irregular_income_without_months(self, rules, family, wages):
        wages.append(
            IncomeSource(income_type="gig_work", amount=0, frequency="irregular", is_irregular=True)
        )
        with pytest.raises(InsufficientData) as exc_info:
            build_snapshot(family, wages, [], [], NOW, rules=rules)
        assert exc_info.value.field == "income_sources[1].irregular_months"

    def test_hourly_without_hours(self, rules, family):
        income = [IncomeSource(income_type="w2_employment", amount=15, frequency="hourly")]
        with pytest.raises(InvalidInput) as exc_info:
            build_snapshot(family, income, [], [], NOW, rules=rules)
        assert exc_info.value.field == "income_sources[0].hours_per_week"
