"""Tests for effective-dated rule tables."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from benefits_eligibility.errors import (
    InvalidInput,
    StaleConfiguration,
    UnsupportedProgram,
    UnsupportedState,
)
from benefits_eligibility.money import round_cents
from benefits_eligibility.rules import DATA_DIR, RuleSet, load_rules, parse_rule_table

from conftest import LAST_YEAR, NOW


class TestPackagedRules:
    """The packaged rule set covers CA, TX and NY for SNAP and Medicaid."""

    def test_states(self, rules):
        assert rules.states == ["CA", "NY", "TX"]

    def test_programs(self, rules):
        for state in rules.states:
            assert rules.programs_for(state) == ["medicaid", "snap"]

    def test_two_periods_per_program(self, rules):
        assert len(rules.tables) == 12

    def test_load_rules_defaults_to_packaged(self):
        assert load_rules().states == ["CA", "NY", "TX"]

    def test_program_names(self, rules):
        assert rules.lookup("CA", "snap", NOW).program_name == "CalFresh"
        assert rules.lookup("CA", "medicaid", NOW).program_name == "Medi-Cal"


class TestLookup:
    """Table selection by state, program and date."""

    def test_current_period(self, rules):
        assert rules.lookup("CA", "snap", NOW).version == "CA-snap-2025-10-01"

    def test_previous_period(self, rules):
        assert rules.lookup("CA", "snap", LAST_YEAR).version == "CA-snap-2024-10-01"

    def test_period_boundaries_inclusive(self, rules):
        assert rules.lookup("TX", "snap", date(2025, 9, 30)).version == "TX-snap-2024-10-01"
        assert rules.lookup("TX", "snap", date(2025, 10, 1)).version == "TX-snap-2025-10-01"

    def test_datetime_accepted(self, rules):
        when = datetime(2025, 10, 1, 0, 0, tzinfo=timezone.utc)
        assert rules.lookup("NY", "medicaid", when).effective_from == date(2025, 10, 1)

    def test_unsupported_state(self, rules):
        with pytest.raises(UnsupportedState) as exc_info:
            rules.lookup("FL", "snap", NOW)
        assert exc_info.value.field == "state"

    def test_unsupported_program(self, rules):
        with pytest.raises(UnsupportedProgram):
            rules.lookup("CA", "wic", NOW)

    def test_no_period_covers_date(self, rules):
        with pytest.raises(StaleConfiguration):
            rules.lookup("CA", "snap", date(2023, 1, 1))

    def test_future_date_is_stale(self, rules):
        with pytest.raises(StaleConfiguration):
            rules.lookup("CA", "snap", date(2030, 1, 1))


class TestRuleTable:
    """Household-size lookups and FPL arithmetic."""

    def test_fpl_monthly(self, snap_table):
        # (15650 + 2 * 5500) / 12
        assert round_cents(snap_table.fpl_monthly(3)) == Decimal("2220.83")

    def test_percent_of_fpl(self, snap_table):
        assert round_cents(snap_table.percent_of_fpl(Decimal(130), 3)) == Decimal("2887.08")

    def test_size_in_table(self, snap_table):
        assert snap_table.by_household_size("standard_deduction", 4) == Decimal("223")

    def test_size_beyond_table_uses_largest(self, snap_table):
        assert snap_table.by_household_size("standard_deduction", 9) == Decimal("299")

    def test_size_beyond_table_adds_increment(self, snap_table):
        # 1789 + 2 * 218
        assert snap_table.by_household_size("max_allotment", 10) == Decimal("2225")

    def test_to_dict(self, snap_table):
        data = snap_table.to_dict()
        assert data["version"] == "CA-snap-2025-10-01"
        assert data["effective_to"] == "2026-09-30"


class TestLoading:
    """Loading rule tables from a directory."""

    def test_custom_directory(self, tmp_path, snap_table_doc):
        doc = snap_table_doc(state="NV", program_name="Nevada SNAP")
        (tmp_path / "nv.json").write_text(json.dumps(doc))
        rules = RuleSet.from_directory(tmp_path)
        assert rules.states == ["NV"]
        assert rules.lookup("NV", "snap", NOW).program_name == "Nevada SNAP"

    def test_overlapping_periods_rejected(self, tmp_path, snap_table_doc):
        (tmp_path / "a.json").write_text(json.dumps(snap_table_doc()))
        (tmp_path / "b.json").write_text(json.dumps(snap_table_doc(effective_from="2026-01-01")))
        with pytest.raises(InvalidInput) as exc_info:
            RuleSet.from_directory(tmp_path)
        assert "overlaps" in exc_info.value.message

    def test_invalid_json(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        with pytest.raises(InvalidInput) as exc_info:
            RuleSet.from_directory(tmp_path)
        assert exc_info.value.field.endswith("broken.json")

    def test_missing_key_named(self, snap_table_doc):
        doc = snap_table_doc()
        del doc["shelter_deduction_cap"]
        with pytest.raises(InvalidInput) as exc_info:
            parse_rule_table(doc, path="ca.json")
        assert exc_info.value.field == "ca.json:shelter_deduction_cap"

    def test_reversed_period_rejected(self, snap_table_doc):
        doc = snap_table_doc(effective_from="2026-10-01", effective_to="2026-01-01")
        with pytest.raises(InvalidInput):
            parse_rule_table(doc)

    def test_unknown_program_rejected(self, snap_table_doc):
        with pytest.raises(InvalidInput):
            parse_rule_table(snap_table_doc(program="tanf"))

    def test_missing_directory(self, tmp_path):
        with pytest.raises(InvalidInput):
            RuleSet.from_directory(tmp_path / "nope")

    def test_unreachable_category_rejected(self):
        doc = json.loads((DATA_DIR / "TX_medicaid_2025-10-01.json").read_text())
        doc["categories"] = [
            {"category": "child", "when": "child", "income_limit_pct": 201},
            {"category": "parent_caretaker", "when": "parent_caretaker", "income_limit_pct": 15},
        ]
        with pytest.raises(InvalidInput) as exc_info:
            parse_rule_table(doc, path="tx.json")
        assert exc_info.value.field == "tx.json:categories[1]"
        assert "never be selected" in exc_info.value.message
