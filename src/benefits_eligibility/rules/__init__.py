"""
Versioned, effective-dated rule tables.

One JSON document per (state, program, effective period) lives under
``rules/data/``. Thresholds are data: a new policy year is a new file,
never a code change. The engine receives a ``RuleSet`` explicitly and
picks the table whose period covers the calculation date.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..errors import (
    InvalidInput,
    StaleConfiguration,
    UnsupportedProgram,
    UnsupportedState,
)
from ..money import to_decimal

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

PROGRAMS = ("snap", "medicaid")

REQUIRED_KEYS = {
    "snap": (
        "gross_income_limit_pct",
        "net_income_limit_pct",
        "standard_deduction",
        "earned_income_deduction_rate",
        "shelter_income_share",
        "shelter_deduction_cap",
        "medical_deduction_floor",
        "asset_limit",
        "asset_limit_elderly_disabled",
        "max_allotment",
        "max_allotment_additional",
        "benefit_reduction_rate",
        "elderly_age",
    ),
    "medicaid": (
        "aged_age",
        "child_age_limit",
        "categories",
        "asset_limit",
    ),
}

# A household meeting the key condition always meets each listed condition,
# so the key must come before them in a category list
IMPLIED_CONDITIONS = {
    "parent_caretaker": ("child", "adult"),
}


@dataclass(frozen=True)
class RuleTable:
    """Parameters for one program in one state over one effective period."""

    state: str
    program: str
    program_name: str
    effective_from: date
    effective_to: date
    fpl_base: Decimal
    fpl_per_additional: Decimal
    params: dict = field(default_factory=dict, compare=False)
    special_rules: Tuple[str, ...] = ()
    source: str = ""
    path: Optional[str] = None

    @property
    def version(self) -> str:
        return f"{self.state}-{self.program}-{self.effective_from.isoformat()}"

    def covers(self, on: date) -> bool:
        return self.effective_from <= on <= self.effective_to

    def _field(self, key: str) -> str:
        return f"{self.path or self.version}:{key}"

    def fpl_annual(self, household_size: int) -> Decimal:
        return self.fpl_base + self.fpl_per_additional * (household_size - 1)

    def fpl_monthly(self, household_size: int) -> Decimal:
        """Federal poverty level per month, unrounded."""
        return self.fpl_annual(household_size) / Decimal(12)

    def percent_of_fpl(self, pct: Decimal, household_size: int) -> Decimal:
        return self.fpl_monthly(household_size) * pct / Decimal(100)

    def number(self, key: str) -> Decimal:
        return to_decimal(self.params.get(key), self._field(key))

    def optional_number(self, key: str) -> Optional[Decimal]:
        if self.params.get(key) is None:
            return None
        return self.number(key)

    def integer(self, key: str) -> int:
        value = self.params.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInput(f"expected an integer, got {value!r}", field=self._field(key))
        return value

    def by_household_size(self, key: str, household_size: int) -> Decimal:
        """
        Look up a household-size-indexed amount.

        Sizes beyond the largest listed size use the largest entry, plus
        ``<key>_additional`` per extra person when the table defines it.
        """
        table = self.params.get(key)
        if not isinstance(table, dict) or not table:
            raise InvalidInput("expected a household-size table", field=self._field(key))
        sizes = sorted(int(k) for k in table)
        if household_size in sizes:
            return to_decimal(table[str(household_size)], self._field(f"{key}.{household_size}"))
        largest = sizes[-1]
        if household_size < sizes[0]:
            raise InvalidInput(
                f"no entry for household size {household_size}",
                field=self._field(key),
            )
        value = to_decimal(table[str(largest)], self._field(f"{key}.{largest}"))
        additional = self.params.get(f"{key}_additional")
        if additional is not None:
            extra = to_decimal(additional, self._field(f"{key}_additional"))
            value += extra * (household_size - largest)
        return value

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "program": self.program,
            "program_name": self.program_name,
            "version": self.version,
            "effective_from": self.effective_from.isoformat(),
            "effective_to": self.effective_to.isoformat(),
            "source": self.source,
        }


def _parse_date(value, field_name: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"expected ISO date, got {value!r}", field=field_name)


def _check_category_order(categories: list, where: str) -> None:
    """Reject a category that an earlier, broader category always wins over."""
    seen = set()
    for i, entry in enumerate(categories):
        when = entry.get("when")
        shadowing = seen.intersection(IMPLIED_CONDITIONS.get(when, ()))
        if shadowing:
            raise InvalidInput(
                f"category {entry.get('category')!r} can never be selected; "
                f"{sorted(shadowing)[0]!r} is listed before it",
                field=f"{where}:categories[{i}]",
            )
        seen.add(when)


def parse_rule_table(data: dict, path: Optional[str] = None) -> RuleTable:
    """Validate one rule-table document and build a RuleTable."""
    where = path or "<rule table>"

    for key in ("state", "program", "program_name", "effective_from", "effective_to", "fpl"):
        if key not in data:
            raise InvalidInput("missing required key", field=f"{where}:{key}")

    program = data["program"]
    if program not in REQUIRED_KEYS:
        raise InvalidInput(f"unknown program {program!r}", field=f"{where}:program")
    for key in REQUIRED_KEYS[program]:
        if key not in data:
            raise InvalidInput("missing required key", field=f"{where}:{key}")

    if program == "medicaid":
        _check_category_order(data["categories"], where)

    effective_from = _parse_date(data["effective_from"], f"{where}:effective_from")
    effective_to = _parse_date(data["effective_to"], f"{where}:effective_to")
    if effective_to < effective_from:
        raise InvalidInput("effective_to is before effective_from", field=f"{where}:effective_to")

    fpl = data["fpl"]
    return RuleTable(
        state=data["state"],
        program=program,
        program_name=data["program_name"],
        effective_from=effective_from,
        effective_to=effective_to,
        fpl_base=to_decimal(fpl.get("base"), f"{where}:fpl.base"),
        fpl_per_additional=to_decimal(fpl.get("per_additional"), f"{where}:fpl.per_additional"),
        params=data,
        special_rules=tuple(data.get("special_rules", [])),
        source=data.get("source", ""),
        path=path,
    )


class RuleSet:
    """All rule tables available to the engine, indexed by state and program."""

    def __init__(self, tables: Iterable[RuleTable]):
        self._tables: Dict[Tuple[str, str], List[RuleTable]] = {}
        for table in tables:
            self._tables.setdefault((table.state, table.program), []).append(table)

        for key, periods in self._tables.items():
            periods.sort(key=lambda t: t.effective_from)
            for earlier, later in zip(periods, periods[1:]):
                if later.effective_from <= earlier.effective_to:
                    raise InvalidInput(
                        f"effective period overlaps {earlier.version}",
                        field=later.path or later.version,
                    )

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "RuleSet":
        """Load every ``*.json`` rule table in a directory."""
        path = Path(path)
        if not path.is_dir():
            raise InvalidInput("rule directory not found", field=str(path))
        tables = []
        for file in sorted(path.glob("*.json")):
            try:
                data = json.loads(file.read_text())
            except json.JSONDecodeError as e:
                raise InvalidInput(f"invalid JSON: {e}", field=str(file))
            tables.append(parse_rule_table(data, path=str(file)))
        rule_set = cls(tables)
        logger.info(f"Loaded {len(tables)} rule tables from {path}")
        return rule_set

    @property
    def tables(self) -> List[RuleTable]:
        return [t for key in sorted(self._tables) for t in self._tables[key]]

    @property
    def states(self) -> List[str]:
        return sorted({state for state, _ in self._tables})

    def programs_for(self, state: str) -> List[str]:
        return sorted(program for s, program in self._tables if s == state)

    def lookup(self, state: str, program: str, on: Union[date, datetime]) -> RuleTable:
        """
        Return the table for (state, program) in effect on a date.

        Raises:
            UnsupportedState: no table for the state under any program
            UnsupportedProgram: state known, program not
            StaleConfiguration: no period covers the date
        """
        if isinstance(on, datetime):
            on = on.date()
        if state not in self.states:
            raise UnsupportedState(f"no rule tables for state {state!r}", field="state")
        periods = self._tables.get((state, program))
        if not periods:
            raise UnsupportedProgram(
                f"no {program!r} rule tables for state {state}", field="program"
            )
        for table in periods:
            if table.covers(on):
                logger.debug(f"Using rule table {table.version} for {on.isoformat()}")
                return table
        raise StaleConfiguration(
            f"no {program} table for {state} covers {on.isoformat()}",
            field="calculated_at",
        )


def load_rules(rules_dir: Optional[Union[str, Path]] = None) -> RuleSet:
    """Load the rule set from ``rules_dir``, settings, or the packaged data."""
    if rules_dir is None:
        from ..config import get_settings

        rules_dir = get_settings().rules_dir or DATA_DIR
    return RuleSet.from_directory(rules_dir)
