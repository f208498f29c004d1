"""
Runners: build snapshots for many households at once.

Used for regression checks after a rule-table update and for batch
recalculation. Each household is all-or-nothing; a household whose
inputs fail validation gets an ``error`` row instead of stopping the batch.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Union

import pandas as pd
from tqdm import tqdm

from ..errors import EligibilityError
from ..models import Household
from ..rules import RuleSet
from ..snapshot import build_snapshot

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    "household_id",
    "state",
    "household_size",
    "gross_monthly_income",
    "net_monthly_income",
    "countable_assets",
    "snap_eligible",
    "snap_estimated_benefit",
    "medicaid_eligible",
    "medicaid_category",
    "fingerprint",
    "error",
    "error_field",
]


def _row_for(household: Household, rules: RuleSet, now: Optional[datetime]) -> dict:
    snapshot = build_snapshot(
        household.profile,
        household.income_sources,
        household.expenses,
        household.assets,
        now,
        rules=rules,
    )
    benefit = snapshot.snap_estimated_benefit
    return {
        "household_id": household.household_id,
        "state": snapshot.state,
        "household_size": snapshot.household_size,
        "gross_monthly_income": float(snapshot.total_gross_monthly_income),
        "net_monthly_income": float(snapshot.total_net_monthly_income),
        "countable_assets": float(snapshot.total_countable_assets),
        "snap_eligible": snapshot.snap_eligible,
        "snap_estimated_benefit": float(benefit) if benefit is not None else None,
        "medicaid_eligible": snapshot.medicaid_eligible,
        "medicaid_category": snapshot.medicaid_category,
        "fingerprint": snapshot.fingerprint,
        "error": None,
        "error_field": None,
    }


def run_snapshots(
    households: Iterable[Union[Household, dict]],
    rules: RuleSet,
    now: Optional[datetime] = None,
    show_progress: bool = True,
) -> pd.DataFrame:
    """
    Build a snapshot for each household and tabulate the headline results.

    Args:
        households: Household objects or their JSON document dicts
        rules: Rule tables
        now: Calculation timestamp shared by every household
        show_progress: Show progress bar

    Returns:
        DataFrame with one row per household (RESULT_COLUMNS)
    """
    households = list(households)
    iterator = (
        tqdm(households, total=len(households), desc="Snapshots")
        if show_progress
        else households
    )

    results = []
    for i, item in enumerate(iterator):
        household_id = item.household_id if isinstance(item, Household) else item.get("household_id")
        try:
            household = item if isinstance(item, Household) else Household.from_dict(item)
            results.append(_row_for(household, rules, now))
        except EligibilityError as e:
            logger.warning(f"Household {household_id if household_id is not None else i}: {e}")
            row = dict.fromkeys(RESULT_COLUMNS)
            row.update(household_id=household_id, error=e.kind, error_field=e.field)
            results.append(row)

    return pd.DataFrame(results, columns=RESULT_COLUMNS)
