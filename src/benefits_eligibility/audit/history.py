"""Snapshot history: snapshots are superseded, never replaced."""

from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from ..snapshot import EligibilitySnapshot

HISTORY_COLUMNS = [
    "calculated_at",
    "expires_at",
    "state",
    "household_size",
    "gross_monthly_income",
    "net_monthly_income",
    "snap_eligible",
    "snap_estimated_benefit",
    "medicaid_eligible",
    "medicaid_category",
    "fingerprint",
    "changed",
]


def latest_snapshot(snapshots: Iterable[EligibilitySnapshot]) -> Optional[EligibilitySnapshot]:
    """Most recent snapshot by ``calculated_at``, or None."""
    return max(snapshots, key=lambda s: s.calculated_at, default=None)


def latest_fresh_snapshot(
    snapshots: Iterable[EligibilitySnapshot], now: Optional[datetime] = None
) -> Optional[EligibilitySnapshot]:
    """Most recent snapshot if it has not expired; otherwise None."""
    latest = latest_snapshot(snapshots)
    if latest is not None and latest.is_fresh(now):
        return latest
    return None


def snapshot_history(snapshots: Iterable[EligibilitySnapshot]) -> pd.DataFrame:
    """
    Tabulate snapshots oldest-first for trend display.

    ``changed`` is True where the content differs from the previous
    snapshot (the first snapshot is always a change).
    """
    rows = []
    for s in snapshots:
        benefit = s.snap_estimated_benefit
        rows.append({
            "calculated_at": s.calculated_at,
            "expires_at": s.expires_at,
            "state": s.state,
            "household_size": s.household_size,
            "gross_monthly_income": float(s.total_gross_monthly_income),
            "net_monthly_income": float(s.total_net_monthly_income),
            "snap_eligible": s.snap_eligible,
            "snap_estimated_benefit": float(benefit) if benefit is not None else None,
            "medicaid_eligible": s.medicaid_eligible,
            "medicaid_category": s.medicaid_category,
            "fingerprint": s.fingerprint,
        })

    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS[:-1])
    df = df.sort_values("calculated_at", kind="stable").reset_index(drop=True)
    df["changed"] = df["fingerprint"] != df["fingerprint"].shift(1)
    return df
