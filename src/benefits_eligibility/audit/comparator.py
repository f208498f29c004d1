"""
Comparator: diff two eligibility snapshots field by field.

Snapshots are flattened to dotted field names (``calculation_details.net_income``)
and compared with a monetary tolerance, so a policy-year update or an
edited income record shows up as a short list of changed figures.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from ..snapshot import TIMESTAMP_FIELDS, EligibilitySnapshot

SnapshotLike = Union[EligibilitySnapshot, dict]


@dataclass
class DiffConfig:
    """Configuration for snapshot comparison."""

    # Absolute tolerance in dollars for monetary fields
    money_tolerance: float = 0.0

    # Per-field overrides, keyed by dotted field name
    field_tolerances: Dict[str, float] = field(default_factory=dict)

    ignore_timestamps: bool = True

    def tolerance_for(self, name: str) -> float:
        return self.field_tolerances.get(name, self.money_tolerance)


@dataclass
class FieldChange:
    """One field whose value differs between two snapshots."""

    field: str
    before: Any
    after: Any
    difference: Optional[float] = None
    pct_difference: Optional[float] = None


@dataclass
class SnapshotDiff:
    """Result of comparing two snapshots."""

    fields_compared: int
    changes: List[FieldChange]
    config: DiffConfig
    before_fingerprint: Optional[str] = None
    after_fingerprint: Optional[str] = None

    @property
    def identical(self) -> bool:
        return not self.changes

    def summary(self) -> Dict[str, Any]:
        """Generate summary statistics."""
        return {
            "fields_compared": self.fields_compared,
            "fields_changed": len(self.changes),
            "identical": self.identical,
            "changed_fields": [c.field for c in self.changes],
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "field": c.field,
                    "before": c.before,
                    "after": c.after,
                    "difference": c.difference,
                    "pct_difference": c.pct_difference,
                }
                for c in self.changes
            ],
            columns=["field", "before", "after", "difference", "pct_difference"],
        )

    def detailed_report(self) -> str:
        """Generate detailed text report."""
        lines = [
            "=" * 70,
            "Eligibility Snapshot Comparison",
            "=" * 70,
            f"Fields compared: {self.fields_compared:,}",
            f"Fields changed:  {len(self.changes):,}",
            "",
        ]

        if self.identical:
            lines.append("  Snapshots are identical (excluding timestamps)")
        else:
            numeric = [c for c in self.changes if c.difference is not None]
            other = [c for c in self.changes if c.difference is None]
            if numeric:
                lines.append("Changed amounts (largest first):")
                lines.append("-" * 40)
                for c in sorted(numeric, key=lambda c: abs(c.difference), reverse=True):
                    lines.append(
                        f"  {c.field}: {c.before} -> {c.after} (diff {c.difference:+.2f})"
                    )
                lines.append("")
            if other:
                lines.append("Changed values:")
                lines.append("-" * 40)
                for c in other:
                    lines.append(f"  {c.field}: {c.before!r} -> {c.after!r}")
                lines.append("")

        lines.append("=" * 70)
        return "\n".join(lines)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(Decimal(value))
        except InvalidOperation:
            return None
    return None


def flatten_snapshot(snapshot: SnapshotLike, ignore_timestamps: bool = True) -> Dict[str, Any]:
    """Flatten a snapshot (object or serialized dict) to dotted field names."""
    data = snapshot.to_dict() if isinstance(snapshot, EligibilitySnapshot) else dict(snapshot)
    if ignore_timestamps:
        for name in TIMESTAMP_FIELDS:
            data.pop(name, None)
    flat = pd.json_normalize(data, sep=".")
    records = flat.to_dict(orient="records")
    return records[0] if records else {}


class SnapshotComparator:
    """Compare two eligibility snapshots."""

    def __init__(self, config: Optional[DiffConfig] = None):
        self.config = config or DiffConfig()

    def compare(self, before: SnapshotLike, after: SnapshotLike) -> SnapshotDiff:
        """
        Compare two snapshots.

        Args:
            before: Earlier snapshot (object or ``to_dict`` output)
            after: Later snapshot

        Returns:
            SnapshotDiff listing every changed field
        """
        left = flatten_snapshot(before, self.config.ignore_timestamps)
        right = flatten_snapshot(after, self.config.ignore_timestamps)
        names = sorted(set(left) | set(right))

        changes = []
        for name in names:
            change = self._compare_field(name, left.get(name), right.get(name))
            if change is not None:
                changes.append(change)

        return SnapshotDiff(
            fields_compared=len(names),
            changes=changes,
            config=self.config,
            before_fingerprint=_fingerprint(before),
            after_fingerprint=_fingerprint(after),
        )

    def _compare_field(self, name: str, before: Any, after: Any) -> Optional[FieldChange]:
        """Compare a single field."""
        left = _as_number(before)
        right = _as_number(after)

        if left is not None and right is not None:
            if np.isclose(left, right, rtol=0.0, atol=self.config.tolerance_for(name)):
                return None
            diff = right - left
            pct_diff = (diff / left) * 100 if left != 0 else None
            return FieldChange(name, before, after, difference=diff, pct_difference=pct_diff)

        if before == after:
            return None
        return FieldChange(name, before, after)


def _fingerprint(snapshot: SnapshotLike) -> Optional[str]:
    if isinstance(snapshot, EligibilitySnapshot):
        return snapshot.fingerprint
    return None
