"""
Normalizer: convert any income or expense record to a monthly figure.

Conversion factors:
    hourly        amount * hours_per_week * 52 / 12
    weekly        * 52 / 12
    biweekly      * 26 / 12
    semi_monthly  * 2
    monthly       * 1
    quarterly     * 4 / 12
    annual        / 12
    irregular     sum of recorded months / number of distinct months

Self-employment business expenses come off the per-period amount before
conversion, and the result never goes below zero.
"""

from decimal import Decimal
from typing import Union

from .errors import InsufficientData, InvalidInput
from .models import Expense, IncomeFrequency, IncomeSource
from .money import ZERO, to_decimal

MONTHLY_FACTORS = {
    IncomeFrequency.WEEKLY: Decimal(52) / Decimal(12),
    IncomeFrequency.BIWEEKLY: Decimal(26) / Decimal(12),
    IncomeFrequency.SEMI_MONTHLY: Decimal(2),
    IncomeFrequency.MONTHLY: Decimal(1),
    IncomeFrequency.QUARTERLY: Decimal(4) / Decimal(12),
    IncomeFrequency.ANNUAL: Decimal(1) / Decimal(12),
}

WEEKS_PER_MONTH = MONTHLY_FACTORS[IncomeFrequency.WEEKLY]


def irregular_monthly_average(source: IncomeSource) -> Decimal:
    """
    Average monthly income over the months actually recorded.

    Several entries for the same month are summed into that month.
    """
    if not source.irregular_months:
        raise InsufficientData(
            "irregular income needs at least one recorded month",
            field="irregular_months",
        )
    total = sum((m.amount for m in source.irregular_months), ZERO)
    distinct_months = len({m.month for m in source.irregular_months})
    return total / Decimal(distinct_months)


def _income_monthly_exact(source: IncomeSource) -> Decimal:
    business_expenses = to_decimal(source.business_expenses, "business_expenses")

    if source.uses_irregular_months:
        per_month = irregular_monthly_average(source) - business_expenses
        return max(ZERO, per_month)

    amount = to_decimal(source.amount, "amount")

    if source.frequency is IncomeFrequency.HOURLY:
        if source.hours_per_week is None or source.hours_per_week <= 0:
            raise InvalidInput(
                "hourly income requires hours_per_week > 0",
                field="hours_per_week",
            )
        # Business expenses for hourly work are treated as weekly
        per_week = amount * source.hours_per_week - business_expenses
        return max(ZERO, per_week) * WEEKS_PER_MONTH

    per_period = max(ZERO, amount - business_expenses)
    return per_period * MONTHLY_FACTORS[source.frequency]


def _expense_monthly_exact(expense: Expense) -> Decimal:
    factor = MONTHLY_FACTORS.get(expense.frequency)
    if factor is None:
        raise InvalidInput(
            f"{expense.frequency.value!r} is not a valid expense frequency",
            field="frequency",
        )
    return to_decimal(expense.amount, "amount") * factor


def monthly_amount(record: Union[IncomeSource, Expense]) -> Decimal:
    """
    Monthly figure for an income source or expense.

    The result is unrounded so it stays linear in the amount and sums
    without drift; callers round with ``round_cents`` where they store it.

    Args:
        record: IncomeSource or Expense

    Returns:
        Decimal monthly amount, never negative

    Raises:
        InvalidInput: hourly income without hours_per_week, bad frequency
        InsufficientData: irregular income with no recorded months
    """
    if isinstance(record, IncomeSource):
        return _income_monthly_exact(record)
    if isinstance(record, Expense):
        return _expense_monthly_exact(record)
    raise InvalidInput(
        f"expected IncomeSource or Expense, got {type(record).__name__}",
        field="record",
    )
