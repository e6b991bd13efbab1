"""Month status tracking for a unit's yearly dues ledger.

Determines which fiscal months are unpaid, partially paid or over-paid, and
which month a new payment should start from.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Sequence

from src.services.money import (
    MONTHS_PER_YEAR,
    calendar_to_fiscal_month,
    fiscal_year_for_date,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthlyPaymentEntry:
    """Paid amount for one fiscal month of a unit's dues year (minor units)."""

    month: int
    paid_amount: int = 0
    payment_date: date | None = None
    transaction_ref: str | None = None


class MonthState(str, Enum):
    """Payment state of a single month."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERPAID = "overpaid"


@dataclass(frozen=True)
class MonthStatus:
    """Derived status of one month against the scheduled amount."""

    month: int
    paid_amount: int
    outstanding: int
    state: MonthState


def paid_by_month(ledger: Iterable[MonthlyPaymentEntry]) -> dict[int, int]:
    """Map every month 1..12 to its paid amount; absent months count as 0.

    Entries with a month outside 1..12 are ignored. If a month appears more
    than once, amounts are summed.
    """
    paid = {month: 0 for month in range(1, MONTHS_PER_YEAR + 1)}
    for entry in ledger:
        if entry.month in paid:
            paid[entry.month] += entry.paid_amount
    return paid


def month_statuses(
    ledger: Iterable[MonthlyPaymentEntry], scheduled_amount: int
) -> list[MonthStatus]:
    """Return the status of all twelve months, ordered by month."""
    statuses = []
    for month, paid in sorted(paid_by_month(ledger).items()):
        if paid <= 0:
            state = MonthState.UNPAID
        elif paid < scheduled_amount:
            state = MonthState.PARTIAL
        elif paid == scheduled_amount:
            state = MonthState.PAID
        else:
            state = MonthState.OVERPAID
        statuses.append(
            MonthStatus(
                month=month,
                paid_amount=paid,
                outstanding=max(scheduled_amount - paid, 0),
                state=state,
            )
        )
    return statuses


def inconsistent_months(
    ledger: Iterable[MonthlyPaymentEntry], scheduled_amount: int
) -> list[int]:
    """Months whose paid amount exceeds the scheduled amount."""
    return [
        status.month
        for status in month_statuses(ledger, scheduled_amount)
        if status.state == MonthState.OVERPAID
    ]


def first_unpaid_month(
    ledger: Sequence[MonthlyPaymentEntry],
    scheduled_amount: int,
    viewed_year: int,
    explicit_start_month: int | None = None,
    current_calendar_month: int | None = None,
    current_year: int | None = None,
    fiscal_year_start_month: int = 1,
) -> int:
    """Find the month a new payment should start covering.

    Args:
        ledger: Month entries for the viewed year (missing months are unpaid)
        scheduled_amount: Monthly dues in minor units
        viewed_year: Fiscal year the ledger belongs to
        explicit_start_month: Caller-forced month, returned as is
        current_calendar_month: Today's calendar month (default: from today)
        current_year: Today's fiscal year (default: from today)
        fiscal_year_start_month: Calendar month of fiscal month 1

    Returns:
        Fiscal month number 1..12
    """
    if explicit_start_month is not None:
        return explicit_start_month

    for month, paid in sorted(paid_by_month(ledger).items()):
        if paid < scheduled_amount:
            return month

    today = date.today()
    if current_year is None:
        current_year = fiscal_year_for_date(today, fiscal_year_start_month)
    if current_calendar_month is None:
        current_calendar_month = today.month

    if viewed_year != current_year:
        logger.debug("All months paid for past/future year %s, defaulting to month 1", viewed_year)
        return 1

    return calendar_to_fiscal_month(current_calendar_month, fiscal_year_start_month)


__all__ = [
    "MonthlyPaymentEntry",
    "MonthState",
    "MonthStatus",
    "paid_by_month",
    "month_statuses",
    "inconsistent_months",
    "first_unpaid_month",
]
