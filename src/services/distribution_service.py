"""Distribution of an allocation plan onto concrete dues months.

Walks forward from the start month, tops up each month that is not fully paid
and skips months that already are, consuming one plan slot per month topped up.
Also renders the human-readable period description used on transactions.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from src.services.allocation_service import AllocationPlan
from src.services.money import (
    calendar_year_for,
    fiscal_to_calendar_month,
    short_month_name,
    wrap_month,
    year_offset_for,
)
from src.services.month_status_service import MonthlyPaymentEntry, paid_by_month

logger = logging.getLogger(__name__)

CREDIT_ONLY_DESCRIPTION = "credit balance addition"


@dataclass(frozen=True)
class MonthMutation:
    """Amount to add to one month; year_offset > 0 means a following fiscal year."""

    month: int
    amount_to_add: int
    resulting_paid_amount: int
    year_offset: int = 0


@dataclass(frozen=True)
class DistributionResult:
    """Concrete month mutations produced from a plan."""

    month_mutations: tuple[MonthMutation, ...]
    description: str
    unapplied_amount: int = 0


def describe_months(
    months: Sequence[tuple[int, int]],
    fiscal_year: int | None = None,
    fiscal_year_start_month: int = 1,
) -> str:
    """Render fiscal months as a compact label grouped by calendar year.

    Args:
        months: (year_offset, fiscal_month) pairs
        fiscal_year: Fiscal year of offset 0; without it no year is shown
        fiscal_year_start_month: Calendar month of fiscal month 1

    Returns:
        e.g. "Nov, Dec 2025; Jan 2026", or "credit balance addition" when empty
    """
    if not months:
        return CREDIT_ONLY_DESCRIPTION

    groups: list[tuple[int | None, list[str]]] = []
    for year_offset, fiscal_month in sorted(months):
        calendar_month = fiscal_to_calendar_month(fiscal_month, fiscal_year_start_month)
        if fiscal_year is None:
            calendar_year = None
        else:
            calendar_year = calendar_year_for(
                fiscal_year + year_offset, fiscal_month, fiscal_year_start_month
            )
        if groups and groups[-1][0] == calendar_year:
            groups[-1][1].append(short_month_name(calendar_month))
        else:
            groups.append((calendar_year, [short_month_name(calendar_month)]))

    parts = []
    for calendar_year, names in groups:
        label = ", ".join(names)
        parts.append(f"{label} {calendar_year}" if calendar_year is not None else label)
    return "; ".join(parts)


class DistributionService:
    """Maps allocation plan slots onto months that still owe dues."""

    def distribute(
        self,
        plan: AllocationPlan,
        ledger: Sequence[MonthlyPaymentEntry],
        scheduled_amount: int,
        start_month: int,
        *,
        fiscal_year: int | None = None,
        fiscal_year_start_month: int = 1,
        later_ledgers: Mapping[int, Sequence[MonthlyPaymentEntry]] | None = None,
        later_schedules: Mapping[int, int] | None = None,
    ) -> DistributionResult:
        """Produce month mutations for every slot in the plan.

        Args:
            plan: Allocation plan to distribute
            ledger: Month entries of the payment's fiscal year
            scheduled_amount: Monthly dues in minor units
            start_month: First fiscal month to consider (1..12)
            fiscal_year: Fiscal year of ``ledger``, used for the description
            fiscal_year_start_month: Calendar month of fiscal month 1
            later_ledgers: Month entries of following fiscal years by offset (1, 2, ...)
            later_schedules: Scheduled amount of following fiscal years by offset;
                offsets not listed use ``scheduled_amount``

        Returns:
            DistributionResult with mutations in walk order
        """
        if plan.is_credit_only:
            return DistributionResult(month_mutations=(), description=CREDIT_ONLY_DESCRIPTION)

        paid_by_offset = {0: paid_by_month(ledger)}
        for offset, entries in (later_ledgers or {}).items():
            paid_by_offset[offset] = paid_by_month(entries)
        schedules = dict(later_schedules or {})
        schedules[0] = scheduled_amount

        mutations: list[MonthMutation] = []
        unapplied = 0
        slots = list(plan.per_month_amounts)
        step = 0

        while slots:
            month = wrap_month(start_month, step)
            year_offset = year_offset_for(start_month, step)
            due = schedules.get(year_offset, scheduled_amount)
            existing = paid_by_offset.get(year_offset, {}).get(month, 0)
            step += 1

            if existing >= due:
                continue

            # A slot never pays more than the owning year's schedule
            slot = slots.pop(0)
            amount_to_add = min(slot, due - existing)
            unapplied += slot - amount_to_add
            mutations.append(
                MonthMutation(
                    month=month,
                    amount_to_add=amount_to_add,
                    resulting_paid_amount=existing + amount_to_add,
                    year_offset=year_offset,
                )
            )

        description = describe_months(
            [(m.year_offset, m.month) for m in mutations],
            fiscal_year=fiscal_year,
            fiscal_year_start_month=fiscal_year_start_month,
        )
        logger.debug(
            "Distributed %d slot(s) from month %d over %d step(s): %s",
            len(mutations),
            start_month,
            step,
            description,
        )
        return DistributionResult(
            month_mutations=tuple(mutations),
            description=description,
            unapplied_amount=unapplied,
        )


def distribute(
    plan: AllocationPlan,
    ledger: Sequence[MonthlyPaymentEntry],
    scheduled_amount: int,
    start_month: int,
    **kwargs,
) -> DistributionResult:
    """Module-level shortcut for DistributionService().distribute."""
    return DistributionService().distribute(plan, ledger, scheduled_amount, start_month, **kwargs)


__all__ = [
    "CREDIT_ONLY_DESCRIPTION",
    "MonthMutation",
    "DistributionResult",
    "DistributionService",
    "describe_months",
    "distribute",
]
