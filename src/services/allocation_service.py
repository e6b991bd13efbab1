"""Allocation service for splitting a dues payment into repair, dues and credit.

Splits one payment, in order:
- REPAIR: bring a negative credit balance back toward zero
- DUES: buy whole months at the scheduled amount (all-or-nothing per month)
- CREDIT: bank any leftover on the credit balance

All amounts are integer minor units. The calculation is pure and knows
nothing about which calendar months exist or are already paid.
"""

import logging
from dataclasses import dataclass

from src.services.errors import InvalidAmountError, InvalidScheduleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationPlan:
    """Result of splitting one payment (minor units)."""

    credit_repair_amount: int
    credit_balance_after_repair: int
    remaining_for_dues: int
    per_month_amounts: tuple[int, ...]
    remaining_credit: int

    @property
    def month_count(self) -> int:
        """Number of whole months purchased."""
        return len(self.per_month_amounts)

    @property
    def dues_total(self) -> int:
        """Total applied to monthly dues."""
        return sum(self.per_month_amounts)

    @property
    def credit_added(self) -> int:
        """Net credit banked by this payment (0 when none)."""
        return max(self.remaining_credit - self.credit_balance_after_repair, 0)

    @property
    def is_credit_only(self) -> bool:
        """True when no whole month could be purchased."""
        return not self.per_month_amounts


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class AllocationService:
    """Payment allocation engine for monthly HOA dues."""

    def validate(self, payment_amount: int, scheduled_amount: int, current_credit: int) -> None:
        """Reject unusable inputs before any computation.

        Raises:
            InvalidAmountError: payment not a positive int, or credit not an int
            InvalidScheduleError: scheduled amount not a positive int
        """
        if not _is_int(payment_amount) or payment_amount <= 0:
            raise InvalidAmountError(
                f"Payment amount must be a positive integer in minor units, got {payment_amount!r}"
            )
        if not _is_int(current_credit):
            raise InvalidAmountError(
                f"Current credit must be an integer in minor units, got {current_credit!r}"
            )
        if not _is_int(scheduled_amount) or scheduled_amount <= 0:
            raise InvalidScheduleError(
                f"Scheduled amount must be a positive integer in minor units, got {scheduled_amount!r}"
            )

    def allocate(
        self,
        payment_amount: int,
        scheduled_amount: int,
        current_credit: int,
    ) -> AllocationPlan:
        """Split a payment into credit repair, whole months and remaining credit.

        Ensures: repair + sum(per_month_amounts) + credit added == payment_amount

        Algorithm:
        1. If credit is negative, repair min(-credit, payment) of it first
        2. Buy floor(remaining / scheduled) whole months at the scheduled amount
        3. Add the leftover to the (repaired) credit balance

        Args:
            payment_amount: Payment in minor units (> 0)
            scheduled_amount: Monthly dues in minor units (> 0)
            current_credit: Signed credit balance in minor units

        Returns:
            AllocationPlan

        Raises:
            InvalidAmountError: If payment or credit is invalid
            InvalidScheduleError: If scheduled amount is invalid
        """
        self.validate(payment_amount, scheduled_amount, current_credit)

        if current_credit < 0:
            repair = min(-current_credit, payment_amount)
        else:
            repair = 0
        credit_after_repair = current_credit + repair
        remaining = payment_amount - repair

        month_count = remaining // scheduled_amount
        leftover = remaining - month_count * scheduled_amount

        plan = AllocationPlan(
            credit_repair_amount=repair,
            credit_balance_after_repair=credit_after_repair,
            remaining_for_dues=remaining,
            per_month_amounts=(scheduled_amount,) * month_count,
            remaining_credit=credit_after_repair + leftover,
        )

        logger.debug(
            "Allocated payment=%d scheduled=%d credit=%d -> repair=%d months=%d remaining_credit=%d",
            payment_amount,
            scheduled_amount,
            current_credit,
            repair,
            month_count,
            plan.remaining_credit,
        )
        return plan


def allocate(payment_amount: int, scheduled_amount: int, current_credit: int) -> AllocationPlan:
    """Module-level shortcut for AllocationService().allocate."""
    return AllocationService().allocate(payment_amount, scheduled_amount, current_credit)


__all__ = ["AllocationPlan", "AllocationService", "allocate"]
