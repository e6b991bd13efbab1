"""Unit tests for the payment allocation pipeline."""

import logging
import threading
from datetime import date

import pytest

from src.services.credit_ledger_service import CreditEntryType
from src.services.dues_payment_service import PaymentRequest, UnitYearLocks, process_payment
from src.services.errors import (
    InconsistentLedgerError,
    InvalidAmountError,
    InvalidMonthError,
    InvalidScheduleError,
)
from src.services.month_status_service import MonthlyPaymentEntry

TODAY = date(2025, 11, 15)


def request(**overrides) -> PaymentRequest:
    """Payment request with sensible defaults."""
    values = dict(
        unit_id="1A",
        year=2025,
        payment_amount=8000,
        current_credit=-2000,
        scheduled_amount=5000,
        existing_ledger=[],
        transaction_ref="TX-1",
    )
    values.update(overrides)
    return PaymentRequest(**values)


class TestProcessPayment:
    """End-to-end pure pipeline."""

    def test_repair_month_and_credit(self):
        """Debt repaired, first unpaid month paid, leftover banked."""
        result = process_payment(request(), today=TODAY)

        assert result.credit_repair_amount == 2000
        assert result.credit_balance_after_repair == 0
        assert result.remaining_credit == 1000
        assert [(m.month, m.amount_to_add) for m in result.month_mutations] == [(1, 5000)]
        assert result.description == "Jan 2025"
        assert [e.entry_type for e in result.ledger_entries] == [
            CreditEntryType.REPAIR,
            CreditEntryType.ADDITION,
        ]

    def test_payment_is_conserved(self):
        """Repair, month amounts and credit growth sum to the payment."""
        ledger = [MonthlyPaymentEntry(month=1, paid_amount=3000)]
        result = process_payment(
            request(payment_amount=17000, current_credit=-500, existing_ledger=ledger), today=TODAY
        )

        credit_growth = result.remaining_credit - result.credit_balance_after_repair
        assert result.credit_repair_amount + result.dues_total + credit_growth == 17000

    def test_partial_month_remainder_becomes_credit(self):
        """Topping up a partial month credits the rest of its slot."""
        ledger = [MonthlyPaymentEntry(month=1, paid_amount=3000)]

        result = process_payment(
            request(payment_amount=5000, current_credit=0, existing_ledger=ledger), today=TODAY
        )

        assert [(m.month, m.amount_to_add) for m in result.month_mutations] == [(1, 2000)]
        assert result.unapplied_amount == 3000
        assert result.remaining_credit == 3000

    def test_explicit_start_month_wraps(self):
        """An explicit November start spills into January of next year."""
        result = process_payment(
            request(payment_amount=15000, current_credit=0, explicit_start_month=11), today=TODAY
        )

        assert [(m.year_offset, m.month) for m in result.month_mutations] == [(0, 11), (0, 12), (1, 1)]
        assert result.start_month == 11

    def test_cheaper_next_year_remainder_credited(self):
        """January of a cheaper next year takes its own amount; the rest is credit."""
        result = process_payment(
            request(
                payment_amount=15000,
                current_credit=0,
                explicit_start_month=11,
                later_ledgers={1: []},
                later_schedules={1: 4000},
            ),
            today=TODAY,
        )

        assert [m.amount_to_add for m in result.month_mutations] == [5000, 5000, 4000]
        assert result.remaining_credit == 1000
        assert result.dues_total + result.remaining_credit == 15000

    def test_fiscal_year_description(self):
        """Fiscal year starting in July labels months with calendar years."""
        result = process_payment(
            request(year=2026, payment_amount=20000, current_credit=0, fiscal_year_start_month=7),
            today=TODAY,
        )

        assert result.description == "Jul, Aug, Sep, Oct 2025"

    def test_credit_only(self):
        """A payment below one month only changes credit."""
        result = process_payment(request(payment_amount=1000, current_credit=0), today=TODAY)

        assert result.is_credit_only
        assert result.description == "credit balance addition"
        assert result.remaining_credit == 1000

    def test_overpaid_month_warns(self, caplog):
        """Over-paid months are logged and reported, not fatal."""
        ledger = [MonthlyPaymentEntry(month=2, paid_amount=9000)]

        with caplog.at_level(logging.WARNING):
            result = process_payment(request(existing_ledger=ledger), today=TODAY)

        assert result.inconsistent_months == (2,)
        assert "paid above schedule" in caplog.text

    def test_overpaid_month_strict(self):
        """Strict mode refuses a ledger with over-paid months."""
        ledger = [MonthlyPaymentEntry(month=2, paid_amount=9000)]

        with pytest.raises(InconsistentLedgerError) as exc_info:
            process_payment(request(existing_ledger=ledger), today=TODAY, strict_ledger=True)

        assert exc_info.value.months == [2]

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"payment_amount": 0}, InvalidAmountError),
            ({"payment_amount": 10.5}, InvalidAmountError),
            ({"scheduled_amount": 0}, InvalidScheduleError),
            ({"explicit_start_month": 13}, InvalidMonthError),
            ({"fiscal_year_start_month": 0}, InvalidMonthError),
        ],
    )
    def test_invalid_input(self, overrides, error):
        """Invalid requests fail before anything is computed."""
        with pytest.raises(error):
            process_payment(request(**overrides), today=TODAY)


class TestUnitYearLocks:
    """Lock registry."""

    def test_same_key_same_lock(self):
        """One lock per unit and year."""
        locks = UnitYearLocks()

        assert locks.get("1A", 2025) is locks.get("1A", 2025)
        assert locks.get("1A", 2025) is not locks.get("1A", 2026)

    def test_hold_serializes(self):
        """A held key blocks other holders."""
        locks = UnitYearLocks()

        with locks.hold("1A", 2025):
            acquired = []
            worker = threading.Thread(
                target=lambda: acquired.append(locks.get("1A", 2025).acquire(blocking=False))
            )
            worker.start()
            worker.join()

        assert acquired == [False]
