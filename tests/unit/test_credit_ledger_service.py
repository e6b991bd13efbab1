"""Unit tests for the append-only credit ledger."""

from datetime import datetime, timedelta, timezone

import pytest

from src.services.allocation_service import AllocationPlan, allocate
from src.services.credit_ledger_service import (
    CreditEntryStatus,
    CreditEntryType,
    CreditLedger,
    CreditLedgerEntry,
    apply_ledger_entries,
    commit_entries,
    fold_balance,
)
from src.services.errors import InvalidAmountError, LedgerEntryError

T0 = datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc)


def entry(entry_type: CreditEntryType, amount: int, minutes: int = 0, ref: str | None = None) -> CreditLedgerEntry:
    """Build an entry at T0 + minutes."""
    return CreditLedgerEntry(
        entry_type=entry_type,
        amount=amount,
        timestamp=T0 + timedelta(minutes=minutes),
        transaction_ref=ref,
    )


class TestApplyLedgerEntries:
    """Entries derived from an allocation plan."""

    def test_repair_and_addition(self):
        """Repair and leftover credit each produce one entry."""
        entries = apply_ledger_entries(allocate(8000, 5000, -2000), "TX-1", timestamp=T0)

        assert [(e.entry_type, e.amount) for e in entries] == [
            (CreditEntryType.REPAIR, 2000),
            (CreditEntryType.ADDITION, 1000),
        ]
        assert all(e.transaction_ref == "TX-1" for e in entries)
        assert all(e.status == CreditEntryStatus.PENDING for e in entries)

    def test_exact_months_no_entries(self):
        """No credit change means no entries."""
        assert apply_ledger_entries(allocate(10000, 5000, 300), "TX-2") == []

    def test_entries_replay_to_remaining_credit(self):
        """Starting balance plus entry effects equals the plan's remaining credit."""
        plan = allocate(5000, 2000, -1500)
        entries = apply_ledger_entries(plan, "TX-3")

        assert -1500 + sum(e.signed_amount for e in entries) == plan.remaining_credit

    def test_usage_when_credit_shrinks(self):
        """A plan that lowers credit is recorded as usage."""
        plan = AllocationPlan(
            credit_repair_amount=0,
            credit_balance_after_repair=3000,
            remaining_for_dues=2000,
            per_month_amounts=(5000,),
            remaining_credit=0,
        )

        (usage,) = apply_ledger_entries(plan, "TX-4")

        assert usage.entry_type == CreditEntryType.USAGE
        assert usage.signed_amount == -3000


class TestCreditLedger:
    """Fold, history and corrections."""

    def test_balance_is_fold(self):
        """Balance is the signed sum of entries."""
        ledger = CreditLedger(
            [
                entry(CreditEntryType.MANUAL_ADD, 5000, 0),
                entry(CreditEntryType.USAGE, 1200, 1),
                entry(CreditEntryType.MANUAL_REMOVE, 800, 2),
            ]
        )
        assert ledger.balance() == 3000

    def test_append_rejects_negative_amount(self):
        """Amounts are positive magnitudes."""
        with pytest.raises(InvalidAmountError):
            CreditLedger().append([entry(CreditEntryType.ADDITION, -5)])

    def test_history_newest_first(self):
        """History is ordered by timestamp, most recent first, and limited."""
        first = entry(CreditEntryType.ADDITION, 100, 0)
        second = entry(CreditEntryType.ADDITION, 200, 5)
        third = entry(CreditEntryType.ADDITION, 300, 10)
        ledger = CreditLedger([third, first, second])

        assert ledger.history(limit=2) == [third, second]

    def test_reverse_restores_balance(self):
        """Reversing an entry cancels its effect without editing it."""
        original = entry(CreditEntryType.ADDITION, 1500, ref="TX-1")
        ledger = CreditLedger([entry(CreditEntryType.MANUAL_ADD, 500, -1), original])

        reversal = ledger.reverse(original.entry_id)

        assert reversal.entry_type == CreditEntryType.REVERSAL
        assert reversal.reversal_of_ref == original.entry_id
        assert reversal.transaction_ref == "TX-1"
        assert ledger.balance() == 500
        assert ledger.get(original.entry_id) == original

    def test_reverse_repair(self):
        """Reversing a repair brings the debt back."""
        start = entry(CreditEntryType.MANUAL_REMOVE, 2000, 0)
        repair = entry(CreditEntryType.REPAIR, 2000, 1)
        ledger = CreditLedger([start, repair])
        assert ledger.balance() == 0

        ledger.reverse(repair.entry_id)

        assert ledger.balance() == -2000

    def test_reverse_twice_rejected(self):
        """An entry can only be reversed once."""
        original = entry(CreditEntryType.ADDITION, 100)
        ledger = CreditLedger([original])
        ledger.reverse(original.entry_id)

        with pytest.raises(LedgerEntryError):
            ledger.reverse(original.entry_id)

    def test_reverse_unknown_or_reversal_rejected(self):
        """Unknown ids and reversal entries cannot be reversed."""
        original = entry(CreditEntryType.ADDITION, 100)
        ledger = CreditLedger([original])
        reversal = ledger.reverse(original.entry_id)

        with pytest.raises(LedgerEntryError):
            ledger.reverse("credit_missing")
        with pytest.raises(LedgerEntryError):
            ledger.reverse(reversal.entry_id)

    def test_entries_for_excludes_reversals(self):
        """Entries of a transaction do not include their reversals."""
        original = entry(CreditEntryType.ADDITION, 100, ref="TX-9")
        ledger = CreditLedger([original])
        ledger.reverse(original.entry_id)

        assert ledger.entries_for("TX-9") == [original]
        assert ledger.is_reversed(original.entry_id)

    def test_adjust_to_target(self):
        """Adjustments write the difference as a manual entry."""
        ledger = CreditLedger([entry(CreditEntryType.ADDITION, 1000)])

        up = ledger.adjust_to(2500, notes="goodwill")
        down = ledger.adjust_to(-300)

        assert (up.entry_type, up.amount, up.notes) == (CreditEntryType.MANUAL_ADD, 1500, "goodwill")
        assert (down.entry_type, down.amount) == (CreditEntryType.MANUAL_REMOVE, 2800)
        assert ledger.balance() == -300

    def test_adjust_to_same_balance_writes_nothing(self):
        """No entry when the balance already matches."""
        ledger = CreditLedger([entry(CreditEntryType.ADDITION, 1000)])

        assert ledger.adjust_to(1000) is None
        assert len(ledger.entries) == 1


class TestCommitEntries:
    """Write state transitions."""

    def test_commit_marks_committed(self):
        """Committed copies keep ids and amounts."""
        pending = apply_ledger_entries(allocate(8000, 5000, -2000), "TX-1")

        committed = commit_entries(pending)

        assert all(e.status == CreditEntryStatus.COMMITTED for e in committed)
        assert [e.entry_id for e in committed] == [e.entry_id for e in pending]
        assert fold_balance(committed) == fold_balance(pending)
