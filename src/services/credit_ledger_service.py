"""Append-only credit balance ledger.

Credit balance is never stored as an editable number: it is the fold of the
ledger history. Corrections are new ``reversal`` entries that point at the
entry they cancel; entries themselves are never edited.

Sign convention:
- REPAIR, ADDITION, MANUAL_ADD increase the balance
- USAGE, MANUAL_REMOVE decrease the balance
- REVERSAL has the opposite effect of the entry it references
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from src.services.allocation_service import AllocationPlan
from src.services.errors import InvalidAmountError, LedgerEntryError

logger = logging.getLogger(__name__)


class CreditEntryType(str, Enum):
    """Kinds of credit balance changes."""

    REPAIR = "repair"
    USAGE = "usage"
    ADDITION = "addition"
    MANUAL_ADD = "manual_add"
    MANUAL_REMOVE = "manual_remove"
    REVERSAL = "reversal"


class CreditEntryStatus(str, Enum):
    """Write state of a ledger entry (pending -> committed only)."""

    PENDING = "pending"
    COMMITTED = "committed"


INCREASING_TYPES = frozenset(
    {CreditEntryType.REPAIR, CreditEntryType.ADDITION, CreditEntryType.MANUAL_ADD}
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_entry_id() -> str:
    return f"credit_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class CreditLedgerEntry:
    """One immutable credit balance change; amount is always a positive magnitude."""

    entry_type: CreditEntryType
    amount: int
    timestamp: datetime = field(default_factory=_now)
    transaction_ref: str | None = None
    notes: str | None = None
    reversal_of_ref: str | None = None
    entry_id: str = field(default_factory=_new_entry_id)
    status: CreditEntryStatus = CreditEntryStatus.PENDING
    # Signed effect of the reversed entry; only set on REVERSAL entries
    reversed_effect: int = 0

    @property
    def signed_amount(self) -> int:
        """Effect of this entry on the balance."""
        if self.entry_type == CreditEntryType.REVERSAL:
            return -self.reversed_effect
        if self.entry_type in INCREASING_TYPES:
            return self.amount
        return -self.amount


def apply_ledger_entries(
    plan: AllocationPlan,
    transaction_ref: str,
    timestamp: datetime | None = None,
    notes: str | None = None,
) -> list[CreditLedgerEntry]:
    """Build the ledger entries describing a plan's credit changes.

    Emits a REPAIR entry when a negative balance was repaired, then an
    ADDITION entry when credit grew or a USAGE entry when it shrank.

    Args:
        plan: Allocation plan of the payment
        transaction_ref: Originating transaction reference
        timestamp: Entry timestamp (default: now, UTC)
        notes: Optional notes copied on every entry

    Returns:
        Pending entries in write order (at most two)
    """
    timestamp = timestamp or _now()
    entries: list[CreditLedgerEntry] = []

    if plan.credit_repair_amount > 0:
        entries.append(
            CreditLedgerEntry(
                entry_type=CreditEntryType.REPAIR,
                amount=plan.credit_repair_amount,
                timestamp=timestamp,
                transaction_ref=transaction_ref,
                notes=notes,
            )
        )

    delta = plan.remaining_credit - plan.credit_balance_after_repair
    if delta > 0:
        entries.append(
            CreditLedgerEntry(
                entry_type=CreditEntryType.ADDITION,
                amount=delta,
                timestamp=timestamp,
                transaction_ref=transaction_ref,
                notes=notes,
            )
        )
    elif delta < 0:
        # Not produced by AllocationService; kept for a credit-covers-partial-month policy
        entries.append(
            CreditLedgerEntry(
                entry_type=CreditEntryType.USAGE,
                amount=-delta,
                timestamp=timestamp,
                transaction_ref=transaction_ref,
                notes=notes,
            )
        )

    return entries


def fold_balance(entries: Iterable[CreditLedgerEntry]) -> int:
    """Signed sum of all non-reversed, non-reversal entries."""
    entries = list(entries)
    reversed_ids = {
        e.reversal_of_ref for e in entries if e.entry_type == CreditEntryType.REVERSAL
    }
    return sum(
        e.signed_amount
        for e in entries
        if e.entry_type != CreditEntryType.REVERSAL and e.entry_id not in reversed_ids
    )


def commit_entries(entries: Iterable[CreditLedgerEntry]) -> list[CreditLedgerEntry]:
    """Return copies of the entries in COMMITTED state."""
    return [replace(e, status=CreditEntryStatus.COMMITTED) for e in entries]


class CreditLedger:
    """In-memory append-only credit ledger for one unit and year."""

    def __init__(self, entries: Iterable[CreditLedgerEntry] = ()):
        """Initialize with existing history (ordered by timestamp)."""
        self._entries: list[CreditLedgerEntry] = sorted(entries, key=lambda e: e.timestamp)

    @property
    def entries(self) -> tuple[CreditLedgerEntry, ...]:
        """All entries in timestamp order."""
        return tuple(self._entries)

    def append(self, entries: Iterable[CreditLedgerEntry]) -> None:
        """Append entries; existing entries are never touched."""
        for entry in entries:
            if entry.amount < 0:
                raise InvalidAmountError(
                    f"Ledger amounts are positive magnitudes, got {entry.amount}"
                )
            self._entries.append(entry)

    def balance(self) -> int:
        """Current credit balance derived from history."""
        return fold_balance(self._entries)

    def get(self, entry_id: str) -> CreditLedgerEntry | None:
        """Find an entry by id."""
        for entry in self._entries:
            if entry.entry_id == entry_id:
                return entry
        return None

    def is_reversed(self, entry_id: str) -> bool:
        """True when a REVERSAL entry references ``entry_id``."""
        return any(
            e.entry_type == CreditEntryType.REVERSAL and e.reversal_of_ref == entry_id
            for e in self._entries
        )

    def entries_for(self, transaction_ref: str) -> list[CreditLedgerEntry]:
        """Entries written by one transaction (excluding reversals)."""
        return [
            e
            for e in self._entries
            if e.transaction_ref == transaction_ref and e.entry_type != CreditEntryType.REVERSAL
        ]

    def history(self, limit: int = 50) -> list[CreditLedgerEntry]:
        """Most recent entries first."""
        return list(reversed(self._entries))[:limit]

    def reverse(
        self,
        entry_id: str,
        timestamp: datetime | None = None,
        notes: str | None = None,
        transaction_ref: str | None = None,
    ) -> CreditLedgerEntry:
        """Append a REVERSAL entry cancelling ``entry_id``.

        Raises:
            LedgerEntryError: If the entry is unknown, a reversal, or already reversed
        """
        original = self.get(entry_id)
        if original is None:
            raise LedgerEntryError(f"Credit ledger entry {entry_id} not found")
        if original.entry_type == CreditEntryType.REVERSAL:
            raise LedgerEntryError(f"Credit ledger entry {entry_id} is a reversal")
        if self.is_reversed(entry_id):
            raise LedgerEntryError(f"Credit ledger entry {entry_id} is already reversed")

        reversal = CreditLedgerEntry(
            entry_type=CreditEntryType.REVERSAL,
            amount=original.amount,
            timestamp=timestamp or _now(),
            transaction_ref=transaction_ref or original.transaction_ref,
            notes=notes,
            reversal_of_ref=original.entry_id,
            reversed_effect=original.signed_amount,
        )
        self._entries.append(reversal)
        logger.info(
            "Reversed credit entry %s (%s %d)",
            entry_id,
            original.entry_type.value,
            original.amount,
        )
        return reversal

    def adjust_to(
        self,
        target_balance: int,
        notes: str | None = None,
        timestamp: datetime | None = None,
    ) -> CreditLedgerEntry | None:
        """Administrative adjustment to reach ``target_balance``.

        Returns:
            The MANUAL_ADD / MANUAL_REMOVE entry written, or None if unchanged
        """
        if isinstance(target_balance, bool) or not isinstance(target_balance, int):
            raise InvalidAmountError(
                f"Target balance must be an integer in minor units, got {target_balance!r}"
            )
        delta = target_balance - self.balance()
        if delta == 0:
            return None

        entry = CreditLedgerEntry(
            entry_type=CreditEntryType.MANUAL_ADD if delta > 0 else CreditEntryType.MANUAL_REMOVE,
            amount=abs(delta),
            timestamp=timestamp or _now(),
            notes=notes,
        )
        self._entries.append(entry)
        return entry


__all__ = [
    "CreditEntryType",
    "CreditEntryStatus",
    "CreditLedgerEntry",
    "CreditLedger",
    "apply_ledger_entries",
    "fold_balance",
    "commit_entries",
]
