"""Dues payment service: allocation pipeline and atomic recording.

Provides:
- process_payment: pure pipeline from a PaymentRequest to an AllocationResult
  (start month -> allocation -> distribution -> credit ledger entries)
- DuesPaymentService: SQLAlchemy-backed recording of payments, reversals and
  manual credit adjustments, serialized per (unit, year) and committed atomically
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Callable, Iterator, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import CreditLedgerRecord, DuesAllocation, DuesTransaction, DuesYear, MonthlyPayment
from src.services.allocation_service import AllocationService
from src.services.audit_service import AuditService
from src.services.config import Settings, get_settings
from src.services.credit_ledger_service import (
    CreditEntryStatus,
    CreditEntryType,
    CreditLedger,
    CreditLedgerEntry,
    apply_ledger_entries,
    commit_entries,
)
from src.services.distribution_service import DistributionService, MonthMutation
from src.services.errors import (
    DuesYearExistsError,
    DuesYearNotFoundError,
    DuplicateTransactionError,
    InconsistentLedgerError,
    InvalidMonthError,
    InvalidScheduleError,
    LedgerEntryError,
    PersistenceError,
    TransactionNotFoundError,
)
from src.services.money import MONTHS_PER_YEAR, fiscal_year_for_date, validate_month
from src.services.month_status_service import (
    MonthlyPaymentEntry,
    first_unpaid_month,
    inconsistent_months,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentRequest:
    """Fully resolved input for one payment (amounts in minor units)."""

    unit_id: str
    year: int
    payment_amount: int
    current_credit: int
    scheduled_amount: int
    existing_ledger: Sequence[MonthlyPaymentEntry]
    transaction_ref: str
    explicit_start_month: int | None = None
    fiscal_year_start_month: int = 1
    later_ledgers: Mapping[int, Sequence[MonthlyPaymentEntry]] | None = None
    later_schedules: Mapping[int, int] | None = None
    notes: str | None = None


@dataclass(frozen=True)
class AllocationResult:
    """Everything the caller must persist for one payment."""

    credit_repair_amount: int
    credit_balance_after_repair: int
    remaining_credit: int
    month_mutations: tuple[MonthMutation, ...]
    description: str
    ledger_entries: tuple[CreditLedgerEntry, ...]
    remaining_for_dues: int = 0
    start_month: int = 1
    unapplied_amount: int = 0
    inconsistent_months: tuple[int, ...] = ()

    @property
    def dues_total(self) -> int:
        """Total added to months."""
        return sum(m.amount_to_add for m in self.month_mutations)

    @property
    def is_credit_only(self) -> bool:
        """True when the payment only changed the credit balance."""
        return not self.month_mutations


def process_payment(
    request: PaymentRequest,
    *,
    today: date | None = None,
    strict_ledger: bool = False,
    timestamp: datetime | None = None,
) -> AllocationResult:
    """Run the allocation pipeline for one payment.

    Args:
        request: Payment request with the current ledger snapshot and credit
        today: Reference date for the start month fallback (default: today)
        strict_ledger: Raise instead of warning on over-paid months
        timestamp: Timestamp for ledger entries (default: now, UTC)

    Returns:
        AllocationResult

    Raises:
        InvalidAmountError, InvalidScheduleError: On invalid amounts
        InvalidMonthError: On a start or fiscal month outside 1..12
        InconsistentLedgerError: On over-paid months when strict_ledger is set
    """
    allocator = AllocationService()
    allocator.validate(request.payment_amount, request.scheduled_amount, request.current_credit)
    try:
        validate_month(request.fiscal_year_start_month, "fiscal_year_start_month")
        if request.explicit_start_month is not None:
            validate_month(request.explicit_start_month, "explicit_start_month")
    except ValueError as e:
        raise InvalidMonthError(str(e)) from e

    overpaid = inconsistent_months(request.existing_ledger, request.scheduled_amount)
    if overpaid:
        if strict_ledger:
            raise InconsistentLedgerError(overpaid, request.scheduled_amount)
        logger.warning(
            "Unit %s year %s has months paid above schedule %d: %s (treated as paid)",
            request.unit_id,
            request.year,
            request.scheduled_amount,
            overpaid,
        )

    today = today or date.today()
    start_month = first_unpaid_month(
        request.existing_ledger,
        request.scheduled_amount,
        viewed_year=request.year,
        explicit_start_month=request.explicit_start_month,
        current_calendar_month=today.month,
        current_year=fiscal_year_for_date(today, request.fiscal_year_start_month),
        fiscal_year_start_month=request.fiscal_year_start_month,
    )

    plan = allocator.allocate(
        request.payment_amount, request.scheduled_amount, request.current_credit
    )
    distribution = DistributionService().distribute(
        plan,
        request.existing_ledger,
        request.scheduled_amount,
        start_month,
        fiscal_year=request.year,
        fiscal_year_start_month=request.fiscal_year_start_month,
        later_ledgers=request.later_ledgers,
        later_schedules=request.later_schedules,
    )
    if distribution.unapplied_amount:
        # Slot remainder left over after topping up partially paid months
        plan = replace(plan, remaining_credit=plan.remaining_credit + distribution.unapplied_amount)

    entries = apply_ledger_entries(
        plan, request.transaction_ref, timestamp=timestamp, notes=request.notes
    )

    logger.info(
        "Processed payment %s for unit %s year %s: amount=%d repair=%d months=%d credit %d -> %d",
        request.transaction_ref,
        request.unit_id,
        request.year,
        request.payment_amount,
        plan.credit_repair_amount,
        len(distribution.month_mutations),
        request.current_credit,
        plan.remaining_credit,
    )

    return AllocationResult(
        credit_repair_amount=plan.credit_repair_amount,
        credit_balance_after_repair=plan.credit_balance_after_repair,
        remaining_credit=plan.remaining_credit,
        month_mutations=distribution.month_mutations,
        description=distribution.description,
        ledger_entries=tuple(entries),
        remaining_for_dues=plan.remaining_for_dues,
        start_month=start_month,
        unapplied_amount=distribution.unapplied_amount,
        inconsistent_months=tuple(overpaid),
    )


class UnitYearLocks:
    """Process-wide registry of locks serializing writes per (unit, year)."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, int], threading.Lock] = {}

    def get(self, unit_id: str, year: int) -> threading.Lock:
        """Return the lock for a unit and year, creating it on first use."""
        with self._guard:
            return self._locks.setdefault((unit_id, year), threading.Lock())

    @contextmanager
    def hold(self, unit_id: str, year: int) -> Iterator[None]:
        """Hold the (unit, year) lock for the duration of the block."""
        with self.get(unit_id, year):
            yield


unit_year_locks = UnitYearLocks()


@dataclass(frozen=True)
class ReversalResult:
    """Outcome of reversing a recorded payment."""

    transaction_ref: str
    months_reversed: tuple[tuple[int, int, int], ...]  # (year, month, amount)
    ledger_entries: tuple[CreditLedgerEntry, ...]
    credit_balance: int


def _aware(ts: datetime) -> datetime:
    # SQLite drops tzinfo on DateTime(timezone=True) columns
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def entry_from_record(record: CreditLedgerRecord) -> CreditLedgerEntry:
    """Convert a persisted ledger record to a CreditLedgerEntry."""
    return CreditLedgerEntry(
        entry_type=CreditEntryType(record.entry_type),
        amount=record.amount,
        timestamp=_aware(record.timestamp),
        transaction_ref=record.transaction_ref,
        notes=record.notes,
        reversal_of_ref=record.reversal_of_ref,
        entry_id=record.entry_id,
        status=CreditEntryStatus(record.status),
        reversed_effect=record.reversed_effect,
    )


def record_from_entry(entry: CreditLedgerEntry) -> CreditLedgerRecord:
    """Convert a CreditLedgerEntry to a new persisted record."""
    return CreditLedgerRecord(
        entry_id=entry.entry_id,
        entry_type=entry.entry_type.value,
        amount=entry.amount,
        timestamp=entry.timestamp,
        transaction_ref=entry.transaction_ref,
        notes=entry.notes,
        reversal_of_ref=entry.reversal_of_ref,
        reversed_effect=entry.reversed_effect,
        status=entry.status.value,
    )


class DuesPaymentService:
    """Service for recording dues payments and credit changes.

    Every write runs under the (unit, year) lock, locks the DuesYear row where
    the database supports it, and commits months, allocations, ledger entries,
    the transaction record and the audit row together or not at all.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        """Initialize with database session.

        Args:
            db: SQLAlchemy database session
            settings: Application settings (default: process settings)
        """
        self.db = db
        self.settings = settings or get_settings()

    # -- reads ---------------------------------------------------------------

    def _get_year(self, unit_id: str, year: int, for_update: bool = False) -> DuesYear | None:
        stmt = select(DuesYear).where(DuesYear.unit_id == unit_id, DuesYear.year == year)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def _later_years(self, unit_id: str, year: int, for_update: bool = False) -> list[DuesYear]:
        stmt = (
            select(DuesYear)
            .where(DuesYear.unit_id == unit_id, DuesYear.year > year)
            .order_by(DuesYear.year)
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return list(self.db.execute(stmt).scalars().all())

    def _require_year(self, unit_id: str, year: int, for_update: bool = False) -> DuesYear:
        dues_year = self._get_year(unit_id, year, for_update=for_update)
        if dues_year is None:
            raise DuesYearNotFoundError(f"No dues year {year} opened for unit {unit_id}")
        return dues_year

    @staticmethod
    def _ledger_of(dues_year: DuesYear) -> list[MonthlyPaymentEntry]:
        return [
            MonthlyPaymentEntry(
                month=row.month,
                paid_amount=row.paid_amount,
                payment_date=row.payment_date,
                transaction_ref=row.transaction_ref,
            )
            for row in dues_year.months
        ]

    @staticmethod
    def _credit_ledger_of(dues_year: DuesYear) -> CreditLedger:
        return CreditLedger(entry_from_record(r) for r in dues_year.credit_entries)

    def get_dues_year(self, unit_id: str, year: int) -> DuesYear:
        """Find an opened dues year.

        Raises:
            DuesYearNotFoundError: If the year is not open
        """
        return self._require_year(unit_id, year)

    def get_ledger(self, unit_id: str, year: int) -> list[MonthlyPaymentEntry]:
        """Month entries of a dues year."""
        return self._ledger_of(self._require_year(unit_id, year))

    def get_credit_balance(self, unit_id: str, year: int) -> int:
        """Credit balance derived from the ledger history."""
        return self._credit_ledger_of(self._require_year(unit_id, year)).balance()

    def get_credit_history(
        self, unit_id: str, year: int, limit: int | None = None
    ) -> list[CreditLedgerEntry]:
        """Credit ledger entries, most recent first."""
        ledger = self._credit_ledger_of(self._require_year(unit_id, year))
        return ledger.history(limit or self.settings.credit_history_limit)

    def get_transaction(
        self, transaction_ref: str, for_update: bool = False
    ) -> DuesTransaction | None:
        """Find a dues transaction by reference."""
        stmt = select(DuesTransaction).where(DuesTransaction.transaction_ref == transaction_ref)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    # -- unit of work --------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, unit_id: str, year: int) -> Iterator[Callable[[int], bool]]:
        """Hold the (unit, year) lock and commit or roll back on exit.

        Yields a ``hold_through(last_year)`` callable that also takes the locks
        of the following years up to ``last_year``, always in ascending order.
        It returns True when new locks were taken; rows of those years read
        before that point must be read again.
        """
        with ExitStack() as held:
            held.enter_context(unit_year_locks.hold(unit_id, year))
            last_held = [year]

            def hold_through(last_year: int) -> bool:
                extended = False
                while last_held[0] < last_year:
                    last_held[0] += 1
                    held.enter_context(unit_year_locks.hold(unit_id, last_held[0]))
                    extended = True
                return extended

            # Anything loaded before the lock was taken may be stale
            self.db.expire_all()
            try:
                yield hold_through
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error("Dues write for unit %s year %s rolled back: %s", unit_id, year, e)
                raise PersistenceError(f"Could not save changes for unit {unit_id}: {e}") from e
            except Exception:
                self.db.rollback()
                raise

    @staticmethod
    def _new_dues_year(unit_id: str, year: int, scheduled_amount: int) -> DuesYear:
        return DuesYear(
            unit_id=unit_id,
            year=year,
            scheduled_amount=scheduled_amount,
            credit_balance=0,
            months=[
                MonthlyPayment(month=month, paid_amount=0)
                for month in range(1, MONTHS_PER_YEAR + 1)
            ],
        )

    def _restore_last_payment(self, dues_year: DuesYear, row: MonthlyPayment, reversed_ref: str) -> None:
        """Point a month at the latest payment still applied to it, or at none."""
        stmt = (
            select(DuesAllocation.transaction_ref, DuesTransaction.transaction_date)
            .join(DuesTransaction, DuesTransaction.transaction_ref == DuesAllocation.transaction_ref)
            .where(
                DuesAllocation.dues_year_id == dues_year.id,
                DuesAllocation.month == row.month,
                DuesAllocation.amount > 0,
                DuesAllocation.transaction_ref != reversed_ref,
                DuesTransaction.is_reversed.is_(False),
            )
            .order_by(DuesAllocation.id.desc())
            .limit(1)
        )
        latest = self.db.execute(stmt).first()
        row.transaction_ref, row.payment_date = latest if latest is not None else (None, None)

    # -- writes --------------------------------------------------------------

    def open_year(
        self,
        unit_id: str,
        year: int,
        scheduled_amount: int,
        opening_credit: int = 0,
        actor: str | None = None,
    ) -> DuesYear:
        """Open a dues year with twelve unpaid months.

        A non-zero opening credit is written to the ledger as a manual entry.

        Raises:
            InvalidScheduleError: If scheduled amount is not a positive int
            DuesYearExistsError: If the year is already open
        """
        if isinstance(scheduled_amount, bool) or not isinstance(scheduled_amount, int) or scheduled_amount <= 0:
            raise InvalidScheduleError(
                f"Scheduled amount must be a positive integer in minor units, got {scheduled_amount!r}"
            )

        with self._unit_of_work(unit_id, year):
            if self._get_year(unit_id, year) is not None:
                raise DuesYearExistsError(f"Dues year {year} already open for unit {unit_id}")

            dues_year = self._new_dues_year(unit_id, year, scheduled_amount)
            ledger = CreditLedger()
            entry = ledger.adjust_to(opening_credit, notes="Opening credit balance")
            if entry is not None:
                dues_year.credit_entries.append(record_from_entry(commit_entries([entry])[0]))
            dues_year.credit_balance = ledger.balance()
            self.db.add(dues_year)
            self.db.flush()

            AuditService.log(
                self.db,
                "dues_year",
                dues_year.id,
                "open",
                actor,
                {"unit_id": unit_id, "year": year, "scheduled_amount": scheduled_amount,
                 "credit_balance": dues_year.credit_balance},
            )

        logger.info(
            "Opened dues year %s for unit %s: scheduled=%d opening_credit=%d",
            year,
            unit_id,
            scheduled_amount,
            opening_credit,
        )
        return dues_year

    def _build_request(
        self,
        dues_year: DuesYear,
        later_years: Sequence[DuesYear],
        payment_amount: int,
        transaction_ref: str,
        explicit_start_month: int | None,
        notes: str | None,
    ) -> PaymentRequest:
        return PaymentRequest(
            unit_id=dues_year.unit_id,
            year=dues_year.year,
            payment_amount=payment_amount,
            current_credit=self._credit_ledger_of(dues_year).balance(),
            scheduled_amount=dues_year.scheduled_amount,
            existing_ledger=self._ledger_of(dues_year),
            transaction_ref=transaction_ref,
            explicit_start_month=explicit_start_month,
            fiscal_year_start_month=self.settings.fiscal_year_start_month,
            later_ledgers={y.year - dues_year.year: self._ledger_of(y) for y in later_years},
            later_schedules={y.year - dues_year.year: y.scheduled_amount for y in later_years},
            notes=notes,
        )

    def preview_payment(
        self,
        unit_id: str,
        year: int,
        payment_amount: int,
        explicit_start_month: int | None = None,
        today: date | None = None,
    ) -> AllocationResult:
        """Compute the allocation of a payment without writing anything."""
        dues_year = self._require_year(unit_id, year)
        request = self._build_request(
            dues_year,
            self._later_years(unit_id, year),
            payment_amount,
            "preview",
            explicit_start_month,
            None,
        )
        return process_payment(request, today=today, strict_ledger=self.settings.strict_ledger)

    def record_payment(
        self,
        unit_id: str,
        year: int,
        payment_amount: int,
        transaction_ref: str,
        payment_date: date | None = None,
        explicit_start_month: int | None = None,
        notes: str | None = None,
        actor: str | None = None,
        today: date | None = None,
    ) -> AllocationResult:
        """Allocate a payment and persist all of its effects in one commit.

        Args:
            unit_id: Property unit identifier
            year: Fiscal year the payment is recorded against
            payment_amount: Payment in minor units
            transaction_ref: Unique transaction reference
            payment_date: Date stamped on paid months (default: today)
            explicit_start_month: Force the first month to pay
            notes: Optional notes stored on the transaction and ledger entries
            actor: User recording the payment
            today: Reference date for the start month fallback

        Returns:
            AllocationResult with committed ledger entries

        Raises:
            DuesYearNotFoundError: If the year is not open
            DuplicateTransactionError: If transaction_ref was already recorded
            PersistenceError: If the commit fails (nothing is written)
        """
        payment_date = payment_date or today or date.today()

        with self._unit_of_work(unit_id, year) as hold_through:
            if self.get_transaction(transaction_ref) is not None:
                raise DuplicateTransactionError(f"Transaction {transaction_ref} already recorded")

            while True:
                dues_year = self._require_year(unit_id, year, for_update=True)
                later_years = self._later_years(unit_id, year, for_update=True)
                request = self._build_request(
                    dues_year, later_years, payment_amount, transaction_ref, explicit_start_month, notes
                )
                result = process_payment(
                    request, today=today, strict_ledger=self.settings.strict_ledger
                )
                last_offset = max((m.year_offset for m in result.month_mutations), default=0)
                if not hold_through(year + last_offset):
                    break
                # Following years were read before their locks were held
                self.db.expire_all()

            committed = tuple(commit_entries(result.ledger_entries))
            result = replace(result, ledger_entries=committed)

            self.db.add(
                DuesTransaction(
                    transaction_ref=transaction_ref,
                    unit_id=unit_id,
                    year=year,
                    amount=payment_amount,
                    transaction_date=payment_date,
                    description=result.description,
                    notes=notes,
                    is_reversed=False,
                )
            )

            following: dict[int, DuesYear] = {y.year - year: y for y in later_years}
            following[0] = dues_year
            for mutation in result.month_mutations:
                target = following.get(mutation.year_offset)
                if target is None:
                    target = self._new_dues_year(
                        unit_id, year + mutation.year_offset, dues_year.scheduled_amount
                    )
                    self.db.add(target)
                    logger.info(
                        "Opened dues year %s for unit %s to receive advance payment",
                        target.year,
                        unit_id,
                    )
                    following[mutation.year_offset] = target

                row = target.month(mutation.month)
                row.paid_amount += mutation.amount_to_add
                row.payment_date = payment_date
                row.transaction_ref = transaction_ref
                target.allocations.append(
                    DuesAllocation(
                        month=mutation.month,
                        amount=mutation.amount_to_add,
                        transaction_ref=transaction_ref,
                    )
                )

            for entry in committed:
                dues_year.credit_entries.append(record_from_entry(entry))
            dues_year.credit_balance = self._credit_ledger_of(dues_year).balance()

            AuditService.log(
                self.db,
                "transaction",
                transaction_ref,
                "payment",
                actor,
                {
                    "unit_id": unit_id,
                    "year": year,
                    "amount": payment_amount,
                    "months": [[m.year_offset, m.month] for m in result.month_mutations],
                    "credit_balance": dues_year.credit_balance,
                },
            )

        logger.info(
            "Recorded payment %s for unit %s year %s: %s, credit balance %d",
            transaction_ref,
            unit_id,
            year,
            result.description,
            result.remaining_credit,
        )
        return result

    def reverse_payment(
        self,
        transaction_ref: str,
        notes: str | None = None,
        actor: str | None = None,
    ) -> ReversalResult:
        """Undo a recorded payment by appending compensating history.

        Month amounts are reduced through negative allocations and every ledger
        entry of the payment gets a REVERSAL entry. Nothing is deleted.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
            LedgerEntryError: If the transaction was already reversed
        """
        txn = self.get_transaction(transaction_ref)
        if txn is None:
            raise TransactionNotFoundError(f"Transaction {transaction_ref} not found")
        unit_id, year = txn.unit_id, txn.year

        with self._unit_of_work(unit_id, year) as hold_through:
            years_stmt = (
                select(DuesYear.year)
                .join(DuesAllocation, DuesAllocation.dues_year_id == DuesYear.id)
                .where(DuesAllocation.transaction_ref == transaction_ref)
            )
            hold_through(max(self.db.execute(years_stmt).scalars().all(), default=year))

            # Read again under the locks; a concurrent reversal may have committed
            txn = self.get_transaction(transaction_ref, for_update=True)
            if txn.is_reversed:
                raise LedgerEntryError(f"Transaction {transaction_ref} is already reversed")

            dues_year = self._require_year(unit_id, year, for_update=True)
            # Row locks on the following years the allocations may touch
            self._later_years(unit_id, year, for_update=True)

            stmt = select(DuesAllocation).where(
                DuesAllocation.transaction_ref == transaction_ref,
                DuesAllocation.amount > 0,
            )
            months_reversed = []
            for allocation in self.db.execute(stmt).scalars().all():
                target = allocation.dues_year
                row = target.month(allocation.month)
                row.paid_amount -= allocation.amount
                if row.transaction_ref == transaction_ref:
                    self._restore_last_payment(target, row, transaction_ref)
                target.allocations.append(
                    DuesAllocation(
                        month=allocation.month,
                        amount=-allocation.amount,
                        transaction_ref=transaction_ref,
                    )
                )
                months_reversed.append((target.year, allocation.month, allocation.amount))

            ledger = self._credit_ledger_of(dues_year)
            reversals = []
            for entry in ledger.entries_for(transaction_ref):
                if ledger.is_reversed(entry.entry_id):
                    continue
                reversal = ledger.reverse(entry.entry_id, notes=notes or f"Reversal of {transaction_ref}")
                reversal = commit_entries([reversal])[0]
                dues_year.credit_entries.append(record_from_entry(reversal))
                reversals.append(reversal)
            dues_year.credit_balance = ledger.balance()
            txn.is_reversed = True

            AuditService.log(
                self.db,
                "transaction",
                transaction_ref,
                "reverse",
                actor,
                {"months": [list(m) for m in months_reversed], "credit_balance": dues_year.credit_balance},
            )

        logger.info(
            "Reversed payment %s: %d month(s), %d credit entr(ies), credit balance %d",
            transaction_ref,
            len(months_reversed),
            len(reversals),
            dues_year.credit_balance,
        )
        return ReversalResult(
            transaction_ref=transaction_ref,
            months_reversed=tuple(months_reversed),
            ledger_entries=tuple(reversals),
            credit_balance=dues_year.credit_balance,
        )

    def adjust_credit(
        self,
        unit_id: str,
        year: int,
        new_balance: int,
        notes: str | None = None,
        actor: str | None = None,
    ) -> CreditLedgerEntry | None:
        """Administrative credit adjustment written through the ledger.

        Returns:
            The manual entry written, or None when the balance already matches
        """
        with self._unit_of_work(unit_id, year):
            dues_year = self._require_year(unit_id, year, for_update=True)
            ledger = self._credit_ledger_of(dues_year)
            before = ledger.balance()
            entry = ledger.adjust_to(new_balance, notes=notes or "Manual credit balance update")
            if entry is not None:
                entry = commit_entries([entry])[0]
                dues_year.credit_entries.append(record_from_entry(entry))
                dues_year.credit_balance = ledger.balance()
                AuditService.log(
                    self.db,
                    "credit",
                    dues_year.id,
                    "adjust",
                    actor,
                    {"balance_before": before, "balance_after": new_balance, "notes": notes},
                )

        if entry is not None:
            logger.info(
                "Adjusted credit for unit %s year %s: %d -> %d",
                unit_id,
                year,
                before,
                new_balance,
            )
        return entry

    def reconcile_credit(
        self, unit_id: str, year: int, actor: str | None = None
    ) -> tuple[int, int]:
        """Rewrite the cached credit balance from the ledger fold.

        Returns:
            (cached balance before, derived balance)
        """
        with self._unit_of_work(unit_id, year):
            dues_year = self._require_year(unit_id, year, for_update=True)
            cached = dues_year.credit_balance
            derived = self._credit_ledger_of(dues_year).balance()
            if cached != derived:
                logger.warning(
                    "Cached credit for unit %s year %s was %d, ledger says %d; rewriting",
                    unit_id,
                    year,
                    cached,
                    derived,
                )
                dues_year.credit_balance = derived
                AuditService.log(
                    self.db,
                    "credit",
                    dues_year.id,
                    "reconcile",
                    actor,
                    {"cached": cached, "derived": derived},
                )
        return cached, derived


__all__ = [
    "PaymentRequest",
    "AllocationResult",
    "ReversalResult",
    "UnitYearLocks",
    "unit_year_locks",
    "process_payment",
    "entry_from_record",
    "record_from_entry",
    "DuesPaymentService",
]
