"""HOA dues API endpoints.

Handles dues operations for one unit and fiscal year:
- Opening a dues year with its monthly schedule
- Previewing and recording payments (credit repair, months, credit)
- Reversing recorded payments
- Credit balance, history and manual adjustments

Amounts are integer minor units on the wire; every amount also carries a
locale-formatted ``*_display`` string.
"""

import logging
import time
from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from sqlalchemy.orm import Session

from src.models import DuesYear
from src.services import get_db
from src.services.config import get_settings
from src.services.credit_ledger_service import CreditLedgerEntry
from src.services.dues_payment_service import AllocationResult, DuesPaymentService
from src.services.locale_service import format_cents
from src.services.money import fiscal_to_calendar_month, short_month_name
from src.services.month_status_service import month_statuses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dues", tags=["dues"])


def get_dues_service(db: Session = Depends(get_db)) -> DuesPaymentService:  # noqa: B008
    """Dues service bound to the request's database session."""
    return DuesPaymentService(db, get_settings())


def _log_debug(endpoint: str, start_time: float, **kwargs) -> None:
    duration_ms = int((time.time() - start_time) * 1000)
    extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
    logger.debug("dues.%s: %s duration_ms=%d", endpoint, extra, duration_ms)


# Request schemas
class OpenYearRequest(BaseModel):
    """Request schema for opening a dues year."""

    scheduled_amount: StrictInt
    opening_credit: StrictInt = 0
    actor: str | None = None


class PreviewRequest(BaseModel):
    """Request schema for a payment preview."""

    payment_amount: StrictInt
    explicit_start_month: int | None = None


class RecordPaymentRequest(BaseModel):
    """Request schema for recording a payment."""

    payment_amount: StrictInt
    transaction_ref: str = Field(min_length=1, max_length=100)
    payment_date: date | None = None
    explicit_start_month: int | None = None
    notes: str | None = None
    actor: str | None = None


class CreditAdjustRequest(BaseModel):
    """Request schema for a manual credit adjustment."""

    new_balance: StrictInt
    notes: str | None = None
    actor: str | None = None


# Response schemas
class MonthResponse(BaseModel):
    """One fiscal month of a dues year."""

    month: int
    month_name: str
    paid_amount: int
    outstanding: int
    state: str

    model_config = ConfigDict(from_attributes=True)


class DuesYearResponse(BaseModel):
    """Response schema for an opened dues year."""

    unit_id: str
    year: int
    scheduled_amount: int
    scheduled_amount_display: str
    credit_balance: int
    credit_balance_display: str
    months: list[MonthResponse]


class MonthMutationResponse(BaseModel):
    """Amount added to one month by a payment."""

    year: int
    month: int
    month_name: str
    amount_to_add: int
    resulting_paid_amount: int


class CreditEntryResponse(BaseModel):
    """One credit ledger entry."""

    entry_id: str
    entry_type: str
    amount: int
    amount_display: str
    signed_amount: int
    timestamp: datetime
    transaction_ref: str | None
    notes: str | None
    reversal_of_ref: str | None
    status: str


class AllocationResponse(BaseModel):
    """Response schema for payment preview and recording."""

    credit_repair_amount: int
    credit_balance_after_repair: int
    remaining_credit: int
    remaining_credit_display: str
    remaining_for_dues: int
    start_month: int
    month_mutations: list[MonthMutationResponse]
    description: str
    unapplied_amount: int
    inconsistent_months: list[int]
    ledger_entries: list[CreditEntryResponse]


class MonthReversalResponse(BaseModel):
    """Amount taken back from one month by a reversal."""

    year: int
    month: int
    month_name: str
    amount: int


class ReversalResponse(BaseModel):
    """Response schema for a payment reversal."""

    transaction_ref: str
    months_reversed: list[MonthReversalResponse]
    ledger_entries: list[CreditEntryResponse]
    credit_balance: int
    credit_balance_display: str


class CreditResponse(BaseModel):
    """Response schema for credit balance and history."""

    unit_id: str
    year: int
    balance: int
    balance_display: str
    history: list[CreditEntryResponse]


def _month_name(fiscal_month: int) -> str:
    fsm = get_settings().fiscal_year_start_month
    return short_month_name(fiscal_to_calendar_month(fiscal_month, fsm))


def _entry_response(entry: CreditLedgerEntry) -> CreditEntryResponse:
    return CreditEntryResponse(
        entry_id=entry.entry_id,
        entry_type=entry.entry_type.value,
        amount=entry.amount,
        amount_display=format_cents(entry.amount),
        signed_amount=entry.signed_amount,
        timestamp=entry.timestamp,
        transaction_ref=entry.transaction_ref,
        notes=entry.notes,
        reversal_of_ref=entry.reversal_of_ref,
        status=entry.status.value,
    )


def _year_response(dues_year: DuesYear, service: DuesPaymentService) -> DuesYearResponse:
    ledger = service.get_ledger(dues_year.unit_id, dues_year.year)
    return DuesYearResponse(
        unit_id=dues_year.unit_id,
        year=dues_year.year,
        scheduled_amount=dues_year.scheduled_amount,
        scheduled_amount_display=format_cents(dues_year.scheduled_amount),
        credit_balance=dues_year.credit_balance,
        credit_balance_display=format_cents(dues_year.credit_balance),
        months=[
            MonthResponse(
                month=s.month,
                month_name=_month_name(s.month),
                paid_amount=s.paid_amount,
                outstanding=s.outstanding,
                state=s.state.value,
            )
            for s in month_statuses(ledger, dues_year.scheduled_amount)
        ],
    )


def _allocation_response(year: int, result: AllocationResult) -> AllocationResponse:
    return AllocationResponse(
        credit_repair_amount=result.credit_repair_amount,
        credit_balance_after_repair=result.credit_balance_after_repair,
        remaining_credit=result.remaining_credit,
        remaining_credit_display=format_cents(result.remaining_credit),
        remaining_for_dues=result.remaining_for_dues,
        start_month=result.start_month,
        month_mutations=[
            MonthMutationResponse(
                year=year + m.year_offset,
                month=m.month,
                month_name=_month_name(m.month),
                amount_to_add=m.amount_to_add,
                resulting_paid_amount=m.resulting_paid_amount,
            )
            for m in result.month_mutations
        ],
        description=result.description,
        unapplied_amount=result.unapplied_amount,
        inconsistent_months=list(result.inconsistent_months),
        ledger_entries=[_entry_response(e) for e in result.ledger_entries],
    )


@router.put("/{unit_id}/{year}", response_model=DuesYearResponse, status_code=status.HTTP_201_CREATED)
def open_year(
    unit_id: str,
    year: int,
    body: OpenYearRequest,
    service: DuesPaymentService = Depends(get_dues_service),  # noqa: B008
) -> DuesYearResponse:
    """Open a dues year with twelve unpaid months.

    Raises:
        400: Invalid scheduled amount
        409: Year already open
    """
    start_time = time.time()
    dues_year = service.open_year(
        unit_id, year, body.scheduled_amount, body.opening_credit, actor=body.actor
    )
    _log_debug("open_year", start_time, unit_id=unit_id, year=year)
    return _year_response(dues_year, service)


@router.get("/{unit_id}/{year}", response_model=DuesYearResponse)
def get_year(
    unit_id: str,
    year: int,
    service: DuesPaymentService = Depends(get_dues_service),  # noqa: B008
) -> DuesYearResponse:
    """Month-by-month status of a dues year."""
    dues_year = service.get_dues_year(unit_id, year)
    return _year_response(dues_year, service)


@router.post("/{unit_id}/{year}/preview", response_model=AllocationResponse)
def preview_payment(
    unit_id: str,
    year: int,
    body: PreviewRequest,
    service: DuesPaymentService = Depends(get_dues_service),  # noqa: B008
) -> AllocationResponse:
    """Show how a payment would be allocated without recording it."""
    start_time = time.time()
    result = service.preview_payment(
        unit_id, year, body.payment_amount, explicit_start_month=body.explicit_start_month
    )
    _log_debug("preview", start_time, unit_id=unit_id, year=year, amount=body.payment_amount)
    return _allocation_response(year, result)


@router.post(
    "/{unit_id}/{year}/payments",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_payment(
    unit_id: str,
    year: int,
    body: RecordPaymentRequest,
    service: DuesPaymentService = Depends(get_dues_service),  # noqa: B008
) -> AllocationResponse:
    """Record a payment: credit repair, whole months, then credit.

    Raises:
        400: Invalid amount or start month
        404: Dues year not open
        409: Duplicate transaction reference or inconsistent ledger
        503: Database write failed (nothing recorded)
    """
    start_time = time.time()
    result = service.record_payment(
        unit_id,
        year,
        body.payment_amount,
        body.transaction_ref,
        payment_date=body.payment_date,
        explicit_start_month=body.explicit_start_month,
        notes=body.notes,
        actor=body.actor,
    )
    _log_debug("record_payment", start_time, unit_id=unit_id, year=year, ref=body.transaction_ref)
    return _allocation_response(year, result)


@router.delete("/transactions/{transaction_ref}", response_model=ReversalResponse)
def reverse_payment(
    transaction_ref: str,
    notes: str | None = None,
    actor: str | None = None,
    service: DuesPaymentService = Depends(get_dues_service),  # noqa: B008
) -> ReversalResponse:
    """Reverse a recorded payment through compensating entries."""
    result = service.reverse_payment(transaction_ref, notes=notes, actor=actor)
    return ReversalResponse(
        transaction_ref=result.transaction_ref,
        months_reversed=[
            MonthReversalResponse(
                year=year, month=month, month_name=_month_name(month), amount=amount
            )
            for year, month, amount in result.months_reversed
        ],
        ledger_entries=[_entry_response(e) for e in result.ledger_entries],
        credit_balance=result.credit_balance,
        credit_balance_display=format_cents(result.credit_balance),
    )


@router.get("/{unit_id}/{year}/credit", response_model=CreditResponse)
def get_credit(
    unit_id: str,
    year: int,
    limit: int | None = None,
    service: DuesPaymentService = Depends(get_dues_service),  # noqa: B008
) -> CreditResponse:
    """Credit balance and most recent ledger entries."""
    balance = service.get_credit_balance(unit_id, year)
    history = service.get_credit_history(unit_id, year, limit=limit)
    return CreditResponse(
        unit_id=unit_id,
        year=year,
        balance=balance,
        balance_display=format_cents(balance),
        history=[_entry_response(e) for e in history],
    )


@router.post("/{unit_id}/{year}/credit", response_model=CreditResponse)
def adjust_credit(
    unit_id: str,
    year: int,
    body: CreditAdjustRequest,
    service: DuesPaymentService = Depends(get_dues_service),  # noqa: B008
) -> CreditResponse:
    """Set the credit balance through a manual ledger entry."""
    service.adjust_credit(unit_id, year, body.new_balance, notes=body.notes, actor=body.actor)
    return get_credit(unit_id, year, None, service)


__all__ = ["router", "get_dues_service"]
