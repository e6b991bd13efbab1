"""Dues year ORM models: yearly schedule, monthly paid amounts and their history."""

from datetime import date

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class DuesYear(Base, BaseModel):
    """Model representing one unit's HOA dues for one fiscal year.

    Amounts are integer minor units. ``credit_balance`` is a cached projection
    of the credit ledger fold and is rewritten on every commit that touches the
    ledger; it is never edited directly.
    """

    __tablename__ = "dues_years"

    unit_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Property unit identifier (e.g., '1A', 'PH4D')",
    )
    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Fiscal year, named by its ending calendar year",
    )
    scheduled_amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Monthly dues in minor units, fixed once the year is open",
    )
    credit_balance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Cached credit balance (derived from credit ledger)",
    )

    # Relationships
    months: Mapped[list["MonthlyPayment"]] = relationship(
        "MonthlyPayment",
        back_populates="dues_year",
        order_by="MonthlyPayment.month",
        cascade="all, delete-orphan",
    )
    allocations: Mapped[list["DuesAllocation"]] = relationship(
        "DuesAllocation",
        back_populates="dues_year",
        order_by="DuesAllocation.id",
        cascade="all, delete-orphan",
    )
    credit_entries: Mapped[list["CreditLedgerRecord"]] = relationship(  # noqa: F821
        "CreditLedgerRecord",
        back_populates="dues_year",
        order_by="CreditLedgerRecord.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("unit_id", "year", name="uq_dues_year_unit_year"),
        Index("idx_dues_year_unit", "unit_id"),
    )

    def month(self, month: int) -> "MonthlyPayment | None":
        """Return the row for a fiscal month, if present."""
        for row in self.months:
            if row.month == month:
                return row
        return None

    def __repr__(self) -> str:
        return (
            f"<DuesYear(id={self.id}, unit_id={self.unit_id!r}, year={self.year}, "
            f"scheduled_amount={self.scheduled_amount}, credit_balance={self.credit_balance})>"
        )


class MonthlyPayment(Base, BaseModel):
    """Paid amount for one fiscal month of a dues year."""

    __tablename__ = "monthly_payments"

    dues_year_id: Mapped[int] = mapped_column(
        ForeignKey("dues_years.id"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Fiscal month 1..12",
    )
    paid_amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Total paid for the month in minor units",
    )
    payment_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Date of the last payment applied to the month",
    )
    transaction_ref: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Reference of the last transaction applied to the month",
    )

    dues_year: Mapped["DuesYear"] = relationship("DuesYear", back_populates="months")

    __table_args__ = (
        UniqueConstraint("dues_year_id", "month", name="uq_monthly_payment_year_month"),
    )

    def __repr__(self) -> str:
        return (
            f"<MonthlyPayment(dues_year_id={self.dues_year_id}, month={self.month}, "
            f"paid_amount={self.paid_amount})>"
        )


class DuesAllocation(Base, BaseModel):
    """Append-only history of amounts applied to (or reversed from) a month.

    The sum of a month's allocations equals its ``MonthlyPayment.paid_amount``.
    """

    __tablename__ = "dues_allocations"

    dues_year_id: Mapped[int] = mapped_column(
        ForeignKey("dues_years.id"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Signed minor units (negative for reversals)",
    )
    transaction_ref: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    dues_year: Mapped["DuesYear"] = relationship("DuesYear", back_populates="allocations")

    __table_args__ = (Index("idx_dues_allocation_year_month", "dues_year_id", "month"),)

    def __repr__(self) -> str:
        return (
            f"<DuesAllocation(dues_year_id={self.dues_year_id}, month={self.month}, "
            f"amount={self.amount}, transaction_ref={self.transaction_ref!r})>"
        )


__all__ = ["DuesYear", "MonthlyPayment", "DuesAllocation"]
