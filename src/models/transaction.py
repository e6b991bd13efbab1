"""Dues transaction ORM model - the originating financial record of a payment."""

from datetime import date

from sqlalchemy import Boolean, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class DuesTransaction(Base, BaseModel):
    """Model representing one dues payment received from a unit.

    Month updates and credit ledger entries produced by the payment reference
    it through ``transaction_ref`` and are committed together with it.
    """

    __tablename__ = "dues_transactions"

    transaction_ref: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="External transaction identifier",
    )
    unit_id: Mapped[str] = mapped_column(String(50), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False, comment="Fiscal year")

    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Payment amount in minor units",
    )
    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Date of transaction",
    )
    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Months covered, or 'credit balance addition'",
    )
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_reversed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_dues_transaction_unit_year", "unit_id", "year"),
        Index("idx_dues_transaction_date", "transaction_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<DuesTransaction(transaction_ref={self.transaction_ref!r}, unit_id={self.unit_id!r}, "
            f"year={self.year}, amount={self.amount}, date={self.transaction_date})>"
        )


__all__ = ["DuesTransaction"]
