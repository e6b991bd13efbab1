"""Credit ledger ORM model - persisted append-only credit balance changes."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class CreditLedgerRecord(Base, BaseModel):
    """Persisted credit ledger entry.

    Attributes:
        dues_year_id: Dues year whose credit balance changed
        entry_id: Stable entry identifier referenced by reversals
        entry_type: repair, usage, addition, manual_add, manual_remove or reversal
        amount: Positive magnitude in minor units
        timestamp: When the change happened
        transaction_ref: Originating transaction (None for manual adjustments)
        notes: Optional free text
        reversal_of_ref: entry_id of the reversed entry (reversals only)
        reversed_effect: Signed effect of the reversed entry (reversals only)
        status: pending or committed
    """

    __tablename__ = "credit_ledger_entries"

    dues_year_id: Mapped[int] = mapped_column(
        ForeignKey("dues_years.id"),
        nullable=False,
        index=True,
    )
    entry_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    transaction_ref: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reversal_of_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reversed_effect: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="committed")

    dues_year: Mapped["DuesYear"] = relationship(  # noqa: F821
        "DuesYear", back_populates="credit_entries"
    )

    __table_args__ = (Index("idx_credit_ledger_year_time", "dues_year_id", "timestamp"),)

    def __repr__(self) -> str:
        return (
            f"<CreditLedgerRecord(entry_id={self.entry_id!r}, type={self.entry_type}, "
            f"amount={self.amount}, transaction_ref={self.transaction_ref!r})>"
        )


__all__ = ["CreditLedgerRecord"]
