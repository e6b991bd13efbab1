"""Custom exception classes for dues allocation and credit ledger operations.

Provides domain-specific exceptions for clear error handling and reporting.
Each error carries a stable ``code`` that the API layer surfaces to clients.
"""


class DuesError(Exception):
    """Base exception for dues engine errors."""

    code = "dues_error"

    def __init__(self, message: str):
        """Initialize error."""
        self.message = message
        super().__init__(message)


class InvalidAmountError(DuesError):
    """Payment amount is non-positive, non-integer or otherwise unusable."""

    code = "invalid_amount"


class InvalidScheduleError(DuesError):
    """Scheduled monthly dues amount is not a positive integer."""

    code = "invalid_schedule"


class InvalidMonthError(DuesError):
    """Month index outside 1..12."""

    code = "invalid_month"


class InconsistentLedgerError(DuesError):
    """One or more months are paid above the scheduled amount."""

    code = "inconsistent_ledger"

    def __init__(self, months: list[int], scheduled_amount: int):
        self.months = list(months)
        self.scheduled_amount = scheduled_amount
        super().__init__(
            f"Months {self.months} exceed scheduled amount {scheduled_amount}; "
            "reconcile the ledger before recording payments"
        )


class LedgerEntryError(DuesError):
    """Credit ledger entry cannot be reversed or is unknown."""

    code = "ledger_entry_error"


class DuesYearNotFoundError(DuesError):
    """No dues year opened for the unit."""

    code = "dues_year_not_found"


class DuesYearExistsError(DuesError):
    """Dues year already opened for the unit."""

    code = "dues_year_exists"


class TransactionNotFoundError(DuesError):
    """Referenced dues transaction does not exist."""

    code = "transaction_not_found"


class DuplicateTransactionError(DuesError):
    """Transaction reference was already recorded."""

    code = "duplicate_transaction"


class PersistenceError(DuesError):
    """Database write failed; the whole batch was rolled back."""

    code = "persistence_error"


__all__ = [
    "DuesError",
    "InvalidAmountError",
    "InvalidScheduleError",
    "InvalidMonthError",
    "InconsistentLedgerError",
    "LedgerEntryError",
    "DuesYearNotFoundError",
    "DuesYearExistsError",
    "TransactionNotFoundError",
    "DuplicateTransactionError",
    "PersistenceError",
]
