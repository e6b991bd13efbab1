"""Money and period utilities shared by the dues engine.

All monetary arithmetic is done in integer minor units (cents/centavos).
Months are addressed as 1-based fiscal indexes; fiscal years are named by
their ending calendar year (with a July start, FY 2026 = Jul 2025 - Jun 2026).
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

MONTHS_PER_YEAR = 12

MONTH_NAMES_SHORT = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def to_cents(amount: Decimal | str | int) -> int:
    """Convert a major-unit amount to integer minor units.

    Args:
        amount: Amount in major units (e.g. Decimal("250.50"))

    Returns:
        Amount in minor units, rounded half-up (e.g. 25050)
    """
    value = Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer minor units to a 2-place Decimal in major units."""
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def validate_month(month: int, name: str = "month") -> int:
    """Return month unchanged if it is an int in 1..12.

    Raises:
        ValueError: If month is outside 1..12 or not an int
    """
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= MONTHS_PER_YEAR:
        raise ValueError(f"{name} must be an integer between 1 and 12, got {month!r}")
    return month


def wrap_month(start_month: int, offset: int) -> int:
    """Month reached after moving ``offset`` slots forward from ``start_month``.

    wrap_month(11, 0) == 11, wrap_month(11, 1) == 12, wrap_month(11, 2) == 1
    """
    return ((start_month + offset - 1) % MONTHS_PER_YEAR) + 1


def year_offset_for(start_month: int, offset: int) -> int:
    """Number of fiscal years crossed when moving ``offset`` slots from ``start_month``."""
    return (start_month + offset - 1) // MONTHS_PER_YEAR


def fiscal_to_calendar_month(fiscal_month: int, fiscal_year_start_month: int) -> int:
    """Convert a fiscal month position to its calendar month.

    fiscal_to_calendar_month(1, 7) == 7, fiscal_to_calendar_month(12, 7) == 6
    """
    validate_month(fiscal_month, "fiscal_month")
    validate_month(fiscal_year_start_month, "fiscal_year_start_month")
    calendar_month = fiscal_month + fiscal_year_start_month - 1
    if calendar_month > MONTHS_PER_YEAR:
        calendar_month -= MONTHS_PER_YEAR
    return calendar_month


def calendar_to_fiscal_month(calendar_month: int, fiscal_year_start_month: int) -> int:
    """Convert a calendar month to its fiscal month position.

    calendar_to_fiscal_month(7, 7) == 1, calendar_to_fiscal_month(1, 7) == 7
    """
    validate_month(calendar_month, "calendar_month")
    validate_month(fiscal_year_start_month, "fiscal_year_start_month")
    fiscal_month = calendar_month - fiscal_year_start_month + 1
    if fiscal_month <= 0:
        fiscal_month += MONTHS_PER_YEAR
    return fiscal_month


def fiscal_year_for_date(day: date, fiscal_year_start_month: int = 1) -> int:
    """Fiscal year (named by ending year) containing ``day``."""
    validate_month(fiscal_year_start_month, "fiscal_year_start_month")
    if fiscal_year_start_month == 1:
        return day.year
    if day.month >= fiscal_year_start_month:
        return day.year + 1
    return day.year


def calendar_year_for(fiscal_year: int, fiscal_month: int, fiscal_year_start_month: int) -> int:
    """Calendar year in which a fiscal month of ``fiscal_year`` falls."""
    calendar_month = fiscal_to_calendar_month(fiscal_month, fiscal_year_start_month)
    if fiscal_year_start_month != 1 and calendar_month >= fiscal_year_start_month:
        return fiscal_year - 1
    return fiscal_year


def short_month_name(calendar_month: int) -> str:
    """Three-letter English label for a calendar month."""
    return MONTH_NAMES_SHORT[validate_month(calendar_month, "calendar_month") - 1]


__all__ = [
    "MONTHS_PER_YEAR",
    "MONTH_NAMES_SHORT",
    "to_cents",
    "from_cents",
    "validate_month",
    "wrap_month",
    "year_offset_for",
    "fiscal_to_calendar_month",
    "calendar_to_fiscal_month",
    "fiscal_year_for_date",
    "calendar_year_for",
    "short_month_name",
]
