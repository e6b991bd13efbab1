"""Centralized locale service for currency formatting at the presentation boundary.

The dues engine works in integer minor units only; this module is the single
place where amounts become human-readable strings. Uses babel.

Configuration:
    LOCALE env var (default: es_MX) - number formatting
    CURRENCY env var (default: MXN) - currency code

Example:
    >>> from src.services.locale_service import format_cents
    >>> format_cents(150050)
    '$1,500.50'
"""

import logging
from decimal import Decimal

from babel import Locale, UnknownLocaleError
from babel.numbers import (
    format_currency as babel_format_currency,
)
from babel.numbers import (
    format_decimal as babel_format_decimal,
)

from src.services.config import get_settings
from src.services.money import from_cents

logger = logging.getLogger(__name__)

# Default locale if LOCALE is invalid or missing
DEFAULT_LOCALE = "es_MX"


def get_locale() -> str:
    """Get configured locale with validation and fallback.

    Returns:
        Valid locale string (e.g., 'es_MX')
    """
    locale_str = get_settings().locale
    try:
        Locale.parse(locale_str)
        return locale_str
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Invalid LOCALE '{locale_str}': {e}. Falling back to '{DEFAULT_LOCALE}'")
        return DEFAULT_LOCALE


def get_currency_code() -> str:
    """Get configured ISO 4217 currency code (e.g., 'MXN')."""
    return get_settings().currency


def format_amount(amount: Decimal, include_symbol: bool = True) -> str:
    """Format a major-unit amount according to locale.

    Args:
        amount: Amount in major units
        include_symbol: Whether to include currency symbol (default True)

    Returns:
        Formatted currency string (e.g., '$1,234.56')
    """
    if include_symbol:
        return babel_format_currency(amount, get_currency_code(), locale=get_locale())
    return babel_format_decimal(amount, format="#,##0.00", locale=get_locale())


def format_cents(cents: int, include_symbol: bool = True) -> str:
    """Format an integer minor-unit amount according to locale."""
    return format_amount(from_cents(cents), include_symbol=include_symbol)


__all__ = [
    "DEFAULT_LOCALE",
    "get_locale",
    "get_currency_code",
    "format_amount",
    "format_cents",
]
