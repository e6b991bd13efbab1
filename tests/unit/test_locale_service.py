"""Unit tests for locale-aware amount formatting."""

from decimal import Decimal

from src.services.locale_service import (
    DEFAULT_LOCALE,
    format_amount,
    format_cents,
    get_locale,
)


class TestLocaleService:
    """Formatting minor units for display."""

    def test_format_cents_with_symbol(self, settings_env):
        """Minor units are shown as localized currency."""
        settings_env(LOCALE="en_US", CURRENCY="USD")

        assert format_cents(150050) == "$1,500.50"

    def test_format_negative(self, settings_env):
        """Debts keep their sign."""
        settings_env(LOCALE="en_US", CURRENCY="USD")

        assert format_cents(-2000) == "-$20.00"

    def test_format_without_symbol(self, settings_env):
        """Symbol can be omitted."""
        settings_env(LOCALE="en_US", CURRENCY="USD")

        assert format_amount(Decimal("1234.5"), include_symbol=False) == "1,234.50"

    def test_invalid_locale_falls_back(self, settings_env):
        """Unknown locales fall back to the default."""
        settings_env(LOCALE="xx_NOPE")

        assert get_locale() == DEFAULT_LOCALE
