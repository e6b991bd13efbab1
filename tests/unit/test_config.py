"""Unit tests for configuration loading."""

import pytest
from pydantic import ValidationError

from src.services.config import Settings, get_settings


class TestSettings:
    """Tests for Settings loading from environment."""

    def test_defaults(self, monkeypatch):
        """Defaults apply when nothing is configured."""
        for key in ("FISCAL_YEAR_START_MONTH", "STRICT_LEDGER", "LOCALE", "CURRENCY"):
            monkeypatch.delenv(key, raising=False)

        settings = Settings(_env_file=None)

        assert settings.fiscal_year_start_month == 1
        assert settings.strict_ledger is False
        assert settings.locale == "es_MX"
        assert settings.currency == "MXN"
        assert settings.credit_history_limit == 50

    def test_environment_overrides(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("FISCAL_YEAR_START_MONTH", "7")
        monkeypatch.setenv("STRICT_LEDGER", "true")

        settings = Settings(_env_file=None)

        assert settings.fiscal_year_start_month == 7
        assert settings.strict_ledger is True

    def test_env_file(self, tmp_path, monkeypatch):
        """Values are read from a .env file."""
        monkeypatch.delenv("CURRENCY", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("CURRENCY=USD\n")

        assert Settings(_env_file=env_file).currency == "USD"

    @pytest.mark.parametrize("month", ["0", "13"])
    def test_fiscal_start_month_range(self, monkeypatch, month):
        """Fiscal start month must be a calendar month."""
        monkeypatch.setenv("FISCAL_YEAR_START_MONTH", month)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_get_settings_cached(self, settings_env):
        """get_settings returns one instance until the cache is cleared."""
        first = settings_env(CURRENCY="EUR")

        assert get_settings() is first
        assert first.currency == "EUR"
