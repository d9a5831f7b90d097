"""Unit tests for settings validation."""

import pytest
from pydantic import ValidationError

from referral_engine.config.settings import Settings

SQLITE_URL = "sqlite+aiosqlite:///:memory:"


class TestSettingsValidation:
    """Test configuration validators."""

    def test_defaults(self):
        s = Settings(database_url=SQLITE_URL, environment="test")

        assert s.commission_max_levels == 5
        assert s.commission_truncate_at_inactive is False
        assert s.expiry_notice_days == 7
        assert s.urgent_expiry_notice_days == 3
        assert s.tz.key == "UTC"

    def test_sync_driver_rejected(self):
        with pytest.raises(ValidationError):
            Settings(database_url="postgresql://u:p@localhost/db")

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            Settings(
                database_url=SQLITE_URL,
                environment="test",
                business_timezone="Mars/Olympus",
            )

    def test_preview_rate_above_one_rejected(self):
        with pytest.raises(ValidationError):
            Settings(
                database_url=SQLITE_URL,
                environment="test",
                commission_preview_rates=["0.5", "1.5"],
            )

    def test_urgent_notice_must_fit_regular_window(self):
        with pytest.raises(ValidationError):
            Settings(
                database_url=SQLITE_URL,
                environment="test",
                expiry_notice_days=3,
                urgent_expiry_notice_days=5,
            )

    def test_debug_forbidden_in_production(self):
        with pytest.raises(ValidationError):
            Settings(
                database_url="postgresql+asyncpg://u:p@localhost/db",
                environment="production",
                debug=True,
            )
