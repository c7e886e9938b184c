"""Tests for fluxcal.core.config.Settings validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from fluxcal.core.config import Settings

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
_REQUIRED = {
    "DATABASE_URL": "postgresql+asyncpg://u:p@localhost/db",
}


def _make(**overrides: object) -> Settings:
    env = {**_REQUIRED, **overrides}
    return Settings(**env)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
class TestDefaults:
    def test_fasting_windows_default_to_two_weeks(self) -> None:
        s = _make()
        assert s.FASTING_WINDOW_DAYS == 14
        assert s.FASTING_RETENTION_DAYS == 14

    def test_max_deficit_default(self) -> None:
        assert _make().MAX_BALANCE_DAILY_DEFICIT == 1000

    def test_tasks_disabled_by_default(self) -> None:
        s = _make()
        assert s.TASKS_SECRET == ""
        assert s.tasks_enabled is False

    def test_migrations_on_by_default(self) -> None:
        assert _make().RUN_MIGRATIONS is True


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class TestValidation:
    @pytest.mark.parametrize(
        "field",
        ["PORT", "FASTING_WINDOW_DAYS", "FASTING_RETENTION_DAYS", "MAX_BALANCE_DAILY_DEFICIT"],
    )
    def test_non_positive_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError, match="Value must be positive"):
            _make(**{field: 0})

    def test_short_tasks_secret_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 8 characters"):
            _make(TASKS_SECRET="short")

    def test_tasks_secret_enables_tasks(self) -> None:
        assert _make(TASKS_SECRET="long-enough-secret").tasks_enabled is True

    def test_log_level_normalised(self) -> None:
        assert _make(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Unknown LOG_LEVEL"):
            _make(LOG_LEVEL="chatty")

    def test_database_url_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]
