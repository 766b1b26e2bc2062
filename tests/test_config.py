"""Tests for configuration loading."""

import pytest

from finsight.config import AppSettings, get_settings, validate_all_settings


class TestAppSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("FINSIGHT_STORAGE_BACKEND", raising=False)
        settings = AppSettings()

        assert settings.storage_backend == "memory"
        assert settings.default_history_limit == 12
        assert settings.top_category_count == 3
        assert (settings.needs_limit_pct, settings.wants_limit_pct, settings.savings_target_pct) == (50, 30, 20)

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("FINSIGHT_NEEDS_LIMIT_PCT", "55")
        monkeypatch.setenv("FINSIGHT_NEEDS_OFF_TRACK_PCT", "65")

        settings = AppSettings()

        assert settings.needs_limit_pct == 55
        assert settings.needs_off_track_pct == 65

    def test_off_track_band_must_sit_beyond_limit(self):
        with pytest.raises(ValueError, match="needs_off_track_pct"):
            AppSettings(needs_limit_pct=50, needs_off_track_pct=45)

    def test_savings_band_must_sit_below_target(self):
        with pytest.raises(ValueError, match="savings_off_track_pct"):
            AppSettings(savings_target_pct=20, savings_off_track_pct=25)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            AppSettings(storage_backend="postgres")


class TestValidateAllSettings:

    def test_memory_backend_skips_google_sheets(self, monkeypatch):
        monkeypatch.setenv("FINSIGHT_STORAGE_BACKEND", "memory")
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results == {"app": True}
