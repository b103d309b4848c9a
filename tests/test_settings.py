"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from pawplanner.config import AppSettings, GoogleSheetsSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    """Isolate from the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "PAWPLANNER_STORAGE_BACKEND",
        "PAWPLANNER_WEEK_STARTS_ON",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "GOOGLE_SHEETS_POLL_INTERVAL_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for application settings."""

    def test_defaults(self):
        """Test that the in-memory backend is the default."""
        settings = AppSettings()
        assert settings.storage_backend == "memory"
        assert settings.uses_google_sheets is False
        assert settings.week_starts_on == 0

    def test_from_environment(self, monkeypatch):
        """Test the PAWPLANNER_ prefix."""
        monkeypatch.setenv("PAWPLANNER_STORAGE_BACKEND", "google_sheets")
        monkeypatch.setenv("PAWPLANNER_WEEK_STARTS_ON", "6")
        settings = AppSettings()
        assert settings.uses_google_sheets
        assert settings.week_starts_on == 6

    def test_rejects_unknown_backend(self, monkeypatch):
        """Test that only known backends are accepted."""
        monkeypatch.setenv("PAWPLANNER_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            AppSettings()


class TestGoogleSheetsSettings:
    """Tests for Google Sheets settings."""

    def test_required_fields(self):
        """Test that credentials and spreadsheet are required."""
        with pytest.raises(ValidationError):
            GoogleSheetsSettings()

    def test_poll_interval(self, monkeypatch, tmp_path):
        """Test the feed poll interval is read and bounded."""
        credentials = tmp_path / "creds.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")
        monkeypatch.setenv("GOOGLE_SHEETS_POLL_INTERVAL_SECONDS", "2.5")
        assert GoogleSheetsSettings().poll_interval_seconds == 2.5

        monkeypatch.setenv("GOOGLE_SHEETS_POLL_INTERVAL_SECONDS", "0")
        with pytest.raises(ValidationError):
            GoogleSheetsSettings()

    def test_missing_credentials_file_warns(self, monkeypatch):
        """Test that a missing credentials file only warns."""
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "/nowhere/creds.json")
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")
        with pytest.warns(UserWarning, match="credentials file not found"):
            GoogleSheetsSettings()


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_memory_backend_skips_sheets(self):
        """Test that Sheets isn't required unless selected."""
        assert validate_all_settings() == {"app": True}

    def test_sheets_backend_reports_missing_config(self, monkeypatch):
        """Test that a selected but unconfigured Sheets backend is reported."""
        monkeypatch.setenv("PAWPLANNER_STORAGE_BACKEND", "google_sheets")
        results = validate_all_settings()
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
