"""Tests for configuration module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from intake_engine.config import Environment, LogLevel, Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettingsDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("INTAKE_DATA_ENCRYPTION_KEY", raising=False)
        monkeypatch.delenv("INTAKE_ENVIRONMENT", raising=False)

        settings = Settings(_env_file=None)

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.log_level == LogLevel.INFO
        assert settings.log_format == "console"
        assert settings.data_encryption_key is None
        assert settings.sqlite_path == Path("intake_engine.db")
        assert settings.packet_workers == 2
        assert settings.packet_renderer == "pdf"
        assert settings.summary_title == "Preparer Summary"
        assert settings.is_development

    def test_production_defaults_to_json_logs(self):
        settings = Settings(_env_file=None, environment=Environment.PRODUCTION)

        assert settings.log_format == "json"
        assert settings.is_production

    def test_explicit_log_format_wins(self):
        settings = Settings(
            _env_file=None, environment=Environment.PRODUCTION, log_format="console"
        )

        assert settings.log_format == "console"


class TestSettingsFromEnvironment:
    def test_reads_prefixed_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("INTAKE_DATA_ENCRYPTION_KEY", "s3cret")
        monkeypatch.setenv("INTAKE_SQLITE_PATH", str(tmp_path / "x.db"))
        monkeypatch.setenv("INTAKE_PACKET_WORKERS", "4")
        monkeypatch.setenv("INTAKE_PACKET_RENDERER", "text")
        monkeypatch.setenv("INTAKE_ENVIRONMENT", "testing")

        settings = get_settings()

        assert settings.data_encryption_key == "s3cret"
        assert settings.sqlite_path == tmp_path / "x.db"
        assert settings.packet_workers == 4
        assert settings.packet_renderer == "text"
        assert settings.is_testing

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    @pytest.mark.parametrize("workers", ["0", "17"])
    def test_worker_bounds(self, monkeypatch, workers):
        monkeypatch.setenv("INTAKE_PACKET_WORKERS", workers)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_unknown_renderer_is_rejected(self, monkeypatch):
        monkeypatch.setenv("INTAKE_PACKET_RENDERER", "docx")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
