"""Tests for Settings configuration class."""

from pathlib import Path

import pytest


class TestSettingsDefaults:
    """Test that Settings loads sensible defaults."""

    def test_settings_loads_with_defaults(self, monkeypatch):
        """Settings should load with default values when no env vars are set."""
        for var in ["OUTPUT_DIR", "JOB_EMBEDDINGS_PATH", "LOG_LEVEL"]:
            monkeypatch.delenv(var, raising=False)

        from src.config.settings import Settings

        settings = Settings(_env_file=None)

        assert settings.output_dir == Path("./artifacts")
        assert settings.job_embeddings_path is None
        assert settings.log_level == "INFO"


class TestSettingsFromEnvironment:
    """Test that Settings reads from environment variables."""

    def test_settings_reads_paths_from_env(self, monkeypatch):
        """Settings should read path configurations from environment."""
        monkeypatch.setenv("OUTPUT_DIR", "/custom/output")
        monkeypatch.setenv("JOB_EMBEDDINGS_PATH", "/custom/embeddings.json")

        from src.config.settings import Settings

        settings = Settings(_env_file=None)
        assert settings.output_dir == Path("/custom/output")
        assert settings.job_embeddings_path == Path("/custom/embeddings.json")

    def test_settings_uppercases_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")

        from src.config.settings import Settings

        assert Settings(_env_file=None).log_level == "DEBUG"

    def test_settings_reads_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("OUTPUT_DIR=/from/dotenv\n", encoding="utf-8")

        from src.config.settings import Settings

        settings = Settings(_env_file=env_file)
        assert settings.output_dir == Path("/from/dotenv")


class TestSettingsValidation:
    """Test that Settings validates values correctly."""

    def test_settings_rejects_unknown_log_level(self, monkeypatch):
        """Settings should only accept known log levels."""
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        from src.config.settings import Settings

        with pytest.raises(ValueError):
            Settings(_env_file=None)


class TestSettingsSingleton:
    def test_get_settings_caches_until_reset(self):
        from src.config.settings import get_settings, reset_settings

        first = get_settings()
        assert get_settings() is first

        reset_settings()
        assert get_settings() is not first


class TestResolveLogLevel:
    def test_cli_override_wins(self):
        from src.config.settings import Settings

        settings = Settings(_env_file=None, log_level="warning")

        assert settings.resolve_log_level() == "WARNING"
        assert settings.resolve_log_level("debug") == "DEBUG"
