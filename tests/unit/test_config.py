"""
Unit tests for environment configuration.
"""

import pytest

from studio_voice.utils.config import Config


ENV_VARS = [
    "VOICE_CONFIDENCE_THRESHOLD",
    "VOICE_FUZZY_THRESHOLD",
    "VOICE_AMBIGUITY_MARGIN",
    "VOICE_PENDING_TTL_SECONDS",
    "VOICE_STORE_FAILURE_THRESHOLD",
    "VOICE_STORE_RETRY_SECONDS",
    "OUTPUT_DIR",
    "LOG_LEVEL",
]


class TestConfig:
    """Test cases for Config."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        """Run from an empty directory with no voice settings."""
        monkeypatch.chdir(tmp_path)
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        """Test default values."""
        config = Config()

        assert config.confidence_threshold == 0.75
        assert config.fuzzy_threshold == 0.6
        assert config.ambiguity_margin == 0.1
        assert config.pending_ttl_seconds == 600
        assert config.store_failure_threshold == 3
        assert config.store_retry_seconds == 30
        assert config.log_level == "INFO"
        assert config.validate()

    def test_environment_overrides(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("VOICE_CONFIDENCE_THRESHOLD", "0.9")
        monkeypatch.setenv("VOICE_PENDING_TTL_SECONDS", "120")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = Config()

        assert config.confidence_threshold == 0.9
        assert config.pending_ttl_seconds == 120
        assert config.log_level == "DEBUG"

    def test_validate_collects_every_error(self, monkeypatch):
        """Test validation reports all problems at once."""
        monkeypatch.setenv("VOICE_CONFIDENCE_THRESHOLD", "1.5")
        monkeypatch.setenv("VOICE_PENDING_TTL_SECONDS", "0")
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ValueError) as exc_info:
            Config().validate()

        message = str(exc_info.value)
        assert "VOICE_CONFIDENCE_THRESHOLD" in message
        assert "VOICE_PENDING_TTL_SECONDS" in message
        assert "LOG_LEVEL" in message

    def test_create_output_directories(self, monkeypatch, tmp_path):
        """Test log and report directories are created."""
        monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))

        Config().create_output_directories()

        assert (tmp_path / "out" / "voice_logs").is_dir()
        assert (tmp_path / "out" / "voice_reports").is_dir()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
