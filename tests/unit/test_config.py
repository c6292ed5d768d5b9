"""Unit tests for configuration management."""

import pytest
import os
from unittest.mock import patch


class TestSettings:
    """Tests for Settings configuration."""

    def test_default_values(self):
        """Test that default values are set correctly."""
        from app.config import Settings

        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.generation_endpoint == "http://localhost:3000/api/generate-image"
            assert settings.request_timeout == 120.0
            assert settings.default_width == 512
            assert settings.default_height == 512
            assert settings.default_steps == 20
            assert settings.default_guidance_scale == 7.5
            assert settings.default_seed == -1
            assert settings.default_negative_prompt == ""
            assert settings.max_history == 50
            assert settings.persist_batch_history is False
            assert settings.log_level == "INFO"
            assert settings.run_integration_tests is False

    def test_custom_values(self):
        """Test that custom values can be set via environment variables."""
        from app.config import Settings

        env_vars = {
            "GENERATION_ENDPOINT": "https://studio.example/api/generate-image",
            "DEFAULT_WIDTH": "768",
            "DEFAULT_HEIGHT": "768",
            "MAX_HISTORY": "10",
            "PERSIST_BATCH_HISTORY": "true",
            "LOG_LEVEL": "DEBUG",
            "RUN_INTEGRATION_TESTS": "true"
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.generation_endpoint == "https://studio.example/api/generate-image"
            assert settings.default_width == 768
            assert settings.default_height == 768
            assert settings.max_history == 10
            assert settings.persist_batch_history is True
            assert settings.log_level == "DEBUG"
            assert settings.run_integration_tests is True

    def test_validate_settings_success(self):
        """Test validation succeeds with defaults."""
        from app.config import Settings

        with patch.dict(os.environ, {}, clear=True):
            Settings(_env_file=None).validate_settings()

    def test_validate_settings_bad_endpoint(self):
        """Test validation rejects a non-http endpoint."""
        from app.config import Settings

        with patch.dict(os.environ, {"GENERATION_ENDPOINT": "localhost:3000"}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="GENERATION_ENDPOINT"):
                settings.validate_settings()

    def test_validate_settings_bad_dimensions(self):
        """Test validation rejects non-positive default dimensions."""
        from app.config import Settings

        with patch.dict(os.environ, {"DEFAULT_WIDTH": "0"}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="DEFAULT_WIDTH"):
                settings.validate_settings()

    @pytest.mark.parametrize("name,value", [
        ("DEFAULT_WIDTH", "32"),
        ("DEFAULT_HEIGHT", "4096"),
        ("DEFAULT_STEPS", "0"),
    ])
    def test_validate_settings_defaults_outside_request_bounds(self, name, value):
        """Test validation rejects defaults that no request could accept."""
        from app.config import Settings

        with patch.dict(os.environ, {name: value}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match=name):
                settings.validate_settings()

    def test_validate_settings_bad_history(self):
        """Test validation rejects a retention below one."""
        from app.config import Settings

        with patch.dict(os.environ, {"MAX_HISTORY": "0"}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="MAX_HISTORY"):
                settings.validate_settings()

    def test_case_insensitive(self):
        """Test that environment variable names are case insensitive."""
        from app.config import Settings

        with patch.dict(os.environ, {"default_steps": "35"}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.default_steps == 35
