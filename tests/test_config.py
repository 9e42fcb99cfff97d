"""
Unit tests for gateway settings
"""

import pytest
from pydantic import ValidationError

from auth_gateway.config import Settings
from auth_gateway.utils.errors import ConfigurationError


class TestSettings:
    """Test environment-based settings"""

    def test_defaults(self, monkeypatch):
        for name in ("FIREBASE_PROJECT_ID", "PORT", "ENVIRONMENT", "API_PREFIX"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.port == 3000
        assert settings.provider_failure_status == 500
        assert settings.expose_error_codes is False
        assert settings.is_production is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("FIREBASE_PROJECT_ID", "env-project")
        monkeypatch.setenv("ENVIRONMENT", "Production")
        monkeypatch.setenv("EXPOSE_ERROR_CODES", "true")

        settings = Settings(_env_file=None)

        assert settings.firebase_project_id == "env-project"
        assert settings.is_production is True
        assert settings.expose_error_codes is True

    def test_private_key_newlines_expanded(self):
        settings = Settings(_env_file=None, firebase_private_key="line1\\nline2\\n")
        assert settings.firebase_private_key == "line1\nline2\n"

    @pytest.mark.parametrize("raw,expected", [
        ("", ""),
        ("api", "/api"),
        ("/api/auth/", "/api/auth"),
    ])
    def test_api_prefix_normalized(self, raw, expected):
        assert Settings(_env_file=None, api_prefix=raw).api_prefix == expected

    @pytest.mark.parametrize("status", [200, 399, 600])
    def test_failure_status_must_be_error_status(self, status):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, provider_failure_status=status)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, provider_timeout_seconds=0)


class TestProviderSettings:
    """Test Firebase configuration checks"""

    def test_complete(self, settings):
        assert settings.missing_provider_settings() == []
        settings.validate_provider_settings()

    def test_missing_values_named(self):
        settings = Settings(
            _env_file=None,
            firebase_project_id="demo-project",
            firebase_client_email="",
            firebase_private_key="",
            firebase_web_api_key="key"
        )

        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_provider_settings()

        assert "FIREBASE_CLIENT_EMAIL" in str(exc_info.value)
        assert "FIREBASE_PRIVATE_KEY" in str(exc_info.value)
        assert "FIREBASE_PROJECT_ID" not in str(exc_info.value)
