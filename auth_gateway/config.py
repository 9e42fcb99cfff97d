"""
Configuration Management
Environment-based settings for the gateway and its identity provider
"""

from typing import Optional, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from auth_gateway.utils.errors import ConfigurationError


class Settings(BaseSettings):
    # Service info
    service_name: str = "auth-gateway"
    service_version: str = "1.0.0"
    environment: str = "development"

    # HTTP
    host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = ""
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    logging_config_path: Optional[str] = None

    # Firebase project and service account
    firebase_project_id: str = ""
    firebase_client_email: str = ""
    firebase_private_key: str = ""
    firebase_web_api_key: str = ""

    # Identity provider behaviour
    email_verification_redirect_url: str = "http://localhost:3000/email-verified"
    identity_toolkit_url: str = "https://identitytoolkit.googleapis.com/v1"
    provider_timeout_seconds: float = 10.0
    provider_failure_status: int = 500

    # Response shaping
    expose_error_codes: bool = False
    expose_verification_link: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator('firebase_private_key')
    @classmethod
    def expand_private_key_newlines(cls, v):
        return v.replace('\\n', '\n')

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError('Port must be between 1 and 65535')
        return v

    @field_validator('provider_timeout_seconds')
    @classmethod
    def validate_provider_timeout(cls, v):
        if v <= 0:
            raise ValueError('Provider timeout must be positive')
        return v

    @field_validator('provider_failure_status')
    @classmethod
    def validate_failure_status(cls, v):
        if not 400 <= v <= 599:
            raise ValueError('Provider failure status must be an HTTP error status')
        return v

    @field_validator('api_prefix')
    @classmethod
    def normalize_api_prefix(cls, v):
        v = v.strip().rstrip('/')
        if v and not v.startswith('/'):
            v = f"/{v}"
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def missing_provider_settings(self) -> List[str]:
        """Names of required provider variables that are unset"""
        required = {
            "FIREBASE_PROJECT_ID": self.firebase_project_id,
            "FIREBASE_CLIENT_EMAIL": self.firebase_client_email,
            "FIREBASE_PRIVATE_KEY": self.firebase_private_key,
            "FIREBASE_WEB_API_KEY": self.firebase_web_api_key,
        }
        return [name for name, value in required.items() if not value]

    def validate_provider_settings(self) -> None:
        """Raise when the identity provider cannot be configured"""
        missing = self.missing_provider_settings()
        if missing:
            raise ConfigurationError(
                f"Missing Firebase configuration: {', '.join(missing)}. "
                "Set them in the environment or the .env file."
            )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
