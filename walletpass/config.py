"""Configuration management for the wallet pass service."""

from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    # Server configuration
    port: int = 8000
    host: str = "0.0.0.0"

    # Phone verification settings
    verification_code_ttl_seconds: int = 600
    verification_max_attempts: int = 3
    expose_verification_code: bool = False

    # Platform routing
    default_platform: str = "apple"
    low_confidence_threshold: float = 0.70
    backend_timeout_seconds: float = 10.0

    # Wallet backends
    apple_pass_type_prefix: str = "pass.com.fanpad"
    apple_team_identifier: str = "STUB123456"
    google_issuer_id: str = "stub-issuer"
    google_service_account: str = "stub-service-account@project.iam.gserviceaccount.com"

    # Rate limiting
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60

    # Observability
    otlp_endpoint: Optional[str] = None
    enable_console_export: bool = False

    # Logging configuration
    log_level: str = "INFO"

    @field_validator('verification_code_ttl_seconds')
    @classmethod
    def validate_code_ttl(cls, v):
        if v <= 0:
            raise ValueError('VERIFICATION_CODE_TTL_SECONDS must be positive')
        return v

    @field_validator('verification_max_attempts')
    @classmethod
    def validate_max_attempts(cls, v):
        if v < 1:
            raise ValueError('VERIFICATION_MAX_ATTEMPTS must be at least 1')
        return v

    @field_validator('default_platform')
    @classmethod
    def validate_default_platform(cls, v):
        v = v.lower()
        if v not in ("apple", "google"):
            raise ValueError('DEFAULT_PLATFORM must be "apple" or "google"')
        return v

    @field_validator('low_confidence_threshold')
    @classmethod
    def validate_confidence_threshold(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('LOW_CONFIDENCE_THRESHOLD must be between 0.0 and 1.0')
        return v


# Global settings instance
settings = Settings()
