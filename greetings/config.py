"""Service settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for both greeting services, loaded from ``GREETINGS_*`` variables."""

    # Application Configuration
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit JSON log lines instead of console output")

    # Tracing
    otlp_endpoint: Optional[str] = Field(
        default=None, description="OTLP gRPC collector endpoint; traces are not exported when unset"
    )
    frontend_service_name: str = Field(default="greetings-frontend", description="Front service name")
    backend_service_name: str = Field(default="greetings-backend", description="Backend service name")

    # HTTP Configuration
    frontend_host: str = Field(default="0.0.0.0", description="Front service bind host")
    frontend_port: int = Field(default=8080, description="Front service port")
    backend_host: str = Field(default="0.0.0.0", description="Backend service bind host")
    backend_port: int = Field(default=8081, description="Backend service port")

    # Remote call (stage 2)
    backend_enable: bool = Field(default=False, description="Call the backend service from the front service")
    backend_endpoint: str = Field(
        default="http://localhost:8081", description="Base URL of the backend service"
    )
    backend_timeout_seconds: Optional[float] = Field(
        default=None, description="Timeout for the backend call; no timeout when unset"
    )

    # Fault injection
    simulate_latency: bool = Field(default=True, description="Sleep inside stages to emulate work")
    failure_threshold: float = Field(
        default=0.94, description="Local work fails when its draw is above this value"
    )
    access_denied_threshold: float = Field(
        default=0.30, description="A failing local draw above this value is access denied, else arithmetic"
    )
    unsupported_language_threshold: float = Field(
        default=0.01, description="Language draws below this value are unsupported"
    )
    english_threshold: float = Field(
        default=0.30, description="Language draws above this value resolve to english, else france"
    )

    model_config = SettingsConfigDict(
        env_prefix="GREETINGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator(
        "failure_threshold",
        "access_denied_threshold",
        "unsupported_language_threshold",
        "english_threshold",
    )
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got {v}")
        return v

    @field_validator("backend_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
