"""Library configuration using Pydantic Settings."""

from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""

    # General
    PROJECT_NAME: str = "eipctl"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "production"

    # Cloud gateway
    GATEWAY_URL: str = "https://vpc.example-cloud.com"
    GATEWAY_PROJECT_ID: str = ""
    GATEWAY_TOKEN: Optional[str] = None
    GATEWAY_TIMEOUT: float = 30.0

    # Association convergence polling (seconds)
    EIP_POLL_DELAY: float = 10.0
    EIP_POLL_INTERVAL: float = 10.0
    EIP_POLL_TIMEOUT: float = 180.0

    # Background association workers
    ASSOCIATION_WORKERS: int = 4

    @field_validator("EIP_POLL_DELAY", "EIP_POLL_INTERVAL", "EIP_POLL_TIMEOUT")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Polling timings cannot be negative."""
        if v < 0:
            raise ValueError("polling timings must be >= 0")
        return v

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # OpenTelemetry Configuration
    OTEL_SERVICE_NAME: str = "eipctl"
    OTEL_TRACE_SAMPLE_RATE: float = 1.0  # 1.0 = 100% sampling
    OTEL_EXPORT_CONSOLE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
