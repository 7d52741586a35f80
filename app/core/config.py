from __future__ import annotations

import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API configuration
    API_V1_STR: str = "/api"
    PROJECT_NAME: str = "EV Subscription Backend"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Security
    # Shared with the users service, which issues the bearer tokens
    JWT_SECRET: str = os.getenv(
        "JWT_SECRET", "MySuperSecureJwtSecretKeyForProduction1234567890"
    )
    JWT_ALGORITHMS: list[str] = ["HS256", "HS384", "HS512"]
    ADMIN_ROLE: str = "ADMIN"

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_PATH: Path = Path("logs")
    LOG_BACKUP_COUNT: int = 30  # Keep 30 days of logs

    # MongoDB configuration (payment intents, revoked tokens)
    MONGODB_URL: str = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "ev_subscription")

    # Remote services
    USER_SERVICE_URL: str = os.getenv("USER_SERVICE_URL", "http://localhost:8083")
    PLAN_SERVICE_URL: str = os.getenv("PLAN_SERVICE_URL", "http://localhost:8081")
    FEATURE_SERVICE_URL: str = os.getenv(
        "FEATURE_SERVICE_URL", "http://localhost:8081"
    )
    ORDER_SERVICE_URL: str = os.getenv("ORDER_SERVICE_URL", "http://localhost:8083")
    SUBSCRIPTION_SERVICE_URL: str = os.getenv(
        "SUBSCRIPTION_SERVICE_URL", "http://localhost:8083"
    )
    PLAN_USAGE_SERVICE_URL: str = os.getenv(
        "PLAN_USAGE_SERVICE_URL", "http://localhost:8083"
    )
    PAYMENT_SERVICE_URL: str = os.getenv(
        "PAYMENT_SERVICE_URL", "http://localhost:8083"
    )

    # External API configuration
    EXTERNAL_API_TIMEOUT: int = int(os.getenv("EXTERNAL_API_TIMEOUT", 15))
    MAX_CONCURRENT_REQUESTS: int = 10

    # Resilience configuration
    CB_FAILURE_THRESHOLD: int = int(os.getenv("CB_FAILURE_THRESHOLD", 3))
    CB_RECOVERY_TIMEOUT_SECONDS: int = int(os.getenv("CB_RECOVERY_TIMEOUT_SECONDS", 60))
    CB_HALF_OPEN_PROBE_ATTEMPTS: int = int(os.getenv("CB_HALF_OPEN_PROBE_ATTEMPTS", 1))

    # 1 attempt = no automatic retry; only idempotent reads ever retry
    RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", 1))
    RETRY_INITIAL_BACKOFF_SECONDS: float = float(
        os.getenv("RETRY_INITIAL_BACKOFF_SECONDS", 0.2)
    )
    RETRY_BACKOFF_MULTIPLIER: float = float(os.getenv("RETRY_BACKOFF_MULTIPLIER", 2.0))
    RETRY_JITTER_RATIO: float = float(os.getenv("RETRY_JITTER_RATIO", 0.2))

    # Payment configuration
    CURRENCY: str = os.getenv("CURRENCY", "INR")
    CHECKOUT_INTENT_TTL_MINUTES: int = int(
        os.getenv("CHECKOUT_INTENT_TTL_MINUTES", 30)
    )

    # Admin order export
    ORDER_EXPORT_PREFIX: str = "orders_export"

    @field_validator("CORS_ORIGINS", "JWT_ALGORITHMS", mode="before")
    @classmethod
    def assemble_list(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list | str):
            return v
        raise ValueError(v)

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()
