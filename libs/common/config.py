from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production", "test"] = "local"
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "partner_service"
    TIMEZONE: str = "Asia/Kolkata"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_ECHO: bool = False

    # Auth
    # Placeholder secret keeps local/test runs working; real deployments
    # must override via env.
    AUTH_JWT_SECRET: str = "test-jwt-secret"
    AUTH_JWT_ALGORITHM: str = "HS256"
    SERVICE_TOKEN_TTL_SECONDS: int = 60

    # Communications service (push notifications)
    COMMUNICATIONS_SERVICE_URL: str = "http://communications-service:8004"
    NOTIFICATIONS_ENABLED: bool = True
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Wallet / lead gating
    CURRENCY_SYMBOL: str = "₹"
    DEFAULT_LEAD_FEE: Decimal = Decimal("50")
    DEFAULT_MIN_WALLET_BALANCE: Decimal = Decimal("20")
    SUGGESTED_TOP_UPS: list[Decimal] = [Decimal("500"), Decimal("1000")]
    TRANSACTION_REF_PREFIX: str = "WPWT"
    TRANSACTION_REF_MAX_ATTEMPTS: int = 10

    # MG plans
    FALLBACK_PLAN_NAME: str = "Silver"
    AUTO_ENROLL_FALLBACK_PLAN: bool = True
    PLAN_HISTORY_LIMIT: int = 24

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
