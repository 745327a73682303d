# File: agromarket/core/config.py
"""
Configuration settings for AgroMarket.

This module defines application settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

from typing import Any, List, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values can be overridden through the process environment or a `.env`
    file in the working directory.
    """

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
    )

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "AgroMarket"
    BACKEND_CORS_ORIGINS: List[str] = []

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_PATH: str = "agromarket.db"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    # Database performance tuning
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    # Upper bound on how long a write waits for a contended product row
    DB_LOCK_TIMEOUT_SECONDS: float = 5.0

    # Inventory
    DEFAULT_MIN_STOCK: int = 10
    LOW_STOCK_BATCH_SIZE: int = 100
    DASHBOARD_RECENT_SALES: int = 5

    # Sales
    RELEASE_STOCK_ON_PAYMENT_FAILURE: bool = True
    ALLOWED_PAYMENT_METHODS: List[str] = ["cash", "card", "transfer", "paypal"]

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> Any:
        """Assemble database connection string."""
        if isinstance(v, str) and v:
            return v
        return f"sqlite:///{info.data.get('DATABASE_PATH', 'agromarket.db')}"

    @field_validator("DB_LOCK_TIMEOUT_SECONDS")
    @classmethod
    def validate_lock_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("DB_LOCK_TIMEOUT_SECONDS must be positive")
        return v


# Create settings instance
settings = Settings()
