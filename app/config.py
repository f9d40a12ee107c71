from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./billing.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Warehouse Billing & Freight Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Invoicing
    INVOICE_NUMBER_PREFIX: str = "FAT"
    INVOICE_SEQUENCE_PADDING: int = 3
    DEFAULT_DUE_DAYS: int = 10  # Days after period end when contract has none

    # Freight
    FREIGHT_WEIGHT_BREAK_KG: int = 300  # Flat bracket value up to this weight

    # Scheduled invoice generation
    BILLING_JOB_ENABLED: bool = False
    BILLING_JOB_HOUR: int = 2
    SCHEDULER_TIMEZONE: str = "America/Sao_Paulo"
    BILLING_JOB_CONTRACT_LIMIT: Optional[int] = None  # Cap per run, None = all

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return self.CORS_ORIGINS

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
