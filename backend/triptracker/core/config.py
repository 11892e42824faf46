"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from decimal import Decimal
from typing import Dict, List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "TripTracker"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./triptracker.db"
    DB_ECHO: bool = False

    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:8080"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Currency
    DEFAULT_CURRENCY: str = "USD"
    FX_RATES: Dict[str, Decimal] = {}  # Overrides for the static rate table, e.g. '{"EUR": "0.91"}'

    @field_validator("DEFAULT_CURRENCY", mode="before")
    @classmethod
    def upper_currency(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    # Budget alerts
    BUDGET_WARNING_THRESHOLD: Decimal = Decimal("80")  # Percentage of budget that raises a warning
    URGENT_USAGE_PERCENTAGE: Decimal = Decimal("90")  # Any alert at or above this usage is urgent

    # Sharing
    SHARE_TOKEN_BYTES: int = 24

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
