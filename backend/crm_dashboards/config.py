"""
Application configuration
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "CRM Dashboards"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json

    # Database (MongoDB)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "crm"
    # Multi-document transactions need a replica set; standalone servers keep this off
    MONGODB_USE_TRANSACTIONS: bool = False

    # Dashboards
    DASHBOARD_TIMEZONE: Optional[str] = None  # IANA name used for "today"; server local time when unset
    SEED_DEFAULT_DASHBOARD: bool = False

    # HTTP
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3001"]

    @field_validator("DASHBOARD_TIMEZONE")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
