"""
Settings for the registrations service.

Values come from environment variables or a local .env file.
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Cache2K25 Registrations API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    FESTIVAL_NAME: str = "Cache2K25"

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Ledger spreadsheet
    DATA_DIR: Path = Path("data")
    REGISTRATIONS_FILE: str = "registrations.xlsx"
    SHEET_NAME: str = "Registrations"
    EXPORT_FILENAME: str = "cache2k25_registrations.xlsx"
    REGISTRATION_PREFIX: str = "CACHE2K25"

    # Payment provider
    PAYMENT_KEY_ID: str = "rzp_test_1234567890"
    PAYMENT_KEY_SECRET: Optional[str] = None  # unset: callbacks are trusted (development only)
    CURRENCY: str = "INR"
    CHECKOUT_TIMEOUT_SECONDS: Optional[float] = 900.0

    @property
    def REGISTRATIONS_PATH(self) -> Path:
        return self.DATA_DIR / self.REGISTRATIONS_FILE


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
