from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Country Currency API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./countries.db"
    DATABASE_ECHO: bool = False

    # External sources
    COUNTRIES_API_URL: str = (
        "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies"
    )
    EXCHANGE_API_URL: str = "https://open.er-api.com/v6/latest/USD"
    API_TIMEOUT: int = 30000  # milliseconds

    # Summary image
    CACHE_DIR: str = "cache"
    SUMMARY_IMAGE_NAME: str = "summary.png"
    TOP_COUNTRIES: int = 5

    # Periodic refresh, 0 disables
    REFRESH_INTERVAL_SECONDS: int = 0

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def summary_image_path(self) -> Path:
        return Path(self.CACHE_DIR) / self.SUMMARY_IMAGE_NAME
