# brewshop/config.py
"""
Settings for the shop backend.
Everything comes from environment variables (a .env file is loaded first)
"""

import logging
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseModel):
    database_url: str = Field(
        default_factory=lambda: os.getenv(
            "DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'brewshop.db')}"
        )
    )
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    google_api_key: Optional[str] = Field(default_factory=lambda: os.getenv("GOOGLE_API_KEY"))
    barista_model: str = Field(
        default_factory=lambda: os.getenv("BARISTA_MODEL", "google-gla:gemini-2.5-flash")
    )
    qdrant_path: str = Field(
        default_factory=lambda: os.getenv("QDRANT_PATH", os.path.join(BASE_DIR, "qdrant_data"))
    )
    happy_hour_timezone: str = Field(
        default_factory=lambda: os.getenv("HAPPY_HOUR_TIMEZONE", "Asia/Jerusalem")
    )

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {sorted(VALID_LOG_LEVELS)}")
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
