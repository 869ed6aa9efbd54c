"""
Application configuration using pydantic-settings.
All settings are loaded from environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the directory containing this file (app/)
APP_DIR = Path(__file__).resolve().parent
# Project root is one level up
PROJECT_ROOT = APP_DIR.parent
# .env file path
ENV_FILE = PROJECT_ROOT / ".env"
# Pricing configuration shipped with the package
DEFAULT_PRICING_FILE = APP_DIR / "data" / "default_pricing.json"

# Load .env file into environment variables BEFORE pydantic-settings reads them
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=True)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_name: str = "Winery Event Pricing API"
    debug: bool = False
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"

    # Pricing
    pricing_config_path: str = ""  # empty = bundled app/data/default_pricing.json
    currency_symbol: str = "₪"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            import json
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
