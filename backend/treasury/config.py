"""
Application configuration using Pydantic settings.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "Treasury"

    # Database
    database_url: str = "sqlite:///./data/treasury.sqlite"
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"

    # Ledger
    split_tolerance: Decimal = Decimal("0.01")  # Max |sum(splits) - amount|
    max_bulk_status_items: int = 100

    # Categories
    max_category_depth: int = 4  # Deepest allowed depth; roots are 0

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Global settings instance
settings = Settings()
