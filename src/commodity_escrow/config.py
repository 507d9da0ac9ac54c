"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup; if a setting is malformed, the app fails fast with a clear
error message.

Usage:
    from commodity_escrow.config import get_settings
    settings = get_settings()
    print(settings.custody_account)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Commodity Trade Escrow."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Custody ---
    # Identity that holds escrowed funds on the asset ledgers.
    custody_account: str = "0x" + "E5" * 20
    native_asset_symbol: str = "ETH"
    # Comma-separated token ids provisioned in the simulated asset registry.
    simulated_tokens: str = "TEST"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def simulated_token_list(self) -> list[str]:
        """Parse comma-separated token ids into a list."""
        if not self.simulated_tokens:
            return []
        return [t.strip() for t in self.simulated_tokens.split(",") if t.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
