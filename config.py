"""
Configuration management for CoinLedger.
Uses pydantic-settings for type-safe, centralized configuration.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    API keys are not settings; they are entered at runtime and kept in the credential store.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'  # Allow extra fields in .env for flexibility
    )

    # Database (credential storage)
    database_url: str = "sqlite:///coinledger.db"
    db_echo: bool = False

    # Market data (CoinGecko)
    market_data_url: str = "https://api.coingecko.com/api/v3/coins/markets"
    market_data_key_param: str = "x_cg_demo_api_key"
    vs_currency: str = "usd"
    per_page: int = 100

    # Insight generation (Gemini)
    insight_url: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.0-flash:generateContent"
    )
    insight_workers: int = 4

    # Networking / refresh
    request_timeout: float = 15.0
    refresh_interval_seconds: int = 60

    # Search
    suggestion_limit: int = 8

    log_level: str = "INFO"

    @property
    def market_data_params(self) -> dict:
        """Fixed query parameters for the market listing request."""
        return {
            "vs_currency": self.vs_currency,
            "order": "market_cap_desc",
            "per_page": self.per_page,
            "page": 1,
            "sparkline": "false",
            "price_change_percentage": "24h",
        }


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings
