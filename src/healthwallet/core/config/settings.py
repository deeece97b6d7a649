"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """HealthWallet vitality server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; there is no auth layer in front of the tools.
    hw_host: str = "127.0.0.1"
    hw_port: int = 8001
    hw_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    hw_allow_insecure_bind: bool = False

    # Storage (health data bank)
    db_path: str = "~/.healthwallet/health.db"

    # Encryption. Empty means the data bank tools are not registered.
    encryption_key: str = ""

    # Engine inputs the tools pass explicitly
    offer_cooldown_days: int = 90
    vitality_trend_days: int = 7
    streak_lookback_days: int = 30
    default_dietary_preference: str = "omnivore"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
