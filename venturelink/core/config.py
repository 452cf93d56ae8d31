"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "venturelink"
    # Multi-document transactions need a replica set; single-node dev setups
    # can switch them off.
    mongodb_transactions: bool = True

    # JWT Auth (tokens are issued by the auth service, we only verify them)
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Interaction / nudge lifecycle
    interaction_ttl_days: int = 7

    # Relaxed matching: +/- tolerance applied to the funding goal
    match_tolerance: float = 0.1

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # App
    environment: str = "development"
    debug: bool = True

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Nudge packs: quantity -> price in VCR
NUDGE_PRICES = {
    10: 50,
    25: 100,
    50: 180,
}

# Country name (upper case) -> flag emoji, shown next to card locations
COUNTRY_FLAGS = {
    "EGYPT": "🇪🇬",
    "USA": "🇺🇸",
    "UK": "🇬🇧",
}


def flag_for_country(country: Optional[str]) -> Optional[str]:
    """Look up the flag for a country name, case-insensitively."""
    if not country:
        return None
    return COUNTRY_FLAGS.get(country.strip().upper())
