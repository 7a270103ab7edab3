# token_agent/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_int(value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    return int(value)


def parse_float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    return float(value)


def parse_optional_str(value: str | None) -> Optional[str]:
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    COINGECKO_BASE_URL: str
    COINGECKO_API_KEY: Optional[str]
    PRICE_CACHE_TTL_SECONDS: float
    PRICE_CACHE_MAX_ENTRIES: int
    COIN_LIST_TTL_SECONDS: float
    COIN_LIST_MIN_SIZE: int
    HTTP_TIMEOUT_SECONDS: float
    LOG_LEVEL: str
    LOG_JSON: bool
    HOST: str
    PORT: int

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            COINGECKO_BASE_URL=os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3"),
            COINGECKO_API_KEY=parse_optional_str(os.getenv("COINGECKO_API_KEY")),
            PRICE_CACHE_TTL_SECONDS=parse_float(os.getenv("PRICE_CACHE_TTL_SECONDS"), 30.0),
            PRICE_CACHE_MAX_ENTRIES=parse_int(os.getenv("PRICE_CACHE_MAX_ENTRIES"), 0),
            COIN_LIST_TTL_SECONDS=parse_float(os.getenv("COIN_LIST_TTL_SECONDS"), 24 * 3600.0),
            COIN_LIST_MIN_SIZE=parse_int(os.getenv("COIN_LIST_MIN_SIZE"), 500),
            HTTP_TIMEOUT_SECONDS=parse_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 10.0),
            LOG_LEVEL=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            LOG_JSON=parse_bool(os.getenv("LOG_JSON"), False),
            HOST=os.getenv("HOST", "0.0.0.0"),
            PORT=parse_int(os.getenv("PORT"), 3000),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
