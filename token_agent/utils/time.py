from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable


def utcnow() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today(clock: Callable[[], float] | None = None) -> date:
    """Start-of-day (UTC calendar date) for the given unix clock, or now."""
    if clock is None:
        return utcnow().date()
    return datetime.fromtimestamp(clock(), tz=timezone.utc).date()


def iso_to_ddmmyyyy(value: str) -> str:
    """'2023-06-01' -> '01-06-2023' (CoinGecko history date format)."""
    year, month, day = value.split("-")
    return f"{day}-{month}-{year}"
