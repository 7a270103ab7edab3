"""Price / history retrieval on top of a short-TTL response cache."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from token_agent.services.coin_directory import Coin
from token_agent.services.coingecko import CoinGeckoClient
from token_agent.services.exceptions import UpstreamError
from token_agent.utils.cache import TTLCache

logger = logging.getLogger("token_agent.market")

PRICE_CACHE_TTL = 30  # seconds

_MISS = object()


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _per_currency(raw: Any) -> Dict[str, float]:
    if not isinstance(raw, dict):
        return {}
    out: Dict[str, float] = {}
    for k, v in raw.items():
        num = _as_number(v)
        if num is not None:
            out[str(k).lower()] = num
    return out


@dataclass
class PriceInfo:
    """
    Per-coin snapshot. Every mapping is keyed by lowercase quote currency;
    a missing key means "not available", never zero.
    """

    coin_id: str
    current_price: Dict[str, float] = field(default_factory=dict)
    market_cap: Dict[str, float] = field(default_factory=dict)
    total_volume: Dict[str, float] = field(default_factory=dict)
    price_change_24h: Dict[str, float] = field(default_factory=dict)

    def price_in(self, currency: str) -> Optional[float]:
        return self.current_price.get(currency.lower())

    def market_cap_in(self, currency: str) -> Optional[float]:
        return self.market_cap.get(currency.lower())

    def volume_in(self, currency: str) -> Optional[float]:
        return self.total_volume.get(currency.lower())

    def change_in(self, currency: str) -> Optional[float]:
        return self.price_change_24h.get(currency.lower())

    def merge(self, other: "PriceInfo") -> None:
        self.current_price.update(other.current_price)
        self.market_cap.update(other.market_cap)
        self.total_volume.update(other.total_volume)
        self.price_change_24h.update(other.price_change_24h)

    # ---------- Reshaping upstream payloads ----------

    @classmethod
    def from_market_row(cls, row: Dict[str, Any], vs_currency: str) -> "PriceInfo":
        cur = vs_currency.lower()
        info = cls(coin_id=str(row.get("id")))
        for target, key in (
            (info.current_price, "current_price"),
            (info.market_cap, "market_cap"),
            (info.total_volume, "total_volume"),
            (info.price_change_24h, "price_change_percentage_24h"),
        ):
            num = _as_number(row.get(key))
            if num is not None:
                target[cur] = num
        return info

    @classmethod
    def from_simple_price(
        cls, coin_id: str, entry: Dict[str, Any], currencies: Sequence[str]
    ) -> "PriceInfo":
        info = cls(coin_id=coin_id)
        for currency in currencies:
            cur = currency.lower()
            for target, key in (
                (info.current_price, cur),
                (info.market_cap, f"{cur}_market_cap"),
                (info.total_volume, f"{cur}_24h_vol"),
                (info.price_change_24h, f"{cur}_24h_change"),
            ):
                num = _as_number(entry.get(key))
                if num is not None:
                    target[cur] = num
        return info

    @classmethod
    def from_history(cls, coin_id: str, payload: Any) -> Optional["PriceInfo"]:
        """None when the snapshot carries no ``market_data.current_price``."""
        if not isinstance(payload, dict):
            return None
        market_data = payload.get("market_data")
        if not isinstance(market_data, dict) or not market_data.get("current_price"):
            return None

        info = cls(
            coin_id=coin_id,
            current_price=_per_currency(market_data.get("current_price")),
            market_cap=_per_currency(market_data.get("market_cap")),
            total_volume=_per_currency(market_data.get("total_volume")),
        )
        change = market_data.get("price_change_percentage_24h")
        if isinstance(change, dict):
            info.price_change_24h = _per_currency(change)
        else:
            num = _as_number(change)
            if num is not None:
                info.price_change_24h = {c: num for c in info.current_price}
        return info


class MarketDataCache:
    """
    URL-keyed memoisation of upstream JSON responses.

    No in-flight de-duplication: two callers missing on the same key both
    fetch, and the last one to finish wins.
    """

    def __init__(
        self,
        fetch_json: Callable[[str], Awaitable[Any]],
        ttl: float = PRICE_CACHE_TTL,
        clock: Callable[[], float] = time.time,
        max_entries: Optional[int] = None,
    ) -> None:
        self._fetch_json = fetch_json
        self._cache = TTLCache(ttl, clock=clock, max_entries=max_entries)

    def __len__(self) -> int:
        return len(self._cache)

    async def cached_fetch(self, url: str) -> Any:
        cached = self._cache.get(url, _MISS)
        if cached is not _MISS:
            return cached

        data = await self._fetch_json(url)
        self._cache.set(url, data)
        return data


class MarketDataService:
    def __init__(self, client: CoinGeckoClient, cache: MarketDataCache) -> None:
        self.client = client
        self.cache = cache

    async def fetch_prices(self, coins: Sequence[Coin], currencies: Sequence[str]) -> List[PriceInfo]:
        """
        Current prices for ``coins`` quoted in every currency of ``currencies``.

        Uses the markets endpoint (one call per quote currency). If any of those
        fail, falls back to the simple-price endpoint for all currencies at once.
        Raises UpstreamError only when the fallback fails too.
        """
        if not coins or not currencies:
            return []

        ids = [c.id for c in coins]
        try:
            return await self._fetch_markets(ids, currencies)
        except UpstreamError as exc:
            logger.warning("markets endpoint failed (%s); falling back to simple price", exc)

        url = self.client.simple_price_url(ids, currencies)
        data = await self.cache.cached_fetch(url)
        if not isinstance(data, dict):
            return []
        return [
            PriceInfo.from_simple_price(coin_id, entry, currencies)
            for coin_id, entry in data.items()
            if isinstance(entry, dict)
        ]

    async def _fetch_markets(self, ids: List[str], currencies: Sequence[str]) -> List[PriceInfo]:
        merged: Dict[str, PriceInfo] = {}
        for currency in currencies:
            url = self.client.markets_url(ids, currency)
            rows = await self.cache.cached_fetch(url)
            if not isinstance(rows, list):
                raise UpstreamError(url, message="Unexpected markets payload")
            for row in rows:
                if not isinstance(row, dict) or not row.get("id"):
                    continue
                info = PriceInfo.from_market_row(row, currency)
                if info.coin_id in merged:
                    merged[info.coin_id].merge(info)
                else:
                    merged[info.coin_id] = info
        return list(merged.values())

    async def fetch_history(self, coin: Coin, iso_date: str) -> Optional[PriceInfo]:
        """Snapshot for ``coin`` on ``iso_date`` (YYYY-MM-DD), or None if unavailable."""
        url = self.client.history_url(coin.id, iso_date)
        try:
            payload = await self.cache.cached_fetch(url)
        except UpstreamError as exc:
            logger.warning("history fetch failed | %s | %s | %s", coin.id, iso_date, exc)
            return None
        return PriceInfo.from_history(coin.id, payload)
