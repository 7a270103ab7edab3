from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pytest

from token_agent.config.settings import Settings
from token_agent.services.agent import TokenAgent, build_agent


# 2023-11-14T22:13:20Z
NOW = 1_700_000_000.0

COIN_ROWS: List[Dict[str, str]] = [
    {"id": "bitcoin", "symbol": "btc", "name": "Bitcoin"},
    {"id": "ethereum", "symbol": "eth", "name": "Ethereum"},
    {"id": "ethereum-classic", "symbol": "etc", "name": "Ethereum Classic"},
    {"id": "dogecoin", "symbol": "doge", "name": "Dogecoin"},
    {"id": "solana", "symbol": "sol", "name": "Solana"},
    {"id": "wrapped-bitcoin", "symbol": "wbtc", "name": "Wrapped Bitcoin"},
    {"id": "fake-btc", "symbol": "btc", "name": "Fake BTC"},
]


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCoinGecko:
    """In-process stand-in for the CoinGecko endpoints, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.coins: List[Dict[str, str]] = list(COIN_ROWS)
        # coin id -> currency -> price
        self.prices: Dict[str, Dict[str, float]] = {
            "bitcoin": {"usd": 50000.0, "eur": 46000.0},
            "ethereum": {"usd": 2500.0, "eur": 2300.0},
            "dogecoin": {"usd": 0.1, "eur": 0.09},
            "solana": {"usd": 20.0, "eur": 18.5},
        }
        self.market_caps: Dict[str, Dict[str, float]] = {
            "bitcoin": {"usd": 1_000_000_000.0},
        }
        self.history: Dict[tuple[str, str], Dict[str, Any]] = {}
        self.fail_markets = False
        self.fail_simple = False
        self.fail_coin_list = False
        # path suffixes answered with a 200 HTML page instead of JSON
        self.html_paths: set[str] = set()
        self.requests: List[httpx.Request] = []

    def calls(self, fragment: str) -> int:
        return sum(1 for r in self.requests if fragment in r.url.path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if any(path.endswith(suffix) for suffix in self.html_paths):
            return httpx.Response(200, text="<html>rate limited</html>")

        if path.endswith("/coins/list"):
            if self.fail_coin_list:
                return httpx.Response(503)
            return httpx.Response(200, json=self.coins)

        if path.endswith("/coins/markets"):
            if self.fail_markets:
                return httpx.Response(500)
            cur = params["vs_currency"]
            rows = []
            for coin_id in params["ids"].split(","):
                price = self.prices.get(coin_id, {}).get(cur)
                if price is None:
                    continue
                rows.append(
                    {
                        "id": coin_id,
                        "current_price": price,
                        "market_cap": self.market_caps.get(coin_id, {}).get(cur),
                        "total_volume": None,
                        "price_change_percentage_24h": 1.2345,
                    }
                )
            return httpx.Response(200, json=rows)

        if path.endswith("/simple/price"):
            if self.fail_simple:
                return httpx.Response(429)
            currencies = params["vs_currencies"].split(",")
            body: Dict[str, Any] = {}
            for coin_id in params["ids"].split(","):
                known = self.prices.get(coin_id)
                if not known:
                    continue
                entry: Dict[str, Any] = {}
                for cur in currencies:
                    if cur in known:
                        entry[cur] = known[cur]
                        entry[f"{cur}_market_cap"] = 123.0
                        entry[f"{cur}_24h_change"] = -2.5
                body[coin_id] = entry
            return httpx.Response(200, json=body)

        if path.endswith("/history"):
            coin_id = path.split("/")[-2]
            payload = self.history.get((coin_id, params["date"]))
            if payload is None:
                return httpx.Response(404)
            return httpx.Response(200, json=payload)

        return httpx.Response(404)


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = dict(
        COINGECKO_BASE_URL="https://api.test/api/v3",
        COINGECKO_API_KEY=None,
        PRICE_CACHE_TTL_SECONDS=30.0,
        PRICE_CACHE_MAX_ENTRIES=0,
        COIN_LIST_TTL_SECONDS=24 * 3600.0,
        COIN_LIST_MIN_SIZE=0,
        HTTP_TIMEOUT_SECONDS=5.0,
        LOG_LEVEL="INFO",
        LOG_JSON=False,
        HOST="127.0.0.1",
        PORT=3000,
    )
    values.update(overrides)
    return Settings(**values)


def make_agent(fake: FakeCoinGecko, clock: Optional[FakeClock] = None, **overrides: Any) -> TokenAgent:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    return build_agent(make_settings(**overrides), http_client=http_client, clock=clock or FakeClock())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_gecko() -> FakeCoinGecko:
    return FakeCoinGecko()


@pytest.fixture()
def agent(fake_gecko: FakeCoinGecko, clock: FakeClock) -> TokenAgent:
    return make_agent(fake_gecko, clock)
