from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import httpx

from token_agent.config.settings import Settings
from token_agent.services.answer import AnswerGenerator
from token_agent.services.coin_directory import CoinDirectory
from token_agent.services.coingecko import CoinGeckoClient
from token_agent.services.market_data import MarketDataCache, MarketDataService
from token_agent.services.query_parser import QueryParser


@dataclass
class TokenAgent:
    """One instance per process; owns the directory and the price cache."""

    client: CoinGeckoClient
    directory: CoinDirectory
    market: MarketDataService
    generator: AnswerGenerator

    async def aclose(self) -> None:
        await self.client.aclose()


def build_agent(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] = time.time,
) -> TokenAgent:
    client = CoinGeckoClient(
        base_url=settings.COINGECKO_BASE_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        api_key=settings.COINGECKO_API_KEY,
        client=http_client,
    )
    directory = CoinDirectory(
        client.fetch_coin_list,
        ttl=settings.COIN_LIST_TTL_SECONDS,
        min_size=settings.COIN_LIST_MIN_SIZE,
        clock=clock,
    )
    cache = MarketDataCache(
        client.get_json,
        ttl=settings.PRICE_CACHE_TTL_SECONDS,
        clock=clock,
        max_entries=settings.PRICE_CACHE_MAX_ENTRIES,
    )
    market = MarketDataService(client, cache)
    generator = AnswerGenerator(directory, QueryParser(directory), market, clock=clock)
    return TokenAgent(client=client, directory=directory, market=market, generator=generator)
