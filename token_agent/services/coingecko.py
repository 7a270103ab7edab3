"""Helpers for interacting with the public CoinGecko API."""

from __future__ import annotations

from typing import Any, Iterable

import httpx

from token_agent.services.exceptions import UpstreamError
from token_agent.utils.time import iso_to_ddmmyyyy


COINGECKO_API_URL = "https://api.coingecko.com/api/v3"


class CoinGeckoClient:
    """
    URL builder + JSON getter for the four endpoints the agent uses.

    URLs are assembled verbatim (no re-encoding) because the full URL doubles as
    the price cache key.
    """

    def __init__(
        self,
        base_url: str = COINGECKO_API_URL,
        timeout: float = 10.0,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"accept": "application/json"}
        if api_key:
            self.headers["x-cg-demo-api-key"] = api_key
        self._client = client

    # ---------- URLs ----------

    def coins_list_url(self) -> str:
        return f"{self.base_url}/coins/list"

    def markets_url(self, ids: Iterable[str], vs_currency: str) -> str:
        return (
            f"{self.base_url}/coins/markets"
            f"?vs_currency={vs_currency.lower()}"
            f"&ids={','.join(ids)}"
            "&order=market_cap_desc&per_page=250&page=1"
            "&sparkline=false&price_change_percentage=24h"
        )

    def simple_price_url(self, ids: Iterable[str], vs_currencies: Iterable[str]) -> str:
        return (
            f"{self.base_url}/simple/price"
            f"?ids={','.join(ids)}"
            f"&vs_currencies={','.join(c.lower() for c in vs_currencies)}"
            "&include_market_cap=true&include_24hr_vol=true&include_24hr_change=true"
        )

    def history_url(self, coin_id: str, iso_date: str) -> str:
        return f"{self.base_url}/coins/{coin_id}/history?date={iso_to_ddmmyyyy(iso_date)}"

    # ---------- Transport ----------

    async def get_json(self, url: str) -> Any:
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=self.headers)
                response.raise_for_status()
                return response.json()

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self.headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(url, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(url, message=f"Unable to reach CoinGecko: {exc}") from exc
        except ValueError as exc:
            # 2xx with a non-JSON body (HTML rate-limit / maintenance page)
            raise UpstreamError(url, message="Invalid JSON from CoinGecko") from exc

    async def fetch_coin_list(self) -> list[dict[str, Any]]:
        data = await self.get_json(self.coins_list_url())
        if not isinstance(data, list):
            raise UpstreamError(self.coins_list_url(), message="Unexpected coin list payload")
        return data

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
