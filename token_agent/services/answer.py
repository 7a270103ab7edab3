"""
Answer generation: parsed intent -> resolved coins -> prices -> rendered text.

Every path ends in a user-facing string. Upstream failures are logged and
turned into a generic message, never propagated.
"""

from __future__ import annotations

import logging
import time
from datetime import date as date_cls
from typing import Any, Callable, Dict, List, Optional, Union

from token_agent.services.coin_directory import CoinDirectory
from token_agent.services.exceptions import UnresolvedReferenceError, UpstreamError
from token_agent.services.formatting import (
    is_positive,
    market_extra,
    render_conversion,
    render_line,
    render_markdown,
)
from token_agent.services.market_data import MarketDataService, PriceInfo
from token_agent.services.query_parser import Conversion, PriceLookup, QueryParser
from token_agent.utils.time import utc_today

logger = logging.getLogger("token_agent.answer")

PIVOT_CURRENCY = "usd"


class AnswerGenerator:
    def __init__(
        self,
        directory: CoinDirectory,
        parser: QueryParser,
        market: MarketDataService,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = directory
        self.parser = parser
        self.market = market
        self._clock = clock

    async def respond(self, prompt: str, output_format: str) -> Union[str, Dict[str, Any]]:
        """
        ``output_format`` is one of "text", "json", "markdown".
        JSON mode wraps the plain answer as ``{"prompt", "result"}``.
        """
        result = await self.generate(prompt, markdown=output_format == "markdown")
        if output_format == "json":
            return {"prompt": prompt, "result": result}
        return result

    async def generate(self, text: str, markdown: bool = False) -> str:
        await self._refresh_directory()

        parsed = self.parser.parse(text)
        if isinstance(parsed, Conversion):
            return await self._answer_conversion(parsed, markdown)
        if parsed.date:
            return await self._answer_history(parsed, markdown)
        return await self._answer_current(parsed, markdown)

    async def _refresh_directory(self) -> None:
        try:
            await self.directory.load()
        except UpstreamError:
            # keep serving the previous index
            logger.exception("coin directory refresh failed")

    # ---------- Conversion ----------

    async def _answer_conversion(self, query: Conversion, markdown: bool) -> str:
        try:
            coin_from = self.directory.require(query.from_ref)
            coin_to = self.directory.require(query.to_ref)
        except UnresolvedReferenceError as exc:
            return f"Unknown token: {exc.reference}"

        try:
            prices = await self.market.fetch_prices([coin_from, coin_to], [PIVOT_CURRENCY])
        except UpstreamError:
            logger.exception("Error fetching conversion prices")
            return "Error fetching conversion price data."

        by_id = {p.coin_id: p for p in prices}
        price_from = _price(by_id.get(coin_from.id), PIVOT_CURRENCY)
        price_to = _price(by_id.get(coin_to.id), PIVOT_CURRENCY)
        if not is_positive(price_from) or not is_positive(price_to):
            return "Conversion price unavailable."

        converted = query.amount * (price_from / price_to)
        return render_conversion(query.amount, coin_from, coin_to, converted, markdown)

    # ---------- Historical lookup ----------

    async def _answer_history(self, query: PriceLookup, markdown: bool) -> str:
        if not query.tokens:
            return "No tokens recognized in your query."

        day = query.date
        try:
            requested = date_cls.fromisoformat(day)
        except ValueError:
            return f"Invalid date ({day})."
        if requested > utc_today(self._clock):
            return f"Cannot retrieve price for future date ({day})."

        lines: List[str] = []
        for token, amount in zip(query.tokens, query.amounts):
            sym = token.symbol.upper()
            snapshot = await self.market.fetch_history(token, day)
            if snapshot is None:
                lines.append(f"No historical data for {sym} on {day}.")
                continue

            for currency in query.currencies:
                price = snapshot.price_in(currency)
                if not is_positive(price):
                    lines.append(f"No historical price for {sym} in {currency.upper()} on {day}.")
                    continue
                extra = market_extra(
                    snapshot.market_cap_in(currency),
                    snapshot.volume_in(currency),
                    snapshot.change_in(currency),
                )
                lines.append(render_line(amount, token, price, currency, day, extra))

        if not lines:
            return f"No historical data for {day}."
        return render_markdown(lines) if markdown else "\n".join(lines)

    # ---------- Current lookup ----------

    async def _answer_current(self, query: PriceLookup, markdown: bool) -> str:
        if not query.tokens:
            return "No tokens recognized in your query."

        try:
            prices = await self.market.fetch_prices(query.tokens, query.currencies)
        except UpstreamError:
            logger.exception("Error fetching prices")
            return "Error fetching price data."

        by_id = {p.coin_id: p for p in prices}
        lines: List[str] = []
        for token, amount in zip(query.tokens, query.amounts):
            info = by_id.get(token.id)
            if info is None:
                continue
            for currency in query.currencies:
                price = info.price_in(currency)
                if not is_positive(price):
                    continue
                extra = market_extra(
                    info.market_cap_in(currency),
                    info.volume_in(currency),
                    info.change_in(currency),
                )
                lines.append(render_line(amount, token, price, currency, None, extra))

        if not lines:
            return "No price data found for your query."
        return render_markdown(lines) if markdown else "\n".join(lines)


def _price(info: Optional[PriceInfo], currency: str) -> Optional[float]:
    return info.price_in(currency) if info is not None else None
