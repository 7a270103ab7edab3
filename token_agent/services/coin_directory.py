"""
Coin directory: the universe of known tokens, indexed for lookup by symbol,
id and name, with an alias table and a fuzzy fallback on symbols.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from rapidfuzz.distance import Levenshtein

from token_agent.services.exceptions import UnresolvedReferenceError

logger = logging.getLogger("token_agent.coins")

COIN_LIST_TTL = 24 * 3600  # seconds
COIN_LIST_MIN_SIZE = 500

# Fuzzy matches are accepted only below this edit distance.
MAX_FUZZY_DISTANCE = 3

TOKEN_ALIASES: Dict[str, str] = {
    "btc": "bitcoin",
    "bitcoin": "bitcoin",
    "bitcoins": "bitcoin",
    "eth": "ethereum",
    "ethereum": "ethereum",
    "sol": "solana",
    "solana": "solana",
    "near": "near",
    "ada": "cardano",
    "doge": "dogecoin",
    "bnb": "binancecoin",
    "dot": "polkadot",
    "matic": "matic-network",
    "shib": "shiba-inu",
    "shiba": "shiba-inu",
    "xrp": "ripple",
    "avax": "avalanche-2",
    "litecoin": "litecoin",
    "ltc": "litecoin",
    "bch": "bitcoin-cash",
    "bitcoin_cash": "bitcoin-cash",
}


@dataclass(frozen=True)
class Coin:
    id: str
    symbol: str
    name: str

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> Optional["Coin"]:
        coin_id = row.get("id")
        if not isinstance(coin_id, str) or not coin_id:
            return None
        return cls(
            id=coin_id,
            symbol=str(row.get("symbol") or ""),
            name=str(row.get("name") or ""),
        )


@dataclass(frozen=True)
class _Index:
    by_symbol: Dict[str, Coin]
    by_id: Dict[str, Coin]
    by_name: Dict[str, Coin]

    @classmethod
    def build(cls, coins: List[Coin]) -> "_Index":
        by_symbol: Dict[str, Coin] = {}
        by_id: Dict[str, Coin] = {}
        by_name: Dict[str, Coin] = {}
        for coin in coins:
            # first occurrence wins
            by_symbol.setdefault(coin.symbol.lower(), coin)
            by_id.setdefault(coin.id.lower(), coin)
            by_name.setdefault(coin.name.lower(), coin)
        return cls(by_symbol=by_symbol, by_id=by_id, by_name=by_name)


_EMPTY_INDEX = _Index(by_symbol={}, by_id={}, by_name={})


class CoinDirectory:
    """
    Process-lifetime token index.

    ``load()`` swaps in a freshly built index in one assignment, so readers see
    either the previous index or the new one, never a half-built one.
    """

    def __init__(
        self,
        fetch_coins: Callable[[], Awaitable[List[Dict[str, Any]]]],
        ttl: float = COIN_LIST_TTL,
        min_size: int = COIN_LIST_MIN_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch_coins = fetch_coins
        self.ttl = float(ttl)
        self.min_size = int(min_size)
        self._clock = clock
        self._index: _Index = _EMPTY_INDEX
        self.loaded_at: Optional[float] = None

    def __len__(self) -> int:
        return len(self._index.by_symbol)

    @property
    def is_fresh(self) -> bool:
        if self.loaded_at is None:
            return False
        return self.loaded_at + self.ttl > self._clock() and len(self) > self.min_size

    async def load(self) -> bool:
        """
        Fetch the full coin list and rebuild the index.

        Returns False (no upstream call) when the current index is still fresh.
        Raises UpstreamError if the fetch fails; the previous index stays in place.
        """
        if self.is_fresh:
            return False

        rows = await self._fetch_coins()
        coins = [c for c in (Coin.from_dict(r) for r in rows if isinstance(r, dict)) if c]

        self._index = _Index.build(coins)
        self.loaded_at = self._clock()
        logger.info("Loaded %s coins", len(coins))
        return True

    def find(self, reference: str) -> Optional[Coin]:
        q = reference.lower()
        index = self._index

        if q in TOKEN_ALIASES:
            return index.by_id.get(TOKEN_ALIASES[q])

        found = index.by_symbol.get(q) or index.by_id.get(q) or index.by_name.get(q)
        if found:
            return found

        best_dist = MAX_FUZZY_DISTANCE
        best_coin: Optional[Coin] = None
        for symbol, coin in index.by_symbol.items():
            dist = Levenshtein.distance(q, symbol, score_cutoff=best_dist - 1)
            if dist < best_dist:
                best_dist = dist
                best_coin = coin
                if best_dist <= 1:
                    # 0 is impossible here (exact symbols were checked above)
                    break
        return best_coin

    def require(self, reference: str) -> Coin:
        coin = self.find(reference)
        if coin is None:
            raise UnresolvedReferenceError(reference)
        return coin
