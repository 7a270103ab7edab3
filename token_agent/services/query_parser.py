"""
Free-text -> structured intent.

The parser is total: any input produces either a ``Conversion`` or a
``PriceLookup``. Anything it cannot make sense of falls back to defaults
(bitcoin, 1 unit, usd) instead of raising.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from token_agent.services.coin_directory import Coin, CoinDirectory


FIAT_CURRENCIES = frozenset({
    "usd", "eur", "gbp", "inr", "jpy", "aud", "cad", "chf", "cny",
    "idr", "rub", "usdt", "usdc", "dai",
})

NUMBER_WORDS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19, "twenty": 20,
}

# "rice" absorbs a common typo of "price"
STOP_WORDS = frozenset({
    "of", "in", "to", "the", "a", "an", "for", "and", "on", "with",
    "at", "by", "from", "as", "is", "was", "were", "are", "how",
    "what", "which", "when", "do", "does", "did", "please", "show",
    "give", "tell", "i", "you", "we", "they", "me", "my",
    "your", "our", "their", "can", "could", "should", "would", "will",
    "be", "been", "has", "have", "had", "that", "this", "it",
    "not", "but", "or", "so", "then", "if", "else", "also", "just",
    "price", "rice", "value",
})

CONVERT_PATTERNS = (
    re.compile(r"convert\s+(\d+\.?\d*|\w+)\s+(\w+)\s+to\s+(\w+)", re.IGNORECASE),
    re.compile(r"^(\d+\.?\d*|\w+)\s+(\w+)\s+to\s+(\w+)", re.IGNORECASE),
    re.compile(r"how\s+much\s+is\s+(\d+\.?\d*|\w+)\s+(\w+)\s+in\s+(\w+)", re.IGNORECASE),
)

DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
WORD_RE = re.compile(r"\b[a-z0-9\-]+\b")
NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
TARGET_RE = re.compile(r"\bto\s+(\w+)")

DEFAULT_TOKEN = "btc"
DEFAULT_CURRENCY = "usd"


@dataclass
class Conversion:
    amount: float
    from_ref: str
    to_ref: str


@dataclass
class PriceLookup:
    tokens: List[Coin]
    amounts: List[float]
    currencies: List[str]
    date: Optional[str] = None


ParsedQuery = Union[Conversion, PriceLookup]


def word_to_number(word: str) -> Optional[float]:
    value = NUMBER_WORDS.get(word.lower())
    return float(value) if value is not None else None


def parse_amount(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        value = None
    if value is not None and math.isfinite(value):
        return value
    value = word_to_number(raw)
    return value if value is not None else 1.0


def is_valid_word(word: str) -> bool:
    if len(word) < 2:
        return False
    return word.lower() not in STOP_WORDS


def align_amounts(amounts: List[float], token_count: int) -> List[float]:
    """Reconcile raw amounts with the resolved tokens so both lists have the same length."""
    if not amounts:
        return [1.0] * token_count
    if len(amounts) < token_count:
        return amounts + [amounts[0]] * (token_count - len(amounts))
    return amounts[:token_count]


class QueryParser:
    def __init__(self, directory: CoinDirectory) -> None:
        self.directory = directory

    def parse(self, text: str) -> ParsedQuery:
        lower = text.lower()

        conversion = self._match_conversion(lower)
        if conversion is not None:
            return conversion
        return self._parse_lookup(lower)

    def _match_conversion(self, lower: str) -> Optional[Conversion]:
        for pattern in CONVERT_PATTERNS:
            m = pattern.search(lower)
            if m:
                return Conversion(amount=parse_amount(m.group(1)), from_ref=m.group(2), to_ref=m.group(3))
        return None

    def _parse_lookup(self, lower: str) -> PriceLookup:
        date_match = DATE_RE.search(lower)
        date = date_match.group(1) if date_match else None
        working = lower.replace(date, " ", 1) if date else lower

        words = [w for w in WORD_RE.findall(working) if is_valid_word(w)]

        tokens: List[Coin] = []
        seen_ids = set()
        fiats: List[str] = []
        for word in words:
            if word in FIAT_CURRENCIES:
                fiats.append(word)
                continue
            coin = self.directory.find(word)
            if coin is not None and coin.id not in seen_ids:
                seen_ids.add(coin.id)
                tokens.append(coin)

        if not tokens:
            fallback = self.directory.find(DEFAULT_TOKEN)
            if fallback is not None:
                tokens.append(fallback)
        if not fiats:
            fiats.append(DEFAULT_CURRENCY)

        amounts = [float(n) for n in NUMBER_RE.findall(working)]
        if not amounts:
            amounts = [n for n in (word_to_number(w) for w in words) if n is not None]
        amounts = align_amounts(amounts, len(tokens))

        target = self._currency_override(lower)
        currencies = [target] if target else fiats

        return PriceLookup(tokens=tokens, amounts=amounts, currencies=currencies, date=date)

    def _currency_override(self, lower: str) -> Optional[str]:
        m = TARGET_RE.search(lower)
        if not m:
            return None
        word = m.group(1)
        if word in FIAT_CURRENCIES:
            return word
        coin = self.directory.find(word)
        if coin is not None:
            return coin.symbol.lower()
        return None
