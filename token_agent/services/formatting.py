from __future__ import annotations

import math
import re
from typing import Iterable, Optional

from token_agent.services.coin_directory import Coin

NA = "N/A"

# "AMOUNT SYMBOL = TOTAL CURRENCY ..."
_LINE_RE = re.compile(r"^(\d+(\.\d+)?)\s+(\w+)\s+=\s+([\d\.,]+)\s+(\w+)")

MARKDOWN_HEADER = (
    "| Token | Amount | Currency | Total Price |\n"
    "|-------|--------|----------|-------------|\n"
)
CONVERSION_HEADER = (
    "| From | Amount | To | Converted |\n"
    "|------|--------|----|-----------|\n"
)


def is_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def format_price(value: Optional[float]) -> str:
    """
    >= 1        -> grouped, 2 decimals
    (0, 1)      -> 2..8 decimals
    0 / missing -> N/A
    """
    if value is None or not math.isfinite(value) or value == 0:
        return NA
    if abs(value) >= 1:
        return f"{value:,.2f}"
    text = f"{value:.8f}".rstrip("0")
    whole, _, frac = text.partition(".")
    return f"{whole}.{frac.ljust(2, '0')}"


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)


def format_change(change: Optional[float]) -> str:
    if change is None or not math.isfinite(change):
        return NA
    return f"{change:.2f}%"


def market_extra(cap: Optional[float], volume: Optional[float], change: Optional[float]) -> str:
    return f"[MCap: {format_price(cap)}, Vol: {format_price(volume)}, 24hΔ: {format_change(change)}]"


def render_line(
    amount: float,
    coin: Coin,
    price: float,
    currency: str,
    date: Optional[str] = None,
    extra: str = "",
) -> str:
    sym = coin.symbol.upper()
    cur = currency.upper()
    date_part = f" ({date})" if date else ""
    extra_part = f" {extra}" if extra else ""
    if amount == 1:
        return f"{sym} price: {format_price(price)} {cur}{date_part}{extra_part}"
    return f"{format_amount(amount)} {sym} = {format_price(price * amount)} {cur}{date_part}{extra_part}"


def render_markdown(lines: Iterable[str]) -> str:
    """
    Re-read rendered plain lines into a 4-column table. Lines that do not look
    like "AMOUNT SYMBOL = TOTAL CURRENCY" go whole into the first column.
    """
    md = MARKDOWN_HEADER
    for line in lines:
        m = _LINE_RE.match(line)
        if m:
            md += f"| {m.group(3)} | {m.group(1)} | {m.group(5)} | {m.group(4)} |\n"
        else:
            md += f"| {line} | | | |\n"
    return md


def render_conversion(amount: float, coin_from: Coin, coin_to: Coin, converted: float, markdown: bool) -> str:
    sym_from = coin_from.symbol.upper()
    sym_to = coin_to.symbol.upper()
    if markdown:
        return CONVERSION_HEADER + f"| {sym_from} | {format_amount(amount)} | {sym_to} | {format_price(converted)} |"
    return f"{format_amount(amount)} {sym_from} = {format_price(converted)} {sym_to}"
