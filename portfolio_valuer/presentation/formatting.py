"""Display formatting for currency, percentages and share counts."""
from __future__ import annotations

import math

CURRENCY_SYMBOL = "฿"


def format_number(value: float | None) -> str:
    if value is None or not math.isfinite(value):
        return "0.00"
    return f"{value:,.2f}"


def format_currency(value: float | None, symbol: str = "") -> str:
    return f"{symbol}{format_number(value)}"


def format_percent(value: float | None) -> str:
    return f"{format_number(value)}%"


def format_shares(value: int | None) -> str:
    return f"{int(value or 0):,}"
