"""Domain services implementing the dividend discount valuation rules."""
from __future__ import annotations

import math
from typing import Sequence

from .models import Equity
from .results import NO_DIVIDEND, NON_CONVERGENT, ValuationResult

DEFAULT_MULTIPLIERS = (0.7, 0.6, 0.5)


def _finite_or_zero(value: float | None) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class DividendDiscountValuator:
    """Gordon Growth fair value with margin-of-safety buy targets.

    Fair price is ``D1 / (r - g)`` with ``D1 = D0 * (1 + g)``. Each tier is a
    fixed discount to the fair price; affordable shares at a tier are rounded
    down to a whole board lot.
    """

    def __init__(self, board_lot: int = 100, multipliers: Sequence[float] = DEFAULT_MULTIPLIERS) -> None:
        if board_lot <= 0:
            raise ValueError("board_lot must be positive")
        if len(multipliers) != 3:
            raise ValueError("exactly three margin-of-safety multipliers are required")
        self._board_lot = board_lot
        self._multipliers = tuple(multipliers)

    def valuate(self, equity: Equity, allocation: float) -> ValuationResult:
        dividend = _finite_or_zero(equity.dividend)
        g = _finite_or_zero(equity.growth) / 100
        r = _finite_or_zero(equity.required_return) / 100
        price = _finite_or_zero(equity.price)
        allocation = max(_finite_or_zero(allocation), 0.0)

        if dividend <= 0:
            return ValuationResult.invalid(NO_DIVIDEND)

        d1 = dividend * (1 + g)
        yield_forecast = d1 / price * 100 if price > 0 else 0.0

        if r <= g:
            return ValuationResult.invalid(NON_CONVERGENT, d1=d1, yield_forecast=yield_forecast)

        fair_price = d1 / (r - g)
        mos30, mos40, mos50 = (fair_price * multiplier for multiplier in self._multipliers)

        return ValuationResult(
            d1=d1,
            yield_forecast=yield_forecast,
            ddm_price=fair_price,
            mos30=mos30,
            mos40=mos40,
            mos50=mos50,
            max_shares30=self.board_lot_shares(allocation, mos30),
            max_shares40=self.board_lot_shares(allocation, mos40),
            max_shares50=self.board_lot_shares(allocation, mos50),
            is_valid=True,
        )

    def board_lot_shares(self, allocation: float, tier_price: float) -> int:
        if tier_price <= 0:
            return 0
        lots = math.floor((allocation / tier_price) / self._board_lot)
        return max(lots, 0) * self._board_lot


_DEFAULT_VALUATOR = DividendDiscountValuator()


def valuate(equity: Equity, allocation: float) -> ValuationResult:
    return _DEFAULT_VALUATOR.valuate(equity, allocation)
