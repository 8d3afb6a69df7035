"""Domain-level results for dividend discount valuation."""
from __future__ import annotations

from dataclasses import dataclass

NO_DIVIDEND = "No Div"
NON_CONVERGENT = "r ≤ g"
SYMBOL_REQUIRED = "Symbol required"


@dataclass(frozen=True)
class ValuationResult:
    d1: float
    yield_forecast: float
    ddm_price: float
    mos30: float
    mos40: float
    mos50: float
    max_shares30: int
    max_shares40: int
    max_shares50: int
    is_valid: bool
    error_reason: str | None = None

    @classmethod
    def invalid(cls, reason: str, d1: float = 0.0, yield_forecast: float = 0.0) -> "ValuationResult":
        return cls(
            d1=d1,
            yield_forecast=yield_forecast,
            ddm_price=0.0,
            mos30=0.0,
            mos40=0.0,
            mos50=0.0,
            max_shares30=0,
            max_shares40=0,
            max_shares50=0,
            is_valid=False,
            error_reason=reason,
        )

    def tiers(self) -> list[tuple[str, float, int]]:
        return [
            ("mos30", self.mos30, self.max_shares30),
            ("mos40", self.mos40, self.max_shares40),
            ("mos50", self.mos50, self.max_shares50),
        ]
