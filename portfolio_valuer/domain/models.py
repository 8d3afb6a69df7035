"""Domain models for the portfolio valuation workflow.

Equities are immutable records; the aggregate replaces them on every edit.
Transient per-row state (loading, last error) lives in ``RowStatus`` and is
never persisted.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence


def new_equity_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Source:
    """Citation returned alongside fetched fundamentals."""

    title: str
    uri: str


@dataclass(frozen=True)
class Fundamentals:
    """Market data for one symbol as produced by a fundamentals provider."""

    price: float = 0.0
    pe: float = 0.0
    pbv: float = 0.0
    de: float = 0.0
    roe: float = 0.0
    eps: float = 0.0
    dividend: float = 0.0
    yield_percent: float = 0.0
    sources: Sequence[Source] = field(default_factory=tuple)
    reference_year: str | None = None
    company_name: str | None = None


@dataclass(frozen=True)
class Equity:
    """One tracked stock position."""

    id: str
    symbol: str = ""
    price: float = 0.0
    pe: float = 0.0
    pbv: float = 0.0
    de: float = 0.0
    roe: float = 0.0
    eps: float = 0.0
    dividend: float = 0.0
    yield_percent: float = 0.0
    growth: float = 0.0
    required_return: float = 0.0
    sources: Sequence[Source] = field(default_factory=tuple)
    reference_year: str | None = None
    company_name: str | None = None

    @classmethod
    def blank(cls, growth: float, required_return: float) -> "Equity":
        return cls(id=new_equity_id(), growth=growth, required_return=required_return)


@dataclass(frozen=True)
class PortfolioSettings:
    total_capital: float
    company_count: int

    def allocation_per_equity(self) -> float:
        if self.company_count <= 0:
            return 0.0
        return self.total_capital / self.company_count


class PricingField(str, Enum):
    """The member of the price/dividend/yield triple driving an edit."""

    PRICE = "price"
    DIVIDEND = "dividend"
    YIELD = "yield_percent"


@dataclass(frozen=True)
class PricingEdit:
    field: PricingField
    value: float


@dataclass(frozen=True)
class EquityEdit:
    """Partial update of an equity; ``None`` leaves a field untouched."""

    symbol: str | None = None
    pe: float | None = None
    pbv: float | None = None
    de: float | None = None
    roe: float | None = None
    eps: float | None = None
    growth: float | None = None
    required_return: float | None = None
    pricing: PricingEdit | None = None

    def plain_fields(self) -> dict[str, object]:
        values = {
            "symbol": self.symbol,
            "pe": self.pe,
            "pbv": self.pbv,
            "de": self.de,
            "roe": self.roe,
            "eps": self.eps,
            "growth": self.growth,
            "required_return": self.required_return,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class RowStatus:
    loading: bool = False
    error: str | None = None
