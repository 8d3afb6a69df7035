"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from typing import Protocol, Sequence

from .models import Equity, Fundamentals, PortfolioSettings


class PortfolioRepository(Protocol):
    """Stores the (settings, equities) pair as one unit."""

    def load(self) -> tuple[PortfolioSettings, Sequence[Equity]] | None:
        ...

    def save(self, settings: PortfolioSettings, equities: Sequence[Equity]) -> None:
        ...


class FundamentalsProvider(Protocol):
    """Retrieves market fundamentals for a normalized ticker symbol."""

    def fetch(self, symbol: str) -> Fundamentals:
        ...
