"""Dividend discount valuation and margin-of-safety portfolio toolkit."""
from portfolio_valuer.application.use_cases import (
    LoadPortfolioUseCase,
    RefreshAllUseCase,
    RefreshContext,
    RefreshEquityUseCase,
    SavePortfolioUseCase,
)
from portfolio_valuer.domain.portfolio import Portfolio
from portfolio_valuer.domain.services import DividendDiscountValuator, valuate
from portfolio_valuer.infrastructure.fetching.gemini_client import GeminiFundamentalsClient
from portfolio_valuer.infrastructure.storage.portfolio_store import JsonPortfolioRepository

__all__ = [
    "LoadPortfolioUseCase",
    "RefreshAllUseCase",
    "RefreshContext",
    "RefreshEquityUseCase",
    "SavePortfolioUseCase",
    "Portfolio",
    "DividendDiscountValuator",
    "valuate",
    "GeminiFundamentalsClient",
    "JsonPortfolioRepository",
]
