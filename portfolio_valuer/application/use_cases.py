"""Application services orchestrating refresh and persistence workflows."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from portfolio_valuer.application.dto import CredentialState, RefreshOutcome, RefreshState
from portfolio_valuer.config import SETTINGS
from portfolio_valuer.domain.errors import CredentialError, FetchError, is_credential_message
from portfolio_valuer.domain.models import PortfolioSettings
from portfolio_valuer.domain.portfolio import Portfolio
from portfolio_valuer.domain.repositories import FundamentalsProvider, PortfolioRepository
from portfolio_valuer.domain.results import SYMBOL_REQUIRED

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str | None) -> str:
    return (symbol or "").strip().upper()


@dataclass(slots=True)
class RefreshContext:
    portfolio: Portfolio
    provider: FundamentalsProvider
    credentials: CredentialState = field(default_factory=CredentialState)


class RefreshEquityUseCase:
    def __init__(self, context: RefreshContext) -> None:
        self._context = context

    def execute(self, equity_id: str) -> RefreshOutcome:
        portfolio = self._context.portfolio
        symbol = normalize_symbol(portfolio[equity_id].symbol)
        if not symbol:
            portfolio.set_error(equity_id, SYMBOL_REQUIRED)
            return RefreshOutcome(equity_id, symbol, RefreshState.FAILED, SYMBOL_REQUIRED)

        if not portfolio.begin_refresh(equity_id, symbol):
            logger.info("Refresh of %s already in progress; skipping", symbol)
            return RefreshOutcome(equity_id, symbol, RefreshState.SKIPPED)

        try:
            fundamentals = self._context.provider.fetch(symbol)
        except FetchError as error:
            message = error.message or "Fetch failed"
            credential_failure = isinstance(error, CredentialError) or is_credential_message(message)
            if credential_failure:
                self._context.credentials.revoke()
            portfolio.finish_refresh(equity_id, error=message)
            logger.warning("Refresh of %s failed: %s", symbol, message)
            return RefreshOutcome(equity_id, symbol, RefreshState.FAILED, message, credential_failure)
        except Exception:
            portfolio.finish_refresh(equity_id, error="Fetch failed")
            raise

        portfolio.apply_fundamentals(equity_id, fundamentals)
        portfolio.finish_refresh(equity_id)
        logger.info("Refreshed %s (reference year %s)", symbol, fundamentals.reference_year)
        return RefreshOutcome(equity_id, symbol, RefreshState.UPDATED)


class RefreshAllUseCase:
    """Refresh every row with a symbol; rows succeed or fail independently."""

    def __init__(self, context: RefreshContext, max_workers: int | None = None) -> None:
        self._context = context
        self._single = RefreshEquityUseCase(context)
        self._max_workers = max_workers or SETTINGS.refresh_workers

    def execute(self) -> list[RefreshOutcome]:
        targets = [
            (equity.id, normalize_symbol(equity.symbol))
            for equity in self._context.portfolio.equities()
            if equity.symbol.strip()
        ]
        if not targets:
            return []
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(targets))) as executor:
            futures = [executor.submit(self._single.execute, equity_id) for equity_id, _ in targets]
        outcomes = []
        for (equity_id, symbol), future in zip(targets, futures):
            try:
                outcomes.append(future.result())
            except Exception as error:
                logger.exception("Unexpected failure refreshing %s (%s)", symbol, equity_id)
                outcomes.append(RefreshOutcome(equity_id, symbol, RefreshState.FAILED, str(error) or "Fetch failed"))
        updated = sum(1 for outcome in outcomes if outcome.ok)
        logger.info("Refreshed %d of %d equities", updated, len(outcomes))
        return outcomes


@dataclass(slots=True)
class LoadPortfolioUseCase:
    repository: PortfolioRepository

    def execute(self) -> Portfolio:
        stored = self.repository.load()
        if stored is None:
            portfolio = Portfolio(
                PortfolioSettings(SETTINGS.initial_total_capital, SETTINGS.initial_company_count),
                default_growth=SETTINGS.default_growth,
                default_required_return=SETTINGS.default_required_return,
            )
            portfolio.add_equity()
            portfolio.mark_saved()
            return portfolio
        settings, equities = stored
        return Portfolio(
            settings,
            equities,
            default_growth=SETTINGS.default_growth,
            default_required_return=SETTINGS.default_required_return,
        )


@dataclass(slots=True)
class SavePortfolioUseCase:
    repository: PortfolioRepository

    def execute(self, portfolio: Portfolio) -> None:
        settings, equities = portfolio.snapshot()
        self.repository.save(settings, equities)
        portfolio.mark_saved()
