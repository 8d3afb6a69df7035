"""Portfolio aggregate owning the ordered equities and portfolio settings."""
from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping
from dataclasses import replace
from typing import Callable, Iterable, Iterator

from .errors import EquityBusyError, EquityNotFoundError
from .models import (
    Equity,
    EquityEdit,
    Fundamentals,
    PortfolioSettings,
    PricingEdit,
    PricingField,
    RowStatus,
    new_equity_id,
)
from .results import ValuationResult
from .services import DividendDiscountValuator

logger = logging.getLogger(__name__)

ConfirmRemoval = Callable[[Equity], bool]


def coerce_capital(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def coerce_company_count(value: object) -> int:
    try:
        number = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, number)


def yield_from_dividend(dividend: float, price: float) -> float:
    return dividend / price * 100 if price > 0 else 0.0


def dividend_from_yield(yield_percent: float, price: float) -> float:
    return price * (yield_percent / 100)


def apply_pricing(equity: Equity, edit: PricingEdit) -> Equity:
    """Set one member of the price/dividend/yield triple and derive the others."""
    if edit.field is PricingField.PRICE:
        return replace(equity, price=edit.value, yield_percent=yield_from_dividend(equity.dividend, edit.value))
    if edit.field is PricingField.DIVIDEND:
        return replace(equity, dividend=edit.value, yield_percent=yield_from_dividend(edit.value, equity.price))
    return replace(equity, yield_percent=edit.value, dividend=dividend_from_yield(edit.value, equity.price))


class Portfolio(Mapping[str, Equity]):
    """Ordered equities keyed by id, plus settings and unsaved-changes tracking.

    Valuations are computed on every call to :meth:`valuation` or
    :meth:`valuations`; nothing is cached between mutations. All mutations
    hold an internal lock so that refreshes of different rows may run on
    worker threads.
    """

    def __init__(
        self,
        settings: PortfolioSettings,
        equities: Iterable[Equity] = (),
        *,
        default_growth: float = 3.0,
        default_required_return: float = 10.0,
        valuator: DividendDiscountValuator | None = None,
    ) -> None:
        self._settings = PortfolioSettings(
            total_capital=coerce_capital(settings.total_capital),
            company_count=coerce_company_count(settings.company_count),
        )
        self._equities: dict[str, Equity] = {}
        for equity in equities:
            if not equity.id or equity.id in self._equities:
                fresh = replace(equity, id=new_equity_id())
                logger.warning("Duplicate equity id %r for %s; reassigned to %s", equity.id, equity.symbol or "blank row", fresh.id)
                equity = fresh
            self._equities[equity.id] = equity
        self._status: dict[str, RowStatus] = {}
        self._default_growth = default_growth
        self._default_required_return = default_required_return
        self._valuator = valuator or DividendDiscountValuator()
        self._lock = threading.RLock()
        self._dirty = False

    def __getitem__(self, equity_id: str) -> Equity:
        return self._require(equity_id)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._equities))

    def __len__(self) -> int:
        return len(self._equities)

    @property
    def settings(self) -> PortfolioSettings:
        return self._settings

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def equities(self) -> list[Equity]:
        with self._lock:
            return list(self._equities.values())

    def add_equity(self) -> Equity:
        equity = Equity.blank(self._default_growth, self._default_required_return)
        with self._lock:
            self._equities[equity.id] = equity
            self._dirty = True
        return equity

    def update_equity(self, equity_id: str, edit: EquityEdit) -> Equity:
        with self._lock:
            current = self._require(equity_id)
            self._require_idle(equity_id)
            fields = edit.plain_fields()
            if "symbol" in fields:
                fields["symbol"] = str(fields["symbol"]).upper()
            updated = replace(current, **fields)
            if edit.pricing is not None:
                updated = apply_pricing(updated, edit.pricing)
            self._equities[equity_id] = updated
            self._clear_error(equity_id)
            self._dirty = True
            return updated

    def apply_fundamentals(self, equity_id: str, fundamentals: Fundamentals) -> Equity:
        with self._lock:
            current = self._require(equity_id)
            updated = replace(
                current,
                price=fundamentals.price,
                pe=fundamentals.pe,
                pbv=fundamentals.pbv,
                de=fundamentals.de,
                roe=fundamentals.roe,
                eps=fundamentals.eps,
                dividend=fundamentals.dividend,
                yield_percent=fundamentals.yield_percent,
                sources=tuple(fundamentals.sources),
                reference_year=fundamentals.reference_year,
                company_name=fundamentals.company_name or current.company_name,
            )
            self._equities[equity_id] = updated
            self._dirty = True
            return updated

    def remove_equity(self, equity_id: str, confirm: ConfirmRemoval) -> bool:
        with self._lock:
            equity = self._require(equity_id)
            self._require_idle(equity_id)
        if not confirm(equity):
            return False
        with self._lock:
            if self._equities.pop(equity_id, None) is None:
                return False
            self._status.pop(equity_id, None)
            self._dirty = True
        return True

    def update_settings(self, total_capital: object, company_count: object) -> PortfolioSettings:
        with self._lock:
            self._settings = PortfolioSettings(
                total_capital=coerce_capital(total_capital),
                company_count=coerce_company_count(company_count),
            )
            self._dirty = True
            return self._settings

    def allocation_per_equity(self) -> float:
        return self._settings.allocation_per_equity()

    def valuation(self, equity_id: str) -> ValuationResult:
        return self._valuator.valuate(self._require(equity_id), self.allocation_per_equity())

    def valuations(self) -> list[tuple[Equity, ValuationResult]]:
        allocation = self.allocation_per_equity()
        return [(equity, self._valuator.valuate(equity, allocation)) for equity in self.equities()]

    def snapshot(self) -> tuple[PortfolioSettings, list[Equity]]:
        with self._lock:
            return self._settings, list(self._equities.values())

    def mark_saved(self) -> None:
        with self._lock:
            self._dirty = False

    def status(self, equity_id: str) -> RowStatus:
        return self._status.get(equity_id, RowStatus())

    def begin_refresh(self, equity_id: str, symbol: str) -> bool:
        """Flag a row as loading; False if a refresh is already outstanding."""
        with self._lock:
            current = self._require(equity_id)
            if self.status(equity_id).loading:
                return False
            if current.symbol != symbol:
                self._equities[equity_id] = replace(current, symbol=symbol)
                self._dirty = True
            self._status[equity_id] = RowStatus(loading=True)
            return True

    def finish_refresh(self, equity_id: str, error: str | None = None) -> None:
        with self._lock:
            if equity_id in self._equities:
                self._status[equity_id] = RowStatus(loading=False, error=error)

    def set_error(self, equity_id: str, message: str) -> None:
        with self._lock:
            self._require(equity_id)
            self._status[equity_id] = replace(self.status(equity_id), error=message)

    def _clear_error(self, equity_id: str) -> None:
        status = self._status.get(equity_id)
        if status is not None and status.error is not None:
            self._status[equity_id] = replace(status, error=None)

    def _require_idle(self, equity_id: str) -> None:
        if self.status(equity_id).loading:
            raise EquityBusyError(equity_id)

    def _require(self, equity_id: str) -> Equity:
        try:
            return self._equities[equity_id]
        except KeyError:
            raise EquityNotFoundError(equity_id) from None
