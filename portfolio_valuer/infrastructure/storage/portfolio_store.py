"""JSON file storage for the portfolio record."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Sequence

from portfolio_valuer.config import SETTINGS, STORAGE_KEY
from portfolio_valuer.domain.models import Equity, PortfolioSettings, Source, new_equity_id
from portfolio_valuer.domain.portfolio import coerce_capital, coerce_company_count
from portfolio_valuer.domain.repositories import PortfolioRepository
from portfolio_valuer.infrastructure.parsing.utils import (
    parse_non_negative,
    parse_number,
    parse_optional_text,
)

logger = logging.getLogger(__name__)


def settings_to_record(settings: PortfolioSettings) -> dict[str, Any]:
    return {"totalCapital": settings.total_capital, "companyCount": settings.company_count}


def equity_to_record(equity: Equity) -> dict[str, Any]:
    return {
        "id": equity.id,
        "symbol": equity.symbol,
        "price": equity.price,
        "pe": equity.pe,
        "pbv": equity.pbv,
        "de": equity.de,
        "roe": equity.roe,
        "eps": equity.eps,
        "dividendBaht": equity.dividend,
        "yieldPercent": equity.yield_percent,
        "growth": equity.growth,
        "requiredReturn": equity.required_return,
        "sources": [{"title": s.title, "uri": s.uri} for s in equity.sources],
        "referenceYear": equity.reference_year,
        "companyName": equity.company_name,
    }


def _sources_from_record(raw: object) -> tuple[Source, ...]:
    if not isinstance(raw, list):
        return ()
    sources = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("uri"):
            continue
        sources.append(Source(title=str(item.get("title") or ""), uri=str(item["uri"])))
    return tuple(sources)


def settings_from_record(raw: object) -> PortfolioSettings:
    if not isinstance(raw, dict):
        return PortfolioSettings(SETTINGS.initial_total_capital, SETTINGS.initial_company_count)
    return PortfolioSettings(
        total_capital=coerce_capital(raw.get("totalCapital", SETTINGS.initial_total_capital)),
        company_count=coerce_company_count(raw.get("companyCount", SETTINGS.initial_company_count)),
    )


def equity_from_record(raw: dict[str, Any]) -> Equity:
    return Equity(
        id=str(raw.get("id") or new_equity_id()),
        symbol=str(raw.get("symbol") or "").strip().upper(),
        price=parse_non_negative(raw.get("price")),
        pe=parse_non_negative(raw.get("pe")),
        pbv=parse_non_negative(raw.get("pbv")),
        de=parse_non_negative(raw.get("de")),
        roe=parse_non_negative(raw.get("roe")),
        eps=parse_non_negative(raw.get("eps")),
        dividend=parse_non_negative(raw.get("dividendBaht")),
        yield_percent=parse_non_negative(raw.get("yieldPercent")),
        growth=parse_number(raw.get("growth"), SETTINGS.default_growth),
        required_return=parse_number(raw.get("requiredReturn"), SETTINGS.default_required_return),
        sources=_sources_from_record(raw.get("sources")),
        reference_year=parse_optional_text(raw.get("referenceYear")),
        company_name=parse_optional_text(raw.get("companyName")),
    )


def load_portfolio(path: Path | None = None) -> tuple[PortfolioSettings, list[Equity]] | None:
    """Read the stored record; ``None`` when nothing usable is stored."""
    store_path = path or SETTINGS.storage_path
    if not store_path.exists():
        return None
    try:
        data = json.loads(store_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.exception("Failed to load portfolio from %s", store_path)
        return None
    record = data.get(STORAGE_KEY) if isinstance(data, dict) else None
    # Bare {settings, stocks} blobs, e.g. copied out of browser storage.
    if record is None and isinstance(data, dict) and ("stocks" in data or "settings" in data):
        record = data
    if not isinstance(record, dict):
        logger.warning("Portfolio store %s has no %r record; using defaults", store_path, STORAGE_KEY)
        return None
    settings = settings_from_record(record.get("settings"))
    raw_stocks = record.get("stocks")
    equities = [equity_from_record(item) for item in raw_stocks if isinstance(item, dict)] if isinstance(raw_stocks, list) else []
    logger.info("Loaded %d equities from %s", len(equities), store_path)
    return settings, equities


def save_portfolio(settings: PortfolioSettings, equities: Sequence[Equity], path: Path | None = None) -> Path:
    store_path = path or SETTINGS.storage_path
    store_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        STORAGE_KEY: {
            "settings": settings_to_record(settings),
            "stocks": [equity_to_record(equity) for equity in equities],
        }
    }
    fd, tmp_name = tempfile.mkstemp(dir=store_path.parent, prefix=f".{store_path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        os.replace(tmp_name, store_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Saved %d equities to %s", len(equities), store_path)
    return store_path


class JsonPortfolioRepository(PortfolioRepository):
    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path) if path else SETTINGS.storage_path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> tuple[PortfolioSettings, list[Equity]] | None:
        return load_portfolio(self._path)

    def save(self, settings: PortfolioSettings, equities: Sequence[Equity]) -> None:
        save_portfolio(settings, equities, self._path)
