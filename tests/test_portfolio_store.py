import json
from pathlib import Path

from portfolio_valuer.application.use_cases import LoadPortfolioUseCase, SavePortfolioUseCase
from portfolio_valuer.domain.models import Equity, PortfolioSettings, Source
from portfolio_valuer.infrastructure.storage.portfolio_store import (
    JsonPortfolioRepository,
    load_portfolio,
    save_portfolio,
)


def make_equity() -> Equity:
    return Equity(
        id="abc123",
        symbol="ADVANC",
        price=250.0,
        pe=20.5,
        dividend=10.0,
        yield_percent=4.0,
        growth=4.0,
        required_return=9.0,
        sources=(Source("SET", "https://www.set.or.th/en/market/product/stock/quote/ADVANC"),),
        reference_year="2025",
    )


def test_save_and_load_portfolio(tmp_path: Path):
    path = tmp_path / "portfolio_data.json"
    save_portfolio(PortfolioSettings(600000, 3), [make_equity()], path=path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    record = raw["portfolio_data"]
    assert record["settings"] == {"totalCapital": 600000, "companyCount": 3}
    assert record["stocks"][0]["dividendBaht"] == 10.0
    assert "loading" not in record["stocks"][0]
    assert "error" not in record["stocks"][0]

    settings, equities = load_portfolio(path=path)
    assert settings == PortfolioSettings(600000.0, 3)
    assert equities == [make_equity()]


def test_missing_store_returns_none(tmp_path: Path):
    assert load_portfolio(path=tmp_path / "absent.json") is None


def test_corrupt_store_falls_back(tmp_path: Path, caplog):
    path = tmp_path / "portfolio_data.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_portfolio(path=path) is None
    assert "Failed to load portfolio" in caplog.text

    portfolio = LoadPortfolioUseCase(JsonPortfolioRepository(path)).execute()
    assert len(portfolio) == 1
    assert portfolio.settings == PortfolioSettings(1_000_000.0, 5)
    assert not portfolio.is_dirty


def test_loads_bare_record_and_tolerates_missing_fields(tmp_path: Path):
    path = tmp_path / "legacy.json"
    path.write_text(
        json.dumps(
            {
                "settings": {"totalCapital": "abc", "companyCount": 0},
                "stocks": [
                    {"id": "s1", "symbol": " ptt ", "price": 34.5, "loading": True, "error": "boom"},
                    "garbage",
                ],
            }
        ),
        encoding="utf-8",
    )

    settings, equities = load_portfolio(path=path)

    assert settings == PortfolioSettings(0.0, 1)
    assert len(equities) == 1
    assert equities[0].symbol == "PTT"
    assert equities[0].dividend == 0
    assert equities[0].growth == 3.0
    assert equities[0].required_return == 10.0


def test_save_use_case_marks_clean(tmp_path: Path):
    repository = JsonPortfolioRepository(tmp_path / "nested" / "store.json")
    portfolio = LoadPortfolioUseCase(repository).execute()
    portfolio.update_settings(200000, 4)
    assert portfolio.is_dirty

    SavePortfolioUseCase(repository).execute(portfolio)

    assert not portfolio.is_dirty
    reloaded = LoadPortfolioUseCase(repository).execute()
    assert reloaded.settings == PortfolioSettings(200000.0, 4)
    assert list(reloaded) == list(portfolio)
    assert not list(tmp_path.joinpath("nested").glob("*.tmp"))


def test_duplicate_stored_ids_load_as_separate_rows(tmp_path: Path):
    path = tmp_path / "portfolio_data.json"
    first = make_equity()
    second = Equity(id=first.id, symbol="SCB", price=120.0, dividend=8.0, growth=3.0, required_return=10.0)
    save_portfolio(PortfolioSettings(600000, 3), [first, second], path=path)

    portfolio = LoadPortfolioUseCase(JsonPortfolioRepository(path)).execute()

    assert [equity.symbol for equity in portfolio.equities()] == ["ADVANC", "SCB"]
    assert len(set(portfolio)) == 2
    assert portfolio[first.id].symbol == "ADVANC"


def test_company_count_above_one_hundred_survives_round_trip(tmp_path: Path):
    repository = JsonPortfolioRepository(tmp_path / "store.json")
    portfolio = LoadPortfolioUseCase(repository).execute()
    portfolio.update_settings(3_000_000, 150)

    SavePortfolioUseCase(repository).execute(portfolio)

    reloaded = LoadPortfolioUseCase(repository).execute()
    assert reloaded.settings == PortfolioSettings(3_000_000.0, 150)
    assert reloaded.allocation_per_equity() == 20_000.0
