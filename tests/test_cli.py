import csv
import io
from dataclasses import replace
from pathlib import Path

from portfolio_valuer import cli
from portfolio_valuer.cli import main
from portfolio_valuer.domain.errors import CredentialError
from portfolio_valuer.domain.models import Equity, Fundamentals, PortfolioSettings
from portfolio_valuer.infrastructure.storage.portfolio_store import load_portfolio, save_portfolio


def seed_store(path: Path) -> None:
    save_portfolio(
        PortfolioSettings(1_000_000, 5),
        [
            Equity(id="a", symbol="PTT", price=34.5, dividend=2.0, growth=3.0, required_return=10.0),
            Equity(id="b", symbol="KBANK", price=150.0, dividend=0.0, growth=3.0, required_return=10.0),
        ],
        path=path,
    )


def test_show_prints_valuation_table(tmp_path: Path, capsys):
    store = tmp_path / "store.json"
    seed_store(store)

    assert main(["--store", str(store), "show"]) == 0

    out = capsys.readouterr().out
    assert "Allocation per position: 200,000.00" in out
    assert "29.43" in out
    assert "9,700" in out
    assert "No Div" in out


def test_export_csv(tmp_path: Path):
    store = tmp_path / "store.json"
    seed_store(store)
    output = tmp_path / "valuation.csv"

    assert main(["--store", str(store), "export", str(output)]) == 0

    rows = list(csv.DictReader(io.StringIO(output.read_text(encoding="utf-8"))))
    assert [row["symbol"] for row in rows] == ["PTT", "KBANK"]


def test_export_rejects_unknown_format(tmp_path: Path):
    store = tmp_path / "store.json"
    seed_store(store)

    assert main(["--store", str(store), "export", str(tmp_path / "out.pdf")]) == 2


def test_settings_command_clamps_and_saves(tmp_path: Path):
    store = tmp_path / "store.json"
    seed_store(store)

    assert main(["--store", str(store), "settings", "--capital", "400000", "--count", "0"]) == 0

    settings, equities = load_portfolio(path=store)
    assert settings == PortfolioSettings(400000.0, 1)
    assert [equity.id for equity in equities] == ["a", "b"]


class FakeClient:
    def __init__(self, responses: dict[str, Fundamentals | Exception]) -> None:
        self.responses = responses

    def fetch(self, symbol: str) -> Fundamentals:
        response = self.responses[symbol]
        if isinstance(response, Exception):
            raise response
        return response


def use_client(monkeypatch, responses: dict[str, Fundamentals | Exception], api_key: str = "test-api-key") -> None:
    monkeypatch.setattr(cli, "SETTINGS", replace(cli.SETTINGS, gemini_api_key=api_key))
    monkeypatch.setattr(cli, "GeminiFundamentalsClient", lambda: FakeClient(responses))


def test_refresh_without_api_key_exits_2(tmp_path: Path, monkeypatch, capsys):
    store = tmp_path / "store.json"
    seed_store(store)
    use_client(monkeypatch, {}, api_key="")

    assert main(["--store", str(store), "refresh"]) == 2
    assert "No Gemini API key" in capsys.readouterr().err


def test_refresh_credential_failure_exits_1(tmp_path: Path, monkeypatch, capsys):
    store = tmp_path / "store.json"
    seed_store(store)
    use_client(
        monkeypatch,
        {"PTT": CredentialError("API key not valid."), "KBANK": Fundamentals(price=150.0, dividend=6.0)},
    )

    assert main(["--store", str(store), "refresh"]) == 1

    out = capsys.readouterr().out
    assert "- PTT: failed: API key not valid." in out
    assert "- KBANK: ok" in out
    _, equities = load_portfolio(path=store)
    assert equities[1].dividend == 0.0


def test_refresh_with_save_persists_fundamentals(tmp_path: Path, monkeypatch, capsys):
    store = tmp_path / "store.json"
    seed_store(store)
    use_client(
        monkeypatch,
        {
            "PTT": Fundamentals(price=36.0, dividend=2.2, reference_year="2025"),
            "KBANK": Fundamentals(price=150.0, dividend=6.0, reference_year="2025"),
        },
    )

    assert main(["--store", str(store), "refresh", "--save"]) == 0

    assert f"Saved to {store}" in capsys.readouterr().out
    _, equities = load_portfolio(path=store)
    assert [(equity.id, equity.price, equity.dividend) for equity in equities] == [
        ("a", 36.0, 2.2),
        ("b", 150.0, 6.0),
    ]
    assert equities[0].reference_year == "2025"
