"""Command-line entrypoint for the portfolio valuer."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from portfolio_valuer.application.dto import CredentialState
from portfolio_valuer.application.use_cases import (
    LoadPortfolioUseCase,
    RefreshAllUseCase,
    RefreshContext,
    SavePortfolioUseCase,
)
from portfolio_valuer.config import SETTINGS, configure_logging
from portfolio_valuer.domain.portfolio import Portfolio
from portfolio_valuer.infrastructure.fetching.gemini_client import GeminiFundamentalsClient
from portfolio_valuer.infrastructure.storage.portfolio_store import JsonPortfolioRepository
from portfolio_valuer.presentation.formatting import format_currency
from portfolio_valuer.presentation.valuation_table import (
    render_csv,
    render_html,
    render_xlsx,
    valuations_to_rows,
)

SUMMARY_COLUMNS = ["symbol", "price", "dividend", "d1", "fair_price", "mos30", "shares30", "mos40", "shares40", "mos50", "shares50"]


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dividend discount valuation for a saved portfolio")
    parser.add_argument("--store", type=str, help="Path to the portfolio JSON store")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print the valuation table")

    refresh = sub.add_parser("refresh", help="Fetch fundamentals for every symbol")
    refresh.add_argument("--save", action="store_true", help="Save the portfolio after refreshing")

    export = sub.add_parser("export", help="Write the valuation table to a file")
    export.add_argument("output", type=str, help="Destination file (.csv, .xlsx or .html)")

    settings = sub.add_parser("settings", help="Change total capital and position count, then save")
    settings.add_argument("--capital", type=str, help="Total investable capital")
    settings.add_argument("--count", type=str, help="Target number of positions")
    return parser.parse_args(argv)


def print_table(portfolio: Portfolio) -> None:
    summary = portfolio.settings
    print("Portfolio Valuation")
    print("===================")
    print(f"Total capital: {format_currency(summary.total_capital)}")
    print(f"Positions: {summary.company_count}")
    print(f"Allocation per position: {format_currency(portfolio.allocation_per_equity())}")
    rows = valuations_to_rows(portfolio.valuations())
    if not rows:
        print("\nNo equities in portfolio.")
        return
    widths = {col: max(len(col), *(len(row[col]) for row in rows)) for col in SUMMARY_COLUMNS}
    print()
    print("  ".join(col.rjust(widths[col]) for col in SUMMARY_COLUMNS))
    for row in rows:
        print("  ".join(row[col].rjust(widths[col]) for col in SUMMARY_COLUMNS))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging()

    repository = JsonPortfolioRepository(Path(args.store) if args.store else SETTINGS.storage_path)
    portfolio = LoadPortfolioUseCase(repository).execute()

    if args.command == "show":
        print_table(portfolio)
        return 0

    if args.command == "refresh":
        credentials = CredentialState(needs_credential=not SETTINGS.has_api_key())
        if credentials.needs_credential:
            print("No Gemini API key configured. Set GEMINI_API_KEY and retry.", file=sys.stderr)
            return 2
        context = RefreshContext(portfolio=portfolio, provider=GeminiFundamentalsClient(), credentials=credentials)
        outcomes = RefreshAllUseCase(context).execute()
        for outcome in outcomes:
            status = "ok" if outcome.ok else f"{outcome.state.value}: {outcome.error or ''}"
            print(f"- {outcome.symbol or outcome.equity_id}: {status}")
        print()
        print_table(portfolio)
        if args.save:
            SavePortfolioUseCase(repository).execute(portfolio)
            print(f"\nSaved to {repository.path}")
        return 1 if credentials.needs_credential else 0

    if args.command == "export":
        output = Path(args.output)
        valuations = portfolio.valuations()
        suffix = output.suffix.lower()
        if suffix == ".csv":
            output.write_bytes(render_csv(valuations))
        elif suffix == ".xlsx":
            output.write_bytes(render_xlsx(valuations))
        elif suffix in (".html", ".htm"):
            output.write_text(render_html(valuations), encoding="utf-8")
        else:
            print(f"Unsupported export format: {output.suffix or output.name}", file=sys.stderr)
            return 2
        print(f"Wrote {len(valuations)} rows to {output}")
        return 0

    settings = portfolio.settings
    portfolio.update_settings(
        args.capital if args.capital is not None else settings.total_capital,
        args.count if args.count is not None else settings.company_count,
    )
    SavePortfolioUseCase(repository).execute(portfolio)
    print_table(portfolio)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
