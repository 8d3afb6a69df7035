"""Valuation table rows and exports."""
from __future__ import annotations

import csv
import html
import io
from typing import Sequence

import pandas as pd

from portfolio_valuer.domain.models import Equity
from portfolio_valuer.domain.results import ValuationResult
from portfolio_valuer.presentation.formatting import format_number, format_percent, format_shares

ValuationRow = tuple[Equity, ValuationResult]

COLUMNS = [
    "symbol",
    "price",
    "pe",
    "pbv",
    "de",
    "roe",
    "eps",
    "dividend",
    "yield",
    "growth",
    "d1",
    "yield_forecast",
    "required_return",
    "fair_price",
    "mos30",
    "shares30",
    "mos40",
    "shares40",
    "mos50",
    "shares50",
    "reference_year",
]


def valuations_to_rows(valuations: Sequence[ValuationRow]) -> list[dict[str, str]]:
    """Display-ready rows; invalid results show the reason in place of a fair price."""
    rows: list[dict[str, str]] = []
    for equity, result in valuations:
        valid = result.is_valid
        rows.append(
            {
                "symbol": equity.symbol,
                "price": format_number(equity.price),
                "pe": format_number(equity.pe),
                "pbv": format_number(equity.pbv),
                "de": format_number(equity.de),
                "roe": format_percent(equity.roe),
                "eps": format_number(equity.eps),
                "dividend": format_number(equity.dividend),
                "yield": format_percent(equity.yield_percent),
                "growth": format_percent(equity.growth),
                "d1": format_number(result.d1),
                "yield_forecast": format_percent(result.yield_forecast),
                "required_return": format_percent(equity.required_return),
                "fair_price": format_number(result.ddm_price) if valid else (result.error_reason or "Invalid"),
                "mos30": format_number(result.mos30) if valid else "-",
                "shares30": format_shares(result.max_shares30),
                "mos40": format_number(result.mos40) if valid else "-",
                "shares40": format_shares(result.max_shares40),
                "mos50": format_number(result.mos50) if valid else "-",
                "shares50": format_shares(result.max_shares50),
                "reference_year": equity.reference_year or "",
            }
        )
    return rows


def valuations_to_dataframe(valuations: Sequence[ValuationRow]) -> pd.DataFrame:
    """Numeric frame of inputs and results, one row per equity."""
    return pd.DataFrame(
        [
            {
                "symbol": equity.symbol,
                "company": equity.company_name or "",
                "price": equity.price,
                "pe": equity.pe,
                "pbv": equity.pbv,
                "de": equity.de,
                "roe": equity.roe,
                "eps": equity.eps,
                "dividend": equity.dividend,
                "yield_percent": equity.yield_percent,
                "growth": equity.growth,
                "required_return": equity.required_return,
                "d1": result.d1,
                "yield_forecast": result.yield_forecast,
                "fair_price": result.ddm_price,
                "mos30": result.mos30,
                "mos40": result.mos40,
                "mos50": result.mos50,
                "shares30": result.max_shares30,
                "shares40": result.max_shares40,
                "shares50": result.max_shares50,
                "valid": result.is_valid,
                "reason": result.error_reason or "",
                "reference_year": equity.reference_year or "",
            }
            for equity, result in valuations
        ]
    )


def render_csv(valuations: Sequence[ValuationRow]) -> bytes:
    rows = valuations_to_rows(valuations)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render_xlsx(valuations: Sequence[ValuationRow]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        valuations_to_dataframe(valuations).to_excel(writer, sheet_name="Valuation", index=False)
    return buffer.getvalue()


def render_html(valuations: Sequence[ValuationRow]) -> str:
    rows = valuations_to_rows(valuations)
    if not rows:
        return "<p>No equities in portfolio.</p>"
    header = "".join(f"<th>{col}</th>" for col in COLUMNS)
    body_parts = []
    for row in rows:
        body_parts.append("<tr>" + "".join(f"<td>{html.escape(row[col])}</td>" for col in COLUMNS) + "</tr>")
    body_html = "".join(body_parts)
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body_html}</tbody></table>"
