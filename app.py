"""Streamlit front-end for the portfolio valuation calculator."""
from __future__ import annotations

import streamlit as st

from portfolio_valuer import (
    JsonPortfolioRepository,
    LoadPortfolioUseCase,
    Portfolio,
    RefreshAllUseCase,
    RefreshContext,
    RefreshEquityUseCase,
    SavePortfolioUseCase,
)
from portfolio_valuer.application.dto import CredentialState
from portfolio_valuer.config import SETTINGS, configure_logging
from portfolio_valuer.domain.models import Equity, EquityEdit, PricingEdit, PricingField
from portfolio_valuer.domain.results import ValuationResult
from portfolio_valuer.infrastructure.fetching.gemini_client import GeminiFundamentalsClient
from portfolio_valuer.presentation.formatting import (
    CURRENCY_SYMBOL,
    format_currency,
    format_number,
    format_percent,
    format_shares,
)
from portfolio_valuer.presentation.valuation_table import (
    render_csv,
    render_xlsx,
    valuations_to_dataframe,
)

configure_logging()

st.set_page_config(page_title="Portfolio Valuation", layout="wide")

repository = JsonPortfolioRepository()

if "portfolio" not in st.session_state:
    st.session_state["portfolio"] = LoadPortfolioUseCase(repository).execute()
if "credentials" not in st.session_state:
    st.session_state["credentials"] = CredentialState(needs_credential=not SETTINGS.has_api_key())
if "api_key" not in st.session_state:
    st.session_state["api_key"] = SETTINGS.gemini_api_key
if "pending_delete" not in st.session_state:
    st.session_state["pending_delete"] = None

portfolio: Portfolio = st.session_state["portfolio"]
credentials: CredentialState = st.session_state["credentials"]

PLAIN_FIELDS = ("pe", "pbv", "de", "roe", "eps", "growth", "required_return")
PRICING_FIELDS = {
    "price": PricingField.PRICE,
    "dividend": PricingField.DIVIDEND,
    "yield_percent": PricingField.YIELD,
}


def widget_key(field: str, equity_id: str) -> str:
    return f"{field}_{equity_id}"


def refresh_context() -> RefreshContext:
    provider = GeminiFundamentalsClient(api_key=st.session_state["api_key"])
    return RefreshContext(portfolio=portfolio, provider=provider, credentials=credentials)


def on_symbol_change(equity_id: str) -> None:
    portfolio.update_equity(equity_id, EquityEdit(symbol=st.session_state[widget_key("symbol", equity_id)]))


def on_plain_change(equity_id: str, field: str) -> None:
    value = st.session_state[widget_key(field, equity_id)]
    portfolio.update_equity(equity_id, EquityEdit(**{field: float(value or 0)}))


def on_pricing_change(equity_id: str, field: str) -> None:
    value = float(st.session_state[widget_key(field, equity_id)] or 0)
    portfolio.update_equity(equity_id, EquityEdit(pricing=PricingEdit(PRICING_FIELDS[field], value)))


def on_settings_change() -> None:
    portfolio.update_settings(st.session_state["total_capital"], st.session_state["company_count"])


def sync_widgets(equity: Equity) -> None:
    st.session_state[widget_key("symbol", equity.id)] = equity.symbol
    for field in (*PLAIN_FIELDS, *PRICING_FIELDS):
        st.session_state[widget_key(field, equity.id)] = float(getattr(equity, field))


def render_results(result: ValuationResult, loading: bool) -> None:
    if loading:
        st.caption("Loading...")
        return
    cols = st.columns(5)
    cols[0].metric("D1", f"{CURRENCY_SYMBOL}{format_number(result.d1)}")
    cols[1].metric("Yield (fwd)", format_percent(result.yield_forecast))
    if result.is_valid:
        cols[2].metric("DDM fair price", format_number(result.ddm_price))
    else:
        cols[2].error(result.error_reason or "Invalid")
    for col, (label, price, shares) in zip(cols[3:], result.tiers()[:2]):
        col.metric(label.upper(), format_number(price) if result.is_valid else "-", f"{format_shares(shares)} shares", delta_color="off")
    tier50 = result.tiers()[2]
    st.caption(
        f"MOS50: {format_number(tier50[1]) if result.is_valid else '-'} / {format_shares(tier50[2])} shares"
    )


def render_row(equity: Equity) -> None:
    status = portfolio.status(equity.id)
    disabled = status.loading
    sync_widgets(equity)
    with st.container(border=True):
        header = st.columns([2, 1, 1, 1, 1, 1, 1, 1])
        header[0].text_input(
            "Symbol",
            key=widget_key("symbol", equity.id),
            disabled=disabled,
            on_change=on_symbol_change,
            args=(equity.id,),
            placeholder="SYMBOL",
        )
        for col, field, label in zip(
            header[1:],
            ("price", "pe", "pbv", "de", "roe", "eps", "dividend"),
            ("Price", "P/E", "P/BV", "D/E", "ROE %", "EPS", "Dividend"),
        ):
            callback = on_pricing_change if field in PRICING_FIELDS else on_plain_change
            col.number_input(
                label,
                key=widget_key(field, equity.id),
                min_value=0.0,
                format="%.2f",
                disabled=disabled,
                on_change=callback,
                args=(equity.id, field),
            )

        assumptions = st.columns([1, 1, 1, 1, 1])
        assumptions[0].number_input(
            "Yield %",
            key=widget_key("yield_percent", equity.id),
            min_value=0.0,
            format="%.2f",
            disabled=disabled,
            on_change=on_pricing_change,
            args=(equity.id, "yield_percent"),
        )
        assumptions[1].number_input(
            "Growth %",
            key=widget_key("growth", equity.id),
            format="%.2f",
            disabled=disabled,
            on_change=on_plain_change,
            args=(equity.id, "growth"),
        )
        assumptions[2].number_input(
            "Required return %",
            key=widget_key("required_return", equity.id),
            format="%.2f",
            disabled=disabled,
            on_change=on_plain_change,
            args=(equity.id, "required_return"),
        )
        if assumptions[3].button("Refresh", key=f"refresh_{equity.id}", disabled=disabled):
            with st.spinner(f"Fetching {equity.symbol or 'symbol'}..."):
                RefreshEquityUseCase(refresh_context()).execute(equity.id)
            st.rerun()
        if assumptions[4].button("Delete", key=f"delete_{equity.id}", disabled=disabled):
            st.session_state["pending_delete"] = equity.id
            st.rerun()

        if status.error:
            st.error(status.error)
        elif equity.reference_year:
            label = f"FY {equity.reference_year}"
            if equity.company_name:
                label = f"{equity.company_name} · {label}"
            st.caption(label)

        render_results(portfolio.valuation(equity.id), status.loading)

        if equity.sources and not status.loading:
            with st.expander(f"Sources ({len(equity.sources)})"):
                for idx, source in enumerate(equity.sources, start=1):
                    st.markdown(f"- [{source.title or f'Source {idx}'}]({source.uri})")


if credentials.needs_credential:
    st.title("API Key Required")
    st.write(
        "Financial data is retrieved with Gemini and Google Search grounding. "
        "Enter an API key from a Google Cloud project with billing enabled."
    )
    new_key = st.text_input("Gemini API key", type="password")
    if st.button("Connect API Key", disabled=len(new_key or "") <= 5):
        st.session_state["api_key"] = new_key.strip()
        credentials.restore()
        st.rerun()
    st.stop()


st.title("Portfolio Valuation")
st.caption("Dividend Discount Model (DDM) & Margin of Safety Calculator")

top = st.columns([3, 1, 1])
if portfolio.is_dirty:
    top[0].warning("Unsaved Changes")
has_symbols = any(equity.symbol.strip() for equity in portfolio.equities())
if top[1].button("Refresh All Data", disabled=not has_symbols):
    with st.spinner("Refreshing all..."):
        RefreshAllUseCase(refresh_context()).execute()
    st.rerun()
if top[2].button("Save Portfolio", type="primary" if portfolio.is_dirty else "secondary"):
    SavePortfolioUseCase(repository).execute(portfolio)
    st.toast("Portfolio saved")
    st.rerun()

st.session_state["total_capital"] = float(portfolio.settings.total_capital)
st.session_state["company_count"] = int(portfolio.settings.company_count)
summary = st.columns(3)
summary[0].number_input("Total capital", key="total_capital", min_value=0.0, step=10000.0, on_change=on_settings_change)
summary[1].number_input("Number of companies", key="company_count", min_value=1, step=1, on_change=on_settings_change)
summary[2].metric("Money per company", f"{CURRENCY_SYMBOL} {format_currency(portfolio.allocation_per_equity())}")

pending = st.session_state["pending_delete"]
if pending is not None and pending in portfolio:
    target = portfolio[pending]
    st.warning(f"Are you sure you want to delete {target.symbol or 'this stock'}?")
    confirm_cols = st.columns(2)
    if confirm_cols[0].button("Delete", key="confirm_delete", type="primary"):
        portfolio.remove_equity(pending, confirm=lambda equity: True)
        st.session_state["pending_delete"] = None
        st.rerun()
    if confirm_cols[1].button("Cancel", key="cancel_delete"):
        st.session_state["pending_delete"] = None
        st.rerun()

for equity in portfolio.equities():
    render_row(equity)

if st.button("Add Stock"):
    portfolio.add_equity()
    st.rerun()

with st.expander("Valuation table"):
    valuations = portfolio.valuations()
    st.dataframe(valuations_to_dataframe(valuations), width="stretch")
    downloads = st.columns(2)
    downloads[0].download_button(
        "Download CSV",
        data=render_csv(valuations),
        file_name="portfolio_valuation.csv",
        mime="text/csv",
    )
    downloads[1].download_button(
        "Download Excel",
        data=render_xlsx(valuations),
        file_name="portfolio_valuation.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )

st.caption("* Data is retrieved using Google Search grounding via Gemini.")
