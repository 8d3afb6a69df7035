"""Gemini client retrieving SET fundamentals with Google Search grounding."""
from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any

import requests

from portfolio_valuer.config import GEMINI_BASE_URL, SETTINGS
from portfolio_valuer.domain.errors import CredentialError, FetchError, is_credential_message
from portfolio_valuer.domain.models import Fundamentals, Source
from portfolio_valuer.domain.repositories import FundamentalsProvider
from portfolio_valuer.infrastructure.parsing.utils import (
    extract_json_object,
    parse_non_negative,
    parse_optional_text,
)

logger = logging.getLogger(__name__)

CREDENTIAL_MESSAGE = "API Key Error: Please re-select your key."
AUTH_STATUSES = {401, 403}

PROMPT_TEMPLATE = """You are a financial analyst. Search for the stock "{symbol}" on the Stock Exchange of Thailand (SET).

Find and provide the following data for the FULL FISCAL YEAR {year}:
1. Latest Market Price (in THB)
2. P/E Ratio
3. P/BV Ratio
4. Debt to Equity Ratio (D/E)
5. Return on Equity (ROE) as a percentage
6. Earnings Per Share (EPS)
7. Total Annual Dividend per share paid for the year {year}
8. Confirm the year of data (should be {year})
9. The English Company Name (brief, e.g. "PTT Public Company Limited" or "PTT")

Return ONLY a JSON object with the keys currentPrice, pe, pbv, de, roe, eps, dividend, referenceYear, companyName."""


def target_fiscal_year(today: date | None = None) -> int:
    return (today or date.today()).year - 1


def build_prompt(symbol: str, year: int) -> str:
    return PROMPT_TEMPLATE.format(symbol=symbol, year=year)


def extract_text(payload: dict[str, Any]) -> str:
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = [part.get("text") for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    return "".join(texts).strip()


def extract_sources(payload: dict[str, Any]) -> tuple[Source, ...]:
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ()
    metadata = candidates[0].get("groundingMetadata") or {}
    chunks = metadata.get("groundingChunks") if isinstance(metadata, dict) else None
    if not isinstance(chunks, list):
        return ()
    sources: list[Source] = []
    for chunk in chunks:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if isinstance(web, dict) and web.get("uri"):
            sources.append(Source(title=str(web.get("title") or ""), uri=str(web["uri"])))
    return tuple(sources)


def parse_response(symbol: str, payload: dict[str, Any], year: int) -> Fundamentals:
    text = extract_text(payload)
    if not text:
        raise FetchError("AI returned empty content")
    try:
        data = extract_json_object(text)
    except ValueError as error:
        raise FetchError(f"Could not read data returned for {symbol}") from error

    price = parse_non_negative(data.get("currentPrice"))
    dividend = parse_non_negative(data.get("dividend"))
    numbers = {key: parse_non_negative(data.get(key)) for key in ("pe", "pbv", "de", "roe", "eps")}
    if price == 0 and dividend == 0 and not any(numbers.values()):
        raise FetchError(f"No data found for {symbol}")

    return Fundamentals(
        price=price,
        dividend=dividend,
        yield_percent=dividend / price * 100 if price > 0 and dividend > 0 else 0.0,
        sources=extract_sources(payload),
        reference_year=parse_optional_text(data.get("referenceYear")) or str(year),
        company_name=parse_optional_text(data.get("companyName")),
        **numbers,
    )


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Gemini request failed with status {response.status_code}."
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"Gemini request failed with status {response.status_code}."


class GeminiFundamentalsClient(FundamentalsProvider):
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else SETTINGS.gemini_api_key
        self.model = model or SETTINGS.gemini_model
        self.timeout_seconds = timeout_seconds or SETTINGS.fetch_timeout
        self.session = session or requests.Session()
        self.url = f"{GEMINI_BASE_URL}/models/{self.model}:generateContent"

    def fetch(self, symbol: str) -> Fundamentals:
        if not self.api_key:
            raise CredentialError(CREDENTIAL_MESSAGE)
        year = target_fiscal_year()
        payload = {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(symbol, year)}]}],
            "tools": [{"google_search": {}}],
            "generationConfig": {"temperature": 0.1},
        }
        headers = {"x-goog-api-key": self.api_key, "content-type": "application/json"}
        logger.info("Fetching fundamentals for %s (fiscal year %d) with %s", symbol, year, self.model)
        try:
            response = self.session.post(
                self.url,
                timeout=self.timeout_seconds,
                headers=headers,
                data=json.dumps(payload),
            )
        except requests.RequestException as error:
            logger.warning("Gemini request for %s failed: %s", symbol, error)
            raise FetchError(f"Gemini request failed: {error}") from error

        if not response.ok:
            message = _error_message(response)
            logger.warning("Gemini returned %s for %s: %s", response.status_code, symbol, message)
            if response.status_code in AUTH_STATUSES or is_credential_message(message):
                raise CredentialError(CREDENTIAL_MESSAGE, response.status_code)
            raise FetchError(message, response.status_code)

        try:
            body = response.json()
        except ValueError as error:
            raise FetchError("Gemini returned non-JSON response.", response.status_code) from error
        return parse_response(symbol, body if isinstance(body, dict) else {}, year)
