"""Shared parsing utilities for user input and external payloads."""
from __future__ import annotations

import json
import math
import re
from typing import Any

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_number(value: object, default: float = 0.0) -> float:
    """Coerce loosely formatted numeric input to a finite float.

    Accepts thousands separators, currency marks, trailing ``%`` and
    accounting-style negatives such as ``(1.5)``. Anything else yields
    ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else default
    s = str(value).strip()
    if not s or s.upper() == "NAN":
        return default
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    for ch in [",", "$", "฿", "%", " "]:
        s = s.replace(ch, "")
    try:
        result = float(s)
    except ValueError:
        return default
    if not math.isfinite(result):
        return default
    return -result if negative else result


def parse_non_negative(value: object) -> float:
    return max(parse_number(value), 0.0)


def parse_optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse a JSON object out of model output, tolerating code fences and prose."""
    cleaned = _FENCE.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise
        data = json.loads(cleaned[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data
