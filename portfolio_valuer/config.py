"""Central configuration for the portfolio valuer package."""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

DEFAULT_GROWTH = 3.0
DEFAULT_REQUIRED_RETURN = 10.0
INITIAL_TOTAL_CAPITAL = 1_000_000.0
INITIAL_COMPANY_COUNT = 5
BOARD_LOT = 100

STORAGE_KEY = "portfolio_data"

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(slots=True, frozen=True)
class Settings:
    default_growth: float
    default_required_return: float
    initial_total_capital: float
    initial_company_count: int
    board_lot: int
    storage_path: Path
    gemini_api_key: str
    gemini_model: str
    fetch_timeout: float
    refresh_workers: int

    def has_api_key(self) -> bool:
        return len(self.gemini_api_key) > 5


def load_settings() -> Settings:
    storage = os.getenv("PORTFOLIO_DATA_PATH")
    return Settings(
        default_growth=DEFAULT_GROWTH,
        default_required_return=DEFAULT_REQUIRED_RETURN,
        initial_total_capital=INITIAL_TOTAL_CAPITAL,
        initial_company_count=INITIAL_COMPANY_COUNT,
        board_lot=BOARD_LOT,
        storage_path=Path(storage) if storage else DATA_DIR / f"{STORAGE_KEY}.json",
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-pro"),
        fetch_timeout=_env_float("PORTFOLIO_FETCH_TIMEOUT", 90.0),
        refresh_workers=max(1, _env_int("PORTFOLIO_REFRESH_WORKERS", 4)),
    )


SETTINGS = load_settings()


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a stdout handler to the package logger once."""
    log = logging.getLogger("portfolio_valuer")
    log.setLevel(level)
    if log.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    log.addHandler(handler)
