"""Application-level DTOs for portfolio refresh and persistence."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum


class RefreshState(str, Enum):
    UPDATED = "updated"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class RefreshOutcome:
    equity_id: str
    symbol: str
    state: RefreshState
    error: str | None = None
    credential_failure: bool = False

    @property
    def ok(self) -> bool:
        return self.state is RefreshState.UPDATED


@dataclass(slots=True)
class CredentialState:
    """Portfolio-wide flag gating fetches behind a new API credential."""

    needs_credential: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def revoke(self) -> None:
        with self._lock:
            self.needs_credential = True

    def restore(self) -> None:
        with self._lock:
            self.needs_credential = False
