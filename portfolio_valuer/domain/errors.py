"""Exception types raised across the domain boundary."""
from __future__ import annotations

CREDENTIAL_PHRASES = (
    "api key",
    "entity was not found",
    "invalid",
    "permission_denied",
)


class EquityNotFoundError(KeyError):
    def __init__(self, equity_id: str) -> None:
        super().__init__(equity_id)
        self.equity_id = equity_id

    def __str__(self) -> str:
        return f"No equity with id {self.equity_id!r}"


class FetchError(Exception):
    """Fundamentals could not be retrieved for a symbol."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        return self.message


class CredentialError(FetchError):
    """The external API credential is missing, revoked or invalid."""


def is_credential_message(message: str | None) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(phrase in lowered for phrase in CREDENTIAL_PHRASES)


class EquityBusyError(RuntimeError):
    """The equity is being refreshed and cannot be edited."""

    def __init__(self, equity_id: str) -> None:
        super().__init__(f"Equity {equity_id!r} is loading")
        self.equity_id = equity_id
