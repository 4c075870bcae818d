"""
Domain error taxonomy.

Every failure the registry can surface is one of these. Ledger-side
errors keep the raw diagnostic text (program logs, RPC message) in
`details` so operators can debug without a stack trace reaching callers.
"""

from __future__ import annotations

from typing import Optional


class AuthlinkError(Exception):
    """Base class for all domain errors."""

    kind = "error"

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInput(AuthlinkError):
    """Caller-supplied data is malformed. Raised before any ledger call."""

    kind = "invalid_input"


class DuplicateRegistration(AuthlinkError):
    """The ledger refused to create an account that already exists."""

    kind = "duplicate_registration"


class LedgerError(AuthlinkError):
    """Base class for faults originating at the ledger boundary."""

    kind = "ledger_error"


class LedgerRejected(LedgerError):
    """The program's execution constraints were violated."""

    kind = "ledger_rejected"


class LedgerUnavailable(LedgerError):
    """Network failure or timeout. Safe to retry only for read paths."""

    kind = "ledger_unavailable"


class LedgerNotFound(LedgerError):
    """No account exists at the requested locator."""

    kind = "ledger_not_found"
