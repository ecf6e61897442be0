from __future__ import annotations


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    status_code = 400


class UnknownTypeError(ValidationError):
    """The absence type is neither a vacation nor an off-day."""


class NotFoundError(LedgerError):
    status_code = 404


class PersistenceError(LedgerError):
    """The ledger file could not be read, parsed or written."""

    def __init__(self, message: str = "Could not access the worker ledger") -> None:
        super().__init__(message)
