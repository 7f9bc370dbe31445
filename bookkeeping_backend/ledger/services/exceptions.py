# ledger/services/exceptions.py

"""
LEDGER SERVICE ERRORS

Centralized domain errors for ledger services.
"""


class LedgerServiceError(Exception):
    """Base exception for all ledger service failures."""


class LedgerValidationError(LedgerServiceError):
    """Raised when a posting request is invalid. Nothing has been written."""


class PostingNotFoundError(LedgerServiceError):
    """Raised when a posting (or its account) does not exist."""


class CounterpartNotFoundError(LedgerServiceError):
    """Raised in strict mode when a linked posting has no counterpart."""


class LedgerPersistenceError(LedgerServiceError):
    """Raised when the database write fails. The transaction is rolled back."""
