# payments/services/exceptions.py

"""
PAYMENT SERVICE ERRORS

Centralized domain errors for payments services.
"""


class PaymentServiceError(Exception):
    """Base exception for all payment service failures."""


class PaymentValidationError(PaymentServiceError):
    """Raised when a payment/entry request is invalid. Nothing has been written."""


class InsufficientOutstandingError(PaymentServiceError):
    """Raised when a Partial payment would settle more than is outstanding."""


class EntryNotFoundError(PaymentServiceError):
    """Raised when an outstanding entry (or party) does not exist."""


class PaymentNotFoundError(PaymentServiceError):
    """Raised when a payment does not exist."""


class PaymentPersistenceError(PaymentServiceError):
    """Raised when the database write fails. The transaction is rolled back."""


class LedgerLinkError(PaymentServiceError):
    """Raised when the payment's ledger posting has lost its linked counterpart (strict links)."""
