# payments/services/ledger_errors.py

from ledger.services.exceptions import (
    CounterpartNotFoundError,
    LedgerPersistenceError,
    LedgerServiceError,
    LedgerValidationError,
    PostingNotFoundError,
)
from payments.services.exceptions import (
    LedgerLinkError,
    PaymentPersistenceError,
    PaymentServiceError,
    PaymentValidationError,
)


def payment_error_from_ledger(exc: LedgerServiceError) -> PaymentServiceError:
    """Translate a ledger failure raised while posting a payment."""
    if isinstance(exc, CounterpartNotFoundError):
        return LedgerLinkError(f"Ledger counterpart missing: {exc}")
    if isinstance(exc, (LedgerValidationError, PostingNotFoundError)):
        return PaymentValidationError(f"Ledger posting rejected: {exc}")
    if isinstance(exc, LedgerPersistenceError):
        return PaymentPersistenceError(f"Ledger posting failed: {exc}")
    return PaymentServiceError(f"Ledger posting failed: {exc}")
