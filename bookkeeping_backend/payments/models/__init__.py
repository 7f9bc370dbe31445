# payments/models/__init__.py

"""
PAYMENTS MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from payments.models.entry import OutstandingEntry
from payments.models.payment import Payment, PaymentAllocation

__all__ = [
    "OutstandingEntry",
    "Payment",
    "PaymentAllocation",
]
