# ledger/models/__init__.py

"""
LEDGER MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from ledger.models.account import Account
from ledger.models.posting import LedgerPosting

__all__ = [
    "Account",
    "LedgerPosting",
]
