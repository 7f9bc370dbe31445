# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS (pytest-django / CI)

- In-memory sqlite, no .env coupling for the database
- Fast password hashing
- Quiet engine loggers
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LEDGER_STRICT_LINKS = False

RECEIPT_SELECTOR = {
    "MAX_COMBINATION_SIZE": 8,
    "MAX_CANDIDATES": 200,
    "MAX_RESULTS": 100,
    "NODE_BUDGET": 250000,
    "TIME_BUDGET_SECONDS": 5.0,
}

LOGGING["loggers"]["ledger"]["level"] = "WARNING"
LOGGING["loggers"]["payments"]["level"] = "WARNING"
