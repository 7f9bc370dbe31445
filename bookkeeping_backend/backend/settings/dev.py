# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT
- sqlite from base unless DATABASE_URL says otherwise
- browsable API on
- ledger/payments engine logs at DEBUG unless LOG_LEVEL is set
"""

from __future__ import annotations

import os

from .base import *  # noqa: F403
from .base import LOGGING, REST_FRAMEWORK, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1", "0.0.0.0"])

_FRONTEND_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=_FRONTEND_ORIGINS)
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=_FRONTEND_ORIGINS)
CORS_ALLOW_CREDENTIALS = True

REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = (
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
)

if not os.environ.get("LOG_LEVEL"):
    for _name in ("ledger", "payments"):
        LOGGING["loggers"][_name]["level"] = "DEBUG"
