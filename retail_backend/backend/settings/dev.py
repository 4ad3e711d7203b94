# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS

- SQLite by default (settlement falls back to plain transactions; no SET LOCAL)
- Ledger/settlement loggers at DEBUG unless LOG_LEVEL says otherwise
- Frontend dev server (Vite) allowed through CORS
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

CORS_ALLOWED_ORIGINS = env.list(
    "CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"]
)

CSRF_TRUSTED_ORIGINS = env.list(
    "CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"]
)

CORS_ALLOW_CREDENTIALS = True

_DEV_LOG_LEVEL = env("DEV_DOMAIN_LOG_LEVEL", default="DEBUG")

for _name in ("accounting", "products", "credits", "cashbox", "sales", "backend"):
    LOGGING["loggers"][_name] = {
        "handlers": ["console"],
        "level": _DEV_LOG_LEVEL,
        "propagate": False,
    }
