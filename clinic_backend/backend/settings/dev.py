# backend/settings/dev.py
"""
LOCAL DEVELOPMENT SETTINGS

- SQLite by default (DATABASE_URL), frontend dev server allowed by CORS
- products / billing loggers at DEBUG so allocation steps are visible
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"])
CORS_ALLOW_CREDENTIALS = True

for _name in ("products", "billing"):
    LOGGING["loggers"][_name]["level"] = env("LOG_LEVEL", default="DEBUG").upper()
