# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

- In-memory SQLite (fast, isolated)
- Fast password hashing
- Throttling off so API tests never hit rate limits
- Inventory defaults pinned so tests don't depend on a developer's .env
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import INVENTORY, REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

INVENTORY = {
    **INVENTORY,
    "NO_BATCH_SHORTFALL_POLICY": "flag",
    "PRODUCT_INDEX_TTL_SECONDS": 30,
    "EXPIRY_WARNING_DAYS": 30,
    "EXPIRY_CRITICAL_DAYS": 7,
}
