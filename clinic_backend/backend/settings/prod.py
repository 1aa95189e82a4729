# backend/settings/prod.py
"""
PRODUCTION SETTINGS

Fail-closed: a missing or unsafe value refuses to start.
- PostgreSQL only: invoice payment locks product and batch rows with
  SELECT ... FOR UPDATE, which SQLite ignores
- WhiteNoise serves collected static files (Django admin)
- https-only CORS/CSRF origins, hardened cookies and headers
"""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F403
from .base import BASE_DIR, MIDDLEWARE, env


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ImproperlyConfigured(message)


DEBUG = False

SECRET_KEY = (env("SECRET_KEY", default="") or "").strip()
_require(
    bool(SECRET_KEY) and SECRET_KEY != "dev-insecure-change-me",
    "SECRET_KEY must be set to a strong value in production.",
)

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])
_require(bool(ALLOWED_HOSTS), "ALLOWED_HOSTS must be set in production.")

# ----------------------------
# Database: PostgreSQL only
# ----------------------------
_database_url = (env("DATABASE_URL", default="") or "").strip()
_require(bool(_database_url), "DATABASE_URL must be set in production.")
_require(
    not _database_url.startswith("sqlite"),
    "Stock allocation needs row locks; refusing to start on SQLite.",
)

DATABASES = {"default": env.db("DATABASE_URL")}
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)

# ----------------------------
# Static files
# ----------------------------
STATIC_ROOT = env("STATIC_ROOT", default=str(BASE_DIR / "staticfiles"))
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ----------------------------
# Transport security
# ----------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=3600)
SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True)
SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=False)

SESSION_COOKIE_SECURE = CSRF_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = CSRF_COOKIE_SAMESITE = "Lax"

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"
X_FRAME_OPTIONS = "DENY"

# ----------------------------
# CORS / CSRF (explicit, https only)
# ----------------------------
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=[])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])
CORS_ALLOW_CREDENTIALS = False

for _setting, _origins in (
    ("CORS_ALLOWED_ORIGINS", CORS_ALLOWED_ORIGINS),
    ("CSRF_TRUSTED_ORIGINS", CSRF_TRUSTED_ORIGINS),
):
    _require(bool(_origins), f"{_setting} must be set in production.")
    _require(
        all(o.startswith("https://") for o in _origins),
        f"{_setting} must be https:// in production.",
    )
    _require(
        not any("localhost" in o or "127.0.0.1" in o for o in _origins),
        f"Remove localhost from {_setting} in production.",
    )
