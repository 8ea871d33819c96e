"""Django settings for the POS portal."""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


_SECRET_KEY = os.getenv("DJANGO_SECRET_KEY")
if _SECRET_KEY:
    SECRET_KEY = _SECRET_KEY
else:
    # Fallback for local dev only; do not use in production
    SECRET_KEY = os.getenv("POS_DEV_SECRET_KEY", "django-insecure-dev-only-change-in-production")

# Default DEBUG=True when unset so runserver works with no env (local dev). Set DJANGO_DEBUG=0 in production.
_debug_raw = os.getenv("DJANGO_DEBUG")
if _debug_raw is None:
    DEBUG = True
else:
    DEBUG = _debug_raw.lower() in ("1", "true", "yes")

_raw_hosts = os.getenv("DJANGO_ALLOWED_HOSTS", "").strip()
if _raw_hosts:
    ALLOWED_HOSTS = [h.strip() for h in _raw_hosts.split(",") if h.strip()]
elif DEBUG:
    ALLOWED_HOSTS = ["localhost", "127.0.0.1", "[::1]", "*"]
else:
    ALLOWED_HOSTS = ["localhost", "127.0.0.1", "[::1]"]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "apps.pos",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "pos_portal.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "pos_portal.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

LANGUAGE_CODE = "es-gt"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

POS_LOG_LEVEL = os.getenv("POS_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "apps.pos": {"handlers": ["console"], "level": POS_LOG_LEVEL, "propagate": False},
    },
}

# Data provider backing the reconciliation and sales endpoints: "orm" (local models) or "http" (remote API).
POS_DATA_PROVIDER = os.getenv("POS_DATA_PROVIDER", "orm").strip().lower()
POS_PROVIDER_BASE_URL = os.getenv("POS_PROVIDER_BASE_URL", "http://127.0.0.1:3000/api")
POS_PROVIDER_TOKEN = os.getenv("POS_PROVIDER_TOKEN", "")
POS_PROVIDER_TIMEOUT_SECONDS = _env_float("POS_PROVIDER_TIMEOUT_SECONDS", 10.0, minimum=0.1)

# Clock used for "today"/"yesterday" presets and for the calendar day of a reconciliation report.
POS_BUSINESS_TIMEZONE = os.getenv("POS_BUSINESS_TIMEZONE", "America/Guatemala")

POS_DEFAULT_PAGE_SIZE = _env_int("POS_DEFAULT_PAGE_SIZE", 10, minimum=1)
POS_MAX_PAGE_SIZE = _env_int("POS_MAX_PAGE_SIZE", 100, minimum=1)
POS_CURRENCY_SYMBOL = os.getenv("POS_CURRENCY_SYMBOL", "Q")
POS_CASH_SESSION_AUTO_CLOSE_HOURS = _env_int("POS_CASH_SESSION_AUTO_CLOSE_HOURS", 12, minimum=1)
POS_REPORTS_DIR = Path(os.getenv("POS_REPORTS_DIR", str(BASE_DIR / "reports")))

# Production security (when DEBUG is False)
if not DEBUG:
    SECURE_BROWSER_XSS_FILTER = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
    CSRF_COOKIE_SECURE = True
    SESSION_COOKIE_SECURE = True
    SECURE_SSL_REDIRECT = os.getenv("DJANGO_SECURE_SSL_REDIRECT", "").lower() in ("1", "true", "yes")
    SECURE_HSTS_SECONDS = _env_int("DJANGO_SECURE_HSTS_SECONDS", 0, minimum=0)
    SECURE_HSTS_INCLUDE_SUBDOMAINS = SECURE_HSTS_SECONDS > 0
    SECURE_HSTS_PRELOAD = SECURE_HSTS_SECONDS > 0
