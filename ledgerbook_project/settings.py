from pathlib import Path
import os

import dj_database_url
import sentry_sdk
from dotenv import load_dotenv
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")  # explicit .env location

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY") or os.getenv("SECRET_KEY") or "dev-key"


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.lower() in {"1", "true", "yes", "on"}


def _get_list_env(name: str) -> list[str]:
    raw_value = os.getenv(name, "")
    if not raw_value:
        return []
    parts = raw_value.replace(";", ",").split(",")
    return [p.strip() for p in parts if p.strip()]


DEBUG = _get_bool_env("DJANGO_DEBUG", _get_bool_env("DEBUG", True))

base_allowed_hosts = ["localhost", "127.0.0.1", "testserver"]
ALLOWED_HOSTS = list(dict.fromkeys(base_allowed_hosts + _get_list_env("DJANGO_ALLOWED_HOSTS")))
CSRF_TRUSTED_ORIGINS = _get_list_env("CSRF_TRUSTED_ORIGINS")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "rest_framework",

    # Project apps
    "ledger",
    "documents",
    "banking",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "ledgerbook_project.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

ASGI_APPLICATION = "ledgerbook_project.asgi.application"

default_db = "sqlite:///" + str((BASE_DIR / "db.sqlite3").resolve())
database_url = os.getenv("DATABASE_URL", default_db)
DATABASES = {"default": dj_database_url.parse(database_url)}

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Tokyo")
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
}

# Cookie flags (safe defaults; local dev unaffected when DEBUG=True)
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = False
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ===================================
# Ledger configuration
# ===================================

# Capability toggles handed to the journal generator / matcher explicitly
# through ledger.features.LedgerFeatures.from_settings().
LEDGER_FEATURES = {
    "accounting": _get_bool_env("FEATURE_ACCOUNTING", True),
    "expense_journals": _get_bool_env("FEATURE_EXPENSE_JOURNALS", True),
    "bank_import": _get_bool_env("FEATURE_BANK_IMPORT", True),
}

# Posting role -> chart of accounts code used by the derived journal templates.
LEDGER_ACCOUNT_CODES = {
    "cash": os.getenv("LEDGER_CASH_ACCOUNT_CODE", "1101"),
    "receivable": os.getenv("LEDGER_RECEIVABLE_ACCOUNT_CODE", "1110"),
    "payable": os.getenv("LEDGER_PAYABLE_ACCOUNT_CODE", "2110"),
    "revenue": os.getenv("LEDGER_REVENUE_ACCOUNT_CODE", "4100"),
    "expense": os.getenv("LEDGER_EXPENSE_ACCOUNT_CODE", "5100"),
}

RECONCILIATION_MATCHING = {
    "DATE_TOLERANCE_DAYS": int(os.getenv("RECONCILIATION_DATE_TOLERANCE_DAYS", "7")),
    "MAX_CANDIDATES": int(os.getenv("RECONCILIATION_MAX_CANDIDATES", "5")),
    "HIGH_CONFIDENCE_SCORE": int(os.getenv("RECONCILIATION_HIGH_CONFIDENCE_SCORE", "150")),
}

BANK_IMPORT_MAX_ERROR_SAMPLES = int(os.getenv("BANK_IMPORT_MAX_ERROR_SAMPLES", "10"))

LEDGER_LOG_LEVEL = os.getenv("LEDGER_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "ledger": {
            "handlers": ["console"],
            "level": LEDGER_LOG_LEVEL,
        },
        "documents": {
            "handlers": ["console"],
            "level": LEDGER_LOG_LEVEL,
        },
        "banking": {
            "handlers": ["console"],
            "level": LEDGER_LOG_LEVEL,
        },
    },
}

# --- Sentry & production security hardening ---

SENTRY_DSN = os.getenv("SENTRY_DSN", "")

if not DEBUG:
    # Error monitoring (Sentry)
    if SENTRY_DSN:
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            integrations=[DjangoIntegration()],
            traces_sample_rate=0.1,
            send_default_pii=False,
            environment=os.getenv("SENTRY_ENVIRONMENT", "production"),
        )

    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SECURE_SSL_REDIRECT = _get_bool_env("SECURE_SSL_REDIRECT", True)

    SECURE_HSTS_SECONDS = 31536000  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True

    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
