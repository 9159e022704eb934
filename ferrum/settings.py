"""
Django settings for the ferrum patients service.

Every value comes from the environment so that the container image can be
configured without modifying source code.  A `.env` file next to
``manage.py`` is loaded first when present, which is convenient for local
development.  In production set real environment variables instead.
"""
from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import quote

import dj_database_url
from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv  # type: ignore

import ferrum
from ferrum.env import env_bool, env_duration, env_int, env_log_level, env_str

# -----------------------------------------------------------------------------
# Base & .env loading
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

# -----------------------------------------------------------------------------
# Core flags & security baseline
# -----------------------------------------------------------------------------
ENV = os.getenv("ENV", "dev")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env_bool("DEBUG")

ALLOWED_HOSTS: list[str] = [
    h.strip() for h in os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",") if h.strip()
]

# Django itself signs nothing for this service, but the setting is mandatory.
SECRET_KEY = os.getenv("SECRET_KEY") or "replace-me-with-a-secure-secret-key"

# -----------------------------------------------------------------------------
# HTTP API
# -----------------------------------------------------------------------------
HTTP_API_PORT = env_int("HTTP_API_PORT", "80")
HTTP_REQUEST_TIMEOUT = env_duration("HTTP_REQUEST_TIMEOUT", "3s")
HTTP_SHUTDOWN_TIMEOUT = env_duration("HTTP_SHUTDOWN_TIMEOUT", str(HTTP_REQUEST_TIMEOUT))
HTTP_MAX_POST_SIZE = env_int("HTTP_MAX_POST_SIZE", "1048576")  # 1MiB
HTTP_JWT_SIGNING_KEY = env_str("HTTP_JWT_SIGNING_KEY", "deadbeef")
HTTP_JWT_CLAIM_NAME = env_str("HTTP_JWT_CLAIM_NAME", "ferrum")
HTTP_JWT_EXPIRATION = env_duration("HTTP_JWT_EXPIRATION", "1h")

# Injected by the image build
VERSION = env_str("VERSION", ferrum.__version__)
BUILD_DATE = env_str("BUILD_DATE", "")

if ENV == "prod":
    if DEBUG:
        raise ImproperlyConfigured("DEBUG must be 0 in prod")
    if "*" in ALLOWED_HOSTS:
        raise ImproperlyConfigured("ALLOWED_HOSTS cannot contain * in prod")
    if SECRET_KEY == "replace-me-with-a-secure-secret-key":
        raise ImproperlyConfigured("SECRET_KEY must be set securely in prod")
    if HTTP_JWT_SIGNING_KEY == "deadbeef":
        raise ImproperlyConfigured("HTTP_JWT_SIGNING_KEY must be set securely in prod")

# -----------------------------------------------------------------------------
# Applications
# -----------------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    # Third-party apps
    "rest_framework",
    # Local apps
    "clinic",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
]

ROOT_URLCONF = "ferrum.urls"

WSGI_APPLICATION = "ferrum.wsgi.application"

# -----------------------------------------------------------------------------
# Database configuration
# Priority:
#   1) DATABASE_URL (parsed by dj_database_url)
#   2) Discrete DATABASE_* env vars (Postgres)
#   3) SQLite fallback
# -----------------------------------------------------------------------------
DB_CONN_MAX_AGE = env_int("DB_CONN_MAX_AGE", "0")
DB_CONNECT_TIMEOUT = env_int("DB_CONNECT_TIMEOUT", "5")

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL and os.getenv("DATABASE_HOST"):
    DATABASE_URL = "postgres://{user}:{password}@{host}:{port}/{name}?sslmode=disable".format(
        user=quote(os.getenv("DATABASE_USER", "postgres"), safe=""),
        password=quote(os.getenv("DATABASE_PASSWORD", "postgres"), safe=""),
        host=os.getenv("DATABASE_HOST"),
        port=env_int("DATABASE_PORT", "5432"),
        name=os.getenv("DATABASE_NAME", "ferrum"),
    )

if DATABASE_URL:
    try:
        DATABASES = {"default": dj_database_url.parse(DATABASE_URL, conn_max_age=DB_CONN_MAX_AGE)}
    except ValueError as exc:
        raise ImproperlyConfigured(f"DATABASE_URL: {exc}") from None
else:
    DATABASE_URL = "sqlite:///" + (BASE_DIR / "db.sqlite3").as_posix()
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": (BASE_DIR / "db.sqlite3").as_posix(),
        }
    }

_engine = DATABASES["default"]["ENGINE"]
_options = DATABASES["default"].setdefault("OPTIONS", {})
if _engine.endswith("sqlite3"):
    _options.setdefault("timeout", DB_CONNECT_TIMEOUT)
elif "postgresql" in _engine or "mysql" in _engine:
    _options.setdefault("connect_timeout", DB_CONNECT_TIMEOUT)

# -----------------------------------------------------------------------------
# Internationalization
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.AutoField"

# -----------------------------------------------------------------------------
# DRF
# Authentication happens in the bearer token stage of the router, so DRF
# itself runs every view anonymously.
# -----------------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_CONTENT_NEGOTIATION_CLASS": "clinic.negotiation.FirstRendererNegotiation",
    "DEFAULT_METADATA_CLASS": None,
    # Plain-text status phrases for every error raised inside a view
    "EXCEPTION_HANDLER": "clinic.exceptions.api_exception_handler",
}

APPEND_SLASH = False

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
LOG_LEVEL = env_log_level("LOG_LEVEL", "info")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
}
